"""Budget composition rules - component sets, allocation totals, component lookup"""

import math
from typing import Dict, Iterable, Mapping

from budget_gateway.domain.exceptions import ComponentNotFoundError, ValidationError
from budget_gateway.domain.models import (
    EXTENSIBLE_SECTIONS,
    WELL_KNOWN_COMPONENTS,
    Budget,
    BudgetComponent,
    BudgetSection,
    ComponentRequest,
)


def build_sections(
    requests: Mapping[BudgetSection, Iterable[ComponentRequest]],
) -> Dict[BudgetSection, Dict[str, BudgetComponent]]:
    """
    Build the three budget sections for a new budget.

    Requirements:
    - Every well-known component is present, allocated 0 when not requested
    - Custom components only in departmentExpenses / csddExpenses
    - Allocations are non-negative; spend starts at 0

    Raises:
        ValidationError: Negative allocation, duplicate key, or custom
            component in a closed section
    """
    sections: Dict[BudgetSection, Dict[str, BudgetComponent]] = {
        section: {key: BudgetComponent(key=key, section=section) for key in keys}
        for section, keys in WELL_KNOWN_COMPONENTS.items()
    }

    for section, section_requests in requests.items():
        seen = set()
        for req in section_requests:
            key = (req.key or "").strip()
            if not key:
                raise ValidationError(f"Component key is required in {section.value}")
            if "." in key:
                raise ValidationError(f"Component key {key!r} must not contain '.'")
            if key in seen:
                raise ValidationError(f"Duplicate component {key!r} in {section.value}")
            seen.add(key)

            allocated = _as_amount(req.allocated, key)
            if allocated < 0:
                raise ValidationError(f"Allocation for {key!r} must not be negative")

            well_known = key in WELL_KNOWN_COMPONENTS[section]
            if not well_known and section not in EXTENSIBLE_SECTIONS:
                raise ValidationError(f"{section.value} does not accept custom component {key!r}")

            sections[section][key] = BudgetComponent(
                key=key,
                section=section,
                allocated=allocated,
                spent=0,
                display_name=None if well_known else (req.display_name or key),
            )

    return sections


def total_allocation(sections: Mapping[BudgetSection, Mapping[str, BudgetComponent]]) -> float:
    return sum(comp.allocated for components in sections.values() for comp in components.values())


def locate_component(budget: Budget, key: str | None) -> BudgetComponent:
    """Resolve a component key against departmentExpenses, fixedCosts, csddExpenses in that order"""
    if not key:
        raise ValidationError("Budget component is required")
    component = budget.find_component(key)
    if component is None:
        raise ComponentNotFoundError(key, budget.id)
    return component


def validate_amount(amount, label: str = "amount") -> float:
    value = _as_amount(amount, label)
    if value <= 0:
        raise ValidationError(f"{label} must be greater than zero, got {amount!r}")
    return value


def _as_amount(value, label: str) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be numeric, got {value!r}")
    if not isinstance(value, (int, float)):
        try:
            value = float(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{label} must be numeric, got {value!r}") from None
    if not math.isfinite(value):
        raise ValidationError(f"{label} must be finite, got {value!r}")
    return value
