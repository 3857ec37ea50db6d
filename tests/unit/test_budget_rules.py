"""Unit tests for budget composition and component lookup"""

import pytest
from budget_gateway.domain.budgets import build_sections, locate_component, total_allocation, validate_amount
from budget_gateway.domain.exceptions import ComponentNotFoundError, ValidationError
from budget_gateway.domain.models import (
    Budget,
    BudgetComponent,
    BudgetSection,
    BudgetStatus,
    ComponentRequest,
)


def _budget(sections) -> Budget:
    return Budget(id="dm_FY-2025-26", department="dm", fiscal_year="25-26", status=BudgetStatus.ACTIVE, sections=sections)


def test_build_sections_includes_all_well_known_components():
    sections = build_sections({})

    assert set(sections[BudgetSection.FIXED_COSTS]) == {"rent", "maintenance", "electricity", "internet", "renovation"}
    assert set(sections[BudgetSection.DEPARTMENT_EXPENSES]) == {"employeeSalary"}
    assert set(sections[BudgetSection.CSDD_EXPENSES]) == {
        "intercity_outstation_visits",
        "lunch_dinner_with_client",
        "mobile_sim",
    }
    assert all(c.allocated == 0 and c.spent == 0 for s in sections.values() for c in s.values())


def test_build_sections_custom_components():
    sections = build_sections(
        {
            BudgetSection.DEPARTMENT_EXPENSES: [ComponentRequest("software", 40000, "Software licences")],
            BudgetSection.CSDD_EXPENSES: [ComponentRequest("campus_events", 5000)],
        }
    )

    software = sections[BudgetSection.DEPARTMENT_EXPENSES]["software"]
    assert software.is_custom
    assert software.display_name == "Software licences"
    # Display name defaults to the key
    assert sections[BudgetSection.CSDD_EXPENSES]["campus_events"].display_name == "campus_events"


def test_fixed_costs_reject_custom_components():
    with pytest.raises(ValidationError):
        build_sections({BudgetSection.FIXED_COSTS: [ComponentRequest("parking", 1000)]})


def test_build_sections_rejects_negative_and_duplicate():
    with pytest.raises(ValidationError):
        build_sections({BudgetSection.FIXED_COSTS: [ComponentRequest("rent", -1)]})
    with pytest.raises(ValidationError):
        build_sections(
            {BudgetSection.DEPARTMENT_EXPENSES: [ComponentRequest("x", 1), ComponentRequest("x", 2)]}
        )


def test_build_sections_rejects_dotted_keys():
    with pytest.raises(ValidationError):
        build_sections({BudgetSection.DEPARTMENT_EXPENSES: [ComponentRequest("a.b", 1)]})


def test_total_allocation_sums_every_section():
    sections = build_sections(
        {
            BudgetSection.FIXED_COSTS: [ComponentRequest("rent", 615000), ComponentRequest("internet", 20000)],
            BudgetSection.DEPARTMENT_EXPENSES: [ComponentRequest("employeeSalary", 100000)],
            BudgetSection.CSDD_EXPENSES: [ComponentRequest("mobile_sim", 5000)],
        }
    )
    assert total_allocation(sections) == 740000


def test_locate_component_precedence():
    """A key duplicated across sections resolves departmentExpenses, then fixedCosts, then csddExpenses"""
    dup_dept = BudgetComponent("dup", BudgetSection.DEPARTMENT_EXPENSES, allocated=1)
    dup_fixed = BudgetComponent("dup", BudgetSection.FIXED_COSTS, allocated=2)
    dup_csdd = BudgetComponent("dup", BudgetSection.CSDD_EXPENSES, allocated=3)
    only_csdd = BudgetComponent("only", BudgetSection.CSDD_EXPENSES)

    budget = _budget(
        {
            BudgetSection.FIXED_COSTS: {"dup": dup_fixed},
            BudgetSection.DEPARTMENT_EXPENSES: {"dup": dup_dept},
            BudgetSection.CSDD_EXPENSES: {"dup": dup_csdd, "only": only_csdd},
        }
    )
    assert locate_component(budget, "dup") is dup_dept
    assert locate_component(budget, "only") is only_csdd

    del budget.sections[BudgetSection.DEPARTMENT_EXPENSES]["dup"]
    assert locate_component(budget, "dup") is dup_fixed


def test_locate_component_missing_names_key():
    budget = _budget(build_sections({}))
    with pytest.raises(ComponentNotFoundError) as exc_info:
        locate_component(budget, "travel")
    assert exc_info.value.component_key == "travel"
    assert "travel" in str(exc_info.value)


def test_locate_component_requires_key():
    with pytest.raises(ValidationError):
        locate_component(_budget(build_sections({})), None)


def test_over_allocation_is_flagged_not_rejected():
    comp = BudgetComponent("rent", BudgetSection.FIXED_COSTS, allocated=100, spent=150)
    assert comp.over_allocated
    # Informational-only fixed costs never warn
    assert not BudgetComponent("renovation", BudgetSection.FIXED_COSTS, allocated=0, spent=10).over_allocated


@pytest.mark.parametrize("amount", [0, -5, "abc", None, True, float("nan")])
def test_validate_amount_rejects(amount):
    with pytest.raises(ValidationError):
        validate_amount(amount)


def test_validate_amount_accepts_numeric_strings():
    assert validate_amount("1500.50") == 1500.5
