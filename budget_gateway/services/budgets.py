"""Budget creation and lookup"""

import logging
from typing import Iterable, List, Mapping, Optional

from budget_gateway.domain.budgets import build_sections, total_allocation
from budget_gateway.domain.exceptions import BudgetAlreadyExistsError, BudgetNotFoundError
from budget_gateway.domain.fiscal_year import (
    budget_document_id,
    current_fiscal_year,
    normalize_department,
    validate_fiscal_year,
)
from budget_gateway.domain.models import Actor, Budget, BudgetSection, BudgetStatus, ComponentRequest
from budget_gateway.infrastructure.database.document_store import SERVER_TIMESTAMP, DocumentStore, Transaction
from budget_gateway.infrastructure.database.repositories import BUDGETS, BudgetRepository, component_to_document

logger = logging.getLogger(__name__)


class BudgetService:
    """Creates fiscal-year budgets and reads them back"""

    def __init__(self, store: DocumentStore):
        self.store = store
        self.budgets = BudgetRepository(store)

    def create_budget(
        self,
        department: str,
        actor: Actor,
        fiscal_year: Optional[str] = None,
        components: Optional[Mapping[BudgetSection, Iterable[ComponentRequest]]] = None,
        owner_name: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Budget:
        """
        Create a draft budget for (department, fiscal year).

        Flow:
        1. Validate department and fiscal year (defaults to the current one)
        2. Build all three sections: well-known components plus requested custom ones
        3. Freeze summary.totalBudget as the sum of allocations; spend starts at 0
        4. Insert under the deterministic id "{department}_FY-20{fiscalYear}"

        Raises:
            ValidationError: Bad department, fiscal year or component allocations
            BudgetAlreadyExistsError: The department already has a budget for that year
        """
        department = normalize_department(department)
        fiscal_year = validate_fiscal_year(fiscal_year) if fiscal_year else current_fiscal_year()
        sections = build_sections(components or {})
        budget_id = budget_document_id(department, fiscal_year)

        payload = {
            "title": budget_id,
            "department": department,
            "fiscalYear": fiscal_year,
            "ownerName": owner_name or actor.approver_label,
            "status": BudgetStatus.DRAFT.value,
            "poCounter": 0,
            "summary": {"totalBudget": total_allocation(sections), "totalSpent": 0},
            "notes": notes,
            "createdBy": actor.uid,
            "updatedBy": actor.uid,
            "createdAt": SERVER_TIMESTAMP,
            "lastUpdatedAt": SERVER_TIMESTAMP,
        }
        for section, section_components in sections.items():
            payload[section.value] = {
                key: component_to_document(comp) for key, comp in section_components.items()
            }

        def _create(tx: Transaction) -> None:
            if tx.get(BUDGETS, budget_id) is not None:
                raise BudgetAlreadyExistsError(budget_id)
            tx.set(BUDGETS, budget_id, payload)

        self.store.run_transaction(_create)
        logger.info(
            "Budget created",
            extra={"step": "budget_created", "budget_id": budget_id, "actor": actor.uid},
        )
        return self.get_budget(budget_id)

    def get_budget(self, budget_id: str) -> Budget:
        budget = self.budgets.get(budget_id)
        if budget is None:
            raise BudgetNotFoundError(budget_id)
        return budget

    def list_budgets(self, department: Optional[str] = None) -> List[Budget]:
        if department:
            department = normalize_department(department)
        return self.budgets.list(department)
