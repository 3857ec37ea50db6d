"""Budget activation - at most one active budget per department"""

from typing import List

from budget_gateway.domain.exceptions import BudgetNotFoundError, InvariantViolation
from budget_gateway.domain.fiscal_year import normalize_department
from budget_gateway.domain.models import Actor, Budget, BudgetStatus
from budget_gateway.infrastructure.database.document_store import SERVER_TIMESTAMP, DocumentStore, Transaction
from budget_gateway.infrastructure.database.repositories import BUDGETS, BudgetRepository
from budget_gateway.infrastructure.observability.logging import log_budget_activated, log_invariant_violation
from budget_gateway.infrastructure.observability.metrics import (
    budget_activation_counter,
    budget_archived_counter,
    invariant_violation_counter,
)


class BudgetActivationManager:
    """Activates one budget and archives its active siblings in the same transaction"""

    def __init__(self, store: DocumentStore):
        self.store = store
        self.budgets = BudgetRepository(store)

    def activate(self, budget_id: str, department: str, actor: Actor) -> Budget:
        """
        Make `budget_id` the department's only active budget.

        The department's budgets are read and rewritten in one transaction.
        Every budget read is version-checked at commit, so two activations
        racing on the same department serialize instead of leaving zero or
        two budgets active.

        Raises:
            ValidationError: Missing department
            BudgetNotFoundError: `budget_id` is not one of the department's budgets
        """
        department = normalize_department(department)

        def _activate(tx: Transaction) -> tuple[List[str], List[str]]:
            siblings = tx.query(BUDGETS, [("department", "==", department)])
            if not any(doc.id == budget_id for doc in siblings):
                raise BudgetNotFoundError(budget_id)

            already_active = [doc.id for doc in siblings if doc.get("status") == BudgetStatus.ACTIVE.value]
            to_archive = [doc_id for doc_id in already_active if doc_id != budget_id]

            stamp = {"updatedBy": actor.uid, "lastUpdatedAt": SERVER_TIMESTAMP}
            tx.update(BUDGETS, budget_id, {"status": BudgetStatus.ACTIVE.value, **stamp})
            for sibling_id in to_archive:
                tx.update(BUDGETS, sibling_id, {"status": BudgetStatus.ARCHIVED.value, **stamp})
            return already_active, to_archive

        already_active, archived = self.store.run_transaction(_activate)

        if len(already_active) > 1:
            # Pre-existing breakage; repaired by this activation but reported
            violation = InvariantViolation(
                "multiple_active_budgets",
                f"Department {department!r} had {len(already_active)} active budgets before activation",
            )
            invariant_violation_counter.labels(kind=violation.kind).inc()
            log_invariant_violation(
                violation,
                department=department,
                budget_ids=already_active,
            )

        budget_activation_counter.inc()
        budget_archived_counter.inc(len(archived))
        log_budget_activated(budget_id, department, archived, actor.uid)

        return self.budgets.get(budget_id)
