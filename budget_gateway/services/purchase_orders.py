"""Purchase order issuance - the atomic intent -> PO -> budget spend transition"""

from typing import Callable, List

from budget_gateway.domain.budgets import locate_component, validate_amount
from budget_gateway.domain.exceptions import (
    BudgetNotFoundError,
    DomainException,
    IntentAlreadyConsumedError,
    IntentNotFoundError,
    InvariantViolation,
    NoActiveBudgetError,
    ValidationError,
)
from budget_gateway.domain.fiscal_year import normalize_department
from budget_gateway.domain.models import (
    Actor,
    Budget,
    BudgetStatus,
    IntentStatus,
    OrderDraft,
    PurchaseIntent,
    PurchaseOrder,
)
from budget_gateway.domain.po_numbering import format_po_number
from budget_gateway.infrastructure.database.document_store import (
    SERVER_TIMESTAMP,
    DocumentStore,
    Increment,
    Transaction,
)
from budget_gateway.infrastructure.database.repositories import (
    BUDGETS,
    INTENTS,
    ORDERS,
    BudgetRepository,
    PurchaseOrderRepository,
    budget_from_document,
    intent_from_document,
)
from budget_gateway.infrastructure.observability.logging import log_invariant_violation, log_po_issued
from budget_gateway.infrastructure.observability.metrics import (
    invariant_violation_counter,
    record_po_issued,
    record_po_rejection,
)


class PurchaseOrderIssuer:
    """
    Converts an approved purchase intent into a numbered purchase order.

    Each issuance is one store transaction that:
    1. allocates the next PO number from the budget's poCounter
    2. creates the purchase order (status "approved")
    3. marks the intent approved with poCreated=True
    4. increments poCounter, summary.totalSpent and the component's spent

    Either all four writes commit or none do. The intent and budget are read
    inside the transaction, so a concurrent issuance touching either one
    forces a retry, and the retry sees the intent already consumed.
    """

    def __init__(self, store: DocumentStore):
        self.store = store
        self.budgets = BudgetRepository(store)
        self.orders = PurchaseOrderRepository(store)

    def issue_from_intent(self, intent_id: str, actor: Actor, order: OrderDraft | None = None) -> PurchaseOrder:
        """
        Issue a PO against the intent department's unique active budget.

        Raises:
            IntentNotFoundError, IntentAlreadyConsumedError, NoActiveBudgetError,
            ComponentNotFoundError, ValidationError, TransactionConflictError
        """
        order = order or OrderDraft(intent_id=intent_id)
        if not intent_id:
            raise ValidationError("No intent ID provided")

        def _issue(tx: Transaction) -> PurchaseOrder:
            intent = self._read_intent(tx, intent_id)
            if not intent.department:
                raise ValidationError(f"No department found in purchase intent {intent_id!r}")
            department = normalize_department(intent.department)

            budget_id = self._resolve_active_budget_id(department)
            budget = self._read_budget(tx, budget_id)
            if budget.status != BudgetStatus.ACTIVE:
                # Deactivated between the candidate query and the transactional read
                raise NoActiveBudgetError(department)

            return self._post(tx, budget, intent, order, actor)

        return self._run(_issue)

    def issue_for_budget(self, budget_id: str, department: str, actor: Actor, order: OrderDraft) -> PurchaseOrder:
        """
        Issue a PO against a budget the caller already holds.

        Raises:
            BudgetNotFoundError, NoActiveBudgetError, IntentNotFoundError,
            IntentAlreadyConsumedError, ComponentNotFoundError, ValidationError,
            TransactionConflictError
        """
        department = normalize_department(department)
        if not budget_id:
            raise NoActiveBudgetError(department)

        def _issue(tx: Transaction) -> PurchaseOrder:
            intent = self._read_intent(tx, order.intent_id)
            budget = self._read_budget(tx, budget_id)
            if budget.department != department:
                raise ValidationError(
                    f"Budget {budget_id!r} belongs to {budget.department!r}, not {department!r}"
                )
            if budget.status != BudgetStatus.ACTIVE:
                raise NoActiveBudgetError(department)
            return self._post(tx, budget, intent, order, actor)

        return self._run(_issue)

    def _resolve_active_budget_id(self, department: str) -> str:
        candidates = self.budgets.find_active(department)
        if not candidates:
            raise NoActiveBudgetError(department)
        if len(candidates) > 1:
            ids = [b.id for b in candidates]
            violation = InvariantViolation(
                "multiple_active_budgets",
                f"Department {department!r} has {len(ids)} active budgets; using {ids[0]!r}",
            )
            invariant_violation_counter.labels(kind=violation.kind).inc()
            log_invariant_violation(
                violation,
                department=department,
                budget_ids=ids,
            )
        # Candidates are ordered latest fiscal year first
        return candidates[0].id

    @staticmethod
    def _read_intent(tx: Transaction, intent_id: str) -> PurchaseIntent:
        if not intent_id:
            raise ValidationError("No intent ID provided")
        doc = tx.get(INTENTS, intent_id)
        if doc is None:
            raise IntentNotFoundError(intent_id)
        intent = intent_from_document(doc)
        if intent.po_created:
            raise IntentAlreadyConsumedError(intent_id, intent.po_number)
        if intent.status == IntentStatus.REJECTED.value:
            raise ValidationError(f"Purchase intent {intent_id!r} was rejected")
        return intent

    @staticmethod
    def _read_budget(tx: Transaction, budget_id: str) -> Budget:
        doc = tx.get(BUDGETS, budget_id)
        if doc is None:
            raise BudgetNotFoundError(budget_id)
        return budget_from_document(doc)

    def _post(
        self,
        tx: Transaction,
        budget: Budget,
        intent: PurchaseIntent,
        order: OrderDraft,
        actor: Actor,
    ) -> PurchaseOrder:
        component = locate_component(budget, order.budget_component or intent.budget_component)
        raw_amount = order.final_amount if order.final_amount is not None else intent.amount
        amount = validate_amount(raw_amount, "finalAmount")

        # Unique per budget: poCounter is read and incremented in this transaction
        po_number = format_po_number(budget.department, budget.fiscal_year, budget.po_counter + 1)
        po_id = self.store.new_id()

        tx.set(
            ORDERS,
            po_id,
            {
                **order.details,
                "department": budget.department,
                "fiscalYear": budget.fiscal_year,
                "poNumber": po_number,
                "status": "approved",
                "totalCost": amount,
                "intentId": intent.id,
                "budgetId": budget.id,
                "budgetSection": component.section.value,
                "budgetComponent": component.key,
                "purchaseDeptApproved": True,
                "approvedBy": actor.approver_label,
                "approvedAt": SERVER_TIMESTAMP,
                "createdBy": actor.uid,
                "createdAt": SERVER_TIMESTAMP,
            },
        )
        tx.update(
            INTENTS,
            intent.id,
            {
                "status": IntentStatus.APPROVED.value,
                "approvedAt": SERVER_TIMESTAMP,
                "approvedBy": actor.uid,
                "poCreated": True,
                "poNumber": po_number,
                "updatedAt": SERVER_TIMESTAMP,
            },
        )
        tx.update(
            BUDGETS,
            budget.id,
            {
                "poCounter": Increment(1),
                "summary.totalSpent": Increment(amount),
                f"{component.section.value}.{component.key}.spent": Increment(amount),
                "lastUpdatedAt": SERVER_TIMESTAMP,
                "updatedBy": actor.uid,
            },
        )

        return PurchaseOrder(
            id=po_id,
            department=budget.department,
            fiscal_year=budget.fiscal_year,
            po_number=po_number,
            status="approved",
            total_cost=amount,
            intent_id=intent.id,
            budget_id=budget.id,
            budget_section=component.section.value,
            budget_component=component.key,
            approved_by=actor.approver_label,
            created_by=actor.uid,
            details=dict(order.details),
        )

    def _run(self, fn: Callable[[Transaction], PurchaseOrder]) -> PurchaseOrder:
        try:
            po = self.store.run_transaction(fn)
        except DomainException as e:
            record_po_rejection(e)
            raise

        record_po_issued(po.department, po.total_cost)
        log_po_issued(po.po_number, po.intent_id, po.budget_id, po.budget_component, po.total_cost, po.created_by)
        return po

    def orders_for_intent(self, intent_id: str) -> List[PurchaseOrder]:
        return self.orders.list_for_intent(intent_id)
