"""Data access layer: budget, intent and purchase order documents"""

from typing import Any, Dict, List, Optional

from budget_gateway.domain.exceptions import InvariantViolation
from budget_gateway.domain.models import (
    Budget,
    BudgetComponent,
    BudgetSection,
    BudgetStatus,
    PurchaseIntent,
    PurchaseOrder,
)
from budget_gateway.infrastructure.database.document_store import Document, DocumentStore
from budget_gateway.infrastructure.observability.logging import log_invariant_violation
from budget_gateway.infrastructure.observability.metrics import invariant_violation_counter

BUDGETS = "department_budgets"
INTENTS = "purchase_intents"
ORDERS = "purchase_orders"

# Fields the core owns on each document; everything else is free-form detail
_INTENT_FIELDS = {
    "department", "fiscalYear", "budgetComponent", "status", "amount", "poCreated",
    "poNumber", "createdBy", "createdAt", "approvedBy", "approvedAt", "updatedAt",
}
_ORDER_FIELDS = {
    "department", "fiscalYear", "poNumber", "status", "totalCost", "intentId", "budgetId",
    "budgetSection", "budgetComponent", "approvedBy", "approvedAt", "createdBy", "createdAt",
    "purchaseDeptApproved",
}


def budget_from_document(doc: Document) -> Budget:
    data = doc.data
    sections: Dict[BudgetSection, Dict[str, BudgetComponent]] = {}
    for section in BudgetSection:
        components = {}
        for key, raw in (data.get(section.value) or {}).items():
            raw = raw if isinstance(raw, dict) else {}
            components[key] = BudgetComponent(
                key=key,
                section=section,
                allocated=raw.get("allocated") or 0,
                spent=raw.get("spent") or 0,
                display_name=raw.get("name"),
            )
        sections[section] = components

    summary = data.get("summary") or {}
    return Budget(
        id=doc.id,
        department=data.get("department"),
        fiscal_year=data.get("fiscalYear"),
        status=_budget_status(doc),
        sections=sections,
        po_counter=data.get("poCounter") or 0,
        total_budget=summary.get("totalBudget") or 0,
        total_spent=summary.get("totalSpent") or 0,
        owner_name=data.get("ownerName"),
        title=data.get("title"),
        notes=data.get("notes"),
        created_by=data.get("createdBy"),
        updated_by=data.get("updatedBy"),
        created_at=data.get("createdAt"),
        last_updated_at=data.get("lastUpdatedAt"),
    )


def _budget_status(doc: Document) -> BudgetStatus:
    raw = doc.data.get("status", BudgetStatus.DRAFT.value)
    try:
        return BudgetStatus(raw)
    except ValueError:
        violation = InvariantViolation("unknown_budget_status", f"Budget {doc.id!r} has unknown status {raw!r}")
        invariant_violation_counter.labels(kind=violation.kind).inc()
        log_invariant_violation(violation, budget_id=doc.id, status=raw)
        raise violation from None


def component_to_document(component: BudgetComponent) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"allocated": component.allocated, "spent": component.spent}
    if component.is_custom:
        payload["name"] = component.display_name or component.key
        payload["custom"] = True
    return payload


def intent_from_document(doc: Document) -> PurchaseIntent:
    data = doc.data
    return PurchaseIntent(
        id=doc.id,
        department=data.get("department"),
        fiscal_year=data.get("fiscalYear"),
        budget_component=data.get("budgetComponent"),
        status=data.get("status", "submitted"),
        amount=data.get("amount"),
        po_created=bool(data.get("poCreated", False)),
        po_number=data.get("poNumber"),
        created_by=data.get("createdBy"),
        approved_by=data.get("approvedBy"),
        details={k: v for k, v in data.items() if k not in _INTENT_FIELDS},
    )


def order_from_document(doc: Document) -> PurchaseOrder:
    data = doc.data
    return PurchaseOrder(
        id=doc.id,
        department=data.get("department"),
        fiscal_year=data.get("fiscalYear"),
        po_number=data.get("poNumber"),
        status=data.get("status"),
        total_cost=data.get("totalCost") or 0,
        intent_id=data.get("intentId"),
        budget_id=data.get("budgetId"),
        budget_section=data.get("budgetSection"),
        budget_component=data.get("budgetComponent"),
        approved_by=data.get("approvedBy"),
        created_by=data.get("createdBy"),
        created_at=data.get("createdAt"),
        details={k: v for k, v in data.items() if k not in _ORDER_FIELDS},
    )


class BudgetRepository:
    """Repository for department budget documents"""

    def __init__(self, store: DocumentStore):
        self.store = store

    def get(self, budget_id: str) -> Optional[Budget]:
        doc = self.store.get(BUDGETS, budget_id)
        return budget_from_document(doc) if doc else None

    def list(self, department: str | None = None) -> List[Budget]:
        """Budgets newest fiscal year first, optionally for one department"""
        filters = [("department", "==", department)] if department else []
        docs = self.store.query(BUDGETS, filters, order_by=[("fiscalYear", "desc")])
        return [budget_from_document(d) for d in docs]

    def find_active(self, department: str) -> List[Budget]:
        """Active budget candidates for a department, latest fiscal year first"""
        docs = self.store.query(
            BUDGETS,
            [("department", "==", department), ("status", "==", BudgetStatus.ACTIVE.value)],
            order_by=[("fiscalYear", "desc")],
        )
        return [budget_from_document(d) for d in docs]


class IntentRepository:
    """Repository for purchase intent documents"""

    def __init__(self, store: DocumentStore):
        self.store = store

    def get(self, intent_id: str) -> Optional[PurchaseIntent]:
        doc = self.store.get(INTENTS, intent_id)
        return intent_from_document(doc) if doc else None

    def list(self, department: str | None = None, fiscal_year: str | None = None) -> List[PurchaseIntent]:
        filters = []
        if department:
            filters.append(("department", "==", department))
        if fiscal_year:
            filters.append(("fiscalYear", "==", fiscal_year))
        docs = self.store.query(INTENTS, filters, order_by=[("createdAt", "desc")])
        return [intent_from_document(d) for d in docs]


class PurchaseOrderRepository:
    """Repository for purchase order documents"""

    def __init__(self, store: DocumentStore):
        self.store = store

    def get(self, order_id: str) -> Optional[PurchaseOrder]:
        doc = self.store.get(ORDERS, order_id)
        return order_from_document(doc) if doc else None

    def list(self, department: str | None = None, fiscal_year: str | None = None) -> List[PurchaseOrder]:
        filters = []
        if department:
            filters.append(("department", "==", department))
        if fiscal_year:
            filters.append(("fiscalYear", "==", fiscal_year))
        docs = self.store.query(ORDERS, filters, order_by=[("createdAt", "desc")])
        return [order_from_document(d) for d in docs]

    def list_for_intent(self, intent_id: str) -> List[PurchaseOrder]:
        docs = self.store.query(ORDERS, [("intentId", "==", intent_id)])
        return [order_from_document(d) for d in docs]
