"""Purchase intent submission and lookup"""

import logging
from typing import Any, Dict, List, Optional

from budget_gateway.domain.budgets import validate_amount
from budget_gateway.domain.exceptions import IntentAlreadyConsumedError, IntentNotFoundError, ValidationError
from budget_gateway.domain.fiscal_year import current_fiscal_year, normalize_department, validate_fiscal_year
from budget_gateway.domain.models import Actor, IntentStatus, PurchaseIntent
from budget_gateway.infrastructure.database.document_store import SERVER_TIMESTAMP, DocumentStore, Transaction
from budget_gateway.infrastructure.database.repositories import INTENTS, IntentRepository, intent_from_document

logger = logging.getLogger(__name__)


class PurchaseIntentService:
    def __init__(self, store: DocumentStore):
        self.store = store
        self.intents = IntentRepository(store)

    def submit_intent(
        self,
        department: str,
        budget_component: str,
        amount: float,
        actor: Actor,
        fiscal_year: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> PurchaseIntent:
        """Record a new intent in `submitted` state, routed to the department head"""
        department = normalize_department(department)
        fiscal_year = validate_fiscal_year(fiscal_year) if fiscal_year else current_fiscal_year()
        if not budget_component:
            raise ValidationError("Budget component is required")
        amount = validate_amount(amount)

        intent_id = self.store.new_id()
        payload = {
            **(details or {}),
            "department": department,
            "fiscalYear": fiscal_year,
            "budgetComponent": budget_component,
            "amount": amount,
            "status": IntentStatus.SUBMITTED.value,
            "poCreated": False,
            "currentApprover": "department_head",
            "createdBy": actor.uid,
            "createdAt": SERVER_TIMESTAMP,
        }

        def _submit(tx: Transaction) -> None:
            tx.set(INTENTS, intent_id, payload)

        self.store.run_transaction(_submit)
        logger.info(
            "Purchase intent submitted",
            extra={"step": "intent_submitted", "intent_id": intent_id, "department": department, "actor": actor.uid},
        )
        return self.get_intent(intent_id)

    def get_intent(self, intent_id: str) -> PurchaseIntent:
        intent = self.intents.get(intent_id)
        if intent is None:
            raise IntentNotFoundError(intent_id)
        return intent

    def list_intents(self, department: Optional[str] = None, fiscal_year: Optional[str] = None) -> List[PurchaseIntent]:
        if department:
            department = normalize_department(department)
        if fiscal_year:
            validate_fiscal_year(fiscal_year)
        return self.intents.list(department, fiscal_year)

    def approve_intent(self, intent_id: str, actor: Actor, notes: str = "") -> PurchaseIntent:
        """
        Department-head approval; hands the intent over to purchasing.

        Raises:
            IntentNotFoundError, IntentAlreadyConsumedError,
            ValidationError: The intent was rejected
        """

        def _approve(tx: Transaction) -> None:
            intent = _read_open_intent(tx, intent_id)
            if intent.status == IntentStatus.REJECTED.value:
                raise ValidationError(f"Purchase intent {intent_id!r} was rejected and cannot be approved")
            tx.update(
                INTENTS,
                intent_id,
                {
                    "status": IntentStatus.APPROVED.value,
                    "approvedBy": actor.uid,
                    "approvedAt": SERVER_TIMESTAMP,
                    "approvalNotes": notes or "",
                    "currentApprover": "purchase_department",
                    "updatedAt": SERVER_TIMESTAMP,
                },
            )

        self.store.run_transaction(_approve)
        logger.info(
            "Purchase intent approved",
            extra={"step": "intent_approved", "intent_id": intent_id, "actor": actor.uid},
        )
        return self.get_intent(intent_id)

    def reject_intent(self, intent_id: str, actor: Actor, notes: str = "") -> PurchaseIntent:
        def _reject(tx: Transaction) -> None:
            _read_open_intent(tx, intent_id)
            tx.update(
                INTENTS,
                intent_id,
                {
                    "status": IntentStatus.REJECTED.value,
                    "rejectedBy": actor.uid,
                    "rejectedAt": SERVER_TIMESTAMP,
                    "rejectionNotes": notes or "",
                    "currentApprover": None,
                    "updatedAt": SERVER_TIMESTAMP,
                },
            )

        self.store.run_transaction(_reject)
        logger.info(
            "Purchase intent rejected",
            extra={"step": "intent_rejected", "intent_id": intent_id, "actor": actor.uid},
        )
        return self.get_intent(intent_id)

    def delete_intent(self, intent_id: str, actor: Actor) -> None:
        """Remove an intent that has not been turned into a purchase order"""

        def _delete(tx: Transaction) -> None:
            _read_open_intent(tx, intent_id)
            tx.delete(INTENTS, intent_id)

        self.store.run_transaction(_delete)
        logger.info(
            "Purchase intent deleted",
            extra={"step": "intent_deleted", "intent_id": intent_id, "actor": actor.uid},
        )


def _read_open_intent(tx: Transaction, intent_id: str) -> PurchaseIntent:
    if not intent_id:
        raise ValidationError("No intent ID provided")
    doc = tx.get(INTENTS, intent_id)
    if doc is None:
        raise IntentNotFoundError(intent_id)
    intent = intent_from_document(doc)
    if intent.po_created:
        raise IntentAlreadyConsumedError(intent_id, intent.po_number)
    return intent
