"""POST /v1/purchase-orders - issue a PO from an intent; GET lists issued POs"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from budget_gateway.api.dependencies import get_actor, get_request_id, get_store, http_error
from budget_gateway.api.v1.schemas import IssueRequest, PurchaseOrderListResponse, PurchaseOrderResponse
from budget_gateway.domain.fiscal_year import normalize_department, validate_fiscal_year
from budget_gateway.domain.models import Actor, OrderDraft
from budget_gateway.infrastructure.database.document_store import DocumentStore
from budget_gateway.infrastructure.database.repositories import PurchaseOrderRepository
from budget_gateway.services.purchase_orders import PurchaseOrderIssuer

router = APIRouter()


@router.post("/purchase-orders", response_model=PurchaseOrderResponse, status_code=201)
def issue_purchase_order(
    body: IssueRequest,
    request: Request,
    store: DocumentStore = Depends(get_store),
    actor: Actor = Depends(get_actor),
):
    """
    Issue a purchase order for an intent.

    Flow:
    1. Load the intent and find its department's active budget
    2. Locate the budget component (intent's, or the override)
    3. Allocate the next PO number from the budget counter
    4. Create the PO, approve the intent and post the spend atomically
    """
    order = OrderDraft(
        intent_id=body.intent_id,
        final_amount=body.final_amount,
        budget_component=body.budget_component,
        details=body.details,
    )
    try:
        po = PurchaseOrderIssuer(store).issue_from_intent(body.intent_id, actor, order)
    except Exception as e:
        raise http_error(e, get_request_id(request))

    return PurchaseOrderResponse.from_domain(po)


@router.get("/purchase-orders", response_model=PurchaseOrderListResponse)
def list_purchase_orders(
    request: Request,
    department: Optional[str] = Query(None),
    fiscal_year: Optional[str] = Query(None),
    intent_id: Optional[str] = Query(None, description="Only orders issued from this intent"),
    store: DocumentStore = Depends(get_store),
):
    """List purchase orders, newest first"""
    try:
        if intent_id:
            orders = PurchaseOrderIssuer(store).orders_for_intent(intent_id)
            return PurchaseOrderListResponse(orders=[PurchaseOrderResponse.from_domain(o) for o in orders])
        if department:
            department = normalize_department(department)
        if fiscal_year:
            validate_fiscal_year(fiscal_year)
        orders = PurchaseOrderRepository(store).list(department, fiscal_year)
    except Exception as e:
        raise http_error(e, get_request_id(request))

    return PurchaseOrderListResponse(orders=[PurchaseOrderResponse.from_domain(o) for o in orders])
