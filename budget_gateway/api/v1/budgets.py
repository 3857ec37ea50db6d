"""Budget endpoints: create, list, read, activate, direct PO issuance"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from budget_gateway.api.dependencies import get_actor, get_request_id, get_store, http_error
from budget_gateway.api.v1.schemas import (
    ActivateRequest,
    BudgetCreateRequest,
    BudgetListResponse,
    BudgetResponse,
    DirectIssueRequest,
    PurchaseOrderResponse,
)
from budget_gateway.domain.models import Actor, BudgetSection, ComponentRequest, OrderDraft
from budget_gateway.infrastructure.database.document_store import DocumentStore
from budget_gateway.services.activation import BudgetActivationManager
from budget_gateway.services.budgets import BudgetService
from budget_gateway.services.purchase_orders import PurchaseOrderIssuer

router = APIRouter()


@router.post("/budgets", response_model=BudgetResponse, status_code=201)
def create_budget(
    body: BudgetCreateRequest,
    request: Request,
    store: DocumentStore = Depends(get_store),
    actor: Actor = Depends(get_actor),
):
    """
    Create a draft budget for a department and fiscal year.

    All well-known components are created; custom components are accepted in
    department_expenses and csdd_expenses only.
    """
    components = {
        BudgetSection.FIXED_COSTS: body.fixed_costs,
        BudgetSection.DEPARTMENT_EXPENSES: body.department_expenses,
        BudgetSection.CSDD_EXPENSES: body.csdd_expenses,
    }
    try:
        budget = BudgetService(store).create_budget(
            department=body.department,
            actor=actor,
            fiscal_year=body.fiscal_year,
            components={
                section: [ComponentRequest(key=c.key, allocated=c.allocated, display_name=c.name) for c in allocations]
                for section, allocations in components.items()
            },
            owner_name=body.owner_name,
            notes=body.notes,
        )
    except Exception as e:
        raise http_error(e, get_request_id(request))

    return BudgetResponse.from_domain(budget)


@router.get("/budgets", response_model=BudgetListResponse)
def list_budgets(
    request: Request,
    department: Optional[str] = Query(None, description="Filter by department"),
    store: DocumentStore = Depends(get_store),
):
    """List budgets, newest fiscal year first"""
    try:
        budgets = BudgetService(store).list_budgets(department)
    except Exception as e:
        raise http_error(e, get_request_id(request))

    return BudgetListResponse(budgets=[BudgetResponse.from_domain(b) for b in budgets])


@router.get("/budgets/{budget_id}", response_model=BudgetResponse)
def get_budget(budget_id: str, request: Request, store: DocumentStore = Depends(get_store)):
    try:
        budget = BudgetService(store).get_budget(budget_id)
    except Exception as e:
        raise http_error(e, get_request_id(request))

    return BudgetResponse.from_domain(budget)


@router.post("/budgets/{budget_id}/activate", response_model=BudgetResponse)
def activate_budget(
    budget_id: str,
    body: ActivateRequest,
    request: Request,
    store: DocumentStore = Depends(get_store),
    actor: Actor = Depends(get_actor),
):
    """
    Activate a budget; any other active budget of the department is archived.
    """
    try:
        budget = BudgetActivationManager(store).activate(budget_id, body.department, actor)
    except Exception as e:
        raise http_error(e, get_request_id(request))

    return BudgetResponse.from_domain(budget)


@router.post("/budgets/{budget_id}/purchase-orders", response_model=PurchaseOrderResponse, status_code=201)
def issue_purchase_order_for_budget(
    budget_id: str,
    body: DirectIssueRequest,
    request: Request,
    store: DocumentStore = Depends(get_store),
    actor: Actor = Depends(get_actor),
):
    """
    Issue a purchase order from an intent against this (active) budget.

    Returns:
        The new PO with its number, e.g. "GA/25-26/HR&Admin/07"
    """
    order = OrderDraft(
        intent_id=body.intent_id,
        final_amount=body.final_amount,
        budget_component=body.budget_component,
        details=body.details,
    )
    try:
        po = PurchaseOrderIssuer(store).issue_for_budget(budget_id, body.department, actor, order)
    except Exception as e:
        raise http_error(e, get_request_id(request))

    return PurchaseOrderResponse.from_domain(po)
