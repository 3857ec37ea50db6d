"""Purchase intent endpoints"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response

from budget_gateway.api.dependencies import get_actor, get_request_id, get_store, http_error
from budget_gateway.api.v1.schemas import IntentCreateRequest, IntentDecisionRequest, IntentListResponse, IntentResponse
from budget_gateway.domain.models import Actor
from budget_gateway.infrastructure.database.document_store import DocumentStore
from budget_gateway.services.intents import PurchaseIntentService

router = APIRouter()


@router.post("/intents", response_model=IntentResponse, status_code=201)
def submit_intent(
    body: IntentCreateRequest,
    request: Request,
    store: DocumentStore = Depends(get_store),
    actor: Actor = Depends(get_actor),
):
    """Submit a purchase intent for department-head approval"""
    try:
        intent = PurchaseIntentService(store).submit_intent(
            department=body.department,
            budget_component=body.budget_component,
            amount=body.amount,
            actor=actor,
            fiscal_year=body.fiscal_year,
            details=body.details,
        )
    except Exception as e:
        raise http_error(e, get_request_id(request))

    return IntentResponse.from_domain(intent)


@router.get("/intents", response_model=IntentListResponse)
def list_intents(
    request: Request,
    department: Optional[str] = Query(None),
    fiscal_year: Optional[str] = Query(None),
    store: DocumentStore = Depends(get_store),
):
    try:
        intents = PurchaseIntentService(store).list_intents(department, fiscal_year)
    except Exception as e:
        raise http_error(e, get_request_id(request))

    return IntentListResponse(intents=[IntentResponse.from_domain(i) for i in intents])


@router.get("/intents/{intent_id}", response_model=IntentResponse)
def get_intent(intent_id: str, request: Request, store: DocumentStore = Depends(get_store)):
    try:
        intent = PurchaseIntentService(store).get_intent(intent_id)
    except Exception as e:
        raise http_error(e, get_request_id(request))

    return IntentResponse.from_domain(intent)


@router.post("/intents/{intent_id}/approve", response_model=IntentResponse)
def approve_intent(
    intent_id: str,
    body: IntentDecisionRequest,
    request: Request,
    store: DocumentStore = Depends(get_store),
    actor: Actor = Depends(get_actor),
):
    """Department-head approval; the intent moves on to the purchase department"""
    try:
        intent = PurchaseIntentService(store).approve_intent(intent_id, actor, body.notes)
    except Exception as e:
        raise http_error(e, get_request_id(request))

    return IntentResponse.from_domain(intent)


@router.post("/intents/{intent_id}/reject", response_model=IntentResponse)
def reject_intent(
    intent_id: str,
    body: IntentDecisionRequest,
    request: Request,
    store: DocumentStore = Depends(get_store),
    actor: Actor = Depends(get_actor),
):
    try:
        intent = PurchaseIntentService(store).reject_intent(intent_id, actor, body.notes)
    except Exception as e:
        raise http_error(e, get_request_id(request))

    return IntentResponse.from_domain(intent)


@router.delete("/intents/{intent_id}", status_code=204)
def delete_intent(
    intent_id: str,
    request: Request,
    store: DocumentStore = Depends(get_store),
    actor: Actor = Depends(get_actor),
):
    """Delete an intent; intents that already have a purchase order are kept"""
    try:
        PurchaseIntentService(store).delete_intent(intent_id, actor)
    except Exception as e:
        raise http_error(e, get_request_id(request))

    return Response(status_code=204)
