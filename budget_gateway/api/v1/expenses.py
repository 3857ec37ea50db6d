"""POST /v1/expenses/bulk - post one expense type across department budgets"""

from fastapi import APIRouter, Depends, Request

from budget_gateway.api.dependencies import get_actor, get_request_id, get_store, http_error
from budget_gateway.api.v1.schemas import BulkExpenseRequest, BulkExpenseResponse
from budget_gateway.domain.models import Actor, BulkExpenseEntry
from budget_gateway.infrastructure.database.document_store import DocumentStore
from budget_gateway.services.expenses import BulkExpensePoster

router = APIRouter()


@router.post("/expenses/bulk", response_model=BulkExpenseResponse)
def post_bulk_expenses(
    body: BulkExpenseRequest,
    request: Request,
    store: DocumentStore = Depends(get_store),
    actor: Actor = Depends(get_actor),
):
    """
    Record an expense (e.g. the month's electricity bill) against many budgets.

    Returns:
        Budget ids that were posted and departments skipped for lack of a budget
    """
    try:
        result = BulkExpensePoster(store).post_bulk(
            entries=[BulkExpenseEntry(department=e.department, amount=e.amount) for e in body.entries],
            fiscal_year=body.fiscal_year,
            expense_section=body.expense_section,
            expense_type=body.expense_type,
            actor=actor,
        )
    except Exception as e:
        raise http_error(e, get_request_id(request))

    return BulkExpenseResponse(posted=result.posted, skipped=result.skipped)
