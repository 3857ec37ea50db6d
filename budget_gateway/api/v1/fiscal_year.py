"""GET /v1/fiscal-year/current"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Query

from budget_gateway.api.v1.schemas import FiscalYearResponse
from budget_gateway.domain.fiscal_year import current_fiscal_year, fiscal_year_bounds

router = APIRouter()


@router.get("/fiscal-year/current", response_model=FiscalYearResponse)
def get_current_fiscal_year(on: Optional[date] = Query(None, description="Date to evaluate; defaults to today")):
    fiscal_year = current_fiscal_year(on)
    start, end = fiscal_year_bounds(fiscal_year)
    return FiscalYearResponse(fiscal_year=fiscal_year, start_date=start, end_date=end)
