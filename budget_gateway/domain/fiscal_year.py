"""Fiscal year calendar and department codes.

Fiscal years run April to March and are written as two-digit year pairs,
e.g. "25-26" for 1 April 2025 - 31 March 2026.
"""

import re
from datetime import date, datetime
from typing import Tuple

from budget_gateway.config import settings
from budget_gateway.domain.exceptions import ValidationError
from budget_gateway.utils.date_utils import fiscal_year_range, fiscal_year_start_year

FISCAL_YEAR_PATTERN = re.compile(r"^(\d{2})-(\d{2})$")

DEPARTMENT_CODES = {
    "lnd": "T",
    "dm": "DM",
    "sales": "Sales",
    "cr": "CR",
    "hr": "HR&Admin",
    "admin": "MAN",
    "management": "MAN",
    "placement": "CR",
}


def format_fiscal_year(start_year: int) -> str:
    return f"{start_year % 100:02d}-{(start_year + 1) % 100:02d}"


def current_fiscal_year(now: date | datetime | None = None) -> str:
    """
    Fiscal year label for a calendar date (defaults to today).

    Example:
        2025-03-15 -> "24-25"
        2025-04-01 -> "25-26"
    """
    if now is None:
        now = date.today()
    return format_fiscal_year(fiscal_year_start_year(now, settings.fiscal_year_start_month))


def validate_fiscal_year(token: str) -> str:
    """Return the token unchanged if it is a well-formed "YY-YY" pair"""
    match = FISCAL_YEAR_PATTERN.match(token or "")
    if not match:
        raise ValidationError(f"Malformed fiscal year {token!r}, expected 'YY-YY'")
    first, second = int(match.group(1)), int(match.group(2))
    if second != (first + 1) % 100:
        raise ValidationError(f"Malformed fiscal year {token!r}, years must be consecutive")
    return token


def fiscal_year_bounds(token: str) -> Tuple[date, date]:
    """First and last calendar day covered by a fiscal year token"""
    validate_fiscal_year(token)
    start_year = 2000 + int(token[:2])
    return fiscal_year_range(start_year, settings.fiscal_year_start_month)


def normalize_department(department: str | None) -> str:
    if department is None or not department.strip():
        raise ValidationError("Department is required")
    return department.strip().lower()


def department_code(department: str) -> str:
    """Short code used in PO numbers; unknown departments fall back to upper case"""
    return DEPARTMENT_CODES.get(department.lower(), department.upper())


def budget_document_id(department: str, fiscal_year: str) -> str:
    return f"{department}_FY-20{fiscal_year}"
