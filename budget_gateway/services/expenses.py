"""Bulk expense posting across department budgets"""

import math
from typing import Iterable, List, Tuple

from budget_gateway.domain.exceptions import ValidationError
from budget_gateway.domain.fiscal_year import budget_document_id, normalize_department, validate_fiscal_year
from budget_gateway.domain.models import Actor, BudgetSection, BulkExpenseEntry, BulkPostResult
from budget_gateway.infrastructure.database.document_store import SERVER_TIMESTAMP, DocumentStore, Increment, Transaction
from budget_gateway.infrastructure.database.repositories import BUDGETS
from budget_gateway.infrastructure.observability.logging import log_bulk_expense_skipped, log_bulk_expenses_posted
from budget_gateway.infrastructure.observability.metrics import (
    bulk_expense_posted_counter,
    bulk_expense_skipped_counter,
)

POSTABLE_SECTIONS = (BudgetSection.FIXED_COSTS, BudgetSection.DEPARTMENT_EXPENSES)


class BulkExpensePoster:
    """Posts one expense type to many department budgets in a single transaction"""

    def __init__(self, store: DocumentStore):
        self.store = store

    def post_bulk(
        self,
        entries: Iterable[BulkExpenseEntry],
        fiscal_year: str,
        expense_section: str,
        expense_type: str,
        actor: Actor,
    ) -> BulkPostResult:
        """
        Increment `<section>.<expense_type>.spent` and summary.totalSpent per entry.

        Requirements:
        - Entries with a non-positive (or non-numeric) amount are ignored
        - Every budget is read before anything is written
        - Departments without a budget document for the year are skipped with
          a warning and listed in the result, never raised
        - Several entries for one department accumulate

        Raises:
            ValidationError: Bad fiscal year, section or expense type
        """
        fiscal_year = validate_fiscal_year(fiscal_year)
        section = _postable_section(expense_section)
        if not expense_type or "." in expense_type:
            raise ValidationError(f"Invalid expense type {expense_type!r}")

        prepared: List[Tuple[str, str, float]] = []
        for entry in entries:
            amount = _entry_amount(entry.amount)
            if amount <= 0:
                continue
            department = normalize_department(entry.department)
            prepared.append((department, budget_document_id(department, fiscal_year), amount))

        def _post(tx: Transaction) -> Tuple[BulkPostResult, List[Tuple[str, str, float]]]:
            result = BulkPostResult()
            missing = []
            found = []

            # Read phase
            for department, budget_id, amount in prepared:
                if tx.get(BUDGETS, budget_id) is None:
                    missing.append((department, budget_id, amount))
                    if department not in result.skipped:
                        result.skipped.append(department)
                else:
                    found.append((budget_id, amount))

            # Write phase
            for budget_id, amount in found:
                tx.update(
                    BUDGETS,
                    budget_id,
                    {
                        f"{section.value}.{expense_type}.spent": Increment(amount),
                        "summary.totalSpent": Increment(amount),
                        "lastUpdatedAt": SERVER_TIMESTAMP,
                        "updatedBy": actor.uid,
                    },
                )
                if budget_id not in result.posted:
                    result.posted.append(budget_id)
            return result, missing

        result, missing = self.store.run_transaction(_post)

        for department, budget_id, amount in missing:
            bulk_expense_skipped_counter.inc()
            log_bulk_expense_skipped(department, budget_id, amount, expense_type)
        bulk_expense_posted_counter.inc(len(prepared) - len(missing))
        log_bulk_expenses_posted(fiscal_year, section.value, expense_type, result.posted, result.skipped, actor.uid)

        return result


def _postable_section(expense_section: str) -> BudgetSection:
    for section in POSTABLE_SECTIONS:
        if expense_section == section.value:
            return section
    allowed = ", ".join(s.value for s in POSTABLE_SECTIONS)
    raise ValidationError(f"Expense section must be one of {allowed}, got {expense_section!r}")


def _entry_amount(value) -> float:
    # Unparseable amounts count as zero and are ignored
    if isinstance(value, bool):
        return 0
    try:
        amount = value if isinstance(value, (int, float)) else float(value)
    except (TypeError, ValueError):
        return 0
    return amount if math.isfinite(amount) else 0
