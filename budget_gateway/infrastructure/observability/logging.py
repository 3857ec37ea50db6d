"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime
from typing import Any, Dict, List
from pythonjsonlogger import jsonlogger

from budget_gateway.config import settings
from budget_gateway.domain.exceptions import InvariantViolation


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.utcnow().isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_po_issued(
    po_number: str,
    intent_id: str,
    budget_id: str,
    component: str,
    amount: float,
    actor: str,
) -> None:
    """Log structured PO issuance for audit trails"""
    logging.getLogger("budget_gateway.purchase_orders").info(
        "Purchase order issued",
        extra={
            "step": "po_issued",
            "po_number": po_number,
            "intent_id": intent_id,
            "budget_id": budget_id,
            "budget_component": component,
            "amount": amount,
            "actor": actor,
        },
    )


def log_budget_activated(budget_id: str, department: str, archived: List[str], actor: str) -> None:
    logging.getLogger("budget_gateway.activation").info(
        "Budget activated",
        extra={
            "step": "budget_activated",
            "budget_id": budget_id,
            "department": department,
            "archived_budget_ids": archived,
            "actor": actor,
        },
    )


def log_bulk_expense_skipped(department: str, budget_id: str, amount: float, expense_type: str) -> None:
    """Entries for departments without a budget document are dropped, never silently"""
    logging.getLogger("budget_gateway.expenses").warning(
        "Bulk expense entry skipped: no budget document",
        extra={
            "step": "bulk_expense_skipped",
            "department": department,
            "budget_id": budget_id,
            "amount": amount,
            "expense_type": expense_type,
        },
    )


def log_bulk_expenses_posted(fiscal_year: str, section: str, expense_type: str, posted: List[str], skipped: List[str], actor: str) -> None:
    logging.getLogger("budget_gateway.expenses").info(
        "Bulk expenses posted",
        extra={
            "step": "bulk_expenses_posted",
            "fiscal_year": fiscal_year,
            "expense_section": section,
            "expense_type": expense_type,
            "posted_budget_ids": posted,
            "skipped_departments": skipped,
            "actor": actor,
        },
    )


def log_invariant_violation(violation: InvariantViolation, **context: Any) -> None:
    logging.getLogger("budget_gateway.invariants").error(
        str(violation),
        extra={"step": "invariant_violation", "kind": violation.kind, **context},
    )
