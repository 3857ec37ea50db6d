"""Purchase order number formatting"""

from budget_gateway.domain.fiscal_year import department_code


def po_prefix(department: str) -> str:
    return "ICEM" if department.lower() == "dm" else "GA"


def format_po_number(department: str, fiscal_year: str, sequence: int) -> str:
    """
    Build a PO number from the budget's counter value.

    Format: {prefix}/{fiscalYear}/{deptCode}/{sequence}, sequence zero-padded
    to at least two digits.

    Example:
        ("dm", "25-26", 1)   -> "ICEM/25-26/DM/01"
        ("hr", "25-26", 104) -> "GA/25-26/HR&Admin/104"
    """
    return f"{po_prefix(department)}/{fiscal_year}/{department_code(department)}/{sequence:02d}"
