"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ValidationError(DomainException):
    """Input is missing or malformed (department, fiscal year, amount, section)"""

    pass


class NotFoundError(DomainException):
    """A referenced budget, intent or component does not exist"""

    pass


class BudgetNotFoundError(NotFoundError):
    def __init__(self, budget_id: str):
        self.budget_id = budget_id
        super().__init__(f"Budget document {budget_id!r} not found")


class IntentNotFoundError(NotFoundError):
    def __init__(self, intent_id: str):
        self.intent_id = intent_id
        super().__init__(f"Purchase intent {intent_id!r} not found")


class ComponentNotFoundError(NotFoundError):
    def __init__(self, component_key: str, budget_id: str | None = None):
        self.component_key = component_key
        self.budget_id = budget_id
        where = f" in budget {budget_id!r}" if budget_id else ""
        super().__init__(f"Budget component {component_key!r} not found{where}")


class NoActiveBudgetError(NotFoundError):
    def __init__(self, department: str):
        self.department = department
        super().__init__(f"No active budget found for {department!r}")


class ConflictError(DomainException):
    """The requested change collides with the current state of the store"""

    pass


class TransactionConflictError(ConflictError):
    """Store transaction kept conflicting after all retries"""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"Transaction aborted after {attempts} conflicting attempts")


class IntentAlreadyConsumedError(ConflictError):
    def __init__(self, intent_id: str, po_number: str | None = None):
        self.intent_id = intent_id
        self.po_number = po_number
        suffix = f" (PO {po_number})" if po_number else ""
        super().__init__(f"Purchase intent {intent_id!r} already has a purchase order{suffix}")


class BudgetAlreadyExistsError(ConflictError):
    def __init__(self, budget_id: str):
        self.budget_id = budget_id
        super().__init__(f"Budget {budget_id!r} already exists")



class InvariantViolation(DomainException):
    """Stored state breaks a rule the core relies on"""

    def __init__(self, kind: str, message: str):
        self.kind = kind
        super().__init__(message)
