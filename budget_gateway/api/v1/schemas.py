"""Pydantic schemas for API request/response validation"""

from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from budget_gateway.domain.models import Budget, PurchaseIntent, PurchaseOrder


class ComponentAllocation(BaseModel):
    """Requested allocation for one budget component"""

    key: str = Field(..., min_length=1, description="Component key, e.g. 'rent' or a custom key")
    allocated: float = Field(0, ge=0)
    name: Optional[str] = Field(None, description="Display name for custom components")


class BudgetCreateRequest(BaseModel):
    """Request body for POST /v1/budgets"""

    department: str = Field(..., min_length=1)
    fiscal_year: Optional[str] = Field(None, description="'YY-YY'; defaults to the current fiscal year")
    owner_name: Optional[str] = None
    notes: Optional[str] = None
    fixed_costs: List[ComponentAllocation] = Field(default_factory=list)
    department_expenses: List[ComponentAllocation] = Field(default_factory=list)
    csdd_expenses: List[ComponentAllocation] = Field(default_factory=list)


class ActivateRequest(BaseModel):
    """Request body for POST /v1/budgets/{budget_id}/activate"""

    department: str = Field(..., min_length=1)


class ComponentSchema(BaseModel):
    key: str
    section: str
    allocated: float
    spent: float
    name: Optional[str] = None
    custom: bool = False
    over_allocated: bool = False


class BudgetResponse(BaseModel):
    budget_id: str
    department: str
    fiscal_year: str
    status: str
    owner_name: Optional[str] = None
    po_counter: int
    total_budget: float
    total_spent: float
    components: List[ComponentSchema]
    notes: Optional[str] = None
    created_at: Optional[str] = None
    last_updated_at: Optional[str] = None

    @classmethod
    def from_domain(cls, budget: Budget) -> "BudgetResponse":
        return cls(
            budget_id=budget.id,
            department=budget.department,
            fiscal_year=budget.fiscal_year,
            status=budget.status.value,
            owner_name=budget.owner_name,
            po_counter=budget.po_counter,
            total_budget=budget.total_budget,
            total_spent=budget.total_spent,
            components=[
                ComponentSchema(
                    key=comp.key,
                    section=section.value,
                    allocated=comp.allocated,
                    spent=comp.spent,
                    name=comp.display_name,
                    custom=comp.is_custom,
                    over_allocated=comp.over_allocated,
                )
                for section, components in budget.sections.items()
                for comp in components.values()
            ],
            notes=budget.notes,
            created_at=budget.created_at,
            last_updated_at=budget.last_updated_at,
        )


class BudgetListResponse(BaseModel):
    budgets: List[BudgetResponse]


class IntentCreateRequest(BaseModel):
    """Request body for POST /v1/intents"""

    department: str = Field(..., min_length=1)
    budget_component: str = Field(..., min_length=1)
    amount: float = Field(..., gt=0, description="Requested amount")
    fiscal_year: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict, description="Description, vendor, items ...")


class IntentDecisionRequest(BaseModel):
    """Request body for POST /v1/intents/{intent_id}/approve and /reject"""

    notes: str = ""


class IntentResponse(BaseModel):
    intent_id: str
    department: Optional[str] = None
    fiscal_year: Optional[str] = None
    budget_component: Optional[str] = None
    status: str
    amount: Optional[float] = None
    po_created: bool
    po_number: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_domain(cls, intent: PurchaseIntent) -> "IntentResponse":
        return cls(
            intent_id=intent.id,
            department=intent.department,
            fiscal_year=intent.fiscal_year,
            budget_component=intent.budget_component,
            status=intent.status,
            amount=intent.amount,
            po_created=intent.po_created,
            po_number=intent.po_number,
            details=intent.details,
        )


class IntentListResponse(BaseModel):
    intents: List[IntentResponse]


class IssueRequest(BaseModel):
    """Request body for POST /v1/purchase-orders"""

    intent_id: str = Field(..., min_length=1)
    final_amount: Optional[float] = Field(None, gt=0, description="Defaults to the intent amount")
    budget_component: Optional[str] = Field(None, description="Overrides the intent's component")
    details: Dict[str, Any] = Field(default_factory=dict)


class DirectIssueRequest(IssueRequest):
    """Request body for POST /v1/budgets/{budget_id}/purchase-orders"""

    department: str = Field(..., min_length=1)


class PurchaseOrderResponse(BaseModel):
    po_id: str
    po_number: str
    department: str
    fiscal_year: str
    status: str
    total_cost: float
    intent_id: Optional[str] = None
    budget_id: Optional[str] = None
    budget_section: Optional[str] = None
    budget_component: Optional[str] = None
    approved_by: Optional[str] = None
    created_at: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_domain(cls, po: PurchaseOrder) -> "PurchaseOrderResponse":
        return cls(
            po_id=po.id,
            po_number=po.po_number,
            department=po.department,
            fiscal_year=po.fiscal_year,
            status=po.status,
            total_cost=po.total_cost,
            intent_id=po.intent_id,
            budget_id=po.budget_id,
            budget_section=po.budget_section,
            budget_component=po.budget_component,
            approved_by=po.approved_by,
            created_at=po.created_at,
            details=po.details,
        )


class PurchaseOrderListResponse(BaseModel):
    orders: List[PurchaseOrderResponse]


class BulkEntrySchema(BaseModel):
    department: str = Field(..., min_length=1)
    amount: float


class BulkExpenseRequest(BaseModel):
    """Request body for POST /v1/expenses/bulk"""

    fiscal_year: str
    expense_section: str = Field(..., description="fixedCosts or departmentExpenses")
    expense_type: str = Field(..., min_length=1, description="Component key, e.g. 'electricity'")
    entries: List[BulkEntrySchema]


class BulkExpenseResponse(BaseModel):
    posted: List[str]
    skipped: List[str]


class FiscalYearResponse(BaseModel):
    fiscal_year: str
    start_date: date
    end_date: date
