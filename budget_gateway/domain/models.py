"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class BudgetStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    ARCHIVED = "archived"


class IntentStatus(str, Enum):
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


class BudgetSection(str, Enum):
    """The three sub-ledger groups of a budget document"""

    DEPARTMENT_EXPENSES = "departmentExpenses"
    FIXED_COSTS = "fixedCosts"
    CSDD_EXPENSES = "csddExpenses"


# Component lookup order when a key appears in more than one section
SECTION_PRECEDENCE: Tuple[BudgetSection, ...] = (
    BudgetSection.DEPARTMENT_EXPENSES,
    BudgetSection.FIXED_COSTS,
    BudgetSection.CSDD_EXPENSES,
)

WELL_KNOWN_COMPONENTS: Dict[BudgetSection, Tuple[str, ...]] = {
    BudgetSection.FIXED_COSTS: ("rent", "maintenance", "electricity", "internet", "renovation"),
    BudgetSection.DEPARTMENT_EXPENSES: ("employeeSalary",),
    BudgetSection.CSDD_EXPENSES: ("intercity_outstation_visits", "lunch_dinner_with_client", "mobile_sim"),
}

# Sections that accept components beyond the well-known set
EXTENSIBLE_SECTIONS = (BudgetSection.DEPARTMENT_EXPENSES, BudgetSection.CSDD_EXPENSES)


@dataclass
class Actor:
    """User performing an operation"""

    uid: str
    display_name: Optional[str] = None

    @property
    def approver_label(self) -> str:
        return self.display_name or self.uid


@dataclass
class BudgetComponent:
    """Named sub-ledger inside one budget section.

    Well-known components are identified by key alone; custom components
    carry the free-text display name they were created with.
    """

    key: str
    section: BudgetSection
    allocated: float = 0
    spent: float = 0
    display_name: Optional[str] = None

    @property
    def is_custom(self) -> bool:
        return self.key not in WELL_KNOWN_COMPONENTS[self.section]

    @property
    def over_allocated(self) -> bool:
        # Informational-only components (allocated == 0) never warn
        return self.allocated > 0 and self.spent > self.allocated


@dataclass
class ComponentRequest:
    """Allocation requested for a component at budget creation"""

    key: str
    allocated: float = 0
    display_name: Optional[str] = None


@dataclass
class Budget:
    """Per-department, per-fiscal-year ledger document"""

    id: str
    department: str
    fiscal_year: str
    status: BudgetStatus
    sections: Dict[BudgetSection, Dict[str, BudgetComponent]]
    po_counter: int = 0
    total_budget: float = 0
    total_spent: float = 0
    owner_name: Optional[str] = None
    title: Optional[str] = None
    notes: Optional[str] = None
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: Optional[str] = None
    last_updated_at: Optional[str] = None

    def component_index(self) -> Dict[str, BudgetComponent]:
        """Flat key -> component map; earlier sections in SECTION_PRECEDENCE win"""
        index: Dict[str, BudgetComponent] = {}
        for section in reversed(SECTION_PRECEDENCE):
            index.update(self.sections.get(section, {}))
        return index

    def find_component(self, key: str) -> Optional[BudgetComponent]:
        return self.component_index().get(key)


@dataclass
class PurchaseIntent:
    """Request to spend, awaiting conversion into a purchase order"""

    id: str
    department: Optional[str]
    fiscal_year: Optional[str]
    budget_component: Optional[str]
    status: str
    amount: Optional[float] = None
    po_created: bool = False
    po_number: Optional[str] = None
    created_by: Optional[str] = None
    approved_by: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class OrderDraft:
    """Caller-supplied order payload for PO issuance"""

    intent_id: str
    final_amount: Optional[float] = None
    budget_component: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PurchaseOrder:
    """Approved, numbered commitment of spend against one budget component"""

    id: str
    department: str
    fiscal_year: str
    po_number: str
    status: str
    total_cost: float
    intent_id: Optional[str]
    budget_id: Optional[str] = None
    budget_section: Optional[str] = None
    budget_component: Optional[str] = None
    approved_by: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class BulkExpenseEntry:
    department: str
    amount: float


@dataclass
class BulkPostResult:
    """Outcome of a bulk expense posting"""

    posted: List[str] = field(default_factory=list)  # budget ids
    skipped: List[str] = field(default_factory=list)  # departments without a budget
