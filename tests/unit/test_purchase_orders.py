"""Unit tests for purchase order issuance"""

import pytest
from budget_gateway.domain.exceptions import (
    BudgetNotFoundError,
    ComponentNotFoundError,
    IntentAlreadyConsumedError,
    IntentNotFoundError,
    NoActiveBudgetError,
    ValidationError,
)
from budget_gateway.domain.models import Actor, OrderDraft
from budget_gateway.infrastructure.database.document_store import Increment, Transaction
from budget_gateway.infrastructure.database.repositories import BUDGETS, INTENTS, ORDERS, BudgetRepository
from budget_gateway.services.purchase_orders import PurchaseOrderIssuer


def _spent_snapshot(budget):
    return {
        (section.value, key): comp.spent
        for section, components in budget.sections.items()
        for key, comp in components.items()
    }


def test_issue_from_intent_end_to_end(store, actor, make_budget, make_intent):
    """dm budget, 25000 against employeeSalary -> ICEM/25-26/DM/01"""
    budget = make_budget("dm", "25-26", employeeSalary=100000)
    assert budget.id == "dm_FY-2025-26"
    intent = make_intent("dm", "employeeSalary", 25000)

    po = PurchaseOrderIssuer(store).issue_from_intent(intent.id, actor)

    assert po.po_number == "ICEM/25-26/DM/01"
    assert po.status == "approved"
    assert po.total_cost == 25000
    assert po.budget_section == "departmentExpenses"
    assert po.approved_by == "Asha Rao"

    budget = BudgetRepository(store).get(budget.id)
    assert budget.find_component("employeeSalary").spent == 25000
    assert budget.total_spent == 25000
    assert budget.po_counter == 1

    intent_doc = store.get(INTENTS, intent.id)
    assert intent_doc.get("status") == "approved"
    assert intent_doc.get("poCreated") is True
    assert intent_doc.get("poNumber") == "ICEM/25-26/DM/01"
    assert intent_doc.get("approvedBy") == actor.uid

    po_doc = store.get(ORDERS, po.id)
    assert po_doc.get("intentId") == intent.id
    assert po_doc.get("purchaseDeptApproved") is True
    assert po_doc.get("description") is None  # intent details are not copied onto the PO
    assert po_doc.get("createdAt") is not None


def test_po_numbers_are_gapless_per_budget(store, actor, make_budget, make_intent):
    """Sequential issues yield 01..N regardless of other departments' activity"""
    make_budget("hr", "25-26")
    make_budget("sales", "25-26")
    issuer = PurchaseOrderIssuer(store)

    hr_numbers = []
    for i in range(12):
        hr_numbers.append(issuer.issue_from_intent(make_intent("hr", "rent", 100 + i).id, actor).po_number)
        if i % 3 == 0:
            issuer.issue_from_intent(make_intent("sales", "rent", 50).id, actor)

    assert hr_numbers == [f"GA/25-26/HR&Admin/{n:02d}" for n in range(1, 13)]
    assert BudgetRepository(store).get("sales_FY-2025-26").po_counter == 4


def test_po_number_widens_past_99(store, actor, make_budget, make_intent):
    budget = make_budget("lnd", "25-26")
    store.run_transaction(lambda tx: tx.update(BUDGETS, budget.id, {"poCounter": 99}))

    po = PurchaseOrderIssuer(store).issue_from_intent(make_intent("lnd", "rent", 10).id, actor)

    assert po.po_number == "GA/25-26/T/100"


def test_spend_posting_conservation(store, actor, make_budget, make_intent):
    """Only the target component and totalSpent move, by exactly the amount"""
    budget = make_budget("dm", "25-26")
    before = _spent_snapshot(budget)

    PurchaseOrderIssuer(store).issue_from_intent(make_intent("dm", "mobile_sim", 1234.5).id, actor)

    after_budget = BudgetRepository(store).get(budget.id)
    after = _spent_snapshot(after_budget)
    changed = {k for k in before if before[k] != after[k]}
    assert changed == {("csddExpenses", "mobile_sim")}
    assert after[("csddExpenses", "mobile_sim")] - before[("csddExpenses", "mobile_sim")] == 1234.5
    assert after_budget.total_spent - budget.total_spent == 1234.5
    # totalBudget is fixed at creation
    assert after_budget.total_budget == budget.total_budget


def test_final_amount_and_component_override(store, actor, make_budget, make_intent):
    make_budget("dm", "25-26")
    intent = make_intent("dm", "employeeSalary", 25000)
    order = OrderDraft(intent_id=intent.id, final_amount=24000, budget_component="software", details={"vendor": "Acme"})

    po = PurchaseOrderIssuer(store).issue_from_intent(intent.id, actor, order)

    assert po.total_cost == 24000
    assert po.budget_component == "software"
    assert store.get(ORDERS, po.id).get("vendor") == "Acme"
    budget = BudgetRepository(store).get("dm_FY-2025-26")
    assert budget.find_component("software").spent == 24000
    assert budget.find_component("employeeSalary").spent == 0


def test_over_allocation_is_permitted(store, actor, make_budget, make_intent):
    make_budget("dm", "25-26", employeeSalary=1000)

    PurchaseOrderIssuer(store).issue_from_intent(make_intent("dm", "employeeSalary", 5000).id, actor)

    component = BudgetRepository(store).get("dm_FY-2025-26").find_component("employeeSalary")
    assert component.spent == 5000
    assert component.over_allocated


def test_component_not_found_leaves_everything_untouched(store, actor, make_budget, make_intent):
    budget = make_budget("dm", "25-26")
    intent = make_intent("dm", "teleportation", 500)
    budget_before = store.get(BUDGETS, budget.id)

    with pytest.raises(ComponentNotFoundError) as exc_info:
        PurchaseOrderIssuer(store).issue_from_intent(intent.id, actor)

    assert exc_info.value.component_key == "teleportation"
    assert store.query(ORDERS) == []
    intent_doc = store.get(INTENTS, intent.id)
    assert intent_doc.get("status") == "submitted"
    assert intent_doc.get("poCreated") is False
    assert store.get(BUDGETS, budget.id).data == budget_before.data


def test_no_active_budget(store, actor, make_budget, make_intent):
    make_budget("hr", "25-26", activate=False)
    intent = make_intent("hr", "rent", 100)

    with pytest.raises(NoActiveBudgetError) as exc_info:
        PurchaseOrderIssuer(store).issue_from_intent(intent.id, actor)
    assert exc_info.value.department == "hr"
    assert store.query(ORDERS) == []


def test_intent_not_found(store, actor, make_budget):
    make_budget("dm", "25-26")
    with pytest.raises(IntentNotFoundError) as exc_info:
        PurchaseOrderIssuer(store).issue_from_intent("nope", actor)
    assert exc_info.value.intent_id == "nope"


def test_intent_without_department(store, actor, make_budget):
    make_budget("dm", "25-26")
    store.run_transaction(lambda tx: tx.set(INTENTS, "orphan", {"budgetComponent": "rent", "amount": 5, "status": "submitted"}))

    with pytest.raises(ValidationError):
        PurchaseOrderIssuer(store).issue_from_intent("orphan", actor)


def test_second_issue_of_same_intent_is_rejected(store, actor, make_budget, make_intent):
    make_budget("dm", "25-26")
    intent = make_intent("dm", "employeeSalary", 1000)
    issuer = PurchaseOrderIssuer(store)
    first = issuer.issue_from_intent(intent.id, actor)

    with pytest.raises(IntentAlreadyConsumedError) as exc_info:
        issuer.issue_from_intent(intent.id, actor)

    assert exc_info.value.po_number == first.po_number
    assert len(store.query(ORDERS)) == 1
    assert BudgetRepository(store).get("dm_FY-2025-26").po_counter == 1


def test_concurrent_double_issue_creates_one_po(store, actor, make_budget, make_intent, monkeypatch):
    """A racing issuance for the same intent commits first; ours retries and is rejected"""
    make_budget("dm", "25-26")
    intent = make_intent("dm", "employeeSalary", 1000)
    issuer = PurchaseOrderIssuer(store)
    racer = Actor(uid="u-finance-2")

    original_commit = Transaction.commit
    commits = []

    def racing_commit(self):
        commits.append(1)
        if len(commits) == 1:
            # Competitor runs its whole transaction after our reads, before our commit
            issuer.issue_from_intent(intent.id, racer)
        original_commit(self)

    monkeypatch.setattr(Transaction, "commit", racing_commit)

    with pytest.raises(IntentAlreadyConsumedError):
        issuer.issue_from_intent(intent.id, actor)

    orders = store.query(ORDERS)
    assert len(orders) == 1
    assert orders[0].get("createdBy") == racer.uid
    budget = BudgetRepository(store).get("dm_FY-2025-26")
    assert budget.po_counter == 1
    assert budget.total_spent == 1000


def test_concurrent_issues_on_one_budget_never_share_a_number(store, actor, make_budget, make_intent, monkeypatch):
    make_budget("dm", "25-26")
    mine = make_intent("dm", "employeeSalary", 100)
    theirs = make_intent("dm", "employeeSalary", 200)
    issuer = PurchaseOrderIssuer(store)

    original_commit = Transaction.commit
    commits = []

    def racing_commit(self):
        commits.append(1)
        if len(commits) == 1:
            issuer.issue_from_intent(theirs.id, actor)
        original_commit(self)

    monkeypatch.setattr(Transaction, "commit", racing_commit)

    po = issuer.issue_from_intent(mine.id, actor)

    numbers = sorted(o.get("poNumber") for o in store.query(ORDERS))
    assert numbers == ["ICEM/25-26/DM/01", "ICEM/25-26/DM/02"]
    assert po.po_number == "ICEM/25-26/DM/02"
    budget = BudgetRepository(store).get("dm_FY-2025-26")
    assert budget.po_counter == 2
    assert budget.total_spent == 300


def test_issue_for_budget_direct(store, actor, make_budget, make_intent):
    budget = make_budget("hr", "25-26")
    intent = make_intent("hr", "electricity", 800)

    po = PurchaseOrderIssuer(store).issue_for_budget(budget.id, "HR", actor, OrderDraft(intent_id=intent.id))

    assert po.po_number == "GA/25-26/HR&Admin/01"
    assert po.budget_section == "fixedCosts"
    assert BudgetRepository(store).get(budget.id).find_component("electricity").spent == 800


def test_issue_for_budget_failures(store, actor, make_budget, make_intent):
    issuer = PurchaseOrderIssuer(store)
    draft = make_budget("hr", "25-26", activate=False)
    intent = make_intent("hr", "rent", 100)

    with pytest.raises(BudgetNotFoundError):
        issuer.issue_for_budget("hr_FY-2030-31", "hr", actor, OrderDraft(intent_id=intent.id))
    with pytest.raises(NoActiveBudgetError):
        issuer.issue_for_budget(draft.id, "hr", actor, OrderDraft(intent_id=intent.id))
    with pytest.raises(NoActiveBudgetError):
        issuer.issue_for_budget("", "hr", actor, OrderDraft(intent_id=intent.id))
    with pytest.raises(ValidationError):
        issuer.issue_for_budget(draft.id, "sales", actor, OrderDraft(intent_id=intent.id))
    with pytest.raises(IntentNotFoundError):
        issuer.issue_for_budget(draft.id, "hr", actor, OrderDraft(intent_id="missing"))

    assert store.query(ORDERS) == []
    assert store.get(BUDGETS, draft.id).get("poCounter") == 0


def test_rejects_non_positive_amount(store, actor, make_budget, make_intent):
    make_budget("dm", "25-26")
    intent = make_intent("dm", "employeeSalary", 100)

    with pytest.raises(ValidationError):
        PurchaseOrderIssuer(store).issue_from_intent(intent.id, actor, OrderDraft(intent_id=intent.id, final_amount=0))
    assert store.query(ORDERS) == []


def test_multiple_active_budgets_picks_latest_fiscal_year(store, actor, make_budget, make_intent):
    """Broken invariant is reported, and the latest fiscal year's budget is used"""
    make_budget("dm", "24-25")
    make_budget("dm", "25-26", activate=False)
    # Force a second active budget behind the activation manager's back
    store.run_transaction(lambda tx: tx.update(BUDGETS, "dm_FY-2025-26", {"status": "active"}))

    po = PurchaseOrderIssuer(store).issue_from_intent(make_intent("dm", "rent", 10).id, actor)

    assert po.budget_id == "dm_FY-2025-26"
    assert po.po_number == "ICEM/25-26/DM/01"


def test_counter_increment_is_server_side(store, actor, make_budget, make_intent):
    """Numbering continues from whatever the stored counter holds"""
    budget = make_budget("dm", "25-26")
    store.run_transaction(lambda tx: tx.update(BUDGETS, budget.id, {"poCounter": Increment(4)}))

    po = PurchaseOrderIssuer(store).issue_from_intent(make_intent("dm", "rent", 10).id, actor)

    assert po.po_number == "ICEM/25-26/DM/05"
    assert BudgetRepository(store).get(budget.id).po_counter == 5
