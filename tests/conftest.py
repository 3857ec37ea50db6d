"""Pytest fixtures for testing"""

import pytest
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from budget_gateway.api.main import create_app
from budget_gateway.api.dependencies import get_store
from budget_gateway.domain.models import Actor, BudgetSection, ComponentRequest
from budget_gateway.infrastructure.database.document_store import DocumentStore
from budget_gateway.infrastructure.database.models import Base
from budget_gateway.services.activation import BudgetActivationManager
from budget_gateway.services.budgets import BudgetService
from budget_gateway.services.intents import PurchaseIntentService


@pytest.fixture
def store(tmp_path) -> Generator[DocumentStore, None, None]:
    """Document store backed by a fresh SQLite file"""
    engine = create_engine(f"sqlite:///{tmp_path / 'test.db'}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
    try:
        yield DocumentStore(TestingSessionLocal, max_retries=3, backoff_base=0)
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def client(store: DocumentStore) -> TestClient:
    """Create FastAPI test client with test document store"""
    app = create_app()
    app.dependency_overrides[get_store] = lambda: store
    return TestClient(app)


@pytest.fixture
def actor() -> Actor:
    return Actor(uid="u-finance-1", display_name="Asha Rao")


@pytest.fixture
def make_budget(store: DocumentStore, actor: Actor):
    """Factory: create (and optionally activate) a budget with sample allocations"""

    def _make(department: str = "dm", fiscal_year: str = "25-26", activate: bool = True, **allocations):
        components = {
            BudgetSection.FIXED_COSTS: [
                ComponentRequest("rent", allocations.get("rent", 615000)),
                ComponentRequest("electricity", allocations.get("electricity", 100000)),
            ],
            BudgetSection.DEPARTMENT_EXPENSES: [
                ComponentRequest("employeeSalary", allocations.get("employeeSalary", 100000)),
                ComponentRequest("software", allocations.get("software", 40000), display_name="Software licences"),
            ],
            BudgetSection.CSDD_EXPENSES: [
                ComponentRequest("mobile_sim", allocations.get("mobile_sim", 12000)),
            ],
        }
        budget = BudgetService(store).create_budget(department, actor, fiscal_year=fiscal_year, components=components)
        if activate:
            budget = BudgetActivationManager(store).activate(budget.id, department, actor)
        return budget

    return _make


@pytest.fixture
def make_intent(store: DocumentStore, actor: Actor):
    """Factory: submit a purchase intent"""

    def _make(department: str = "dm", component: str = "employeeSalary", amount: float = 25000, fiscal_year: str = "25-26"):
        return PurchaseIntentService(store).submit_intent(
            department, component, amount, actor, fiscal_year=fiscal_year, details={"description": "Test purchase"}
        )

    return _make
