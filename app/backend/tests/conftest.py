from __future__ import annotations

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from orgboard.api.dependencies import get_document_store
from orgboard.db.base import Base
from orgboard.domain.graph import GLOBAL_SCOPE, SHARED_SCOPE
from orgboard.main import create_app
from orgboard.models.entities import StoredDocument
from orgboard.services.graph_state import GraphState, load_graph
from orgboard.services.persistence import InMemoryDocumentStore, PersistenceAdapter

TEST_TABLES = [StoredDocument.__table__]

FACTORY_A = "factoryA"
FACTORY_B = "factoryB"


def seed_dashboard(store: InMemoryDocumentStore) -> InMemoryDocumentStore:
    store.seed(
        "personnel",
        GLOBAL_SCOPE,
        "p1",
        {
            "name": "Jane",
            "skills": ["welding", "safety"],
            "notes": "",
            "experience": 3,
            "assignedRole": None,
            "assignedFactoryId": None,
        },
    )
    store.seed(
        "personnel",
        GLOBAL_SCOPE,
        "p2",
        {
            "name": "Omar",
            "skills": [],
            "notes": "Night shift",
            "experience": 7,
            "assignedRole": "qm",
            "assignedFactoryId": FACTORY_A,
        },
    )
    store.seed(
        "personnel",
        GLOBAL_SCOPE,
        "p3",
        {"name": "Lee", "skills": ["recruiting"], "assignedRole": "hr", "assignedFactoryId": SHARED_SCOPE},
    )

    store.seed(
        "roles",
        FACTORY_A,
        "qm",
        {
            "title": "Quality Manager",
            "color": "#0055aa",
            "department": "Quality",
            "responsibilities": ["Audit lines", "Train staff"],
            "detailedResponsibilities": {
                "Compliance": ["ISO 9001", "Supplier audits"],
                "Reporting": ["Monthly KPI pack"],
            },
            "nextRoles": ["plant_director"],
        },
    )
    store.seed("roles", FACTORY_A, "ops", {"title": "Operations Lead", "responsibilities": ["Run shifts"]})
    store.seed("roles", FACTORY_B, "pm", {"title": "Plant Manager"})
    store.seed(
        "roles",
        SHARED_SCOPE,
        "hr",
        {"title": "HR Partner", "responsibilities": ["Hiring"], "nextRoles": ["ops"]},
    )

    store.seed(
        "timeline",
        FACTORY_A,
        "phase-1",
        {"phase": "Launch", "timeframe": "Q1", "activities": ["Hire leads", "Install line"]},
    )
    store.seed("timeline", FACTORY_A, "phase-2", {"phase": "Ramp-up", "timeframe": "Q2", "activities": []})

    store.seed(
        "budget",
        GLOBAL_SCOPE,
        FACTORY_A,
        {
            "name": "Factory A",
            "personnelCosts": {
                "quality": {
                    "title": "Quality",
                    "roles": [
                        {"title": "Quality Director", "count": 1, "costRange": "$150,000 - $180,000"},
                        {"title": "Quality Managers", "count": 3, "costRange": "$378,000 - $474,000"},
                    ],
                    "subtotal": {"count": 4, "costRange": "$528,000 - $654,000"},
                }
            },
            "operationalExpenses": [
                {"category": "Utilities", "amount": 5000},
                {"category": "Maintenance", "amount": 8000},
            ],
            "productionVolume": 1000,
        },
    )
    store.seed(
        "budget",
        GLOBAL_SCOPE,
        FACTORY_B,
        {"name": "Factory B", "personnelCosts": {}, "operationalExpenses": [], "productionVolume": 0},
    )
    return store


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture()
def store() -> InMemoryDocumentStore:
    return seed_dashboard(InMemoryDocumentStore())


@pytest.fixture()
def persistence(store: InMemoryDocumentStore) -> PersistenceAdapter:
    return PersistenceAdapter(store, timeout_seconds=1.0)


@pytest.fixture()
async def graph_state(persistence: PersistenceAdapter) -> GraphState:
    return GraphState(await load_graph(persistence, FACTORY_A))


@pytest.fixture()
def session_factory() -> Generator[sessionmaker, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine, tables=TEST_TABLES)
    try:
        yield sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    finally:
        Base.metadata.drop_all(bind=engine, tables=TEST_TABLES)
        engine.dispose()


@pytest.fixture()
def db_session(session_factory: sessionmaker) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(store: InMemoryDocumentStore) -> Generator[TestClient, None, None]:
    app = create_app()
    app.dependency_overrides[get_document_store] = lambda: store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
