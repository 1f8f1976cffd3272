"""
Pytest configuration and fixtures for the allocation test suite
"""
import os

# Settings are read at import time, so the test environment goes first
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-secret-key-for-testing-only"

import pytest
from datetime import date, datetime, timedelta, timezone
from typing import Generator
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from src.db.models import Base
from src.core.database import get_db
from src.domain.entities import Applicant, Manager, Officer, Project
from src.domain.enums import FlatType, MaritalStatus
from src.main import app
from src.services.allocation import AllocationCoordinator
from src.services.inventory import FlatInventory
from src.services.lifecycle import ApplicationLifecycle
from src.services.repositories import (
    InMemoryApplicationRepository,
    InMemoryProjectRepository,
    InMemoryUserRepository,
)
from src.services.sql_repository import SqlProjectRepository, SqlUserRepository
from src.utils.dev_token import generate_dev_token

# Fixed instant used by in-memory coordinator tests
FIXED_NOW = datetime(2025, 6, 15, 10, 0, tzinfo=timezone.utc)


# ============================================================================
# DATABASE FIXTURES
# ============================================================================

@pytest.fixture(scope="function")
def test_db() -> Generator[Session, None, None]:
    """
    Create an in-memory SQLite database for testing

    Each test gets a fresh database with all tables created.
    Automatically cleans up after the test.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Enable foreign key support for SQLite
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def client(test_db: Session) -> Generator[TestClient, None, None]:
    """
    Create FastAPI test client with the database session overridden
    """
    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# ============================================================================
# DOMAIN FACTORIES
# ============================================================================

@pytest.fixture
def make_applicant():
    """
    Factory for applicants

    Usage:
        applicant = make_applicant(nric="S1234567A", age=25, married=True)
    """
    def _make(nric: str = "S1234567A", name: str = "John", age: int = 35, married: bool = False, **kwargs):
        return Applicant(
            nric=nric,
            name=name,
            age=age,
            marital_status=MaritalStatus.MARRIED if married else MaritalStatus.SINGLE,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_officer():
    def _make(
        nric: str = "T2109876H",
        name: str = "Daniel",
        age: int = 36,
        married: bool = False,
        assigned_project: str = None,
        registration_approved: bool = True,
    ):
        return Officer(
            nric=nric,
            name=name,
            age=age,
            marital_status=MaritalStatus.MARRIED if married else MaritalStatus.SINGLE,
            assigned_project=assigned_project,
            registration_approved=registration_approved,
        )

    return _make


@pytest.fixture
def make_manager():
    def _make(nric: str = "T8765432F", name: str = "Michael", age: int = 36):
        return Manager(nric=nric, name=name, age=age, marital_status=MaritalStatus.SINGLE)

    return _make


@pytest.fixture
def make_project():
    """
    Factory for projects

    Usage:
        project = make_project(units={FlatType.TWO_ROOM: 1, FlatType.THREE_ROOM: 2})
    """
    def _make(
        name: str = "Acacia Breeze",
        units: dict = None,
        manager: str = "T8765432F",
        opening: date = date(2025, 6, 1),
        closing: date = date(2025, 6, 30),
        officers: list = None,
        visible: bool = True,
    ) -> Project:
        units = units if units is not None else {FlatType.TWO_ROOM: 1, FlatType.THREE_ROOM: 2}
        return Project(
            name=name,
            neighborhood="Yishun",
            opening_date=opening,
            closing_date=closing,
            manager_in_charge=manager,
            flat_types={
                flat_type: FlatInventory.create_cell(flat_type, total, price=350000.0)
                for flat_type, total in units.items()
            },
            officers=officers or [],
            visible=visible,
        )

    return _make


# ============================================================================
# IN-MEMORY COORDINATOR
# ============================================================================

@pytest.fixture
def repos():
    """Fresh in-memory repositories (projects, applications, users)"""
    return (
        InMemoryProjectRepository(),
        InMemoryApplicationRepository(),
        InMemoryUserRepository(),
    )


@pytest.fixture
def coordinator(repos) -> AllocationCoordinator:
    """Coordinator over in-memory repositories with a frozen clock"""
    projects, applications, users = repos
    return AllocationCoordinator(
        projects=projects,
        applications=applications,
        users=users,
        lifecycle=ApplicationLifecycle(inventory=FlatInventory()),
        clock=lambda: FIXED_NOW,
    )


# ============================================================================
# DATABASE FACTORY FIXTURES
# ============================================================================

@pytest.fixture
def seed_user(test_db: Session):
    """Store any domain user in the test database"""
    def _seed(user):
        SqlUserRepository(test_db).add(user)
        return user

    return _seed


@pytest.fixture
def seed_project(test_db: Session, make_project):
    """
    Store a project in the test database, open around today

    Usage:
        project = seed_project(name="Acacia Breeze", units={FlatType.TWO_ROOM: 1})
    """
    def _seed(**kwargs) -> Project:
        today = date.today()
        kwargs.setdefault("opening", today - timedelta(days=30))
        kwargs.setdefault("closing", today + timedelta(days=30))
        project = make_project(**kwargs)
        SqlProjectRepository(test_db).save_project(project)
        return project

    return _seed


# ============================================================================
# AUTHENTICATION FIXTURES
# ============================================================================

@pytest.fixture
def auth_headers():
    """
    Build bearer headers for a user

    Usage:
        headers = auth_headers(manager)
        headers = auth_headers("S1234567A", "applicant")
    """
    def _headers(user_or_nric, role: str = None) -> dict[str, str]:
        if isinstance(user_or_nric, str):
            nric, role = user_or_nric, role or "applicant"
        else:
            nric, role = user_or_nric.nric, role or user_or_nric.role.value
        return {"Authorization": f"Bearer {generate_dev_token(nric, role=role)}"}

    return _headers


# ============================================================================
# CONFIGURATION
# ============================================================================

def pytest_configure(config):
    """
    Pytest configuration hook

    Registers test markers
    """
    config.addinivalue_line("markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')")
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
    config.addinivalue_line("markers", "unit: marks tests as unit tests")
