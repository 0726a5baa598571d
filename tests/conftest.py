"""
Pytest fixtures for DXTREE tests.

Uses an in-memory SQLite DB for speed and isolation.
StaticPool keeps a single connection so the :memory: database (and tables) persist.
"""

import json
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from backend.database import Base, get_db
from backend.main import app
from shared.schemas import TrainingTable

TEST_DB = "sqlite:///:memory:"
ROOT = Path(__file__).resolve().parent.parent
SAMPLE_TABLE_PATH = ROOT / "data" / "sample_table.json"
FIXTURES_DIR = Path(__file__).resolve().parent / "fixtures"


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh in-memory DB and tables per test."""
    test_engine = create_engine(
        TEST_DB,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,  # single connection so :memory: DB and tables persist
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def client(db_engine):
    """FastAPI TestClient with test DB."""
    session_factory = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def sample_table_data() -> dict:
    return json.loads(SAMPLE_TABLE_PATH.read_text(encoding="utf-8"))


@pytest.fixture
def sample_table(sample_table_data) -> TrainingTable:
    return TrainingTable.model_validate(sample_table_data)


@pytest.fixture
def questionnaire_cases() -> list[dict]:
    return json.loads((FIXTURES_DIR / "questionnaire_cases.json").read_text(encoding="utf-8"))
