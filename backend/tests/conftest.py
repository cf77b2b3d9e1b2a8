import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel

from app import app
from db import build_engine, create_db_and_tables, get_session
from migrations.migrate_001_add_entry_indexes import migrate
from store import index_probe


@pytest.fixture(scope="function")
def test_engine():
    """In-memory database without the range-scan indexes."""
    engine = build_engine("sqlite://")
    create_db_and_tables(engine)
    index_probe.reset()
    yield engine
    SQLModel.metadata.drop_all(engine)
    index_probe.reset()


@pytest.fixture(scope="function", params=["scan", "indexed"])
def test_session(request, test_engine):
    """Create a test database session, once per query plan."""
    if request.param == "indexed":
        migrate(test_engine)
    with Session(test_engine) as session:
        yield session


@pytest.fixture(scope="function")
def client(test_engine):
    """Create a test client with dependency override."""
    migrate(test_engine)

    def get_test_session():
        with Session(test_engine) as session:
            yield session

    app.dependency_overrides[get_session] = get_test_session
    yield TestClient(app)
    app.dependency_overrides.clear()
