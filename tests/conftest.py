# tests/conftest.py
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.api import api_router
from app.core.config import settings
from app.core.events import EventBus
from app.db.models import Base
from app.db.session import create_db_engine, get_db

# One in-memory database shared by every connection
engine = create_db_engine("sqlite://", poolclass=StaticPool)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db_session():
    """Session bound to a freshly created schema."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def event_bus():
    return EventBus()


@pytest.fixture()
def test_app(db_session):
    app = FastAPI()

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.include_router(api_router, prefix=settings.API_V1_STR)
    return app


@pytest.fixture()
def client(test_app):
    """Get a TestClient instance that reads/writes to the test database."""
    with TestClient(test_app) as client:
        yield client
