"""
Test configuration and fixtures for the link shortener.
This centralizes all test setup, making individual tests clean.
"""

import asyncio
import os

# Must be set before the app (and its settings) are imported
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_app.db")
os.environ.setdefault("CLICK_WORKER_EMBEDDED", "false")
os.environ.setdefault("QUEUE_BACKEND", "memory")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from main import app
from shortlink_app.click_processor.click_worker import ClickWorker
from shortlink_app.config import settings
from shortlink_app.database.connection import Base, get_db, make_engine
from shortlink_app.dependencies import get_queue
from shortlink_app.queue.strategies import InMemoryQueue

# Test database configuration (file based, so several sessions can share it)
SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = make_engine(SQLALCHEMY_DATABASE_URL, timeout_seconds=30)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    This ensures tests are isolated and don't affect each other.
    """
    # Create tables
    Base.metadata.create_all(bind=engine)

    # Create session
    db = TestingSessionLocal()

    try:
        yield db
    finally:
        # Cleanup
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def click_queue():
    """Private in-memory click queue for one test"""
    return InMemoryQueue(max_size=1000)


@pytest.fixture(scope="function")
def client(db_session, click_queue):
    """
    Create a test client with database and queue dependencies overridden.
    This is the main fixture that tests will use.
    """
    def override_get_db():
        # One session per request, like production
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_queue] = lambda: click_queue

    with TestClient(app) as test_client:
        yield test_client

    # Clean up overrides
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def drain_clicks(click_queue):
    """
    Run the click worker over everything published so far.

    Redirects only enqueue clicks; call this before asserting on analytics.
    """
    def _drain() -> int:
        worker = ClickWorker(
            queue=click_queue,
            session_factory=TestingSessionLocal,
            queue_name=settings.queue_name,
        )
        return asyncio.run(worker.drain())

    return _drain


@pytest.fixture(scope="function")
def admin_auth():
    return (settings.admin_username, settings.admin_password)


@pytest.fixture(scope="function")
def session_factory(db_session):
    """Factory for extra sessions on the test database (other writers, worker threads)"""
    return TestingSessionLocal
