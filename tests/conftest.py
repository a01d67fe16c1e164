"""Pytest configuration and fixtures."""
import os

os.environ.setdefault("JWT_SECRET", "test-secret")

from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from bson import ObjectId
from httpx import AsyncClient, ASGITransport
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import PyMongoError

from worktrack.config import settings
from worktrack.database import ensure_indexes
from worktrack.main import app
from worktrack.utils.auth import create_access_token

T0 = datetime(2025, 3, 10, 9, 0, 0)


def session_doc(**overrides) -> dict:
    """A stored RUNNING session document owned by user123."""
    doc = {
        "_id": ObjectId(),
        "user_id": "user123",
        "project_id": str(ObjectId()),
        "description": "Fix login bug",
        "module": "auth",
        "task_category": None,
        "work_category": None,
        "severity_category": None,
        "source_category": None,
        "ticket_reference": "PROJ-42",
        "start_time": T0,
        "end_time": None,
        "paused_duration_ms": 0,
        "pause_started_at": None,
        "status": "RUNNING",
        "converted_work_log_id": None,
        "version": 0,
        "created_at": T0,
        "updated_at": T0,
    }
    doc.update(overrides)
    return doc


def completed_doc(**overrides) -> dict:
    """A stored COMPLETED session: 20 minutes wall clock, 5 paused."""
    values = {
        "status": "COMPLETED",
        "end_time": T0 + timedelta(minutes=20),
        "paused_duration_ms": 5 * 60_000,
        "version": 3,
    }
    values.update(overrides)
    return session_doc(**values)


@pytest.fixture
def allow_all():
    """Permission collaborator that grants everything."""
    permissions = MagicMock()
    permissions.has_permission = AsyncMock(return_value=True)
    return permissions


@pytest.fixture
def catalog():
    """Catalog collaborator that accepts every project and category."""
    catalog = MagicMock()
    catalog.validate_metadata = AsyncMock()
    return catalog


@pytest.fixture
def mock_db():
    """A Motor-like database whose collections are AsyncMocks."""
    collections = {
        "time_sessions": AsyncMock(),
        "work_logs": AsyncMock(),
        "projects": AsyncMock(),
        "permissions": AsyncMock(),
    }
    db = MagicMock()
    db.__getitem__.side_effect = lambda key: collections[key]
    return db


@pytest_asyncio.fixture
async def app_client():
    """
    Create a test client with a clean test database.

    This fixture:
    - Creates a test database connection (skips when MongoDB is unreachable)
    - Yields an async HTTP client for testing
    - Cleans up the test database after each test
    """
    test_client = AsyncIOMotorClient(settings.mongodb_url, serverSelectionTimeoutMS=1000)
    try:
        await test_client.admin.command("ping")
    except PyMongoError:
        test_client.close()
        pytest.skip("MongoDB is not reachable")

    test_db_name = f"{settings.mongodb_db_name}_test"
    test_db = test_client[test_db_name]
    await ensure_indexes(test_db)

    # Override the database dependency
    from worktrack.database import database
    original_db = database.db
    database.db = test_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        client.test_db = test_db
        yield client

    # Cleanup: drop test database
    await test_client.drop_database(test_db_name)

    database.db = original_db
    test_client.close()


def auth_headers(user_id: str = "user123") -> dict:
    """Bearer headers for a user."""
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}
