"""Tests for index setup and storage error translation."""
import pytest
from pymongo.errors import PyMongoError

from worktrack.errors import StorageError


def index_names(collection) -> list[str]:
    return [call.kwargs["name"] for call in collection.create_index.await_args_list]


@pytest.mark.asyncio
class TestEnsureIndexes:
    """Tests for ensure_indexes."""

    async def test_one_work_log_per_session(self, mock_db):
        from worktrack.database import ensure_indexes

        await ensure_indexes(mock_db)

        kwargs = mock_db["work_logs"].create_index.await_args.kwargs
        assert kwargs["unique"] is True
        assert kwargs["partialFilterExpression"] == {"source_session_id": {"$type": "string"}}

    async def test_no_running_index_by_default(self, mock_db):
        from worktrack.database import ensure_indexes

        await ensure_indexes(mock_db)

        assert "one_running_per_user" not in index_names(mock_db["time_sessions"])

    async def test_single_active_timer_mode_adds_running_index(self, mock_db, monkeypatch):
        from worktrack.config import settings
        from worktrack.database import ensure_indexes

        monkeypatch.setattr(settings, "single_active_timer", True)

        await ensure_indexes(mock_db)

        calls = {
            call.kwargs["name"]: call
            for call in mock_db["time_sessions"].create_index.await_args_list
        }
        running = calls["one_running_per_user"]
        assert running.args[0] == [("user_id", 1)]
        assert running.kwargs["unique"] is True
        assert running.kwargs["partialFilterExpression"] == {"status": "RUNNING"}


def test_storage_guard_translates_driver_errors():
    from worktrack.database import storage_guard

    with pytest.raises(StorageError, match="list sessions"):
        with storage_guard("list sessions"):
            raise PyMongoError("connection reset")
