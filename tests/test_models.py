"""Tests for Pydantic models."""
import pytest
from datetime import datetime
from pydantic import ValidationError


class TestTimeSessionModel:
    """Tests for TimeSession models."""

    def test_session_status_values(self):
        """SessionStatus enum has correct values."""
        from worktrack.models.time_session import SessionStatus

        assert SessionStatus.RUNNING.value == "RUNNING"
        assert SessionStatus.PAUSED.value == "PAUSED"
        assert SessionStatus.COMPLETED.value == "COMPLETED"
        assert SessionStatus.CANCELLED.value == "CANCELLED"

    def test_terminal_statuses(self):
        from worktrack.models.time_session import SessionStatus

        assert [s for s in SessionStatus if s.is_terminal] == [
            SessionStatus.COMPLETED,
            SessionStatus.CANCELLED,
        ]

    def test_create_requires_project(self):
        from worktrack.models.time_session import TimeSessionCreate

        with pytest.raises(ValidationError):
            TimeSessionCreate(description="No project")

    def test_create_minimal(self):
        from worktrack.models.time_session import TimeSessionCreate

        create = TimeSessionCreate(project_id="proj1")

        assert create.project_id == "proj1"
        assert create.description is None
        assert create.ticket_reference is None

    def test_update_has_no_lifecycle_fields(self):
        """Status and times can only change through transitions."""
        from worktrack.models.time_session import TimeSessionUpdate

        fields = set(TimeSessionUpdate.model_fields)

        assert "status" not in fields
        assert "start_time" not in fields
        assert "end_time" not in fields
        assert "paused_duration_ms" not in fields

    def test_session_serializes_id(self):
        """The Mongo _id is exposed as id."""
        from worktrack.models.time_session import TimeSession

        now = datetime(2025, 1, 1)
        session = TimeSession(
            _id="abc",
            user_id="user123",
            project_id="proj1",
            start_time=now,
            created_at=now,
            updated_at=now,
        )

        data = session.model_dump(by_alias=True)
        assert data["id"] == "abc"
        assert data["status"] == "RUNNING"
        assert data["paused_duration_ms"] == 0

    def test_negative_paused_duration_rejected(self):
        from worktrack.models.time_session import TimeSession

        now = datetime(2025, 1, 1)
        with pytest.raises(ValidationError):
            TimeSession(
                _id="abc",
                user_id="user123",
                project_id="proj1",
                start_time=now,
                paused_duration_ms=-1,
                created_at=now,
                updated_at=now,
            )


class TestBulkModels:
    """Tests for bulk request/result models."""

    def test_bulk_request_needs_ids(self):
        from worktrack.models.bulk import BulkRequest

        with pytest.raises(ValidationError):
            BulkRequest(operation="delete", session_ids=[])

    def test_bulk_request_rejects_unknown_operation(self):
        from worktrack.models.bulk import BulkRequest

        with pytest.raises(ValidationError):
            BulkRequest(operation="archive", session_ids=["a"])

    def test_bulk_failure_reason_serializes_as_code(self):
        from worktrack.errors import ErrorCode
        from worktrack.models.bulk import BulkFailure

        failure = BulkFailure(id="a", reason=ErrorCode.NOT_CONVERTIBLE)

        assert failure.model_dump(mode="json")["reason"] == "NotConvertible"


class TestErrors:
    """Tests for the error taxonomy."""

    def test_only_storage_errors_are_retryable(self):
        from worktrack import errors

        business = [
            errors.InvalidStateTransition,
            errors.AlreadyTerminal,
            errors.NotConvertible,
            errors.Unauthorized,
            errors.NotFound,
            errors.InvalidMetadata,
        ]
        assert not any(cls().retryable for cls in business)
        assert errors.StorageError().retryable
        assert errors.ConcurrentModification().retryable

    def test_already_terminal_is_distinct_from_invalid_transition(self):
        from worktrack.errors import AlreadyTerminal, InvalidStateTransition

        assert not issubclass(AlreadyTerminal, InvalidStateTransition)
        assert AlreadyTerminal().code != InvalidStateTransition().code


class TestPrincipal:
    """Tests for the authenticated caller model."""

    def test_principal_holds_user_id(self):
        from worktrack.models.principal import Principal

        assert Principal(user_id="user123").model_dump() == {"user_id": "user123"}
