"""Bulk service - applies one operation to many sessions independently."""
import logging
from typing import Awaitable, Callable

from worktrack.errors import ErrorCode, TimeTrackingError
from worktrack.models.bulk import BulkFailure, BulkOperation, BulkResult
from worktrack.services.conversion_service import ConversionService
from worktrack.services.time_session_service import TimeSessionService

logger = logging.getLogger(__name__)


class BulkService:
    """
    Service for bulk delete/convert.

    Items are processed one at a time and never roll each other back.
    Every distinct requested ID ends up in exactly one of ``succeeded`` or
    ``failed``; a failure carries the error kind that stopped it. Anything
    untyped is logged and reported as a storage failure.
    """

    def __init__(self, db, permissions=None, catalog=None):
        """Initialize service with database connection and collaborators."""
        self.db = db
        self.sessions = TimeSessionService(db, permissions=permissions, catalog=catalog)
        self.conversions = ConversionService(db, permissions=permissions, catalog=catalog)

    def _handler(self, operation: BulkOperation) -> Callable[[str, str], Awaitable[object]]:
        if operation is BulkOperation.DELETE:
            return self.sessions.delete_session
        return self.conversions.convert

    async def bulk_apply(
        self,
        operation: BulkOperation,
        session_ids: list[str],
        user_id: str,
    ) -> BulkResult:
        """
        Apply an operation to each session.

        Args:
            operation: delete or convert
            session_ids: Target sessions; repeated IDs get a single outcome
            user_id: Acting user

        Returns:
            BulkResult with per-item outcomes
        """
        handler = self._handler(operation)
        result = BulkResult(operation=operation)

        for session_id in dict.fromkeys(session_ids):
            try:
                await handler(session_id, user_id)
            except TimeTrackingError as e:
                result.failed.append(BulkFailure(id=session_id, reason=e.code, message=e.message))
            except Exception:
                logger.exception(
                    "Bulk %s failed unexpectedly", operation.value,
                    extra={"user_id": user_id, "session_id": session_id},
                )
                result.failed.append(BulkFailure(
                    id=session_id,
                    reason=ErrorCode.STORAGE_ERROR,
                    message="Unexpected failure",
                ))
            else:
                result.succeeded.append(session_id)

        logger.info(
            "Bulk %s: %d succeeded, %d failed",
            operation.value, len(result.succeeded), len(result.failed),
            extra={"user_id": user_id},
        )
        return result
