"""Time session service - business logic for the session lifecycle."""
import logging
import re
from datetime import datetime
from typing import Awaitable, Callable, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import ValidationError
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from worktrack.config import settings
from worktrack.database import storage_guard
from worktrack.errors import (
    ConcurrentModification,
    CorruptRecord,
    InvalidStateTransition,
    NotFound,
    Unauthorized,
)
from worktrack.models.time_session import (
    METADATA_FIELDS,
    SessionStatus,
    TimeSession,
    TimeSessionCreate,
    TimeSessionUpdate,
)
from worktrack.services import session_state
from worktrack.services.catalog_service import CatalogService
from worktrack.services.permission_service import PermissionService
from worktrack.utils.duration import utcnow

logger = logging.getLogger(__name__)

RESOURCE = "time_sessions"

WRITABLE_FIELDS = session_state.LIFECYCLE_FIELDS + METADATA_FIELDS + ("project_id",)

Transition = Callable[[TimeSession, datetime], TimeSession]


def parse_object_id(value: str, kind: str = "Time session") -> ObjectId:
    """Parse an ID; a malformed ID resolves to nothing, hence NotFound."""
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise NotFound(f"{kind} {value} not found")


def doc_to_session(doc: dict) -> TimeSession:
    """
    Convert database document to TimeSession model.

    Raises:
        CorruptRecord: If the stored document is missing fields or holds
            values the model rejects
    """
    try:
        return TimeSession(
            _id=str(doc["_id"]),
            user_id=doc["user_id"],
            project_id=doc["project_id"],
            description=doc.get("description"),
            module=doc.get("module"),
            task_category=doc.get("task_category"),
            work_category=doc.get("work_category"),
            severity_category=doc.get("severity_category"),
            source_category=doc.get("source_category"),
            ticket_reference=doc.get("ticket_reference"),
            start_time=doc["start_time"],
            end_time=doc.get("end_time"),
            paused_duration_ms=doc.get("paused_duration_ms", 0),
            pause_started_at=doc.get("pause_started_at"),
            status=doc["status"],
            converted_work_log_id=doc.get("converted_work_log_id"),
            version=doc.get("version", 0),
            created_at=doc["created_at"],
            updated_at=doc["updated_at"],
        )
    except (KeyError, ValidationError) as e:
        logger.error("Unreadable time session document %s", doc.get("_id"), exc_info=True)
        raise CorruptRecord(f"Time session {doc.get('_id')} is unreadable") from e


class TimeSessionService:
    """
    Service for handling time session operations.

    Writes are compare-and-set on the session's version, so two requests
    racing on one session are applied one after the other: the loser
    re-reads and is evaluated against the winner's result.
    """

    def __init__(self, db, permissions=None, catalog=None):
        """Initialize service with database connection and collaborators."""
        self.db = db
        self.time_sessions = db["time_sessions"]
        self.permissions = permissions or PermissionService(db)
        self.catalog = catalog or CatalogService(db)

    async def authorize(self, user_id: str, action: str, resource: str = RESOURCE) -> None:
        """
        Raises:
            Unauthorized: If the user lacks the permission
        """
        if not await self.permissions.has_permission(user_id, resource, action):
            raise Unauthorized(f"Missing permission {resource}:{action}")

    async def get_owned(self, session_id: str, user_id: str) -> TimeSession:
        """
        Load a session and check the caller owns it.

        Raises:
            NotFound: If the session does not exist
            Unauthorized: If another user owns it
        """
        object_id = parse_object_id(session_id)

        with storage_guard("session lookup"):
            doc = await self.time_sessions.find_one({"_id": object_id})

        if not doc:
            raise NotFound(f"Time session {session_id} not found")

        session = doc_to_session(doc)
        session_state.ensure_owner(session, user_id)
        return session

    async def start_session(
        self,
        user_id: str,
        session_create: TimeSessionCreate,
        now: Optional[datetime] = None,
    ) -> TimeSession:
        """
        Start a new RUNNING session.

        Args:
            user_id: Owning user
            session_create: Project and optional metadata
            now: Start time (defaults to current time)

        Returns:
            Created time session

        Raises:
            Unauthorized: If the user may not create sessions
            NotFound: If the project doesn't exist
            InvalidMetadata: If a category is not offered by the project
            InvalidStateTransition: If single-timer mode is on and a timer runs

        In single-timer mode the lookup below gives a readable error in the
        common case; the partial unique index from ``ensure_indexes`` settles
        two starts that race past it.
        """
        await self.authorize(user_id, "create")
        await self.catalog.validate_metadata(session_create.project_id, session_create)

        if settings.single_active_timer:
            with storage_guard("running timer lookup"):
                running = await self.time_sessions.find_one({
                    "user_id": user_id,
                    "status": SessionStatus.RUNNING.value,
                })
            if running:
                raise InvalidStateTransition("Timer already running")

        moment = now or utcnow()
        session_doc = {
            "user_id": user_id,
            "project_id": session_create.project_id,
            **session_create.model_dump(include=set(METADATA_FIELDS)),
            "start_time": moment,
            "end_time": None,
            "paused_duration_ms": 0,
            "pause_started_at": None,
            "status": SessionStatus.RUNNING.value,
            "converted_work_log_id": None,
            "version": 0,
            "created_at": moment,
            "updated_at": moment,
        }

        with storage_guard("start session"):
            try:
                result = await self.time_sessions.insert_one(session_doc)
            except DuplicateKeyError:
                raise InvalidStateTransition("Timer already running")
        session_doc["_id"] = result.inserted_id

        logger.info(
            "Started time session on project %s", session_create.project_id,
            extra={"user_id": user_id, "session_id": str(result.inserted_id)},
        )
        return doc_to_session(session_doc)

    async def get_session(self, session_id: str, user_id: str) -> TimeSession:
        await self.authorize(user_id, "read")
        return await self.get_owned(session_id, user_id)

    async def list_sessions(
        self,
        user_id: str,
        status: Optional[SessionStatus] = None,
        project_id: Optional[str] = None,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> list[TimeSession]:
        """
        List a user's sessions, newest first.

        Args:
            user_id: User ID
            status: Optional status filter
            project_id: Optional project filter
            search: Optional case-insensitive description search
            skip: Number of sessions to skip
            limit: Maximum number of sessions returned

        Returns:
            List of time sessions
        """
        await self.authorize(user_id, "read")

        query: dict = {"user_id": user_id}
        if status:
            query["status"] = status.value
        if project_id:
            query["project_id"] = project_id
        if search:
            query["description"] = {"$regex": re.escape(search), "$options": "i"}

        with storage_guard("list sessions"):
            cursor = self.time_sessions.find(query).sort("created_at", -1).skip(skip).limit(limit)
            session_docs = await cursor.to_list(length=None)

        return [doc_to_session(doc) for doc in session_docs]

    async def list_active(self, user_id: str) -> list[TimeSession]:
        """Sessions that are RUNNING or PAUSED, oldest first."""
        await self.authorize(user_id, "read")

        query = {
            "user_id": user_id,
            "status": {"$in": [SessionStatus.RUNNING.value, SessionStatus.PAUSED.value]},
        }
        with storage_guard("list active sessions"):
            cursor = self.time_sessions.find(query).sort("start_time", 1)
            session_docs = await cursor.to_list(length=None)

        return [doc_to_session(doc) for doc in session_docs]

    async def pause(self, session_id: str, user_id: str, now: Optional[datetime] = None) -> TimeSession:
        return await self._transition(session_id, user_id, "pause", session_state.pause, now)

    async def resume(self, session_id: str, user_id: str, now: Optional[datetime] = None) -> TimeSession:
        return await self._transition(session_id, user_id, "resume", session_state.resume, now)

    async def stop(self, session_id: str, user_id: str, now: Optional[datetime] = None) -> TimeSession:
        return await self._transition(session_id, user_id, "stop", session_state.stop, now)

    async def cancel(self, session_id: str, user_id: str, now: Optional[datetime] = None) -> TimeSession:
        return await self._transition(session_id, user_id, "cancel", session_state.cancel, now)

    async def update_session(
        self,
        session_id: str,
        user_id: str,
        session_update: TimeSessionUpdate,
        now: Optional[datetime] = None,
    ) -> TimeSession:
        """
        Edit project and metadata of a RUNNING or PAUSED session.

        Raises:
            AlreadyTerminal: If the session is finished
            NotFound: If the session or the new project doesn't exist
            InvalidMetadata: If a category is not offered by the project
        """

        async def validate(updated: TimeSession) -> None:
            await self.catalog.validate_metadata(updated.project_id, updated)

        return await self._transition(
            session_id,
            user_id,
            "edit",
            lambda session, _: session_state.apply_edit(session, session_update),
            now,
            validate=validate,
        )

    async def delete_session(self, session_id: str, user_id: str) -> dict:
        """
        Delete a session in any state.

        Work logs converted from it are kept.

        Returns:
            Dictionary with deleted_count
        """
        await self.authorize(user_id, "delete")
        session = await self.get_owned(session_id, user_id)

        with storage_guard("delete session"):
            result = await self.time_sessions.delete_one({"_id": ObjectId(session.id)})

        if result.deleted_count == 0:
            raise NotFound(f"Time session {session_id} not found")

        logger.info("Deleted time session", extra={"user_id": user_id, "session_id": session_id})
        return {"deleted_count": result.deleted_count}

    async def _transition(
        self,
        session_id: str,
        user_id: str,
        action: str,
        apply: Transition,
        now: Optional[datetime],
        validate: Optional[Callable[[TimeSession], Awaitable[None]]] = None,
    ) -> TimeSession:
        await self.authorize(user_id, "update")

        for attempt in range(1, settings.transition_max_attempts + 1):
            current = await self.get_owned(session_id, user_id)
            moment = now or utcnow()
            updated = apply(current, moment)
            if validate is not None:
                await validate(updated)

            changes = {field: getattr(updated, field) for field in WRITABLE_FIELDS}
            changes["status"] = updated.status.value
            changes["updated_at"] = moment

            with storage_guard(action):
                try:
                    doc = await self.time_sessions.find_one_and_update(
                        {"_id": ObjectId(current.id), "version": current.version},
                        {"$set": changes, "$inc": {"version": 1}},
                        return_document=ReturnDocument.AFTER,
                    )
                except DuplicateKeyError:
                    # only the single-timer index can reject a transition
                    raise InvalidStateTransition("Another timer is already running")

            if doc is not None:
                logger.info(
                    "Time session %s: %s -> %s", action,
                    current.status.value, updated.status.value,
                    extra={"user_id": user_id, "session_id": session_id},
                )
                return doc_to_session(doc)

            logger.info(
                "Version conflict on %s (attempt %d)", action, attempt,
                extra={"user_id": user_id, "session_id": session_id},
            )

        raise ConcurrentModification(
            f"Time session {session_id} kept changing; {action} not applied"
        )
