"""Conversion service - turns completed sessions into work logs.

At most one work log exists per session. The application checks
``converted_work_log_id`` first; the unique index on
``work_logs.source_session_id`` backs that up at the storage layer. If a
previous attempt created the work log but died before linking it, the next
attempt hits the index, picks up the existing log and finishes the link.
"""
import logging
from datetime import datetime
from typing import Optional

from pydantic import ValidationError
from pymongo.errors import DuplicateKeyError

from worktrack.database import storage_guard
from worktrack.errors import CorruptRecord, NotFound
from worktrack.models.time_session import METADATA_FIELDS, TimeSession
from worktrack.models.work_log import WorkLog
from worktrack.services import session_state
from worktrack.services.time_session_service import TimeSessionService, parse_object_id
from worktrack.utils.duration import compute_duration, utcnow

logger = logging.getLogger(__name__)

DEFAULT_DESCRIPTION = "Time session converted to work log"
IMPORT_SOURCE = "time_session"


def work_log_document(session: TimeSession, now: datetime) -> dict:
    """
    Build the work log document for a completed session.

    Duration is computed once from the session's fixed start, end and paused
    total; metadata is copied verbatim.
    """
    doc = {
        "user_id": session.user_id,
        "project_id": session.project_id,
        "source_session_id": session.id,
        **{field: getattr(session, field) for field in METADATA_FIELDS},
        "start_time": session.start_time,
        "end_time": session.end_time,
        "duration_ms": compute_duration(
            session.start_time, session.end_time, session.paused_duration_ms
        ),
        "is_billable": True,
        "import_source": IMPORT_SOURCE,
        "created_at": now,
    }
    if not doc["description"]:
        doc["description"] = DEFAULT_DESCRIPTION
    return doc


def doc_to_work_log(doc: dict) -> WorkLog:
    try:
        return WorkLog(
            _id=str(doc["_id"]),
            user_id=doc["user_id"],
            project_id=doc["project_id"],
            source_session_id=doc.get("source_session_id"),
            description=doc.get("description"),
            module=doc.get("module"),
            task_category=doc.get("task_category"),
            work_category=doc.get("work_category"),
            severity_category=doc.get("severity_category"),
            source_category=doc.get("source_category"),
            ticket_reference=doc.get("ticket_reference"),
            start_time=doc["start_time"],
            end_time=doc["end_time"],
            duration_ms=doc["duration_ms"],
            is_billable=doc.get("is_billable", True),
            import_source=doc.get("import_source"),
            created_at=doc["created_at"],
        )
    except (KeyError, ValidationError) as e:
        logger.error("Unreadable work log document %s", doc.get("_id"), exc_info=True)
        raise CorruptRecord(f"Work log {doc.get('_id')} is unreadable") from e


class ConversionService:
    """Service for converting sessions and reading work logs."""

    def __init__(self, db, permissions=None, catalog=None):
        """Initialize service with database connection and collaborators."""
        self.db = db
        self.time_sessions = db["time_sessions"]
        self.work_logs = db["work_logs"]
        self.sessions = TimeSessionService(db, permissions=permissions, catalog=catalog)

    async def convert(
        self,
        session_id: str,
        user_id: str,
        now: Optional[datetime] = None,
    ) -> WorkLog:
        """
        Convert a COMPLETED session into a work log, exactly once.

        Retrying an already converted session returns the existing work log.

        Args:
            session_id: Session to convert
            user_id: Acting user (must own the session)
            now: Creation time of the work log (defaults to current time)

        Returns:
            The work log derived from the session

        Raises:
            Unauthorized: If the user may not convert or doesn't own the session
            NotFound: If the session doesn't exist
            NotConvertible: If the session is not COMPLETED
        """
        await self.sessions.authorize(user_id, "update")
        session = await self.sessions.get_owned(session_id, user_id)

        if session.converted_work_log_id:
            logger.info(
                "Session already converted; returning existing work log",
                extra={"user_id": user_id, "session_id": session_id},
            )
            return await self._find_for_session(session)

        session_state.ensure_convertible(session)

        work_log_doc = work_log_document(session, now or utcnow())

        with storage_guard("convert session"):
            try:
                result = await self.work_logs.insert_one(work_log_doc)
                work_log_doc["_id"] = result.inserted_id
            except DuplicateKeyError:
                # A previous attempt created it; link that one instead.
                work_log_doc = await self.work_logs.find_one({"source_session_id": session.id})
                logger.info(
                    "Recovered work log from an interrupted conversion",
                    extra={"user_id": user_id, "session_id": session_id},
                )

            await self.time_sessions.update_one(
                {"_id": parse_object_id(session.id), "converted_work_log_id": None},
                {
                    "$set": {
                        "converted_work_log_id": str(work_log_doc["_id"]),
                        "updated_at": work_log_doc["created_at"],
                    },
                    "$inc": {"version": 1},
                },
            )

        work_log = doc_to_work_log(work_log_doc)
        logger.info(
            "Converted time session to work log %s (%d ms)", work_log.id, work_log.duration_ms,
            extra={"user_id": user_id, "session_id": session_id},
        )
        return work_log

    async def _find_for_session(self, session: TimeSession) -> WorkLog:
        with storage_guard("work log lookup"):
            doc = await self.work_logs.find_one(
                {"_id": parse_object_id(session.converted_work_log_id, "Work log")}
            )
            if not doc:
                doc = await self.work_logs.find_one({"source_session_id": session.id})

        if not doc:
            raise NotFound(f"Work log {session.converted_work_log_id} not found")
        return doc_to_work_log(doc)

    async def get_work_log(self, work_log_id: str, user_id: str) -> WorkLog:
        """
        Get a work log owned by the user.

        Raises:
            NotFound: If the work log doesn't exist or belongs to someone else
        """
        await self.sessions.authorize(user_id, "read", resource="work_logs")
        object_id = parse_object_id(work_log_id, "Work log")

        with storage_guard("work log lookup"):
            doc = await self.work_logs.find_one({"_id": object_id, "user_id": user_id})

        if not doc:
            raise NotFound(f"Work log {work_log_id} not found")
        return doc_to_work_log(doc)

    async def list_work_logs(
        self,
        user_id: str,
        project_id: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> list[WorkLog]:
        """
        List a user's work logs, most recent start first.

        Args:
            user_id: User ID
            project_id: Optional project filter
            start_date: Optional lower bound on start_time
            end_date: Optional upper bound on start_time

        Returns:
            List of work logs
        """
        await self.sessions.authorize(user_id, "read", resource="work_logs")

        query: dict = {"user_id": user_id}
        if project_id:
            query["project_id"] = project_id
        if start_date or end_date:
            query["start_time"] = {}
            if start_date:
                query["start_time"]["$gte"] = start_date
            if end_date:
                query["start_time"]["$lte"] = end_date

        with storage_guard("list work logs"):
            cursor = self.work_logs.find(query).sort("start_time", -1)
            work_log_docs = await cursor.to_list(length=None)

        return [doc_to_work_log(doc) for doc in work_log_docs]
