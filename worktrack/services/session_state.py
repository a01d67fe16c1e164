"""Session state machine - pure lifecycle transitions.

Every function takes the current session and an explicit ``now`` and returns
a new TimeSession; nothing here touches storage or reads the clock.

    RUNNING --pause--> PAUSED --resume--> RUNNING
    RUNNING | PAUSED --stop--> COMPLETED
    RUNNING | PAUSED --cancel--> CANCELLED

Paused time is accrued when a pause interval closes: on resume, or on
stop/cancel from PAUSED. After end_time is fixed nothing accrues.
"""
from datetime import datetime

from worktrack.errors import (
    AlreadyTerminal,
    InvalidStateTransition,
    NotConvertible,
    Unauthorized,
)
from worktrack.models.time_session import (
    SessionStatus,
    TimeSession,
    TimeSessionUpdate,
)
from worktrack.utils.duration import compute_duration, to_ms

# Fields a transition or edit may write back to storage.
LIFECYCLE_FIELDS = ("status", "end_time", "paused_duration_ms", "pause_started_at")


def ensure_owner(session: TimeSession, user_id: str) -> None:
    """Reject any actor other than the session's owner."""
    if session.user_id != user_id:
        raise Unauthorized(f"User {user_id} does not own time session {session.id}")


def _closed_pause_total(session: TimeSession, now: datetime) -> int:
    """Paused total after closing the open pause interval at ``now``."""
    if session.pause_started_at is None:
        return session.paused_duration_ms
    return session.paused_duration_ms + max(0, to_ms(now - session.pause_started_at))


def pause(session: TimeSession, now: datetime) -> TimeSession:
    if session.status is not SessionStatus.RUNNING:
        raise InvalidStateTransition(
            f"Only running time sessions can be paused (status is {session.status.value})"
        )

    return session.model_copy(update={
        "status": SessionStatus.PAUSED,
        "pause_started_at": max(now, session.start_time),
    })


def resume(session: TimeSession, now: datetime) -> TimeSession:
    if session.status is not SessionStatus.PAUSED:
        raise InvalidStateTransition(
            f"Only paused time sessions can be resumed (status is {session.status.value})"
        )

    return session.model_copy(update={
        "status": SessionStatus.RUNNING,
        "paused_duration_ms": _closed_pause_total(session, now),
        "pause_started_at": None,
    })


def _finish(session: TimeSession, now: datetime, status: SessionStatus) -> TimeSession:
    if session.is_terminal:
        raise AlreadyTerminal(
            f"Time session is already {session.status.value.lower()}"
        )

    end_time = max(now, session.start_time)
    return session.model_copy(update={
        "status": status,
        "end_time": end_time,
        "paused_duration_ms": _closed_pause_total(session, end_time),
        "pause_started_at": None,
    })


def stop(session: TimeSession, now: datetime) -> TimeSession:
    return _finish(session, now, SessionStatus.COMPLETED)


def cancel(session: TimeSession, now: datetime) -> TimeSession:
    return _finish(session, now, SessionStatus.CANCELLED)


def apply_edit(session: TimeSession, update: TimeSessionUpdate) -> TimeSession:
    """
    Apply project/metadata edits to a live session.

    Only fields explicitly present in the update are changed. Lifecycle
    fields are not part of TimeSessionUpdate and cannot be edited.

    Raises:
        AlreadyTerminal: If the session is COMPLETED or CANCELLED
    """
    if session.is_terminal:
        raise AlreadyTerminal("Finished time sessions can no longer be edited")

    changes = update.model_dump(exclude_unset=True)
    if changes.get("project_id") is None:
        changes.pop("project_id", None)

    return session.model_copy(update=changes)


def ensure_convertible(session: TimeSession) -> None:
    """Only a COMPLETED session with an end time can become a work log."""
    if session.status is not SessionStatus.COMPLETED or session.end_time is None:
        raise NotConvertible(
            f"Only completed time sessions can be converted to work logs "
            f"(status is {session.status.value})"
        )


def live_elapsed(session: TimeSession, now: datetime) -> int:
    """
    Active milliseconds as they should be displayed at ``now``.

    RUNNING sessions count up to ``now``; PAUSED sessions are frozen at the
    moment the pause began; finished sessions use their end time.
    """
    if session.status is SessionStatus.RUNNING:
        until = now
    elif session.status is SessionStatus.PAUSED:
        until = session.pause_started_at or now
    else:
        until = session.end_time or now

    return compute_duration(session.start_time, until, session.paused_duration_ms)
