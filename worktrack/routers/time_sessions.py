"""Time session endpoints - lifecycle, live timers and bulk actions."""
import logging
from typing import Optional

from fastapi import (
    APIRouter,
    Depends,
    HTTPException,
    Query,
    WebSocket,
    WebSocketDisconnect,
    status,
)
from jose import JWTError

from worktrack.config import settings
from worktrack.database import get_database
from worktrack.errors import TimeTrackingError
from worktrack.models.bulk import BulkRequest, BulkResult
from worktrack.models.time_session import (
    SessionStatus,
    TimeSession,
    TimeSessionCreate,
    TimeSessionUpdate,
    TimerView,
)
from worktrack.models.work_log import WorkLog
from worktrack.routers.auth import get_current_user_id
from worktrack.routers.errors import http_error
from worktrack.services.bulk_service import BulkService
from worktrack.services.conversion_service import ConversionService
from worktrack.services.time_session_service import TimeSessionService
from worktrack.services.timer_registry import TimerRegistry
from worktrack.utils.auth import verify_access_token
from worktrack.utils.duration import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/time-sessions", tags=["time-sessions"])


@router.post("", response_model=TimeSession, status_code=status.HTTP_201_CREATED)
async def start_session(
    session_create: TimeSessionCreate,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Start a new timer.

    - Requires authentication
    - Project must exist; categories must be offered by the project
    - Several timers may run at once unless single-timer mode is enabled
    """
    service = TimeSessionService(db)
    try:
        return await service.start_session(user_id=user_id, session_create=session_create)
    except TimeTrackingError as e:
        raise http_error(e)


@router.get("", response_model=list[TimeSession])
async def list_sessions(
    status_filter: Optional[SessionStatus] = Query(None, alias="status"),
    project_id: Optional[str] = Query(None),
    search: Optional[str] = Query(None, description="Search in description"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    List time sessions for the authenticated user.

    - Results sorted by creation time descending (most recent first)
    """
    service = TimeSessionService(db)
    try:
        return await service.list_sessions(
            user_id=user_id,
            status=status_filter,
            project_id=project_id,
            search=search,
            skip=skip,
            limit=limit,
        )
    except TimeTrackingError as e:
        raise http_error(e)


@router.get("/active", response_model=list[TimerView])
async def list_active_timers(
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Running and paused timers with their elapsed time right now.

    Paused timers show the time they had when paused.
    """
    service = TimeSessionService(db)
    try:
        sessions = await service.list_active(user_id=user_id)
    except TimeTrackingError as e:
        raise http_error(e)

    return TimerRegistry(user_id).load(sessions, utcnow())


@router.websocket("/active/ws")
async def stream_active_timers(
    websocket: WebSocket,
    token: str = Query(...),
    db=Depends(get_database),
):
    """
    Push the live timer list once per tick.

    The active set is re-read from storage every few ticks so timers
    started, paused or stopped elsewhere show up.
    """
    try:
        user_id = verify_access_token(token)
    except JWTError:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    service = TimeSessionService(db)
    registry = TimerRegistry(user_id)
    ticks = 0

    async def push(views: list[TimerView]) -> None:
        nonlocal ticks
        ticks += 1
        if ticks % settings.timer_refresh_ticks == 0:
            registry.load(await service.list_active(user_id=user_id), utcnow())
            views = registry.views()
        await websocket.send_json([view.model_dump(mode="json") for view in views])

    try:
        registry.load(await service.list_active(user_id=user_id), utcnow())
        await registry.run(push, interval=settings.timer_tick_seconds)
    except WebSocketDisconnect:
        logger.debug("Timer stream closed", extra={"user_id": user_id})
    except TimeTrackingError as e:
        logger.warning("Timer stream aborted: %s", e.message, extra={"user_id": user_id})
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
    finally:
        registry.stop()


@router.post("/bulk", response_model=BulkResult)
async def bulk_apply(
    bulk_request: BulkRequest,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Delete or convert many sessions at once.

    - Each session succeeds or fails on its own; partial success is normal
    - Failures name the reason (NotFound, NotConvertible, ...)
    """
    if len(bulk_request.session_ids) > settings.bulk_max_items:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"At most {settings.bulk_max_items} sessions per request",
        )

    service = BulkService(db)
    return await service.bulk_apply(
        operation=bulk_request.operation,
        session_ids=bulk_request.session_ids,
        user_id=user_id,
    )


@router.get("/{session_id}", response_model=TimeSession)
async def get_session(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Get a specific time session by ID."""
    service = TimeSessionService(db)
    try:
        return await service.get_session(session_id=session_id, user_id=user_id)
    except TimeTrackingError as e:
        raise http_error(e)


@router.patch("/{session_id}", response_model=TimeSession)
async def update_session(
    session_id: str,
    session_update: TimeSessionUpdate,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Edit project or metadata of a running or paused session.

    - Finished sessions cannot be edited (409)
    """
    service = TimeSessionService(db)
    try:
        return await service.update_session(
            session_id=session_id,
            user_id=user_id,
            session_update=session_update,
        )
    except TimeTrackingError as e:
        raise http_error(e)


@router.post("/{session_id}/pause", response_model=TimeSession)
async def pause_session(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Pause a running session."""
    service = TimeSessionService(db)
    try:
        return await service.pause(session_id=session_id, user_id=user_id)
    except TimeTrackingError as e:
        raise http_error(e)


@router.post("/{session_id}/resume", response_model=TimeSession)
async def resume_session(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Resume a paused session."""
    service = TimeSessionService(db)
    try:
        return await service.resume(session_id=session_id, user_id=user_id)
    except TimeTrackingError as e:
        raise http_error(e)


@router.post("/{session_id}/stop", response_model=TimeSession)
async def stop_session(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Complete a running or paused session."""
    service = TimeSessionService(db)
    try:
        return await service.stop(session_id=session_id, user_id=user_id)
    except TimeTrackingError as e:
        raise http_error(e)


@router.post("/{session_id}/cancel", response_model=TimeSession)
async def cancel_session(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Cancel a running or paused session. Cancelled sessions are never converted."""
    service = TimeSessionService(db)
    try:
        return await service.cancel(session_id=session_id, user_id=user_id)
    except TimeTrackingError as e:
        raise http_error(e)


@router.post("/{session_id}/convert", response_model=WorkLog)
async def convert_session(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Convert a completed session into a work log.

    - Safe to retry: a converted session returns its existing work log
    """
    service = ConversionService(db)
    try:
        return await service.convert(session_id=session_id, user_id=user_id)
    except TimeTrackingError as e:
        raise http_error(e)


@router.delete("/{session_id}")
async def delete_session(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Delete a time session.

    - Hard delete (permanent); work logs made from it are kept
    """
    service = TimeSessionService(db)
    try:
        return await service.delete_session(session_id=session_id, user_id=user_id)
    except TimeTrackingError as e:
        raise http_error(e)
