"""Work log endpoints - read access to converted work."""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from worktrack.database import get_database
from worktrack.errors import TimeTrackingError
from worktrack.models.work_log import WorkLog
from worktrack.routers.auth import get_current_user_id
from worktrack.routers.errors import http_error
from worktrack.services.conversion_service import ConversionService


router = APIRouter(prefix="/work-logs", tags=["work-logs"])


@router.get("", response_model=list[WorkLog])
async def list_work_logs(
    project_id: Optional[str] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    List work logs for the authenticated user.

    - Optional filters: project_id, start_date, end_date
    - Results sorted by start_time descending (most recent first)
    """
    service = ConversionService(db)
    try:
        return await service.list_work_logs(
            user_id=user_id,
            project_id=project_id,
            start_date=start_date,
            end_date=end_date,
        )
    except TimeTrackingError as e:
        raise http_error(e)


@router.get("/{work_log_id}", response_model=WorkLog)
async def get_work_log(
    work_log_id: str,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Get a specific work log by ID."""
    service = ConversionService(db)
    try:
        return await service.get_work_log(work_log_id=work_log_id, user_id=user_id)
    except TimeTrackingError as e:
        raise http_error(e)
