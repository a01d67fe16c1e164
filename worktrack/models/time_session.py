"""Time session model definitions."""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class SessionStatus(str, Enum):
    """Lifecycle states of a time session."""

    RUNNING = "RUNNING"
    PAUSED = "PAUSED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionStatus.COMPLETED, SessionStatus.CANCELLED)


class SessionMetadata(BaseModel):
    """Descriptive and classification fields shared with work logs."""

    description: Optional[str] = None
    module: Optional[str] = None
    task_category: Optional[str] = None
    work_category: Optional[str] = None
    severity_category: Optional[str] = None
    source_category: Optional[str] = None
    ticket_reference: Optional[str] = None


METADATA_FIELDS = tuple(SessionMetadata.model_fields)


class TimeSessionCreate(SessionMetadata):
    """Request body for starting a session."""

    project_id: str


class TimeSessionUpdate(SessionMetadata):
    """Editable fields while a session is RUNNING or PAUSED."""

    project_id: Optional[str] = None


class TimeSession(SessionMetadata):
    """Full time session model with database fields."""

    id: str = Field(alias="_id", serialization_alias="id")
    user_id: str
    project_id: str
    start_time: datetime
    end_time: Optional[datetime] = None
    paused_duration_ms: int = Field(default=0, ge=0)
    pause_started_at: Optional[datetime] = None
    status: SessionStatus = SessionStatus.RUNNING
    converted_work_log_id: Optional[str] = None
    version: int = 0
    created_at: datetime
    updated_at: datetime

    model_config = {"populate_by_name": True}

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


class TimerView(BaseModel):
    """One row of a user's live timer list."""

    session_id: str
    project_id: str
    description: Optional[str] = None
    status: SessionStatus
    elapsed_ms: int
    display: str
