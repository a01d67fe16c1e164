"""Work log model definitions."""
from datetime import datetime
from typing import Optional

from pydantic import Field

from worktrack.models.time_session import SessionMetadata


class WorkLog(SessionMetadata):
    """
    Immutable record of completed work.

    duration_ms is frozen when the log is created and never recomputed.
    source_session_id points back at the originating session for audit only.
    """

    id: str = Field(alias="_id", serialization_alias="id")
    user_id: str
    project_id: str
    source_session_id: Optional[str] = None
    start_time: datetime
    end_time: datetime
    duration_ms: int = Field(ge=0)
    is_billable: bool = True
    import_source: Optional[str] = None
    created_at: datetime

    model_config = {"populate_by_name": True, "frozen": True}
