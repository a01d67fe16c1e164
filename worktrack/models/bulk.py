"""Bulk operation model definitions."""
from enum import Enum

from pydantic import BaseModel, Field

from worktrack.errors import ErrorCode


class BulkOperation(str, Enum):
    """Operations that can be applied to many sessions at once."""

    DELETE = "delete"
    CONVERT = "convert"


class BulkRequest(BaseModel):
    """Bulk request body."""

    operation: BulkOperation
    session_ids: list[str] = Field(min_length=1)


class BulkFailure(BaseModel):
    """Why one item of a bulk request was not processed."""

    id: str
    reason: ErrorCode
    message: str = ""


class BulkResult(BaseModel):
    """Per-item outcome of a bulk request; every requested id appears once."""

    operation: BulkOperation
    succeeded: list[str] = []
    failed: list[BulkFailure] = []

    @property
    def total(self) -> int:
        return len(self.succeeded) + len(self.failed)
