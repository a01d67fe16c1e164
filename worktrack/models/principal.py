"""Authenticated caller model."""
from pydantic import BaseModel


class Principal(BaseModel):
    """The authenticated caller."""

    user_id: str
