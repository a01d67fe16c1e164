"""Project catalog model definitions."""
from typing import Optional

from pydantic import BaseModel, Field


class Project(BaseModel):
    """
    A project sessions can be tracked against.

    Each category list, when non-empty, restricts the values a session or
    work log may carry for the matching metadata field.
    """

    id: str = Field(alias="_id", serialization_alias="id")
    name: str
    code: Optional[str] = None
    modules: list[str] = []
    task_categories: list[str] = []
    work_categories: list[str] = []
    severity_categories: list[str] = []
    source_categories: list[str] = []

    model_config = {"populate_by_name": True}

    def allowed_values(self, field: str) -> list[str]:
        """Allowed values for a session metadata field (empty = unrestricted)."""
        return {
            "module": self.modules,
            "task_category": self.task_categories,
            "work_category": self.work_categories,
            "severity_category": self.severity_categories,
            "source_category": self.source_categories,
        }.get(field, [])
