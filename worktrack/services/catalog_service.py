"""Catalog service - projects and their category vocabularies."""
from bson import ObjectId
from bson.errors import InvalidId

from worktrack.database import storage_guard
from worktrack.errors import InvalidMetadata, NotFound
from worktrack.models.project import Project
from worktrack.models.time_session import SessionMetadata

CATEGORY_FIELDS = (
    "module",
    "task_category",
    "work_category",
    "severity_category",
    "source_category",
)


class CatalogService:
    """Read-only access to the project catalog."""

    def __init__(self, db):
        """Initialize service with database connection."""
        self.db = db
        self.projects = db["projects"]

    def _doc_to_project(self, doc: dict) -> Project:
        return Project(
            _id=str(doc["_id"]),
            name=doc["name"],
            code=doc.get("code"),
            modules=doc.get("modules", []),
            task_categories=doc.get("task_categories", []),
            work_categories=doc.get("work_categories", []),
            severity_categories=doc.get("severity_categories", []),
            source_categories=doc.get("source_categories", []),
        )

    async def get_project(self, project_id: str) -> Project:
        """
        Get a project by ID.

        Raises:
            NotFound: If the ID is malformed or no such project exists
        """
        try:
            object_id = ObjectId(project_id)
        except (InvalidId, TypeError):
            raise NotFound(f"Project {project_id} not found")

        with storage_guard("project lookup"):
            doc = await self.projects.find_one({"_id": object_id})

        if not doc:
            raise NotFound(f"Project {project_id} not found")

        return self._doc_to_project(doc)

    async def validate_metadata(
        self,
        project_id: str,
        metadata: SessionMetadata,
    ) -> Project:
        """
        Check category values against the project's vocabularies.

        Args:
            project_id: Target project
            metadata: Session metadata to check

        Returns:
            The project

        Raises:
            NotFound: If the project does not exist
            InvalidMetadata: If a category value is not offered by the project
        """
        project = await self.get_project(project_id)

        for field in CATEGORY_FIELDS:
            value = getattr(metadata, field)
            allowed = project.allowed_values(field)
            if value is not None and allowed and value not in allowed:
                raise InvalidMetadata(
                    f"{value!r} is not a valid {field} for project {project.name}"
                )

        return project
