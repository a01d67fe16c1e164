"""Permission service - answers whether a user may act on a resource."""
import logging

from worktrack.config import settings
from worktrack.database import storage_guard

logger = logging.getLogger(__name__)


class PermissionService:
    """
    Looks up grants for a user.

    Grants are stored as ``"resource:action"`` strings in the ``permissions``
    collection, one document per user. Users without a document get
    ``settings.default_permissions``.
    """

    def __init__(self, db):
        """Initialize service with database connection."""
        self.db = db
        self.permissions = db["permissions"]

    async def has_permission(self, user_id: str, resource: str, action: str) -> bool:
        with storage_guard("permission lookup"):
            doc = await self.permissions.find_one({"user_id": user_id})

        grants = doc.get("grants", []) if doc else settings.default_permissions
        allowed = f"{resource}:{action}" in grants or f"{resource}:*" in grants

        if not allowed:
            logger.info(
                "Permission denied: %s:%s", resource, action,
                extra={"user_id": user_id},
            )
        return allowed
