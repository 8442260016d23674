"""
Role-gated CRUD for clients, projects, materials and expenses.

Every query carries the caller's organizationId, so an id belonging to another
organization behaves exactly like a missing one. Writes need editor or above
and are validated against the resource models before anything is stored.
"""

import logging
from datetime import datetime, timezone
from typing import List, Dict, Any

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel, ValidationError

from common.utils.exceptions import (
    NotFoundException,
    ValidationException,
)
from printshop.schemas.resources import (
    RESOURCE_MODELS,
    ProjectStatus,
    ResourceKind,
)
from printshop.services.organization.access import MemberContext, Role, require_role

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)

# Fields the service owns; payloads cannot set them.
SYSTEM_FIELDS = ("_id", "id", "organizationId", "createdBy", "createdAt", "updatedAt", "pricePerGram")


def parse_kind(kind) -> ResourceKind:
    try:
        return ResourceKind(kind)
    except ValueError:
        raise NotFoundException(
            message=f"Unknown resource type: {kind}",
            code="UNKNOWN_RESOURCE",
        )


def created_at_key(doc: Dict[str, Any]) -> datetime:
    """Sort key for createdAt, tolerating missing and naive values."""
    created_at = doc.get("createdAt")
    if not isinstance(created_at, datetime):
        return _EPOCH
    # Handle both timezone-aware and naive datetimes from MongoDB
    if created_at.tzinfo is None:
        return created_at.replace(tzinfo=timezone.utc)
    return created_at


def sort_newest_first(docs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return sorted(docs, key=created_at_key, reverse=True)


def validate_payload(model: type, data: Dict[str, Any]) -> BaseModel:
    """
    Validate a payload against a resource model.

    Raises:
        ValidationException: With one entry per failing field
    """
    try:
        return model.model_validate(data)
    except ValidationError as e:
        errors = [
            {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
            for err in e.errors()
        ]
        raise ValidationException(
            message="Invalid resource data",
            code="VALIDATION_ERROR",
            errors=errors,
        )


class ResourceService:
    """
    Organization-scoped resource storage.
    """

    def __init__(self, db: AsyncIOMotorDatabase):
        """
        Initialize ResourceService.

        Args:
            db: MongoDB database connection
        """
        self._db = db

    def collection(self, kind: ResourceKind):
        return self._db[kind.value]

    def query_for(self, context: MemberContext) -> Dict[str, Any]:
        """Filter selecting the caller's organization."""
        return {"organizationId": context.organization_id}

    def document_filter(self, context: MemberContext, kind: ResourceKind, resource_id: str) -> Dict[str, Any]:
        try:
            object_id = ObjectId(resource_id)
        except (InvalidId, TypeError):
            raise self._not_found(kind)
        return {"_id": object_id, "organizationId": context.organization_id}

    def _not_found(self, kind: ResourceKind) -> NotFoundException:
        singular = kind.value.rstrip("s").upper()
        return NotFoundException(
            message=f"{singular.capitalize()} not found",
            code=f"{singular}_NOT_FOUND",
        )

    # ─────────────────────────────────────────────────────────────────
    # Reads (any member)
    # ─────────────────────────────────────────────────────────────────

    async def list_resources(self, context: MemberContext, kind) -> List[Dict[str, Any]]:
        """
        List the organization's resources of one kind, newest first.

        Args:
            context: Acting member
            kind: clients, projects, materials or expenses

        Returns:
            List of formatted resources
        """
        kind = parse_kind(kind)
        docs = await self.collection(kind).find(self.query_for(context)).to_list(length=None)
        return [self.format_resource(doc) for doc in sort_newest_first(docs)]

    async def get_resource(self, context: MemberContext, kind, resource_id: str) -> Dict[str, Any]:
        kind = parse_kind(kind)
        doc = await self.collection(kind).find_one(self.document_filter(context, kind, resource_id))
        if not doc:
            raise self._not_found(kind)
        return self.format_resource(doc)

    # ─────────────────────────────────────────────────────────────────
    # Writes (editor and above)
    # ─────────────────────────────────────────────────────────────────

    def _prepare(self, kind: ResourceKind, data: Dict[str, Any]) -> Dict[str, Any]:
        payload = {k: v for k, v in (data or {}).items() if k not in SYSTEM_FIELDS}
        model = validate_payload(RESOURCE_MODELS[kind], payload)
        values = model.model_dump(mode="json")

        if kind is ResourceKind.MATERIALS:
            values["pricePerGram"] = values["pricePerKg"] / 1000

        return values

    async def create_resource(
        self,
        context: MemberContext,
        kind,
        data: Dict[str, Any],
    ) -> Dict[str, Any]:
        """
        Create a resource in the caller's organization.

        Raises:
            ForbiddenException: For viewers
            ValidationException: For invalid data
        """
        kind = parse_kind(kind)
        require_role(context, Role.EDITOR, f"create {kind.value}")

        values = self._prepare(kind, data)
        now = datetime.now(timezone.utc)
        doc = {
            **values,
            "organizationId": context.organization_id,
            "createdBy": context.uid,
            "createdAt": now,
            "updatedAt": now,
        }

        result = await self.collection(kind).insert_one(doc)
        doc["_id"] = result.inserted_id

        logger.info(f"Created {kind.value} {result.inserted_id} in {context.organization_id}")
        return self.format_resource(doc)

    async def update_resource(
        self,
        context: MemberContext,
        kind,
        resource_id: str,
        data: Dict[str, Any],
    ) -> Dict[str, Any]:
        """
        Update fields of a resource.

        The patch is merged over the stored document and the result validated
        as a whole, so required fields cannot be cleared.
        """
        kind = parse_kind(kind)
        require_role(context, Role.EDITOR, f"update {kind.value}")

        doc_filter = self.document_filter(context, kind, resource_id)
        existing = await self.collection(kind).find_one(doc_filter)
        if not existing:
            raise self._not_found(kind)

        patch = {k: v for k, v in (data or {}).items() if k not in SYSTEM_FIELDS}
        merged = {k: v for k, v in existing.items() if k not in SYSTEM_FIELDS}
        merged.update(patch)
        values = self._prepare(kind, merged)

        changed = {k: v for k, v in values.items() if k in patch or k == "pricePerGram"}
        changed["updatedAt"] = datetime.now(timezone.utc)

        result = await self.collection(kind).update_one(doc_filter, {"$set": changed})
        if result.matched_count == 0:
            raise self._not_found(kind)

        logger.info(f"Updated {kind.value} {resource_id} in {context.organization_id}")
        return self.format_resource({**existing, **changed})

    async def delete_resource(self, context: MemberContext, kind, resource_id: str) -> None:
        kind = parse_kind(kind)
        require_role(context, Role.EDITOR, f"delete {kind.value}")

        result = await self.collection(kind).delete_one(
            self.document_filter(context, kind, resource_id)
        )
        if result.deleted_count == 0:
            raise self._not_found(kind)

        logger.info(f"Deleted {kind.value} {resource_id} from {context.organization_id}")

    async def update_project_status(
        self,
        context: MemberContext,
        project_id: str,
        status,
    ) -> Dict[str, Any]:
        """
        Move a project between queued, in_progress and completed.

        Raises:
            ValidationException: For an unknown status
        """
        require_role(context, Role.EDITOR, "update projects")

        try:
            new_status = ProjectStatus(status)
        except ValueError:
            raise ValidationException(
                message="Status must be one of: queued, in_progress, completed",
                code="INVALID_STATUS",
            )

        kind = ResourceKind.PROJECTS
        doc_filter = self.document_filter(context, kind, project_id)
        now = datetime.now(timezone.utc)

        result = await self.collection(kind).update_one(
            doc_filter,
            {"$set": {"status": new_status.value, "updatedAt": now}},
        )
        if result.matched_count == 0:
            raise self._not_found(kind)

        logger.info(f"Project {project_id} moved to {new_status.value}")
        return await self.get_resource(context, kind, project_id)

    # ─────────────────────────────────────────────────────────────────
    # Formatting
    # ─────────────────────────────────────────────────────────────────

    def format_resource(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        """Format resource for response."""
        formatted = {k: v for k, v in doc.items() if k != "_id"}
        formatted["id"] = str(doc["_id"])
        return formatted
