"""
Organization service.

Owns the organization document: creation (self-provisioning), lookup by
member or pending invite, the owner-only cascading delete, and the repair of
the ``memberUIDs`` mirror of ``members``.

Document shape:
    {
        "_id": ObjectId,
        "ownerId": uid,
        "name": str,
        "members": [{"uid", "email", "role"}],
        "memberUIDs": [uid],              # always == {m.uid for m in members}
        "pendingInvites": [email],        # disjoint from member emails
        "pendingInviteRoles": [{"email", "role", "invitedBy", "invitedAt"}],
        "createdAt": datetime,
        "updatedAt": datetime,
    }
"""

import logging
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorDatabase

from common.utils.exceptions import (
    NotFoundException,
    ValidationException,
)
from printshop.services.organization.access import (
    MemberContext,
    Role,
    require_organization,
    require_role,
)

logger = logging.getLogger(__name__)


ORGANIZATIONS_COLLECTION = "organizations"

# Collections whose documents belong to one organization, in deletion order.
RESOURCE_COLLECTIONS = ("projects", "materials", "clients", "expenses")


def to_object_id(value: str, code: str = "ORGANIZATION_NOT_FOUND") -> ObjectId:
    """Parse a path id, treating malformed ids as missing documents."""
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise NotFoundException(message="Not found", code=code)


def default_organization_name(email: str) -> str:
    """Name a self-provisioned organization after the email local-part."""
    local_part = (email or "").split("@")[0] or "My"
    return f"{local_part}'s Team"


def derive_member_uids(members: List[Dict[str, Any]]) -> List[str]:
    """Member uids in member order, without duplicates."""
    uids: List[str] = []
    for member in members or []:
        uid = member.get("uid")
        if uid and uid not in uids:
            uids.append(uid)
    return uids


def find_member(organization: Dict[str, Any], uid: str) -> Optional[Dict[str, Any]]:
    for member in organization.get("members", []):
        if member.get("uid") == uid:
            return member
    return None


class OrganizationService:
    """
    Manages organization documents.
    """

    def __init__(self, db: AsyncIOMotorDatabase, delete_batch_size: int = 500):
        """
        Initialize OrganizationService.

        Args:
            db: MongoDB database connection
            delete_batch_size: Documents removed per round in cascading deletes
        """
        self._db = db
        self._orgs_collection = db[ORGANIZATIONS_COLLECTION]
        self._delete_batch_size = delete_batch_size

    @property
    def collection(self):
        return self._orgs_collection

    # ─────────────────────────────────────────────────────────────────
    # Creation and lookup
    # ─────────────────────────────────────────────────────────────────

    async def create_organization(
        self,
        owner_uid: str,
        owner_email: str,
        name: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Create a new organization owned by ``owner_uid``.

        The owner is the only member and there are no pending invites.

        Args:
            owner_uid: Identity id of the creator
            owner_email: Creator's email
            name: Organization name, defaults to "<local-part>'s Team"

        Returns:
            Created organization dict
        """
        email = (owner_email or "").strip().lower()
        org_name = (name or "").strip() or default_organization_name(email)

        if len(org_name) > 100:
            raise ValidationException(
                message="Organization name must be at most 100 characters",
                code="VALIDATION_ERROR",
            )

        now = datetime.now(timezone.utc)
        org_doc = {
            "ownerId": owner_uid,
            "name": org_name,
            "members": [{"uid": owner_uid, "email": email, "role": Role.OWNER.value}],
            "memberUIDs": [owner_uid],
            "pendingInvites": [],
            "pendingInviteRoles": [],
            "createdAt": now,
            "updatedAt": now,
        }

        result = await self._orgs_collection.insert_one(org_doc)
        org_doc["_id"] = result.inserted_id

        logger.info(f"Created organization {org_name} ({result.inserted_id}) for {owner_uid}")
        return self.format_organization(org_doc)

    async def get_organization_document(self, organization_id: str) -> Dict[str, Any]:
        """
        Get the raw organization document.

        Raises:
            NotFoundException: If it does not exist
        """
        org = await self._orgs_collection.find_one({"_id": to_object_id(organization_id)})

        if not org:
            raise NotFoundException(
                message="Organization not found",
                code="ORGANIZATION_NOT_FOUND",
            )
        return org

    async def get_organization(
        self,
        context: MemberContext,
        organization_id: str,
    ) -> Dict[str, Any]:
        """Get an organization the caller belongs to."""
        require_organization(context, organization_id)
        org = await self.get_organization_document(organization_id)
        return self.format_organization(org)

    async def find_by_member(self, uid: str) -> Optional[Dict[str, Any]]:
        """Oldest organization whose memberUIDs contains ``uid``."""
        orgs = await self._orgs_collection.find(
            {"memberUIDs": uid},
            sort=[("createdAt", 1)],
            limit=1,
        ).to_list(length=1)
        return orgs[0] if orgs else None

    async def find_by_pending_invite(
        self,
        email: str,
        exclude_id: Optional[ObjectId] = None,
    ) -> Optional[Dict[str, Any]]:
        """Oldest organization with ``email`` in pendingInvites."""
        query: Dict[str, Any] = {"pendingInvites": email.strip().lower()}
        if exclude_id is not None:
            query["_id"] = {"$ne": exclude_id}

        orgs = await self._orgs_collection.find(
            query,
            sort=[("createdAt", 1)],
            limit=1,
        ).to_list(length=1)
        return orgs[0] if orgs else None

    async def find_owned_by(self, uid: str) -> Optional[Dict[str, Any]]:
        return await self._orgs_collection.find_one({"ownerId": uid})

    # ─────────────────────────────────────────────────────────────────
    # Cascading delete
    # ─────────────────────────────────────────────────────────────────

    async def delete_organization(
        self,
        context: MemberContext,
        organization_id: str,
        confirmation_name: str,
    ) -> Dict[str, int]:
        """
        Delete an organization and every resource it owns.

        The caller must be the owner and must repeat the organization name
        exactly (case-sensitive). Resource collections are emptied in batches
        and the organization document goes last. This is NOT atomic: a failure
        part-way leaves the organization document with some collections
        already emptied. Running it again finishes the job.

        Args:
            context: Acting member
            organization_id: Organization to delete
            confirmation_name: Must equal the organization name

        Returns:
            Deleted document counts per collection
        """
        require_organization(context, organization_id)
        require_role(context, Role.OWNER, "delete the organization")

        org = await self.get_organization_document(organization_id)

        if confirmation_name != org.get("name"):
            raise ValidationException(
                message="Confirmation does not match the organization name",
                code="CONFIRMATION_MISMATCH",
            )

        counts: Dict[str, int] = {}
        for collection_name in RESOURCE_COLLECTIONS:
            counts[collection_name] = await self._delete_in_batches(
                collection_name, organization_id
            )
            logger.info(
                f"Deleted {counts[collection_name]} {collection_name} of org {organization_id}"
            )

        result = await self._orgs_collection.delete_one({"_id": org["_id"]})
        counts[ORGANIZATIONS_COLLECTION] = result.deleted_count

        logger.info(f"Deleted organization {organization_id} by owner {context.uid}")
        return counts

    async def _delete_in_batches(self, collection_name: str, organization_id: str) -> int:
        collection = self._db[collection_name]
        deleted = 0

        while True:
            batch = await collection.find(
                {"organizationId": organization_id},
                {"_id": 1},
                limit=self._delete_batch_size,
            ).to_list(length=self._delete_batch_size)

            if not batch:
                return deleted

            result = await collection.delete_many(
                {"_id": {"$in": [doc["_id"] for doc in batch]}}
            )
            deleted += result.deleted_count

            if result.deleted_count == 0:
                # Someone else removed them between find and delete
                return deleted

    # ─────────────────────────────────────────────────────────────────
    # Consistency repair
    # ─────────────────────────────────────────────────────────────────

    async def repair_member_uids(self, organization: Dict[str, Any]) -> bool:
        """
        Rebuild memberUIDs from members when it is missing or out of sync.

        Idempotent: a document already in sync is left untouched. The write
        is conditional on ``members`` being unchanged since it was read.

        Args:
            organization: Raw organization document

        Returns:
            True if the document was updated
        """
        members = organization.get("members") or []
        expected = derive_member_uids(members)
        current = organization.get("memberUIDs")

        if isinstance(current, list) and current == expected:
            return False

        result = await self._orgs_collection.update_one(
            {"_id": organization["_id"], "members": members},
            {"$set": {"memberUIDs": expected, "updatedAt": datetime.now(timezone.utc)}},
        )

        if result.modified_count:
            logger.info(f"Repaired memberUIDs of organization {organization['_id']}")
        return bool(result.modified_count)

    async def repair_all_member_uids(self) -> Dict[str, int]:
        """Run ``repair_member_uids`` over every organization."""
        checked = 0
        repaired = 0

        async for org in self._orgs_collection.find({}):
            checked += 1
            if await self.repair_member_uids(org):
                repaired += 1

        logger.info(f"memberUIDs repair: checked {checked}, repaired {repaired}")
        return {"checked": checked, "repaired": repaired}

    # ─────────────────────────────────────────────────────────────────
    # Formatting
    # ─────────────────────────────────────────────────────────────────

    def format_organization(self, org: Dict[str, Any]) -> Dict[str, Any]:
        """Format organization for response."""
        return {
            "id": str(org["_id"]),
            "name": org.get("name"),
            "ownerId": org.get("ownerId"),
            "members": [
                {"uid": m.get("uid"), "email": m.get("email"), "role": m.get("role")}
                for m in org.get("members", [])
            ],
            "memberUIDs": list(org.get("memberUIDs") or []),
            "pendingInvites": list(org.get("pendingInvites") or []),
            "pendingInviteRoles": [
                {"email": i.get("email"), "role": i.get("role"), "invitedBy": i.get("invitedBy")}
                for i in org.get("pendingInviteRoles", [])
            ],
            "createdAt": org.get("createdAt"),
            "updatedAt": org.get("updatedAt"),
        }
