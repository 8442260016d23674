"""Unit tests for MembershipService (team listing, role change, removal)."""

import pytest

from common.utils.exceptions import (
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from printshop.services.organization.access import Role
from printshop.services.organization.membership_service import MembershipService
from printshop.services.organization.organization_service import OrganizationService
from tests.helpers import write_result


@pytest.fixture
def service(mock_db):
    return MembershipService(OrganizationService(mock_db))


# ─────────────────────────────────────────────────────────────────
# get_team
# ─────────────────────────────────────────────────────────────────


class TestGetTeam:
    @pytest.mark.asyncio
    async def test_viewer_can_read_team(self, service, mock_collection, make_context, pending_org_doc, org_id):
        mock_collection.find_one.return_value = pending_org_doc

        team = await service.get_team(make_context(Role.VIEWER, uid="uid-viewer"), org_id)

        assert team["organizationId"] == org_id
        assert [m["uid"] for m in team["members"]] == ["uid-owner", "uid-admin", "uid-editor"]
        assert team["pendingInvites"] == [
            {"email": "bob@example.com", "role": "editor", "invitedBy": "uid-owner"},
        ]

    @pytest.mark.asyncio
    async def test_invites_without_recorded_role_show_viewer(
        self, service, mock_collection, make_context, sample_org_doc, org_id,
    ):
        doc = dict(sample_org_doc)
        doc["pendingInvites"] = ["legacy@x.com"]
        mock_collection.find_one.return_value = doc

        team = await service.get_team(make_context(), org_id)

        assert team["pendingInvites"] == [{"email": "legacy@x.com", "role": "viewer", "invitedBy": None}]

    @pytest.mark.asyncio
    async def test_legacy_and_recorded_invites_are_both_listed(
        self, service, mock_collection, make_context, pending_org_doc, org_id,
    ):
        doc = dict(pending_org_doc)
        doc["pendingInvites"] = ["legacy@x.com", "bob@example.com"]
        mock_collection.find_one.return_value = doc

        team = await service.get_team(make_context(), org_id)

        assert team["pendingInvites"] == [
            {"email": "legacy@x.com", "role": "viewer", "invitedBy": None},
            {"email": "bob@example.com", "role": "editor", "invitedBy": "uid-owner"},
        ]


# ─────────────────────────────────────────────────────────────────
# change_role
# ─────────────────────────────────────────────────────────────────


class TestChangeRole:
    @pytest.mark.asyncio
    async def test_owner_changes_member_role(self, service, mock_collection, make_context, sample_org_doc, org_id):
        mock_collection.find_one.return_value = sample_org_doc
        mock_collection.update_one.return_value = write_result()

        member = await service.change_role(make_context(), org_id, "uid-editor", "viewer")

        assert member == {"uid": "uid-editor", "email": "editor@shop.se", "role": "viewer"}
        query, update = mock_collection.update_one.call_args[0]
        assert query["members"] == {"$elemMatch": {"uid": "uid-editor", "role": {"$ne": "owner"}}}
        assert update["$set"]["members.$.role"] == "viewer"

    @pytest.mark.asyncio
    async def test_admin_cannot_change_roles(self, service, mock_collection, make_context, org_id):
        context = make_context(Role.ADMIN, uid="uid-admin")

        with pytest.raises(ForbiddenException) as exc_info:
            await service.change_role(context, org_id, "uid-editor", "viewer")

        assert exc_info.value.code == "OWNER_ONLY"
        mock_collection.update_one.assert_not_called()

    @pytest.mark.asyncio
    async def test_owner_cannot_change_own_role(self, service, mock_collection, make_context, org_id):
        with pytest.raises(ForbiddenException) as exc_info:
            await service.change_role(make_context(), org_id, "uid-owner", "admin")

        assert exc_info.value.code == "CANNOT_MODIFY_SELF"
        mock_collection.update_one.assert_not_called()

    @pytest.mark.asyncio
    async def test_owner_row_is_protected(self, service, mock_collection, make_context, sample_org_doc, org_id):
        doc = dict(sample_org_doc)
        doc["members"] = sample_org_doc["members"] + [
            {"uid": "uid-second-owner", "email": "x@shop.se", "role": "owner"},
        ]
        mock_collection.find_one.return_value = doc

        with pytest.raises(ForbiddenException) as exc_info:
            await service.change_role(make_context(), org_id, "uid-second-owner", "viewer")

        assert exc_info.value.code == "CANNOT_MODIFY_OWNER"

    @pytest.mark.asyncio
    async def test_cannot_grant_ownership(self, service, mock_collection, make_context, org_id):
        with pytest.raises(ValidationException):
            await service.change_role(make_context(), org_id, "uid-editor", "owner")
        mock_collection.find_one.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_member(self, service, mock_collection, make_context, sample_org_doc, org_id):
        mock_collection.find_one.return_value = sample_org_doc

        with pytest.raises(NotFoundException) as exc_info:
            await service.change_role(make_context(), org_id, "uid-nobody", "viewer")

        assert exc_info.value.code == "MEMBER_NOT_FOUND"


# ─────────────────────────────────────────────────────────────────
# remove_member
# ─────────────────────────────────────────────────────────────────


class TestRemoveMember:
    @pytest.mark.asyncio
    async def test_members_and_member_uids_lose_uid_together(
        self, service, mock_collection, make_context, sample_org_doc, org_id,
    ):
        mock_collection.find_one.return_value = sample_org_doc
        mock_collection.update_one.return_value = write_result()

        await service.remove_member(make_context(), org_id, "uid-admin")

        mock_collection.update_one.assert_called_once()
        update = mock_collection.update_one.call_args[0][1]
        assert update["$pull"] == {"members": {"uid": "uid-admin"}, "memberUIDs": "uid-admin"}

    @pytest.mark.asyncio
    async def test_owner_cannot_be_removed(self, service, mock_collection, make_context, sample_org_doc, org_id):
        mock_collection.find_one.return_value = sample_org_doc
        context = make_context(uid="uid-acting")

        with pytest.raises(ForbiddenException) as exc_info:
            await service.remove_member(context, org_id, "uid-owner")

        assert exc_info.value.code == "CANNOT_MODIFY_OWNER"
        mock_collection.update_one.assert_not_called()

    @pytest.mark.asyncio
    async def test_concurrent_removal_is_not_found(
        self, service, mock_collection, make_context, sample_org_doc, org_id,
    ):
        mock_collection.find_one.return_value = sample_org_doc
        mock_collection.update_one.return_value = write_result(modified=0)

        with pytest.raises(NotFoundException):
            await service.remove_member(make_context(), org_id, "uid-editor")
