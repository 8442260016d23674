"""Unit tests for SessionResolver (active member / pending invite / unassigned)."""

import pytest
from unittest.mock import AsyncMock, MagicMock
from pymongo.errors import ServerSelectionTimeoutError

from common.utils.exceptions import ServiceUnavailableException
from printshop.services.organization.access import Role
from printshop.services.organization.session_resolver import (
    ACTIVE_MEMBER,
    PENDING_INVITE,
    UNASSIGNED,
    SessionResolver,
)


# ─────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────


@pytest.fixture
def organizations():
    service = MagicMock()
    service.find_by_member = AsyncMock(return_value=None)
    service.find_by_pending_invite = AsyncMock(return_value=None)
    service.repair_member_uids = AsyncMock(return_value=True)
    return service


@pytest.fixture
def resolver(organizations):
    return SessionResolver(organizations)


# ─────────────────────────────────────────────────────────────────
# resolve
# ─────────────────────────────────────────────────────────────────


class TestResolve:
    @pytest.mark.asyncio
    async def test_member_resolves_to_active_member_with_role(
        self, resolver, organizations, owner_identity, sample_org_doc,
    ):
        organizations.find_by_member.return_value = sample_org_doc

        state = await resolver.resolve(owner_identity)

        assert state.status == ACTIVE_MEMBER
        assert state.role is Role.OWNER
        organizations.find_by_pending_invite.assert_not_called()

    @pytest.mark.asyncio
    async def test_legacy_role_resolves_as_viewer(
        self, resolver, organizations, owner_identity, sample_org_doc,
    ):
        sample_org_doc["members"][0]["role"] = "member"
        organizations.find_by_member.return_value = sample_org_doc

        state = await resolver.resolve(owner_identity)

        assert state.status == ACTIVE_MEMBER
        assert state.role is Role.VIEWER
        assert state.member_context().role is Role.VIEWER

    @pytest.mark.asyncio
    async def test_pending_email_resolves_to_pending_invite(
        self, resolver, organizations, invitee_identity, pending_org_doc,
    ):
        organizations.find_by_pending_invite.return_value = pending_org_doc

        state = await resolver.resolve(invitee_identity)

        assert state.status == PENDING_INVITE
        assert state.role is None
        organizations.find_by_pending_invite.assert_called_once_with("bob@example.com")

    @pytest.mark.asyncio
    async def test_email_is_matched_case_insensitively(
        self, resolver, organizations, owner_identity,
    ):
        await resolver.resolve(owner_identity)

        organizations.find_by_pending_invite.assert_called_once_with("owner@shop.se")

    @pytest.mark.asyncio
    async def test_nothing_matches_is_unassigned(self, resolver, invitee_identity):
        state = await resolver.resolve(invitee_identity)

        assert state.status == UNASSIGNED
        assert state.organization is None

    @pytest.mark.asyncio
    async def test_membership_wins_over_pending_invite(
        self, resolver, organizations, owner_identity, sample_org_doc, pending_org_doc,
    ):
        organizations.find_by_member.return_value = sample_org_doc
        organizations.find_by_pending_invite.return_value = pending_org_doc

        state = await resolver.resolve(owner_identity)

        assert state.status == ACTIVE_MEMBER

    @pytest.mark.asyncio
    async def test_store_failure_is_retryable_not_unassigned(
        self, resolver, organizations, invitee_identity,
    ):
        organizations.find_by_member.side_effect = ServerSelectionTimeoutError("no primary")

        with pytest.raises(ServiceUnavailableException) as exc_info:
            await resolver.resolve(invitee_identity)

        assert exc_info.value.code == "SESSION_UNAVAILABLE"
        assert exc_info.value.headers["Retry-After"] == "2"

    @pytest.mark.asyncio
    async def test_uid_only_in_member_uids_is_repaired_and_skipped(
        self, resolver, organizations, invitee_identity, sample_org_doc,
    ):
        broken = dict(sample_org_doc)
        broken["memberUIDs"] = sample_org_doc["memberUIDs"] + [invitee_identity.uid]
        organizations.find_by_member.return_value = broken

        state = await resolver.resolve(invitee_identity)

        organizations.repair_member_uids.assert_awaited_once_with(broken)
        assert state.status == UNASSIGNED


# ─────────────────────────────────────────────────────────────────
# SessionState
# ─────────────────────────────────────────────────────────────────


class TestSessionState:
    @pytest.mark.asyncio
    async def test_member_context(self, resolver, organizations, owner_identity, sample_org_doc, org_id):
        organizations.find_by_member.return_value = sample_org_doc

        context = await resolver.resolve_member(owner_identity)

        assert context.uid == "uid-owner"
        assert context.email == "owner@shop.se"
        assert context.organization_id == org_id
        assert context.role is Role.OWNER

    @pytest.mark.asyncio
    async def test_non_member_has_no_context(self, resolver, invitee_identity):
        assert await resolver.resolve_member(invitee_identity) is None

    @pytest.mark.asyncio
    async def test_pending_invite_payload_only_names_the_organization(
        self, resolver, organizations, invitee_identity, pending_org_doc, org_id,
    ):
        organizations.find_by_pending_invite.return_value = pending_org_doc

        data = (await resolver.resolve(invitee_identity)).to_dict()

        assert data["status"] == "pending_invite"
        assert data["organization"] is None
        assert data["invitation"] == {
            "organizationId": org_id,
            "organizationName": "Owner's Team",
        }

    @pytest.mark.asyncio
    async def test_active_member_payload(self, resolver, organizations, owner_identity, sample_org_doc):
        organizations.find_by_member.return_value = sample_org_doc

        data = (await resolver.resolve(owner_identity)).to_dict()

        assert data["role"] == "owner"
        assert data["organization"]["ownerId"] == "uid-owner"
        assert data["user"]["displayName"] == "Olivia Owner"
