"""Shared test fixtures for print shop backend tests."""

import pytest
from datetime import datetime, timezone, timedelta
from unittest.mock import AsyncMock, MagicMock
from bson import ObjectId

from common.auth import Identity
from printshop.services.organization.access import MemberContext, Role
from tests.helpers import cursor_of


@pytest.fixture
def mock_collection():
    collection = AsyncMock()
    # Motor's find() returns a cursor synchronously (not a coroutine),
    # so use MagicMock for it. Async methods like find_one, insert_one,
    # update_one etc. stay as AsyncMock.
    collection.find = MagicMock(return_value=cursor_of([]))
    return collection


@pytest.fixture
def mock_db(mock_collection):
    db = MagicMock()
    db.__getitem__ = MagicMock(return_value=mock_collection)
    return db


# ─────────────────────────────────────────────────────────────────
# Identities and members
# ─────────────────────────────────────────────────────────────────


@pytest.fixture
def owner_identity():
    return Identity(uid="uid-owner", email="Owner@Shop.se", display_name="Olivia Owner")


@pytest.fixture
def invitee_identity():
    return Identity(uid="uid-bob", email="bob@example.com", display_name="Bob")


@pytest.fixture
def org_id():
    return str(ObjectId())


@pytest.fixture
def make_context(org_id):
    def _make(role=Role.OWNER, uid="uid-owner", email="owner@shop.se", organization_id=None):
        return MemberContext(
            uid=uid,
            email=email,
            organization_id=organization_id or org_id,
            role=Role(role),
            organization_name="Owner's Team",
        )
    return _make


@pytest.fixture
def sample_org_doc(org_id):
    """Organization with an owner, an admin and an editor, and no invites."""
    now = datetime.now(timezone.utc)
    return {
        "_id": ObjectId(org_id),
        "ownerId": "uid-owner",
        "name": "Owner's Team",
        "members": [
            {"uid": "uid-owner", "email": "owner@shop.se", "role": "owner"},
            {"uid": "uid-admin", "email": "admin@shop.se", "role": "admin"},
            {"uid": "uid-editor", "email": "editor@shop.se", "role": "editor"},
        ],
        "memberUIDs": ["uid-owner", "uid-admin", "uid-editor"],
        "pendingInvites": [],
        "pendingInviteRoles": [],
        "createdAt": now - timedelta(days=30),
        "updatedAt": now,
    }


@pytest.fixture
def pending_org_doc(sample_org_doc):
    """The same organization with bob@example.com invited as editor."""
    doc = dict(sample_org_doc)
    doc["pendingInvites"] = ["bob@example.com"]
    doc["pendingInviteRoles"] = [
        {"email": "bob@example.com", "role": "editor", "invitedBy": "uid-owner"},
    ]
    return doc
