"""Unit tests for ResourceService (organization-scoped, role-gated CRUD)."""

import pytest
from datetime import datetime, timezone, timedelta
from bson import ObjectId

from common.utils.exceptions import (
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from printshop.services.organization.access import Role
from printshop.services.resources.resource_service import ResourceService
from tests.helpers import cursor_of, write_result


@pytest.fixture
def service(mock_db):
    return ResourceService(mock_db)


@pytest.fixture
def material_doc(org_id):
    now = datetime.now(timezone.utc)
    return {
        "_id": ObjectId(),
        "organizationId": org_id,
        "name": "Galaxy Black",
        "brand": "Prusament",
        "type": "PLA",
        "pricePerKg": 20.0,
        "pricePerGram": 0.02,
        "stockInGrams": 800,
        "reorderThreshold": 200,
        "createdAt": now,
        "updatedAt": now,
    }


# ─────────────────────────────────────────────────────────────────
# Reads
# ─────────────────────────────────────────────────────────────────


class TestListResources:
    @pytest.mark.asyncio
    async def test_filters_by_organization_and_sorts_newest_first(
        self, service, mock_collection, make_context, org_id,
    ):
        now = datetime.now(timezone.utc)
        older = {"_id": ObjectId(), "name": "Old", "createdAt": now - timedelta(days=2)}
        naive = {"_id": ObjectId(), "name": "Naive", "createdAt": (now - timedelta(days=1)).replace(tzinfo=None)}
        newer = {"_id": ObjectId(), "name": "New", "createdAt": now}
        mock_collection.find.return_value = cursor_of([older, newer, naive])

        items = await service.list_resources(make_context(Role.VIEWER), "clients")

        assert mock_collection.find.call_args[0][0] == {"organizationId": org_id}
        assert [i["name"] for i in items] == ["New", "Naive", "Old"]
        assert items[0]["id"] == str(newer["_id"])
        assert "_id" not in items[0]

    @pytest.mark.asyncio
    async def test_unknown_kind(self, service, make_context):
        with pytest.raises(NotFoundException) as exc_info:
            await service.list_resources(make_context(), "invoices")
        assert exc_info.value.code == "UNKNOWN_RESOURCE"


class TestGetResource:
    @pytest.mark.asyncio
    async def test_other_organization_looks_missing(self, service, mock_collection, make_context, org_id):
        mock_collection.find_one.return_value = None
        resource_id = str(ObjectId())

        with pytest.raises(NotFoundException) as exc_info:
            await service.get_resource(make_context(), "projects", resource_id)

        assert exc_info.value.code == "PROJECT_NOT_FOUND"
        assert mock_collection.find_one.call_args[0][0] == {
            "_id": ObjectId(resource_id),
            "organizationId": org_id,
        }

    @pytest.mark.asyncio
    async def test_malformed_id_is_not_found(self, service, mock_collection, make_context):
        with pytest.raises(NotFoundException):
            await service.get_resource(make_context(), "clients", "xyz")
        mock_collection.find_one.assert_not_called()


# ─────────────────────────────────────────────────────────────────
# Writes
# ─────────────────────────────────────────────────────────────────


class TestCreateResource:
    @pytest.mark.asyncio
    async def test_viewer_cannot_create_client(self, service, mock_collection, make_context):
        with pytest.raises(ForbiddenException) as exc_info:
            await service.create_resource(make_context(Role.VIEWER), "clients", {"name": "ACME"})

        assert exc_info.value.code == "INSUFFICIENT_ROLE"
        mock_collection.insert_one.assert_not_called()

    @pytest.mark.asyncio
    async def test_editor_creates_client_in_own_organization(
        self, service, mock_collection, make_context, org_id,
    ):
        mock_collection.insert_one.return_value = write_result()
        context = make_context(Role.EDITOR, uid="uid-editor")

        client = await service.create_resource(
            context,
            "clients",
            {"name": "  ACME  ", "email": "hi@acme.test", "organizationId": "forged", "_id": "forged"},
        )

        doc = mock_collection.insert_one.call_args[0][0]
        assert doc["name"] == "ACME"
        assert doc["organizationId"] == org_id
        assert doc["createdBy"] == "uid-editor"
        assert "_id" not in doc or doc["_id"] != "forged"
        assert client["organizationId"] == org_id

    @pytest.mark.asyncio
    async def test_material_gets_price_per_gram(self, service, mock_collection, make_context):
        mock_collection.insert_one.return_value = write_result()

        material = await service.create_resource(
            make_context(),
            "materials",
            {"name": "Galaxy Black", "brand": "Prusament", "type": "PLA", "pricePerKg": 25},
        )

        assert material["pricePerGram"] == 0.025

    @pytest.mark.asyncio
    async def test_invalid_payload_reports_fields(self, service, mock_collection, make_context):
        with pytest.raises(ValidationException) as exc_info:
            await service.create_resource(make_context(), "expenses", {"description": "Filament", "amount": -5})

        errors = exc_info.value.detail["details"]["errors"]
        assert [e["field"] for e in errors] == ["amount"]
        mock_collection.insert_one.assert_not_called()

    @pytest.mark.asyncio
    async def test_project_defaults(self, service, mock_collection, make_context):
        mock_collection.insert_one.return_value = write_result()

        project = await service.create_resource(make_context(), "projects", {"name": "Benchy"})

        assert project["status"] == "queued"
        assert project["quantity"] == 1
        assert project["budget"] == 0


class TestUpdateResource:
    @pytest.mark.asyncio
    async def test_sets_only_patched_fields(self, service, mock_collection, make_context, material_doc):
        mock_collection.find_one.return_value = material_doc
        mock_collection.update_one.return_value = write_result()

        updated = await service.update_resource(
            make_context(Role.EDITOR), "materials", str(material_doc["_id"]), {"pricePerKg": 30},
        )

        changes = mock_collection.update_one.call_args[0][1]["$set"]
        assert set(changes) == {"pricePerKg", "pricePerGram", "updatedAt"}
        assert changes["pricePerGram"] == 0.03
        assert updated["name"] == "Galaxy Black"

    @pytest.mark.asyncio
    async def test_required_field_cannot_be_cleared(self, service, mock_collection, make_context, material_doc):
        mock_collection.find_one.return_value = material_doc

        with pytest.raises(ValidationException):
            await service.update_resource(make_context(), "materials", str(material_doc["_id"]), {"name": ""})

        mock_collection.update_one.assert_not_called()

    @pytest.mark.asyncio
    async def test_viewer_cannot_update(self, service, mock_collection, make_context, material_doc):
        with pytest.raises(ForbiddenException):
            await service.update_resource(make_context(Role.VIEWER), "materials", str(material_doc["_id"]), {})
        mock_collection.find_one.assert_not_called()


class TestDeleteResource:
    @pytest.mark.asyncio
    async def test_deletes_within_organization(self, service, mock_collection, make_context, org_id):
        mock_collection.delete_one.return_value = write_result(deleted=1)
        resource_id = str(ObjectId())

        await service.delete_resource(make_context(Role.EDITOR), "expenses", resource_id)

        mock_collection.delete_one.assert_awaited_once_with(
            {"_id": ObjectId(resource_id), "organizationId": org_id}
        )

    @pytest.mark.asyncio
    async def test_missing_is_not_found(self, service, mock_collection, make_context):
        mock_collection.delete_one.return_value = write_result(deleted=0)

        with pytest.raises(NotFoundException) as exc_info:
            await service.delete_resource(make_context(), "expenses", str(ObjectId()))
        assert exc_info.value.code == "EXPENSE_NOT_FOUND"


class TestUpdateProjectStatus:
    @pytest.mark.asyncio
    async def test_moves_project(self, service, mock_collection, make_context, org_id):
        project_id = ObjectId()
        mock_collection.update_one.return_value = write_result()
        mock_collection.find_one.return_value = {
            "_id": project_id, "organizationId": org_id, "name": "Benchy", "status": "completed",
        }

        project = await service.update_project_status(make_context(Role.EDITOR), str(project_id), "completed")

        assert mock_collection.update_one.call_args[0][1]["$set"]["status"] == "completed"
        assert project["status"] == "completed"

    @pytest.mark.asyncio
    async def test_unknown_status(self, service, mock_collection, make_context):
        with pytest.raises(ValidationException) as exc_info:
            await service.update_project_status(make_context(), str(ObjectId()), "shipped")

        assert exc_info.value.code == "INVALID_STATUS"
        mock_collection.update_one.assert_not_called()
