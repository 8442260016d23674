"""
FastAPI router for clients, projects, materials and expenses.

Any member reads; editor and above write. The service enforces both.
"""

import logging
from typing import Annotated, Any, Dict

from fastapi import APIRouter, Body, Depends

from common.utils import list_response, success_response
from printshop.dependencies import CurrentMember, get_resource_service
from printshop.schemas.resources import ProjectStatusRequest, ResourceKind
from printshop.services.resources.resource_service import ResourceService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/resources", tags=["resources"])


@router.patch("/projects/{project_id}/status")
async def update_project_status(
    project_id: str,
    body: ProjectStatusRequest,
    member: CurrentMember,
    resource_service: Annotated[ResourceService, Depends(get_resource_service)],
):
    """Move a project to queued, in_progress or completed."""
    project = await resource_service.update_project_status(member, project_id, body.status)
    return success_response(project)


@router.get("/{kind}")
async def list_resources(
    kind: ResourceKind,
    member: CurrentMember,
    resource_service: Annotated[ResourceService, Depends(get_resource_service)],
):
    """List resources of one kind, newest first."""
    items = await resource_service.list_resources(member, kind)
    return list_response(items)


@router.get("/{kind}/{resource_id}")
async def get_resource(
    kind: ResourceKind,
    resource_id: str,
    member: CurrentMember,
    resource_service: Annotated[ResourceService, Depends(get_resource_service)],
):
    item = await resource_service.get_resource(member, kind, resource_id)
    return success_response(item)


@router.post("/{kind}", status_code=201)
async def create_resource(
    kind: ResourceKind,
    member: CurrentMember,
    resource_service: Annotated[ResourceService, Depends(get_resource_service)],
    data: Dict[str, Any] = Body(...),
):
    item = await resource_service.create_resource(member, kind, data)
    return success_response(item)


@router.put("/{kind}/{resource_id}")
async def update_resource(
    kind: ResourceKind,
    resource_id: str,
    member: CurrentMember,
    resource_service: Annotated[ResourceService, Depends(get_resource_service)],
    data: Dict[str, Any] = Body(...),
):
    item = await resource_service.update_resource(member, kind, resource_id, data)
    return success_response(item)


@router.delete("/{kind}/{resource_id}")
async def delete_resource(
    kind: ResourceKind,
    resource_id: str,
    member: CurrentMember,
    resource_service: Annotated[ResourceService, Depends(get_resource_service)],
):
    await resource_service.delete_resource(member, kind, resource_id)
    return success_response(message="Deleted")
