"""
WebSocket endpoint streaming live result sets.

    /api/v1/live/{kind}?token=<ID token>

After the socket opens the client receives
``{"type": "snapshot", "items": [...], "count": n}`` with the full list, and
another full snapshot after every change. ``{"type": "error"}`` messages report
a reconnect in progress. The socket is closed when the identity leaves the
organization, signs out, or the organization is deleted.
"""

import asyncio
import logging
from typing import Optional

from bson import ObjectId
from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status
from fastapi.encoders import jsonable_encoder

from common.auth import extract_bearer_token, resolve_identity
from common.utils.exceptions import APIException
from printshop.dependencies import get_services
from printshop.services.live.subscription_service import SNAPSHOT, Subscription
from printshop.services.organization.organization_service import ORGANIZATIONS_COLLECTION
from printshop.services.resources.resource_service import parse_kind

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/live", tags=["live"])

# Application close codes (4000-4999)
CLOSE_UNAUTHORIZED = 4401
CLOSE_FORBIDDEN = 4403
CLOSE_NOT_FOUND = 4404


async def _forward(websocket: WebSocket, subscription: Subscription) -> None:
    async for event in subscription:
        await websocket.send_json(jsonable_encoder(event.to_dict()))


async def _watch_membership(subscription: Subscription, uid: str) -> None:
    """Return once the uid is no longer in the organization's memberUIDs."""
    async for event in subscription:
        if event.type != SNAPSHOT:
            continue
        if not event.items or uid not in (event.items[0].get("memberUIDs") or []):
            return


async def _receive_until_disconnect(websocket: WebSocket) -> None:
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        return


@router.websocket("/{kind}")
async def live_resources(
    websocket: WebSocket,
    kind: str,
    token: Optional[str] = Query(None),
):
    """Stream the caller's organization's resources of one kind."""
    services = get_services(websocket)

    try:
        raw_token = token or extract_bearer_token(websocket.headers.get("authorization"))
        identity = await resolve_identity(services.auth, raw_token)
    except APIException as e:
        await websocket.close(code=CLOSE_UNAUTHORIZED, reason=e.message)
        return

    try:
        resource_kind = parse_kind(kind)
    except APIException as e:
        await websocket.close(code=CLOSE_NOT_FOUND, reason=e.message)
        return

    try:
        context = await services.session_resolver.resolve_member(identity)
    except APIException as e:
        await websocket.close(code=status.WS_1013_TRY_AGAIN_LATER, reason=e.message)
        return

    if context is None:
        await websocket.close(code=CLOSE_FORBIDDEN, reason="Not a member of any organization")
        return

    await websocket.accept()

    subscriptions = services.subscriptions
    data_subscription = subscriptions.subscribe(
        resource_kind.value,
        services.resources.query_for(context),
        uid=context.uid,
        organization_id=context.organization_id,
        formatter=services.resources.format_resource,
    )
    org_subscription = subscriptions.subscribe(
        ORGANIZATIONS_COLLECTION,
        {"_id": ObjectId(context.organization_id)},
        uid=context.uid,
        organization_id=context.organization_id,
        formatter=services.organizations.format_organization,
    )

    tasks = [
        asyncio.create_task(_forward(websocket, data_subscription)),
        asyncio.create_task(_watch_membership(org_subscription, context.uid)),
        asyncio.create_task(_receive_until_disconnect(websocket)),
    ]

    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
    finally:
        await data_subscription.unsubscribe()
        await org_subscription.unsubscribe()

    # The client left on its own when the receive task finished first
    if tasks[2] not in done:
        logger.info(f"Closing live {resource_kind.value} feed of {context.uid}")
        try:
            await websocket.close(code=status.WS_1000_NORMAL_CLOSURE)
        except RuntimeError:
            # Already closed by the client
            pass
