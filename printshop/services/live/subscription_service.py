"""
Live queries over MongoDB change streams.

``SubscriptionService.subscribe`` returns a Subscription: an async iterator of
LiveEvents. The first event is the full result set of the query; after every
relevant change another full result set follows. Consumers never apply diffs.

A store error produces an "error" event and the subscription reopens its
change stream with exponential backoff. Subscriptions end when the consumer
calls ``unsubscribe()``, when the identity signs out (``release_identity``), when the identity is
removed from the organization (``release_member``), or when the organization
is deleted (``release_organization``).

Change streams need a replica set; on a standalone server every attempt
fails and the subscription keeps retrying.
"""

import asyncio
import itertools
import logging
from dataclasses import dataclass, field
from typing import Optional, Callable, Dict, Any, List

from pymongo.errors import PyMongoError
from motor.motor_asyncio import AsyncIOMotorDatabase

from printshop.services.resources.resource_service import sort_newest_first

logger = logging.getLogger(__name__)

SNAPSHOT = "snapshot"
ERROR = "error"

_CLOSED = object()


@dataclass
class LiveEvent:
    """One message delivered to a subscriber."""

    type: str
    items: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        if self.type == ERROR:
            return {"type": ERROR, "error": self.error}
        return {"type": SNAPSHOT, "items": self.items, "count": len(self.items)}


def _default_formatter(doc: Dict[str, Any]) -> Dict[str, Any]:
    formatted = {k: v for k, v in doc.items() if k != "_id"}
    formatted["id"] = str(doc["_id"])
    return formatted


class Subscription:
    """
    A running live query.

    Iterate with ``async for event in subscription``. Only the newest pending
    event is kept, so a slow consumer skips straight to the current result set.
    """

    def __init__(
        self,
        service: "SubscriptionService",
        subscription_id: int,
        collection_name: str,
        query: Dict[str, Any],
        uid: str,
        organization_id: str,
        formatter: Callable[[Dict[str, Any]], Dict[str, Any]],
    ):
        self.id = subscription_id
        self.collection_name = collection_name
        self.query = query
        self.uid = uid
        self.organization_id = organization_id

        self._service = service
        self._collection = service.db[collection_name]
        self._formatter = formatter
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=1)
        self._current_ids: set = set()
        self._closed = False
        self._task: Optional[asyncio.Task] = None

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        self._task = asyncio.create_task(self._run())

    # ─────────────────────────────────────────────────────────────────
    # Consumer side
    # ─────────────────────────────────────────────────────────────────

    def __aiter__(self):
        return self

    async def __anext__(self) -> LiveEvent:
        if self._closed and self._queue.empty():
            raise StopAsyncIteration
        event = await self._queue.get()
        if event is _CLOSED:
            raise StopAsyncIteration
        return event

    async def unsubscribe(self) -> None:
        """Stop the change stream and end iteration. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        self._service._forget(self)

        if self._task is not None and self._task is not asyncio.current_task():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

        self._publish(_CLOSED)
        logger.info(f"Subscription {self.id} on {self.collection_name} released")

    # ─────────────────────────────────────────────────────────────────
    # Producer side
    # ─────────────────────────────────────────────────────────────────

    def _publish(self, event) -> None:
        if self._queue.full():
            self._queue.get_nowait()
        self._queue.put_nowait(event)

    def _pipeline(self) -> List[Dict[str, Any]]:
        matches_query = {f"fullDocument.{key}": value for key, value in self.query.items()}
        return [{"$match": {"$or": [{"operationType": "delete"}, matches_query]}}]

    def _is_relevant(self, change: Dict[str, Any]) -> bool:
        if change.get("operationType") == "delete":
            return change.get("documentKey", {}).get("_id") in self._current_ids
        return True

    async def _emit_snapshot(self) -> None:
        docs = await self._collection.find(self.query).to_list(length=None)
        self._current_ids = {doc["_id"] for doc in docs}
        items = [self._formatter(doc) for doc in sort_newest_first(docs)]
        self._publish(LiveEvent(type=SNAPSHOT, items=items))

    async def _run(self) -> None:
        delay = self._service.retry_seconds

        while not self._closed:
            try:
                async with self._collection.watch(
                    self._pipeline(),
                    full_document="updateLookup",
                ) as stream:
                    # Snapshot after the stream is open so no change is missed
                    await self._emit_snapshot()
                    delay = self._service.retry_seconds

                    async for change in stream:
                        if self._is_relevant(change):
                            await self._emit_snapshot()

            except PyMongoError as e:
                logger.warning(
                    f"Subscription {self.id} on {self.collection_name} failed, "
                    f"retrying in {delay}s: {e}"
                )
            except Exception as e:
                # Undecodable documents or formatter errors
                logger.error(
                    f"Subscription {self.id} on {self.collection_name} raised "
                    f"{type(e).__name__}, retrying in {delay}s: {e}"
                )
            else:
                continue

            self._publish(LiveEvent(type=ERROR, error="Live updates interrupted, reconnecting"))
            await asyncio.sleep(delay)
            delay = min(delay * 2, self._service.max_retry_seconds)


class SubscriptionService:
    """
    Creates and tracks live subscriptions.
    """

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        retry_seconds: float = 2.0,
        max_retry_seconds: float = 30.0,
    ):
        """
        Initialize SubscriptionService.

        Args:
            db: MongoDB database connection
            retry_seconds: First reconnect delay after a store error
            max_retry_seconds: Upper bound for the reconnect delay
        """
        self.db = db
        self.retry_seconds = retry_seconds
        self.max_retry_seconds = max_retry_seconds
        self._subscriptions: Dict[int, Subscription] = {}
        self._ids = itertools.count(1)

    def subscribe(
        self,
        collection_name: str,
        query: Dict[str, Any],
        uid: str,
        organization_id: str,
        formatter: Optional[Callable[[Dict[str, Any]], Dict[str, Any]]] = None,
    ) -> Subscription:
        """
        Start a live query.

        Args:
            collection_name: Collection to watch
            query: Equality filter, e.g. {"organizationId": "..."}
            uid: Identity owning the subscription
            organization_id: Organization the data belongs to
            formatter: Turns a stored document into the delivered item

        Returns:
            Running Subscription
        """
        subscription = Subscription(
            service=self,
            subscription_id=next(self._ids),
            collection_name=collection_name,
            query=query,
            uid=uid,
            organization_id=organization_id,
            formatter=formatter or _default_formatter,
        )
        self._subscriptions[subscription.id] = subscription
        subscription.start()

        logger.info(f"Subscription {subscription.id} on {collection_name} for {uid}")
        return subscription

    def _forget(self, subscription: Subscription) -> None:
        self._subscriptions.pop(subscription.id, None)

    @property
    def active_count(self) -> int:
        return len(self._subscriptions)

    async def _release(self, predicate: Callable[[Subscription], bool]) -> int:
        matching = [s for s in list(self._subscriptions.values()) if predicate(s)]
        for subscription in matching:
            await subscription.unsubscribe()
        return len(matching)

    async def release_identity(self, uid: str) -> int:
        """Close every subscription of an identity (sign-out)."""
        return await self._release(lambda s: s.uid == uid)

    async def release_member(self, organization_id: str, uid: str) -> int:
        """Close one identity's subscriptions within one organization."""
        return await self._release(
            lambda s: s.organization_id == organization_id and s.uid == uid
        )

    async def release_organization(self, organization_id: str) -> int:
        """Close every subscription reading an organization's data."""
        return await self._release(lambda s: s.organization_id == organization_id)

    async def close_all(self) -> int:
        return await self._release(lambda s: True)
