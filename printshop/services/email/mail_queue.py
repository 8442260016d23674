"""
Outbound mail queue.

Mail is not sent inline with API requests. Services insert a record into the
``mail`` collection and ``jobs.mail_dispatch`` delivers it later.

Record shape:
    {
        "to": email,
        "message": {"subject": str, "html": str},
        "status": "queued" | "sending" | "sent" | "failed",
        "attempts": int,
        "error": Optional[str],
        "createdAt", "updatedAt", "sentAt"
    }
"""

import html
import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any

from pymongo import ReturnDocument
from motor.motor_asyncio import AsyncIOMotorDatabase

from config.email_config import (
    MAIL_COLLECTION,
    MAIL_MAX_ATTEMPTS,
    INVITATION_SUBJECT,
    INVITATION_HTML,
)

logger = logging.getLogger(__name__)


STATUS_QUEUED = "queued"
STATUS_SENDING = "sending"
STATUS_SENT = "sent"
STATUS_FAILED = "failed"


class MailQueue:
    """
    Reads and writes mail records.
    """

    def __init__(self, db: AsyncIOMotorDatabase, app_url: str = "http://localhost:5173"):
        self._mail_collection = db[MAIL_COLLECTION]
        self._app_url = app_url

    async def enqueue(self, to: str, subject: str, html: str) -> str:
        """
        Queue a message for delivery.

        Returns:
            Inserted record id
        """
        now = datetime.now(timezone.utc)
        result = await self._mail_collection.insert_one({
            "to": to,
            "message": {"subject": subject, "html": html},
            "status": STATUS_QUEUED,
            "attempts": 0,
            "error": None,
            "createdAt": now,
            "updatedAt": now,
            "sentAt": None,
        })
        logger.info(f"Queued mail to {to}: {subject}")
        return str(result.inserted_id)

    async def enqueue_invitation(
        self,
        to: str,
        organization_name: str,
        inviter_email: str,
        role: str,
    ) -> str:
        """Queue the invitation email for a newly invited address."""
        subject = INVITATION_SUBJECT.format(organization_name=organization_name)
        body = INVITATION_HTML.format(
            inviter_email=html.escape(inviter_email),
            organization_name=html.escape(organization_name),
            role=html.escape(role),
            app_url=html.escape(self._app_url),
        )
        return await self.enqueue(to, subject, body)

    # ─────────────────────────────────────────────────────────────────
    # Dispatcher side
    # ─────────────────────────────────────────────────────────────────

    async def claim_next(self) -> Optional[Dict[str, Any]]:
        """
        Atomically move one queued record to "sending".

        Concurrent dispatchers never claim the same record.
        """
        return await self._mail_collection.find_one_and_update(
            {"status": STATUS_QUEUED},
            {
                "$set": {"status": STATUS_SENDING, "updatedAt": datetime.now(timezone.utc)},
                "$inc": {"attempts": 1},
            },
            sort=[("createdAt", 1)],
            return_document=ReturnDocument.AFTER,
        )

    async def mark_sent(self, record_id) -> None:
        now = datetime.now(timezone.utc)
        await self._mail_collection.update_one(
            {"_id": record_id},
            {"$set": {"status": STATUS_SENT, "error": None, "sentAt": now, "updatedAt": now}},
        )

    async def mark_failed(self, record: Dict[str, Any], error: str) -> str:
        """
        Record a delivery failure.

        The record goes back to "queued" until it has used up its attempts.

        Returns:
            The new status
        """
        status = STATUS_FAILED if record.get("attempts", 0) >= MAIL_MAX_ATTEMPTS else STATUS_QUEUED
        await self._mail_collection.update_one(
            {"_id": record["_id"]},
            {"$set": {"status": status, "error": error, "updatedAt": datetime.now(timezone.utc)}},
        )
        return status
