"""Unit tests for the outbound mail queue and EmailService console mode."""

import pytest
from bson import ObjectId
from pymongo import ReturnDocument

from printshop.services.email.email_service import EmailService, html_to_text
from printshop.services.email.mail_queue import (
    STATUS_FAILED,
    STATUS_QUEUED,
    MailQueue,
)
from tests.helpers import write_result


@pytest.fixture
def queue(mock_db):
    return MailQueue(mock_db, app_url="https://app.printshop.se")


class TestEnqueue:
    @pytest.mark.asyncio
    async def test_inserts_queued_record(self, queue, mock_collection):
        inserted = ObjectId()
        mock_collection.insert_one.return_value = write_result(inserted_id=inserted)

        record_id = await queue.enqueue("bob@example.com", "Hi", "<p>Hi</p>")

        assert record_id == str(inserted)
        record = mock_collection.insert_one.call_args[0][0]
        assert record["to"] == "bob@example.com"
        assert record["message"] == {"subject": "Hi", "html": "<p>Hi</p>"}
        assert record["status"] == STATUS_QUEUED
        assert record["attempts"] == 0

    @pytest.mark.asyncio
    async def test_invitation_mentions_organization_role_and_link(self, queue, mock_collection):
        mock_collection.insert_one.return_value = write_result()

        await queue.enqueue_invitation(
            to="bob@example.com",
            organization_name="Owner's Team",
            inviter_email="owner@shop.se",
            role="editor",
        )

        message = mock_collection.insert_one.call_args[0][0]["message"]
        assert message["subject"] == "You have been invited to join Owner's Team"
        assert "owner@shop.se" in message["html"]
        assert "editor" in message["html"]
        assert "https://app.printshop.se" in message["html"]

    @pytest.mark.asyncio
    async def test_invitation_escapes_organization_name(self, queue, mock_collection):
        mock_collection.insert_one.return_value = write_result(inserted_id=ObjectId())

        await queue.enqueue_invitation(
            to="bob@example.com",
            organization_name='<a href="http://evil.example">Reset password</a>',
            inviter_email="owner@shop.se",
            role="viewer",
        )

        html = mock_collection.insert_one.call_args[0][0]["message"]["html"]
        assert "<a href=\"http://evil.example\">" not in html
        assert "&lt;a href=&quot;http://evil.example&quot;&gt;Reset password&lt;/a&gt;" in html


class TestDispatcherSide:
    @pytest.mark.asyncio
    async def test_claim_next_is_atomic(self, queue, mock_collection):
        mock_collection.find_one_and_update.return_value = None

        assert await queue.claim_next() is None

        args, kwargs = mock_collection.find_one_and_update.call_args
        assert args[0] == {"status": "queued"}
        assert args[1]["$set"]["status"] == "sending"
        assert args[1]["$inc"] == {"attempts": 1}
        assert kwargs["return_document"] == ReturnDocument.AFTER

    @pytest.mark.asyncio
    async def test_failure_requeues_until_attempts_used(self, queue, mock_collection):
        record = {"_id": ObjectId(), "attempts": 1}

        assert await queue.mark_failed(record, "timeout") == STATUS_QUEUED
        assert mock_collection.update_one.call_args[0][1]["$set"]["error"] == "timeout"

    @pytest.mark.asyncio
    async def test_failure_after_max_attempts_is_final(self, queue, mock_collection):
        record = {"_id": ObjectId(), "attempts": 3}

        assert await queue.mark_failed(record, "timeout") == STATUS_FAILED


class TestEmailService:
    def test_missing_resend_key_falls_back_to_console(self):
        assert EmailService(mode="resend").mode == "console"

    def test_missing_smtp_host_falls_back_to_console(self):
        assert EmailService(mode="smtp").mode == "console"

    @pytest.mark.asyncio
    async def test_console_mode_succeeds(self):
        result = await EmailService(mode="console").send("bob@example.com", "Hi", "<p>Hi</p>")
        assert result["success"] is True

    def test_html_to_text(self):
        assert html_to_text("<p>Hello &amp; welcome</p>\n<p><a href='x'>x</a></p>") == "Hello & welcome\nx"
