"""
Mail dispatch background job.

Delivers queued records from the ``mail`` collection (invitation emails and
any other outbound mail) through the configured EmailService. Records that
fail go back to the queue until MAIL_MAX_ATTEMPTS is reached, then stay
"failed".

Usage:
    Run via CRON:
        * * * * * cd /path/to/project && python -m jobs.mail_dispatch

    Or run directly:
        python -m jobs.mail_dispatch
"""

import asyncio
import logging
import sys
from datetime import datetime, timezone
from typing import Dict, Any

from dotenv import load_dotenv

from common.database import MongoDB
from config.email_config import MAIL_DISPATCH_BATCH_SIZE
from printshop.services.email.email_service import EmailService
from printshop.services.email.mail_queue import MailQueue, STATUS_FAILED

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


class MailDispatchJob:
    """
    Sends queued mail records.

    Each record is claimed atomically ("queued" -> "sending"), so several
    dispatchers can run at once without sending the same message twice.
    """

    def __init__(
        self,
        mail_queue: MailQueue,
        email_service: EmailService,
        batch_size: int = MAIL_DISPATCH_BATCH_SIZE,
    ):
        """
        Initialize the mail dispatch job.

        Args:
            mail_queue: Mail collection access
            email_service: Delivery provider
            batch_size: Maximum records sent per run
        """
        self._mail_queue = mail_queue
        self._email_service = email_service
        self._batch_size = batch_size

    async def run(self) -> Dict[str, Any]:
        """
        Execute the mail dispatch job.

        Returns:
            Dict with job results including counts and any errors
        """
        logger.info(f"Starting mail dispatch job ({self._email_service.mode} mode)")
        start_time = datetime.now(timezone.utc)

        results = {
            "startTime": start_time.isoformat(),
            "sent": 0,
            "retried": 0,
            "failed": 0,
            "errors": [],
        }

        for _ in range(self._batch_size):
            record = await self._mail_queue.claim_next()
            if record is None:
                break

            message = record.get("message") or {}
            outcome = await self._email_service.send(
                to=record["to"],
                subject=message.get("subject", ""),
                html=message.get("html", ""),
            )

            if outcome.get("success"):
                await self._mail_queue.mark_sent(record["_id"])
                results["sent"] += 1
                continue

            error = outcome.get("error") or "Unknown error"
            status = await self._mail_queue.mark_failed(record, error)
            if status == STATUS_FAILED:
                results["failed"] += 1
                results["errors"].append(f"Giving up on mail {record['_id']} to {record['to']}: {error}")
                logger.error(f"Giving up on mail {record['_id']} after {record.get('attempts')} attempts")
            else:
                results["retried"] += 1
                logger.warning(f"Mail {record['_id']} failed, will retry: {error}")

        end_time = datetime.now(timezone.utc)
        results["endTime"] = end_time.isoformat()
        results["durationSeconds"] = (end_time - start_time).total_seconds()

        logger.info(
            f"Mail dispatch finished: {results['sent']} sent, "
            f"{results['retried']} retried, {results['failed']} failed"
        )
        return results


async def main():
    """Main entry point for the mail dispatch job."""
    load_dotenv()

    from printshop.config import Settings
    settings = Settings()

    mongo = MongoDB()
    await mongo.connect(uri=settings.MONGODB_URI, database_name=settings.MONGODB_DATABASE)

    job = MailDispatchJob(
        mail_queue=MailQueue(mongo.db, app_url=settings.APP_URL),
        email_service=EmailService.from_settings(settings),
    )

    try:
        results = await job.run()

        print("\n=== Mail Dispatch Job Results ===")
        print(f"Start Time: {results['startTime']}")
        print(f"End Time: {results['endTime']}")
        print(f"Duration: {results['durationSeconds']:.2f} seconds")
        print(f"Sent: {results['sent']}")
        print(f"Retried later: {results['retried']}")
        print(f"Failed: {results['failed']}")

        if results["errors"]:
            print(f"\nErrors ({len(results['errors'])}):")
            for error in results["errors"]:
                print(f"  - {error}")

        exit_code = 1 if results["errors"] else 0
        sys.exit(exit_code)

    finally:
        await mongo.disconnect()


if __name__ == "__main__":
    asyncio.run(main())
