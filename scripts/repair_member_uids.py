#!/usr/bin/env python3
"""
One-time maintenance script for organization documents.

This script:
1. Rebuilds memberUIDs from members on every organization where it is
   missing or out of sync
2. Lists every identity in Firebase Authentication
3. Creates an organization for identities that are not a member anywhere,
   own nothing and have no pending invitation ("<email>'s Organization")

Step 1 must precede step 3: membership lookups only see uids listed in
memberUIDs.

Both steps are idempotent; running the script twice changes nothing the
second time.

Usage:
    python scripts/repair_member_uids.py

Environment variables required:
    MONGODB_URI - MongoDB connection string
    MONGODB_DATABASE - Database name (default: printshop)
    FIREBASE_CREDENTIALS_PATH or the service-account variables
"""

import asyncio
import logging
import os
import sys
from typing import Dict, Any

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv
from motor.motor_asyncio import AsyncIOMotorDatabase

from common.auth import AuthProvider
from printshop.services.organization.organization_service import OrganizationService

logger = logging.getLogger(__name__)


def legacy_organization_name(email: str) -> str:
    return f"{email}'s Organization"


async def provision_legacy_identities(
    organizations: OrganizationService,
    auth: AuthProvider,
) -> Dict[str, int]:
    """Give every identity without any organization one of its own."""
    users = await auth.list_users()
    created = 0

    for user in users:
        uid = user.get("uid")
        email = (user.get("email") or "").strip().lower()
        if not uid or not email:
            continue

        if await organizations.find_by_member(uid):
            continue
        if await organizations.find_owned_by(uid):
            continue
        if await organizations.find_by_pending_invite(email):
            continue

        print(f"Creating organization for legacy user: {email}")
        await organizations.create_organization(uid, email, legacy_organization_name(email))
        created += 1

    return {"users": len(users), "created": created}


async def run_repair(db: AsyncIOMotorDatabase, auth: AuthProvider) -> Dict[str, Any]:
    """Run both repair steps against a database."""
    organizations = OrganizationService(db)

    repair = await organizations.repair_all_member_uids()
    provisioning = await provision_legacy_identities(organizations, auth)

    return {
        "users": provisioning["users"],
        "organizationsCreated": provisioning["created"],
        "organizationsChecked": repair["checked"],
        "organizationsRepaired": repair["repaired"],
    }


async def main():
    """Connect, repair, and print a summary."""
    load_dotenv()
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    from common.auth import FirebaseAuth
    from common.database import MongoDB
    from printshop.config import Settings

    settings = Settings()

    if not os.getenv("MONGODB_URI"):
        print("ERROR: MONGODB_URI environment variable not set")
        sys.exit(1)

    mongo = MongoDB()
    print(f"Connecting to database: {settings.MONGODB_DATABASE}")
    await mongo.connect(uri=settings.MONGODB_URI, database_name=settings.MONGODB_DATABASE)

    auth = FirebaseAuth(
        credentials_path=settings.FIREBASE_CREDENTIALS_PATH,
        project_id=settings.FIREBASE_PROJECT_ID,
    )

    try:
        summary = await run_repair(mongo.db, auth)
    finally:
        await mongo.disconnect()

    print("\n" + "=" * 50)
    print("Repair Summary")
    print("=" * 50)
    print(f"Identities listed: {summary['users']}")
    print(f"Organizations created: {summary['organizationsCreated']}")
    print(f"Organizations checked: {summary['organizationsChecked']}")
    print(f"Organizations repaired: {summary['organizationsRepaired']}")
    print("=" * 50)
    print("\nRepair complete!")


if __name__ == "__main__":
    print("Organization memberUIDs Repair Script")
    print("-" * 40)
    asyncio.run(main())
