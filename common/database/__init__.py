"""
Database module - Generic async MongoDB connection (Motor).

Usage:
    from common.database import MongoDB

    mongo = MongoDB()
    await mongo.connect(uri, database_name)
    services = build_services(db=mongo.db, ...)
"""

from common.database.mongodb import MongoDB

__all__ = ["MongoDB"]
