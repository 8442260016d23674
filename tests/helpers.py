"""Small stand-ins for motor results and cursors."""

from unittest.mock import AsyncMock, MagicMock
from bson import ObjectId


def write_result(modified=1, matched=None, deleted=None, inserted_id=None):
    """Stand-in for pymongo's UpdateResult / DeleteResult / InsertOneResult."""
    result = MagicMock()
    result.modified_count = modified
    result.matched_count = modified if matched is None else matched
    result.deleted_count = modified if deleted is None else deleted
    result.inserted_id = inserted_id or ObjectId()
    return result


def cursor_of(docs):
    """A motor cursor whose to_list() returns ``docs``."""
    cursor = MagicMock()
    cursor.to_list = AsyncMock(return_value=list(docs))
    return cursor
