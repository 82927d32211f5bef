from couch_client.changes.base import ChangeListener, ChangesHandle
from couch_client.changes.contracts import ChangeBatch, ChangesOptions, Cursor
from couch_client.changes.feed import (
    ChangesFeed,
    ChangesSubscription,
    extract_cursor,
    extract_records,
)

__all__ = [
    "ChangeBatch",
    "ChangesOptions",
    "Cursor",
    "ChangeListener",
    "ChangesHandle",
    "ChangesFeed",
    "ChangesSubscription",
    "extract_cursor",
    "extract_records",
]
