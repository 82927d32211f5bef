"""Async client for CouchDB-compatible document databases."""
from couch_client.changes import (
    ChangeBatch,
    ChangeListener,
    ChangesFeed,
    ChangesHandle,
    ChangesOptions,
    ChangesSubscription,
)
from couch_client.config import ClientSettings
from couch_client.database import Database, DesignApp
from couch_client.errors import CouchRequestError
from couch_client.schemas import BulkResult, ChangeRecord, DatabaseInfo
from couch_client.server import CouchServer
from couch_client.transport import (
    RequestExecutor,
    RequestFailure,
    RequestSuccess,
    encode_doc_id,
    encode_options,
)
from couch_client.uuids import UUIDCache

__version__ = "0.1.0"

__all__ = [
    "ChangeBatch",
    "ChangeListener",
    "ChangeRecord",
    "ChangesFeed",
    "ChangesHandle",
    "ChangesOptions",
    "ChangesSubscription",
    "ClientSettings",
    "CouchRequestError",
    "CouchServer",
    "Database",
    "DatabaseInfo",
    "DesignApp",
    "BulkResult",
    "RequestExecutor",
    "RequestFailure",
    "RequestSuccess",
    "UUIDCache",
    "encode_doc_id",
    "encode_options",
]
