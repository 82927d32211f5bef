from couch_client.schemas.payload_contracts import (
    BulkResult,
    BulkStatus,
    ChangeRecord,
    ChangeRevision,
    DatabaseInfo,
)

__all__ = [
    "BulkResult",
    "BulkStatus",
    "ChangeRecord",
    "ChangeRevision",
    "DatabaseInfo",
]
