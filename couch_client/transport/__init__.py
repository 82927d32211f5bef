from couch_client.transport.contracts import RequestFailure, RequestOutcome, RequestSuccess
from couch_client.transport.encoding import (
    encode_doc_id,
    encode_options,
    full_commit_headers,
    to_json,
)
from couch_client.transport.executor import RequestExecutor

__all__ = [
    "RequestSuccess",
    "RequestFailure",
    "RequestOutcome",
    "RequestExecutor",
    "encode_doc_id",
    "encode_options",
    "full_commit_headers",
    "to_json",
]
