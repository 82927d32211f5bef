from __future__ import annotations

import logging
import threading
from collections import deque

from couch_client.errors import CouchRequestError
from couch_client.transport.contracts import RequestFailure
from couch_client.transport.executor import RequestExecutor

logger = logging.getLogger(__name__)


class UUIDCache:
    """Queue of server-generated ids, refilled from ``/_uuids`` when empty.

    ``next()`` blocks the calling thread while it refills; it is the only
    synchronous network call in the client.
    """

    def __init__(self, executor: RequestExecutor, batch_size: int = 1) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self.executor = executor
        self.batch_size = batch_size
        self._uuids: deque[str] = deque()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._uuids)

    def next(self, count: int | None = None) -> str:
        with self._lock:
            if not self._uuids:
                self._refill(count or self.batch_size)
            return self._uuids.popleft()

    def clear(self) -> None:
        with self._lock:
            self._uuids.clear()

    def _refill(self, count: int) -> None:
        outcome = self.executor.execute(f"_uuids?count={int(count)}", "GET")
        if isinstance(outcome, RequestFailure):
            raise outcome.to_error()

        payload = outcome.payload
        uuids = payload.get("uuids") if isinstance(payload, dict) else None
        if not uuids:
            raise CouchRequestError(
                status_code=outcome.status_code,
                error="empty_batch",
                reason="Failed to retrieve UUID batch.",
                elapsed_ms=outcome.elapsed_ms,
            )

        logger.debug("fetched %d uuids in %dms", len(uuids), outcome.elapsed_ms)
        self._uuids = deque(str(value) for value in uuids)
