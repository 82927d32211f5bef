from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from couch_client.errors import CouchRequestError


@dataclass(frozen=True)
class RequestSuccess:
    """Decoded JSON payload of a request that returned its expected status."""

    payload: Any
    elapsed_ms: int
    status_code: int = 200

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class RequestFailure:
    """Classified failure of a single request.

    ``status_code`` is ``None`` when no HTTP response was obtained.
    """

    status_code: int | None
    error: str
    reason: str
    elapsed_ms: int

    @property
    def ok(self) -> bool:
        return False

    def to_error(self) -> CouchRequestError:
        return CouchRequestError(
            status_code=self.status_code,
            error=self.error,
            reason=self.reason,
            elapsed_ms=self.elapsed_ms,
        )

    def raise_error(self) -> None:
        raise self.to_error()


RequestOutcome = Union[RequestSuccess, RequestFailure]
