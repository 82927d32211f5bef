from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Collection, Mapping

import requests

from couch_client.config.runtime import DEFAULT_URL
from couch_client.transport.contracts import RequestFailure, RequestOutcome, RequestSuccess

logger = logging.getLogger(__name__)

_DEFAULT_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
}


@dataclass
class RequestExecutor:
    """Performs exactly one HTTP request and classifies its outcome.

    Never retries and never raises for request failures; callers decide what a
    :class:`RequestFailure` means for them.
    """

    base_url: str = DEFAULT_URL
    timeout_seconds: float = 60.0
    session: Any | None = None
    headers: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.session is None:
            self.session = requests.Session()

    def url_for(self, target: str) -> str:
        return f"{self.base_url.rstrip('/')}/{target.lstrip('/')}"

    def execute(
        self,
        target: str,
        method: str = "GET",
        body: Any = None,
        expected_status: int | Collection[int] = 200,
        headers: Mapping[str, str] | None = None,
    ) -> RequestOutcome:
        expected = {expected_status} if isinstance(expected_status, int) else set(expected_status)
        request_headers = {**_DEFAULT_HEADERS, **self.headers, **(headers or {})}
        default_error = f"{method.upper()} {target} failed"

        started = time.monotonic()
        try:
            response = self.session.request(
                method.upper(),
                self.url_for(target),
                data=_encode_body(body),
                headers=request_headers,
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as exc:
            elapsed_ms = _elapsed_ms(started)
            logger.debug("%s %s transport error after %dms: %s", method.upper(), target, elapsed_ms, exc)
            return RequestFailure(
                status_code=None,
                error="transport_error",
                reason=str(exc) or exc.__class__.__name__,
                elapsed_ms=elapsed_ms,
            )

        elapsed_ms = _elapsed_ms(started)
        status_code = int(response.status_code)
        logger.debug("%s %s -> %d in %dms", method.upper(), target, status_code, elapsed_ms)

        try:
            payload = response.json()
        except ValueError as exc:
            return RequestFailure(
                status_code=status_code,
                error="decode_error",
                reason=f"{default_error}: {exc}",
                elapsed_ms=elapsed_ms,
            )

        if status_code not in expected:
            body = payload if isinstance(payload, dict) else {}
            return RequestFailure(
                status_code=status_code,
                error=str(body.get("error") or default_error),
                reason=str(body.get("reason") or "no response"),
                elapsed_ms=elapsed_ms,
            )

        # Documents are user data; an "error" field on an expected status is content.
        return RequestSuccess(payload=payload, elapsed_ms=elapsed_ms, status_code=status_code)

    def close(self) -> None:
        close = getattr(self.session, "close", None)
        if callable(close):
            close()


def _encode_body(body: Any) -> str | bytes | None:
    if body is None or isinstance(body, (str, bytes)):
        return body
    return json.dumps(body, separators=(",", ":"))


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
