"""Long-poll change feed: one sequential request loop per subscription.

Usage:
    feed = ChangesFeed("mydb/", executor)
    subscription = await feed.subscribe()          # starts at the current update_seq
    subscription.add_listener(lambda batch: print(batch.ids))
    ...
    subscription.stop()

Each subscription keeps at most one request in flight. A successful response
advances the cursor and is handed to every listener, in registration order,
before the next request goes out. Failed attempts are retried with the same
cursor after a delay that doubles on every consecutive failure and resets on
the next success.
"""
from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Iterable, Mapping, Sequence

from couch_client.changes.base import ChangeListener, ChangesHandle
from couch_client.changes.contracts import ChangeBatch, ChangesOptions, Cursor
from couch_client.schemas.payload_contracts import ChangeRecord
from couch_client.transport.contracts import RequestFailure, RequestOutcome, RequestSuccess
from couch_client.transport.encoding import encode_options
from couch_client.transport.executor import RequestExecutor

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[Any]]


class ChangesFeed:
    def __init__(
        self,
        database_path: str,
        executor: RequestExecutor,
        options: ChangesOptions | None = None,
        *,
        sleep: SleepFn | None = None,
    ) -> None:
        self.database_path = database_path.rstrip("/") + "/"
        self.executor = executor
        self.options = options or ChangesOptions()
        self.sleep = sleep

    async def subscribe(
        self,
        since: Cursor | None = None,
        listeners: Iterable[ChangeListener] = (),
    ) -> ChangesHandle:
        """Start polling; without ``since`` the database's current update_seq is used."""
        subscription = ChangesSubscription(self, since=since, listeners=listeners)
        subscription.start()
        return subscription

    # ── requests ──

    def changes_target(self, cursor: Cursor) -> str:
        query: dict[str, Any] = {"heartbeat": self.options.heartbeat_ms}
        query.update(self.options.params)
        query["feed"] = "longpoll"
        query["since"] = cursor
        return f"{self.database_path}_changes{encode_options(query)}"

    async def fetch_info(self) -> RequestOutcome:
        return await asyncio.to_thread(self.executor.execute, self.database_path, "GET")

    async def poll(self, cursor: Cursor) -> RequestOutcome:
        return await asyncio.to_thread(self.executor.execute, self.changes_target(cursor), "GET")

    # ── payload ──

    def parse_batch(self, payload: Any) -> ChangeBatch:
        if not isinstance(payload, dict):
            raise ValueError(f"Change payload must be a JSON object, got {type(payload).__name__}")
        rows = extract_records(payload, self.options.record_fields)
        return ChangeBatch(
            cursor=extract_cursor(payload, self.options.cursor_fields),
            records=tuple(ChangeRecord.model_validate(row) for row in rows),
            payload=payload,
        )


class ChangesSubscription:
    """Handle of one running change-feed loop."""

    def __init__(
        self,
        feed: ChangesFeed,
        since: Cursor | None = None,
        listeners: Iterable[ChangeListener] = (),
    ) -> None:
        self._feed = feed
        self._cursor = since
        self._listeners: list[ChangeListener] = list(listeners)
        self._active = True
        self._wake = asyncio.Event()
        self._retry_delay_ms = feed.options.retry_base_ms
        self._consecutive_failures = 0
        self._task: asyncio.Task[None] | None = None

    @property
    def cursor(self) -> Cursor | None:
        return self._cursor

    @property
    def active(self) -> bool:
        return self._active

    @property
    def retry_delay_ms(self) -> int:
        """Delay applied before the next retry if the next attempt fails."""
        return self._retry_delay_ms

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    @property
    def listeners(self) -> tuple[ChangeListener, ...]:
        return tuple(self._listeners)

    def add_listener(self, listener: ChangeListener) -> ChangeListener:
        self._listeners.append(listener)
        return listener

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(
                self._run(), name=f"changes:{self._feed.database_path}"
            )

    def stop(self) -> None:
        if not self._active:
            return
        self._active = False
        self._wake.set()
        logger.info("changes subscription stopping db=%s cursor=%s", self._feed.database_path, self._cursor)

    async def wait_closed(self) -> None:
        """Wait for the loop to exit; an in-flight long-poll is allowed to finish."""
        if self._task is not None:
            await self._task

    async def close(self) -> None:
        """Stop and cancel the loop without waiting for an in-flight long-poll."""
        self.stop()
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass

    # ── loop ──

    async def _run(self) -> None:
        db = self._feed.database_path
        logger.info("changes subscription started db=%s since=%s", db, self._cursor)
        try:
            if self._cursor is None:
                await self._resolve_initial_cursor()

            while self._active:
                outcome = await self._feed.poll(self._cursor)
                if not self._active:
                    break

                if isinstance(outcome, RequestSuccess):
                    try:
                        batch = self._feed.parse_batch(outcome.payload)
                    except ValueError as exc:
                        outcome = _bad_payload(outcome, str(exc))
                    else:
                        self._reset_backoff()
                        if batch.cursor is not None:
                            self._cursor = batch.cursor
                        logger.debug(
                            "changes batch db=%s cursor=%s records=%d",
                            db, self._cursor, len(batch.records),
                        )
                        await self._dispatch(batch)
                        continue

                await self._backoff(outcome)
        finally:
            logger.info("changes subscription stopped db=%s cursor=%s", db, self._cursor)

    async def _resolve_initial_cursor(self) -> None:
        while self._active:
            outcome = await self._feed.fetch_info()
            if not self._active:
                return

            if isinstance(outcome, RequestSuccess):
                payload = outcome.payload
                update_seq = payload.get("update_seq") if isinstance(payload, dict) else None
                if update_seq is not None:
                    self._reset_backoff()
                    self._cursor = update_seq
                    return
                outcome = _bad_payload(outcome, "database info has no update_seq")

            await self._backoff(outcome)

    async def _dispatch(self, batch: ChangeBatch) -> None:
        for listener in list(self._listeners):
            if not self._active:
                return
            try:
                result = listener(batch)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(
                    "change listener %r failed db=%s cursor=%s",
                    listener, self._feed.database_path, self._cursor,
                )

    async def _backoff(self, failure: RequestFailure) -> None:
        if not self._active:
            return

        delay_ms = self._retry_delay_ms
        self._consecutive_failures += 1
        next_delay = delay_ms * 2
        if self._feed.options.max_retry_delay_ms is not None:
            next_delay = min(next_delay, self._feed.options.max_retry_delay_ms)
        self._retry_delay_ms = next_delay

        logger.warning(
            "changes poll failed db=%s cursor=%s status=%s error=%s reason=%s; retry #%d in %dms",
            self._feed.database_path, self._cursor, failure.status_code, failure.error,
            failure.reason, self._consecutive_failures, delay_ms,
        )
        await self._wait(delay_ms / 1000)

    async def _wait(self, seconds: float) -> None:
        if self._feed.sleep is not None:
            await self._feed.sleep(seconds)
            return
        try:
            await asyncio.wait_for(self._wake.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    def _reset_backoff(self) -> None:
        self._retry_delay_ms = self._feed.options.retry_base_ms
        self._consecutive_failures = 0


def extract_cursor(payload: Mapping[str, Any], fields: Sequence[str]) -> Cursor | None:
    """Locate the next-cursor value, preferring the configured field names."""
    for name in fields:
        value = payload.get(name)
        if value is not None and not isinstance(value, (list, dict)):
            return value
    for name, value in payload.items():
        if str(name).endswith("seq") and value is not None and not isinstance(value, (list, dict)):
            return value
    return None


def extract_records(payload: Mapping[str, Any], fields: Sequence[str]) -> list[Any]:
    """Locate the change-record list, preferring the configured field names."""
    for name in fields:
        value = payload.get(name)
        if isinstance(value, list):
            return value
    for value in payload.values():
        if isinstance(value, list):
            return value
    raise ValueError(f"Change payload has no record list (fields: {sorted(payload)})")


def _bad_payload(outcome: RequestSuccess, reason: str) -> RequestFailure:
    return RequestFailure(
        status_code=outcome.status_code,
        error="bad_payload",
        reason=reason,
        elapsed_ms=outcome.elapsed_ms,
    )
