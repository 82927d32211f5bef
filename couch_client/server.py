from __future__ import annotations

import asyncio
from typing import Any

from couch_client.changes import ChangesOptions
from couch_client.changes.feed import SleepFn
from couch_client.config.runtime import ClientSettings
from couch_client.database import Database
from couch_client.transport.contracts import RequestFailure
from couch_client.transport.executor import RequestExecutor
from couch_client.uuids import UUIDCache


class CouchServer:
    """Entry point for server-wide operations and per-database handles.

    Example::

        server = CouchServer.from_settings(ClientSettings.from_env())
        db = server.db("recipes")
        subscription = await db.changes()
    """

    def __init__(
        self,
        executor: RequestExecutor | None = None,
        *,
        uuid_cache: UUIDCache | None = None,
        changes_options: ChangesOptions | None = None,
        sleep: SleepFn | None = None,
    ) -> None:
        self.executor = executor if executor is not None else RequestExecutor()
        self.uuid_cache = uuid_cache if uuid_cache is not None else UUIDCache(self.executor)
        self.changes_options = changes_options or ChangesOptions()
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: ClientSettings) -> "CouchServer":
        executor = RequestExecutor(base_url=settings.url, timeout_seconds=settings.timeout_seconds)
        return cls(
            executor,
            uuid_cache=UUIDCache(executor, batch_size=settings.uuid_batch_size),
            changes_options=ChangesOptions.from_settings(settings),
        )

    def db(self, name: str, changes_options: ChangesOptions | None = None) -> Database:
        return Database(
            name,
            self.executor,
            changes_options or self.changes_options,
            sleep=self._sleep,
        )

    async def info(self) -> dict[str, Any]:
        return await self._request("")

    async def all_dbs(self) -> list[str]:
        return await self._request("_all_dbs")

    async def active_tasks(self) -> list[dict[str, Any]]:
        return await self._request("_active_tasks")

    async def replicate(self, source: str, target: str, **options: Any) -> dict[str, Any]:
        """Start, configure or cancel a replication.

        Continuous replications are acknowledged with 202 unless ``cancel`` is set.
        """
        body = {"source": source, "target": target, **options}
        expected = 202 if options.get("continuous") and not options.get("cancel") else 200
        return await self._request("_replicate", "POST", body=body, expected_status=expected)

    def new_uuid(self, cache_num: int | None = None) -> str:
        """Next server-generated id; blocks while the cache refills."""
        return self.uuid_cache.next(cache_num)

    def close(self) -> None:
        self.executor.close()

    async def _request(
        self,
        target: str,
        method: str = "GET",
        body: Any = None,
        expected_status: int = 200,
    ) -> Any:
        outcome = await asyncio.to_thread(self.executor.execute, target, method, body, expected_status)
        if isinstance(outcome, RequestFailure):
            raise outcome.to_error()
        return outcome.payload
