"""Follow a database's change feed and log every change.

    COUCH_URL=http://127.0.0.1:5984 COUCH_DB=recipes python -m couch_client.workers.changes_worker
"""
from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass

from couch_client.changes import ChangeBatch, ChangesHandle
from couch_client.config.runtime import ClientSettings
from couch_client.server import CouchServer
from couch_client.utils.logging_config import parse_level, setup_logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkerSettings:
    database: str
    since: str | None = None
    log_level: int = logging.INFO

    @classmethod
    def from_env(cls) -> "WorkerSettings":
        database = os.getenv("COUCH_DB", "").strip()
        if not database:
            raise ValueError("COUCH_DB must name the database to follow")
        since = os.getenv("COUCH_SINCE", "").strip()
        return cls(
            database=database,
            since=since or None,
            log_level=parse_level(os.getenv("LOG_LEVEL")),
        )


def log_batch(batch: ChangeBatch) -> None:
    for record in batch.records:
        logger.info(
            "change id=%s rev=%s deleted=%s seq=%s",
            record.id, record.rev, record.deleted, record.seq,
        )
    logger.debug("cursor now %s", batch.cursor)


async def follow(server: CouchServer, settings: WorkerSettings) -> ChangesHandle:
    database = server.db(settings.database)
    return await database.changes(since=settings.since, listeners=[log_batch])


async def main() -> None:
    worker_settings = WorkerSettings.from_env()
    setup_logging(worker_settings.log_level)
    logger.info("changes worker bootstrap db=%s", worker_settings.database)

    server = CouchServer.from_settings(ClientSettings.from_env())
    subscription = await follow(server, worker_settings)
    try:
        await subscription.wait_closed()
    finally:
        await subscription.close()
        server.close()


def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("changes worker interrupted")


if __name__ == "__main__":
    run()
