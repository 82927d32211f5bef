from __future__ import annotations

import asyncio
import unittest

from couch_client.changes import ChangesOptions
from couch_client.config.runtime import ClientSettings
from couch_client.errors import CouchRequestError
from couch_client.server import CouchServer
from couch_client.transport.contracts import RequestFailure, RequestSuccess
from couch_client.uuids import UUIDCache


class _StubExecutor:
    def __init__(self, *payloads):
        self.payloads = list(payloads)
        self.calls: list[tuple] = []
        self.closed = False

    def execute(self, target, method="GET", body=None, expected_status=200, headers=None):
        self.calls.append((target, method, body, expected_status))
        payload = self.payloads.pop(0)
        if isinstance(payload, RequestFailure):
            return payload
        return RequestSuccess(payload=payload, elapsed_ms=1)

    def close(self):
        self.closed = True


class TestCouchServer(unittest.TestCase):
    def test_server_introspection_targets(self):
        executor = _StubExecutor({"couchdb": "Welcome"}, ["a", "b"], [])
        server = CouchServer(executor)

        async def run():
            return await server.info(), await server.all_dbs(), await server.active_tasks()

        info, dbs, tasks = asyncio.run(run())

        self.assertEqual(info["couchdb"], "Welcome")
        self.assertEqual(dbs, ["a", "b"])
        self.assertEqual(tasks, [])
        self.assertEqual([c[0] for c in executor.calls], ["", "_all_dbs", "_active_tasks"])

    def test_continuous_replication_expects_accepted(self):
        executor = _StubExecutor({"ok": True}, {"ok": True}, {"ok": True})
        server = CouchServer(executor)

        async def run():
            await server.replicate("a", "b")
            await server.replicate("a", "http://remote/b", continuous=True)
            await server.replicate("a", "http://remote/b", continuous=True, cancel=True)

        asyncio.run(run())

        self.assertEqual([c[3] for c in executor.calls], [200, 202, 200])
        self.assertEqual(executor.calls[1][1], "POST")
        self.assertEqual(
            executor.calls[1][2],
            {"source": "a", "target": "http://remote/b", "continuous": True},
        )

    def test_failures_surface_as_errors(self):
        executor = _StubExecutor(
            RequestFailure(status_code=401, error="unauthorized", reason="Name or password is incorrect.", elapsed_ms=1)
        )
        server = CouchServer(executor)

        with self.assertRaises(CouchRequestError) as ctx:
            asyncio.run(server.all_dbs())

        self.assertEqual(ctx.exception.status_code, 401)

    def test_new_uuid_uses_shared_cache(self):
        executor = _StubExecutor({"uuids": ["u1", "u2"]})
        server = CouchServer(executor)

        self.assertEqual(server.new_uuid(2), "u1")
        self.assertEqual(server.new_uuid(), "u2")
        self.assertEqual(len(executor.calls), 1)

    def test_injected_empty_cache_is_shared_between_servers(self):
        executor = _StubExecutor({"uuids": ["u1", "u2"]})
        shared = UUIDCache(executor, batch_size=50)

        first = CouchServer(executor, uuid_cache=shared)
        second = CouchServer(executor, uuid_cache=shared)

        self.assertIs(first.uuid_cache, shared)
        self.assertIs(second.uuid_cache, shared)
        self.assertEqual(first.new_uuid(), "u1")
        self.assertEqual(second.new_uuid(), "u2")
        self.assertEqual(executor.calls[0][0], "_uuids?count=50")
        self.assertEqual(len(executor.calls), 1)

    def test_db_handles_share_executor_and_feed_defaults(self):
        executor = _StubExecutor()
        options = ChangesOptions(heartbeat_ms=2500)
        server = CouchServer(executor, changes_options=options)

        db = server.db("recipes")

        self.assertIs(db.executor, executor)
        self.assertIs(db.changes_options, options)
        self.assertEqual(db.path, "recipes/")

    def test_from_settings_wires_executor_cache_and_feed(self):
        settings = ClientSettings(
            url="http://couch.internal:5984",
            timeout_seconds=15.0,
            heartbeat_ms=30_000,
            retry_base_ms=250,
            retry_max_ms=10_000,
            uuid_batch_size=20,
        )

        server = CouchServer.from_settings(settings)

        self.assertEqual(server.executor.base_url, "http://couch.internal:5984")
        self.assertEqual(server.executor.timeout_seconds, 15.0)
        self.assertEqual(server.uuid_cache.batch_size, 20)
        self.assertEqual(server.changes_options.heartbeat_ms, 30_000)
        self.assertEqual(server.changes_options.retry_base_ms, 250)
        self.assertEqual(server.changes_options.max_retry_delay_ms, 10_000)
        server.close()

    def test_close_closes_executor(self):
        executor = _StubExecutor()
        CouchServer(executor).close()
        self.assertTrue(executor.closed)


if __name__ == "__main__":
    unittest.main()
