"""Operations scoped to a single database.

Every method issues one request (``all_apps`` issues one per design document)
and raises :class:`~couch_client.errors.CouchRequestError` when the server does
not answer with the expected status. Only :meth:`Database.changes` keeps state.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Collection, Iterable, Mapping, Sequence

from couch_client.changes import ChangeListener, ChangesFeed, ChangesHandle, ChangesOptions, Cursor
from couch_client.changes.feed import SleepFn
from couch_client.errors import CouchRequestError
from couch_client.schemas.payload_contracts import BulkResult, DatabaseInfo
from couch_client.transport.contracts import RequestFailure
from couch_client.transport.encoding import (
    encode_doc_id,
    encode_options,
    full_commit_headers,
    quote_component,
    to_json,
)
from couch_client.transport.executor import RequestExecutor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DesignApp:
    """A design document that serves an application page."""

    name: str
    path: str
    design_doc: dict[str, Any]


class Database:
    def __init__(
        self,
        name: str,
        executor: RequestExecutor,
        changes_options: ChangesOptions | None = None,
        *,
        sleep: SleepFn | None = None,
    ) -> None:
        if not str(name or "").strip():
            raise ValueError("Database name cannot be empty")
        self.name = name
        self.executor = executor
        self.changes_options = changes_options or ChangesOptions()
        self.path = f"{quote_component(name)}/"
        self._sleep = sleep

    def __repr__(self) -> str:
        return f"Database({self.name!r})"

    # ── lifecycle ──

    async def info(self) -> DatabaseInfo:
        payload = await self._request(self.path)
        return DatabaseInfo.model_validate(payload)

    async def create(self) -> dict[str, Any]:
        return await self._request(self.path, "PUT", expected_status=201)

    async def drop(self) -> dict[str, Any]:
        return await self._request(self.path, "DELETE")

    async def compact(self) -> dict[str, Any]:
        return await self._request(f"{self.path}_compact", "POST", expected_status=202)

    async def view_cleanup(self) -> dict[str, Any]:
        return await self._request(f"{self.path}_view_cleanup", "POST", expected_status=202)

    async def compact_view(self, design_name: str) -> dict[str, Any]:
        """Compact the view indexes of one design document."""
        return await self._request(
            f"{self.path}_compact/{quote_component(design_name)}", "POST", expected_status=202
        )

    # ── change feed ──

    async def changes(
        self,
        since: Cursor | None = None,
        *,
        options: ChangesOptions | None = None,
        listeners: Iterable[ChangeListener] = (),
    ) -> ChangesHandle:
        feed = ChangesFeed(self.path, self.executor, options or self.changes_options, sleep=self._sleep)
        return await feed.subscribe(since=since, listeners=listeners)

    # ── documents ──

    async def all_docs(self, keys: Sequence[Any] | None = None, **options: Any) -> dict[str, Any]:
        target = f"{self.path}_all_docs{encode_options(options)}"
        if keys is not None:
            return await self._request(target, "POST", body={"keys": list(keys)})
        return await self._request(target)

    async def all_design_docs(self, **options: Any) -> dict[str, Any]:
        return await self.all_docs(**{"startkey": "_design", "endkey": "_design0", **options})

    async def all_apps(self) -> list[DesignApp]:
        listing = await self.all_design_docs()
        rows = listing.get("rows") or []
        design_docs = await asyncio.gather(*(self.open_doc(row["id"]) for row in rows))

        apps: list[DesignApp] = []
        for ddoc in design_docs:
            app_name = "/".join(ddoc["_id"].split("/")[1:])
            index = (ddoc.get("couchapp") or {}).get("index")
            if not index and "index.html" in (ddoc.get("_attachments") or {}):
                index = "index.html"
            if not index:
                continue
            path = "/".join(["", self.name, ddoc["_id"], index])
            apps.append(DesignApp(name=app_name, path=path, design_doc=ddoc))
        return apps

    async def open_doc(self, doc_id: str, **options: Any) -> dict[str, Any]:
        return await self._request(f"{self.path}{encode_doc_id(doc_id)}{encode_options(options)}")

    async def save_doc(
        self,
        doc: dict[str, Any],
        *,
        ensure_full_commit: bool | None = None,
        **options: Any,
    ) -> dict[str, Any]:
        """Create or update ``doc``; its ``_id`` and ``_rev`` are updated in place."""
        if "_id" not in doc:
            method, target = "POST", self.path
        else:
            method, target = "PUT", f"{self.path}{encode_doc_id(doc['_id'])}"

        payload = await self._request(
            f"{target}{encode_options(options)}",
            method,
            body=doc,
            expected_status=(200, 201, 202),
            headers=full_commit_headers(ensure_full_commit),
        )
        doc["_id"] = payload.get("id", doc.get("_id"))
        doc["_rev"] = payload.get("rev")
        return payload

    async def remove_doc(self, doc: Mapping[str, Any]) -> dict[str, Any]:
        target = f"{self.path}{encode_doc_id(doc['_id'])}{encode_options({'rev': doc.get('_rev')})}"
        return await self._request(target, "DELETE")

    async def copy_doc(self, doc_id: str, destination: str, **options: Any) -> dict[str, Any]:
        return await self._request(
            f"{self.path}{encode_doc_id(doc_id)}{encode_options(options)}",
            "COPY",
            expected_status=201,
            headers={"Destination": destination},
        )

    # ── bulk ──

    async def bulk_save(
        self,
        docs: Sequence[dict[str, Any]],
        *,
        ensure_full_commit: bool | None = None,
        **options: Any,
    ) -> list[BulkResult]:
        """Write ``docs`` in one request.

        Returns one :class:`BulkResult` per input document, in input order. A
        conflict or error on one entry does not affect the others; successful
        entries get their ``_id``/``_rev`` written back.
        """
        docs = list(docs)
        payload = await self._request(
            f"{self.path}_bulk_docs{encode_options(options)}",
            "POST",
            body={"docs": docs},
            expected_status=201,
            headers=full_commit_headers(ensure_full_commit),
        )

        if not isinstance(payload, list) or len(payload) != len(docs):
            count = len(payload) if isinstance(payload, list) else "no"
            raise CouchRequestError(
                status_code=201,
                error="bulk_mismatch",
                reason=f"Expected {len(docs)} bulk results, got {count}",
            )

        results = [BulkResult.model_validate(entry) for entry in payload]
        for doc, result in zip(docs, results):
            if result.succeeded:
                doc["_id"] = result.id or doc.get("_id")
                doc["_rev"] = result.rev

        failed = sum(1 for result in results if not result.succeeded)
        if failed:
            logger.info("bulk write db=%s docs=%d failed=%d", self.name, len(docs), failed)
        return results

    async def bulk_remove(self, docs: Sequence[Mapping[str, Any]], **options: Any) -> list[BulkResult]:
        return await self.bulk_save([{**doc, "_deleted": True} for doc in docs], **options)

    # ── queries ──

    async def query(
        self,
        map_fun: str,
        reduce_fun: str | None = None,
        language: str = "javascript",
        **options: Any,
    ) -> dict[str, Any]:
        """Run a temporary (ad-hoc) view."""
        body = {"language": language or "javascript", "map": map_fun}
        if reduce_fun is not None:
            body["reduce"] = reduce_fun
        return await self._request(f"{self.path}_temp_view{encode_options(options)}", "POST", body=body)

    async def view(self, name: str, keys: Sequence[Any] | None = None, **options: Any) -> dict[str, Any]:
        """Query a stored view; ``name`` is ``"<design>/<view>"``."""
        design, view_name = _split_qualified(name, "view")
        target = f"{self.path}_design/{design}/_view/{view_name}{encode_options(options)}"
        if keys is not None:
            return await self._request(target, "POST", body={"keys": list(keys)})
        return await self._request(target)

    async def list_view(
        self,
        list_name: str,
        view: str,
        keys: Sequence[Any] | None = None,
        **options: Any,
    ) -> Any:
        """Render ``view`` through a list function; ``list_name`` is ``"<design>/<list>"``."""
        design, list_fun = _split_qualified(list_name, "list")
        target = f"{self.path}_design/{design}/_list/{list_fun}/{view}{encode_options(options)}"
        if keys is not None:
            return await self._request(target, "POST", body={"keys": list(keys)})
        return await self._request(target)

    # ── properties ──

    async def get_db_property(self, name: str, **options: Any) -> Any:
        return await self._request(f"{self.path}{name}{encode_options(options)}")

    async def set_db_property(self, name: str, value: Any, **options: Any) -> Any:
        return await self._request(
            f"{self.path}{name}{encode_options(options)}", "PUT", body=to_json(value)
        )

    # ── internals ──

    async def _request(
        self,
        target: str,
        method: str = "GET",
        body: Any = None,
        expected_status: int | Collection[int] = 200,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        outcome = await asyncio.to_thread(
            self.executor.execute,
            target,
            method,
            body,
            expected_status,
            headers or None,
        )
        if isinstance(outcome, RequestFailure):
            raise outcome.to_error()
        return outcome.payload


def _split_qualified(name: str, kind: str) -> tuple[str, str]:
    design, sep, rest = name.partition("/")
    if not sep or not design or not rest:
        raise ValueError(f"{kind} name must look like '<design>/<{kind}>', got {name!r}")
    return design, rest
