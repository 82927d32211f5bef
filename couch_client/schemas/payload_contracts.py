from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

BulkStatus = Literal["ok", "conflict", "error"]


class ChangeRevision(BaseModel):
    rev: str

    model_config = ConfigDict(extra="allow")


class ChangeRecord(BaseModel):
    """One row of a ``_changes`` response."""

    id: str
    seq: Any = None
    changes: list[ChangeRevision] = Field(default_factory=list)
    deleted: bool = False
    doc: dict[str, Any] | None = None

    model_config = ConfigDict(extra="allow")

    @property
    def rev(self) -> str | None:
        """Winning revision tag, listed first by the server."""
        return self.changes[0].rev if self.changes else None


class BulkResult(BaseModel):
    """Per-document outcome of a ``_bulk_docs`` request."""

    id: str | None = None
    rev: str | None = None
    ok: bool | None = None
    error: str | None = None
    reason: str | None = None

    model_config = ConfigDict(extra="allow")

    @property
    def status(self) -> BulkStatus:
        if self.error is None:
            return "ok"
        if self.error == "conflict":
            return "conflict"
        return "error"

    @property
    def succeeded(self) -> bool:
        return self.status == "ok"


class DatabaseInfo(BaseModel):
    db_name: str
    update_seq: Any = None
    doc_count: int | None = None
    doc_del_count: int | None = None

    model_config = ConfigDict(extra="allow")
