from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

from couch_client.config.runtime import ClientSettings
from couch_client.schemas.payload_contracts import ChangeRecord

Cursor = Union[str, int]


@dataclass(frozen=True)
class ChangesOptions:
    """Long-poll settings for one change-feed subscription."""

    heartbeat_ms: int = 10_000
    retry_base_ms: int = 100
    max_retry_delay_ms: int | None = None
    params: dict[str, Any] = field(default_factory=dict)
    cursor_fields: tuple[str, ...] = ("last_seq", "seq", "update_seq")
    record_fields: tuple[str, ...] = ("results", "changes", "rows")

    def __post_init__(self) -> None:
        if self.retry_base_ms <= 0:
            raise ValueError(f"retry_base_ms must be positive, got {self.retry_base_ms}")
        reserved = {"feed", "since"} & set(self.params)
        if reserved:
            raise ValueError(f"Change feed params cannot override {sorted(reserved)}")

    @classmethod
    def from_settings(cls, settings: ClientSettings, **overrides: Any) -> "ChangesOptions":
        values: dict[str, Any] = {
            "heartbeat_ms": settings.heartbeat_ms,
            "retry_base_ms": settings.retry_base_ms,
            "max_retry_delay_ms": settings.retry_max_ms,
        }
        values.update(overrides)
        return cls(**values)


@dataclass(frozen=True)
class ChangeBatch:
    """One long-poll response: the next cursor and the change rows in server order."""

    cursor: Cursor | None
    records: tuple[ChangeRecord, ...]
    payload: dict[str, Any] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.records)

    @property
    def ids(self) -> tuple[str, ...]:
        return tuple(record.id for record in self.records)
