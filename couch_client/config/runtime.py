from __future__ import annotations

from dataclasses import dataclass
import os

DEFAULT_URL = "http://127.0.0.1:5984"


@dataclass(frozen=True)
class ClientSettings:
    url: str = DEFAULT_URL
    timeout_seconds: float = 60.0
    heartbeat_ms: int = 10_000
    retry_base_ms: int = 100
    retry_max_ms: int | None = None
    uuid_batch_size: int = 1

    def __post_init__(self) -> None:
        if not self.url.strip():
            raise ValueError("COUCH_URL cannot be empty")
        if self.heartbeat_ms <= 0:
            raise ValueError(f"heartbeat_ms must be positive, got {self.heartbeat_ms}")
        if self.retry_base_ms <= 0:
            raise ValueError(f"retry_base_ms must be positive, got {self.retry_base_ms}")
        if self.uuid_batch_size < 1:
            raise ValueError(f"uuid_batch_size must be >= 1, got {self.uuid_batch_size}")

    @classmethod
    def from_env(cls) -> "ClientSettings":
        retry_max_ms = int(os.getenv("COUCH_RETRY_MAX_MS", "0"))
        return cls(
            url=os.getenv("COUCH_URL", DEFAULT_URL).strip(),
            timeout_seconds=float(os.getenv("COUCH_TIMEOUT_SECONDS", "60")),
            heartbeat_ms=int(os.getenv("COUCH_HEARTBEAT_MS", "10000")),
            retry_base_ms=int(os.getenv("COUCH_RETRY_BASE_MS", "100")),
            retry_max_ms=retry_max_ms if retry_max_ms > 0 else None,
            uuid_batch_size=int(os.getenv("COUCH_UUID_BATCH", "1")),
        )
