from __future__ import annotations


class CouchRequestError(RuntimeError):
    """
    Raised when a request to the database server does not produce the expected result.

    Covers transport failures (``status_code`` is ``None``), unexpected HTTP statuses,
    undecodable bodies and error payloads returned with a success status.
    """

    def __init__(
        self,
        status_code: int | None,
        error: str,
        reason: str,
        elapsed_ms: int | None = None,
    ) -> None:
        self.status_code = status_code
        self.error = error
        self.reason = reason
        self.elapsed_ms = elapsed_ms
        super().__init__(f"{error}: {reason}" if status_code is None else f"{status_code} {error}: {reason}")

    @property
    def is_conflict(self) -> bool:
        return self.status_code == 409 or self.error == "conflict"

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404 or self.error == "not_found"
