"""Path and query-string encoding shared by every request builder."""
from __future__ import annotations

import json
from typing import Any, Mapping
from urllib.parse import quote

DESIGN_PREFIX = "_design"

# Query parameters the server expects as JSON values.
JSON_QUERY_PARAMS = frozenset({"key", "keys", "startkey", "endkey", "start_key", "end_key"})

_URI_COMPONENT_SAFE = "!~*'()"


def quote_component(value: str) -> str:
    return quote(value, safe=_URI_COMPONENT_SAFE)


def encode_doc_id(doc_id: str) -> str:
    """Percent-encode a document id, keeping a leading ``_design/`` segment intact."""
    parts = doc_id.split("/")
    if parts[0] == DESIGN_PREFIX and len(parts) > 1:
        return f"{DESIGN_PREFIX}/{quote_component('/'.join(parts[1:]))}"
    return quote_component(doc_id)


def to_json(value: Any) -> str | None:
    if value is None:
        return None
    return json.dumps(value, separators=(",", ":"))


def encode_options(options: Mapping[str, Any] | None) -> str:
    """Render options as ``?a=1&b=2``; empty string when there is nothing to send.

    ``None`` values are skipped, booleans become ``true``/``false`` and the
    key-range parameters are JSON-encoded before percent-encoding.
    """
    if not options:
        return ""

    parts: list[str] = []
    for name, value in options.items():
        if value is None:
            continue
        if name in JSON_QUERY_PARAMS:
            rendered = to_json(value)
        elif isinstance(value, bool):
            rendered = "true" if value else "false"
        else:
            rendered = str(value)
        parts.append(f"{quote_component(str(name))}={quote_component(rendered)}")

    return f"?{'&'.join(parts)}" if parts else ""


def full_commit_headers(ensure_full_commit: bool | None) -> dict[str, str]:
    if ensure_full_commit is None:
        return {}
    return {
        "Accept": "application/json",
        "X-Couch-Full-Commit": "true" if ensure_full_commit else "false",
    }
