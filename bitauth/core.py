"""Core primitives for the bitauth wallet tooling.

This module provides the foundational utilities used throughout the package:
- Canonical JSON serialization (sorted keys, no whitespace, UTF-8)
- Pretty JSON formatting for files written to the data directory
- Timestamps
- Alias and shell-quoting helpers used by the command line

Design principles:
- Pure functions where possible
- No global mutable state
- Type annotations throughout
"""

from __future__ import annotations

import json
import re
from datetime import date, datetime, timezone
from typing import Any, Dict

JSON_INDENT = 2


def _coerce_json_types(obj: Any, path: str = "$") -> Any:
    """Coerce Python objects into strict JSON types.

    - bytes become lowercase hex
    - datetimes become RFC3339 strings (UTC, seconds precision)
    - floats are rejected to keep the byte form reproducible
    """
    if obj is None or isinstance(obj, (str, bool, int)):
        return obj
    if isinstance(obj, float):
        raise ValueError(f"Float not allowed in canonical JSON at {path}")
    if isinstance(obj, (bytes, bytearray)):
        return bytes(obj).hex()
    if isinstance(obj, datetime):
        if obj.tzinfo is None:
            obj = obj.replace(tzinfo=timezone.utc)
        return obj.astimezone(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, (list, tuple)):
        return [_coerce_json_types(v, f"{path}[{i}]") for i, v in enumerate(obj)]
    if isinstance(obj, dict):
        out: Dict[str, Any] = {}
        for k, v in obj.items():
            out[str(k)] = _coerce_json_types(v, f"{path}.{k}")
        return out
    return str(obj)


def canonical_json_bytes(obj: Any) -> bytes:
    """Serialize object to canonical JSON bytes.

    Properties:
    - Keys of every object sorted lexicographically (arrays keep their order)
    - No whitespace
    - UTF-8 encoded
    - Floats rejected (use strings/ints for amounts)

    This ensures byte-for-byte reproducibility for signatures over wallet
    shares.
    """
    return json.dumps(
        _coerce_json_types(obj),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    ).encode("utf-8")


def format_json(obj: Any) -> str:
    """Human-readable JSON, as written to wallet and template files."""
    return json.dumps(obj, indent=JSON_INDENT, ensure_ascii=False)


def now_iso8601() -> str:
    """Return current UTC time in ISO8601 format."""
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def to_kebab_case(text: str) -> str:
    """Lowercase and replace every character outside ``[a-z0-9]`` with ``-``."""
    return re.sub(r"[^a-z0-9]", "-", text.lower())


def bash_escape_single_quote(text: str) -> str:
    """Escape text for use inside a single-quoted shell argument."""
    return text.replace("'", "'\\''")
