"""Strict JSON decoding for uploaded files.

Uploaded documents end up in jsonb columns, so anything PostgreSQL refuses
is refused here as well: the non-standard constants NaN / Infinity and the
NUL character in any key or string. Documents nested deeper than the
decoder's recursion limit are reported as ordinary decode errors.
"""
from __future__ import annotations

import json
from typing import Any

__all__ = ["loads_strict"]


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant: {name}")


def _reject_nul(data: Any) -> None:
    stack = [data]
    while stack:
        node = stack.pop()
        if isinstance(node, str):
            if "\x00" in node:
                raise ValueError("NUL character in string value")
        elif isinstance(node, dict):
            for key, value in node.items():
                if "\x00" in key:
                    raise ValueError("NUL character in object key")
                stack.append(value)
        elif isinstance(node, list):
            stack.extend(node)


def loads_strict(raw: bytes | str) -> Any:
    """Decode UTF-8 JSON, raising ValueError for anything jsonb cannot store."""
    text = raw.decode("utf-8") if isinstance(raw, bytes) else raw
    try:
        data = json.loads(text, parse_constant=_reject_constant)
    except RecursionError as e:
        raise ValueError("document is nested too deeply") from e
    _reject_nul(data)
    return data
