"""Serialize structured tool output and bound it before it reaches the LLM."""

from __future__ import annotations

import json
from typing import Any

MAX_LINES = 2000
MAX_BYTES = 50 * 1024  # 50KB


def serialize_output(
    value: Any,
    max_lines: int = MAX_LINES,
    max_bytes: int = MAX_BYTES,
) -> str:
    """JSON-encode a tool output and truncate it to fit the context budget.

    Strings pass through as-is; values JSON can't encode fall back to
    ``str()``.
    """
    if isinstance(value, str):
        text = value
    else:
        try:
            text = json.dumps(value, ensure_ascii=False, default=str)
        except (TypeError, ValueError):
            text = str(value)
    return truncate_output(text, max_lines=max_lines, max_bytes=max_bytes)


def truncate_output(
    text: str,
    max_lines: int = MAX_LINES,
    max_bytes: int = MAX_BYTES,
) -> str:
    """Keep the tail of ``text`` within ``max_lines`` and ``max_bytes``.

    A one-line notice describing what was dropped is prefixed.
    """
    if not text:
        return text

    lines = text.split("\n")
    byte_count = len(text.encode("utf-8", errors="replace"))
    if len(lines) <= max_lines and byte_count <= max_bytes:
        return text

    skipped = max(0, len(lines) - max_lines)
    result = "\n".join(lines[skipped:])

    skipped_bytes = 0
    result_bytes = result.encode("utf-8", errors="replace")
    if len(result_bytes) > max_bytes:
        # Cut at a safe UTF-8 boundary, keeping the tail.
        result = result_bytes[-max_bytes:].decode("utf-8", errors="ignore")
        skipped_bytes = byte_count - max_bytes

    notice_parts = []
    if skipped:
        notice_parts.append(f"{skipped} lines skipped")
    if skipped_bytes:
        notice_parts.append(f"{skipped_bytes} bytes skipped")

    notice = (
        f"[Output truncated: {', '.join(notice_parts)}. "
        f"Total: {len(lines)} lines, {byte_count} bytes]"
    )
    return f"{notice}\n{result}"
