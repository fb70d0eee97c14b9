"""Newline-delimited JSON stream decoding.

One JSON object per line. Blank lines are ignored; malformed lines and
non-object values are skipped and counted, never fatal on their own. A
stream in which every non-blank line was malformed is a protocol error:
the server answered 2xx but nothing it sent was usable.
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

import structlog

from scaffoldplane.core.errors import ProtocolError

log = structlog.get_logger(__name__)


@dataclass
class StreamStats:
    """Line accounting for one decoded stream."""

    parsed: int = 0
    skipped: int = 0


def parse_ndjson_line(line: str) -> dict[str, Any] | None:
    """Decode one line. Returns None for blank, malformed, or non-object lines."""
    stripped = line.strip()
    if not stripped:
        return None
    try:
        value = json.loads(stripped)
    except json.JSONDecodeError:
        return None
    return value if isinstance(value, dict) else None


async def iter_ndjson(
    lines: AsyncIterator[str],
    *,
    url: str,
    stats: StreamStats | None = None,
) -> AsyncIterator[dict[str, Any]]:
    """Yield decoded objects from an async iterator of text lines, in order.

    Raises:
        ProtocolError: the stream ended and no non-blank line was decodable.
    """
    stats = stats if stats is not None else StreamStats()
    async for line in lines:
        if not line.strip():
            continue
        obj = parse_ndjson_line(line)
        if obj is None:
            stats.skipped += 1
            log.debug("ndjson_line_skipped", url=url, line=line[:200])
            continue
        stats.parsed += 1
        yield obj

    if stats.skipped and not stats.parsed:
        raise ProtocolError.bad_body(url, f"all {stats.skipped} stream lines were malformed")
    if stats.skipped:
        log.warning("ndjson_lines_skipped", url=url, skipped=stats.skipped, parsed=stats.parsed)


def generate_token(obj: dict[str, Any]) -> str | None:
    """Token of a /api/generate stream object."""
    token = obj.get("response")
    return token if isinstance(token, str) and token else None


def chat_token(obj: dict[str, Any]) -> str | None:
    """Token of a /api/chat stream object (``message.content``, else ``response``)."""
    message = obj.get("message")
    if isinstance(message, dict):
        content = message.get("content")
        if isinstance(content, str) and content:
            return content
    return generate_token(obj)


def server_error(obj: dict[str, Any]) -> str | None:
    """In-band error reported by the server on an otherwise successful stream."""
    error = obj.get("error")
    return error if isinstance(error, str) and error else None
