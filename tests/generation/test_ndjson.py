"""Tests for generation/ndjson.py module."""

from __future__ import annotations

from collections.abc import AsyncIterator

import pytest

from scaffoldplane.core.errors import ProtocolError
from scaffoldplane.generation.ndjson import (
    StreamStats,
    chat_token,
    generate_token,
    iter_ndjson,
    parse_ndjson_line,
    server_error,
)


async def _lines(*lines: str) -> AsyncIterator[str]:
    for line in lines:
        yield line


async def _collect(*lines: str, stats: StreamStats | None = None) -> list[dict]:
    return [obj async for obj in iter_ndjson(_lines(*lines), url="http://test", stats=stats)]


class TestParseNdjsonLine:
    """Tests for parse_ndjson_line."""

    def test_parses_object(self) -> None:
        """A JSON object line decodes to a dict."""
        assert parse_ndjson_line('{"response": "a"}') == {"response": "a"}

    def test_strips_whitespace(self) -> None:
        """Surrounding whitespace and CR are ignored."""
        assert parse_ndjson_line('  {"a": 1}\r') == {"a": 1}

    @pytest.mark.parametrize("line", ["", "   ", "not json", "[1, 2]", "42", '{"a":'])
    def test_unusable_lines_return_none(self, line: str) -> None:
        """Blank, malformed, and non-object lines return None."""
        assert parse_ndjson_line(line) is None


class TestIterNdjson:
    """Tests for iter_ndjson."""

    @pytest.mark.asyncio
    async def test_yields_in_order(self) -> None:
        """Objects are yielded in stream order."""
        result = await _collect('{"n": 1}', '{"n": 2}', '{"n": 3}')
        assert [o["n"] for o in result] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_skips_malformed_lines(self) -> None:
        """A malformed line between valid ones is skipped and counted."""
        stats = StreamStats()
        result = await _collect('{"n": 1}', "garbage", '{"n": 2}', stats=stats)

        assert [o["n"] for o in result] == [1, 2]
        assert stats.parsed == 2
        assert stats.skipped == 1

    @pytest.mark.asyncio
    async def test_blank_lines_are_not_counted(self) -> None:
        """Blank lines are neither parsed nor skipped."""
        stats = StreamStats()
        await _collect("", '{"n": 1}', "   ", stats=stats)
        assert stats.skipped == 0

    @pytest.mark.asyncio
    async def test_all_malformed_raises(self) -> None:
        """A stream with no decodable line is a protocol error."""
        with pytest.raises(ProtocolError):
            await _collect("nope", "still nope")

    @pytest.mark.asyncio
    async def test_empty_stream_is_not_an_error(self) -> None:
        """An empty stream yields nothing."""
        assert await _collect() == []


class TestTokenExtraction:
    """Tests for token/error helpers."""

    def test_generate_token(self) -> None:
        """Generate token comes from 'response'."""
        assert generate_token({"response": "hi"}) == "hi"

    def test_generate_token_empty_is_none(self) -> None:
        """Empty or missing response yields no token."""
        assert generate_token({"response": ""}) is None
        assert generate_token({"done": True}) is None

    def test_chat_token_prefers_message_content(self) -> None:
        """Chat token comes from message.content."""
        assert chat_token({"message": {"role": "assistant", "content": "yo"}}) == "yo"

    def test_chat_token_falls_back_to_response(self) -> None:
        """Chat objects without a message fall back to 'response'."""
        assert chat_token({"response": "fallback"}) == "fallback"

    def test_server_error(self) -> None:
        """In-band error field is surfaced."""
        assert server_error({"error": "model not found"}) == "model not found"
        assert server_error({"response": "ok"}) is None
