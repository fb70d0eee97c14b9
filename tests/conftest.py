"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages,
and provides a scripted model server built on httpx.MockTransport.
"""

import json
import logging
import sys
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest

# Insert local src directory at the beginning of sys.path
# This ensures that the local scaffoldplane package is used, not any installed one
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

# Force reimport of scaffoldplane modules if already imported
for module_name in list(sys.modules.keys()):
    if module_name.startswith("scaffoldplane"):
        del sys.modules[module_name]

import httpx  # noqa: E402
import structlog  # noqa: E402


def _ndjson(*objects: dict[str, Any] | str) -> bytes:
    """Encode stream objects one per line. Strings are sent verbatim."""
    lines = [o if isinstance(o, str) else json.dumps(o) for o in objects]
    return ("\n".join(lines) + "\n").encode("utf-8")


def _generate_stream(*tokens: str, model: str = "test-model") -> bytes:
    """A /api/generate stream producing the given tokens."""
    objects: list[dict[str, Any] | str] = [
        {"model": model, "response": t, "done": False} for t in tokens
    ]
    objects.append({"model": model, "response": "", "done": True})
    return _ndjson(*objects)


class FakeModelServer:
    """Route table for httpx.MockTransport that records every request."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: list[httpx.Request] = []

    ndjson = staticmethod(_ndjson)
    generate_stream = staticmethod(_generate_stream)

    def on(
        self,
        method: str,
        path: str,
        handler: Callable[[httpx.Request], httpx.Response],
    ) -> None:
        self.routes[(method, path)] = handler

    def respond(self, method: str, path: str, *, status: int = 200, content: bytes = b"") -> None:
        self.on(method, path, lambda _req: httpx.Response(status, content=content))

    def calls(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    def payload(self, path: str, index: int = -1) -> dict[str, Any]:
        return json.loads(self.calls(path)[index].content)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, text="not found")
        return handler(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def server() -> FakeModelServer:
    return FakeModelServer()


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    """Drop handlers bound to streams a test may have replaced."""
    yield
    logging.getLogger().handlers.clear()
    structlog.reset_defaults()
