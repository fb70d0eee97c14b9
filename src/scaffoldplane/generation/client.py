"""Async client for the local model server.

Operations:
- generate: /api/generate, streaming NDJSON or a single JSON body, LRU-cached
- chat: /api/chat, streaming NDJSON, never cached
- list_models: /api/tags
- pull_model: /api/pull, status lines relayed to a progress callback

Tokens are delivered through async iterators in server order. A stream that
is abandoned or cancelled before its end writes nothing to the cache.
Transport and protocol failures are raised, never retried.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable, Sequence
from contextlib import aclosing, asynccontextmanager
from datetime import UTC, datetime
from types import TracebackType
from typing import Any

import httpx
import structlog

from scaffoldplane.config.constants import (
    CHAT_PATH,
    DEFAULT_BASE_URL,
    DEFAULT_CACHE_CAPACITY,
    GENERATE_PATH,
    PULL_PATH,
    PULL_SUCCESS_STATUS,
    TAGS_PATH,
)
from scaffoldplane.config.models import GenerationConfig
from scaffoldplane.core.errors import ProtocolError, TransportError
from scaffoldplane.generation.cache import GenerationCache
from scaffoldplane.generation.models import (
    ChatMessage,
    GenerateOptions,
    GenerationRequest,
    GenerationResult,
    ModelInfo,
)
from scaffoldplane.generation.ndjson import chat_token, generate_token, iter_ndjson, server_error

log = structlog.get_logger(__name__)

TokenCallback = Callable[[str], None]


def _now() -> str:
    return datetime.now(UTC).isoformat()


class GenerationClient:
    """Client for generate/chat/list/pull against one model server.

    Usage::

        async with GenerationClient("http://localhost:11434") as client:
            async for token in client.stream_generate(request):
                print(token, end="")
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        cache: GenerationCache | None = None,
        cache_capacity: int = DEFAULT_CACHE_CAPACITY,
        timeout: float | None = None,
        connect_timeout: float = 10.0,
        options: GenerateOptions | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Model server address
            cache: Generation cache to use. A fresh one is created if None,
                   so two clients never share entries unless given the same cache.
            cache_capacity: Capacity of the fresh cache (ignored if cache is given)
            timeout: Default total bound for generate/chat calls (None = unbounded)
            connect_timeout: Connection establishment bound
            options: Default sampling options, used when a request sets none
            transport: httpx transport override (tests use httpx.MockTransport)
        """
        self._base_url = base_url.rstrip("/")
        self._cache = cache if cache is not None else GenerationCache(cache_capacity)
        self._timeout = timeout
        self._options = options or GenerateOptions()
        self._http = httpx.AsyncClient(
            timeout=httpx.Timeout(None, connect=connect_timeout),
            transport=transport,
        )

    @classmethod
    def from_config(
        cls,
        config: GenerationConfig,
        *,
        cache: GenerationCache | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> GenerationClient:
        return cls(
            config.base_url,
            cache=cache,
            cache_capacity=config.cache_capacity,
            timeout=config.timeout_sec,
            connect_timeout=config.connect_timeout_sec,
            options=GenerateOptions(**config.options()),
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    @base_url.setter
    def base_url(self, url: str) -> None:
        self._base_url = url.rstrip("/")

    @property
    def cache(self) -> GenerationCache:
        return self._cache

    @property
    def default_options(self) -> GenerateOptions:
        return self._options

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> GenerationClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # generate
    # ------------------------------------------------------------------

    async def stream_generate(self, request: GenerationRequest) -> AsyncIterator[str]:
        """Yield tokens of one generation in server order.

        A cache hit yields the cached text once and touches no network.
        The cache is written only after the stream completes.
        """
        cached = self._cache.get(*request.cache_key)
        if cached is not None:
            log.debug("generation_cache_hit", model=request.model)
            yield cached
            return

        if not request.streaming:
            result = await self._generate_once(request)
            self._cache.set(*request.cache_key, result.text)
            yield result.text
            return

        pieces: list[str] = []
        async with aclosing(self._stream_generate_uncached(request)) as tokens:
            async for token in tokens:
                pieces.append(token)
                yield token
        self._cache.set(*request.cache_key, "".join(pieces))

    async def generate(
        self,
        request: GenerationRequest,
        *,
        on_token: TokenCallback | None = None,
        timeout: float | None = None,
    ) -> GenerationResult:
        """Run one generation to completion and return its final text.

        Args:
            request: The generation to run
            on_token: Called once per token, in order
            timeout: Total bound for this call (defaults to the client's)

        Raises:
            TransportError: connection failure, non-2xx status, or timeout
            ProtocolError: unusable response body
        """
        cached = self._cache.get(*request.cache_key)
        if cached is not None:
            log.debug("generation_cache_hit", model=request.model)
            if on_token is not None:
                on_token(cached)
            return GenerationResult(
                text=cached, model=request.model, created_at=_now(), cached=True
            )

        async with self._deadline(GENERATE_PATH, timeout):
            if request.streaming:
                pieces: list[str] = []
                async with aclosing(self._stream_generate_uncached(request)) as tokens:
                    async for token in tokens:
                        pieces.append(token)
                        if on_token is not None:
                            on_token(token)
                result = GenerationResult(
                    text="".join(pieces), model=request.model, created_at=_now()
                )
            else:
                result = await self._generate_once(request)
                if on_token is not None and result.text:
                    on_token(result.text)

        self._cache.set(*request.cache_key, result.text)
        log.debug("generation_done", model=request.model, chars=len(result.text))
        return result

    async def _stream_generate_uncached(self, request: GenerationRequest) -> AsyncIterator[str]:
        payload = self._generate_payload(request)
        async with aclosing(self._stream_objects(GENERATE_PATH, payload)) as objects:
            async for obj in objects:
                token = generate_token(obj)
                if token is not None:
                    yield token

    def _generate_payload(self, request: GenerationRequest) -> dict[str, Any]:
        payload = request.to_payload()
        if not payload["options"]:
            payload["options"] = self._options.to_payload()
        return payload

    async def _generate_once(self, request: GenerationRequest) -> GenerationResult:
        url = self._url(GENERATE_PATH)
        data = await self._request_json("POST", url, json=self._generate_payload(request))
        if not isinstance(data, dict):
            raise ProtocolError.bad_body(url, "expected a JSON object")
        if error := server_error(data):
            raise ProtocolError.bad_body(url, error)
        text = data.get("response")
        if not isinstance(text, str):
            raise ProtocolError.bad_body(url, "missing string field 'response'")
        model = data.get("model")
        created_at = data.get("created_at")
        return GenerationResult(
            text=text,
            model=model if isinstance(model, str) and model else request.model,
            created_at=created_at if isinstance(created_at, str) and created_at else _now(),
        )

    # ------------------------------------------------------------------
    # chat
    # ------------------------------------------------------------------

    async def stream_chat(
        self,
        model: str,
        messages: Sequence[ChatMessage],
        *,
        options: GenerateOptions | None = None,
    ) -> AsyncIterator[str]:
        """Yield chat tokens in server order. Chat is never cached."""
        if not model.strip():
            raise ValueError("model must be non-empty")
        payload: dict[str, Any] = {
            "model": model,
            "messages": [m.to_payload() for m in messages],
            "stream": True,
        }
        opts = (options or self._options).to_payload()
        if opts:
            payload["options"] = opts
        async with aclosing(self._stream_objects(CHAT_PATH, payload)) as objects:
            async for obj in objects:
                token = chat_token(obj)
                if token is not None:
                    yield token

    async def chat(
        self,
        model: str,
        messages: Sequence[ChatMessage],
        *,
        on_token: TokenCallback | None = None,
        timeout: float | None = None,
        options: GenerateOptions | None = None,
    ) -> str:
        """Run one chat turn to completion and return the assistant text."""
        pieces: list[str] = []
        async with self._deadline(CHAT_PATH, timeout):
            async with aclosing(self.stream_chat(model, messages, options=options)) as tokens:
                async for token in tokens:
                    pieces.append(token)
                    if on_token is not None:
                        on_token(token)
        return "".join(pieces)

    # ------------------------------------------------------------------
    # models
    # ------------------------------------------------------------------

    async def list_model_info(self) -> list[ModelInfo]:
        """Installed models in server order. No models is not an error."""
        url = self._url(TAGS_PATH)
        data = await self._request_json("GET", url)
        if not isinstance(data, dict):
            raise ProtocolError.bad_body(url, "expected a JSON object")
        raw_models = data.get("models")
        if not isinstance(raw_models, list):
            log.debug("no_models_listed", url=url)
            return []
        models: list[ModelInfo] = []
        for entry in raw_models:
            if not isinstance(entry, dict):
                continue
            info = ModelInfo.from_payload(entry)
            if info is not None:
                models.append(info)
        return models

    async def list_models(self) -> list[str]:
        """Installed model names in server order."""
        return [m.name for m in await self.list_model_info()]

    async def pull_model(
        self,
        name: str,
        *,
        on_progress: Callable[[str], None] | None = None,
    ) -> str:
        """Download a model, relaying each status line.

        Returns the last status seen: "success" when the server finished,
        otherwise whatever preceded end-of-stream.
        """
        if not name.strip():
            raise ValueError("model name must be non-empty")
        last_status = ""
        payload = {"name": name, "stream": True}
        async with aclosing(self._stream_objects(PULL_PATH, payload)) as objects:
            async for obj in objects:
                status = obj.get("status")
                if not isinstance(status, str) or not status:
                    continue
                last_status = status
                if on_progress is not None:
                    on_progress(status)
                if status == PULL_SUCCESS_STATUS:
                    log.info("model_pulled", model=name)
                    break
        return last_status

    # ------------------------------------------------------------------
    # transport
    # ------------------------------------------------------------------

    def _url(self, path: str) -> str:
        return f"{self._base_url}{path}"

    @asynccontextmanager
    async def _deadline(self, path: str, timeout: float | None) -> AsyncIterator[None]:
        """Bound the enclosed block; expiry surfaces as TransportError."""
        limit = timeout if timeout is not None else self._timeout
        if limit is None:
            yield
            return
        try:
            async with asyncio.timeout(limit):
                yield
        except TimeoutError as e:
            raise TransportError.timeout(self._url(path), limit) from e

    async def _raise_for_status(self, response: httpx.Response, url: str) -> None:
        if response.is_success:
            return
        body = (await response.aread()).decode("utf-8", errors="replace")
        log.warning("model_server_http_error", url=url, status=response.status_code)
        raise TransportError.http_status(url, response.status_code, body)

    async def _request_json(self, method: str, url: str, **kwargs: Any) -> Any:
        try:
            response = await self._http.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise TransportError.timeout(url, None) from e
        except httpx.RequestError as e:
            raise TransportError.connection(url, str(e) or type(e).__name__) from e
        await self._raise_for_status(response, url)
        try:
            return response.json()
        except ValueError as e:
            raise ProtocolError.bad_body(url, f"invalid JSON: {e}", response.status_code) from e

    async def _stream_objects(self, path: str, payload: dict[str, Any]) -> AsyncIterator[dict[str, Any]]:
        """POST and yield decoded NDJSON objects as they arrive."""
        url = self._url(path)
        try:
            async with self._http.stream("POST", url, json=payload) as response:
                await self._raise_for_status(response, url)
                async with aclosing(iter_ndjson(response.aiter_lines(), url=url)) as objects:
                    async for obj in objects:
                        if error := server_error(obj):
                            raise ProtocolError.bad_body(url, error, response.status_code)
                        yield obj
        except httpx.TimeoutException as e:
            raise TransportError.timeout(url, None) from e
        except httpx.RequestError as e:
            raise TransportError.connection(url, str(e) or type(e).__name__) from e
