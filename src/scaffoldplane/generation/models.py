"""Generation request/response types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

ChatRole = Literal["user", "assistant", "system"]


@dataclass(frozen=True)
class GenerateOptions:
    """Sampling options sent as the ``options`` object (unset fields omitted)."""

    temperature: float | None = None
    top_p: float | None = None
    num_predict: int | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        if self.temperature is not None:
            payload["temperature"] = self.temperature
        if self.top_p is not None:
            payload["top_p"] = self.top_p
        if self.num_predict is not None:
            payload["num_predict"] = self.num_predict
        return payload


@dataclass(frozen=True)
class GenerationRequest:
    """A single generate call. Immutable once issued."""

    model: str
    prompt: str
    streaming: bool = True
    system: str | None = None
    context: Any = None  # opaque sidecar, forwarded verbatim
    options: GenerateOptions = field(default_factory=GenerateOptions)

    def __post_init__(self) -> None:
        if not self.model or not self.model.strip():
            raise ValueError("GenerationRequest.model must be non-empty")

    @property
    def full_prompt(self) -> str:
        """Prompt as sent to the server, with the system preamble prepended."""
        if self.system:
            return f"{self.system}\n\n{self.prompt}"
        return self.prompt

    @property
    def cache_key(self) -> tuple[str, str]:
        return (self.model, self.full_prompt)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.model,
            "prompt": self.full_prompt,
            "stream": self.streaming,
            "options": self.options.to_payload(),
        }
        if self.context is not None:
            payload["context"] = self.context
        return payload


@dataclass(frozen=True)
class GenerationResult:
    """Final text of a generate call."""

    text: str
    model: str
    created_at: str
    cached: bool = False


@dataclass(frozen=True)
class ChatMessage:
    """One turn of a chat conversation."""

    role: ChatRole
    content: str

    def to_payload(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class ModelInfo:
    """An installed model as reported by the tags endpoint."""

    name: str
    size: int = 0
    modified_at: str = ""

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> ModelInfo | None:
        name = data.get("name")
        if not isinstance(name, str) or not name:
            return None
        size = data.get("size")
        modified_at = data.get("modified_at")
        return cls(
            name=name,
            size=size if isinstance(size, int) else 0,
            modified_at=modified_at if isinstance(modified_at, str) else "",
        )
