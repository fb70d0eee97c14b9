"""Generation client module - generate, chat, list and pull against a model server."""

from scaffoldplane.generation.cache import GenerationCache
from scaffoldplane.generation.client import GenerationClient
from scaffoldplane.generation.models import (
    ChatMessage,
    GenerateOptions,
    GenerationRequest,
    GenerationResult,
    ModelInfo,
)

__all__ = [
    "ChatMessage",
    "GenerateOptions",
    "GenerationCache",
    "GenerationClient",
    "GenerationRequest",
    "GenerationResult",
    "ModelInfo",
]
