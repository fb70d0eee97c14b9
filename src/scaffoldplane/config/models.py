"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (SCAFFOLDPLANE__SECTION__KEY)
3. Workspace YAML (.scaffoldplane/config.yaml)
4. Global YAML (~/.config/scaffoldplane/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    SCAFFOLDPLANE__<SECTION>__<KEY>=<VALUE>

Examples:
    SCAFFOLDPLANE__LOGGING__LEVEL=DEBUG
    SCAFFOLDPLANE__GENERATION__BASE_URL=http://10.0.0.5:11434
    SCAFFOLDPLANE__SCAFFOLD__MAX_FILES=10
"""

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from scaffoldplane.config.constants import (
    DEFAULT_BASE_URL,
    DEFAULT_CACHE_CAPACITY,
    DEFAULT_MODEL,
    MAX_FILES_HARD_CAP,
    MAX_TOTAL_BYTES_HARD_CAP,
)

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration.

    Env vars: Not directly configurable via env (use YAML for multi-output).
    """

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        SCAFFOLDPLANE__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every skipped stream line.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class GenerationConfig(BaseModel):
    """Model server connection and generation defaults.

    Env vars:
        SCAFFOLDPLANE__GENERATION__BASE_URL: Model server address
        SCAFFOLDPLANE__GENERATION__DEFAULT_MODEL: Model for generate/chat/scaffold
        SCAFFOLDPLANE__GENERATION__ENABLE_TURBO: Use turbo_model instead
        SCAFFOLDPLANE__GENERATION__CACHE_CAPACITY: Cached generations per client
        SCAFFOLDPLANE__GENERATION__TIMEOUT_SEC: Total bound per call (unset = none)
    """

    base_url: str = Field(
        default=DEFAULT_BASE_URL,
        description="Model server address. Nothing is sent anywhere else.",
    )
    default_model: str = Field(
        default=DEFAULT_MODEL,
        description="Model used for generate, chat and scaffold.",
    )
    enable_turbo: bool = Field(
        default=False,
        description="Use turbo_model instead of default_model.",
    )
    turbo_model: str = Field(
        default="",
        description="Faster model used when enable_turbo is set. Empty = default_model.",
    )
    cache_capacity: int = Field(
        default=DEFAULT_CACHE_CAPACITY,
        description="Completed generations kept in memory (LRU).",
    )
    timeout_sec: float | None = Field(
        default=None,
        description="Total time bound for one generate/chat call. None waits indefinitely.",
    )
    connect_timeout_sec: float = Field(
        default=10.0,
        description="Time allowed to establish the connection to the model server.",
    )
    temperature: float | None = None
    top_p: float | None = None
    num_predict: int | None = None

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"base_url must be an http(s) URL, got {v}")
        return v.rstrip("/")

    @field_validator("default_model")
    @classmethod
    def validate_default_model(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("default_model must not be empty")
        return v

    @field_validator("cache_capacity")
    @classmethod
    def validate_cache_capacity(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"cache_capacity must be >= 1, got {v}")
        return v

    @field_validator("timeout_sec")
    @classmethod
    def validate_timeout(cls, v: float | None) -> float | None:
        if v is not None and v <= 0:
            raise ValueError(f"timeout_sec must be > 0, got {v}")
        return v

    def effective_model(self) -> str:
        """Model to use, honoring the turbo switch."""
        if self.enable_turbo:
            return self.turbo_model or self.default_model
        return self.default_model

    def options(self) -> dict[str, Any]:
        """Sampling options forwarded to the server (unset fields omitted)."""
        opts: dict[str, Any] = {}
        if self.temperature is not None:
            opts["temperature"] = self.temperature
        if self.top_p is not None:
            opts["top_p"] = self.top_p
        if self.num_predict is not None:
            opts["num_predict"] = self.num_predict
        return opts


class ScaffoldConfig(BaseModel):
    """Scaffold quotas and overwrite policy.

    Quotas are clamped to the hard caps in constants.py.

    Env vars:
        SCAFFOLDPLANE__SCAFFOLD__MAX_FILES: Max files per plan
        SCAFFOLDPLANE__SCAFFOLD__MAX_TOTAL_BYTES: Max summed UTF-8 content size
        SCAFFOLDPLANE__SCAFFOLD__ALLOW_OVERWRITE: Overwrite without asking
        SCAFFOLDPLANE__SCAFFOLD__MAX_CONTEXT_BYTES: Workspace context sent with the request
    """

    max_files: int = Field(
        default=20,
        description="Plans with more files are rejected outright.",
    )
    max_total_bytes: int = Field(
        default=400_000,
        description="Plans whose contents sum to more UTF-8 bytes are rejected outright.",
    )
    allow_overwrite: bool = Field(
        default=False,
        description="Overwrite existing files without a per-file confirmation. "
        "RISK: model output replaces files you wrote.",
    )
    max_context_bytes: int = Field(
        default=200_000,
        description="Upper bound on workspace context included in the prompt.",
    )

    @field_validator("max_files")
    @classmethod
    def validate_max_files(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"max_files must be >= 0, got {v}")
        return min(v, MAX_FILES_HARD_CAP)

    @field_validator("max_total_bytes")
    @classmethod
    def validate_max_total_bytes(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"max_total_bytes must be >= 0, got {v}")
        return min(v, MAX_TOTAL_BYTES_HARD_CAP)

    @field_validator("max_context_bytes")
    @classmethod
    def validate_max_context_bytes(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"max_context_bytes must be >= 0, got {v}")
        return v


class ScaffoldPlaneConfig(BaseModel):
    """Root configuration model."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    scaffold: ScaffoldConfig = Field(default_factory=ScaffoldConfig)
