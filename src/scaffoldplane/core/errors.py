"""ScaffoldPlane error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Generation (transport / protocol)
- 4xxx: Scaffold (plan / path / quota / apply)
- 9xxx: Internal
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002

    # Generation (3xxx)
    TRANSPORT_ERROR = 3001
    TRANSPORT_TIMEOUT = 3002
    HTTP_STATUS_ERROR = 3003
    PROTOCOL_ERROR = 3101

    # Scaffold (4xxx)
    PLAN_PARSE_ERROR = 4001
    PATH_REJECTED = 4002
    QUOTA_FILES_EXCEEDED = 4003
    QUOTA_BYTES_EXCEEDED = 4004
    APPLY_FAILURE = 4005

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(frozen=True, slots=True)
class ScaffoldPlaneError(Exception):
    """Base error with structured context for CLI and log output."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'QUOTA_FILES_EXCEEDED')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(ScaffoldPlaneError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )


class GenerationFailure(ScaffoldPlaneError):
    """A generate/chat/list/pull call against the model server failed.

    Never retried automatically. Callers may resubmit (``retryable`` says
    whether doing so can plausibly help).
    """

    @property
    def status(self) -> int | None:
        """HTTP status of the failed response, if there was one."""
        value = self.details.get("status")
        return int(value) if value is not None else None


class TransportError(GenerationFailure):
    """Connection failure, timeout, or non-success HTTP status."""

    @classmethod
    def connection(cls, url: str, reason: str) -> "TransportError":
        return cls(
            code=ErrorCode.TRANSPORT_ERROR,
            message=f"Request to {url} failed: {reason}",
            retryable=True,
            details={"url": url, "reason": reason},
        )

    @classmethod
    def timeout(cls, url: str, timeout_sec: float | None) -> "TransportError":
        return cls(
            code=ErrorCode.TRANSPORT_TIMEOUT,
            message=f"Request to {url} timed out after {timeout_sec}s",
            retryable=True,
            details={"url": url, "timeout_sec": timeout_sec},
        )

    @classmethod
    def http_status(cls, url: str, status: int, body: str = "") -> "TransportError":
        return cls(
            code=ErrorCode.HTTP_STATUS_ERROR,
            message=f"HTTP error from {url}: status {status}",
            retryable=status >= 500,
            details={"url": url, "status": status, "body": body[:500]},
        )


class ProtocolError(GenerationFailure):
    """HTTP success, but the body is not what the protocol promises."""

    @classmethod
    def bad_body(cls, url: str, reason: str, status: int | None = None) -> "ProtocolError":
        return cls(
            code=ErrorCode.PROTOCOL_ERROR,
            message=f"Unexpected response body from {url}: {reason}",
            details={"url": url, "reason": reason, "status": status},
        )


class PlanParseError(ScaffoldPlaneError):
    """Generator output holds no usable JSON file plan."""

    @property
    def raw_text(self) -> str:
        return str(self.details.get("raw_text", ""))

    @classmethod
    def no_json(cls, raw_text: str) -> "PlanParseError":
        return cls(
            code=ErrorCode.PLAN_PARSE_ERROR,
            message="Failed to parse scaffold plan from model output: no JSON object found",
            details={"raw_text": raw_text},
        )

    @classmethod
    def missing_files(cls, raw_text: str) -> "PlanParseError":
        return cls(
            code=ErrorCode.PLAN_PARSE_ERROR,
            message="Failed to parse scaffold plan from model output: 'files' must be an array",
            details={"raw_text": raw_text},
        )


class PathRejectedError(ScaffoldPlaneError):
    """A planned path is unsafe to resolve inside the workspace."""

    @classmethod
    def unsafe(cls, path: str, reason: str) -> "PathRejectedError":
        return cls(
            code=ErrorCode.PATH_REJECTED,
            message=f"Path '{path}' rejected: {reason}",
            details={"path": path, "reason": reason},
        )


class QuotaExceeded(ScaffoldPlaneError):
    """The plan as a whole is outside the configured safety envelope."""

    @classmethod
    def too_many_files(cls, count: int, limit: int) -> "QuotaExceeded":
        return cls(
            code=ErrorCode.QUOTA_FILES_EXCEEDED,
            message=f"Plan includes {count} files, exceeding limit {limit}. Aborting.",
            details={"measured": count, "limit": limit},
        )

    @classmethod
    def too_many_bytes(cls, total: int, limit: int) -> "QuotaExceeded":
        return cls(
            code=ErrorCode.QUOTA_BYTES_EXCEEDED,
            message=f"Plan size {total} bytes exceeds limit {limit}. Aborting.",
            details={"measured": total, "limit": limit},
        )


class ApplyFailure(ScaffoldPlaneError):
    """The filesystem transaction could not complete and was rolled back."""

    @classmethod
    def write_failed(cls, path: str, reason: str, transaction_id: str) -> "ApplyFailure":
        return cls(
            code=ErrorCode.APPLY_FAILURE,
            message=f"Failed to apply scaffold edits at {path}: {reason}",
            details={"path": path, "reason": reason, "transaction_id": transaction_id},
        )


class InternalError(ScaffoldPlaneError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
