"""Core module exports."""

from scaffoldplane.core.errors import (
    ApplyFailure,
    ConfigError,
    ErrorCode,
    GenerationFailure,
    InternalError,
    PathRejectedError,
    PlanParseError,
    ProtocolError,
    QuotaExceeded,
    ScaffoldPlaneError,
    TransportError,
)
from scaffoldplane.core.logging import (
    clear_request_id,
    configure_logging,
    get_logger,
    get_request_id,
    set_request_id,
)
from scaffoldplane.core.progress import pluralize, spinner, status

__all__ = [
    # Errors
    "ApplyFailure",
    "ConfigError",
    "ErrorCode",
    "GenerationFailure",
    "InternalError",
    "PathRejectedError",
    "PlanParseError",
    "ProtocolError",
    "QuotaExceeded",
    "ScaffoldPlaneError",
    "TransportError",
    # Logging
    "clear_request_id",
    "configure_logging",
    "get_logger",
    "get_request_id",
    "set_request_id",
    # Progress
    "pluralize",
    "spinner",
    "status",
]
