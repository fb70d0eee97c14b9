"""Config module exports."""

from scaffoldplane.config.loader import ScaffoldPlaneSettings, load_config
from scaffoldplane.config.models import (
    GenerationConfig,
    LoggingConfig,
    ScaffoldConfig,
    ScaffoldPlaneConfig,
)

__all__ = [
    "load_config",
    "ScaffoldPlaneConfig",
    "ScaffoldPlaneSettings",
    "GenerationConfig",
    "LoggingConfig",
    "ScaffoldConfig",
]
