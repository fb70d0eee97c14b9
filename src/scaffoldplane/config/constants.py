"""Configuration constants.

This module contains truly constant values that should NOT be user-configurable.
These are protocol constraints and hard safety caps.

For configurable values, see models.py (GenerationConfig, ScaffoldConfig).
"""

# =============================================================================
# Model server HTTP surface
# =============================================================================

DEFAULT_BASE_URL = "http://localhost:11434"
"""Default model server address."""

DEFAULT_MODEL = "qwen2.5-coder:7b"
"""Model used when none is configured."""

GENERATE_PATH = "/api/generate"
CHAT_PATH = "/api/chat"
TAGS_PATH = "/api/tags"
PULL_PATH = "/api/pull"

PULL_SUCCESS_STATUS = "success"
"""Terminal status line of a model download."""

# =============================================================================
# Generation cache
# =============================================================================

DEFAULT_CACHE_CAPACITY = 20
"""Completed generations kept in memory per client."""

# =============================================================================
# Scaffold safety caps
# =============================================================================
# Configured quotas are clamped to these values.

MAX_FILES_HARD_CAP = 500
"""Upper bound for scaffold.max_files."""

MAX_TOTAL_BYTES_HARD_CAP = 10_000_000
"""Upper bound for scaffold.max_total_bytes."""

WORKSPACE_STATE_DIR = ".scaffoldplane"
"""Per-workspace config directory."""
