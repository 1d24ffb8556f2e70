"""skillaudit configuration management."""

import logging
import os
from dataclasses import dataclass


@dataclass
class Config:
    """Runtime configuration for skillaudit."""

    log_level: str
    llm_timeout_s: int
    llm_max_output_tokens: int

    @classmethod
    def load(cls, log_level: str | None = None) -> "Config":
        """Load configuration from environment and optional overrides."""
        resolved_log_level = log_level or os.environ.get("SKILLAUDIT_LOG_LEVEL", "INFO")
        llm_timeout_s = _safe_int_env("SKILLAUDIT_LLM_TIMEOUT_S", default=60)
        llm_max_output_tokens = _safe_int_env(
            "SKILLAUDIT_LLM_MAX_OUTPUT_TOKENS",
            default=1200,
        )
        level = getattr(logging, resolved_log_level.upper(), logging.INFO)
        logging.basicConfig(level=level, format="%(levelname)s: %(message)s")
        # basicConfig is a no-op once the root logger has handlers
        logging.getLogger("skillaudit").setLevel(level)
        return cls(
            log_level=resolved_log_level,
            llm_timeout_s=llm_timeout_s,
            llm_max_output_tokens=llm_max_output_tokens,
        )


@dataclass(frozen=True)
class ProviderSettings:
    """Provider choice and per-provider overrides from the command line."""

    name: str = "scaffold"
    endpoint: str | None = None
    model: str | None = None
    api_key_env: str | None = None
    reasoning_effort: str | None = None


def _safe_int_env(name: str, *, default: int) -> int:
    """Read an integer environment variable with fallback."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default
