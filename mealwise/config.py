"""
Runtime configuration.

All settings come from environment variables (optionally seeded from a
.env file) so the CLI, the API and the tests can configure the pipeline
the same way.

Environment Variables:
    ANTHROPIC_API_KEY: API key for the Anthropic provider
    USE_NULL_LLM: Set to "true" to use NullLLMProvider
    MEALWISE_MODEL: Model name for recipe generation
    MEALWISE_MAX_TOKENS: Token limit per generation request
    MEALWISE_TEMPERATURE: Sampling temperature
    MEALWISE_DB_DIR: Directory for the SQLite database
    MEALWISE_MAX_ATTEMPTS: Generation attempts per request (at most 3)
    DEBUG: Set to "true" for debug logging
    PORT: API server port
"""

from dataclasses import dataclass
from typing import Optional, Mapping
import os
import logging

from dotenv import find_dotenv, load_dotenv

DEFAULT_MODEL = "claude-sonnet-4-20250514"
MAX_ATTEMPTS = 3
BACKOFF_BASE_SECONDS = 1.0
BACKOFF_CAP_SECONDS = 10.0

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _env_flag(env: Mapping[str, str], name: str) -> bool:
    return env.get(name, "").lower() in ("1", "true", "yes")


@dataclass(frozen=True)
class Settings:
    """Process-wide settings, built once at an entry point and passed down."""

    anthropic_api_key: Optional[str] = None
    use_null_llm: bool = False
    model: str = DEFAULT_MODEL
    max_tokens: int = 4000
    temperature: float = 0.4
    db_dir: str = "data"
    max_attempts: int = MAX_ATTEMPTS
    debug: bool = False
    port: int = 8000

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from environment variables.

        With no explicit mapping, a .env file in the working directory is
        loaded into os.environ first (existing variables win).
        """
        if env is None:
            load_dotenv(find_dotenv(usecwd=True))
            env = os.environ

        max_attempts = int(env.get("MEALWISE_MAX_ATTEMPTS", MAX_ATTEMPTS))
        # The attempt budget is a hard ceiling
        max_attempts = max(1, min(max_attempts, MAX_ATTEMPTS))

        return cls(
            anthropic_api_key=env.get("ANTHROPIC_API_KEY") or None,
            use_null_llm=_env_flag(env, "USE_NULL_LLM"),
            model=env.get("MEALWISE_MODEL", DEFAULT_MODEL),
            max_tokens=int(env.get("MEALWISE_MAX_TOKENS", 4000)),
            temperature=float(env.get("MEALWISE_TEMPERATURE", 0.4)),
            db_dir=env.get("MEALWISE_DB_DIR", "data"),
            max_attempts=max_attempts,
            debug=_env_flag(env, "DEBUG"),
            port=int(env.get("PORT", 8000)),
        )

    @property
    def log_level(self) -> int:
        return logging.DEBUG if self.debug else logging.INFO


def configure_logging(settings: Settings) -> None:
    """Configure root logging for an entry point."""
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)
