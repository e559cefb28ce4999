"""
Configuration for the Redmine MCP server.

Values come from the environment; the server refuses to start without a
Redmine URL and an API key.
"""

import os
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

DEFAULT_TIMEOUT = 30.0

ENV_URL = "REDMINE_URL"
ENV_API_KEY = "REDMINE_API_KEY"
ENV_TIMEOUT = "REDMINE_TIMEOUT"
ENV_LOG_LEVEL = "LOG_LEVEL"


class ConfigurationError(Exception):
    """Raised when required startup configuration is missing or invalid."""


class RedmineConfig(BaseModel):
    """Connection settings for a Redmine instance."""
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    base_url: str = Field(
        ...,
        description="Base URL of the Redmine instance, e.g. https://redmine.example.com",
        min_length=1
    )
    api_key: str = Field(
        ...,
        description="Redmine REST API key (My account > API access key)",
        min_length=1
    )
    timeout: float = Field(
        default=DEFAULT_TIMEOUT,
        description="HTTP timeout in seconds for each Redmine request",
        gt=0
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level name (DEBUG, INFO, WARNING, ERROR)"
    )

    @field_validator("base_url")
    @classmethod
    def _check_base_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level '{v}'")
        return level

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "RedmineConfig":
        """
        Build the configuration from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            Validated RedmineConfig

        Raises:
            ConfigurationError: If REDMINE_URL or REDMINE_API_KEY is missing,
                or any value fails validation
        """
        env = os.environ if environ is None else environ

        base_url = env.get(ENV_URL, "").strip()
        api_key = env.get(ENV_API_KEY, "").strip()
        missing = [name for name, value in ((ENV_URL, base_url), (ENV_API_KEY, api_key)) if not value]
        if missing:
            raise ConfigurationError(
                f"{' and '.join(missing)} environment variable{'s' if len(missing) > 1 else ''} "
                f"{'are' if len(missing) > 1 else 'is'} required"
            )

        values = {"base_url": base_url, "api_key": api_key}
        if env.get(ENV_TIMEOUT):
            values["timeout"] = env[ENV_TIMEOUT]
        if env.get(ENV_LOG_LEVEL):
            values["log_level"] = env[ENV_LOG_LEVEL]

        try:
            return cls(**values)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            raise ConfigurationError(f"Invalid configuration - {problems}") from e


def get_setup_help_message() -> str:
    """Instructions printed when the server cannot start."""
    return f"""To configure the Redmine MCP server:
1. Open your Redmine account page (My account) and show the API access key
2. Set the required environment variables:
   export {ENV_URL}='https://redmine.example.com'
   export {ENV_API_KEY}='your-api-key'
3. Optionally set {ENV_TIMEOUT} (seconds, default {DEFAULT_TIMEOUT:g}) and {ENV_LOG_LEVEL}
"""
