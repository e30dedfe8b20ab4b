"""
Runtime configuration for termhook.

Values come from environment variables (optionally loaded from a ``.env``
file); CLI options override them per invocation.
"""

import ipaddress
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from termhook.errors import ConfigError

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 9876
DEFAULT_MAX_BUFFER_LINES = 10000
DEFAULT_PROXY_TIMEOUT = 5.0
DEFAULT_MAX_FRAME_BYTES = 1024 * 1024

# field name -> environment variable
ENV_VARS = {
    "host": "TERMHOOK_HOST",
    "port": "TERMHOOK_PORT",
    "max_buffer_lines": "TERMHOOK_MAX_BUFFER_LINES",
    "proxy_timeout": "TERMHOOK_PROXY_TIMEOUT",
    "max_frame_bytes": "TERMHOOK_MAX_FRAME_BYTES",
    "log_level": "LOG_LEVEL",
    "log_file": "LOG_FILE",
}


class TermhookConfig(BaseModel):
    """Settings shared by the bridge server, the proxy and the CLI."""

    host: str = DEFAULT_HOST
    port: int = Field(DEFAULT_PORT, ge=0, le=65535)
    max_buffer_lines: int = Field(DEFAULT_MAX_BUFFER_LINES, ge=1)
    proxy_timeout: float = Field(DEFAULT_PROXY_TIMEOUT, gt=0)
    max_frame_bytes: int = Field(DEFAULT_MAX_FRAME_BYTES, ge=1024)
    log_level: str = "INFO"
    log_file: str | None = None

    @field_validator("host")
    @classmethod
    def _loopback_only(cls, value: str) -> str:
        if value == "localhost":
            return value
        try:
            address = ipaddress.ip_address(value)
        except ValueError:
            raise ValueError(f"'{value}' is not an IP address") from None
        if not address.is_loopback:
            raise ValueError(f"'{value}' is not a loopback address")
        return value

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()

    @classmethod
    def from_env(cls, env_file: Path | None = None) -> "TermhookConfig":
        """
        Build a config from the process environment.

        Args:
            env_file: Optional ``.env`` file to load first. Variables already
                present in the environment win.

        Raises:
            ConfigError: If a variable holds an invalid value.
        """
        if env_file is not None:
            load_dotenv(env_file)

        data = {}
        for field_name, env_name in ENV_VARS.items():
            value = os.getenv(env_name)
            if value is not None and value != "":
                data[field_name] = value

        try:
            return cls(**data)
        except ValidationError as e:
            problems = []
            for err in e.errors():
                field_name = str(err["loc"][0]) if err["loc"] else "?"
                env_name = ENV_VARS.get(field_name, field_name)
                problems.append(f"{env_name}: {err['msg']}")
            raise ConfigError("Invalid configuration - " + "; ".join(problems)) from None

    def with_overrides(self, **overrides) -> "TermhookConfig":
        """Return a copy with non-None overrides applied and re-validated."""
        values = self.model_dump()
        values.update({k: v for k, v in overrides.items() if v is not None})
        try:
            return TermhookConfig(**values)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration - {e}") from None
