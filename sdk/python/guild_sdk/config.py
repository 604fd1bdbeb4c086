"""
Guild SDK configuration.

Provides sensible defaults with override capability.
"""

import logging
import os
import sys
from typing import Any, Dict, Optional

from pydantic import BaseModel, field_validator

from . import __version__

DEFAULT_API_URL = "https://api.guild.xyz/v1"


class ClientConfig(BaseModel):
    """
    Configuration for GuildClient.

    Environment variables (GUILD_* prefix) override defaults, but never
    values passed explicitly to the constructor.
    """

    api_url: str = DEFAULT_API_URL
    timeout: float = 30.0
    user_agent: str = f"guild-sdk-python/{__version__}"

    # Logging
    log_level: str = "WARNING"

    @field_validator("api_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    def model_post_init(self, __context):
        """Apply environment variable overrides."""
        self._apply_env_overrides()

    def _apply_env_overrides(self):
        env_map = {
            "GUILD_API_URL": ("api_url", lambda v: v.rstrip("/")),
            "GUILD_API_TIMEOUT": ("timeout", float),
            "GUILD_LOG_LEVEL": ("log_level", str.upper),
        }

        for env_var, (attr, type_fn) in env_map.items():
            if attr in self.model_fields_set:
                continue
            value = os.environ.get(env_var)
            if value is not None:
                setattr(self, attr, type_fn(value))

    def url(self, path: str) -> str:
        """Absolute URL for an API path."""
        return f"{self.api_url}/{path.lstrip('/')}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "api_url": self.api_url,
            "timeout": self.timeout,
            "user_agent": self.user_agent,
            "log_level": self.log_level,
        }

    @classmethod
    def development(cls, api_url: str = "http://localhost:8989/v1") -> "ClientConfig":
        """Local backend with verbose logging."""
        return cls(api_url=api_url, timeout=5.0, log_level="DEBUG")


def configure_logging(level: Optional[str] = None, config: Optional[ClientConfig] = None) -> logging.Logger:
    """
    Attach a stderr handler to the SDK logger.

    The package only installs a NullHandler; applications that want SDK
    output call this once.
    """
    if level is None:
        level = (config or ClientConfig()).log_level

    sdk_logger = logging.getLogger("guild_sdk")
    sdk_logger.setLevel(level.upper())

    if not any(getattr(h, "_guild_sdk", False) for h in sdk_logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        handler._guild_sdk = True
        sdk_logger.addHandler(handler)

    return sdk_logger
