"""
Portal Configuration Management
"""

import os
import json
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from portal.exceptions import ConfigError


DEFAULT_API_BASE_URL = "http://localhost:8081/api"


@dataclass
class PortalConfig:
    """Configuration for the chapter portal client"""

    # API settings
    api_base_url: str = DEFAULT_API_BASE_URL
    timeout: Optional[float] = None  # None keeps the transport default

    # Credentials storage
    config_dir: str = field(default_factory=lambda: str(Path.home() / ".chapter-portal"))
    credentials_file: str = "credentials.json"
    token_key: str = "authToken"

    # Event classification; None means the client's local timezone
    timezone: Optional[str] = None

    # Logging
    environment: str = "development"  # development, production
    log_level: str = "WARNING"
    log_file: Optional[str] = None
    verbose: bool = False

    # Shell
    history_file: str = ".portal_history"

    def __post_init__(self):
        """Resolve relative paths against the config directory"""
        Path(self.config_dir).mkdir(parents=True, exist_ok=True)

        if not os.path.isabs(self.credentials_file):
            self.credentials_file = str(Path(self.config_dir) / self.credentials_file)
        if not os.path.isabs(self.history_file):
            self.history_file = str(Path(self.config_dir) / self.history_file)

    def load_from_file(self, config_path: str) -> None:
        """Load configuration from JSON file"""
        path = Path(config_path)
        if path.exists():
            with open(path) as f:
                data = json.load(f)
                for key, value in data.items():
                    if hasattr(self, key):
                        setattr(self, key, value)

    @classmethod
    def load_default(cls, env_file: Optional[str] = None) -> "PortalConfig":
        """Load defaults, then config.json, then .env and environment variables"""
        load_dotenv(env_file)

        config = cls(config_dir=os.environ.get(
            "PORTAL_CONFIG_DIR", str(Path.home() / ".chapter-portal")
        ))
        default_config_path = Path(config.config_dir) / "config.json"
        if default_config_path.exists():
            config.load_from_file(str(default_config_path))

        config._load_from_env()
        config.validate()

        return config

    def _load_from_env(self) -> None:
        """Load configuration from environment variables"""
        env_mappings = {
            "PORTAL_API_URL": "api_base_url",
            "PORTAL_TIMEOUT": ("timeout", float),
            "PORTAL_TIMEZONE": "timezone",
            "PORTAL_ENVIRONMENT": "environment",
            "PORTAL_LOG_LEVEL": "log_level",
            "PORTAL_LOG_FILE": "log_file",
            "PORTAL_VERBOSE": ("verbose", lambda x: x.lower() == "true"),
        }

        for env_var, mapping in env_mappings.items():
            value = os.environ.get(env_var)
            if value:
                if isinstance(mapping, tuple):
                    attr, converter = mapping
                    setattr(self, attr, converter(value))
                else:
                    setattr(self, mapping, value)

    def validate(self) -> None:
        """Reject settings that would only fail later, at first use"""
        if self.timezone:
            try:
                ZoneInfo(self.timezone)
            except (ZoneInfoNotFoundError, ValueError):
                raise ConfigError(f"Unknown timezone '{self.timezone}'", setting="timezone")
