"""Configuration management utilities for the backup agent.

Provides:
- A small ``Config`` base class with dict/JSON round-tripping
- ``BackupConfig``: the bucket, credentials and paths a backup needs
- ``AppConfig``: control-plane settings read from environment variables
"""

from pathlib import Path
from typing import Dict, Optional, Any, List
import json
import os


class ConfigError(ValueError):
    """Raised when the configuration is missing, unreadable or incomplete."""


class Config:
    """Base configuration class for organizing application settings."""

    def __init__(self):
        """Initialize configuration with default values."""
        pass

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary.

        Returns:
            Dictionary of all config attributes
        """
        return {k: v for k, v in self.__dict__.items() if not k.startswith("_")}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Create config from dictionary.

        Args:
            data: Configuration dictionary

        Returns:
            Config instance with values from dictionary
        """
        config = cls()
        for key, value in data.items():
            setattr(config, key, value)
        return config

    @classmethod
    def load_json(cls, path: Path) -> "Config":
        """Load configuration from JSON file.

        Args:
            path: Path to configuration file

        Returns:
            Config instance loaded from file

        Raises:
            FileNotFoundError: If file doesn't exist
            json.JSONDecodeError: If file is not valid JSON
        """
        with open(path, "r") as f:
            data = json.load(f)
        return cls.from_dict(data)


class BackupConfig(Config):
    """Settings for backing up one bucket.

    The JSON file uses the camelCase keys of the original agent::

        {
            "ips": [],
            "bucket": "",
            "domain": "",
            "baseDir": "",
            "accessKey": "",
            "secretKey": ""
        }

    snake_case spellings (``base_dir`` etc.) are accepted as well.  The
    credentials may be supplied through ``BACKUP_ACCESS_KEY`` and
    ``BACKUP_SECRET_KEY`` instead of the file; the environment wins.
    """

    REQUIRED = ("bucket", "domain", "base_dir", "access_key", "secret_key")

    # JSON key -> attribute name
    _ALIASES = {
        "baseDir": "base_dir",
        "accessKey": "access_key",
        "secretKey": "secret_key",
        "IPs": "ips",
        "urlTtl": "url_ttl",
    }

    def __init__(self) -> None:
        super().__init__()
        self.bucket = ""
        self.domain = ""
        self.base_dir = ""
        self.access_key = ""
        self.secret_key = ""
        self.ips: List[str] = []
        self.timeout: Optional[float] = None
        self.url_ttl = 3600

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BackupConfig":
        normalised = {cls._ALIASES.get(k, k): v for k, v in data.items()}
        config = super().from_dict(normalised)
        if config.ips is None:
            config.ips = []
        config.apply_env()
        return config

    @classmethod
    def load(cls, path: Path) -> "BackupConfig":
        """Load and validate a config file.

        Raises:
            ConfigError: If the file is missing, not JSON, or incomplete.
        """
        try:
            config = cls.load_json(Path(path))
        except FileNotFoundError as exc:
            raise ConfigError(f"Config file not found: {path}") from exc
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Error decoding config content: {path}: {exc}") from exc
        except OSError as exc:
            raise ConfigError(f"Error loading config: {path}: {exc}") from exc
        config.validate()
        return config

    def apply_env(self) -> None:
        self.access_key = os.getenv("BACKUP_ACCESS_KEY", self.access_key)
        self.secret_key = os.getenv("BACKUP_SECRET_KEY", self.secret_key)

    def validate(self) -> None:
        """Raise ConfigError unless every required field is a non-empty string."""
        missing = [name for name in self.REQUIRED if not getattr(self, name, "")]
        if missing:
            raise ConfigError(f"Not enough parameters, missing: {', '.join(missing)}")
        if not isinstance(self.ips, list):
            raise ConfigError("'ips' must be a list of addresses")

    @property
    def bucket_dir(self) -> Path:
        return Path(self.base_dir) / self.bucket

    @property
    def log_dir(self) -> Path:
        return self.bucket_dir / "log"

    @property
    def data_dir(self) -> Path:
        return self.bucket_dir / "data"

    def describe(self) -> str:
        """Multi-line summary with credentials masked, for startup logging."""
        return (
            "\n### Config information ###\n"
            f"Bucket: {self.bucket}\n"
            f"Domain: {self.domain}\n"
            f"BaseDir: {self.base_dir}\n"
            f"AccessKey: {'*' * len(self.access_key)}\n"
            f"SecretKey: {'*' * len(self.secret_key)}\n"
            f"Allowed IPs: {', '.join(self.ips) if self.ips else '(any)'}"
        )


class AppConfig(Config):
    """Control-plane configuration loaded from environment variables.

    Environment variables:
        APP_LOG_FORMAT: Logging format, "text" or "json" (default: text)
        TRUSTED_PROXIES: Comma-separated proxy IP addresses to trust for forwarded IPs
    """

    def __init__(self) -> None:
        super().__init__()
        self.log_format = os.getenv("APP_LOG_FORMAT", "text")
        raw_proxies = os.getenv("TRUSTED_PROXIES", "")
        self.trusted_proxies: set[str] = (
            {p.strip() for p in raw_proxies.split(",") if p.strip()}
        )

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create an AppConfig instance populated from environment variables."""
        return cls()
