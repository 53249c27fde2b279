"""Shared utilities for the backup tools."""

# Common utilities
from utils.common import format_bytes, now_nanos

# String utilities
from utils.strings import escape_key, unescape_key, strip_whitespace

# Configuration
from utils.config import AppConfig, BackupConfig, Config, ConfigError

# HTTP
from utils.http import RetryStrategy, SessionManager, new_session

__all__ = [
    # Common
    "format_bytes",
    "now_nanos",
    # Strings
    "escape_key",
    "unescape_key",
    "strip_whitespace",
    # Config
    "AppConfig",
    "BackupConfig",
    "Config",
    "ConfigError",
    # HTTP
    "RetryStrategy",
    "SessionManager",
    "new_session",
]
