"""
Configuration module for global settings and environment variable handling.

This module centralizes configuration settings and provides a consistent
interface for accessing environment variables. Optional values fall back to
defaults; required values raise ConfigError so that a process never starts
with guessed settings.
"""

import math
import os
import re
import threading
from typing import Optional

from dotenv import load_dotenv

from utils.logging import get_logger

# Load environment variables from .env file
load_dotenv()

logger = get_logger("utils.config")

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


class ConfigError(Exception):
    """Raised for missing or malformed configuration."""


def parse_duration(value: str) -> float:
    """Parse a duration such as "30s", "5m", "1h30m" or "250ms" into seconds.

    A bare number is read as seconds.
    """
    text = value.strip().lower()
    if not text:
        raise ConfigError("empty duration")
    try:
        seconds = float(text)
    except ValueError:
        pos = 0
        seconds = 0.0
        for match in _DURATION_PART.finditer(text):
            if match.start() != pos:
                break
            seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
            pos = match.end()
        if pos != len(text):
            raise ConfigError(f"invalid duration: {value!r}")
    if not math.isfinite(seconds) or seconds > threading.TIMEOUT_MAX:
        raise ConfigError(f"duration out of range: {value!r}")
    if seconds <= 0:
        raise ConfigError(f"duration must be positive: {value!r}")
    return seconds


class Config:
    """Global configuration handler."""

    # Default values that can be overridden by environment variables
    DEFAULT_TIMEOUT = 30  # seconds
    DEFAULT_RETRY_COUNT = 3
    DEFAULT_BACKOFF_FACTOR = 1.0

    @staticmethod
    def get_env(key: str, default: Optional[str] = None) -> Optional[str]:
        """Get environment variable with fallback to default."""
        return os.getenv(key, default)

    @staticmethod
    def require_env(key: str) -> str:
        """Get a mandatory environment variable."""
        value = os.getenv(key, "").strip()
        if not value:
            raise ConfigError(f"{key} cannot be empty")
        return value

    @staticmethod
    def get_env_int(key: str, default: int) -> int:
        """Get environment variable as integer with fallback to default."""
        value = os.getenv(key)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            logger.warning("Invalid integer value for %s: %s. Using default %s", key, value, default)
            return default

    @staticmethod
    def get_env_float(key: str, default: float) -> float:
        """Get environment variable as float with fallback to default."""
        value = os.getenv(key)
        if value is None:
            return default
        try:
            return float(value)
        except ValueError:
            logger.warning("Invalid float value for %s: %s. Using default %s", key, value, default)
            return default

    @staticmethod
    def get_env_bool(key: str, default: bool) -> bool:
        """Get environment variable as boolean with fallback to default."""
        value = os.getenv(key)
        if value is None:
            return default
        return value.lower() in ("true", "yes", "1")

    @staticmethod
    def get_env_duration(key: str, default: Optional[str] = None) -> float:
        """Get environment variable as a duration in seconds.

        Unlike the numeric getters a malformed value is an error, not a
        reason to fall back to the default.
        """
        value = os.getenv(key) or default
        if value is None:
            raise ConfigError(f"{key} cannot be empty")
        try:
            return parse_duration(value)
        except ConfigError as e:
            raise ConfigError(f"{key}: {e}") from e

    @classmethod
    def get_request_timeout(cls) -> int:
        """Get HTTP request timeout in seconds."""
        return cls.get_env_int("REQUEST_TIMEOUT", cls.DEFAULT_TIMEOUT)

    @classmethod
    def get_retry_count(cls) -> int:
        """Get number of retry attempts for external calls."""
        return cls.get_env_int("RETRY_COUNT", cls.DEFAULT_RETRY_COUNT)

    @classmethod
    def get_backoff_factor(cls) -> float:
        """Get backoff factor for retries."""
        return cls.get_env_float("BACKOFF_FACTOR", cls.DEFAULT_BACKOFF_FACTOR)
