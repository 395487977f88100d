"""
Configuration settings with environment variable loading.

Settings are read from SYNCPLAN_* environment variables, optionally
seeded from a .env file. Variables already set in the environment win.
"""

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
ENV_PREFIX = "SYNCPLAN_"


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


@dataclass(frozen=True)
class BuilderConfig:
    """Build tool invocation configuration."""
    maven_command: str = "mvn"
    gradle_command: str = "gradle"
    timeout_seconds: Optional[float] = 600.0

    def __post_init__(self):
        if not self.maven_command:
            raise ConfigurationError("SYNCPLAN_MAVEN_CMD must not be empty")
        if not self.gradle_command:
            raise ConfigurationError("SYNCPLAN_GRADLE_CMD must not be empty")
        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            raise ConfigurationError("SYNCPLAN_BUILD_TIMEOUT must be positive")


@dataclass(frozen=True)
class Settings:
    """
    Application settings container.

    All configuration is loaded from environment variables.
    """
    builder: BuilderConfig = field(default_factory=BuilderConfig)
    log_level: str = "INFO"

    def __post_init__(self):
        if self.log_level not in LOG_LEVELS:
            raise ConfigurationError(
                f"SYNCPLAN_LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got {self.log_level!r}"
            )


def load_settings(env_file: Optional[Path] = None) -> Settings:
    """
    Load settings from environment variables.

    Optionally loads from a .env file first.

    Args:
        env_file: Optional path to .env file

    Returns:
        Configured Settings instance

    Raises:
        ConfigurationError: If configuration is invalid
    """
    if env_file and env_file.exists():
        _load_env_file(env_file)
    elif Path(".env").exists():
        _load_env_file(Path(".env"))

    try:
        timeout = os.getenv("SYNCPLAN_BUILD_TIMEOUT", "600")

        builder = BuilderConfig(
            maven_command=os.getenv("SYNCPLAN_MAVEN_CMD", "mvn"),
            gradle_command=os.getenv("SYNCPLAN_GRADLE_CMD", "gradle"),
            # 0 or "none" disables the timeout
            timeout_seconds=None if timeout.lower() in ("0", "none") else float(timeout),
        )

        settings = Settings(
            builder=builder,
            log_level=os.getenv("SYNCPLAN_LOG_LEVEL", "INFO").upper(),
        )

        logger.debug(f"Settings: {settings}")
        return settings

    except ConfigurationError:
        raise
    except Exception as e:
        raise ConfigurationError(f"Failed to load configuration: {e}") from e


def _load_env_file(path: Path) -> None:
    """
    Seed SYNCPLAN_* variables from a .env file.

    Lines are KEY=value, with optional single or double quotes around the
    value; blank lines and # comments are skipped. Keys without the
    SYNCPLAN_ prefix are ignored, and variables already set in the
    environment are left alone.
    """
    logger.debug(f"Loading environment from {path}")

    for line_num, raw in enumerate(path.read_text().splitlines(), 1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue

        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key.startswith(ENV_PREFIX):
            logger.warning(f"Ignoring line {line_num} in {path}: not a {ENV_PREFIX}* setting")
            continue

        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
            value = value[1:-1]

        os.environ.setdefault(key, value)
