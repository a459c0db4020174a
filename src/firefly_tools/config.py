"""
Configuration management (SSOT).

All configuration keys for the Firefly tools are defined here; no other
module should invent config keys.

Sources, in increasing priority:
- YAML config file (a JSON file is accepted too, JSON is valid YAML)
- Environment variables
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlparse

import yaml

logger = logging.getLogger(__name__)

LOG_LEVELS = ("debug", "info", "warn", "error")
MIN_TOKEN_LENGTH = 10


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("; ".join(errors))


@dataclass
class FireflyConfig:
    """Firefly III connection settings.

    Durations are in milliseconds.
    """

    base_url: str
    token: str
    timeout_ms: int = 30000
    retry_attempts: int = 3
    retry_delay_ms: int = 1000


@dataclass
class LoggingConfig:
    """Logging settings."""

    # One of debug, info, warn, error
    level: str = "info"
    log_to_file: bool = False
    log_file: str = "firefly-tools.log"

    @property
    def is_debug(self) -> bool:
        return self.level == "debug"


@dataclass
class CacheConfig:
    """Response cache settings. Loaded but not used by the client yet."""

    enabled: bool = True
    ttl_ms: int = 300000


@dataclass
class Config:
    """Application configuration (SSOT)."""

    firefly: FireflyConfig
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)

    def validate(self) -> list[str]:
        """Validate configuration completeness and consistency.

        Returns:
            List of validation errors (empty if valid)
        """
        errors: list[str] = []

        if not self.firefly.base_url:
            errors.append(
                "Firefly III base URL is required "
                "(set FIREFLY_BASE_URL or firefly.base_url in the config file)"
            )
        else:
            parsed = urlparse(self.firefly.base_url)
            if parsed.scheme not in ("http", "https") or not parsed.netloc:
                errors.append("Invalid Firefly III base URL format")

        if not self.firefly.token:
            errors.append(
                "Firefly III API token is required "
                "(set FIREFLY_API_TOKEN or firefly.token in the config file)"
            )
        elif len(self.firefly.token) < MIN_TOKEN_LENGTH:
            errors.append("Firefly III API token appears to be invalid (too short)")

        if self.firefly.timeout_ms <= 0:
            errors.append("firefly.timeout_ms must be positive")
        if self.firefly.retry_attempts < 0:
            errors.append("firefly.retry_attempts must be >= 0")
        if self.firefly.retry_delay_ms < 0:
            errors.append("firefly.retry_delay_ms must be >= 0")

        if self.logging.level not in LOG_LEVELS:
            errors.append(
                f"logging.level must be one of {', '.join(LOG_LEVELS)} "
                f"(got '{self.logging.level}')"
            )

        return errors


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "")
    if not raw:
        return int(default)
    try:
        return int(raw)
    except ValueError:
        raise ConfigValidationError([f"{name} must be an integer (got '{raw}')"]) from None


def _section(data: dict, name: str) -> dict:
    """Return a top-level mapping; an empty key (`firefly:`) counts as absent."""
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigValidationError([f"'{name}' section must be a mapping"])
    return section


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name, "").lower()
    if raw == "true":
        return True
    if raw == "false":
        return False
    return bool(default)


def load_config(config_path: Path, validate: bool = True) -> Config:
    """
    Load configuration from a YAML file, then apply environment overrides.

    Environment variables:
    - FIREFLY_BASE_URL
    - FIREFLY_API_TOKEN
    - FIREFLY_TIMEOUT (ms)
    - FIREFLY_RETRY_ATTEMPTS
    - FIREFLY_RETRY_DELAY (ms)
    - LOG_LEVEL (debug/info/warn/error)
    - LOG_TO_FILE (true/false)
    - LOG_FILE
    - CACHE_ENABLED (true/false)
    - CACHE_TTL (ms)

    Raises:
        ConfigValidationError: If validate is set and the result is incomplete
    """
    if config_path.exists():
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ConfigValidationError(
                [f"{config_path} must contain a mapping of config sections"]
            )
    else:
        logger.warning(
            "Could not load %s, using environment variables only", config_path
        )
        data = {}

    firefly_data = _section(data, "firefly")
    firefly = FireflyConfig(
        base_url=os.environ.get("FIREFLY_BASE_URL", firefly_data.get("base_url", "")),
        token=os.environ.get("FIREFLY_API_TOKEN", firefly_data.get("token", "")),
        timeout_ms=_env_int("FIREFLY_TIMEOUT", firefly_data.get("timeout_ms", 30000)),
        retry_attempts=_env_int(
            "FIREFLY_RETRY_ATTEMPTS", firefly_data.get("retry_attempts", 3)
        ),
        retry_delay_ms=_env_int(
            "FIREFLY_RETRY_DELAY", firefly_data.get("retry_delay_ms", 1000)
        ),
    )

    logging_data = _section(data, "logging")
    logging_config = LoggingConfig(
        level=os.environ.get("LOG_LEVEL", logging_data.get("level", "info")).lower(),
        log_to_file=_env_bool("LOG_TO_FILE", logging_data.get("log_to_file", False)),
        log_file=os.environ.get(
            "LOG_FILE", logging_data.get("log_file", "firefly-tools.log")
        ),
    )

    cache_data = _section(data, "cache")
    cache = CacheConfig(
        enabled=_env_bool("CACHE_ENABLED", cache_data.get("enabled", True)),
        ttl_ms=_env_int("CACHE_TTL", cache_data.get("ttl_ms", 300000)),
    )

    config = Config(firefly=firefly, logging=logging_config, cache=cache)

    if validate:
        errors = config.validate()
        if errors:
            raise ConfigValidationError(errors)

    return config


def create_default_config(config_path: Path) -> None:
    """Create a default configuration file."""
    default_config = """# Firefly III Tools Configuration
#
# Every value can be overridden by an environment variable
# (FIREFLY_BASE_URL, FIREFLY_API_TOKEN, LOG_LEVEL, ...).

firefly:
  base_url: "https://firefly.example.com"  # Absolute URL of your Firefly III instance
  token: "YOUR_PERSONAL_ACCESS_TOKEN"      # Profile > OAuth > Personal Access Tokens
  timeout_ms: 30000                        # Per-attempt deadline
  retry_attempts: 3                        # Retries after the first attempt
  retry_delay_ms: 1000                     # Backoff base: delay * 2^attempt

logging:
  level: "info"                            # debug, info, warn, error
  log_to_file: false
  log_file: "firefly-tools.log"

# Reserved for a response cache (not used yet)
cache:
  enabled: true
  ttl_ms: 300000
"""

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w") as f:
        f.write(default_config)
