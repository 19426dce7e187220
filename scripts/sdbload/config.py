"""
Configuration management for the SimpleDB loader.
Handles .env files, environment variables, performance profiles and validation.
"""
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv


# SimpleDB accepts at most 25 items per BatchPutAttributes call
MAX_ITEMS_PER_BATCH = 25

ENV_PREFIX = "SDBLOAD_"

# Performance profiles: thread count and request-rate ramp
PROFILES = {
    "safe": {"thread_count": 10, "min_rps": 0.5, "max_rps": 2.0, "ramp_time": 300.0},
    "default": {"thread_count": 100, "min_rps": 1.0, "max_rps": 5.0, "ramp_time": 120.0},
    "fast": {"thread_count": 200, "min_rps": 2.0, "max_rps": 10.0, "ramp_time": 60.0},
}


class ConfigurationError(ValueError):
    """Invalid or missing configuration. Fatal, reported before any work starts."""


@dataclass
class LoaderConfig:
    """Central configuration for a load run."""

    # Sharding
    domain_count: int = 25
    domain_prefix: str = "test_domain"

    # Batching and concurrency
    batch_count: int = 20
    thread_count: int = 100

    # Request-rate ramp, per domain
    min_rps: float = 1.0
    max_rps: float = 5.0
    ramp_time: float = 120.0

    # Transport
    region: str = "us-east-1"
    endpoint_url: Optional[str] = None
    max_attempts: int = 1
    connect_timeout: float = 10.0
    read_timeout: float = 60.0
    replace_attributes: bool = False

    # Credentials (opaque to the loader)
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None

    @classmethod
    def from_env(
        cls,
        env_file: Optional[str] = None,
        profile: str = "default",
        **overrides
    ) -> "LoaderConfig":
        """
        Load configuration from a .env file and environment variables.

        Precedence, lowest first: dataclass defaults, profile, SDBLOAD_*
        environment variables, explicit overrides (None values are ignored).

        Args:
            env_file: Path to a .env file (defaults to .env.local, then .env)
            profile: Performance profile - "safe", "default" or "fast"
            overrides: Field values taking precedence over everything else
        """
        env_path = _find_env_file(env_file)
        if env_path is not None:
            load_dotenv(env_path)

        if profile not in PROFILES:
            raise ConfigurationError(
                f"Unknown profile '{profile}' (choose from {', '.join(sorted(PROFILES))})"
            )

        values = dict(PROFILES[profile])
        values.update(_read_environment())
        values["access_key_id"] = os.getenv("AWS_ACCESS_KEY_ID")
        values["secret_access_key"] = os.getenv("AWS_SECRET_ACCESS_KEY")
        region = os.getenv("AWS_REGION") or os.getenv("AWS_DEFAULT_REGION")
        if region:
            values["region"] = region

        values.update({k: v for k, v in overrides.items() if v is not None})

        config = cls(**values)
        config.validate()
        return config

    def validate(self):
        """Raise ConfigurationError if any setting is unusable."""
        if self.domain_count < 1:
            raise ConfigurationError(f"domain_count must be at least 1, got {self.domain_count}")
        if not self.domain_prefix:
            raise ConfigurationError("domain_prefix must not be empty")
        if self.batch_count < 1:
            raise ConfigurationError(f"batch_count must be at least 1, got {self.batch_count}")
        # A full batch is flushed once it holds batch_count + 1 items
        if self.batch_count + 1 > MAX_ITEMS_PER_BATCH:
            raise ConfigurationError(
                f"batch_count must be at most {MAX_ITEMS_PER_BATCH - 1}, got {self.batch_count}"
            )
        if self.thread_count < 1:
            raise ConfigurationError(f"thread_count must be at least 1, got {self.thread_count}")
        if self.min_rps <= 0 or self.max_rps <= 0:
            raise ConfigurationError(
                f"request rates must be positive, got min_rps={self.min_rps}, max_rps={self.max_rps}"
            )
        if self.ramp_time < 0:
            raise ConfigurationError(f"ramp_time must not be negative, got {self.ramp_time}")
        if self.max_attempts < 1:
            raise ConfigurationError(f"max_attempts must be at least 1, got {self.max_attempts}")

    def require_credentials(self):
        """Check that credentials are present for commands that reach the store."""
        missing = []
        if not self.access_key_id:
            missing.append("AWS_ACCESS_KEY_ID")
        if not self.secret_access_key:
            missing.append("AWS_SECRET_ACCESS_KEY")
        if missing:
            raise ConfigurationError(f"Missing required environment variables: {', '.join(missing)}")


def _find_env_file(env_file: Optional[str]) -> Optional[Path]:
    if env_file:
        path = Path(env_file)
        if not path.exists():
            raise ConfigurationError(f"Environment file not found: {env_file}")
        return path

    for name in (".env.local", ".env"):
        path = Path.cwd() / name
        if path.exists():
            return path
    return None


def _read_environment() -> dict:
    """Collect SDBLOAD_* variables, converted to the type of their field."""
    values = {}
    for field in fields(LoaderConfig):
        raw = os.getenv(ENV_PREFIX + field.name.upper())
        if raw is None or field.name in ("access_key_id", "secret_access_key"):
            continue
        values[field.name] = _convert(field.name, raw, type(field.default))
    return values


def _convert(name: str, raw: str, kind: type):
    if kind is bool:
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if kind is int:
        try:
            return int(raw)
        except ValueError:
            raise ConfigurationError(f"{ENV_PREFIX}{name.upper()} must be an integer, got '{raw}'")
    if kind is float:
        try:
            return float(raw)
        except ValueError:
            raise ConfigurationError(f"{ENV_PREFIX}{name.upper()} must be a number, got '{raw}'")
    return raw


# Message constants
MSG_LOADING_ITEMS = "Loading items"
MSG_CREATING_DOMAINS = "Creating domains"
MSG_DELETING_DOMAINS = "Deleting domains"
MSG_WAITING = "Waiting for outstanding writes"

# Error messages
ERR_WRITE_FAILED = "Batch write failed"
ERR_ADMIN_FAILED = "Domain operation failed"
ERR_MALFORMED_LINE = "Malformed input line, loading with no attributes"
