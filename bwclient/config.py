"""
Centralized configuration for bwclient.

All configuration is loaded from environment variables with sensible defaults.

Usage:
    from bwclient.config import get_config
    cfg = get_config()
    print(cfg.transport)        # "cli" or "rest"
    print(cfg.rest.endpoint)    # "http://127.0.0.1:8087" or $BW_REST_ENDPOINT
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from bwclient.retry import DEFAULT_BASE_DELAY, DEFAULT_MAX_ATTEMPTS, DEFAULT_MAX_DELAY, RetryPolicy

TRANSPORTS = ("cli", "rest")


@dataclass(frozen=True)
class RestConfig:
    """``bw serve`` endpoint parameters."""

    endpoint: str = "http://127.0.0.1:8087"
    timeout: float = 30.0


@dataclass(frozen=True)
class CliConfig:
    """Local ``bw`` process parameters."""

    executable: str = "bw"
    app_data_dir: Path | None = None  # BITWARDENCLI_APPDATA_DIR; None = bw default
    session_key: str = ""


@dataclass(frozen=True)
class RetryConfig:
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    base_delay: float = DEFAULT_BASE_DELAY
    max_delay: float = DEFAULT_MAX_DELAY

    @property
    def policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
            max_delay=self.max_delay,
        )


@dataclass(frozen=True)
class ClientConfig:
    """Top-level client configuration."""

    transport: str = "cli"
    debug: bool = False

    rest: RestConfig = field(default_factory=RestConfig)
    cli: CliConfig = field(default_factory=CliConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)

    def __post_init__(self) -> None:
        if self.transport not in TRANSPORTS:
            raise ValueError(f"Unknown transport {self.transport!r}, expected one of {TRANSPORTS}")


# Singleton
_config: ClientConfig | None = None


def get_config() -> ClientConfig:
    """Get or create the singleton config from environment variables."""
    global _config
    if _config is not None:
        return _config
    _config = _load_from_env()
    return _config


def _load_from_env() -> ClientConfig:
    """Load configuration from environment variables."""
    app_data_dir = os.environ.get("BITWARDENCLI_APPDATA_DIR", "")

    rest = RestConfig(
        endpoint=os.environ.get("BW_REST_ENDPOINT", "http://127.0.0.1:8087"),
        timeout=float(os.environ.get("BW_HTTP_TIMEOUT", "30")),
    )

    cli = CliConfig(
        executable=os.environ.get("BW_EXECUTABLE", "bw"),
        app_data_dir=Path(app_data_dir) if app_data_dir else None,
        session_key=os.environ.get("BW_SESSION", ""),
    )

    retry = RetryConfig(
        max_attempts=int(os.environ.get("BW_RETRY_MAX_ATTEMPTS", str(DEFAULT_MAX_ATTEMPTS))),
        base_delay=float(os.environ.get("BW_RETRY_BASE_DELAY", str(DEFAULT_BASE_DELAY))),
        max_delay=float(os.environ.get("BW_RETRY_MAX_DELAY", str(DEFAULT_MAX_DELAY))),
    )

    return ClientConfig(
        transport=os.environ.get("BW_TRANSPORT", "cli").lower(),
        debug=os.environ.get("BW_DEBUG", "").lower() in ("1", "true", "yes"),
        rest=rest,
        cli=cli,
        retry=retry,
    )


def reset_config() -> None:
    """Reset the singleton config (for testing)."""
    global _config
    _config = None
