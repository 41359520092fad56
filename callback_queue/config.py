"""
Centralized configuration with environment variable overrides.

Retry policy defaults, queue timing, scheduler period and store settings
are configurable here. Nothing is hardcoded in queue or tool logic.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from callback_queue.logging_context import LOG_FORMAT, install_callback_filter

load_dotenv()

logger = logging.getLogger(__name__)

CONFIG_VERSION = 1


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


def _safe_bool(env_var: str, default: str) -> bool:
    """Parse a boolean flag (true/false, yes/no, 1/0) from an env var."""
    raw = os.getenv(env_var, default).strip().lower()
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"Invalid boolean for {env_var}: {raw!r}")


@dataclass(frozen=True)
class RetryConfig:
    """Process-wide retry defaults snapshotted onto each new request."""

    max_retries: int = _safe_int("CALLBACK_MAX_RETRIES", "3")
    retry_interval_minutes: int = _safe_int("CALLBACK_RETRY_INTERVAL_MINUTES", "15")
    auto_retry_enabled: bool = _safe_bool("CALLBACK_AUTO_RETRY", "true")


@dataclass(frozen=True)
class QueueConfig:
    """Wait estimates, callback windows and agent notification settings."""

    base_wait_minutes: int = _safe_int("CALLBACK_BASE_WAIT_MINUTES", "10")
    wait_jitter_minutes: int = _safe_int("CALLBACK_WAIT_JITTER_MINUTES", "10")
    scheduled_window_minutes: int = _safe_int("CALLBACK_SCHEDULED_WINDOW_MINUTES", "30")
    notification_expiry_minutes: int = _safe_int("CALLBACK_NOTIFICATION_EXPIRY_MINUTES", "5")
    broadcast_agent_id: str = os.getenv("CALLBACK_BROADCAST_AGENT_ID", "current-agent")


@dataclass(frozen=True)
class SchedulerConfig:
    """Wait-time decay ticker settings."""

    tick_interval_seconds: float = _safe_float("CALLBACK_TICK_INTERVAL_SECONDS", "60")


@dataclass(frozen=True)
class StoreConfig:
    """Durable callback store settings."""

    path: str = os.getenv("CALLBACK_STORE_PATH", "data/callback_queue.json")
    save_attempts: int = _safe_int("CALLBACK_STORE_SAVE_ATTEMPTS", "3")
    retry_delay_seconds: float = _safe_float("CALLBACK_STORE_RETRY_DELAY", "0.1")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    retry: RetryConfig = field(default_factory=RetryConfig)
    queue: QueueConfig = field(default_factory=QueueConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    queue_name: str = os.getenv("QUEUE_NAME", "customer-callbacks")
    config_version: int = CONFIG_VERSION


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if config.retry.max_retries < 0:
        raise ValueError(
            f"CALLBACK_MAX_RETRIES must be >= 0, got {config.retry.max_retries}"
        )
    if config.retry.retry_interval_minutes < 0:
        raise ValueError(
            "CALLBACK_RETRY_INTERVAL_MINUTES must be >= 0, "
            f"got {config.retry.retry_interval_minutes}"
        )

    for name, value in [
        ("CALLBACK_BASE_WAIT_MINUTES", config.queue.base_wait_minutes),
        ("CALLBACK_WAIT_JITTER_MINUTES", config.queue.wait_jitter_minutes),
        ("CALLBACK_SCHEDULED_WINDOW_MINUTES", config.queue.scheduled_window_minutes),
    ]:
        if value < 0:
            raise ValueError(f"{name} must be >= 0, got {value}")

    if config.queue.notification_expiry_minutes < 1:
        raise ValueError(
            "CALLBACK_NOTIFICATION_EXPIRY_MINUTES must be >= 1, "
            f"got {config.queue.notification_expiry_minutes}"
        )
    if config.scheduler.tick_interval_seconds <= 0:
        raise ValueError(
            "CALLBACK_TICK_INTERVAL_SECONDS must be > 0, "
            f"got {config.scheduler.tick_interval_seconds}"
        )
    if config.store.save_attempts < 1:
        raise ValueError(
            f"CALLBACK_STORE_SAVE_ATTEMPTS must be >= 1, got {config.store.save_attempts}"
        )
    if config.store.retry_delay_seconds < 0:
        raise ValueError(
            f"CALLBACK_STORE_RETRY_DELAY must be >= 0, got {config.store.retry_delay_seconds}"
        )
    if config.config_version != CONFIG_VERSION:
        raise ValueError(
            f"Unsupported config version {config.config_version}, expected {CONFIG_VERSION}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    install_callback_filter()
    logger.info("Configuration loaded for queue '%s'", config.queue_name)
    return config


# Singleton instance
settings = load_config()
