"""Pydantic settings loaded from YAML configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel

_settings: Settings | None = None

_DEFAULT_CONFIG_PATH = Path("config/settings.yaml")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    enabled: bool = True
    level: str = "INFO"
    format: str = "json"
    retention_days: int = 30
    file: str = ""


class DiagnosticsConfig(BaseModel):
    """Thresholds and limits for the timeline and anomaly detectors."""

    max_related_orders: int = 24
    max_cycle_comparisons: int = 20
    skipped_cycle_grace_days: float = 3.0
    due_soon_days: int = 3
    note_scan_limit: int = 100
    renewal_note_limit: int = 10
    gateway_error_note_limit: int = 20
    stuck_status_days: int = 7
    max_payment_retries: int = 3
    expiring_method_warning_days: int = 30
    time_budget_secs: float = 30.0
    manual_payment_methods: list[str] = [
        "cheque",
        "bacs",
        "cod",
        "bank_transfer",
    ]
    completed_order_statuses: list[str] = ["completed"]
    detached_patterns: list[str] = [
        "The provided PaymentMethod was previously used",
        "To use a PaymentMethod multiple times, you must attach it to a Customer first",
        "payment_method_attached_to_another_customer",
        "This PaymentMethod was previously used with a PaymentIntent",
    ]
    gateway_error_codes: list[str] = [
        "card_declined",
        "insufficient_funds",
        "expired_card",
        "processing_error",
        "authentication_required",
        "payment_method_attached_to_another_customer",
    ]


class Settings(BaseModel):
    """Root settings container."""

    diagnostics: DiagnosticsConfig = DiagnosticsConfig()
    logging: LoggingConfig = LoggingConfig()


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from a YAML file and cache globally.

    Args:
        path: Path to YAML config. Defaults to config/settings.yaml.

    Returns:
        Parsed Settings instance.
    """
    global _settings  # noqa: PLW0603

    config_path = Path(path) if path else _DEFAULT_CONFIG_PATH

    data: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f)
            if isinstance(raw, dict):
                data = raw

    _settings = Settings(**data)
    return _settings


def get_settings() -> Settings:
    """Return the cached settings, loading defaults if not yet loaded."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Reset the cached settings (useful for testing)."""
    global _settings  # noqa: PLW0603
    _settings = None
