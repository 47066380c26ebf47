"""Detector exceptions."""

from __future__ import annotations


class DetectorError(Exception):
    """Base exception for anomaly detector errors."""


class CadenceError(DetectorError):
    """The subscription's billing period cannot be evaluated."""

    def __init__(self, unit: str | None, interval: int | None) -> None:
        self.unit = unit
        self.interval = interval
        super().__init__(f"Unknown billing cadence: {interval} x {unit!r}")
