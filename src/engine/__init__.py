"""Diagnostics engine — the public entry point."""

from src.engine.budget import Budget
from src.engine.engine import DiagnosticsEngine

__all__ = ["Budget", "DiagnosticsEngine"]
