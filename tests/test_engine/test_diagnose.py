"""Tests for the diagnose CLI."""

from __future__ import annotations

import json
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest
import yaml

from scripts.diagnose import parse_args, run
from src.core.config import reset_settings

# ── Helpers ─────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def _reset() -> Iterator[None]:
    reset_settings()
    yield
    reset_settings()


def _snapshot(tmp_path: Path, **subscription: Any) -> Path:
    sub: dict[str, Any] = {
        "id": 42,
        "status": "active",
        "start": "2024-01-01 00:00:00",
        "billing_period": "month",
        "payment_method": "bacs",
        "related_orders": [{"id": 100, "relation": "parent"}],
    }
    sub.update(subscription)
    doc = {
        "subscriptions": [sub],
        "orders": [{
            "id": 100,
            "status": "completed",
            "date_created": "2024-01-01 00:00:00",
            "payment_method": "bacs",
            "transaction_id": "manual-1",
        }],
    }
    path = tmp_path / "snapshot.yaml"
    path.write_text(yaml.dump(doc))
    return path


def _config(tmp_path: Path) -> Path:
    path = tmp_path / "settings.yaml"
    path.write_text("logging:\n  enabled: false\n")
    return path


def _argv(tmp_path: Path, snapshot: Path, *extra: str) -> list[str]:
    return [
        "--snapshot", str(snapshot),
        "--subscription", "42",
        "--config", str(_config(tmp_path)),
        *extra,
    ]


class TestParseArgs:
    def test_defaults(self) -> None:
        args = parse_args(["--snapshot", "s.yaml", "--subscription", "7"])
        assert args.subscription == 7
        assert args.format == "json"
        assert args.timeline is False
        assert args.config is None


class TestRun:
    def test_json_report_with_findings(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        snapshot = _snapshot(tmp_path)
        code = run(parse_args(_argv(tmp_path, snapshot)))
        data = json.loads(capsys.readouterr().out)
        assert data["subscription_id"] == 42
        types = {d["type"] for d in data["discrepancies"]}
        assert "overdue_payment" in types
        assert "manual_payment" in types
        assert code == 1

    def test_console_report(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        snapshot = _snapshot(tmp_path)
        run(parse_args(_argv(tmp_path, snapshot, "--format", "console")))
        out = capsys.readouterr().out
        assert out.startswith("Subscription #42:")
        assert "Next steps:" in out

    def test_timeline_output(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        snapshot = _snapshot(tmp_path)
        code = run(parse_args(_argv(tmp_path, snapshot, "--timeline")))
        data = json.loads(capsys.readouterr().out)
        assert code == 0
        assert data["event_count"] == len(data["events"])
        assert "gaps_detected" in data["pattern_analysis"]

    def test_unknown_subscription(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        snapshot = _snapshot(tmp_path, id=7)
        code = run(parse_args(_argv(tmp_path, snapshot)))
        assert code == 2
        assert "Subscription #42 not found." in capsys.readouterr().err

    def test_unreadable_snapshot(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        code = run(parse_args(_argv(tmp_path, tmp_path / "missing.yaml")))
        assert code == 2
        assert "Cannot load snapshot" in capsys.readouterr().err

    def test_malformed_record(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        snapshot = tmp_path / "snapshot.yaml"
        snapshot.write_text("subscriptions: [x]\n")
        code = run(parse_args(_argv(tmp_path, snapshot)))
        assert code == 2
        assert "Cannot load snapshot" in capsys.readouterr().err
