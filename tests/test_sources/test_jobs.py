"""Tests for scheduled-job argument matching."""

from __future__ import annotations

from typing import Any

from src.sources.base import ScheduledJob
from src.sources.jobs import describe_args, job_references


def _job(args: Any) -> ScheduledJob:
    return ScheduledJob(id=1, hook="woocommerce_scheduled_subscription_payment", args=args)


class TestStructuredArgs:
    def test_int_arg(self) -> None:
        assert job_references(_job([42]), 42)

    def test_string_arg(self) -> None:
        assert job_references(_job(["42"]), 42)

    def test_dict_arg(self) -> None:
        assert job_references(_job([{"subscription_id": 42}]), 42)

    def test_nested_list(self) -> None:
        assert job_references(_job([[1, [42]]]), 42)

    def test_other_id_does_not_match(self) -> None:
        assert not job_references(_job([142]), 42)
        assert not job_references(_job([{"order_id": 42}]), 42)

    def test_bool_is_not_an_id(self) -> None:
        assert not job_references(_job([True]), 1)


class TestBlobArgs:
    def test_serialized_blob_matches(self) -> None:
        assert job_references(_job('a:1:{s:15:"subscription_id";i:42;}'), 42)

    def test_digit_boundaries(self) -> None:
        assert not job_references(_job('{"subscription_id":142}'), 42)
        assert not job_references(_job('{"subscription_id":420}'), 42)


class TestDescribeArgs:
    def test_structured(self) -> None:
        assert describe_args(_job([42])) == "[42]"

    def test_blob_passthrough(self) -> None:
        assert describe_args(_job("raw-blob")) == "raw-blob"
