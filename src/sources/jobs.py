"""Scheduled-job argument matching.

Hosts that store job arguments as a serialized blob can only be matched by
substring search.  That compatibility shim lives here and nowhere else;
structured argument lists are matched exactly.
"""

from __future__ import annotations

import json
import re
from typing import Any

from src.sources.base import ScheduledJob

_SUBSCRIPTION_ARG_KEYS = ("subscription_id", "subscription")


def _arg_matches(arg: Any, subscription_id: int) -> bool:
    if isinstance(arg, bool):
        return False
    if isinstance(arg, int):
        return arg == subscription_id
    if isinstance(arg, str):
        return arg.strip() == str(subscription_id)
    if isinstance(arg, dict):
        return any(
            _arg_matches(arg.get(key), subscription_id)
            for key in _SUBSCRIPTION_ARG_KEYS
            if key in arg
        )
    if isinstance(arg, (list, tuple)):
        return any(_arg_matches(item, subscription_id) for item in arg)
    return False


def _blob_matches(blob: str, subscription_id: int) -> bool:
    # Digit boundaries keep id 42 from matching 142 or 420.
    pattern = rf"(?<!\d){subscription_id}(?!\d)"
    return re.search(pattern, blob) is not None


def job_references(job: ScheduledJob, subscription_id: int) -> bool:
    """Whether ``job``'s arguments point at ``subscription_id``."""
    if isinstance(job.args, str):
        return _blob_matches(job.args, subscription_id)
    return _arg_matches(job.args, subscription_id)


def describe_args(job: ScheduledJob) -> str:
    """Render job arguments for a human-readable timeline description."""
    if isinstance(job.args, str):
        return job.args
    return json.dumps(job.args, default=str)
