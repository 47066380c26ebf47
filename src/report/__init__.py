"""Report assembly and rendering."""

from src.report.assembler import (
    assemble_report,
    compute_statistics,
    next_steps,
    prioritize,
    rollup_status,
)
from src.report.formatters import format_report, report_to_dict, timeline_to_dict

__all__ = [
    "assemble_report",
    "compute_statistics",
    "format_report",
    "next_steps",
    "prioritize",
    "report_to_dict",
    "rollup_status",
    "timeline_to_dict",
]
