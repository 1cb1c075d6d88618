"""Profiling and logging setup."""

from __future__ import annotations

from diff_engine.telemetry.json_formatter import JSONFormatter, configure_logging
from diff_engine.telemetry.profiling import ProfileCollector, ProfileResult, profile_operation

__all__ = [
    "JSONFormatter",
    "ProfileCollector",
    "ProfileResult",
    "configure_logging",
    "profile_operation",
]
