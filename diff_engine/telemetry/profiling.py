"""Timing of the diff hot paths.

``@profile_operation(name)`` wraps a diff function, measures each call with
``time.perf_counter_ns`` and files a :class:`ProfileResult` with the shared
:class:`ProfileCollector`.  When the wrapped function returns a list (change
records or diff blocks) its length is kept as ``result_size`` so that slow
calls can be told apart from large diffs.

Usage::

    from diff_engine.telemetry.profiling import profile_operation

    @profile_operation("diff.text")
    def compute_diff_blocks(old_text, new_text, ...):
        ...
"""

from __future__ import annotations

import functools
import logging
import threading
import time
from collections import defaultdict, deque
from collections.abc import Callable
from dataclasses import dataclass, field
from statistics import fmean
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

_PERCENTILES = (50, 95, 99)


@dataclass(frozen=True)
class ProfileResult:
    """One timed call of a diff operation."""

    operation: str
    duration_ms: float
    metadata: dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Collector
# ---------------------------------------------------------------------------


class ProfileCollector:
    """Bounded per-operation history of :class:`ProfileResult` entries.

    One process-wide instance is shared through :meth:`get_instance`; tests
    replace it with :meth:`reset`.

    Parameters
    ----------
    max_results:
        Number of most recent results kept for each operation.
    """

    _shared: ProfileCollector | None = None
    _shared_lock = threading.Lock()

    def __init__(self, max_results: int = 100) -> None:
        self.max_results = max_results
        self._history: defaultdict[str, deque[ProfileResult]] = defaultdict(self._new_window)
        self._guard = threading.Lock()

    def _new_window(self) -> deque[ProfileResult]:
        return deque(maxlen=self.max_results)

    @classmethod
    def get_instance(cls) -> ProfileCollector:
        with cls._shared_lock:
            if cls._shared is None:
                cls._shared = cls()
            return cls._shared

    @classmethod
    def reset(cls) -> None:
        with cls._shared_lock:
            cls._shared = None

    def record(self, result: ProfileResult) -> None:
        with self._guard:
            self._history[result.operation].append(result)

    def snapshot(self, operation: str) -> list[ProfileResult]:
        """Copy of the retained results for *operation*, oldest first."""
        with self._guard:
            return list(self._history.get(operation, ()))

    def get_stats(self, operation: str) -> dict[str, Any] | None:
        """Aggregate the retained timings of *operation*.

        Returns ``None`` when nothing was recorded.  Otherwise the dict has
        ``operation``, ``count``, ``mean_ms``, ``min_ms``, ``max_ms``,
        ``p50_ms``, ``p95_ms`` and ``p99_ms``, plus ``mean_result_size``
        when the calls returned lists.
        """
        window = self.snapshot(operation)
        if not window:
            return None

        timings = sorted(r.duration_ms for r in window)
        stats: dict[str, Any] = {
            "operation": operation,
            "count": len(timings),
            "mean_ms": round(fmean(timings), 3),
            "min_ms": round(timings[0], 3),
            "max_ms": round(timings[-1], 3),
        }
        for pct in _PERCENTILES:
            stats[f"p{pct}_ms"] = round(_interpolate(timings, pct), 3)

        sizes = [r.metadata["result_size"] for r in window if "result_size" in r.metadata]
        if sizes:
            stats["mean_result_size"] = round(fmean(sizes), 2)
        return stats

    def get_all_stats(self) -> list[dict[str, Any]]:
        """Stats for every operation seen so far, ordered by name."""
        with self._guard:
            names = sorted(self._history)
        return [stats for stats in map(self.get_stats, names) if stats is not None]

    def clear(self) -> None:
        with self._guard:
            self._history.clear()


def _interpolate(ordered: list[float], pct: float) -> float:
    """Linearly interpolated percentile of an ascending list."""
    if not ordered:
        return 0.0
    rank = (pct / 100.0) * (len(ordered) - 1)
    lower = int(rank)
    upper = min(lower + 1, len(ordered) - 1)
    return ordered[lower] + (rank - lower) * (ordered[upper] - ordered[lower])


# ---------------------------------------------------------------------------
# Decorator
# ---------------------------------------------------------------------------


def profile_operation(name: str) -> Callable[[F], F]:
    """Time every call of the decorated function under *name*.

    The result is recorded even when the call raises, with the exception
    class name under ``metadata["error"]``.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            metadata: dict[str, Any] = {}
            start_ns = time.perf_counter_ns()
            try:
                result = func(*args, **kwargs)
            except Exception as exc:
                metadata["error"] = type(exc).__name__
                raise
            else:
                if isinstance(result, list):
                    metadata["result_size"] = len(result)
                return result
            finally:
                elapsed_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
                ProfileCollector.get_instance().record(
                    ProfileResult(operation=name, duration_ms=round(elapsed_ms, 3), metadata=metadata)
                )
                logger.debug("PROFILE %s: %.3f ms %s", name, elapsed_ms, metadata or "")

        return wrapper  # type: ignore[return-value]

    return decorator
