"""Result aggregation.

Every result passes through ``Aggregator.process`` exactly once, on a single
consumer. The counters and the last-results table are still guarded so that
``summary()`` can be read from anywhere (a signal handler, another thread).
"""

import logging
import threading
from collections import Counter, deque

from rich.console import Console

from .metrics import compute_stats
from .models import CheckResult, Endpoint, MetricsCallback, Reporter, Summary
from .rendering import render_summary

logger = logging.getLogger(__name__)


class AtomicCounter:
    def __init__(self) -> None:
        self._value = 0
        self._lock = threading.Lock()

    def increment(self, n: int = 1) -> int:
        with self._lock:
            self._value += n
            return self._value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


class LastResults:
    """Endpoint -> most recently processed result, copied on every read."""

    def __init__(self) -> None:
        self._results: dict[Endpoint, CheckResult] = {}
        self._lock = threading.Lock()

    def get(self, endpoint: Endpoint) -> CheckResult | None:
        with self._lock:
            prev = self._results.get(endpoint)
            return prev.copy() if prev is not None else None

    def put(self, result: CheckResult) -> None:
        with self._lock:
            self._results[result.endpoint] = result.copy()

    def snapshot(self) -> dict[Endpoint, CheckResult]:
        with self._lock:
            return {k: v.copy() for k, v in self._results.items()}

    def __len__(self) -> int:
        with self._lock:
            return len(self._results)


class Aggregator:
    def __init__(
        self,
        reporter: Reporter | None = None,
        latency_window: int = 1000,
        metrics_callback: MetricsCallback | None = None,
    ) -> None:
        self.reporter = reporter
        self.metrics_callback = metrics_callback

        self.total = AtomicCounter()
        self.success = AtomicCounter()
        self.failure = AtomicCounter()
        self.last_results = LastResults()

        # Summary statistics; bounded so long runs stay flat in memory
        self._stats_lock = threading.Lock()
        self._latencies: deque[float] = deque(maxlen=latency_window)
        self._status_counts: Counter[int] = Counter()
        self.total_duration = 0.0
        self.timed_checks = 0

    def process(self, result: CheckResult) -> None:
        # Independent increments: a reader may see total ahead of success + failure
        self.total.increment()
        if result.success:
            self.success.increment()
        else:
            self.failure.increment()

        with self._stats_lock:
            if result.duration is not None:
                self.total_duration += result.duration
                self.timed_checks += 1
                if result.success:
                    self._latencies.append(result.duration)
            status = result.metrics.get("status_code")
            if isinstance(status, int):
                self._status_counts[status] += 1

        previous = self.last_results.get(result.endpoint)

        # Report against the old state before committing the new one
        if self.reporter is not None:
            try:
                self.reporter.report(result, previous)
            except Exception as e:
                logger.warning(f"Reporting failed for {result.endpoint}: {e}")

        self.last_results.put(result)

    def summary(self) -> Summary:
        total = self.total.value
        success = self.success.value
        failure = self.failure.value
        last_results = self.last_results.snapshot()
        with self._stats_lock:
            latencies = list(self._latencies)
            status_counts = dict(self._status_counts)
            total_duration = self.total_duration
            timed_checks = self.timed_checks

        stats = compute_stats(
            latencies, success, failure, status_counts, self.metrics_callback
        )
        return Summary(
            total=total,
            success=success,
            failure=failure,
            last_results=last_results,
            latencies=latencies,
            stats=stats,
            total_duration=total_duration,
            timed_checks=timed_checks,
        )

    def print_summary(self, console: Console | None = None, histogram_bins: int = 20) -> Summary:
        summary = self.summary()
        console = console or Console()
        console.print(render_summary(summary, histogram_bins), markup=False, highlight=False)
        logger.info(
            f"Summary: {summary.total} checks, {summary.success} succeeded, "
            f"{summary.failure} failed"
        )
        return summary
