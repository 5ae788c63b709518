from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Protocol
from collections.abc import Awaitable, Callable

from .utils import now

Endpoint = str


@dataclass(frozen=True)
class Job:
    endpoint: Endpoint
    scheduled_at: float  # perf_counter clock, see utils.now

    def queue_wait(self) -> float:
        """Seconds since the scheduler emitted this job."""
        return max(0.0, now() - self.scheduled_at)


@dataclass(frozen=True)
class CheckResult:
    endpoint: Endpoint
    timestamp: datetime
    success: bool
    duration: float | None = None  # seconds; None when no request was sent
    error: str | None = None
    metrics: dict[str, Any] = field(default_factory=dict)

    @property
    def duration_ms(self) -> float | None:
        if self.duration is None:
            return None
        return self.duration * 1000.0

    @property
    def status(self) -> str:
        return "UP" if self.success else "DOWN"

    def copy(self) -> "CheckResult":
        return replace(self, metrics=dict(self.metrics))


class Transition(Enum):
    RECOVERED = "RECOVERED"
    NEWLY_DOWN = "NEWLY DOWN"


def detect_transition(
    result: CheckResult, previous: CheckResult | None
) -> Transition | None:
    """Compare a result with the prior one for the same endpoint."""
    if previous is None or previous.success == result.success:
        return None
    return Transition.RECOVERED if result.success else Transition.NEWLY_DOWN


def is_slow(result: CheckResult, threshold_ms: int) -> bool:
    ms = result.duration_ms
    return result.success and ms is not None and ms > threshold_ms


class MonitorState(Enum):
    RUNNING = "running"
    DRAINING = "draining"
    STOPPED = "stopped"


@dataclass
class Stats:
    total: int
    success: int
    errors: int
    mean: float | None
    std: float | None
    p50: float | None
    p90: float | None
    p95: float | None
    p99: float | None
    min: float | None
    max: float | None
    error_rate: float
    status_counts: dict[int, int]


@dataclass(frozen=True)
class Summary:
    total: int
    success: int
    failure: int
    last_results: dict[Endpoint, CheckResult]
    latencies: list[float]
    stats: Stats
    total_duration: float = 0.0
    timed_checks: int = 0

    @property
    def success_rate(self) -> float:
        if not self.total:
            return 0.0
        return self.success / self.total * 100.0

    @property
    def mean_check_time(self) -> float | None:
        """Mean duration over every timed check, failures included."""
        if not self.timed_checks:
            return None
        return self.total_duration / self.timed_checks


class Reporter(Protocol):
    def report(self, result: CheckResult, previous: Optional[CheckResult]) -> None: ...


# Probe executor: (endpoint, deadline) -> CheckResult, never raises
ProbeExecutor = Callable[[Endpoint, Any], Awaitable[CheckResult]]

# Metrics callback: callable accepting stats dict
MetricsCallback = Callable[[dict[str, Any]], None]
