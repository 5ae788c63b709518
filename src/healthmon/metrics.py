import math
import logging
from collections.abc import Callable, Sequence
from .models import Stats

logger = logging.getLogger(__name__)


def compute_stats(
    latencies: Sequence[float],
    success_count: int,
    error_count: int,
    status_counts: dict[int, int],
    metrics_callback: Callable[[dict], None] | None = None,
) -> Stats:
    total = success_count + error_count
    logger.debug(
        f"Computing stats: total={total}, success={success_count}, errors={error_count}"
    )

    stats_dict = {
        "total": total,
        "success": success_count,
        "errors": error_count,
        "mean": None,
        "std": None,
        "p50": None,
        "p90": None,
        "p95": None,
        "p99": None,
        "min": None,
        "max": None,
        "error_rate": error_count / total if total else 0.0,
        "status_counts": dict(status_counts),
    }

    n = len(latencies)
    if n:
        mean = sum(latencies) / n
        sum_sq = sum(x * x for x in latencies)
        std = math.sqrt(max(0.0, (sum_sq / n) - (mean * mean)))

        sl = sorted(latencies)

        def pct(p):
            return sl[max(0, min(n - 1, int(p * (n - 1))))]

        stats_dict.update(
            mean=mean,
            std=std,
            p50=pct(0.50),
            p90=pct(0.90),
            p95=pct(0.95),
            p99=pct(0.99),
            min=sl[0],
            max=sl[-1],
        )
    elif total:
        logger.debug("No latencies recorded.")

    if metrics_callback:
        metrics_callback(stats_dict)

    return Stats(**stats_dict)
