from typing import List

from .models import Summary


def render_latency_histogram(latencies: List[float], bins: int = 20) -> str:
    if not latencies:
        return "No latency data."
    bins = max(1, bins)
    lo, hi = min(latencies), max(latencies)
    if hi <= lo:
        return f"Histogram: single value {lo * 1000:.2f}ms"


    width = 40
    counts = [0] * bins
    for x in latencies:
        j = int((x - lo) / (hi - lo) * bins)
        if j == bins:
            j -= 1
        counts[j] += 1


    peak = max(counts)
    lines = []
    for i, c in enumerate(counts):
        left = lo + (hi - lo) * (i / bins)
        right = lo + (hi - lo) * ((i + 1) / bins)
        bar = "#" * max(1, int((c / peak) * width)) if c else ""
        lines.append(f"{left * 1000:8.2f}ms - {right * 1000:8.2f}ms | {bar} ({c})")
    return "Latency Histogram\n" + "\n".join(lines)


def _ms(value: float | None) -> str:
    return "-" if value is None else f"{value * 1000:.2f}ms"


def render_summary(summary: Summary, histogram_bins: int = 20) -> str:
    lines = [
        "",
        "=== Health Check Summary ===",
        f"Total Checks: {summary.total}",
        f"Successful: {summary.success} ({summary.success_rate:.2f}%)",
        f"Failed: {summary.failure}",
        "",
        "Last Known Status:",
    ]
    for url, result in summary.last_results.items():
        ms = result.duration_ms or 0.0
        lines.append(f"- {url}: {result.status} ({ms:.2f}ms)")

    if summary.mean_check_time is not None:
        lines += ["", f"Mean check time (all results): {_ms(summary.mean_check_time)}"]

    stats = summary.stats
    if stats.mean is not None:
        lines += [
            "",
            "Latency (successful checks):",
            f"  mean={_ms(stats.mean)} std={_ms(stats.std)} "
            f"min={_ms(stats.min)} max={_ms(stats.max)}",
            f"  p50={_ms(stats.p50)} p90={_ms(stats.p90)} "
            f"p95={_ms(stats.p95)} p99={_ms(stats.p99)}",
            "",
            render_latency_histogram(summary.latencies, histogram_bins),
        ]
    return "\n".join(lines)
