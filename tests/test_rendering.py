from healthmon.metrics import compute_stats
from healthmon.rendering import render_latency_histogram


def test_histogram_empty():
    assert "No latency data" in render_latency_histogram([])


def test_histogram_single_value():
    assert "single value 50.00ms" in render_latency_histogram([0.05, 0.05])


def test_histogram_counts_every_sample():
    out = render_latency_histogram([0.01, 0.02, 0.02, 0.09], bins=4)
    counts = [int(line.rsplit("(", 1)[1].rstrip(")")) for line in out.splitlines()[1:]]
    assert sum(counts) == 4
    assert len(counts) == 4


def test_stats_without_samples():
    stats = compute_stats([], 0, 0, {})
    assert stats.error_rate == 0.0
    assert stats.mean is None


def test_stats_percentiles_and_callback():
    seen = {}
    stats = compute_stats([0.1, 0.2, 0.3, 0.4], 4, 1, {200: 4}, seen.update)
    assert stats.total == 5
    assert stats.error_rate == 0.2
    assert stats.p50 == 0.2
    assert stats.max == 0.4
    assert seen["status_counts"] == {200: 4}


def test_histogram_non_positive_bins_uses_one_bucket():
    out = render_latency_histogram([0.01, 0.05], bins=0)
    lines = out.splitlines()[1:]
    assert len(lines) == 1
    assert lines[0].endswith("(2)")
