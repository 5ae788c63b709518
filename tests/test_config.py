import json

import pytest

from healthmon.config import DEFAULT_ENDPOINTS, ConfigError, load_config
from healthmon.utils import parse_duration


def test_defaults_without_file_or_env():
    config = load_config(None, env={})
    assert config.endpoints == DEFAULT_ENDPOINTS
    assert config.poll_interval == 30.0
    assert config.probe_timeout == 5.0
    assert config.slow_threshold_ms == 500
    assert config.workers == 5
    assert config.job_capacity == len(DEFAULT_ENDPOINTS)
    assert config.result_queue_size == 1


def test_file_values_are_loaded(tmp_path):
    path = tmp_path / "monitor.json"
    path.write_text(json.dumps({
        "urls": ["https://a.test", " https://b.test "],
        "checkIntervalSeconds": 10,
        "timeoutSeconds": 2,
        "slowThresholdMs": 250,
        "workers": 3,
    }))
    config = load_config(str(path), env={})
    assert config.endpoints == ["https://a.test", "https://b.test"]
    assert config.poll_interval == 10
    assert config.probe_timeout == 2
    assert config.slow_threshold_ms == 250
    assert config.workers == 3


def test_missing_file_falls_back_to_defaults(tmp_path):
    config = load_config(str(tmp_path / "absent.json"), env={})
    assert config.endpoints == DEFAULT_ENDPOINTS


def test_unparseable_file_is_fatal(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json")
    with pytest.raises(ConfigError):
        load_config(str(path), env={})


def test_invalid_values_are_fatal(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"timeoutSeconds": -1}))
    with pytest.raises(ConfigError):
        load_config(str(path), env={})


def test_env_overrides_file(tmp_path):
    path = tmp_path / "monitor.json"
    path.write_text(json.dumps({"urls": ["https://file.test"], "checkIntervalSeconds": 10}))
    env = {
        "HEALTH_MONITOR_URLS": "https://a.test,https://b.test",
        "HEALTH_MONITOR_INTERVAL": "1m30s",
        "HEALTH_MONITOR_TIMEOUT": "3s",
        "HEALTH_MONITOR_SLOW_THRESHOLD": "750ms",
        "HEALTH_MONITOR_WORKERS": "8",
    }
    config = load_config(str(path), env=env)
    assert config.endpoints == ["https://a.test", "https://b.test"]
    assert config.poll_interval == 90.0
    assert config.probe_timeout == 3.0
    assert config.slow_threshold_ms == 750
    assert config.workers == 8


def test_bad_env_values_are_ignored():
    config = load_config(None, env={
        "HEALTH_MONITOR_INTERVAL": "soon",
        "HEALTH_MONITOR_WORKERS": "many",
    })
    assert config.poll_interval == 30.0
    assert config.workers == 5


def test_empty_url_list_is_allowed():
    config = load_config(None, env={"HEALTH_MONITOR_URLS": " , "})
    assert config.endpoints == []
    assert config.job_capacity == 1


@pytest.mark.parametrize("text,seconds", [
    ("30s", 30.0),
    ("1m30s", 90.0),
    ("500ms", 0.5),
    ("1h", 3600.0),
    ("2.5s", 2.5),
    ("0", 0.0),
])
def test_parse_duration(text, seconds):
    assert parse_duration(text) == pytest.approx(seconds)


@pytest.mark.parametrize("text", ["", "ms", "10parsecs", "abc", "500", "15", "nan", "inf", "-", "9" * 400 + "s"])
def test_parse_duration_rejects_garbage(text):
    with pytest.raises(ValueError):
        parse_duration(text)


def test_unitless_slow_threshold_is_ignored(tmp_path):
    path = tmp_path / "monitor.json"
    path.write_text(json.dumps({"slowThresholdMs": 250}))
    config = load_config(str(path), env={"HEALTH_MONITOR_SLOW_THRESHOLD": "500"})
    assert config.slow_threshold_ms == 250


def test_zero_slow_threshold_is_accepted():
    config = load_config(None, env={"HEALTH_MONITOR_SLOW_THRESHOLD": "0"})
    assert config.slow_threshold_ms == 0


@pytest.mark.parametrize("key", [
    "HEALTH_MONITOR_INTERVAL",
    "HEALTH_MONITOR_TIMEOUT",
    "HEALTH_MONITOR_SLOW_THRESHOLD",
])
@pytest.mark.parametrize("value", ["nan", "-5s", "500"])
def test_unusable_env_durations_fall_back(key, value):
    config = load_config(None, env={key: value})
    assert config.poll_interval == 30.0
    assert config.probe_timeout == 5.0
    assert config.slow_threshold_ms == 500


def test_zero_interval_from_env_is_ignored():
    config = load_config(None, env={"HEALTH_MONITOR_INTERVAL": "0s"})
    assert config.poll_interval == 30.0


def test_non_positive_workers_from_env_are_ignored():
    config = load_config(None, env={"HEALTH_MONITOR_WORKERS": "0"})
    assert config.workers == 5
