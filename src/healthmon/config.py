import json
import logging
import os
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .utils import parse_duration

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINTS = [
    "https://example.com",
    "https://google.com",
    "https://newperasdfja.com",
]

ENV_URLS = "HEALTH_MONITOR_URLS"
ENV_INTERVAL = "HEALTH_MONITOR_INTERVAL"
ENV_TIMEOUT = "HEALTH_MONITOR_TIMEOUT"
ENV_SLOW_THRESHOLD = "HEALTH_MONITOR_SLOW_THRESHOLD"
ENV_WORKERS = "HEALTH_MONITOR_WORKERS"


class ConfigError(Exception):
    """Configuration could not be loaded. Fatal at startup."""


class MonitorConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    endpoints: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ENDPOINTS), alias="urls"
    )
    poll_interval: float = Field(30.0, gt=0, alias="checkIntervalSeconds")
    probe_timeout: float = Field(5.0, gt=0, alias="timeoutSeconds")
    slow_threshold_ms: int = Field(500, ge=0, alias="slowThresholdMs")
    workers: int = Field(5, ge=1)
    job_queue_size: int | None = Field(None, ge=1, alias="jobQueueSize")
    result_queue_size: int = Field(1, ge=1, alias="resultQueueSize")

    @field_validator("endpoints")
    @classmethod
    def _strip_endpoints(cls, v: list[str]) -> list[str]:
        return [u.strip() for u in v if u.strip()]

    @property
    def job_capacity(self) -> int:
        if self.job_queue_size is not None:
            return self.job_queue_size
        return max(1, len(self.endpoints))


def _read_file(path: str) -> dict:
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        logger.info(f"Config file {path} not found, using defaults")
        return {}
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"failed to read config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must contain a JSON object")
    return data


def _env_duration(
    env: Mapping[str, str], key: str, allow_zero: bool = False
) -> float | None:
    raw = env.get(key)
    if not raw:
        return None
    try:
        value = parse_duration(raw)
    except ValueError as e:
        logger.warning(f"Ignoring {key}={raw!r}: {e}")
        return None
    if value < 0 or (value == 0 and not allow_zero):
        logger.warning(f"Ignoring {key}={raw!r}: out of range")
        return None
    return value


def load_config(path: str | None = None, env: Mapping[str, str] | None = None) -> MonitorConfig:
    """Build the monitor configuration.

    Defaults, then the optional JSON file, then ``HEALTH_MONITOR_*``
    environment variables. Raises ``ConfigError`` when the file is
    unreadable or the merged values are invalid.
    """
    env = os.environ if env is None else env
    data: dict = _read_file(path) if path else {}

    if urls := env.get(ENV_URLS):
        data["urls"] = urls.split(",")

    if (interval := _env_duration(env, ENV_INTERVAL)) is not None:
        data["checkIntervalSeconds"] = interval

    if (timeout := _env_duration(env, ENV_TIMEOUT)) is not None:
        data["timeoutSeconds"] = timeout

    if (threshold := _env_duration(env, ENV_SLOW_THRESHOLD, allow_zero=True)) is not None:
        data["slowThresholdMs"] = int(threshold * 1000)

    if workers := env.get(ENV_WORKERS):
        try:
            count = int(workers)
        except ValueError:
            logger.warning(f"Ignoring {ENV_WORKERS}={workers!r}: not an integer")
        else:
            if count >= 1:
                data["workers"] = count
            else:
                logger.warning(f"Ignoring {ENV_WORKERS}={workers!r}: out of range")

    try:
        config = MonitorConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"invalid configuration: {e}") from e

    logger.debug(f"Loaded config: {config.model_dump()}")
    return config
