__all__ = [
    "Aggregator",
    "CancelToken",
    "CheckResult",
    "ConsoleReporter",
    "HttpProbe",
    "Monitor",
    "MonitorConfig",
    "load_config",
]


from .aggregator import Aggregator
from .config import MonitorConfig, load_config
from .context import CancelToken
from .core import Monitor
from .models import CheckResult
from .probe import HttpProbe
from .reporter import ConsoleReporter
