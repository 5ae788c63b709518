import logging
from typing import Optional

from rich.console import Console

from .models import CheckResult, detect_transition, is_slow

logger = logging.getLogger(__name__)


class ConsoleReporter:
    """Prints one line per check result, flagging slow responses and state changes."""

    def __init__(self, slow_threshold_ms: int = 500, console: Console | None = None) -> None:
        self.slow_threshold_ms = slow_threshold_ms
        self.console = console or Console()

    def format(self, result: CheckResult, previous: Optional[CheckResult]) -> str:
        timestamp = result.timestamp.isoformat(timespec="seconds")
        status_msg = "✅ UP" if result.success else "❌ DOWN"

        response_time = f"{result.duration_ms or 0.0:.2f}ms"
        if is_slow(result, self.slow_threshold_ms):
            response_time = f"⚠️ {response_time} (slow)"

        transition = detect_transition(result, previous)
        state_changed = f"🔄 {transition.value}" if transition else ""

        line = f"[{timestamp}] {result.endpoint} | {status_msg} | {response_time} {state_changed}".rstrip()
        if result.error:
            line += f"\n  Error: {result.error}"
        return line

    def report(self, result: CheckResult, previous: Optional[CheckResult]) -> None:
        self.console.print(self.format(result, previous), markup=False, highlight=False)
