import asyncio
import logging
import math
import signal
import time
from collections.abc import Callable

logger = logging.getLogger(__name__)

# ────────────────────────────────
# Time Helpers
# ────────────────────────────────


def now() -> float:
    return time.perf_counter()


# ────────────────────────────────
# Duration Parsing
# ────────────────────────────────

_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(text: str) -> float:
    """Parse a Go-style duration ("1m30s", "500ms", "2.5s") into seconds.

    As with Go's time.ParseDuration, every number needs a unit; only "0"
    may be written bare.
    """
    s = text.strip()
    if not s:
        raise ValueError("empty duration")

    sign = 1.0
    if s[0] in "+-":
        sign = -1.0 if s[0] == "-" else 1.0
        s = s[1:]
    if not s:
        raise ValueError(f"invalid duration {text!r}")
    if s == "0":
        return 0.0

    total = 0.0
    i = 0
    while i < len(s):
        j = i
        while j < len(s) and (s[j].isdigit() or s[j] == "."):
            j += 1
        if j == i:
            raise ValueError(f"invalid duration {text!r}")
        try:
            value = float(s[i:j])
        except ValueError:
            raise ValueError(f"invalid number in duration {text!r}") from None
        k = j
        while k < len(s) and not (s[k].isdigit() or s[k] == "."):
            k += 1
        unit = s[j:k]
        if not unit:
            raise ValueError(f"missing unit in duration {text!r}")
        if unit not in _UNITS:
            raise ValueError(f"unknown unit {unit!r} in duration {text!r}")
        total += value * _UNITS[unit]
        i = k
    if not math.isfinite(total):
        raise ValueError(f"duration {text!r} out of range")
    return sign * total


# ────────────────────────────────
# Signal Handling
# ────────────────────────────────


class GracefulKiller:
    """Routes SIGINT/SIGTERM to a callback on the running event loop."""

    SIGNALS = (signal.SIGINT, signal.SIGTERM)

    def __init__(self, callback: Callable[[], None]):
        self.kill_now = False
        self._callback = callback
        self._installed: list[signal.Signals] = []

    def install(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in self.SIGNALS:
            try:
                loop.add_signal_handler(sig, self.exit_gracefully, sig)
            except (NotImplementedError, RuntimeError):
                # Not in the main thread, or a platform without loop signals
                logger.debug(f"Cannot install handler for {sig.name}")
                continue
            self._installed.append(sig)

    def uninstall(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in self._installed:
            loop.remove_signal_handler(sig)
        self._installed.clear()

    def exit_gracefully(self, signum) -> None:
        print("\n[!] Received termination signal. Shutting down gracefully...")
        self.kill_now = True
        self._callback()
