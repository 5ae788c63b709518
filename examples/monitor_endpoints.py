"""
Quick sanity run: probe a couple of public endpoints until Ctrl+C.
Run: uv run examples/monitor_endpoints.py
"""
import asyncio
import os

from healthmon import Monitor, MonitorConfig
from healthmon.logging_config import setup_logging

ENDPOINTS = [
    "https://example.com/",
    "https://httpbin.org/status/503",
    "https://httpbin.org/delay/3",
]

async def main():
    setup_logging("INFO")
    config = MonitorConfig(
        endpoints=ENDPOINTS,
        poll_interval=float(os.getenv("POLL_INTERVAL_S", "5")),
        probe_timeout=2.0,
        slow_threshold_ms=300,
        workers=3,
    )
    summary = await Monitor(config).run()
    print("\nSuccess rate:", f"{summary.success_rate:.1f}%")

if __name__ == "__main__":
    asyncio.run(main())
