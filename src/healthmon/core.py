import asyncio
import logging

from rich.console import Console

from .aggregator import Aggregator
from .config import MonitorConfig
from .context import CancelToken
from .models import MetricsCallback, MonitorState, ProbeExecutor, Reporter, Summary
from .pipeline import Scheduler, WorkerPool, consume_results
from .probe import HttpProbe
from .reporter import ConsoleReporter
from .utils import GracefulKiller


logger = logging.getLogger(__name__)


class Monitor:
    """Runs the scheduler, worker pool and result consumer until shutdown.

    ``run()`` blocks until SIGINT/SIGTERM (or ``shutdown()``), then drains:
    every task is awaited before the summary is printed, exactly once.
    """

    def __init__(
        self,
        config: MonitorConfig,
        probe: ProbeExecutor | None = None,
        reporter: Reporter | None = None,
        console: Console | None = None,
        metrics_callback: MetricsCallback | None = None,
        handle_signals: bool = True,
        histogram_bins: int = 20,
    ) -> None:
        if histogram_bins < 1:
            raise ValueError("histogram_bins must be at least 1")
        self.config = config
        self.console = console or Console()
        self._probe = probe
        self.reporter = reporter or ConsoleReporter(
            config.slow_threshold_ms, console=self.console
        )
        self.aggregator = Aggregator(self.reporter, metrics_callback=metrics_callback)
        self.handle_signals = handle_signals
        self.histogram_bins = histogram_bins

        self.state = MonitorState.RUNNING
        self.summary: Summary | None = None
        self.summary_prints = 0

        # Created inside run(), bound to the running loop
        self.ctx: CancelToken | None = None
        self.stop: CancelToken | None = None
        self.scheduler: Scheduler | None = None
        self.pool: WorkerPool | None = None
        self.tasks: list[asyncio.Task] = []
        self._shutdown_requested = False

        logger.info(
            f"Initialized monitor with {len(config.endpoints)} endpoints, "
            f"workers={config.workers}, interval={config.poll_interval}s, "
            f"timeout={config.probe_timeout}s"
        )

    # ────────────────────────────────
    # Shutdown
    # ────────────────────────────────

    def shutdown(self) -> None:
        """RUNNING -> DRAINING: fire the stop broadcast and cancel the shared context."""
        if self.state is not MonitorState.RUNNING:
            return
        if self.stop is None or self.ctx is None:
            # run() has not wired the pipeline yet; it will drain straight away
            self._shutdown_requested = True
            return
        logger.info("Shutdown requested, draining...")
        self.state = MonitorState.DRAINING
        self.stop.cancel("stop requested")
        self.ctx.cancel("monitor shutting down")

    def _finish(self) -> Summary:
        if self.summary is None:
            self.summary = self.aggregator.print_summary(self.console, self.histogram_bins)
            self.summary_prints += 1
        self.state = MonitorState.STOPPED
        return self.summary

    # ────────────────────────────────
    # Main Runner
    # ────────────────────────────────

    async def _run_pipeline(self, probe: ProbeExecutor) -> None:
        jobs: asyncio.Queue = asyncio.Queue(maxsize=self.config.job_capacity)
        results: asyncio.Queue = asyncio.Queue(maxsize=self.config.result_queue_size)

        self.scheduler = Scheduler(
            self.config.endpoints, self.config.poll_interval, jobs, self.stop
        )
        self.pool = WorkerPool(
            probe,
            jobs,
            results,
            self.ctx,
            size=self.config.workers,
            probe_timeout_s=self.config.probe_timeout,
        )

        self.tasks = self.pool.start()
        self.tasks.append(
            asyncio.create_task(consume_results(results, self.aggregator, self.stop), name="consumer")
        )
        self.tasks.append(asyncio.create_task(self.scheduler.run(), name="scheduler"))

        if self._shutdown_requested:
            self.shutdown()

        try:
            await self.stop.wait()
        finally:
            self.shutdown()
            # Full join: nothing is left running once this returns
            outcomes = await asyncio.gather(*self.tasks, return_exceptions=True)
            for task, outcome in zip(self.tasks, outcomes):
                if isinstance(outcome, BaseException):
                    logger.error(f"Task {task.get_name()} ended with {outcome!r}")

    async def run(self) -> Summary:
        if self.state is not MonitorState.RUNNING or self.ctx is not None:
            raise RuntimeError("Monitor.run() can only be called once")

        self.ctx = CancelToken("root")
        self.stop = CancelToken("stop")

        killer = GracefulKiller(self.shutdown)
        if self.handle_signals:
            killer.install()

        self.console.print(f"Starting health monitor with {self.config.workers} workers")
        self.console.print(
            f"Monitoring {len(self.config.endpoints)} URLs with "
            f"{self.config.poll_interval}s interval"
        )

        try:
            if self._probe is not None:
                await self._run_pipeline(self._probe)
            else:
                async with HttpProbe(default_timeout_s=self.config.probe_timeout) as probe:
                    await self._run_pipeline(probe)
        except asyncio.CancelledError:
            logger.info("Monitor task cancelled")
            self._finish()
            raise
        finally:
            if self.handle_signals:
                killer.uninstall()

        summary = self._finish()
        self.console.print("Health monitor shut down successfully")
        return summary
