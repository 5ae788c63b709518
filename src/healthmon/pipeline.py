import asyncio
import logging
from datetime import datetime, timezone
from collections.abc import Sequence

from .aggregator import Aggregator
from .context import CancelToken, Cancelled
from .models import CheckResult, Endpoint, Job, ProbeExecutor
from .utils import now

logger = logging.getLogger(__name__)


# ────────────────────────────────
# Scheduler
# ────────────────────────────────


class Scheduler:
    """Emits one job per endpoint now and on every interval tick.

    Emission never blocks: when the job queue is full the job for that
    endpoint is dropped for this tick.
    """

    def __init__(
        self,
        endpoints: Sequence[Endpoint],
        interval_s: float,
        jobs: asyncio.Queue,
        stop: CancelToken,
    ) -> None:
        self.endpoints = list(endpoints)
        self.interval_s = interval_s
        self.jobs = jobs
        self.stop = stop
        self.ticks = 0
        self.emitted = 0
        self.dropped = 0

    def schedule_checks(self) -> int:
        sent = 0
        for endpoint in self.endpoints:
            try:
                self.jobs.put_nowait(Job(endpoint, now()))
            except asyncio.QueueFull:
                self.dropped += 1
                logger.warning(f"Job queue is full, skipping check for {endpoint}")
                continue
            sent += 1
        self.emitted += sent
        self.ticks += 1
        return sent

    async def run(self) -> None:
        loop = asyncio.get_running_loop()
        logger.info(
            f"Scheduler started: {len(self.endpoints)} endpoints every {self.interval_s}s"
        )
        self.schedule_checks()
        next_tick = loop.time() + self.interval_s

        while not self.stop.cancelled:
            try:
                await self.stop.guard(asyncio.sleep(max(0.0, next_tick - loop.time())))
            except Cancelled:
                break
            self.schedule_checks()
            next_tick += self.interval_s
            # Missed ticks are skipped, not replayed
            while next_tick <= loop.time():
                next_tick += self.interval_s

        logger.debug(
            f"Scheduler stopped after {self.ticks} ticks "
            f"({self.emitted} emitted, {self.dropped} dropped)"
        )


# ────────────────────────────────
# Worker Pool
# ────────────────────────────────


class WorkerPool:
    def __init__(
        self,
        probe: ProbeExecutor,
        jobs: asyncio.Queue,
        results: asyncio.Queue,
        ctx: CancelToken,
        size: int = 5,
        probe_timeout_s: float = 5.0,
    ) -> None:
        if size < 1:
            raise ValueError("worker pool needs at least one worker")
        self.probe = probe
        self.jobs = jobs
        self.results = results
        self.ctx = ctx
        self.size = size
        self.probe_timeout_s = probe_timeout_s
        self.discarded = 0

    def start(self) -> list[asyncio.Task]:
        return [
            asyncio.create_task(self.worker(i), name=f"worker-{i}")
            for i in range(self.size)
        ]

    async def _run_probe(self, job: Job, worker_id: int) -> CheckResult:
        with self.ctx.child(self.probe_timeout_s, name=f"W{worker_id}:{job.endpoint}") as deadline:
            try:
                return await self.probe(job.endpoint, deadline)
            except Exception as e:
                logger.error(f"[W{worker_id}] Probe of {job.endpoint} raised: {e!r}")
                return CheckResult(
                    job.endpoint,
                    datetime.now(timezone.utc),
                    False,
                    error=f"probe failed: {e}",
                )

    async def worker(self, worker_id: int) -> None:
        logger.debug(f"Worker {worker_id} started")
        while True:
            try:
                job = await self.ctx.guard(self.jobs.get())
            except Cancelled:
                break

            try:
                logger.debug(
                    f"[W{worker_id}] Probing {job.endpoint} "
                    f"(queued {job.queue_wait() * 1000:.1f}ms)"
                )
                result = await self._run_probe(job, worker_id)
            finally:
                self.jobs.task_done()

            try:
                await self.ctx.guard(self.results.put(result))
            except Cancelled:
                self.discarded += 1
                logger.debug(f"[W{worker_id}] Discarding result for {job.endpoint}")
                break

        logger.debug(f"Worker {worker_id} stopped")


# ────────────────────────────────
# Result Consumer
# ────────────────────────────────


async def consume_results(
    results: asyncio.Queue, aggregator: Aggregator, stop: CancelToken
) -> None:
    while True:
        try:
            result = await stop.guard(results.get())
        except Cancelled:
            break
        aggregator.process(result)
    logger.debug("Result consumer stopped")
