import asyncio
import logging
from datetime import datetime, timezone

import aiohttp
from yarl import URL

from .context import CancelToken, Cancelled
from .models import CheckResult, Endpoint
from .utils import now

logger = logging.getLogger(__name__)


class HttpProbe:
    """Single HTTP GET health check.

    Use as an async context manager so the underlying session is closed:

        async with HttpProbe() as probe:
            result = await probe(url, deadline)
    """

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        default_timeout_s: float = 5.0,
        headers: dict[str, str] | None = None,
    ) -> None:
        self._session = session
        self._owns_session = session is None
        self.default_timeout_s = default_timeout_s
        self.headers = {"User-Agent": "healthmon/0.1", **(headers or {})}

    async def __aenter__(self) -> "HttpProbe":
        if self._session is None:
            connector = aiohttp.TCPConnector(limit=0)
            self._session = aiohttp.ClientSession(connector=connector)
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    async def __call__(self, endpoint: Endpoint, deadline: CancelToken) -> CheckResult:
        return await self.probe(endpoint, deadline)

    async def probe(self, endpoint: Endpoint, deadline: CancelToken) -> CheckResult:
        timestamp = datetime.now(timezone.utc)

        try:
            url = URL(endpoint)
        except (TypeError, ValueError) as e:
            return CheckResult(
                endpoint, timestamp, False,
                error=f"failed to create request for {endpoint}: {e}",
            )
        if url.scheme not in ("http", "https") or not url.host:
            return CheckResult(
                endpoint, timestamp, False,
                error=f"failed to create request for {endpoint}: unsupported URL",
            )
        if self._session is None:
            raise RuntimeError("HttpProbe used outside of 'async with'")

        remaining = deadline.remaining()
        timeout = aiohttp.ClientTimeout(
            total=remaining if remaining is not None else self.default_timeout_s
        )

        start = now()
        try:
            status = await deadline.guard(self._fetch_once(url, timeout))
        except Cancelled as e:
            duration = now() - start
            logger.warning(f"Probe of {endpoint} aborted: {e.reason}")
            return CheckResult(
                endpoint, timestamp, False, duration=duration,
                error=f"request to {endpoint} failed: {e.reason}",
            )
        except (TimeoutError, asyncio.TimeoutError):
            duration = now() - start
            logger.warning(f"Timeout for {endpoint}")
            return CheckResult(
                endpoint, timestamp, False, duration=duration,
                error=f"request to {endpoint} failed: timeout",
            )
        except aiohttp.ClientError as e:
            duration = now() - start
            logger.warning(f"Connection error for {endpoint}: {e}")
            return CheckResult(
                endpoint, timestamp, False, duration=duration,
                error=f"request to {endpoint} failed: {e}",
            )

        duration = now() - start
        success = 200 <= status < 300
        metrics = {"status_code": status, "time_ms": int(duration * 1000)}
        error = None
        if not success:
            error = f"service {endpoint} returned non-success status: {status}"
        logger.debug(f"Fetched {endpoint}: status={status} in {duration:.3f}s")
        return CheckResult(endpoint, timestamp, success, duration, error, metrics)

    async def _fetch_once(self, url: URL, timeout: aiohttp.ClientTimeout) -> int:
        async with self._session.get(url, headers=self.headers, timeout=timeout) as resp:
            await resp.read()
            return resp.status
