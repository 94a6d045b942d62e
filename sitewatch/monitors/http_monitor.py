"""HTTP monitoring implementation"""
import asyncio
import logging
import time
from typing import Awaitable, Callable, List, Optional

import httpx

from .base import BaseMonitor, MonitorResult

logger = logging.getLogger("SiteWatch.HttpMonitor")

# Pause between attempts within one cycle. Unrelated to the inter-cycle backoff.
RETRY_DELAY_SECONDS = 2.0


class HttpMonitor(BaseMonitor):
    """HTTP GET health check monitor"""

    def __init__(
        self,
        retry_delay: float = RETRY_DELAY_SECONDS,
        verbose: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        self.retry_delay = retry_delay
        self.verbose = verbose
        self.transport = transport
        self._sleep = sleep or asyncio.sleep
        self.last_attempts: List[MonitorResult] = []

    @staticmethod
    def is_healthy_status(status_code: int) -> bool:
        """2xx and 3xx count as UP"""
        return 200 <= status_code < 400

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            transport=self.transport,
        )

    async def check(self, target: str, timeout: float = 10, client: Optional[httpx.AsyncClient] = None) -> MonitorResult:
        """
        Perform a single HTTP GET attempt.

        Args:
            target: URL to request
            timeout: Request timeout in seconds
            client: Optional open client to reuse across attempts

        Returns:
            MonitorResult with success/failure and latency
        """
        start_time = time.monotonic()

        try:
            # httpx timeouts apply per read/write; wait_for caps the whole attempt
            if client is None:
                async with self._client(timeout) as own_client:
                    response = await asyncio.wait_for(own_client.get(target), timeout)
            else:
                response = await asyncio.wait_for(client.get(target, timeout=timeout), timeout)
        except asyncio.TimeoutError:
            return MonitorResult(
                success=False,
                latency_ms=None,
                protocol="http",
                raw_data={},
                error=f"Request timed out after {timeout:g}s"
            )
        except Exception as e:
            # DNS, connect and malformed URL all land here
            return MonitorResult(
                success=False,
                latency_ms=None,
                protocol="http",
                raw_data={},
                error=str(e) or type(e).__name__
            )

        latency_ms = round((time.monotonic() - start_time) * 1000, 2)
        status_code = response.status_code

        if not self.is_healthy_status(status_code):
            return MonitorResult(
                success=False,
                latency_ms=latency_ms,
                protocol="http",
                raw_data={"status_code": status_code},
                error=f"Bad status code: {status_code}"
            )

        return MonitorResult(
            success=True,
            latency_ms=latency_ms,
            protocol="http",
            raw_data={"status_code": status_code}
        )

    async def probe(self, target: str, timeout: float, max_attempts: int) -> bool:
        """
        Run up to max_attempts sequential GET attempts.

        Returns True (UP) on the first healthy response, False (DOWN) once
        every attempt has failed. A budget below 1 is treated as 1.
        """
        attempts = max(1, max_attempts)
        self.last_attempts = []

        async with self._client(timeout) as client:
            for attempt in range(1, attempts + 1):
                result = await self.check(target, timeout=timeout, client=client)
                result.raw_data["attempt"] = attempt
                self.last_attempts.append(result)

                if result.success:
                    return True

                self._log_failed_attempt(result, attempt, attempts)

                if attempt < attempts:
                    await self._sleep(self.retry_delay)

        return False

    def _log_failed_attempt(self, result: MonitorResult, attempt: int, attempts: int):
        status_code = result.raw_data.get("status_code")
        if status_code is not None:
            message = f"Bad status code (attempt {attempt}/{attempts}): {status_code}"
        else:
            message = f"Request failed (attempt {attempt}/{attempts}): {result.error}"

        if self.verbose:
            logger.info(message)
        else:
            logger.debug(message)
