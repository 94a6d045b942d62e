import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

from sitewatch.backoff import BackoffState, MonitorState
from sitewatch.models import MonitorConfig, WatchdogStatus
from sitewatch.monitors import BaseMonitor, HttpMonitor
from sitewatch.remediation import RemediationRunner
from sitewatch.trace_manager import TraceManager

logger = logging.getLogger("SiteWatch.MonitorManager")


class Watchdog:
    """
    Checks one target forever, runs the remediation binary whenever the
    target is DOWN and stretches the pause between checks while the outage
    lasts. All state lives on the instance and is touched only by run_loop.
    """

    def __init__(
        self,
        config: MonitorConfig,
        monitor: Optional[BaseMonitor] = None,
        runner: Optional[RemediationRunner] = None,
        trace: Optional[TraceManager] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.config = config
        self.policy = config.backoff_policy()
        self.backoff = BackoffState.initial(self.policy)

        self._sleep = sleep or asyncio.sleep
        self._clock = clock or time.time

        self.monitor = monitor or HttpMonitor(
            retry_delay=config.retry_delay,
            verbose=config.verbose,
            sleep=self._sleep,
        )
        self.runner = runner or RemediationRunner()
        self.trace = trace or TraceManager()

        self.running = False
        self.cycles = 0
        self.last_check_time: Optional[float] = None
        self.last_outcome: Optional[bool] = None
        self.next_sleep: Optional[float] = None
        self.remediation_runs = 0
        self.last_remediation_error: Optional[str] = None

    async def run_cycle(self) -> float:
        """
        Check the site once, react to the outcome and return the number of seconds
        to sleep before the next cycle.
        """
        url = self.config.url
        is_up = await self.monitor.probe(url, self.config.timeout, self.config.retries)

        self.cycles += 1
        self.last_check_time = self._clock()
        self.last_outcome = is_up

        old_state = self.backoff.state
        old_delay = self.backoff.current_delay

        if is_up:
            if self.config.verbose:
                logger.info(f"Website {url} is UP")
            if old_state == MonitorState.DEGRADED:
                logger.info(f"Website {url} recovered after {self.backoff.consecutive_failures} failed checks")
            delay = self.backoff.observe(True, self.policy, self.config.interval)
            if old_state != self.backoff.state:
                await self._emit(old_state, "recovered")
            return delay

        logger.warning(f"Website {url} is DOWN! Executing ELF binary...")
        await self._remediate()

        delay = self.backoff.observe(False, self.policy, self.config.interval)

        if old_state != self.backoff.state:
            await self._emit(old_state, "site down")

        if self.backoff.backing_off:
            if self.backoff.current_delay != old_delay:
                logger.info(
                    f"Backing off: {self.backoff.consecutive_failures} consecutive failures, "
                    f"next check in {self.backoff.current_delay:.0f}s"
                )
                await self._emit(old_state, "backoff increased")
            else:
                logger.info(f"Backoff at maximum, next check in {self.backoff.current_delay:.0f}s")

        return delay

    async def _remediate(self):
        self.remediation_runs += 1
        try:
            _, error = await self.runner.invoke(self.config.elf_path)
        except Exception as e:
            error = f"Failed to execute ELF binary: {e}"
        self.last_remediation_error = error
        if error:
            # Launch failures never touch the backoff state
            logger.error(f"Remediation failed for {self.config.url}: {error}")
            reason = "remediation failed"
        else:
            reason = "remediation executed"
        state = self.backoff.state.value
        await self.trace.record(self.config.url, state, state, reason, self.backoff.consecutive_failures,
                                timestamp=self._clock())

    async def _emit(self, old_state: MonitorState, reason: str):
        delay = self.backoff.current_delay if self.backoff.backing_off else self.config.interval
        await self.trace.record(
            self.config.url,
            old_state.value,
            self.backoff.state.value,
            reason,
            self.backoff.consecutive_failures,
            delay=delay,
            timestamp=self._clock(),
        )

    async def run_loop(self):
        self.running = True
        logger.info(f"Starting website monitor for {self.config.url}")
        logger.info(f"Will execute {self.config.elf_path} when website is down")
        logger.info(f"Checking every {self.config.interval:g} seconds")

        while self.running:
            try:
                delay = await self.run_cycle()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Error in Monitor Loop: {e}")
                delay = self.config.interval

            self.next_sleep = delay
            if not self.running:
                break
            await self._sleep(delay)

        logger.info("Monitor Loop Stopped")

    def stop(self):
        self.running = False
        logger.info("Stopping Monitor Loop...")

    def get_status(self) -> WatchdogStatus:
        last_outcome = None
        if self.last_outcome is not None:
            last_outcome = "UP" if self.last_outcome else "DOWN"

        return WatchdogStatus(
            running=self.running,
            target=self.config.url,
            state=self.backoff.state.value,
            consecutive_failures=self.backoff.consecutive_failures,
            current_delay=self.backoff.current_delay,
            next_sleep=self.next_sleep,
            cycles=self.cycles,
            last_check=self.last_check_time,
            last_outcome=last_outcome,
            remediation_runs=self.remediation_runs,
            last_remediation_error=self.last_remediation_error,
            last_remediation_exit_code=self.runner.last_returncode,
        )
