"""Scheduler driving the aggregator on a fixed interval.

States: Idle -> Running cycle -> Waiting -> Running cycle -> ...

At most one cycle runs at a time: the next one starts only after the
previous cycle (including its writes) and the interval sleep have
finished. A failing cycle is logged with its error classification and the
loop carries on. SIGINT/SIGTERM set a shutdown flag; after a grace delay
the loop task is cancelled and ``run_forever`` returns. Further signals
during shutdown are ignored.
"""

import asyncio
import logging
import signal
from datetime import datetime
from typing import Awaitable, Callable

from agents.summarizer import Summarizer
from aggregator import SupportsSummarize, run_cycle
from config import Config
from errors import ConfigError, classify_error
from models.cycle import CycleResult
from partition import ensure_partition

logger = logging.getLogger(__name__)

CycleRunner = Callable[[], Awaitable[CycleResult]]


class Scheduler:
    """Sequential cycle loop with signal-driven, idempotent shutdown."""

    def __init__(
        self,
        config: Config,
        summarizer: SupportsSummarize | None = None,
        cycle_runner: CycleRunner | None = None,
        clock: Callable[[], datetime] = datetime.now,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize the scheduler.

        Args:
            config: Validated application configuration
            summarizer: Shared summarizer (created from config if None)
            cycle_runner: Zero-argument coroutine running one cycle
                (defaults to aggregator.run_cycle with this scheduler's config)
            clock: Local time source used for partition rollover
            sleep: Awaitable sleep used between cycles
        Raises:
            ConfigError: If the configuration is invalid
        """
        if error := config.validate():
            raise ConfigError(error)
        self.config = config
        self.clock = clock
        self._sleep = sleep
        if cycle_runner is None:
            shared = summarizer or Summarizer(config)

            async def default_runner() -> CycleResult:
                return await run_cycle(config, summarizer=shared, clock=clock)

            cycle_runner = default_runner

        self._run_cycle = cycle_runner
        self._shutting_down = False
        self._task: asyncio.Task | None = None
        self._exit_handle: asyncio.TimerHandle | None = None
        self.cycles = 0
        self.failures = 0

    @property
    def shutting_down(self) -> bool:
        return self._shutting_down

    def request_shutdown(self, reason: str = "shutdown") -> None:
        """Begin shutdown; repeated calls are no-ops.

        The in-flight cycle is not interrupted. After the grace delay the
        loop task is cancelled.
        """
        if self._shutting_down:
            logger.debug("Shutdown already in progress | reason=%s", reason)
            return
        self._shutting_down = True
        grace = self.config.shutdown_grace_seconds
        logger.info("%s received - shutting down in %.1fs", reason, grace)
        loop = asyncio.get_running_loop()
        self._exit_handle = loop.call_later(grace, self._force_exit)

    def _force_exit(self) -> None:
        if self._task and not self._task.done():
            logger.info("Grace period over - stopping")
            self._task.cancel()

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_shutdown, sig.name)
            except (NotImplementedError, RuntimeError):
                # Windows event loops lack add_signal_handler
                signal.signal(
                    sig,
                    lambda signum, frame: loop.call_soon_threadsafe(
                        self.request_shutdown, signal.Signals(signum).name
                    ),
                )

    def _remove_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.remove_signal_handler(sig)
            except (NotImplementedError, RuntimeError):
                signal.signal(sig, signal.SIG_DFL)

    def ensure_today(self) -> None:
        """Make sure the partition for "now" exists (handles midnight rollover)."""
        ensure_partition(self.clock().date(), self.config.output_dir)

    async def run_one(self) -> CycleResult | None:
        """Run a single cycle, logging instead of raising on failure."""
        self.cycles += 1
        try:
            self.ensure_today()
            logger.info("Starting cycle | run=%d", self.cycles)
            result = await self._run_cycle()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.failures += 1
            logger.error(
                "Cycle failed | run=%d code=%s error=%s",
                self.cycles, classify_error(e), e, exc_info=True,
            )
            return None
        logger.info("Completed cycle with %d data sources | run=%d", len(result.sections), self.cycles)
        return result

    async def _loop(self) -> None:
        while not self._shutting_down:
            await self.run_one()
            if self._shutting_down:
                break
            logger.info("Waiting %d minutes until next run...", self.config.interval_minutes)
            await self._sleep(self.config.interval_seconds)

    async def run_forever(self) -> None:
        """Run cycles until a shutdown signal arrives.

        Raises:
            PersistenceError: If today's partition cannot be created at startup
        """
        logger.info(
            "Starting scheduler | interval=%dm model=%s location=%.3f,%.3f sources=%s",
            self.config.interval_minutes,
            self.config.summary_model,
            self.config.latitude,
            self.config.longitude,
            ",".join(self.config.enabled_sources()) or "None",
        )
        self.ensure_today()
        self._install_signal_handlers()
        self._task = asyncio.current_task()
        try:
            await self._loop()
        except asyncio.CancelledError:
            if not self._shutting_down:
                raise
        finally:
            if self._exit_handle:
                self._exit_handle.cancel()
            self._remove_signal_handlers()
            logger.info("Scheduler stopped | runs=%d failures=%d", self.cycles, self.failures)
