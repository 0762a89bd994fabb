"""
Periodic dispatch scheduler.

Owns one APScheduler BackgroundScheduler with a single interval job. Each tick
asks the attached processor for one batch, retrying a few times with a fixed
delay. The job is registered with max_instances=1 and coalesce=True, so a slow
tick makes the timer drop missed fires instead of stacking concurrent batches.

Lifecycle:

    STOPPED --start()--> RUNNING --stop()--> STOPPED

start() and stop() are no-ops when already in the target state. stop() flips
the state to STOPPED and sets the cancellation event under the state lock,
then waits for the in-flight tick outside it, so status() answers while a
slow tick drains. The tick checks the event between retry attempts, never
mid-attempt. A start() issued during the drain waits for it to finish.
"""

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Protocol

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.core.errors import ProcessorNotSetError
from app.core.logging_config import get_logger

JOB_ID = "process_pending_messages"


class BatchProcessor(Protocol):
    def process_batch(self, limit: int) -> Any: ...


class SchedulerState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"


@dataclass(frozen=True)
class SchedulerConfig:
    interval: float = 120.0  # seconds between ticks
    batch_size: int = 2
    max_retries: int = 3  # attempts per tick
    retry_delay: float = 5.0  # seconds between attempts
    auto_start: bool = False


@dataclass(frozen=True)
class SchedulerStatus:
    running: bool
    message: str

    @property
    def status(self) -> str:
        return SchedulerState.RUNNING.value if self.running else SchedulerState.STOPPED.value


class MessageScheduler:
    def __init__(
        self,
        config: Optional[SchedulerConfig] = None,
        processor: Optional[BatchProcessor] = None,
        logger: Any = None,
    ):
        self.config = config or SchedulerConfig()
        self.logger = logger or get_logger(__name__)
        self._processor = processor
        self._state = SchedulerState.STOPPED
        self._lock = threading.Lock()
        # Held by start() and by stop() across the drain; never by readers
        self._lifecycle_lock = threading.Lock()
        self._stop_event: Optional[threading.Event] = None
        self._scheduler: Optional[BackgroundScheduler] = None

    def set_processor(self, processor: BatchProcessor) -> None:
        with self._lock:
            self._processor = processor

    @property
    def state(self) -> SchedulerState:
        with self._lock:
            return self._state

    def is_running(self) -> bool:
        return self.state == SchedulerState.RUNNING

    def status(self) -> SchedulerStatus:
        if self.is_running():
            return SchedulerStatus(running=True, message="Scheduler is currently running")
        return SchedulerStatus(running=False, message="Scheduler is currently stopped")

    def start(self) -> bool:
        """
        Start the background loop.

        Returns True if this call started it, False if it was already running.

        Raises:
            ProcessorNotSetError: No processor attached
        """
        with self._lifecycle_lock, self._lock:
            if self._state == SchedulerState.RUNNING:
                self.logger.warning("Scheduler is already running")
                return False

            if self._processor is None:
                self.logger.error("Message processor not set")
                raise ProcessorNotSetError()

            stop_event = threading.Event()
            scheduler = BackgroundScheduler(daemon=True)
            scheduler.add_job(
                self.process_with_retry,
                IntervalTrigger(seconds=self.config.interval),
                args=[self._processor, stop_event],
                id=JOB_ID,
                max_instances=1,
                coalesce=True,
                replace_existing=True,
            )
            scheduler.start()

            self._stop_event = stop_event
            self._scheduler = scheduler
            self._state = SchedulerState.RUNNING

        self.logger.info(
            "Scheduler started successfully",
            interval=self.config.interval,
            batch_size=self.config.batch_size,
        )
        return True

    def stop(self) -> bool:
        """
        Stop the background loop and wait for the in-flight tick to exit.

        Returns True if this call stopped it, False if it was not running.
        """
        with self._lifecycle_lock:
            with self._lock:
                if self._state == SchedulerState.STOPPED:
                    self.logger.warning("Scheduler is not running")
                    return False

                self.logger.info("Stopping scheduler...")
                if self._stop_event is not None:
                    self._stop_event.set()
                scheduler = self._scheduler
                self._scheduler = None
                self._stop_event = None
                self._state = SchedulerState.STOPPED

            # Drain outside the state lock: the tick may be mid-HTTP call
            if scheduler is not None:
                scheduler.shutdown(wait=True)

        self.logger.info("Scheduler stopped successfully")
        return True

    def run_once(self) -> None:
        """Run a single tick synchronously (worker --once mode)."""
        with self._lock:
            processor = self._processor
        if processor is None:
            raise ProcessorNotSetError()
        self.process_with_retry(processor, threading.Event())

    def process_with_retry(self, processor: BatchProcessor, stop_event: threading.Event) -> None:
        """
        One tick: up to max_retries attempts of process_batch.

        Never raises; an exhausted tick is logged and the timer waits for the
        next fire.
        """
        max_retries = max(1, self.config.max_retries)

        for attempt in range(1, max_retries + 1):
            if stop_event.is_set():
                self.logger.info("Scheduler stopping, abandoning tick", attempt=attempt)
                return

            try:
                processor.process_batch(self.config.batch_size)
                return
            except Exception as e:
                self.logger.error(
                    "Message processing failed",
                    error=str(e),
                    attempt=attempt,
                    max_retries=max_retries,
                )

            if attempt < max_retries:
                # wait() returns True as soon as stop() sets the event
                if stop_event.wait(self.config.retry_delay):
                    self.logger.info("Scheduler stopping, skipping remaining retries", attempt=attempt)
                    return

        self.logger.error("All message processing attempts failed", max_retries=max_retries)


__all__ = [
    "MessageScheduler",
    "SchedulerConfig",
    "SchedulerState",
    "SchedulerStatus",
    "BatchProcessor",
    "JOB_ID",
]
