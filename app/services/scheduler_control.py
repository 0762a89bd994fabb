"""Start/stop/status operations exposed to the API layer.

Unlike MessageScheduler, whose start/stop are silent no-ops when already in
the target state, these report redundant requests as errors so HTTP callers
can tell a state change from a no-op. The state check and the transition are
a single call on the scheduler, so concurrent requests cannot both win.
"""

from typing import Any

from app.core.errors import SchedulerAlreadyRunningError, SchedulerNotRunningError
from app.core.logging_config import get_logger
from app.core.scheduler import MessageScheduler, SchedulerStatus


class SchedulerControl:
    def __init__(self, scheduler: MessageScheduler, logger: Any = None):
        self.scheduler = scheduler
        self.logger = logger or get_logger(__name__)

    def start(self) -> SchedulerStatus:
        if not self.scheduler.start():
            self.logger.warning("Attempted to start scheduler that is already running")
            raise SchedulerAlreadyRunningError()

        self.logger.info("Scheduler started via control API")
        return SchedulerStatus(running=True, message="Scheduler started successfully")

    def stop(self) -> SchedulerStatus:
        if not self.scheduler.stop():
            self.logger.warning("Attempted to stop scheduler that is not running")
            raise SchedulerNotRunningError()

        self.logger.info("Scheduler stopped via control API")
        return SchedulerStatus(running=False, message="Scheduler stopped successfully")

    def get_status(self) -> SchedulerStatus:
        return self.scheduler.status()


__all__ = ["SchedulerControl"]
