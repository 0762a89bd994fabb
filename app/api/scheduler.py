"""
Scheduler control endpoints.

Redundant requests are reported, not ignored:
- POST /start while running -> 400 SCHEDULER_ALREADY_RUNNING
- POST /stop while stopped  -> 400 SCHEDULER_NOT_RUNNING
- POST /start without a processor -> 500 PROCESSOR_NOT_SET
"""
from fastapi import APIRouter, Depends

from app.api import deps
from app.core.scheduler import SchedulerStatus
from app.schemas import SchedulerStatusOut
from app.services.scheduler_control import SchedulerControl

router = APIRouter()


def _status_out(status: SchedulerStatus) -> SchedulerStatusOut:
    return SchedulerStatusOut(status=status.status, running=status.running, message=status.message)


@router.post("/start", response_model=SchedulerStatusOut)
def start_scheduler(control: SchedulerControl = Depends(deps.get_scheduler_control)):
    return _status_out(control.start())


@router.post("/stop", response_model=SchedulerStatusOut)
def stop_scheduler(control: SchedulerControl = Depends(deps.get_scheduler_control)):
    return _status_out(control.stop())


@router.get("/status", response_model=SchedulerStatusOut)
def get_scheduler_status(control: SchedulerControl = Depends(deps.get_scheduler_control)):
    return _status_out(control.get_status())
