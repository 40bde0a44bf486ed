"""Hourly triggers for the cron worker, built on `schedule`.

Every job body runs on its own daemon thread so a slow run never blocks the
trigger loop. Overlapping runs of the same job are allowed unless the
single-flight guard is turned on.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence

import schedule

logger = logging.getLogger(__name__)


class SingleFlight:
    """Skip a run while the previous run of the same job is still in flight."""

    def __init__(self, name: str):
        self.name = name
        self._lock = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def run(self, func: Callable[[], Any]) -> Any:
        if not self._lock.acquire(blocking=False):
            logger.warning(f"[cron] {self.name} still running, skipping this trigger")
            return None
        try:
            return func()
        finally:
            self._lock.release()


def run_safely(name: str, func: Callable[[], Any]) -> Callable[[], Any]:
    """Wrap a job so any failure is logged and never reaches the trigger loop."""

    def job() -> Any:
        try:
            return func()
        except Exception as e:
            logger.error(f"[cron] {name} failed: {e}", exc_info=True)
            return None

    job.__name__ = f"{name}_job"
    return job


def run_threaded(func: Callable[[], Any], name: Optional[str] = None) -> threading.Thread:
    thread = threading.Thread(target=func, name=name, daemon=True)
    thread.start()
    return thread


@dataclass
class CronJob:
    name: str
    at: str
    func: Callable[[], Any]
    guard: Optional[SingleFlight] = None
    job: Optional[schedule.Job] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        self._body = run_safely(self.name, self.func)

    def body(self) -> Any:
        if self.guard is not None:
            return self.guard.run(self._body)
        return self._body()

    def trigger(self) -> threading.Thread:
        logger.info(f"[cron] Running {self.name}")
        return run_threaded(self.body, name=self.name)


def register_jobs(
    scheduler: schedule.Scheduler,
    jobs: Sequence[CronJob],
    *,
    single_flight: bool = False,
) -> List[CronJob]:
    """Register each job every hour at its ':MM' offset."""
    registered = []
    for cron_job in jobs:
        if single_flight and cron_job.guard is None:
            cron_job.guard = SingleFlight(cron_job.name)
        cron_job.job = scheduler.every().hour.at(cron_job.at).do(cron_job.trigger).tag(cron_job.name)
        logger.info(f"[cron] {cron_job.name} scheduled hourly at {cron_job.at}")
        registered.append(cron_job)
    return registered


def run_startup(jobs: Sequence[CronJob]) -> List[threading.Thread]:
    """Fire every job once right away (warm-up)."""
    return [cron_job.trigger() for cron_job in jobs]


def run_forever(scheduler: schedule.Scheduler, stop: threading.Event, *, poll_seconds: float = 1.0) -> None:
    while not stop.is_set():
        scheduler.run_pending()
        stop.wait(poll_seconds)
