"""
Task scheduler for the periodic business rule batches.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

import structlog

from membership_queue.core.config import settings
from membership_queue.core.exceptions import DataAccessError
from membership_queue.services.membership_queue_service import (
    MembershipQueueService, get_membership_queue_service
)


logger = structlog.get_logger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ScheduledTask:
    """Represents a scheduled task."""

    def __init__(
        self,
        name: str,
        func: Callable,
        interval_seconds: int,
        enabled: bool = True,
        run_immediately: bool = False
    ):
        self.name = name
        self.func = func
        self.interval_seconds = interval_seconds
        self.enabled = enabled
        self.last_run: Optional[datetime] = None
        self.next_run = _now()
        self.run_count = 0
        self.error_count = 0
        self.last_error: Optional[str] = None

        if not run_immediately:
            self.next_run = _now() + timedelta(seconds=interval_seconds)

    def should_run(self) -> bool:
        """Check if task should run now."""
        return self.enabled and _now() >= self.next_run

    def schedule_next_run(self):
        self.next_run = _now() + timedelta(seconds=self.interval_seconds)

    async def run(self):
        """Execute the task."""
        try:
            logger.debug("Running scheduled task", task=self.name)

            start_time = _now()
            await self.func()
            duration = (_now() - start_time).total_seconds()

            self.last_run = start_time
            self.run_count += 1
            self.schedule_next_run()

            logger.info(
                "Scheduled task completed",
                task=self.name,
                duration=duration,
                run_count=self.run_count
            )

        except Exception as e:
            self.error_count += 1
            self.last_error = str(e)
            self.schedule_next_run()

            logger.error(
                "Scheduled task failed",
                task=self.name,
                error=str(e),
                error_count=self.error_count
            )
            raise


class TaskScheduler:
    """Runs default enforcement and queue sync on their configured intervals."""

    def __init__(self, service: MembershipQueueService, loop_interval: Optional[int] = None):
        self.service = service
        self.tasks: Dict[str, ScheduledTask] = {}
        self.running = False
        self.loop_interval = loop_interval or settings.scheduler_loop_interval
        self._task: Optional[asyncio.Task] = None

    def initialize(self):
        """Register the default tasks."""
        self.register_task(
            "enforce_payment_defaults",
            self._enforce_payment_defaults,
            interval_seconds=settings.enforcement_interval
        )

        # Sync runs after enforcement on the first pass so defaulted members drop out
        self.register_task(
            "sync_queue_positions",
            self._sync_queue_positions,
            interval_seconds=settings.queue_sync_interval
        )

        logger.info("Task scheduler initialized", tasks=len(self.tasks))

    def register_task(
        self,
        name: str,
        func: Callable,
        interval_seconds: int,
        enabled: bool = True,
        run_immediately: bool = False
    ):
        """Register a new scheduled task."""
        self.tasks[name] = ScheduledTask(
            name=name,
            func=func,
            interval_seconds=interval_seconds,
            enabled=enabled,
            run_immediately=run_immediately
        )
        logger.info("Registered task", task=name, interval=interval_seconds)

    def enable_task(self, name: str):
        if name in self.tasks:
            self.tasks[name].enabled = True
            logger.info("Enabled task", task=name)

    def disable_task(self, name: str):
        if name in self.tasks:
            self.tasks[name].enabled = False
            logger.info("Disabled task", task=name)

    async def start(self):
        """Run the scheduler loop until stopped."""
        logger.info("Starting task scheduler")
        self.running = True

        while self.running:
            try:
                await self.run_pending_tasks()
                await asyncio.sleep(self.loop_interval)

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("Task scheduler loop error", error=str(e))
                await asyncio.sleep(self.loop_interval)

        self.running = False
        logger.info("Task scheduler stopped")

    def start_background(self) -> asyncio.Task:
        """Start the loop as a background task on the running event loop."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.start())
        return self._task

    async def stop(self):
        """Stop the task scheduler."""
        logger.info("Stopping task scheduler")
        self.running = False

        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None

    async def run_pending_tasks(self):
        """Run every task that is due, in registration order."""
        pending_tasks = [task for task in self.tasks.values() if task.should_run()]

        for task in pending_tasks:
            try:
                await task.run()
            except Exception:
                # Already logged and counted by the task
                continue

    async def health_check(self) -> Dict[str, Any]:
        """Get health status of task scheduler."""
        total_tasks = len(self.tasks)
        enabled_tasks = sum(1 for task in self.tasks.values() if task.enabled)
        tasks_with_errors = sum(1 for task in self.tasks.values() if task.error_count > 0)

        task_statuses = {}
        for name, task in self.tasks.items():
            task_statuses[name] = {
                "enabled": task.enabled,
                "interval_seconds": task.interval_seconds,
                "last_run": task.last_run.isoformat() if task.last_run else None,
                "next_run": task.next_run.isoformat(),
                "run_count": task.run_count,
                "error_count": task.error_count,
                "last_error": task.last_error
            }

        return {
            "healthy": self.running and tasks_with_errors < total_tasks * 0.5,
            "running": self.running,
            "total_tasks": total_tasks,
            "enabled_tasks": enabled_tasks,
            "tasks_with_errors": tasks_with_errors,
            "tasks": task_statuses,
            "service": self.service.get_status()
        }

    async def _enforce_payment_defaults(self):
        report = await self.service.enforce_payment_defaults()
        if report.error:
            raise DataAccessError(report.error)
        report.raise_for_failures()

    async def _sync_queue_positions(self):
        if await self.service.sync_queue_positions():
            return

        report = self.service.last_sync
        if report.error:
            raise DataAccessError(report.error)
        report.raise_for_failures()


# Global scheduler instance
_task_scheduler: Optional[TaskScheduler] = None


def get_task_scheduler() -> TaskScheduler:
    """Get or create global TaskScheduler instance."""
    global _task_scheduler
    if _task_scheduler is None:
        _task_scheduler = TaskScheduler(get_membership_queue_service())
        _task_scheduler.initialize()
    return _task_scheduler


async def shutdown_task_scheduler():
    """Stop the global task scheduler."""
    global _task_scheduler
    if _task_scheduler:
        await _task_scheduler.stop()
        _task_scheduler = None
