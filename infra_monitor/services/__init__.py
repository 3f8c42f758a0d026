"""Long-running agent services."""

from infra_monitor.services.scheduler import Scheduler, SchedulerState, TickResult

__all__ = ["Scheduler", "SchedulerState", "TickResult"]
