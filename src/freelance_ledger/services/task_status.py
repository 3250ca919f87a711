from collections.abc import Iterable
from uuid import UUID

from freelance_ledger.domain.ledger import HourRecord, Task
from freelance_ledger.exceptions import CompletedTaskDeletionError, TaskHasNoHoursError
from freelance_ledger.services.period_lock import PeriodLockGuard


class TaskStatusGuard:
    """Preconditions for completing, reopening and deleting tasks."""

    def __init__(self, period_lock: PeriodLockGuard) -> None:
        self._period_lock = period_lock

    def ensure_can_complete(self, task: Task) -> None:
        if not task.has_hours:
            raise TaskHasNoHoursError(task.id)

    def ensure_can_reopen(
        self, owner_id: UUID, task: Task, records: Iterable[HourRecord]
    ) -> None:
        self._period_lock.ensure_records_open(owner_id, records, action="reopen task")

    def ensure_can_delete(
        self, owner_id: UUID, task: Task, records: Iterable[HourRecord]
    ) -> None:
        if task.is_completed:
            raise CompletedTaskDeletionError(task.id)
        self._period_lock.ensure_records_open(owner_id, records, action="delete task")
