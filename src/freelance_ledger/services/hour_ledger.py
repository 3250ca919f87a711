from decimal import Decimal
from uuid import UUID

from freelance_ledger.domain.ledger import Task
from freelance_ledger.exceptions import TaskNotFoundError
from freelance_ledger.logging_config import get_logger
from freelance_ledger.repositories.interfaces import (
    HourRecordRepository,
    TaskRepository,
)

logger = get_logger(__name__)


class HourLedgerAggregator:
    """Keeps Task.hours_spent equal to the sum of the task's hour records."""

    def __init__(
        self,
        task_repo: TaskRepository,
        hour_record_repo: HourRecordRepository,
    ) -> None:
        self._task_repo = task_repo
        self._hour_record_repo = hour_record_repo

    def recompute_task_hours(self, task_id: UUID) -> Task:
        task = self._task_repo.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)

        total = self._hour_record_repo.sum_hours_for_task(task_id)
        if total != task.hours_spent:
            previous: Decimal = task.hours_spent
            task.hours_spent = total
            self._task_repo.update(task)
            logger.debug(
                "task_hours_recomputed",
                task_id=str(task_id),
                previous=str(previous),
                hours_spent=str(total),
            )
        return task
