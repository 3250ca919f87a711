"""Time-tracking ledger: clients, task types, tasks and hour records."""

from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from freelance_ledger.domain.value_objects import Period, TaskStatus


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass
class Client:
    owner_id: UUID
    name: str
    id: UUID = field(default_factory=uuid4)
    is_active: bool = True
    created_at: datetime = field(default_factory=_utc_now)


@dataclass
class TaskType:
    owner_id: UUID
    name: str
    id: UUID = field(default_factory=uuid4)
    color: str = "#6B7280"
    created_at: datetime = field(default_factory=_utc_now)


@dataclass
class Task:
    """A unit of client work.

    hours_spent is derived from the task's hour records and is only written
    by the hour ledger aggregator.
    """

    owner_id: UUID
    client_id: UUID
    task_type_id: UUID
    task_number: str
    name: str
    creation_date: date
    id: UUID = field(default_factory=uuid4)
    description: str | None = None
    estimated_hours: Decimal | None = None
    hours_spent: Decimal = Decimal("0")
    status: TaskStatus = TaskStatus.PENDING
    tags: list[str] = field(default_factory=list)

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    @property
    def has_hours(self) -> bool:
        return self.hours_spent > 0

    @property
    def billing_period(self) -> Period:
        """Period whose closure bills this task (by creation date)."""
        return Period.from_date(self.creation_date)

    def complete(self) -> None:
        self.status = TaskStatus.COMPLETED

    def reopen(self) -> None:
        self.status = TaskStatus.PENDING


@dataclass
class HourRecord:
    owner_id: UUID
    task_id: UUID
    work_date: date
    hours_worked: Decimal
    id: UUID = field(default_factory=uuid4)
    description: str | None = None
    created_at: datetime = field(default_factory=_utc_now)

    @property
    def period(self) -> Period:
        """Period whose lock protects this record (by work date)."""
        return Period.from_date(self.work_date)


__all__ = [
    "Client",
    "HourRecord",
    "Task",
    "TaskType",
]
