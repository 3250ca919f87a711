from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from uuid import UUID

from freelance_ledger.domain.closures import (
    Expense,
    MonthlyClosure,
    MonthlyClosureClient,
    MonthlyClosureExpense,
)
from freelance_ledger.domain.ledger import Client, HourRecord, Task, TaskType


class ClientRepository(ABC):
    @abstractmethod
    def add(self, client: Client) -> None:
        pass

    @abstractmethod
    def get(self, client_id: UUID) -> Client | None:
        pass

    @abstractmethod
    def get_by_name(self, owner_id: UUID, name: str) -> Client | None:
        pass


class TaskTypeRepository(ABC):
    @abstractmethod
    def add(self, task_type: TaskType) -> None:
        pass

    @abstractmethod
    def get(self, task_type_id: UUID) -> TaskType | None:
        pass

    @abstractmethod
    def get_by_name(self, owner_id: UUID, name: str) -> TaskType | None:
        pass


class TaskRepository(ABC):
    @abstractmethod
    def add(self, task: Task) -> None:
        pass

    @abstractmethod
    def get(self, task_id: UUID) -> Task | None:
        pass

    @abstractmethod
    def update(self, task: Task) -> None:
        pass

    @abstractmethod
    def delete(self, task_id: UUID) -> None:
        """Delete a task; its hour records are removed with it."""

    @abstractmethod
    def list_by_owner_created_between(
        self,
        owner_id: UUID,
        start_date: date,
        end_date: date,
        client_id: UUID | None = None,
    ) -> Iterable[Task]:
        """Tasks with start_date <= creation_date < end_date."""

    @abstractmethod
    def count_pending_created_between(
        self, owner_id: UUID, start_date: date, end_date: date
    ) -> int:
        pass

    @abstractmethod
    def count_without_hours_created_between(
        self, owner_id: UUID, start_date: date, end_date: date
    ) -> int:
        pass


class HourRecordRepository(ABC):
    @abstractmethod
    def add(self, record: HourRecord) -> None:
        pass

    @abstractmethod
    def get(self, record_id: UUID) -> HourRecord | None:
        pass

    @abstractmethod
    def update(self, record: HourRecord) -> None:
        pass

    @abstractmethod
    def delete(self, record_id: UUID) -> None:
        pass

    @abstractmethod
    def list_by_task(self, task_id: UUID) -> Iterable[HourRecord]:
        pass

    @abstractmethod
    def sum_hours_for_task(self, task_id: UUID) -> Decimal:
        pass


class ClosureRepository(ABC):
    @abstractmethod
    def add(self, closure: MonthlyClosure) -> None:
        """Persist a closure together with its rows and expense lines."""

    @abstractmethod
    def get(self, closure_id: UUID) -> MonthlyClosure | None:
        """Load a closure with its rows and expense lines."""

    @abstractmethod
    def get_for_period(
        self, owner_id: UUID, month: int, year: int
    ) -> MonthlyClosure | None:
        pass

    @abstractmethod
    def list_by_owner(self, owner_id: UUID) -> Iterable[MonthlyClosure]:
        """Closures newest period first."""

    @abstractmethod
    def update(self, closure: MonthlyClosure) -> None:
        """Persist header fields only."""

    @abstractmethod
    def delete(self, closure_id: UUID) -> None:
        """Delete a closure; rows and expense lines are removed with it."""

    @abstractmethod
    def get_row(
        self, closure_id: UUID, client_id: UUID
    ) -> MonthlyClosureClient | None:
        pass

    @abstractmethod
    def list_rows(self, closure_id: UUID) -> Iterable[MonthlyClosureClient]:
        pass

    @abstractmethod
    def upsert_row(self, row: MonthlyClosureClient) -> None:
        pass

    @abstractmethod
    def delete_row(self, row_id: UUID) -> None:
        pass

    @abstractmethod
    def add_expense_line(self, line: MonthlyClosureExpense) -> None:
        pass

    @abstractmethod
    def get_expense_line(self, line_id: UUID) -> MonthlyClosureExpense | None:
        pass

    @abstractmethod
    def update_expense_line(self, line: MonthlyClosureExpense) -> None:
        pass

    @abstractmethod
    def delete_expense_line(self, line_id: UUID) -> None:
        pass

    @abstractmethod
    def list_expense_lines(self, closure_id: UUID) -> Iterable[MonthlyClosureExpense]:
        pass


class ExpenseRepository(ABC):
    @abstractmethod
    def add(self, expense: Expense) -> None:
        pass

    @abstractmethod
    def get(self, expense_id: UUID) -> Expense | None:
        pass

    @abstractmethod
    def get_by_name(self, owner_id: UUID, name: str) -> Expense | None:
        pass

    @abstractmethod
    def list_by_owner(
        self, owner_id: UUID, include_inactive: bool = False
    ) -> Iterable[Expense]:
        pass

    @abstractmethod
    def update(self, expense: Expense) -> None:
        pass
