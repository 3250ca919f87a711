"""Public operations of the billing reconciliation engine.

Every operation takes the owner id explicitly and runs as one transaction:
guards, recomputation and writes are committed together or not at all. The
pipeline for an hour-record mutation is

    period lock (work date) -> write record -> recompute task hours
        -> recompute the client's row in the open closure of the task's
           creation period
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import UTC, date, datetime
from decimal import Decimal
from uuid import UUID

from freelance_ledger.config import Settings, get_settings
from freelance_ledger.domain.billing import distinct_periods
from freelance_ledger.domain.closures import (
    Expense,
    MonthlyClosure,
    MonthlyClosureExpense,
)
from freelance_ledger.domain.ledger import Client, HourRecord, Task, TaskType
from freelance_ledger.domain.value_objects import Period, TaskStatus, to_decimal
from freelance_ledger.exceptions import (
    ClientNotFoundError,
    DuplicateNameError,
    ExpenseNotFoundError,
    FutureWorkDateError,
    HourRecordNotFoundError,
    InvalidValueError,
    TaskHasNoHoursError,
    TaskNotFoundError,
    TaskTypeNotFoundError,
)
from freelance_ledger.logging_config import LogContext, get_logger
from freelance_ledger.repositories.sqlite import (
    SQLiteClientRepository,
    SQLiteClosureRepository,
    SQLiteDatabase,
    SQLiteExpenseRepository,
    SQLiteHourRecordRepository,
    SQLiteTaskRepository,
    SQLiteTaskTypeRepository,
)
from freelance_ledger.services.closure_lifecycle import (
    ClosureLifecycleManager,
    ClosureSummary,
)
from freelance_ledger.services.closure_reconciler import (
    ClosureReconciler,
    ExpenseLineInput,
)
from freelance_ledger.services.hour_ledger import HourLedgerAggregator
from freelance_ledger.services.period_lock import PeriodLockGuard
from freelance_ledger.services.task_status import TaskStatusGuard

logger = get_logger(__name__)

MAX_DESCRIPTION_LENGTH = 1000


def _as_day(value: date | datetime) -> date:
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(UTC)
        return value.date()
    return value


def _utc_today() -> date:
    return datetime.now(UTC).date()


def _clean_description(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    if len(value) > MAX_DESCRIPTION_LENGTH:
        raise InvalidValueError(
            "description",
            value[:20] + "...",
            f"must be at most {MAX_DESCRIPTION_LENGTH} characters",
        )
    return value


def _clean_name(field: str, value: str) -> str:
    value = (value or "").strip()
    if not value:
        raise InvalidValueError(field, value, "must not be empty")
    return value


class BillingService:
    """Facade over the ledger, period lock, reconciler and closure lifecycle."""

    def __init__(
        self, database: SQLiteDatabase, settings: Settings | None = None
    ) -> None:
        self._db = database
        self._settings = settings or get_settings()

        self._clients = SQLiteClientRepository(database)
        self._task_types = SQLiteTaskTypeRepository(database)
        self._tasks = SQLiteTaskRepository(database)
        self._hour_records = SQLiteHourRecordRepository(database)
        self._closures = SQLiteClosureRepository(database)
        self._expenses = SQLiteExpenseRepository(database)

        self.aggregator = HourLedgerAggregator(self._tasks, self._hour_records)
        self.period_lock = PeriodLockGuard(self._closures)
        self.reconciler = ClosureReconciler(self._closures, self._tasks, self._expenses)
        self.lifecycle = ClosureLifecycleManager(
            self._closures, self._tasks, self.reconciler
        )
        self.task_status = TaskStatusGuard(self.period_lock)

    @contextmanager
    def _operation(self, name: str, owner_id: UUID) -> Iterator[None]:
        with LogContext(owner_id=str(owner_id), operation=name):
            with self._db.transaction():
                yield

    @contextmanager
    def _read(self, name: str, owner_id: UUID) -> Iterator[None]:
        with LogContext(owner_id=str(owner_id), operation=name):
            with self._db.snapshot():
                yield

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def create_client(self, owner_id: UUID, name: str) -> Client:
        with self._operation("create_client", owner_id):
            name = _clean_name("name", name)
            if self._clients.get_by_name(owner_id, name) is not None:
                raise DuplicateNameError("Client", name)
            client = Client(owner_id=owner_id, name=name)
            self._clients.add(client)
            logger.info("client_created", client_id=str(client.id))
            return client

    def create_task_type(
        self, owner_id: UUID, name: str, color: str | None = None
    ) -> TaskType:
        with self._operation("create_task_type", owner_id):
            name = _clean_name("name", name)
            if self._task_types.get_by_name(owner_id, name) is not None:
                raise DuplicateNameError("Task type", name)
            task_type = TaskType(owner_id=owner_id, name=name)
            if color:
                task_type.color = color
            self._task_types.add(task_type)
            logger.info("task_type_created", task_type_id=str(task_type.id))
            return task_type

    def create_expense(
        self,
        owner_id: UUID,
        name: str,
        amount: Decimal,
        description: str | None = None,
        is_recurring: bool = True,
    ) -> Expense:
        with self._operation("create_expense", owner_id):
            name = _clean_name("name", name)
            amount = to_decimal(amount)
            if amount < 0:
                raise InvalidValueError("amount", amount, "must not be negative")
            if self._expenses.get_by_name(owner_id, name) is not None:
                raise DuplicateNameError("Expense", name)
            expense = Expense(
                owner_id=owner_id,
                name=name,
                amount=amount,
                description=_clean_description(description),
                is_recurring=is_recurring,
            )
            self._expenses.add(expense)
            logger.info("expense_created", expense_id=str(expense.id))
            return expense

    def deactivate_expense(self, owner_id: UUID, expense_id: UUID) -> Expense:
        with self._operation("deactivate_expense", owner_id):
            expense = self._expenses.get(expense_id)
            if expense is None or expense.owner_id != owner_id:
                raise ExpenseNotFoundError(expense_id)
            expense.deactivate()
            self._expenses.update(expense)
            logger.info("expense_deactivated", expense_id=str(expense_id))
            return expense

    def list_expenses(
        self, owner_id: UUID, include_inactive: bool = False
    ) -> list[Expense]:
        with self._read("list_expenses", owner_id):
            return list(self._expenses.list_by_owner(owner_id, include_inactive))

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def get_task(self, owner_id: UUID, task_id: UUID) -> Task:
        with self._read("get_task", owner_id):
            task = self._tasks.get(task_id)
        if task is None or task.owner_id != owner_id:
            raise TaskNotFoundError(task_id)
        return task

    def create_task(
        self,
        owner_id: UUID,
        client_id: UUID,
        task_type_id: UUID,
        task_number: str,
        name: str,
        creation_date: date | None = None,
        description: str | None = None,
        estimated_hours: Decimal | None = None,
        tags: Sequence[str] = (),
        status: TaskStatus = TaskStatus.PENDING,
    ) -> Task:
        with self._operation("create_task", owner_id):
            client = self._clients.get(client_id)
            if client is None or client.owner_id != owner_id:
                raise ClientNotFoundError(client_id)
            task_type = self._task_types.get(task_type_id)
            if task_type is None or task_type.owner_id != owner_id:
                raise TaskTypeNotFoundError(task_type_id)
            if status == TaskStatus.COMPLETED:
                # A new task has no hour records yet.
                raise TaskHasNoHoursError()
            if estimated_hours is not None:
                estimated_hours = to_decimal(estimated_hours)
                if estimated_hours < 0:
                    raise InvalidValueError(
                        "estimated_hours", estimated_hours, "must not be negative"
                    )

            task = Task(
                owner_id=owner_id,
                client_id=client_id,
                task_type_id=task_type_id,
                task_number=_clean_name("task_number", task_number),
                name=_clean_name("name", name),
                creation_date=creation_date or _utc_today(),
                description=_clean_description(description),
                estimated_hours=estimated_hours,
                tags=list(tags),
            )
            self._tasks.add(task)
            logger.info(
                "task_created",
                task_id=str(task.id),
                billing_period=task.billing_period.label,
            )
            return task

    def duplicate_task(
        self, owner_id: UUID, task_id: UUID, creation_date: date | None = None
    ) -> Task:
        """Copy a task as a new pending task without hour records."""
        with self._operation("duplicate_task", owner_id):
            source = self.get_task(owner_id, task_id)
            copy = Task(
                owner_id=owner_id,
                client_id=source.client_id,
                task_type_id=source.task_type_id,
                task_number=source.task_number,
                name=source.name,
                creation_date=creation_date or _utc_today(),
                description=source.description,
                estimated_hours=source.estimated_hours,
                tags=list(source.tags),
            )
            self._tasks.add(copy)
            logger.info(
                "task_duplicated", source_task_id=str(task_id), task_id=str(copy.id)
            )
            return copy

    def delete_task(self, owner_id: UUID, task_id: UUID) -> None:
        with self._operation("delete_task", owner_id):
            task = self.get_task(owner_id, task_id)
            records = list(self._hour_records.list_by_task(task_id))
            self.task_status.ensure_can_delete(owner_id, task, records)

            periods = set(distinct_periods(records)) | {task.billing_period}
            self._tasks.delete(task_id)
            for period in sorted(periods):
                self.reconciler.reconcile_task_period(owner_id, task.client_id, period)
            logger.info(
                "task_deleted",
                task_id=str(task_id),
                hour_records=len(records),
                periods=[p.label for p in sorted(periods)],
            )

    def toggle_task_status(self, owner_id: UUID, task_id: UUID) -> Task:
        with self._operation("toggle_task_status", owner_id):
            task = self.get_task(owner_id, task_id)
            if task.is_completed:
                records = list(self._hour_records.list_by_task(task_id))
                self.task_status.ensure_can_reopen(owner_id, task, records)
                task.reopen()
            else:
                self.task_status.ensure_can_complete(task)
                task.complete()
            self._tasks.update(task)
            logger.info(
                "task_status_changed", task_id=str(task_id), status=task.status.value
            )
            return task

    # ------------------------------------------------------------------
    # Hour records
    # ------------------------------------------------------------------

    def list_hour_records(self, owner_id: UUID, task_id: UUID) -> list[HourRecord]:
        with self._read("list_hour_records", owner_id):
            self.get_task(owner_id, task_id)
            return list(self._hour_records.list_by_task(task_id))

    def record_hour_entry(
        self,
        owner_id: UUID,
        task_id: UUID,
        work_date: date | datetime,
        hours_worked: Decimal,
        description: str | None = None,
    ) -> HourRecord:
        with self._operation("record_hour_entry", owner_id):
            task = self.get_task(owner_id, task_id)
            record = HourRecord(
                owner_id=owner_id,
                task_id=task_id,
                work_date=self._validate_work_date(work_date),
                hours_worked=self._validate_hours(hours_worked),
                description=_clean_description(description),
            )
            self.period_lock.ensure_open(
                owner_id, [record.period], action="record hours"
            )

            self._hour_records.add(record)
            self._after_ledger_change(task, [record.period])
            logger.info(
                "hour_record_created",
                record_id=str(record.id),
                task_id=str(task_id),
                hours_worked=str(record.hours_worked),
            )
            return record

    def edit_hour_entry(
        self,
        owner_id: UUID,
        record_id: UUID,
        work_date: date | datetime | None = None,
        hours_worked: Decimal | None = None,
        description: str | None = None,
    ) -> HourRecord:
        with self._operation("edit_hour_entry", owner_id):
            record = self._get_record(owner_id, record_id)
            task = self.get_task(owner_id, record.task_id)
            old_period = record.period

            if work_date is not None:
                record.work_date = self._validate_work_date(work_date)
            if hours_worked is not None:
                record.hours_worked = self._validate_hours(hours_worked)
            if description is not None:
                record.description = _clean_description(description)

            self.period_lock.ensure_open(
                owner_id, [old_period, record.period], action="edit hours"
            )

            self._hour_records.update(record)
            self._after_ledger_change(task, [old_period, record.period])
            logger.info("hour_record_updated", record_id=str(record_id))
            return record

    def remove_hour_entry(self, owner_id: UUID, record_id: UUID) -> None:
        with self._operation("remove_hour_entry", owner_id):
            record = self._get_record(owner_id, record_id)
            task = self.get_task(owner_id, record.task_id)
            self.period_lock.ensure_open(
                owner_id, [record.period], action="delete hours"
            )

            self._hour_records.delete(record_id)
            self._after_ledger_change(task, [record.period])
            logger.info("hour_record_deleted", record_id=str(record_id))

    def _get_record(self, owner_id: UUID, record_id: UUID) -> HourRecord:
        record = self._hour_records.get(record_id)
        if record is None or record.owner_id != owner_id:
            raise HourRecordNotFoundError(record_id)
        return record

    def _validate_hours(self, hours_worked: Decimal) -> Decimal:
        hours = to_decimal(hours_worked)
        if hours <= 0:
            raise InvalidValueError("hours_worked", hours, "must be greater than 0")
        return hours

    def _validate_work_date(self, work_date: date | datetime) -> date:
        day = _as_day(work_date)
        if not self._settings.allow_future_hour_records and day > _utc_today():
            raise FutureWorkDateError(day)
        return day

    def _after_ledger_change(self, task: Task, work_periods: Sequence[Period]) -> None:
        """Recompute the task's hours, then its client's row in the billing closure."""
        self.aggregator.recompute_task_hours(task.id)

        billing_period = task.billing_period
        if any(p != billing_period for p in work_periods):
            logger.debug(
                "work_period_differs_from_billing_period",
                task_id=str(task.id),
                billing_period=billing_period.label,
                work_periods=sorted({p.label for p in work_periods}),
            )
        self.reconciler.reconcile_task_period(
            task.owner_id, task.client_id, billing_period
        )

    # ------------------------------------------------------------------
    # Closures
    # ------------------------------------------------------------------

    def list_closures(self, owner_id: UUID) -> list[MonthlyClosure]:
        with self._read("list_closures", owner_id):
            return list(self._closures.list_by_owner(owner_id))

    def get_closure(self, owner_id: UUID, closure_id: UUID) -> MonthlyClosure:
        with self._read("get_closure", owner_id):
            return self.lifecycle.get(owner_id, closure_id)

    def get_closure_summary(self, owner_id: UUID, closure_id: UUID) -> ClosureSummary:
        with self._read("get_closure_summary", owner_id):
            return self.lifecycle.summary(owner_id, closure_id)

    def create_closure(
        self,
        owner_id: UUID,
        month: int,
        year: int,
        hourly_rate: Decimal,
        tax_percentage: Decimal,
        expenses: Sequence[ExpenseLineInput] = (),
        notes: str | None = None,
        expense_ids: Sequence[UUID] = (),
    ) -> MonthlyClosure:
        with self._operation("create_closure", owner_id):
            return self.reconciler.create_closure_snapshot(
                owner_id,
                month,
                year,
                to_decimal(hourly_rate),
                to_decimal(tax_percentage),
                expenses=expenses,
                notes=notes,
                expense_ids=expense_ids,
            )

    def update_closure(
        self,
        owner_id: UUID,
        closure_id: UUID,
        tax_percentage: Decimal | None = None,
        hourly_rate: Decimal | None = None,
        notes: str | None = None,
    ) -> MonthlyClosure:
        with self._operation("update_closure", owner_id):
            return self.lifecycle.update(
                owner_id,
                closure_id,
                tax_percentage=(
                    to_decimal(tax_percentage) if tax_percentage is not None else None
                ),
                hourly_rate=to_decimal(hourly_rate) if hourly_rate is not None else None,
                notes=notes,
            )

    def close_closure(self, owner_id: UUID, closure_id: UUID) -> MonthlyClosure:
        with self._operation("close_closure", owner_id):
            return self.lifecycle.close(owner_id, closure_id)

    def reopen_closure(self, owner_id: UUID, closure_id: UUID) -> MonthlyClosure:
        with self._operation("reopen_closure", owner_id):
            return self.lifecycle.reopen(owner_id, closure_id)

    def delete_closure(self, owner_id: UUID, closure_id: UUID) -> None:
        with self._operation("delete_closure", owner_id):
            self.lifecycle.delete(owner_id, closure_id)

    def add_closure_expense(
        self, owner_id: UUID, closure_id: UUID, line: ExpenseLineInput
    ) -> MonthlyClosureExpense:
        with self._operation("add_closure_expense", owner_id):
            return self.lifecycle.add_expense(owner_id, closure_id, line)

    def update_closure_expense(
        self,
        owner_id: UUID,
        closure_id: UUID,
        line_id: UUID,
        name: str | None = None,
        description: str | None = None,
        amount: Decimal | None = None,
    ) -> MonthlyClosureExpense:
        with self._operation("update_closure_expense", owner_id):
            return self.lifecycle.update_expense(
                owner_id,
                closure_id,
                line_id,
                name=name,
                description=description,
                amount=to_decimal(amount) if amount is not None else None,
            )

    def remove_closure_expense(
        self, owner_id: UUID, closure_id: UUID, line_id: UUID
    ) -> None:
        with self._operation("remove_closure_expense", owner_id):
            self.lifecycle.remove_expense(owner_id, closure_id, line_id)
