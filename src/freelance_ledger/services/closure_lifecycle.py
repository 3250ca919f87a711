"""Open/closed state machine of monthly closures.

    open --close--> closed --reopen--> open

Closing requires every task created in the period to be completed and to
carry hours. Reopening does not re-validate. While closed, a closure's
header, rows and expense lines are read-only; deletion is allowed in either
state.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from uuid import UUID

from freelance_ledger.domain.closures import (
    ClosureTotals,
    MonthlyClosure,
    MonthlyClosureClient,
    MonthlyClosureExpense,
)
from freelance_ledger.exceptions import (
    ClosureAlreadyOpenError,
    ClosureClosedError,
    ClosureExpenseNotFoundError,
    ClosureNotFoundError,
    ClosurePreconditionError,
    InvalidValueError,
)
from freelance_ledger.logging_config import get_logger
from freelance_ledger.repositories.interfaces import ClosureRepository, TaskRepository
from freelance_ledger.services.closure_reconciler import (
    ClosureReconciler,
    ExpenseLineInput,
    validate_closure_terms,
)

logger = get_logger(__name__)


@dataclass
class ClosureSummary:
    closure: MonthlyClosure
    rows: list[MonthlyClosureClient]
    expenses: list[MonthlyClosureExpense]
    totals: ClosureTotals
    pending_tasks_count: int
    tasks_without_hours_count: int

    @property
    def has_pending_tasks(self) -> bool:
        return self.pending_tasks_count > 0

    @property
    def has_tasks_without_hours(self) -> bool:
        return self.tasks_without_hours_count > 0


class ClosureLifecycleManager:
    def __init__(
        self,
        closure_repo: ClosureRepository,
        task_repo: TaskRepository,
        reconciler: ClosureReconciler,
    ) -> None:
        self._closure_repo = closure_repo
        self._task_repo = task_repo
        self._reconciler = reconciler

    def get(self, owner_id: UUID, closure_id: UUID) -> MonthlyClosure:
        """Load an owner's closure; other owners' closures are not found."""
        closure = self._closure_repo.get(closure_id)
        if closure is None or closure.owner_id != owner_id:
            raise ClosureNotFoundError(closure_id)
        return closure

    def open_task_counts(self, closure: MonthlyClosure) -> tuple[int, int]:
        """(pending tasks, tasks without hours) created in the closure's period."""
        period = closure.period
        pending = self._task_repo.count_pending_created_between(
            closure.owner_id, period.start, period.end
        )
        without_hours = self._task_repo.count_without_hours_created_between(
            closure.owner_id, period.start, period.end
        )
        return pending, without_hours

    def close(self, owner_id: UUID, closure_id: UUID) -> MonthlyClosure:
        closure = self.get(owner_id, closure_id)
        if closure.is_closed:
            raise ClosureClosedError(closure_id, action="close")

        pending, without_hours = self.open_task_counts(closure)
        if pending or without_hours:
            logger.info(
                "closure_close_refused",
                closure_id=str(closure_id),
                pending_tasks=pending,
                tasks_without_hours=without_hours,
            )
            raise ClosurePreconditionError(pending, without_hours)

        closure.close()
        self._closure_repo.update(closure)
        logger.info(
            "closure_closed",
            closure_id=str(closure_id),
            period=closure.period.label,
        )
        return closure

    def reopen(self, owner_id: UUID, closure_id: UUID) -> MonthlyClosure:
        closure = self.get(owner_id, closure_id)
        if not closure.is_closed:
            raise ClosureAlreadyOpenError(closure_id)

        closure.reopen()
        self._closure_repo.update(closure)
        logger.info(
            "closure_reopened",
            closure_id=str(closure_id),
            period=closure.period.label,
        )
        return closure

    def update(
        self,
        owner_id: UUID,
        closure_id: UUID,
        tax_percentage: Decimal | None = None,
        hourly_rate: Decimal | None = None,
        notes: str | None = None,
    ) -> MonthlyClosure:
        closure = self.get(owner_id, closure_id)
        if closure.is_closed:
            raise ClosureClosedError(closure_id, action="update")
        validate_closure_terms(hourly_rate=hourly_rate, tax_percentage=tax_percentage)

        new_rate = hourly_rate if hourly_rate is not None else closure.hourly_rate
        new_tax = (
            tax_percentage if tax_percentage is not None else closure.tax_percentage
        )
        if new_rate != closure.hourly_rate or new_tax != closure.tax_percentage:
            closure.clients = self._reconciler.recompute_all_rows(
                closure_id, hourly_rate=new_rate, tax_percentage=new_tax
            )

        closure.hourly_rate = new_rate
        closure.tax_percentage = new_tax
        if notes is not None:
            closure.notes = notes
        closure.updated_at = datetime.now(UTC)
        self._closure_repo.update(closure)
        logger.info("closure_updated", closure_id=str(closure_id))
        return closure

    def delete(self, owner_id: UUID, closure_id: UUID) -> None:
        closure = self.get(owner_id, closure_id)
        if closure.is_closed:
            logger.warning(
                "closed_closure_deleted",
                closure_id=str(closure_id),
                period=closure.period.label,
            )
        self._closure_repo.delete(closure_id)
        logger.info("closure_deleted", closure_id=str(closure_id))

    def add_expense(
        self, owner_id: UUID, closure_id: UUID, line: ExpenseLineInput
    ) -> MonthlyClosureExpense:
        closure = self.get(owner_id, closure_id)
        if closure.is_closed:
            raise ClosureClosedError(closure_id, action="add expenses to")

        expense_line = self._reconciler.build_expense_line(owner_id, closure_id, line)
        self._closure_repo.add_expense_line(expense_line)
        logger.info(
            "closure_expense_added",
            closure_id=str(closure_id),
            line_id=str(expense_line.id),
            amount=str(expense_line.amount),
        )
        return expense_line

    def update_expense(
        self,
        owner_id: UUID,
        closure_id: UUID,
        line_id: UUID,
        name: str | None = None,
        description: str | None = None,
        amount: Decimal | None = None,
    ) -> MonthlyClosureExpense:
        closure = self.get(owner_id, closure_id)
        if closure.is_closed:
            raise ClosureClosedError(closure_id, action="edit expenses of")
        line = self._get_line(closure_id, line_id)

        if amount is not None:
            if amount < 0:
                raise InvalidValueError("amount", amount, "must not be negative")
            line.amount = amount
        if name is not None:
            line.name = name
        if description is not None:
            line.description = description or None
        self._closure_repo.update_expense_line(line)
        logger.info("closure_expense_updated", line_id=str(line_id))
        return line

    def remove_expense(self, owner_id: UUID, closure_id: UUID, line_id: UUID) -> None:
        closure = self.get(owner_id, closure_id)
        if closure.is_closed:
            raise ClosureClosedError(closure_id, action="remove expenses from")
        self._get_line(closure_id, line_id)
        self._closure_repo.delete_expense_line(line_id)
        logger.info("closure_expense_removed", line_id=str(line_id))

    def summary(self, owner_id: UUID, closure_id: UUID) -> ClosureSummary:
        closure = self.get(owner_id, closure_id)
        pending, without_hours = self.open_task_counts(closure)
        return ClosureSummary(
            closure=closure,
            rows=list(closure.clients),
            expenses=list(closure.expenses),
            totals=ClosureTotals.from_lines(closure.clients, closure.expenses),
            pending_tasks_count=pending,
            tasks_without_hours_count=without_hours,
        )

    def _get_line(self, closure_id: UUID, line_id: UUID) -> MonthlyClosureExpense:
        line = self._closure_repo.get_expense_line(line_id)
        if line is None or line.closure_id != closure_id:
            raise ClosureExpenseNotFoundError(line_id)
        return line
