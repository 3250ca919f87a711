"""Per-client revenue rows of monthly closures.

Rows aggregate task hours by the task's creation period; the period lock
protects hour records by their work-date period. A task created in one month
with hours logged in the next is billed by the first month's closure but
guarded by the second's lock state. Callers log when the two differ.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from freelance_ledger.domain.billing import (
    ZERO,
    RowChangeKind,
    hours_by_client,
    plan_row_change,
    reprice_row,
)
from freelance_ledger.domain.closures import (
    MonthlyClosure,
    MonthlyClosureClient,
    MonthlyClosureExpense,
)
from freelance_ledger.domain.value_objects import Period
from freelance_ledger.exceptions import (
    ClosureExistsError,
    ClosureNotFoundError,
    ExpenseNotFoundError,
    InvalidValueError,
)
from freelance_ledger.logging_config import get_logger
from freelance_ledger.repositories.interfaces import (
    ClosureRepository,
    ExpenseRepository,
    TaskRepository,
)

logger = get_logger(__name__)

MIN_YEAR = 2000
MAX_YEAR = 2100


@dataclass(frozen=True)
class ExpenseLineInput:
    """An expense line to attach to a closure.

    With expense_id set, the line copies the catalog expense; amount, when
    given, overrides the catalog amount. Without it the line is ad hoc and
    needs both name and amount.
    """

    expense_id: UUID | None = None
    name: str | None = None
    amount: Decimal | None = None
    description: str | None = None


def validate_closure_terms(
    *,
    month: int | None = None,
    year: int | None = None,
    hourly_rate: Decimal | None = None,
    tax_percentage: Decimal | None = None,
) -> None:
    if month is not None and not 1 <= month <= 12:
        raise InvalidValueError("month", month, "must be between 1 and 12")
    if year is not None and not MIN_YEAR <= year <= MAX_YEAR:
        raise InvalidValueError(
            "year", year, f"must be between {MIN_YEAR} and {MAX_YEAR}"
        )
    if hourly_rate is not None and hourly_rate <= 0:
        raise InvalidValueError("hourly_rate", hourly_rate, "must be greater than 0")
    if tax_percentage is not None and not ZERO <= tax_percentage <= 100:
        raise InvalidValueError(
            "tax_percentage", tax_percentage, "must be between 0 and 100"
        )


class ClosureReconciler:
    def __init__(
        self,
        closure_repo: ClosureRepository,
        task_repo: TaskRepository,
        expense_repo: ExpenseRepository,
    ) -> None:
        self._closure_repo = closure_repo
        self._task_repo = task_repo
        self._expense_repo = expense_repo

    def recompute_client_row(
        self, closure_id: UUID, client_id: UUID
    ) -> MonthlyClosureClient | None:
        """Re-derive one client's row from the hours of tasks created in the period.

        Returns the stored row, or None when the client has no hours and the
        row was removed (or never existed).
        """
        closure = self._closure_repo.get(closure_id)
        if closure is None:
            raise ClosureNotFoundError(closure_id)

        period = closure.period
        tasks = self._task_repo.list_by_owner_created_between(
            closure.owner_id, period.start, period.end, client_id=client_id
        )
        total_hours = hours_by_client(tasks).get(client_id, ZERO)
        existing = self._closure_repo.get_row(closure_id, client_id)
        change = plan_row_change(closure, client_id, existing, total_hours)

        row = change.row
        if row is None or change.kind == RowChangeKind.NOOP:
            return None
        if change.kind == RowChangeKind.DELETE:
            self._closure_repo.delete_row(row.id)
            logger.info(
                "closure_row_removed",
                closure_id=str(closure_id),
                client_id=str(client_id),
            )
            return None

        self._closure_repo.upsert_row(row)
        logger.info(
            "closure_row_recomputed",
            closure_id=str(closure_id),
            client_id=str(client_id),
            total_hours=str(row.total_hours),
            net_amount=str(row.net_amount),
        )
        return row

    def recompute_all_rows(
        self,
        closure_id: UUID,
        hourly_rate: Decimal | None = None,
        tax_percentage: Decimal | None = None,
    ) -> list[MonthlyClosureClient]:
        """Reprice every stored row from its total_hours; tasks are not re-read."""
        closure = self._closure_repo.get(closure_id)
        if closure is None:
            raise ClosureNotFoundError(closure_id)

        rate = hourly_rate if hourly_rate is not None else closure.hourly_rate
        tax = tax_percentage if tax_percentage is not None else closure.tax_percentage

        repriced = [
            reprice_row(row, rate, tax)
            for row in self._closure_repo.list_rows(closure_id)
        ]
        for row in repriced:
            self._closure_repo.upsert_row(row)

        logger.info(
            "closure_rows_repriced",
            closure_id=str(closure_id),
            rows=len(repriced),
            hourly_rate=str(rate),
            tax_percentage=str(tax),
        )
        return repriced

    def create_closure_snapshot(
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
        validate_closure_terms(
            month=month,
            year=year,
            hourly_rate=hourly_rate,
            tax_percentage=tax_percentage,
        )
        if self._closure_repo.get_for_period(owner_id, month, year) is not None:
            raise ClosureExistsError(month, year)

        closure = MonthlyClosure(
            owner_id=owner_id,
            month=month,
            year=year,
            hourly_rate=hourly_rate,
            tax_percentage=tax_percentage,
            notes=notes,
        )

        period = closure.period
        tasks = self._task_repo.list_by_owner_created_between(
            owner_id, period.start, period.end
        )
        for client_id, total_hours in hours_by_client(tasks).items():
            change = plan_row_change(closure, client_id, None, total_hours)
            if change.kind == RowChangeKind.UPSERT and change.row is not None:
                closure.clients.append(change.row)

        if expenses:
            closure.expenses = [
                self.build_expense_line(owner_id, closure.id, line)
                for line in expenses
            ]
        elif expense_ids:
            closure.expenses = self._catalog_lines(owner_id, closure.id, expense_ids)

        self._closure_repo.add(closure)
        logger.info(
            "closure_created",
            closure_id=str(closure.id),
            owner_id=str(owner_id),
            period=period.label,
            clients=len(closure.clients),
            expenses=len(closure.expenses),
        )
        return closure

    def reconcile_task_period(
        self, owner_id: UUID, client_id: UUID, period: Period
    ) -> MonthlyClosureClient | None:
        """Recompute a client's row in the period's closure when it is open."""
        closure = self._closure_repo.get_for_period(owner_id, period.month, period.year)
        if closure is None or closure.is_closed:
            return None
        return self.recompute_client_row(closure.id, client_id)

    def build_expense_line(
        self, owner_id: UUID, closure_id: UUID, line: ExpenseLineInput
    ) -> MonthlyClosureExpense:
        if line.expense_id is not None:
            expense = self._expense_repo.get(line.expense_id)
            if expense is None or expense.owner_id != owner_id or not expense.is_active:
                raise ExpenseNotFoundError(line.expense_id)
            amount = line.amount if line.amount is not None else expense.amount
            if amount < 0:
                raise InvalidValueError("amount", amount, "must not be negative")
            return MonthlyClosureExpense(
                closure_id=closure_id,
                expense_id=expense.id,
                name=expense.name,
                description=expense.description,
                amount=amount,
            )

        if not line.name or line.amount is None:
            raise InvalidValueError(
                "expense", line.name, "ad-hoc expenses need a name and an amount"
            )
        if line.amount < 0:
            raise InvalidValueError("amount", line.amount, "must not be negative")
        return MonthlyClosureExpense(
            closure_id=closure_id,
            name=line.name,
            description=line.description or None,
            amount=line.amount,
        )

    def _catalog_lines(
        self, owner_id: UUID, closure_id: UUID, expense_ids: Iterable[UUID]
    ) -> list[MonthlyClosureExpense]:
        """Legacy format: catalog expenses at their registered amounts."""
        return [
            self.build_expense_line(
                owner_id, closure_id, ExpenseLineInput(expense_id=expense_id)
            )
            for expense_id in expense_ids
        ]
