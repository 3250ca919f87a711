"""Monthly closure (settlement) domain models."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from freelance_ledger.domain.value_objects import ClosureStatus, Period


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass
class MonthlyClosureClient:
    """Per-client revenue row of a closure.

    Exists only while total_hours > 0.
    """

    closure_id: UUID
    client_id: UUID
    total_hours: Decimal
    gross_amount: Decimal
    tax_amount: Decimal
    net_amount: Decimal
    id: UUID = field(default_factory=uuid4)


@dataclass
class MonthlyClosureExpense:
    """An expense line attached to a closure.

    expense_id references the owner's expense catalog; it is None for
    ad-hoc lines.
    """

    closure_id: UUID
    name: str
    amount: Decimal
    id: UUID = field(default_factory=uuid4)
    expense_id: UUID | None = None
    description: str | None = None


@dataclass
class MonthlyClosure:
    """Settlement snapshot of one owner's month.

    While closed, its rows and the task hours feeding them are immutable.
    """

    owner_id: UUID
    month: int
    year: int
    hourly_rate: Decimal
    tax_percentage: Decimal
    id: UUID = field(default_factory=uuid4)
    status: ClosureStatus = ClosureStatus.OPEN
    closed_at: datetime | None = None
    notes: str | None = None
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)
    clients: list[MonthlyClosureClient] = field(default_factory=list)
    expenses: list[MonthlyClosureExpense] = field(default_factory=list)

    @property
    def period(self) -> Period:
        return Period(year=self.year, month=self.month)

    @property
    def is_closed(self) -> bool:
        return self.status == ClosureStatus.CLOSED

    def close(self) -> None:
        self.status = ClosureStatus.CLOSED
        self.closed_at = _utc_now()
        self.updated_at = self.closed_at

    def reopen(self) -> None:
        self.status = ClosureStatus.OPEN
        self.closed_at = None
        self.updated_at = _utc_now()


@dataclass
class Expense:
    """A catalog expense that can be attached to closures."""

    owner_id: UUID
    name: str
    amount: Decimal
    id: UUID = field(default_factory=uuid4)
    description: str | None = None
    is_recurring: bool = True
    is_active: bool = True
    created_at: datetime = field(default_factory=_utc_now)

    def deactivate(self) -> None:
        self.is_active = False


@dataclass(frozen=True)
class ClosureTotals:
    total_hours: Decimal
    gross_amount: Decimal
    tax_amount: Decimal
    net_amount: Decimal
    total_expenses: Decimal

    @property
    def final_amount(self) -> Decimal:
        return self.net_amount - self.total_expenses

    @classmethod
    def from_lines(
        cls,
        rows: list[MonthlyClosureClient],
        expenses: list[MonthlyClosureExpense],
    ) -> "ClosureTotals":
        zero = Decimal("0")
        return cls(
            total_hours=sum((r.total_hours for r in rows), zero),
            gross_amount=sum((r.gross_amount for r in rows), zero),
            tax_amount=sum((r.tax_amount for r in rows), zero),
            net_amount=sum((r.net_amount for r in rows), zero),
            total_expenses=sum((e.amount for e in expenses), zero),
        )


__all__ = [
    "ClosureTotals",
    "Expense",
    "MonthlyClosure",
    "MonthlyClosureClient",
    "MonthlyClosureExpense",
]
