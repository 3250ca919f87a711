"""Pure recompute steps of the billing reconciliation pipeline.

Each function takes current state plus a delta and returns new state (or a
plan for it) without touching storage. Services compose these inside one
transaction per public operation.
"""

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from uuid import UUID

from freelance_ledger.domain.closures import MonthlyClosure, MonthlyClosureClient
from freelance_ledger.domain.ledger import HourRecord, Task
from freelance_ledger.domain.value_objects import Period

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def hours_by_client(tasks: Iterable[Task]) -> dict[UUID, Decimal]:
    """Total hours_spent per client, in first-seen client order."""
    totals: dict[UUID, Decimal] = defaultdict(lambda: ZERO)
    for task in tasks:
        totals[task.client_id] += task.hours_spent
    return dict(totals)


def distinct_periods(records: Iterable[HourRecord]) -> list[Period]:
    """Work-date periods touched by the records, chronologically."""
    return sorted({r.period for r in records})


@dataclass(frozen=True)
class RowAmounts:
    total_hours: Decimal
    gross_amount: Decimal
    tax_amount: Decimal
    net_amount: Decimal


def compute_row_amounts(
    total_hours: Decimal, hourly_rate: Decimal, tax_percentage: Decimal
) -> RowAmounts:
    """gross = hours x rate, tax = gross x pct / 100, net = gross - tax."""
    gross = total_hours * hourly_rate
    tax = gross * tax_percentage / HUNDRED
    return RowAmounts(
        total_hours=total_hours,
        gross_amount=gross,
        tax_amount=tax,
        net_amount=gross - tax,
    )


class RowChangeKind(str, Enum):
    UPSERT = "upsert"
    DELETE = "delete"
    NOOP = "noop"


@dataclass(frozen=True)
class RowChange:
    kind: RowChangeKind
    row: MonthlyClosureClient | None = None


def plan_row_change(
    closure: MonthlyClosure,
    client_id: UUID,
    existing: MonthlyClosureClient | None,
    total_hours: Decimal,
) -> RowChange:
    """Decide what happens to a (closure, client) row for a new hour total.

    A row exists iff total_hours > 0: a zero total deletes the row (or does
    nothing when there is none), anything else upserts it with amounts
    derived from the closure's current rate and tax.
    """
    if total_hours <= 0:
        if existing is None:
            return RowChange(RowChangeKind.NOOP)
        return RowChange(RowChangeKind.DELETE, existing)

    amounts = compute_row_amounts(
        total_hours, closure.hourly_rate, closure.tax_percentage
    )
    if existing is None:
        row = MonthlyClosureClient(
            closure_id=closure.id,
            client_id=client_id,
            total_hours=amounts.total_hours,
            gross_amount=amounts.gross_amount,
            tax_amount=amounts.tax_amount,
            net_amount=amounts.net_amount,
        )
    else:
        row = MonthlyClosureClient(
            id=existing.id,
            closure_id=existing.closure_id,
            client_id=existing.client_id,
            total_hours=amounts.total_hours,
            gross_amount=amounts.gross_amount,
            tax_amount=amounts.tax_amount,
            net_amount=amounts.net_amount,
        )
    return RowChange(RowChangeKind.UPSERT, row)


def reprice_row(
    row: MonthlyClosureClient, hourly_rate: Decimal, tax_percentage: Decimal
) -> MonthlyClosureClient:
    """Re-derive a row's money from its stored total_hours."""
    amounts = compute_row_amounts(row.total_hours, hourly_rate, tax_percentage)
    return MonthlyClosureClient(
        id=row.id,
        closure_id=row.closure_id,
        client_id=row.client_id,
        total_hours=row.total_hours,
        gross_amount=amounts.gross_amount,
        tax_amount=amounts.tax_amount,
        net_amount=amounts.net_amount,
    )


__all__ = [
    "RowAmounts",
    "RowChange",
    "RowChangeKind",
    "compute_row_amounts",
    "distinct_periods",
    "hours_by_client",
    "plan_row_change",
    "reprice_row",
]
