"""Tests for the pure recompute steps in domain.billing."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

from freelance_ledger.domain.billing import (
    RowChangeKind,
    compute_row_amounts,
    distinct_periods,
    hours_by_client,
    plan_row_change,
    reprice_row,
)
from freelance_ledger.domain.closures import MonthlyClosure, MonthlyClosureClient
from freelance_ledger.domain.ledger import HourRecord, Task
from freelance_ledger.domain.value_objects import Period


def _record(work_date: date, hours: str) -> HourRecord:
    return HourRecord(
        owner_id=uuid4(),
        task_id=uuid4(),
        work_date=work_date,
        hours_worked=Decimal(hours),
    )


def _task(client_id, hours: str) -> Task:
    return Task(
        owner_id=uuid4(),
        client_id=client_id,
        task_type_id=uuid4(),
        task_number="T-1",
        name="Task",
        creation_date=date(2024, 3, 1),
        hours_spent=Decimal(hours),
    )


def _closure(rate: str = "100", tax: str = "10") -> MonthlyClosure:
    return MonthlyClosure(
        owner_id=uuid4(),
        month=3,
        year=2024,
        hourly_rate=Decimal(rate),
        tax_percentage=Decimal(tax),
    )


class TestHoursByClient:
    def test_groups_by_client(self) -> None:
        a, b = uuid4(), uuid4()
        totals = hours_by_client([_task(a, "2"), _task(b, "1.5"), _task(a, "3")])

        assert totals == {a: Decimal("5"), b: Decimal("1.5")}


class TestDistinctPeriods:
    def test_deduplicates_and_sorts(self) -> None:
        records = [
            _record(date(2024, 4, 2), "1"),
            _record(date(2024, 3, 9), "1"),
            _record(date(2024, 4, 20), "1"),
        ]

        assert distinct_periods(records) == [
            Period(year=2024, month=3),
            Period(year=2024, month=4),
        ]


class TestComputeRowAmounts:
    def test_gross_tax_net(self) -> None:
        amounts = compute_row_amounts(Decimal("5"), Decimal("100"), Decimal("10"))

        assert amounts.gross_amount == Decimal("500")
        assert amounts.tax_amount == Decimal("50")
        assert amounts.net_amount == Decimal("450")

    def test_keeps_full_precision(self) -> None:
        amounts = compute_row_amounts(
            Decimal("1.333"), Decimal("99.99"), Decimal("12.5")
        )

        assert amounts.gross_amount == Decimal("1.333") * Decimal("99.99")
        assert amounts.net_amount == amounts.gross_amount - amounts.tax_amount

    def test_zero_tax(self) -> None:
        amounts = compute_row_amounts(Decimal("2"), Decimal("50"), Decimal("0"))
        assert amounts.net_amount == amounts.gross_amount == Decimal("100")


class TestPlanRowChange:
    def test_zero_hours_without_row_is_noop(self) -> None:
        change = plan_row_change(_closure(), uuid4(), None, Decimal("0"))
        assert change.kind == RowChangeKind.NOOP
        assert change.row is None

    def test_zero_hours_with_row_deletes(self) -> None:
        closure = _closure()
        existing = MonthlyClosureClient(
            closure_id=closure.id,
            client_id=uuid4(),
            total_hours=Decimal("2"),
            gross_amount=Decimal("200"),
            tax_amount=Decimal("20"),
            net_amount=Decimal("180"),
        )

        change = plan_row_change(closure, existing.client_id, existing, Decimal("0"))

        assert change.kind == RowChangeKind.DELETE
        assert change.row is existing

    def test_new_row(self) -> None:
        closure = _closure()
        client_id = uuid4()

        change = plan_row_change(closure, client_id, None, Decimal("5"))

        assert change.kind == RowChangeKind.UPSERT
        assert change.row.closure_id == closure.id
        assert change.row.client_id == client_id
        assert change.row.net_amount == Decimal("450")

    def test_existing_row_keeps_its_id(self) -> None:
        closure = _closure()
        existing = MonthlyClosureClient(
            closure_id=closure.id,
            client_id=uuid4(),
            total_hours=Decimal("5"),
            gross_amount=Decimal("500"),
            tax_amount=Decimal("50"),
            net_amount=Decimal("450"),
        )

        change = plan_row_change(closure, existing.client_id, existing, Decimal("6"))

        assert change.kind == RowChangeKind.UPSERT
        assert change.row.id == existing.id
        assert change.row.gross_amount == Decimal("600")


class TestRepriceRow:
    def test_keeps_hours_and_reprices(self) -> None:
        row = MonthlyClosureClient(
            closure_id=uuid4(),
            client_id=uuid4(),
            total_hours=Decimal("5"),
            gross_amount=Decimal("500"),
            tax_amount=Decimal("50"),
            net_amount=Decimal("450"),
        )

        repriced = reprice_row(row, Decimal("120"), Decimal("10"))

        assert repriced.id == row.id
        assert repriced.total_hours == Decimal("5")
        assert repriced.gross_amount == Decimal("600")
        assert repriced.tax_amount == Decimal("60")
        assert repriced.net_amount == Decimal("540")
