"""Tests for PeriodLockGuard."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from freelance_ledger.domain.closures import MonthlyClosure
from freelance_ledger.domain.ledger import HourRecord
from freelance_ledger.domain.value_objects import Period
from freelance_ledger.exceptions import ClosedPeriodError, ValidationError
from freelance_ledger.services.period_lock import PeriodLockGuard


@pytest.fixture
def guard(closure_repo) -> PeriodLockGuard:
    return PeriodLockGuard(closure_repo)


@pytest.fixture
def add_closure(closure_repo, owner_id):
    def _add(month: int, year: int = 2024, closed: bool = False) -> MonthlyClosure:
        closure = MonthlyClosure(
            owner_id=owner_id,
            month=month,
            year=year,
            hourly_rate=Decimal("100"),
            tax_percentage=Decimal("10"),
        )
        if closed:
            closure.close()
        closure_repo.add(closure)
        return closure

    return _add


MARCH = Period(year=2024, month=3)
APRIL = Period(year=2024, month=4)


class TestEnsureOpen:
    def test_no_closure_is_open(self, guard, owner_id) -> None:
        guard.ensure_open(owner_id, [MARCH])

    def test_open_closure_passes(self, guard, add_closure, owner_id) -> None:
        add_closure(3)
        guard.ensure_open(owner_id, [MARCH])

    def test_closed_closure_fails_naming_period(
        self, guard, add_closure, owner_id
    ) -> None:
        add_closure(3, closed=True)

        with pytest.raises(ClosedPeriodError, match="03/2024") as exc_info:
            guard.ensure_open(owner_id, [MARCH], action="record hours")

        assert isinstance(exc_info.value, ValidationError)
        assert exc_info.value.status_code == 422
        assert exc_info.value.context["action"] == "record hours"

    def test_reports_every_closed_period(self, guard, add_closure, owner_id) -> None:
        add_closure(3, closed=True)
        add_closure(4, closed=True)
        add_closure(5)

        with pytest.raises(ClosedPeriodError) as exc_info:
            guard.ensure_open(
                owner_id, [APRIL, Period(year=2024, month=5), MARCH, APRIL]
            )

        assert exc_info.value.periods == ["03/2024", "04/2024"]
        assert "03/2024" in exc_info.value.message

    def test_other_owner_lock_does_not_apply(self, guard, closure_repo) -> None:
        closure = MonthlyClosure(
            owner_id=uuid4(),
            month=3,
            year=2024,
            hourly_rate=Decimal("100"),
            tax_percentage=Decimal("0"),
        )
        closure.close()
        closure_repo.add(closure)

        guard.ensure_open(uuid4(), [MARCH])

    def test_empty_periods(self, guard, owner_id) -> None:
        guard.ensure_open(owner_id, [])


class TestEnsureRecordsOpen:
    def test_uses_work_date_period(self, guard, add_closure, owner_id) -> None:
        add_closure(4, closed=True)
        record = HourRecord(
            owner_id=owner_id,
            task_id=uuid4(),
            work_date=date(2024, 4, 30),
            hours_worked=Decimal("1"),
        )

        with pytest.raises(ClosedPeriodError, match="04/2024"):
            guard.ensure_records_open(owner_id, [record])

    def test_closed_periods_helper(self, guard, add_closure, owner_id) -> None:
        add_closure(4, closed=True)

        assert guard.closed_periods(owner_id, [MARCH, APRIL]) == [APRIL]
