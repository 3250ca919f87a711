"""Tests for the SQLite ledger store."""

import sqlite3
import threading
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from freelance_ledger.domain.closures import (
    Expense,
    MonthlyClosure,
    MonthlyClosureClient,
    MonthlyClosureExpense,
)
from freelance_ledger.domain.ledger import Client
from freelance_ledger.domain.value_objects import ClosureStatus, TaskStatus
from freelance_ledger.exceptions import StorageError, TaskNotFoundError
from freelance_ledger.repositories.sqlite import SQLiteClientRepository, SQLiteDatabase


def _closure(owner_id, month=3, year=2024, **kwargs) -> MonthlyClosure:
    return MonthlyClosure(
        owner_id=owner_id,
        month=month,
        year=year,
        hourly_rate=Decimal("100"),
        tax_percentage=Decimal("10"),
        **kwargs,
    )


class TestSQLiteDatabase:
    def test_initialize_creates_tables(self, db: SQLiteDatabase) -> None:
        conn = db.get_connection()
        tables = {
            row["name"]
            for row in conn.execute(
                "SELECT name FROM sqlite_master WHERE type = 'table'"
            ).fetchall()
        }

        assert {
            "clients",
            "task_types",
            "tasks",
            "hour_records",
            "monthly_closures",
            "monthly_closure_clients",
            "expenses",
            "monthly_closure_expenses",
        } <= tables

    def test_initialize_is_idempotent(self, db: SQLiteDatabase) -> None:
        db.initialize()

    def test_foreign_keys_enabled(self, db: SQLiteDatabase) -> None:
        row = db.get_connection().execute("PRAGMA foreign_keys").fetchone()
        assert row[0] == 1

    def test_transaction_commits(self, db: SQLiteDatabase, client_repo, owner_id) -> None:
        with db.transaction():
            client_repo.add(Client(owner_id=owner_id, name="Acme"))

        assert client_repo.get_by_name(owner_id, "Acme") is not None
        assert not db.in_transaction

    def test_transaction_rolls_back_domain_error(
        self, db: SQLiteDatabase, client_repo, owner_id
    ) -> None:
        task_id = uuid4()
        with pytest.raises(TaskNotFoundError):
            with db.transaction():
                client_repo.add(Client(owner_id=owner_id, name="Acme"))
                raise TaskNotFoundError(task_id)

        assert client_repo.get_by_name(owner_id, "Acme") is None

    def test_transaction_wraps_sqlite_errors(
        self, db: SQLiteDatabase, client_repo, owner_id
    ) -> None:
        with pytest.raises(StorageError) as exc_info:
            with db.transaction():
                client_repo.add(Client(owner_id=owner_id, name="Acme"))
                client_repo.add(Client(owner_id=owner_id, name="Acme"))

        assert isinstance(exc_info.value.__cause__, sqlite3.IntegrityError)
        assert client_repo.get_by_name(owner_id, "Acme") is None

    def test_nested_transaction_joins_outer(
        self, db: SQLiteDatabase, client_repo, owner_id
    ) -> None:
        with pytest.raises(RuntimeError):
            with db.transaction():
                with db.transaction():
                    client_repo.add(Client(owner_id=owner_id, name="Inner"))
                assert db.in_transaction
                raise RuntimeError("boom")

        assert client_repo.get_by_name(owner_id, "Inner") is None

    def test_snapshot_wraps_sqlite_errors(self, db: SQLiteDatabase) -> None:
        with pytest.raises(StorageError) as exc_info:
            with db.snapshot() as conn:
                conn.execute("SELECT * FROM no_such_table")

        assert isinstance(exc_info.value.__cause__, sqlite3.OperationalError)

    def test_snapshot_waits_for_open_transaction(self, owner_id) -> None:
        database = SQLiteDatabase(":memory:", check_same_thread=False)
        database.initialize()
        repo = SQLiteClientRepository(database)
        entered = threading.Event()
        release = threading.Event()
        seen: list = []

        def _write() -> None:
            with pytest.raises(RuntimeError):
                with database.transaction():
                    repo.add(Client(owner_id=owner_id, name="Pending"))
                    entered.set()
                    release.wait(timeout=5)
                    raise RuntimeError("abandoned")

        def _read() -> None:
            with database.snapshot():
                seen.append(repo.get_by_name(owner_id, "Pending"))

        writer = threading.Thread(target=_write)
        reader = threading.Thread(target=_read)
        try:
            writer.start()
            assert entered.wait(timeout=5)
            reader.start()
            reader.join(timeout=0.2)
            assert reader.is_alive()
        finally:
            release.set()
            writer.join(timeout=5)
            reader.join(timeout=5)
            database.close()

        assert seen == [None]

    def test_close_is_safe_twice(self) -> None:
        database = SQLiteDatabase(":memory:")
        database.initialize()
        database.close()
        database.close()


class TestClientRepository:
    def test_add_and_get(self, client_repo, client) -> None:
        loaded = client_repo.get(client.id)

        assert loaded == client

    def test_name_is_unique_per_owner(self, client_repo, client, owner_id) -> None:
        with pytest.raises(sqlite3.IntegrityError):
            client_repo.add(Client(owner_id=owner_id, name=client.name))

    def test_same_name_for_other_owner(self, client_repo, client) -> None:
        client_repo.add(Client(owner_id=uuid4(), name=client.name))

        assert client_repo.get_by_name(client.owner_id, client.name) == client


class TestTaskRepository:
    def test_round_trip_keeps_decimals_and_tags(self, task_repo, make_task) -> None:
        task = make_task(
            hours_spent=Decimal("2.25"),
            estimated_hours=Decimal("8"),
            tags=["backend", "urgent"],
        )

        loaded = task_repo.get(task.id)

        assert loaded.hours_spent == Decimal("2.25")
        assert loaded.estimated_hours == Decimal("8")
        assert loaded.tags == ["backend", "urgent"]
        assert loaded.status == TaskStatus.PENDING

    def test_update(self, task_repo, make_task) -> None:
        task = make_task()
        task.status = TaskStatus.COMPLETED
        task.hours_spent = Decimal("3")

        task_repo.update(task)

        loaded = task_repo.get(task.id)
        assert loaded.status == TaskStatus.COMPLETED
        assert loaded.hours_spent == Decimal("3")

    def test_delete_cascades_hour_records(
        self, task_repo, hour_record_repo, make_task, add_record
    ) -> None:
        task = make_task()
        record = add_record(task, date(2024, 3, 6), "2")

        task_repo.delete(task.id)

        assert task_repo.get(task.id) is None
        assert hour_record_repo.get(record.id) is None

    def test_created_between_uses_half_open_bounds(
        self, task_repo, make_task, owner_id
    ) -> None:
        march_first = make_task(creation_date=date(2024, 3, 1))
        march_last = make_task(creation_date=date(2024, 3, 31))
        make_task(creation_date=date(2024, 4, 1))
        make_task(creation_date=date(2024, 2, 29))

        tasks = task_repo.list_by_owner_created_between(
            owner_id, date(2024, 3, 1), date(2024, 4, 1)
        )

        assert {t.id for t in tasks} == {march_first.id, march_last.id}

    def test_created_between_filters_client(
        self, task_repo, make_task, other_client, owner_id
    ) -> None:
        make_task()
        theirs = make_task(client_id=other_client.id)

        tasks = task_repo.list_by_owner_created_between(
            owner_id, date(2024, 3, 1), date(2024, 4, 1), client_id=other_client.id
        )

        assert [t.id for t in tasks] == [theirs.id]

    def test_counts(self, task_repo, make_task, owner_id) -> None:
        make_task(hours_spent=Decimal("0"))
        make_task(hours_spent=Decimal("1"), status=TaskStatus.COMPLETED)
        make_task(hours_spent=Decimal("2"))
        make_task(creation_date=date(2024, 4, 2))

        start, end = date(2024, 3, 1), date(2024, 4, 1)
        assert task_repo.count_pending_created_between(owner_id, start, end) == 2
        assert task_repo.count_without_hours_created_between(owner_id, start, end) == 1


class TestHourRecordRepository:
    def test_sum_hours_for_task(self, hour_record_repo, make_task, add_record) -> None:
        task = make_task()
        add_record(task, date(2024, 3, 6), "1.5")
        add_record(task, date(2024, 3, 7), "0.25")

        assert hour_record_repo.sum_hours_for_task(task.id) == Decimal("1.75")

    def test_sum_hours_without_records(self, hour_record_repo, make_task) -> None:
        assert hour_record_repo.sum_hours_for_task(make_task().id) == Decimal("0")

    def test_update_and_delete(self, hour_record_repo, make_task, add_record) -> None:
        record = add_record(make_task(), date(2024, 3, 6), "1")
        record.hours_worked = Decimal("4")
        record.work_date = date(2024, 3, 8)

        hour_record_repo.update(record)
        loaded = hour_record_repo.get(record.id)
        assert loaded.hours_worked == Decimal("4")
        assert loaded.work_date == date(2024, 3, 8)

        hour_record_repo.delete(record.id)
        assert hour_record_repo.get(record.id) is None


class TestClosureRepository:
    def test_add_persists_rows_and_lines(self, closure_repo, client, owner_id) -> None:
        closure = _closure(owner_id)
        closure.clients.append(
            MonthlyClosureClient(
                closure_id=closure.id,
                client_id=client.id,
                total_hours=Decimal("5"),
                gross_amount=Decimal("500"),
                tax_amount=Decimal("50"),
                net_amount=Decimal("450"),
            )
        )
        closure.expenses.append(
            MonthlyClosureExpense(
                closure_id=closure.id, name="Hosting", amount=Decimal("20")
            )
        )

        closure_repo.add(closure)
        loaded = closure_repo.get(closure.id)

        assert loaded.status == ClosureStatus.OPEN
        assert loaded.clients == closure.clients
        assert loaded.expenses == closure.expenses

    def test_period_is_unique_per_owner(self, closure_repo, owner_id) -> None:
        closure_repo.add(_closure(owner_id))

        with pytest.raises(sqlite3.IntegrityError):
            closure_repo.add(_closure(owner_id))

    def test_get_for_period(self, closure_repo, owner_id) -> None:
        closure = _closure(owner_id)
        closure_repo.add(closure)

        assert closure_repo.get_for_period(owner_id, 3, 2024).id == closure.id
        assert closure_repo.get_for_period(owner_id, 4, 2024) is None
        assert closure_repo.get_for_period(uuid4(), 3, 2024) is None

    def test_list_newest_first(self, closure_repo, owner_id) -> None:
        closure_repo.add(_closure(owner_id, month=11, year=2023))
        closure_repo.add(_closure(owner_id, month=2, year=2024))
        closure_repo.add(_closure(owner_id, month=12, year=2023))

        periods = [(c.year, c.month) for c in closure_repo.list_by_owner(owner_id)]

        assert periods == [(2024, 2), (2023, 12), (2023, 11)]

    def test_update_header(self, closure_repo, owner_id) -> None:
        closure = _closure(owner_id)
        closure_repo.add(closure)
        closure.close()
        closure.notes = "settled"

        closure_repo.update(closure)
        loaded = closure_repo.get(closure.id)

        assert loaded.is_closed
        assert loaded.closed_at == closure.closed_at
        assert loaded.notes == "settled"

    def test_upsert_row_replaces_by_client(self, closure_repo, client, owner_id) -> None:
        closure = _closure(owner_id)
        closure_repo.add(closure)
        row = MonthlyClosureClient(
            closure_id=closure.id,
            client_id=client.id,
            total_hours=Decimal("1"),
            gross_amount=Decimal("100"),
            tax_amount=Decimal("10"),
            net_amount=Decimal("90"),
        )
        closure_repo.upsert_row(row)
        row.total_hours = Decimal("2")
        row.gross_amount = Decimal("200")

        closure_repo.upsert_row(row)

        rows = list(closure_repo.list_rows(closure.id))
        assert len(rows) == 1
        assert rows[0].total_hours == Decimal("2")
        assert closure_repo.get_row(closure.id, client.id).gross_amount == Decimal("200")

    def test_delete_cascades(self, closure_repo, client, owner_id) -> None:
        closure = _closure(owner_id)
        closure_repo.add(closure)
        closure_repo.upsert_row(
            MonthlyClosureClient(
                closure_id=closure.id,
                client_id=client.id,
                total_hours=Decimal("1"),
                gross_amount=Decimal("100"),
                tax_amount=Decimal("10"),
                net_amount=Decimal("90"),
            )
        )
        line = MonthlyClosureExpense(
            closure_id=closure.id, name="Hosting", amount=Decimal("20")
        )
        closure_repo.add_expense_line(line)

        closure_repo.delete(closure.id)

        assert closure_repo.get(closure.id) is None
        assert list(closure_repo.list_rows(closure.id)) == []
        assert closure_repo.get_expense_line(line.id) is None

    def test_expense_line_crud(self, closure_repo, expense_repo, owner_id) -> None:
        expense = Expense(owner_id=owner_id, name="Software", amount=Decimal("30"))
        expense_repo.add(expense)
        closure = _closure(owner_id)
        closure_repo.add(closure)
        line = MonthlyClosureExpense(
            closure_id=closure.id,
            expense_id=expense.id,
            name=expense.name,
            amount=Decimal("25"),
        )

        closure_repo.add_expense_line(line)
        line.amount = Decimal("35")
        closure_repo.update_expense_line(line)

        loaded = closure_repo.get_expense_line(line.id)
        assert loaded.expense_id == expense.id
        assert loaded.amount == Decimal("35")

        closure_repo.delete_expense_line(line.id)
        assert list(closure_repo.list_expense_lines(closure.id)) == []


class TestExpenseRepository:
    def test_list_hides_inactive_by_default(self, expense_repo, owner_id) -> None:
        active = Expense(owner_id=owner_id, name="Hosting", amount=Decimal("20"))
        inactive = Expense(owner_id=owner_id, name="Old tool", amount=Decimal("5"))
        inactive.deactivate()
        expense_repo.add(active)
        expense_repo.add(inactive)

        assert [e.name for e in expense_repo.list_by_owner(owner_id)] == ["Hosting"]
        assert len(list(expense_repo.list_by_owner(owner_id, include_inactive=True))) == 2

    def test_update(self, expense_repo, owner_id) -> None:
        expense = Expense(owner_id=owner_id, name="Hosting", amount=Decimal("20"))
        expense_repo.add(expense)
        expense.deactivate()

        expense_repo.update(expense)

        assert not expense_repo.get(expense.id).is_active
        assert expense_repo.get_by_name(owner_id, "Hosting").id == expense.id
