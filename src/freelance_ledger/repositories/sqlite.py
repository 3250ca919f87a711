"""SQLite implementations of repository interfaces."""

from __future__ import annotations

import json
import sqlite3
import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from uuid import UUID

from freelance_ledger.domain.closures import (
    Expense,
    MonthlyClosure,
    MonthlyClosureClient,
    MonthlyClosureExpense,
)
from freelance_ledger.domain.ledger import Client, HourRecord, Task, TaskType
from freelance_ledger.domain.value_objects import ClosureStatus, TaskStatus
from freelance_ledger.exceptions import StorageError
from freelance_ledger.logging_config import get_logger
from freelance_ledger.repositories.interfaces import (
    ClientRepository,
    ClosureRepository,
    ExpenseRepository,
    HourRecordRepository,
    TaskRepository,
    TaskTypeRepository,
)

logger = get_logger(__name__)


def _dec(value: str | None) -> Decimal | None:
    return Decimal(value) if value is not None else None


def _dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value is not None else None


class SQLiteDatabase:
    """SQLite database connection manager.

    The connection runs in autocommit mode; transaction() opens an explicit
    BEGIN IMMEDIATE transaction so that a whole public operation commits or
    rolls back as one unit. Repositories call commit(), which is a no-op
    while a transaction is open.
    """

    def __init__(
        self, path: str | Path = ":memory:", check_same_thread: bool = True
    ) -> None:
        self._path = str(path)
        self._check_same_thread = check_same_thread
        self._connection: sqlite3.Connection | None = None
        self._depth = 0
        self._lock = threading.RLock()

    def get_connection(self) -> sqlite3.Connection:
        """Get or create the database connection."""
        if self._connection is None:
            self._connection = sqlite3.connect(
                self._path,
                check_same_thread=self._check_same_thread,
                isolation_level=None,
            )
            self._connection.row_factory = sqlite3.Row
            self._connection.execute("PRAGMA foreign_keys = ON")
        return self._connection

    @contextmanager
    def snapshot(self) -> Iterator[sqlite3.Connection]:
        """Hold the connection for a group of reads.

        Writers keep the same lock for their whole transaction, so reads
        inside the block never see another thread's uncommitted work.
        """
        with self._lock:
            try:
                yield self.get_connection()
            except sqlite3.Error as exc:
                logger.error("read_failed", error=str(exc))
                raise StorageError() from exc

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run the enclosed block atomically.

        Nested calls on the same thread join the outermost transaction. Any
        exception rolls the whole transaction back; sqlite3 failures are
        re-raised as StorageError, domain errors propagate unchanged.
        """
        with self._lock:
            conn = self.get_connection()
            if self._depth > 0:
                self._depth += 1
                try:
                    yield conn
                finally:
                    self._depth -= 1
                return

            try:
                conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as exc:
                logger.error("transaction_begin_failed", error=str(exc))
                raise StorageError() from exc

            self._depth = 1
            try:
                yield conn
                conn.execute("COMMIT")
            except sqlite3.Error as exc:
                self._rollback(conn)
                logger.error("transaction_rolled_back", error=str(exc))
                raise StorageError() from exc
            except BaseException:
                self._rollback(conn)
                raise
            finally:
                self._depth = 0

    def _rollback(self, conn: sqlite3.Connection) -> None:
        if conn.in_transaction:
            conn.execute("ROLLBACK")

    def commit(self) -> None:
        if self._depth == 0 and self._connection is not None:
            self._connection.commit()

    def initialize(self) -> None:
        """Create all database tables."""
        conn = self.get_connection()
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS clients (
                id TEXT PRIMARY KEY,
                owner_id TEXT NOT NULL,
                name TEXT NOT NULL,
                is_active INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL,
                UNIQUE(owner_id, name)
            );

            CREATE TABLE IF NOT EXISTS task_types (
                id TEXT PRIMARY KEY,
                owner_id TEXT NOT NULL,
                name TEXT NOT NULL,
                color TEXT NOT NULL,
                created_at TEXT NOT NULL,
                UNIQUE(owner_id, name)
            );

            CREATE TABLE IF NOT EXISTS tasks (
                id TEXT PRIMARY KEY,
                owner_id TEXT NOT NULL,
                client_id TEXT NOT NULL,
                task_type_id TEXT NOT NULL,
                task_number TEXT NOT NULL,
                name TEXT NOT NULL,
                description TEXT,
                estimated_hours TEXT,
                hours_spent TEXT NOT NULL DEFAULT '0',
                creation_date TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'pending',
                tags TEXT NOT NULL DEFAULT '[]',
                FOREIGN KEY (client_id) REFERENCES clients(id),
                FOREIGN KEY (task_type_id) REFERENCES task_types(id)
            );

            CREATE TABLE IF NOT EXISTS hour_records (
                id TEXT PRIMARY KEY,
                owner_id TEXT NOT NULL,
                task_id TEXT NOT NULL,
                work_date TEXT NOT NULL,
                hours_worked TEXT NOT NULL,
                description TEXT,
                created_at TEXT NOT NULL,
                FOREIGN KEY (task_id) REFERENCES tasks(id) ON DELETE CASCADE
            );

            CREATE TABLE IF NOT EXISTS monthly_closures (
                id TEXT PRIMARY KEY,
                owner_id TEXT NOT NULL,
                month INTEGER NOT NULL CHECK (month BETWEEN 1 AND 12),
                year INTEGER NOT NULL,
                hourly_rate TEXT NOT NULL,
                tax_percentage TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'open',
                closed_at TEXT,
                notes TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                UNIQUE(owner_id, month, year)
            );

            CREATE TABLE IF NOT EXISTS monthly_closure_clients (
                id TEXT PRIMARY KEY,
                closure_id TEXT NOT NULL,
                client_id TEXT NOT NULL,
                total_hours TEXT NOT NULL,
                gross_amount TEXT NOT NULL,
                tax_amount TEXT NOT NULL,
                net_amount TEXT NOT NULL,
                UNIQUE(closure_id, client_id),
                FOREIGN KEY (closure_id) REFERENCES monthly_closures(id) ON DELETE CASCADE,
                FOREIGN KEY (client_id) REFERENCES clients(id)
            );

            CREATE TABLE IF NOT EXISTS expenses (
                id TEXT PRIMARY KEY,
                owner_id TEXT NOT NULL,
                name TEXT NOT NULL,
                description TEXT,
                amount TEXT NOT NULL,
                is_recurring INTEGER NOT NULL DEFAULT 1,
                is_active INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL,
                UNIQUE(owner_id, name)
            );

            CREATE TABLE IF NOT EXISTS monthly_closure_expenses (
                id TEXT PRIMARY KEY,
                closure_id TEXT NOT NULL,
                expense_id TEXT,
                name TEXT NOT NULL,
                description TEXT,
                amount TEXT NOT NULL,
                FOREIGN KEY (closure_id) REFERENCES monthly_closures(id) ON DELETE CASCADE,
                FOREIGN KEY (expense_id) REFERENCES expenses(id)
            );

            CREATE INDEX IF NOT EXISTS idx_tasks_owner_creation ON tasks(owner_id, creation_date);
            CREATE INDEX IF NOT EXISTS idx_tasks_client ON tasks(client_id);
            CREATE INDEX IF NOT EXISTS idx_hour_records_task ON hour_records(task_id);
            CREATE INDEX IF NOT EXISTS idx_hour_records_owner_date ON hour_records(owner_id, work_date);
            CREATE INDEX IF NOT EXISTS idx_closure_clients_closure ON monthly_closure_clients(closure_id);
            CREATE INDEX IF NOT EXISTS idx_closure_expenses_closure ON monthly_closure_expenses(closure_id);
            """
        )

    def close(self) -> None:
        """Close the database connection."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None


class SQLiteClientRepository(ClientRepository):
    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def add(self, client: Client) -> None:
        conn = self._db.get_connection()
        conn.execute(
            """
            INSERT INTO clients (id, owner_id, name, is_active, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                str(client.id),
                str(client.owner_id),
                client.name,
                1 if client.is_active else 0,
                client.created_at.isoformat(),
            ),
        )
        self._db.commit()

    def get(self, client_id: UUID) -> Client | None:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM clients WHERE id = ?", (str(client_id),)
        ).fetchone()
        if row is None:
            return None
        return self._row_to_client(row)

    def get_by_name(self, owner_id: UUID, name: str) -> Client | None:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM clients WHERE owner_id = ? AND name = ?",
            (str(owner_id), name),
        ).fetchone()
        if row is None:
            return None
        return self._row_to_client(row)

    def _row_to_client(self, row: sqlite3.Row) -> Client:
        return Client(
            id=UUID(row["id"]),
            owner_id=UUID(row["owner_id"]),
            name=row["name"],
            is_active=bool(row["is_active"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )


class SQLiteTaskTypeRepository(TaskTypeRepository):
    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def add(self, task_type: TaskType) -> None:
        conn = self._db.get_connection()
        conn.execute(
            """
            INSERT INTO task_types (id, owner_id, name, color, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                str(task_type.id),
                str(task_type.owner_id),
                task_type.name,
                task_type.color,
                task_type.created_at.isoformat(),
            ),
        )
        self._db.commit()

    def get(self, task_type_id: UUID) -> TaskType | None:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM task_types WHERE id = ?", (str(task_type_id),)
        ).fetchone()
        if row is None:
            return None
        return self._row_to_task_type(row)

    def get_by_name(self, owner_id: UUID, name: str) -> TaskType | None:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM task_types WHERE owner_id = ? AND name = ?",
            (str(owner_id), name),
        ).fetchone()
        if row is None:
            return None
        return self._row_to_task_type(row)

    def _row_to_task_type(self, row: sqlite3.Row) -> TaskType:
        return TaskType(
            id=UUID(row["id"]),
            owner_id=UUID(row["owner_id"]),
            name=row["name"],
            color=row["color"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )


class SQLiteTaskRepository(TaskRepository):
    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def add(self, task: Task) -> None:
        conn = self._db.get_connection()
        conn.execute(
            """
            INSERT INTO tasks (id, owner_id, client_id, task_type_id, task_number, name,
                               description, estimated_hours, hours_spent, creation_date,
                               status, tags)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                str(task.id),
                str(task.owner_id),
                str(task.client_id),
                str(task.task_type_id),
                task.task_number,
                task.name,
                task.description,
                str(task.estimated_hours) if task.estimated_hours is not None else None,
                str(task.hours_spent),
                task.creation_date.isoformat(),
                task.status.value,
                json.dumps(task.tags),
            ),
        )
        self._db.commit()

    def get(self, task_id: UUID) -> Task | None:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM tasks WHERE id = ?", (str(task_id),)
        ).fetchone()
        if row is None:
            return None
        return self._row_to_task(row)

    def update(self, task: Task) -> None:
        conn = self._db.get_connection()
        conn.execute(
            """
            UPDATE tasks SET
                client_id = ?,
                task_type_id = ?,
                task_number = ?,
                name = ?,
                description = ?,
                estimated_hours = ?,
                hours_spent = ?,
                creation_date = ?,
                status = ?,
                tags = ?
            WHERE id = ?
            """,
            (
                str(task.client_id),
                str(task.task_type_id),
                task.task_number,
                task.name,
                task.description,
                str(task.estimated_hours) if task.estimated_hours is not None else None,
                str(task.hours_spent),
                task.creation_date.isoformat(),
                task.status.value,
                json.dumps(task.tags),
                str(task.id),
            ),
        )
        self._db.commit()

    def delete(self, task_id: UUID) -> None:
        conn = self._db.get_connection()
        conn.execute("DELETE FROM tasks WHERE id = ?", (str(task_id),))
        self._db.commit()

    def list_by_owner_created_between(
        self,
        owner_id: UUID,
        start_date: date,
        end_date: date,
        client_id: UUID | None = None,
    ) -> Iterable[Task]:
        conn = self._db.get_connection()
        query = """
            SELECT * FROM tasks
            WHERE owner_id = ? AND creation_date >= ? AND creation_date < ?
        """
        params: list[str] = [
            str(owner_id),
            start_date.isoformat(),
            end_date.isoformat(),
        ]
        if client_id is not None:
            query += " AND client_id = ?"
            params.append(str(client_id))
        query += " ORDER BY creation_date, task_number"
        rows = conn.execute(query, params).fetchall()
        return [self._row_to_task(row) for row in rows]

    def count_pending_created_between(
        self, owner_id: UUID, start_date: date, end_date: date
    ) -> int:
        conn = self._db.get_connection()
        row = conn.execute(
            """
            SELECT COUNT(*) FROM tasks
            WHERE owner_id = ? AND creation_date >= ? AND creation_date < ?
              AND status = ?
            """,
            (
                str(owner_id),
                start_date.isoformat(),
                end_date.isoformat(),
                TaskStatus.PENDING.value,
            ),
        ).fetchone()
        return int(row[0])

    def count_without_hours_created_between(
        self, owner_id: UUID, start_date: date, end_date: date
    ) -> int:
        # hours_spent is stored as TEXT; compare as Decimal to stay exact
        tasks = self.list_by_owner_created_between(owner_id, start_date, end_date)
        return sum(1 for task in tasks if task.hours_spent <= 0)

    def _row_to_task(self, row: sqlite3.Row) -> Task:
        return Task(
            id=UUID(row["id"]),
            owner_id=UUID(row["owner_id"]),
            client_id=UUID(row["client_id"]),
            task_type_id=UUID(row["task_type_id"]),
            task_number=row["task_number"],
            name=row["name"],
            description=row["description"],
            estimated_hours=_dec(row["estimated_hours"]),
            hours_spent=Decimal(row["hours_spent"]),
            creation_date=date.fromisoformat(row["creation_date"]),
            status=TaskStatus(row["status"]),
            tags=json.loads(row["tags"]),
        )


class SQLiteHourRecordRepository(HourRecordRepository):
    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def add(self, record: HourRecord) -> None:
        conn = self._db.get_connection()
        conn.execute(
            """
            INSERT INTO hour_records (id, owner_id, task_id, work_date, hours_worked,
                                      description, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                str(record.id),
                str(record.owner_id),
                str(record.task_id),
                record.work_date.isoformat(),
                str(record.hours_worked),
                record.description,
                record.created_at.isoformat(),
            ),
        )
        self._db.commit()

    def get(self, record_id: UUID) -> HourRecord | None:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM hour_records WHERE id = ?", (str(record_id),)
        ).fetchone()
        if row is None:
            return None
        return self._row_to_record(row)

    def update(self, record: HourRecord) -> None:
        conn = self._db.get_connection()
        conn.execute(
            """
            UPDATE hour_records SET
                work_date = ?,
                hours_worked = ?,
                description = ?
            WHERE id = ?
            """,
            (
                record.work_date.isoformat(),
                str(record.hours_worked),
                record.description,
                str(record.id),
            ),
        )
        self._db.commit()

    def delete(self, record_id: UUID) -> None:
        conn = self._db.get_connection()
        conn.execute("DELETE FROM hour_records WHERE id = ?", (str(record_id),))
        self._db.commit()

    def list_by_task(self, task_id: UUID) -> Iterable[HourRecord]:
        conn = self._db.get_connection()
        rows = conn.execute(
            "SELECT * FROM hour_records WHERE task_id = ? ORDER BY work_date DESC",
            (str(task_id),),
        ).fetchall()
        return [self._row_to_record(row) for row in rows]

    def sum_hours_for_task(self, task_id: UUID) -> Decimal:
        conn = self._db.get_connection()
        rows = conn.execute(
            "SELECT hours_worked FROM hour_records WHERE task_id = ?",
            (str(task_id),),
        ).fetchall()
        return sum((Decimal(row["hours_worked"]) for row in rows), Decimal("0"))

    def _row_to_record(self, row: sqlite3.Row) -> HourRecord:
        return HourRecord(
            id=UUID(row["id"]),
            owner_id=UUID(row["owner_id"]),
            task_id=UUID(row["task_id"]),
            work_date=date.fromisoformat(row["work_date"]),
            hours_worked=Decimal(row["hours_worked"]),
            description=row["description"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )


class SQLiteClosureRepository(ClosureRepository):
    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def add(self, closure: MonthlyClosure) -> None:
        conn = self._db.get_connection()
        conn.execute(
            """
            INSERT INTO monthly_closures (id, owner_id, month, year, hourly_rate,
                                          tax_percentage, status, closed_at, notes,
                                          created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                str(closure.id),
                str(closure.owner_id),
                closure.month,
                closure.year,
                str(closure.hourly_rate),
                str(closure.tax_percentage),
                closure.status.value,
                closure.closed_at.isoformat() if closure.closed_at else None,
                closure.notes,
                closure.created_at.isoformat(),
                closure.updated_at.isoformat(),
            ),
        )
        for row in closure.clients:
            self._insert_row(conn, row)
        for line in closure.expenses:
            self._insert_expense_line(conn, line)
        self._db.commit()

    def get(self, closure_id: UUID) -> MonthlyClosure | None:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM monthly_closures WHERE id = ?", (str(closure_id),)
        ).fetchone()
        if row is None:
            return None
        return self._load(row)

    def get_for_period(
        self, owner_id: UUID, month: int, year: int
    ) -> MonthlyClosure | None:
        conn = self._db.get_connection()
        row = conn.execute(
            """
            SELECT * FROM monthly_closures
            WHERE owner_id = ? AND month = ? AND year = ?
            """,
            (str(owner_id), month, year),
        ).fetchone()
        if row is None:
            return None
        return self._load(row)

    def list_by_owner(self, owner_id: UUID) -> Iterable[MonthlyClosure]:
        conn = self._db.get_connection()
        rows = conn.execute(
            """
            SELECT * FROM monthly_closures
            WHERE owner_id = ?
            ORDER BY year DESC, month DESC
            """,
            (str(owner_id),),
        ).fetchall()
        return [self._load(row) for row in rows]

    def update(self, closure: MonthlyClosure) -> None:
        conn = self._db.get_connection()
        conn.execute(
            """
            UPDATE monthly_closures SET
                hourly_rate = ?,
                tax_percentage = ?,
                status = ?,
                closed_at = ?,
                notes = ?,
                updated_at = ?
            WHERE id = ?
            """,
            (
                str(closure.hourly_rate),
                str(closure.tax_percentage),
                closure.status.value,
                closure.closed_at.isoformat() if closure.closed_at else None,
                closure.notes,
                closure.updated_at.isoformat(),
                str(closure.id),
            ),
        )
        self._db.commit()

    def delete(self, closure_id: UUID) -> None:
        conn = self._db.get_connection()
        conn.execute("DELETE FROM monthly_closures WHERE id = ?", (str(closure_id),))
        self._db.commit()

    def get_row(
        self, closure_id: UUID, client_id: UUID
    ) -> MonthlyClosureClient | None:
        conn = self._db.get_connection()
        row = conn.execute(
            """
            SELECT * FROM monthly_closure_clients
            WHERE closure_id = ? AND client_id = ?
            """,
            (str(closure_id), str(client_id)),
        ).fetchone()
        if row is None:
            return None
        return self._row_to_closure_client(row)

    def list_rows(self, closure_id: UUID) -> Iterable[MonthlyClosureClient]:
        conn = self._db.get_connection()
        rows = conn.execute(
            """
            SELECT mcc.* FROM monthly_closure_clients mcc
            JOIN clients c ON c.id = mcc.client_id
            WHERE mcc.closure_id = ?
            ORDER BY c.name
            """,
            (str(closure_id),),
        ).fetchall()
        return [self._row_to_closure_client(row) for row in rows]

    def upsert_row(self, row: MonthlyClosureClient) -> None:
        conn = self._db.get_connection()
        conn.execute(
            """
            INSERT INTO monthly_closure_clients (id, closure_id, client_id, total_hours,
                                                 gross_amount, tax_amount, net_amount)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(closure_id, client_id) DO UPDATE SET
                total_hours = excluded.total_hours,
                gross_amount = excluded.gross_amount,
                tax_amount = excluded.tax_amount,
                net_amount = excluded.net_amount
            """,
            self._row_params(row),
        )
        self._db.commit()

    def delete_row(self, row_id: UUID) -> None:
        conn = self._db.get_connection()
        conn.execute(
            "DELETE FROM monthly_closure_clients WHERE id = ?", (str(row_id),)
        )
        self._db.commit()

    def add_expense_line(self, line: MonthlyClosureExpense) -> None:
        conn = self._db.get_connection()
        self._insert_expense_line(conn, line)
        self._db.commit()

    def get_expense_line(self, line_id: UUID) -> MonthlyClosureExpense | None:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM monthly_closure_expenses WHERE id = ?", (str(line_id),)
        ).fetchone()
        if row is None:
            return None
        return self._row_to_expense_line(row)

    def update_expense_line(self, line: MonthlyClosureExpense) -> None:
        conn = self._db.get_connection()
        conn.execute(
            """
            UPDATE monthly_closure_expenses SET
                name = ?,
                description = ?,
                amount = ?
            WHERE id = ?
            """,
            (line.name, line.description, str(line.amount), str(line.id)),
        )
        self._db.commit()

    def delete_expense_line(self, line_id: UUID) -> None:
        conn = self._db.get_connection()
        conn.execute(
            "DELETE FROM monthly_closure_expenses WHERE id = ?", (str(line_id),)
        )
        self._db.commit()

    def list_expense_lines(self, closure_id: UUID) -> Iterable[MonthlyClosureExpense]:
        conn = self._db.get_connection()
        rows = conn.execute(
            """
            SELECT * FROM monthly_closure_expenses
            WHERE closure_id = ?
            ORDER BY name
            """,
            (str(closure_id),),
        ).fetchall()
        return [self._row_to_expense_line(row) for row in rows]

    def _load(self, row: sqlite3.Row) -> MonthlyClosure:
        closure = MonthlyClosure(
            id=UUID(row["id"]),
            owner_id=UUID(row["owner_id"]),
            month=row["month"],
            year=row["year"],
            hourly_rate=Decimal(row["hourly_rate"]),
            tax_percentage=Decimal(row["tax_percentage"]),
            status=ClosureStatus(row["status"]),
            closed_at=_dt(row["closed_at"]),
            notes=row["notes"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )
        closure.clients = list(self.list_rows(closure.id))
        closure.expenses = list(self.list_expense_lines(closure.id))
        return closure

    def _insert_row(self, conn: sqlite3.Connection, row: MonthlyClosureClient) -> None:
        conn.execute(
            """
            INSERT INTO monthly_closure_clients (id, closure_id, client_id, total_hours,
                                                 gross_amount, tax_amount, net_amount)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            self._row_params(row),
        )

    def _row_params(self, row: MonthlyClosureClient) -> tuple[str, ...]:
        return (
            str(row.id),
            str(row.closure_id),
            str(row.client_id),
            str(row.total_hours),
            str(row.gross_amount),
            str(row.tax_amount),
            str(row.net_amount),
        )

    def _insert_expense_line(
        self, conn: sqlite3.Connection, line: MonthlyClosureExpense
    ) -> None:
        conn.execute(
            """
            INSERT INTO monthly_closure_expenses (id, closure_id, expense_id, name,
                                                  description, amount)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                str(line.id),
                str(line.closure_id),
                str(line.expense_id) if line.expense_id else None,
                line.name,
                line.description,
                str(line.amount),
            ),
        )

    def _row_to_closure_client(self, row: sqlite3.Row) -> MonthlyClosureClient:
        return MonthlyClosureClient(
            id=UUID(row["id"]),
            closure_id=UUID(row["closure_id"]),
            client_id=UUID(row["client_id"]),
            total_hours=Decimal(row["total_hours"]),
            gross_amount=Decimal(row["gross_amount"]),
            tax_amount=Decimal(row["tax_amount"]),
            net_amount=Decimal(row["net_amount"]),
        )

    def _row_to_expense_line(self, row: sqlite3.Row) -> MonthlyClosureExpense:
        return MonthlyClosureExpense(
            id=UUID(row["id"]),
            closure_id=UUID(row["closure_id"]),
            expense_id=UUID(row["expense_id"]) if row["expense_id"] else None,
            name=row["name"],
            description=row["description"],
            amount=Decimal(row["amount"]),
        )


class SQLiteExpenseRepository(ExpenseRepository):
    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def add(self, expense: Expense) -> None:
        conn = self._db.get_connection()
        conn.execute(
            """
            INSERT INTO expenses (id, owner_id, name, description, amount, is_recurring,
                                  is_active, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                str(expense.id),
                str(expense.owner_id),
                expense.name,
                expense.description,
                str(expense.amount),
                1 if expense.is_recurring else 0,
                1 if expense.is_active else 0,
                expense.created_at.isoformat(),
            ),
        )
        self._db.commit()

    def get(self, expense_id: UUID) -> Expense | None:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM expenses WHERE id = ?", (str(expense_id),)
        ).fetchone()
        if row is None:
            return None
        return self._row_to_expense(row)

    def get_by_name(self, owner_id: UUID, name: str) -> Expense | None:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM expenses WHERE owner_id = ? AND name = ?",
            (str(owner_id), name),
        ).fetchone()
        if row is None:
            return None
        return self._row_to_expense(row)

    def list_by_owner(
        self, owner_id: UUID, include_inactive: bool = False
    ) -> Iterable[Expense]:
        conn = self._db.get_connection()
        query = "SELECT * FROM expenses WHERE owner_id = ?"
        if not include_inactive:
            query += " AND is_active = 1"
        query += " ORDER BY name"
        rows = conn.execute(query, (str(owner_id),)).fetchall()
        return [self._row_to_expense(row) for row in rows]

    def update(self, expense: Expense) -> None:
        conn = self._db.get_connection()
        conn.execute(
            """
            UPDATE expenses SET
                name = ?,
                description = ?,
                amount = ?,
                is_recurring = ?,
                is_active = ?
            WHERE id = ?
            """,
            (
                expense.name,
                expense.description,
                str(expense.amount),
                1 if expense.is_recurring else 0,
                1 if expense.is_active else 0,
                str(expense.id),
            ),
        )
        self._db.commit()

    def _row_to_expense(self, row: sqlite3.Row) -> Expense:
        return Expense(
            id=UUID(row["id"]),
            owner_id=UUID(row["owner_id"]),
            name=row["name"],
            description=row["description"],
            amount=Decimal(row["amount"]),
            is_recurring=bool(row["is_recurring"]),
            is_active=bool(row["is_active"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )
