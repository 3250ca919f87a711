from collections.abc import Callable, Iterator
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

import pytest

from freelance_ledger.config import Environment, Settings, get_settings
from freelance_ledger.domain.ledger import Client, HourRecord, Task, TaskType
from freelance_ledger.repositories.sqlite import (
    SQLiteClientRepository,
    SQLiteClosureRepository,
    SQLiteDatabase,
    SQLiteExpenseRepository,
    SQLiteHourRecordRepository,
    SQLiteTaskRepository,
    SQLiteTaskTypeRepository,
)
from freelance_ledger.services.billing import BillingService


@pytest.fixture(autouse=True)
def _test_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.setenv("FLG_ENVIRONMENT", "testing")
    monkeypatch.setenv("FLG_SQLITE_PATH", ":memory:")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    return Settings(environment=Environment.TESTING, sqlite_path=":memory:")


@pytest.fixture
def db() -> Iterator[SQLiteDatabase]:
    database = SQLiteDatabase(":memory:")
    database.initialize()
    yield database
    database.close()


@pytest.fixture
def owner_id() -> UUID:
    return uuid4()


@pytest.fixture
def client_repo(db: SQLiteDatabase) -> SQLiteClientRepository:
    return SQLiteClientRepository(db)


@pytest.fixture
def task_type_repo(db: SQLiteDatabase) -> SQLiteTaskTypeRepository:
    return SQLiteTaskTypeRepository(db)


@pytest.fixture
def task_repo(db: SQLiteDatabase) -> SQLiteTaskRepository:
    return SQLiteTaskRepository(db)


@pytest.fixture
def hour_record_repo(db: SQLiteDatabase) -> SQLiteHourRecordRepository:
    return SQLiteHourRecordRepository(db)


@pytest.fixture
def closure_repo(db: SQLiteDatabase) -> SQLiteClosureRepository:
    return SQLiteClosureRepository(db)


@pytest.fixture
def expense_repo(db: SQLiteDatabase) -> SQLiteExpenseRepository:
    return SQLiteExpenseRepository(db)


@pytest.fixture
def client(owner_id: UUID, client_repo: SQLiteClientRepository) -> Client:
    client = Client(owner_id=owner_id, name="Acme Corp")
    client_repo.add(client)
    return client


@pytest.fixture
def other_client(owner_id: UUID, client_repo: SQLiteClientRepository) -> Client:
    client = Client(owner_id=owner_id, name="Globex")
    client_repo.add(client)
    return client


@pytest.fixture
def task_type(owner_id: UUID, task_type_repo: SQLiteTaskTypeRepository) -> TaskType:
    task_type = TaskType(owner_id=owner_id, name="Development")
    task_type_repo.add(task_type)
    return task_type


@pytest.fixture
def make_task(
    owner_id: UUID,
    client: Client,
    task_type: TaskType,
    task_repo: SQLiteTaskRepository,
) -> Callable[..., Task]:
    """Persist a task directly through the repository."""
    counter = iter(range(1, 1000))

    def _make(
        creation_date: date = date(2024, 3, 5),
        client_id: UUID | None = None,
        hours_spent: Decimal = Decimal("0"),
        **kwargs,
    ) -> Task:
        task = Task(
            owner_id=owner_id,
            client_id=client_id or client.id,
            task_type_id=task_type.id,
            task_number=f"T-{next(counter)}",
            name="Build feature",
            creation_date=creation_date,
            hours_spent=hours_spent,
            **kwargs,
        )
        task_repo.add(task)
        return task

    return _make


@pytest.fixture
def add_record(
    owner_id: UUID, hour_record_repo: SQLiteHourRecordRepository
) -> Callable[..., HourRecord]:
    """Persist an hour record directly, bypassing guards and recomputation."""

    def _add(task: Task, work_date: date, hours: str) -> HourRecord:
        record = HourRecord(
            owner_id=owner_id,
            task_id=task.id,
            work_date=work_date,
            hours_worked=Decimal(hours),
        )
        hour_record_repo.add(record)
        return record

    return _add


@pytest.fixture
def service(db: SQLiteDatabase, settings: Settings) -> BillingService:
    return BillingService(db, settings=settings)
