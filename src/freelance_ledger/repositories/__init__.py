from freelance_ledger.repositories.interfaces import (
    ClientRepository,
    ClosureRepository,
    ExpenseRepository,
    HourRecordRepository,
    TaskRepository,
    TaskTypeRepository,
)
from freelance_ledger.repositories.sqlite import (
    SQLiteClientRepository,
    SQLiteClosureRepository,
    SQLiteDatabase,
    SQLiteExpenseRepository,
    SQLiteHourRecordRepository,
    SQLiteTaskRepository,
    SQLiteTaskTypeRepository,
)

__all__ = [
    "ClientRepository",
    "ClosureRepository",
    "ExpenseRepository",
    "HourRecordRepository",
    "SQLiteClientRepository",
    "SQLiteClosureRepository",
    "SQLiteDatabase",
    "SQLiteExpenseRepository",
    "SQLiteHourRecordRepository",
    "SQLiteTaskRepository",
    "SQLiteTaskTypeRepository",
    "TaskRepository",
    "TaskTypeRepository",
]
