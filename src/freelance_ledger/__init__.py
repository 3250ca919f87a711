from freelance_ledger.domain.closures import (
    Expense,
    MonthlyClosure,
    MonthlyClosureClient,
    MonthlyClosureExpense,
)
from freelance_ledger.domain.ledger import Client, HourRecord, Task, TaskType
from freelance_ledger.domain.value_objects import ClosureStatus, Period, TaskStatus

__all__ = [
    "Client",
    "ClosureStatus",
    "Expense",
    "HourRecord",
    "MonthlyClosure",
    "MonthlyClosureClient",
    "MonthlyClosureExpense",
    "Period",
    "Task",
    "TaskStatus",
    "TaskType",
]

__version__ = "0.1.0"
