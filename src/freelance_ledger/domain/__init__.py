from freelance_ledger.domain.closures import (
    ClosureTotals,
    Expense,
    MonthlyClosure,
    MonthlyClosureClient,
    MonthlyClosureExpense,
)
from freelance_ledger.domain.ledger import Client, HourRecord, Task, TaskType
from freelance_ledger.domain.value_objects import (
    ClosureStatus,
    Period,
    TaskStatus,
    round_money,
)

__all__ = [
    "Client",
    "ClosureStatus",
    "ClosureTotals",
    "Expense",
    "HourRecord",
    "MonthlyClosure",
    "MonthlyClosureClient",
    "MonthlyClosureExpense",
    "Period",
    "Task",
    "TaskStatus",
    "TaskType",
    "round_money",
]
