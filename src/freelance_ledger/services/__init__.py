from freelance_ledger.services.billing import BillingService
from freelance_ledger.services.closure_lifecycle import (
    ClosureLifecycleManager,
    ClosureSummary,
)
from freelance_ledger.services.closure_reconciler import (
    ClosureReconciler,
    ExpenseLineInput,
)
from freelance_ledger.services.hour_ledger import HourLedgerAggregator
from freelance_ledger.services.period_lock import PeriodLockGuard
from freelance_ledger.services.task_status import TaskStatusGuard

__all__ = [
    "BillingService",
    "ClosureLifecycleManager",
    "ClosureReconciler",
    "ClosureSummary",
    "ExpenseLineInput",
    "HourLedgerAggregator",
    "PeriodLockGuard",
    "TaskStatusGuard",
]
