"""Domain exception hierarchy for Freelance Ledger.

All domain-specific exceptions inherit from FreelanceLedgerError. The three
request-level families (NotFoundError, ConflictError, ValidationError) are
synchronous and non-retryable; StorageError marks infrastructure failures
that are reported to callers without detail.
"""

from collections.abc import Iterable
from typing import Any
from uuid import UUID


class FreelanceLedgerError(Exception):
    """Base exception for all Freelance Ledger errors.

    Includes an error_code and status_code for API responses plus
    extra context for logging.
    """

    error_code: str = "FLG_ERROR"
    status_code: int = 500

    def __init__(
        self,
        message: str,
        *,
        error_code: str | None = None,
        status_code: int | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code
        if status_code:
            self.status_code = status_code
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.error_code,
            "message": self.message,
            "context": self.context,
        }


# =============================================================================
# Not Found Errors
# =============================================================================


class NotFoundError(FreelanceLedgerError):
    """Referenced entity is absent or not owned by the caller."""

    error_code = "NOT_FOUND"
    status_code = 404
    resource = "Resource"

    def __init__(self, resource_id: UUID | str) -> None:
        super().__init__(
            f"{self.resource} not found: {resource_id}",
            context={"id": str(resource_id)},
        )


class ClientNotFoundError(NotFoundError):
    error_code = "CLIENT_NOT_FOUND"
    resource = "Client"


class TaskTypeNotFoundError(NotFoundError):
    error_code = "TASK_TYPE_NOT_FOUND"
    resource = "Task type"


class TaskNotFoundError(NotFoundError):
    error_code = "TASK_NOT_FOUND"
    resource = "Task"


class HourRecordNotFoundError(NotFoundError):
    error_code = "HOUR_RECORD_NOT_FOUND"
    resource = "Hour record"


class ClosureNotFoundError(NotFoundError):
    error_code = "CLOSURE_NOT_FOUND"
    resource = "Monthly closure"


class ExpenseNotFoundError(NotFoundError):
    error_code = "EXPENSE_NOT_FOUND"
    resource = "Expense"


class ClosureExpenseNotFoundError(NotFoundError):
    error_code = "CLOSURE_EXPENSE_NOT_FOUND"
    resource = "Closure expense"


# =============================================================================
# Conflict Errors
# =============================================================================


class ConflictError(FreelanceLedgerError):
    """Raised when a uniqueness rule would be violated."""

    error_code = "CONFLICT"
    status_code = 409


class ClosureExistsError(ConflictError):
    """Raised when a closure already exists for the owner's period."""

    error_code = "CLOSURE_EXISTS"

    def __init__(self, month: int, year: int) -> None:
        super().__init__(
            f"A monthly closure already exists for {month:02d}/{year}",
            context={"month": month, "year": year},
        )


class DuplicateNameError(ConflictError):
    """Raised when an owner already has a client/task type/expense with a name."""

    error_code = "DUPLICATE_NAME"

    def __init__(self, kind: str, name: str) -> None:
        super().__init__(
            f"{kind} already exists: {name}",
            context={"kind": kind, "name": name},
        )


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(FreelanceLedgerError):
    """Base exception for bad values and business-rule violations."""

    error_code = "VALIDATION_ERROR"
    status_code = 422


class InvalidValueError(ValidationError):
    """Raised when a value is outside its permitted range."""

    error_code = "INVALID_VALUE"

    def __init__(self, field: str, value: Any, reason: str) -> None:
        super().__init__(
            f"Invalid {field} '{value}': {reason}",
            context={"field": field, "value": str(value), "reason": reason},
        )


class FutureWorkDateError(ValidationError):
    """Raised when an hour record is dated after today and that is not allowed."""

    error_code = "FUTURE_WORK_DATE"

    def __init__(self, work_date: Any) -> None:
        super().__init__(
            f"Work date {work_date} is in the future; enable future hour records "
            "in settings to allow it",
            context={"work_date": str(work_date)},
        )


class ClosedPeriodError(ValidationError):
    """Raised when an operation touches a period whose closure is closed."""

    error_code = "CLOSED_PERIOD"

    def __init__(self, action: str, periods: Iterable[str]) -> None:
        labels = list(periods)
        super().__init__(
            f"Cannot {action}: hours fall in an already closed period ({labels[0]})",
            context={"action": action, "periods": labels},
        )
        self.periods = labels


class TaskHasNoHoursError(ValidationError):
    """Raised when completing a task that has no recorded hours."""

    error_code = "TASK_HAS_NO_HOURS"

    def __init__(self, task_id: UUID | str | None = None) -> None:
        super().__init__(
            "Cannot complete a task without recorded hours",
            context={"task_id": str(task_id)} if task_id else None,
        )


class CompletedTaskDeletionError(ValidationError):
    error_code = "COMPLETED_TASK_DELETION"

    def __init__(self, task_id: UUID | str) -> None:
        super().__init__(
            "Cannot delete a completed task",
            context={"task_id": str(task_id)},
        )


class ClosurePreconditionError(ValidationError):
    """Raised when a closure cannot be closed because of unfinished tasks."""

    error_code = "CLOSURE_PRECONDITION_FAILED"

    def __init__(self, pending_tasks: int, tasks_without_hours: int) -> None:
        problems = []
        if pending_tasks:
            problems.append(f"{pending_tasks} pending task(s)")
        if tasks_without_hours:
            problems.append(f"{tasks_without_hours} task(s) without recorded hours")
        super().__init__(
            f"Cannot close the monthly closure. There are: {' and '.join(problems)}.",
            context={
                "pending_tasks": pending_tasks,
                "tasks_without_hours": tasks_without_hours,
            },
        )
        self.pending_tasks = pending_tasks
        self.tasks_without_hours = tasks_without_hours


class ClosureClosedError(ValidationError):
    """Raised when mutating a closure that is already closed."""

    error_code = "CLOSURE_CLOSED"

    def __init__(self, closure_id: UUID | str, action: str = "modify") -> None:
        super().__init__(
            f"Cannot {action} a closed monthly closure",
            context={"closure_id": str(closure_id), "action": action},
        )


class ClosureAlreadyOpenError(ValidationError):
    error_code = "CLOSURE_ALREADY_OPEN"

    def __init__(self, closure_id: UUID | str) -> None:
        super().__init__(
            "Monthly closure is already open",
            context={"closure_id": str(closure_id)},
        )


# =============================================================================
# Storage Errors
# =============================================================================


class StorageError(FreelanceLedgerError):
    """Raised when the underlying store fails; always fatal to the request."""

    error_code = "STORAGE_ERROR"
    status_code = 500

    def __init__(self, message: str = "Storage operation failed") -> None:
        super().__init__(message)
