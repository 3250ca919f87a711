"""API routes for Freelance Ledger.

The caller's owner id arrives in the X-Owner-Id header; authentication
happens upstream.
"""

from decimal import Decimal
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Header, status

from freelance_ledger.api.schemas import (
    ClientCreate,
    ClientResponse,
    ClosureClientResponse,
    ClosureCreate,
    ClosureExpenseCreate,
    ClosureExpenseResponse,
    ClosureExpenseUpdate,
    ClosureResponse,
    ClosureSummaryResponse,
    ClosureTotalsResponse,
    ClosureUpdate,
    ExpenseCreate,
    ExpenseResponse,
    HealthResponse,
    HourRecordCreate,
    HourRecordResponse,
    HourRecordUpdate,
    TaskCreate,
    TaskDuplicate,
    TaskResponse,
    TaskTypeCreate,
    TaskTypeResponse,
)
from freelance_ledger.config import get_settings
from freelance_ledger.container import get_billing_service
from freelance_ledger.domain.closures import (
    ClosureTotals,
    MonthlyClosure,
    MonthlyClosureClient,
    MonthlyClosureExpense,
)
from freelance_ledger.domain.ledger import Task
from freelance_ledger.domain.value_objects import TaskStatus, round_money
from freelance_ledger.services.billing import BillingService
from freelance_ledger.services.closure_lifecycle import ClosureSummary
from freelance_ledger.services.closure_reconciler import ExpenseLineInput

health_router = APIRouter(tags=["health"])
client_router = APIRouter(prefix="/clients", tags=["clients"])
task_type_router = APIRouter(prefix="/task-types", tags=["task-types"])
task_router = APIRouter(prefix="/tasks", tags=["tasks"])
hour_record_router = APIRouter(prefix="/hour-records", tags=["hour-records"])
expense_router = APIRouter(prefix="/expenses", tags=["expenses"])
closure_router = APIRouter(prefix="/closures", tags=["closures"])


def get_owner_id(x_owner_id: Annotated[UUID, Header()]) -> UUID:
    return x_owner_id


OwnerId = Annotated[UUID, Depends(get_owner_id)]
Billing = Annotated[BillingService, Depends(get_billing_service)]


# Response conversion helpers
def _money(value: Decimal) -> Decimal:
    return round_money(value, get_settings().money_decimal_places)


def _task_to_response(task: Task) -> TaskResponse:
    return TaskResponse(
        id=task.id,
        client_id=task.client_id,
        task_type_id=task.task_type_id,
        task_number=task.task_number,
        name=task.name,
        description=task.description,
        estimated_hours=task.estimated_hours,
        hours_spent=task.hours_spent,
        creation_date=task.creation_date,
        status=task.status.value,
        tags=task.tags,
    )


def _row_to_response(row: MonthlyClosureClient) -> ClosureClientResponse:
    return ClosureClientResponse(
        id=row.id,
        client_id=row.client_id,
        total_hours=row.total_hours,
        gross_amount=_money(row.gross_amount),
        tax_amount=_money(row.tax_amount),
        net_amount=_money(row.net_amount),
    )


def _line_to_response(line: MonthlyClosureExpense) -> ClosureExpenseResponse:
    return ClosureExpenseResponse(
        id=line.id,
        expense_id=line.expense_id,
        name=line.name,
        description=line.description,
        amount=_money(line.amount),
    )


def _totals_to_response(totals: ClosureTotals) -> ClosureTotalsResponse:
    return ClosureTotalsResponse(
        total_hours=totals.total_hours,
        gross_amount=_money(totals.gross_amount),
        tax_amount=_money(totals.tax_amount),
        net_amount=_money(totals.net_amount),
        total_expenses=_money(totals.total_expenses),
        final_amount=_money(totals.final_amount),
    )


def _closure_fields(closure: MonthlyClosure) -> dict:
    return {
        "id": closure.id,
        "month": closure.month,
        "year": closure.year,
        "hourly_rate": closure.hourly_rate,
        "tax_percentage": closure.tax_percentage,
        "status": closure.status.value,
        "closed_at": closure.closed_at,
        "notes": closure.notes,
        "created_at": closure.created_at,
        "updated_at": closure.updated_at,
        "clients": [_row_to_response(r) for r in closure.clients],
        "expenses": [_line_to_response(e) for e in closure.expenses],
        "totals": _totals_to_response(
            ClosureTotals.from_lines(closure.clients, closure.expenses)
        ),
    }


def _closure_to_response(closure: MonthlyClosure) -> ClosureResponse:
    return ClosureResponse(**_closure_fields(closure))


def _summary_to_response(summary: ClosureSummary) -> ClosureSummaryResponse:
    return ClosureSummaryResponse(
        **_closure_fields(summary.closure),
        pending_tasks_count=summary.pending_tasks_count,
        tasks_without_hours_count=summary.tasks_without_hours_count,
        has_pending_tasks=summary.has_pending_tasks,
        has_tasks_without_hours=summary.has_tasks_without_hours,
    )


def _line_input(body: ClosureExpenseCreate) -> ExpenseLineInput:
    return ExpenseLineInput(
        expense_id=body.expense_id,
        name=body.name,
        amount=body.amount,
        description=body.description,
    )


# Health endpoint
@health_router.get("/health", response_model=HealthResponse)
def health_check() -> HealthResponse:
    return HealthResponse(status="ok", version=get_settings().app_version)


# Catalog endpoints
@client_router.post(
    "", response_model=ClientResponse, status_code=status.HTTP_201_CREATED
)
def create_client(body: ClientCreate, owner_id: OwnerId, service: Billing):
    return service.create_client(owner_id, body.name)


@task_type_router.post(
    "", response_model=TaskTypeResponse, status_code=status.HTTP_201_CREATED
)
def create_task_type(body: TaskTypeCreate, owner_id: OwnerId, service: Billing):
    return service.create_task_type(owner_id, body.name, body.color)


@expense_router.post(
    "", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED
)
def create_expense(body: ExpenseCreate, owner_id: OwnerId, service: Billing):
    return service.create_expense(
        owner_id,
        body.name,
        body.amount,
        description=body.description,
        is_recurring=body.is_recurring,
    )


@expense_router.get("", response_model=list[ExpenseResponse])
def list_expenses(
    owner_id: OwnerId, service: Billing, include_inactive: bool = False
):
    return service.list_expenses(owner_id, include_inactive=include_inactive)


@expense_router.post("/{expense_id}/deactivate", response_model=ExpenseResponse)
def deactivate_expense(expense_id: UUID, owner_id: OwnerId, service: Billing):
    return service.deactivate_expense(owner_id, expense_id)


# Task endpoints
@task_router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
def create_task(body: TaskCreate, owner_id: OwnerId, service: Billing) -> TaskResponse:
    task = service.create_task(
        owner_id,
        body.client_id,
        body.task_type_id,
        body.task_number,
        body.name,
        creation_date=body.creation_date,
        description=body.description,
        estimated_hours=body.estimated_hours,
        tags=body.tags,
        status=TaskStatus(body.status),
    )
    return _task_to_response(task)


@task_router.get("/{task_id}", response_model=TaskResponse)
def get_task(task_id: UUID, owner_id: OwnerId, service: Billing) -> TaskResponse:
    return _task_to_response(service.get_task(owner_id, task_id))


@task_router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(task_id: UUID, owner_id: OwnerId, service: Billing) -> None:
    service.delete_task(owner_id, task_id)


@task_router.post("/{task_id}/toggle-status", response_model=TaskResponse)
def toggle_task_status(
    task_id: UUID, owner_id: OwnerId, service: Billing
) -> TaskResponse:
    return _task_to_response(service.toggle_task_status(owner_id, task_id))


@task_router.post(
    "/{task_id}/duplicate",
    response_model=TaskResponse,
    status_code=status.HTTP_201_CREATED,
)
def duplicate_task(
    task_id: UUID, body: TaskDuplicate, owner_id: OwnerId, service: Billing
) -> TaskResponse:
    task = service.duplicate_task(owner_id, task_id, creation_date=body.creation_date)
    return _task_to_response(task)


@task_router.get("/{task_id}/hour-records", response_model=list[HourRecordResponse])
def list_hour_records(task_id: UUID, owner_id: OwnerId, service: Billing):
    return service.list_hour_records(owner_id, task_id)


# Hour record endpoints
@hour_record_router.post(
    "", response_model=HourRecordResponse, status_code=status.HTTP_201_CREATED
)
def record_hour_entry(body: HourRecordCreate, owner_id: OwnerId, service: Billing):
    return service.record_hour_entry(
        owner_id,
        body.task_id,
        body.work_date,
        body.hours_worked,
        description=body.description,
    )


@hour_record_router.patch("/{record_id}", response_model=HourRecordResponse)
def edit_hour_entry(
    record_id: UUID, body: HourRecordUpdate, owner_id: OwnerId, service: Billing
):
    return service.edit_hour_entry(
        owner_id,
        record_id,
        work_date=body.work_date,
        hours_worked=body.hours_worked,
        description=body.description,
    )


@hour_record_router.delete("/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_hour_entry(record_id: UUID, owner_id: OwnerId, service: Billing) -> None:
    service.remove_hour_entry(owner_id, record_id)


# Closure endpoints
@closure_router.post(
    "", response_model=ClosureResponse, status_code=status.HTTP_201_CREATED
)
def create_closure(
    body: ClosureCreate, owner_id: OwnerId, service: Billing
) -> ClosureResponse:
    closure = service.create_closure(
        owner_id,
        body.month,
        body.year,
        body.hourly_rate,
        body.tax_percentage,
        expenses=[_line_input(e) for e in body.expenses],
        notes=body.notes,
        expense_ids=body.expense_ids,
    )
    return _closure_to_response(closure)


@closure_router.get("", response_model=list[ClosureResponse])
def list_closures(owner_id: OwnerId, service: Billing) -> list[ClosureResponse]:
    return [_closure_to_response(c) for c in service.list_closures(owner_id)]


@closure_router.get("/{closure_id}", response_model=ClosureSummaryResponse)
def get_closure(
    closure_id: UUID, owner_id: OwnerId, service: Billing
) -> ClosureSummaryResponse:
    return _summary_to_response(service.get_closure_summary(owner_id, closure_id))


@closure_router.patch("/{closure_id}", response_model=ClosureResponse)
def update_closure(
    closure_id: UUID, body: ClosureUpdate, owner_id: OwnerId, service: Billing
) -> ClosureResponse:
    closure = service.update_closure(
        owner_id,
        closure_id,
        tax_percentage=body.tax_percentage,
        hourly_rate=body.hourly_rate,
        notes=body.notes,
    )
    return _closure_to_response(closure)


@closure_router.post("/{closure_id}/close", response_model=ClosureResponse)
def close_closure(
    closure_id: UUID, owner_id: OwnerId, service: Billing
) -> ClosureResponse:
    return _closure_to_response(service.close_closure(owner_id, closure_id))


@closure_router.post("/{closure_id}/reopen", response_model=ClosureResponse)
def reopen_closure(
    closure_id: UUID, owner_id: OwnerId, service: Billing
) -> ClosureResponse:
    return _closure_to_response(service.reopen_closure(owner_id, closure_id))


@closure_router.delete("/{closure_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_closure(closure_id: UUID, owner_id: OwnerId, service: Billing) -> None:
    service.delete_closure(owner_id, closure_id)


@closure_router.post(
    "/{closure_id}/expenses",
    response_model=ClosureExpenseResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_closure_expense(
    closure_id: UUID, body: ClosureExpenseCreate, owner_id: OwnerId, service: Billing
) -> ClosureExpenseResponse:
    line = service.add_closure_expense(owner_id, closure_id, _line_input(body))
    return _line_to_response(line)


@closure_router.patch(
    "/{closure_id}/expenses/{line_id}", response_model=ClosureExpenseResponse
)
def update_closure_expense(
    closure_id: UUID,
    line_id: UUID,
    body: ClosureExpenseUpdate,
    owner_id: OwnerId,
    service: Billing,
) -> ClosureExpenseResponse:
    line = service.update_closure_expense(
        owner_id,
        closure_id,
        line_id,
        name=body.name,
        description=body.description,
        amount=body.amount,
    )
    return _line_to_response(line)


@closure_router.delete(
    "/{closure_id}/expenses/{line_id}", status_code=status.HTTP_204_NO_CONTENT
)
def remove_closure_expense(
    closure_id: UUID, line_id: UUID, owner_id: OwnerId, service: Billing
) -> None:
    service.remove_closure_expense(owner_id, closure_id, line_id)
