"""Pydantic v2 schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

MAX_DESCRIPTION = 1000
MAX_NOTES = 5000


class HealthResponse(BaseModel):
    status: str
    version: str


# Catalog Schemas
class ClientCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=255)


class ClientResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    is_active: bool
    created_at: datetime


class TaskTypeCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=255)
    color: str | None = Field(default=None, pattern=r"^#[0-9A-Fa-f]{6}$")


class TaskTypeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    color: str


class ExpenseCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=255)
    amount: Decimal = Field(..., ge=0)
    description: str | None = Field(default=None, max_length=MAX_DESCRIPTION)
    is_recurring: bool = True


class ExpenseResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str | None
    amount: Decimal
    is_recurring: bool
    is_active: bool


# Task Schemas
class TaskCreate(BaseModel):
    """Schema for creating a task. New tasks always start pending."""

    model_config = ConfigDict(str_strip_whitespace=True)

    client_id: UUID
    task_type_id: UUID
    task_number: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)
    creation_date: date | None = None
    description: str | None = Field(default=None, max_length=MAX_DESCRIPTION)
    estimated_hours: Decimal | None = Field(default=None, ge=0)
    tags: list[str] = Field(default_factory=list)
    status: str = Field(default="pending", pattern=r"^(pending|completed)$")


class TaskDuplicate(BaseModel):
    creation_date: date | None = None


class TaskResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    client_id: UUID
    task_type_id: UUID
    task_number: str
    name: str
    description: str | None
    estimated_hours: Decimal | None
    hours_spent: Decimal
    creation_date: date
    status: str
    tags: list[str]


# Hour Record Schemas
class HourRecordCreate(BaseModel):
    task_id: UUID
    work_date: date
    hours_worked: Decimal = Field(..., gt=0)
    description: str | None = Field(default=None, max_length=MAX_DESCRIPTION)


class HourRecordUpdate(BaseModel):
    work_date: date | None = None
    hours_worked: Decimal | None = Field(default=None, gt=0)
    description: str | None = Field(default=None, max_length=MAX_DESCRIPTION)


class HourRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    task_id: UUID
    work_date: date
    hours_worked: Decimal
    description: str | None


# Closure Schemas
class ClosureExpenseCreate(BaseModel):
    """Catalog reference (expense_id, optional amount override) or ad-hoc line."""

    model_config = ConfigDict(str_strip_whitespace=True)

    expense_id: UUID | None = None
    name: str | None = Field(default=None, max_length=255)
    amount: Decimal | None = Field(default=None, ge=0)
    description: str | None = Field(default=None, max_length=MAX_DESCRIPTION)


class ClosureExpenseUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str | None = Field(default=None, min_length=1, max_length=255)
    amount: Decimal | None = Field(default=None, ge=0)
    description: str | None = Field(default=None, max_length=MAX_DESCRIPTION)


class ClosureCreate(BaseModel):
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=2100)
    hourly_rate: Decimal = Field(..., ge=Decimal("0.01"))
    tax_percentage: Decimal = Field(..., ge=0, le=100)
    notes: str | None = Field(default=None, max_length=MAX_NOTES)
    expenses: list[ClosureExpenseCreate] = Field(default_factory=list)
    expense_ids: list[UUID] = Field(default_factory=list)


class ClosureUpdate(BaseModel):
    hourly_rate: Decimal | None = Field(default=None, ge=Decimal("0.01"))
    tax_percentage: Decimal | None = Field(default=None, ge=0, le=100)
    notes: str | None = Field(default=None, max_length=MAX_NOTES)


class ClosureClientResponse(BaseModel):
    id: UUID
    client_id: UUID
    total_hours: Decimal
    gross_amount: Decimal
    tax_amount: Decimal
    net_amount: Decimal


class ClosureExpenseResponse(BaseModel):
    id: UUID
    expense_id: UUID | None
    name: str
    description: str | None
    amount: Decimal


class ClosureTotalsResponse(BaseModel):
    total_hours: Decimal
    gross_amount: Decimal
    tax_amount: Decimal
    net_amount: Decimal
    total_expenses: Decimal
    final_amount: Decimal


class ClosureResponse(BaseModel):
    id: UUID
    month: int
    year: int
    hourly_rate: Decimal
    tax_percentage: Decimal
    status: str
    closed_at: datetime | None
    notes: str | None
    created_at: datetime
    updated_at: datetime
    clients: list[ClosureClientResponse]
    expenses: list[ClosureExpenseResponse]
    totals: ClosureTotalsResponse


class ClosureSummaryResponse(ClosureResponse):
    pending_tasks_count: int
    tasks_without_hours_count: int
    has_pending_tasks: bool
    has_tasks_without_hours: bool
