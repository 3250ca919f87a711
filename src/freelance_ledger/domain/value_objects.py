from dataclasses import dataclass
from datetime import UTC, date, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from dateutil.relativedelta import relativedelta  # type: ignore[import-untyped]


class TaskStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class ClosureStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(amount: Decimal, places: int = 2) -> Decimal:
    """Round half-up for presentation; never used mid-computation."""
    return amount.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


@dataclass(frozen=True, slots=True, order=True)
class Period:
    """A (month, year) billing cycle.

    Field order is (year, month) so that sorting is chronological.
    """

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"Invalid month: {self.month}")

    @classmethod
    def from_date(cls, value: date | datetime) -> "Period":
        """Period of a calendar date, taken in UTC.

        Aware datetimes are converted to UTC first; naive datetimes are
        assumed to already be UTC.
        """
        if isinstance(value, datetime):
            if value.tzinfo is not None:
                value = value.astimezone(UTC)
            value = value.date()
        return cls(year=value.year, month=value.month)

    @property
    def start(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def end(self) -> date:
        """First day of the next month (exclusive bound)."""
        return self.start + relativedelta(months=1)

    @property
    def label(self) -> str:
        return f"{self.month:02d}/{self.year}"

    def __str__(self) -> str:
        return self.label


__all__ = [
    "ClosureStatus",
    "Period",
    "TaskStatus",
    "round_money",
    "to_decimal",
]
