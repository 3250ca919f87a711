from collections.abc import Iterable
from uuid import UUID

from freelance_ledger.domain.billing import distinct_periods
from freelance_ledger.domain.ledger import HourRecord
from freelance_ledger.domain.value_objects import Period
from freelance_ledger.exceptions import ClosedPeriodError
from freelance_ledger.logging_config import get_logger
from freelance_ledger.repositories.interfaces import ClosureRepository

logger = get_logger(__name__)


class PeriodLockGuard:
    """Vetoes mutations that touch a period whose closure is closed.

    Every distinct period is looked up before the caller mutates anything,
    so a failure always reports all of the closed periods involved.
    """

    def __init__(self, closure_repo: ClosureRepository) -> None:
        self._closure_repo = closure_repo

    def closed_periods(self, owner_id: UUID, periods: Iterable[Period]) -> list[Period]:
        closed: list[Period] = []
        for period in sorted(set(periods)):
            closure = self._closure_repo.get_for_period(
                owner_id, period.month, period.year
            )
            if closure is not None and closure.is_closed:
                closed.append(period)
        return closed

    def ensure_open(
        self,
        owner_id: UUID,
        periods: Iterable[Period],
        action: str = "modify hour records",
    ) -> None:
        closed = self.closed_periods(owner_id, periods)
        if closed:
            labels = [p.label for p in closed]
            logger.warning(
                "period_lock_violation",
                owner_id=str(owner_id),
                action=action,
                periods=labels,
            )
            raise ClosedPeriodError(action, labels)

    def ensure_records_open(
        self,
        owner_id: UUID,
        records: Iterable[HourRecord],
        action: str = "modify hour records",
    ) -> None:
        self.ensure_open(owner_id, distinct_periods(records), action=action)
