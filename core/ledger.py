import datetime
import logging
from typing import Dict, Iterable, Iterator, List, Optional, Union

from core.utils import parse_date
from models.visit import Visit

logger = logging.getLogger(__name__)


class LedgerError(Exception):
    """Raised when a ledger mutation would break its invariants."""


class VisitLedger:
    """
    Append-only collection of visit records and the source of truth for who is inside.

    Invariants:
    - at most one open visit per customer
    - a visit is only ever updated once, by closing it
    - visit IDs are never reused within the process
    """

    def __init__(self) -> None:
        self._visits: List[Visit] = []
        self._by_id: Dict[str, Visit] = {}
        self._open: Dict[str, Visit] = {}
        self._next_number = 1

    def __len__(self) -> int:
        return len(self._visits)

    def __iter__(self) -> Iterator[Visit]:
        return iter(list(self._visits))

    def _next_id(self) -> str:
        while True:
            visit_id = f"visit{self._next_number:03d}"
            self._next_number += 1
            if visit_id not in self._by_id:
                return visit_id

    def load(self, visits: Iterable[Visit]) -> None:
        """
        Adds previously recorded visits (seed data). Open visits are indexed,
        and the ID counter is moved past any numeric IDs already present.
        """
        for visit in visits:
            if visit.visit_id in self._by_id:
                raise LedgerError(f"Duplicate visit id {visit.visit_id}")
            if visit.is_open and visit.customer_id in self._open:
                raise LedgerError(f"Customer {visit.customer_id} has more than one open visit")
            self._visits.append(visit)
            self._by_id[visit.visit_id] = visit
            if visit.is_open:
                self._open[visit.customer_id] = visit

            digits = visit.visit_id.replace("visit", "")
            if digits.isdigit():
                self._next_number = max(self._next_number, int(digits) + 1)

    # --- MUTATIONS ---

    def open_visit(self, customer_id: str, entry_time: datetime.datetime, services: List[str],
                   membership_type: Optional[str] = None,
                   override_reason: Optional[str] = None) -> Visit:
        if customer_id in self._open:
            raise LedgerError(f"Customer {customer_id} already has an open visit")

        visit = Visit(
            visit_id=self._next_id(),
            customer_id=customer_id,
            entry_time=entry_time,
            services=list(services),
            membership_type=membership_type,
            override_reason=override_reason,
        )
        self._visits.append(visit)
        self._by_id[visit.visit_id] = visit
        self._open[customer_id] = visit
        logger.debug("Opened %s for customer %s", visit.visit_id, customer_id)
        return visit

    def close_visit(self, visit_id: str, exit_time: datetime.datetime,
                    reason: Optional[str] = None) -> Visit:
        visit = self._by_id.get(visit_id)
        if visit is None:
            raise LedgerError(f"Visit {visit_id} not found")
        if not visit.is_open:
            raise LedgerError(f"Visit {visit_id} is already closed")
        if exit_time < visit.entry_time:
            raise LedgerError(f"Exit time precedes entry time for visit {visit_id}")

        visit.exit_time = exit_time
        visit.duration = int((exit_time - visit.entry_time).total_seconds() // 60)
        visit.exit_reason = reason
        del self._open[visit.customer_id]
        logger.debug("Closed %s after %s min", visit_id, visit.duration)
        return visit

    # --- QUERIES ---

    def get(self, visit_id: str) -> Optional[Visit]:
        return self._by_id.get(visit_id)

    def open_visit_for(self, customer_id: str) -> Optional[Visit]:
        return self._open.get(customer_id)

    def open_visits(self) -> List[Visit]:
        return list(self._open.values())

    def visits_on(self, day: Union[datetime.date, str]) -> List[Visit]:
        key = parse_date(day).isoformat()
        return [v for v in self._visits if v.date == key]

    def visits_in_range(self, start: Union[datetime.date, str],
                        end: Union[datetime.date, str]) -> List[Visit]:
        """Visits whose partition date falls within [start, end], both inclusive."""
        first, last = parse_date(start), parse_date(end)
        return [v for v in self._visits if first <= v.entry_time.date() <= last]

    def visits_for_customer(self, customer_id: str) -> List[Visit]:
        return [v for v in self._visits if v.customer_id == customer_id]
