import datetime
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

import config
from core.database import FrontDeskStore
from core.utils import minutes_between, round_half_up
from models.results import (
    CUSTOMER_NOT_FOUND, FORCE_EXIT, NOT_INSIDE, SYSTEM_ERROR, VALIDATION_ERROR, OperationResult,
)
from services.attendance_service import record_exit

logger = logging.getLogger(__name__)


@dataclass
class OccupantView:
    """A customer currently inside, with their live stay duration."""
    customer_id: str
    name: str
    first_name: str
    last_name: str
    phone: str
    email: str
    membership_type: Optional[str]
    visit_id: str
    entry_time: datetime.datetime
    current_duration_minutes: int
    services: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["entry_time"] = self.entry_time.isoformat()
        return data


@dataclass(frozen=True)
class CapacityStatus:
    current: int
    maximum: int
    percentage: int
    available: int
    near_capacity: bool
    at_capacity: bool

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _matches(view: OccupantView, query: str) -> bool:
    term = query.strip().lower()
    return (
        term in view.name.lower()
        or term in view.first_name.lower()
        or term in view.last_name.lower()
        or term in view.customer_id.lower()
    )


def current_occupants(store: FrontDeskStore, query: Optional[str] = None,
                      service: Optional[str] = None,
                      now: Optional[datetime.datetime] = None) -> List[OccupantView]:
    """
    Lists everyone currently inside, newest entry first.
    Durations are computed against the clock at call time, never cached.

    Args:
        query (str, optional): Case-insensitive match on name or ID.
        service (str, optional): 'gym' or 'spa' to keep only visits using that service.
    """
    now = now or store.now()
    views = []

    for visit in store.ledger.open_visits():
        customer = store.get_customer(visit.customer_id)
        if customer is None:
            logger.error("Open visit %s references unknown customer %s", visit.visit_id, visit.customer_id)
            continue
        views.append(OccupantView(
            customer_id=customer.customer_id,
            name=customer.full_name,
            first_name=customer.first_name,
            last_name=customer.last_name,
            phone=customer.phone,
            email=customer.email,
            membership_type=customer.membership_type,
            visit_id=visit.visit_id,
            entry_time=visit.entry_time,
            current_duration_minutes=max(0, minutes_between(visit.entry_time, now)),
            services=list(visit.services),
        ))

    if query and query.strip():
        views = [v for v in views if _matches(v, query)]
    if service:
        views = [v for v in views if service in v.services]

    views.sort(key=lambda v: v.entry_time, reverse=True)
    return views


def occupancy(store: FrontDeskStore, max_capacity: Optional[int] = None,
              near_ratio: Optional[float] = None, at_ratio: Optional[float] = None) -> CapacityStatus:
    """
    Headcount against facility capacity.
    """
    maximum = max_capacity or config.MAX_CAPACITY
    near = config.NEAR_CAPACITY_RATIO if near_ratio is None else near_ratio
    full = config.AT_CAPACITY_RATIO if at_ratio is None else at_ratio
    count = len(store.ledger.open_visits())

    return CapacityStatus(
        current=count,
        maximum=maximum,
        percentage=round_half_up(count / maximum * 100),
        available=max(0, maximum - count),
        near_capacity=count >= maximum * near,
        at_capacity=count >= maximum * full,
    )


def long_stay_visitors(store: FrontDeskStore, min_minutes: Optional[int] = None,
                       now: Optional[datetime.datetime] = None) -> List[OccupantView]:
    """Visitors inside for at least min_minutes, longest first."""
    threshold = config.LONG_STAY_MINUTES if min_minutes is None else min_minutes
    views = [v for v in current_occupants(store, now=now) if v.current_duration_minutes >= threshold]
    views.sort(key=lambda v: v.current_duration_minutes, reverse=True)
    return views


def force_exit(store: FrontDeskStore, customer_id: str, reason: str = "Manual override",
               now: Optional[datetime.datetime] = None) -> OperationResult:
    """
    Exits a visitor from the occupancy screen, skipping the membership check.
    The reason is stored on the closed visit.
    """
    try:
        now = now or store.now()
        if not customer_id:
            return OperationResult.fail(
                VALIDATION_ERROR, "Customer ID is required", errors={"customer_id": "Customer ID is required"}
            )

        customer = store.get_customer(customer_id)
        if customer is None:
            return OperationResult.fail(CUSTOMER_NOT_FOUND)
        if not customer.current_visit.is_inside:
            return OperationResult.fail(NOT_INSIDE, "Visitor not found or not currently inside")

        logger.warning("Force exit for %s: %s", customer.customer_id, reason)
        return record_exit(store, customer, now, reason=reason, action="force_exit", result_type=FORCE_EXIT)

    except Exception:
        logger.exception("Force exit failed for customer %r", customer_id)
        return OperationResult.fail(SYSTEM_ERROR)


def emergency_evacuation_list(store: FrontDeskStore,
                              now: Optional[datetime.datetime] = None) -> List[Dict[str, Any]]:
    """
    Essential contact info for everyone inside, for use during an evacuation.
    Read-only: nobody is exited by building this list.
    """
    return [
        {
            "customer_id": v.customer_id,
            "name": v.name,
            "phone": v.phone,
            "entry_time": v.entry_time.isoformat(),
            "duration": v.current_duration_minutes,
            "services": ", ".join(v.services),
            "emergency_contact": v.phone,
        }
        for v in current_occupants(store, now=now)
    ]


def visitor_statistics(store: FrontDeskStore, now: Optional[datetime.datetime] = None) -> Dict[str, Any]:
    """
    Live summary of the people inside right now.
    """
    now = now or store.now()
    visitors = current_occupants(store, now=now)
    durations = [v.current_duration_minutes for v in visitors]

    service_stats = {"gym": 0, "spa": 0, "both": 0}
    membership_stats = {t: 0 for t in config.MEMBERSHIP_TYPES}
    for v in visitors:
        if "gym" in v.services and "spa" in v.services:
            service_stats["both"] += 1
        elif "gym" in v.services:
            service_stats["gym"] += 1
        elif "spa" in v.services:
            service_stats["spa"] += 1
        if v.membership_type in membership_stats:
            membership_stats[v.membership_type] += 1

    return {
        "current_count": len(visitors),
        "capacity": occupancy(store).to_dict(),
        "average_duration": round_half_up(sum(durations) / len(durations)) if durations else 0,
        "max_duration": max(durations) if durations else 0,
        "min_duration": min(durations) if durations else 0,
        "service_stats": service_stats,
        "membership_stats": membership_stats,
        "long_stay_visitors": sum(1 for d in durations if d >= config.LONG_STAY_MINUTES),
        "recent_entries": sum(1 for d in durations if d <= 30),
    }
