import datetime
import logging
from typing import Any, Dict, List, Optional

import config
from core.database import FrontDeskStore
from core.utils import add_months, minutes_between, parse_date, round_half_up
from core.validators import validate_customer_data
from models.customer import Customer, CurrentVisit, Membership
from models.results import (
    CUSTOMER_NOT_FOUND, FOUND, REGISTERED, SYSTEM_ERROR, UPDATED, VALIDATION_ERROR, OperationResult,
)
from services.subscription_service import check_eligibility

logger = logging.getLogger(__name__)


def membership_end_date(membership_type: str, start: datetime.date) -> datetime.date:
    """
    End date for a plan starting on `start`. The plan stops being usable at the start of that day.
    A daily pass ends the next day; monthly and annual plans run N calendar months.
    """
    months = config.MEMBERSHIP_MONTHS[membership_type]
    return add_months(start, months) if months else start + datetime.timedelta(days=1)


# --- REGISTRATION ---

def register_customer(store: FrontDeskStore, data: Dict[str, Any],
                      now: Optional[datetime.datetime] = None) -> OperationResult:
    """
    Registers a new customer.

    Args:
        store (FrontDeskStore): Application state.
        data (dict): first_name, last_name, email, phone, optional customer_id,
                     date_of_birth, address and a membership dict (type, services,
                     optional start_date / end_date).

    Returns:
        OperationResult: 'registered' with the customer, or 'validation_error' with field errors.
    """
    try:
        now = now or store.now()
        errors = validate_customer_data(data, today=now.date())
        if errors:
            return OperationResult.fail(VALIDATION_ERROR, "Please correct the highlighted fields", errors=errors)

        customer_id = str(data.get("customer_id") or "").strip() or store.next_customer_id()
        if store.get_customer(customer_id) is not None:
            return OperationResult.fail(
                VALIDATION_ERROR, "Customer ID already exists", errors={"customer_id": "Customer ID already exists"}
            )

        plan = data["membership"]
        start = parse_date(plan.get("start_date")) or now.date()
        end = parse_date(plan.get("end_date")) or membership_end_date(plan["type"], start)

        customer = Customer(
            customer_id=customer_id,
            first_name=data["first_name"].strip(),
            last_name=data["last_name"].strip(),
            email=data["email"].strip(),
            phone=data["phone"].strip(),
            date_of_birth=parse_date(data.get("date_of_birth")),
            address=dict(data.get("address") or {}),
            membership=Membership(
                type=plan["type"],
                start_date=start,
                end_date=end,
                status="active",
                services=list(plan.get("services") or ["gym"]),
            ),
            current_visit=CurrentVisit(),
            registered_at=now,
        )
        store.add_customer(customer)
        logger.info("Registered customer %s (%s), %s plan until %s",
                    customer_id, customer.full_name, plan["type"], end.isoformat())

        return OperationResult.ok(REGISTERED, customer=customer.to_dict())

    except Exception:
        logger.exception("Registering customer failed")
        return OperationResult.fail(SYSTEM_ERROR)


# --- LOOKUP ---

def customer_profile(store: FrontDeskStore, customer: Customer,
                     now: Optional[datetime.datetime] = None) -> Dict[str, Any]:
    """
    Customer record enriched with subscription status and the live visit duration.
    """
    now = now or store.now()
    profile = customer.to_dict()
    profile["subscription"] = check_eligibility(customer.membership, now).to_dict()

    visit = store.ledger.open_visit_for(customer.customer_id)
    profile["visit_duration"] = minutes_between(visit.entry_time, now) if visit else 0
    return profile


def get_customer(store: FrontDeskStore, customer_id: str) -> OperationResult:
    if not customer_id or not str(customer_id).strip():
        return OperationResult.fail(
            VALIDATION_ERROR, "Customer ID is required", errors={"customer_id": "Customer ID is required"}
        )
    customer = store.get_customer(customer_id)
    if customer is None:
        return OperationResult.fail(CUSTOMER_NOT_FOUND)
    return OperationResult.ok(FOUND, "Customer found", customer=customer_profile(store, customer))


def search_customers(store: FrontDeskStore, query: str) -> OperationResult:
    """
    Case-insensitive search over ID, names, email and phone. Needs at least 2 characters.
    """
    if not query or len(query.strip()) < 2:
        return OperationResult.fail(VALIDATION_ERROR, "Search query must be at least 2 characters",
                                    errors={"query": "Search query must be at least 2 characters"}, customers=[])

    term = query.strip().lower()
    matches = [
        c for c in store.customers.values()
        if term in c.customer_id
        or term in c.first_name.lower()
        or term in c.last_name.lower()
        or term in c.email.lower()
        or term in c.phone
    ]
    return OperationResult.ok(
        FOUND,
        f"{len(matches)} customer(s) found",
        customers=[customer_profile(store, c) for c in matches],
        total=len(matches),
        query=query.strip(),
    )


def customers_by_status(store: FrontDeskStore, status: str) -> List[Customer]:
    return [c for c in store.customers.values() if c.membership and c.membership.status == status]


# --- MEMBERSHIP MANAGEMENT ---

def renew_membership(store: FrontDeskStore, customer_id: str, membership_type: Optional[str] = None,
                     start_date: Optional[datetime.date] = None,
                     now: Optional[datetime.datetime] = None) -> OperationResult:
    """
    Starts a new membership period for an existing customer and marks it active.

    Args:
        membership_type (str, optional): New plan. Defaults to the current one.
        start_date (date, optional): First day of the new period. Defaults to today.
    """
    now = now or store.now()
    customer = store.get_customer(customer_id)
    if customer is None:
        return OperationResult.fail(CUSTOMER_NOT_FOUND)

    plan = membership_type or customer.membership_type or "monthly"
    if plan not in config.MEMBERSHIP_TYPES:
        return OperationResult.fail(
            VALIDATION_ERROR, "Membership type must be daily, monthly or annual",
            errors={"membership_type": "Unknown membership type"},
        )

    start = parse_date(start_date) or now.date()
    services = customer.membership.services if customer.membership else ["gym"]
    customer.membership = Membership(
        type=plan,
        start_date=start,
        end_date=membership_end_date(plan, start),
        status="active",
        services=list(services),
    )
    # Cached period snapshots may count this customer's membership
    store.stats_cache.clear()
    logger.info("Renewed %s: %s plan from %s to %s", customer.customer_id, plan,
                start.isoformat(), customer.membership.end_date.isoformat())

    return OperationResult.ok(UPDATED, "Membership renewed", customer=customer.to_dict())


def set_membership_status(store: FrontDeskStore, customer_id: str, status: str) -> OperationResult:
    """Suspends, reactivates or expires a membership."""
    if status not in config.MEMBERSHIP_STATUSES:
        return OperationResult.fail(
            VALIDATION_ERROR, "Status must be active, expired or suspended",
            errors={"status": "Unknown status"},
        )
    customer = store.get_customer(customer_id)
    if customer is None:
        return OperationResult.fail(CUSTOMER_NOT_FOUND)
    if customer.membership is None:
        return OperationResult.fail(VALIDATION_ERROR, "Customer has no membership",
                                    errors={"membership": "Customer has no membership"})

    previous = customer.membership.status
    customer.membership.status = status
    logger.info("Membership status for %s: %s -> %s", customer.customer_id, previous, status)
    return OperationResult.ok(UPDATED, f"Membership is now {status}", customer=customer.to_dict())


# --- HISTORY ---

def customer_visit_history(store: FrontDeskStore, customer_id: str, limit: int = 10) -> OperationResult:
    """Most recent visits first."""
    if not customer_id:
        return OperationResult.fail(
            VALIDATION_ERROR, "Customer ID is required", errors={"customer_id": "Customer ID is required"}
        )
    visits = sorted(store.ledger.visits_for_customer(str(customer_id).strip()),
                    key=lambda v: v.entry_time, reverse=True)
    shown = visits[:limit]
    return OperationResult.ok(
        FOUND,
        f"{len(shown)} of {len(visits)} visit(s)",
        visits=[v.to_dict() for v in shown],
        total=len(visits),
        showing=len(shown),
    )


def customer_statistics(store: FrontDeskStore, customer_id: str) -> OperationResult:
    customer = store.get_customer(customer_id) if customer_id else None
    if customer is None:
        return OperationResult.fail(CUSTOMER_NOT_FOUND)

    visits = sorted(store.ledger.visits_for_customer(customer.customer_id), key=lambda v: v.entry_time)
    completed = [v for v in visits if v.exit_time is not None]
    total_duration = sum(v.duration or 0 for v in completed)

    usage = {"gym": 0, "spa": 0, "both": 0}
    for visit in visits:
        if visit.service_key:
            usage[visit.service_key] += 1
    # First service with the highest count
    most_used = max(usage, key=usage.get) if visits else None

    return OperationResult.ok(
        FOUND,
        "Customer statistics",
        total_visits=len(visits),
        completed_visits=len(completed),
        currently_inside=customer.current_visit.is_inside,
        total_duration=total_duration,
        average_duration=round_half_up(total_duration / len(completed)) if completed else 0,
        most_used_service=most_used,
        service_usage=usage,
        first_visit=visits[0].date if visits else None,
        last_visit=visits[-1].date if visits else None,
    )
