import datetime
import logging
from collections import Counter
from typing import Any, Dict, List, Optional

import config
from core.database import FrontDeskStore
from core.utils import parse_date
from core.validators import validate_barcode
from models.customer import Customer, CurrentVisit
from models.results import (
    ALREADY_INSIDE, CUSTOMER_NOT_FOUND, EMERGENCY_OVERRIDE, ENTRY, EXIT,
    NO_ACTIVE_VISIT, NOT_INSIDE, POSSIBLE_DUPLICATE, SUBSCRIPTION_INVALID,
    SYSTEM_ERROR, VALIDATION_ERROR, OperationResult,
)
from models.visit import ScanRecord
from services.subscription_service import check_eligibility

logger = logging.getLogger(__name__)


# --- STATE TRANSITIONS ---
# The only two places that touch the ledger and customer.current_visit.
# The ledger is written first; the cached flag follows only if that succeeded.

def record_entry(store: FrontDeskStore, customer: Customer, services: List[str],
                 now: datetime.datetime, override_reason: Optional[str] = None) -> OperationResult:
    """
    Opens a visit for a customer who is outside and marks them inside.
    """
    existing = store.ledger.open_visit_for(customer.customer_id)
    if existing is not None:
        logger.error(
            "Data integrity fault: customer %s marked outside but %s is open; resyncing flag",
            customer.customer_id, existing.visit_id,
        )
        customer.current_visit = CurrentVisit(is_inside=True, entry_time=existing.entry_time)
        return OperationResult.fail(
            ALREADY_INSIDE, "Customer already has an open visit", visit=existing.to_dict()
        )

    visit = store.ledger.open_visit(
        customer.customer_id,
        now,
        services,
        membership_type=customer.membership_type,
        override_reason=override_reason,
    )
    customer.current_visit = CurrentVisit(is_inside=True, entry_time=now, exit_time=None)

    _add_to_history(store, customer, "emergency_entry" if override_reason else "entry", now,
                    services=services, reason=override_reason, is_override=bool(override_reason))
    logger.info("Entry: %s (%s) services=%s", customer.customer_id, customer.full_name, ",".join(services))

    return OperationResult.ok(
        ENTRY,
        customer=customer.to_dict(),
        visit=visit.to_dict(),
        entry_time=now.isoformat(),
        services=list(services),
    )


def record_exit(store: FrontDeskStore, customer: Customer, now: datetime.datetime,
                reason: Optional[str] = None, action: str = "exit",
                result_type: str = EXIT) -> OperationResult:
    """
    Closes the customer's open visit and marks them outside.
    If the customer is flagged inside but the ledger has no open visit, the flag is
    reset and a no_active_visit outcome is returned.
    """
    visit = store.ledger.open_visit_for(customer.customer_id)
    if visit is None:
        logger.error(
            "Data integrity fault: customer %s marked inside with no open visit; resetting flag",
            customer.customer_id,
        )
        customer.current_visit = CurrentVisit(
            is_inside=False, entry_time=None, exit_time=customer.current_visit.exit_time
        )
        return OperationResult.fail(
            NO_ACTIVE_VISIT, "No active visit found. The customer's status has been reset."
        )

    store.ledger.close_visit(visit.visit_id, now, reason=reason)
    customer.current_visit = CurrentVisit(is_inside=False, entry_time=None, exit_time=now)

    _add_to_history(store, customer, action, now, services=visit.services, duration=visit.duration,
                    reason=reason, is_override=action != "exit")
    logger.info("Exit: %s (%s) after %d min", customer.customer_id, customer.full_name, visit.duration)

    return OperationResult.ok(
        result_type,
        customer=customer.to_dict(),
        visit=visit.to_dict(),
        entry_time=visit.entry_time.isoformat(),
        exit_time=now.isoformat(),
        duration=visit.duration,
        reason=reason,
    )


# --- SCAN HISTORY ---

def _add_to_history(store: FrontDeskStore, customer: Customer, action: str, timestamp: datetime.datetime,
                    services: Optional[List[str]] = None, duration: Optional[int] = None,
                    reason: Optional[str] = None, is_override: bool = False) -> None:
    store.scan_history.append(ScanRecord(
        scan_id=store.next_scan_id(),
        customer_id=customer.customer_id,
        customer_name=customer.full_name,
        action=action,
        timestamp=timestamp,
        services=list(services or []),
        duration=duration,
        reason=reason,
        is_override=is_override,
    ))
    # Keep only the most recent entries
    if len(store.scan_history) > config.SCAN_HISTORY_LIMIT:
        del store.scan_history[:-config.SCAN_HISTORY_LIMIT]


def is_duplicate_scan(store: FrontDeskStore, customer_id: str, now: datetime.datetime,
                      window_seconds: Optional[int] = None) -> bool:
    """
    True if the same customer was scanned within the window (likely a double tap).
    Advisory only: callers flag it, they never reject on it.
    """
    window = datetime.timedelta(
        seconds=config.DUPLICATE_SCAN_WINDOW_SECONDS if window_seconds is None else window_seconds
    )
    return any(
        record.customer_id == customer_id and datetime.timedelta(0) <= now - record.timestamp < window
        for record in store.scan_history
    )


def get_scan_history(store: FrontDeskStore, limit: int = 10) -> List[ScanRecord]:
    """Most recent scans first."""
    return list(reversed(store.scan_history[-limit:])) if limit > 0 else []


def clear_scan_history(store: FrontDeskStore) -> None:
    store.scan_history.clear()


def get_scan_statistics(store: FrontDeskStore, day: Optional[datetime.date] = None) -> Dict[str, Any]:
    """
    Summarizes the scan history for one day: entries, exits, overrides and the busiest scan hour.
    """
    target = parse_date(day) or store.now().date()
    scans = [s for s in store.scan_history if s.timestamp.date() == target]

    entries = sum(1 for s in scans if s.action in ("entry", "emergency_entry"))
    exits = sum(1 for s in scans if s.action in ("exit", "emergency_exit", "force_exit"))

    hours = Counter(s.timestamp.hour for s in scans)
    peak = {"hour": None, "count": 0}
    if hours:
        # First maximum wins, scanning hours in order
        best = min(hours, key=lambda h: (-hours[h], h))
        peak = {"hour": best, "count": hours[best]}

    return {
        "date": target.isoformat(),
        "total_scans": len(scans),
        "entries": entries,
        "exits": exits,
        "currently_inside": entries - exits,
        "emergency_overrides": sum(1 for s in scans if s.is_override),
        "peak_hour": peak,
    }


# --- PUBLIC OPERATIONS ---

def _check_services(services: Optional[List[str]], default: List[str]) -> Optional[List[str]]:
    chosen = list(services) if services else list(default)
    if any(s not in config.SERVICES for s in chosen):
        return None
    return chosen


def process_scan(store: FrontDeskStore, barcode: str, services: Optional[List[str]] = None,
                 now: Optional[datetime.datetime] = None) -> OperationResult:
    """
    Handles a barcode scan at the front desk.
    One scan surface serves both directions: a customer outside is let in,
    a customer inside is let out.

    Args:
        store (FrontDeskStore): Application state.
        barcode (str): Scanned text; carries the customer ID.
        services (list, optional): Services for an entry. Defaults to ['gym'].
        now (datetime, optional): Time of the scan. Defaults to the store clock.

    Returns:
        OperationResult: entry / exit on success, otherwise a typed failure.
    """
    try:
        now = now or store.now()

        error = validate_barcode(barcode)
        if error:
            return OperationResult.fail(VALIDATION_ERROR, error, errors={"barcode": error})
        barcode = str(barcode).strip()

        chosen = _check_services(services, ["gym"])
        if chosen is None:
            return OperationResult.fail(
                VALIDATION_ERROR, "Services must be gym and/or spa",
                errors={"services": "Services must be gym and/or spa"},
            )

        customer = store.get_customer(barcode)
        if customer is None:
            logger.warning("Scan for unknown customer %s", barcode)
            return OperationResult.fail(CUSTOMER_NOT_FOUND)

        eligibility = check_eligibility(customer.membership, now)
        if not eligibility.is_valid:
            logger.warning("Scan rejected for %s: %s", customer.customer_id, eligibility.message)
            result = OperationResult.fail(
                SUBSCRIPTION_INVALID,
                eligibility.message,
                customer=customer.to_dict(),
                subscription=eligibility.to_dict(),
            )
            result.warnings = list(eligibility.warnings)
            return result

        duplicate = is_duplicate_scan(store, customer.customer_id, now)

        if customer.current_visit.is_inside:
            result = record_exit(store, customer, now)
        else:
            result = record_entry(store, customer, chosen, now)

        result.warnings.extend(eligibility.warnings)
        if duplicate:
            logger.warning("Possible duplicate scan for %s", customer.customer_id)
            result.flags.append(POSSIBLE_DUPLICATE)
        return result

    except Exception:
        logger.exception("Process scan failed for barcode %r", barcode)
        return OperationResult.fail(SYSTEM_ERROR)


def manual_entry_exit(store: FrontDeskStore, customer_id: str, action: str,
                      services: Optional[List[str]] = None,
                      now: Optional[datetime.datetime] = None) -> OperationResult:
    """
    Staff-driven entry or exit. The requested action is taken literally:
    an entry for someone inside, or an exit for someone outside, is refused.
    Membership problems are reported as warnings rather than blocking.
    """
    try:
        now = now or store.now()

        if not customer_id:
            return OperationResult.fail(
                VALIDATION_ERROR, "Customer ID is required", errors={"customer_id": "Customer ID is required"}
            )
        if action not in ("entry", "exit"):
            return OperationResult.fail(
                VALIDATION_ERROR, 'Action must be either "entry" or "exit"',
                errors={"action": 'Action must be either "entry" or "exit"'},
            )

        chosen = _check_services(services, ["gym"])
        if chosen is None:
            return OperationResult.fail(
                VALIDATION_ERROR, "Services must be gym and/or spa",
                errors={"services": "Services must be gym and/or spa"},
            )

        customer = store.get_customer(customer_id)
        if customer is None:
            return OperationResult.fail(CUSTOMER_NOT_FOUND)

        if action == "entry":
            if customer.current_visit.is_inside:
                return OperationResult.fail(ALREADY_INSIDE)
            result = record_entry(store, customer, chosen, now)
            eligibility = check_eligibility(customer.membership, now)
            if not eligibility.is_valid:
                result.warnings.append(eligibility.message)
            result.warnings.extend(eligibility.warnings)
            return result

        if not customer.current_visit.is_inside:
            return OperationResult.fail(NOT_INSIDE)
        return record_exit(store, customer, now)

    except Exception:
        logger.exception("Manual %s failed for customer %r", action, customer_id)
        return OperationResult.fail(SYSTEM_ERROR)


def emergency_override(store: FrontDeskStore, customer_id: str, reason: str,
                       services: Optional[List[str]] = None,
                       now: Optional[datetime.datetime] = None) -> OperationResult:
    """
    Administrator override: toggles entry/exit without checking the membership.
    A reason is mandatory and is stored on the visit and the scan history.
    """
    try:
        now = now or store.now()

        if not customer_id or not reason or not reason.strip():
            return OperationResult.fail(
                VALIDATION_ERROR,
                "Customer ID and reason are required for emergency override",
                errors={"reason": "Reason is required"} if customer_id else {"customer_id": "Customer ID is required"},
            )

        chosen = _check_services(services, ["gym", "spa"])
        if chosen is None:
            return OperationResult.fail(
                VALIDATION_ERROR, "Services must be gym and/or spa",
                errors={"services": "Services must be gym and/or spa"},
            )

        customer = store.get_customer(customer_id)
        if customer is None:
            return OperationResult.fail(CUSTOMER_NOT_FOUND)

        reason = reason.strip()
        logger.warning("Emergency override for %s: %s", customer.customer_id, reason)

        if customer.current_visit.is_inside:
            result = record_exit(store, customer, now, reason=reason, action="emergency_exit")
        else:
            result = record_entry(store, customer, chosen, now, override_reason=reason)

        if result.success:
            result.flags.append(EMERGENCY_OVERRIDE)
            result.data["override_reason"] = reason
        return result

    except Exception:
        logger.exception("Emergency override failed for customer %r", customer_id)
        return OperationResult.fail(SYSTEM_ERROR)


def validate_customer_access(store: FrontDeskStore, barcode: str,
                             now: Optional[datetime.datetime] = None) -> Dict[str, Any]:
    """
    Read-only pre-check for a barcode: who is it, and could they enter or exit right now?
    """
    now = now or store.now()

    error = validate_barcode(barcode)
    if error:
        return {"success": False, "message": error, "is_valid": False}

    customer = store.get_customer(str(barcode).strip())
    if customer is None:
        return {"success": False, "message": "Customer not found", "is_valid": False}

    eligibility = check_eligibility(customer.membership, now)
    inside = customer.current_visit.is_inside
    return {
        "success": True,
        "customer": customer.to_dict(),
        "is_valid": eligibility.is_valid,
        "subscription": eligibility.to_dict(),
        "can_enter": eligibility.is_valid and not inside,
        "can_exit": inside,
        "warnings": list(eligibility.warnings),
    }


def audit_consistency(store: FrontDeskStore, repair: bool = False) -> List[Dict[str, Any]]:
    """
    Lists customers whose cached inside flag disagrees with the ledger.
    With repair=True the flag is rewritten from the ledger, which is authoritative.
    """
    problems = []
    for customer in store.customers.values():
        visit = store.ledger.open_visit_for(customer.customer_id)
        if customer.current_visit.is_inside == (visit is not None):
            continue

        problems.append({
            "customer_id": customer.customer_id,
            "flag_inside": customer.current_visit.is_inside,
            "open_visit_id": visit.visit_id if visit else None,
        })
        logger.error("Data integrity fault for %s: flag=%s open_visit=%s",
                     customer.customer_id, customer.current_visit.is_inside,
                     visit.visit_id if visit else None)

        if repair:
            if visit is not None:
                customer.current_visit = CurrentVisit(is_inside=True, entry_time=visit.entry_time)
            else:
                customer.current_visit = CurrentVisit(
                    is_inside=False, exit_time=customer.current_visit.exit_time
                )

    for visit in store.ledger.open_visits():
        if store.get_customer(visit.customer_id) is None:
            problems.append({"customer_id": visit.customer_id, "flag_inside": None,
                             "open_visit_id": visit.visit_id})
            logger.error("Open visit %s belongs to unknown customer %s", visit.visit_id, visit.customer_id)

    return problems
