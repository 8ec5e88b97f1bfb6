import datetime
import math
from typing import Optional

import config
from core.utils import parse_datetime
from models.customer import Membership
from models.results import EligibilityResult


def membership_end(membership: Optional[Membership]) -> Optional[datetime.datetime]:
    """
    Resolves the instant a membership stops being usable.

    A full timestamp is used as-is. A plain calendar date ends at the start of
    that day, so a plan ending today is no longer usable. Returns None when the
    end date is missing or malformed.
    """
    if membership is None:
        return None
    end = membership.end_date
    if isinstance(end, datetime.datetime):
        return end
    if isinstance(end, datetime.date):
        return datetime.datetime.combine(end, datetime.time.min)
    return parse_datetime(end)


def check_eligibility(membership: Optional[Membership], now: datetime.datetime,
                      grace_days: Optional[int] = None) -> EligibilityResult:
    """
    Decides whether a membership may be used right now. Pure function, no side effects.

    Args:
        membership (Membership): The customer's membership (None counts as expired).
        now (datetime): The moment of the check.
        grace_days (int, optional): "Expiring soon" window. Defaults to config.GRACE_PERIOD_DAYS.

    Returns:
        EligibilityResult: expired / expiring soon / suspended / valid flags.
    """
    grace_days = config.GRACE_PERIOD_DAYS if grace_days is None else grace_days
    end = membership_end(membership)

    if end is None:
        # Fail closed
        return EligibilityResult(
            is_valid=False,
            is_expired=True,
            is_expiring_soon=False,
            is_suspended=bool(membership and membership.status == "suspended"),
            days_until_expiry=0,
            message="No valid membership found" if membership is None else "Membership has expired",
        )

    is_suspended = membership.status == "suspended"
    is_expired = not (now < end)
    is_expiring_soon = now <= end <= now + datetime.timedelta(days=grace_days)
    is_valid = not is_suspended and not is_expired and membership.status == "active"
    days_left = max(0, math.ceil((end - now).total_seconds() / 86400))

    warnings = []
    if is_suspended:
        message = "Membership is suspended"
    elif is_expired:
        message = "Membership has expired"
    elif membership.status != "active":
        message = "Membership is not active"
    elif is_expiring_soon:
        message = "Membership expires soon"
        warnings.append(f"Subscription expires within {grace_days} days")
    else:
        message = "Membership is valid"

    return EligibilityResult(
        is_valid=is_valid,
        is_expired=is_expired,
        is_expiring_soon=is_expiring_soon,
        is_suspended=is_suspended,
        days_until_expiry=days_left,
        message=message,
        warnings=warnings,
    )
