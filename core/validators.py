import datetime
import re
from typing import Any, Dict, Optional

import config
from core.utils import parse_date

CUSTOMER_ID_MIN_LENGTH = 8
CUSTOMER_ID_MAX_LENGTH = 12
PHONE_PATTERN = re.compile(r"^(\+20-?)?[0-9]{3}-?[0-9]{3}-?[0-9]{4}$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def validate_customer_id(customer_id: Optional[str]) -> Optional[str]:
    """
    Checks the customer ID / barcode payload format (8-12 digits).
    Returns an error message, or None when valid.
    """
    if not customer_id:
        return "Customer ID is required"
    if len(customer_id) < CUSTOMER_ID_MIN_LENGTH:
        return f"Customer ID must be at least {CUSTOMER_ID_MIN_LENGTH} characters"
    if len(customer_id) > CUSTOMER_ID_MAX_LENGTH:
        return f"Customer ID must be no more than {CUSTOMER_ID_MAX_LENGTH} characters"
    if not customer_id.isdigit():
        return "Customer ID must contain only numbers"
    return None


def validate_barcode(barcode: Optional[str]) -> Optional[str]:
    """The barcode carries the customer ID, so it follows the same rules once trimmed."""
    if barcode is None:
        return "Barcode is required"
    clean = str(barcode).strip()
    if not clean:
        return "Barcode cannot be empty"
    return validate_customer_id(clean)


def _required(value: Any, field_name: str) -> Optional[str]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return f"{field_name} is required"
    return None


def validate_customer_data(data: Dict[str, Any], today: Optional[datetime.date] = None) -> Dict[str, str]:
    """
    Validates a registration payload.

    Returns:
        Dict[str, str]: Field name -> message. Empty when the data is valid.
    """
    today = today or datetime.date.today()
    errors: Dict[str, str] = {}

    if data.get("customer_id"):
        msg = validate_customer_id(str(data["customer_id"]).strip())
        if msg:
            errors["customer_id"] = msg

    for key, label in (("first_name", "First name"), ("last_name", "Last name")):
        msg = _required(data.get(key), label)
        if msg:
            errors[key] = msg

    email = (data.get("email") or "").strip()
    if not email:
        errors["email"] = "Email is required"
    elif not EMAIL_PATTERN.match(email):
        errors["email"] = "Please enter a valid email address"

    phone = (data.get("phone") or "").strip()
    if not phone:
        errors["phone"] = "Phone number is required"
    elif not PHONE_PATTERN.match(phone):
        errors["phone"] = "Please enter a valid phone number (e.g., +20-123-456-7890)"

    if data.get("date_of_birth"):
        dob = parse_date(data["date_of_birth"])
        if dob is None:
            errors["date_of_birth"] = "Date of birth is not a valid date"
        elif dob > today:
            errors["date_of_birth"] = "Date of birth cannot be in the future"

    membership = data.get("membership")
    if not membership:
        errors["membership"] = "Membership is required"
        return errors

    if membership.get("type") not in config.MEMBERSHIP_TYPES:
        errors["membership_type"] = "Membership type must be daily, monthly or annual"

    services = membership.get("services") or ["gym"]
    if any(s not in config.SERVICES for s in services):
        errors["services"] = "Services must be gym and/or spa"

    start = membership.get("start_date")
    if start and parse_date(start) is None:
        errors["start_date"] = "Start date is not a valid date"

    end = membership.get("end_date")
    if end:
        end_date = parse_date(end)
        if end_date is None:
            errors["end_date"] = "End date is not a valid date"
        elif start and parse_date(start) and end_date < parse_date(start):
            errors["date_range"] = "End date must not be before start date"

    return errors


def validate_login(username: Optional[str], password: Optional[str]) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    msg = _required(username, "Username")
    if msg:
        errors["username"] = msg
    msg = _required(password, "Password")
    if msg:
        errors["password"] = msg
    return errors
