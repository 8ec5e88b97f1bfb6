import datetime
import logging
from typing import Any, Dict, List, Optional

import bcrypt

import config
from core.database import FrontDeskStore, hash_password
from core.validators import validate_login
from models.customer import Employee
from models.results import INVALID_LOGIN, LOGIN, PERMISSION_DENIED, VALIDATION_ERROR, OperationResult

logger = logging.getLogger(__name__)


def create_employee(store: FrontDeskStore, username: str, password: str,
                    first_name: str = "", last_name: str = "",
                    role: str = "receptionist") -> Employee:
    """
    Creates a front-desk account with a securely hashed password.

    Args:
        username (str): Unique username.
        password (str): Plain text password (will be hashed).
        role (str): 'admin' or 'receptionist'.

    Raises:
        ValueError: If the username already exists or the role is unknown.
    """
    if role not in config.EMPLOYEE_ROLES:
        raise ValueError(f"Unknown role: {role}")

    employee = Employee(
        employee_id=f"emp{len(store.employees) + 1:03d}",
        username=username,
        password_hash=hash_password(password),
        first_name=first_name,
        last_name=last_name,
        role=role,
    )
    store.add_employee(employee)
    logger.info("Created %s account '%s'", role, username)
    return employee


def verify_password(employee: Employee, password: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), employee.password_hash)


def login(store: FrontDeskStore, username: str, password: str,
          now: Optional[datetime.datetime] = None) -> OperationResult:
    """
    Verifies employee credentials.

    Returns:
        OperationResult: 'login' with the employee summary on success, otherwise
        'validation_error', 'invalid_login' or 'permission_denied'.
    """
    errors = validate_login(username, password)
    if errors:
        return OperationResult.fail(VALIDATION_ERROR, "Username and password are required", errors=errors)

    employee = store.get_employee(username.strip())
    if employee is None or not verify_password(employee, password):
        # Same message either way, so usernames can't be probed
        logger.warning("Failed login for '%s'", username.strip())
        return OperationResult.fail(INVALID_LOGIN)

    if not employee.is_active:
        logger.warning("Login refused for inactive account '%s'", employee.username)
        return OperationResult.fail(PERMISSION_DENIED, "This account has been deactivated")

    now = now or store.now()
    logger.info("'%s' logged in", employee.username)
    return OperationResult.ok(LOGIN, employee={**employee.summary(), "login_time": now.isoformat()})


# --- USER MANAGEMENT FUNCTIONS ---

def list_employees(store: FrontDeskStore) -> List[Dict[str, Any]]:
    return [dict(e.summary(), is_active=e.is_active) for e in store.employees.values()]


def set_employee_active(store: FrontDeskStore, username: str, active: bool) -> None:
    """
    Enables or disables an account without deleting it.

    Raises:
        ValueError: If no such employee exists.
    """
    employee = store.get_employee(username)
    if employee is None:
        raise ValueError("Employee not found")
    employee.is_active = active
    logger.info("Account '%s' %s", username, "enabled" if active else "disabled")


def change_password(store: FrontDeskStore, username: str, new_password: str) -> None:
    """
    Raises:
        ValueError: If no such employee exists or the password is blank.
    """
    employee = store.get_employee(username)
    if employee is None:
        raise ValueError("Employee not found")
    if not new_password:
        raise ValueError("Password is required")
    employee.password_hash = hash_password(new_password)
