from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# Outcome types returned to the presentation layer
ENTRY = "entry"
EXIT = "exit"
FORCE_EXIT = "force_exit"
VALIDATION_ERROR = "validation_error"
CUSTOMER_NOT_FOUND = "customer_not_found"
SUBSCRIPTION_INVALID = "subscription_invalid"
ALREADY_INSIDE = "already_inside"
NOT_INSIDE = "not_inside"
NO_ACTIVE_VISIT = "no_active_visit"
SYSTEM_ERROR = "system_error"
REGISTERED = "registered"
UPDATED = "updated"
FOUND = "found"
LOGIN = "login"
INVALID_LOGIN = "invalid_login"
PERMISSION_DENIED = "permission_denied"

# Advisory flags
POSSIBLE_DUPLICATE = "possible_duplicate"
EMERGENCY_OVERRIDE = "emergency_override"

# Display messages
MESSAGES = {
    ENTRY: "Entry recorded successfully",
    EXIT: "Exit recorded successfully",
    FORCE_EXIT: "Visitor successfully exited",
    CUSTOMER_NOT_FOUND: "Customer not found",
    ALREADY_INSIDE: "Customer is already inside",
    NOT_INSIDE: "Customer is not currently inside",
    NO_ACTIVE_VISIT: "No active visit found",
    SYSTEM_ERROR: "Something went wrong. Please try again.",
    REGISTERED: "Customer registered successfully",
    LOGIN: "Login successful",
    INVALID_LOGIN: "Invalid username or password",
    PERMISSION_DENIED: "Permission denied",
}


@dataclass
class EligibilityResult:
    """
    Outcome of a membership check. Ephemeral, never stored.
    """
    is_valid: bool
    is_expired: bool
    is_expiring_soon: bool
    is_suspended: bool
    days_until_expiry: int
    message: str = ""
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "is_expired": self.is_expired,
            "is_expiring_soon": self.is_expiring_soon,
            "is_suspended": self.is_suspended,
            "days_until_expiry": self.days_until_expiry,
            "message": self.message,
            "warnings": list(self.warnings),
        }


@dataclass
class OperationResult:
    """
    Plain result handed back to callers: {success, type, message, data, errors}.
    Every failure is expressed here; nothing is raised across the service boundary.
    """
    success: bool
    type: str
    message: str
    data: Dict[str, Any] = field(default_factory=dict)
    errors: Dict[str, str] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    flags: List[str] = field(default_factory=list)

    @classmethod
    def ok(cls, type_: str, message: Optional[str] = None, **data: Any) -> "OperationResult":
        return cls(success=True, type=type_, message=message or MESSAGES.get(type_, ""), data=data)

    @classmethod
    def fail(cls, type_: str, message: Optional[str] = None,
             errors: Optional[Dict[str, str]] = None, **data: Any) -> "OperationResult":
        return cls(
            success=False,
            type=type_,
            message=message or MESSAGES.get(type_, ""),
            data=data,
            errors=errors or {},
        )

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "success": self.success,
            "type": self.type,
            "message": self.message,
            "data": self.data,
        }
        if self.errors:
            result["errors"] = dict(self.errors)
        if self.warnings:
            result["warnings"] = list(self.warnings)
        if self.flags:
            result["flags"] = list(self.flags)
        return result
