import datetime
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from core.utils import parse_date, parse_datetime


@dataclass
class Membership:
    """
    A customer's subscription: what they bought, until when, and which services it covers.
    """
    type: str  # 'daily', 'monthly' or 'annual'
    start_date: Optional[datetime.date]
    end_date: Union[datetime.date, datetime.datetime, str, None]
    status: str = "active"  # 'active', 'expired' or 'suspended'
    services: List[str] = field(default_factory=lambda: ["gym"])

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Membership":
        end = data.get("end_date")
        # Full timestamps keep their time of day, plain dates stay dates
        if isinstance(end, str) and len(end.strip()) > 10:
            end = parse_datetime(end) or end
        elif isinstance(end, str):
            end = parse_date(end) or end
        return cls(
            type=data.get("type", "daily"),
            start_date=parse_date(data.get("start_date")),
            end_date=end,
            status=data.get("status", "active"),
            services=list(data.get("services") or ["gym"]),
        )

    def to_dict(self) -> Dict[str, Any]:
        end = self.end_date.isoformat() if isinstance(self.end_date, datetime.date) else self.end_date
        return {
            "type": self.type,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": end,
            "status": self.status,
            "services": list(self.services),
        }


@dataclass
class CurrentVisit:
    """
    Cached open-visit state on the customer record.
    Must agree with the Visit Ledger: is_inside is True iff the ledger holds
    exactly one open visit for this customer.
    """
    is_inside: bool = False
    entry_time: Optional[datetime.datetime] = None
    exit_time: Optional[datetime.datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_inside": self.is_inside,
            "entry_time": self.entry_time.isoformat() if self.entry_time else None,
            "exit_time": self.exit_time.isoformat() if self.exit_time else None,
        }


@dataclass
class Customer:
    """
    Represents a single gym/spa customer. The customer_id doubles as the barcode payload.
    """
    customer_id: str
    first_name: str
    last_name: str
    email: str = ""
    phone: str = ""
    date_of_birth: Optional[datetime.date] = None
    address: Dict[str, str] = field(default_factory=dict)
    membership: Optional[Membership] = None
    current_visit: CurrentVisit = field(default_factory=CurrentVisit)
    registered_at: Optional[datetime.datetime] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def membership_type(self) -> Optional[str]:
        return self.membership.type if self.membership else None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Customer":
        visit = data.get("current_visit") or {}
        membership = data.get("membership")
        return cls(
            customer_id=str(data["customer_id"]),
            first_name=data.get("first_name", ""),
            last_name=data.get("last_name", ""),
            email=data.get("email", ""),
            phone=data.get("phone", ""),
            date_of_birth=parse_date(data.get("date_of_birth")),
            address=dict(data.get("address") or {}),
            membership=Membership.from_dict(membership) if membership else None,
            current_visit=CurrentVisit(
                is_inside=bool(visit.get("is_inside", False)),
                entry_time=parse_datetime(visit.get("entry_time")),
                exit_time=parse_datetime(visit.get("exit_time")),
            ),
            registered_at=parse_datetime(data.get("registered_at")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "customer_id": self.customer_id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "full_name": self.full_name,
            "email": self.email,
            "phone": self.phone,
            "date_of_birth": self.date_of_birth.isoformat() if self.date_of_birth else None,
            "address": dict(self.address),
            "membership": self.membership.to_dict() if self.membership else None,
            "current_visit": self.current_visit.to_dict(),
            "registered_at": self.registered_at.isoformat() if self.registered_at else None,
        }


@dataclass
class Employee:
    """
    Front-desk staff account. Passwords are only ever held as bcrypt hashes.
    """
    employee_id: str
    username: str
    password_hash: bytes
    first_name: str = ""
    last_name: str = ""
    role: str = "receptionist"
    is_active: bool = True

    def summary(self) -> Dict[str, Any]:
        return {
            "employee_id": self.employee_id,
            "username": self.username,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "role": self.role,
        }
