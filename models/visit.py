import datetime
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from core.utils import parse_datetime


@dataclass
class Visit:
    """
    One ledger record: a customer's stay from entry to exit.
    exit_time is None while the visit is open (customer inside).
    """
    visit_id: str
    customer_id: str
    entry_time: datetime.datetime
    exit_time: Optional[datetime.datetime] = None
    duration: Optional[int] = None  # whole minutes, set once on close
    services: List[str] = field(default_factory=lambda: ["gym"])
    membership_type: Optional[str] = None  # snapshot taken at entry
    override_reason: Optional[str] = None
    exit_reason: Optional[str] = None

    @property
    def date(self) -> str:
        """Partition key used for daily aggregation."""
        return self.entry_time.date().isoformat()

    @property
    def is_open(self) -> bool:
        return self.exit_time is None

    @property
    def service_key(self) -> Optional[str]:
        """'both' when gym and spa were used, otherwise the single service."""
        if "gym" in self.services and "spa" in self.services:
            return "both"
        if "gym" in self.services:
            return "gym"
        if "spa" in self.services:
            return "spa"
        return None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Visit":
        return cls(
            visit_id=str(data["visit_id"]),
            customer_id=str(data["customer_id"]),
            entry_time=parse_datetime(data["entry_time"]),
            exit_time=parse_datetime(data.get("exit_time")),
            duration=data.get("duration"),
            services=list(data.get("services") or ["gym"]),
            membership_type=data.get("membership_type"),
            override_reason=data.get("override_reason"),
            exit_reason=data.get("exit_reason"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "visit_id": self.visit_id,
            "customer_id": self.customer_id,
            "entry_time": self.entry_time.isoformat(),
            "exit_time": self.exit_time.isoformat() if self.exit_time else None,
            "duration": self.duration,
            "services": list(self.services),
            "date": self.date,
            "membership_type": self.membership_type,
            "override_reason": self.override_reason,
            "exit_reason": self.exit_reason,
        }


@dataclass
class ScanRecord:
    """
    An entry in the front-desk scan history (recent entries, exits and overrides).
    """
    scan_id: str
    customer_id: str
    customer_name: str
    action: str  # entry, exit, emergency_entry, emergency_exit, force_exit
    timestamp: datetime.datetime
    services: List[str] = field(default_factory=list)
    duration: Optional[int] = None
    reason: Optional[str] = None
    is_override: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scan_id": self.scan_id,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "action": self.action,
            "timestamp": self.timestamp.isoformat(),
            "services": list(self.services),
            "duration": self.duration,
            "reason": self.reason,
            "is_override": self.is_override,
        }
