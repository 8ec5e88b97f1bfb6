import datetime
import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import bcrypt

import config
from core.ledger import VisitLedger
from models.customer import Customer, Employee
from models.visit import ScanRecord, Visit

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime.datetime]


class FrontDeskStore:
    """
    In-memory application context: customers, employees, the visit ledger,
    scan history and the statistics cache.

    One instance is owned by the process and passed to every service call,
    so tests can build a fresh store each time.
    """

    def __init__(self, clock: Optional[Clock] = None):
        self.clock: Clock = clock or datetime.datetime.now
        self.customers: Dict[str, Customer] = {}
        self.employees: Dict[str, Employee] = {}
        self.ledger = VisitLedger()
        self.scan_history: List[ScanRecord] = []
        self.stats_cache: Dict[str, Tuple[datetime.datetime, Any]] = {}
        self._next_customer_number = 1
        self._next_scan_number = 1

    def now(self) -> datetime.datetime:
        return self.clock()

    # --- CUSTOMERS ---

    def get_customer(self, customer_id: str) -> Optional[Customer]:
        return self.customers.get(str(customer_id).strip())

    def add_customer(self, customer: Customer) -> Customer:
        if customer.customer_id in self.customers:
            raise ValueError("Customer ID already exists")
        self.customers[customer.customer_id] = customer
        if customer.customer_id.isdigit():
            self._next_customer_number = max(self._next_customer_number, int(customer.customer_id) + 1)
        return customer

    def next_customer_id(self) -> str:
        """Next free numeric ID, zero-padded to 8 digits."""
        while True:
            candidate = f"{self._next_customer_number:08d}"
            self._next_customer_number += 1
            if candidate not in self.customers:
                return candidate

    # --- EMPLOYEES ---

    def get_employee(self, username: str) -> Optional[Employee]:
        return self.employees.get(username)

    def add_employee(self, employee: Employee) -> Employee:
        if employee.username in self.employees:
            raise ValueError("Username already exists")
        self.employees[employee.username] = employee
        return employee

    # --- SCAN HISTORY ---

    def next_scan_id(self) -> str:
        scan_id = f"scan{self._next_scan_number:05d}"
        self._next_scan_number += 1
        return scan_id


def hash_password(password: str) -> bytes:
    """Hashes a raw password with bcrypt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt())


def _read_json(path: Path) -> List[Dict[str, Any]]:
    if not path.exists():
        logger.warning("Seed file %s not found, starting empty", path)
        return []
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def _employee_from_dict(data: Dict[str, Any]) -> Employee:
    # Seed files may carry a ready hash or a raw demo password
    if data.get("password_hash"):
        password_hash = data["password_hash"].encode("utf-8")
    else:
        password_hash = hash_password(data["password"])

    return Employee(
        employee_id=str(data["employee_id"]),
        username=data["username"],
        password_hash=password_hash,
        first_name=data.get("first_name", ""),
        last_name=data.get("last_name", ""),
        role=data.get("role", "receptionist"),
        is_active=bool(data.get("is_active", True)),
    )


def init_db(data_folder: Optional[Path] = None, clock: Optional[Clock] = None) -> FrontDeskStore:
    """
    Builds the in-memory store from the static JSON seed files.

    Args:
        data_folder (Path, optional): Folder holding customers.json, employees.json
                                      and visits.json. Defaults to config.DATA_FOLDER.
        clock (callable, optional): Source of "now". Defaults to datetime.now.

    Returns:
        FrontDeskStore: The populated store.
    """
    folder = Path(data_folder or config.DATA_FOLDER)
    store = FrontDeskStore(clock=clock)

    for row in _read_json(folder / "customers.json"):
        store.add_customer(Customer.from_dict(row))

    for row in _read_json(folder / "employees.json"):
        store.add_employee(_employee_from_dict(row))

    store.ledger.load(Visit.from_dict(row) for row in _read_json(folder / "visits.json"))

    logger.info(
        "Loaded %d customers, %d employees, %d visits from %s",
        len(store.customers), len(store.employees), len(store.ledger), folder,
    )
    return store
