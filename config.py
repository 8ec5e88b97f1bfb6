import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# Global Config
BASE_FOLDER = Path(__file__).resolve().parent
DATA_FOLDER = Path(os.environ.get("FRONTDESK_DATA_FOLDER", BASE_FOLDER / "data"))
LOG_FOLDER = Path(os.environ.get("FRONTDESK_LOG_FOLDER", BASE_FOLDER / "logs"))
LOG_LEVEL = os.environ.get("FRONTDESK_LOG_LEVEL", "INFO")

APP_NAME = "Gym & Spa Front Desk"

# Membership rules
GRACE_PERIOD_DAYS = int(os.environ.get("FRONTDESK_GRACE_PERIOD_DAYS", 7))
MEMBERSHIP_TYPES = ("daily", "monthly", "annual")
MEMBERSHIP_STATUSES = ("active", "expired", "suspended")
SERVICES = ("gym", "spa")
EMPLOYEE_ROLES = ("admin", "receptionist")

# Months added per membership type at registration/renewal (daily = next day)
MEMBERSHIP_MONTHS = {
    "daily": 0,
    "monthly": 1,
    "annual": 12,
}

# Scanning
DUPLICATE_SCAN_WINDOW_SECONDS = int(os.environ.get("FRONTDESK_DUPLICATE_SCAN_SECONDS", 5))
SCAN_HISTORY_LIMIT = 100

# Occupancy
MAX_CAPACITY = int(os.environ.get("FRONTDESK_MAX_CAPACITY", 100))
NEAR_CAPACITY_RATIO = 0.8
AT_CAPACITY_RATIO = 1.0
LONG_STAY_MINUTES = 180

# Statistics
STATS_CACHE_SECONDS = int(os.environ.get("FRONTDESK_STATS_CACHE_SECONDS", 300))
CURRENCY = os.environ.get("FRONTDESK_CURRENCY", "EGP")
PRICING = {
    "daily": 50,
    "monthly": 500,
    "annual": 5000,
}
PERIOD_DAYS = {
    "daily": 1,
    "monthly": 30,
    "annual": 365,
}

# Dashboard alerts
ALERT_CAPACITY_PERCENT = 90
ALERT_LONG_STAY_HOURS = 4
BUSINESS_HOURS = (8, 20)
