import datetime

import pytest

from core.database import FrontDeskStore
from models.customer import Customer, Membership

# Monday
START = datetime.datetime(2026, 10, 19, 9, 0)
TODAY = START.date()


class FakeClock:
    """Controllable replacement for datetime.now."""

    def __init__(self, start: datetime.datetime):
        self.current = start

    def __call__(self) -> datetime.datetime:
        return self.current

    def advance(self, **kwargs) -> datetime.datetime:
        self.current += datetime.timedelta(**kwargs)
        return self.current

    def set(self, value: datetime.datetime) -> None:
        self.current = value


def make_customer(customer_id, membership_type="monthly", end_date=None, status="active",
                  services=None, first_name="Test", last_name=None):
    return Customer(
        customer_id=customer_id,
        first_name=first_name,
        last_name=last_name or f"Customer{customer_id[-2:]}",
        email=f"c{customer_id}@example.com",
        phone="+20-100-000-0000",
        membership=Membership(
            type=membership_type,
            start_date=TODAY - datetime.timedelta(days=1),
            end_date=end_date if end_date is not None else TODAY + datetime.timedelta(days=30),
            status=status,
            services=services or ["gym", "spa"],
        ),
    )


def assert_invariant(store):
    """Every customer's inside flag agrees with the ledger's open visits."""
    for customer in store.customers.values():
        open_visits = [
            v for v in store.ledger.visits_for_customer(customer.customer_id) if v.exit_time is None
        ]
        assert len(open_visits) <= 1
        assert customer.current_visit.is_inside == (len(open_visits) == 1), customer.customer_id


# ── Fixtures ──────────────────────────────────────────────────────

@pytest.fixture
def clock():
    return FakeClock(START)


@pytest.fixture
def store(clock):
    """
    Fresh store with:
      10000001 monthly, active, ends in 30 days
      10000002 annual, active
      10000003 daily pass bought today, usable until midnight
      10000004 ended yesterday
      10000005 suspended
    """
    s = FrontDeskStore(clock=clock)
    s.add_customer(make_customer("10000001", "monthly", first_name="Ahmed", last_name="Hassan"))
    s.add_customer(make_customer("10000002", "annual", TODAY + datetime.timedelta(days=300),
                                 first_name="Mona", last_name="Ibrahim"))
    s.add_customer(make_customer("10000003", "daily", TODAY + datetime.timedelta(days=1),
                                 first_name="Omar", last_name="Farouk"))
    s.add_customer(make_customer("10000004", "monthly", TODAY - datetime.timedelta(days=1),
                                 first_name="Sara", last_name="Mahmoud"))
    s.add_customer(make_customer("10000005", "annual", TODAY + datetime.timedelta(days=100),
                                 status="suspended", first_name="Karim", last_name="Nabil"))
    return s
