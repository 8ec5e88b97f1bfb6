import datetime

import pytest

from core.ledger import LedgerError, VisitLedger
from models.visit import Visit

T0 = datetime.datetime(2026, 10, 19, 9, 0)


def test_open_and_close_visit():
    ledger = VisitLedger()
    visit = ledger.open_visit("10000001", T0, ["gym"], membership_type="monthly")

    assert visit.visit_id == "visit001"
    assert visit.is_open
    assert ledger.open_visit_for("10000001") is visit

    ledger.close_visit(visit.visit_id, T0 + datetime.timedelta(minutes=95), reason="done")
    assert visit.duration == 95
    assert visit.exit_reason == "done"
    assert ledger.open_visit_for("10000001") is None
    assert ledger.open_visits() == []


def test_ids_are_unique_and_increasing():
    ledger = VisitLedger()
    a = ledger.open_visit("10000001", T0, ["gym"])
    b = ledger.open_visit("10000002", T0, ["spa"])
    ledger.close_visit(a.visit_id, T0)
    c = ledger.open_visit("10000001", T0, ["gym"])
    assert [a.visit_id, b.visit_id, c.visit_id] == ["visit001", "visit002", "visit003"]


def test_second_open_visit_for_same_customer_is_refused():
    ledger = VisitLedger()
    ledger.open_visit("10000001", T0, ["gym"])
    with pytest.raises(LedgerError):
        ledger.open_visit("10000001", T0 + datetime.timedelta(minutes=1), ["gym"])
    assert len(ledger) == 1


def test_close_rules():
    ledger = VisitLedger()
    visit = ledger.open_visit("10000001", T0, ["gym"])

    with pytest.raises(LedgerError):
        ledger.close_visit("visit999", T0)
    with pytest.raises(LedgerError):
        ledger.close_visit(visit.visit_id, T0 - datetime.timedelta(minutes=1))

    ledger.close_visit(visit.visit_id, T0 + datetime.timedelta(minutes=10))
    with pytest.raises(LedgerError):
        ledger.close_visit(visit.visit_id, T0 + datetime.timedelta(minutes=20))
    assert visit.duration == 10


def test_duration_is_floored_to_whole_minutes():
    ledger = VisitLedger()
    visit = ledger.open_visit("10000001", T0, ["gym"])
    ledger.close_visit(visit.visit_id, T0 + datetime.timedelta(minutes=90, seconds=40))
    assert visit.duration == 90


def test_visit_crossing_midnight_keeps_entry_date():
    ledger = VisitLedger()
    late = datetime.datetime(2026, 10, 19, 23, 0)
    visit = ledger.open_visit("10000001", late, ["gym"])
    ledger.close_visit(visit.visit_id, late + datetime.timedelta(minutes=95))

    assert visit.duration == 95
    assert visit.date == "2026-10-19"
    assert ledger.visits_on("2026-10-19") == [visit]
    assert ledger.visits_on("2026-10-20") == []


def test_visits_in_range_is_inclusive():
    ledger = VisitLedger()
    for day in (17, 18, 19, 20):
        ledger.open_visit(f"100000{day}", datetime.datetime(2026, 10, day, 10, 0), ["gym"])

    found = ledger.visits_in_range(datetime.date(2026, 10, 18), "2026-10-19")
    assert [v.entry_time.day for v in found] == [18, 19]


def test_visits_for_customer():
    ledger = VisitLedger()
    first = ledger.open_visit("10000001", T0, ["gym"])
    ledger.close_visit(first.visit_id, T0 + datetime.timedelta(hours=1))
    ledger.open_visit("10000002", T0, ["spa"])
    second = ledger.open_visit("10000001", T0 + datetime.timedelta(hours=2), ["gym"])

    assert ledger.visits_for_customer("10000001") == [first, second]


def test_load_moves_counter_past_existing_ids():
    ledger = VisitLedger()
    ledger.load([
        Visit("visit007", "10000001", T0, T0 + datetime.timedelta(minutes=30), 30),
        Visit("visit003", "10000002", T0),
    ])
    assert ledger.open_visit_for("10000002").visit_id == "visit003"
    assert ledger.open_visit("10000003", T0, ["gym"]).visit_id == "visit008"


def test_load_rejects_broken_data():
    with pytest.raises(LedgerError):
        VisitLedger().load([Visit("visit001", "10000001", T0), Visit("visit001", "10000002", T0)])
    with pytest.raises(LedgerError):
        VisitLedger().load([Visit("visit001", "10000001", T0), Visit("visit002", "10000001", T0)])


def test_iteration_returns_a_copy():
    ledger = VisitLedger()
    ledger.open_visit("10000001", T0, ["gym"])
    visits = list(ledger)
    visits.clear()
    assert len(ledger) == 1
