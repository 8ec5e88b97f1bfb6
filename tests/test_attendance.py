import datetime

from conftest import assert_invariant, make_customer
from models.customer import CurrentVisit
from models.results import (
    ALREADY_INSIDE, CUSTOMER_NOT_FOUND, EMERGENCY_OVERRIDE, ENTRY, EXIT, NO_ACTIVE_VISIT,
    NOT_INSIDE, POSSIBLE_DUPLICATE, SUBSCRIPTION_INVALID, SYSTEM_ERROR, VALIDATION_ERROR,
)
from services.attendance_service import (
    audit_consistency, clear_scan_history, emergency_override, get_scan_history, get_scan_statistics,
    manual_entry_exit, process_scan, validate_customer_access,
)

# ── Scan toggle ───────────────────────────────────────────────────

def test_scan_enters_then_exits(store, clock):
    """An active monthly member scans in at 09:00 and out at 11:30."""
    result = process_scan(store, "10000001")
    assert result.success
    assert result.type == ENTRY
    assert store.get_customer("10000001").current_visit.is_inside
    assert_invariant(store)

    clock.advance(hours=2, minutes=30)
    result = process_scan(store, "10000001")
    assert result.success
    assert result.type == EXIT
    assert result.data["duration"] == 150
    assert not store.get_customer("10000001").current_visit.is_inside
    assert_invariant(store)


def test_expired_member_is_rejected_without_a_visit(store):
    result = process_scan(store, "10000004")
    assert not result.success
    assert result.type == SUBSCRIPTION_INVALID
    assert result.message == "Membership has expired"
    assert len(store.ledger) == 0
    assert not store.get_customer("10000004").current_visit.is_inside


def test_membership_ending_today_is_rejected(store):
    store.add_customer(make_customer("10000010", "monthly", datetime.date(2026, 10, 19)))
    result = process_scan(store, "10000010")
    assert result.type == SUBSCRIPTION_INVALID
    assert result.message == "Membership has expired"
    assert store.ledger.open_visit_for("10000010") is None
    assert not store.get_customer("10000010").current_visit.is_inside


def test_suspended_member_is_rejected(store):
    result = process_scan(store, "10000005")
    assert result.type == SUBSCRIPTION_INVALID
    assert result.data["subscription"]["is_suspended"]
    assert len(store.ledger) == 0


def test_scan_input_validation(store):
    assert process_scan(store, "").type == VALIDATION_ERROR
    assert process_scan(store, "   ").type == VALIDATION_ERROR
    assert process_scan(store, "1234").type == VALIDATION_ERROR
    assert process_scan(store, "12345abc").type == VALIDATION_ERROR
    assert process_scan(store, "10000001", services=["pool"]).type == VALIDATION_ERROR
    assert process_scan(store, "99999999").type == CUSTOMER_NOT_FOUND
    assert len(store.ledger) == 0


def test_scan_trims_whitespace_and_records_services(store):
    result = process_scan(store, "  10000002 \n", services=["gym", "spa"])
    assert result.type == ENTRY
    assert store.ledger.open_visit_for("10000002").services == ["gym", "spa"]


def test_numeric_barcode_is_accepted(store):
    result = process_scan(store, 10000001)
    assert result.success
    assert result.type == ENTRY
    assert store.get_customer("10000001").current_visit.is_inside
    assert_invariant(store)


def test_expiring_soon_warning_is_passed_through(store):
    result = process_scan(store, "10000003")
    assert result.type == ENTRY
    assert result.warnings == ["Subscription expires within 7 days"]


def test_duration_across_midnight(store, clock):
    clock.set(datetime.datetime(2026, 10, 19, 23, 0))
    process_scan(store, "10000001")
    clock.advance(minutes=95)

    result = process_scan(store, "10000001")
    assert result.type == EXIT
    assert result.data["duration"] == 95
    assert result.data["visit"]["date"] == "2026-10-19"


def test_membership_expiring_while_inside_blocks_exit_scan(store, clock):
    process_scan(store, "10000003")
    clock.set(datetime.datetime(2026, 10, 20, 0, 30))

    result = process_scan(store, "10000003")
    assert result.type == SUBSCRIPTION_INVALID
    assert store.get_customer("10000003").current_visit.is_inside
    assert_invariant(store)


# ── Duplicate scans ───────────────────────────────────────────────

def test_rapid_second_scan_is_flagged_not_rejected(store, clock):
    process_scan(store, "10000001")
    clock.advance(seconds=3)

    result = process_scan(store, "10000001")
    assert result.success
    assert result.type == EXIT
    assert POSSIBLE_DUPLICATE in result.flags


def test_scan_after_window_is_not_flagged(store, clock):
    process_scan(store, "10000001")
    clock.advance(seconds=10)

    result = process_scan(store, "10000001")
    assert POSSIBLE_DUPLICATE not in result.flags


# ── Manual entry / exit ───────────────────────────────────────────

def test_manual_entry_twice_then_exit_twice(store, clock):
    first = manual_entry_exit(store, "10000001", "entry")
    second = manual_entry_exit(store, "10000001", "entry")
    assert first.success and first.type == ENTRY
    assert not second.success and second.type == ALREADY_INSIDE

    clock.advance(minutes=40)
    first = manual_entry_exit(store, "10000001", "exit")
    second = manual_entry_exit(store, "10000001", "exit")
    assert first.success and first.type == EXIT
    assert not second.success and second.type == NOT_INSIDE
    assert len(store.ledger) == 1
    assert_invariant(store)


def test_manual_entry_warns_about_membership_but_lets_in(store):
    result = manual_entry_exit(store, "10000004", "entry")
    assert result.success
    assert "Membership has expired" in result.warnings
    assert_invariant(store)


def test_manual_input_validation(store):
    assert manual_entry_exit(store, "", "entry").type == VALIDATION_ERROR
    assert manual_entry_exit(store, "10000001", "leave").type == VALIDATION_ERROR
    assert manual_entry_exit(store, "99999999", "entry").type == CUSTOMER_NOT_FOUND


# ── Emergency override ────────────────────────────────────────────

def test_emergency_override_admits_expired_member(store, clock):
    result = emergency_override(store, "10000004", "Medical appointment")
    assert result.success
    assert result.type == ENTRY
    assert EMERGENCY_OVERRIDE in result.flags
    visit = store.ledger.open_visit_for("10000004")
    assert visit.override_reason == "Medical appointment"
    assert visit.services == ["gym", "spa"]

    clock.advance(minutes=20)
    result = emergency_override(store, "10000004", "Leaving")
    assert result.type == EXIT
    assert visit.exit_reason == "Leaving"
    assert_invariant(store)


def test_emergency_override_requires_reason(store):
    result = emergency_override(store, "10000001", "  ")
    assert result.type == VALIDATION_ERROR
    assert "reason" in result.errors
    assert len(store.ledger) == 0


# ── Consistency faults ────────────────────────────────────────────

def test_flag_without_open_visit_is_reset(store):
    customer = store.get_customer("10000001")
    customer.current_visit = CurrentVisit(is_inside=True, entry_time=datetime.datetime(2026, 10, 19, 7, 0))

    result = process_scan(store, "10000001")
    assert not result.success
    assert result.type == NO_ACTIVE_VISIT
    assert not customer.current_visit.is_inside
    assert_invariant(store)

    # The next scan is a normal entry again
    assert process_scan(store, "10000001").type == ENTRY


def test_open_visit_without_flag_resyncs_flag(store, clock):
    store.ledger.open_visit("10000001", clock() - datetime.timedelta(hours=1), ["gym"])

    result = process_scan(store, "10000001")
    assert result.type == ALREADY_INSIDE
    assert store.get_customer("10000001").current_visit.is_inside
    assert len(store.ledger) == 1
    assert_invariant(store)


def test_audit_consistency_reports_and_repairs(store, clock):
    store.get_customer("10000001").current_visit = CurrentVisit(is_inside=True)
    store.ledger.open_visit("10000002", clock(), ["spa"])

    problems = audit_consistency(store)
    assert {p["customer_id"] for p in problems} == {"10000001", "10000002"}
    # Reporting alone changes nothing
    assert store.get_customer("10000001").current_visit.is_inside

    audit_consistency(store, repair=True)
    assert audit_consistency(store) == []
    assert_invariant(store)


def test_unexpected_failure_becomes_system_error(store, monkeypatch):
    def broken(*args, **kwargs):
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(store.ledger, "open_visit", broken)
    result = process_scan(store, "10000001")
    assert result.type == SYSTEM_ERROR
    assert result.message == "Something went wrong. Please try again."
    assert not store.get_customer("10000001").current_visit.is_inside


# ── Mixed sequence ────────────────────────────────────────────────

def test_invariant_holds_through_mixed_operations(store, clock):
    steps = [
        lambda: process_scan(store, "10000001"),
        lambda: process_scan(store, "10000002", services=["spa"]),
        lambda: manual_entry_exit(store, "10000003", "entry"),
        lambda: process_scan(store, "10000004"),
        lambda: manual_entry_exit(store, "10000001", "entry"),
        lambda: process_scan(store, "10000001"),
        lambda: emergency_override(store, "10000005", "Owner approval"),
        lambda: manual_entry_exit(store, "10000003", "exit"),
        lambda: process_scan(store, "10000002"),
        lambda: process_scan(store, "10000001"),
    ]
    for step in steps:
        clock.advance(minutes=7)
        step()
        assert_invariant(store)

    inside = {v.customer_id for v in store.ledger.open_visits()}
    assert inside == {"10000001", "10000005"}


# ── History & access checks ───────────────────────────────────────

def test_scan_history_newest_first_and_capped(store, clock):
    for _ in range(120):
        clock.advance(seconds=30)
        process_scan(store, "10000001")

    assert len(store.scan_history) == 100
    recent = get_scan_history(store, limit=2)
    assert recent[0].timestamp > recent[1].timestamp
    assert recent[0].action == "exit"


def test_clear_scan_history(store, clock):
    process_scan(store, "10000001")
    clock.advance(minutes=5)
    process_scan(store, "10000001")
    assert len(store.scan_history) == 2

    clear_scan_history(store)
    assert get_scan_history(store) == []
    assert get_scan_statistics(store)["total_scans"] == 0
    assert len(store.ledger) == 1


def test_scan_statistics(store, clock):
    process_scan(store, "10000001")
    clock.advance(minutes=30)
    process_scan(store, "10000002")
    clock.advance(hours=1)
    process_scan(store, "10000001")

    stats = get_scan_statistics(store)
    assert stats["total_scans"] == 3
    assert stats["entries"] == 2
    assert stats["exits"] == 1
    assert stats["currently_inside"] == 1
    assert stats["peak_hour"] == {"hour": 9, "count": 2}


def test_validate_customer_access(store):
    check = validate_customer_access(store, "10000001")
    assert check["can_enter"] and not check["can_exit"]

    process_scan(store, "10000001")
    check = validate_customer_access(store, "10000001")
    assert not check["can_enter"] and check["can_exit"]

    assert not validate_customer_access(store, "10000004")["can_enter"]
    assert not validate_customer_access(store, "abc")["success"]

    check = validate_customer_access(store, 10000002)
    assert check["success"] and check["can_enter"]


def test_customer_added_later_can_scan(store):
    store.add_customer(make_customer("10000099", "annual"))
    assert process_scan(store, "10000099").type == ENTRY
