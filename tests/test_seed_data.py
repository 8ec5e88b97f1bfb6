import datetime
import logging

import config
from conftest import FakeClock, assert_invariant
from core.database import init_db
from core.log_setup import setup_logging
from services.analytics_service import daily_statistics
from services.attendance_service import audit_consistency, process_scan
from services.auth_service import login
from services.visitors_service import current_occupants


def seeded_store():
    return init_db(config.BASE_FOLDER / "data", clock=FakeClock(datetime.datetime(2026, 10, 19, 10, 0)))


def test_seed_files_load_consistently():
    store = seeded_store()
    assert len(store.customers) == 5
    assert len(store.employees) == 3
    assert len(store.ledger) == 4
    assert audit_consistency(store) == []
    assert_invariant(store)
    assert [o.customer_id for o in current_occupants(store)] == ["10000003"]


def test_seed_accounts_can_log_in():
    store = seeded_store()
    assert login(store, "admin", "admin123").success
    assert not login(store, "former", "former123").success


def test_seed_history_feeds_statistics():
    store = seeded_store()
    stats = daily_statistics(store, "2026-10-18")
    assert stats.total_visits == 2
    assert stats.service_usage == {"gym": 0, "spa": 1, "both": 1}


def test_new_visit_ids_continue_after_seed():
    store = seeded_store()
    result = process_scan(store, "10000001")
    assert result.data["visit"]["visit_id"] == "visit005"


def test_missing_data_folder_starts_empty(tmp_path):
    store = init_db(tmp_path)
    assert store.customers == {}
    assert len(store.ledger) == 0


def test_setup_logging_writes_file_once(tmp_path):
    root = logging.getLogger()
    try:
        setup_logging(tmp_path, "DEBUG")
        setup_logging(tmp_path, "DEBUG")
        ours = [h for h in root.handlers if getattr(h, "_frontdesk", False)]
        assert len(ours) == 2
        assert (tmp_path / "frontdesk.log").exists()
    finally:
        for handler in [h for h in root.handlers if getattr(h, "_frontdesk", False)]:
            root.removeHandler(handler)
            handler.close()
