import json

from hearth_app.hearth.models import FocusRecord
from hearth_app.hearth.storage import CATEGORIES_KEY, DEFAULT_CATEGORIES, HISTORY_KEY, Storage


def _record(record_id="1", category="Work"):
    return FocusRecord(record_id, category, 25, 1_700_000_000_000, "Braised Pork Rice")


def test_empty_store_uses_defaults(tmp_path):
    storage = Storage(tmp_path / "nested" / "test.db")
    assert storage.load_records() == []
    assert storage.load_categories() == DEFAULT_CATEGORIES


def test_records_and_categories_persist(tmp_path):
    db = tmp_path / "test.db"
    storage = Storage(db)
    storage.save_records([_record("1"), _record("2", "Study")])
    storage.save_categories(["Work", "Study"])

    reopened = Storage(db)
    assert [r.id for r in reopened.load_records()] == ["1", "2"]
    assert reopened.load_categories() == ["Work", "Study"]


def test_set_value_overwrites(tmp_path):
    storage = Storage(tmp_path / "test.db")
    storage.set_value("k", "one")
    storage.set_value("k", "two")
    assert storage.get_value("k") == "two"
    assert storage.get_value("missing") is None


def test_corrupt_history_falls_back_to_empty(tmp_path):
    storage = Storage(tmp_path / "test.db")
    storage.set_value(HISTORY_KEY, "{not json")
    assert storage.load_records() == []
    storage.set_value(HISTORY_KEY, json.dumps({"records": []}))
    assert storage.load_records() == []


def test_malformed_and_duplicate_records_are_dropped(tmp_path):
    storage = Storage(tmp_path / "test.db")
    good = _record("keep").to_dict()
    storage.set_value(HISTORY_KEY, json.dumps([good, {"id": "x"}, "junk", dict(good)]))
    records = storage.load_records()
    assert [r.id for r in records] == ["keep"]


def test_corrupt_categories_fall_back_to_defaults(tmp_path):
    storage = Storage(tmp_path / "test.db")
    storage.set_value(CATEGORIES_KEY, "42")
    assert storage.load_categories() == DEFAULT_CATEGORIES
    storage.set_value(CATEGORIES_KEY, json.dumps(["", 3, "  "]))
    assert storage.load_categories() == DEFAULT_CATEGORIES
    storage.set_value(CATEGORIES_KEY, json.dumps(["Work", "Work", 7, "Zen"]))
    assert storage.load_categories() == ["Work", "Zen"]


def test_backup_database(tmp_path):
    storage = Storage(tmp_path / "test.db")
    storage.save_categories(["Only"])
    backup = storage.backup_database()
    assert backup.exists()
    assert Storage(backup).load_categories() == ["Only"]
