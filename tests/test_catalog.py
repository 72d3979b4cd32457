from hearth_app.hearth import catalog
from hearth_app.hearth.models import FocusRecord, TimerMode


def _record(record_id, activity_name):
    return FocusRecord(record_id, "Work", 25, 1700000000000, activity_name)


def test_default_activity_per_mode():
    assert catalog.default_activity(TimerMode.FOCUS).id == "lurou"
    assert catalog.default_activity(TimerMode.SHORT_BREAK).id == "break-tea"
    assert catalog.default_activity(TimerMode.LONG_BREAK).id == "break-apple"
    assert catalog.default_activity(TimerMode.COUNT_UP).is_count_up


def test_find_activity():
    assert catalog.find_activity("stew").nominal_duration_minutes == 45
    assert catalog.find_activity("missing") is None
    assert catalog.find_activity(None) is None


def test_completed_dishes_keeps_focus_items_only():
    records = [
        _record("1", "Braised Pork Rice"),
        _record("2", "Pearl Milk Tea"),
        _record("3", "Manually Added"),
        _record("4", "Countryside Steamed Rice"),
        _record("5", "Fish Head Tofu Soup"),
    ]
    dishes = catalog.completed_dishes(records)
    assert [(record.id, icon) for record, icon in dishes] == [
        ("1", "lurou"),
        ("4", "steamed-rice"),
        ("5", "fish"),
    ]
    assert catalog.completed_dishes([]) == []
