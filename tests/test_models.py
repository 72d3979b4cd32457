import pytest

from hearth_app.hearth.models import Clock, FocusRecord, Period, TimerMode, TimerStatus


def test_record_from_dict():
    record = FocusRecord.from_dict(
        {"id": "1", "category": "Work", "duration": 25, "timestamp": 1700000000000, "activityName": "Braised Pork Rice"}
    )
    assert record.duration_minutes == 25
    assert record.timestamp_millis == 1700000000000
    assert record.activity_name == "Braised Pork Rice"
    assert FocusRecord.from_dict(record.to_dict()) == record


def test_record_from_dict_accepts_legacy_food_name():
    record = FocusRecord.from_dict({"id": 17, "category": "Study", "duration": "15", "timestamp": 5, "foodName": "Fuji Apple"})
    assert record.id == "17"
    assert record.duration_minutes == 15
    assert record.activity_name == "Fuji Apple"


@pytest.mark.parametrize(
    "data",
    [
        None,
        [],
        {"category": "Work", "duration": 5, "timestamp": 1},
        {"id": "", "category": "Work", "duration": 5, "timestamp": 1},
        {"id": "a", "duration": 5, "timestamp": 1},
        {"id": "a", "category": "Work", "duration": "soon", "timestamp": 1},
        {"id": "a", "category": "Work", "duration": -3, "timestamp": 1},
        {"id": "a", "category": "Work", "duration": 5},
    ],
)
def test_record_from_dict_rejects_malformed(data):
    with pytest.raises(ValueError):
        FocusRecord.from_dict(data)


def test_clock_formatted():
    clock = Clock(TimerMode.FOCUS, TimerStatus.IDLE, 25 * 60 - 1, 25)
    assert clock.formatted == "24:59"


def test_mode_flags():
    assert TimerMode.FOCUS.counts_down
    assert not TimerMode.COUNT_UP.counts_down
    assert TimerMode.LONG_BREAK.is_break
    assert not TimerMode.FOCUS.is_break


def test_period_parse():
    assert Period.parse("week") is Period.WEEK
    assert Period.parse("fortnight", default=Period.DAY) is Period.DAY
    with pytest.raises(ValueError):
        Period.parse("fortnight")
