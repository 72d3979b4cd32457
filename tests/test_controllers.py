from datetime import datetime, time

import pytest

from hearth_app.hearth.controllers import AppController, ConfigManager
from hearth_app.hearth.errors import MergeTargetRequired, UnknownCategoryError
from hearth_app.hearth.models import Period, TimerMode, TimerStatus
from hearth_app.hearth.storage import Storage


class DummyExporter:
    def __init__(self):
        self.calls = []

    def export(self, records, allocation):
        self.calls.append((list(records), list(allocation)))
        return "test.xlsx"


@pytest.fixture
def controller(tmp_path, scheduler):
    config = ConfigManager(config_dir=tmp_path / "cfg")
    return AppController(Storage(tmp_path / "data.db"), scheduler, DummyExporter(), config)


def test_focus_session_shows_up_in_report(controller, scheduler):
    controller.select_activity("fish")
    controller.set_category("Study")
    controller.engine.start()
    scheduler.advance(600)

    assert controller.engine.status is TimerStatus.FINISHED
    assert controller.report.category_totals == {"Study": 10}
    (block,) = controller.report.timeline_blocks
    assert block.top == 10 * 60
    assert block.height == 20


def test_delete_current_category_rehomes_selection(controller):
    controller.set_category("Study")
    controller.report.select_category("Study")
    controller.delete_category("Study")
    assert controller.engine.category == "Work"
    assert controller.report.selected_category is None


def test_delete_referenced_category_requires_merge(controller):
    controller.add_manual_record("Health", 30, time(8, 0))
    with pytest.raises(MergeTargetRequired):
        controller.delete_category("Health")
    outcome = controller.delete_category("Health", merge_target="Zen")
    assert outcome.merged == 1
    assert controller.report.category_totals == {"Zen": 30}


def test_add_manual_record_validates(controller):
    with pytest.raises(UnknownCategoryError):
        controller.add_manual_record("Gardening", 30, time(8, 0))
    with pytest.raises(ValueError):
        controller.add_manual_record("Work", -1, time(8, 0))
    record = controller.add_manual_record("Work", 45, time(7, 15))
    assert datetime.fromtimestamp(record.timestamp_millis / 1000) == datetime(2024, 3, 15, 7, 15)


def test_select_unknown_activity(controller):
    with pytest.raises(KeyError):
        controller.select_activity("pizza")


def test_export_uses_ledger_and_allocation(controller):
    controller.add_manual_record("Work", 45, time(7, 15))
    assert controller.export_to_excel() == "test.xlsx"
    records, allocation = controller.exporter.calls[0]
    assert len(records) == 1
    assert allocation[0].category == "Work"


def test_save_config_persists_selection(controller, tmp_path):
    controller.set_mode(TimerMode.COUNT_UP)
    controller.set_category("Zen")
    controller.report.set_period(Period.MONTH)
    controller.save_config()

    reloaded = ConfigManager(config_dir=tmp_path / "cfg").config
    assert reloaded.selected_activity == "free-rice"
    assert reloaded.current_category == "Zen"
    assert reloaded.default_period == "MONTH"


def test_config_restores_engine_state(tmp_path, scheduler):
    config = ConfigManager(config_dir=tmp_path / "cfg")
    config.config.selected_activity = "free-rice"
    config.config.current_category = "Health"
    controller = AppController(Storage(tmp_path / "data.db"), scheduler, None, config)
    assert controller.engine.mode is TimerMode.COUNT_UP
    assert controller.engine.category == "Health"
    with pytest.raises(RuntimeError):
        controller.export_to_excel()
