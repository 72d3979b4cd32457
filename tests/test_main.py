import pytest

from hearth_app import main as cli
from hearth_app.hearth.controllers import ConfigManager
from hearth_app.hearth.models import FocusRecord
from hearth_app.hearth.storage import Storage


@pytest.fixture
def run_cli(tmp_path, monkeypatch):
    monkeypatch.setattr(cli, "ConfigManager", lambda: ConfigManager(config_dir=tmp_path))
    monkeypatch.setattr(cli, "configure_logging", lambda verbose=False: None)
    return cli.main


def test_categories_commands(run_cli, capsys):
    assert run_cli(["categories", "add", "Reading"]) == 0
    assert run_cli(["categories", "add", "Reading"]) == 1
    assert run_cli(["categories", "list"]) == 0
    out = capsys.readouterr().out
    assert "Reading" in out.splitlines()


def test_delete_referenced_category_reports_error(run_cli, capsys):
    assert run_cli(["add", "--category", "Study", "--start", "00:05", "--minutes", "30"]) == 0
    assert run_cli(["categories", "delete", "Study"]) == 2
    assert "merge target" in capsys.readouterr().err
    assert run_cli(["categories", "delete", "Study", "--merge-into", "Work"]) == 0


def test_report_lists_manual_records(run_cli, capsys):
    run_cli(["add", "--category", "Work", "--start", "00:01", "--minutes", "65"])
    capsys.readouterr()
    assert run_cli(["report", "--period", "WEEK"]) == 0
    out = capsys.readouterr().out
    assert "1 sessions, 1h 5m" in out
    assert "Work: 1h 5m (100%)" in out


def test_bad_start_time_is_rejected(run_cli):
    with pytest.raises(SystemExit):
        run_cli(["add", "--category", "Work", "--start", "soon", "--minutes", "5"])


def test_report_shows_completed_dishes(run_cli, tmp_path, capsys):
    Storage(ConfigManager(config_dir=tmp_path).database_path).save_records([
        FocusRecord("a", "Work", 25, 1700000000000, "Braised Pork Rice"),
        FocusRecord("b", "Work", 25, 1700000100000, "Braised Pork Rice"),
        FocusRecord("c", "Zen", 5, 1700000200000, "Pearl Milk Tea"),
    ])
    assert run_cli(["report"]) == 0
    out = capsys.readouterr().out
    assert "Completed dishes (2)" in out
    assert "Braised Pork Rice" in out and "x2" in out
    assert "Pearl Milk Tea" not in out
