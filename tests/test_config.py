import tomllib

from hearth_app.hearth.controllers import AppConfig, ConfigManager


def test_to_toml_roundtrip():
    cfg = AppConfig(
        export_path="stats.xlsx",
        default_period="WEEK",
        current_category="Study",
        selected_activity="stew",
        pixels_per_minute=1.5,
        record_breaks=True,
    )

    toml_text = cfg.to_toml()
    assert "record_breaks = true" in toml_text

    parsed = AppConfig.from_toml(tomllib.loads(toml_text))
    assert parsed == cfg


def test_to_toml_escapes_quoted_names(tmp_path):
    cfg = AppConfig(current_category="Mom \"Work\"", export_path="C:\\exports\\stats.xlsx")
    parsed = AppConfig.from_toml(tomllib.loads(cfg.to_toml()))
    assert parsed.current_category == "Mom \"Work\""
    assert parsed.export_path == "C:\\exports\\stats.xlsx"

    manager = ConfigManager(config_dir=tmp_path)
    manager.config.current_category = "Caf\u00e9 \"Zen\""
    manager.save()
    assert ConfigManager(config_dir=tmp_path).config.current_category == "Caf\u00e9 \"Zen\""


def test_from_toml_falls_back_on_bad_values():
    parsed = AppConfig.from_toml({
        "default_period": "fortnight",
        "pixels_per_minute": "wide",
        "minimum_block_height": -4,
        "max_manual_minutes": "lots",
        "selected_activity": "",
    })
    assert parsed.default_period == "DAY"
    assert parsed.pixels_per_minute == 1.0
    assert parsed.minimum_block_height == 20.0
    assert parsed.max_manual_minutes == 999
    assert parsed.selected_activity == "lurou"
    assert parsed.record_breaks is False


def test_config_manager_seeds_from_defaults(tmp_path):
    manager = ConfigManager(config_dir=tmp_path / "cfg")
    assert manager.config_file.exists()
    assert manager.config.current_category == "Work"
    assert manager.database_path == tmp_path / "cfg" / "data.db"

    manager.config.current_category = "Zen"
    manager.save()
    assert ConfigManager(config_dir=tmp_path / "cfg").config.current_category == "Zen"


def test_config_manager_recovers_from_corrupt_file(tmp_path):
    (tmp_path / "config.toml").write_text("export_path = [unclosed", encoding="utf-8")
    manager = ConfigManager(config_dir=tmp_path)
    assert manager.config.export_path == "hearth_history.xlsx"
    assert tomllib.loads(manager.config_file.read_text(encoding="utf-8"))["default_period"] == "DAY"
