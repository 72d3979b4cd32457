"""Controllers wiring storage, the ledger, the timer engine, reports and configuration."""
from __future__ import annotations

import json
import logging
import tomllib
from dataclasses import dataclass
from datetime import datetime, time
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional

from . import catalog
from .errors import UnknownCategoryError
from .ledger import DeletionOutcome, SessionLedger
from .models import Activity, FocusRecord, Period, TimerMode
from .schedule import CandidateRecord, ReportView, to_millis
from .storage import Storage
from .timers import MAX_MANUAL_MINUTES, TickScheduler, TimerEngine

if TYPE_CHECKING:  # pragma: no cover - hints only
    from reports.excel_export import ExcelExporter

LOGGER = logging.getLogger(__name__)


CONFIG_DIR = Path.home() / ".hearth"
CONFIG_FILE_NAME = "config.toml"
DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "default_config.toml"


def _toml_string(value: str) -> str:
    # a JSON string literal is also a valid TOML basic string
    return json.dumps(str(value))


def _as_float(value: object, default: float) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    return result if result > 0 else default


def _as_int(value: object, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass
class AppConfig:
    export_path: str = "hearth_history.xlsx"
    chart_path: str = "hearth_chart.png"
    database_path: str = ""
    default_period: str = "DAY"
    current_category: str = ""
    selected_activity: str = "lurou"
    pixels_per_minute: float = 1.0
    minimum_block_height: float = 20.0
    max_manual_minutes: int = MAX_MANUAL_MINUTES
    record_breaks: bool = False

    @classmethod
    def from_toml(cls, data: dict) -> "AppConfig":
        period = Period.parse(data.get("default_period", "DAY"), default=Period.DAY)
        return cls(
            export_path=str(data.get("export_path", "hearth_history.xlsx")),
            chart_path=str(data.get("chart_path", "hearth_chart.png")),
            database_path=str(data.get("database_path", "") or ""),
            default_period=period.value,
            current_category=str(data.get("current_category", "") or ""),
            selected_activity=str(data.get("selected_activity", "lurou") or "lurou"),
            pixels_per_minute=_as_float(data.get("pixels_per_minute"), 1.0),
            minimum_block_height=_as_float(data.get("minimum_block_height"), 20.0),
            max_manual_minutes=_as_int(data.get("max_manual_minutes"), MAX_MANUAL_MINUTES),
            record_breaks=bool(data.get("record_breaks", False)),
        )

    def to_toml(self) -> str:
        lines = [
            f"export_path = {_toml_string(self.export_path)}",
            f"chart_path = {_toml_string(self.chart_path)}",
            f"database_path = {_toml_string(self.database_path)}",
            f"default_period = {_toml_string(self.default_period)}",
            f"current_category = {_toml_string(self.current_category)}",
            f"selected_activity = {_toml_string(self.selected_activity)}",
            f"pixels_per_minute = {float(self.pixels_per_minute)}",
            f"minimum_block_height = {float(self.minimum_block_height)}",
            f"max_manual_minutes = {int(self.max_manual_minutes)}",
            f"record_breaks = {str(bool(self.record_breaks)).lower()}",
        ]
        return "\n".join(lines) + "\n"


class ConfigManager:
    def __init__(self, config_dir: Path = CONFIG_DIR) -> None:
        self.config_dir = Path(config_dir)
        self.config_file = self.config_dir / CONFIG_FILE_NAME
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.config = self._load()

    def _load(self) -> AppConfig:
        if self.config_file.exists():
            try:
                with open(self.config_file, "rb") as fh:
                    return AppConfig.from_toml(tomllib.load(fh))
            except tomllib.TOMLDecodeError:
                LOGGER.warning("Config file %s is unreadable, falling back to defaults", self.config_file)
        with open(DEFAULT_CONFIG_PATH, "rb") as fh:
            data = tomllib.load(fh)
            config = AppConfig.from_toml(data)
            self.save(config)
            return config

    @property
    def database_path(self) -> Path:
        if self.config.database_path:
            return Path(self.config.database_path).expanduser()
        return self.config_dir / "data.db"

    def save(self, config: Optional[AppConfig] = None) -> None:
        cfg = config or self.config
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.config_file.write_text(cfg.to_toml(), encoding="utf-8")
        LOGGER.info("Saved configuration to %s", self.config_file)


class AppController:
    def __init__(
        self,
        storage: Storage,
        scheduler: TickScheduler,
        exporter: Optional["ExcelExporter"],
        config_manager: ConfigManager,
    ) -> None:
        self.storage = storage
        self.scheduler = scheduler
        self.exporter = exporter
        self.config_manager = config_manager
        cfg = config_manager.config
        self.ledger = SessionLedger(storage)
        self.engine = TimerEngine(
            self.ledger,
            scheduler,
            activity=catalog.find_activity(cfg.selected_activity),
            category=cfg.current_category or None,
            record_breaks=cfg.record_breaks,
            max_manual_minutes=cfg.max_manual_minutes,
        )
        self.report = ReportView(
            self.ledger,
            period=Period.parse(cfg.default_period, default=Period.DAY),
            pixels_per_minute=cfg.pixels_per_minute,
            minimum_block_height=cfg.minimum_block_height,
            now=lambda: _local_now(scheduler),
        )

    # Timer operations
    def select_activity(self, activity_id: str, confirmed: bool = False) -> Activity:
        activity = catalog.find_activity(activity_id)
        if activity is None:
            raise KeyError(activity_id)
        self.engine.select_activity(activity, confirmed=confirmed)
        return activity

    def set_mode(self, mode: TimerMode) -> bool:
        return self.engine.set_mode(mode)

    def set_category(self, name: str) -> None:
        self.engine.set_category(name)

    # Category management
    def list_categories(self) -> List[str]:
        return self.ledger.categories

    def add_category(self, name: str) -> Optional[str]:
        return self.ledger.add_category(name)

    def delete_category(self, name: str, merge_target: Optional[str] = None, purge: bool = False) -> DeletionOutcome:
        outcome = self.ledger.delete_category(name, merge_target=merge_target, purge=purge)
        remaining = self.ledger.categories
        if self.engine.category == name:
            self.engine.set_category(remaining[0])
        if self.report.selected_category == name:
            self.report.select_category(None)
        return outcome

    # Manual records
    def add_manual_record(
        self,
        category: str,
        duration_minutes: int,
        start_time_of_day: time,
    ) -> FocusRecord:
        """Append a manually entered record for today at ``start_time_of_day``."""
        if category not in self.ledger.categories:
            raise UnknownCategoryError(category)
        today = _local_now(self.scheduler).date()
        candidate = CandidateRecord(
            category=category,
            duration_minutes=duration_minutes,
            timestamp_millis=to_millis(datetime.combine(today, start_time_of_day)),
        )
        return self.report.save_candidate(candidate)

    # Reports
    def export_to_excel(self) -> Path:
        if self.exporter is None:
            raise RuntimeError("No exporter configured")
        return self.exporter.export(self.ledger.records, self.report.allocation)

    def render_chart(self, path: Optional[Path] = None) -> Path:
        from reports.chart_export import render_chart

        target = Path(path or self.config_manager.config.chart_path)
        return render_chart(self.report.slices, target, self.report.category_colors(), self.report.count)

    def save_config(self) -> None:
        cfg = self.config_manager.config
        cfg.selected_activity = self.engine.activity.id
        cfg.current_category = self.engine.category
        cfg.default_period = self.report.period.value
        self.config_manager.save(cfg)

    def backup_database(self) -> Path:
        return self.storage.backup_database()


def _local_now(scheduler: TickScheduler) -> datetime:
    return datetime.fromtimestamp(scheduler.now_millis() / 1000)
