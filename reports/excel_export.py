"""Excel export utilities for the session ledger."""
from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Iterable

import pandas as pd

from hearth_app.hearth.models import FocusRecord
from hearth_app.hearth.schedule import AllocationRow, to_local

LOGGER = logging.getLogger(__name__)

RAW_COLUMNS = ["RecordId", "Date", "Start", "Category", "DurationMinutes", "Activity"]


class ExcelExporter:
    def __init__(self, export_path: Path):
        self.export_path = Path(export_path)
        self.export_path.parent.mkdir(parents=True, exist_ok=True)

    def export(self, records: Iterable[FocusRecord], allocation: Iterable[AllocationRow]) -> Path:
        """Export records and category allocation to Excel, deduplicating by record id."""
        rows = []
        for record in records:
            started = to_local(record.timestamp_millis)
            rows.append(
                (
                    record.id,
                    started.date(),
                    started.strftime("%H:%M"),
                    record.category,
                    record.duration_minutes,
                    record.activity_name,
                )
            )
        raw_df = pd.DataFrame(rows, columns=RAW_COLUMNS)

        existing_raw = None
        if self.export_path.exists():
            try:
                existing_raw = pd.read_excel(self.export_path, sheet_name="RawData", dtype={"RecordId": str})
            except Exception:
                LOGGER.warning("Existing Excel file unreadable, recreating: %s", self.export_path)

        if existing_raw is not None:
            existing_raw["Date"] = pd.to_datetime(existing_raw["Date"]).dt.date
            combined = pd.concat([existing_raw, raw_df], ignore_index=True)
            combined.drop_duplicates(subset=["RecordId"], keep="last", inplace=True)
            raw_df = combined

        stats_df = pd.DataFrame(
            [(row.category, row.minutes, round(row.percent, 1)) for row in allocation],
            columns=["Category", "TotalMinutes", "Percent"],
        )

        with pd.ExcelWriter(self.export_path, engine="openpyxl", mode="w") as writer:
            raw_df.to_excel(writer, sheet_name="RawData", index=False)
            stats_df.to_excel(writer, sheet_name="Stats", index=False)
            meta_df = pd.DataFrame(
                [[datetime.now(), len(raw_df)]], columns=["ExportedAt", "RowCount"]
            )
            meta_df.to_excel(writer, sheet_name="Meta", index=False)
        LOGGER.info("Exported %s records to %s", len(raw_df), self.export_path)
        return self.export_path
