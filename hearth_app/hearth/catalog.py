"""Static catalogs of selectable activities."""
from __future__ import annotations

from typing import Iterable, List, Optional, Tuple

from .models import Activity, FocusRecord, TimerMode

FOCUS_ITEMS: List[Activity] = [
    Activity("lurou", "Braised Pork Rice", "lurou", 25, "#f8fafc"),
    Activity("rice", "Bamboo Sticky Rice", "rice", 15, "#fef3c7"),
    Activity("stew", "Bamboo Shoot & Pork Soup", "stew", 45, "#7c2d12"),
    Activity("cake", "Stir-fried Rice Cake", "cake", 20, "#fde047"),
    Activity("fish", "Fish Head Tofu Soup", "fish", 10, "#166534"),
    Activity("noodle", "Tomato Egg Noodles", "noodle", 25, "#f5f5f5"),
    Activity("free-rice", "Countryside Steamed Rice", "steamed-rice", 0, "#ffffff"),
]

BREAK_ITEMS: List[Activity] = [
    Activity("break-tea", "Pearl Milk Tea", "milktea", 5, "#166534"),
    Activity("break-apple", "Fuji Apple", "apple", 15, "#dc2626"),
]


def items_for_mode(mode: TimerMode) -> List[Activity]:
    return BREAK_ITEMS if mode.is_break else FOCUS_ITEMS


def count_up_activity() -> Activity:
    return next(item for item in FOCUS_ITEMS if item.is_count_up)


def default_activity(mode: TimerMode) -> Activity:
    """Activity selected when switching into ``mode``."""
    if mode is TimerMode.COUNT_UP:
        return count_up_activity()
    if mode is TimerMode.LONG_BREAK:
        return max(BREAK_ITEMS, key=lambda item: item.nominal_duration_minutes)
    return items_for_mode(mode)[0]


def find_activity(activity_id: Optional[str]) -> Optional[Activity]:
    if not activity_id:
        return None
    for item in FOCUS_ITEMS + BREAK_ITEMS:
        if item.id == activity_id:
            return item
    return None


def find_by_name(name: Optional[str]) -> Optional[Activity]:
    return next((item for item in FOCUS_ITEMS if item.name == name), None)


def completed_dishes(records: Iterable[FocusRecord]) -> List[Tuple[FocusRecord, str]]:
    """Records of catalog focus dishes, in ledger order, each with its icon key.

    Breaks and manually added entries are left out.
    """
    dishes = []
    for record in records:
        item = find_by_name(record.activity_name)
        if item is not None:
            dishes.append((record, item.icon_key))
    return dishes
