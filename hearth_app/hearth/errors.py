"""Exceptions raised by the hearth core when an operation needs a caller decision."""
from __future__ import annotations


class HearthError(Exception):
    """Base class for refusals surfaced to the caller."""


class ConfirmationRequired(HearthError):
    """The operation would discard data and needs explicit confirmation."""


class LastCategoryError(HearthError):
    """The last remaining category cannot be deleted."""


class MergeTargetRequired(HearthError):
    """A category still referenced by records needs a merge target or a purge."""

    def __init__(self, category: str, record_count: int, suggested_target: str | None = None) -> None:
        super().__init__(
            f"Category {category!r} has {record_count} record(s); choose a merge target or purge them"
        )
        self.category = category
        self.record_count = record_count
        self.suggested_target = suggested_target


class UnknownCategoryError(HearthError, KeyError):
    """The named category is not in the active set."""

    def __str__(self) -> str:
        return f"Unknown category {self.args[0]!r}" if self.args else "Unknown category"
