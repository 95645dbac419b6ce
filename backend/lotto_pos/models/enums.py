"""
Closed status vocabularies for lottery entities.

Every status column is bound to one of these enums, so a row carrying an
unknown value fails on load instead of silently falling through a string
comparison. Members compare equal to their plain string values.
"""
from __future__ import annotations

import enum


class _StatusEnum(str, enum.Enum):
    @classmethod
    def parse(cls, value):
        """Strict lookup: accepts a member or its exact string value."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            allowed = ", ".join(m.value for m in cls)
            raise ValueError(f"{cls.__name__} must be one of: {allowed}") from None

    def __str__(self) -> str:
        return self.value


class GameStatus(_StatusEnum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class PackStatus(_StatusEnum):
    RECEIVED = "RECEIVED"
    ACTIVE = "ACTIVE"
    DEPLETED = "DEPLETED"
    RETURNED = "RETURNED"


class ShiftStatus(_StatusEnum):
    NOT_STARTED = "NOT_STARTED"
    OPEN = "OPEN"
    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"

    @property
    def blocks_day_close(self) -> bool:
        if self is ShiftStatus.OPEN or self is ShiftStatus.ACTIVE:
            return True
        if self is ShiftStatus.NOT_STARTED or self is ShiftStatus.CLOSED:
            return False
        raise AssertionError(f"Unhandled shift status {self!r}")


class BusinessDayStatus(_StatusEnum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class EntryMethod(_StatusEnum):
    SCAN = "SCAN"
    MANUAL = "MANUAL"


def enum_column_type(enum_cls, db):
    """Non-native enum column storing the member value."""
    return db.Enum(
        enum_cls,
        native_enum=False,
        length=16,
        validate_strings=True,
        values_callable=lambda members: [m.value for m in members],
        name=enum_cls.__name__.lower(),
    )
