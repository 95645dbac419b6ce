# Overview: Serial parsing and ticket/sales arithmetic for scratch-ticket packs.

"""
Serial arithmetic for scratch-ticket packs.

Serials are fixed-width, zero-padded decimal strings ("000".."999").
Counting is inclusive: a pack read from "000" to "014" has sold 15 tickets
because both endpoints are sold tickets.

Money is always Decimal, quantized to cents.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

SERIAL_WIDTH = 3
CENTS = Decimal("0.01")


class SerialFormatError(ValueError):
    """Raised for serials that are not exactly SERIAL_WIDTH ASCII digits."""
    pass


def is_valid_serial(serial) -> bool:
    return (
        isinstance(serial, str)
        and len(serial) == SERIAL_WIDTH
        and serial.isascii()
        and serial.isdigit()
    )


def to_int(serial: str) -> int:
    """Parse a serial; "1" and "01" are rejected, only "001" is accepted."""
    if not is_valid_serial(serial):
        raise SerialFormatError(f"Serial must be exactly {SERIAL_WIDTH} digits, got {serial!r}")
    return int(serial)


def tickets_sold(starting: str, ending: str) -> int:
    """Inclusive count of tickets from starting through ending."""
    return to_int(ending) + 1 - to_int(starting)


def serial_delta(starting: str, ending: str) -> int:
    """
    Net serial movement between two readings of the same pack.

    Used for shift/day readings where the starting serial is the next
    ticket to sell, so an unchanged reading means no sales.
    """
    return to_int(ending) - to_int(starting)


def to_decimal(value) -> Decimal:
    """Coerce price-like input to Decimal; floats go through str()."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def sales_amount(tickets: int, unit_price) -> Decimal:
    """tickets * unit_price as exact Decimal, rounded to cents."""
    return (Decimal(tickets) * to_decimal(unit_price)).quantize(CENTS, rounding=ROUND_HALF_UP)
