"""Hour estimation helpers.

Every reported hour value is a multiple of 0.5. Rounding is half away from
zero so that ``0.25`` becomes ``0.5`` rather than banker's-rounding to ``0``.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

HOURS_PER_DAY = 8


def estimate_hours(base_hours: float, occurrence_count: int) -> float:
    """Return ``base_hours * occurrence_count`` rounded to the nearest half hour."""
    if base_hours < 0:
        raise ValueError(f"base_hours must be non-negative, got {base_hours}")
    if occurrence_count < 0:
        raise ValueError(f"occurrence_count must be non-negative, got {occurrence_count}")
    return round_to_half_hour(base_hours * occurrence_count)


def round_to_half_hour(hours: float) -> float:
    """Round to 0.5h granularity."""
    doubled = _round_half_away(Decimal(repr(hours)) * 2, Decimal("1"))
    return float(doubled / 2)


def hours_to_days(hours: float) -> float:
    """Convert hours to 8h working days, rounded to one decimal."""
    days = Decimal(repr(hours)) / HOURS_PER_DAY
    return float(_round_half_away(days, Decimal("0.1")))


def split_hours(total_hours: float, count: int) -> list[float]:
    """Split a lump-sum estimate across ``count`` items in half-hour units.

    The shares always sum to ``round_to_half_hour(total_hours)``; earlier items
    absorb the remainder.
    """
    if count <= 0:
        return []
    units = int(round_to_half_hour(total_hours) * 2)
    share, remainder = divmod(units, count)
    return [(share + (1 if index < remainder else 0)) / 2 for index in range(count)]


def is_half_hour_multiple(hours: float) -> bool:
    return float(hours * 2).is_integer()


def _round_half_away(value: Decimal, quantum: Decimal) -> Decimal:
    return value.quantize(quantum, rounding=ROUND_HALF_UP)
