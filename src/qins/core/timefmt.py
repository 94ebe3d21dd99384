from __future__ import annotations

from qins.contracts import TICKS_PER_DAY, TICKS_PER_HOUR

TICKS_PER_SECOND = 60


def format_ticks_to_period(ticks: int) -> str:
    ticks = max(0, int(ticks))
    if ticks >= TICKS_PER_DAY:
        return _plural(ticks / TICKS_PER_DAY, "day")
    if ticks >= TICKS_PER_HOUR:
        return _plural(ticks / TICKS_PER_HOUR, "hour")
    return _plural(ticks / TICKS_PER_SECOND, "second")


def time_ago(now_ticks: int, at_ticks: int) -> str:
    return format_ticks_to_period(now_ticks - at_ticks)


def _plural(amount: float, unit: str) -> str:
    rounded = round(amount, 1)
    if rounded == int(rounded):
        count = int(rounded)
        return f"{count} {unit}" if count == 1 else f"{count} {unit}s"
    return f"{rounded} {unit}s"
