"""
Peak-hour table.

Lunch and dinner rushes as closed hour intervals in local server time.
"""

from typing import Sequence

HourWindow = tuple[int, int]

# Both ends inclusive: 14:59 and 20:59 are still peak
PEAK_WINDOWS: tuple[HourWindow, ...] = (
    (11, 14),
    (17, 20),
)


def is_peak_hour(hour: int, windows: Sequence[HourWindow] = PEAK_WINDOWS) -> bool:
    """Return True if ``hour`` falls inside any of the closed ``windows``."""
    if not 0 <= hour <= 23:
        raise ValueError(f"hour must be in [0, 23], got {hour}")
    return any(start <= hour <= end for start, end in windows)
