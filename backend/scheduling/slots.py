"""15-minute slot grid helpers.

``quantize`` rounds up, never down, so that comparing a caller-supplied time with
its quantized value rejects anything off the grid instead of silently moving it.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterator

from backend.core import config

SLOT_LENGTH = timedelta(minutes=config.SLOT_MINUTES)


def quantize(value: datetime) -> datetime:
    """Round ``value`` up to the next slot boundary, keeping its tzinfo."""
    day_start = value.replace(hour=0, minute=0, second=0, microsecond=0)
    remainder = (value - day_start) % SLOT_LENGTH
    if not remainder:
        return value
    return value + (SLOT_LENGTH - remainder)


def is_quantized(value: datetime) -> bool:
    return quantize(value) == value


def slot_end(slot_start: datetime) -> datetime:
    return slot_start + SLOT_LENGTH


@dataclass(frozen=True)
class SlotRange:
    """Ordered slot boundaries in ``[start, end)``.

    Iterating is lazy and can be repeated any number of times.
    """

    start: datetime
    end: datetime

    def __iter__(self) -> Iterator[datetime]:
        current = self.start
        while current < self.end:
            yield current
            current += SLOT_LENGTH

    def __len__(self) -> int:
        if self.end <= self.start:
            return 0
        span = self.end - self.start
        full, partial = divmod(span, SLOT_LENGTH)
        return full + (1 if partial else 0)

    def __contains__(self, value: object) -> bool:
        if not isinstance(value, datetime):
            return False
        if not self.start <= value < self.end:
            return False
        return not (value - self.start) % SLOT_LENGTH
