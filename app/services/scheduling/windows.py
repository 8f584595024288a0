"""Window generation: which dates can start a fixed-length trip window."""
from datetime import date, timedelta
from typing import Iterator, Tuple
from app.core.exceptions import InvalidOptionError

OPTION_KEY_SEPARATOR = "|"


def window_end(start: date, trip_length_days: int) -> date:
    return start + timedelta(days=trip_length_days - 1)


class ValidStarts:
    """Lazy, restartable sequence of every in-bounds window start.

    A date ``s`` belongs to the sequence when ``start_bound <= s`` and
    ``s + trip_length_days - 1 <= end_bound``. Iterating twice yields the
    same dates; membership and length are answered without iterating.
    """

    def __init__(self, start_bound: date, end_bound: date, trip_length_days: int):
        if trip_length_days < 1:
            raise ValueError("trip_length_days must be >= 1")
        self.start_bound = start_bound
        self.end_bound = end_bound
        self.trip_length_days = trip_length_days

    @property
    def last_start(self) -> date:
        return self.end_bound - timedelta(days=self.trip_length_days - 1)

    def __iter__(self) -> Iterator[date]:
        current = self.start_bound
        last = self.last_start
        while current <= last:
            yield current
            current += timedelta(days=1)

    def __len__(self) -> int:
        return max(0, (self.last_start - self.start_bound).days + 1)

    def __contains__(self, value) -> bool:
        if not isinstance(value, date):
            return False
        return self.start_bound <= value <= self.last_start

    def __bool__(self) -> bool:
        return len(self) > 0

    def __repr__(self) -> str:
        return f"ValidStarts({self.start_bound}..{self.last_start}, length={self.trip_length_days})"


def generate_valid_starts(trip) -> ValidStarts:
    return ValidStarts(trip.start_bound, trip.end_bound, trip.trip_length_days)


def make_option_key(start: date, end: date) -> str:
    return f"{start.isoformat()}{OPTION_KEY_SEPARATOR}{end.isoformat()}"


def parse_option_key(option_key: str) -> Tuple[date, date]:
    try:
        start_raw, end_raw = option_key.split(OPTION_KEY_SEPARATOR)
        return date.fromisoformat(start_raw), date.fromisoformat(end_raw)
    except (AttributeError, ValueError):
        raise InvalidOptionError(f"Malformed option key '{option_key}'", option_key=option_key) from None
