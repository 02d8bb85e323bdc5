from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

DEFAULT_DAYS = 5
DEFAULT_PERIODS_PER_DAY = 8


@dataclass()
class Availability:
    """
    Represents the weekly availability of a teacher.

    The week is a grid of days x periods. Each day is stored as an integer
    bit mask where bit ``p`` set means the teacher can teach in period ``p``.
    Editors replace the whole buffer (see ``with_slot`` / ``copy``) rather
    than patching it in place.

    Attributes:
        days: Number of school days in the week
        periods_per_day: Number of periods in each day
        buffer: One bit mask per day
    """
    days: int = DEFAULT_DAYS
    periods_per_day: int = DEFAULT_PERIODS_PER_DAY
    buffer: List[int] = field(default=None)

    def __post_init__(self):
        if self.buffer is None:
            self.buffer = [0] * self.days
        else:
            self.buffer = list(self.buffer)
        if len(self.buffer) != self.days:
            raise ValueError(
                f"Availability buffer has {len(self.buffer)} days, expected {self.days}"
            )
        day_mask = self._day_mask()
        for mask in self.buffer:
            if mask < 0 or mask & ~day_mask:
                raise ValueError(f"Availability mask {mask} exceeds {self.periods_per_day} periods")

    @classmethod
    def full(cls, days: int = DEFAULT_DAYS, periods_per_day: int = DEFAULT_PERIODS_PER_DAY) -> "Availability":
        """Availability with every slot of the week open."""
        return cls(days, periods_per_day, [(1 << periods_per_day) - 1] * days)

    @classmethod
    def empty(cls, days: int = DEFAULT_DAYS, periods_per_day: int = DEFAULT_PERIODS_PER_DAY) -> "Availability":
        return cls(days, periods_per_day, [0] * days)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Availability":
        """
        Builds an Availability from its serialized form.

        Accepts both ``periodsPerDay`` (as stored by the editor) and
        ``periods_per_day``.
        """
        periods = data.get("periodsPerDay", data.get("periods_per_day", DEFAULT_PERIODS_PER_DAY))
        return cls(
            days=data.get("days", DEFAULT_DAYS),
            periods_per_day=periods,
            buffer=data.get("buffer"),
        )

    def _day_mask(self) -> int:
        return (1 << self.periods_per_day) - 1

    def _check(self, day: int, period: int):
        if not 0 <= day < self.days or not 0 <= period < self.periods_per_day:
            raise IndexError(
                f"Slot ({day}, {period}) outside {self.days}x{self.periods_per_day} week"
            )

    def get(self, day: int, period: int) -> bool:
        self._check(day, period)
        return (self.buffer[day] >> period) & 1 == 1

    def set(self, day: int, period: int, value: bool):
        self._check(day, period)
        mask = 1 << period
        if value:
            self.buffer[day] |= mask
        else:
            self.buffer[day] &= ~mask

    def set_day(self, day: int, value: bool):
        self._check(day, 0)
        self.buffer[day] = self._day_mask() if value else 0

    def toggle(self, day: int, period: int):
        self._check(day, period)
        self.buffer[day] ^= 1 << period

    def with_slot(self, day: int, period: int, value: bool) -> "Availability":
        """Returns a copy with one slot changed, leaving this instance untouched."""
        updated = self.copy()
        updated.set(day, period, value)
        return updated

    def copy(self) -> "Availability":
        return Availability(self.days, self.periods_per_day, list(self.buffer))

    def available_slots(self) -> List[Tuple[int, int]]:
        """All (day, period) slots that are open, in week order."""
        return [
            (day, period)
            for day in range(self.days)
            for period in range(self.periods_per_day)
            if (self.buffer[day] >> period) & 1
        ]

    def count(self) -> int:
        return sum(bin(mask).count("1") for mask in self.buffer)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "days": self.days,
            "periodsPerDay": self.periods_per_day,
            "buffer": list(self.buffer),
        }
