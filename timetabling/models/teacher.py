from dataclasses import dataclass, field
from typing import List, Optional, Tuple
from timetabling.models.availability import Availability


@dataclass(eq=False)
class Teacher:
    """
    Represents a teacher.

    The name is the natural key of a teacher: two Teacher values with the
    same name are the same scheduling subject, whatever their other fields.

    Attributes:
        name: Teacher's name (e.g., "Mrs. Keller")
        availability: Weekly slots when the teacher can teach
        email: Optional contact address
    """
    name: str
    availability: Availability = field(default_factory=Availability.full)
    email: Optional[str] = None

    def __eq__(self, other):
        if not isinstance(other, Teacher):
            return NotImplemented
        return self.name == other.name

    def __hash__(self):
        return hash(self.name)

    def is_available(self, day: int, period: int) -> bool:
        return self.availability.get(day, period)

    def available_slots(self) -> List[Tuple[int, int]]:
        return self.availability.available_slots()
