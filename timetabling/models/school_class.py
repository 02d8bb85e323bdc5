from dataclasses import dataclass, field
from typing import List
from timetabling.models.lesson import Lesson


@dataclass()
class SchoolClass:
    """
    Represents a school class (a group of pupils taught together).

    Attributes:
        name: Unique display name (e.g., "5B")
        lessons: Ordered lessons the class takes every week
    """
    name: str
    lessons: List[Lesson] = field(default_factory=list)

    def total_periods_per_week(self) -> int:
        return sum(lesson.periods_per_week for lesson in self.lessons)
