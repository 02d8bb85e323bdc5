from dataclasses import dataclass, field
from timetabling.models.lesson import Lesson, lesson_label


@dataclass(frozen=True)
class Occurrence:
    """
    One weekly placement unit of a lesson.

    A lesson needing N periods per week yields N occurrences. Identity is
    (class_name, lesson_index, index); the lesson itself is carried along
    for convenience and is not part of equality.

    Attributes:
        class_name: Class the lesson belongs to
        lesson_index: Position of the lesson in the class's lesson list
        index: Occurrence number, 0..periods_per_week-1
        lesson: The lesson being placed
    """
    class_name: str
    lesson_index: int
    index: int
    lesson: Lesson = field(compare=False, repr=False)

    @property
    def label(self) -> str:
        return lesson_label(self.lesson)
