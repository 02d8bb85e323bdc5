from dataclasses import dataclass
from typing import List, Optional

# Feasibility issue kinds
CLASS_OVER_CAPACITY = "class_over_capacity"
UNKNOWN_TEACHER = "unknown_teacher"
TEACHER_WITHOUT_AVAILABILITY = "teacher_without_availability"
LESSON_WITHOUT_SLOTS = "lesson_without_slots"
AVAILABILITY_SHAPE = "availability_shape"


@dataclass(frozen=True)
class FeasibilityIssue:
    """
    One reason why the input cannot be scheduled at all.

    Attributes:
        kind: One of the issue kinds defined in this module
        message: Human readable explanation
        class_name: Class concerned, if any
        lesson: Lesson label concerned, if any
        teacher: Teacher name concerned, if any
    """
    kind: str
    message: str
    class_name: Optional[str] = None
    lesson: Optional[str] = None
    teacher: Optional[str] = None

    def to_dict(self):
        return {
            "kind": self.kind,
            "message": self.message,
            "class": self.class_name,
            "lesson": self.lesson,
            "teacher": self.teacher,
        }


class SchedulingError(Exception):
    """Base class for errors raised by the timetable engine."""


class InputInfeasibleError(SchedulingError):
    """
    Raised before the search starts when the input cannot possibly be
    scheduled (e.g. a class needs more periods than the week holds).
    """

    def __init__(self, issues: List[FeasibilityIssue]):
        self.issues = list(issues)
        summary = "; ".join(issue.message for issue in self.issues)
        super().__init__(f"Input cannot be scheduled: {summary}")
