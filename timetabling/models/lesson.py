from dataclasses import dataclass
from typing import Tuple, Union
from timetabling.models.teacher import Teacher

NORMAL = "normal"
ALTERNATING = "alternating"
GROUP = "group"


def _check_periods(periods_per_week: int):
    if periods_per_week < 1:
        raise ValueError(f"periods_per_week must be at least 1, got {periods_per_week}")


def _check_pair(teachers: Tuple[Teacher, Teacher]):
    if len(teachers) != 2:
        raise ValueError(f"Expected two teachers, got {len(teachers)}")
    if teachers[0].name == teachers[1].name:
        raise ValueError(f"The two teachers of a lesson must differ, got {teachers[0].name} twice")


@dataclass(frozen=True)
class NormalLesson:
    """One subject taught by one teacher."""
    name: str
    teacher: Teacher
    periods_per_week: int = 1
    kind = NORMAL

    def __post_init__(self):
        _check_periods(self.periods_per_week)


@dataclass(frozen=True)
class AlternatingLesson:
    """
    Two subject/teacher pairs sharing one weekly slot on alternating weeks.

    Week A teaches ``names[0]`` with ``teachers[0]``, week B ``names[1]``
    with ``teachers[1]``. Either teacher may be in the room in a given real
    week, so the slot is blocked for both of them every week.
    """
    names: Tuple[str, str]
    teachers: Tuple[Teacher, Teacher]
    periods_per_week: int = 1
    kind = ALTERNATING

    def __post_init__(self):
        _check_periods(self.periods_per_week)
        if len(self.names) != 2:
            raise ValueError(f"Expected two lesson names, got {len(self.names)}")
        object.__setattr__(self, "names", tuple(self.names))
        object.__setattr__(self, "teachers", tuple(self.teachers))
        _check_pair(self.teachers)


@dataclass(frozen=True)
class GroupLesson:
    """
    One subject taught at the same time by two teachers to the two halves
    of a class.
    """
    name: str
    teachers: Tuple[Teacher, Teacher]
    periods_per_week: int = 1
    kind = GROUP

    def __post_init__(self):
        _check_periods(self.periods_per_week)
        object.__setattr__(self, "teachers", tuple(self.teachers))
        _check_pair(self.teachers)


Lesson = Union[NormalLesson, AlternatingLesson, GroupLesson]


def occupied_teachers(lesson: Lesson) -> Tuple[Teacher, ...]:
    """
    Teachers blocked by one occurrence of the lesson.

    Every conflict and availability check goes through this function, so the
    three lesson kinds share one code path.
    """
    if isinstance(lesson, NormalLesson):
        return (lesson.teacher,)
    if isinstance(lesson, (AlternatingLesson, GroupLesson)):
        return lesson.teachers
    raise TypeError(f"Unknown lesson type: {type(lesson).__name__}")


def lesson_name(lesson: Lesson, week: int = 0) -> str:
    """Subject taught in the given rotation week (0 = week A, 1 = week B)."""
    if isinstance(lesson, AlternatingLesson):
        return lesson.names[week]
    return lesson.name


def lesson_teacher(lesson: Lesson, week: int = 0) -> Teacher:
    """Teacher in charge in the given rotation week."""
    if isinstance(lesson, NormalLesson):
        return lesson.teacher
    return lesson.teachers[week]


def lesson_label(lesson: Lesson) -> str:
    """Short display label, e.g. ``Music/Art`` for an alternating lesson."""
    if isinstance(lesson, AlternatingLesson):
        return "/".join(lesson.names)
    return lesson.name
