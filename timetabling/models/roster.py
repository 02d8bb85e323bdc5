from dataclasses import dataclass, field
from typing import Dict, List, Tuple
from timetabling.models.availability import DEFAULT_DAYS, DEFAULT_PERIODS_PER_DAY
from timetabling.models.lesson import occupied_teachers
from timetabling.models.occurrence import Occurrence
from timetabling.models.school_class import SchoolClass
from timetabling.models.teacher import Teacher


@dataclass()
class Roster:
    """
    Container for everything the scheduler needs: the classes to timetable,
    the teachers and the shape of the week.

    The roster keeps its own lists so later edits to the caller's
    collections do not leak into a running search.

    Attributes:
        classes: Classes to schedule, in input order
        teachers: Known teachers; lessons refer to them by name
        days: Number of school days in the week
        periods_per_day: Number of periods in each day
    """
    classes: List[SchoolClass]
    teachers: List[Teacher]
    days: int = DEFAULT_DAYS
    periods_per_day: int = DEFAULT_PERIODS_PER_DAY
    _by_name: Dict[str, Teacher] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self):
        self.classes = list(self.classes)
        self.teachers = list(self.teachers)
        self._by_name = {}
        for teacher in self.teachers:
            self._by_name.setdefault(teacher.name, teacher)

    @property
    def capacity(self) -> int:
        """Number of slots in one week."""
        return self.days * self.periods_per_day

    def slots(self) -> List[Tuple[int, int]]:
        return [(day, period) for day in range(self.days) for period in range(self.periods_per_day)]

    def has_teacher(self, name: str) -> bool:
        return name in self._by_name

    def resolve(self, teacher: Teacher) -> Teacher:
        """Returns the roster's teacher with the same name, or ``teacher`` itself."""
        return self._by_name.get(teacher.name, teacher)

    def teacher_names(self) -> List[str]:
        """Names of roster teachers followed by any teacher only known from a lesson."""
        names = list(self._by_name)
        seen = set(names)
        for school_class in self.classes:
            for lesson in school_class.lessons:
                for teacher in occupied_teachers(lesson):
                    if teacher.name not in seen:
                        seen.add(teacher.name)
                        names.append(teacher.name)
        return names

    def occurrences(self) -> List[Occurrence]:
        """Every lesson occurrence of every class, in input order."""
        result = []
        for school_class in self.classes:
            for lesson_index, lesson in enumerate(school_class.lessons):
                for index in range(lesson.periods_per_week):
                    result.append(Occurrence(school_class.name, lesson_index, index, lesson))
        return result
