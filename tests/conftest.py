import pytest

from timetabling.models.availability import Availability
from timetabling.models.lesson import AlternatingLesson, GroupLesson, NormalLesson
from timetabling.models.roster import Roster
from timetabling.models.scheduler_config import SchedulerConfig
from timetabling.models.school_class import SchoolClass
from timetabling.models.teacher import Teacher


@pytest.fixture
def fast_config():
    """Small search budget so tests stay quick."""
    return SchedulerConfig(
        initial_pool_size=3,
        max_es_iterations=1500,
        max_stagnant_iterations=100,
        max_annealing_iterations=100,
        seed=7,
    )


@pytest.fixture
def keller():
    return Teacher("Keller", Availability.full())


@pytest.fixture
def single_class_roster(keller):
    """One class, one teacher available all week, math three times."""
    math = NormalLesson("Math", keller, 3)
    return Roster([SchoolClass("5B", [math])], [keller])


@pytest.fixture
def one_slot_teacher():
    availability = Availability.empty()
    availability.set(0, 0, True)
    return Teacher("Roth", availability)


@pytest.fixture
def school_roster():
    """A small but realistic week: three classes sharing four teachers."""
    keller = Teacher("Keller", Availability.full())
    roth = Teacher("Roth", Availability.full())
    berg = Teacher("Berg", Availability.full())
    weiss = Availability.full()
    weiss.set_day(4, False)
    weiss = Teacher("Weiss", weiss)

    classes = [
        SchoolClass("5A", [
            NormalLesson("Math", keller, 4),
            NormalLesson("German", roth, 4),
            AlternatingLesson(("Music", "Art"), (berg, weiss), 1),
            GroupLesson("PE", (roth, berg), 2),
        ]),
        SchoolClass("5B", [
            NormalLesson("Math", keller, 4),
            NormalLesson("English", weiss, 3),
            NormalLesson("Biology", berg, 2),
        ]),
        SchoolClass("6A", [
            NormalLesson("History", weiss, 2),
            NormalLesson("Math", keller, 3),
            NormalLesson("German", roth, 3),
        ]),
    ]
    return Roster(classes, [keller, roth, berg, weiss])
