from timetabling.models.availability import Availability
from timetabling.models.lesson import GroupLesson, NormalLesson
from timetabling.models.roster import Roster
from timetabling.models.school_class import SchoolClass
from timetabling.models.teacher import Teacher
from timetabling.models.timetable import Timetable
from timetabling.utils.costs import (
    cost_report,
    count_free_first_periods,
    empty_space_cost,
    evaluate,
    gap_penalty,
    hard_constraints_cost,
    hard_violation_weight,
    has_free_hour_in_week,
    occurrence_costs,
    soft_constraints_cost,
)


def _two_classes_one_teacher():
    roth = Teacher("Roth", Availability.full())
    roster = Roster([
        SchoolClass("5A", [NormalLesson("German", roth)]),
        SchoolClass("5B", [NormalLesson("German", roth)]),
    ], [roth])
    return roster, Timetable.for_roster(roster), roster.occurrences()


def test_gap_penalty():
    assert [gap_penalty(g) for g in range(5)] == [0, 1, 3, 15, 20]


def test_teacher_conflict_names_every_class():
    roster, timetable, (first, second) = _two_classes_one_teacher()
    timetable.place(first, 0, 0)
    timetable.place(second, 0, 0)

    total, violations = hard_constraints_cost(timetable, roster)
    assert total == 1
    (violation,) = violations
    assert violation.kind == "teacher_conflict"
    assert violation.teacher == "Roth"
    assert set(violation.classes) == {"5A", "5B"}
    assert violation.slot == (0, 0)


def test_class_conflict_and_unavailable_teacher():
    availability = Availability.full()
    availability.set(1, 1, False)
    keller = Teacher("Keller", availability)
    roth = Teacher("Roth", Availability.full())
    roster = Roster([SchoolClass("5A", [NormalLesson("Math", keller), NormalLesson("German", roth)])],
                    [keller, roth])
    timetable = Timetable.for_roster(roster)
    math, german = roster.occurrences()
    timetable.place(math, 1, 1)
    timetable.place(german, 1, 1)

    report = cost_report(timetable, roster)
    assert report.class_conflicts == 1
    assert report.unavailable == 1
    assert report.teacher_conflicts == 0
    assert report.hard_violations == 2

    costs = occurrence_costs(timetable, roster)
    assert costs[math] == 2
    assert costs[german] == 1


def test_unplaced_occurrences_count_as_missing():
    roster, timetable, (first, second) = _two_classes_one_teacher()
    timetable.place(first, 0, 0)
    report = cost_report(timetable, roster)
    assert report.occurrence_mismatch == 1
    assert report.violations[0].classes == ("5B",)
    assert occurrence_costs(timetable, roster)[second] == 1


def test_perfect_single_lesson_costs_nothing(single_class_roster):
    timetable = Timetable.for_roster(single_class_roster)
    for day, occurrence in enumerate(single_class_roster.occurrences()):
        timetable.place(occurrence, day, 1)
    assert evaluate(timetable, single_class_roster) == 0
    assert cost_report(timetable, single_class_roster).hard_clean


def test_soft_terms(single_class_roster):
    timetable = Timetable.for_roster(single_class_roster)
    first, second, third = single_class_roster.occurrences()
    timetable.place(first, 0, 0)
    timetable.place(second, 0, 2)
    timetable.place(third, 0, 3)

    soft = soft_constraints_cost(timetable, single_class_roster)
    # one idle period for the teacher and the class on Monday
    assert soft["teacher_gaps"] == 3
    assert soft["class_gaps"] == 5
    # three periods on a day where one would do, for the teacher and the class
    assert soft["load_imbalance"] == 4
    assert soft["subject_repetition"] == 4
    # Monday starts in the first period, the class has four free first periods
    assert soft["first_period_lessons"] == 2
    assert soft["late_starts"] == 0
    assert soft["distribution_spread"] == 0
    assert soft["no_free_hour"] == 0


def test_first_period_preference(single_class_roster):
    timetable = Timetable.for_roster(single_class_roster)
    for day, occurrence in enumerate(single_class_roster.occurrences()):
        timetable.place(occurrence, day, 0)
    assert count_free_first_periods(timetable) == 2
    report = cost_report(timetable, single_class_roster)
    assert report.first_period_lessons == 6
    assert report.soft_cost == 6


def test_late_start_counts_idle_periods_after_the_first(single_class_roster):
    timetable = Timetable.for_roster(single_class_roster)
    first, second, third = single_class_roster.occurrences()
    timetable.place(first, 0, 4)
    timetable.place(second, 1, 1)
    timetable.place(third, 2, 2)
    report = cost_report(timetable, single_class_roster)
    # teacher gaps and the rest stay clean, only the late days cost
    assert report.late_starts == 3 + 1
    assert report.soft_cost == 4


def test_distribution_spread(keller):
    roster = Roster([SchoolClass("5B", [NormalLesson("Math", keller, 5)])], [keller])
    timetable = Timetable.for_roster(roster)
    slots = [(0, 1), (0, 2), (0, 3), (0, 4), (1, 1)]
    for occurrence, slot in zip(roster.occurrences(), slots):
        timetable.place(occurrence, *slot)
    soft = soft_constraints_cost(timetable, roster)
    # four on Monday against one on Tuesday
    assert soft["distribution_spread"] == 2


def test_no_free_hour_in_week():
    keller = Teacher("Keller", Availability.full(1, 2))
    roster = Roster([SchoolClass("5B", [NormalLesson("Math", keller, 2)])], [keller], 1, 2)
    timetable = Timetable.for_roster(roster)
    first, second = roster.occurrences()
    timetable.place(first, 0, 0)
    assert has_free_hour_in_week(timetable)
    timetable.place(second, 0, 1)
    assert not has_free_hour_in_week(timetable)
    assert soft_constraints_cost(timetable, roster)["no_free_hour"] == 100
    assert cost_report(timetable, roster).to_dict()["no_free_hour"] == 100


def test_group_lesson_books_both_teachers():
    keller, roth = Teacher("Keller"), Teacher("Roth")
    roster = Roster([
        SchoolClass("5A", [GroupLesson("PE", (keller, roth))]),
        SchoolClass("5B", [NormalLesson("German", roth)]),
    ], [keller, roth])
    timetable = Timetable.for_roster(roster)
    pe, german = roster.occurrences()
    timetable.place(pe, 3, 3)
    timetable.place(german, 3, 3)
    report = cost_report(timetable, roster)
    assert report.teacher_conflicts == 1
    assert report.violations[0].teacher == "Roth"


def test_single_hard_violation_outweighs_any_soft_cost(school_roster):
    weight = hard_violation_weight(school_roster)
    assert weight >= 1000

    # every occurrence of every class on the first day: the worst layout there is
    timetable = Timetable.for_roster(school_roster)
    for occurrence in school_roster.occurrences():
        timetable.place(occurrence, 0, 0)
    report = cost_report(timetable, school_roster)
    assert report.soft_cost < weight
    assert report.total == report.hard_violations * weight + report.soft_cost


def test_empty_space_cost():
    # busy in periods 0 and 3 of day 0, periods 1 and 2 of day 1
    total, max_per_day, average = empty_space_cost({"Keller": [0, 3, 9, 10], "Roth": []}, 8)
    assert total == 2
    assert max_per_day == 2
    assert average == 1.0
    assert empty_space_cost({}, 8) == (0, 0, 0.0)
