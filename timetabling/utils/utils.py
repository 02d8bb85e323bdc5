import logging
from typing import List, Tuple
from timetabling.errors import (
    AVAILABILITY_SHAPE,
    CLASS_OVER_CAPACITY,
    LESSON_WITHOUT_SLOTS,
    TEACHER_WITHOUT_AVAILABILITY,
    UNKNOWN_TEACHER,
    FeasibilityIssue,
)
from timetabling.models.lesson import lesson_label, occupied_teachers
from timetabling.models.result import CostReport
from timetabling.models.roster import Roster
from timetabling.models.timetable import Timetable
from timetabling.utils.costs import empty_space_groups_cost, empty_space_teachers_cost

logger = logging.getLogger(__name__)

DAY_NAMES = ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday']


def check_input_feasibility(roster: Roster) -> Tuple[List[FeasibilityIssue], List[str]]:
    """
    Checks cross-references of the input before any search starts.

    Structural checks (names, positive periods) belong to the caller; this
    only looks for combinations that can never be scheduled:
    - a class needs more periods than the week holds
    - a lesson refers to a teacher missing from the roster
    - a teacher's availability grid does not match the week
    - a teacher needed by some lesson has no available slot
    - the teachers of a lesson share fewer available slots than the lesson needs

    Args:
        roster: Classes, teachers and week shape

    Returns:
        issues (fatal), warnings (a lesson needing more periods than there
        are days has to repeat on some day)
    """
    issues: List[FeasibilityIssue] = []
    warnings: List[str] = []
    used = {
        teacher.name
        for school_class in roster.classes
        for lesson in school_class.lessons
        for teacher in occupied_teachers(lesson)
    }

    for teacher in roster.teachers:
        availability = teacher.availability
        if availability.days != roster.days or availability.periods_per_day != roster.periods_per_day:
            issues.append(FeasibilityIssue(
                kind=AVAILABILITY_SHAPE,
                message=f"Availability of {teacher.name} covers {availability.days}x"
                        f"{availability.periods_per_day} slots, the week is {roster.days}x{roster.periods_per_day}",
                teacher=teacher.name,
            ))
        elif availability.count() == 0 and teacher.name in used:
            issues.append(FeasibilityIssue(
                kind=TEACHER_WITHOUT_AVAILABILITY,
                message=f"{teacher.name} has no available slot",
                teacher=teacher.name,
            ))
    if issues:
        # Slot arithmetic below assumes well-shaped availability
        return issues, warnings

    for school_class in roster.classes:
        total = school_class.total_periods_per_week()
        if total > roster.capacity:
            issues.append(FeasibilityIssue(
                kind=CLASS_OVER_CAPACITY,
                message=f"{school_class.name} needs {total} periods per week, "
                        f"the week only has {roster.capacity}",
                class_name=school_class.name,
            ))

        for lesson in school_class.lessons:
            label = lesson_label(lesson)
            teachers = occupied_teachers(lesson)
            unknown = [t.name for t in teachers if not roster.has_teacher(t.name)]
            for name in unknown:
                issues.append(FeasibilityIssue(
                    kind=UNKNOWN_TEACHER,
                    message=f"{label} in {school_class.name} refers to unknown teacher {name}",
                    class_name=school_class.name,
                    lesson=label,
                    teacher=name,
                ))
            if unknown:
                continue

            shared = set(roster.resolve(teachers[0]).available_slots())
            for teacher in teachers[1:]:
                shared &= set(roster.resolve(teacher).available_slots())
            if len(shared) < lesson.periods_per_week:
                names = " and ".join(t.name for t in teachers)
                issues.append(FeasibilityIssue(
                    kind=LESSON_WITHOUT_SLOTS,
                    message=f"{label} in {school_class.name} needs {lesson.periods_per_week} periods, "
                            f"{names} {'share' if len(teachers) > 1 else 'has'} only {len(shared)} available",
                    class_name=school_class.name,
                    lesson=label,
                    teacher=teachers[0].name if len(teachers) == 1 else None,
                ))

            if lesson.periods_per_week > roster.days:
                warnings.append(
                    f"{label} in {school_class.name} needs {lesson.periods_per_week} periods "
                    f"but the week has {roster.days} days; it will repeat on some days"
                )

    return issues, warnings


def set_up(roster: Roster) -> Timetable:
    """
    Sets up an empty timetable for the roster.

    Returns:
        Timetable with every occurrence unplaced
    """
    return Timetable.for_roster(roster)


def format_timetable(timetable: Timetable) -> str:
    """
    Renders every class's week as a text grid, one block per class.
    """
    width = max([12] + [len(occ.label) + 1 for occ in timetable.occurrences()])
    lines = []
    for class_name in timetable.class_names:
        lines.append(f"Class {class_name}")
        header = '{:10s} '.format('') + ''.join(
            '{:{w}s}'.format(f'P{p + 1}', w=width) for p in range(timetable.periods_per_day)
        )
        lines.append(header)
        grid = timetable.grid(class_name)
        for day in range(timetable.days):
            day_name = DAY_NAMES[day] if day < len(DAY_NAMES) else f'Day {day + 1}'
            row = '{:10s} '.format(day_name)
            for period in range(timetable.periods_per_day):
                occ = grid[day][period]
                row += '{:{w}s}'.format(occ.label if occ else '-', w=width)
            lines.append(row.rstrip())
        lines.append('')
    return '\n'.join(lines)


def show_timetable(timetable: Timetable):
    """Logs the timetable grid at INFO level."""
    for line in format_timetable(timetable).splitlines():
        logger.info(line)


def show_statistics(timetable: Timetable, report: CostReport):
    """
    Logs statistics about a timetable.

    Args:
        timetable: Timetable to describe
        report: Its cost breakdown
    """
    if report.hard_clean:
        logger.info('Hard constraints satisfied: 100.00%')
    else:
        logger.info(f'Hard constraints NOT satisfied, violations: {report.hard_violations} '
                    f'(teachers: {report.teacher_conflicts}, classes: {report.class_conflicts}, '
                    f'availability: {report.unavailable}, occurrences: {report.occurrence_mismatch})')
    logger.info(f'Soft cost: {report.soft_cost:.2f}')

    empty_groups, max_empty_group, average_empty_groups = empty_space_groups_cost(timetable)
    logger.info(f'Empty spaces CLASSES (total): {empty_groups}')
    logger.info(f'Maximum empty space CLASS (per day): {max_empty_group}')
    logger.info(f'Average empty space CLASSES (per week): {average_empty_groups:.02f}')

    empty_teachers, max_empty_teacher, average_empty_teachers = empty_space_teachers_cost(timetable)
    logger.info(f'Empty spaces TEACHERS (total): {empty_teachers}')
    logger.info(f'Maximum empty space TEACHER (per day): {max_empty_teacher}')
    logger.info(f'Average empty space TEACHERS (per week): {average_empty_teachers:.02f}')
