import math
from typing import Dict, List, Tuple
from timetabling.models.lesson import occupied_teachers
from timetabling.models.occurrence import Occurrence
from timetabling.models.result import (
    CLASS_CONFLICT,
    OCCURRENCE_COUNT,
    TEACHER_CONFLICT,
    UNAVAILABLE,
    CostReport,
    Violation,
)
from timetabling.models.roster import Roster
from timetabling.models.timetable import Timetable

# Minimum weight of one hard violation; raised per roster so it always
# exceeds the largest soft cost the roster can produce.
HARD_WEIGHT = 1000.0

TEACHER_GAP_WEIGHT = 3
CLASS_GAP_WEIGHT = 5
LOAD_WEIGHT = 1
REPETITION_WEIGHT = 2
FIRST_PERIOD_WEIGHT = 2
LATE_START_WEIGHT = 1
DISTRIBUTION_WEIGHT = 1
# Flat penalty when every slot of the week has some class in lessons
NO_FREE_HOUR_PENALTY = 100

# Largest single-gap penalty per idle period (see gap_penalty)
_MAX_GAP_FACTOR = 5


def gap_penalty(gap: int) -> int:
    """Penalty for one idle run: 1 period = 1, 2 periods = 3, 3+ periods = 5 per period."""
    if gap <= 0:
        return 0
    if gap == 1:
        return 1
    if gap == 2:
        return 3
    return _MAX_GAP_FACTOR * gap


def hard_violation_weight(roster: Roster) -> float:
    """
    Weight of one hard violation for this roster.

    It is one more than an upper bound of the soft cost, so a timetable with
    a single hard violation always costs more than any hard-clean one.
    """
    days, periods = roster.days, roster.periods_per_day
    teachers = len(roster.teacher_names())
    classes = len(roster.classes)
    occurrences = sum(c.total_periods_per_week() for c in roster.classes)

    gaps = days * _MAX_GAP_FACTOR * periods * (TEACHER_GAP_WEIGHT * teachers + CLASS_GAP_WEIGHT * classes)
    load = LOAD_WEIGHT * days * periods * (teachers + classes)
    repetition = REPETITION_WEIGHT * occurrences
    first_period = FIRST_PERIOD_WEIGHT * days
    late_start = LATE_START_WEIGHT * days * periods * classes
    distribution = DISTRIBUTION_WEIGHT * occurrences
    total = gaps + load + repetition + first_period + late_start + distribution + NO_FREE_HOUR_PENALTY
    return max(HARD_WEIGHT, float(total + 1))


def _daily_periods(slots) -> Dict[int, List[int]]:
    per_day: Dict[int, List[int]] = {}
    for day, period in slots:
        per_day.setdefault(day, []).append(period)
    for periods in per_day.values():
        periods.sort()
    return per_day


def _gaps(per_day: Dict[int, List[int]]) -> int:
    total = 0
    for periods in per_day.values():
        for i in range(1, len(periods)):
            total += gap_penalty(periods[i] - periods[i - 1] - 1)
    return total


def _imbalance(per_day: Dict[int, List[int]], days: int) -> int:
    load = sum(len(periods) for periods in per_day.values())
    allowance = math.ceil(load / days) if days else load
    return sum(max(0, len(periods) - allowance) for periods in per_day.values())


def _late_start(per_day: Dict[int, List[int]]) -> int:
    # the first period may stay free, anything later is idle time
    return sum(max(0, periods[0] - 1) for periods in per_day.values() if periods)


def _spread(day_counts: Dict[int, int]) -> int:
    counts = [count for count in day_counts.values() if count > 0]
    if len(counts) < 2:
        return 0
    return max(0, max(counts) - min(counts) - 1)


def count_free_first_periods(timetable: Timetable) -> int:
    """Number of (class, day) pairs whose first period is free."""
    return sum(
        1
        for class_name in timetable.class_names
        for day in range(timetable.days)
        if timetable.is_class_free(class_name, day, 0)
    )


def has_free_hour_in_week(timetable: Timetable) -> bool:
    """True if some slot of the week has no class in lessons at all."""
    for day in range(timetable.days):
        for period in range(timetable.periods_per_day):
            if all(timetable.is_class_free(name, day, period) for name in timetable.class_names):
                return True
    return False


def hard_constraints_cost(timetable: Timetable, roster: Roster) -> Tuple[int, List[Violation]]:
    """
    Counts hard constraint violations:
    - Each teacher teaches at most one occurrence at a time
    - Each class attends at most one occurrence at a time
    - Teachers are only booked inside their availability
    - Every lesson is placed exactly periods_per_week times

    Every unit of breach adds one to the count.

    Returns:
        total violation units, list of violations
    """
    violations: List[Violation] = []

    # Teacher double bookings
    for teacher_name, slots in timetable.teacher_bookings().items():
        for slot in sorted(slots):
            occs = slots[slot]
            if len(occs) > 1:
                classes = tuple(occ.class_name for occ in occs)
                violations.append(Violation(
                    kind=TEACHER_CONFLICT,
                    message=f"{teacher_name} is booked {len(occs)} times on day {slot[0] + 1}, "
                            f"period {slot[1] + 1} by {', '.join(classes)}",
                    classes=classes,
                    teacher=teacher_name,
                    slot=slot,
                    amount=len(occs) - 1,
                ))

    # Class double bookings
    for class_name in timetable.class_names:
        for day in range(timetable.days):
            for period in range(timetable.periods_per_day):
                occs = timetable.occurrences_at(class_name, day, period)
                if len(occs) > 1:
                    violations.append(Violation(
                        kind=CLASS_CONFLICT,
                        message=f"{class_name} has {len(occs)} lessons on day {day + 1}, period {period + 1}: "
                                f"{', '.join(occ.label for occ in occs)}",
                        classes=(class_name,),
                        slot=(day, period),
                        amount=len(occs) - 1,
                    ))

    # Teacher availability
    for occ, (day, period) in timetable.placements():
        for teacher in occupied_teachers(occ.lesson):
            if not roster.resolve(teacher).is_available(day, period):
                violations.append(Violation(
                    kind=UNAVAILABLE,
                    message=f"{teacher.name} is unavailable on day {day + 1}, period {period + 1} "
                            f"({occ.label} for {occ.class_name})",
                    classes=(occ.class_name,),
                    teacher=teacher.name,
                    lesson=occ.label,
                    slot=(day, period),
                ))

    # Occurrence counts
    placed: Dict[Tuple[str, int], int] = {}
    for occ, _ in timetable.placements():
        key = (occ.class_name, occ.lesson_index)
        placed[key] = placed.get(key, 0) + 1
    for school_class in roster.classes:
        for lesson_index, lesson in enumerate(school_class.lessons):
            count = placed.get((school_class.name, lesson_index), 0)
            if count != lesson.periods_per_week:
                label = Occurrence(school_class.name, lesson_index, 0, lesson).label
                violations.append(Violation(
                    kind=OCCURRENCE_COUNT,
                    message=f"{label} in {school_class.name} is scheduled {count} times, "
                            f"needs {lesson.periods_per_week}",
                    classes=(school_class.name,),
                    lesson=label,
                    amount=abs(count - lesson.periods_per_week),
                ))

    total = sum(v.amount for v in violations)
    return total, violations


def occurrence_costs(timetable: Timetable, roster: Roster) -> Dict[Occurrence, int]:
    """
    Hard violation count per occurrence, used to aim mutations at the worst
    placements. Unplaced occurrences count one each.
    """
    costs = {occ: 0 for occ in timetable.occurrences()}
    for occ in timetable.unplaced():
        costs[occ] += 1
    for slots in timetable.teacher_bookings().values():
        for occs in slots.values():
            if len(occs) > 1:
                for occ in occs:
                    costs[occ] += 1
    for occ, (day, period) in timetable.placements():
        if len(timetable.occurrences_at(occ.class_name, day, period)) > 1:
            costs[occ] += 1
        for teacher in occupied_teachers(occ.lesson):
            if not roster.resolve(teacher).is_available(day, period):
                costs[occ] += 1
    return costs


def soft_constraints_cost(timetable: Timetable, roster: Roster) -> Dict[str, float]:
    """
    Soft penalties used to rank hard-clean timetables:
    - teacher_gaps: idle periods between two lessons of a teacher in a day
    - class_gaps: idle periods between two lessons of a class in a day
    - load_imbalance: periods above ceil(weekly load / days) on a day, per teacher and class
    - subject_repetition: occurrences of a lesson above ceil(periods_per_week / days) on a day
    - first_period_lessons: classes are preferred to start after the first
      period; penalized while fewer than ``days`` first periods are free
    - late_starts: idle periods before a class's first lesson of the day,
      beyond the (free) first period
    - distribution_spread: per lesson, max minus min of its non-zero daily
      counts, above one
    - no_free_hour: flat penalty when no slot of the week is lesson-free

    Alternating and group lessons book both of their teachers through a
    single occurrence, so they are always pinned to one shared slot.
    """
    days = timetable.days
    teacher_gaps = 0
    class_gaps = 0
    imbalance = 0
    repetition = 0
    late_starts = 0
    spread = 0

    for slots in timetable.teacher_bookings().values():
        per_day = _daily_periods(slots.keys())
        teacher_gaps += _gaps(per_day)
        imbalance += _imbalance(per_day, days)

    lesson_days: Dict[Tuple[str, int], Dict[int, int]] = {}
    for occ, (day, _) in timetable.placements():
        per_lesson = lesson_days.setdefault((occ.class_name, occ.lesson_index), {})
        per_lesson[day] = per_lesson.get(day, 0) + 1

    for class_name in timetable.class_names:
        grid = timetable.grid(class_name)
        occupied = [
            (day, period)
            for day in range(days)
            for period in range(timetable.periods_per_day)
            if grid[day][period] is not None
        ]
        per_day = _daily_periods(occupied)
        class_gaps += _gaps(per_day)
        imbalance += _imbalance(per_day, days)
        late_starts += _late_start(per_day)

    for school_class in roster.classes:
        for lesson_index, lesson in enumerate(school_class.lessons):
            allowance = math.ceil(lesson.periods_per_week / days)
            day_counts = lesson_days.get((school_class.name, lesson_index), {})
            for count in day_counts.values():
                repetition += max(0, count - allowance)
            spread += _spread(day_counts)

    wanted_free = days if timetable.class_names else 0
    busy_first_periods = max(0, wanted_free - count_free_first_periods(timetable))

    return {
        "teacher_gaps": TEACHER_GAP_WEIGHT * teacher_gaps,
        "class_gaps": CLASS_GAP_WEIGHT * class_gaps,
        "load_imbalance": LOAD_WEIGHT * imbalance,
        "subject_repetition": REPETITION_WEIGHT * repetition,
        "first_period_lessons": FIRST_PERIOD_WEIGHT * busy_first_periods,
        "late_starts": LATE_START_WEIGHT * late_starts,
        "distribution_spread": DISTRIBUTION_WEIGHT * spread,
        "no_free_hour": 0 if has_free_hour_in_week(timetable) else NO_FREE_HOUR_PENALTY,
    }


def cost_report(timetable: Timetable, roster: Roster) -> CostReport:
    """Full cost breakdown of a timetable. Pure and deterministic."""
    hard, violations = hard_constraints_cost(timetable, roster)
    soft = soft_constraints_cost(timetable, roster)

    def units(kind):
        return sum(v.amount for v in violations if v.kind == kind)

    return CostReport(
        hard_violations=hard,
        soft_cost=float(sum(soft.values())),
        hard_weight=hard_violation_weight(roster),
        violations=violations,
        teacher_conflicts=units(TEACHER_CONFLICT),
        class_conflicts=units(CLASS_CONFLICT),
        unavailable=units(UNAVAILABLE),
        occurrence_mismatch=units(OCCURRENCE_COUNT),
        **soft,
    )


def evaluate(timetable: Timetable, roster: Roster) -> float:
    """Scalar cost of a timetable, lower is better, 0 is perfect."""
    return cost_report(timetable, roster).total


def empty_space_cost(empty_space: Dict[str, List[int]], periods_per_day: int) -> Tuple[int, int, float]:
    """
    Calculates total empty space of all entities for the week, maximum empty
    space in one day and average empty space for the whole week per entity.
    :param empty_space: dictionary where key = teacher or class name, values = list of
                        slot indexes (day * periods_per_day + period) where it is busy
    :param periods_per_day: length of one day in slots
    :return: total cost, maximum per day, average cost
    """
    if len(empty_space) == 0:
        return 0, 0, 0.0

    # total empty space of all entities for the whole week
    cost = 0
    # max empty space in one day for some entity
    max_empty = 0

    for name, times in empty_space.items():
        times = sorted(set(times))
        empty_per_day: Dict[int, int] = {}

        for i in range(1, len(times)):
            a = times[i - 1]
            b = times[i]
            diff = b - a
            # slots are in the same day if their index div periods_per_day is the same
            if a // periods_per_day == b // periods_per_day and diff > 1:
                day = a // periods_per_day
                empty_per_day[day] = empty_per_day.get(day, 0) + diff - 1
                cost += diff - 1

        for value in empty_per_day.values():
            if max_empty < value:
                max_empty = value

    return cost, max_empty, cost / len(empty_space)


def empty_space_groups_cost(timetable: Timetable) -> Tuple[int, int, float]:
    """Empty space statistics for classes (total, max per day, average per class)."""
    groups_empty_space = {}
    for class_name in timetable.class_names:
        grid = timetable.grid(class_name)
        groups_empty_space[class_name] = [
            day * timetable.periods_per_day + period
            for day in range(timetable.days)
            for period in range(timetable.periods_per_day)
            if grid[day][period] is not None
        ]
    return empty_space_cost(groups_empty_space, timetable.periods_per_day)


def empty_space_teachers_cost(timetable: Timetable) -> Tuple[int, int, float]:
    """Empty space statistics for teachers (total, max per day, average per teacher)."""
    teachers_empty_space = {
        name: [day * timetable.periods_per_day + period for day, period in slots]
        for name, slots in timetable.teacher_bookings().items()
    }
    return empty_space_cost(teachers_empty_space, timetable.periods_per_day)
