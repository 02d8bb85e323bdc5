import logging
import math
import random
import time
from typing import Callable, List, Optional, Sequence, Tuple, Union
from timetabling.errors import InputInfeasibleError
from timetabling.models.availability import DEFAULT_DAYS, DEFAULT_PERIODS_PER_DAY
from timetabling.models.lesson import occupied_teachers
from timetabling.models.occurrence import Occurrence
from timetabling.models.result import (
    CostReport,
    ProgressEvent,
    SchedulingResult,
    SchedulingStatus,
    SearchPhase,
)
from timetabling.models.roster import Roster
from timetabling.models.scheduler_config import SchedulerConfig
from timetabling.models.school_class import SchoolClass
from timetabling.models.teacher import Teacher
from timetabling.models.timetable import Slot, Timetable
from timetabling.utils.costs import cost_report, occurrence_costs
from timetabling.utils.utils import (
    check_input_feasibility,
    set_up,
    show_statistics,
    show_timetable,
)

logger = logging.getLogger(__name__)

# Soft cost at or below this counts as the optimum
NEGLIGIBLE_COST = 1e-9

ES_LOG_INTERVAL = 100
ANNEALING_LOG_INTERVAL = 250

CancelHook = Callable[[], bool]
ProgressHook = Callable[[ProgressEvent], None]


def _teachers_of(roster: Roster, occurrence: Occurrence) -> List[Teacher]:
    return [roster.resolve(teacher) for teacher in occupied_teachers(occurrence.lesson)]


def _is_legal(timetable: Timetable, teachers: List[Teacher], class_name: str, slot: Slot) -> bool:
    """Free for the class and inside every teacher's availability."""
    day, period = slot
    return timetable.is_class_free(class_name, day, period) and all(
        teacher.is_available(day, period) for teacher in teachers
    )


def _slot_conflicts(timetable: Timetable, teachers: List[Teacher], class_name: str, slot: Slot) -> int:
    day, period = slot
    conflicts = len(timetable.occurrences_at(class_name, day, period))
    for teacher in teachers:
        if not teacher.is_available(day, period):
            conflicts += 1
        if timetable.is_teacher_busy(teacher.name, day, period):
            conflicts += 1
    return conflicts


def place_occurrence(timetable: Timetable, roster: Roster, occurrence: Occurrence,
                     rng: random.Random, max_probes: int):
    """
    Greedy-random placement of one occurrence.

    Probes up to ``max_probes`` uniformly random slots for one that is free
    for the class and inside the availability of every involved teacher. If
    none is found, the least conflicting slot is taken (earliest on ties),
    accepting a hard violation so construction always completes.
    """
    teachers = _teachers_of(roster, occurrence)
    for _ in range(max_probes):
        slot = (rng.randrange(roster.days), rng.randrange(roster.periods_per_day))
        if _is_legal(timetable, teachers, occurrence.class_name, slot):
            timetable.place(occurrence, *slot)
            return

    best_slot = None
    best_conflicts = None
    for slot in roster.slots():
        conflicts = _slot_conflicts(timetable, teachers, occurrence.class_name, slot)
        if best_conflicts is None or conflicts < best_conflicts:
            best_slot, best_conflicts = slot, conflicts
    timetable.place(occurrence, *best_slot)


def seed_timetable(roster: Roster, rng: random.Random, max_probes: int = 20) -> Timetable:
    """
    Builds one complete candidate timetable: for each class, for each lesson,
    for each required occurrence, a greedy-random placement.
    """
    timetable = set_up(roster)
    for occurrence in timetable.occurrences():
        place_occurrence(timetable, roster, occurrence, rng, max_probes)
    return timetable


def initial_population(roster: Roster, config: SchedulerConfig, rng: random.Random,
                       should_cancel: Optional[CancelHook] = None) -> List[Timetable]:
    """
    Builds the initial pool of ``config.initial_pool_size`` candidates.

    Each candidate is seeded from its own random stream, derived in order
    from ``rng``, so candidates can be built independently (and in any
    order) without changing the result. Stops early, after at least one
    candidate, when cancellation is requested.
    """
    seeds = [rng.getrandbits(64) for _ in range(config.initial_pool_size)]
    population = []
    for seed in seeds:
        population.append(seed_timetable(roster, random.Random(seed), config.max_probes))
        if should_cancel is not None and should_cancel():
            logger.info(f"Cancelled while seeding after {len(population)} candidates")
            break
    return population


def mutate_ideal_spot(timetable: Timetable, roster: Roster, occurrence: Occurrence,
                      rng: random.Random) -> bool:
    """
    Tries to move the occurrence to a slot where it causes no hard violation:
    free for the class, available and idle for every involved teacher.
    One such slot is picked at random.

    Returns:
        True if the occurrence was moved
    """
    current = timetable.slot_of(occurrence)
    teachers = _teachers_of(roster, occurrence)
    candidates = []
    for slot in roster.slots():
        if slot == current or not _is_legal(timetable, teachers, occurrence.class_name, slot):
            continue
        if any(timetable.is_teacher_busy(t.name, slot[0], slot[1]) for t in teachers):
            continue
        candidates.append(slot)
    if not candidates:
        return False
    timetable.move(occurrence, *rng.choice(candidates))
    return True


def _fits(timetable: Timetable, teachers: List[Teacher], slot: Slot, ignore: Occurrence) -> bool:
    day, period = slot
    return all(
        teacher.is_available(day, period)
        and not timetable.is_teacher_busy(teacher.name, day, period, ignore=ignore)
        for teacher in teachers
    )


def exchange_two(timetable: Timetable, roster: Roster, occurrence: Occurrence,
                 rng: random.Random) -> bool:
    """
    Swaps the occurrence with another occurrence of the same class, choosing
    at random among partners whose teachers are available and idle in the
    slot they move into.

    Returns:
        True if a swap was made
    """
    slot = timetable.slot_of(occurrence)
    teachers = _teachers_of(roster, occurrence)
    candidates = []
    for other, other_slot in timetable.placements():
        if other.class_name != occurrence.class_name or other == occurrence or other_slot == slot:
            continue
        if other.lesson_index == occurrence.lesson_index:
            continue
        if _fits(timetable, teachers, other_slot, other) and \
                _fits(timetable, _teachers_of(roster, other), slot, occurrence):
            candidates.append(other)
    if not candidates:
        return False
    timetable.swap(occurrence, rng.choice(candidates))
    return True


def relocate_within_availability(timetable: Timetable, roster: Roster, occurrence: Occurrence,
                                 rng: random.Random) -> bool:
    """
    Moves the occurrence to a random class-free slot inside its teachers'
    availability, even if a teacher is busy there. Lets the search drift
    across plateaus of equal cost.
    """
    current = timetable.slot_of(occurrence)
    teachers = _teachers_of(roster, occurrence)
    candidates = [
        slot for slot in roster.slots()
        if slot != current and _is_legal(timetable, teachers, occurrence.class_name, slot)
    ]
    if not candidates:
        return False
    timetable.move(occurrence, *rng.choice(candidates))
    return True


def mutate(parent: Timetable, roster: Roster, rng: random.Random, sigma: float,
           max_probes: int = 20) -> Timetable:
    """
    Produces one offspring by resampling ``max(1, round(sigma))`` occurrence
    placements of a copy of ``parent``.

    Occurrences involved in hard violations are resampled first; once the
    timetable is hard-clean any occurrence may be picked. Each pick is moved
    to an ideal slot or swapped with a class-mate; conflicted occurrences
    that can do neither drift to another slot within availability.
    """
    offspring = parent.clone()
    costs = occurrence_costs(offspring, roster)
    conflicted = [occ for occ, cost in costs.items() if cost > 0]
    pool = conflicted if conflicted else offspring.occurrences()
    if not pool:
        return offspring

    count = min(len(pool), max(1, int(round(sigma))))
    for occurrence in rng.sample(pool, count):
        if offspring.slot_of(occurrence) is None:
            place_occurrence(offspring, roster, occurrence, rng, max_probes)
            continue
        if conflicted:
            if not mutate_ideal_spot(offspring, roster, occurrence, rng) and \
                    not exchange_two(offspring, roster, occurrence, rng):
                relocate_within_availability(offspring, roster, occurrence, rng)
        elif rng.random() < 0.5:
            if not exchange_two(offspring, roster, occurrence, rng):
                mutate_ideal_spot(offspring, roster, occurrence, rng)
        else:
            if not mutate_ideal_spot(offspring, roster, occurrence, rng):
                exchange_two(offspring, roster, occurrence, rng)
    return offspring


def is_optimal(report: CostReport) -> bool:
    """Hard-clean with negligible soft cost: nothing left to improve."""
    return report.hard_clean and report.soft_cost <= NEGLIGIBLE_COST


class Scheduler:
    """
    Timetable search: pool seeding, (1+1) evolution strategy, and simulated
    annealing whenever the evolution strategy stagnates.

    The scheduler owns every timetable it creates; the one handed back in
    the result is frozen. ``should_cancel`` and ``on_progress`` are called
    at every ES and annealing iteration boundary.
    """

    def __init__(self, roster: Roster, config: Optional[SchedulerConfig] = None,
                 rng: Optional[random.Random] = None,
                 should_cancel: Optional[CancelHook] = None,
                 on_progress: Optional[ProgressHook] = None):
        self.roster = roster
        self.config = config or SchedulerConfig()
        self.rng = rng if rng is not None else random.Random(self.config.seed)
        self.should_cancel = should_cancel
        self.on_progress = on_progress
        self._deadline = None
        self._cancelled = False

    def _stop_requested(self) -> bool:
        if self._cancelled:
            return True
        if self.should_cancel is not None and self.should_cancel():
            logger.info("Cancellation requested")
            self._cancelled = True
        return self._cancelled

    def _out_of_time(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    def _progress(self, phase: SearchPhase, iteration: int, best_cost: float, current_cost: float,
                  sigma: Optional[float] = None, temperature: Optional[float] = None):
        if self.on_progress is not None:
            self.on_progress(ProgressEvent(phase, iteration, best_cost, current_cost, sigma, temperature))

    def run(self) -> SchedulingResult:
        """
        Runs the whole search.

        Raises:
            InputInfeasibleError: the input can never be scheduled

        Returns:
            SchedulingResult (converged, unschedulable or cancelled)
        """
        issues, warnings = check_input_feasibility(self.roster)
        if issues:
            for issue in issues:
                logger.warning(f"Infeasible input: {issue.message}")
            raise InputInfeasibleError(issues)
        for warning in warnings:
            logger.warning(warning)

        config = self.config
        if config.time_limit is not None:
            self._deadline = time.monotonic() + config.time_limit

        logger.info(f"Generating initial population of {config.initial_pool_size} candidates...")
        population = initial_population(self.roster, config, self.rng, self._stop_requested)
        best, best_report = self._select_best(population)
        logger.info(f"Initial cost: {best_report.total} ({best_report.hard_violations} hard violations)")
        self._progress(SearchPhase.SEEDING, 0, best_report.total, best_report.total)

        best, best_report, iterations, history = self.evolutionary_algorithm(best, best_report)

        if self._cancelled:
            status = SchedulingStatus.CANCELLED
        elif best_report.hard_clean:
            status = SchedulingStatus.CONVERGED
        else:
            status = SchedulingStatus.UNSCHEDULABLE

        logger.info(f"Search finished: {status.value} after {iterations} iterations, cost {best_report.total}")
        show_statistics(best, best_report)
        if logger.isEnabledFor(logging.DEBUG):
            show_timetable(best)

        return SchedulingResult(
            status=status,
            timetable=best.freeze(),
            report=best_report,
            iterations=iterations,
            cost_history=history,
            warnings=warnings,
        )

    def _select_best(self, population: Sequence[Timetable]) -> Tuple[Timetable, CostReport]:
        """Lowest-cost candidate; the earliest one wins ties."""
        best, best_report = None, None
        for candidate in population:
            report = cost_report(candidate, self.roster)
            if best_report is None or report.total < best_report.total:
                best, best_report = candidate, report
        return best, best_report

    def evolutionary_algorithm(self, best: Timetable, best_report: CostReport
                               ) -> Tuple[Timetable, CostReport, int, List[float]]:
        """
        (1+1) evolution strategy.

        One offspring per iteration, accepted iff its cost is lower or equal.
        Sigma decays geometrically down to ``min_sigma``. After
        ``max_stagnant_iterations`` iterations without improvement, simulated
        annealing is run from the current best; if that does not help either,
        sigma is reset to its initial value.

        Returns:
            best timetable, its report, iterations performed, best cost history
        """
        config = self.config
        sigma = config.sigma
        stagnation = 0
        iterations = 0
        history = [best_report.total]

        while iterations < config.max_es_iterations and not is_optimal(best_report):
            if self._stop_requested() or self._out_of_time():
                break

            offspring = mutate(best, self.roster, self.rng, sigma, config.max_probes)
            report = cost_report(offspring, self.roster)
            iterations += 1

            if report.total <= best_report.total:
                stagnation = 0 if report.total < best_report.total else stagnation + 1
                best, best_report = offspring, report
            else:
                stagnation += 1

            sigma = max(sigma * config.sigma_decay, config.min_sigma)
            history.append(best_report.total)
            self._progress(SearchPhase.REFINING, iterations, best_report.total, report.total, sigma=sigma)

            if iterations % ES_LOG_INTERVAL == 0:
                logger.info(f"ES iteration {iterations}: best cost = {best_report.total}, "
                            f"hard violations = {best_report.hard_violations}, sigma = {sigma:.4f}")

            if stagnation >= config.max_stagnant_iterations and not is_optimal(best_report):
                logger.info(f"Stagnation after {stagnation} iterations, starting simulated annealing")
                annealed, annealed_report = self.simulated_annealing(best, best_report, sigma)
                if annealed_report.total < best_report.total:
                    best, best_report = annealed, annealed_report
                    history[-1] = best_report.total
                else:
                    logger.info(f"Annealing found no improvement, resetting sigma to {config.sigma}")
                    sigma = config.sigma
                stagnation = 0

        return best, best_report, iterations, history

    def simulated_annealing(self, start: Timetable, start_report: CostReport, sigma: float
                            ) -> Tuple[Timetable, CostReport]:
        """
        Simulated annealing with geometric cooling, used to escape ES stagnation.

        Neighbours come from the same mutation as the ES. Improvements are
        always accepted, worse neighbours with probability
        exp(-delta / temperature). The best timetable seen is tracked apart
        from the current one, so the result is never worse than ``start``.
        """
        config = self.config
        temperature = config.temperature
        current, current_cost = start, start_report.total
        best, best_report = start, start_report

        i = 0
        while temperature >= config.min_temperature and i < config.max_annealing_iterations:
            if self._stop_requested() or self._out_of_time():
                break

            neighbour = mutate(current, self.roster, self.rng, sigma, config.max_probes)
            report = cost_report(neighbour, self.roster)
            delta = report.total - current_cost

            if delta <= 0 or self.rng.random() < math.exp(-delta / temperature):
                current, current_cost = neighbour, report.total
                if report.total < best_report.total:
                    best, best_report = neighbour, report
                    if is_optimal(best_report):
                        break

            temperature *= config.cooling_rate
            i += 1
            self._progress(SearchPhase.ANNEALING, i, best_report.total, current_cost, temperature=temperature)

            if i % ANNEALING_LOG_INTERVAL == 0:
                logger.info(f"Annealing iteration {i:4d} | temperature {temperature:.5f} | "
                            f"best cost {best_report.total:.2f}")

        return best, best_report


def generate(classes: Sequence[SchoolClass], teachers: Sequence[Teacher],
             config: Union[SchedulerConfig, dict, None] = None, *,
             days: Optional[int] = None, periods_per_day: Optional[int] = None,
             rng: Optional[random.Random] = None,
             should_cancel: Optional[CancelHook] = None,
             on_progress: Optional[ProgressHook] = None) -> SchedulingResult:
    """
    Generates a timetable for the given classes and teachers.

    Args:
        classes: Classes with their lessons
        teachers: Teachers with their availability; lessons refer to them by name
        config: SchedulerConfig or a mapping of its options
        days: Days in the week (default 5)
        periods_per_day: Periods per day (default 8)
        rng: Random source; defaults to random.Random(config.seed)
        should_cancel: Polled at every iteration boundary; return True to stop
        on_progress: Receives a ProgressEvent at every iteration boundary

    Raises:
        InputInfeasibleError: the input can never be scheduled

    Returns:
        SchedulingResult holding the best complete timetable found
    """
    if config is None:
        config = SchedulerConfig()
    elif isinstance(config, dict):
        config = SchedulerConfig.from_dict(config)

    if days is None:
        days = DEFAULT_DAYS
    if periods_per_day is None:
        periods_per_day = DEFAULT_PERIODS_PER_DAY

    roster = Roster(list(classes), list(teachers), days, periods_per_day)
    logger.info(f"Scheduling {len(roster.classes)} classes, {len(roster.teachers)} teachers, "
                f"{days}x{periods_per_day} week")
    scheduler = Scheduler(roster, config, rng=rng, should_cancel=should_cancel, on_progress=on_progress)
    return scheduler.run()
