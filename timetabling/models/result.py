from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from timetabling.models.timetable import Timetable

# Hard violation kinds
TEACHER_CONFLICT = "teacher_conflict"
CLASS_CONFLICT = "class_conflict"
UNAVAILABLE = "unavailable"
OCCURRENCE_COUNT = "occurrence_count"


class SchedulingStatus(str, Enum):
    """Terminal outcome of a scheduler run."""
    CONVERGED = "converged"
    UNSCHEDULABLE = "unschedulable"
    CANCELLED = "cancelled"


class SearchPhase(str, Enum):
    SEEDING = "seeding"
    REFINING = "refining"
    ANNEALING = "annealing"


@dataclass(frozen=True)
class Violation:
    """
    A hard constraint breach found in a timetable.

    Attributes:
        kind: teacher_conflict, class_conflict, unavailable or occurrence_count
        message: Human readable explanation
        classes: Classes involved (all of them for a teacher conflict)
        teacher: Teacher involved, if any
        lesson: Lesson label involved, if any
        slot: (day, period) where it happens, if slot-bound
        amount: Weight of the breach in violation units
    """
    kind: str
    message: str
    classes: Tuple[str, ...] = ()
    teacher: Optional[str] = None
    lesson: Optional[str] = None
    slot: Optional[Tuple[int, int]] = None
    amount: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "message": self.message,
            "classes": list(self.classes),
            "teacher": self.teacher,
            "lesson": self.lesson,
            "slot": {"day": self.slot[0], "period": self.slot[1]} if self.slot else None,
            "amount": self.amount,
        }


@dataclass()
class CostReport:
    """
    Breakdown of a timetable's cost.

    ``total = hard_violations * hard_weight + soft_cost``
    """
    hard_violations: int
    soft_cost: float
    hard_weight: float
    violations: List[Violation] = field(default_factory=list)
    teacher_conflicts: int = 0
    class_conflicts: int = 0
    unavailable: int = 0
    occurrence_mismatch: int = 0
    teacher_gaps: float = 0
    class_gaps: float = 0
    load_imbalance: float = 0
    subject_repetition: float = 0
    first_period_lessons: float = 0
    late_starts: float = 0
    distribution_spread: float = 0
    no_free_hour: float = 0

    @property
    def total(self) -> float:
        return self.hard_violations * self.hard_weight + self.soft_cost

    @property
    def hard_clean(self) -> bool:
        return self.hard_violations == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "hard_violations": self.hard_violations,
            "soft_cost": self.soft_cost,
            "teacher_conflicts": self.teacher_conflicts,
            "class_conflicts": self.class_conflicts,
            "unavailable": self.unavailable,
            "occurrence_mismatch": self.occurrence_mismatch,
            "teacher_gaps": self.teacher_gaps,
            "class_gaps": self.class_gaps,
            "load_imbalance": self.load_imbalance,
            "subject_repetition": self.subject_repetition,
            "first_period_lessons": self.first_period_lessons,
            "late_starts": self.late_starts,
            "distribution_spread": self.distribution_spread,
            "no_free_hour": self.no_free_hour,
        }


@dataclass(frozen=True)
class ProgressEvent:
    """Snapshot passed to the progress hook at every iteration boundary."""
    phase: SearchPhase
    iteration: int
    best_cost: float
    current_cost: float
    sigma: Optional[float] = None
    temperature: Optional[float] = None


@dataclass()
class SchedulingResult:
    """
    What ``generate`` hands back.

    Attributes:
        status: converged, unschedulable (best effort with violations) or cancelled
        timetable: Best complete timetable found, frozen
        report: Cost breakdown of that timetable, including remaining violations
        iterations: ES iterations performed
        cost_history: Best cost after seeding and after every ES iteration
        warnings: Non-fatal remarks about the input
    """
    status: SchedulingStatus
    timetable: Timetable
    report: CostReport
    iterations: int = 0
    cost_history: List[float] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def cost(self) -> float:
        return self.report.total

    @property
    def violations(self) -> List[Violation]:
        return self.report.violations

    @property
    def is_feasible(self) -> bool:
        return self.report.hard_clean
