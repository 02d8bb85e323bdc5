from typing import Any, Dict, List, Optional, Tuple
from timetabling.models.lesson import ALTERNATING, lesson_name, lesson_teacher, occupied_teachers
from timetabling.models.occurrence import Occurrence

Slot = Tuple[int, int]


class Timetable:
    """
    The object under optimization: where every lesson occurrence sits in the week.

    Data structure:
    - placements: {occurrence: (day, period)}; unplaced occurrences are absent
    - cells: {class_name: [day][period] -> [occurrences]}
    - bookings: {teacher_name: {(day, period): [occurrences]}}

    The three structures are kept in step by ``place`` / ``unplace``, so the
    class grid and the teacher index never disagree. A cell can hold more
    than one occurrence while the search explores infeasible states; the
    fitness function counts that as a class conflict.
    """

    def __init__(self, class_names: List[str], occurrences: List[Occurrence],
                 days: int, periods_per_day: int):
        self.days = days
        self.periods_per_day = periods_per_day
        self.class_names = list(class_names)
        self._occurrences = list(occurrences)
        self._placements: Dict[Occurrence, Slot] = {}
        self._cells: Dict[str, List[List[List[Occurrence]]]] = {
            name: [[[] for _ in range(periods_per_day)] for _ in range(days)]
            for name in self.class_names
        }
        self._bookings: Dict[str, Dict[Slot, List[Occurrence]]] = {}
        self._frozen = False

    @classmethod
    def for_roster(cls, roster) -> "Timetable":
        """Empty timetable holding every occurrence of the roster, none placed."""
        return cls(
            [school_class.name for school_class in roster.classes],
            roster.occurrences(),
            roster.days,
            roster.periods_per_day,
        )

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> "Timetable":
        """Makes the timetable read-only; used before handing it to a caller."""
        self._frozen = True
        return self

    def _check_mutable(self):
        if self._frozen:
            raise RuntimeError("Timetable is frozen; clone() it to make changes")

    def _check_slot(self, day: int, period: int):
        if not 0 <= day < self.days or not 0 <= period < self.periods_per_day:
            raise IndexError(f"Slot ({day}, {period}) outside {self.days}x{self.periods_per_day} week")

    def place(self, occurrence: Occurrence, day: int, period: int):
        self._check_mutable()
        self._check_slot(day, period)
        if occurrence in self._placements:
            raise ValueError(f"{occurrence} is already placed at {self._placements[occurrence]}")
        slot = (day, period)
        self._placements[occurrence] = slot
        self._cells[occurrence.class_name][day][period].append(occurrence)
        for teacher in occupied_teachers(occurrence.lesson):
            self._bookings.setdefault(teacher.name, {}).setdefault(slot, []).append(occurrence)

    def unplace(self, occurrence: Occurrence) -> Optional[Slot]:
        """Removes an occurrence from the grid and returns the slot it held."""
        self._check_mutable()
        slot = self._placements.pop(occurrence, None)
        if slot is None:
            return None
        day, period = slot
        self._cells[occurrence.class_name][day][period].remove(occurrence)
        for teacher in occupied_teachers(occurrence.lesson):
            booked = self._bookings[teacher.name][slot]
            booked.remove(occurrence)
            if not booked:
                del self._bookings[teacher.name][slot]
        return slot

    def move(self, occurrence: Occurrence, day: int, period: int):
        self.unplace(occurrence)
        self.place(occurrence, day, period)

    def swap(self, first: Occurrence, second: Occurrence):
        """Exchanges the slots of two placed occurrences."""
        slot1 = self.unplace(first)
        slot2 = self.unplace(second)
        self.place(first, *slot2)
        self.place(second, *slot1)

    def slot_of(self, occurrence: Occurrence) -> Optional[Slot]:
        return self._placements.get(occurrence)

    def occurrences(self) -> List[Occurrence]:
        """Every occurrence this timetable is responsible for, placed or not."""
        return list(self._occurrences)

    def placements(self) -> List[Tuple[Occurrence, Slot]]:
        return list(self._placements.items())

    def unplaced(self) -> List[Occurrence]:
        return [occ for occ in self._occurrences if occ not in self._placements]

    def occurrences_at(self, class_name: str, day: int, period: int) -> List[Occurrence]:
        return list(self._cells[class_name][day][period])

    def at(self, class_name: str, day: int, period: int) -> Optional[Occurrence]:
        cell = self._cells[class_name][day][period]
        return cell[0] if cell else None

    def is_class_free(self, class_name: str, day: int, period: int) -> bool:
        return not self._cells[class_name][day][period]

    def is_teacher_busy(self, teacher_name: str, day: int, period: int,
                        ignore: Optional[Occurrence] = None) -> bool:
        booked = self._bookings.get(teacher_name, {}).get((day, period), [])
        return any(occ != ignore for occ in booked)

    def grid(self, class_name: str) -> List[List[Optional[Occurrence]]]:
        """The class's week as [day][period] -> occurrence or None."""
        return [
            [cell[0] if cell else None for cell in day_cells]
            for day_cells in self._cells[class_name]
        ]

    def teacher_bookings(self) -> Dict[str, Dict[Slot, List[Occurrence]]]:
        """{teacher_name: {(day, period): [occurrences]}}, copied."""
        return {
            name: {slot: list(occs) for slot, occs in slots.items()}
            for name, slots in self._bookings.items()
        }

    def clone(self) -> "Timetable":
        """Independent, mutable copy (a clone of a frozen timetable is not frozen)."""
        copy = Timetable.__new__(Timetable)
        copy.days = self.days
        copy.periods_per_day = self.periods_per_day
        copy.class_names = list(self.class_names)
        copy._occurrences = self._occurrences
        copy._placements = dict(self._placements)
        copy._cells = {
            name: [[list(cell) for cell in day_cells] for day_cells in cells]
            for name, cells in self._cells.items()
        }
        copy._bookings = {
            name: {slot: list(occs) for slot, occs in slots.items()}
            for name, slots in self._bookings.items()
        }
        copy._frozen = False
        return copy

    def week_view(self, class_name: str, week: int = 0) -> List[List[Optional[Tuple[str, str]]]]:
        """
        The class's grid as seen in one rotation week.

        Each cell is (subject, teacher name) for the lesson actually taught
        that week; alternating lessons show their week A or week B content.
        """
        view = []
        for day_cells in self._cells[class_name]:
            row = []
            for cell in day_cells:
                if cell:
                    lesson = cell[0].lesson
                    row.append((lesson_name(lesson, week), lesson_teacher(lesson, week).name))
                else:
                    row.append(None)
            view.append(row)
        return view

    def to_dict(self) -> Dict[str, Any]:
        """
        Plain representation: {class_name: [day][period] -> cell or None},
        where a cell lists the lesson kind, subject names and teacher names.
        """
        result = {}
        for name in self.class_names:
            days = []
            for day_cells in self._cells[name]:
                row = []
                for cell in day_cells:
                    if not cell:
                        row.append(None)
                        continue
                    lesson = cell[0].lesson
                    row.append({
                        "type": lesson.kind,
                        "names": list(lesson.names) if lesson.kind == ALTERNATING else [lesson.name],
                        "teachers": [teacher.name for teacher in occupied_teachers(lesson)],
                        "lesson_index": cell[0].lesson_index,
                    })
                days.append(row)
            result[name] = days
        return result

    def teacher_view(self) -> Dict[str, List[List[Optional[Dict[str, str]]]]]:
        """Per-teacher week: {teacher_name: [day][period] -> {class, lesson} or None}."""
        result = {}
        for teacher_name in sorted(self._bookings):
            grid = [[None for _ in range(self.periods_per_day)] for _ in range(self.days)]
            for (day, period), occs in self._bookings[teacher_name].items():
                if occs:
                    grid[day][period] = {"class": occs[0].class_name, "lesson": occs[0].label}
            result[teacher_name] = grid
        return result
