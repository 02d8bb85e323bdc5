import pytest

from timetabling.models.availability import Availability
from timetabling.models.lesson import (
    AlternatingLesson,
    GroupLesson,
    NormalLesson,
    lesson_label,
    lesson_name,
    lesson_teacher,
    occupied_teachers,
)
from timetabling.models.occurrence import Occurrence
from timetabling.models.roster import Roster
from timetabling.models.school_class import SchoolClass
from timetabling.models.teacher import Teacher
from timetabling.models.timetable import Timetable


class TestAvailability:
    def test_full_and_empty(self):
        assert Availability.full().count() == 40
        assert Availability.empty().count() == 0
        assert Availability.full(3, 4).buffer == [15, 15, 15]

    def test_get_set_toggle(self):
        availability = Availability.empty()
        availability.set(2, 5, True)
        assert availability.get(2, 5)
        assert availability.buffer[2] == 1 << 5
        availability.toggle(2, 5)
        assert not availability.get(2, 5)
        availability.set_day(1, True)
        assert availability.available_slots() == [(1, p) for p in range(8)]

    def test_out_of_range_slot(self):
        availability = Availability.full()
        with pytest.raises(IndexError):
            availability.get(5, 0)
        with pytest.raises(IndexError):
            availability.set(0, 8, True)

    def test_invalid_buffer(self):
        with pytest.raises(ValueError):
            Availability(5, 8, [0, 0])
        with pytest.raises(ValueError):
            Availability(1, 2, [4])

    def test_with_slot_leaves_original_untouched(self):
        original = Availability.empty()
        updated = original.with_slot(0, 3, True)
        assert updated.get(0, 3)
        assert not original.get(0, 3)

    def test_from_dict_accepts_both_spellings(self):
        data = {"days": 2, "periodsPerDay": 3, "buffer": [1, 6]}
        availability = Availability.from_dict(data)
        assert availability.available_slots() == [(0, 0), (1, 1), (1, 2)]
        assert availability.to_dict() == data
        snake = Availability.from_dict({"days": 2, "periods_per_day": 3, "buffer": [1, 6]})
        assert snake == availability


class TestLessons:
    def test_teacher_identity_is_by_name(self):
        assert Teacher("Keller") == Teacher("Keller", Availability.empty())
        assert len({Teacher("Keller"), Teacher("Keller"), Teacher("Roth")}) == 2

    def test_occupied_teachers(self):
        keller, roth = Teacher("Keller"), Teacher("Roth")
        assert occupied_teachers(NormalLesson("Math", keller)) == (keller,)
        assert occupied_teachers(GroupLesson("PE", (keller, roth))) == (keller, roth)
        alternating = AlternatingLesson(("Music", "Art"), [keller, roth])
        assert occupied_teachers(alternating) == (keller, roth)

    def test_occupied_teachers_rejects_unknown_kinds(self):
        with pytest.raises(TypeError):
            occupied_teachers("Math")

    def test_rotation_weeks(self):
        keller, roth = Teacher("Keller"), Teacher("Roth")
        alternating = AlternatingLesson(("Music", "Art"), (keller, roth))
        assert lesson_name(alternating, 0) == "Music"
        assert lesson_name(alternating, 1) == "Art"
        assert lesson_teacher(alternating, 1) == roth
        assert lesson_label(alternating) == "Music/Art"
        group = GroupLesson("PE", (keller, roth))
        assert lesson_name(group, 1) == "PE"
        assert lesson_teacher(group, 0) == keller

    def test_invalid_lessons(self):
        keller = Teacher("Keller")
        with pytest.raises(ValueError):
            NormalLesson("Math", keller, 0)
        with pytest.raises(ValueError):
            GroupLesson("PE", (keller, Teacher("Keller")))
        with pytest.raises(ValueError):
            AlternatingLesson(("Music",), (keller, Teacher("Roth")))


class TestRoster:
    def test_occurrences_and_capacity(self, school_roster):
        assert school_roster.capacity == 40
        occurrences = school_roster.occurrences()
        assert len(occurrences) == sum(c.total_periods_per_week() for c in school_roster.classes)
        assert occurrences[0] == Occurrence("5A", 0, 0, None)

    def test_teacher_names_include_lesson_only_teachers(self):
        guest = Teacher("Guest")
        roster = Roster([SchoolClass("5B", [NormalLesson("Art", guest)])], [Teacher("Keller")])
        assert roster.teacher_names() == ["Keller", "Guest"]
        assert not roster.has_teacher("Guest")
        assert roster.resolve(guest) is guest

    def test_roster_keeps_its_own_lists(self, keller):
        classes = [SchoolClass("5B")]
        roster = Roster(classes, [keller])
        classes.append(SchoolClass("6A"))
        assert len(roster.classes) == 1


class TestTimetable:
    def _timetable(self):
        keller, roth = Teacher("Keller"), Teacher("Roth")
        roster = Roster([
            SchoolClass("5A", [NormalLesson("Math", keller, 2), GroupLesson("PE", (keller, roth))]),
            SchoolClass("5B", [NormalLesson("German", roth)]),
        ], [keller, roth])
        return Timetable.for_roster(roster), roster.occurrences()

    def test_place_updates_class_grid_and_teacher_index(self):
        timetable, (math1, math2, pe, german) = self._timetable()
        timetable.place(pe, 1, 2)
        assert timetable.at("5A", 1, 2) == pe
        assert timetable.is_teacher_busy("Keller", 1, 2)
        assert timetable.is_teacher_busy("Roth", 1, 2)
        assert not timetable.is_teacher_busy("Roth", 1, 2, ignore=pe)
        assert timetable.unplaced() == [math1, math2, german]

        assert timetable.unplace(pe) == (1, 2)
        assert timetable.is_class_free("5A", 1, 2)
        assert timetable.teacher_bookings() == {"Keller": {}, "Roth": {}}

    def test_double_place_and_bad_slot(self):
        timetable, (math1, *_) = self._timetable()
        timetable.place(math1, 0, 0)
        with pytest.raises(ValueError):
            timetable.place(math1, 0, 1)
        timetable.unplace(math1)
        with pytest.raises(IndexError):
            timetable.place(math1, 0, 8)

    def test_swap(self):
        timetable, (math1, math2, pe, german) = self._timetable()
        timetable.place(math1, 0, 0)
        timetable.place(pe, 2, 3)
        timetable.swap(math1, pe)
        assert timetable.slot_of(math1) == (2, 3)
        assert timetable.slot_of(pe) == (0, 0)
        assert timetable.is_teacher_busy("Roth", 0, 0)
        assert not timetable.is_teacher_busy("Roth", 2, 3)

    def test_cell_can_hold_conflicting_occurrences(self):
        timetable, (math1, math2, *_) = self._timetable()
        timetable.place(math1, 0, 0)
        timetable.place(math2, 0, 0)
        assert timetable.occurrences_at("5A", 0, 0) == [math1, math2]
        assert timetable.at("5A", 0, 0) == math1

    def test_frozen_timetable_rejects_changes_but_clones(self):
        timetable, (math1, math2, *_) = self._timetable()
        timetable.place(math1, 0, 0)
        timetable.freeze()
        with pytest.raises(RuntimeError):
            timetable.place(math2, 0, 1)
        copy = timetable.clone()
        assert not copy.frozen
        copy.move(math1, 3, 3)
        assert timetable.slot_of(math1) == (0, 0)
        assert copy.slot_of(math1) == (3, 3)

    def test_views(self):
        keller, roth = Teacher("Keller"), Teacher("Roth")
        roster = Roster([
            SchoolClass("5A", [AlternatingLesson(("Music", "Art"), (keller, roth))]),
        ], [keller, roth])
        timetable = Timetable.for_roster(roster)
        (occurrence,) = roster.occurrences()
        timetable.place(occurrence, 0, 1)

        assert timetable.week_view("5A", 0)[0][1] == ("Music", "Keller")
        assert timetable.week_view("5A", 1)[0][1] == ("Art", "Roth")
        assert timetable.to_dict()["5A"][0][1] == {
            "type": "alternating",
            "names": ["Music", "Art"],
            "teachers": ["Keller", "Roth"],
            "lesson_index": 0,
        }
        assert timetable.to_dict()["5A"][0][0] is None
        view = timetable.teacher_view()
        assert view["Roth"][0][1] == {"class": "5A", "lesson": "Music/Art"}
        assert view["Keller"][1][1] is None
