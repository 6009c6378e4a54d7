"""Unit tests for the sticky merge helpers."""
from __future__ import annotations

import unittest

from dormfix.triage.merge import (
    infer_issue_summary,
    merge_location,
    merge_slots,
    next_pending_questions,
    union_flags,
)
from dormfix.triage.types import LocationConfidence, LocationMatch


class TestMergeSlots(unittest.TestCase):
    def test_blank_values_never_erase(self) -> None:
        current = {"building_name": "Tang Hall", "student_email": "a@x.com"}
        merged = merge_slots(current, {"building_name": None, "student_email": "null", "room_number": "301"})
        self.assertEqual(merged["building_name"], "Tang Hall")
        self.assertEqual(merged["student_email"], "a@x.com")
        self.assertEqual(merged["room_number"], "301")

    def test_new_value_replaces(self) -> None:
        merged = merge_slots({"room_number": "301"}, {"room_number": " 302 "})
        self.assertEqual(merged["room_number"], "302")

    def test_fill_only(self) -> None:
        merged = merge_slots({"room_number": "301"}, {"room_number": "999", "timeline": "today"}, fill_only=True)
        self.assertEqual(merged, {"room_number": "301", "timeline": "today"})

    def test_unknown_keys_ignored(self) -> None:
        self.assertEqual(merge_slots({}, {"favorite_color": "blue"}), {})

    def test_input_not_mutated(self) -> None:
        current = {"room_number": "301"}
        merge_slots(current, {"room_number": "302"})
        self.assertEqual(current, {"room_number": "301"})


class TestUnionFlags(unittest.TestCase):
    def test_existing_flags_kept(self) -> None:
        self.assertEqual(
            union_flags(["emergency_gas_smell"], ["urgent_dripping", "emergency_gas_smell", ""]),
            ["emergency_gas_smell", "urgent_dripping"],
        )


class TestMergeLocation(unittest.TestCase):
    def test_model_value_is_canonicalized(self) -> None:
        slots, location = merge_location({}, {"building_name": "tang", "room_number": "301"}, None)
        self.assertEqual(slots["building_name"], "Tang Hall")
        self.assertTrue(location.is_location_confirmed)

    def test_extraction_only_fills_empty(self) -> None:
        extracted = LocationMatch("Simmons Hall", "412", LocationConfidence.HIGH)
        slots, location = merge_location({"building_name": "Tang Hall"}, None, extracted)
        self.assertEqual(slots["building_name"], "Tang Hall")
        self.assertEqual(slots["room_number"], "412")
        self.assertEqual((location.building_name, location.room_number), ("Tang Hall", "412"))

    def test_unconfirmed_without_room(self) -> None:
        _, location = merge_location({"building_name": "Tang Hall"}, None, None)
        self.assertFalse(location.is_location_confirmed)


class TestSummaryAndQuestions(unittest.TestCase):
    def test_summary_from_student_words(self) -> None:
        slots = infer_issue_summary({}, "My  faucet is   leaking")
        self.assertEqual(slots["issue_summary"], "My faucet is leaking")

    def test_summary_not_overwritten(self) -> None:
        slots = infer_issue_summary({"issue_summary": "clogged sink"}, "the toilet is broken too")
        self.assertEqual(slots["issue_summary"], "clogged sink")

    def test_asked_question_dropped(self) -> None:
        queue = next_pending_questions(["What room?"], ["What room?", "Your email?"], "What room?")
        self.assertEqual(queue, ["Your email?"])

    def test_queue_kept_when_model_sends_none(self) -> None:
        self.assertEqual(next_pending_questions(["Your email?"], None, None), ["Your email?"])


if __name__ == "__main__":
    unittest.main()
