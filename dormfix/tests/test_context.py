"""Unit tests for the context analyzer."""
from __future__ import annotations

import unittest

from dormfix.triage.context import analyze_context, is_temperature_extreme
from dormfix.triage.types import EmotionalContext, UrgencyLevel


class TestEmotion(unittest.TestCase):
    def test_frustration(self) -> None:
        result = analyze_context("This is the third time I've reported this, so frustrating")
        self.assertEqual(result.emotional_context, EmotionalContext.FRUSTRATED)
        self.assertTrue(result.is_frustrated)

    def test_worried(self) -> None:
        result = analyze_context("I'm worried, is this safe?")
        self.assertEqual(result.emotional_context, EmotionalContext.WORRIED)

    def test_calm_default(self) -> None:
        result = analyze_context("the desk lamp flickers")
        self.assertEqual(result.emotional_context, EmotionalContext.CALM)
        self.assertEqual(result.inferred_urgency, UrgencyLevel.NORMAL)


class TestUrgency(unittest.TestCase):
    def test_leaking_is_urgent(self) -> None:
        self.assertEqual(analyze_context("the faucet is leaking").inferred_urgency, UrgencyLevel.URGENT)

    def test_negated_urgency_is_low(self) -> None:
        result = analyze_context("not urgent, fix it whenever")
        self.assertEqual(result.inferred_urgency, UrgencyLevel.LOW)

    def test_extreme_temperature(self) -> None:
        self.assertTrue(is_temperature_extreme("it's 40 degrees in here"))
        self.assertTrue(is_temperature_extreme("my room is freezing"))
        self.assertTrue(is_temperature_extreme("it is 32°C"))
        self.assertFalse(is_temperature_extreme("it's 72 degrees"))
        self.assertEqual(analyze_context("it's 40 degrees in here").inferred_urgency, UrgencyLevel.URGENT)


class TestInferredInfo(unittest.TestCase):
    def test_timeline_and_severity(self) -> None:
        result = analyze_context("It started yesterday and it's getting worse")
        self.assertEqual(result.inferred_info["timeline"], "started recently")
        self.assertEqual(result.inferred_info["severity"], "worsening")

    def test_nothing_inferred(self) -> None:
        self.assertEqual(analyze_context("hello").inferred_info, {})


if __name__ == "__main__":
    unittest.main()
