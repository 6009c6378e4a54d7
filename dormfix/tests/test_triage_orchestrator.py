"""Unit tests for TriageOrchestrator: safety short-circuit, fallback, gating and materialization."""
from __future__ import annotations

import asyncio
import datetime as _dt
import unittest
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

from dormfix.config.triage import TriageConfig
from dormfix.core.exceptions import GenerationError, RoutingError
from dormfix.triage.generation import GenerationResponse
from dormfix.triage.orchestrator import (
    FALLBACK_MESSAGE,
    PROCESSING_ERROR_FLAG,
    ROUTING_FAILED_FLAG,
    TriageOrchestrator,
)
from dormfix.triage.types import (
    MaterializedCase,
    NextAction,
    Phase,
    Role,
    TriageState,
    Turn,
    UrgencyLevel,
)

NOW = _dt.datetime(2024, 11, 5, 15, 0, tzinfo=_dt.timezone.utc)


def _run(coro):
    return asyncio.run(coro)


def _generated(**overrides) -> GenerationResponse:
    data = {
        "message": "Thanks, noted.",
        "urgencyLevel": "normal",
        "safetyFlags": [],
        "nextAction": "ask_followup",
    }
    data.update(overrides)
    return GenerationResponse.model_validate(data)


def _generation(response=None, error=None):
    generation = MagicMock()
    generation.generate = AsyncMock(return_value=response, side_effect=error)
    return generation


def _materializer(case=None, error=None):
    materializer = MagicMock()
    materializer.materialize = AsyncMock(return_value=case, side_effect=error)
    return materializer


def _orchestrator(generation, materializer=None):
    return TriageOrchestrator(
        generation,
        materializer or _materializer(),
        config=TriageConfig(),
        clock=lambda: NOW,
    )


def _state(**overrides) -> TriageState:
    state = TriageState(student_id="s1", organization_id="org1", conversation_id=uuid4())
    for key, value in overrides.items():
        setattr(state, key, value)
    return state


def _prior_turns(n_student: int):
    turns = []
    for i in range(n_student):
        turns.append(Turn(Role.STUDENT, f"student {i}", NOW))
        turns.append(Turn(Role.AGENT, f"agent {i}", NOW))
    return turns


_FULL_SLOTS = {
    "building_name": "Tang Hall",
    "room_number": "301",
    "issue_summary": "leaking faucet in the bathroom sink",
    "student_name": "A",
    "student_email": "a@x.com",
}

_CASE = MaterializedCase(
    case_id=uuid4(),
    case_number="L3-TNG-301-20241105",
    category="Plumbing",
    confirmation="Your maintenance request has been submitted. Your case number is L3-TNG-301-20241105.",
)


class TestSafetyShortCircuit(unittest.TestCase):
    def test_gas_smell_skips_generation(self) -> None:
        generation = _generation(_generated())
        materializer = _materializer(_CASE)
        outcome = _run(_orchestrator(generation, materializer).process_turn(_state(), "gas smell in my room"))

        generation.generate.assert_not_awaited()
        materializer.materialize.assert_not_awaited()
        self.assertEqual(outcome.response.next_action, NextAction.ESCALATE_IMMEDIATE)
        self.assertEqual(outcome.response.urgency_level, UrgencyLevel.EMERGENCY)
        self.assertIn("emergency_gas_smell", outcome.response.safety_flags)
        self.assertIn("GAS LEAK", outcome.response.message)
        self.assertEqual(outcome.state.urgency_level, UrgencyLevel.EMERGENCY)
        self.assertEqual([t.role for t in outcome.state.history], [Role.STUDENT, Role.AGENT])
        self.assertFalse(outcome.state.is_complete)

    def test_input_state_is_not_mutated(self) -> None:
        state = _state()
        _run(_orchestrator(_generation(_generated())).process_turn(state, "gas smell in my room"))
        self.assertEqual(state.history, [])
        self.assertEqual(state.urgency_level, UrgencyLevel.NORMAL)


class TestGenerationFallback(unittest.TestCase):
    def test_fallback_escalates_and_keeps_location(self) -> None:
        generation = _generation(error=GenerationError("timed out"))
        outcome = _run(_orchestrator(generation).process_turn(_state(), "My sink in Tang Hall room 301 is leaking"))

        response = outcome.response
        self.assertEqual(response.message, FALLBACK_MESSAGE)
        self.assertEqual(response.next_action, NextAction.ESCALATE_IMMEDIATE)
        self.assertEqual(response.urgency_level, UrgencyLevel.URGENT)
        self.assertIn(PROCESSING_ERROR_FLAG, response.safety_flags)
        self.assertTrue(response.fallback_used)
        self.assertEqual(outcome.state.slots["building_name"], "Tang Hall")
        self.assertEqual(outcome.state.slots["room_number"], "301")
        self.assertEqual(len(outcome.state.history), 2)

    def test_fallback_never_lowers_emergency(self) -> None:
        generation = _generation(error=GenerationError("bad schema"))
        state = _state(urgency_level=UrgencyLevel.EMERGENCY, history=_prior_turns(1))
        outcome = _run(_orchestrator(generation).process_turn(state, "are you there?"))
        self.assertEqual(outcome.response.urgency_level, UrgencyLevel.EMERGENCY)


class TestMergeAndUrgency(unittest.TestCase):
    def test_slots_are_sticky(self) -> None:
        state = _state(slots={"building_name": "Tang Hall", "room_number": "301"}, history=_prior_turns(1))
        generated = _generated(conversationSlots={"buildingName": None, "studentName": "A"})
        outcome = _run(_orchestrator(_generation(generated)).process_turn(state, "I'm A"))
        self.assertEqual(outcome.state.slots["building_name"], "Tang Hall")
        self.assertEqual(outcome.state.slots["student_name"], "A")
        self.assertTrue(outcome.state.location.is_location_confirmed)

    def test_urgency_never_lowered_after_first_turn(self) -> None:
        state = _state(urgency_level=UrgencyLevel.URGENT, history=_prior_turns(1))
        outcome = _run(_orchestrator(_generation(_generated(urgencyLevel="low"))).process_turn(state, "ok thanks"))
        self.assertEqual(outcome.state.urgency_level, UrgencyLevel.URGENT)

    def test_context_raises_urgency(self) -> None:
        outcome = _run(_orchestrator(_generation(_generated())).process_turn(_state(), "my faucet is leaking"))
        self.assertEqual(outcome.response.urgency_level, UrgencyLevel.URGENT)

    def test_photo_request_sets_slot(self) -> None:
        generated = _generated(nextAction="request_media", mediaRequest={"type": "photo", "reason": "see it"})
        outcome = _run(_orchestrator(_generation(generated)).process_turn(_state(), "the ceiling has a crack"))
        self.assertTrue(outcome.state.slots["photo_requested"])
        self.assertEqual(outcome.response.media_request["type"], "photo")


class TestCompletionGate(unittest.TestCase):
    def test_premature_completion_is_overridden(self) -> None:
        materializer = _materializer(_CASE)
        generated = _generated(nextAction="complete_triage")
        outcome = _run(_orchestrator(_generation(generated), materializer).process_turn(_state(), "my faucet leaks"))

        materializer.materialize.assert_not_awaited()
        self.assertEqual(outcome.response.next_action, NextAction.ASK_FOLLOWUP)
        self.assertTrue(outcome.response.overridden)
        self.assertIn("Before I can submit your request", outcome.response.message)
        self.assertFalse(outcome.state.is_complete)

    def test_ready_conversation_materializes(self) -> None:
        materializer = _materializer(_CASE)
        state = _state(slots=dict(_FULL_SLOTS), history=_prior_turns(2))
        generated = _generated(nextAction="complete_triage", conversationSlots={"studentPhone": "555-1234"})
        outcome = _run(_orchestrator(_generation(generated), materializer).process_turn(state, "My number is 555-1234"))

        materializer.materialize.assert_awaited_once()
        response = outcome.response
        self.assertTrue(response.is_complete)
        self.assertEqual(response.case_number, _CASE.case_number)
        self.assertIn(_CASE.confirmation, response.message)
        self.assertTrue(response.completeness.is_ready)
        self.assertEqual(outcome.state.phase, Phase.FINAL_TRIAGE)
        self.assertEqual(outcome.state.case_id, _CASE.case_id)
        self.assertEqual(outcome.state.completed_at, NOW)
        self.assertEqual(outcome.state.slots["room_number"], "301")

    def test_phone_digits_do_not_fill_missing_room(self) -> None:
        materializer = _materializer(_CASE)
        slots = {k: v for k, v in _FULL_SLOTS.items() if k != "room_number"}
        state = _state(slots=slots, history=_prior_turns(3))
        generated = _generated(nextAction="complete_triage", conversationSlots={"studentPhone": "617-555-1234"})
        outcome = _run(
            _orchestrator(_generation(generated), materializer).process_turn(state, "my phone is 617-555-1234")
        )

        materializer.materialize.assert_not_awaited()
        self.assertNotIn("room_number", outcome.state.slots)
        self.assertFalse(outcome.response.completeness.gates["location"])
        self.assertEqual(outcome.response.next_action, NextAction.ASK_FOLLOWUP)
        self.assertFalse(outcome.state.is_complete)

    def test_ready_but_model_keeps_asking(self) -> None:
        materializer = _materializer(_CASE)
        state = _state(slots=dict(_FULL_SLOTS, student_phone="555-1234"), history=_prior_turns(2))
        outcome = _run(_orchestrator(_generation(_generated()), materializer).process_turn(state, "anything else?"))
        materializer.materialize.assert_not_awaited()
        self.assertFalse(outcome.state.is_complete)

    def test_frustrated_student_gets_relaxed_threshold(self) -> None:
        orchestrator = _orchestrator(_generation(_generated()))
        frustrated = MagicMock(is_frustrated=True)
        calm = MagicMock(is_frustrated=False)
        self.assertEqual(orchestrator._threshold(_state(), frustrated), 60)
        self.assertEqual(orchestrator._threshold(_state(), calm), 70)
        self.assertEqual(orchestrator._threshold(_state(history=_prior_turns(5)), calm), 60)


class TestEmergencyPath(unittest.TestCase):
    def test_emergency_without_contact_asks_for_it(self) -> None:
        materializer = _materializer(_CASE)
        generated = _generated(urgencyLevel="emergency", nextAction="escalate_immediate")
        state = _state(slots={"student_name": "A"})
        outcome = _run(_orchestrator(_generation(generated), materializer).process_turn(state, "the ceiling is collapsing"))

        materializer.materialize.assert_not_awaited()
        self.assertEqual(outcome.response.next_action, NextAction.ESCALATE_IMMEDIATE)
        self.assertIn("your email address and a phone number", outcome.response.message)

    def test_emergency_with_contact_materializes(self) -> None:
        materializer = _materializer(_CASE)
        generated = _generated(urgencyLevel="emergency", nextAction="escalate_immediate")
        state = _state(
            slots={"student_name": "A", "student_email": "a@x.com", "student_phone": "555-1234"},
            urgency_level=UrgencyLevel.EMERGENCY,
            history=_prior_turns(1),
        )
        outcome = _run(_orchestrator(_generation(generated), materializer).process_turn(state, "I'm in Tang Hall 301"))

        materializer.materialize.assert_awaited_once()
        self.assertTrue(outcome.response.is_complete)
        self.assertEqual(outcome.response.next_action, NextAction.ESCALATE_IMMEDIATE)

    def test_routing_failure_escalates_without_completing(self) -> None:
        materializer = _materializer(error=RoutingError("unknown building"))
        state = _state(slots=dict(_FULL_SLOTS, student_phone="555-1234"), history=_prior_turns(2))
        generated = _generated(nextAction="complete_triage")
        outcome = _run(_orchestrator(_generation(generated), materializer).process_turn(state, "that's all"))

        self.assertFalse(outcome.state.is_complete)
        self.assertIsNone(outcome.state.case_id)
        self.assertIn(ROUTING_FAILED_FLAG, outcome.state.safety_flags)
        self.assertEqual(outcome.response.next_action, NextAction.ESCALATE_IMMEDIATE)


if __name__ == "__main__":
    unittest.main()
