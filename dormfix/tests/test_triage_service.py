"""Unit tests for TriageService: persistence, optimistic versioning and per-conversation locking."""
from __future__ import annotations

import asyncio
import datetime as _dt
import unittest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

from dormfix.core.exceptions import ConflictError, NotFoundError
from dormfix.services.triage_service import ConversationLocks, TriageService, state_from_row, state_values
from dormfix.triage.types import AgentResponse, NextAction, Phase, Role, TurnOutcome, UrgencyLevel

NOW = _dt.datetime(2024, 11, 5, 15, 0, tzinfo=_dt.timezone.utc)


def _run(coro):
    return asyncio.run(coro)


def _row(**overrides):
    data = dict(
        id=uuid4(),
        student_id="s1",
        organization_id="org1",
        current_phase="gathering_info",
        urgency_level="urgent",
        safety_flags=["urgent_dripping"],
        history=[
            {"role": "student", "message": "my sink is dripping", "timestamp": NOW.isoformat()},
            {"role": "agent", "message": "Which building?", "timestamp": NOW.isoformat(), "urgency_level": "urgent"},
        ],
        slots={"issue_summary": "sink dripping"},
        location={"building_name": None, "room_number": None, "is_location_confirmed": False},
        pending_questions=["Which building?"],
        case_id=None,
        case_number=None,
        is_complete=False,
        completed_at=None,
        version=3,
    )
    data.update(overrides)
    return SimpleNamespace(**data)


def _outcome(state) -> TurnOutcome:
    return TurnOutcome(
        state=state,
        response=AgentResponse(
            message="Thanks",
            urgency_level=state.urgency_level,
            safety_flags=list(state.safety_flags),
            next_action=NextAction.ASK_FOLLOWUP,
        ),
    )


def _service(row, *, saved=True, locks=None):
    session = MagicMock()
    session.commit = AsyncMock()
    notifier = MagicMock()
    service = TriageService(session, MagicMock(), notifier=notifier, locks=locks or ConversationLocks())
    repo = MagicMock()
    repo.get_by_id = AsyncMock(return_value=row)
    repo.create = AsyncMock(return_value=row)
    repo.save_if_version = AsyncMock(return_value=saved)
    service._conv_repo = repo
    orchestrator = MagicMock()
    orchestrator.process_turn = AsyncMock(side_effect=lambda state, message, media_refs=None: _outcome(state))
    service._orchestrator = orchestrator
    return service, session, notifier


class TestRowMapping(unittest.TestCase):
    def test_state_from_row(self) -> None:
        row = _row()
        state = state_from_row(row)
        self.assertEqual(state.conversation_id, row.id)
        self.assertEqual(state.phase, Phase.GATHERING_INFO)
        self.assertEqual(state.urgency_level, UrgencyLevel.URGENT)
        self.assertEqual([t.role for t in state.history], [Role.STUDENT, Role.AGENT])
        self.assertEqual(state.history[1].urgency_level, UrgencyLevel.URGENT)
        self.assertEqual(state.version, 3)

    def test_values_round_trip(self) -> None:
        row = _row()
        values = state_values(state_from_row(row))
        self.assertNotIn("version", values)
        self.assertEqual(values["history"], row.history)
        self.assertEqual(values["location"], row.location)
        self.assertEqual(values["current_phase"], "gathering_info")

    def test_fresh_row_defaults(self) -> None:
        state = state_from_row(_row(current_phase=None, urgency_level=None, history=None, slots=None,
                                    location=None, safety_flags=None, pending_questions=None, version=None))
        self.assertEqual(state.phase, Phase.GATHERING_INFO)
        self.assertEqual(state.urgency_level, UrgencyLevel.NORMAL)
        self.assertEqual(state.history, [])
        self.assertEqual(state.version, 0)


class TestConversationLocks(unittest.TestCase):
    def test_same_id_same_lock(self) -> None:
        locks = ConversationLocks()
        cid = uuid4()
        lock = locks.lock_for(cid)
        self.assertIs(locks.lock_for(cid), lock)
        self.assertIsNot(locks.lock_for(uuid4()), lock)


class TestTriageService(unittest.TestCase):
    def test_continue_saves_with_expected_version(self) -> None:
        row = _row()
        service, session, notifier = _service(row)
        outcome = _run(service.continue_conversation(row.id, "Tang Hall 301"))

        cid, expected, values = service._conv_repo.save_if_version.call_args.args
        self.assertEqual((cid, expected), (row.id, 3))
        self.assertEqual(values["urgency_level"], "urgent")
        self.assertEqual(outcome.state.version, 4)
        session.commit.assert_awaited_once()
        notifier.notify_turn.assert_called_once()

    def test_stale_write_conflicts(self) -> None:
        row = _row()
        service, session, notifier = _service(row, saved=False)
        with self.assertRaises(ConflictError):
            _run(service.continue_conversation(row.id, "hello"))
        session.commit.assert_not_awaited()
        notifier.notify_turn.assert_not_called()

    def test_unknown_conversation(self) -> None:
        service, _, _ = _service(None)
        with self.assertRaises(NotFoundError):
            _run(service.continue_conversation(uuid4(), "hello"))

    def test_start_creates_row(self) -> None:
        row = _row(history=[], version=0, urgency_level="normal", safety_flags=[])
        service, _, _ = _service(row)
        outcome = _run(service.start_conversation("s1", "org1", "my sink is dripping", ["img-1"]))
        service._conv_repo.create.assert_awaited_once_with({"student_id": "s1", "organization_id": "org1"})
        state, message, media = service._orchestrator.process_turn.call_args.args
        self.assertEqual(message, "my sink is dripping")
        self.assertEqual(media, ["img-1"])
        self.assertEqual(outcome.state.version, 1)

    def test_turn_runs_under_conversation_lock(self) -> None:
        row = _row()
        locks = ConversationLocks()
        service, _, _ = _service(row, locks=locks)
        held = []

        async def process_turn(state, message, media_refs=None):
            held.append(locks.lock_for(row.id).locked())
            return _outcome(state)

        service._orchestrator.process_turn = AsyncMock(side_effect=process_turn)
        _run(service.continue_conversation(row.id, "hello"))
        self.assertEqual(held, [True])

    def test_concurrent_turns_are_serialized(self) -> None:
        row = _row()
        locks = ConversationLocks()
        service, _, _ = _service(row, locks=locks)
        active = []
        overlap = []

        async def process_turn(state, message, media_refs=None):
            active.append(message)
            if len(active) > 1:
                overlap.append(message)
            await asyncio.sleep(0.01)
            active.remove(message)
            return _outcome(state)

        service._orchestrator.process_turn = AsyncMock(side_effect=process_turn)

        async def scenario():
            await asyncio.gather(
                service.continue_conversation(row.id, "first"),
                service.continue_conversation(row.id, "second"),
            )

        _run(scenario())
        self.assertEqual(overlap, [])


if __name__ == "__main__":
    unittest.main()
