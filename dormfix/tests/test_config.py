"""Unit tests for env-driven config, the exception types and the JSON log formatter."""
from __future__ import annotations

import json
import logging
import os
import re
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from dormfix.clients.llm import build_llm_client
from dormfix.clients.llm.config import LLMConfig
from dormfix.config import (
    NotificationConfig,
    SchedulingConfig,
    TriageConfig,
    load_postgres_config,
    load_scheduling_config,
    load_triage_config,
)
from dormfix.core.exceptions import ConflictError, DormFixError, RoutingError, exception_factory
from dormfix.core.logger import JsonFormatter, LoggerConfig, configure, get_logger


class TestTriageConfig(unittest.TestCase):
    def test_defaults(self) -> None:
        config = TriageConfig()
        self.assertEqual((config.ready_threshold, config.relaxed_threshold), (70, 60))
        self.assertEqual(config.dedup_window_minutes, 30)

    def test_relaxed_above_ready_rejected(self) -> None:
        with self.assertRaises(ValueError):
            TriageConfig(ready_threshold=60, relaxed_threshold=70)

    def test_from_env(self) -> None:
        with patch.dict(os.environ, {"TRIAGE_GENERATION_TIMEOUT": "5", "TRIAGE_DEDUP_WINDOW_MINUTES": "45"}):
            config = load_triage_config()
        self.assertEqual(config.generation_timeout, 5.0)
        self.assertEqual(config.dedup_window_minutes, 45)

    def test_override_wins(self) -> None:
        with patch.dict(os.environ, {"TRIAGE_READY_THRESHOLD": "80"}):
            self.assertEqual(load_triage_config(ready_threshold=75).ready_threshold, 75)


class TestOtherConfig(unittest.TestCase):
    def test_scheduling_from_env(self) -> None:
        with patch.dict(os.environ, {"SCHEDULING_BUFFER_MINUTES": "0", "SCHEDULING_HORIZON_DAYS": "7"}):
            config = load_scheduling_config()
        self.assertEqual((config.buffer_minutes, config.horizon_days), (0, 7))

    def test_scheduling_rejects_zero_step(self) -> None:
        with self.assertRaises(ValueError):
            SchedulingConfig(slot_step_minutes=0)

    def test_notifications_need_url_and_secret(self) -> None:
        self.assertFalse(NotificationConfig(webhook_url="https://hooks.test/x").enabled)
        self.assertTrue(NotificationConfig(webhook_url="https://hooks.test/x", webhook_secret="k").enabled)
        with self.assertRaises(ValueError):
            NotificationConfig(webhook_url="ftp://hooks.test/x")

    def test_postgres_url_validated(self) -> None:
        with self.assertRaises(ValueError):
            load_postgres_config(url="mysql://localhost/db")
        self.assertEqual(load_postgres_config(url="postgres://u@h/db", pool_size=2).pool_size, 2)

    def test_llm_config_from_env(self) -> None:
        with patch.dict(os.environ, {"OPENAI_API_KEY": "", "GEMINI_API_KEY": "", "GOOGLE_API_KEY": ""}):
            self.assertIsNone(LLMConfig.from_env())
            self.assertEqual(build_llm_client().provider, "noop")
        with patch.dict(os.environ, {"OPENAI_API_KEY": "sk-test", "LLM_MODEL": "gpt-4o"}):
            config = LLMConfig.from_env()
        self.assertEqual((config.provider, config.model), ("openai", "gpt-4o"))


class TestExceptions(unittest.TestCase):
    def test_to_dict(self) -> None:
        err = RoutingError("Unknown building", details={"building": "Hogwarts"}, cause=KeyError("x"))
        data = err.to_dict()
        self.assertEqual(data["code"], "ROUTING_ERROR")
        self.assertEqual(data["http_status"], 422)
        self.assertEqual(data["details"], {"building": "Hogwarts"})
        self.assertNotIn("cause_traceback", data)

    def test_factory(self) -> None:
        DispatchError = exception_factory("DispatchError", http_status=502)
        err = DispatchError("portal down")
        self.assertIsInstance(err, DormFixError)
        self.assertEqual((err.code, err.http_status), ("DISPATCHERROR", 502))
        self.assertEqual(ConflictError("stale").http_status, 409)


class TestJsonFormatter(unittest.TestCase):
    def test_context_keys_lifted(self) -> None:
        record = logging.LogRecord("dormfix.test", logging.INFO, __file__, 1, "turn %s", ("stored",), None)
        record.conversation_id = "c-1"
        data = json.loads(JsonFormatter().format(record))
        self.assertEqual(data["message"], "turn stored")
        self.assertEqual(data["conversation_id"], "c-1")
        self.assertNotIn("case_id", data)


class TestConfigureLogger(unittest.TestCase):
    def test_console_and_rotating_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = configure(LoggerConfig(level="DEBUG", log_dir=tmp, root_name="dormfix_test_logger"))
            try:
                self.assertEqual(len(root.handlers), 2)
                self.assertFalse(root.propagate)
                child = get_logger("dormfix_test_logger.triage")
                child.info("TriageOrchestrator: turn stored", extra={"conversation_id": "c-1"})
                for handler in root.handlers:
                    handler.flush()
                with open(os.path.join(tmp, "dormfix.log"), encoding="utf-8") as fh:
                    line = json.loads(fh.readline())
                self.assertEqual(line["conversation_id"], "c-1")
            finally:
                for handler in list(root.handlers):
                    handler.close()
                    root.removeHandler(handler)

    def test_invalid_level(self) -> None:
        with self.assertRaises(ValueError):
            LoggerConfig(level="LOUD")


# A backslash inside an f-string replacement field only parses on Python 3.12+.
_FSTRING_BACKSLASH = re.compile(r"""\bf(?P<q>["'])(?:(?!(?P=q)).)*?\{[^}]*\\""")


class TestSourceCompatibility(unittest.TestCase):
    def test_no_backslash_in_fstring_expressions(self) -> None:
        package = Path(__file__).resolve().parents[1]
        offenders = []
        for path in sorted(package.rglob("*.py")):
            for lineno, line in enumerate(path.read_text(encoding="utf-8").splitlines(), 1):
                if _FSTRING_BACKSLASH.search(line):
                    offenders.append(f"{path.relative_to(package)}:{lineno}")
        self.assertEqual(offenders, [])


if __name__ == "__main__":
    unittest.main()
