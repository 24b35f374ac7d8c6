"""Shared fixtures: a queue-backed provider standing in for Gemini."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Iterable, List

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import askcli


class QueueProvider(askcli.ai_provider):
    """Replays canned replies; an exception in the queue is raised instead."""

    def __init__(self, replies: Iterable = ()) -> None:
        self.replies: List = list(replies)
        self.prompts: List[str] = []
        self.closed = False

    def open_session(self) -> None:
        pass

    def close_session(self) -> None:
        self.closed = True

    def send_message(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.replies:
            raise AssertionError("No more canned replies available in QueueProvider")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for key in list(os.environ):
        if key.startswith("ASKCLI_") or key in ("GEMINI_API_KEY", "GOOGLE_API_KEY"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("ASKCLI_DIR", str(tmp_path / "site"))
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def provider() -> QueueProvider:
    return QueueProvider()


@pytest.fixture
def ai(provider):
    api = askcli.api_askcli()
    api.get_env_config()
    api.provider = provider
    return api


@pytest.fixture
def session():
    return askcli.askcli_session()


class ScriptedInput:
    """Stand-in for input(): pops scripted lines, EOF when exhausted."""

    def __init__(self) -> None:
        self.lines: List[str] = []
        self.prompts: List[str] = []

    def feed(self, *lines: str) -> None:
        self.lines.extend(lines)

    def __call__(self, prompt: str = "") -> str:
        self.prompts.append(prompt)
        if not self.lines:
            raise EOFError
        return self.lines.pop(0)


@pytest.fixture
def answers(monkeypatch) -> ScriptedInput:
    scripted = ScriptedInput()
    monkeypatch.setattr("builtins.input", scripted)
    return scripted
