"""
Pytest configuration and shared fixtures for the quiz bot tests.
"""

import json
from typing import List, Optional
from unittest.mock import AsyncMock

import pytest

from gpt.dataset_loader import load_topic_catalog
from gpt.question_provider import QuestionProvider
from utils.quiz_engine import QuizEngine
from utils.quiz_state import SessionStore, UserRegistry


class FakeTransport:
    """Records outbound calls instead of talking to Discord."""

    def __init__(self):
        self.sent: List[dict] = []
        self.edited: List[dict] = []
        self.deleted: List[tuple] = []
        self.events: List[dict] = []  # sends and edits in order
        self.fail_send = False
        self.fail_edit = False
        self._next_id = 1000

    async def send_text(self, chat_id, text, markup=None) -> Optional[int]:
        if self.fail_send:
            raise ConnectionError("send failed")
        self._next_id += 1
        self.sent.append({"chat_id": chat_id, "text": text, "markup": markup, "message_id": self._next_id})
        self.events.append(self.sent[-1])
        return self._next_id

    async def edit_text(self, chat_id, message_id, text, markup=None) -> None:
        if self.fail_edit:
            raise ConnectionError("edit failed")
        self.edited.append({"chat_id": chat_id, "message_id": message_id, "text": text, "markup": markup})
        self.events.append(self.edited[-1])

    async def delete_message(self, chat_id, message_id) -> None:
        self.deleted.append((chat_id, message_id))

    @property
    def last_text(self) -> str:
        return self.events[-1]["text"] if self.events else ""


def make_question(n: int, correct_index: int = 0) -> dict:
    return {
        "text": f"Pregunta número {n}",
        "options": [f"Opción {n}.{i}" for i in range(4)],
        "correctIndex": correct_index,
        "explanation": f"Explicación {n}",
    }


def questions_payload(count: int, correct_index: int = 0) -> str:
    return json.dumps({"questions": [make_question(n, correct_index) for n in range(1, count + 1)]})


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def topics():
    return load_topic_catalog()


@pytest.fixture
def store():
    return SessionStore()


@pytest.fixture
def users():
    return UserRegistry()


@pytest.fixture
def ask():
    """LLM stub answering with 5 well-formed questions (correct option is always A)."""
    return AsyncMock(return_value=questions_payload(5))


@pytest.fixture
def provider(ask):
    return QuestionProvider(ask=ask, model="test-model", max_tokens=1234, timeout=1.0)


@pytest.fixture
def engine(transport, provider, topics, store, users):
    return QuizEngine(transport=transport, provider=provider, topics=topics, store=store, users=users)

