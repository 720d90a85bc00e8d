# quiz_state.py

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

OPTIONS_PER_QUESTION = 4


@dataclass(frozen=True)
class Question:
    text: str
    options: tuple
    correct_index: int
    explanation: str = ""

    def __post_init__(self):
        options = tuple(self.options)
        object.__setattr__(self, "options", options)
        if len(options) != OPTIONS_PER_QUESTION:
            raise ValueError(f"expected {OPTIONS_PER_QUESTION} options, got {len(options)}")
        if isinstance(self.correct_index, bool) or not isinstance(self.correct_index, int):
            raise ValueError(f"correct_index must be an int, got {self.correct_index!r}")
        if not 0 <= self.correct_index < len(options):
            raise ValueError(f"correct_index {self.correct_index} out of range")

    @property
    def correct_option(self) -> str:
        return self.options[self.correct_index]


@dataclass(frozen=True)
class Topic:
    id: str
    name: str
    syllabus_text: str
    fallback: Question


@dataclass
class QuizSession:
    """Quiz in progress for one chat."""

    chat_id: int
    topic_id: str
    questions: List[Question]
    current_index: int = 0
    correct_count: int = 0
    incorrect_count: int = 0
    answered_current: bool = False
    completed: bool = False
    # buttons on any other message belong to an abandoned quiz or question
    question_message_id: Optional[int] = None
    feedback_message_id: Optional[int] = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        if not self.questions:
            raise ValueError("a quiz session needs at least one question")

    @property
    def total(self) -> int:
        return len(self.questions)

    @property
    def current_question(self) -> Optional[Question]:
        if self.current_index < self.total:
            return self.questions[self.current_index]
        return None

    @property
    def percentage(self) -> int:
        # half-up rounding; round() would use banker's rounding
        return (200 * self.correct_count + self.total) // (2 * self.total)


@dataclass
class UserProfile:
    chat_id: int
    display_name: str
    registered_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    quizzes_completed: int = 0
    correct_answers: int = 0
    incorrect_answers: int = 0
    last_percentage: Optional[int] = None

    def record_quiz(self, session: QuizSession) -> None:
        self.quizzes_completed += 1
        self.correct_answers += session.correct_count
        self.incorrect_answers += session.incorrect_count
        self.last_percentage = session.percentage


class SessionStore:
    """In-memory chat_id -> QuizSession map. Lost on restart."""

    def __init__(self):
        self.sessions: Dict[int, QuizSession] = {}
        self._locks: Dict[int, asyncio.Lock] = {}

    def put(self, chat_id: int, session: QuizSession) -> None:
        self.sessions[chat_id] = session

    def get(self, chat_id: int) -> Optional[QuizSession]:
        return self.sessions.get(chat_id)

    def remove(self, chat_id: int) -> Optional[QuizSession]:
        session = self.sessions.pop(chat_id, None)
        self.prune_lock(chat_id)
        return session

    def lock(self, chat_id: int) -> asyncio.Lock:
        lock = self._locks.get(chat_id)
        if lock is None:
            lock = self._locks[chat_id] = asyncio.Lock()
        return lock

    def prune_lock(self, chat_id: int) -> None:
        """Forget the lock of a chat that has no session and nobody holding it."""
        lock = self._locks.get(chat_id)
        if lock is not None and not lock.locked() and chat_id not in self.sessions:
            del self._locks[chat_id]

    def active_count(self) -> int:
        return sum(1 for s in self.sessions.values() if not s.completed)


class UserRegistry:
    def __init__(self):
        self.users: Dict[int, UserProfile] = {}

    def register(self, chat_id: int, display_name: str) -> UserProfile:
        # /start again keeps the progress, only refreshes the name
        profile = self.users.get(chat_id)
        if profile is None:
            profile = self.users[chat_id] = UserProfile(chat_id=chat_id, display_name=display_name)
        else:
            profile.display_name = display_name
        return profile

    def get(self, chat_id: int) -> Optional[UserProfile]:
        return self.users.get(chat_id)
