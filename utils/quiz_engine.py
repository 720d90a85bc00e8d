"""
Quiz session state machine.

AwaitingStart -> InProgress -> Completed, one session per chat. Every entry
point takes the chat's lock from the SessionStore, so two rapid taps on the
same chat are applied one after the other and never double-count.
"""

from typing import Optional

import config
from gpt.dataset_loader import TopicCatalog
from gpt.question_provider import QuestionProvider
from utils.logger import logger, log_with_chat
from utils.quiz_state import QuizSession, SessionStore, UserRegistry
from utils.transport import (
    InlineButton,
    Markup,
    ReplyKeyboard,
    Transport,
    command_token,
    next_keyboard,
    option_label,
    options_keyboard,
)

NO_ACTIVE_QUIZ = "⚠️ No tienes ningún test activo. Empieza uno con /rapido o /medio."
GENERATING = "🧠 Generando preguntas con IA..."


def welcome_keyboard() -> ReplyKeyboard:
    return ReplyKeyboard(rows=[
        [InlineButton("🚇 /rapido", command_token("rapido")), InlineButton("🚌 /medio", command_token("medio"))],
        [InlineButton("📚 /tema16", command_token("tema16")), InlineButton("📊 /progreso", command_token("progreso"))],
    ])


def welcome_text(display_name: str) -> str:
    return (
        f"🎓 ¡Hola {display_name}! Soy tu bot de oposiciones.\n\n"
        "🚀 **Comandos:**\n"
        f"/rapido - {config.QUICK_QUIZ_SIZE} preguntas rápidas\n"
        f"/medio - {config.MEDIUM_QUIZ_SIZE} preguntas\n"
        "/tema16 - Servicios Sociales\n"
        "/progreso - Ver estadísticas\n\n"
        "¡Empezamos! 🚇"
    )


def question_text(session: QuizSession) -> str:
    question = session.current_question
    return f"❓ **Pregunta {session.current_index + 1}/{session.total}**\n\n{question.text}"


def feedback_text(is_correct: bool, session: QuizSession) -> str:
    question = session.current_question
    if is_correct:
        header = "✅ **CORRECTO**"
    else:
        letter = option_label(question.correct_index)
        header = f"❌ **INCORRECTO**\nRespuesta correcta: {letter}) {question.correct_option}"
    return f"{header}\n\n💡 {question.explanation}"


def summary_text(session: QuizSession) -> str:
    return (
        "🎯 **COMPLETADO**\n\n"
        f"✅ {session.correct_count} aciertos\n"
        f"❌ {session.incorrect_count} fallos\n"
        f"📈 {session.percentage}%"
    )


class QuizEngine:
    def __init__(
        self,
        transport: Transport,
        provider: QuestionProvider,
        topics: TopicCatalog,
        store: Optional[SessionStore] = None,
        users: Optional[UserRegistry] = None,
    ):
        self.transport = transport
        self.provider = provider
        self.topics = topics
        self.store = store if store is not None else SessionStore()
        self.users = users if users is not None else UserRegistry()

    # ------------------ TRANSPORT WRAPPERS ------------------ #

    async def _send(self, chat_id: int, text: str, markup: Optional[Markup] = None) -> Optional[int]:
        try:
            return await self.transport.send_text(chat_id, text, markup)
        except Exception as e:
            log_with_chat(f"🚨 Failed to send message: {type(e).__name__}: {e}", chat_id, level="warning")
            return None

    async def _edit_or_send(self, chat_id: int, message_id: Optional[int], text: str, markup: Optional[Markup] = None) -> Optional[int]:
        """Edit the message in place, or send a new one. Returns the id of the message now showing the text."""
        if message_id is not None:
            try:
                await self.transport.edit_text(chat_id, message_id, text, markup)
                return message_id
            except Exception as e:
                log_with_chat(f"🚨 Failed to edit message {message_id}: {type(e).__name__}: {e}", chat_id, level="warning")
        return await self._send(chat_id, text, markup)

    async def _delete(self, chat_id: int, message_id: Optional[int]) -> None:
        if message_id is None:
            return
        try:
            await self.transport.delete_message(chat_id, message_id)
        except Exception as e:
            log_with_chat(f"⚠️ Could not delete message {message_id}: {e}", chat_id, level="debug")

    async def _no_active_quiz(self, chat_id: int) -> None:
        log_with_chat("Button press for a chat without a quiz", chat_id, level="debug")
        await self._send(chat_id, NO_ACTIVE_QUIZ)
        self.store.prune_lock(chat_id)

    # ------------------ COMMANDS ------------------ #

    async def register_user(self, chat_id: int, display_name: str) -> None:
        self.users.register(chat_id, display_name)
        log_with_chat(f"👋 Registered {display_name}", chat_id)
        await self._send(chat_id, welcome_text(display_name), welcome_keyboard())

    async def start_quiz(self, chat_id: int, topic_id: str, count: int) -> QuizSession:
        """Generate questions, replace any previous session for the chat and emit question 1."""
        topic = self.topics.get(topic_id)
        async with self.store.lock(chat_id):
            await self._send(chat_id, GENERATING)
            questions = await self.provider.generate_questions(topic, count, chat_id=chat_id)
            session = QuizSession(chat_id=chat_id, topic_id=topic.id, questions=list(questions))
            self.store.put(chat_id, session)
            log_with_chat(f"📝 Quiz started: topic {topic.id}, {session.total} questions", chat_id)
            await self.emit_question(session)
        return session

    async def emit_question(self, session: QuizSession) -> Optional[int]:
        question = session.current_question
        session.question_message_id = await self._send(
            session.chat_id, question_text(session), options_keyboard(question.options)
        )
        session.feedback_message_id = None
        return session.question_message_id

    async def submit_answer(self, chat_id: int, option_index: int, message_id: Optional[int] = None) -> Optional[bool]:
        """Record an answer for the current question. Returns correctness, or None when ignored.

        ``message_id`` is the message whose button was pressed. Presses on any
        message other than the current question are ignored.
        """
        if self.store.get(chat_id) is None:
            await self._no_active_quiz(chat_id)
            return None
        async with self.store.lock(chat_id):
            session = self.store.get(chat_id)
            if session is None or session.completed:
                log_with_chat("Answer for a chat without an active quiz", chat_id, level="debug")
                await self._send(chat_id, NO_ACTIVE_QUIZ)
                return None
            if message_id is not None and message_id != session.question_message_id:
                log_with_chat(f"Ignoring answer from stale message {message_id}", chat_id, level="debug")
                return None
            if session.answered_current:
                # second tap on the same question
                return None

            question = session.current_question
            is_correct = option_index == question.correct_index
            if is_correct:
                session.correct_count += 1
            else:
                session.incorrect_count += 1
            session.answered_current = True

            session.feedback_message_id = await self._edit_or_send(
                chat_id, message_id, feedback_text(is_correct, session), next_keyboard()
            )
            return is_correct

    async def advance(self, chat_id: int, message_id: Optional[int] = None) -> None:
        if self.store.get(chat_id) is None:
            await self._no_active_quiz(chat_id)
            return
        async with self.store.lock(chat_id):
            session = self.store.get(chat_id)
            if session is None:
                await self._send(chat_id, NO_ACTIVE_QUIZ)
                return
            if session.completed or not session.answered_current:
                return
            if message_id is not None and message_id != session.feedback_message_id:
                log_with_chat(f"Ignoring next from stale message {message_id}", chat_id, level="debug")
                return

            session.current_index += 1
            session.answered_current = False

            if session.current_index < session.total:
                await self._delete(chat_id, message_id)
                await self.emit_question(session)
                return

            session.completed = True
            profile = self.users.get(chat_id)
            if profile is not None:
                profile.record_quiz(session)
            logger.info(
                f"🏁 Quiz completed in chat {chat_id}: "
                f"{session.correct_count}/{session.total} ({session.percentage}%)"
            )
            await self._edit_or_send(chat_id, message_id, summary_text(session))

    async def show_progress(self, chat_id: int) -> None:
        profile = self.users.get(chat_id)
        if profile is None:
            await self._send(chat_id, "👋 Usa /start para registrarte y guardar tu progreso.")
            return

        answered = profile.correct_answers + profile.incorrect_answers
        accuracy = (200 * profile.correct_answers + answered) // (2 * answered) if answered else 0
        last = f"{profile.last_percentage}%" if profile.last_percentage is not None else "-"
        await self._send(
            chat_id,
            f"📊 **Progreso de {profile.display_name}**\n\n"
            f"📝 Tests completados: {profile.quizzes_completed}\n"
            f"✅ Aciertos: {profile.correct_answers}\n"
            f"❌ Fallos: {profile.incorrect_answers}\n"
            f"🎯 Acierto global: {accuracy}%\n"
            f"📈 Último test: {last}",
        )
