"""
Question generation for quiz sessions.

One prompt, one call to the text-generation service, no retries. Anything
that is not a well-formed list of exactly `count` questions resolves to the
topic's single fallback question, so callers always get a playable quiz.
"""

import asyncio
import json
import re
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Union

import config
from gpt.dataset_loader import question_from_dict
from gpt.helpers import ask_gpt
from utils.logger import logger, log_gpt_fallback
from utils.quiz_state import OPTIONS_PER_QUESTION, Question, Topic

AskFn = Callable[..., Awaitable[str]]

PROMPT_TEMPLATE = """Genera {count} preguntas tipo test sobre {name} para oposiciones de trabajo social Madrid.

TEMARIO:
{syllabus}

Cada pregunta tiene exactamente {options} opciones y una sola correcta. "correctIndex" es la posición (empezando en 0) de la opción correcta.

Responde SOLO con JSON en este FORMATO:
{{
  "questions": [
    {{
      "text": "¿Cuál es el principio rector principal del sistema de servicios sociales según la Ley 12/2022?",
      "options": ["Universalidad", "Atención centrada en la persona", "Proximidad", "Eficiencia"],
      "correctIndex": 1,
      "explanation": "La atención centrada en la persona es el principio nuclear que articula todo el sistema."
    }}
  ]
}}"""

_FENCE_RE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)


@dataclass(frozen=True)
class ValidQuestions:
    questions: List[Question]


@dataclass(frozen=True)
class InvalidQuestions:
    reason: str


ParseResult = Union[ValidQuestions, InvalidQuestions]


def build_prompt(topic: Topic, count: int) -> str:
    return PROMPT_TEMPLATE.format(
        count=count,
        name=topic.name,
        syllabus=topic.syllabus_text,
        options=OPTIONS_PER_QUESTION,
    )


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text or "").strip()


def parse_questions(raw: str, expected_count: int) -> ParseResult:
    """Validate raw model output into questions without trusting its structure."""
    text = strip_code_fences(raw)
    # tolerate chatter around the object ("Aquí tienes: {...}")
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        text = text[start:end + 1]
    try:
        payload = json.loads(text)
    except (TypeError, ValueError) as e:
        return InvalidQuestions(f"not JSON: {e}")

    if not isinstance(payload, dict):
        return InvalidQuestions("top-level value is not an object")
    items = payload.get("questions")
    if not isinstance(items, list):
        return InvalidQuestions("'questions' missing or not a list")
    if len(items) != expected_count:
        return InvalidQuestions(f"expected {expected_count} questions, got {len(items)}")

    questions: List[Question] = []
    for position, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            return InvalidQuestions(f"question {position} is not an object")
        missing = [k for k in ("text", "options", "correctIndex", "explanation") if k not in item]
        if missing:
            return InvalidQuestions(f"question {position} missing {', '.join(missing)}")
        options = item["options"]
        if not isinstance(options, list) or not all(isinstance(o, str) for o in options):
            return InvalidQuestions(f"question {position} options are not a list of strings")
        if not isinstance(item["text"], str) or not isinstance(item["explanation"], str):
            return InvalidQuestions(f"question {position} text/explanation is not a string")
        if not item["explanation"].strip():
            return InvalidQuestions(f"question {position} has an empty explanation")
        try:
            questions.append(question_from_dict(item))
        except ValueError as e:
            return InvalidQuestions(f"question {position}: {e}")

    return ValidQuestions(questions)


class QuestionProvider:
    def __init__(
        self,
        ask: AskFn = ask_gpt,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
    ):
        self._ask = ask
        self.model = model
        self.max_tokens = max_tokens or config.LLM_MAX_TOKENS
        self.timeout = timeout or config.LLM_TIMEOUT_SECONDS

    async def generate_questions(self, topic: Topic, count: int, chat_id: Optional[int] = None) -> List[Question]:
        if count <= 0:
            raise ValueError("count must be positive")

        prompt = build_prompt(topic, count)
        try:
            raw = await asyncio.wait_for(
                self._ask(prompt, user_id=chat_id, model=self.model, max_tokens=self.max_tokens),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            log_gpt_fallback(f"generation timed out after {self.timeout}s", chat_id)
            return [topic.fallback]
        except Exception as e:
            # ask_gpt has already logged the error itself
            log_gpt_fallback(f"{type(e).__name__}: {e}", chat_id)
            return [topic.fallback]

        result = parse_questions(raw, count)
        if isinstance(result, InvalidQuestions):
            log_gpt_fallback(f"invalid model output ({result.reason})", chat_id)
            return [topic.fallback]

        logger.info(f"🧠 Generated {len(result.questions)} questions on topic {topic.id} for chat {chat_id}")
        return result.questions
