"""
Transport seam between the quiz engine and the chat platform.

The engine only knows about chat ids, message ids, plain text and two kinds of
keyboard markup. Button presses come back as opaque callback tokens which
`decode_callback` turns into a tagged `CallbackEvent`.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Protocol, Sequence, Union


@dataclass(frozen=True)
class InlineButton:
    label: str
    token: str


@dataclass(frozen=True)
class InlineKeyboard:
    rows: Sequence[Sequence[InlineButton]]


@dataclass(frozen=True)
class ReplyKeyboard:
    """Persistent command keyboard. Each button sends its command token."""
    rows: Sequence[Sequence[InlineButton]]


Markup = Union[InlineKeyboard, ReplyKeyboard]


class Transport(Protocol):
    async def send_text(self, chat_id: int, text: str, markup: Optional[Markup] = None) -> Optional[int]:
        ...

    async def edit_text(self, chat_id: int, message_id: int, text: str, markup: Optional[Markup] = None) -> None:
        ...

    async def delete_message(self, chat_id: int, message_id: int) -> None:
        ...


# ------------------ CALLBACK TOKENS ------------------ #

ANSWER_PREFIX = "quiz:answer:"
NEXT_TOKEN = "quiz:next"
COMMAND_PREFIX = "quiz:cmd:"


class CallbackKind(Enum):
    ANSWER = "answer"
    NEXT = "next"
    COMMAND = "command"


@dataclass(frozen=True)
class CallbackEvent:
    kind: CallbackKind
    option_index: Optional[int] = None
    command: Optional[str] = None


def answer_token(option_index: int) -> str:
    return f"{ANSWER_PREFIX}{option_index}"


def command_token(command: str) -> str:
    return f"{COMMAND_PREFIX}{command}"


def decode_callback(token: Optional[str]) -> Optional[CallbackEvent]:
    """Return the event encoded in a button token, or None for foreign tokens."""
    if not token:
        return None
    if token == NEXT_TOKEN:
        return CallbackEvent(CallbackKind.NEXT)
    if token.startswith(ANSWER_PREFIX):
        raw = token[len(ANSWER_PREFIX):]
        if not raw.isdigit():
            return None
        return CallbackEvent(CallbackKind.ANSWER, option_index=int(raw))
    if token.startswith(COMMAND_PREFIX):
        command = token[len(COMMAND_PREFIX):]
        if not command:
            return None
        return CallbackEvent(CallbackKind.COMMAND, command=command)
    return None


def option_label(option_index: int) -> str:
    return chr(ord("A") + option_index)


def options_keyboard(options: Sequence[str]) -> InlineKeyboard:
    rows: List[List[InlineButton]] = [
        [InlineButton(label=f"{option_label(i)}) {option}", token=answer_token(i))]
        for i, option in enumerate(options)
    ]
    return InlineKeyboard(rows=rows)


def next_keyboard() -> InlineKeyboard:
    return InlineKeyboard(rows=[[InlineButton(label="➡️ Siguiente", token=NEXT_TOKEN)]])
