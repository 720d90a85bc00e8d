"""
Discord implementation of the quiz Transport.

Chat ids are Discord channel ids (a DM channel for private quizzes). Both
keyboard kinds are rendered as button rows whose custom_id is the callback
token; the quiz cog picks the presses up in its on_interaction listener.
"""

from typing import Optional

import discord

from utils.transport import Markup, ReplyKeyboard

MAX_LABEL_LENGTH = 80  # Discord limit for button labels
MAX_ROWS = 5
VIEW_TIMEOUT = 15 * 60


def _label(text: str) -> str:
    if len(text) <= MAX_LABEL_LENGTH:
        return text
    return text[:MAX_LABEL_LENGTH - 1] + "…"


def build_view(markup: Optional[Markup]) -> Optional[discord.ui.View]:
    if markup is None:
        return None

    style = discord.ButtonStyle.primary if isinstance(markup, ReplyKeyboard) else discord.ButtonStyle.secondary
    view = discord.ui.View(timeout=VIEW_TIMEOUT)
    for row_index, row in enumerate(markup.rows[:MAX_ROWS]):
        for button in row:
            view.add_item(
                discord.ui.Button(
                    label=_label(button.label),
                    custom_id=button.token,
                    style=style,
                    row=row_index,
                )
            )
    return view


class DiscordTransport:
    def __init__(self, bot: discord.Client):
        self.bot = bot

    async def _channel(self, chat_id: int):
        channel = self.bot.get_channel(chat_id)
        if channel is None:
            channel = await self.bot.fetch_channel(chat_id)
        return channel

    async def send_text(self, chat_id: int, text: str, markup: Optional[Markup] = None) -> Optional[int]:
        channel = await self._channel(chat_id)
        view = build_view(markup)
        if view is None:
            message = await channel.send(text)
        else:
            message = await channel.send(text, view=view)
        return message.id

    async def edit_text(self, chat_id: int, message_id: int, text: str, markup: Optional[Markup] = None) -> None:
        channel = await self._channel(chat_id)
        # view=None strips the old buttons
        await channel.get_partial_message(message_id).edit(content=text, view=build_view(markup))

    async def delete_message(self, chat_id: int, message_id: int) -> None:
        channel = await self._channel(chat_id)
        await channel.get_partial_message(message_id).delete()


__all__ = ["DiscordTransport", "build_view"]
