"""
Tests for the quiz cog's command mapping and its single interaction dispatch point.
"""

from unittest.mock import AsyncMock, Mock

import discord
import pytest

import config
from cogs.quiz import OposicionesQuiz
from utils.transport import NEXT_TOKEN, answer_token, command_token


@pytest.fixture
def engine():
    engine = Mock()
    engine.register_user = AsyncMock()
    engine.start_quiz = AsyncMock()
    engine.submit_answer = AsyncMock()
    engine.advance = AsyncMock()
    engine.show_progress = AsyncMock()
    return engine


@pytest.fixture
def cog(engine):
    return OposicionesQuiz(Mock(), engine)


def component_interaction(custom_id, channel_id=10, message_id=20):
    interaction = Mock()
    interaction.type = discord.InteractionType.component
    interaction.data = {"custom_id": custom_id}
    interaction.channel_id = channel_id
    interaction.message = Mock(id=message_id)
    interaction.user = Mock(display_name="Pepa")
    interaction.response.defer = AsyncMock()
    interaction.followup.send = AsyncMock()
    return interaction


class TestRunCommand:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("name,topic,count", [
        ("rapido", config.DEFAULT_TOPIC_ID, config.QUICK_QUIZ_SIZE),
        ("medio", config.DEFAULT_TOPIC_ID, config.MEDIUM_QUIZ_SIZE),
        ("tema16", "16", config.QUICK_QUIZ_SIZE),
    ])
    async def test_quiz_shortcuts(self, cog, engine, name, topic, count):
        assert await cog.run_command(name, 10, "Pepa") is True
        engine.start_quiz.assert_awaited_once_with(10, topic, count)

    @pytest.mark.asyncio
    async def test_start_registers_user(self, cog, engine):
        await cog.run_command("start", 10, "Pepa")
        engine.register_user.assert_awaited_once_with(10, "Pepa")

    @pytest.mark.asyncio
    async def test_progress(self, cog, engine):
        await cog.run_command("progreso", 10, "Pepa")
        engine.show_progress.assert_awaited_once_with(10)

    @pytest.mark.asyncio
    async def test_unknown_command(self, cog, engine):
        assert await cog.run_command("borrar", 10, "Pepa") is False
        engine.start_quiz.assert_not_awaited()


class TestOnInteraction:
    @pytest.mark.asyncio
    async def test_answer_button(self, cog, engine):
        interaction = component_interaction(answer_token(2))
        await cog.on_interaction(interaction)

        interaction.response.defer.assert_awaited_once()
        engine.submit_answer.assert_awaited_once_with(10, 2, message_id=20)
        engine.advance.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_next_button(self, cog, engine):
        await cog.on_interaction(component_interaction(NEXT_TOKEN))

        engine.advance.assert_awaited_once_with(10, message_id=20)
        engine.submit_answer.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_keyboard_command_button(self, cog, engine):
        await cog.on_interaction(component_interaction(command_token("rapido")))
        engine.start_quiz.assert_awaited_once_with(10, config.DEFAULT_TOPIC_ID, config.QUICK_QUIZ_SIZE)

    @pytest.mark.asyncio
    async def test_foreign_buttons_are_left_alone(self, cog, engine):
        interaction = component_interaction("gdpr_agree")
        await cog.on_interaction(interaction)

        interaction.response.defer.assert_not_awaited()
        engine.submit_answer.assert_not_awaited()
        engine.advance.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_slash_commands_are_not_dispatched_here(self, cog, engine):
        interaction = component_interaction(NEXT_TOKEN)
        interaction.type = discord.InteractionType.application_command
        await cog.on_interaction(interaction)
        engine.advance.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_engine_failure_is_reported_not_raised(self, cog, engine):
        engine.advance.side_effect = RuntimeError("boom")
        interaction = component_interaction(NEXT_TOKEN)

        await cog.on_interaction(interaction)

        interaction.followup.send.assert_awaited_once()
