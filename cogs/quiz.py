import logging
from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

import config
from utils.quiz_engine import QuizEngine
from utils.transport import CallbackKind, decode_callback

logger = logging.getLogger(__name__)


class OposicionesQuiz(commands.Cog):
    def __init__(self, bot: commands.Bot, engine: QuizEngine):
        self.bot = bot
        self.engine = engine

    # ------------------ DISPATCH ------------------ #

    async def run_command(self, name: str, chat_id: int, display_name: str) -> bool:
        """Run a quiz command by name. Shared by slash commands and keyboard buttons."""
        if name == "start":
            await self.engine.register_user(chat_id, display_name)
        elif name == "rapido":
            await self.engine.start_quiz(chat_id, config.DEFAULT_TOPIC_ID, config.QUICK_QUIZ_SIZE)
        elif name == "medio":
            await self.engine.start_quiz(chat_id, config.DEFAULT_TOPIC_ID, config.MEDIUM_QUIZ_SIZE)
        elif name == "tema16":
            await self.engine.start_quiz(chat_id, "16", config.QUICK_QUIZ_SIZE)
        elif name == "progreso":
            await self.engine.show_progress(chat_id)
        else:
            logger.warning(f"⚠️ Unknown quiz command '{name}' in chat {chat_id}")
            return False
        return True

    @commands.Cog.listener()
    async def on_interaction(self, interaction: discord.Interaction):
        """Single entry point for every quiz button press."""
        if interaction.type != discord.InteractionType.component:
            return
        event = decode_callback((interaction.data or {}).get("custom_id"))
        if event is None:
            return

        chat_id = interaction.channel_id
        message_id: Optional[int] = interaction.message.id if interaction.message else None
        try:
            await interaction.response.defer()
        except discord.HTTPException as e:
            logger.warning(f"⚠️ Could not acknowledge interaction in chat {chat_id}: {e}")

        try:
            if event.kind is CallbackKind.ANSWER:
                await self.engine.submit_answer(chat_id, event.option_index, message_id=message_id)
            elif event.kind is CallbackKind.NEXT:
                await self.engine.advance(chat_id, message_id=message_id)
            elif event.kind is CallbackKind.COMMAND:
                await self.run_command(event.command, chat_id, interaction.user.display_name)
        except Exception as e:
            logger.exception(f"❌ Quiz interaction failed in chat {chat_id}: {e}")
            await self._reply_error(interaction)

    async def _slash(self, interaction: discord.Interaction, name: str, ack: str):
        try:
            await interaction.response.send_message(ack, ephemeral=True)
        except discord.HTTPException as e:
            logger.warning(f"⚠️ Could not acknowledge /{name}: {e}")
        try:
            await self.run_command(name, interaction.channel_id, interaction.user.display_name)
        except Exception as e:
            logger.exception(f"❌ /{name} failed in chat {interaction.channel_id}: {e}")
            await self._reply_error(interaction)

    @staticmethod
    async def _reply_error(interaction: discord.Interaction):
        try:
            await interaction.followup.send("❌ Algo ha fallado. Inténtalo de nuevo más tarde.", ephemeral=True)
        except discord.HTTPException:
            logger.debug("Could not deliver error notice", exc_info=True)

    # ------------------ SLASH COMMANDS ------------------ #

    @app_commands.command(name="start", description="Regístrate y muestra los comandos del bot.")
    async def start(self, interaction: discord.Interaction):
        await self._slash(interaction, "start", "👋")

    @app_commands.command(name="rapido", description="Test rápido de 5 preguntas (Servicios Sociales).")
    async def rapido(self, interaction: discord.Interaction):
        await self._slash(interaction, "rapido", "🚇 Preparando tu test rápido...")

    @app_commands.command(name="medio", description="Test de 10 preguntas (Servicios Sociales).")
    async def medio(self, interaction: discord.Interaction):
        await self._slash(interaction, "medio", "🚌 Preparando tu test...")

    @app_commands.command(name="tema16", description="Test del tema 16: Sistema Público de Servicios Sociales.")
    async def tema16(self, interaction: discord.Interaction):
        await self._slash(interaction, "tema16", "📚 Preparando el tema 16...")

    @app_commands.command(name="progreso", description="Muestra tus estadísticas.")
    async def progreso(self, interaction: discord.Interaction):
        await self._slash(interaction, "progreso", "📊")

    @app_commands.command(name="tema", description="Test sobre un tema concreto del temario.")
    @app_commands.describe(tema="Número de tema, p. ej. 1, 16 o 21", cantidad="Número de preguntas")
    async def tema(
        self,
        interaction: discord.Interaction,
        tema: str,
        cantidad: app_commands.Range[int, 1, config.MAX_QUIZ_SIZE] = config.QUICK_QUIZ_SIZE,
    ):
        if tema not in self.engine.topics:
            available = ", ".join(t.id for t in self.engine.topics)
            await interaction.response.send_message(
                f"⚠️ Tema desconocido. Temas disponibles: {available}", ephemeral=True
            )
            return

        await interaction.response.send_message(f"📚 Preparando el tema {tema}...", ephemeral=True)
        try:
            await self.engine.start_quiz(interaction.channel_id, tema, cantidad)
        except Exception as e:
            logger.exception(f"❌ /tema failed in chat {interaction.channel_id}: {e}")
            await self._reply_error(interaction)

    @tema.autocomplete("tema")
    async def tema_autocomplete(self, interaction: discord.Interaction, current: str):
        return [
            app_commands.Choice(name=f"{t.id} – {t.name}"[:100], value=t.id)
            for t in self.engine.topics
            if current.lower() in f"{t.id} {t.name}".lower()
        ][:25]


async def setup(bot: commands.Bot):
    engine = getattr(bot, "quiz_engine", None)
    if engine is None:
        raise RuntimeError("bot.quiz_engine must be set before loading cogs.quiz")
    await bot.add_cog(OposicionesQuiz(bot, engine))
