import sys
from threading import Thread

import discord
import uvicorn
from discord.ext import commands

import config
from utils.logger import logger

try:
    config.require_secrets()
except config.ConfigurationError as e:
    logger.critical(f"❌ {e}")
    sys.exit(1)

import api
from gpt.dataset_loader import load_topic_catalog
from gpt.question_provider import QuestionProvider
from utils.discord_transport import DiscordTransport
from utils.quiz_engine import QuizEngine
from utils.quiz_state import SessionStore, UserRegistry


def start_api():
    uvicorn.run(api.app, host="0.0.0.0", port=config.PORT, log_level="warning")


# Intents
intents = discord.Intents.default()
intents.messages = True
intents.guilds = True
bot = commands.Bot(command_prefix="!", intents=intents)

session_store = SessionStore()
user_registry = UserRegistry()
topic_catalog = load_topic_catalog()
api.app.state.session_store = session_store

quiz_engine = QuizEngine(
    transport=DiscordTransport(bot),
    provider=QuestionProvider(),
    topics=topic_catalog,
    store=session_store,
    users=user_registry,
)
setattr(bot, "quiz_engine", quiz_engine)


# Event: bot is ready
@bot.event
async def on_ready():
    logger.info(f"{bot.user} is online! ✅ {len(topic_catalog)} topics loaded")
    logger.info(f"✅ Bot is connected to {len(bot.guilds)} server(s)!")


@bot.event
async def on_command_error(ctx, error):
    logger.error(f"⚠️ Error in command '{ctx.command}': {error}")


async def setup_hook():
    await bot.load_extension("cogs.quiz")
    await bot.load_extension("cogs.status")
    synced = await bot.tree.sync()
    logger.info(f"🔄 Synced {len(synced)} slash commands")


bot.setup_hook = setup_hook


if __name__ == "__main__":
    Thread(target=start_api, daemon=True).start()
    logger.info(f"🚀 Liveness endpoint on port {config.PORT}")
    bot.run(config.BOT_TOKEN, log_handler=None)
