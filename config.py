import os
from typing import List

from dotenv import load_dotenv

load_dotenv()  # Load variables from .env file


class ConfigurationError(RuntimeError):
    """A required secret is missing; the bot cannot start."""


# Chat platform
BOT_TOKEN = os.getenv("BOT_TOKEN")

# Text generation service (OpenAI-compatible endpoints)
LLM_PROVIDER = os.getenv("LLM_PROVIDER", "anthropic").strip().lower()
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY") or os.getenv("CLAUDE_API_KEY")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
GROK_API_KEY = os.getenv("GROK_API_KEY")
LLM_MODEL = os.getenv("LLM_MODEL")  # None -> provider default
LLM_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "3000"))
LLM_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", "30"))

# HTTP liveness listener
PORT = int(os.getenv("PORT", "3000"))
SERVICE_NAME = os.getenv("SERVICE_NAME", "oposiciones-quizbot")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE", "bot.log")

# Quiz lengths for the shortcut commands
QUICK_QUIZ_SIZE = 5
MEDIUM_QUIZ_SIZE = 10
MAX_QUIZ_SIZE = 20
DEFAULT_TOPIC_ID = "16"

_PROVIDER_KEY_NAMES = {
    "anthropic": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
    "grok": "GROK_API_KEY",
}


def llm_api_key_name() -> str:
    return _PROVIDER_KEY_NAMES.get(LLM_PROVIDER, "OPENAI_API_KEY")


def llm_api_key():
    return globals().get(llm_api_key_name())


def missing_secrets() -> List[str]:
    missing = []
    if not BOT_TOKEN:
        missing.append("BOT_TOKEN")
    if not llm_api_key():
        missing.append(llm_api_key_name())
    return missing


def require_secrets() -> None:
    missing = missing_secrets()
    if missing:
        raise ConfigurationError(f"Missing environment variables: {', '.join(missing)}")
