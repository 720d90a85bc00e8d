import sys
import logging
from logging.handlers import RotatingFileHandler
from collections import deque
from datetime import datetime, timezone
from typing import Any, Deque, Dict, Optional

import config

# Configure logging with rotation
log_handler = RotatingFileHandler(config.LOG_FILE, maxBytes=5 * 1024 * 1024, backupCount=3)  # 5MB per file, keep 3 backups
log_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    handlers=[
        log_handler,
        logging.StreamHandler(sys.stdout)
    ]
)


MAX_EVENT_HISTORY = 25  # recent errors kept for /gptstatus


class GPTStatusLogs:
    def __init__(self) -> None:
        self.last_success_time: Optional[datetime] = None
        self.last_error_type: Optional[str] = None
        self.average_latency_ms: int = 0
        self.total_tokens_today: int = 0
        self.current_model: str = "-"
        self.last_user: Optional[int] = None
        self.success_count: int = 0
        self.error_count: int = 0
        self.fallback_count: int = 0
        self.error_events: Deque[Dict[str, Any]] = deque(maxlen=MAX_EVENT_HISTORY)


gpt_logs = GPTStatusLogs()


def get_gpt_status_logs() -> GPTStatusLogs:
    return gpt_logs


def log_gpt_success(user_id: Optional[int] = None, tokens_used: int = 0, latency_ms: int = 0, model: Optional[str] = None) -> None:
    now = datetime.now(timezone.utc)
    gpt_logs.last_success_time = now
    gpt_logs.last_user = user_id
    gpt_logs.success_count += 1
    gpt_logs.total_tokens_today += tokens_used
    # running mean over all successful calls
    gpt_logs.average_latency_ms = int(
        gpt_logs.average_latency_ms + (latency_ms - gpt_logs.average_latency_ms) / gpt_logs.success_count
    )
    if model:
        gpt_logs.current_model = model
    logger.info(f"✅ GPT success by {user_id} – {tokens_used} tokens, {latency_ms}ms latency")


def log_gpt_error(error_type: str = "unknown", user_id: Optional[int] = None) -> None:
    now = datetime.now(timezone.utc)
    gpt_logs.last_error_type = error_type
    gpt_logs.last_user = user_id
    gpt_logs.error_count += 1
    gpt_logs.error_events.appendleft(
        {
            "timestamp": now,
            "user_id": user_id,
            "error_type": error_type,
        }
    )
    logger.error(f"❌ GPT error [{error_type}] by {user_id}")


def log_gpt_fallback(reason: str, chat_id: Optional[int] = None) -> None:
    gpt_logs.fallback_count += 1
    logger.warning(f"⚠️ Using fallback question for chat {chat_id}: {reason}")


logger = logging.getLogger("bot")


def log_with_chat(message: str, chat_id: int = None, level: str = "info") -> None:
    """Logging helper that prefixes the chat id."""
    if chat_id:
        message = f"[Chat:{chat_id}] {message}"

    if level == "debug":
        logger.debug(message)
    elif level == "warning":
        logger.warning(message)
    elif level == "error":
        logger.error(message)
    elif level == "critical":
        logger.critical(message)
    else:
        logger.info(message)
