# helpers.py

import time
from typing import Optional

from openai import AsyncOpenAI

import config
from utils.logger import logger, log_gpt_success, log_gpt_error

# --- LLM client setup (Anthropic, OpenAI or Grok; all OpenAI-compatible) ---
_PROVIDERS = {
    "anthropic": ("https://api.anthropic.com/v1/", "claude-3-5-sonnet-latest"),
    "grok": ("https://api.x.ai/v1", "grok-beta"),
    "openai": (None, "gpt-4o-mini"),
}

_llm_provider = getattr(config, "LLM_PROVIDER", "anthropic").strip().lower()
if _llm_provider not in _PROVIDERS:
    logger.warning(f"⚠️ Unknown LLM_PROVIDER '{_llm_provider}', falling back to openai")
    _llm_provider = "openai"

_base_url, _default_model = _PROVIDERS[_llm_provider]
_api_key_name = config.llm_api_key_name()
_api_key = config.llm_api_key()
_timeout = getattr(config, "LLM_TIMEOUT_SECONDS", 30.0)

_api_key_missing = not _api_key
if _api_key_missing:
    logger.warning(f"⚠️ {_api_key_name} is missing. Set it in .env to generate questions.")
    llm_client = None
else:
    # No retries: a failed call goes straight to the fallback question
    llm_client = AsyncOpenAI(api_key=_api_key, base_url=_base_url, timeout=_timeout, max_retries=0)
    logger.info(f"✅ {_llm_provider} client initialized (model: {_default_model})")


def default_model() -> str:
    return getattr(config, "LLM_MODEL", None) or _default_model


async def ask_gpt(messages, user_id=None, model: Optional[str] = None, max_tokens: Optional[int] = None) -> str:
    start = time.perf_counter()

    try:
        if _api_key_missing or llm_client is None:
            raise RuntimeError(f"{_api_key_name} is missing. Set the key in .env and restart the bot.")

        if isinstance(messages, str):
            messages = [{"role": "user", "content": messages}]
        if not isinstance(messages, list) or not all(isinstance(m, dict) for m in messages):
            raise TypeError("messages must be a prompt string or a list of role/content dicts")

        resolved_model = model or default_model()
        response = await llm_client.chat.completions.create(
            model=resolved_model,
            max_tokens=max_tokens or getattr(config, "LLM_MAX_TOKENS", 3000),
            messages=messages,
        )
        latency = (time.perf_counter() - start) * 1000
        tokens = response.usage.total_tokens if response.usage else 0

        log_gpt_success(user_id=user_id, tokens_used=tokens, latency_ms=int(latency), model=resolved_model)
        return response.choices[0].message.content or ""

    except Exception as e:
        log_gpt_error(error_type=f"{type(e).__name__}: {str(e)}", user_id=user_id)
        raise
