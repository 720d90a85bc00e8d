import time
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

import config
from utils.logger import get_gpt_status_logs
from version import __version__

LIVENESS_TEXT = "🤖 Bot de Oposiciones funcionando correctamente"

# ---------------------------------------------------------------------------
# FastAPI app bootstrap
# ---------------------------------------------------------------------------

app = FastAPI()
app.state.session_store = None  # set by bot.py

startup_time = time.time()


class HealthStatus(BaseModel):
    service: str
    version: str
    uptime_seconds: int
    active_sessions: int
    gpt_success: int
    gpt_errors: int
    gpt_fallbacks: int
    timestamp: str


@app.get("/", response_class=PlainTextResponse)
async def liveness() -> str:
    return LIVENESS_TEXT


@app.get("/api/health", response_model=HealthStatus, include_in_schema=False)
async def health_check(request: Request) -> HealthStatus:
    store = request.app.state.session_store
    logs = get_gpt_status_logs()
    return HealthStatus(
        service=config.SERVICE_NAME,
        version=__version__,
        uptime_seconds=int(time.time() - startup_time),
        active_sessions=store.active_count() if store is not None else 0,
        gpt_success=logs.success_count,
        gpt_errors=logs.error_count,
        gpt_fallbacks=logs.fallback_count,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
