from datetime import datetime, timezone

import discord
from discord import app_commands
from discord.ext import commands

import config
from utils.logger import get_gpt_status_logs
from version import __version__, CODENAME

BOOT_TIME = datetime.now(timezone.utc)

# ------------------ SLASH COMMAND ------------------ #

@app_commands.command(name="gptstatus", description="Estado del servicio de generación de preguntas.")
async def gptstatus(interaction: discord.Interaction):
    embed = get_gptstatus_embed()
    await interaction.response.send_message(embed=embed, ephemeral=True)

@app_commands.command(name="version", description="Show bot version")
async def version_cmd(interaction: discord.Interaction):
    await interaction.response.send_message(
        f"Oposiciones quiz bot v{__version__} — {CODENAME}", ephemeral=True
    )

@app_commands.command(name="health", description="Estado del bot y de las sesiones activas")
async def health_cmd(interaction: discord.Interaction):
    embed = build_health_embed(interaction.client)
    await interaction.response.send_message(embed=embed, ephemeral=True)

# ------------------ SETUP FUNCTION ------------------ #

async def setup(bot: commands.Bot):
    bot.tree.add_command(gptstatus)
    bot.tree.add_command(version_cmd)
    bot.tree.add_command(health_cmd)

# ------------------ HELPER FUNCTIONS ------------------ #

def format_timedelta(ts: datetime) -> str:
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    delta = datetime.now(timezone.utc) - ts
    minutes = int(delta.total_seconds() // 60)
    return f"{minutes} min ago" if minutes < 60 else f"{int(delta.total_seconds() // 3600)} hr ago"

def get_gptstatus_embed() -> discord.Embed:
    logs = get_gpt_status_logs()

    last_success = logs.last_success_time
    embed = discord.Embed(
        title="🧠 GPT API Status",
        color=discord.Color.teal()
    )
    embed.add_field(name="🔹 Provider", value=f"`{config.LLM_PROVIDER}`", inline=True)
    embed.add_field(name="🔹 Current model", value=f"`{logs.current_model}`", inline=True)
    embed.add_field(name="🔹 Last successful reply", value=format_timedelta(last_success) if last_success else "-", inline=True)
    embed.add_field(name="🔹 Last error", value=logs.last_error_type or "None", inline=False)
    embed.add_field(name="🔹 Last chat", value=str(logs.last_user) if logs.last_user else "-", inline=True)
    embed.add_field(name="🔹 Recent errors", value=_recent_errors(logs.error_events), inline=False)
    embed.add_field(name="🔹 Tokens used", value=f"{logs.total_tokens_today:,}", inline=True)
    embed.add_field(name="🔹 Logged calls", value=f"✅ {logs.success_count} / ❌ {logs.error_count}", inline=True)
    embed.add_field(name="🔹 Fallback questions served", value=str(logs.fallback_count), inline=True)
    embed.add_field(name="🔹 Latency (avg)", value=f"{logs.average_latency_ms}ms", inline=True)
    embed.add_field(name="🔹 Uptime", value=_format_uptime(BOOT_TIME), inline=True)
    embed.set_footer(text=f"📦 GPT Status • v{__version__} — {CODENAME}")
    return embed

def _recent_errors(events, limit: int = 3) -> str:
    lines = [
        f"`{e['error_type']}` • chat {e['user_id']} • {format_timedelta(e['timestamp'])}"
        for e in list(events)[:limit]
    ]
    return "\n".join(lines) or "None"

def build_health_embed(bot) -> discord.Embed:
    engine = getattr(bot, "quiz_engine", None)
    active = engine.store.active_count() if engine else 0
    users = len(engine.users.users) if engine else 0

    embed = discord.Embed(title="🩺 Bot Health", color=discord.Color.green())
    embed.add_field(name="Active quizzes", value=str(active), inline=True)
    embed.add_field(name="Registered users", value=str(users), inline=True)
    embed.add_field(name="Topics", value=str(len(engine.topics)) if engine else "?", inline=True)
    embed.add_field(name="Uptime", value=_format_uptime(BOOT_TIME), inline=True)
    return embed

def _format_uptime(start_dt: datetime) -> str:
    delta = datetime.now(timezone.utc) - start_dt
    days = delta.days
    hours = delta.seconds // 3600
    minutes = (delta.seconds % 3600) // 60
    parts = []
    if days:
        parts.append(f"{days}d")
    if hours or days:
        parts.append(f"{hours}h")
    parts.append(f"{minutes}m")
    return " ".join(parts)
