# oboerukun - LINE List & Reminder Bot
# Copyright (c) 2025-2026 Slash Daemon slashdaemon@protonmail.com
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, version 3 of the License.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program. If not, see <https://www.gnu.org/licenses/>.
#
# Commercial licensing: [slashdaemon@protonmail.com]

"""
oboerukun web server

FastAPI application receiving the LINE webhook and the scheduled-job
calls (due reminders, stale-data cleanup), plus two diagnostics endpoints.

Run with:
    python src/server.py
or:
    uvicorn server:create_app --factory --app-dir src
"""

import hmac
import json
import logging
import os
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

import asyncpg
import pytz
from dotenv import load_dotenv
from fastapi import FastAPI, Header, Request
from fastapi.responses import JSONResponse, PlainTextResponse

load_dotenv()

import analytics
from commands.router import CommandRouter
from config import BotConfig
from line_client import LineClient, text_message, verify_signature
from lists import ListManager
from maintenance import CleanupJob
from reminders import (
    ReminderManager,
    ReminderScheduler,
    format_date_time,
    relative_time,
    resolve_datetime,
)
from sessions import RoomSessionStore

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("oboerukun.server")

# Phrases resolved by /api/debug-reminder
DEBUG_PHRASES = [("今日", "9時"), ("明日", "9時"), ("明日", "18時")]


@dataclass
class Services:
    """Everything the endpoints need, built around one database pool."""

    config: BotConfig
    db_pool: Any
    line: LineClient
    lists: ListManager
    reminders: ReminderManager
    cleanup: CleanupJob
    sessions: RoomSessionStore
    router: CommandRouter
    scheduler: ReminderScheduler

    @classmethod
    def build(cls, config: BotConfig, db_pool, line_client: Optional[LineClient] = None) -> "Services":
        line = line_client or LineClient(config.channel_access_token, config.line_api_base)
        lists = ListManager(db_pool)
        reminders = ReminderManager(db_pool)
        cleanup = CleanupJob(db_pool, line, config)
        sessions = RoomSessionStore(config.session_ttl_seconds)
        return cls(
            config=config,
            db_pool=db_pool,
            line=line,
            lists=lists,
            reminders=reminders,
            cleanup=cleanup,
            sessions=sessions,
            router=CommandRouter(config, lists, reminders, cleanup, sessions),
            scheduler=ReminderScheduler(
                reminders, lists, line, config.civil_tz, config.due_batch_limit
            ),
        )


def room_id_of(event: dict) -> Optional[str]:
    """Room a webhook event belongs to: group, then room, then 1:1 user."""
    source = event.get("source") or {}
    return source.get("groupId") or source.get("roomId") or source.get("userId")


def _civil_iso(instant: datetime, config: BotConfig) -> str:
    if instant.tzinfo is None:
        instant = pytz.UTC.localize(instant)
    return instant.astimezone(config.civil_tz).isoformat()


def _utc_iso(instant: datetime) -> str:
    if instant.tzinfo is None:
        instant = pytz.UTC.localize(instant)
    return instant.astimezone(pytz.UTC).isoformat()


def _cron_authorized(authorization: Optional[str], config: BotConfig) -> bool:
    if not config.cron_secret or not authorization:
        return False
    return hmac.compare_digest(authorization, f"Bearer {config.cron_secret}")


def create_app(
    config: Optional[BotConfig] = None,
    db_pool=None,
    line_client: Optional[LineClient] = None,
) -> FastAPI:
    """
    Build the web application.

    Args:
        config: Bot configuration (defaults to BotConfig.from_env())
        db_pool: asyncpg pool; created from DATABASE_URL at startup when omitted
        line_client: LINE API client; created from the config when omitted
    """
    config = config or BotConfig.from_env()
    sweep_interval = int(os.getenv("REMINDER_SWEEP_INTERVAL_SECONDS", "0"))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_pool = app.state.services is None
        if owns_pool:
            if not config.database_url:
                raise RuntimeError("DATABASE_URL is not set")
            pool = await asyncpg.create_pool(config.database_url)
            app.state.services = Services.build(config, pool, line_client)
            logger.info("Database pool created")

        services: Services = app.state.services
        if sweep_interval > 0:
            services.scheduler.start(sweep_interval)

        yield

        services.scheduler.stop()
        if owns_pool:
            await services.line.close()
            await services.db_pool.close()
            app.state.services = None
        await analytics.shutdown()
        logger.info("Server shut down")

    app = FastAPI(title="oboerukun", lifespan=lifespan)
    app.state.services = Services.build(config, db_pool, line_client) if db_pool is not None else None

    def services() -> Services:
        return app.state.services

    # =========================================================================
    # LINE webhook
    # =========================================================================

    @app.post("/api/line")
    async def line_webhook(
        request: Request,
        x_line_signature: Optional[str] = Header(None),
    ):
        body = await request.body()
        if not verify_signature(config.channel_secret, body, x_line_signature):
            logger.warning("Webhook signature verification failed")
            return PlainTextResponse("Invalid signature", status_code=401)

        try:
            events = json.loads(body).get("events", [])
        except (ValueError, AttributeError):
            logger.warning("Webhook body is not a JSON object")
            return JSONResponse({"error": "Bad request"}, status_code=400)

        svc = services()
        svc.sessions.purge_expired()
        for event in events:
            room_id = room_id_of(event)
            if room_id is None:
                continue

            event_type = event.get("type")
            reply_text = ""
            if event_type == "message" and (event.get("message") or {}).get("type") == "text":
                logger.info(f"Message from room {room_id}")
                reply_text = await svc.router.handle_message(room_id, event["message"].get("text", ""))
            elif event_type == "postback":
                data = (event.get("postback") or {}).get("data", "")
                logger.info(f"Postback from room {room_id}: {data}")
                reply_text = await svc.router.handle_postback(room_id, data)

            if not reply_text or not event.get("replyToken"):
                continue
            await svc.line.reply(event["replyToken"], [text_message(reply_text)])

        return {"message": "ok"}

    # =========================================================================
    # Scheduled jobs
    # =========================================================================

    @app.get("/api/cron")
    async def cron(authorization: Optional[str] = Header(None)):
        if not _cron_authorized(authorization, config):
            return JSONResponse({"error": "Unauthorized"}, status_code=401)

        now = datetime.now(pytz.UTC)
        try:
            stats = await services().scheduler.run_due_sweep(now)
        except Exception as e:
            logger.error(f"Cron error: {e}", exc_info=True)
            return JSONResponse({"error": "Internal server error"}, status_code=500)

        return {
            "success": True,
            "processed": stats.processed,
            "delivered": stats.delivered,
            "failed": stats.failed,
            "timestamp": now.isoformat(),
        }

    @app.get("/api/cleanup-check")
    async def cleanup_check(authorization: Optional[str] = Header(None)):
        if not _cron_authorized(authorization, config):
            return JSONResponse({"error": "Unauthorized"}, status_code=401)

        now = datetime.now(pytz.UTC)
        try:
            stats = await services().cleanup.run_cleanup(now)
        except Exception as e:
            logger.error(f"Cleanup check error: {e}", exc_info=True)
            return JSONResponse({"error": "Internal server error"}, status_code=500)

        return {
            "success": True,
            "deleted": stats.deleted,
            "warned_rooms": stats.warned_rooms,
            "timestamp": now.isoformat(),
        }

    # =========================================================================
    # Diagnostics
    # =========================================================================

    @app.get("/api/debug-reminder")
    async def debug_reminder(room_id: str = "test", authorization: Optional[str] = Header(None)):
        if not _cron_authorized(authorization, config):
            return JSONResponse({"error": "Unauthorized"}, status_code=401)

        now = datetime.now(pytz.UTC)
        parsed = []
        for date_phrase, time_phrase in DEBUG_PHRASES:
            result = resolve_datetime(date_phrase, time_phrase, reference=now, civil_tz=config.civil_tz)
            parsed.append(
                {
                    "input": f"{date_phrase} {time_phrase}",
                    "success": result.success,
                    "date_utc": _utc_iso(result.instant),
                    "date_civil": _civil_iso(result.instant, config),
                    "formatted": format_date_time(result.instant, now, config.civil_tz),
                    "relative": relative_time(result.instant, now),
                    "error": result.error_message,
                }
            )

        try:
            reminders = await services().reminders.list_reminders(room_id)
        except Exception as e:
            logger.error(f"Debug reminder error: {e}", exc_info=True)
            return JSONResponse({"error": str(e)}, status_code=500)

        return {
            "currentTime": {"utc": now.isoformat(), "civil": _civil_iso(now, config)},
            "parsedTests": parsed,
            "existingReminders": [
                {
                    "id": r["id"],
                    "name": r["reminder_name"],
                    "message": r["message"],
                    "remind_at_utc": _utc_iso(r["remind_at"]),
                    "remind_at_civil": _civil_iso(r["remind_at"], config),
                    "status": r["status"],
                    "repeat_pattern": r["repeat_pattern"],
                }
                for r in reminders
            ],
        }

    @app.get("/api/test-cron")
    async def test_cron(authorization: Optional[str] = Header(None)):
        if not _cron_authorized(authorization, config):
            return JSONResponse({"error": "Unauthorized"}, status_code=401)

        now = datetime.now(pytz.UTC)
        try:
            due = await services().reminders.get_due_reminders(now, limit=config.due_batch_limit)
        except Exception as e:
            logger.error(f"Test cron error: {e}", exc_info=True)
            return JSONResponse({"error": str(e)}, status_code=500)

        return {
            "currentTime": {"utc": now.isoformat(), "civil": _civil_iso(now, config)},
            "dueReminders": [
                {
                    "id": r["id"],
                    "message": r["message"],
                    "remind_at_utc": _utc_iso(r["remind_at"]),
                    "remind_at_civil": _civil_iso(r["remind_at"], config),
                    "is_due": r["remind_at"] <= now,
                }
                for r in due
            ],
        }

    return app


def main():
    """Run the server with uvicorn."""
    import uvicorn

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    uvicorn.run(create_app(), host=host, port=port)


if __name__ == "__main__":
    main()
