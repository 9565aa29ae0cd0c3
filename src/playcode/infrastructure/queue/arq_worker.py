"""
arq worker: follow-up reminders and approval housekeeping.

Run with ``arq playcode.infrastructure.queue.arq_worker.WorkerSettings``.
"""

from __future__ import annotations

import os
from typing import Any, Dict, Optional

from arq import cron
from arq.connections import RedisSettings

from playcode.application.bootstrap import build_container
from playcode.application.events import ONBOARDING, make_event
from playcode.application.ports.event_log_port import EventLogPort
from playcode.application.services.approval_service import ApprovalService
from playcode.application.services.onboarding_service import OnboardingService
from playcode.config.settings import create_settings
from playcode.core.di.container import Container


def _redis_settings() -> RedisSettings:
    return RedisSettings(
        host=os.getenv("PLAYCODE_REDIS_HOST", "127.0.0.1"),
        port=int(os.getenv("PLAYCODE_REDIS_PORT", "6379")),
        database=int(os.getenv("PLAYCODE_REDIS_DB", "0")),
        password=os.getenv("PLAYCODE_REDIS_PASSWORD") or None,
    )


def _container(ctx: Dict[str, Any]) -> Container:
    container: Optional[Container] = ctx.get("container")
    if container is None:
        container = build_container(create_settings())
        ctx["container"] = container
    return container


async def startup(ctx: Dict[str, Any]) -> None:
    _container(ctx)


async def shutdown(ctx: Dict[str, Any]) -> None:
    container: Optional[Container] = ctx.pop("container", None)
    if container is not None:
        container.resolve(EventLogPort).close()


async def process_reminders_job(ctx: Dict[str, Any]) -> Dict[str, Any]:
    """Send every follow-up reminder that is due."""
    container = _container(ctx)
    elog = container.resolve(EventLogPort)
    counts = await container.resolve(OnboardingService).process_scheduled_reminders()
    elog.append(make_event(category=ONBOARDING, type="reminders_processed", source="arq", payload=counts))
    return {"status": "ok", **counts}


async def purge_expired_approvals_job(ctx: Dict[str, Any]) -> Dict[str, Any]:
    removed = _container(ctx).resolve(ApprovalService).purge_expired()
    return {"status": "ok", "removed": removed}


async def schedule_reminders_job(ctx: Dict[str, Any], onboarding_id: str) -> Dict[str, Any]:
    reminders = _container(ctx).resolve(OnboardingService).schedule_follow_up_reminders(onboarding_id)
    return {"status": "ok", "onboarding_id": onboarding_id, "scheduled": len(reminders)}


def _env_switch(name: str, default: str) -> Optional[int]:
    raw = os.getenv(name, default).strip().lower()
    if raw in ("off", "disabled", "none", ""):
        return None
    return int(raw)


def _build_cron_jobs():
    """
    Hourly reminder sweep at PLAYCODE_REMINDER_CRON_MINUTE (default 0) and a
    daily approval purge at PLAYCODE_APPROVAL_PURGE_HOUR (default 3).

    Set either variable to "off" to disable that job.
    """
    jobs = []
    minute = _env_switch("PLAYCODE_REMINDER_CRON_MINUTE", "0")
    if minute is not None:
        run_at_startup = os.getenv("PLAYCODE_REMINDER_RUN_AT_STARTUP", "false").lower() in ("1", "true", "yes", "y")
        jobs.append(cron(process_reminders_job, minute=minute, run_at_startup=run_at_startup))

    purge_hour = _env_switch("PLAYCODE_APPROVAL_PURGE_HOUR", "3")
    if purge_hour is not None:
        jobs.append(cron(purge_expired_approvals_job, hour=purge_hour, minute=0))
    return jobs


class WorkerSettings:
    functions = [process_reminders_job, purge_expired_approvals_job, schedule_reminders_job]
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = _redis_settings()

    cron_jobs = _build_cron_jobs()
