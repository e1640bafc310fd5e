"""Configuration du worker arq (tâches planifiées)."""

import logging
from typing import Any

from arq.connections import RedisSettings
from arq.cron import cron
from arq.worker import func

from app.core.config import settings
from app.worker.tasks import review_payments

logger = logging.getLogger(__name__)

QUEUE_NAME = "clinica-worker"


async def startup(ctx: dict[str, Any]) -> None:
    """Initialise le logging et le handle Database partagé par les tâches."""
    from app.core.logging import setup_logging
    from app.database.session import Database

    setup_logging()
    ctx["database"] = Database.from_settings(settings)
    logger.info("🚀 Worker démarré")


async def shutdown(ctx: dict[str, Any]) -> None:
    database = ctx.get("database")
    if database is not None:
        database.dispose()
    logger.info("🛑 Worker arrêté")


redis_settings = RedisSettings.from_dsn(settings.redis_url)


class WorkerSettings:
    """Paramètres du worker arq."""

    redis_settings = redis_settings

    queue_name = QUEUE_NAME
    max_jobs = 2
    job_timeout = 600
    keep_result = 3600

    max_tries = 3
    retry_jobs = True

    on_startup = startup
    on_shutdown = shutdown

    # Déclenchement manuel possible : enqueue_job("review_payments")
    functions = [
        func(review_payments, name="review_payments"),
    ]

    # Passage quotidien (UTC)
    cron_jobs = [
        cron(
            review_payments,
            name="review_payments_daily",
            hour={settings.PAYMENT_REVIEW_CRON_HOUR},
            minute={settings.PAYMENT_REVIEW_CRON_MINUTE},
            run_at_startup=False,
            unique=True,
        ),
    ]
