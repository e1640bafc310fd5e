"""Tâches exécutées par le worker arq."""

import asyncio
import logging
from typing import Any

from app.database.session import Database
from app.jobs.payment_review import PaymentReviewJob

logger = logging.getLogger(__name__)


def _run_review(database: Database) -> dict:
    with database.session() as db:
        return PaymentReviewJob(db).run().to_dict()


async def review_payments(ctx: dict[str, Any]) -> dict:
    """
    Tâche planifiée : révision des paiements d'abonnement.

    Le job est synchrone (SQLAlchemy) : exécution dans un thread.
    Les erreurs sont propagées à arq (retry / journalisation).
    """
    database: Database = ctx["database"]
    summary = await asyncio.to_thread(_run_review, database)
    logger.info(
        f"✅ Révision planifiée : {summary['expired_payments']} expiré(s), "
        f"{summary['suspended_tenants']} suspendu(s)"
    )
    return summary
