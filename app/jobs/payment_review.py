"""
Job de révision des paiements d'abonnement.

Étapes (une seule transaction, instructions ensemblistes uniquement) :
    1. PENDING dont period_end < now → EXPIRED
    2. Tenants non suspendus, avec au moins un EXPIRED, sans PAID couvrant
       `now`, et dont le dernier EXPIRED est échu depuis plus que le délai
       de grâce → suspended = True
    3. Résumé (compteurs par étape, nombre et montant par statut)

Idempotent : un second passage sans nouvelles données ne modifie rien.
Le job ne lève jamais une suspension.

Usage:
    python -m app.jobs.payment_review
    python -m app.jobs.payment_review --now 2026-03-01T00:00:00+00:00
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import exists, func, select, update
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.timeutils import ensure_utc, utcnow
from app.models.enums import SubscriptionPaymentStatus as Status
from app.models.tenants.subscription_payment import SubscriptionPayment
from app.models.tenants.tenant import Tenant

logger = logging.getLogger(__name__)

AUTO_SUSPENSION_REASON = "Suspensión automática por falta de pago"


@dataclass
class ReviewSummary:
    """Résultat d'un passage du job."""
    ran_at: datetime
    expired_payments: int = 0
    suspended_tenants: int = 0
    suspended_tenant_ids: List[int] = field(default_factory=list)
    status_counts: Dict[str, int] = field(default_factory=dict)
    amount_by_status: Dict[str, Decimal] = field(default_factory=dict)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["ran_at"] = self.ran_at.isoformat()
        data["amount_by_status"] = {k: str(v) for k, v in self.amount_by_status.items()}
        return data


class PaymentReviewJob:
    """
    Révision des paiements et suspension des tenants en défaut.

    Usage:
        with database.session() as db:
            summary = PaymentReviewJob(db).run()
    """

    def __init__(self, db: Session, grace_days: Optional[int] = None):
        self.db = db
        days = settings.SUSPENSION_GRACE_DAYS if grace_days is None else grace_days
        self.grace = timedelta(days=days)

    def run(self, now: Optional[datetime] = None) -> ReviewSummary:
        """
        Exécute la révision complète puis commit.

        Toute erreur annule la transaction et est propagée.
        """
        now = ensure_utc(now) or utcnow()
        summary = ReviewSummary(ran_at=now)
        logger.info(f"🔍 Révision des paiements (now={now.isoformat()}, grâce={self.grace.days}j)")

        try:
            summary.expired_payments = self._expire_overdue(now)
            logger.info(f"📅 {summary.expired_payments} paiement(s) PENDING passé(s) en EXPIRED")

            summary.suspended_tenant_ids = self._suspend_delinquent(now)
            summary.suspended_tenants = len(summary.suspended_tenant_ids)
            logger.info(
                f"⛔ {summary.suspended_tenants} tenant(s) suspendu(s) "
                f"{summary.suspended_tenant_ids if summary.suspended_tenant_ids else ''}"
            )

            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception("❌ Échec de la révision des paiements, transaction annulée")
            raise

        # Les UPDATE ensemblistes ne synchronisent pas la session
        self.db.expire_all()

        totals = self.status_totals()
        summary.status_counts = {status: row["total"] for status, row in totals.items()}
        summary.amount_by_status = {status: row["amount"] for status, row in totals.items()}
        logger.info(f"📊 Paiements par statut : {summary.status_counts}")
        return summary

    # -------------------------------------------------------------------------
    # Étapes
    # -------------------------------------------------------------------------

    def _expire_overdue(self, now: datetime) -> int:
        result = self.db.execute(
            update(SubscriptionPayment)
            .where(
                SubscriptionPayment.status == Status.PENDING,
                SubscriptionPayment.period_end < now,
            )
            .values(status=Status.EXPIRED, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    def _delinquency_criteria(self, now: datetime) -> list:
        """Prédicat SQL « tenant à suspendre », corrélé sur tenants."""
        has_current_paid = exists().where(
            SubscriptionPayment.tenant_id == Tenant.id,
            SubscriptionPayment.status == Status.PAID,
            SubscriptionPayment.period_end >= now,
        )
        latest_expired_end = (
            select(func.max(SubscriptionPayment.period_end))
            .where(
                SubscriptionPayment.tenant_id == Tenant.id,
                SubscriptionPayment.status == Status.EXPIRED,
            )
            .scalar_subquery()
        )
        return [
            Tenant.suspended.is_(False),
            ~has_current_paid,
            latest_expired_end < now - self.grace,
        ]

    def _suspend_delinquent(self, now: datetime) -> List[int]:
        criteria = self._delinquency_criteria(now)
        candidate_ids = list(
            self.db.execute(select(Tenant.id).where(*criteria).order_by(Tenant.id)).scalars()
        )
        if not candidate_ids:
            return []

        result = self.db.execute(
            update(Tenant)
            .where(Tenant.id.in_(candidate_ids), *criteria)
            .values(
                suspended=True,
                suspended_at=now,
                suspension_reason=AUTO_SUSPENSION_REASON,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if (result.rowcount or 0) != len(candidate_ids):
            logger.warning(
                f"⚠️ {len(candidate_ids)} candidat(s) mais {result.rowcount} suspension(s) "
                "(passage concurrent probable)"
            )
        return candidate_ids

    def status_totals(self) -> Dict[str, Dict[str, Any]]:
        """Nombre de paiements et montant cumulé, par statut."""
        rows = self.db.execute(
            select(
                SubscriptionPayment.status,
                func.count(SubscriptionPayment.id),
                func.sum(SubscriptionPayment.amount),
            )
            .group_by(SubscriptionPayment.status)
        ).all()
        return {
            status.value: {"total": count, "amount": amount if amount is not None else Decimal("0")}
            for status, count, amount in rows
        }


# =============================================================================
# LIGNE DE COMMANDE
# =============================================================================

def main():
    """
    Point d'entrée pour exécution en ligne de commande (cron système).

    Usage:
        python -m app.jobs.payment_review
        python -m app.jobs.payment_review --grace-days 10
    """
    import argparse

    from app.core.logging import setup_logging
    from app.database.session import Database

    parser = argparse.ArgumentParser(description="Révision des paiements d'abonnement")
    parser.add_argument("--now", type=datetime.fromisoformat, default=None,
                        help="Instant de référence ISO 8601 (défaut: maintenant, UTC)")
    parser.add_argument("--grace-days", type=int, default=None,
                        help="Délai de grâce en jours (défaut: SUSPENSION_GRACE_DAYS)")
    args = parser.parse_args()

    setup_logging()
    database = Database.from_settings(settings)
    try:
        with database.session() as db:
            summary = PaymentReviewJob(db, grace_days=args.grace_days).run(now=args.now)
        logger.info(f"✅ Révision terminée : {summary.to_dict()}")
    finally:
        database.dispose()


if __name__ == "__main__":
    main()
