"""
Tests du job de révision des paiements (app.jobs.payment_review).

Scénarios :
- PENDING échu → EXPIRED ; PENDING futur inchangé
- Délai de grâce : 6 jours échus → pas de suspension, 8 jours → suspension
- Paiement PAID couvrant aujourd'hui → jamais suspendu
- Idempotence : un second passage ne change rien
- Le job ne lève jamais une suspension
- Échec en cours de route → transaction annulée
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import select

from app.jobs.payment_review import AUTO_SUSPENSION_REASON, PaymentReviewJob
from app.models import SubscriptionPayment, SubscriptionPaymentStatus as Status


class TestExpiration:

    def test_overdue_pending_becomes_expired(self, db_session, tenant, now, subscription_payment_factory):
        overdue = subscription_payment_factory(tenant, Status.PENDING, now - timedelta(days=1))
        future = subscription_payment_factory(tenant, Status.PENDING, now + timedelta(days=1))

        summary = PaymentReviewJob(db_session).run(now=now)

        assert summary.expired_payments == 1
        assert db_session.get(SubscriptionPayment, overdue.id).status == Status.EXPIRED
        assert db_session.get(SubscriptionPayment, future.id).status == Status.PENDING

    def test_paid_and_rejected_are_untouched(self, db_session, tenant, now, subscription_payment_factory):
        paid = subscription_payment_factory(tenant, Status.PAID, now - timedelta(days=40))
        rejected = subscription_payment_factory(tenant, Status.REJECTED, now - timedelta(days=40))

        summary = PaymentReviewJob(db_session).run(now=now)

        assert summary.expired_payments == 0
        assert db_session.get(SubscriptionPayment, paid.id).status == Status.PAID
        assert db_session.get(SubscriptionPayment, rejected.id).status == Status.REJECTED


class TestSuspension:

    def test_within_grace_is_not_suspended(self, db_session, tenant, now, subscription_payment_factory):
        subscription_payment_factory(tenant, Status.PENDING, now - timedelta(days=6))

        summary = PaymentReviewJob(db_session, grace_days=7).run(now=now)
        db_session.refresh(tenant)

        assert summary.expired_payments == 1
        assert summary.suspended_tenants == 0
        assert tenant.suspended is False

    def test_past_grace_is_suspended(self, db_session, tenant, now, subscription_payment_factory):
        subscription_payment_factory(tenant, Status.PENDING, now - timedelta(days=8))

        summary = PaymentReviewJob(db_session, grace_days=7).run(now=now)
        db_session.refresh(tenant)

        assert summary.suspended_tenant_ids == [tenant.id]
        assert tenant.suspended is True
        assert tenant.suspension_reason == AUTO_SUSPENSION_REASON
        assert tenant.suspended_at is not None

    def test_current_paid_payment_prevents_suspension(self, db_session, tenant, now, subscription_payment_factory):
        subscription_payment_factory(tenant, Status.EXPIRED, now - timedelta(days=40))
        subscription_payment_factory(tenant, Status.PAID, now + timedelta(days=5))

        summary = PaymentReviewJob(db_session).run(now=now)
        db_session.refresh(tenant)

        assert summary.suspended_tenants == 0
        assert tenant.suspended is False

    def test_tenant_without_payments_is_not_suspended(self, db_session, tenant, now):
        summary = PaymentReviewJob(db_session).run(now=now)
        assert summary.suspended_tenants == 0

    def test_only_delinquent_tenant_is_suspended(
            self, db_session, tenant, other_tenant, now, subscription_payment_factory,
    ):
        subscription_payment_factory(tenant, Status.EXPIRED, now - timedelta(days=30))
        subscription_payment_factory(other_tenant, Status.PAID, now + timedelta(days=15))

        summary = PaymentReviewJob(db_session).run(now=now)
        db_session.refresh(tenant)
        db_session.refresh(other_tenant)

        assert summary.suspended_tenant_ids == [tenant.id]
        assert tenant.suspended is True
        assert other_tenant.suspended is False

    def test_job_never_unsuspends(self, db_session, tenant, now, subscription_payment_factory):
        tenant.suspended = True
        subscription_payment_factory(tenant, Status.PAID, now + timedelta(days=20))

        PaymentReviewJob(db_session).run(now=now)
        db_session.refresh(tenant)

        assert tenant.suspended is True

    def test_already_suspended_tenant_is_not_counted(self, db_session, tenant, now, subscription_payment_factory):
        tenant.suspended = True
        subscription_payment_factory(tenant, Status.EXPIRED, now - timedelta(days=30))

        summary = PaymentReviewJob(db_session).run(now=now)
        assert summary.suspended_tenants == 0


class TestRunProperties:

    def test_second_run_is_a_no_op(self, db_session, tenant, now, subscription_payment_factory):
        subscription_payment_factory(tenant, Status.PENDING, now - timedelta(days=10))
        job = PaymentReviewJob(db_session)

        first = job.run(now=now)
        second = job.run(now=now)

        assert (first.expired_payments, first.suspended_tenants) == (1, 1)
        assert (second.expired_payments, second.suspended_tenants) == (0, 0)
        assert second.status_counts == first.status_counts

    def test_summary_counts_by_status(self, db_session, tenant, other_tenant, now, subscription_payment_factory):
        subscription_payment_factory(tenant, Status.PENDING, now - timedelta(days=2))
        subscription_payment_factory(tenant, Status.PENDING, now + timedelta(days=2))
        subscription_payment_factory(other_tenant, Status.PAID, now + timedelta(days=2))

        summary = PaymentReviewJob(db_session).run(now=now)

        assert summary.status_counts == {"EXPIRED": 1, "PENDING": 1, "PAID": 1}
        data = summary.to_dict()
        assert data["ran_at"] == now.isoformat()
        assert data["expired_payments"] == 1

    def test_summary_sums_amounts_by_status(
            self, db_session, tenant, other_tenant, now, subscription_payment_factory,
    ):
        subscription_payment_factory(tenant, Status.PAID, now + timedelta(days=2))
        subscription_payment_factory(other_tenant, Status.PAID, now + timedelta(days=2))
        subscription_payment_factory(other_tenant, Status.REJECTED, now - timedelta(days=40))

        summary = PaymentReviewJob(db_session).run(now=now)

        assert summary.amount_by_status == {"PAID": Decimal("998.00"), "REJECTED": Decimal("499.00")}
        assert Decimal(summary.to_dict()["amount_by_status"]["PAID"]) == Decimal("998")

    def test_status_totals_without_payments(self, db_session):
        assert PaymentReviewJob(db_session).status_totals() == {}

    def test_failure_rolls_back(self, db_session, tenant, now, subscription_payment_factory, monkeypatch):
        overdue = subscription_payment_factory(tenant, Status.PENDING, now - timedelta(days=10))
        overdue_id = overdue.id
        db_session.commit()

        def _boom(self, current):
            raise RuntimeError("panne simulée")

        monkeypatch.setattr(PaymentReviewJob, "_suspend_delinquent", _boom)

        with pytest.raises(RuntimeError):
            PaymentReviewJob(db_session).run(now=now)

        status = db_session.execute(
            select(SubscriptionPayment.status).where(SubscriptionPayment.id == overdue_id)
        ).scalar_one()
        assert status == Status.PENDING
