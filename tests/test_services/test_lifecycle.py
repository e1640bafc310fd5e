"""
Tests unitaires du cycle de vie des paiements d'abonnement.

Module pur : des SimpleNamespace suffisent, aucune base n'est nécessaire.
"""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from app.core.exceptions import ValidationError
from app.models.enums import SubscriptionPaymentStatus as Status
from app.services.billing.lifecycle import (
    Standing,
    apply_transition,
    can_transition,
    is_past_grace,
    is_suspension_candidate,
    periods_overlap,
    tenant_standing,
)

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


def payment(status, period_end):
    return SimpleNamespace(status=status, period_end=period_end)


def tenant(active=True, suspended=False):
    return SimpleNamespace(active=active, suspended=suspended)


class TestTransitions:

    @pytest.mark.parametrize("target", [Status.PAID, Status.REJECTED, Status.EXPIRED])
    def test_pending_can_move_anywhere(self, target):
        assert can_transition(Status.PENDING, target)

    def test_paid_cannot_go_back_to_pending(self):
        assert not can_transition(Status.PAID, Status.PENDING)
        assert can_transition(Status.PAID, Status.EXPIRED)

    def test_expired_is_terminal(self):
        assert not can_transition(Status.EXPIRED, Status.PAID)
        assert can_transition(Status.EXPIRED, Status.EXPIRED)

    def test_apply_transition_changes_status(self):
        p = payment(Status.PENDING, NOW)
        assert apply_transition(p, Status.PAID) is True
        assert p.status == Status.PAID

    def test_apply_same_status_is_a_no_op(self):
        p = payment(Status.PAID, NOW)
        assert apply_transition(p, Status.PAID) is False

    def test_forbidden_transition_raises(self):
        p = payment(Status.REJECTED, NOW)
        with pytest.raises(ValidationError) as exc:
            apply_transition(p, Status.PAID)
        assert exc.value.codigo == "TRANSICION_INVALIDA"
        assert p.status == Status.REJECTED


class TestGrace:

    def test_no_expired_payment_is_not_a_candidate(self):
        payments = [payment(Status.PENDING, NOW - timedelta(days=30))]
        assert not is_suspension_candidate(payments, NOW)

    def test_current_paid_payment_cancels_candidacy(self):
        payments = [
            payment(Status.EXPIRED, NOW - timedelta(days=30)),
            payment(Status.PAID, NOW + timedelta(days=1)),
        ]
        assert not is_suspension_candidate(payments, NOW)

    def test_paid_payment_ending_exactly_now_still_counts(self):
        payments = [
            payment(Status.EXPIRED, NOW - timedelta(days=30)),
            payment(Status.PAID, NOW),
        ]
        assert not is_suspension_candidate(payments, NOW)

    def test_grace_uses_latest_expired_end(self):
        payments = [
            payment(Status.EXPIRED, NOW - timedelta(days=40)),
            payment(Status.EXPIRED, NOW - timedelta(days=3)),
        ]
        assert is_suspension_candidate(payments, NOW)
        assert not is_past_grace(payments, NOW, timedelta(days=7))

    def test_exactly_at_grace_limit_is_not_past(self):
        payments = [payment(Status.EXPIRED, NOW - timedelta(days=7))]
        assert not is_past_grace(payments, NOW, timedelta(days=7))
        assert is_past_grace(payments, NOW + timedelta(seconds=1), timedelta(days=7))

    def test_naive_period_end_is_treated_as_utc(self):
        naive_end = (NOW - timedelta(days=10)).replace(tzinfo=None)
        assert is_past_grace([payment(Status.EXPIRED, naive_end)], NOW)


class TestStanding:

    def test_inactive_wins_over_everything(self):
        assert tenant_standing(tenant(active=False, suspended=True), [], NOW) == Standing.INACTIVE

    def test_suspended(self):
        assert tenant_standing(tenant(suspended=True), [], NOW) == Standing.SUSPENDED

    def test_good(self):
        payments = [payment(Status.PAID, NOW + timedelta(days=10))]
        assert tenant_standing(tenant(), payments, NOW) == Standing.GOOD

    def test_grace(self):
        payments = [payment(Status.EXPIRED, NOW - timedelta(days=2))]
        assert tenant_standing(tenant(), payments, NOW) == Standing.GRACE

    def test_delinquent(self):
        payments = [payment(Status.EXPIRED, NOW - timedelta(days=20))]
        assert tenant_standing(tenant(), payments, NOW) == Standing.DELINQUENT

    def test_pending_without_history(self):
        assert tenant_standing(tenant(), [], NOW) == Standing.PENDING


class TestPeriodsOverlap:

    def test_overlapping_periods(self):
        assert periods_overlap(
            NOW, NOW + timedelta(days=30),
            NOW + timedelta(days=10), NOW + timedelta(days=40),
        )

    def test_contained_period(self):
        assert periods_overlap(
            NOW, NOW + timedelta(days=30),
            NOW + timedelta(days=5), NOW + timedelta(days=6),
        )

    def test_adjacent_periods_do_not_overlap(self):
        assert not periods_overlap(
            NOW, NOW + timedelta(days=30),
            NOW + timedelta(days=30), NOW + timedelta(days=60),
        )
