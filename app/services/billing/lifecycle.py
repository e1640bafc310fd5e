"""
Cycle de vie des paiements d'abonnement et état de règlement d'un tenant.

Module pur (aucun accès base) : utilisé par les services, le job de
révision et les tests.

Transitions :
    PENDING  → PAID | REJECTED | EXPIRED
    PAID     → EXPIRED   (mise à jour administrative uniquement)
    REJECTED → EXPIRED   (mise à jour administrative uniquement)
    X        → X         (no-op)

Suspension dérivée :
    candidat  = au moins un EXPIRED et aucun PAID couvrant `now`
    suspendre = candidat et now - max(period_end des EXPIRED) > délai de grâce
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Optional

from app.core.exceptions import ValidationError
from app.core.timeutils import ensure_utc
from app.models.enums import SubscriptionPaymentStatus as Status

DEFAULT_GRACE = timedelta(days=7)

TRANSITIONS: Dict[Status, FrozenSet[Status]] = {
    Status.PENDING: frozenset({Status.PAID, Status.REJECTED, Status.EXPIRED}),
    Status.PAID: frozenset({Status.EXPIRED}),
    Status.REJECTED: frozenset({Status.EXPIRED}),
    Status.EXPIRED: frozenset(),
}


class Standing(str, Enum):
    """État de règlement d'un tenant."""
    GOOD = "GOOD"                # Paiement PAID couvrant aujourd'hui
    PENDING = "PENDING"          # Aucun paiement courant, rien d'échu
    GRACE = "GRACE"              # Échu, dans le délai de grâce
    DELINQUENT = "DELINQUENT"    # Échu au-delà du délai : sera suspendu au prochain passage
    SUSPENDED = "SUSPENDED"
    INACTIVE = "INACTIVE"


# =============================================================================
# TRANSITIONS
# =============================================================================

def can_transition(current: Status, target: Status) -> bool:
    return current == target or target in TRANSITIONS[current]


def apply_transition(payment, target: Status) -> bool:
    """
    Applique une transition de statut à un paiement.

    Returns:
        True si le statut a changé, False pour un no-op

    Raises:
        ValidationError: Transition interdite (codigo TRANSICION_INVALIDA)
    """
    current = payment.status
    if current == target:
        return False
    if not can_transition(current, target):
        raise ValidationError(
            f"Transición no permitida: {current.value} → {target.value}",
            codigo="TRANSICION_INVALIDA",
        )
    payment.status = target
    return True


# =============================================================================
# RÈGLEMENT
# =============================================================================

def is_current(payment, now: datetime) -> bool:
    """Paiement PAID dont la période couvre encore `now`."""
    return payment.status == Status.PAID and ensure_utc(payment.period_end) >= now


def has_current_payment(payments: Iterable, now: datetime) -> bool:
    return any(is_current(p, now) for p in payments)


def latest_expired_end(payments: Iterable) -> Optional[datetime]:
    ends = [ensure_utc(p.period_end) for p in payments if p.status == Status.EXPIRED]
    return max(ends) if ends else None


def is_suspension_candidate(payments: Iterable, now: datetime) -> bool:
    payments = list(payments)
    return latest_expired_end(payments) is not None and not has_current_payment(payments, now)


def is_past_grace(payments: Iterable, now: datetime, grace: timedelta = DEFAULT_GRACE) -> bool:
    """Candidat dont le dernier EXPIRED est échu depuis plus que le délai de grâce."""
    payments = list(payments)
    if not is_suspension_candidate(payments, now):
        return False
    return now - latest_expired_end(payments) > grace


def tenant_standing(tenant, payments: Iterable, now: datetime, grace: timedelta = DEFAULT_GRACE) -> Standing:
    if not tenant.active:
        return Standing.INACTIVE
    if tenant.suspended:
        return Standing.SUSPENDED
    payments = list(payments)
    if has_current_payment(payments, now):
        return Standing.GOOD
    if is_past_grace(payments, now, grace):
        return Standing.DELINQUENT
    if is_suspension_candidate(payments, now):
        return Standing.GRACE
    return Standing.PENDING


def periods_overlap(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    return ensure_utc(start_a) < ensure_utc(end_b) and ensure_utc(start_b) < ensure_utc(end_a)
