# app/models/tenants/subscription_payment.py
"""
Modèle SubscriptionPayment - Paiements d'abonnement d'un tenant à la plateforme.

Les lignes sont ajoutées au fil du temps et ne changent que de statut
(voir app.services.billing.lifecycle).
"""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.base_class import Base
from app.models.enums import SubscriptionPaymentStatus
from app.models.mixins import TimestampMixin

if TYPE_CHECKING:
    from app.models.tenants.tenant import Tenant


class SubscriptionPayment(Base, TimestampMixin):
    """
    Paiement d'une période d'abonnement.

    Un tenant est en règle tant qu'au moins un paiement PAID couvre
    l'instant présent (period_end >= now).

    Example:
        payment = SubscriptionPayment(
            tenant_id=1,
            amount=Decimal("499.00"),
            currency="MXN",
            period_start=datetime(2026, 1, 1, tzinfo=timezone.utc),
            period_end=datetime(2026, 1, 31, tzinfo=timezone.utc),
            status=SubscriptionPaymentStatus.PENDING,
        )
    """

    __tablename__ = "subscription_payments"
    __table_args__ = (
        Index("ix_subscription_payments_status_period_end", "status", "period_end"),
        {"comment": "Paiements d'abonnement des tenants"},
    )

    id: Mapped[int] = mapped_column(
        primary_key=True,
        doc="Identifiant unique du paiement"
    )

    tenant_id: Mapped[int] = mapped_column(
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        doc="ID du tenant",
        info={"description": "Référence vers le tenant facturé"}
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        doc="Montant",
        info={"example": "499.00"}
    )

    currency: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
        default="MXN",
        doc="Code devise ISO 4217"
    )

    period_start: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        doc="Début de la période couverte"
    )

    period_end: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        doc="Fin de la période couverte"
    )

    status: Mapped[SubscriptionPaymentStatus] = mapped_column(
        Enum(SubscriptionPaymentStatus, name="subscription_payment_status_enum", create_constraint=True),
        nullable=False,
        default=SubscriptionPaymentStatus.PENDING,
        doc="PENDING, PAID, REJECTED, EXPIRED"
    )

    method: Mapped[Optional[str]] = mapped_column(
        String(50),
        doc="Moyen de paiement (transferencia, tarjeta...)"
    )

    reference: Mapped[Optional[str]] = mapped_column(
        String(120),
        doc="Référence externe du paiement"
    )

    tenant: Mapped["Tenant"] = relationship(
        "Tenant",
        back_populates="subscription_payments",
    )

    def __repr__(self) -> str:
        return (
            f"<SubscriptionPayment(id={self.id}, tenant_id={self.tenant_id}, "
            f"status={self.status.value if self.status else None}, period_end={self.period_end})>"
        )
