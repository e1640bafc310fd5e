"""
Modèle ClientPayment - Paiements d'un client à son négocio.

Indépendant des paiements d'abonnement plateforme.
"""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.base_class import Base
from app.models.enums import ClientPaymentStatus, PaymentMethod
from app.models.mixins import TenantOwnedMixin, TimestampMixin

if TYPE_CHECKING:
    from app.models.clinic.client import Client
    from app.models.clinic.appointment import Appointment


class ClientPayment(TenantOwnedMixin, TimestampMixin, Base):
    """
    Paiement d'un client.

    `paid_at` n'est renseigné qu'à la transition vers PAID.
    """

    __tablename__ = "client_payments"
    __table_args__ = {"comment": "Paiements des clients"}

    id: Mapped[int] = mapped_column(primary_key=True)

    client_id: Mapped[int] = mapped_column(
        ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    appointment_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("appointments.id", ondelete="SET NULL"),
        nullable=True,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="MXN")
    concept: Mapped[str] = mapped_column(String(255), nullable=False)
    method: Mapped[PaymentMethod] = mapped_column(
        Enum(PaymentMethod, name="payment_method_enum", create_constraint=True),
        nullable=False,
        default=PaymentMethod.CASH,
    )
    status: Mapped[ClientPaymentStatus] = mapped_column(
        Enum(ClientPaymentStatus, name="client_payment_status_enum", create_constraint=True),
        nullable=False,
        default=ClientPaymentStatus.PENDING,
    )
    reference: Mapped[Optional[str]] = mapped_column(String(120))
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    client: Mapped["Client"] = relationship("Client", back_populates="payments")
    appointment: Mapped[Optional["Appointment"]] = relationship("Appointment")
