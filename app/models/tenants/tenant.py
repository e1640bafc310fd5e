# app/models/tenants/tenant.py
"""
Modèle Tenant - Un négocio (clinique, cabinet) client de la plateforme.

Deux axes indépendants gouvernent la disponibilité d'un tenant :
- `active` : interrupteur manuel (SUPERADMIN)
- `suspended` : dérivé des impayés (job de révision) ou forcé manuellement

Un tenant avec active=False ou suspended=True n'est pas opérationnel.
"""

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Boolean, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.base_class import Base
from app.models.mixins import TimestampMixin

if TYPE_CHECKING:
    from app.models.user.user import User
    from app.models.tenants.subscription_payment import SubscriptionPayment


class Tenant(Base, TimestampMixin):
    """
    Représente un négocio de la plateforme.

    Attributes:
        slug: Identifiant URL unique, dérivé du nom (clinica-sur, clinica-sur-1)
        active: Activation manuelle
        suspended: Suspension pour impayé
    """

    __tablename__ = "tenants"
    __table_args__ = {
        "comment": "Négocios (tenants) de la plateforme"
    }

    # ========================
    # Clé primaire
    # ========================
    id: Mapped[int] = mapped_column(primary_key=True)

    # ========================
    # Identification
    # ========================
    slug: Mapped[str] = mapped_column(
        String(120),
        unique=True,
        nullable=False,
        comment="Identifiant URL unique (ex: clinica-sur)"
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Nom commercial"
    )

    # ========================
    # Disponibilité
    # ========================
    active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        comment="Activation manuelle"
    )
    suspended: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        comment="Suspendu pour impayé"
    )
    suspension_reason: Mapped[Optional[str]] = mapped_column(
        Text,
        comment="Motif de la dernière suspension"
    )
    suspended_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        comment="Date de la dernière suspension"
    )

    # ========================
    # Contact
    # ========================
    email: Mapped[Optional[str]] = mapped_column(String(255), comment="Email de contact")
    phone: Mapped[Optional[str]] = mapped_column(String(30), comment="Téléphone")
    address: Mapped[Optional[str]] = mapped_column(Text, comment="Adresse postale")

    # ========================
    # Relations
    # ========================
    users: Mapped[List["User"]] = relationship(
        "User",
        back_populates="tenant",
        passive_deletes=True,
    )
    subscription_payments: Mapped[List["SubscriptionPayment"]] = relationship(
        "SubscriptionPayment",
        back_populates="tenant",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="SubscriptionPayment.period_end",
    )

    @property
    def is_operational(self) -> bool:
        """True si le tenant peut servir des requêtes ADMIN/CLIENT."""
        return self.active and not self.suspended

    def __repr__(self) -> str:
        return f"<Tenant(id={self.id}, slug='{self.slug}', active={self.active}, suspended={self.suspended})>"
