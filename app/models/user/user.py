"""
Modèle User - Comptes de la plateforme.

Ce module définit la table `users` : SUPERADMIN (sans tenant),
ADMIN d'un négocio et CLIENT (patient disposant d'un accès).
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, CheckConstraint, DateTime, Enum, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.base_class import Base
from app.models.enums import UserRole
from app.models.mixins import TimestampMixin

if TYPE_CHECKING:
    from app.models.tenants.tenant import Tenant


class User(TimestampMixin, Base):
    """
    Représente un compte utilisateur.

    Attributes:
        id: Identifiant unique
        email: Email de connexion (unique sur toute la plateforme)
        password_hash: Hash bcrypt
        role: SUPERADMIN, ADMIN ou CLIENT
        tenant_id: Négocio de rattachement (NULL uniquement pour SUPERADMIN)
        active: Compte actif (False = bloqué)
    """

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            "role = 'SUPERADMIN' OR tenant_id IS NOT NULL",
            name="tenant_required_for_non_superadmin",
        ),
        {"comment": "Comptes utilisateurs"},
    )

    # === Colonnes ===

    id: Mapped[int] = mapped_column(
        primary_key=True,
        doc="Identifiant unique de l'utilisateur",
        info={"description": "Clé primaire auto-incrémentée"}
    )

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
        doc="Email de connexion",
        info={"description": "Unique sur toute la plateforme", "example": "admin@demo.com"}
    )

    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        doc="Hash bcrypt du mot de passe"
    )

    first_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        doc="Prénom / nom affiché"
    )

    last_name: Mapped[Optional[str]] = mapped_column(
        String(100),
        doc="Nom de famille"
    )

    phone: Mapped[Optional[str]] = mapped_column(String(30), doc="Téléphone")

    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="user_role_enum", create_constraint=True),
        nullable=False,
        default=UserRole.CLIENT,
        doc="Rôle applicatif"
    )

    tenant_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
        doc="ID du tenant (NULL pour SUPERADMIN)"
    )

    active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        doc="Compte actif"
    )

    last_login_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        doc="Dernière connexion réussie"
    )

    # === Relations ===

    tenant: Mapped[Optional["Tenant"]] = relationship(
        "Tenant",
        back_populates="users",
    )

    # === Propriétés ===

    @property
    def full_name(self) -> str:
        """Nom complet."""
        return f"{self.first_name} {self.last_name or ''}".strip()

    @property
    def is_superadmin(self) -> bool:
        return self.role == UserRole.SUPERADMIN

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role={self.role.value if self.role else None})>"
