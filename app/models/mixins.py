"""
Mixins réutilisables pour les modèles SQLAlchemy.

- TimestampMixin : created_at / updated_at
- TenantOwnedMixin : clé étrangère tenant_id obligatoire (isolation multi-tenant)
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from app.core.timeutils import utcnow


class TimestampMixin:
    """
    Mixin ajoutant les colonnes created_at et updated_at.

    Usage:
        class MyModel(TimestampMixin, Base):
            __tablename__ = "my_table"
            id: Mapped[int] = mapped_column(primary_key=True)
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        doc="Date et heure de création",
        info={"description": "Timestamp de création", "auto_generated": True}
    )

    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        default=None,
        onupdate=utcnow,
        doc="Date et heure de dernière modification",
        info={"description": "Timestamp de mise à jour", "auto_generated": True}
    )


class TenantOwnedMixin:
    """
    Mixin des entités appartenant à un tenant.

    Toute lecture/écriture de ces entités passe par
    app.services.tenant_scope.TenantScopedRepository.
    """

    @declared_attr
    def tenant_id(cls) -> Mapped[int]:
        return mapped_column(
            ForeignKey("tenants.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
            doc="ID du tenant propriétaire",
            info={"description": "Isolation multi-tenant"}
        )
