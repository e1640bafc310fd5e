"""
Modèle Document - Métadonnées des documents d'un client.

Le stockage et le rendu des fichiers sont hors de ce modèle (url externe).
"""

from typing import TYPE_CHECKING, Optional

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.base_class import Base
from app.models.mixins import TenantOwnedMixin, TimestampMixin

if TYPE_CHECKING:
    from app.models.clinic.client import Client


class Document(TenantOwnedMixin, TimestampMixin, Base):
    __tablename__ = "documents"
    __table_args__ = {"comment": "Documents des clients (métadonnées)"}

    id: Mapped[int] = mapped_column(primary_key=True)

    client_id: Mapped[int] = mapped_column(
        ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    doc_type: Mapped[str] = mapped_column(String(50), nullable=False, default="OTRO", comment="Tipo")
    url: Mapped[Optional[str]] = mapped_column(String(500))
    description: Mapped[Optional[str]] = mapped_column(Text)

    client: Mapped["Client"] = relationship("Client", back_populates="documents")
