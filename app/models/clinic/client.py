"""
Modèle Client - Patients/clients d'un négocio.
"""

from datetime import date
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Boolean, Date, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.base_class import Base
from app.models.mixins import TenantOwnedMixin, TimestampMixin

if TYPE_CHECKING:
    from app.models.clinic.appointment import Appointment
    from app.models.clinic.prescription import Prescription
    from app.models.clinic.document import Document
    from app.models.clinic.client_payment import ClientPayment


class Client(TenantOwnedMixin, TimestampMixin, Base):
    """
    Client d'un tenant.

    Un client peut être lié à un compte CLIENT (user_id) créé via
    /auth/registro-cliente ; sinon il est géré uniquement par l'ADMIN.
    """

    __tablename__ = "clients"
    __table_args__ = {"comment": "Clients (patients) des négocios"}

    id: Mapped[int] = mapped_column(primary_key=True)

    first_name: Mapped[str] = mapped_column(String(100), nullable=False, comment="Nom (nombre)")
    last_name: Mapped[Optional[str]] = mapped_column(String(100), comment="Apellido")
    email: Mapped[Optional[str]] = mapped_column(String(255), index=True)
    phone: Mapped[Optional[str]] = mapped_column(String(30))
    birth_date: Mapped[Optional[date]] = mapped_column(Date)
    gender: Mapped[Optional[str]] = mapped_column(String(20))
    address: Mapped[Optional[str]] = mapped_column(Text)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    user_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        unique=True,
        comment="Compte CLIENT associé"
    )

    appointments: Mapped[List["Appointment"]] = relationship(
        "Appointment", back_populates="client", cascade="all, delete-orphan", passive_deletes=True
    )
    prescriptions: Mapped[List["Prescription"]] = relationship(
        "Prescription", back_populates="client", cascade="all, delete-orphan", passive_deletes=True
    )
    documents: Mapped[List["Document"]] = relationship(
        "Document", back_populates="client", cascade="all, delete-orphan", passive_deletes=True
    )
    payments: Mapped[List["ClientPayment"]] = relationship(
        "ClientPayment", back_populates="client", cascade="all, delete-orphan", passive_deletes=True
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name or ''}".strip()

    def __repr__(self) -> str:
        return f"<Client(id={self.id}, tenant_id={self.tenant_id}, name='{self.full_name}')>"
