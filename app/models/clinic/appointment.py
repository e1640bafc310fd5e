"""
Modèle Appointment - Citas d'un client.
"""

from datetime import date
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Date, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.base_class import Base
from app.models.enums import AppointmentStatus
from app.models.mixins import TenantOwnedMixin, TimestampMixin

if TYPE_CHECKING:
    from app.models.clinic.client import Client
    from app.models.clinic.prescription import Prescription
    from app.models.user.user import User


class Appointment(TenantOwnedMixin, TimestampMixin, Base):
    """Rendez-vous (cita) : date + heure HH:MM + durée en minutes."""

    __tablename__ = "appointments"
    __table_args__ = {"comment": "Citas des clients"}

    id: Mapped[int] = mapped_column(primary_key=True)

    client_id: Mapped[int] = mapped_column(
        ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    practitioner_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="Profesional (ADMIN du négocio) qui assure la cita",
    )

    scheduled_date: Mapped[date] = mapped_column(Date, nullable=False, index=True, comment="Fecha")
    scheduled_time: Mapped[str] = mapped_column(String(5), nullable=False, comment="Hora HH:MM")
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=60)
    reason: Mapped[str] = mapped_column(String(255), nullable=False, comment="Motivo")
    status: Mapped[AppointmentStatus] = mapped_column(
        Enum(AppointmentStatus, name="appointment_status_enum", create_constraint=True),
        nullable=False,
        default=AppointmentStatus.PENDING,
    )
    notes: Mapped[Optional[str]] = mapped_column(Text)

    client: Mapped["Client"] = relationship("Client", back_populates="appointments")
    practitioner: Mapped[Optional["User"]] = relationship("User", foreign_keys=[practitioner_id])
    prescriptions: Mapped[List["Prescription"]] = relationship(
        "Prescription", back_populates="appointment", passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<Appointment(id={self.id}, client_id={self.client_id}, date={self.scheduled_date}, status={self.status})>"
