"""
Modèle Prescription - Recetas émises pour un client.
"""

from typing import TYPE_CHECKING, Optional

from sqlalchemy import ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.base_class import Base
from app.models.mixins import TenantOwnedMixin, TimestampMixin

if TYPE_CHECKING:
    from app.models.clinic.client import Client
    from app.models.clinic.appointment import Appointment


class Prescription(TenantOwnedMixin, TimestampMixin, Base):
    """Ordonnance, éventuellement rattachée à une cita du même client."""

    __tablename__ = "prescriptions"
    __table_args__ = {"comment": "Recetas"}

    id: Mapped[int] = mapped_column(primary_key=True)

    client_id: Mapped[int] = mapped_column(
        ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    appointment_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("appointments.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)

    client: Mapped["Client"] = relationship("Client", back_populates="prescriptions")
    appointment: Mapped[Optional["Appointment"]] = relationship("Appointment", back_populates="prescriptions")
