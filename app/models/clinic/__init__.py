"""Données appartenant à un négocio."""
from app.models.clinic.client import Client
from app.models.clinic.appointment import Appointment
from app.models.clinic.prescription import Prescription
from app.models.clinic.document import Document
from app.models.clinic.client_payment import ClientPayment

__all__ = ["Client", "Appointment", "Prescription", "Document", "ClientPayment"]
