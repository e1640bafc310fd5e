"""
Export centralisé de tous les modèles SQLAlchemy.

    from app.models import Tenant, User, Client, SubscriptionPayment, ...

Structure des sous-dossiers :
    tenants/  - Négocios et paiements d'abonnement plateforme
    user/     - Comptes utilisateurs
    clinic/   - Données d'un négocio (clients, citas, recetas, documents, paiements)
"""

# === Enums ===
from app.models.enums import (
    UserRole,
    SubscriptionPaymentStatus,
    AppointmentStatus,
    ClientPaymentStatus,
    PaymentMethod,
)

# === Tenants ===
from app.models.tenants.tenant import Tenant
from app.models.tenants.subscription_payment import SubscriptionPayment

# === Utilisateurs ===
from app.models.user.user import User

# === Clinique ===
from app.models.clinic.client import Client
from app.models.clinic.appointment import Appointment
from app.models.clinic.prescription import Prescription
from app.models.clinic.document import Document
from app.models.clinic.client_payment import ClientPayment

__all__ = [
    # Enums
    "UserRole",
    "SubscriptionPaymentStatus",
    "AppointmentStatus",
    "ClientPaymentStatus",
    "PaymentMethod",
    # Modèles
    "Tenant",
    "SubscriptionPayment",
    "User",
    "Client",
    "Appointment",
    "Prescription",
    "Document",
    "ClientPayment",
]
