"""
Enums partagés par les modèles et les schémas.

Les valeurs sont celles exposées par l'API.
"""

from enum import Enum


# =============================================================================
# UTILISATEURS
# =============================================================================

class UserRole(str, Enum):
    """Rôles applicatifs."""
    SUPERADMIN = "SUPERADMIN"  # Équipe plateforme, sans tenant
    ADMIN = "ADMIN"            # Administrateur d'un négocio
    CLIENT = "CLIENT"          # Patient/client disposant d'un compte


# =============================================================================
# FACTURATION PLATEFORME
# =============================================================================

class SubscriptionPaymentStatus(str, Enum):
    """Cycle de vie d'un paiement d'abonnement d'un tenant."""
    PENDING = "PENDING"    # En attente de confirmation externe
    PAID = "PAID"          # Payé (terminal)
    REJECTED = "REJECTED"  # Refusé (terminal)
    EXPIRED = "EXPIRED"    # Période échue sans paiement


# =============================================================================
# CLINIQUE (données d'un tenant)
# =============================================================================

class AppointmentStatus(str, Enum):
    """Statuts d'une cita."""
    PENDING = "PENDIENTE"
    CONFIRMED = "CONFIRMADA"
    REJECTED = "RECHAZADA"
    COMPLETED = "COMPLETADA"
    CANCELLED = "CANCELADA"


class ClientPaymentStatus(str, Enum):
    """Statuts d'un paiement de client."""
    PENDING = "PENDING"
    PAID = "PAID"
    REJECTED = "REJECTED"


class PaymentMethod(str, Enum):
    """Moyens de paiement."""
    CASH = "EFECTIVO"
    CARD = "TARJETA"
    TRANSFER = "TRANSFERENCIA"
    OTHER = "OTRO"
