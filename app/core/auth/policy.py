"""
Table de politique centralisée {opération → rôles autorisés + portée}.

Toute route déclare l'opération qu'elle réalise ; la vérification
est faite une seule fois par l'AuthorizationGate. Une opération absente
de la table est refusée.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Mapping

from app.core.exceptions import Forbidden
from app.models.enums import UserRole


class Scope(str, Enum):
    """Portée des données touchées par une opération."""
    TENANT = "TENANT"                          # Tenant effectif obligatoire
    PLATFORM = "PLATFORM"                      # Données plateforme, pas de tenant
    TENANT_OR_PLATFORM = "TENANT_OR_PLATFORM"  # Vue tenant si sélectionné, sinon agrégat global
    SELF = "SELF"                              # Compte de l'appelant uniquement


class Operation(str, Enum):
    """Opérations protégées."""
    # Compte
    PROFILE_READ = "profile.read"
    PASSWORD_CHANGE = "profile.password"

    # Tableau de bord du négocio
    DASHBOARD_STATS = "dashboard.stats"

    # Données clinique
    CLIENT_READ = "client.read"
    CLIENT_WRITE = "client.write"
    APPOINTMENT_READ = "appointment.read"
    APPOINTMENT_WRITE = "appointment.write"
    PRESCRIPTION_READ = "prescription.read"
    PRESCRIPTION_WRITE = "prescription.write"
    DOCUMENT_READ = "document.read"
    DOCUMENT_WRITE = "document.write"
    CLIENT_PAYMENT_READ = "client_payment.read"
    CLIENT_PAYMENT_WRITE = "client_payment.write"

    # Profil du négocio
    TENANT_PROFILE_READ = "tenant_profile.read"
    TENANT_PROFILE_UPDATE = "tenant_profile.update"

    # Rapports du négocio
    REPORT_STATS = "report.stats"
    REPORT_MONTHLY = "report.monthly"
    REPORT_PRACTITIONERS = "report.practitioners"

    # Portail client
    PORTAL_TENANT_READ = "portal.tenant"
    PORTAL_APPOINTMENTS_READ = "portal.appointments"

    # Plateforme
    PLATFORM_STATS = "platform.stats"
    PLATFORM_ACTIVITY = "platform.activity"
    PLATFORM_TENANT_READ = "platform.tenant.read"
    PLATFORM_TENANT_MANAGE = "platform.tenant.manage"
    PLATFORM_TENANT_SUSPEND = "platform.tenant.suspend"
    PLATFORM_PAYMENT_READ = "platform.payment.read"
    PLATFORM_PAYMENT_MANAGE = "platform.payment.manage"
    PLATFORM_USER_READ = "platform.user.read"
    PLATFORM_USER_MANAGE = "platform.user.manage"
    PAYMENT_REVIEW_RUN = "platform.payment_review.run"


@dataclass(frozen=True)
class Rule:
    roles: FrozenSet[UserRole]
    scope: Scope

    def allows(self, role: UserRole) -> bool:
        return role in self.roles


# =============================================================================
# ENSEMBLES DE RÔLES
# =============================================================================

ANY_ROLE = frozenset({UserRole.SUPERADMIN, UserRole.ADMIN, UserRole.CLIENT})
STAFF = frozenset({UserRole.SUPERADMIN, UserRole.ADMIN})
SUPERADMIN_ONLY = frozenset({UserRole.SUPERADMIN})
CLIENT_ONLY = frozenset({UserRole.CLIENT})


# =============================================================================
# TABLE DE POLITIQUE
# =============================================================================

POLICY: Dict[Operation, Rule] = {
    Operation.PROFILE_READ: Rule(ANY_ROLE, Scope.SELF),
    Operation.PASSWORD_CHANGE: Rule(ANY_ROLE, Scope.SELF),

    Operation.DASHBOARD_STATS: Rule(STAFF, Scope.TENANT_OR_PLATFORM),

    Operation.CLIENT_READ: Rule(STAFF, Scope.TENANT),
    Operation.CLIENT_WRITE: Rule(STAFF, Scope.TENANT),
    Operation.APPOINTMENT_READ: Rule(STAFF, Scope.TENANT),
    Operation.APPOINTMENT_WRITE: Rule(STAFF, Scope.TENANT),
    Operation.PRESCRIPTION_READ: Rule(STAFF, Scope.TENANT),
    Operation.PRESCRIPTION_WRITE: Rule(STAFF, Scope.TENANT),
    Operation.DOCUMENT_READ: Rule(STAFF, Scope.TENANT),
    Operation.DOCUMENT_WRITE: Rule(STAFF, Scope.TENANT),
    Operation.CLIENT_PAYMENT_READ: Rule(STAFF, Scope.TENANT),
    Operation.CLIENT_PAYMENT_WRITE: Rule(STAFF, Scope.TENANT),

    Operation.TENANT_PROFILE_READ: Rule(STAFF, Scope.TENANT),
    Operation.TENANT_PROFILE_UPDATE: Rule(STAFF, Scope.TENANT),

    Operation.REPORT_STATS: Rule(STAFF, Scope.TENANT),
    Operation.REPORT_MONTHLY: Rule(STAFF, Scope.TENANT),
    Operation.REPORT_PRACTITIONERS: Rule(STAFF, Scope.TENANT),

    Operation.PORTAL_TENANT_READ: Rule(CLIENT_ONLY, Scope.TENANT),
    Operation.PORTAL_APPOINTMENTS_READ: Rule(CLIENT_ONLY, Scope.TENANT),

    Operation.PLATFORM_STATS: Rule(SUPERADMIN_ONLY, Scope.PLATFORM),
    Operation.PLATFORM_ACTIVITY: Rule(SUPERADMIN_ONLY, Scope.PLATFORM),
    Operation.PLATFORM_TENANT_READ: Rule(SUPERADMIN_ONLY, Scope.PLATFORM),
    Operation.PLATFORM_TENANT_MANAGE: Rule(SUPERADMIN_ONLY, Scope.PLATFORM),
    Operation.PLATFORM_TENANT_SUSPEND: Rule(SUPERADMIN_ONLY, Scope.PLATFORM),
    Operation.PLATFORM_PAYMENT_READ: Rule(SUPERADMIN_ONLY, Scope.PLATFORM),
    Operation.PLATFORM_PAYMENT_MANAGE: Rule(SUPERADMIN_ONLY, Scope.PLATFORM),
    Operation.PLATFORM_USER_READ: Rule(SUPERADMIN_ONLY, Scope.PLATFORM),
    Operation.PLATFORM_USER_MANAGE: Rule(SUPERADMIN_ONLY, Scope.PLATFORM),
    Operation.PAYMENT_REVIEW_RUN: Rule(SUPERADMIN_ONLY, Scope.PLATFORM),
}


def rule_for(operation: Operation, policy: Mapping[Operation, Rule] = POLICY) -> Rule:
    """
    Règle applicable à une opération.

    Raises:
        Forbidden: Opération inconnue (refus par défaut)
    """
    rule = policy.get(operation)
    if rule is None:
        raise Forbidden(f"Operación no permitida: {operation}")
    return rule


def check(role: UserRole, operation: Operation, policy: Mapping[Operation, Rule] = POLICY) -> Rule:
    """
    Vérifie qu'un rôle peut réaliser une opération.

    Returns:
        La règle (pour la résolution de portée)

    Raises:
        Forbidden: Rôle non autorisé
    """
    rule = rule_for(operation, policy)
    if not rule.allows(role):
        raise Forbidden()
    return rule
