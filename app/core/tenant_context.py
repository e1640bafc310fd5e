"""
Contexte de requête immuable.

Construit une seule fois par requête par l'AuthorizationGate puis passé
explicitement aux handlers et aux services ; jamais modifié ensuite.

Usage:
    @router.get("/clientes")
    def list_clients(ctx: RequestContext = Depends(require(Operation.CLIENT_READ))):
        ClientService(db, ctx.require_tenant()).list(...)
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from app.models.enums import UserRole

if TYPE_CHECKING:
    from app.core.auth.policy import Operation


@dataclass(frozen=True)
class Principal:
    """Identité résolue de l'appelant (relue en base, pas depuis le token)."""
    user_id: int
    email: str
    role: UserRole
    tenant_id: Optional[int] = None

    @property
    def is_superadmin(self) -> bool:
        return self.role == UserRole.SUPERADMIN


@dataclass(frozen=True)
class RequestContext:
    """
    Principal + opération autorisée + tenant effectif de la requête.

    tenant_id vaut None uniquement pour une vue plateforme
    (SUPERADMIN sans tenant sélectionné).
    """
    principal: Principal
    operation: "Operation"
    tenant_id: Optional[int] = None

    @property
    def user_id(self) -> int:
        return self.principal.user_id

    @property
    def role(self) -> UserRole:
        return self.principal.role

    @property
    def is_platform_view(self) -> bool:
        return self.tenant_id is None

    def require_tenant(self) -> int:
        """Tenant effectif ; erreur de programmation s'il est absent."""
        if self.tenant_id is None:
            raise RuntimeError("Opération tenant sans tenant effectif résolu")
        return self.tenant_id
