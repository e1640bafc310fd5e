"""
Dépendances FastAPI d'authentification et d'autorisation.

Chaque route déclare l'opération qu'elle réalise ; la dépendance
`require(operation)` exécute l'AuthorizationGate une seule fois et
retourne un RequestContext immuable.

Sélection du tenant par un SUPERADMIN :
    - header  X-Tenant-Id: 12
    - ou query ?tenant_id=12

Usage:
    @router.get("/clientes")
    def list_clients(
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.CLIENT_READ)),
    ):
        ...
"""

from typing import Optional

from fastapi import Depends, Header, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app.core.auth.gate import AuthorizationGate
from app.core.auth.policy import Operation
from app.core.tenant_context import RequestContext
from app.database.session import get_db
from app.models.user.user import User

# Security scheme pour le token Bearer
bearer_scheme = HTTPBearer(auto_error=False)

TENANT_HEADER = "X-Tenant-Id"
TENANT_QUERY_PARAM = "tenant_id"


def _selected_tenant(request: Request, header_value: Optional[str]) -> Optional[str]:
    """
    Tenant demandé explicitement (header prioritaire sur la query).

    Valeur brute : seule la gate l'interprète, et uniquement pour un SUPERADMIN.
    """
    raw = header_value if header_value not in (None, "") else request.query_params.get(TENANT_QUERY_PARAM)
    return raw or None


def require(operation: Operation):
    """
    Factory de dépendance : authentifie, autorise et résout le tenant effectif.

    Raises (via les handlers d'erreurs):
        401: Token manquant/invalide, utilisateur inconnu
        403: Utilisateur bloqué, tenant indisponible, rôle non autorisé
        400/404: Sélection de tenant manquante ou inconnue (SUPERADMIN)
    """
    def dependency(
            request: Request,
            credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
            x_tenant_id: Optional[str] = Header(None, alias=TENANT_HEADER),
            db: Session = Depends(get_db),
    ) -> RequestContext:
        token = credentials.credentials if credentials else None
        gate = AuthorizationGate(db)
        return gate.resolve(token, operation, _selected_tenant(request, x_tenant_id))

    dependency.__name__ = f"require_{operation.name.lower()}"
    return dependency


def get_current_user(
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.PROFILE_READ)),
) -> User:
    """Utilisateur courant (déjà validé par la gate)."""
    return db.get(User, ctx.user_id)
