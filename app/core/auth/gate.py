"""
Authorization gate : credential → principal → contexte de requête.

Flow (une seule fois par requête, avant tout accès aux données) :
    1. Décoder/vérifier le JWT           → InvalidCredential
    2. Charger l'utilisateur             → Unauthenticated / UserBlocked
    3. Charger son tenant s'il en a un   → TenantUnavailable (suspendu/inactif)
    4. Vérifier la politique             → Forbidden
    5. Résoudre le tenant effectif       → NotFound / ValidationError(NEGOCIO_REQUERIDO, NEGOCIO_INVALIDO)
"""

import logging
from typing import Mapping, Optional, Union

from jose import JWTError
from sqlalchemy.orm import Session

from app.core.auth.policy import POLICY, Operation, Rule, Scope, check
from app.core.exceptions import (
    InvalidCredential,
    NotFound,
    TenantUnavailable,
    Unauthenticated,
    UserBlocked,
    ValidationError,
)
from app.core.security.jwt import verify_token
from app.core.tenant_context import Principal, RequestContext
from app.models.tenants.tenant import Tenant
from app.models.user.user import User

logger = logging.getLogger(__name__)


def ensure_tenant_operational(tenant: Tenant) -> None:
    """
    Refuse un tenant suspendu ou désactivé.

    Raises:
        TenantUnavailable: avec les flags suspendido/activo
    """
    if tenant.suspended or not tenant.active:
        raise TenantUnavailable(suspended=tenant.suspended, active=tenant.active)


class AuthorizationGate:
    """
    Résout l'identité et le tenant effectif d'une requête.

    Usage:
        gate = AuthorizationGate(db)
        ctx = gate.resolve(token, Operation.CLIENT_READ, selected_tenant_id=None)
    """

    def __init__(self, db: Session, policy: Mapping[Operation, Rule] = POLICY):
        self.db = db
        self.policy = policy

    # -------------------------------------------------------------------------
    # Authentification
    # -------------------------------------------------------------------------

    def authenticate(self, token: Optional[str]) -> Principal:
        """Vérifie le token et relit l'utilisateur et son tenant en base."""
        if not token:
            raise Unauthenticated()

        try:
            payload = verify_token(token, token_type="access")
        except JWTError as e:
            logger.warning(f"⚠️ Token rejeté : {e}")
            raise InvalidCredential("Token inválido o expirado")

        try:
            user_id = int(payload.get("sub"))
        except (TypeError, ValueError):
            raise InvalidCredential("Token inválido: usuario ausente")

        user = self.db.get(User, user_id)
        if user is None:
            logger.warning(f"⚠️ Token pour un utilisateur inexistant (id={user_id})")
            raise Unauthenticated("Usuario no encontrado")

        if not user.active:
            logger.warning(f"⚠️ Accès refusé, utilisateur bloqué (id={user.id})")
            raise UserBlocked()

        if user.tenant_id is not None:
            tenant = self.db.get(Tenant, user.tenant_id)
            if tenant is None:
                raise Unauthenticated("Negocio no encontrado")
            ensure_tenant_operational(tenant)

        return Principal(
            user_id=user.id,
            email=user.email,
            role=user.role,
            tenant_id=user.tenant_id,
        )

    # -------------------------------------------------------------------------
    # Autorisation
    # -------------------------------------------------------------------------

    def authorize(self, principal: Principal, operation: Operation) -> Rule:
        rule = check(principal.role, operation, self.policy)
        return rule

    def resolve_tenant(
            self,
            principal: Principal,
            rule: Rule,
            selected_tenant_id: Union[int, str, None] = None,
    ) -> Optional[int]:
        """
        Tenant effectif selon la portée de l'opération.

        - Utilisateur rattaché : toujours son propre tenant (la sélection est ignorée,
          même malformée)
        - SUPERADMIN : tenant sélectionné (X-Tenant-Id / ?tenant_id=), qui doit exister

        Raises:
            ValidationError: Sélection absente (NEGOCIO_REQUERIDO) ou non entière (NEGOCIO_INVALIDO)
            NotFound: Négocio inconnu
        """
        if rule.scope == Scope.PLATFORM:
            return None

        if not principal.is_superadmin or rule.scope == Scope.SELF:
            return principal.tenant_id

        if selected_tenant_id is None:
            if rule.scope == Scope.TENANT_OR_PLATFORM:
                return None
            raise ValidationError(
                "Seleccione un negocio para esta operación",
                codigo="NEGOCIO_REQUERIDO",
            )

        try:
            selected_tenant_id = int(selected_tenant_id)
        except (TypeError, ValueError):
            raise ValidationError("X-Tenant-Id inválido", codigo="NEGOCIO_INVALIDO")

        if self.db.get(Tenant, selected_tenant_id) is None:
            raise NotFound("Negocio no encontrado")
        return selected_tenant_id

    def resolve(
            self,
            token: Optional[str],
            operation: Operation,
            selected_tenant_id: Union[int, str, None] = None,
    ) -> RequestContext:
        """Pipeline complet ; le contexte retourné est immuable."""
        principal = self.authenticate(token)
        rule = self.authorize(principal, operation)
        tenant_id = self.resolve_tenant(principal, rule, selected_tenant_id)
        return RequestContext(principal=principal, operation=operation, tenant_id=tenant_id)
