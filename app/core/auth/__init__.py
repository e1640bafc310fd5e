from app.core.auth.gate import AuthorizationGate, ensure_tenant_operational
from app.core.auth.policy import POLICY, Operation, Rule, Scope
from app.core.auth.user_auth import require, get_current_user

__all__ = [
    "AuthorizationGate",
    "ensure_tenant_operational",
    "POLICY",
    "Operation",
    "Rule",
    "Scope",
    "require",
    "get_current_user",
]
