"""
Taxonomie des erreurs métier.

Chaque erreur porte son code HTTP et un `codigo` lisible par le frontend.
Les services lèvent ces exceptions ; les handlers enregistrés dans
app.main les convertissent en réponses JSON :

    {"detail": "...", "codigo": "...", ...extra}

Usage:
    from app.core.exceptions import NotFound

    if client is None:
        raise NotFound("Cliente no encontrado")
"""
from typing import Any, Dict, Optional


class AppError(Exception):
    """Erreur de base de l'application."""

    status_code: int = 500
    default_codigo: str = "ERROR"
    default_message: str = "Error"

    def __init__(
            self,
            message: Optional[str] = None,
            codigo: Optional[str] = None,
            **extra: Any,
    ):
        self.message = message or self.default_message
        self.codigo = codigo or self.default_codigo
        self.extra: Dict[str, Any] = extra
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Corps JSON de la réponse d'erreur."""
        return {"detail": self.message, "codigo": self.codigo, **self.extra}


# =============================================================================
# 400
# =============================================================================

class ValidationError(AppError):
    """Entrée invalide (champ, format, règle métier simple)."""
    status_code = 400
    default_codigo = "VALIDACION"
    default_message = "Datos inválidos"


class InvalidReference(AppError):
    """Référence vers une entité absente ou appartenant à un autre tenant."""
    status_code = 400
    default_codigo = "REFERENCIA_INVALIDA"
    default_message = "Referencia inválida"


class Conflict(AppError):
    """Violation d'unicité (email, slug, période de paiement...)."""
    status_code = 400
    default_codigo = "CONFLICTO"
    default_message = "El recurso ya existe"


# =============================================================================
# 401 / 403
# =============================================================================

class Unauthenticated(AppError):
    """Credential absent ou utilisateur introuvable."""
    status_code = 401
    default_codigo = "NO_AUTENTICADO"
    default_message = "Token de autenticación requerido"


class InvalidCredential(Unauthenticated):
    """Token mal formé, expiré ou mauvais identifiants de connexion."""
    default_codigo = "CREDENCIAL_INVALIDA"
    default_message = "Credenciales inválidas"


class UserBlocked(AppError):
    """Compte utilisateur désactivé."""
    status_code = 403
    default_codigo = "USUARIO_BLOQUEADO"
    default_message = "Usuario bloqueado. Contacte al administrador"


class TenantUnavailable(AppError):
    """Tenant suspendu ou inactif : porte les flags `suspendido` et `activo`."""
    status_code = 403
    default_codigo = "NEGOCIO_NO_DISPONIBLE"
    default_message = "El negocio no está disponible"

    def __init__(self, suspended: bool, active: bool, message: Optional[str] = None):
        if message is None:
            message = (
                "El negocio está suspendido por falta de pago"
                if suspended else "El negocio está inactivo"
            )
        super().__init__(
            message,
            codigo="NEGOCIO_SUSPENDIDO" if suspended else "NEGOCIO_INACTIVO",
            suspendido=suspended,
            activo=active,
        )
        self.suspended = suspended
        self.active = active


class Forbidden(AppError):
    """Rôle non autorisé pour l'opération."""
    status_code = 403
    default_codigo = "ACCESO_DENEGADO"
    default_message = "No tiene permisos para realizar esta acción"


# =============================================================================
# 404 / 500
# =============================================================================

class NotFound(AppError):
    """Entité absente ou appartenant à un autre tenant (volontairement ambigu)."""
    status_code = 404
    default_codigo = "NO_ENCONTRADO"
    default_message = "Recurso no encontrado"


class Internal(AppError):
    """Erreur inattendue : message générique côté client."""
    status_code = 500
    default_codigo = "ERROR_INTERNO"
    default_message = "Error interno del servidor"
