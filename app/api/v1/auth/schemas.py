"""
Schémas Pydantic pour le module d'authentification.

Contient les schémas pour :
- Connexion (email/mot de passe)
- Inscription d'un négocio (ou d'un SUPERADMIN) et d'un client
- Profil de l'utilisateur courant
- Changement de mot de passe
"""

from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from app.api.v1.schemas import ApiSchema
from app.models.enums import UserRole


# =============================================================================
# CONNEXION
# =============================================================================

class LoginRequest(ApiSchema):
    """Requête de connexion avec email/mot de passe."""
    email: EmailStr = Field(..., description="Email de connexion")
    password: str = Field(..., min_length=1, description="Mot de passe")


class PasswordChangeRequest(ApiSchema):
    """Requête de changement de mot de passe."""
    current_password: str = Field(..., alias="passwordActual", min_length=1)
    new_password: str = Field(..., alias="passwordNueva", min_length=6, description="Min 6 caractères")


# =============================================================================
# INSCRIPTION
# =============================================================================

class RegisterRequest(ApiSchema):
    """
    Inscription.

    Avec nombreNegocio : crée le négocio + son ADMIN (atomique).
    Sans : crée un SUPERADMIN sans tenant (si autorisé par la configuration).
    """
    email: EmailStr
    password: str = Field(..., min_length=6)
    first_name: str = Field(..., alias="nombre", min_length=2, max_length=100)
    last_name: Optional[str] = Field(None, alias="apellido", max_length=100)
    phone: Optional[str] = Field(None, alias="telefono", max_length=30)
    business_name: Optional[str] = Field(None, alias="nombreNegocio", max_length=255)

    @field_validator("business_name")
    @classmethod
    def blank_business_name_is_none(cls, v):
        if v is not None and not v.strip():
            return None
        if v is not None and len(v.strip()) < 2:
            raise ValueError("El nombre del negocio debe tener al menos 2 caracteres")
        return v.strip() if v else v


class RegisterClientRequest(ApiSchema):
    """Inscription d'un client (compte CLIENT + fiche client) dans un négocio existant."""
    email: EmailStr
    password: str = Field(..., min_length=6)
    first_name: str = Field(..., alias="nombre", min_length=2, max_length=100)
    last_name: Optional[str] = Field(None, alias="apellido", max_length=100)
    phone: Optional[str] = Field(None, alias="telefono", max_length=30)
    tenant_slug: str = Field(..., alias="negocioSlug", min_length=1)


# =============================================================================
# RÉPONSES
# =============================================================================

class TenantSummary(ApiSchema):
    """Résumé public d'un négocio."""
    id: int
    name: str = Field(..., alias="nombre")
    slug: str
    active: bool = Field(..., alias="activo")
    suspended: bool = Field(..., alias="suspendido")
    email: Optional[str] = None
    phone: Optional[str] = Field(None, alias="telefono")
    address: Optional[str] = Field(None, alias="direccion")


class UserResponse(ApiSchema):
    """Utilisateur exposé par l'API (jamais le hash)."""
    id: int
    email: str
    first_name: str = Field(..., alias="nombre")
    last_name: Optional[str] = Field(None, alias="apellido")
    phone: Optional[str] = Field(None, alias="telefono")
    role: UserRole = Field(..., alias="rol")
    tenant_id: Optional[int] = Field(None, alias="negocioId")
    active: bool = Field(..., alias="activo")
    last_login_at: Optional[datetime] = Field(None, alias="ultimoAcceso")
    tenant: Optional[TenantSummary] = Field(None, alias="negocio")


class LoginResponse(ApiSchema):
    token: str
    user: UserResponse


class VerifyResponse(ApiSchema):
    valid: bool = Field(True, alias="valido")
    user: UserResponse
