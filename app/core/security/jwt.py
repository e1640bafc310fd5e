"""
Gestion des tokens JWT d'accès.

ES256 (clés asymétriques sur disque) par défaut ; un algorithme HS*
avec JWT_SECRET_KEY est accepté pour les environnements de test.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional, Dict, Any

from jose import jwt, JWTError

from app.core.config import settings


def _read_key(path: str, label: str) -> str:
    key_path = Path(path)
    if not key_path.exists():
        raise FileNotFoundError(
            f"Clé {label} JWT non trouvée: {key_path}. "
            "Générez les clés avec: python scripts/generate_keys.py"
        )
    return key_path.read_text()


def _signing_key() -> str:
    """Clé de signature : secret partagé (HS*) ou clé privée ES256."""
    if settings.uses_symmetric_jwt:
        if not settings.JWT_SECRET_KEY:
            raise RuntimeError("JWT_SECRET_KEY est requis pour un algorithme HS*")
        return settings.JWT_SECRET_KEY
    return _read_key(settings.JWT_PRIVATE_KEY_PATH, "privée")


def _verification_key() -> str:
    """Clé de vérification : secret partagé (HS*) ou clé publique ES256."""
    if settings.uses_symmetric_jwt:
        if not settings.JWT_SECRET_KEY:
            raise RuntimeError("JWT_SECRET_KEY est requis pour un algorithme HS*")
        return settings.JWT_SECRET_KEY
    return _read_key(settings.JWT_PUBLIC_KEY_PATH, "publique")


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Crée un token JWT d'accès signé.

    Args:
        data: Claims à encoder (sub, email, role, tenant_id)
        expires_delta: Durée de validité personnalisée

    Returns:
        Token JWT signé
    """
    to_encode = data.copy()
    now = datetime.now(timezone.utc)

    if expires_delta:
        expire = now + expires_delta
    else:
        expire = now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    # Claims standards JWT
    to_encode.update({
        "exp": expire,
        "iat": now,
        "iss": settings.JWT_ISSUER,
        "type": "access"
    })

    return jwt.encode(to_encode, _signing_key(), algorithm=settings.ALGORITHM)


def verify_token(token: str, token_type: str = "access") -> Dict[str, Any]:
    """
    Vérifie et décode un token JWT.

    Args:
        token: Token JWT à vérifier
        token_type: Type attendu ("access")

    Returns:
        Payload décodé

    Raises:
        JWTError: Si le token est invalide, expiré ou de mauvais type
    """
    try:
        payload = jwt.decode(
            token,
            _verification_key(),
            algorithms=[settings.ALGORITHM],
            options={
                "verify_signature": True,
                "verify_exp": True,
                "verify_iat": True,
                "require_exp": True,
                "require_iat": True
            }
        )
    except JWTError as e:
        raise JWTError(f"Token validation failed: {str(e)}")

    if payload.get("type") != token_type:
        raise JWTError(f"Token type mismatch. Expected {token_type}")

    if payload.get("iss") != settings.JWT_ISSUER:
        raise JWTError("Invalid token issuer")

    return payload
