# app/core/security/__init__.py

from app.core.security.hashing import hash_password, verify_password
from app.core.security.jwt import create_access_token, verify_token

__all__ = [
    "hash_password", "verify_password",
    "create_access_token", "verify_token",
]
