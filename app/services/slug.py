"""
Génération de slugs uniques pour les négocios.

    "Clínica Sur" → "clinica-sur", puis "clinica-sur-1", "clinica-sur-2"...
"""

from slugify import slugify as _slugify
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.tenants.tenant import Tenant

MAX_SLUG_LENGTH = 100
DEFAULT_SLUG = "negocio"


def slugify(value: str) -> str:
    """Minuscules ASCII translittérées, séparateur '-' ; "negocio" si rien ne subsiste."""
    return _slugify(value, max_length=MAX_SLUG_LENGTH) or DEFAULT_SLUG


def unique_tenant_slug(db: Session, name: str) -> str:
    """
    Slug libre dérivé du nom, suffixe numérique en cas de collision.

    L'unicité finale reste garantie par la contrainte UNIQUE de tenants.slug.
    """
    base = slugify(name)
    taken = set(
        db.execute(
            select(Tenant.slug).where(
                (Tenant.slug == base) | (Tenant.slug.like(f"{base}-%"))
            )
        ).scalars()
    )
    if base not in taken:
        return base

    suffix = 1
    while f"{base}-{suffix}" in taken:
        suffix += 1
    return f"{base}-{suffix}"
