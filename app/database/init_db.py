"""
Initialisation de la base de données Clinica SaaS.
Crée les tables et, sur demande, un compte SUPERADMIN.

Usage:
    python -m app.database.init_db
    python -m app.database.init_db --seed-superadmin admin@plataforma.mx 'MotDePasse'
"""

import argparse
import logging
import sys
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.logging import setup_logging
from app.core.security.hashing import hash_password
from app.database.base import Base, get_table_names
from app.database.session import Database
from app.models import User, UserRole

logger = logging.getLogger(__name__)


# =============================================================================
# 1. CRÉATION DES TABLES
# =============================================================================

def create_all_tables(database: Database) -> None:
    """Crée toutes les tables manquantes (les existantes sont conservées)."""
    logger.info("📦 Création des tables...")
    Base.metadata.create_all(bind=database.engine)
    logger.info(f"✅ {len(get_table_names())} tables : {', '.join(sorted(get_table_names()))}")


# =============================================================================
# 2. SUPERADMIN
# =============================================================================

def seed_superadmin(db: Session, email: str, password: str, first_name: str = "Super") -> Optional[User]:
    """
    Crée un SUPERADMIN (sans négocio) s'il n'existe pas déjà.

    Returns:
        L'utilisateur créé, ou None si l'email existe déjà
    """
    email = email.strip().lower()
    existing = db.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if existing:
        logger.info(f"ℹ️ {email} existe déjà ({existing.role.value}), rien à faire")
        return None

    user = User(
        email=email,
        password_hash=hash_password(password),
        first_name=first_name,
        last_name="Admin",
        role=UserRole.SUPERADMIN,
        tenant_id=None,
        active=True,
    )
    db.add(user)
    db.flush()
    logger.info(f"✅ SUPERADMIN créé : {email}")
    return user


# =============================================================================
# 3. POINT D'ENTRÉE
# =============================================================================

def init_db(database: Database, superadmin: Optional[tuple] = None) -> None:
    create_all_tables(database)
    if superadmin:
        with database.session() as db:
            seed_superadmin(db, *superadmin)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Initialise la base de données")
    parser.add_argument(
        "--seed-superadmin",
        nargs=2,
        metavar=("EMAIL", "PASSWORD"),
        help="Crée un compte SUPERADMIN",
    )
    args = parser.parse_args(argv)

    setup_logging()
    database = Database.from_settings(settings)
    if not database.check_connection():
        return 1

    try:
        init_db(database, superadmin=tuple(args.seed_superadmin) if args.seed_superadmin else None)
    finally:
        database.dispose()
    logger.info("🎉 Initialisation terminée")
    return 0


if __name__ == "__main__":
    sys.exit(main())
