"""
Classe de base SQLAlchemy
Fichier séparé pour éviter les imports circulaires
"""
from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase

# Noms de contraintes stables (PostgreSQL et SQLite)
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Classe dont héritent tous les modèles."""
    metadata = MetaData(naming_convention=NAMING_CONVENTION)
