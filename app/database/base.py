"""
Base de données SQLAlchemy - Configuration centrale.
Importe tous les modèles pour que les métadonnées soient complètes
lors de create_all().
"""
from app.database.base_class import Base

# Import centralisé depuis app/models/__init__.py
from app.models import (  # noqa: F401
    Tenant,
    SubscriptionPayment,
    User,
    Client,
    Appointment,
    Prescription,
    Document,
    ClientPayment,
)

# === MÉTADONNÉES ===
metadata = Base.metadata


def get_table_names() -> list[str]:
    """Retourne la liste de toutes les tables connues."""
    return list(metadata.tables.keys())
