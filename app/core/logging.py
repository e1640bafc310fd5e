"""
Configuration du logging applicatif.

Un seul point d'entrée, appelé au démarrage de l'API, du worker arq
et des scripts en ligne de commande.
"""
import logging

from app.core.config import settings

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Bibliothèques trop bavardes au niveau INFO
_QUIET_LOGGERS = ("sqlalchemy.engine", "uvicorn.access", "arq.jobs")


def setup_logging(level: str | None = None) -> None:
    """
    Configure le logger racine.

    Args:
        level: Niveau forcé (sinon settings.LOG_LEVEL)
    """
    log_level = (level or settings.LOG_LEVEL).upper()
    logging.basicConfig(level=log_level, format=LOG_FORMAT)
    logging.getLogger().setLevel(log_level)

    if log_level != "DEBUG":
        for name in _QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
