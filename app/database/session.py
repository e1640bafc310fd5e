"""
Configuration de la session SQLAlchemy.

Fournit le handle `Database` (engine + factory de sessions), construit
explicitement puis injecté dans l'application et les jobs, et la
dependency FastAPI `get_db`.

Usage:
    database = Database.from_settings(settings)
    app = create_app(database)

    with database.session() as db:
        PaymentReviewJob(db).run()
"""
import logging
from contextlib import contextmanager
from typing import Generator, Iterator, Optional

from fastapi import Request
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool

from app.core.config import Settings

logger = logging.getLogger(__name__)


# === 1. ENGINE ===

def build_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Crée l'engine adapté au backend.

    PostgreSQL : pool de connexions et timezone UTC forcée.
    Autres backends (SQLite en dev) : options par défaut.
    """
    if database_url.startswith("postgresql"):
        return create_engine(
            database_url,
            poolclass=QueuePool,
            pool_size=5,              # Connexions permanentes
            max_overflow=10,          # Connexions temporaires si besoin
            pool_timeout=30,
            pool_recycle=1800,        # Évite les déconnexions après 30 min
            pool_pre_ping=True,
            echo=echo,
            connect_args={
                "application_name": "clinica-saas",
                "options": "-c timezone=UTC",
            },
        )

    if database_url.startswith("sqlite"):
        engine = create_engine(database_url, echo=echo, connect_args={"check_same_thread": False})
        enable_sqlite_foreign_keys(engine)
        return engine

    return create_engine(database_url, echo=echo)


def enable_sqlite_foreign_keys(engine: Engine) -> None:
    """SQLite n'applique les ON DELETE CASCADE / SET NULL qu'avec ce PRAGMA."""

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


# === 2. HANDLE ===

class Database:
    """
    Handle de la base : un engine et sa factory de sessions.

    Aucune instance globale : l'application et les jobs reçoivent le
    handle à la construction.
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self.session_factory = sessionmaker(
            bind=engine,
            autocommit=False,         # On contrôle explicitement les commits
            autoflush=False,
            expire_on_commit=False,   # Objets accessibles après commit
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(build_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO))

    def new_session(self) -> Session:
        """Nouvelle session (à fermer par l'appelant)."""
        return self.session_factory()

    @contextmanager
    def session(self, commit_on_exit: bool = True) -> Iterator[Session]:
        """
        Context manager pour utiliser une session hors FastAPI.

        Commit à la sortie si pas d'erreur, rollback sinon ;
        l'exception est propagée.
        """
        db = self.session_factory()
        try:
            yield db
            if commit_on_exit:
                db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def check_connection(self) -> bool:
        """Vérifie que la connexion fonctionne (health check)."""
        try:
            with self.engine.connect() as connection:
                connection.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"❌ Erreur de connexion à la base de données : {e}")
            return False

    def dispose(self) -> None:
        self.engine.dispose()


# === 3. DEPENDENCY FASTAPI ===

def get_db(request: Request) -> Generator[Session, None, None]:
    """
    Dependency FastAPI : session liée au handle de l'application.

    Commit si la requête se termine sans erreur, rollback sinon.

    Usage:
        @router.get("/clientes")
        def list_clients(db: Session = Depends(get_db)):
            ...
    """
    database: Optional[Database] = getattr(request.app.state, "database", None)
    if database is None:
        raise RuntimeError("Aucun handle Database attaché à l'application")

    db = database.new_session()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
