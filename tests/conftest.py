"""
Fixtures pytest partagées pour les tests Clinica SaaS.

Ce module fournit :
- Une base SQLite en mémoire par test (rapide, isolée, clés étrangères actives)
- Une application construite autour de cette base (create_app + override de get_db)
- Des fixtures de données : négocios, comptes ADMIN/CLIENT/SUPERADMIN, clients,
  citas et paiements
- Des headers d'authentification prêts à l'emploi

IMPORTANT - Multi-tenant:
- `tenant` (slug "demo") et `other_tenant` (slug "otro") servent aux tests
  d'isolation : un ADMIN de l'un ne doit jamais voir les données de l'autre
- Le SUPERADMIN n'a pas de tenant ; il en sélectionne un via X-Tenant-Id
"""

import os

# La configuration est lue à l'import de app.core.config : à poser avant tout import applicatif
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ALGORITHM", "HS256")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-clinica")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from app.core.security.hashing import hash_password
from app.core.security.jwt import create_access_token
from app.database.base import Base
from app.database.session import Database, enable_sqlite_foreign_keys, get_db
from app.main import create_app
from app.models import (
    Appointment,
    AppointmentStatus,
    Client,
    ClientPayment,
    ClientPaymentStatus,
    PaymentMethod,
    SubscriptionPayment,
    SubscriptionPaymentStatus,
    Tenant,
    User,
    UserRole,
)

TEST_PASSWORD = "Password123"


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture(scope="function")
def engine():
    """
    Crée un engine SQLite en mémoire pour les tests.

    pysqlite gère mal les SAVEPOINT : on désactive sa gestion implicite
    des transactions et on émet BEGIN nous-mêmes.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,  # Mettre True pour debug SQL
    )

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    enable_sqlite_foreign_keys(engine)

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(engine) -> Generator[Session, None, None]:
    """
    Fournit une session isolée pour chaque test.

    Les commit() du code testé ne libèrent qu'un SAVEPOINT ; la
    transaction externe est annulée à la fin du test.
    """
    connection = engine.connect()
    transaction = connection.begin()

    session = Session(
        bind=connection,
        join_transaction_mode="create_savepoint",
        autoflush=False,
        expire_on_commit=False,
    )

    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


# =============================================================================
# APPLICATION FIXTURES
# =============================================================================

@pytest.fixture
def app(engine, db_session):
    """Application liée à la base de test ; toutes les requêtes partagent db_session."""
    application = create_app(Database(engine))

    def _override_get_db():
        yield db_session

    application.dependency_overrides[get_db] = _override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def client(app) -> TestClient:
    """Client HTTP sans authentification."""
    return TestClient(app)


def token_for(user: User) -> str:
    """JWT d'accès pour un utilisateur de test."""
    return create_access_token({
        "sub": str(user.id),
        "email": user.email,
        "role": user.role.value,
        "tenant_id": user.tenant_id,
    })


def auth_headers(user: User, tenant_id=None) -> dict:
    headers = {"Authorization": f"Bearer {token_for(user)}"}
    if tenant_id is not None:
        headers["X-Tenant-Id"] = str(tenant_id)
    return headers


# =============================================================================
# MODEL FIXTURES - Négocios
# =============================================================================

@pytest.fixture
def tenant(db_session: Session) -> Tenant:
    """Négocio principal des tests."""
    tenant = Tenant(
        name="Clínica Demo",
        slug="demo",
        email="contacto@demo.com",
        phone="5551234567",
        active=True,
        suspended=False,
    )
    db_session.add(tenant)
    db_session.flush()
    return tenant


@pytest.fixture
def other_tenant(db_session: Session) -> Tenant:
    """Second négocio, pour les tests d'isolation."""
    tenant = Tenant(
        name="Consultorio Otro",
        slug="otro",
        email="contacto@otro.com",
        active=True,
        suspended=False,
    )
    db_session.add(tenant)
    db_session.flush()
    return tenant


# =============================================================================
# MODEL FIXTURES - Utilisateurs
# =============================================================================

def make_user(db_session: Session, email: str, role: UserRole, tenant_id=None, first_name="Test") -> User:
    user = User(
        email=email,
        password_hash=hash_password(TEST_PASSWORD),
        first_name=first_name,
        last_name="Usuario",
        role=role,
        tenant_id=tenant_id,
        active=True,
    )
    db_session.add(user)
    db_session.flush()
    return user


@pytest.fixture
def admin_user(db_session: Session, tenant: Tenant) -> User:
    return make_user(db_session, "admin@demo.com", UserRole.ADMIN, tenant.id, first_name="Ana")


@pytest.fixture
def other_admin(db_session: Session, other_tenant: Tenant) -> User:
    return make_user(db_session, "admin@otro.com", UserRole.ADMIN, other_tenant.id, first_name="Luis")


@pytest.fixture
def client_user(db_session: Session, tenant: Tenant) -> User:
    """Compte CLIENT du négocio principal, avec sa fiche client."""
    user = make_user(db_session, "paciente@demo.com", UserRole.CLIENT, tenant.id, first_name="Pedro")
    db_session.add(Client(
        tenant_id=tenant.id,
        user_id=user.id,
        first_name="Pedro",
        last_name="Paciente",
        email=user.email,
    ))
    db_session.flush()
    return user


@pytest.fixture
def superadmin(db_session: Session) -> User:
    return make_user(db_session, "root@plataforma.com", UserRole.SUPERADMIN, None, first_name="Root")


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return auth_headers(admin_user)


@pytest.fixture
def other_admin_headers(other_admin: User) -> dict:
    return auth_headers(other_admin)


@pytest.fixture
def client_headers(client_user: User) -> dict:
    return auth_headers(client_user)


@pytest.fixture
def superadmin_headers(superadmin: User) -> dict:
    return auth_headers(superadmin)


# =============================================================================
# MODEL FIXTURES - Données clinique
# =============================================================================

@pytest.fixture
def client_record(db_session: Session, tenant: Tenant) -> Client:
    """Fiche client du négocio principal (sans compte)."""
    record = Client(
        tenant_id=tenant.id,
        first_name="María",
        last_name="López",
        email="maria@correo.com",
        phone="5559876543",
    )
    db_session.add(record)
    db_session.flush()
    return record


@pytest.fixture
def other_client_record(db_session: Session, other_tenant: Tenant) -> Client:
    """Fiche client de l'autre négocio."""
    record = Client(
        tenant_id=other_tenant.id,
        first_name="Jorge",
        last_name="Ramírez",
    )
    db_session.add(record)
    db_session.flush()
    return record


@pytest.fixture
def appointment(db_session: Session, tenant: Tenant, client_record: Client) -> Appointment:
    appointment = Appointment(
        tenant_id=tenant.id,
        client_id=client_record.id,
        scheduled_date=date.today() + timedelta(days=3),
        scheduled_time="10:30",
        duration_minutes=45,
        reason="Consulta general",
        status=AppointmentStatus.PENDING,
    )
    db_session.add(appointment)
    db_session.flush()
    return appointment


@pytest.fixture
def pending_client_payment(db_session: Session, tenant: Tenant, client_record: Client) -> ClientPayment:
    payment = ClientPayment(
        tenant_id=tenant.id,
        client_id=client_record.id,
        amount=Decimal("350.00"),
        currency="MXN",
        concept="Consulta",
        method=PaymentMethod.CASH,
        status=ClientPaymentStatus.PENDING,
    )
    db_session.add(payment)
    db_session.flush()
    return payment


# =============================================================================
# MODEL FIXTURES - Abonnements
# =============================================================================

def make_subscription_payment(
        db_session: Session,
        tenant: Tenant,
        status: SubscriptionPaymentStatus,
        period_end: datetime,
        days: int = 30,
) -> SubscriptionPayment:
    payment = SubscriptionPayment(
        tenant_id=tenant.id,
        amount=Decimal("499.00"),
        currency="MXN",
        period_start=period_end - timedelta(days=days),
        period_end=period_end,
        status=status,
    )
    db_session.add(payment)
    db_session.flush()
    return payment


@pytest.fixture
def now() -> datetime:
    """Instant de référence fixe pour les tests du cycle de facturation."""
    return datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def headers_for():
    """Fabrique de headers : headers_for(user, tenant_id=None)."""
    return auth_headers


@pytest.fixture
def subscription_payment_factory(db_session: Session):
    """Fabrique de paiements d'abonnement : factory(tenant, status, period_end, days=30)."""
    def _factory(tenant: Tenant, status: SubscriptionPaymentStatus, period_end: datetime, days: int = 30):
        return make_subscription_payment(db_session, tenant, status, period_end, days)
    return _factory


@pytest.fixture
def user_factory(db_session: Session):
    """Fabrique de comptes : factory(email, role, tenant_id=None)."""
    def _factory(email: str, role: UserRole, tenant_id=None, first_name="Test") -> User:
        return make_user(db_session, email, role, tenant_id, first_name)
    return _factory
