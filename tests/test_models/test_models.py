"""
Tests des modèles : contraintes, propriétés et suppressions en cascade.

Les suppressions passent par des DELETE SQL pour vérifier les clés
étrangères elles-mêmes (ON DELETE CASCADE / SET NULL), sans l'ORM.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError

from app.models import (
    Appointment,
    Client,
    ClientPayment,
    Prescription,
    SubscriptionPayment,
    SubscriptionPaymentStatus,
    Tenant,
    User,
    UserRole,
)


def count(db_session, model, *criteria):
    stmt = select(func.count()).select_from(model)
    if criteria:
        stmt = stmt.where(*criteria)
    return db_session.execute(stmt).scalar()


def add_and_flush(db_session, entity):
    with db_session.begin_nested():
        db_session.add(entity)
        db_session.flush()


class TestConstraints:

    def test_admin_requires_tenant(self, db_session):
        admin = User(email="huerfano@demo.com", password_hash="x", first_name="Sin", role=UserRole.ADMIN)
        with pytest.raises(IntegrityError):
            add_and_flush(db_session, admin)

    def test_superadmin_without_tenant_is_valid(self, superadmin):
        assert superadmin.id is not None
        assert superadmin.is_superadmin

    def test_email_is_unique(self, db_session, admin_user, other_tenant):
        duplicate = User(
            email="admin@demo.com", password_hash="x", first_name="Dup",
            role=UserRole.ADMIN, tenant_id=other_tenant.id,
        )
        with pytest.raises(IntegrityError):
            add_and_flush(db_session, duplicate)

    def test_slug_is_unique(self, db_session, tenant):
        with pytest.raises(IntegrityError):
            add_and_flush(db_session, Tenant(name="Otra Demo", slug="demo"))

    def test_client_requires_tenant(self, db_session):
        with pytest.raises(IntegrityError):
            add_and_flush(db_session, Client(first_name="Sin negocio"))


class TestProperties:

    @pytest.mark.parametrize("active, suspended, expected", [
        (True, False, True),
        (True, True, False),
        (False, False, False),
    ])
    def test_tenant_is_operational(self, active, suspended, expected):
        assert Tenant(name="X", slug="x", active=active, suspended=suspended).is_operational is expected

    def test_user_full_name(self, admin_user):
        assert admin_user.full_name == "Ana Usuario"

    def test_defaults_on_flush(self, db_session):
        tenant = Tenant(name="Nueva", slug="nueva")
        db_session.add(tenant)
        db_session.flush()
        assert tenant.active is True
        assert tenant.suspended is False
        assert tenant.created_at is not None


class TestCascades:

    def test_deleting_tenant_removes_all_its_data(
            self, db_session, tenant, other_tenant, admin_user, client_user,
            client_record, appointment, pending_client_payment, other_client_record,
    ):
        db_session.add(SubscriptionPayment(
            tenant_id=tenant.id,
            amount=Decimal("499.00"),
            currency="MXN",
            period_start=datetime(2026, 1, 1, tzinfo=timezone.utc),
            period_end=datetime(2026, 1, 31, tzinfo=timezone.utc),
            status=SubscriptionPaymentStatus.PAID,
        ))
        db_session.flush()

        db_session.execute(delete(Tenant).where(Tenant.id == tenant.id))
        db_session.expire_all()

        assert count(db_session, User, User.tenant_id == tenant.id) == 0
        assert count(db_session, Client, Client.tenant_id == tenant.id) == 0
        assert count(db_session, Appointment) == 0
        assert count(db_session, ClientPayment) == 0
        assert count(db_session, SubscriptionPayment) == 0
        assert count(db_session, Client, Client.tenant_id == other_tenant.id) == 1

    def test_deleting_client_removes_its_appointments(self, db_session, client_record, appointment):
        db_session.execute(delete(Client).where(Client.id == client_record.id))
        db_session.expire_all()

        assert count(db_session, Appointment) == 0

    def test_deleting_appointment_keeps_prescription(self, db_session, tenant, client_record, appointment):
        prescription = Prescription(
            tenant_id=tenant.id,
            client_id=client_record.id,
            appointment_id=appointment.id,
            content="Paracetamol 500 mg cada 8 horas",
        )
        db_session.add(prescription)
        db_session.flush()
        prescription_id = prescription.id

        db_session.execute(delete(Appointment).where(Appointment.id == appointment.id))
        db_session.expire_all()

        kept = db_session.get(Prescription, prescription_id)
        assert kept is not None
        assert kept.appointment_id is None

    def test_deleting_account_keeps_client_record(self, db_session, client_user):
        record_id = db_session.execute(
            select(Client.id).where(Client.user_id == client_user.id)
        ).scalar_one()

        db_session.execute(delete(User).where(User.id == client_user.id))
        db_session.expire_all()

        record = db_session.get(Client, record_id)
        assert record is not None
        assert record.user_id is None
