"""
Tests d'intégration du module Plateforme (/api/v1/superadmin).

| Classe                   | Couverture                                           |
|--------------------------|------------------------------------------------------|
| TestPlatformAccess       | Réservé au SUPERADMIN                                |
| TestPlatformStats        | Compteurs globaux, activité récente                  |
| TestTenantManagement     | CRUD, slugs, suppression en cascade                  |
| TestTenantSuspension     | Suspension, levée avec avertissement, activation     |
| TestSubscriptionPayments | Paiement manuel, chevauchement, transitions          |
| TestPaymentReviewRun     | POST /revisar-pagos, GET /pagos/resumen              |
| TestPlatformUsers        | Création, blocage, suppression                       |
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from fastapi import status
from sqlalchemy import func, select

from app.core.timeutils import utcnow
from app.models import (
    Client,
    SubscriptionPayment,
    SubscriptionPaymentStatus,
    Tenant,
    User,
)

SUPERADMIN_URL = "/api/v1/superadmin"
PASSWORD = "Password123"


# =============================================================================
# ACCÈS
# =============================================================================

class TestPlatformAccess:

    def test_admin_is_forbidden(self, client, admin_headers):
        response = client.get(f"{SUPERADMIN_URL}/stats", headers=admin_headers)

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["codigo"] == "ACCESO_DENEGADO"

    def test_requires_authentication(self, client):
        response = client.get(f"{SUPERADMIN_URL}/negocios")
        assert response.status_code == status.HTTP_401_UNAUTHORIZED


# =============================================================================
# STATISTIQUES
# =============================================================================

class TestPlatformStats:

    def test_platform_stats(
            self, client, superadmin_headers, tenant, other_tenant, admin_user, db_session,
            subscription_payment_factory,
    ):
        other_tenant.suspended = True
        subscription_payment_factory(tenant, SubscriptionPaymentStatus.PAID, utcnow() + timedelta(days=10))
        subscription_payment_factory(tenant, SubscriptionPaymentStatus.PENDING, utcnow() + timedelta(days=40))
        db_session.flush()

        response = client.get(f"{SUPERADMIN_URL}/stats", headers=superadmin_headers)

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["totalNegocios"] == 2
        assert body["negociosActivos"] == 1
        assert body["negociosSuspendidos"] == 1
        assert body["totalUsuarios"] == 2
        assert body["pagosPendientes"] == 1
        assert Decimal(str(body["totalIngresos"])) == Decimal("499.00")

    def test_recent_activity(self, client, superadmin_headers, admin_user, appointment):
        response = client.get(f"{SUPERADMIN_URL}/actividad?limit=5", headers=superadmin_headers)

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert [cita["id"] for cita in body["citas"]] == [appointment.id]
        assert [user["email"] for user in body["usuarios"]] == ["admin@demo.com"]


# =============================================================================
# NEGOCIOS
# =============================================================================

class TestTenantManagement:

    def test_list_tenants(self, client, superadmin_headers, tenant, other_tenant, admin_user):
        response = client.get(f"{SUPERADMIN_URL}/negocios?limit=1", headers=superadmin_headers)

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["total"] == 2
        assert body["totalPages"] == 2
        assert len(body["data"]) == 1
        assert "situacion" in body["data"][0]
        assert "conteos" in body["data"][0]

    def test_filter_suspended(self, client, superadmin_headers, tenant, other_tenant, db_session):
        other_tenant.suspended = True
        db_session.flush()

        body = client.get(f"{SUPERADMIN_URL}/negocios?suspendido=true", headers=superadmin_headers).json()
        assert [item["slug"] for item in body["data"]] == ["otro"]

    def test_get_tenant_with_counts(self, client, superadmin_headers, tenant, admin_user, client_record):
        response = client.get(f"{SUPERADMIN_URL}/negocios/{tenant.id}", headers=superadmin_headers)

        assert response.status_code == status.HTTP_200_OK
        counts = response.json()["conteos"]
        assert counts["usuarios"] == 1
        assert counts["clientes"] == 1

    def test_get_unknown_tenant(self, client, superadmin_headers):
        response = client.get(f"{SUPERADMIN_URL}/negocios/99999", headers=superadmin_headers)
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_create_tenant_generates_slug(self, client, superadmin_headers, tenant):
        response = client.post(f"{SUPERADMIN_URL}/negocios", headers=superadmin_headers, json={
            "nombre": "Demo",
            "email": "Nuevo@Demo.com",
        })

        assert response.status_code == status.HTTP_201_CREATED
        body = response.json()
        assert body["slug"] == "demo-1"
        assert body["activo"] is True
        assert body["suspendido"] is False
        assert body["email"] == "nuevo@demo.com"

    def test_create_tenant_duplicate_slug(self, client, superadmin_headers, tenant):
        response = client.post(f"{SUPERADMIN_URL}/negocios", headers=superadmin_headers, json={
            "nombre": "Otra Demo",
            "slug": "demo",
        })

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["codigo"] == "SLUG_DUPLICADO"

    def test_update_tenant(self, client, superadmin_headers, tenant):
        response = client.put(f"{SUPERADMIN_URL}/negocios/{tenant.id}", headers=superadmin_headers, json={
            "telefono": "5550001111",
        })

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["telefono"] == "5550001111"

    def test_delete_tenant_cascades(
            self, client, superadmin_headers, tenant, admin_user, client_user, client_record, appointment,
            subscription_payment_factory, db_session,
    ):
        subscription_payment_factory(tenant, SubscriptionPaymentStatus.PAID, utcnow() + timedelta(days=5))
        tenant_id = tenant.id

        response = client.delete(f"{SUPERADMIN_URL}/negocios/{tenant_id}", headers=superadmin_headers)

        assert response.status_code == status.HTTP_200_OK
        assert db_session.execute(select(func.count(Tenant.id)).where(Tenant.id == tenant_id)).scalar() == 0
        assert db_session.execute(select(func.count(User.id)).where(User.tenant_id == tenant_id)).scalar() == 0
        assert db_session.execute(select(func.count(Client.id)).where(Client.tenant_id == tenant_id)).scalar() == 0
        assert db_session.execute(
            select(func.count(SubscriptionPayment.id)).where(SubscriptionPayment.tenant_id == tenant_id)
        ).scalar() == 0

    def test_tenant_stats(self, client, superadmin_headers, tenant, admin_user, appointment):
        response = client.get(f"{SUPERADMIN_URL}/negocios/{tenant.id}/stats", headers=superadmin_headers)

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["totalClientes"] == 1
        assert body["totalCitas"] == 1
        assert body["usuariosActivos"] == 1
        assert body["situacion"] == "PENDING"


class TestTenantSuspension:

    def test_suspend_blocks_tenant_users(self, client, superadmin_headers, tenant, admin_headers):
        response = client.patch(
            f"{SUPERADMIN_URL}/negocios/{tenant.id}/suspender",
            headers=superadmin_headers,
            json={"suspendido": True, "motivo": "Falta de pago"},
        )

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["suspendido"] is True
        assert body["motivoSuspension"] == "Falta de pago"
        assert body["suspendidoEn"] is not None

        blocked = client.get("/api/v1/admin/clientes", headers=admin_headers)
        assert blocked.status_code == status.HTTP_403_FORBIDDEN
        assert blocked.json()["suspendido"] is True

    def test_unsuspend_in_good_standing_has_no_warning(self, client, superadmin_headers, tenant, db_session):
        tenant.suspended = True
        db_session.flush()

        response = client.patch(
            f"{SUPERADMIN_URL}/negocios/{tenant.id}/suspender",
            headers=superadmin_headers,
            json={"suspendido": False},
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["suspendido"] is False
        assert response.json()["advertencia"] is None

    def test_unsuspend_past_grace_returns_warning(
            self, client, superadmin_headers, tenant, db_session, subscription_payment_factory,
    ):
        subscription_payment_factory(tenant, SubscriptionPaymentStatus.EXPIRED, utcnow() - timedelta(days=20))
        tenant.suspended = True
        db_session.flush()

        response = client.patch(
            f"{SUPERADMIN_URL}/negocios/{tenant.id}/suspender",
            headers=superadmin_headers,
            json={"suspendido": False},
        )

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["suspendido"] is False
        assert body["advertencia"]

    def test_deactivate_tenant(self, client, superadmin_headers, tenant, admin_user):
        response = client.patch(
            f"{SUPERADMIN_URL}/negocios/{tenant.id}/activar",
            headers=superadmin_headers,
            json={"activo": False},
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["activo"] is False

        login = client.post("/api/v1/auth/login", json={"email": "admin@demo.com", "password": PASSWORD})
        assert login.status_code == status.HTTP_403_FORBIDDEN
        assert login.json()["codigo"] == "NEGOCIO_INACTIVO"


# =============================================================================
# PAGOS DE SUSCRIPCIÓN
# =============================================================================

class TestSubscriptionPayments:

    @staticmethod
    def _manual_payment(tenant_id: int, start: datetime, end: datetime) -> dict:
        return {
            "negocioId": tenant_id,
            "monto": "499.00",
            "metodo": "transferencia",
            "referencia": "SPEI-001",
            "fechaInicio": start.isoformat(),
            "fechaFin": end.isoformat(),
        }

    def test_manual_payment_is_paid(self, client, superadmin_headers, tenant):
        start = datetime(2026, 1, 1, tzinfo=timezone.utc)
        response = client.post(
            f"{SUPERADMIN_URL}/pagos",
            headers=superadmin_headers,
            json=self._manual_payment(tenant.id, start, start + timedelta(days=30)),
        )

        assert response.status_code == status.HTTP_201_CREATED
        body = response.json()
        assert body["estado"] == "PAID"
        assert body["moneda"] == "MXN"
        assert body["negocioId"] == tenant.id

    def test_overlapping_manual_payment_is_refused(self, client, superadmin_headers, tenant):
        start = datetime(2026, 1, 1, tzinfo=timezone.utc)
        first = client.post(
            f"{SUPERADMIN_URL}/pagos",
            headers=superadmin_headers,
            json=self._manual_payment(tenant.id, start, start + timedelta(days=30)),
        )

        response = client.post(
            f"{SUPERADMIN_URL}/pagos",
            headers=superadmin_headers,
            json=self._manual_payment(tenant.id, start + timedelta(days=15), start + timedelta(days=45)),
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["codigo"] == "PERIODO_SUPERPUESTO"
        assert response.json()["pagoId"] == first.json()["id"]

    def test_adjacent_manual_payment_is_accepted(self, client, superadmin_headers, tenant):
        start = datetime(2026, 1, 1, tzinfo=timezone.utc)
        end = start + timedelta(days=30)
        client.post(f"{SUPERADMIN_URL}/pagos", headers=superadmin_headers,
                    json=self._manual_payment(tenant.id, start, end))

        response = client.post(
            f"{SUPERADMIN_URL}/pagos",
            headers=superadmin_headers,
            json=self._manual_payment(tenant.id, end, end + timedelta(days=30)),
        )
        assert response.status_code == status.HTTP_201_CREATED

    def test_manual_payment_end_before_start(self, client, superadmin_headers, tenant):
        start = datetime(2026, 1, 1, tzinfo=timezone.utc)
        response = client.post(
            f"{SUPERADMIN_URL}/pagos",
            headers=superadmin_headers,
            json=self._manual_payment(tenant.id, start, start - timedelta(days=1)),
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_manual_payment_unknown_tenant(self, client, superadmin_headers):
        start = datetime(2026, 1, 1, tzinfo=timezone.utc)
        response = client.post(
            f"{SUPERADMIN_URL}/pagos",
            headers=superadmin_headers,
            json=self._manual_payment(99999, start, start + timedelta(days=30)),
        )
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_confirm_pending_payment(self, client, superadmin_headers, tenant, subscription_payment_factory):
        payment = subscription_payment_factory(
            tenant, SubscriptionPaymentStatus.PENDING, utcnow() + timedelta(days=20)
        )

        response = client.put(f"{SUPERADMIN_URL}/pagos/{payment.id}", headers=superadmin_headers, json={
            "estado": "PAID",
            "referencia": "DEP-778",
        })

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["estado"] == "PAID"
        assert response.json()["referencia"] == "DEP-778"

    def test_confirming_overlapping_pending_payment_is_refused(
            self, client, superadmin_headers, tenant, subscription_payment_factory, db_session,
    ):
        paid = subscription_payment_factory(tenant, SubscriptionPaymentStatus.PAID, utcnow() + timedelta(days=25))
        pending = subscription_payment_factory(
            tenant, SubscriptionPaymentStatus.PENDING, utcnow() + timedelta(days=20)
        )

        response = client.put(f"{SUPERADMIN_URL}/pagos/{pending.id}", headers=superadmin_headers, json={
            "estado": "PAID",
        })

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["codigo"] == "PERIODO_SUPERPUESTO"
        assert response.json()["pagoId"] == paid.id
        db_session.refresh(pending)
        assert pending.status == SubscriptionPaymentStatus.PENDING

    def test_confirming_adjacent_pending_payment_is_accepted(
            self, client, superadmin_headers, tenant, subscription_payment_factory,
    ):
        end = utcnow().replace(microsecond=0)
        subscription_payment_factory(tenant, SubscriptionPaymentStatus.PAID, end)
        pending = subscription_payment_factory(
            tenant, SubscriptionPaymentStatus.PENDING, end + timedelta(days=30)
        )

        response = client.put(f"{SUPERADMIN_URL}/pagos/{pending.id}", headers=superadmin_headers, json={
            "estado": "PAID",
        })

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["estado"] == "PAID"

    def test_paid_payment_cannot_become_pending(self, client, superadmin_headers, tenant, subscription_payment_factory):
        payment = subscription_payment_factory(tenant, SubscriptionPaymentStatus.PAID, utcnow() + timedelta(days=20))

        response = client.put(f"{SUPERADMIN_URL}/pagos/{payment.id}", headers=superadmin_headers, json={
            "estado": "PENDING",
        })

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["codigo"] == "TRANSICION_INVALIDA"

    def test_paid_payment_can_be_expired_administratively(
            self, client, superadmin_headers, tenant, subscription_payment_factory,
    ):
        payment = subscription_payment_factory(tenant, SubscriptionPaymentStatus.PAID, utcnow() + timedelta(days=20))

        response = client.put(f"{SUPERADMIN_URL}/pagos/{payment.id}", headers=superadmin_headers, json={
            "estado": "EXPIRED",
        })
        assert response.status_code == status.HTTP_200_OK

    def test_list_payments_filtered_by_status(
            self, client, superadmin_headers, tenant, other_tenant, subscription_payment_factory,
    ):
        subscription_payment_factory(tenant, SubscriptionPaymentStatus.PAID, utcnow() + timedelta(days=20))
        subscription_payment_factory(other_tenant, SubscriptionPaymentStatus.PENDING, utcnow() + timedelta(days=20))

        body = client.get(f"{SUPERADMIN_URL}/pagos?estado=PENDING", headers=superadmin_headers).json()

        assert body["total"] == 1
        assert body["data"][0]["negocioId"] == other_tenant.id


# =============================================================================
# RÉVISION DES PAIEMENTS
# =============================================================================

class TestPaymentReviewRun:

    def test_run_review_now(
            self, client, superadmin_headers, tenant, other_tenant, subscription_payment_factory, db_session,
    ):
        overdue = subscription_payment_factory(
            tenant, SubscriptionPaymentStatus.PENDING, utcnow() - timedelta(days=10)
        )
        subscription_payment_factory(other_tenant, SubscriptionPaymentStatus.PAID, utcnow() + timedelta(days=10))

        response = client.post(f"{SUPERADMIN_URL}/revisar-pagos", headers=superadmin_headers)

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["message"]
        assert body["resumen"]["pagosVencidos"] == 1
        assert body["resumen"]["negociosSuspendidos"] == 1
        assert body["resumen"]["negociosSuspendidosIds"] == [tenant.id]
        assert body["resumen"]["pagosPorEstado"] == {"EXPIRED": 1, "PAID": 1}
        assert Decimal(body["resumen"]["montoPorEstado"]["PAID"]) == Decimal("499")

        db_session.refresh(overdue)
        db_session.refresh(tenant)
        assert overdue.status == SubscriptionPaymentStatus.EXPIRED
        assert tenant.suspended is True

    def test_admin_cannot_run_review(self, client, admin_headers):
        response = client.post(f"{SUPERADMIN_URL}/revisar-pagos", headers=admin_headers)
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_payment_summary_by_status(
            self, client, superadmin_headers, tenant, other_tenant, subscription_payment_factory,
    ):
        subscription_payment_factory(tenant, SubscriptionPaymentStatus.PAID, utcnow() + timedelta(days=10))
        subscription_payment_factory(other_tenant, SubscriptionPaymentStatus.PAID, utcnow() + timedelta(days=10))
        subscription_payment_factory(other_tenant, SubscriptionPaymentStatus.PENDING, utcnow() + timedelta(days=40))

        response = client.get(f"{SUPERADMIN_URL}/pagos/resumen", headers=superadmin_headers)

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert set(body) == {"PAID", "PENDING"}
        assert body["PAID"]["total"] == 2
        assert Decimal(body["PAID"]["monto"]) == Decimal("998")
        assert Decimal(body["PENDING"]["monto"]) == Decimal("499")

    def test_admin_cannot_read_payment_summary(self, client, admin_headers):
        response = client.get(f"{SUPERADMIN_URL}/pagos/resumen", headers=admin_headers)
        assert response.status_code == status.HTTP_403_FORBIDDEN


# =============================================================================
# USUARIOS
# =============================================================================

class TestPlatformUsers:

    def test_create_admin_for_tenant(self, client, superadmin_headers, tenant):
        response = client.post(f"{SUPERADMIN_URL}/usuarios", headers=superadmin_headers, json={
            "email": "segundo@demo.com",
            "password": PASSWORD,
            "nombre": "Segundo",
            "rol": "ADMIN",
            "negocioId": tenant.id,
        })

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["negocioId"] == tenant.id

    def test_create_admin_without_tenant(self, client, superadmin_headers):
        response = client.post(f"{SUPERADMIN_URL}/usuarios", headers=superadmin_headers, json={
            "email": "huerfano@demo.com",
            "password": PASSWORD,
            "nombre": "Huérfano",
            "rol": "ADMIN",
        })

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["codigo"] == "NEGOCIO_REQUERIDO"

    def test_create_superadmin_drops_tenant(self, client, superadmin_headers, tenant):
        response = client.post(f"{SUPERADMIN_URL}/usuarios", headers=superadmin_headers, json={
            "email": "otro-root@plataforma.com",
            "password": PASSWORD,
            "nombre": "Otro Root",
            "rol": "SUPERADMIN",
            "negocioId": tenant.id,
        })

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["negocioId"] is None

    def test_create_duplicate_email(self, client, superadmin_headers, tenant, admin_user):
        response = client.post(f"{SUPERADMIN_URL}/usuarios", headers=superadmin_headers, json={
            "email": "admin@demo.com",
            "password": PASSWORD,
            "nombre": "Copia",
            "negocioId": tenant.id,
        })

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["codigo"] == "EMAIL_DUPLICADO"

    def test_block_user_denies_access(self, client, superadmin_headers, admin_user, admin_headers):
        response = client.patch(
            f"{SUPERADMIN_URL}/usuarios/{admin_user.id}/bloquear",
            headers=superadmin_headers,
            json={"bloqueado": True},
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["activo"] is False

        denied = client.get("/api/v1/admin/clientes", headers=admin_headers)
        assert denied.status_code == status.HTTP_403_FORBIDDEN
        assert denied.json()["codigo"] == "USUARIO_BLOQUEADO"

    def test_block_without_body_toggles(self, client, superadmin_headers, admin_user):
        first = client.patch(f"{SUPERADMIN_URL}/usuarios/{admin_user.id}/bloquear", headers=superadmin_headers)
        second = client.patch(f"{SUPERADMIN_URL}/usuarios/{admin_user.id}/bloquear", headers=superadmin_headers)

        assert first.json()["activo"] is False
        assert second.json()["activo"] is True

    def test_cannot_block_self(self, client, superadmin, superadmin_headers):
        response = client.patch(
            f"{SUPERADMIN_URL}/usuarios/{superadmin.id}/bloquear",
            headers=superadmin_headers,
            json={"bloqueado": True},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["codigo"] == "AUTOBLOQUEO"

    def test_list_users_by_tenant(self, client, superadmin_headers, tenant, admin_user, other_admin):
        body = client.get(f"{SUPERADMIN_URL}/usuarios?negocioId={tenant.id}", headers=superadmin_headers).json()
        assert [user["email"] for user in body["data"]] == ["admin@demo.com"]

    def test_delete_user(self, client, superadmin_headers, admin_user, db_session):
        user_id = admin_user.id

        response = client.delete(f"{SUPERADMIN_URL}/usuarios/{user_id}", headers=superadmin_headers)

        assert response.status_code == status.HTTP_200_OK
        assert db_session.execute(select(func.count(User.id)).where(User.id == user_id)).scalar() == 0

    def test_cannot_delete_self(self, client, superadmin, superadmin_headers):
        response = client.delete(f"{SUPERADMIN_URL}/usuarios/{superadmin.id}", headers=superadmin_headers)
        assert response.json()["codigo"] == "AUTOELIMINACION"
