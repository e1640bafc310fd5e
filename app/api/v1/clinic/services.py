"""
Services métier pour le module Clinique.

Contient la logique CRUD pour :
- ClientService
- AppointmentService
- PrescriptionService
- DocumentService
- ClientPaymentService
- DashboardService (statistiques négocio / agrégat plateforme)

MULTI-TENANT: chaque service est construit avec le tenant effectif de la
requête et n'accède aux données qu'au travers d'un TenantScopedRepository.
"""
import logging
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, selectinload

from app.core.exceptions import ValidationError
from app.core.timeutils import utcnow
from app.models.clinic.appointment import Appointment
from app.models.clinic.client import Client
from app.models.clinic.client_payment import ClientPayment
from app.models.clinic.document import Document
from app.models.clinic.prescription import Prescription
from app.models.enums import AppointmentStatus, ClientPaymentStatus, UserRole
from app.models.tenants.tenant import Tenant
from app.models.user.user import User
from app.services.tenant_scope import Page, TenantScopedRepository

from app.api.v1.clinic.schemas import (
    AppointmentCreate, AppointmentUpdate,
    ClientCreate, ClientUpdate,
    ClientPaymentCreate, ClientPaymentUpdate,
    DocumentCreate,
    PrescriptionCreate, PrescriptionUpdate,
)

logger = logging.getLogger(__name__)


# =============================================================================
# CLIENT SERVICE
# =============================================================================

class ClientService:
    """Service pour la gestion des clients d'un négocio."""

    def __init__(self, db: Session, tenant_id: int):
        self.db = db
        self.tenant_id = tenant_id
        self.repo = TenantScopedRepository(db, Client, tenant_id, "Cliente no encontrado")

    def get_all(
            self,
            page: int = 1,
            limit: int = 10,
            search: Optional[str] = None,
            active: Optional[bool] = None,
    ) -> Page[Client]:
        """Liste paginée, filtrable par texte et statut."""
        stmt = self.repo.query()
        if search:
            stmt = stmt.where(self._search_clause(search))
        if active is not None:
            stmt = stmt.where(Client.active == active)
        stmt = stmt.order_by(Client.created_at.desc(), Client.id.desc())
        return self.repo.paginate(stmt, page, limit)

    def search(self, q: str, limit: int = 10) -> List[Client]:
        """Recherche rapide (autocomplétion) par nom, email ou téléphone."""
        if not q or len(q.strip()) < 2:
            raise ValidationError("La búsqueda requiere al menos 2 caracteres")
        stmt = (
            self.repo.query()
            .where(Client.active.is_(True), self._search_clause(q.strip()))
            .order_by(Client.first_name)
            .limit(limit)
        )
        return list(self.db.execute(stmt).scalars())

    def get_by_id(self, client_id: int) -> Client:
        return self.repo.get(client_id)

    def create(self, data: ClientCreate) -> Client:
        client = self.repo.create(**data.model_dump(exclude_unset=True))
        self.db.commit()
        logger.info(f"👤 Client créé (id={client.id}, tenant={self.tenant_id})")
        return client

    def update(self, client_id: int, data: ClientUpdate) -> Client:
        client = self.repo.update(client_id, **data.model_dump(exclude_unset=True))
        self.db.commit()
        return client

    def delete(self, client_id: int) -> None:
        self.repo.delete(client_id)
        self.db.commit()
        logger.info(f"🗑️ Client supprimé (id={client_id}, tenant={self.tenant_id})")

    def get_record(self, client_id: int) -> Dict[str, Any]:
        """Expediente : client + citas, recetas, documents et paiements."""
        client = self.repo.get(client_id)

        def _owned(model, order_column):
            return list(self.db.execute(
                select(model)
                .where(model.tenant_id == self.tenant_id, model.client_id == client.id)
                .order_by(order_column.desc())
            ).scalars())

        return {
            "client": client,
            "appointments": _owned(Appointment, Appointment.scheduled_date),
            "prescriptions": _owned(Prescription, Prescription.created_at),
            "documents": _owned(Document, Document.created_at),
            "payments": _owned(ClientPayment, ClientPayment.created_at),
        }

    def get_stats(self, client_id: int) -> Dict[str, Any]:
        client = self.repo.get(client_id)
        appointments = TenantScopedRepository(self.db, Appointment, self.tenant_id)
        prescriptions = TenantScopedRepository(self.db, Prescription, self.tenant_id)

        total_paid = self.db.execute(
            select(func.coalesce(func.sum(ClientPayment.amount), 0)).where(
                ClientPayment.tenant_id == self.tenant_id,
                ClientPayment.client_id == client.id,
                ClientPayment.status == ClientPaymentStatus.PAID,
            )
        ).scalar()
        last_appointment = self.db.execute(
            select(func.max(Appointment.scheduled_date)).where(
                Appointment.tenant_id == self.tenant_id,
                Appointment.client_id == client.id,
            )
        ).scalar()

        return {
            "total_appointments": appointments.count(Appointment.client_id == client.id),
            "completed_appointments": appointments.count(
                Appointment.client_id == client.id,
                Appointment.status == AppointmentStatus.COMPLETED,
            ),
            "pending_appointments": appointments.count(
                Appointment.client_id == client.id,
                Appointment.status == AppointmentStatus.PENDING,
            ),
            "total_prescriptions": prescriptions.count(Prescription.client_id == client.id),
            "total_paid": Decimal(str(total_paid or 0)),
            "last_appointment": last_appointment,
        }

    @staticmethod
    def _search_clause(term: str):
        pattern = f"%{term}%"
        return or_(
            Client.first_name.ilike(pattern),
            Client.last_name.ilike(pattern),
            Client.email.ilike(pattern),
            Client.phone.ilike(pattern),
        )


# =============================================================================
# APPOINTMENT SERVICE
# =============================================================================

class AppointmentService:
    """Service pour la gestion des citas."""

    def __init__(self, db: Session, tenant_id: int):
        self.db = db
        self.tenant_id = tenant_id
        self.repo = TenantScopedRepository(db, Appointment, tenant_id, "Cita no encontrada")

    def get_all(
            self,
            page: int = 1,
            limit: int = 10,
            status: Optional[AppointmentStatus] = None,
            client_id: Optional[int] = None,
            date_from: Optional[date] = None,
            date_to: Optional[date] = None,
            practitioner_id: Optional[int] = None,
    ) -> Page[Appointment]:
        stmt = self.repo.query().options(selectinload(Appointment.client))
        if status:
            stmt = stmt.where(Appointment.status == status)
        if client_id:
            stmt = stmt.where(Appointment.client_id == client_id)
        if practitioner_id:
            stmt = stmt.where(Appointment.practitioner_id == practitioner_id)
        if date_from:
            stmt = stmt.where(Appointment.scheduled_date >= date_from)
        if date_to:
            stmt = stmt.where(Appointment.scheduled_date <= date_to)
        stmt = stmt.order_by(Appointment.scheduled_date.desc(), Appointment.scheduled_time.desc())
        return self.repo.paginate(stmt, page, limit)

    def get_by_id(self, appointment_id: int) -> Appointment:
        return self.repo.get(appointment_id)

    def create(self, data: AppointmentCreate, today: Optional[date] = None) -> Appointment:
        """
        Crée une cita.

        Raises:
            ValidationError: Date passée
            InvalidReference: Client ou professionnel absent, ou d'un autre négocio
        """
        today = today or utcnow().date()
        if data.scheduled_date < today:
            raise ValidationError("No se pueden agendar citas en fechas pasadas", codigo="FECHA_PASADA")

        self.repo.ensure_reference(Client, data.client_id, label="Cliente")
        if data.practitioner_id is not None:
            self._ensure_practitioner(data.practitioner_id)

        fields = data.model_dump(exclude_unset=True)
        if fields.get("status") is None:
            fields.pop("status", None)
        fields.setdefault("duration_minutes", 60)
        appointment = self.repo.create(**fields)
        self.db.commit()
        logger.info(f"📅 Cita créée (id={appointment.id}, client={appointment.client_id})")
        return appointment

    def update(self, appointment_id: int, data: AppointmentUpdate) -> Appointment:
        fields = data.model_dump(exclude_unset=True)
        if fields.get("client_id") is not None:
            self.repo.ensure_reference(Client, fields["client_id"], label="Cliente")
        if fields.get("practitioner_id") is not None:
            self._ensure_practitioner(fields["practitioner_id"])
        for key in ("client_id", "status", "scheduled_date", "scheduled_time", "duration_minutes", "reason"):
            if key in fields and fields[key] is None:
                fields.pop(key)
        appointment = self.repo.update(appointment_id, **fields)
        self.db.commit()
        return appointment

    def delete(self, appointment_id: int) -> None:
        self.repo.delete(appointment_id)
        self.db.commit()

    def _ensure_practitioner(self, user_id: int) -> User:
        """Le professionnel est un ADMIN actif du même négocio."""
        return self.repo.ensure_reference(User, user_id, label="Profesional", role=UserRole.ADMIN, active=True)


# =============================================================================
# PRESCRIPTION SERVICE
# =============================================================================

class PrescriptionService:
    """Service pour la gestion des recetas."""

    def __init__(self, db: Session, tenant_id: int):
        self.db = db
        self.tenant_id = tenant_id
        self.repo = TenantScopedRepository(db, Prescription, tenant_id, "Receta no encontrada")

    def get_all(self, page: int = 1, limit: int = 10, client_id: Optional[int] = None) -> Page[Prescription]:
        stmt = self.repo.query().options(selectinload(Prescription.client))
        if client_id:
            stmt = stmt.where(Prescription.client_id == client_id)
        stmt = stmt.order_by(Prescription.created_at.desc(), Prescription.id.desc())
        return self.repo.paginate(stmt, page, limit)

    def get_by_id(self, prescription_id: int) -> Prescription:
        return self.repo.get(prescription_id)

    def create(self, data: PrescriptionCreate) -> Prescription:
        """
        Crée une receta ; la cita éventuelle doit appartenir au même client.

        Raises:
            InvalidReference: Client ou cita hors négocio / autre client
        """
        self.repo.ensure_reference(Client, data.client_id, label="Cliente")
        if data.appointment_id is not None:
            self.repo.ensure_reference(
                Appointment, data.appointment_id, label="Cita", client_id=data.client_id
            )
        prescription = self.repo.create(**data.model_dump())
        self.db.commit()
        return prescription

    def update(self, prescription_id: int, data: PrescriptionUpdate) -> Prescription:
        prescription = self.repo.get(prescription_id)
        fields = data.model_dump(exclude_unset=True)
        if fields.get("content") is None:
            fields.pop("content", None)
        if fields.get("appointment_id") is not None:
            self.repo.ensure_reference(
                Appointment, fields["appointment_id"], label="Cita", client_id=prescription.client_id
            )
        prescription = self.repo.update(prescription_id, **fields)
        self.db.commit()
        return prescription

    def delete(self, prescription_id: int) -> None:
        self.repo.delete(prescription_id)
        self.db.commit()


# =============================================================================
# DOCUMENT SERVICE
# =============================================================================

class DocumentService:
    """Service pour les métadonnées de documents."""

    def __init__(self, db: Session, tenant_id: int):
        self.db = db
        self.tenant_id = tenant_id
        self.repo = TenantScopedRepository(db, Document, tenant_id, "Documento no encontrado")

    def get_all(
            self,
            page: int = 1,
            limit: int = 10,
            client_id: Optional[int] = None,
            doc_type: Optional[str] = None,
    ) -> Page[Document]:
        stmt = self.repo.query()
        if client_id:
            stmt = stmt.where(Document.client_id == client_id)
        if doc_type:
            stmt = stmt.where(Document.doc_type == doc_type)
        stmt = stmt.order_by(Document.created_at.desc(), Document.id.desc())
        return self.repo.paginate(stmt, page, limit)

    def get_by_id(self, document_id: int) -> Document:
        return self.repo.get(document_id)

    def create(self, data: DocumentCreate) -> Document:
        self.repo.ensure_reference(Client, data.client_id, label="Cliente")
        document = self.repo.create(**data.model_dump())
        self.db.commit()
        return document

    def delete(self, document_id: int) -> None:
        self.repo.delete(document_id)
        self.db.commit()


# =============================================================================
# CLIENT PAYMENT SERVICE
# =============================================================================

CLIENT_PAYMENT_TRANSITIONS = {
    ClientPaymentStatus.PENDING: {ClientPaymentStatus.PAID, ClientPaymentStatus.REJECTED},
    ClientPaymentStatus.PAID: set(),
    ClientPaymentStatus.REJECTED: set(),
}


class ClientPaymentService:
    """
    Service pour les paiements des clients.

    paid_at n'est renseigné qu'au passage en PAID (création ou mise à jour).
    """

    def __init__(self, db: Session, tenant_id: int):
        self.db = db
        self.tenant_id = tenant_id
        self.repo = TenantScopedRepository(db, ClientPayment, tenant_id, "Pago no encontrado")

    def get_all(
            self,
            page: int = 1,
            limit: int = 10,
            status: Optional[ClientPaymentStatus] = None,
            client_id: Optional[int] = None,
            method=None,
    ) -> Page[ClientPayment]:
        stmt = self.repo.query().options(selectinload(ClientPayment.client))
        if status:
            stmt = stmt.where(ClientPayment.status == status)
        if client_id:
            stmt = stmt.where(ClientPayment.client_id == client_id)
        if method:
            stmt = stmt.where(ClientPayment.method == method)
        stmt = stmt.order_by(ClientPayment.created_at.desc(), ClientPayment.id.desc())
        return self.repo.paginate(stmt, page, limit)

    def get_by_id(self, payment_id: int) -> ClientPayment:
        return self.repo.get(payment_id)

    def create(self, data: ClientPaymentCreate) -> ClientPayment:
        """
        Raises:
            InvalidReference: Client hors négocio, ou cita d'un autre client
        """
        self.repo.ensure_reference(Client, data.client_id, label="Cliente")
        if data.appointment_id is not None:
            self.repo.ensure_reference(
                Appointment, data.appointment_id, label="Cita", client_id=data.client_id
            )

        fields = data.model_dump()
        requested_paid_at = fields.pop("paid_at", None)
        if data.status == ClientPaymentStatus.PAID:
            fields["paid_at"] = requested_paid_at or utcnow()

        payment = self.repo.create(**fields)
        self.db.commit()
        logger.info(f"💵 Paiement client créé (id={payment.id}, statut={payment.status.value})")
        return payment

    def update(self, payment_id: int, data: ClientPaymentUpdate) -> ClientPayment:
        payment = self.repo.get(payment_id)
        fields = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
        requested_paid_at = fields.pop("paid_at", None)

        target = fields.pop("status", None)
        if target is not None and target != payment.status:
            if target not in CLIENT_PAYMENT_TRANSITIONS[payment.status]:
                raise ValidationError(
                    f"Transición no permitida: {payment.status.value} → {target.value}",
                    codigo="TRANSICION_INVALIDA",
                )
            payment.status = target
            if target == ClientPaymentStatus.PAID:
                payment.paid_at = requested_paid_at or utcnow()
        elif requested_paid_at is not None and payment.status == ClientPaymentStatus.PAID:
            # Correction de la date d'un paiement déjà encaissé
            payment.paid_at = requested_paid_at

        payment = self.repo.update(payment_id, **fields)
        self.db.commit()
        return payment

    def delete(self, payment_id: int) -> None:
        self.repo.delete(payment_id)
        self.db.commit()


# =============================================================================
# DASHBOARD SERVICE
# =============================================================================

class DashboardService:
    """Statistiques du tableau de bord (négocio ou agrégat plateforme)."""

    def __init__(self, db: Session):
        self.db = db

    def tenant_stats(self, tenant_id: int, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or utcnow()
        today = now.date()
        month_start = datetime(now.year, now.month, 1, tzinfo=now.tzinfo)
        next_month = (month_start + timedelta(days=32)).replace(day=1)

        clients = TenantScopedRepository(self.db, Client, tenant_id)
        appointments = TenantScopedRepository(self.db, Appointment, tenant_id)
        documents = TenantScopedRepository(self.db, Document, tenant_id)

        month_income = self.db.execute(
            select(func.coalesce(func.sum(ClientPayment.amount), 0)).where(
                ClientPayment.tenant_id == tenant_id,
                ClientPayment.status == ClientPaymentStatus.PAID,
                ClientPayment.paid_at >= month_start,
                ClientPayment.paid_at < next_month,
            )
        ).scalar()

        return {
            "is_global": False,
            "tenant_id": tenant_id,
            "total_clients": clients.count(),
            "total_appointments": appointments.count(),
            "appointments_today": appointments.count(Appointment.scheduled_date == today),
            "pending_appointments": appointments.count(Appointment.status == AppointmentStatus.PENDING),
            "month_income": Decimal(str(month_income or 0)),
            "recent_documents": documents.count(Document.created_at >= now - timedelta(days=7)),
        }

    def platform_rollup(self) -> Dict[str, Any]:
        def _count(model, *criteria) -> int:
            stmt = select(func.count()).select_from(model)
            if criteria:
                stmt = stmt.where(*criteria)
            return self.db.execute(stmt).scalar() or 0

        tenants = list(self.db.execute(select(Tenant).order_by(Tenant.name)).scalars())
        return {
            "is_global": True,
            "total_tenants": len(tenants),
            "active_tenants": sum(1 for t in tenants if t.is_operational),
            "suspended_tenants": sum(1 for t in tenants if t.suspended),
            "total_users": _count(User),
            "total_clients": _count(Client),
            "total_appointments": _count(Appointment),
            "tenants": tenants,
        }
