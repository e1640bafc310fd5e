"""
Services du module Négocio.

- BusinessProfileService : lecture/mise à jour du profil par son ADMIN
- ClientPortalService : vue d'un utilisateur CLIENT (son négocio, ses citas)
- ReportService : statistiques avancées, rapport mensuel, rapports par professionnel
"""
import calendar
import logging
from collections import Counter, defaultdict
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session, selectinload

from app.core.exceptions import NotFound, ValidationError
from app.models.clinic.appointment import Appointment
from app.models.clinic.client import Client
from app.models.clinic.document import Document
from app.models.clinic.prescription import Prescription
from app.models.enums import AppointmentStatus, UserRole
from app.models.tenants.tenant import Tenant
from app.models.user.user import User
from app.services.tenant_scope import TenantScopedRepository

from app.api.v1.business.schemas import TenantProfileUpdate

logger = logging.getLogger(__name__)


class BusinessProfileService:
    """Profil du négocio effectif."""

    def __init__(self, db: Session, tenant_id: int):
        self.db = db
        self.tenant_id = tenant_id

    def get_tenant(self) -> Tenant:
        tenant = self.db.get(Tenant, self.tenant_id)
        if tenant is None:
            raise NotFound("Negocio no encontrado")
        return tenant

    def get_profile(self) -> Dict[str, Any]:
        tenant = self.get_tenant()
        total_users = self.db.execute(
            select(func.count(User.id)).where(User.tenant_id == tenant.id)
        ).scalar() or 0
        return {
            "id": tenant.id,
            "name": tenant.name,
            "slug": tenant.slug,
            "active": tenant.active,
            "suspended": tenant.suspended,
            "email": tenant.email,
            "phone": tenant.phone,
            "address": tenant.address,
            "total_clients": TenantScopedRepository(self.db, Client, tenant.id).count(),
            "total_users": total_users,
        }

    def update_profile(self, data: TenantProfileUpdate) -> Dict[str, Any]:
        tenant = self.get_tenant()
        for field, value in data.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(tenant, field, value)
        self.db.commit()
        logger.info(f"🏢 Profil du négocio {tenant.slug} mis à jour")
        return self.get_profile()


class ClientPortalService:
    """Ce que voit un utilisateur CLIENT de son propre négocio."""

    def __init__(self, db: Session, tenant_id: int, user_id: int):
        self.db = db
        self.tenant_id = tenant_id
        self.user_id = user_id

    def get_client(self) -> Optional[Client]:
        return self.db.execute(
            TenantScopedRepository(self.db, Client, self.tenant_id)
            .query()
            .where(Client.user_id == self.user_id)
        ).scalar_one_or_none()

    def my_appointments(self) -> List[Appointment]:
        """Citas de la fiche client liée au compte ; vide s'il n'y en a pas."""
        client = self.get_client()
        if client is None:
            return []
        stmt = (
            TenantScopedRepository(self.db, Appointment, self.tenant_id)
            .query()
            .where(Appointment.client_id == client.id)
            .order_by(Appointment.scheduled_date.desc(), Appointment.scheduled_time.desc())
        )
        return list(self.db.execute(stmt).scalars())

    def my_tenant(self) -> Tenant:
        tenant = self.db.get(Tenant, self.tenant_id)
        if tenant is None:
            raise NotFound("Negocio no encontrado")
        return tenant


# =============================================================================
# RAPPORTS
# =============================================================================

RECENT_APPOINTMENTS_PER_PATIENT = 10
TOP_CLIENTS_LIMIT = 5


def _weekday(day: date) -> int:
    """0 = dimanche ... 6 = samedi."""
    return day.isoweekday() % 7


def _day_bounds(date_from: Optional[date], date_to: Optional[date]) -> Tuple[Optional[datetime], Optional[datetime]]:
    """Bornes [début, fin) en UTC pour filtrer une colonne created_at."""
    start = datetime.combine(date_from, time.min, tzinfo=timezone.utc) if date_from else None
    end = datetime.combine(date_to + timedelta(days=1), time.min, tzinfo=timezone.utc) if date_to else None
    return start, end


class ReportService:
    """
    Statistiques et rapports d'un négocio.

    Les regroupements par jour de semaine et par mois sont faits en Python
    pour rester indépendants du moteur SQL.
    """

    def __init__(self, db: Session, tenant_id: int):
        self.db = db
        self.tenant_id = tenant_id
        self.appointments = TenantScopedRepository(db, Appointment, tenant_id)
        self.clients = TenantScopedRepository(db, Client, tenant_id)
        self.users = TenantScopedRepository(db, User, tenant_id, "Profesional no encontrado")

    @staticmethod
    def _check_range(date_from: Optional[date], date_to: Optional[date]) -> None:
        if date_from and date_to and date_from > date_to:
            raise ValidationError("fechaInicio debe ser anterior a fechaFin", codigo="RANGO_INVALIDO")

    def _appointments_between(self, date_from: Optional[date], date_to: Optional[date]) -> Select:
        stmt = self.appointments.query()
        if date_from:
            stmt = stmt.where(Appointment.scheduled_date >= date_from)
        if date_to:
            stmt = stmt.where(Appointment.scheduled_date <= date_to)
        return stmt

    def _created_between(self, model, date_from: Optional[date], date_to: Optional[date]) -> list:
        start, end = _day_bounds(date_from, date_to)
        criteria = []
        if start:
            criteria.append(model.created_at >= start)
        if end:
            criteria.append(model.created_at < end)
        return criteria

    # -------------------------------------------------------------------------
    # Statistiques avancées
    # -------------------------------------------------------------------------

    def advanced_stats(self, date_from: Optional[date] = None, date_to: Optional[date] = None) -> Dict[str, Any]:
        """
        Citas par jour de semaine, nouveaux clients par mois, top 5 des
        clients et durée moyenne des citas complétées.

        Raises:
            ValidationError: fechaInicio > fechaFin
        """
        self._check_range(date_from, date_to)
        appointments = self._appointments_between(date_from, date_to)

        by_weekday: Dict[int, Dict[str, int]] = defaultdict(lambda: {"total": 0, "completed": 0})
        rows = self.db.execute(
            appointments.with_only_columns(Appointment.scheduled_date, Appointment.status)
        ).all()
        for scheduled_date, appointment_status in rows:
            bucket = by_weekday[_weekday(scheduled_date)]
            bucket["total"] += 1
            if appointment_status == AppointmentStatus.COMPLETED:
                bucket["completed"] += 1

        created = self.db.execute(
            self.clients.query()
            .with_only_columns(Client.created_at)
            .where(*self._created_between(Client, date_from, date_to))
        ).scalars()
        by_month = Counter(created_at.strftime("%Y-%m") for created_at in created)

        counts = (
            appointments.with_only_columns(Appointment.client_id, func.count(Appointment.id).label("total"))
            .group_by(Appointment.client_id)
            .order_by(func.count(Appointment.id).desc(), Appointment.client_id)
            .limit(TOP_CLIENTS_LIMIT)
            .subquery()
        )
        top = self.db.execute(
            select(Client, counts.c.total)
            .join(counts, counts.c.client_id == Client.id)
            .order_by(counts.c.total.desc(), Client.id)
        ).all()

        average = self.db.execute(
            appointments.with_only_columns(func.avg(Appointment.duration_minutes))
            .where(Appointment.status == AppointmentStatus.COMPLETED)
        ).scalar()

        return {
            "appointments_by_weekday": [
                {"weekday": day, **by_weekday[day]} for day in sorted(by_weekday)
            ],
            "new_clients_by_month": [
                {"month": month, "total": by_month[month]} for month in sorted(by_month, reverse=True)
            ],
            "top_clients": [
                {
                    "id": client.id,
                    "first_name": client.first_name,
                    "last_name": client.last_name,
                    "email": client.email,
                    "total_appointments": total,
                }
                for client, total in top
            ],
            "average_duration": round(float(average), 2) if average is not None else 0,
        }

    # -------------------------------------------------------------------------
    # Rapport mensuel
    # -------------------------------------------------------------------------

    def monthly_report(self, month: int, year: int) -> Dict[str, Any]:
        first_day = date(year, month, 1)
        last_day = date(year, month, calendar.monthrange(year, month)[1])

        rows = self.db.execute(
            self._appointments_between(first_day, last_day)
            .with_only_columns(Appointment.scheduled_date, Appointment.status)
        ).all()
        by_day: Dict[date, Dict[str, int]] = defaultdict(lambda: {"total": 0, "completed": 0, "cancelled": 0})
        for scheduled_date, appointment_status in rows:
            bucket = by_day[scheduled_date]
            bucket["total"] += 1
            if appointment_status == AppointmentStatus.COMPLETED:
                bucket["completed"] += 1
            elif appointment_status == AppointmentStatus.CANCELLED:
                bucket["cancelled"] += 1

        def _created(model) -> int:
            return TenantScopedRepository(self.db, model, self.tenant_id).count(
                *self._created_between(model, first_day, last_day)
            )

        return {
            "period": {"month": month, "year": year, "start": first_day, "end": last_day},
            "summary": {
                "total_appointments": len(rows),
                "completed_appointments": sum(b["completed"] for b in by_day.values()),
                "cancelled_appointments": sum(b["cancelled"] for b in by_day.values()),
                "new_clients": _created(Client),
                "total_prescriptions": _created(Prescription),
                "total_documents": _created(Document),
            },
            "appointments_by_day": [{"day": day, **by_day[day]} for day in sorted(by_day)],
        }

    # -------------------------------------------------------------------------
    # Rapports par professionnel
    # -------------------------------------------------------------------------

    def practitioners(self) -> List[Dict[str, Any]]:
        """ADMIN actifs du négocio ayant au moins une cita assignée."""
        rows = self.db.execute(
            self.users.query()
            .add_columns(func.count(Appointment.id))
            .join(Appointment, Appointment.practitioner_id == User.id)
            .where(
                User.role == UserRole.ADMIN,
                User.active.is_(True),
                Appointment.tenant_id == self.tenant_id,
            )
            .group_by(User.id)
            .order_by(User.first_name, User.last_name)
        ).all()
        return [self._practitioner_summary(user, total) for user, total in rows]

    def patients_of(
            self,
            practitioner_id: int,
            date_from: Optional[date] = None,
            date_to: Optional[date] = None,
            only_completed: bool = False,
    ) -> Dict[str, Any]:
        """
        Patients vus par un professionnel, avec leurs dernières citas.

        Raises:
            NotFound: Professionnel absent, d'un autre négocio ou non ADMIN
            ValidationError: fechaInicio > fechaFin
        """
        self._check_range(date_from, date_to)
        practitioner = self.users.get(practitioner_id)
        if practitioner.role != UserRole.ADMIN:
            raise NotFound("Profesional no encontrado")

        stmt = (
            self._appointments_between(date_from, date_to)
            .options(selectinload(Appointment.client))
            .where(Appointment.practitioner_id == practitioner.id)
            .order_by(Appointment.scheduled_date.desc(), Appointment.scheduled_time.desc())
        )
        if only_completed:
            stmt = stmt.where(Appointment.status == AppointmentStatus.COMPLETED)

        patients: Dict[int, Dict[str, Any]] = {}
        total_appointments = 0
        for appointment in self.db.execute(stmt).scalars():
            total_appointments += 1
            client = appointment.client
            entry = patients.setdefault(client.id, {
                "id": client.id,
                "first_name": client.first_name,
                "last_name": client.last_name,
                "email": client.email,
                "phone": client.phone,
                "total_appointments": 0,
                "appointments": [],
            })
            entry["total_appointments"] += 1
            if len(entry["appointments"]) < RECENT_APPOINTMENTS_PER_PATIENT:
                entry["appointments"].append(appointment)

        ordered = sorted(
            patients.values(),
            key=lambda p: (p["first_name"].lower(), (p["last_name"] or "").lower()),
        )
        logger.info(
            f"📋 Rapport patients du professionnel {practitioner.id} : "
            f"{len(ordered)} patient(s), {total_appointments} cita(s)"
        )
        return {
            "practitioner": self._practitioner_summary(practitioner, total_appointments),
            "patients": ordered,
            "total_patients": len(ordered),
        }

    @staticmethod
    def _practitioner_summary(user: User, total: int) -> Dict[str, Any]:
        return {
            "id": user.id,
            "first_name": user.first_name,
            "last_name": user.last_name,
            "email": user.email,
            "total_appointments": total,
        }
