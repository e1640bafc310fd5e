"""
Routes du module Négocio.

- GET/PUT /negocio/perfil             : profil du négocio (ADMIN, ou SUPERADMIN avec négocio sélectionné)
- GET     /negocio/estadisticas       : statistiques avancées sur une période
- GET     /negocio/reporte-mensual    : rapport d'un mois (citas, clients, recetas, documents)
- GET     /negocio/reportes/doctores  : professionnels ayant des citas assignées
- GET     /negocio/reportes/pacientes : patients d'un professionnel
- GET     /negocio/mis-citas          : citas du client connecté (CLIENT)
- GET     /negocio/mi-negocio         : informations publiques de son négocio (CLIENT)
"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.auth.policy import Operation
from app.core.auth.user_auth import require
from app.core.tenant_context import RequestContext
from app.core.timeutils import utcnow
from app.database.session import get_db

from app.api.v1.auth.schemas import TenantSummary
from app.api.v1.business.schemas import (
    BusinessStats,
    MonthlyReport,
    PractitionerPatientsReport,
    PractitionerSummary,
    TenantProfile,
    TenantProfileUpdate,
)
from app.api.v1.business.services import BusinessProfileService, ClientPortalService, ReportService
from app.api.v1.clinic.schemas import AppointmentResponse

router = APIRouter(prefix="/negocio", tags=["Négocio"])


@router.get("/perfil", response_model=TenantProfile)
def get_business_profile(
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.TENANT_PROFILE_READ)),
):
    return BusinessProfileService(db, ctx.require_tenant()).get_profile()


@router.put("/perfil", response_model=TenantProfile)
def update_business_profile(
        data: TenantProfileUpdate,
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.TENANT_PROFILE_UPDATE)),
):
    return BusinessProfileService(db, ctx.require_tenant()).update_profile(data)


# =============================================================================
# RAPPORTS
# =============================================================================

@router.get("/estadisticas", response_model=BusinessStats)
def get_business_stats(
        date_from: Optional[date] = Query(None, alias="fechaInicio"),
        date_to: Optional[date] = Query(None, alias="fechaFin"),
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.REPORT_STATS)),
):
    return ReportService(db, ctx.require_tenant()).advanced_stats(date_from, date_to)


@router.get("/reporte-mensual", response_model=MonthlyReport)
def get_monthly_report(
        month: Optional[int] = Query(None, alias="mes", ge=1, le=12),
        year: Optional[int] = Query(None, alias="año", ge=2000, le=2100),
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.REPORT_MONTHLY)),
):
    """Mois courant par défaut."""
    today = utcnow().date()
    return ReportService(db, ctx.require_tenant()).monthly_report(month or today.month, year or today.year)


@router.get("/reportes/doctores", response_model=list[PractitionerSummary])
def list_report_practitioners(
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.REPORT_PRACTITIONERS)),
):
    return ReportService(db, ctx.require_tenant()).practitioners()


@router.get("/reportes/pacientes", response_model=PractitionerPatientsReport)
def get_practitioner_patients(
        practitioner_id: int = Query(..., alias="doctorId"),
        date_from: Optional[date] = Query(None, alias="fechaInicio"),
        date_to: Optional[date] = Query(None, alias="fechaFin"),
        only_completed: bool = Query(False, alias="soloCompletadas"),
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.REPORT_PRACTITIONERS)),
):
    return ReportService(db, ctx.require_tenant()).patients_of(
        practitioner_id, date_from=date_from, date_to=date_to, only_completed=only_completed,
    )


# =============================================================================
# PORTAIL CLIENT
# =============================================================================

@router.get("/mis-citas", response_model=list[AppointmentResponse])
def my_appointments(
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.PORTAL_APPOINTMENTS_READ)),
):
    return ClientPortalService(db, ctx.require_tenant(), ctx.user_id).my_appointments()


@router.get("/mi-negocio", response_model=TenantSummary)
def my_business(
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.PORTAL_TENANT_READ)),
):
    return ClientPortalService(db, ctx.require_tenant(), ctx.user_id).my_tenant()
