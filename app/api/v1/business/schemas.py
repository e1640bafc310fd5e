"""Schémas du module Négocio (profil, rapports et portail client)."""

from datetime import date
from typing import List, Optional

from pydantic import EmailStr, Field

from app.api.v1.auth.schemas import TenantSummary
from app.api.v1.clinic.schemas import AppointmentResponse
from app.api.v1.schemas import ApiSchema


class TenantProfileUpdate(ApiSchema):
    """Champs modifiables par l'ADMIN du négocio (slug et drapeaux exclus)."""
    name: Optional[str] = Field(None, alias="nombre", min_length=2, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, alias="telefono", max_length=30)
    address: Optional[str] = Field(None, alias="direccion")


class TenantProfile(TenantSummary):
    total_clients: int = Field(0, alias="totalClientes")
    total_users: int = Field(0, alias="totalUsuarios")


# =============================================================================
# STATISTIQUES AVANCÉES
# =============================================================================

class WeekdayStat(ApiSchema):
    """Jour de semaine : 0 = dimanche ... 6 = samedi."""
    weekday: int = Field(..., alias="diaSemana", ge=0, le=6)
    total: int = Field(..., alias="totalCitas")
    completed: int = Field(..., alias="citasCompletadas")


class MonthlyNewClients(ApiSchema):
    month: str = Field(..., alias="mes", description="YYYY-MM")
    total: int


class TopClient(ApiSchema):
    id: int
    first_name: str = Field(..., alias="nombre")
    last_name: Optional[str] = Field(None, alias="apellido")
    email: Optional[str] = None
    total_appointments: int = Field(..., alias="totalCitas")


class BusinessStats(ApiSchema):
    appointments_by_weekday: List[WeekdayStat] = Field(default_factory=list, alias="citasPorDiaSemana")
    new_clients_by_month: List[MonthlyNewClients] = Field(default_factory=list, alias="clientesNuevosPorMes")
    top_clients: List[TopClient] = Field(default_factory=list, alias="topClientes")
    average_duration: float = Field(0, alias="duracionPromedio", description="Minutos, citas completadas")


# =============================================================================
# RAPPORT MENSUEL
# =============================================================================

class ReportPeriod(ApiSchema):
    month: int = Field(..., alias="mes")
    year: int = Field(..., alias="año")
    start: date = Field(..., alias="fechaInicio")
    end: date = Field(..., alias="fechaFin")


class MonthlySummary(ApiSchema):
    total_appointments: int = Field(..., alias="totalCitas")
    completed_appointments: int = Field(..., alias="citasCompletadas")
    cancelled_appointments: int = Field(..., alias="citasCanceladas")
    new_clients: int = Field(..., alias="clientesNuevos")
    total_prescriptions: int = Field(..., alias="totalRecetas")
    total_documents: int = Field(..., alias="totalDocumentos")


class DailyAppointments(ApiSchema):
    day: date = Field(..., alias="fecha")
    total: int
    completed: int = Field(..., alias="completadas")
    cancelled: int = Field(..., alias="canceladas")


class MonthlyReport(ApiSchema):
    period: ReportPeriod = Field(..., alias="periodo")
    summary: MonthlySummary = Field(..., alias="resumen")
    appointments_by_day: List[DailyAppointments] = Field(default_factory=list, alias="citasPorDia")


# =============================================================================
# RAPPORTS PAR PROFESSIONNEL
# =============================================================================

class PractitionerSummary(ApiSchema):
    id: int
    first_name: str = Field(..., alias="nombre")
    last_name: Optional[str] = Field(None, alias="apellido")
    email: str
    total_appointments: int = Field(0, alias="totalCitas")


class PatientReportEntry(ApiSchema):
    id: int
    first_name: str = Field(..., alias="nombre")
    last_name: Optional[str] = Field(None, alias="apellido")
    email: Optional[str] = None
    phone: Optional[str] = Field(None, alias="telefono")
    total_appointments: int = Field(..., alias="totalCitas")
    appointments: List[AppointmentResponse] = Field(default_factory=list, alias="citas")


class PractitionerPatientsReport(ApiSchema):
    practitioner: PractitionerSummary = Field(..., alias="profesional")
    patients: List[PatientReportEntry] = Field(default_factory=list, alias="pacientes")
    total_patients: int = Field(..., alias="totalPacientes")
