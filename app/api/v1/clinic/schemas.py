"""
Schémas Pydantic pour le module Clinique (données d'un négocio).

Contient les schémas pour :
- Client (+ recherche, expediente, statistiques)
- Appointment (cita)
- Prescription (receta)
- Document (métadonnées)
- ClientPayment (pago de cliente)
- Statistiques du tableau de bord
"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import EmailStr, Field

from app.api.v1.auth.schemas import TenantSummary
from app.api.v1.schemas import ApiSchema
from app.models.enums import AppointmentStatus, ClientPaymentStatus, PaymentMethod

HOUR_PATTERN = r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$"


# =============================================================================
# CLIENT
# =============================================================================

class ClientBase(ApiSchema):
    last_name: Optional[str] = Field(None, alias="apellido", max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, alias="telefono", max_length=30)
    birth_date: Optional[date] = Field(None, alias="fechaNacimiento")
    gender: Optional[str] = Field(None, alias="genero", max_length=20)
    address: Optional[str] = Field(None, alias="direccion")


class ClientCreate(ClientBase):
    first_name: str = Field(..., alias="nombre", min_length=2, max_length=100)


class ClientUpdate(ClientBase):
    first_name: Optional[str] = Field(None, alias="nombre", min_length=2, max_length=100)
    active: Optional[bool] = Field(None, alias="activo")


class ClientSummary(ApiSchema):
    id: int
    first_name: str = Field(..., alias="nombre")
    last_name: Optional[str] = Field(None, alias="apellido")


class ClientResponse(ClientBase):
    id: int
    tenant_id: int = Field(..., alias="negocioId")
    first_name: str = Field(..., alias="nombre")
    email: Optional[str] = None
    active: bool = Field(..., alias="activo")
    user_id: Optional[int] = Field(None, alias="usuarioId")
    created_at: datetime = Field(..., alias="createdAt")


class ClientStats(ApiSchema):
    total_appointments: int = Field(..., alias="totalCitas")
    completed_appointments: int = Field(..., alias="citasCompletadas")
    pending_appointments: int = Field(..., alias="citasPendientes")
    total_prescriptions: int = Field(..., alias="totalRecetas")
    total_paid: Decimal = Field(..., alias="totalPagado")
    last_appointment: Optional[date] = Field(None, alias="ultimaCita")


# =============================================================================
# APPOINTMENT (CITA)
# =============================================================================

class AppointmentCreate(ApiSchema):
    scheduled_date: date = Field(..., alias="fecha")
    scheduled_time: str = Field(..., alias="hora", pattern=HOUR_PATTERN, description="HH:MM")
    duration_minutes: int = Field(60, alias="duracion", ge=15, le=480)
    reason: str = Field(..., alias="motivo", min_length=1, max_length=255)
    client_id: int = Field(..., alias="clienteId")
    practitioner_id: Optional[int] = Field(None, alias="usuarioId", description="Profesional (ADMIN del negocio)")
    status: Optional[AppointmentStatus] = Field(None, alias="estado")
    notes: Optional[str] = Field(None, alias="notas")


class AppointmentUpdate(ApiSchema):
    scheduled_date: Optional[date] = Field(None, alias="fecha")
    scheduled_time: Optional[str] = Field(None, alias="hora", pattern=HOUR_PATTERN)
    duration_minutes: Optional[int] = Field(None, alias="duracion", ge=15, le=480)
    reason: Optional[str] = Field(None, alias="motivo", min_length=1, max_length=255)
    client_id: Optional[int] = Field(None, alias="clienteId")
    practitioner_id: Optional[int] = Field(None, alias="usuarioId")
    status: Optional[AppointmentStatus] = Field(None, alias="estado")
    notes: Optional[str] = Field(None, alias="notas")


class AppointmentResponse(ApiSchema):
    id: int
    tenant_id: int = Field(..., alias="negocioId")
    client_id: int = Field(..., alias="clienteId")
    practitioner_id: Optional[int] = Field(None, alias="usuarioId")
    scheduled_date: date = Field(..., alias="fecha")
    scheduled_time: str = Field(..., alias="hora")
    duration_minutes: int = Field(..., alias="duracion")
    reason: str = Field(..., alias="motivo")
    status: AppointmentStatus = Field(..., alias="estado")
    notes: Optional[str] = Field(None, alias="notas")
    client: Optional[ClientSummary] = Field(None, alias="cliente")
    created_at: datetime = Field(..., alias="createdAt")


# =============================================================================
# PRESCRIPTION (RECETA)
# =============================================================================

class PrescriptionCreate(ApiSchema):
    content: str = Field(..., alias="contenido", min_length=10)
    client_id: int = Field(..., alias="clienteId")
    appointment_id: Optional[int] = Field(None, alias="citaId")


class PrescriptionUpdate(ApiSchema):
    content: Optional[str] = Field(None, alias="contenido", min_length=10)
    appointment_id: Optional[int] = Field(None, alias="citaId")


class PrescriptionResponse(ApiSchema):
    id: int
    tenant_id: int = Field(..., alias="negocioId")
    client_id: int = Field(..., alias="clienteId")
    appointment_id: Optional[int] = Field(None, alias="citaId")
    content: str = Field(..., alias="contenido")
    client: Optional[ClientSummary] = Field(None, alias="cliente")
    created_at: datetime = Field(..., alias="createdAt")


# =============================================================================
# DOCUMENT
# =============================================================================

class DocumentCreate(ApiSchema):
    client_id: int = Field(..., alias="clienteId")
    name: str = Field(..., alias="nombre", min_length=1, max_length=255)
    doc_type: str = Field("OTRO", alias="tipo", max_length=50)
    url: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = Field(None, alias="descripcion")


class DocumentResponse(ApiSchema):
    id: int
    tenant_id: int = Field(..., alias="negocioId")
    client_id: int = Field(..., alias="clienteId")
    name: str = Field(..., alias="nombre")
    doc_type: str = Field(..., alias="tipo")
    url: Optional[str] = None
    description: Optional[str] = Field(None, alias="descripcion")
    created_at: datetime = Field(..., alias="createdAt")


# =============================================================================
# CLIENT PAYMENT
# =============================================================================

class ClientPaymentCreate(ApiSchema):
    client_id: int = Field(..., alias="clienteId")
    appointment_id: Optional[int] = Field(None, alias="citaId")
    amount: Decimal = Field(..., alias="monto", gt=0, max_digits=10, decimal_places=2)
    concept: str = Field(..., alias="concepto", min_length=1, max_length=255)
    method: PaymentMethod = Field(PaymentMethod.CASH, alias="metodo")
    status: ClientPaymentStatus = Field(ClientPaymentStatus.PENDING, alias="estado")
    reference: Optional[str] = Field(None, alias="referencia", max_length=120)
    paid_at: Optional[datetime] = Field(None, alias="fechaPago")


class ClientPaymentUpdate(ApiSchema):
    amount: Optional[Decimal] = Field(None, alias="monto", gt=0, max_digits=10, decimal_places=2)
    concept: Optional[str] = Field(None, alias="concepto", min_length=1, max_length=255)
    method: Optional[PaymentMethod] = Field(None, alias="metodo")
    status: Optional[ClientPaymentStatus] = Field(None, alias="estado")
    reference: Optional[str] = Field(None, alias="referencia", max_length=120)
    paid_at: Optional[datetime] = Field(None, alias="fechaPago")


class ClientPaymentResponse(ApiSchema):
    id: int
    tenant_id: int = Field(..., alias="negocioId")
    client_id: int = Field(..., alias="clienteId")
    appointment_id: Optional[int] = Field(None, alias="citaId")
    amount: Decimal = Field(..., alias="monto")
    currency: str = Field(..., alias="moneda")
    concept: str = Field(..., alias="concepto")
    method: PaymentMethod = Field(..., alias="metodo")
    status: ClientPaymentStatus = Field(..., alias="estado")
    reference: Optional[str] = Field(None, alias="referencia")
    paid_at: Optional[datetime] = Field(None, alias="fechaPago")
    client: Optional[ClientSummary] = Field(None, alias="cliente")
    created_at: datetime = Field(..., alias="createdAt")


# =============================================================================
# EXPEDIENTE / STATISTIQUES
# =============================================================================

class ClientRecord(ApiSchema):
    """Dossier complet d'un client."""
    client: ClientResponse = Field(..., alias="cliente")
    appointments: List[AppointmentResponse] = Field(default_factory=list, alias="citas")
    prescriptions: List[PrescriptionResponse] = Field(default_factory=list, alias="recetas")
    documents: List[DocumentResponse] = Field(default_factory=list, alias="documentos")
    payments: List[ClientPaymentResponse] = Field(default_factory=list, alias="pagos")


class DashboardStats(ApiSchema):
    """Statistiques d'un négocio."""
    is_global: bool = Field(False, alias="global")
    tenant_id: int = Field(..., alias="negocioId")
    total_clients: int = Field(..., alias="totalClientes")
    total_appointments: int = Field(..., alias="totalCitas")
    appointments_today: int = Field(..., alias="citasHoy")
    pending_appointments: int = Field(..., alias="citasPendientes")
    month_income: Decimal = Field(..., alias="ingresosMes")
    recent_documents: int = Field(..., alias="documentosRecientes")


class GlobalStats(ApiSchema):
    """Agrégat plateforme présenté à un SUPERADMIN sans négocio sélectionné."""
    is_global: bool = Field(True, alias="global")
    total_tenants: int = Field(..., alias="totalNegocios")
    active_tenants: int = Field(..., alias="negociosActivos")
    suspended_tenants: int = Field(..., alias="negociosSuspendidos")
    total_users: int = Field(..., alias="totalUsuarios")
    total_clients: int = Field(..., alias="totalClientes")
    total_appointments: int = Field(..., alias="totalCitas")
    tenants: List[TenantSummary] = Field(default_factory=list, alias="negocios")
