"""
Schémas Pydantic pour le module Plateforme (/superadmin).

Contient les schémas pour :
- Négocios (tenants) : CRUD, suspension, activation, statistiques
- Paiements d'abonnement : liste, paiement manuel, mise à jour de statut
- Utilisateurs : CRUD et blocage
- Statistiques globales, activité récente, révision des paiements
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import EmailStr, Field, model_validator

from app.api.v1.auth.schemas import TenantSummary
from app.api.v1.schemas import ApiSchema
from app.core.timeutils import ensure_utc
from app.models.enums import AppointmentStatus, SubscriptionPaymentStatus, UserRole

SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


# =============================================================================
# NEGOCIOS (TENANTS)
# =============================================================================

class TenantCreate(ApiSchema):
    """Création d'un négocio par un SUPERADMIN (slug dérivé du nom si absent)."""
    name: str = Field(..., alias="nombre", min_length=2, max_length=255)
    slug: Optional[str] = Field(None, min_length=3, max_length=100, pattern=SLUG_PATTERN)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, alias="telefono", max_length=30)
    address: Optional[str] = Field(None, alias="direccion")


class TenantUpdate(ApiSchema):
    name: Optional[str] = Field(None, alias="nombre", min_length=2, max_length=255)
    slug: Optional[str] = Field(None, min_length=3, max_length=100, pattern=SLUG_PATTERN)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, alias="telefono", max_length=30)
    address: Optional[str] = Field(None, alias="direccion")


class TenantSuspendRequest(ApiSchema):
    suspended: bool = Field(..., alias="suspendido")
    reason: Optional[str] = Field(None, alias="motivo", max_length=500)


class TenantActivateRequest(ApiSchema):
    active: bool = Field(..., alias="activo")


class TenantCounts(ApiSchema):
    users: int = Field(0, alias="usuarios")
    clients: int = Field(0, alias="clientes")
    appointments: int = Field(0, alias="citas")
    subscription_payments: int = Field(0, alias="pagosSistema")


class TenantResponse(TenantSummary):
    """Négocio vu par la plateforme."""
    suspension_reason: Optional[str] = Field(None, alias="motivoSuspension")
    suspended_at: Optional[datetime] = Field(None, alias="suspendidoEn")
    standing: Optional[str] = Field(None, alias="situacion")
    counts: Optional[TenantCounts] = Field(None, alias="conteos")
    created_at: datetime = Field(..., alias="createdAt")


class TenantSuspendResponse(TenantResponse):
    warning: Optional[str] = Field(None, alias="advertencia")


class TenantStats(ApiSchema):
    total_clients: int = Field(..., alias="totalClientes")
    total_appointments: int = Field(..., alias="totalCitas")
    appointments_today: int = Field(..., alias="citasHoy")
    month_income: Decimal = Field(..., alias="ingresosMes")
    active_users: int = Field(..., alias="usuariosActivos")
    standing: str = Field(..., alias="situacion")


# =============================================================================
# PAGOS DE SUSCRIPCIÓN
# =============================================================================

class ManualPaymentCreate(ApiSchema):
    """Paiement manuel : toujours enregistré comme PAID."""
    tenant_id: int = Field(..., alias="negocioId")
    amount: Decimal = Field(..., alias="monto", gt=0, max_digits=10, decimal_places=2)
    currency: Optional[str] = Field(None, alias="moneda", min_length=3, max_length=3)
    method: str = Field(..., alias="metodo", min_length=1, max_length=50)
    reference: Optional[str] = Field(None, alias="referencia", max_length=120)
    period_start: datetime = Field(..., alias="fechaInicio")
    period_end: datetime = Field(..., alias="fechaFin")

    @model_validator(mode="after")
    def check_period(self):
        if ensure_utc(self.period_end) <= ensure_utc(self.period_start):
            raise ValueError("fechaFin debe ser posterior a fechaInicio")
        return self


class SubscriptionPaymentUpdate(ApiSchema):
    status: Optional[SubscriptionPaymentStatus] = Field(None, alias="estado")
    method: Optional[str] = Field(None, alias="metodo", max_length=50)
    reference: Optional[str] = Field(None, alias="referencia", max_length=120)


class SubscriptionPaymentResponse(ApiSchema):
    id: int
    tenant_id: int = Field(..., alias="negocioId")
    amount: Decimal = Field(..., alias="monto")
    currency: str = Field(..., alias="moneda")
    period_start: datetime = Field(..., alias="fechaInicio")
    period_end: datetime = Field(..., alias="fechaFin")
    status: SubscriptionPaymentStatus = Field(..., alias="estado")
    method: Optional[str] = Field(None, alias="metodo")
    reference: Optional[str] = Field(None, alias="referencia")
    tenant: Optional[TenantSummary] = Field(None, alias="negocio")
    created_at: datetime = Field(..., alias="createdAt")


# =============================================================================
# USUARIOS
# =============================================================================

class PlatformUserCreate(ApiSchema):
    email: EmailStr
    password: str = Field(..., min_length=6)
    first_name: str = Field(..., alias="nombre", min_length=2, max_length=100)
    last_name: Optional[str] = Field(None, alias="apellido", max_length=100)
    phone: Optional[str] = Field(None, alias="telefono", max_length=30)
    role: UserRole = Field(UserRole.ADMIN, alias="rol")
    tenant_id: Optional[int] = Field(None, alias="negocioId", description="Obligatoire sauf pour SUPERADMIN")


class PlatformUserUpdate(ApiSchema):
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=6)
    first_name: Optional[str] = Field(None, alias="nombre", min_length=2, max_length=100)
    last_name: Optional[str] = Field(None, alias="apellido", max_length=100)
    phone: Optional[str] = Field(None, alias="telefono", max_length=30)
    role: Optional[UserRole] = Field(None, alias="rol")
    tenant_id: Optional[int] = Field(None, alias="negocioId")
    active: Optional[bool] = Field(None, alias="activo")


class UserBlockRequest(ApiSchema):
    """Sans `bloqueado`, le blocage est basculé."""
    blocked: Optional[bool] = Field(None, alias="bloqueado")


# =============================================================================
# STATISTIQUES / ACTIVITÉ / RÉVISION
# =============================================================================

class PlatformStats(ApiSchema):
    total_tenants: int = Field(..., alias="totalNegocios")
    active_tenants: int = Field(..., alias="negociosActivos")
    suspended_tenants: int = Field(..., alias="negociosSuspendidos")
    total_users: int = Field(..., alias="totalUsuarios")
    total_appointments: int = Field(..., alias="totalCitas")
    total_income: Decimal = Field(..., alias="totalIngresos")
    pending_payments: int = Field(..., alias="pagosPendientes")
    expired_payments: int = Field(..., alias="pagosVencidos")
    tenants_last_30_days: int = Field(..., alias="negociosUltimos30Dias")


class ActivityAppointment(ApiSchema):
    id: int
    scheduled_date: date = Field(..., alias="fecha")
    scheduled_time: str = Field(..., alias="hora")
    reason: str = Field(..., alias="motivo")
    status: AppointmentStatus = Field(..., alias="estado")
    tenant_id: int = Field(..., alias="negocioId")
    created_at: datetime = Field(..., alias="createdAt")


class ActivityUser(ApiSchema):
    id: int
    email: str
    first_name: str = Field(..., alias="nombre")
    last_name: Optional[str] = Field(None, alias="apellido")
    role: UserRole = Field(..., alias="rol")
    tenant: Optional[TenantSummary] = Field(None, alias="negocio")
    created_at: datetime = Field(..., alias="createdAt")


class PlatformActivity(ApiSchema):
    appointments: List[ActivityAppointment] = Field(default_factory=list, alias="citas")
    payments: List[SubscriptionPaymentResponse] = Field(default_factory=list, alias="pagos")
    users: List[ActivityUser] = Field(default_factory=list, alias="usuarios")


class ReviewSummaryResponse(ApiSchema):
    ran_at: datetime = Field(..., alias="ejecutadoEn")
    expired_payments: int = Field(..., alias="pagosVencidos")
    suspended_tenants: int = Field(..., alias="negociosSuspendidos")
    suspended_tenant_ids: List[int] = Field(default_factory=list, alias="negociosSuspendidosIds")
    status_counts: Dict[str, int] = Field(default_factory=dict, alias="pagosPorEstado")
    amount_by_status: Dict[str, Decimal] = Field(default_factory=dict, alias="montoPorEstado")


class PaymentStatusTotal(ApiSchema):
    """Agrégat d'un statut de paiement : nombre de lignes et montant cumulé."""
    total: int
    amount: Decimal = Field(..., alias="monto")


class ReviewRunResponse(ApiSchema):
    message: str
    timestamp: datetime
    summary: ReviewSummaryResponse = Field(..., alias="resumen")
