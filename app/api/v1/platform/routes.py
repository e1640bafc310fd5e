"""
Routes API pour le module Plateforme.

Gestion au niveau plateforme (SUPERADMIN) :
- /superadmin/stats, /superadmin/actividad : Statistiques et activité récente
- /superadmin/negocios : CRUD, suspension, activation, statistiques par négocio
- /superadmin/pagos : Paiements d'abonnement (liste, résumé par statut, paiement manuel, statut)
- /superadmin/usuarios : CRUD et blocage des utilisateurs
- /superadmin/revisar-pagos : Exécution immédiate de la révision des paiements

IMPORTANT: Toutes ces routes nécessitent le rôle SUPERADMIN (portée plateforme).
"""
from typing import Dict, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.auth.policy import Operation
from app.core.auth.user_auth import require
from app.core.tenant_context import RequestContext
from app.core.timeutils import utcnow
from app.database.session import get_db
from app.jobs.payment_review import PaymentReviewJob
from app.models.enums import SubscriptionPaymentStatus, UserRole

from app.api.v1.auth.schemas import UserResponse
from app.api.v1.dependencies import PaginationParams
from app.api.v1.platform.schemas import (
    # Négocio
    TenantCreate, TenantUpdate, TenantResponse, TenantSuspendRequest,
    TenantSuspendResponse, TenantActivateRequest, TenantStats,
    # Pagos
    ManualPaymentCreate, SubscriptionPaymentUpdate, SubscriptionPaymentResponse,
    # Usuarios
    PlatformUserCreate, PlatformUserUpdate, UserBlockRequest,
    # Stats
    PlatformStats, PlatformActivity, ReviewRunResponse, ReviewSummaryResponse, PaymentStatusTotal,
)
from app.api.v1.platform.services import (
    PlatformStatsService,
    PlatformUserService,
    SubscriptionPaymentService,
    TenantService,
)
from app.api.v1.schemas import MessageResponse, paginated_response

# =============================================================================
# ROUTER
# =============================================================================

router = APIRouter(prefix="/superadmin", tags=["Plateforme"])


# =============================================================================
# STATISTIQUES
# =============================================================================

@router.get("/stats", response_model=PlatformStats)
def get_platform_stats(
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.PLATFORM_STATS)),
):
    """Statistiques globales de la plateforme."""
    return PlatformStats.model_validate(PlatformStatsService(db).get_platform_stats())


@router.get("/actividad", response_model=PlatformActivity)
def get_recent_activity(
        limit: int = Query(10, ge=1, le=50),
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.PLATFORM_ACTIVITY)),
):
    """Dernières citas, paiements et inscriptions."""
    return PlatformActivity.model_validate(PlatformStatsService(db).get_recent_activity(limit))


# =============================================================================
# NEGOCIOS
# =============================================================================

@router.get("/negocios")
def list_tenants(
        pagination: PaginationParams = Depends(),
        search: Optional[str] = Query(None, description="Nom, email ou slug"),
        active: Optional[bool] = Query(None, alias="activo"),
        suspended: Optional[bool] = Query(None, alias="suspendido"),
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.PLATFORM_TENANT_READ)),
):
    service = TenantService(db)
    page = service.get_all(
        page=pagination.page,
        limit=pagination.limit,
        search=search,
        active=active,
        suspended=suspended,
    )
    return paginated_response(
        page,
        TenantResponse,
        serializer=lambda tenant: TenantResponse.model_validate(service.describe(tenant)),
    )


@router.get("/negocios/{tenant_id}", response_model=TenantResponse)
def get_tenant(
        tenant_id: int,
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.PLATFORM_TENANT_READ)),
):
    service = TenantService(db)
    return TenantResponse.model_validate(service.describe(service.get_by_id(tenant_id)))


@router.post("/negocios", response_model=TenantResponse, status_code=status.HTTP_201_CREATED)
def create_tenant(
        data: TenantCreate,
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.PLATFORM_TENANT_MANAGE)),
):
    service = TenantService(db)
    return TenantResponse.model_validate(service.describe(service.create(data)))


@router.put("/negocios/{tenant_id}", response_model=TenantResponse)
def update_tenant(
        tenant_id: int,
        data: TenantUpdate,
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.PLATFORM_TENANT_MANAGE)),
):
    service = TenantService(db)
    return TenantResponse.model_validate(service.describe(service.update(tenant_id, data)))


@router.delete("/negocios/{tenant_id}", response_model=MessageResponse)
def delete_tenant(
        tenant_id: int,
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.PLATFORM_TENANT_MANAGE)),
):
    """Suppression définitive du négocio et de toutes ses données."""
    TenantService(db).delete(tenant_id)
    return MessageResponse(message="Negocio eliminado correctamente")


@router.patch("/negocios/{tenant_id}/suspender", response_model=TenantSuspendResponse)
def suspend_tenant(
        tenant_id: int,
        data: TenantSuspendRequest,
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.PLATFORM_TENANT_SUSPEND)),
):
    """
    Pose ou lève la suspension.

    La levée reste possible pour un négocio encore en défaut ;
    la réponse porte alors `advertencia`.
    """
    service = TenantService(db)
    tenant, warning = service.set_suspended(tenant_id, data.suspended, data.reason)
    return TenantSuspendResponse.model_validate({**service.describe(tenant), "warning": warning})


@router.patch("/negocios/{tenant_id}/activar", response_model=TenantResponse)
def activate_tenant(
        tenant_id: int,
        data: TenantActivateRequest,
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.PLATFORM_TENANT_SUSPEND)),
):
    service = TenantService(db)
    return TenantResponse.model_validate(service.describe(service.set_active(tenant_id, data.active)))


@router.get("/negocios/{tenant_id}/stats", response_model=TenantStats)
def get_tenant_stats(
        tenant_id: int,
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.PLATFORM_TENANT_READ)),
):
    return TenantStats.model_validate(TenantService(db).get_stats(tenant_id))


# =============================================================================
# PAGOS DE SUSCRIPCIÓN
# =============================================================================

@router.get("/pagos")
def list_subscription_payments(
        pagination: PaginationParams = Depends(),
        tenant_id: Optional[int] = Query(None, alias="negocioId"),
        payment_status: Optional[SubscriptionPaymentStatus] = Query(None, alias="estado"),
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.PLATFORM_PAYMENT_READ)),
):
    page = SubscriptionPaymentService(db).get_all(
        page=pagination.page,
        limit=pagination.limit,
        tenant_id=tenant_id,
        status=payment_status,
    )
    return paginated_response(page, SubscriptionPaymentResponse)


@router.get("/pagos/resumen", response_model=Dict[str, PaymentStatusTotal])
def get_subscription_payment_summary(
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.PLATFORM_PAYMENT_READ)),
):
    """Nombre de paiements et montant cumulé par statut (toute la plateforme)."""
    return PaymentReviewJob(db).status_totals()


@router.post("/pagos", response_model=SubscriptionPaymentResponse, status_code=status.HTTP_201_CREATED)
def create_manual_payment(
        data: ManualPaymentCreate,
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.PLATFORM_PAYMENT_MANAGE)),
):
    """Paiement manuel, enregistré directement comme PAID."""
    return SubscriptionPaymentService(db).create_manual(data)


@router.put("/pagos/{payment_id}", response_model=SubscriptionPaymentResponse)
def update_subscription_payment(
        payment_id: int,
        data: SubscriptionPaymentUpdate,
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.PLATFORM_PAYMENT_MANAGE)),
):
    """Statut : PENDING → PAID/REJECTED/EXPIRED, ou tout statut → EXPIRED."""
    return SubscriptionPaymentService(db).update(payment_id, data)


@router.post("/revisar-pagos", response_model=ReviewRunResponse)
def run_payment_review(
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.PAYMENT_REVIEW_RUN)),
):
    """Exécute immédiatement la révision des paiements (même traitement que la tâche planifiée)."""
    summary = PaymentReviewJob(db).run()
    return ReviewRunResponse(
        message="Revisión de pagos ejecutada correctamente",
        timestamp=utcnow(),
        summary=ReviewSummaryResponse.model_validate(summary.to_dict()),
    )


# =============================================================================
# USUARIOS
# =============================================================================

@router.get("/usuarios")
def list_users(
        pagination: PaginationParams = Depends(),
        search: Optional[str] = Query(None),
        role: Optional[UserRole] = Query(None, alias="rol"),
        tenant_id: Optional[int] = Query(None, alias="negocioId"),
        active: Optional[bool] = Query(None, alias="activo"),
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.PLATFORM_USER_READ)),
):
    page = PlatformUserService(db).get_all(
        page=pagination.page,
        limit=pagination.limit,
        search=search,
        role=role,
        tenant_id=tenant_id,
        active=active,
    )
    return paginated_response(page, UserResponse)


@router.get("/usuarios/{user_id}", response_model=UserResponse)
def get_user(
        user_id: int,
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.PLATFORM_USER_READ)),
):
    return PlatformUserService(db).get_by_id(user_id)


@router.post("/usuarios", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
        data: PlatformUserCreate,
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.PLATFORM_USER_MANAGE)),
):
    return PlatformUserService(db).create(data)


@router.put("/usuarios/{user_id}", response_model=UserResponse)
def update_user(
        user_id: int,
        data: PlatformUserUpdate,
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.PLATFORM_USER_MANAGE)),
):
    return PlatformUserService(db).update(user_id, data)


@router.patch("/usuarios/{user_id}/bloquear", response_model=UserResponse)
def block_user(
        user_id: int,
        data: Optional[UserBlockRequest] = Body(None),
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.PLATFORM_USER_MANAGE)),
):
    """Bloque/débloque le compte ; sans corps, bascule l'état actuel."""
    blocked = data.blocked if data else None
    return PlatformUserService(db).set_blocked(user_id, blocked, acting_user_id=ctx.user_id)


@router.delete("/usuarios/{user_id}", response_model=MessageResponse)
def delete_user(
        user_id: int,
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.PLATFORM_USER_MANAGE)),
):
    PlatformUserService(db).delete(user_id, acting_user_id=ctx.user_id)
    return MessageResponse(message="Usuario eliminado correctamente")
