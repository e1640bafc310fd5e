"""
Routes FastAPI pour le module Clinique (espace /admin d'un négocio).

Endpoints pour :
- /admin/stats : Tableau de bord (négocio, ou agrégat plateforme)
- /admin/clientes : Clients (+ recherche, expediente, statistiques)
- /admin/citas : Citas
- /admin/recetas : Recetas
- /admin/documentos : Documents
- /admin/pagos-cliente : Paiements des clients

Version multi-tenant : le tenant effectif est résolu par require(Operation.X) ;
un SUPERADMIN le choisit via X-Tenant-Id ou ?tenant_id=.
"""
from datetime import date
from typing import Optional, Union

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.auth.policy import Operation
from app.core.auth.user_auth import require
from app.core.tenant_context import RequestContext
from app.database.session import get_db
from app.models.enums import AppointmentStatus, ClientPaymentStatus, PaymentMethod

from app.api.v1.clinic.schemas import (
    # Client
    ClientCreate, ClientUpdate, ClientResponse, ClientStats, ClientRecord,
    # Appointment
    AppointmentCreate, AppointmentUpdate, AppointmentResponse,
    # Prescription
    PrescriptionCreate, PrescriptionUpdate, PrescriptionResponse,
    # Document
    DocumentCreate, DocumentResponse,
    # ClientPayment
    ClientPaymentCreate, ClientPaymentUpdate, ClientPaymentResponse,
    # Stats
    DashboardStats, GlobalStats,
)
from app.api.v1.clinic.services import (
    AppointmentService,
    ClientPaymentService,
    ClientService,
    DashboardService,
    DocumentService,
    PrescriptionService,
)
from app.api.v1.dependencies import PaginationParams
from app.api.v1.schemas import MessageResponse, paginated_response

router = APIRouter(prefix="/admin", tags=["Clinique"])


# =============================================================================
# TABLEAU DE BORD
# =============================================================================

@router.get("/stats", response_model=Union[DashboardStats, GlobalStats])
def get_dashboard_stats(
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.DASHBOARD_STATS)),
):
    """
    Statistiques du négocio effectif.

    Un SUPERADMIN sans négocio sélectionné reçoit l'agrégat plateforme (global=true).
    """
    service = DashboardService(db)
    if ctx.tenant_id is None:
        return GlobalStats.model_validate(service.platform_rollup())
    return DashboardStats.model_validate(service.tenant_stats(ctx.tenant_id))


# =============================================================================
# CLIENTES
# =============================================================================

@router.get("/clientes")
def list_clients(
        pagination: PaginationParams = Depends(),
        search: Optional[str] = Query(None, description="Nom, email ou téléphone"),
        active: Optional[bool] = Query(None, alias="activo"),
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.CLIENT_READ)),
):
    """Liste paginée des clients du négocio."""
    page = ClientService(db, ctx.require_tenant()).get_all(
        page=pagination.page, limit=pagination.limit, search=search, active=active
    )
    return paginated_response(page, ClientResponse)


@router.get("/clientes/buscar", response_model=list[ClientResponse])
def search_clients(
        q: str = Query(..., description="Texte recherché (min 2 caractères)"),
        limit: int = Query(10, ge=1, le=50),
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.CLIENT_READ)),
):
    return ClientService(db, ctx.require_tenant()).search(q, limit=limit)


@router.get("/clientes/{client_id}", response_model=ClientResponse)
def get_client(
        client_id: int,
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.CLIENT_READ)),
):
    return ClientService(db, ctx.require_tenant()).get_by_id(client_id)


@router.get("/clientes/{client_id}/expediente", response_model=ClientRecord)
def get_client_record(
        client_id: int,
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.CLIENT_READ)),
):
    """Dossier complet : citas, recetas, documents et paiements."""
    return ClientRecord.model_validate(ClientService(db, ctx.require_tenant()).get_record(client_id))


@router.get("/clientes/{client_id}/estadisticas", response_model=ClientStats)
def get_client_stats(
        client_id: int,
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.CLIENT_READ)),
):
    return ClientStats.model_validate(ClientService(db, ctx.require_tenant()).get_stats(client_id))


@router.post("/clientes", response_model=ClientResponse, status_code=status.HTTP_201_CREATED)
def create_client(
        data: ClientCreate,
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.CLIENT_WRITE)),
):
    return ClientService(db, ctx.require_tenant()).create(data)


@router.put("/clientes/{client_id}", response_model=ClientResponse)
def update_client(
        client_id: int,
        data: ClientUpdate,
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.CLIENT_WRITE)),
):
    return ClientService(db, ctx.require_tenant()).update(client_id, data)


@router.delete("/clientes/{client_id}", response_model=MessageResponse)
def delete_client(
        client_id: int,
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.CLIENT_WRITE)),
):
    """Supprime le client et, en cascade, ses citas, recetas, documents et paiements."""
    ClientService(db, ctx.require_tenant()).delete(client_id)
    return MessageResponse(message="Cliente eliminado correctamente")


# =============================================================================
# CITAS
# =============================================================================

@router.get("/citas")
def list_appointments(
        pagination: PaginationParams = Depends(),
        appointment_status: Optional[AppointmentStatus] = Query(None, alias="estado"),
        client_id: Optional[int] = Query(None, alias="clienteId"),
        date_from: Optional[date] = Query(None, alias="fechaDesde"),
        date_to: Optional[date] = Query(None, alias="fechaHasta"),
        practitioner_id: Optional[int] = Query(None, alias="usuarioId"),
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.APPOINTMENT_READ)),
):
    page = AppointmentService(db, ctx.require_tenant()).get_all(
        page=pagination.page,
        limit=pagination.limit,
        status=appointment_status,
        client_id=client_id,
        date_from=date_from,
        date_to=date_to,
        practitioner_id=practitioner_id,
    )
    return paginated_response(page, AppointmentResponse)


@router.get("/citas/{appointment_id}", response_model=AppointmentResponse)
def get_appointment(
        appointment_id: int,
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.APPOINTMENT_READ)),
):
    return AppointmentService(db, ctx.require_tenant()).get_by_id(appointment_id)


@router.post("/citas", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
        data: AppointmentCreate,
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.APPOINTMENT_WRITE)),
):
    """Crée une cita (date future ou du jour, client du même négocio)."""
    return AppointmentService(db, ctx.require_tenant()).create(data)


@router.put("/citas/{appointment_id}", response_model=AppointmentResponse)
def update_appointment(
        appointment_id: int,
        data: AppointmentUpdate,
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.APPOINTMENT_WRITE)),
):
    return AppointmentService(db, ctx.require_tenant()).update(appointment_id, data)


@router.delete("/citas/{appointment_id}", response_model=MessageResponse)
def delete_appointment(
        appointment_id: int,
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.APPOINTMENT_WRITE)),
):
    AppointmentService(db, ctx.require_tenant()).delete(appointment_id)
    return MessageResponse(message="Cita eliminada correctamente")


# =============================================================================
# RECETAS
# =============================================================================

@router.get("/recetas")
def list_prescriptions(
        pagination: PaginationParams = Depends(),
        client_id: Optional[int] = Query(None, alias="clienteId"),
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.PRESCRIPTION_READ)),
):
    page = PrescriptionService(db, ctx.require_tenant()).get_all(
        page=pagination.page, limit=pagination.limit, client_id=client_id
    )
    return paginated_response(page, PrescriptionResponse)


@router.get("/recetas/{prescription_id}", response_model=PrescriptionResponse)
def get_prescription(
        prescription_id: int,
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.PRESCRIPTION_READ)),
):
    return PrescriptionService(db, ctx.require_tenant()).get_by_id(prescription_id)


@router.post("/recetas", response_model=PrescriptionResponse, status_code=status.HTTP_201_CREATED)
def create_prescription(
        data: PrescriptionCreate,
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.PRESCRIPTION_WRITE)),
):
    return PrescriptionService(db, ctx.require_tenant()).create(data)


@router.put("/recetas/{prescription_id}", response_model=PrescriptionResponse)
def update_prescription(
        prescription_id: int,
        data: PrescriptionUpdate,
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.PRESCRIPTION_WRITE)),
):
    return PrescriptionService(db, ctx.require_tenant()).update(prescription_id, data)


@router.delete("/recetas/{prescription_id}", response_model=MessageResponse)
def delete_prescription(
        prescription_id: int,
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.PRESCRIPTION_WRITE)),
):
    PrescriptionService(db, ctx.require_tenant()).delete(prescription_id)
    return MessageResponse(message="Receta eliminada correctamente")


# =============================================================================
# DOCUMENTOS
# =============================================================================

@router.get("/documentos")
def list_documents(
        pagination: PaginationParams = Depends(),
        client_id: Optional[int] = Query(None, alias="clienteId"),
        doc_type: Optional[str] = Query(None, alias="tipo"),
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.DOCUMENT_READ)),
):
    page = DocumentService(db, ctx.require_tenant()).get_all(
        page=pagination.page, limit=pagination.limit, client_id=client_id, doc_type=doc_type
    )
    return paginated_response(page, DocumentResponse)


@router.get("/documentos/{document_id}", response_model=DocumentResponse)
def get_document(
        document_id: int,
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.DOCUMENT_READ)),
):
    return DocumentService(db, ctx.require_tenant()).get_by_id(document_id)


@router.post("/documentos", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
def create_document(
        data: DocumentCreate,
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.DOCUMENT_WRITE)),
):
    """Enregistre les métadonnées d'un document (le stockage du fichier est externe)."""
    return DocumentService(db, ctx.require_tenant()).create(data)


@router.delete("/documentos/{document_id}", response_model=MessageResponse)
def delete_document(
        document_id: int,
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.DOCUMENT_WRITE)),
):
    DocumentService(db, ctx.require_tenant()).delete(document_id)
    return MessageResponse(message="Documento eliminado correctamente")


# =============================================================================
# PAGOS DE CLIENTES
# =============================================================================

@router.get("/pagos-cliente")
def list_client_payments(
        pagination: PaginationParams = Depends(),
        payment_status: Optional[ClientPaymentStatus] = Query(None, alias="estado"),
        client_id: Optional[int] = Query(None, alias="clienteId"),
        method: Optional[PaymentMethod] = Query(None, alias="metodo"),
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.CLIENT_PAYMENT_READ)),
):
    page = ClientPaymentService(db, ctx.require_tenant()).get_all(
        page=pagination.page,
        limit=pagination.limit,
        status=payment_status,
        client_id=client_id,
        method=method,
    )
    return paginated_response(page, ClientPaymentResponse)


@router.get("/pagos-cliente/{payment_id}", response_model=ClientPaymentResponse)
def get_client_payment(
        payment_id: int,
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.CLIENT_PAYMENT_READ)),
):
    return ClientPaymentService(db, ctx.require_tenant()).get_by_id(payment_id)


@router.post("/pagos-cliente", response_model=ClientPaymentResponse, status_code=status.HTTP_201_CREATED)
def create_client_payment(
        data: ClientPaymentCreate,
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.CLIENT_PAYMENT_WRITE)),
):
    return ClientPaymentService(db, ctx.require_tenant()).create(data)


@router.put("/pagos-cliente/{payment_id}", response_model=ClientPaymentResponse)
def update_client_payment(
        payment_id: int,
        data: ClientPaymentUpdate,
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.CLIENT_PAYMENT_WRITE)),
):
    """Met à jour un paiement ; PENDING → PAID/REJECTED uniquement."""
    return ClientPaymentService(db, ctx.require_tenant()).update(payment_id, data)


@router.delete("/pagos-cliente/{payment_id}", response_model=MessageResponse)
def delete_client_payment(
        payment_id: int,
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.CLIENT_PAYMENT_WRITE)),
):
    ClientPaymentService(db, ctx.require_tenant()).delete(payment_id)
    return MessageResponse(message="Pago eliminado correctamente")
