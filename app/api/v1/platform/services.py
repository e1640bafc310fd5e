"""
Services métier pour le module Plateforme.

Gestion au niveau plateforme (SUPERADMIN) :
- TenantService : CRUD des négocios, suspension, activation, statistiques
- SubscriptionPaymentService : paiements d'abonnement (manuels, statut)
- PlatformUserService : CRUD et blocage des utilisateurs
- PlatformStatsService : statistiques globales et activité récente
"""
import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from app.core.config import settings
from app.core.exceptions import Conflict, NotFound, ValidationError
from app.core.security.hashing import hash_password
from app.core.timeutils import ensure_utc, utcnow
from app.models.clinic.appointment import Appointment
from app.models.clinic.client import Client
from app.models.clinic.client_payment import ClientPayment
from app.models.enums import (
    ClientPaymentStatus,
    SubscriptionPaymentStatus,
    UserRole,
)
from app.models.tenants.subscription_payment import SubscriptionPayment
from app.models.tenants.tenant import Tenant
from app.models.user.user import User
from app.services.billing import lifecycle
from app.services.slug import unique_tenant_slug
from app.services.tenant_scope import Page, paginate

from app.api.v1.auth.services import normalize_email
from app.api.v1.platform.schemas import (
    ManualPaymentCreate,
    PlatformUserCreate,
    PlatformUserUpdate,
    SubscriptionPaymentUpdate,
    TenantCreate,
    TenantUpdate,
)

logger = logging.getLogger(__name__)

UNSUSPEND_WARNING = (
    "El negocio sigue con pagos vencidos fuera del periodo de gracia; "
    "la próxima revisión de pagos lo volverá a suspender"
)


# =============================================================================
# TENANT SERVICE
# =============================================================================

class TenantService:
    """Service pour la gestion des négocios."""

    def __init__(self, db: Session):
        self.db = db

    def get_all(
            self,
            page: int = 1,
            limit: int = 10,
            search: Optional[str] = None,
            active: Optional[bool] = None,
            suspended: Optional[bool] = None,
    ) -> Page[Tenant]:
        """Liste les négocios avec pagination et filtres."""
        query = select(Tenant)

        if search:
            search_term = f"%{search}%"
            query = query.where(
                or_(
                    Tenant.name.ilike(search_term),
                    Tenant.email.ilike(search_term),
                    Tenant.slug.ilike(search_term),
                )
            )
        if active is not None:
            query = query.where(Tenant.active == active)
        if suspended is not None:
            query = query.where(Tenant.suspended == suspended)

        query = query.order_by(Tenant.created_at.desc(), Tenant.id.desc())
        return paginate(self.db, query, page, limit)

    def get_by_id(self, tenant_id: int) -> Tenant:
        tenant = self.db.get(Tenant, tenant_id)
        if not tenant:
            raise NotFound("Negocio no encontrado")
        return tenant

    def get_by_slug(self, slug: str) -> Optional[Tenant]:
        return self.db.execute(select(Tenant).where(Tenant.slug == slug)).scalar_one_or_none()

    def counts(self, tenant_id: int) -> Dict[str, int]:
        def _count(model) -> int:
            return self.db.execute(
                select(func.count()).select_from(model).where(model.tenant_id == tenant_id)
            ).scalar() or 0

        return {
            "users": _count(User),
            "clients": _count(Client),
            "appointments": _count(Appointment),
            "subscription_payments": _count(SubscriptionPayment),
        }

    def payments_of(self, tenant_id: int) -> List[SubscriptionPayment]:
        """Paiements d'abonnement du négocio, relus en base."""
        return list(self.db.execute(
            select(SubscriptionPayment)
            .where(SubscriptionPayment.tenant_id == tenant_id)
            .order_by(SubscriptionPayment.period_end)
        ).scalars())

    def standing(self, tenant: Tenant, now: Optional[datetime] = None) -> lifecycle.Standing:
        return lifecycle.tenant_standing(
            tenant,
            self.payments_of(tenant.id),
            now or utcnow(),
            timedelta(days=settings.SUSPENSION_GRACE_DAYS),
        )

    def describe(self, tenant: Tenant) -> Dict[str, Any]:
        """Négocio + compteurs + situation de règlement, pour les réponses."""
        return {
            "id": tenant.id,
            "name": tenant.name,
            "slug": tenant.slug,
            "active": tenant.active,
            "suspended": tenant.suspended,
            "email": tenant.email,
            "phone": tenant.phone,
            "address": tenant.address,
            "suspension_reason": tenant.suspension_reason,
            "suspended_at": tenant.suspended_at,
            "standing": self.standing(tenant).value,
            "counts": self.counts(tenant.id),
            "created_at": tenant.created_at,
        }

    def create(self, data: TenantCreate) -> Tenant:
        """
        Crée un négocio (actif, non suspendu).

        Raises:
            Conflict: Slug déjà utilisé
        """
        if data.slug:
            if self.get_by_slug(data.slug):
                raise Conflict(f"El slug '{data.slug}' ya está en uso", codigo="SLUG_DUPLICADO")
            slug = data.slug
        else:
            slug = unique_tenant_slug(self.db, data.name)

        tenant = Tenant(
            name=data.name,
            slug=slug,
            email=normalize_email(data.email) if data.email else None,
            phone=data.phone,
            address=data.address,
            active=True,
            suspended=False,
        )
        self.db.add(tenant)
        self._commit("El slug ya está en uso")
        self.db.refresh(tenant)
        logger.info(f"🏢 Négocio créé : {tenant.slug} (id={tenant.id})")
        return tenant

    def update(self, tenant_id: int, data: TenantUpdate) -> Tenant:
        tenant = self.get_by_id(tenant_id)
        update_data = data.model_dump(exclude_unset=True)

        new_slug = update_data.get("slug")
        if new_slug and new_slug != tenant.slug and self.get_by_slug(new_slug):
            raise Conflict(f"El slug '{new_slug}' ya está en uso", codigo="SLUG_DUPLICADO")

        for field, value in update_data.items():
            if value is None:
                continue
            if field == "email":
                value = normalize_email(value)
            setattr(tenant, field, value)

        self._commit("El slug ya está en uso")
        self.db.refresh(tenant)
        return tenant

    def delete(self, tenant_id: int) -> None:
        """
        Supprime un négocio et toutes ses données.

        Attention : action irréversible (utilisateurs, clients, citas,
        paiements...). Pour couper l'accès, préférer activar/suspender.
        """
        tenant = self.get_by_id(tenant_id)
        slug = tenant.slug

        # Les comptes sont supprimés explicitement (un User sans tenant violerait la contrainte de rôle)
        self.db.execute(
            delete(User).where(User.tenant_id == tenant.id).execution_options(synchronize_session=False)
        )
        self.db.expire(tenant)
        self.db.delete(tenant)
        self.db.commit()
        self.db.expire_all()
        logger.warning(f"🗑️ Négocio supprimé : {slug} (id={tenant_id})")

    def set_suspended(self, tenant_id: int, suspended: bool, reason: Optional[str] = None) -> Tuple[Tenant, Optional[str]]:
        """
        Suspension / levée de suspension manuelle.

        Lever la suspension d'un négocio encore en défaut au-delà du délai
        de grâce est permis, mais signalé : le prochain passage du job le
        suspendra de nouveau.

        Returns:
            (tenant, avertissement éventuel)
        """
        tenant = self.get_by_id(tenant_id)
        warning = None

        if suspended:
            tenant.suspended = True
            tenant.suspended_at = utcnow()
            if reason:
                tenant.suspension_reason = reason
            logger.info(f"⛔ Négocio {tenant.slug} suspendu manuellement ({reason or 'sans motif'})")
        else:
            now = utcnow()
            grace = timedelta(days=settings.SUSPENSION_GRACE_DAYS)
            if lifecycle.is_past_grace(self.payments_of(tenant.id), now, grace):
                warning = UNSUSPEND_WARNING
                logger.warning(
                    f"⚠️ Levée de suspension de {tenant.slug} alors que les paiements sont "
                    f"toujours échus au-delà de {grace.days} jours"
                )
            tenant.suspended = False
            tenant.suspended_at = None
            tenant.suspension_reason = reason
            logger.info(f"✅ Suspension levée pour {tenant.slug}")

        self.db.commit()
        self.db.refresh(tenant)
        return tenant, warning

    def set_active(self, tenant_id: int, active: bool) -> Tenant:
        tenant = self.get_by_id(tenant_id)
        tenant.active = active
        self.db.commit()
        self.db.refresh(tenant)
        logger.info(f"🏢 Négocio {tenant.slug} {'activé' if active else 'désactivé'}")
        return tenant

    def get_stats(self, tenant_id: int, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Statistiques d'un négocio vues par la plateforme."""
        tenant = self.get_by_id(tenant_id)
        now = now or utcnow()
        month_start = datetime(now.year, now.month, 1, tzinfo=now.tzinfo)
        counts = self.counts(tenant.id)

        month_income = self.db.execute(
            select(func.coalesce(func.sum(ClientPayment.amount), 0)).where(
                ClientPayment.tenant_id == tenant.id,
                ClientPayment.status == ClientPaymentStatus.PAID,
                ClientPayment.paid_at >= month_start,
            )
        ).scalar()

        return {
            "total_clients": counts["clients"],
            "total_appointments": counts["appointments"],
            "appointments_today": self.db.execute(
                select(func.count(Appointment.id)).where(
                    Appointment.tenant_id == tenant.id,
                    Appointment.scheduled_date == now.date(),
                )
            ).scalar() or 0,
            "month_income": Decimal(str(month_income or 0)),
            "active_users": self.db.execute(
                select(func.count(User.id)).where(User.tenant_id == tenant.id, User.active.is_(True))
            ).scalar() or 0,
            "standing": self.standing(tenant, now).value,
        }

    def _commit(self, conflict_message: str) -> None:
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise Conflict(conflict_message)


# =============================================================================
# SUBSCRIPTION PAYMENT SERVICE
# =============================================================================

class SubscriptionPaymentService:
    """Paiements d'abonnement des négocios."""

    def __init__(self, db: Session):
        self.db = db

    def get_all(
            self,
            page: int = 1,
            limit: int = 10,
            tenant_id: Optional[int] = None,
            status: Optional[SubscriptionPaymentStatus] = None,
    ) -> Page[SubscriptionPayment]:
        query = select(SubscriptionPayment).options(selectinload(SubscriptionPayment.tenant))
        if tenant_id:
            query = query.where(SubscriptionPayment.tenant_id == tenant_id)
        if status:
            query = query.where(SubscriptionPayment.status == status)
        query = query.order_by(SubscriptionPayment.created_at.desc(), SubscriptionPayment.id.desc())
        return paginate(self.db, query, page, limit)

    def get_by_id(self, payment_id: int) -> SubscriptionPayment:
        payment = self.db.get(SubscriptionPayment, payment_id)
        if not payment:
            raise NotFound("Pago no encontrado")
        return payment

    def create_manual(self, data: ManualPaymentCreate) -> SubscriptionPayment:
        """
        Paiement manuel, enregistré directement en PAID.

        Raises:
            NotFound: Négocio inconnu
            Conflict: Chevauche une période déjà payée du négocio
        """
        tenants = TenantService(self.db)
        tenant = tenants.get_by_id(data.tenant_id)
        start, end = ensure_utc(data.period_start), ensure_utc(data.period_end)

        self._ensure_no_paid_overlap(tenant.id, start, end)

        payment = SubscriptionPayment(
            tenant_id=tenant.id,
            amount=data.amount,
            currency=(data.currency or settings.SUBSCRIPTION_CURRENCY).upper(),
            period_start=start,
            period_end=end,
            status=SubscriptionPaymentStatus.PAID,
            method=data.method,
            reference=data.reference,
        )
        self.db.add(payment)
        self.db.commit()
        self.db.refresh(payment)
        logger.info(
            f"💳 Paiement manuel enregistré pour {tenant.slug} "
            f"({payment.amount} {payment.currency}, jusqu'au {end.date().isoformat()})"
        )
        return payment

    def create_pending(self, tenant_id: int, start: Optional[datetime] = None) -> SubscriptionPayment:
        """Nouvelle période en attente de confirmation (renouvellement)."""
        tenant = TenantService(self.db).get_by_id(tenant_id)
        start = ensure_utc(start) or utcnow()
        payment = SubscriptionPayment(
            tenant_id=tenant.id,
            amount=settings.SUBSCRIPTION_DEFAULT_AMOUNT,
            currency=settings.SUBSCRIPTION_CURRENCY,
            period_start=start,
            period_end=start + timedelta(days=settings.SUBSCRIPTION_PERIOD_DAYS),
            status=SubscriptionPaymentStatus.PENDING,
        )
        self.db.add(payment)
        self.db.commit()
        return payment

    def update(self, payment_id: int, data: SubscriptionPaymentUpdate) -> SubscriptionPayment:
        """
        Raises:
            ValidationError: Transition de statut interdite
            Conflict: Confirmation chevauchant une période déjà payée
        """
        payment = self.get_by_id(payment_id)
        update_data = data.model_dump(exclude_unset=True)

        target = update_data.pop("status", None)
        if target is not None:
            if target == SubscriptionPaymentStatus.PAID and payment.status != SubscriptionPaymentStatus.PAID:
                self._ensure_no_paid_overlap(
                    payment.tenant_id, payment.period_start, payment.period_end, exclude_id=payment.id,
                )
            previous = payment.status
            if lifecycle.apply_transition(payment, target):
                logger.info(f"💳 Paiement {payment.id} : {previous.value} → {target.value}")

        for field, value in update_data.items():
            setattr(payment, field, value)

        self.db.commit()
        self.db.refresh(payment)
        return payment

    def _ensure_no_paid_overlap(
            self,
            tenant_id: int,
            start: datetime,
            end: datetime,
            exclude_id: Optional[int] = None,
    ) -> None:
        """Deux périodes PAID d'un même négocio ne se chevauchent jamais."""
        for existing in TenantService(self.db).payments_of(tenant_id):
            if existing.id == exclude_id or existing.status != SubscriptionPaymentStatus.PAID:
                continue
            if lifecycle.periods_overlap(start, end, existing.period_start, existing.period_end):
                raise Conflict(
                    "El periodo se superpone con un pago ya registrado",
                    codigo="PERIODO_SUPERPUESTO",
                    pagoId=existing.id,
                )


# =============================================================================
# PLATFORM USER SERVICE
# =============================================================================

class PlatformUserService:
    """Utilisateurs de tous les négocios, vus par la plateforme."""

    def __init__(self, db: Session):
        self.db = db

    def get_all(
            self,
            page: int = 1,
            limit: int = 10,
            search: Optional[str] = None,
            role: Optional[UserRole] = None,
            tenant_id: Optional[int] = None,
            active: Optional[bool] = None,
    ) -> Page[User]:
        query = select(User).options(selectinload(User.tenant))
        if search:
            search_term = f"%{search}%"
            query = query.where(
                or_(
                    User.email.ilike(search_term),
                    User.first_name.ilike(search_term),
                    User.last_name.ilike(search_term),
                )
            )
        if role:
            query = query.where(User.role == role)
        if tenant_id:
            query = query.where(User.tenant_id == tenant_id)
        if active is not None:
            query = query.where(User.active == active)
        query = query.order_by(User.created_at.desc(), User.id.desc())
        return paginate(self.db, query, page, limit)

    def get_by_id(self, user_id: int) -> User:
        user = self.db.get(User, user_id)
        if not user:
            raise NotFound("Usuario no encontrado")
        return user

    def create(self, data: PlatformUserCreate) -> User:
        """
        Raises:
            Conflict: Email déjà utilisé
            InvalidReference / NotFound: Négocio inconnu
        """
        email = normalize_email(data.email)
        self._ensure_email_available(email)
        tenant_id = self._resolve_tenant(data.role, data.tenant_id)

        user = User(
            email=email,
            password_hash=hash_password(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
            phone=data.phone,
            role=data.role,
            tenant_id=tenant_id,
            active=True,
        )
        self.db.add(user)
        self._commit()
        self.db.refresh(user)
        logger.info(f"👤 Utilisateur {user.email} ({user.role.value}) créé par la plateforme")
        return user

    def update(self, user_id: int, data: PlatformUserUpdate) -> User:
        user = self.get_by_id(user_id)
        update_data = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}

        if "email" in update_data:
            email = normalize_email(update_data.pop("email"))
            if email != user.email:
                self._ensure_email_available(email)
                user.email = email
        if "password" in update_data:
            user.password_hash = hash_password(update_data.pop("password"))

        role = update_data.pop("role", user.role)
        tenant_id = update_data.pop("tenant_id", user.tenant_id)
        user.tenant_id = self._resolve_tenant(role, tenant_id)
        user.role = role

        for field, value in update_data.items():
            setattr(user, field, value)

        self._commit()
        self.db.refresh(user)
        return user

    def set_blocked(self, user_id: int, blocked: Optional[bool] = None, acting_user_id: Optional[int] = None) -> User:
        """Bloque/débloque un compte ; sans valeur explicite, bascule l'état."""
        user = self.get_by_id(user_id)
        if acting_user_id is not None and user.id == acting_user_id:
            raise ValidationError("No puede bloquear su propia cuenta", codigo="AUTOBLOQUEO")

        user.active = (not user.active) if blocked is None else (not blocked)
        self.db.commit()
        logger.info(f"🔒 Utilisateur {user.email} {'débloqué' if user.active else 'bloqué'}")
        return user

    def delete(self, user_id: int, acting_user_id: Optional[int] = None) -> None:
        user = self.get_by_id(user_id)
        if acting_user_id is not None and user.id == acting_user_id:
            raise ValidationError("No puede eliminar su propia cuenta", codigo="AUTOELIMINACION")
        email = user.email
        self.db.delete(user)
        self.db.commit()
        logger.warning(f"🗑️ Utilisateur supprimé : {email} (id={user_id})")

    def _resolve_tenant(self, role: UserRole, tenant_id: Optional[int]) -> Optional[int]:
        if role == UserRole.SUPERADMIN:
            return None
        if tenant_id is None:
            raise ValidationError("negocioId es obligatorio para ADMIN y CLIENT", codigo="NEGOCIO_REQUERIDO")
        return TenantService(self.db).get_by_id(tenant_id).id

    def _ensure_email_available(self, email: str) -> None:
        exists = self.db.execute(select(func.count(User.id)).where(User.email == email)).scalar()
        if exists:
            raise Conflict("El email ya está registrado", codigo="EMAIL_DUPLICADO")

    def _commit(self) -> None:
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise Conflict("El email ya está registrado", codigo="EMAIL_DUPLICADO")


# =============================================================================
# PLATFORM STATS SERVICE
# =============================================================================

class PlatformStatsService:
    """Service pour les statistiques globales de la plateforme."""

    def __init__(self, db: Session):
        self.db = db

    def get_platform_stats(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or utcnow()
        thirty_days_ago = now - timedelta(days=30)

        def _count(model, *criteria) -> int:
            stmt = select(func.count()).select_from(model)
            if criteria:
                stmt = stmt.where(*criteria)
            return self.db.execute(stmt).scalar() or 0

        total_income = self.db.execute(
            select(func.coalesce(func.sum(SubscriptionPayment.amount), 0)).where(
                SubscriptionPayment.status == SubscriptionPaymentStatus.PAID
            )
        ).scalar()

        return {
            "total_tenants": _count(Tenant),
            "active_tenants": _count(Tenant, Tenant.active.is_(True), Tenant.suspended.is_(False)),
            "suspended_tenants": _count(Tenant, Tenant.suspended.is_(True)),
            "total_users": _count(User),
            "total_appointments": _count(Appointment),
            "total_income": Decimal(str(total_income or 0)),
            "pending_payments": _count(
                SubscriptionPayment, SubscriptionPayment.status == SubscriptionPaymentStatus.PENDING
            ),
            "expired_payments": _count(
                SubscriptionPayment, SubscriptionPayment.status == SubscriptionPaymentStatus.EXPIRED
            ),
            "tenants_last_30_days": _count(Tenant, Tenant.created_at >= thirty_days_ago),
        }

    def get_recent_activity(self, limit: int = 10) -> Dict[str, List[Any]]:
        """Dernières citas, paiements d'abonnement et inscriptions (hors SUPERADMIN)."""
        appointments = self.db.execute(
            select(Appointment).order_by(Appointment.created_at.desc(), Appointment.id.desc()).limit(limit)
        ).scalars().all()
        payments = self.db.execute(
            select(SubscriptionPayment)
            .options(selectinload(SubscriptionPayment.tenant))
            .order_by(SubscriptionPayment.created_at.desc(), SubscriptionPayment.id.desc())
            .limit(limit)
        ).scalars().all()
        users = self.db.execute(
            select(User)
            .options(selectinload(User.tenant))
            .where(User.role != UserRole.SUPERADMIN)
            .order_by(User.created_at.desc(), User.id.desc())
            .limit(limit)
        ).scalars().all()

        return {
            "appointments": list(appointments),
            "payments": list(payments),
            "users": list(users),
        }
