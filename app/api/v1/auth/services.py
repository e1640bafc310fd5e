"""
Service d'authentification - Logique métier.

Ce module orchestre :
- La connexion email/mot de passe et l'émission du JWT
- L'inscription d'un négocio (tenant + ADMIN + première période PENDING), atomique
- L'inscription d'un SUPERADMIN sans tenant
- L'inscription d'un client dans un négocio existant (compte CLIENT + fiche)
- Le changement de mot de passe
"""

import logging
from datetime import timedelta
from typing import Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.auth.gate import ensure_tenant_operational
from app.core.config import settings
from app.core.exceptions import (
    Conflict,
    Forbidden,
    InvalidCredential,
    NotFound,
    UserBlocked,
    ValidationError,
)
from app.core.security.hashing import hash_password, verify_password
from app.core.security.jwt import create_access_token
from app.core.timeutils import utcnow
from app.models.clinic.client import Client
from app.models.enums import SubscriptionPaymentStatus, UserRole
from app.models.tenants.subscription_payment import SubscriptionPayment
from app.models.tenants.tenant import Tenant
from app.models.user.user import User
from app.services.slug import unique_tenant_slug
from app.api.v1.auth.schemas import RegisterClientRequest, RegisterRequest

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


# =============================================================================
# SERVICE D'AUTHENTIFICATION
# =============================================================================

class AuthService:
    """Connexion, inscriptions et gestion du mot de passe."""

    def __init__(self, db: Session):
        self.db = db

    # =========================================================================
    # CONNEXION
    # =========================================================================

    def authenticate(self, email: str, password: str) -> User:
        """
        Authentifie un utilisateur avec email/mot de passe.

        Raises:
            InvalidCredential: Email inconnu ou mot de passe incorrect (401)
            UserBlocked: Compte désactivé (403, USUARIO_BLOQUEADO)
            TenantUnavailable: Négocio suspendu ou inactif (403)
        """
        user = self.db.execute(
            select(User).where(User.email == normalize_email(email))
        ).scalar_one_or_none()

        if user is None or not verify_password(password, user.password_hash):
            logger.warning(f"⚠️ Échec de connexion pour {email}")
            raise InvalidCredential("Credenciales inválidas")

        if not user.active:
            raise UserBlocked()

        if user.tenant is not None:
            ensure_tenant_operational(user.tenant)

        user.last_login_at = utcnow()
        self.db.commit()
        return user

    def issue_token(self, user: User) -> str:
        return create_access_token({
            "sub": str(user.id),
            "email": user.email,
            "role": user.role.value,
            "tenant_id": user.tenant_id,
        })

    def login(self, email: str, password: str) -> Tuple[str, User]:
        user = self.authenticate(email, password)
        logger.info(f"🔑 Connexion de {user.email} ({user.role.value})")
        return self.issue_token(user), user

    # =========================================================================
    # INSCRIPTIONS
    # =========================================================================

    def register(self, data: RegisterRequest) -> User:
        """
        Inscription.

        Avec business_name : tenant + ADMIN + période d'abonnement PENDING,
        dans une seule transaction (tout ou rien).
        Sans : SUPERADMIN sans tenant, si ALLOW_SUPERADMIN_SELF_REGISTRATION.

        Raises:
            Conflict: Email déjà utilisé
            Forbidden: Inscription SUPERADMIN désactivée
        """
        self._ensure_email_available(data.email)

        try:
            if data.business_name:
                tenant = self._create_tenant(data.business_name, email=data.email, phone=data.phone)
                user = self._create_user(data, role=UserRole.ADMIN, tenant_id=tenant.id)
                self._open_first_period(tenant)
            else:
                if not settings.ALLOW_SUPERADMIN_SELF_REGISTRATION:
                    raise Forbidden("El registro sin negocio está deshabilitado")
                user = self._create_user(data, role=UserRole.SUPERADMIN, tenant_id=None)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"⚠️ Inscription refusée (contrainte d'unicité) : {e.orig}")
            raise Conflict("El email o el negocio ya existen")
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(user)
        logger.info(
            f"✅ Inscription {user.role.value} {user.email}"
            + (f" (négocio {user.tenant.slug})" if user.tenant else "")
        )
        return user

    def register_client(self, data: RegisterClientRequest) -> User:
        """
        Inscription d'un client dans un négocio opérationnel.

        Crée le compte CLIENT et la fiche Client liée, atomiquement.

        Raises:
            ValidationError: Négocio inconnu, suspendu ou inactif
            Conflict: Email déjà utilisé
        """
        self._ensure_email_available(data.email)

        tenant = self.db.execute(
            select(Tenant).where(Tenant.slug == data.tenant_slug)
        ).scalar_one_or_none()
        if tenant is None or not tenant.is_operational:
            raise ValidationError("El negocio no está disponible", codigo="NEGOCIO_NO_DISPONIBLE")

        try:
            user = self._create_user(data, role=UserRole.CLIENT, tenant_id=tenant.id)
            self.db.add(Client(
                tenant_id=tenant.id,
                user_id=user.id,
                first_name=data.first_name,
                last_name=data.last_name,
                email=user.email,
                phone=data.phone,
            ))
            self.db.flush()
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"⚠️ Inscription client refusée : {e.orig}")
            raise Conflict("El email ya está registrado")
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"✅ Client {user.email} inscrit dans {tenant.slug}")
        return user

    # =========================================================================
    # MOT DE PASSE
    # =========================================================================

    def change_password(self, user_id: int, current_password: str, new_password: str) -> None:
        user = self.db.get(User, user_id)
        if user is None:
            raise NotFound("Usuario no encontrado")
        if not verify_password(current_password, user.password_hash):
            raise ValidationError("La contraseña actual es incorrecta", codigo="PASSWORD_INCORRECTO")
        if current_password == new_password:
            raise ValidationError("La nueva contraseña debe ser diferente", codigo="PASSWORD_IGUAL")

        user.password_hash = hash_password(new_password)
        self.db.commit()
        logger.info(f"🔒 Mot de passe modifié (user={user.id})")

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _ensure_email_available(self, email: str) -> None:
        exists = self.db.execute(
            select(func.count(User.id)).where(User.email == normalize_email(email))
        ).scalar()
        if exists:
            raise Conflict("El email ya está registrado", codigo="EMAIL_DUPLICADO")

    def _create_tenant(self, name: str, email: Optional[str] = None, phone: Optional[str] = None) -> Tenant:
        tenant = Tenant(
            name=name,
            slug=unique_tenant_slug(self.db, name),
            email=normalize_email(email) if email else None,
            phone=phone,
            active=True,
            suspended=False,
        )
        self.db.add(tenant)
        self.db.flush()
        return tenant

    def _create_user(self, data, role: UserRole, tenant_id: Optional[int]) -> User:
        user = User(
            email=normalize_email(data.email),
            password_hash=hash_password(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
            phone=data.phone,
            role=role,
            tenant_id=tenant_id,
            active=True,
        )
        self.db.add(user)
        self.db.flush()
        return user

    def _open_first_period(self, tenant: Tenant) -> SubscriptionPayment:
        """Première période d'abonnement, en attente de confirmation externe."""
        start = utcnow()
        payment = SubscriptionPayment(
            tenant_id=tenant.id,
            amount=settings.SUBSCRIPTION_DEFAULT_AMOUNT,
            currency=settings.SUBSCRIPTION_CURRENCY,
            period_start=start,
            period_end=start + timedelta(days=settings.SUBSCRIPTION_PERIOD_DAYS),
            status=SubscriptionPaymentStatus.PENDING,
        )
        self.db.add(payment)
        self.db.flush()
        return payment
