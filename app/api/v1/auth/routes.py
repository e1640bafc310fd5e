"""
Routes d'authentification.

- POST /auth/login              : email/mot de passe → {token, user}
- POST /auth/registro           : négocio + ADMIN (ou SUPERADMIN sans négocio)
- POST /auth/registro-cliente   : compte CLIENT dans un négocio existant
- GET  /auth/perfil             : utilisateur courant
- GET  /auth/verificar          : validité du token
- PUT  /auth/cambiar-password   : changement de mot de passe
- POST /auth/logout             : déconnexion (token sans état, côté client)
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.v1.auth.schemas import (
    LoginRequest,
    LoginResponse,
    PasswordChangeRequest,
    RegisterClientRequest,
    RegisterRequest,
    UserResponse,
    VerifyResponse,
)
from app.api.v1.auth.services import AuthService
from app.api.v1.schemas import MessageResponse
from app.core.auth.policy import Operation
from app.core.auth.user_auth import get_current_user, require
from app.core.tenant_context import RequestContext
from app.database.session import get_db
from app.models.user.user import User

router = APIRouter(
    prefix="/auth",
    tags=["Authentification"],
)


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Connexion email/mot de passe",
    responses={
        401: {"description": "Identifiants invalides"},
        403: {"description": "Utilisateur bloqué (USUARIO_BLOQUEADO) ou négocio indisponible"},
    },
)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    """Authentifie l'utilisateur et retourne un JWT d'accès."""
    token, user = AuthService(db).login(data.email, data.password)
    return LoginResponse(token=token, user=UserResponse.model_validate(user))


@router.post(
    "/registro",
    response_model=LoginResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Inscription d'un négocio ou d'un SUPERADMIN",
)
def register(data: RegisterRequest, db: Session = Depends(get_db)):
    """
    Crée le négocio et son ADMIN si `nombreNegocio` est fourni,
    sinon un SUPERADMIN sans négocio.
    """
    service = AuthService(db)
    user = service.register(data)
    return LoginResponse(token=service.issue_token(user), user=UserResponse.model_validate(user))


@router.post(
    "/registro-cliente",
    response_model=LoginResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Inscription d'un client",
)
def register_client(data: RegisterClientRequest, db: Session = Depends(get_db)):
    """Crée un compte CLIENT et sa fiche client dans le négocio `negocioSlug`."""
    service = AuthService(db)
    user = service.register_client(data)
    return LoginResponse(token=service.issue_token(user), user=UserResponse.model_validate(user))


@router.get("/perfil", response_model=UserResponse, summary="Profil de l'utilisateur courant")
def get_profile(current_user: User = Depends(get_current_user)):
    return UserResponse.model_validate(current_user)


@router.get("/verificar", response_model=VerifyResponse, summary="Vérifier le token")
def verify(current_user: User = Depends(get_current_user)):
    return VerifyResponse(valid=True, user=UserResponse.model_validate(current_user))


@router.put("/cambiar-password", response_model=MessageResponse, summary="Changer le mot de passe")
def change_password(
        data: PasswordChangeRequest,
        db: Session = Depends(get_db),
        ctx: RequestContext = Depends(require(Operation.PASSWORD_CHANGE)),
):
    AuthService(db).change_password(ctx.user_id, data.current_password, data.new_password)
    return MessageResponse(message="Contraseña actualizada correctamente")


@router.post("/logout", response_model=MessageResponse, summary="Déconnexion")
def logout():
    """Les tokens sont sans état : le client supprime simplement le sien."""
    return MessageResponse(message="Sesión cerrada correctamente")
