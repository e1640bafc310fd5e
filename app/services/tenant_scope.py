"""
Accès aux données cloisonné par tenant.

Toute lecture/écriture d'une entité appartenant à un tenant (Client,
Appointment, Prescription, Document, ClientPayment) passe par un
TenantScopedRepository lié au tenant effectif de la requête :

- create() tamponne tenant_id (toute valeur fournie est ignorée)
- get()/update()/delete() filtrent sur (tenant_id, id) ; une absence
  lève NotFound, que l'id n'existe pas ou appartienne à un autre tenant
- ensure_reference() vérifie qu'une entité liée appartient au même tenant
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Generic, List, Optional, Type, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from app.core.exceptions import InvalidReference, NotFound

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")
RefT = TypeVar("RefT")


@dataclass
class Page(Generic[ModelT]):
    """Page de résultats : {data, total, page, limit, totalPages}."""
    data: List[ModelT] = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 10

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit > 0 else 0

    def to_dict(self, serializer=None) -> dict:
        items = [serializer(item) for item in self.data] if serializer else list(self.data)
        return {
            "data": items,
            "total": self.total,
            "page": self.page,
            "limit": self.limit,
            "totalPages": self.total_pages,
        }


def paginate(db: Session, stmt: Select, page: int, limit: int) -> Page:
    """Exécute une requête paginée (count + offset/limit)."""
    total = db.execute(select(func.count()).select_from(stmt.order_by(None).subquery())).scalar() or 0
    rows = db.execute(stmt.offset((page - 1) * limit).limit(limit)).scalars().all()
    return Page(data=list(rows), total=total, page=page, limit=limit)


class TenantScopedRepository(Generic[ModelT]):
    """
    Repository d'une entité appartenant à un tenant.

    Usage:
        repo = TenantScopedRepository(db, Client, tenant_id=ctx.require_tenant())
        client = repo.get(client_id)      # NotFound si autre tenant
        repo.create(first_name="Ana")     # tenant_id tamponné
    """

    not_found_message = "Recurso no encontrado"

    def __init__(self, db: Session, model: Type[ModelT], tenant_id: int, not_found_message: Optional[str] = None):
        if tenant_id is None:
            raise ValueError("tenant_id est requis pour un accès cloisonné")
        self.db = db
        self.model = model
        self.tenant_id = tenant_id
        if not_found_message:
            self.not_found_message = not_found_message

    # -------------------------------------------------------------------------
    # Lecture
    # -------------------------------------------------------------------------

    def query(self) -> Select:
        """SELECT de base, toujours intersecté avec le tenant."""
        return select(self.model).where(self.model.tenant_id == self.tenant_id)

    def find(self, entity_id: int) -> Optional[ModelT]:
        return self.db.execute(
            self.query().where(self.model.id == entity_id)
        ).scalar_one_or_none()

    def get(self, entity_id: int) -> ModelT:
        entity = self.find(entity_id)
        if entity is None:
            raise NotFound(self.not_found_message)
        return entity

    def count(self, *criteria: Any) -> int:
        stmt = select(func.count()).select_from(self.model).where(self.model.tenant_id == self.tenant_id)
        if criteria:
            stmt = stmt.where(*criteria)
        return self.db.execute(stmt).scalar() or 0

    def paginate(self, stmt: Select, page: int, limit: int) -> Page[ModelT]:
        return paginate(self.db, stmt, page, limit)

    # -------------------------------------------------------------------------
    # Écriture
    # -------------------------------------------------------------------------

    def create(self, **fields: Any) -> ModelT:
        fields.pop("tenant_id", None)
        entity = self.model(tenant_id=self.tenant_id, **fields)
        self.db.add(entity)
        self.db.flush()
        logger.debug(f"{self.model.__name__} créé (id={entity.id}, tenant={self.tenant_id})")
        return entity

    def update(self, entity_id: int, **fields: Any) -> ModelT:
        entity = self.get(entity_id)
        fields.pop("tenant_id", None)
        for key, value in fields.items():
            setattr(entity, key, value)
        self.db.flush()
        return entity

    def delete(self, entity_id: int) -> None:
        entity = self.get(entity_id)
        self.db.delete(entity)
        self.db.flush()

    # -------------------------------------------------------------------------
    # Références croisées
    # -------------------------------------------------------------------------

    def ensure_reference(self, model: Type[RefT], entity_id: int, label: str = "Referencia", **match: Any) -> RefT:
        """
        Vérifie qu'une entité référencée appartient au même tenant.

        Args:
            model: Modèle référencé (doit porter tenant_id)
            entity_id: ID référencé
            label: Libellé pour le message d'erreur
            **match: Contraintes supplémentaires (ex: client_id=3)

        Raises:
            InvalidReference: Absente, autre tenant ou contrainte non respectée
        """
        stmt = select(model).where(model.tenant_id == self.tenant_id, model.id == entity_id)
        for column, value in match.items():
            stmt = stmt.where(getattr(model, column) == value)
        ref = self.db.execute(stmt).scalar_one_or_none()
        if ref is None:
            logger.warning(
                f"⚠️ Référence refusée : {model.__name__}#{entity_id} hors du tenant {self.tenant_id}"
            )
            raise InvalidReference(f"{label} inválido(a)")
        return ref
