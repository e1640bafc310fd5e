"""
Schémas communs à tous les modules de l'API v1.

Les noms exposés sur le fil sont ceux du frontend (espagnol,
camelCase) ; les attributs Python restent en anglais via des alias.
"""

from typing import Any, Callable, Optional, Type

from pydantic import BaseModel, ConfigDict

from app.services.tenant_scope import Page


class ApiSchema(BaseModel):
    """Base des schémas : lecture depuis les modèles ORM, alias acceptés en entrée."""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class MessageResponse(ApiSchema):
    message: str


def paginated_response(page: Page, schema: Type[BaseModel], serializer: Optional[Callable[[Any], Any]] = None) -> dict:
    """Construit une réponse paginée {data, total, page, limit, totalPages}."""
    return page.to_dict(serializer or schema.model_validate)
