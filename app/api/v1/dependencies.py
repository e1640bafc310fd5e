# app/api/v1/dependencies.py
"""
Dépendances générales de l'API v1.

- PaginationParams : pagination standardisée (?page=1&limit=10)

Pour l'authentification et le tenant effectif, voir :
    app/core/auth/user_auth.py  (require(Operation.X))
"""

from typing import Annotated

from fastapi import Query


class PaginationParams:
    """
    Paramètres de pagination de toutes les routes de liste.

    Réponse associée : {data, total, page, limit, totalPages}

    Usage:
        @router.get("/clientes")
        def list_clients(pagination: PaginationParams = Depends()):
            service.list(page=pagination.page, limit=pagination.limit)
    """

    def __init__(
            self,
            page: Annotated[int, Query(ge=1, description="Numéro de page (commence à 1)")] = 1,
            limit: Annotated[int, Query(ge=1, le=100, description="Nombre d'éléments par page")] = 10,
    ):
        self.page = page
        self.limit = limit
