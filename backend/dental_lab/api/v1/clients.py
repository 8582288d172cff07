"""
Router FastAPI per l'entità Client
Progetto: Dental Lab Manager (Gestionale Laboratorio Odontotecnico)

Definisce gli endpoint API per la gestione dei clienti e il listino
risolto per cliente.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from dental_lab.core.deps import DbSession, TenantId
from dental_lab.schemas.catalog import ClientPriceList
from dental_lab.schemas.client import (
    ClientCreate,
    ClientList,
    ClientRead,
    ClientUpdate,
)
from dental_lab.services.client_service import ClientService
from dental_lab.services.pricing_service import catalog_service

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Router con prefix e tag
router = APIRouter(
    prefix="/clients",
    tags=["Clienti"],
)


# -------------------------------------------------------------------
# Dependency Injection
# -------------------------------------------------------------------

def get_client_service() -> ClientService:
    """
    Dependency per ottenere un'istanza del ClientService.

    Questo permette di iniettare il service nei router senza
    usare istanze globali, facilitando i test e la manutenzione.
    """
    return ClientService()


# -------------------------------------------------------------------
# Endpoints
# -------------------------------------------------------------------

@router.get(
    "/",
    name="clienti_lista",
    summary="Lista clienti",
    description="Recupera la lista paginata dei clienti con eventuale filtro di ricerca.",
    response_model=ClientList,
    status_code=status.HTTP_200_OK,
)
async def get_clients(
    db: DbSession,
    tenant_id: TenantId,
    page: int = Query(1, ge=1, description="Numero pagina"),
    per_page: int = Query(50, ge=1, le=200, description="Elementi per pagina"),
    search: Optional[str] = Query(None, description="Ricerca su nome, telefono, email"),
    include_inactive: bool = Query(False, description="Includi clienti eliminati"),
    service: ClientService = Depends(get_client_service),
) -> ClientList:
    clients, total = await service.get_all(
        db,
        tenant_id,
        page=page,
        per_page=per_page,
        search=search,
        include_inactive=include_inactive,
    )
    return ClientList(
        items=[ClientRead.model_validate(c) for c in clients],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get(
    "/{client_id}",
    name="cliente_dettaglio",
    summary="Dettaglio cliente",
    response_model=ClientRead,
)
async def get_client(
    client_id: uuid.UUID,
    db: DbSession,
    tenant_id: TenantId,
    service: ClientService = Depends(get_client_service),
) -> ClientRead:
    client = await service.get_by_id(db, tenant_id, client_id)
    return ClientRead.model_validate(client)


@router.get(
    "/{client_id}/price-list",
    name="cliente_listino",
    summary="Listino del cliente",
    description="Listino raggruppato per materiale con i prezzi effettivi per il cliente.",
    response_model=ClientPriceList,
)
async def get_client_price_list(client_id: uuid.UUID, db: DbSession, tenant_id: TenantId) -> ClientPriceList:
    return await catalog_service.client_price_list(db, tenant_id, client_id)


@router.post(
    "/",
    name="cliente_crea",
    summary="Crea cliente",
    response_model=ClientRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_client(
    data: ClientCreate,
    db: DbSession,
    tenant_id: TenantId,
    service: ClientService = Depends(get_client_service),
) -> ClientRead:
    client = await service.create(db, tenant_id, data)
    return ClientRead.model_validate(client)


@router.put(
    "/{client_id}",
    name="cliente_aggiorna",
    summary="Aggiorna cliente",
    response_model=ClientRead,
)
async def update_client(
    client_id: uuid.UUID,
    data: ClientUpdate,
    db: DbSession,
    tenant_id: TenantId,
    service: ClientService = Depends(get_client_service),
) -> ClientRead:
    client = await service.update(db, tenant_id, client_id, data)
    return ClientRead.model_validate(client)


@router.delete(
    "/{client_id}",
    name="cliente_elimina",
    summary="Elimina cliente",
    description="Soft delete di default; hard_delete=true solo per clienti senza ordini né movimenti.",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_client(
    client_id: uuid.UUID,
    db: DbSession,
    tenant_id: TenantId,
    hard_delete: bool = Query(False, description="Eliminazione fisica"),
    service: ClientService = Depends(get_client_service),
) -> None:
    await service.delete(db, tenant_id, client_id, hard_delete=hard_delete)
