"""
Router FastAPI per gli Ordini di Servizio
Progetto: Dental Lab Manager (Gestionale Laboratorio Odontotecnico)

Definisce gli endpoint API per la gestione degli ordini di servizio,
incluse le operazioni CRUD, il cambio di stato e il flag di pagamento.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Path, Query, status

from dental_lab.core.deps import DbSession, LabClock, TenantId
from dental_lab.schemas.service_order import (
    OrderPaidUpdate,
    OrderStatus,
    OrderStatusUpdate,
    ServiceOrderCreate,
    ServiceOrderList,
    ServiceOrderRead,
    ServiceOrderUpdate,
)
from dental_lab.services.ledger_service import ledger_reconciler
from dental_lab.services.service_order_service import service_order_service

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Router con prefix e tag
router = APIRouter(
    prefix="/service-orders",
    tags=["Ordini di Servizio"],
)


# -------------------------------------------------------------------
# Endpoints per Ordini di Servizio
# -------------------------------------------------------------------

@router.get(
    "/",
    name="ordini_lista",
    summary="Lista ordini di servizio",
    description="Recupera la lista paginata degli ordini di servizio con eventuali filtri.",
    response_model=ServiceOrderList,
    status_code=status.HTTP_200_OK,
)
async def get_service_orders(
    db: DbSession,
    tenant_id: TenantId,
    page: int = Query(1, ge=1, description="Numero pagina"),
    per_page: int = Query(20, ge=1, le=100, description="Elementi per pagina"),
    status_filter: Optional[OrderStatus] = Query(None, description="Filtro per stato dell'ordine"),
    client_id: Optional[uuid.UUID] = Query(None, description="Filtro per cliente"),
    search: Optional[str] = Query(None, description="Ricerca su cliente e paziente"),
) -> ServiceOrderList:
    orders, total = await service_order_service.get_all(
        db,
        tenant_id,
        status_filter=status_filter,
        client_id=client_id,
        page=page,
        per_page=per_page,
        search=search,
    )
    return ServiceOrderList(
        items=[ServiceOrderRead.model_validate(o) for o in orders],
        total=total,
        page=page,
        per_page=per_page,
        total_pages=0,  # calcolato automaticamente dal model_validator
    )


@router.get(
    "/{order_id}",
    name="ordine_dettaglio",
    summary="Dettaglio ordine di servizio",
    response_model=ServiceOrderRead,
)
async def get_service_order(
    db: DbSession,
    tenant_id: TenantId,
    order_id: uuid.UUID = Path(..., description="UUID dell'ordine di servizio"),
) -> ServiceOrderRead:
    order = await service_order_service.get_by_id(db, tenant_id, order_id)
    return ServiceOrderRead.model_validate(order)


@router.post(
    "/",
    name="ordine_crea",
    summary="Crea ordine di servizio",
    description=(
        "Crea un nuovo ordine. I prezzi vengono risolti dal listino del cliente "
        "e congelati; se lo stato è 'completed' viene registrato l'addebito."
    ),
    response_model=ServiceOrderRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_service_order(
    data: ServiceOrderCreate,
    db: DbSession,
    tenant_id: TenantId,
    clock: LabClock,
) -> ServiceOrderRead:
    order = await service_order_service.create(db, tenant_id, data, clock)
    return ServiceOrderRead.model_validate(order)


@router.put(
    "/{order_id}",
    name="ordine_aggiorna",
    summary="Aggiorna ordine di servizio",
    response_model=ServiceOrderRead,
)
async def update_service_order(
    data: ServiceOrderUpdate,
    db: DbSession,
    tenant_id: TenantId,
    clock: LabClock,
    order_id: uuid.UUID = Path(..., description="UUID dell'ordine di servizio"),
) -> ServiceOrderRead:
    order = await service_order_service.update(db, tenant_id, order_id, data, clock)
    return ServiceOrderRead.model_validate(order)


@router.patch(
    "/{order_id}/status",
    name="ordine_cambia_stato",
    summary="Cambia stato ordine",
    description="Cambia lo stato dell'ordine riconciliando l'addebito nel registro contabile.",
    response_model=ServiceOrderRead,
)
async def change_service_order_status(
    data: OrderStatusUpdate,
    db: DbSession,
    tenant_id: TenantId,
    clock: LabClock,
    order_id: uuid.UUID = Path(..., description="UUID dell'ordine di servizio"),
) -> ServiceOrderRead:
    order = await ledger_reconciler.change_status(
        db, tenant_id, order_id, data.status, clock, data.completion_date
    )
    return ServiceOrderRead.model_validate(order)


@router.patch(
    "/{order_id}/paid",
    name="ordine_pagato",
    summary="Segna ordine pagato / non pagato",
    response_model=ServiceOrderRead,
)
async def set_service_order_paid(
    data: OrderPaidUpdate,
    db: DbSession,
    tenant_id: TenantId,
    order_id: uuid.UUID = Path(..., description="UUID dell'ordine di servizio"),
) -> ServiceOrderRead:
    order = await service_order_service.set_paid(db, tenant_id, order_id, data.is_paid)
    return ServiceOrderRead.model_validate(order)


@router.delete(
    "/{order_id}",
    name="ordine_elimina",
    summary="Elimina ordine di servizio",
    description="Elimina l'ordine e ritira l'eventuale addebito nello stesso lotto atomico.",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_service_order(
    db: DbSession,
    tenant_id: TenantId,
    order_id: uuid.UUID = Path(..., description="UUID dell'ordine di servizio"),
) -> None:
    await service_order_service.delete(db, tenant_id, order_id)
