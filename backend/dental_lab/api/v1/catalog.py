"""
Router FastAPI per listino e tabelle prezzi
Progetto: Dental Lab Manager (Gestionale Laboratorio Odontotecnico)
"""

import logging
import uuid
from typing import List

from fastapi import APIRouter, status

from dental_lab.core.deps import DbSession, TenantId
from dental_lab.schemas.catalog import (
    LabServiceCreate,
    LabServiceRead,
    LabServiceUpdate,
    PriceTableCreate,
    PriceTableEntryWrite,
    PriceTableRead,
    PriceTableUpdate,
)
from dental_lab.services.pricing_service import catalog_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/services",
    tags=["Listino"],
)

price_tables_router = APIRouter(
    prefix="/price-tables",
    tags=["Tabelle Prezzi"],
)


# -------------------------------------------------------------------
# Lavorazioni
# -------------------------------------------------------------------

@router.get("/", response_model=List[LabServiceRead])
async def get_all_services(db: DbSession, tenant_id: TenantId):
    """Lavorazioni del catalogo ordinate per materiale e nome."""
    return await catalog_service.list_services(db, tenant_id)


@router.get("/{service_id}", response_model=LabServiceRead)
async def get_service(service_id: uuid.UUID, db: DbSession, tenant_id: TenantId):
    return await catalog_service.get_service(db, tenant_id, service_id)


@router.post("/", response_model=LabServiceRead, status_code=status.HTTP_201_CREATED)
async def create_service(data: LabServiceCreate, db: DbSession, tenant_id: TenantId):
    """Crea una nuova lavorazione."""
    return await catalog_service.create_service(db, tenant_id, data)


@router.put("/{service_id}", response_model=LabServiceRead)
async def update_service(service_id: uuid.UUID, data: LabServiceUpdate, db: DbSession, tenant_id: TenantId):
    """Aggiorna una lavorazione. Gli ordini esistenti mantengono il prezzo salvato."""
    return await catalog_service.update_service(db, tenant_id, service_id, data)


@router.delete("/{service_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_service(service_id: uuid.UUID, db: DbSession, tenant_id: TenantId):
    await catalog_service.delete_service(db, tenant_id, service_id)


# -------------------------------------------------------------------
# Tabelle prezzi
# -------------------------------------------------------------------

@price_tables_router.get("/", response_model=List[PriceTableRead])
async def get_all_price_tables(db: DbSession, tenant_id: TenantId):
    return await catalog_service.list_price_tables(db, tenant_id)


@price_tables_router.get("/{table_id}", response_model=PriceTableRead)
async def get_price_table(table_id: uuid.UUID, db: DbSession, tenant_id: TenantId):
    return await catalog_service.get_price_table(db, tenant_id, table_id)


@price_tables_router.post("/", response_model=PriceTableRead, status_code=status.HTTP_201_CREATED)
async def create_price_table(data: PriceTableCreate, db: DbSession, tenant_id: TenantId):
    """Crea una tabella prezzi; le voci con prezzo <= 0 vengono ignorate."""
    return await catalog_service.create_price_table(db, tenant_id, data)


@price_tables_router.put("/{table_id}", response_model=PriceTableRead)
async def update_price_table(table_id: uuid.UUID, data: PriceTableUpdate, db: DbSession, tenant_id: TenantId):
    return await catalog_service.update_price_table(db, tenant_id, table_id, data)


@price_tables_router.put("/{table_id}/overrides", response_model=PriceTableRead)
async def set_price_override(
    table_id: uuid.UUID,
    entry: PriceTableEntryWrite,
    db: DbSession,
    tenant_id: TenantId,
):
    """Imposta il prezzo personalizzato di una lavorazione (<= 0 lo rimuove)."""
    return await catalog_service.set_price_override(db, tenant_id, table_id, entry)


@price_tables_router.delete("/{table_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_price_table(table_id: uuid.UUID, db: DbSession, tenant_id: TenantId):
    """Elimina la tabella; i clienti collegati tornano al listino standard."""
    await catalog_service.delete_price_table(db, tenant_id, table_id)
