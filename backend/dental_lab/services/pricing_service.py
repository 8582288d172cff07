"""
Service Layer per listino e tabelle prezzi
Progetto: Dental Lab Manager (Gestionale Laboratorio Odontotecnico)

Contiene:
- resolve_prices(): risoluzione pura del listino effettivo di un cliente
- set_override() / replace_overrides(): manutenzione delle voci di una tabella
- CatalogService: CRUD di lavorazioni e tabelle prezzi, listino per cliente
"""

import logging
import uuid
from decimal import Decimal
from itertools import groupby
from typing import Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from dental_lab.core.database import atomic_batch
from dental_lab.core.exceptions import BusinessValidationError, NotFoundError
from dental_lab.core.money import to_money
from dental_lab.models import Client, LabService, PriceTable, PriceTableEntry
from dental_lab.schemas.catalog import (
    ClientPriceList,
    LabServiceCreate,
    LabServiceUpdate,
    PriceListGroup,
    PriceTableCreate,
    PriceTableEntryWrite,
    PriceTableUpdate,
    ResolvedService,
)

# Logger per questo modulo
logger = logging.getLogger(__name__)


# ------------------------------------------------------------
# Risoluzione prezzi (funzioni pure)
# ------------------------------------------------------------

def find_price_table(
    client: Optional[Client],
    price_tables: Iterable[PriceTable],
) -> Optional[PriceTable]:
    """
    Tabella prezzi assegnata al cliente.

    Un price_table_id che non corrisponde a nessuna tabella esistente è
    trattato come assente.
    """
    if client is None or client.price_table_id is None:
        return None
    for table in price_tables:
        if table.id == client.price_table_id:
            return table
    logger.debug("Tabella prezzi %s del cliente %s non trovata", client.price_table_id, client.id)
    return None


def resolve_prices(
    client: Optional[Client],
    catalog: Iterable[LabService],
    price_tables: Iterable[PriceTable],
) -> list[PriceListGroup]:
    """
    Calcola il listino effettivo visto da un cliente.

    Ogni lavorazione riporta il prezzo standard e il display_price, che è
    il prezzo personalizzato se la tabella del cliente lo prevede,
    altrimenti quello standard. Le voci della tabella riferite a
    lavorazioni non più presenti nel catalogo vengono ignorate.

    Args:
        client: Cliente (None = listino standard)
        catalog: Tutte le lavorazioni del catalogo
        price_tables: Tabelle prezzi disponibili

    Returns:
        Lista di gruppi per materiale, ordinati per materiale e nome
    """
    table = find_price_table(client, price_tables)
    overrides = table.overrides if table is not None else {}

    resolved = [
        ResolvedService(
            id=service.id,
            name=service.name,
            material=service.material or "",
            standard_price=to_money(service.standard_price),
            display_price=to_money(overrides.get(service.id, service.standard_price)),
        )
        for service in catalog
    ]
    # groupby raggruppa solo elementi contigui: il materiale esatto deve far
    # parte della chiave di ordinamento
    resolved.sort(key=lambda s: (s.material.lower(), s.material, s.name.lower()))

    return [
        PriceListGroup(material=material, services=list(services))
        for material, services in groupby(resolved, key=lambda s: s.material)
    ]


def index_price_list(groups: Iterable[PriceListGroup]) -> dict[uuid.UUID, ResolvedService]:
    """Indicizza il listino risolto per service_id."""
    return {service.id: service for group in groups for service in group.services}


def set_override(table: PriceTable, service_id: uuid.UUID, price: Decimal) -> PriceTable:
    """
    Imposta il prezzo personalizzato di una lavorazione.

    Un prezzo pari a 0 o negativo rimuove la personalizzazione, così la
    lavorazione torna al prezzo standard.
    """
    price = to_money(price)
    current = next((e for e in table.entries if e.service_id == service_id), None)

    if price <= 0:
        if current is not None:
            table.entries.remove(current)
        return table

    if current is not None:
        current.custom_price = price
    else:
        table.entries.append(PriceTableEntry(service_id=service_id, custom_price=price))
    return table


def replace_overrides(table: PriceTable, entries: Iterable[PriceTableEntryWrite]) -> PriceTable:
    """
    Sostituisce tutte le voci della tabella.

    Le voci esistenti vengono aggiornate sul posto, così che il vincolo
    univoco (tabella, lavorazione) non venga mai violato durante il flush.
    """
    wanted = {entry.service_id: entry.custom_price for entry in entries}
    for entry in list(table.entries):
        if entry.service_id not in wanted:
            table.entries.remove(entry)
    for service_id, price in wanted.items():
        set_override(table, service_id, price)
    return table


# ------------------------------------------------------------
# Service CRUD
# ------------------------------------------------------------

class CatalogService:
    """
    Service per lavorazioni del catalogo e tabelle prezzi.

    Tutte le query sono filtrate per tenant.
    """

    # ------------------------------------------------------------
    # Lavorazioni
    # ------------------------------------------------------------

    async def list_services(self, db: AsyncSession, tenant_id: str) -> list[LabService]:
        query = (
            select(LabService)
            .where(LabService.tenant_id == tenant_id)
            .order_by(LabService.material, LabService.name)
        )
        result = await db.execute(query)
        return list(result.scalars().all())

    async def get_service(self, db: AsyncSession, tenant_id: str, service_id: uuid.UUID) -> LabService:
        query = select(LabService).where(
            LabService.id == service_id,
            LabService.tenant_id == tenant_id,
        )
        result = await db.execute(query)
        service = result.scalar_one_or_none()
        if not service:
            raise NotFoundError(f"Lavorazione {service_id} non trovata")
        return service

    async def create_service(self, db: AsyncSession, tenant_id: str, data: LabServiceCreate) -> LabService:
        service = LabService(tenant_id=tenant_id, **data.model_dump())
        service.standard_price = to_money(service.standard_price)
        async with atomic_batch(db):
            db.add(service)
        logger.info("Creata lavorazione %s (%s)", service.name, service.id)
        return service

    async def update_service(
        self,
        db: AsyncSession,
        tenant_id: str,
        service_id: uuid.UUID,
        data: LabServiceUpdate,
    ) -> LabService:
        """
        Aggiorna una lavorazione.

        Gli ordini esistenti non cambiano: conservano il prezzo congelato.
        """
        service = await self.get_service(db, tenant_id, service_id)
        update_data = data.model_dump(exclude_unset=True)
        if update_data.get("standard_price") is not None:
            update_data["standard_price"] = to_money(update_data["standard_price"])
        async with atomic_batch(db):
            for field, value in update_data.items():
                if value is not None:
                    setattr(service, field, value)
        logger.info("Aggiornata lavorazione %s", service_id)
        return service

    async def delete_service(self, db: AsyncSession, tenant_id: str, service_id: uuid.UUID) -> None:
        """
        Elimina una lavorazione dal catalogo.

        Le voci delle tabelle prezzi che la riferiscono restano e vengono
        ignorate in fase di risoluzione.
        """
        service = await self.get_service(db, tenant_id, service_id)
        async with atomic_batch(db):
            await db.delete(service)
        logger.info("Eliminata lavorazione %s", service_id)

    # ------------------------------------------------------------
    # Tabelle prezzi
    # ------------------------------------------------------------

    async def list_price_tables(self, db: AsyncSession, tenant_id: str) -> list[PriceTable]:
        query = (
            select(PriceTable)
            .where(PriceTable.tenant_id == tenant_id)
            .order_by(PriceTable.name)
        )
        result = await db.execute(query)
        return list(result.scalars().all())

    async def get_price_table(self, db: AsyncSession, tenant_id: str, table_id: uuid.UUID) -> PriceTable:
        query = (
            select(PriceTable)
            .where(PriceTable.id == table_id, PriceTable.tenant_id == tenant_id)
            .execution_options(populate_existing=True)
        )
        result = await db.execute(query)
        table = result.scalar_one_or_none()
        if not table:
            raise NotFoundError(f"Tabella prezzi {table_id} non trovata")
        return table

    async def create_price_table(self, db: AsyncSession, tenant_id: str, data: PriceTableCreate) -> PriceTable:
        table = PriceTable(tenant_id=tenant_id, name=data.name.strip(), entries=[])
        replace_overrides(table, data.entries)
        async with atomic_batch(db):
            db.add(table)
        logger.info("Creata tabella prezzi %s con %d voci", table.name, len(table.entries))
        return table

    async def update_price_table(
        self,
        db: AsyncSession,
        tenant_id: str,
        table_id: uuid.UUID,
        data: PriceTableUpdate,
    ) -> PriceTable:
        table = await self.get_price_table(db, tenant_id, table_id)
        async with atomic_batch(db):
            if data.name is not None:
                table.name = data.name.strip()
            if data.entries is not None:
                replace_overrides(table, data.entries)
        logger.info("Aggiornata tabella prezzi %s", table_id)
        return await self.get_price_table(db, tenant_id, table_id)

    async def set_price_override(
        self,
        db: AsyncSession,
        tenant_id: str,
        table_id: uuid.UUID,
        entry: PriceTableEntryWrite,
    ) -> PriceTable:
        """Imposta (o rimuove, se <= 0) il prezzo personalizzato di una lavorazione."""
        table = await self.get_price_table(db, tenant_id, table_id)
        await self.get_service(db, tenant_id, entry.service_id)
        async with atomic_batch(db):
            set_override(table, entry.service_id, entry.custom_price)
        logger.info(
            "Tabella %s: prezzo lavorazione %s impostato a %s",
            table_id,
            entry.service_id,
            entry.custom_price,
        )
        return await self.get_price_table(db, tenant_id, table_id)

    async def delete_price_table(self, db: AsyncSession, tenant_id: str, table_id: uuid.UUID) -> None:
        """
        Elimina una tabella prezzi.

        I clienti che la usavano tornano al listino standard.
        """
        table = await self.get_price_table(db, tenant_id, table_id)
        async with atomic_batch(db):
            await db.execute(
                update(Client)
                .where(Client.tenant_id == tenant_id, Client.price_table_id == table_id)
                .values(price_table_id=None)
            )
            await db.delete(table)
        logger.info("Eliminata tabella prezzi %s", table_id)

    # ------------------------------------------------------------
    # Listino per cliente
    # ------------------------------------------------------------

    async def resolve_for_client(
        self,
        db: AsyncSession,
        tenant_id: str,
        client: Optional[Client],
    ) -> list[PriceListGroup]:
        """Carica catalogo e tabella del cliente e risolve il listino."""
        catalog = await self.list_services(db, tenant_id)
        tables: list[PriceTable] = []
        if client is not None and client.price_table_id is not None:
            result = await db.execute(
                select(PriceTable).where(
                    PriceTable.id == client.price_table_id,
                    PriceTable.tenant_id == tenant_id,
                )
            )
            tables = list(result.scalars().all())
        return resolve_prices(client, catalog, tables)

    async def client_price_list(
        self,
        db: AsyncSession,
        tenant_id: str,
        client_id: uuid.UUID,
    ) -> ClientPriceList:
        result = await db.execute(
            select(Client).where(Client.id == client_id, Client.tenant_id == tenant_id)
        )
        client = result.scalar_one_or_none()
        if not client:
            raise NotFoundError(f"Cliente {client_id} non trovato")

        groups = await self.resolve_for_client(db, tenant_id, client)
        return ClientPriceList(
            client_id=client.id,
            price_table_id=client.price_table_id,
            groups=groups,
        )

    async def check_price_table(self, db: AsyncSession, tenant_id: str, table_id: Optional[uuid.UUID]) -> None:
        """Verifica che la tabella prezzi da assegnare a un cliente esista."""
        if table_id is None:
            return
        try:
            await self.get_price_table(db, tenant_id, table_id)
        except NotFoundError:
            raise BusinessValidationError(f"Tabella prezzi {table_id} inesistente")


catalog_service = CatalogService()
