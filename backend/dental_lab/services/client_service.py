"""
Service Layer per l'entità Client
Progetto: Dental Lab Manager (Gestionale Laboratorio Odontotecnico)

Definisce la logica di business per la gestione dei clienti:
- Soft delete (cancellazione logica)
- Verifica della tabella prezzi assegnata
- Isolamento per tenant
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from dental_lab.core.database import atomic_batch
from dental_lab.core.exceptions import ConflictError, NotFoundError
from dental_lab.models import Client, LedgerTransaction, ServiceOrder
from dental_lab.schemas.client import ClientCreate, ClientUpdate
from dental_lab.services.pricing_service import catalog_service

# Logger per questo modulo
logger = logging.getLogger(__name__)


class ClientService:
    """
    Service per la gestione delle operazioni CRUD sui clienti.

    Implementa:
    - Soft Delete: cancellazione logica tramite flag is_active
    - Filtro Automatico: di default esclude i clienti eliminati

    Gli ordini conservano lo snapshot del cliente, quindi modificare o
    eliminare un cliente non altera gli ordini già emessi.
    """

    async def get_all(
        self,
        db: AsyncSession,
        tenant_id: str,
        page: int = 1,
        per_page: int = 50,
        search: Optional[str] = None,
        include_inactive: bool = False,
    ) -> tuple[list[Client], int]:
        """
        Recupera la lista paginata dei clienti.

        Args:
            db: Sessione database
            tenant_id: Tenant corrente
            page: Numero pagina (default 1)
            per_page: Elementi per pagina (default 50)
            search: Termine di ricerca opzionale (nome, telefono, email)
            include_inactive: Se True, include anche i clienti soft-deleted

        Returns:
            Tuple di (lista clienti, totale count)
        """
        conditions = [Client.tenant_id == tenant_id]

        if not include_inactive:
            conditions.append(Client.is_active == True)

        if search:
            search_term = f"%{search}%"
            conditions.append(
                or_(
                    Client.name.ilike(search_term),
                    Client.phone.ilike(search_term),
                    Client.email.ilike(search_term),
                )
            )

        query = (
            select(Client)
            .where(*conditions)
            .order_by(Client.name.asc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        result = await db.execute(query)
        clients = list(result.scalars().all())

        count_query = select(func.count()).select_from(Client).where(*conditions)
        total = (await db.execute(count_query)).scalar() or 0

        logger.debug(
            "Recuperati %s clienti su %s totali (pagina %s, include_inactive=%s)",
            len(clients), total, page, include_inactive
        )
        return clients, total

    async def get_by_id(
        self,
        db: AsyncSession,
        tenant_id: str,
        client_id: uuid.UUID,
        include_inactive: bool = False,
    ) -> Client:
        """
        Recupera un cliente tramite ID.

        Raises:
            NotFoundError: Se il cliente non esiste o è stato eliminato
        """
        query = select(Client).where(Client.id == client_id, Client.tenant_id == tenant_id)
        if not include_inactive:
            query = query.where(Client.is_active == True)

        result = await db.execute(query)
        client = result.scalar_one_or_none()

        if client is None:
            logger.warning("Cliente non trovato o eliminato: %s", client_id)
            raise NotFoundError(f"Cliente con ID {client_id} non trovato")
        return client

    async def create(self, db: AsyncSession, tenant_id: str, client_data: ClientCreate) -> Client:
        """
        Crea un nuovo cliente.

        Raises:
            BusinessValidationError: Se la tabella prezzi indicata non esiste
        """
        await catalog_service.check_price_table(db, tenant_id, client_data.price_table_id)

        client = Client(tenant_id=tenant_id, **client_data.model_dump())
        async with atomic_batch(db):
            db.add(client)

        logger.info("Creato nuovo cliente: %s - %s", client.id, client.name)
        return client

    async def update(
        self,
        db: AsyncSession,
        tenant_id: str,
        client_id: uuid.UUID,
        client_data: ClientUpdate,
    ) -> Client:
        """
        Aggiorna un cliente esistente.

        Il nuovo listino vale solo per gli ordini compilati da ora in poi.
        """
        client = await self.get_by_id(db, tenant_id, client_id)
        update_data = client_data.model_dump(exclude_unset=True)

        if "price_table_id" in update_data:
            await catalog_service.check_price_table(db, tenant_id, update_data["price_table_id"])
        if "name" in update_data and update_data["name"] is None:
            del update_data["name"]

        async with atomic_batch(db):
            for field, value in update_data.items():
                setattr(client, field, value)

        logger.info("Aggiornato cliente: %s - %s", client.id, client.name)
        return client

    async def delete(
        self,
        db: AsyncSession,
        tenant_id: str,
        client_id: uuid.UUID,
        hard_delete: bool = False,
    ) -> None:
        """
        Elimina un cliente.

        Di default imposta is_active=False. L'eliminazione fisica è
        consentita solo per clienti senza ordini né movimenti contabili.

        Raises:
            NotFoundError: Se il cliente non esiste
            ConflictError: Se hard_delete e il cliente ha ordini o movimenti
        """
        client = await self.get_by_id(db, tenant_id, client_id, include_inactive=hard_delete)

        if hard_delete:
            orders = (await db.execute(
                select(func.count(ServiceOrder.id)).where(ServiceOrder.client_id == client_id)
            )).scalar() or 0
            transactions = (await db.execute(
                select(func.count(LedgerTransaction.id)).where(LedgerTransaction.client_id == client_id)
            )).scalar() or 0
            if orders or transactions:
                logger.warning(
                    "Eliminazione fisica rifiutata per il cliente %s: %s ordini, %s movimenti",
                    client_id, orders, transactions
                )
                raise ConflictError(
                    "Impossibile eliminare definitivamente un cliente con ordini o movimenti contabili"
                )
            async with atomic_batch(db):
                await db.delete(client)
            logger.info("Cliente eliminato definitivamente: %s", client_id)
            return

        async with atomic_batch(db):
            client.is_active = False
        logger.info("Cliente disattivato (soft delete): %s", client_id)


client_service = ClientService()
