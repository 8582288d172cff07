"""
Service Layer per il registro contabile dei clienti
Progetto: Dental Lab Manager (Gestionale Laboratorio Odontotecnico)

Riconciliazione tra ciclo di vita degli ordini e registro contabile:
- completare un ordine genera un addebito, una sola volta
- riportare l'ordine fuori da "completato" (o annullarlo) ritira l'addebito
- i pagamenti manuali generano accrediti

Ogni operazione che modifica ordine e registro viene eseguita in un unico
lotto atomico (atomic_batch): o vengono salvate tutte le modifiche o nessuna.
"""

import datetime
import logging
import uuid
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dental_lab.core.clock import Clock
from dental_lab.core.config import settings
from dental_lab.core.database import atomic_batch
from dental_lab.core.exceptions import (
    BusinessValidationError,
    ConsistencyViolationError,
    NotFoundError,
)
from dental_lab.core.money import ZERO, to_money
from dental_lab.models import Client, LedgerTransaction, ServiceOrder
from dental_lab.schemas.ledger import (
    ClientAccount,
    ClientStatement,
    CreditCreate,
    CreditUpdate,
    StatementEntry,
    TransactionRead,
    TransactionType,
)
from dental_lab.schemas.service_order import VALID_TRANSITIONS, OrderStatus

# Logger per questo modulo
logger = logging.getLogger(__name__)


# ------------------------------------------------------------
# Calcolo saldi (funzioni pure)
# ------------------------------------------------------------

def compute_account(
    client_id: uuid.UUID,
    client_name: str,
    transactions: Iterable[LedgerTransaction],
) -> ClientAccount:
    """
    Ricalcola il saldo di un cliente dall'insieme completo dei movimenti.

    balance = Σ crediti − Σ debiti
    """
    total_debits = ZERO
    total_credits = ZERO
    for tx in transactions:
        if tx.type == TransactionType.CREDIT.value:
            total_credits += tx.amount
        else:
            total_debits += tx.amount
    return ClientAccount(
        client_id=client_id,
        client_name=client_name,
        total_debits=to_money(total_debits),
        total_credits=to_money(total_credits),
        balance=to_money(total_credits - total_debits),
    )


def _created_key(tx: LedgerTransaction) -> datetime.datetime:
    created = tx.created_at
    if created is None:
        return datetime.datetime.min.replace(tzinfo=datetime.timezone.utc)
    if created.tzinfo is None:
        # SQLite restituisce datetime naive (salvati in UTC)
        return created.replace(tzinfo=datetime.timezone.utc)
    return created


def build_statement(transactions: Iterable[LedgerTransaction]) -> list[StatementEntry]:
    """Movimenti in ordine cronologico con il saldo progressivo dopo ciascuno."""
    ordered = sorted(transactions, key=lambda tx: (tx.date, _created_key(tx)))
    balance = ZERO
    entries = []
    for tx in ordered:
        balance += tx.signed_amount
        read = TransactionRead.model_validate(tx)
        entries.append(StatementEntry(**read.model_dump(), running_balance=to_money(balance)))
    return entries


def debit_description(order: ServiceOrder) -> str:
    description = f"Ordine n. {order.number}"
    if order.patient_name:
        description += f" - Paziente: {order.patient_name}"
    return description


class LedgerReconciler:
    """
    Service per la riconciliazione tra ordini e registro contabile.

    È l'unico punto in cui lo stato di un ordine viene cambiato.
    """

    # ------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------

    async def _get_order(self, db: AsyncSession, tenant_id: str, order_id: uuid.UUID) -> ServiceOrder:
        query = (
            select(ServiceOrder)
            .where(ServiceOrder.id == order_id, ServiceOrder.tenant_id == tenant_id)
            .execution_options(populate_existing=True)
        )
        result = await db.execute(query)
        order = result.scalar_one_or_none()
        if not order:
            logger.warning("Ordine di servizio non trovato: %s", order_id)
            raise NotFoundError(f"Ordine di servizio {order_id} non trovato")
        return order

    async def _get_client(self, db: AsyncSession, tenant_id: str, client_id: uuid.UUID) -> Client:
        result = await db.execute(
            select(Client).where(Client.id == client_id, Client.tenant_id == tenant_id)
        )
        client = result.scalar_one_or_none()
        if not client:
            raise NotFoundError(f"Cliente {client_id} non trovato")
        return client

    async def _get_transaction(
        self,
        db: AsyncSession,
        tenant_id: str,
        transaction_id: uuid.UUID,
    ) -> LedgerTransaction:
        result = await db.execute(
            select(LedgerTransaction).where(
                LedgerTransaction.id == transaction_id,
                LedgerTransaction.tenant_id == tenant_id,
            )
        )
        tx = result.scalar_one_or_none()
        if not tx:
            raise NotFoundError(f"Movimento {transaction_id} non trovato")
        return tx

    async def find_debit(self, db: AsyncSession, tenant_id: str, order_id: uuid.UUID) -> Optional[LedgerTransaction]:
        """Addebito generato dall'ordine, se presente."""
        result = await db.execute(
            select(LedgerTransaction).where(
                LedgerTransaction.tenant_id == tenant_id,
                LedgerTransaction.order_id == order_id,
                LedgerTransaction.type == TransactionType.DEBIT.value,
            )
        )
        return result.scalars().first()

    async def _ensure_debit(self, db: AsyncSession, tenant_id: str, order: ServiceOrder) -> Optional[LedgerTransaction]:
        """
        Crea l'addebito dell'ordine completato se non esiste già.

        Un addebito già presente è autorevole: non viene né duplicato né
        sovrascritto (a parte la data, allineata alla data di completamento).
        """
        existing = await self.find_debit(db, tenant_id, order.id)
        if existing is not None:
            logger.warning(
                "Addebito già presente per l'ordine %s (n. %s): nessun nuovo addebito creato",
                order.id,
                order.number,
            )
            if existing.date != order.completion_date:
                existing.date = order.completion_date
            return existing

        total = to_money(order.total_value)
        if total <= 0:
            logger.info("Ordine %s completato con totale zero: nessun addebito", order.number)
            return None

        debit = LedgerTransaction(
            tenant_id=tenant_id,
            client_id=order.client_id,
            client_name=order.client_name,
            type=TransactionType.DEBIT.value,
            amount=total,
            date=order.completion_date,
            description=debit_description(order),
            order_id=order.id,
        )
        db.add(debit)
        logger.info("Addebito di %s registrato per l'ordine n. %s", total, order.number)
        return debit

    async def retract_debit(self, db: AsyncSession, tenant_id: str, order: ServiceOrder) -> bool:
        """
        Elimina l'addebito dell'ordine se presente (senza commit).

        Returns:
            True se un addebito è stato eliminato
        """
        existing = await self.find_debit(db, tenant_id, order.id)
        if existing is None:
            return False
        await db.delete(existing)
        logger.info("Addebito di %s ritirato per l'ordine n. %s", existing.amount, order.number)
        return True

    # ------------------------------------------------------------
    # Transizioni di stato
    # ------------------------------------------------------------

    async def apply_transition(
        self,
        db: AsyncSession,
        tenant_id: str,
        order: ServiceOrder,
        new_status: OrderStatus,
        clock: Clock,
        completion_date: Optional[datetime.date] = None,
    ) -> ServiceOrder:
        """
        Applica il cambio di stato e riconcilia il registro (senza commit).

        Da chiamare all'interno di un atomic_batch, insieme alle altre
        modifiche dell'ordine.

        Raises:
            BusinessValidationError: Se la transizione non è consentita
        """
        try:
            current = OrderStatus(order.status)
        except ValueError:
            logger.error("Stato invalido nel database: %s", order.status)
            raise BusinessValidationError(f"Stato invalido: {order.status}")
        new_status = OrderStatus(new_status)

        if new_status != current and new_status not in VALID_TRANSITIONS.get(current, []):
            logger.warning("Transizione non consentita: %s -> %s", current.value, new_status.value)
            raise BusinessValidationError(
                f"Transizione da '{current.value}' a '{new_status.value}' non consentita"
            )

        order.status = new_status.value

        if new_status == OrderStatus.COMPLETED:
            if completion_date is not None:
                order.completion_date = completion_date
            elif order.completion_date is None or current != OrderStatus.COMPLETED:
                order.completion_date = clock.today()
            await self._ensure_debit(db, tenant_id, order)
        else:
            await self.retract_debit(db, tenant_id, order)
            order.completion_date = None

        if new_status != current:
            logger.info(
                "Ordine n. %s: stato %s -> %s",
                order.number,
                current.value,
                new_status.value,
            )
        return order

    async def change_status(
        self,
        db: AsyncSession,
        tenant_id: str,
        order_id: uuid.UUID,
        new_status: OrderStatus,
        clock: Clock,
        completion_date: Optional[datetime.date] = None,
    ) -> ServiceOrder:
        """
        Cambia lo stato di un ordine in un unico lotto atomico.

        Raises:
            NotFoundError: Se l'ordine non esiste
            BusinessValidationError: Se la transizione non è consentita
            StoreFailureError: Se il salvataggio fallisce (nulla viene modificato)
        """
        order = await self._get_order(db, tenant_id, order_id)
        async with atomic_batch(db):
            await self.apply_transition(db, tenant_id, order, new_status, clock, completion_date)
        return order

    async def cancel_order(
        self,
        db: AsyncSession,
        tenant_id: str,
        order_id: uuid.UUID,
        clock: Clock,
    ) -> ServiceOrder:
        """Annulla l'ordine ed elimina l'eventuale addebito con un solo commit."""
        return await self.change_status(db, tenant_id, order_id, OrderStatus.CANCELLED, clock)

    # ------------------------------------------------------------
    # Movimenti manuali
    # ------------------------------------------------------------

    async def post_credit(
        self,
        db: AsyncSession,
        tenant_id: str,
        data: CreditCreate,
        clock: Clock,
    ) -> LedgerTransaction:
        """
        Registra un pagamento del cliente.

        Raises:
            NotFoundError: Se il cliente non esiste
            BusinessValidationError: Se l'importo non è positivo
        """
        client = await self._get_client(db, tenant_id, data.client_id)
        amount = to_money(data.amount)
        if amount <= 0:
            raise BusinessValidationError("L'importo del pagamento deve essere maggiore di zero")

        description = (data.description or "").strip() or settings.payment_default_description
        credit = LedgerTransaction(
            tenant_id=tenant_id,
            client_id=client.id,
            client_name=client.name,
            type=TransactionType.CREDIT.value,
            amount=amount,
            date=data.date or clock.today(),
            description=description,
            order_id=None,
        )
        async with atomic_batch(db):
            db.add(credit)

        logger.info("Pagamento di %s registrato per il cliente %s", amount, client.name)
        return credit

    async def update_credit(
        self,
        db: AsyncSession,
        tenant_id: str,
        transaction_id: uuid.UUID,
        data: CreditUpdate,
    ) -> LedgerTransaction:
        """
        Modifica importo, data o descrizione di un pagamento.

        Raises:
            ConsistencyViolationError: Se il movimento è un addebito
        """
        tx = await self._get_transaction(db, tenant_id, transaction_id)
        if tx.type == TransactionType.DEBIT.value:
            logger.warning("Tentativo di modificare l'addebito %s", transaction_id)
            raise ConsistencyViolationError(
                "Gli addebiti sono gestiti dagli ordini e non possono essere modificati"
            )

        async with atomic_batch(db):
            if data.amount is not None:
                tx.amount = to_money(data.amount)
            if data.date is not None:
                tx.date = data.date
            if data.description is not None:
                tx.description = data.description.strip() or settings.payment_default_description

        logger.info("Pagamento %s aggiornato", transaction_id)
        return tx

    async def delete_transaction(self, db: AsyncSession, tenant_id: str, transaction_id: uuid.UUID) -> None:
        """
        Elimina un pagamento.

        Raises:
            ConsistencyViolationError: Se il movimento è un addebito; va
                ritirato cambiando lo stato dell'ordine
        """
        tx = await self._get_transaction(db, tenant_id, transaction_id)
        if tx.type == TransactionType.DEBIT.value:
            logger.warning("Tentativo di eliminare direttamente l'addebito %s", transaction_id)
            raise ConsistencyViolationError(
                "Gli addebiti non possono essere eliminati direttamente: "
                "cambiare lo stato dell'ordine collegato",
                extra={"order_id": str(tx.order_id) if tx.order_id else None},
            )

        async with atomic_batch(db):
            await db.delete(tx)
        logger.info("Pagamento %s eliminato", transaction_id)

    # ------------------------------------------------------------
    # Saldi ed estratti conto
    # ------------------------------------------------------------

    async def list_transactions(
        self,
        db: AsyncSession,
        tenant_id: str,
        client_id: Optional[uuid.UUID] = None,
    ) -> list[LedgerTransaction]:
        query = select(LedgerTransaction).where(LedgerTransaction.tenant_id == tenant_id)
        if client_id is not None:
            query = query.where(LedgerTransaction.client_id == client_id)
        query = query.order_by(LedgerTransaction.date.desc(), LedgerTransaction.created_at.desc())
        result = await db.execute(query)
        return list(result.scalars().all())

    async def client_account(self, db: AsyncSession, tenant_id: str, client_id: uuid.UUID) -> ClientAccount:
        client = await self._get_client(db, tenant_id, client_id)
        transactions = await self.list_transactions(db, tenant_id, client_id)
        return compute_account(client.id, client.name, transactions)

    async def client_statement(self, db: AsyncSession, tenant_id: str, client_id: uuid.UUID) -> ClientStatement:
        client = await self._get_client(db, tenant_id, client_id)
        transactions = await self.list_transactions(db, tenant_id, client_id)
        return ClientStatement(
            account=compute_account(client.id, client.name, transactions),
            entries=build_statement(transactions),
        )

    async def list_accounts(self, db: AsyncSession, tenant_id: str) -> list[ClientAccount]:
        """
        Saldo di tutti i clienti.

        Include i clienti attivi e quelli eliminati che hanno movimenti.
        """
        result = await db.execute(
            select(Client).where(Client.tenant_id == tenant_id).order_by(Client.name)
        )
        clients = list(result.scalars().all())

        by_client: dict[uuid.UUID, list[LedgerTransaction]] = {}
        for tx in await self.list_transactions(db, tenant_id):
            by_client.setdefault(tx.client_id, []).append(tx)

        return [
            compute_account(client.id, client.name, by_client.get(client.id, []))
            for client in clients
            if client.is_active or client.id in by_client
        ]


ledger_reconciler = LedgerReconciler()
