"""
Router FastAPI per il registro contabile
Progetto: Dental Lab Manager (Gestionale Laboratorio Odontotecnico)

Saldi, estratti conto e pagamenti dei clienti. Gli addebiti non si
creano da qui: sono generati dal completamento degli ordini.
"""

import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Query, status

from dental_lab.core.deps import DbSession, LabClock, TenantId
from dental_lab.schemas.ledger import (
    ClientAccount,
    ClientStatement,
    CreditCreate,
    CreditUpdate,
    TransactionRead,
)
from dental_lab.schemas.service_order import ServiceOrderRead
from dental_lab.services.ledger_service import ledger_reconciler

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/ledger",
    tags=["Registro Contabile"],
)


@router.get("/accounts", response_model=List[ClientAccount])
async def get_accounts(db: DbSession, tenant_id: TenantId):
    """Saldo di tutti i clienti."""
    return await ledger_reconciler.list_accounts(db, tenant_id)


@router.get("/accounts/{client_id}", response_model=ClientAccount)
async def get_client_account(client_id: uuid.UUID, db: DbSession, tenant_id: TenantId):
    """Saldo del cliente (crediti - debiti)."""
    return await ledger_reconciler.client_account(db, tenant_id, client_id)


@router.get("/accounts/{client_id}/statement", response_model=ClientStatement)
async def get_client_statement(client_id: uuid.UUID, db: DbSession, tenant_id: TenantId):
    """Estratto conto con saldo progressivo."""
    return await ledger_reconciler.client_statement(db, tenant_id, client_id)


@router.get("/transactions", response_model=List[TransactionRead])
async def get_transactions(
    db: DbSession,
    tenant_id: TenantId,
    client_id: Optional[uuid.UUID] = Query(None, description="Filtro per cliente"),
):
    return await ledger_reconciler.list_transactions(db, tenant_id, client_id)


@router.post("/credits", response_model=TransactionRead, status_code=status.HTTP_201_CREATED)
async def post_credit(data: CreditCreate, db: DbSession, tenant_id: TenantId, clock: LabClock):
    """Registra un pagamento del cliente."""
    return await ledger_reconciler.post_credit(db, tenant_id, data, clock)


@router.put("/credits/{transaction_id}", response_model=TransactionRead)
async def update_credit(transaction_id: uuid.UUID, data: CreditUpdate, db: DbSession, tenant_id: TenantId):
    """Modifica un pagamento; gli addebiti non sono modificabili."""
    return await ledger_reconciler.update_credit(db, tenant_id, transaction_id, data)


@router.delete("/transactions/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_transaction(transaction_id: uuid.UUID, db: DbSession, tenant_id: TenantId):
    """Elimina un pagamento. Gli addebiti restituiscono 409."""
    await ledger_reconciler.delete_transaction(db, tenant_id, transaction_id)


@router.post("/orders/{order_id}/cancel", response_model=ServiceOrderRead)
async def cancel_order(order_id: uuid.UUID, db: DbSession, tenant_id: TenantId, clock: LabClock):
    """Annulla l'ordine ed elimina il relativo addebito in un'unica operazione."""
    order = await ledger_reconciler.cancel_order(db, tenant_id, order_id, clock)
    return ServiceOrderRead.model_validate(order)
