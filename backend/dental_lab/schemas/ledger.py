"""
Schemas Pydantic per il registro contabile
Progetto: Dental Lab Manager (Gestionale Laboratorio Odontotecnico)
"""

import datetime
import uuid
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class TransactionType(str, Enum):
    """Tipo di movimento contabile."""
    DEBIT = "debit"
    CREDIT = "credit"


class CreditCreate(BaseModel):
    """
    Pagamento manuale di un cliente.

    Se date è assente viene usata la data odierna; se description è
    assente viene usata la descrizione di default configurata.
    """
    client_id: uuid.UUID
    amount: Decimal = Field(..., gt=0, description="Importo pagato")
    date: Optional[datetime.date] = None
    description: Optional[str] = Field(None, max_length=500)


class CreditUpdate(BaseModel):
    amount: Optional[Decimal] = Field(None, gt=0)
    date: Optional[datetime.date] = None
    description: Optional[str] = Field(None, max_length=500)


class TransactionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    client_id: uuid.UUID
    client_name: str
    type: TransactionType
    amount: Decimal
    date: datetime.date
    description: str
    order_id: Optional[uuid.UUID] = None
    created_at: datetime.datetime


class ClientAccount(BaseModel):
    """
    Saldo del cliente, ricalcolato da tutti i movimenti.

    balance = crediti - debiti: negativo se il cliente deve dei soldi
    al laboratorio.
    """
    client_id: uuid.UUID
    client_name: str
    total_debits: Decimal
    total_credits: Decimal
    balance: Decimal


class StatementEntry(TransactionRead):
    running_balance: Decimal = Field(..., description="Saldo dopo il movimento")


class ClientStatement(BaseModel):
    """Estratto conto: movimenti in ordine cronologico con saldo progressivo."""
    account: ClientAccount
    entries: list[StatementEntry] = Field(default_factory=list)
