"""
Schemas Pydantic per gli Ordini di Servizio
Progetto: Dental Lab Manager (Gestionale Laboratorio Odontotecnico)

Definisce gli schemi di validazione e serializzazione per l'API.
"""

import datetime
import uuid
from decimal import ROUND_DOWN, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)


# -------------------------------------------------------------------
# Enum per gli stati dell'ordine di servizio
# -------------------------------------------------------------------

class OrderStatus(str, Enum):
    """Enum che definisce i possibili stati di un ordine di servizio."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# -------------------------------------------------------------------
# Matrice delle transizioni di stato valide
# -------------------------------------------------------------------

# La validazione delle transizioni avviene nel LedgerReconciler, che è
# l'unico punto in cui lo stato di un ordine viene cambiato.
VALID_TRANSITIONS: dict[OrderStatus, list[OrderStatus]] = {
    OrderStatus.PENDING: [
        OrderStatus.IN_PROGRESS,
        OrderStatus.COMPLETED,
        OrderStatus.CANCELLED,
    ],
    OrderStatus.IN_PROGRESS: [
        OrderStatus.PENDING,
        OrderStatus.COMPLETED,
        OrderStatus.CANCELLED,
    ],
    OrderStatus.COMPLETED: [
        OrderStatus.PENDING,
        OrderStatus.IN_PROGRESS,
        OrderStatus.CANCELLED,
    ],
    OrderStatus.CANCELLED: [
        OrderStatus.PENDING,
        OrderStatus.IN_PROGRESS,
        OrderStatus.COMPLETED,
    ],
}


# -------------------------------------------------------------------
# Funzioni di validazione standalone
# -------------------------------------------------------------------

def coerce_quantity(value: Any) -> int:
    """
    Converte la quantità di una riga in un intero >= 1.

    Valori mancanti, non numerici o inferiori a 1 valgono 1;
    i decimali vengono troncati ("2.5" -> 2).
    """
    if value is None or isinstance(value, bool):
        return 1
    try:
        quantity = int(Decimal(str(value).strip()).to_integral_value(rounding=ROUND_DOWN))
    except (InvalidOperation, ValueError, OverflowError):
        return 1
    return quantity if quantity >= 1 else 1


def empty_to_none(value: Any) -> Any:
    """Le stringhe vuote dei form diventano None."""
    if isinstance(value, str) and not value.strip():
        return None
    return value


# -------------------------------------------------------------------
# Schemas per righe e dipendenti
# -------------------------------------------------------------------

class OrderLineInput(BaseModel):
    """
    Lavorazione selezionata nel form dell'ordine.

    Il prezzo non è accettato in input: viene risolto dal listino del
    cliente al momento della prima selezione e poi congelato.
    """
    service_id: uuid.UUID
    quantity: int = Field(default=1, description="Quantità (>= 1)")
    tooth_number: str = Field(default="", max_length=50, description="Elemento dentale")
    color: str = Field(default="", max_length=50, description="Colore")

    @field_validator("quantity", mode="before")
    @classmethod
    def validate_quantity(cls, v: Any) -> int:
        return coerce_quantity(v)

    @field_validator("tooth_number", "color", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v


class AssignedEmployeeInput(BaseModel):
    """Dipendente da assegnare all'ordine con la percentuale di commissione."""
    employee_id: Optional[uuid.UUID] = None
    commission_percentage: Optional[Decimal] = Field(None, ge=0, le=100)

    @field_validator("employee_id", "commission_percentage", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        return empty_to_none(v)


class ServiceOrderLineRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    service_id: uuid.UUID
    name: str
    price: Decimal
    quantity: int
    tooth_number: str
    color: str

    @computed_field
    @property
    def subtotal(self) -> Decimal:
        """Totale della riga (price * quantity)."""
        return self.price * self.quantity


class AssignedEmployeeRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    employee_id: uuid.UUID
    name: str
    commission_percentage: Decimal
    commission_value: Decimal


# -------------------------------------------------------------------
# Schemas per ServiceOrder
# -------------------------------------------------------------------

class ServiceOrderCreate(BaseModel):
    """
    Schema per la creazione di un ordine di servizio.

    client_id e employees sono verificati dal compositore dell'ordine, che
    restituisce un errore di validazione di business se mancano.
    """
    client_id: Optional[uuid.UUID] = None
    patient_name: Optional[str] = Field(None, max_length=200)
    open_date: Optional[datetime.date] = Field(None, description="Default: oggi")
    delivery_date: Optional[datetime.date] = None
    completion_date: Optional[datetime.date] = None
    status: OrderStatus = OrderStatus.PENDING
    lines: list[OrderLineInput] = Field(default_factory=list)
    employees: list[AssignedEmployeeInput] = Field(default_factory=list)
    observations: Optional[str] = Field(None, max_length=5000)
    is_paid: bool = False

    @field_validator("client_id", mode="before")
    @classmethod
    def blank_client(cls, v: Any) -> Any:
        return empty_to_none(v)

    @model_validator(mode="after")
    def validate_dates(self) -> "ServiceOrderCreate":
        """La consegna non può precedere l'apertura."""
        if self.open_date and self.delivery_date and self.delivery_date < self.open_date:
            raise ValueError("La data di consegna non può precedere la data di apertura")
        return self


class ServiceOrderUpdate(BaseModel):
    """
    Schema per l'aggiornamento di un ordine di servizio.

    Tutti i campi sono opzionali. lines/employees, se presenti,
    sostituiscono l'insieme corrente (le righe già presenti mantengono
    il prezzo congelato). Lo status, se presente, passa per la
    riconciliazione contabile.
    """
    client_id: Optional[uuid.UUID] = None
    patient_name: Optional[str] = Field(None, max_length=200)
    open_date: Optional[datetime.date] = None
    delivery_date: Optional[datetime.date] = None
    completion_date: Optional[datetime.date] = None
    status: Optional[OrderStatus] = None
    lines: Optional[list[OrderLineInput]] = None
    employees: Optional[list[AssignedEmployeeInput]] = None
    observations: Optional[str] = Field(None, max_length=5000)


class OrderStatusUpdate(BaseModel):
    """
    Schema per il cambio di stato di un ordine.

    completion_date è usata solo quando il nuovo stato è completed;
    se assente viene timbrata la data odierna.
    """
    status: OrderStatus = Field(..., description="Nuovo stato dell'ordine")
    completion_date: Optional[datetime.date] = None


class OrderPaidUpdate(BaseModel):
    is_paid: bool


class ServiceOrderRead(BaseModel):
    """
    Schema per la lettura di un ordine di servizio.
    """
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    number: int
    client_id: uuid.UUID
    client_name: str
    client_snapshot: dict[str, Any] = Field(default_factory=dict)
    patient_name: Optional[str]
    open_date: datetime.date
    delivery_date: Optional[datetime.date]
    completion_date: Optional[datetime.date]
    status: OrderStatus
    lines: list[ServiceOrderLineRead] = Field(default_factory=list)
    assigned_employees: list[AssignedEmployeeRead] = Field(default_factory=list)
    total_value: Decimal
    commission_value: Decimal
    is_paid: bool
    observations: Optional[str]
    created_at: datetime.datetime
    updated_at: datetime.datetime


# -------------------------------------------------------------------
# Schema per lista paginata
# -------------------------------------------------------------------

class ServiceOrderList(BaseModel):
    """
    Schema per la risposta paginata degli ordini di servizio.
    """
    items: list[ServiceOrderRead]
    total: int
    page: int
    per_page: int
    total_pages: int = 0

    @model_validator(mode="after")
    def compute_total_pages(self) -> "ServiceOrderList":
        """Calcola automaticamente il numero totale di pagine."""
        if self.per_page > 0:
            self.total_pages = (self.total + self.per_page - 1) // self.per_page
        return self
