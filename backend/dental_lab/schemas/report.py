"""
Schemas Pydantic per i report
Progetto: Dental Lab Manager (Gestionale Laboratorio Odontotecnico)

Tutti i report filtrano sulla data di completamento con estremi inclusi
(giorni di calendario nel fuso del laboratorio).
"""

import datetime
import uuid
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class ReportPeriod(BaseModel):
    """Intervallo di date incluso; entrambi gli estremi sono opzionali."""
    start_date: Optional[datetime.date] = None
    end_date: Optional[datetime.date] = None

    @model_validator(mode="after")
    def validate_range(self) -> "ReportPeriod":
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("La data di fine non può precedere la data di inizio")
        return self

    def contains(self, day: Optional[datetime.date]) -> bool:
        """
        Verifica se il giorno è nell'intervallo.

        Un giorno mancante è incluso solo se l'intervallo non ha estremi.
        """
        if day is None:
            return self.start_date is None and self.end_date is None
        if self.start_date and day < self.start_date:
            return False
        if self.end_date and day > self.end_date:
            return False
        return True


# -------------------------------------------------------------------
# Ordini completati per periodo
# -------------------------------------------------------------------

class CompletedOrderRow(BaseModel):
    order_id: uuid.UUID
    number: int
    client_id: uuid.UUID
    client_name: str
    patient_name: Optional[str]
    completion_date: datetime.date
    total_value: Decimal
    commission_value: Decimal


class CompletedByPeriodReport(BaseModel):
    period: ReportPeriod
    orders: list[CompletedOrderRow] = Field(default_factory=list)
    total_value: Decimal
    total_commission: Decimal


# -------------------------------------------------------------------
# Commissioni per dipendente
# -------------------------------------------------------------------

class CommissionRow(BaseModel):
    order_id: uuid.UUID
    number: int
    client_name: str
    patient_name: Optional[str]
    completion_date: datetime.date
    order_total: Decimal
    commission_percentage: Decimal
    commission_value: Decimal


class CommissionsReport(BaseModel):
    period: ReportPeriod
    employee_id: uuid.UUID
    employee_name: Optional[str] = None
    rows: list[CommissionRow] = Field(default_factory=list)
    total_value: Decimal
    total_commission: Decimal


# -------------------------------------------------------------------
# Ordini per cliente
# -------------------------------------------------------------------

class ClientOrderRow(BaseModel):
    order_id: uuid.UUID
    number: int
    status: str
    completion_date: Optional[datetime.date]
    patient_name: Optional[str]
    service_id: uuid.UUID
    service_name: str
    tooth_number: str
    color: str
    quantity: int
    price: Decimal
    subtotal: Decimal


class ClientOrdersReport(BaseModel):
    period: ReportPeriod
    client_id: uuid.UUID
    client_name: Optional[str] = None
    rows: list[ClientOrderRow] = Field(default_factory=list)
    orders_count: int
    total_value: Decimal


# -------------------------------------------------------------------
# Riepilogo (dashboard)
# -------------------------------------------------------------------

class UpcomingDelivery(BaseModel):
    order_id: uuid.UUID
    number: int
    client_name: str
    patient_name: Optional[str]
    delivery_date: datetime.date
    status: str


class DashboardSummary(BaseModel):
    pending_count: int
    in_progress_count: int
    upcoming_deliveries: list[UpcomingDelivery] = Field(default_factory=list)
    receivables_paid: Decimal = Field(..., description="Totale ordini completati segnati come pagati")
    receivables_unpaid: Decimal = Field(..., description="Totale ordini completati non pagati")
    unpaid_orders_count: int
