"""
Schemas Pydantic per listino e tabelle prezzi
Progetto: Dental Lab Manager (Gestionale Laboratorio Odontotecnico)
"""

import datetime
import uuid
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field


# -------------------------------------------------------------------
# Lavorazioni del catalogo
# -------------------------------------------------------------------

class LabServiceBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200, description="Nome della lavorazione")
    material: str = Field(default="", max_length=100, description="Materiale / gruppo del listino")
    standard_price: Decimal = Field(default=Decimal("0"), ge=Decimal("0"), description="Prezzo standard")


class LabServiceCreate(LabServiceBase):
    pass


class LabServiceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    material: Optional[str] = Field(None, max_length=100)
    standard_price: Optional[Decimal] = Field(None, ge=Decimal("0"))


class LabServiceRead(LabServiceBase):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    created_at: datetime.datetime
    updated_at: datetime.datetime


# -------------------------------------------------------------------
# Tabelle prezzi
# -------------------------------------------------------------------

class PriceTableEntryWrite(BaseModel):
    """
    Prezzo personalizzato da impostare.

    Un prezzo pari a 0 o negativo rimuove la personalizzazione.
    """
    service_id: uuid.UUID
    custom_price: Decimal = Field(..., description="Prezzo personalizzato (<= 0 rimuove la voce)")


class PriceTableEntryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    service_id: uuid.UUID
    custom_price: Decimal


class PriceTableCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Nome della tabella prezzi")
    entries: list[PriceTableEntryWrite] = Field(default_factory=list)


class PriceTableUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    entries: Optional[list[PriceTableEntryWrite]] = Field(
        None,
        description="Se presente, sostituisce tutte le voci della tabella",
    )


class PriceTableRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    entries: list[PriceTableEntryRead] = Field(default_factory=list)
    created_at: datetime.datetime
    updated_at: datetime.datetime


# -------------------------------------------------------------------
# Listino risolto per cliente
# -------------------------------------------------------------------

class ResolvedService(BaseModel):
    """
    Lavorazione con il prezzo effettivo per un cliente.

    display_price coincide con il prezzo personalizzato se la tabella del
    cliente lo prevede, altrimenti con il prezzo standard.
    """
    id: uuid.UUID
    name: str
    material: str
    standard_price: Decimal
    display_price: Decimal

    @computed_field
    @property
    def has_custom_price(self) -> bool:
        return self.display_price != self.standard_price


class PriceListGroup(BaseModel):
    """Lavorazioni raggruppate per materiale."""
    material: str
    services: list[ResolvedService] = Field(default_factory=list)


class ClientPriceList(BaseModel):
    client_id: uuid.UUID
    price_table_id: Optional[uuid.UUID] = None
    groups: list[PriceListGroup] = Field(default_factory=list)
