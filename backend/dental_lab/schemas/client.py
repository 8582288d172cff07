"""
Schemas Pydantic per l'entità Client
Progetto: Dental Lab Manager (Gestionale Laboratorio Odontotecnico)

Definisce gli schemi di validazione e serializzazione per l'API.
"""

import datetime
import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ClientBase(BaseModel):
    """
    Schema base per i clienti.

    Attributes:
        name: Nome o ragione sociale
        phone: Telefono
        email: Email
        address: Indirizzo
        notes: Note libere
        price_table_id: Tabella prezzi personalizzata (opzionale)
    """
    name: str = Field(..., min_length=1, max_length=200, description="Nome o ragione sociale")
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[str] = Field(None, max_length=255)
    address: Optional[str] = Field(None, max_length=500)
    notes: Optional[str] = Field(None, max_length=5000)
    price_table_id: Optional[uuid.UUID] = Field(None, description="Tabella prezzi assegnata")

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Il nome del cliente non può essere vuoto")
        return v

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip().lower()
        return v or None


class ClientCreate(ClientBase):
    pass


class ClientUpdate(BaseModel):
    """
    Schema per l'aggiornamento di un cliente.

    Tutti i campi sono opzionali per permettere aggiornamenti parziali.
    Passare price_table_id=null rimuove la tabella prezzi assegnata.
    """
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[str] = Field(None, max_length=255)
    address: Optional[str] = Field(None, max_length=500)
    notes: Optional[str] = Field(None, max_length=5000)
    price_table_id: Optional[uuid.UUID] = None


class ClientRead(ClientBase):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    is_active: bool
    created_at: datetime.datetime
    updated_at: datetime.datetime


class ClientList(BaseModel):
    """
    Schema per risposte paginate.

    Include la lista dei clienti con metadati di paginazione.
    """
    items: list[ClientRead] = Field(default_factory=list)
    total: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    per_page: int = Field(..., ge=1)
    total_pages: int = 0

    @model_validator(mode="after")
    def compute_total_pages(self) -> "ClientList":
        """Calcola automaticamente il numero totale di pagine."""
        if self.per_page > 0:
            self.total_pages = (self.total + self.per_page - 1) // self.per_page
        return self
