"""
Modello SQLAlchemy per l'entità Client
Progetto: Dental Lab Manager (Gestionale Laboratorio Odontotecnico)

Anagrafica dei clienti del laboratorio (studi dentistici, dentisti).
"""


from __future__ import annotations
import uuid
from typing import Any, Optional

from sqlalchemy import ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from dental_lab.models import Base
from dental_lab.models.mixins import SoftDeleteMixin, TenantMixin, TimestampMixin, UUIDMixin


class Client(Base, UUIDMixin, TimestampMixin, TenantMixin, SoftDeleteMixin):
    """
    Modello per l'anagrafica clienti.

    Attributes:
        name: Nome o ragione sociale
        phone: Telefono
        email: Email
        address: Indirizzo
        notes: Note libere
        price_table_id: Tabella prezzi assegnata (opzionale)
    """

    __tablename__ = "clients"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    price_table_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("price_tables.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        doc="Tabella prezzi personalizzata (se assente si usa il listino standard)",
    )

    __table_args__ = (
        Index("ix_clients_tenant_name", "tenant_id", "name"),
    )

    def snapshot(self) -> dict[str, Any]:
        """
        Copia dei dati anagrafici da salvare nell'ordine.

        Lo snapshot conserva i dati così come erano al momento della
        creazione dell'ordine, anche se l'anagrafica cambia in seguito.
        """
        return {
            "id": str(self.id),
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "price_table_id": str(self.price_table_id) if self.price_table_id else None,
        }

    def __repr__(self) -> str:
        return f"Client(name={self.name!r})"
