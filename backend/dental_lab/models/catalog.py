"""
Modelli SQLAlchemy per il listino
Progetto: Dental Lab Manager (Gestionale Laboratorio Odontotecnico)

 Contiene:
- LabService: Lavorazione del catalogo con prezzo standard
- PriceTable: Tabella prezzi personalizzata assegnabile ai clienti
- PriceTableEntry: Prezzo personalizzato di una lavorazione in una tabella
"""


from __future__ import annotations
import uuid
from decimal import Decimal
from typing import List

from sqlalchemy import CheckConstraint, ForeignKey, Index, Numeric, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dental_lab.models import Base
from dental_lab.models.mixins import TenantMixin, TimestampMixin, UUIDMixin


class LabService(Base, UUIDMixin, TimestampMixin, TenantMixin):
    """
    Lavorazione del catalogo (es. corona in zirconia, protesi mobile).

    Referenziata dagli ordini e dalle tabelle prezzi, mai modificata da essi:
    gli ordini ne conservano uno snapshot di nome e prezzo.

    Attributes:
        name: Nome della lavorazione
        material: Materiale / gruppo di appartenenza nel listino
        standard_price: Prezzo standard di listino
    """

    __tablename__ = "lab_services"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    material: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        default="",
        doc="Materiale, usato per raggruppare il listino",
    )
    standard_price: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0.00"),
    )

    __table_args__ = (
        Index("ix_lab_services_material_name", "material", "name"),
        CheckConstraint("standard_price >= 0", name="ck_lab_services_standard_price"),
    )

    def __repr__(self) -> str:
        return f"<LabService(name={self.name!r}, material={self.material!r}, price={self.standard_price})>"


class PriceTable(Base, UUIDMixin, TimestampMixin, TenantMixin):
    """
    Tabella prezzi personalizzata.

    Ogni voce sovrascrive il prezzo standard di una lavorazione per i
    clienti a cui la tabella è assegnata. L'assenza di una voce significa
    "usa il prezzo standard".
    """

    __tablename__ = "price_tables"

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    entries: Mapped[List["PriceTableEntry"]] = relationship(
        "PriceTableEntry",
        back_populates="price_table",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def overrides(self) -> dict[uuid.UUID, Decimal]:
        """Mappa service_id -> prezzo personalizzato."""
        return {entry.service_id: entry.custom_price for entry in self.entries}

    def __repr__(self) -> str:
        return f"<PriceTable(name={self.name!r}, entries={len(self.entries)})>"


class PriceTableEntry(Base, UUIDMixin, TimestampMixin):
    """
    Prezzo personalizzato di una lavorazione all'interno di una tabella.

    Un prezzo pari a 0 o negativo non viene mai salvato: equivale a
    rimuovere la personalizzazione.
    """

    __tablename__ = "price_table_entries"

    price_table_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("price_tables.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Riferimento debole: la lavorazione può essere eliminata dal catalogo,
    # in tal caso la voce viene ignorata in fase di risoluzione prezzi
    service_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    custom_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    price_table: Mapped["PriceTable"] = relationship(
        "PriceTable",
        back_populates="entries",
    )

    __table_args__ = (
        UniqueConstraint("price_table_id", "service_id", name="uq_price_table_entries_service"),
        CheckConstraint("custom_price > 0", name="ck_price_table_entries_custom_price"),
    )

    def __repr__(self) -> str:
        return f"<PriceTableEntry(service_id={self.service_id}, custom_price={self.custom_price})>"
