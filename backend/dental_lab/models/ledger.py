"""
Modello SQLAlchemy per il registro contabile dei clienti
Progetto: Dental Lab Manager (Gestionale Laboratorio Odontotecnico)

Contiene LedgerTransaction: movimenti di addebito (generati dagli ordini
completati) e di accredito (pagamenti registrati manualmente).
"""


from __future__ import annotations
import uuid
import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, Numeric, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from dental_lab.models import Base
from dental_lab.models.mixins import TenantMixin, TimestampMixin, UUIDMixin


# I tipi sono definiti in dental_lab.schemas.ledger.TransactionType


class LedgerTransaction(Base, UUIDMixin, TimestampMixin, TenantMixin):
    """
    Movimento del registro contabile di un cliente.

    Attributes:
        client_id: UUID del cliente
        client_name: Nome del cliente (snapshot)
        type: "debit" (addebito da ordine) oppure "credit" (pagamento)
        amount: Importo, sempre positivo
        date: Data contabile del movimento
        description: Descrizione
        order_id: Ordine che ha generato l'addebito (NULL per i pagamenti)

    Invariante: per ogni order_id esiste al massimo un addebito. Oltre al
    controllo nel service, un indice univoco parziale lo garantisce a
    livello di database.
    """

    __tablename__ = "ledger_transactions"

    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("clients.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    client_name: Mapped[str] = mapped_column(String(200), nullable=False)

    type: Mapped[str] = mapped_column(String(10), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    date: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False, default="")

    order_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        nullable=True,
        index=True,
        doc="Ordine di origine (solo per gli addebiti)",
    )

    __table_args__ = (
        Index(
            "uq_ledger_transactions_order_debit",
            "order_id",
            unique=True,
            postgresql_where=text("type = 'debit'"),
            sqlite_where=text("type = 'debit'"),
        ),
        Index("ix_ledger_transactions_client_date", "client_id", "date"),
        CheckConstraint("type IN ('debit', 'credit')", name="ck_ledger_transactions_type"),
        CheckConstraint("amount > 0", name="ck_ledger_transactions_amount"),
        CheckConstraint(
            "type = 'debit' OR order_id IS NULL",
            name="ck_ledger_transactions_credit_without_order",
        ),
    )

    @property
    def signed_amount(self) -> Decimal:
        """Importo con segno: positivo per i crediti, negativo per i debiti."""
        return self.amount if self.type == "credit" else -self.amount

    def __repr__(self) -> str:
        return f"<LedgerTransaction(type={self.type}, amount={self.amount}, order_id={self.order_id})>"
