"""
Modelli SQLAlchemy per gli Ordini di Servizio
Progetto: Dental Lab Manager (Gestionale Laboratorio Odontotecnico)

 Contiene:
- ServiceOrder: Ordine di servizio (scheda di lavoro) principale
- ServiceOrderLine: Lavorazioni dell'ordine con prezzo congelato
- AssignedEmployee: Dipendenti assegnati con la rispettiva commissione
- OrderSequence: Ultimo numero d'ordine emesso per tenant
"""


from __future__ import annotations
import uuid
from datetime import date
from decimal import Decimal
from typing import Any, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dental_lab.models import Base
from dental_lab.models.mixins import TenantMixin, TimestampMixin, UUIDMixin


# Gli stati sono definiti in dental_lab.schemas.service_order.OrderStatus


class ServiceOrder(Base, UUIDMixin, TimestampMixin, TenantMixin):
    """
    Modello per gli ordini di servizio del laboratorio.

    I dati del cliente, i nomi dei dipendenti e i prezzi delle lavorazioni
    sono copiati nell'ordine al momento della compilazione: l'importo
    fatturato resta quello storico anche se anagrafiche o listino cambiano.

    Attributes:
        number: Numero progressivo dell'ordine (univoco per tenant, mai riutilizzato)
        client_id: UUID del cliente
        client_name: Nome del cliente (snapshot)
        client_snapshot: Anagrafica completa del cliente (snapshot)
        patient_name: Nome del paziente
        open_date: Data di apertura
        delivery_date: Data prevista di consegna
        completion_date: Data di completamento (valorizzata solo se completato)
        status: Stato (pending, in_progress, completed, cancelled)
        total_value: Somma di prezzo * quantità delle lavorazioni
        commission_value: Somma delle commissioni dei dipendenti assegnati
        is_paid: Flag informativo, non collegato al registro contabile
        observations: Note

    States:
        pending, in_progress, completed, cancelled: ogni stato può passare
        a qualsiasi altro; entrare o uscire da completed aggiunge o ritira
        l'addebito nel registro.
    """

    __tablename__ = "service_orders"

    number: Mapped[int] = mapped_column(Integer, nullable=False)

    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("clients.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    client_name: Mapped[str] = mapped_column(String(200), nullable=False)

    client_snapshot: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        doc="Anagrafica del cliente al momento della creazione dell'ordine",
    )

    patient_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    open_date: Mapped[date] = mapped_column(Date, nullable=False)
    delivery_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    completion_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="pending",
    )

    total_value: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00")
    )
    commission_value: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00")
    )

    is_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    observations: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    lines: Mapped[List["ServiceOrderLine"]] = relationship(
        "ServiceOrderLine",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="ServiceOrderLine.position",
        lazy="selectin",
    )

    assigned_employees: Mapped[List["AssignedEmployee"]] = relationship(
        "AssignedEmployee",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="AssignedEmployee.position",
        lazy="selectin",
    )

    # ------------------------------------------------------------
    # Indici e Vincoli
    # ------------------------------------------------------------
    __table_args__ = (
        UniqueConstraint("tenant_id", "number", name="uq_service_orders_tenant_number"),
        Index("ix_service_orders_status_completion", "status", "completion_date"),
        CheckConstraint(
            "status IN ('pending', 'in_progress', 'completed', 'cancelled')",
            name="ck_service_orders_status",
        ),
        CheckConstraint("total_value >= 0", name="ck_service_orders_total_value"),
    )

    def __repr__(self) -> str:
        return f"<ServiceOrder(number={self.number}, status={self.status}, client_id={self.client_id})>"


class ServiceOrderLine(Base, UUIDMixin):
    """
    Lavorazione inclusa in un ordine.

    Il prezzo è lo snapshot del prezzo risolto per il cliente nel momento
    in cui la lavorazione è stata selezionata, non un riferimento al listino.
    """

    __tablename__ = "service_order_lines"

    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("service_orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    service_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    tooth_number: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    color: Mapped[str] = mapped_column(String(50), nullable=False, default="")

    order: Mapped["ServiceOrder"] = relationship("ServiceOrder", back_populates="lines")

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_service_order_lines_quantity"),
    )

    @property
    def subtotal(self) -> Decimal:
        """Totale della riga (price * quantity)."""
        return self.price * self.quantity

    def __repr__(self) -> str:
        return f"<ServiceOrderLine(name={self.name!r}, price={self.price}, qty={self.quantity})>"


class AssignedEmployee(Base, UUIDMixin):
    """
    Dipendente assegnato a un ordine con la sua quota di commissione.

    commission_value è calcolato e congelato al salvataggio:
    total_value * commission_percentage / 100.
    """

    __tablename__ = "service_order_employees"

    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("service_orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    employee_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    commission_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    commission_value: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00")
    )

    order: Mapped["ServiceOrder"] = relationship("ServiceOrder", back_populates="assigned_employees")

    __table_args__ = (
        CheckConstraint(
            "commission_percentage >= 0 AND commission_percentage <= 100",
            name="ck_service_order_employees_percentage",
        ),
    )

    def __repr__(self) -> str:
        return f"<AssignedEmployee(name={self.name!r}, pct={self.commission_percentage})>"


class OrderSequence(Base):
    """
    Ultimo numero d'ordine emesso per ciascun tenant.

    Garantisce che un numero non venga riutilizzato anche dopo
    l'eliminazione dell'ordine con il numero più alto.
    """

    __tablename__ = "order_sequences"

    tenant_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    last_number: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
