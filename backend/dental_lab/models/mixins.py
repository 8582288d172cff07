"""
Mixin SQLAlchemy per modelli
Progetto: Dental Lab Manager (Gestionale Laboratorio Odontotecnico)

Mixin riutilizzabili per aggiungere funzionalità comuni ai modelli.
"""

import datetime
import uuid

from sqlalchemy import Boolean, DateTime, String, Uuid
from sqlalchemy import event
from sqlalchemy.orm import Mapped, mapped_column, Session
from sqlalchemy.sql import func


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class SoftDeleteMixin:
    """
    Mixin per implementare la cancellazione logica (soft delete).

    Aggiunge il campo is_active che, se impostato a False,
    indica che il record è stato "eliminato" ma non rimosso fisicamente.
    Gli ordini conservano comunque lo snapshot del record eliminato.
    """

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        doc="Flag per soft delete: False = eliminato, True = attivo",
    )


class TimestampMixin:
    """
    Mixin per gestione automatica timestamp creazione e aggiornamento.

    Aggiunge i campi:
    - created_at: data/ora di creazione record (impostato automaticamente)
    - updated_at: data/ora ultimo aggiornamento (aggiornato automaticamente)
    """

    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
        doc="Data/ora di creazione del record",
    )

    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
        doc="Data/ora ultimo aggiornamento del record",
    )


class UUIDMixin:
    """
    Mixin per ID UUID generato lato applicazione.

    Aggiunge il campo id come UUID primary key con generazione automatica.
    """

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        doc="UUID primary key",
    )


class TenantMixin:
    """
    Mixin per l'isolamento multi-tenant.

    Ogni lettura e scrittura dei service è filtrata per tenant_id,
    l'identificativo opaco del laboratorio/utente chiamante.
    """

    tenant_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True,
        doc="Identificativo del tenant proprietario del record",
    )


# ------------------------------------------------------------
# Event Listeners
# ------------------------------------------------------------
@event.listens_for(Session, "before_flush")
def update_timestamp(session: Session, flush_context, instances) -> None:
    """
    Event listener per aggiornare automaticamente il campo updated_at.

    Questo listener viene eseguito prima di ogni flush e aggiorna il campo
    updated_at di tutti gli oggetti modificati (dirty) e nuovi (new).
    """
    now = datetime.datetime.now(datetime.timezone.utc)

    for obj in session.dirty:
        if hasattr(obj, "updated_at"):
            if session.is_modified(obj, include_collections=False):
                obj.updated_at = now

    for obj in session.new:
        if hasattr(obj, "updated_at"):
            obj.updated_at = now
