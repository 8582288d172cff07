"""
Feed delle modifiche (sottoscrizioni live)
Progetto: Dental Lab Manager (Gestionale Laboratorio Odontotecnico)

Permette ai componenti di registrare interesse su una collezione
(tabella) e di ricevere una callback per ogni modifica confermata.

Le modifiche vengono raccolte ad ogni flush della sessione e pubblicate
solo dopo il commit: il lavoro annullato con rollback non viene mai
notificato, quindi i sottoscrittori non osservano mai stati parziali.

Usage:
    feed = ChangeFeed()
    feed.watch(db)
    sub = feed.subscribe(LedgerTransaction, on_change,
                         predicate=lambda tx: tx.client_id == client_id)
    ...
    sub.cancel()
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Union

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

FEED_KEY = "change_feed"
PENDING_KEY = "change_feed_pending"


@dataclass(frozen=True)
class ChangeEvent:
    """
    Singola modifica confermata.

    Attributes:
        collection: Nome della tabella modificata
        operation: "create", "update" oppure "delete"
        record_id: ID del record
        record: Istanza ORM (stato al momento del commit)
    """
    collection: str
    operation: str
    record_id: Any
    record: Any


Callback = Callable[[ChangeEvent], None]
Predicate = Callable[[Any], bool]


class Subscription:
    """Sottoscrizione attiva; `cancel()` smette di ricevere eventi."""

    def __init__(
        self,
        feed: "ChangeFeed",
        collection: str,
        callback: Callback,
        predicate: Optional[Predicate] = None,
    ) -> None:
        self.feed = feed
        self.collection = collection
        self.callback = callback
        self.predicate = predicate
        self.active = True

    def matches(self, change: ChangeEvent) -> bool:
        if not self.active or change.collection != self.collection:
            return False
        return self.predicate is None or self.predicate(change.record)

    def cancel(self) -> None:
        if self.active:
            self.active = False
            self.feed._remove(self)


class ChangeFeed:
    """
    Registro delle sottoscrizioni e punto di pubblicazione degli eventi.

    Non è un singleton: ogni applicazione (o test) crea il proprio feed
    e lo collega alle sessioni con `watch()`.
    """

    def __init__(self) -> None:
        self._subscriptions: List[Subscription] = []

    def subscribe(
        self,
        collection: Union[str, type],
        callback: Callback,
        predicate: Optional[Predicate] = None,
    ) -> Subscription:
        """
        Registra una callback per una collezione.

        Args:
            collection: Modello ORM oppure nome della tabella
            callback: Funzione chiamata con il ChangeEvent
            predicate: Filtro opzionale sul record modificato

        Returns:
            Subscription: Handle per annullare la sottoscrizione
        """
        name = getattr(collection, "__tablename__", collection)
        subscription = Subscription(self, name, callback, predicate)
        self._subscriptions.append(subscription)
        logger.debug("Nuova sottoscrizione su %s", name)
        return subscription

    def watch(self, db: AsyncSession) -> AsyncSession:
        """Collega il feed alla sessione: i suoi commit verranno pubblicati."""
        db.sync_session.info[FEED_KEY] = self
        return db

    def publish(self, changes: List[ChangeEvent]) -> None:
        for change in changes:
            for subscription in list(self._subscriptions):
                if not subscription.matches(change):
                    continue
                try:
                    subscription.callback(change)
                except Exception:
                    # Il commit è già avvenuto: un sottoscrittore difettoso
                    # non deve impedire la notifica agli altri
                    logger.exception(
                        "Errore nella callback per %s %s",
                        change.collection,
                        change.operation,
                    )

    def _remove(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def __len__(self) -> int:
        return len(self._subscriptions)


# ------------------------------------------------------------
# Event Listeners
# ------------------------------------------------------------
@event.listens_for(Session, "after_flush")
def collect_changes(session: Session, flush_context) -> None:
    """
    Raccoglie le modifiche del flush corrente nelle info di sessione.

    In after_flush le liste new/dirty/deleted riflettono ancora lo stato
    precedente al flush.
    """
    if FEED_KEY not in session.info:
        return

    pending = session.info.setdefault(PENDING_KEY, [])
    for operation, objects in (
        ("create", session.new),
        ("update", session.dirty),
        ("delete", session.deleted),
    ):
        for obj in objects:
            collection = getattr(obj, "__tablename__", None)
            if collection is None:
                continue
            if operation == "update" and not session.is_modified(obj, include_collections=False):
                continue
            pending.append(ChangeEvent(collection, operation, getattr(obj, "id", None), obj))


@event.listens_for(Session, "after_commit")
def publish_changes(session: Session) -> None:
    feed = session.info.get(FEED_KEY)
    changes = session.info.pop(PENDING_KEY, [])
    if feed is not None and changes:
        feed.publish(changes)


@event.listens_for(Session, "after_rollback")
def discard_changes(session: Session) -> None:
    session.info.pop(PENDING_KEY, None)
