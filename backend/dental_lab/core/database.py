"""
Configurazione Database - SQLAlchemy 2.0 Async
Progetto: Dental Lab Manager (Gestionale Laboratorio Odontotecnico)

Definisce engine, session factory, dependency injection per FastAPI
e l'unità di lavoro atomica usata dalla riconciliazione contabile.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from dental_lab.core.config import settings
from dental_lab.core.exceptions import ConsistencyViolationError, StoreFailureError

# Logger per questo modulo
logger = logging.getLogger(__name__)


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Crea l'engine async per l'URL indicato.

    SQLite (aiosqlite) non supporta le opzioni del pool a dimensione fissa,
    che vengono quindi applicate solo agli altri database.

    Args:
        database_url: URL di connessione in formato async
        echo: Se True logga le query SQL

    Returns:
        AsyncEngine: Engine SQLAlchemy
    """
    options: dict = {"echo": echo}
    if not database_url.startswith("sqlite"):
        options.update(
            pool_pre_ping=True,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
        )
    return create_async_engine(database_url, **options)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory con le opzioni usate in tutta l'applicazione."""
    return async_sessionmaker(
        bind=bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


# ------------------------------------------------------------
# Engine Async SQLAlchemy 2.0
# ------------------------------------------------------------
engine: AsyncEngine = build_engine(settings.database_url, echo=settings.debug)


# ------------------------------------------------------------
# Session Factory
# ------------------------------------------------------------
AsyncSessionLocal = build_session_factory(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency injection per FastAPI.

    Crea una sessione database per ogni richiesta e la chiude
    automaticamente al termine.

    Yields:
        AsyncSession: Sessione database async
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


@asynccontextmanager
async def atomic_batch(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    Unità di lavoro atomica (tutto o niente).

    Tutte le create/update/delete eseguite sulla sessione all'interno del
    blocco vengono confermate con un unico commit. Qualsiasi errore annulla
    l'intero lotto con rollback, così che ordine e registro contabile
    restino nello stato precedente all'operazione.

    Gli errori SQLAlchemy vengono tradotti nella tassonomia di dominio:
    - IntegrityError -> ConsistencyViolationError
    - altri SQLAlchemyError / OSError -> StoreFailureError (recuperabile)

    Example:
        async with atomic_batch(db):
            order.status = "cancelled"
            await db.delete(debit)
    """
    try:
        yield db
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.warning("Lotto annullato per violazione di vincolo: %s", e.orig)
        raise ConsistencyViolationError(
            "Operazione in conflitto con lo stato corrente dei dati"
        ) from e
    except (SQLAlchemyError, OSError) as e:
        await db.rollback()
        logger.error("Lotto annullato, archivio non disponibile: %s", e, exc_info=True)
        raise StoreFailureError() from e
    except Exception:
        await db.rollback()
        raise


async def init_db() -> None:
    """
    Inizializza la connessione al database.

    Esegue un test di connessione per verificare
    che il database sia raggiungibile.
    """
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Connessione al database stabilita con successo")
    except Exception as e:
        logger.error("Errore connessione database: %s", e)
        raise


async def close_db() -> None:
    """
    Chiude le connessioni al database.

    Da chiamare durante lo shutdown dell'applicazione.
    """
    await engine.dispose()
    logger.info("Connessioni database chiuse")
