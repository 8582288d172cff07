"""
Elimina e ricrea tutte le tabelle del database configurato (DATABASE_URL).

Uso: python reset_db.py [--yes]
"""

import asyncio
import sys

from dental_lab.core.config import settings
from dental_lab.core.database import engine
from dental_lab.models import Base


async def reset():
    print("Connessione al database, eliminazione tabelle...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        print("Tabelle eliminate. Creazione nuove tabelle...")
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()
    print("Database resettato con successo!")


if __name__ == "__main__":
    if settings.is_production and "--yes" not in sys.argv:
        print("Ambiente di produzione: aggiungere --yes per confermare il reset")
        sys.exit(1)
    asyncio.run(reset())
