"""
Dependency Injection per il contesto della richiesta
Progetto: Dental Lab Manager (Gestionale Laboratorio Odontotecnico)

Fornisce ai router:
- la sessione database collegata al feed delle modifiche
- l'identificativo del tenant (contesto di identità)
- l'orologio del laboratorio

L'autenticazione è gestita a monte (gateway/frontend): qui il tenant
arriva già risolto nell'header X-Tenant-ID.
"""

from typing import Annotated, AsyncGenerator

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from dental_lab.core.clock import Clock, SystemClock
from dental_lab.core.database import get_db


async def get_session(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> AsyncGenerator[AsyncSession, None]:
    """
    Sessione della richiesta, collegata al ChangeFeed dell'applicazione
    se presente in app.state.
    """
    feed = getattr(request.app.state, "change_feed", None)
    if feed is not None:
        feed.watch(db)
    yield db


async def get_tenant_id(
    x_tenant_id: Annotated[str | None, Header()] = None,
) -> str:
    """
    Dependency per ottenere il tenant corrente.

    Raises:
        HTTPException 401: Se l'header X-Tenant-ID è assente o vuoto
    """
    if not x_tenant_id or not x_tenant_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Contesto di identità non fornito (header X-Tenant-ID)",
        )
    return x_tenant_id.strip()


def get_clock(request: Request) -> Clock:
    """Orologio dell'applicazione (sostituibile nei test via app.state.clock)."""
    return getattr(request.app.state, "clock", None) or SystemClock()


# Type aliases per uso comune
DbSession = Annotated[AsyncSession, Depends(get_session)]
TenantId = Annotated[str, Depends(get_tenant_id)]
LabClock = Annotated[Clock, Depends(get_clock)]


__all__ = [
    "get_session",
    "get_tenant_id",
    "get_clock",
    "DbSession",
    "TenantId",
    "LabClock",
]
