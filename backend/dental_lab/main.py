"""
Main Entry Point - FastAPI Application
Progetto: Dental Lab Manager (Gestionale Laboratorio Odontotecnico)

Configura l'applicazione FastAPI con middleware, router e lifecycle.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dental_lab.api.v1 import api_v1_router
from dental_lab.core.clock import SystemClock
from dental_lab.core.config import settings
from dental_lab.core.database import close_db, init_db
from dental_lab.core.events import ChangeFeed
from dental_lab.core.exceptions import AppException

# ------------------------------------------------------------
# Configurazione Logging
# ------------------------------------------------------------
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ------------------------------------------------------------
# Lifespan Handler
# ------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Gestisce il ciclo di vita dell'applicazione.

    - Startup: inizializza la connessione al database
    - Shutdown: chiude le connessioni database
    """
    # Startup
    logger.info("Avvio %s v%s", settings.app_name, settings.app_version)
    await init_db()
    logger.info("Applicazione avviata con successo")

    yield

    # Shutdown
    logger.info("Arresto applicazione in corso...")
    await close_db()
    logger.info("Applicazione arrestata")


# ------------------------------------------------------------
# FastAPI Application
# ------------------------------------------------------------
app = FastAPI(
    title=settings.app_name,
    description="Gestionale per laboratorio odontotecnico - Backend API",
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# Feed delle modifiche e orologio condivisi dalle richieste
app.state.change_feed = ChangeFeed()
app.state.clock = SystemClock()


# ------------------------------------------------------------
# Exception Handlers
# ------------------------------------------------------------
@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Gestore per tutte le eccezioni di dominio.

    Usa lo status_code della classe (404, 409, 422, 503) e restituisce
    error_code ed extra per il frontend.
    """
    if exc.status_code >= 500:
        logger.error("%s su %s: %s", exc.error_code, request.url.path, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.detail,
            "error_code": exc.error_code,
            "extra": exc.extra,
        },
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Gestore generico per tutte le eccezioni non catturate.

    Converte l'eccezione in risposta HTTP 500 e logga l'errore.
    """
    logger.error("Unhandled exception: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Errore interno del server", "error_code": "INTERNAL_SERVER_ERROR"},
    )


# ------------------------------------------------------------
# Middleware CORS
# ------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------
@app.get(
    "/health",
    name="Health Check",
    summary="Controlla lo stato dell'applicazione",
    tags=["System"],
)
async def health_check() -> dict[str, str]:
    """
    Endpoint per il controllo dello stato di salute.

    Returns:
        dict: Stato dell'applicazione
    """
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.app_env,
    }


# ------------------------------------------------------------
# Router
# ------------------------------------------------------------
app.include_router(api_v1_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("dental_lab.main:app", host="0.0.0.0", port=settings.backend_port, reload=settings.debug)
