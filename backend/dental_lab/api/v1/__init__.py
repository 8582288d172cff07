"""
API v1 Routes
Progetto: Dental Lab Manager (Gestionale Laboratorio Odontotecnico)

Router versione 1 dell'API.
"""

from fastapi import APIRouter

from dental_lab.api.v1 import catalog, clients, employees, ledger, reports, service_orders

# Router aggregato per v1
api_v1_router = APIRouter(prefix="/api/v1")

# Includi i router dei moduli
api_v1_router.include_router(catalog.router)
api_v1_router.include_router(catalog.price_tables_router)
api_v1_router.include_router(clients.router)
api_v1_router.include_router(employees.router)
api_v1_router.include_router(service_orders.router)
api_v1_router.include_router(ledger.router)
api_v1_router.include_router(reports.router)

# Esportazione
__all__ = ["api_v1_router"]
