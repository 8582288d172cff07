"""
API Routes
Progetto: Dental Lab Manager (Gestionale Laboratorio Odontotecnico)

Modulo per l'aggregazione dei router versionati.
"""

from dental_lab.api.v1 import api_v1_router

# Esportazione router
__all__ = ["api_v1_router"]
