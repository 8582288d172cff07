"""
Modelli Database SQLAlchemy
Progetto: Dental Lab Manager (Gestionale Laboratorio Odontotecnico)

Import centralizzato di tutti i modelli per la creazione delle tabelle
e usage generico.

Modelli:
- LabService, PriceTable, PriceTableEntry: Listino e tabelle prezzi
- Client: Anagrafica clienti
- Employee: Anagrafica dipendenti
- ServiceOrder, ServiceOrderLine, AssignedEmployee, OrderSequence: Ordini di servizio
- LedgerTransaction: Registro contabile dei clienti
"""

# SQLAlchemy 2.0 Base declarativa
# Importato qui per essere disponibile per tutti i modelli
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class per tutti i modelli SQLAlchemy."""
    pass


from dental_lab.models.catalog import LabService, PriceTable, PriceTableEntry
from dental_lab.models.client import Client
from dental_lab.models.employee import Employee
from dental_lab.models.service_order import AssignedEmployee, OrderSequence, ServiceOrder, ServiceOrderLine
from dental_lab.models.ledger import LedgerTransaction

__all__ = [
    "Base",
    "LabService",
    "PriceTable",
    "PriceTableEntry",
    "Client",
    "Employee",
    "ServiceOrder",
    "ServiceOrderLine",
    "AssignedEmployee",
    "OrderSequence",
    "LedgerTransaction",
]
