"""
Service Layer per l'entità Employee
Progetto: Dental Lab Manager (Gestionale Laboratorio Odontotecnico)

Definisce la logica di business per la gestione dei dipendenti.
"""

import logging
import uuid
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dental_lab.core.database import atomic_batch
from dental_lab.core.exceptions import NotFoundError
from dental_lab.models import Employee
from dental_lab.schemas.employee import EmployeeCreate, EmployeeUpdate

logger = logging.getLogger(__name__)


class EmployeeService:
    """
    Service per la gestione delle operazioni CRUD sui dipendenti.
    """

    async def get_all(self, db: AsyncSession, tenant_id: str) -> List[Employee]:
        """Recupera la lista dei dipendenti attivi."""
        query = (
            select(Employee)
            .where(Employee.tenant_id == tenant_id, Employee.is_active == True)
            .order_by(Employee.name)
        )
        result = await db.execute(query)
        return list(result.scalars().all())

    async def get_by_id(self, db: AsyncSession, tenant_id: str, id: uuid.UUID) -> Employee:
        """Recupera il dettaglio di un dipendente."""
        query = select(Employee).where(
            Employee.id == id,
            Employee.tenant_id == tenant_id,
            Employee.is_active == True,
        )
        result = await db.execute(query)
        employee = result.scalar_one_or_none()

        if not employee:
            raise NotFoundError(f"Dipendente {id} non trovato")

        return employee

    async def create(self, db: AsyncSession, tenant_id: str, data: EmployeeCreate) -> Employee:
        """Crea un nuovo dipendente."""
        employee = Employee(tenant_id=tenant_id, **data.model_dump())
        async with atomic_batch(db):
            db.add(employee)
        logger.info("Creato dipendente %s (%s)", employee.name, employee.id)
        return employee

    async def update(self, db: AsyncSession, tenant_id: str, id: uuid.UUID, data: EmployeeUpdate) -> Employee:
        """Aggiorna i dati di un dipendente. Gli ordini esistenti conservano nome e percentuale salvati."""
        employee = await self.get_by_id(db, tenant_id, id)

        update_data = data.model_dump(exclude_unset=True)
        async with atomic_batch(db):
            for k, v in update_data.items():
                if v is not None or k in ("phone", "email", "role"):
                    setattr(employee, k, v)

        return employee

    async def delete(self, db: AsyncSession, tenant_id: str, id: uuid.UUID) -> None:
        """Soft delete di un dipendente. Gli ordini a cui è assegnato restano invariati."""
        employee = await self.get_by_id(db, tenant_id, id)
        async with atomic_batch(db):
            employee.is_active = False
        logger.info("Dipendente disattivato: %s", id)


employee_service = EmployeeService()
