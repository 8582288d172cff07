import logging
import uuid
from typing import List

from fastapi import APIRouter, status

from dental_lab.core.deps import DbSession, TenantId
from dental_lab.schemas.employee import EmployeeCreate, EmployeeRead, EmployeeUpdate
from dental_lab.services.employee_service import employee_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/employees",
    tags=["Dipendenti"],
)


@router.get("/", response_model=List[EmployeeRead])
async def get_all_employees(db: DbSession, tenant_id: TenantId):
    """Recupera la lista dei dipendenti attivi."""
    return await employee_service.get_all(db, tenant_id)


@router.get("/{id}", response_model=EmployeeRead)
async def get_employee(id: uuid.UUID, db: DbSession, tenant_id: TenantId):
    """Recupera il dettaglio di un dipendente."""
    return await employee_service.get_by_id(db, tenant_id, id)


@router.post("/", response_model=EmployeeRead, status_code=status.HTTP_201_CREATED)
async def create_employee(data: EmployeeCreate, db: DbSession, tenant_id: TenantId):
    """Crea un nuovo dipendente."""
    return await employee_service.create(db, tenant_id, data)


@router.put("/{id}", response_model=EmployeeRead)
async def update_employee(id: uuid.UUID, data: EmployeeUpdate, db: DbSession, tenant_id: TenantId):
    """Aggiorna i dati di un dipendente."""
    return await employee_service.update(db, tenant_id, id, data)


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_employee(id: uuid.UUID, db: DbSession, tenant_id: TenantId):
    """Soft delete di un dipendente."""
    await employee_service.delete(db, tenant_id, id)
