"""
Router FastAPI per i report
Progetto: Dental Lab Manager (Gestionale Laboratorio Odontotecnico)

I filtri di data sono giorni di calendario inclusi, applicati alla data
di completamento degli ordini.
"""

import datetime
import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query

from dental_lab.core.deps import DbSession, TenantId
from dental_lab.core.exceptions import BusinessValidationError
from dental_lab.schemas.report import (
    ClientOrdersReport,
    CommissionsReport,
    CompletedByPeriodReport,
    DashboardSummary,
    ReportPeriod,
)
from dental_lab.services.report_service import report_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/reports",
    tags=["Report"],
)


def get_period(
    start_date: Optional[datetime.date] = Query(None, description="Data iniziale (inclusa)"),
    end_date: Optional[datetime.date] = Query(None, description="Data finale (inclusa)"),
) -> ReportPeriod:
    """Dependency per l'intervallo di date dei report."""
    if start_date and end_date and end_date < start_date:
        raise BusinessValidationError("La data di fine non può precedere la data di inizio")
    return ReportPeriod(start_date=start_date, end_date=end_date)


@router.get("/completed", response_model=CompletedByPeriodReport)
async def completed_by_period(
    db: DbSession,
    tenant_id: TenantId,
    period: ReportPeriod = Depends(get_period),
):
    """Ordini completati nel periodo con il totale."""
    return await report_service.completed_by_period(db, tenant_id, period)


@router.get("/commissions/{employee_id}", response_model=CommissionsReport)
async def commissions_by_employee(
    employee_id: uuid.UUID,
    db: DbSession,
    tenant_id: TenantId,
    period: ReportPeriod = Depends(get_period),
):
    """Commissioni del dipendente sugli ordini completati nel periodo."""
    return await report_service.commissions_by_employee(db, tenant_id, employee_id, period)


@router.get("/clients/{client_id}/orders", response_model=ClientOrdersReport)
async def orders_by_client(
    client_id: uuid.UUID,
    db: DbSession,
    tenant_id: TenantId,
    period: ReportPeriod = Depends(get_period),
):
    """Ordini del cliente con il dettaglio delle lavorazioni."""
    return await report_service.orders_by_client(db, tenant_id, client_id, period)


@router.get("/dashboard", response_model=DashboardSummary)
async def dashboard(db: DbSession, tenant_id: TenantId):
    """Riepilogo: ordini aperti, prossime consegne, crediti."""
    return await report_service.dashboard(db, tenant_id)
