"""
Service Layer per i report
Progetto: Dental Lab Manager (Gestionale Laboratorio Odontotecnico)

Proiezioni in sola lettura su ordini e registro:
- ordini completati per periodo
- commissioni per dipendente
- ordini per cliente (righe per lavorazione)
- riepilogo per la dashboard

Le funzioni di aggregazione sono pure e lavorano su liste di ordini;
ReportService si limita a caricarli dal database.
"""

import datetime
import logging
import uuid
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dental_lab.core.config import settings
from dental_lab.core.money import ZERO, to_money
from dental_lab.models import Client, Employee, ServiceOrder
from dental_lab.schemas.report import (
    ClientOrderRow,
    ClientOrdersReport,
    CommissionRow,
    CommissionsReport,
    CompletedByPeriodReport,
    CompletedOrderRow,
    DashboardSummary,
    ReportPeriod,
    UpcomingDelivery,
)
from dental_lab.schemas.service_order import OrderStatus

logger = logging.getLogger(__name__)


def _is_completed(order: ServiceOrder) -> bool:
    return order.status == OrderStatus.COMPLETED.value and order.completion_date is not None


def _by_completion(order: ServiceOrder) -> tuple:
    return (order.completion_date or datetime.date.min, order.number)


# ------------------------------------------------------------
# Aggregazioni (funzioni pure)
# ------------------------------------------------------------

def completed_by_period(orders: Iterable[ServiceOrder], period: ReportPeriod) -> CompletedByPeriodReport:
    """Ordini completati con data di completamento nell'intervallo."""
    selected = sorted(
        (o for o in orders if _is_completed(o) and period.contains(o.completion_date)),
        key=_by_completion,
    )
    rows = [
        CompletedOrderRow(
            order_id=o.id,
            number=o.number,
            client_id=o.client_id,
            client_name=o.client_name,
            patient_name=o.patient_name,
            completion_date=o.completion_date,
            total_value=to_money(o.total_value),
            commission_value=to_money(o.commission_value),
        )
        for o in selected
    ]
    return CompletedByPeriodReport(
        period=period,
        orders=rows,
        total_value=to_money(sum((r.total_value for r in rows), ZERO)),
        total_commission=to_money(sum((r.commission_value for r in rows), ZERO)),
    )


def commissions_by_employee(
    orders: Iterable[ServiceOrder],
    employee_id: uuid.UUID,
    period: ReportPeriod,
    employee_name: Optional[str] = None,
) -> CommissionsReport:
    """
    Commissioni di un dipendente sugli ordini completati nell'intervallo.

    Il totale è la somma della quota del dipendente, non della
    commissione complessiva dell'ordine.
    """
    rows = []
    for order in sorted(orders, key=_by_completion):
        if not _is_completed(order) or not period.contains(order.completion_date):
            continue
        share = next((a for a in order.assigned_employees if a.employee_id == employee_id), None)
        if share is None:
            continue
        if employee_name is None:
            employee_name = share.name
        rows.append(
            CommissionRow(
                order_id=order.id,
                number=order.number,
                client_name=order.client_name,
                patient_name=order.patient_name,
                completion_date=order.completion_date,
                order_total=to_money(order.total_value),
                commission_percentage=share.commission_percentage,
                commission_value=to_money(share.commission_value),
            )
        )
    return CommissionsReport(
        period=period,
        employee_id=employee_id,
        employee_name=employee_name,
        rows=rows,
        total_value=to_money(sum((r.order_total for r in rows), ZERO)),
        total_commission=to_money(sum((r.commission_value for r in rows), ZERO)),
    )


def orders_by_client(
    orders: Iterable[ServiceOrder],
    client_id: uuid.UUID,
    period: ReportPeriod,
    client_name: Optional[str] = None,
) -> ClientOrdersReport:
    """
    Ordini del cliente nell'intervallo, una riga per lavorazione.

    Con almeno un estremo indicato, gli ordini senza data di
    completamento sono esclusi; senza estremi sono inclusi tutti.
    """
    selected = sorted(
        (o for o in orders if o.client_id == client_id and period.contains(o.completion_date)),
        key=lambda o: o.number,
    )
    rows = []
    for order in selected:
        if client_name is None:
            client_name = order.client_name
        for line in order.lines:
            rows.append(
                ClientOrderRow(
                    order_id=order.id,
                    number=order.number,
                    status=order.status,
                    completion_date=order.completion_date,
                    patient_name=order.patient_name,
                    service_id=line.service_id,
                    service_name=line.name,
                    tooth_number=line.tooth_number or "",
                    color=line.color or "",
                    quantity=line.quantity,
                    price=to_money(line.price),
                    subtotal=to_money(line.price * line.quantity),
                )
            )
    return ClientOrdersReport(
        period=period,
        client_id=client_id,
        client_name=client_name,
        rows=rows,
        orders_count=len(selected),
        total_value=to_money(sum((r.subtotal for r in rows), ZERO)),
    )


def dashboard_summary(orders: Iterable[ServiceOrder], limit: int = 5) -> DashboardSummary:
    """
    Riepilogo per la dashboard.

    Le prossime consegne sono gli ordini non completati con data di
    consegna, ordinati per data; i crediti sono gli ordini completati
    divisi tra pagati e non pagati.
    """
    orders = list(orders)
    upcoming = sorted(
        (o for o in orders if o.status != OrderStatus.COMPLETED.value and o.delivery_date),
        key=lambda o: (o.delivery_date, o.number),
    )[:limit]

    completed = [o for o in orders if o.status == OrderStatus.COMPLETED.value]
    unpaid = [o for o in completed if not o.is_paid]

    return DashboardSummary(
        pending_count=sum(1 for o in orders if o.status == OrderStatus.PENDING.value),
        in_progress_count=sum(1 for o in orders if o.status == OrderStatus.IN_PROGRESS.value),
        upcoming_deliveries=[
            UpcomingDelivery(
                order_id=o.id,
                number=o.number,
                client_name=o.client_name,
                patient_name=o.patient_name,
                delivery_date=o.delivery_date,
                status=o.status,
            )
            for o in upcoming
        ],
        receivables_paid=to_money(sum((o.total_value for o in completed if o.is_paid), ZERO)),
        receivables_unpaid=to_money(sum((o.total_value for o in unpaid), ZERO)),
        unpaid_orders_count=len(unpaid),
    )


class ReportService:
    """Carica gli ordini del tenant e produce i report."""

    async def _orders(
        self,
        db: AsyncSession,
        tenant_id: str,
        status: Optional[OrderStatus] = None,
        client_id: Optional[uuid.UUID] = None,
    ) -> list[ServiceOrder]:
        query = select(ServiceOrder).where(ServiceOrder.tenant_id == tenant_id)
        if status is not None:
            query = query.where(ServiceOrder.status == status.value)
        if client_id is not None:
            query = query.where(ServiceOrder.client_id == client_id)
        result = await db.execute(query)
        return list(result.scalars().all())

    async def completed_by_period(
        self,
        db: AsyncSession,
        tenant_id: str,
        period: ReportPeriod,
    ) -> CompletedByPeriodReport:
        orders = await self._orders(db, tenant_id, status=OrderStatus.COMPLETED)
        report = completed_by_period(orders, period)
        logger.debug("Report completati: %d ordini", len(report.orders))
        return report

    async def commissions_by_employee(
        self,
        db: AsyncSession,
        tenant_id: str,
        employee_id: uuid.UUID,
        period: ReportPeriod,
    ) -> CommissionsReport:
        employee = (await db.execute(
            select(Employee).where(Employee.id == employee_id, Employee.tenant_id == tenant_id)
        )).scalar_one_or_none()
        orders = await self._orders(db, tenant_id, status=OrderStatus.COMPLETED)
        return commissions_by_employee(
            orders, employee_id, period, employee.name if employee else None
        )

    async def orders_by_client(
        self,
        db: AsyncSession,
        tenant_id: str,
        client_id: uuid.UUID,
        period: ReportPeriod,
    ) -> ClientOrdersReport:
        client = (await db.execute(
            select(Client).where(Client.id == client_id, Client.tenant_id == tenant_id)
        )).scalar_one_or_none()
        orders = await self._orders(db, tenant_id, client_id=client_id)
        return orders_by_client(orders, client_id, period, client.name if client else None)

    async def dashboard(self, db: AsyncSession, tenant_id: str) -> DashboardSummary:
        orders = await self._orders(db, tenant_id)
        return dashboard_summary(orders, limit=settings.upcoming_deliveries_limit)


report_service = ReportService()
