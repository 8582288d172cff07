"""
Schemas Pydantic per il progetto Dental Lab Manager

Questo modulo contiene tutti gli schemi Pydantic utilizzati per la validazione
e serializzazione delle risposte API.
"""

# Import degli schemi per renderli disponibili tramite import diretto
# es: from dental_lab.schemas import ClientRead, ServiceOrderRead, etc.

from dental_lab.schemas.catalog import (
    ClientPriceList,
    LabServiceCreate,
    LabServiceRead,
    LabServiceUpdate,
    PriceListGroup,
    PriceTableCreate,
    PriceTableEntryRead,
    PriceTableEntryWrite,
    PriceTableRead,
    PriceTableUpdate,
    ResolvedService,
)
from dental_lab.schemas.client import ClientCreate, ClientList, ClientRead, ClientUpdate
from dental_lab.schemas.employee import EmployeeCreate, EmployeeRead, EmployeeUpdate
from dental_lab.schemas.service_order import (
    VALID_TRANSITIONS,
    AssignedEmployeeInput,
    AssignedEmployeeRead,
    OrderLineInput,
    OrderPaidUpdate,
    OrderStatus,
    OrderStatusUpdate,
    ServiceOrderCreate,
    ServiceOrderLineRead,
    ServiceOrderList,
    ServiceOrderRead,
    ServiceOrderUpdate,
)
from dental_lab.schemas.ledger import (
    ClientAccount,
    ClientStatement,
    CreditCreate,
    CreditUpdate,
    StatementEntry,
    TransactionRead,
    TransactionType,
)
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

__all__ = [
    # Catalog schemas
    "ClientPriceList",
    "LabServiceCreate",
    "LabServiceRead",
    "LabServiceUpdate",
    "PriceListGroup",
    "PriceTableCreate",
    "PriceTableEntryRead",
    "PriceTableEntryWrite",
    "PriceTableRead",
    "PriceTableUpdate",
    "ResolvedService",
    # Client schemas
    "ClientCreate",
    "ClientList",
    "ClientRead",
    "ClientUpdate",
    # Employee schemas
    "EmployeeCreate",
    "EmployeeRead",
    "EmployeeUpdate",
    # ServiceOrder schemas
    "VALID_TRANSITIONS",
    "AssignedEmployeeInput",
    "AssignedEmployeeRead",
    "OrderLineInput",
    "OrderPaidUpdate",
    "OrderStatus",
    "OrderStatusUpdate",
    "ServiceOrderCreate",
    "ServiceOrderLineRead",
    "ServiceOrderList",
    "ServiceOrderRead",
    "ServiceOrderUpdate",
    # Ledger schemas
    "ClientAccount",
    "ClientStatement",
    "CreditCreate",
    "CreditUpdate",
    "StatementEntry",
    "TransactionRead",
    "TransactionType",
    # Report schemas
    "ClientOrderRow",
    "ClientOrdersReport",
    "CommissionRow",
    "CommissionsReport",
    "CompletedByPeriodReport",
    "CompletedOrderRow",
    "DashboardSummary",
    "ReportPeriod",
    "UpcomingDelivery",
]
