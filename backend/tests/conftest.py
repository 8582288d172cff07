"""
Pytest configuration and fixtures.

I test dei service girano su un database SQLite in memoria (aiosqlite)
creato da zero per ogni test, con orologio fisso.
"""

import os

# Deve precedere qualunque import di dental_lab: l'engine viene creato all'import
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("APP_ENV", "testing")

import datetime
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from dental_lab.core.clock import FixedClock
from dental_lab.core.database import build_session_factory
from dental_lab.core.events import ChangeFeed
from dental_lab.models import (
    Base,
    Client,
    Employee,
    LabService,
    OrderSequence,
    PriceTable,
    PriceTableEntry,
)
from dental_lab.schemas.service_order import (
    AssignedEmployeeInput,
    OrderLineInput,
    ServiceOrderCreate,
)

TODAY = datetime.date(2024, 5, 10)


# ============================================================
# Database
# ============================================================


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Engine SQLite in memoria condiviso da tutte le connessioni del test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Sessione con le stesse opzioni usate dall'applicazione."""
    session_factory = build_session_factory(engine)
    async with session_factory() as session:
        yield session


@pytest.fixture
def tenant_id() -> str:
    return "lab-rossi"


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(TODAY)


@pytest.fixture
def feed(db: AsyncSession) -> ChangeFeed:
    feed = ChangeFeed()
    feed.watch(db)
    return feed


# ============================================================
# Dati di base
# ============================================================


@pytest_asyncio.fixture
async def catalog(db: AsyncSession, tenant_id: str) -> dict[str, LabService]:
    """Tre lavorazioni: A (80), B (40), C (50)."""
    services = {
        "A": LabService(tenant_id=tenant_id, name="Corona in zirconia", material="Zirconia", standard_price=Decimal("80.00")),
        "B": LabService(tenant_id=tenant_id, name="Intarsio in ceramica", material="Ceramica", standard_price=Decimal("40.00")),
        "C": LabService(tenant_id=tenant_id, name="Provvisorio in resina", material="Resina", standard_price=Decimal("50.00")),
    }
    db.add_all(services.values())
    await db.commit()
    return services


@pytest_asyncio.fixture
async def client(db: AsyncSession, tenant_id: str) -> Client:
    client = Client(
        tenant_id=tenant_id,
        name="Studio Dentistico Bianchi",
        phone="06 1234567",
        email="studio@bianchi.it",
        address="Via Roma 1, Roma",
    )
    db.add(client)
    await db.commit()
    return client


@pytest_asyncio.fixture
async def vip_client(db: AsyncSession, tenant_id: str, catalog: dict[str, LabService]) -> Client:
    """Cliente con tabella prezzi: A a 70 invece di 80."""
    table = PriceTable(
        tenant_id=tenant_id,
        name="Convenzione",
        entries=[PriceTableEntry(service_id=catalog["A"].id, custom_price=Decimal("70.00"))],
    )
    db.add(table)
    await db.flush()
    client = Client(tenant_id=tenant_id, name="Clinica Verdi", price_table_id=table.id)
    db.add(client)
    await db.commit()
    return client


@pytest_asyncio.fixture
async def employees(db: AsyncSession, tenant_id: str) -> dict[str, Employee]:
    employees = {
        "E1": Employee(tenant_id=tenant_id, name="Marco Ferri", role="Ceramista", default_commission_percentage=Decimal("20")),
        "E2": Employee(tenant_id=tenant_id, name="Luca Neri", role="Modellista", default_commission_percentage=Decimal("10")),
    }
    db.add_all(employees.values())
    await db.commit()
    return employees


@pytest_asyncio.fixture
async def sequence_at_six(db: AsyncSession, tenant_id: str) -> OrderSequence:
    """Ultimo numero emesso = 6, il prossimo ordine sarà il n. 7."""
    sequence = OrderSequence(tenant_id=tenant_id, last_number=6)
    db.add(sequence)
    await db.commit()
    return sequence


@pytest.fixture
def order_data(client, catalog, employees):
    """
    Ordine di esempio: A 80 x 2, B 40 x 1; E1 20%, E2 10%.

    Totale 200, commissioni 40 + 20 = 60.
    """
    def build(**overrides) -> ServiceOrderCreate:
        data = dict(
            client_id=client.id,
            patient_name="Giulia Conti",
            delivery_date=TODAY + datetime.timedelta(days=7),
            lines=[
                OrderLineInput(service_id=catalog["A"].id, quantity=2, tooth_number="11", color="A2"),
                OrderLineInput(service_id=catalog["B"].id, quantity=1, tooth_number="21"),
            ],
            employees=[
                AssignedEmployeeInput(employee_id=employees["E1"].id, commission_percentage=Decimal("20")),
                AssignedEmployeeInput(employee_id=employees["E2"].id, commission_percentage=Decimal("10")),
            ],
        )
        data.update(overrides)
        return ServiceOrderCreate(**data)

    return build
