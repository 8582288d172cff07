"""
Test per il service degli ordini di servizio.
"""

import datetime
import uuid
from decimal import Decimal

import pytest

from dental_lab.core.exceptions import BusinessValidationError, ConflictError, NotFoundError
from dental_lab.schemas.catalog import LabServiceUpdate
from dental_lab.schemas.client import ClientUpdate
from dental_lab.schemas.service_order import (
    AssignedEmployeeInput,
    OrderLineInput,
    OrderStatus,
    ServiceOrderCreate,
    ServiceOrderUpdate,
)
from dental_lab.services.client_service import client_service
from dental_lab.services.employee_service import employee_service
from dental_lab.services.ledger_service import ledger_reconciler
from dental_lab.services.pricing_service import catalog_service
from dental_lab.services.service_order_service import service_order_service

from conftest import TODAY


class TestCreate:
    """Test per la creazione degli ordini."""

    @pytest.mark.asyncio
    async def test_create_order(self, db, tenant_id, clock, client, catalog, employees, order_data, sequence_at_six):
        """Test creazione con numero, totali e snapshot."""
        order = await service_order_service.create(db, tenant_id, order_data(), clock)

        assert order.number == 7
        assert order.status == OrderStatus.PENDING.value
        assert order.open_date == TODAY
        assert order.completion_date is None
        assert order.total_value == Decimal("200.00")
        assert order.commission_value == Decimal("60.00")

        assert [(line.name, line.price, line.quantity) for line in order.lines] == [
            ("Corona in zirconia", Decimal("80.00"), 2),
            ("Intarsio in ceramica", Decimal("40.00"), 1),
        ]
        assert order.lines[0].tooth_number == "11"
        assert order.lines[0].color == "A2"

        shares = {a.name: a.commission_value for a in order.assigned_employees}
        assert shares == {"Marco Ferri": Decimal("40.00"), "Luca Neri": Decimal("20.00")}

        assert order.client_name == "Studio Dentistico Bianchi"
        assert order.client_snapshot["phone"] == "06 1234567"

        assert await ledger_reconciler.find_debit(db, tenant_id, order.id) is None

    @pytest.mark.asyncio
    async def test_first_order_is_number_one(self, db, tenant_id, clock, order_data):
        """Test primo ordine con numero 1."""
        order = await service_order_service.create(db, tenant_id, order_data(), clock)
        assert order.number == 1

    @pytest.mark.asyncio
    async def test_create_completed_posts_debit(self, db, tenant_id, clock, order_data):
        """Test ordine creato completato genera l'addebito."""
        order = await service_order_service.create(
            db, tenant_id, order_data(status=OrderStatus.COMPLETED), clock
        )

        assert order.completion_date == TODAY
        debit = await ledger_reconciler.find_debit(db, tenant_id, order.id)
        assert debit.amount == Decimal("200.00")
        assert debit.date == TODAY

    @pytest.mark.asyncio
    async def test_client_required(self, db, tenant_id, clock, order_data):
        """Test cliente obbligatorio."""
        with pytest.raises(BusinessValidationError, match="cliente"):
            await service_order_service.create(db, tenant_id, order_data(client_id=None), clock)

        orders, total = await service_order_service.get_all(db, tenant_id)
        assert total == 0

    @pytest.mark.asyncio
    async def test_employee_required(self, db, tenant_id, clock, order_data):
        """Test almeno un dipendente obbligatorio."""
        with pytest.raises(BusinessValidationError, match="dipendente"):
            await service_order_service.create(db, tenant_id, order_data(employees=[]), clock)

    @pytest.mark.asyncio
    async def test_unknown_employee(self, db, tenant_id, clock, order_data):
        """Test dipendente inesistente."""
        data = order_data(
            employees=[AssignedEmployeeInput(employee_id=uuid.uuid4(), commission_percentage=Decimal("10"))]
        )
        with pytest.raises(NotFoundError):
            await service_order_service.create(db, tenant_id, data, clock)

    @pytest.mark.asyncio
    async def test_employee_without_percentage(self, db, tenant_id, clock, order_data, employees):
        """Test dipendente senza percentuale."""
        data = order_data(employees=[AssignedEmployeeInput(employee_id=employees["E1"].id)])
        with pytest.raises(BusinessValidationError):
            await service_order_service.create(db, tenant_id, data, clock)

    @pytest.mark.asyncio
    async def test_client_price_table_applies(self, db, tenant_id, clock, order_data, vip_client):
        """Test prezzi dalla tabella del cliente."""
        order = await service_order_service.create(
            db, tenant_id, order_data(client_id=vip_client.id), clock
        )

        assert order.lines[0].price == Decimal("70.00")
        assert order.total_value == Decimal("180.00")
        assert order.commission_value == Decimal("54.00")

    def test_delivery_before_open_rejected(self):
        """Test consegna precedente all'apertura rifiutata."""
        with pytest.raises(ValueError):
            ServiceOrderCreate(open_date=TODAY, delivery_date=TODAY - datetime.timedelta(days=1))


class TestUpdate:
    """Test per la modifica degli ordini."""

    @pytest.mark.asyncio
    async def test_existing_lines_keep_frozen_price(self, db, tenant_id, clock, catalog, order_data):
        """Test righe esistenti mantengono il prezzo congelato."""
        order = await service_order_service.create(db, tenant_id, order_data(), clock)
        await catalog_service.update_service(
            db, tenant_id, catalog["A"].id, LabServiceUpdate(standard_price=Decimal("95"))
        )

        order = await service_order_service.update(
            db,
            tenant_id,
            order.id,
            ServiceOrderUpdate(lines=[
                OrderLineInput(service_id=catalog["A"].id, quantity=2),
                OrderLineInput(service_id=catalog["B"].id, quantity=1),
                OrderLineInput(service_id=catalog["C"].id, quantity=1),
            ]),
            clock,
        )

        prices = {line.service_id: line.price for line in order.lines}
        assert prices[catalog["A"].id] == Decimal("80.00")
        assert prices[catalog["C"].id] == Decimal("50.00")
        assert order.total_value == Decimal("250.00")
        assert order.commission_value == Decimal("75.00")

    @pytest.mark.asyncio
    async def test_client_edit_does_not_touch_order(self, db, tenant_id, clock, client, order_data):
        """Test modifica dell'anagrafica non cambia l'ordine."""
        order = await service_order_service.create(db, tenant_id, order_data(), clock)

        await client_service.update(db, tenant_id, client.id, ClientUpdate(name="Studio Bianchi & Figli"))

        order = await service_order_service.get_by_id(db, tenant_id, order.id)
        assert order.client_name == "Studio Dentistico Bianchi"

    @pytest.mark.asyncio
    async def test_client_change_reprices_lines(self, db, tenant_id, clock, catalog, vip_client, order_data):
        """Test cambio cliente applica il listino del nuovo cliente."""
        order = await service_order_service.create(db, tenant_id, order_data(), clock)

        order = await service_order_service.update(
            db,
            tenant_id,
            order.id,
            ServiceOrderUpdate(
                client_id=vip_client.id,
                lines=[
                    OrderLineInput(service_id=catalog["A"].id, quantity=2),
                    OrderLineInput(service_id=catalog["B"].id, quantity=1),
                ],
            ),
            clock,
        )

        prices = {line.service_id: line.price for line in order.lines}
        assert prices[catalog["A"].id] == Decimal("70.00")
        assert order.client_name == "Clinica Verdi"
        assert order.total_value == Decimal("180.00")
        assert order.commission_value == Decimal("54.00")

    @pytest.mark.asyncio
    async def test_client_change_without_lines_clears_them(self, db, tenant_id, clock, vip_client, order_data):
        """Test cambio cliente senza righe reinviate svuota le lavorazioni."""
        order = await service_order_service.create(db, tenant_id, order_data(), clock)

        order = await service_order_service.update(
            db, tenant_id, order.id, ServiceOrderUpdate(client_id=vip_client.id), clock
        )

        assert order.lines == []
        assert order.total_value == Decimal("0.00")
        assert len(order.assigned_employees) == 2

    @pytest.mark.asyncio
    async def test_same_client_on_completed_order_is_accepted(self, db, tenant_id, clock, client, order_data):
        """Test stesso cliente reinviato su ordine completato accettato."""
        order = await service_order_service.create(
            db, tenant_id, order_data(status=OrderStatus.COMPLETED), clock
        )

        order = await service_order_service.update(
            db,
            tenant_id,
            order.id,
            ServiceOrderUpdate(client_id=client.id, observations="Ritiro in sede"),
            clock,
        )

        assert order.observations == "Ritiro in sede"
        assert order.total_value == Decimal("200.00")
        debit = await ledger_reconciler.find_debit(db, tenant_id, order.id)
        assert debit.amount == Decimal("200.00")

    @pytest.mark.asyncio
    async def test_completed_order_rejects_monetary_edits(self, db, tenant_id, clock, catalog, order_data):
        """Test ordine completato rifiuta modifiche agli importi."""
        order = await service_order_service.create(
            db, tenant_id, order_data(status=OrderStatus.COMPLETED), clock
        )

        with pytest.raises(BusinessValidationError):
            await service_order_service.update(
                db,
                tenant_id,
                order.id,
                ServiceOrderUpdate(lines=[OrderLineInput(service_id=catalog["C"].id)]),
                clock,
            )

        order = await service_order_service.update(
            db, tenant_id, order.id, ServiceOrderUpdate(observations="Consegnare in mattinata"), clock
        )
        assert order.observations == "Consegnare in mattinata"
        assert order.total_value == Decimal("200.00")

    @pytest.mark.asyncio
    async def test_reopen_and_edit_in_one_update(self, db, tenant_id, clock, catalog, order_data):
        """Test riapertura e modifica nello stesso aggiornamento."""
        order = await service_order_service.create(
            db, tenant_id, order_data(status=OrderStatus.COMPLETED), clock
        )

        order = await service_order_service.update(
            db,
            tenant_id,
            order.id,
            ServiceOrderUpdate(
                status=OrderStatus.PENDING,
                lines=[OrderLineInput(service_id=catalog["C"].id, quantity=1)],
            ),
            clock,
        )

        assert order.status == OrderStatus.PENDING.value
        assert order.total_value == Decimal("50.00")
        assert await ledger_reconciler.find_debit(db, tenant_id, order.id) is None

    @pytest.mark.asyncio
    async def test_edit_and_complete_in_one_update(self, db, tenant_id, clock, catalog, order_data):
        """Test modifica e completamento nello stesso aggiornamento."""
        order = await service_order_service.create(db, tenant_id, order_data(), clock)

        order = await service_order_service.update(
            db,
            tenant_id,
            order.id,
            ServiceOrderUpdate(
                status=OrderStatus.COMPLETED,
                lines=[OrderLineInput(service_id=catalog["C"].id, quantity=3)],
            ),
            clock,
        )

        debit = await ledger_reconciler.find_debit(db, tenant_id, order.id)
        assert debit.amount == Decimal("150.00")

    @pytest.mark.asyncio
    async def test_completion_date_edit_moves_debit(self, db, tenant_id, clock, order_data):
        """Test nuova data di completamento sposta l'addebito."""
        order = await service_order_service.create(
            db, tenant_id, order_data(status=OrderStatus.COMPLETED), clock
        )
        day = TODAY - datetime.timedelta(days=3)

        order = await service_order_service.update(
            db, tenant_id, order.id, ServiceOrderUpdate(completion_date=day), clock
        )

        assert order.completion_date == day
        debit = await ledger_reconciler.find_debit(db, tenant_id, order.id)
        assert debit.date == day

    @pytest.mark.asyncio
    async def test_removed_employee_stays_on_order(self, db, tenant_id, clock, employees, order_data):
        """Test dipendente eliminato resta sull'ordine."""
        order = await service_order_service.create(db, tenant_id, order_data(), clock)
        await employee_service.delete(db, tenant_id, employees["E2"].id)

        order = await service_order_service.update(
            db,
            tenant_id,
            order.id,
            ServiceOrderUpdate(employees=[
                AssignedEmployeeInput(employee_id=employees["E1"].id, commission_percentage=Decimal("25")),
                AssignedEmployeeInput(employee_id=employees["E2"].id, commission_percentage=Decimal("10")),
            ]),
            clock,
        )

        assert [a.name for a in order.assigned_employees] == ["Marco Ferri", "Luca Neri"]
        assert order.commission_value == Decimal("70.00")


class TestDelete:
    """Test per l'eliminazione degli ordini."""

    @pytest.mark.asyncio
    async def test_numbers_are_not_reused(self, db, tenant_id, clock, order_data):
        """Test numeri degli ordini eliminati non riutilizzati."""
        first = await service_order_service.create(db, tenant_id, order_data(), clock)
        second = await service_order_service.create(db, tenant_id, order_data(), clock)
        assert (first.number, second.number) == (1, 2)

        await service_order_service.delete(db, tenant_id, second.id)
        third = await service_order_service.create(db, tenant_id, order_data(), clock)

        assert third.number == 3

    @pytest.mark.asyncio
    async def test_delete_retracts_debit(self, db, tenant_id, clock, client, order_data):
        """Test eliminazione rimuove l'addebito."""
        order = await service_order_service.create(
            db, tenant_id, order_data(status=OrderStatus.COMPLETED), clock
        )

        await service_order_service.delete(db, tenant_id, order.id)

        with pytest.raises(NotFoundError):
            await service_order_service.get_by_id(db, tenant_id, order.id)
        account = await ledger_reconciler.client_account(db, tenant_id, client.id)
        assert account.balance == Decimal("0.00")

    @pytest.mark.asyncio
    async def test_client_with_orders_cannot_be_hard_deleted(self, db, tenant_id, clock, client, order_data):
        """Test cliente con ordini non eliminabile definitivamente."""
        await service_order_service.create(db, tenant_id, order_data(), clock)

        with pytest.raises(ConflictError):
            await client_service.delete(db, tenant_id, client.id, hard_delete=True)

        await client_service.delete(db, tenant_id, client.id)
        clients, total = await client_service.get_all(db, tenant_id)
        assert total == 0


class TestQueries:
    """Test per le ricerche sugli ordini."""

    @pytest.mark.asyncio
    async def test_set_paid(self, db, tenant_id, clock, order_data):
        """Test flag di pagamento."""
        order = await service_order_service.create(db, tenant_id, order_data(), clock)

        order = await service_order_service.set_paid(db, tenant_id, order.id, True)

        assert order.is_paid is True
        assert await ledger_reconciler.list_transactions(db, tenant_id) == []

    @pytest.mark.asyncio
    async def test_filters(self, db, tenant_id, clock, order_data):
        """Test filtri per stato e ricerca."""
        await service_order_service.create(db, tenant_id, order_data(), clock)
        await service_order_service.create(
            db, tenant_id, order_data(patient_name="Paolo Riva", status=OrderStatus.IN_PROGRESS), clock
        )

        orders, total = await service_order_service.get_all(db, tenant_id, status_filter=OrderStatus.IN_PROGRESS)
        assert total == 1
        assert orders[0].patient_name == "Paolo Riva"

        orders, total = await service_order_service.get_all(db, tenant_id, search="conti")
        assert [o.patient_name for o in orders] == ["Giulia Conti"]

        orders, total = await service_order_service.get_all(db, tenant_id)
        assert [o.number for o in orders] == [2, 1]

    @pytest.mark.asyncio
    async def test_tenant_isolation(self, db, tenant_id, clock, order_data):
        """Test ordini di altri laboratori non visibili."""
        order = await service_order_service.create(db, tenant_id, order_data(), clock)

        with pytest.raises(NotFoundError):
            await service_order_service.get_by_id(db, "altro-lab", order.id)
        with pytest.raises(NotFoundError):
            await ledger_reconciler.change_status(db, "altro-lab", order.id, OrderStatus.COMPLETED, clock)

        orders, total = await service_order_service.get_all(db, "altro-lab")
        assert total == 0
