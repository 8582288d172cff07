"""
Test per la riconciliazione tra ordini e registro contabile.
"""

import datetime
import uuid
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from dental_lab.core.database import atomic_batch
from dental_lab.core.exceptions import (
    ConsistencyViolationError,
    StoreFailureError,
)
from dental_lab.models import LedgerTransaction
from dental_lab.schemas.ledger import CreditCreate, CreditUpdate, TransactionType
from dental_lab.schemas.service_order import OrderLineInput, OrderStatus
from dental_lab.services.ledger_service import (
    build_statement,
    compute_account,
    debit_description,
    ledger_reconciler,
)
from dental_lab.services.service_order_service import service_order_service

from conftest import TODAY


def tx(kind, amount, day, created_minute=0):
    return LedgerTransaction(
        id=uuid.uuid4(),
        type=kind,
        amount=Decimal(amount),
        date=day,
        description="",
        client_id=uuid.UUID(int=1),
        client_name="Studio",
        created_at=datetime.datetime(2024, 5, 1, 9, created_minute, tzinfo=datetime.timezone.utc),
    )


async def debits_for(db, tenant_id, order_id):
    transactions = await ledger_reconciler.list_transactions(db, tenant_id)
    return [t for t in transactions if t.order_id == order_id and t.type == TransactionType.DEBIT.value]


# ============================================================
# Saldi (funzioni pure)
# ============================================================


class TestBalances:
    """Test per saldi ed estratto conto."""

    def test_balance_is_credits_minus_debits(self):
        """Test saldo uguale ad accrediti meno addebiti."""
        client_id = uuid.uuid4()
        account = compute_account(
            client_id,
            "Studio",
            [
                tx("debit", "100.00", TODAY),
                tx("credit", "150.00", TODAY),
                tx("debit", "30.00", TODAY),
            ],
        )

        assert account.total_debits == Decimal("130.00")
        assert account.total_credits == Decimal("150.00")
        assert account.balance == Decimal("20.00")

    def test_empty_account(self):
        """Test conto senza movimenti a saldo zero."""
        account = compute_account(uuid.uuid4(), "Studio", [])
        assert account.balance == Decimal("0.00")

    def test_statement_running_balance(self):
        """Test saldo progressivo ordinato per data e inserimento."""
        day1 = datetime.date(2024, 5, 1)
        day2 = datetime.date(2024, 5, 2)
        entries = build_statement([
            tx("debit", "30.00", day2),
            tx("credit", "150.00", day1, created_minute=5),
            tx("debit", "100.00", day1, created_minute=1),
        ])

        assert [e.amount for e in entries] == [Decimal("100.00"), Decimal("150.00"), Decimal("30.00")]
        assert [e.running_balance for e in entries] == [
            Decimal("-100.00"),
            Decimal("50.00"),
            Decimal("20.00"),
        ]

    def test_debit_description(self):
        """Test descrizione dell'addebito con e senza paziente."""
        order = type("Order", (), {"number": 7, "patient_name": "Giulia Conti"})()
        assert debit_description(order) == "Ordine n. 7 - Paziente: Giulia Conti"
        order.patient_name = None
        assert debit_description(order) == "Ordine n. 7"


# ============================================================
# Completamento e ritiro dell'addebito
# ============================================================


class TestCompletion:
    """Test per il completamento degli ordini e l'addebito collegato."""

    @pytest.mark.asyncio
    async def test_completion_posts_debit_once(self, db, tenant_id, clock, order_data, sequence_at_six):
        """Test completamento ripetuto genera un solo addebito."""
        order = await service_order_service.create(db, tenant_id, order_data(), clock)

        await ledger_reconciler.change_status(db, tenant_id, order.id, OrderStatus.COMPLETED, clock)
        await ledger_reconciler.change_status(db, tenant_id, order.id, OrderStatus.COMPLETED, clock)

        debits = await debits_for(db, tenant_id, order.id)
        assert len(debits) == 1
        debit = debits[0]
        assert debit.amount == Decimal("200.00")
        assert debit.date == TODAY
        assert debit.client_id == order.client_id
        assert debit.description == "Ordine n. 7 - Paziente: Giulia Conti"

        order = await service_order_service.get_by_id(db, tenant_id, order.id)
        assert order.status == OrderStatus.COMPLETED.value
        assert order.completion_date == TODAY

    @pytest.mark.asyncio
    async def test_completion_date_can_be_supplied(self, db, tenant_id, clock, order_data):
        """Test data di completamento indicata dall'operatore."""
        order = await service_order_service.create(db, tenant_id, order_data(), clock)
        day = TODAY - datetime.timedelta(days=2)

        await ledger_reconciler.change_status(db, tenant_id, order.id, OrderStatus.COMPLETED, clock, day)

        debit = await ledger_reconciler.find_debit(db, tenant_id, order.id)
        assert debit.date == day

    @pytest.mark.asyncio
    async def test_round_trip_through_pending(self, db, tenant_id, clock, order_data):
        """Test completato, in attesa e di nuovo completato lascia un solo addebito."""
        order = await service_order_service.create(db, tenant_id, order_data(), clock)

        await ledger_reconciler.change_status(db, tenant_id, order.id, OrderStatus.COMPLETED, clock)
        order = await ledger_reconciler.change_status(db, tenant_id, order.id, OrderStatus.PENDING, clock)

        assert order.completion_date is None
        assert await ledger_reconciler.find_debit(db, tenant_id, order.id) is None

        await ledger_reconciler.change_status(db, tenant_id, order.id, OrderStatus.COMPLETED, clock)
        assert len(await debits_for(db, tenant_id, order.id)) == 1

    @pytest.mark.asyncio
    async def test_in_progress_has_no_debit(self, db, tenant_id, clock, order_data):
        """Test ordine in lavorazione senza addebito."""
        order = await service_order_service.create(db, tenant_id, order_data(), clock)

        order = await ledger_reconciler.change_status(db, tenant_id, order.id, OrderStatus.IN_PROGRESS, clock)

        assert order.status == OrderStatus.IN_PROGRESS.value
        assert await ledger_reconciler.find_debit(db, tenant_id, order.id) is None

    @pytest.mark.asyncio
    async def test_cancel_retracts_debit(self, db, tenant_id, clock, order_data):
        """Test annullamento rimuove l'addebito."""
        order = await service_order_service.create(
            db, tenant_id, order_data(status=OrderStatus.COMPLETED), clock
        )
        assert await ledger_reconciler.find_debit(db, tenant_id, order.id) is not None

        order = await ledger_reconciler.cancel_order(db, tenant_id, order.id, clock)

        assert order.status == OrderStatus.CANCELLED.value
        assert order.completion_date is None
        assert await ledger_reconciler.find_debit(db, tenant_id, order.id) is None

    @pytest.mark.asyncio
    async def test_cancelled_order_can_be_completed(self, db, tenant_id, clock, order_data):
        """Test ordine annullato completato con un solo addebito."""
        order = await service_order_service.create(
            db, tenant_id, order_data(status=OrderStatus.COMPLETED), clock
        )
        await ledger_reconciler.cancel_order(db, tenant_id, order.id, clock)

        order = await ledger_reconciler.change_status(db, tenant_id, order.id, OrderStatus.COMPLETED, clock)

        assert order.status == OrderStatus.COMPLETED.value
        assert order.completion_date == TODAY
        debits = await debits_for(db, tenant_id, order.id)
        assert len(debits) == 1
        assert debits[0].amount == Decimal("200.00")

    @pytest.mark.asyncio
    async def test_cancelled_order_can_go_in_progress(self, db, tenant_id, clock, order_data):
        """Test ordine annullato rimesso in lavorazione senza addebito."""
        order = await service_order_service.create(db, tenant_id, order_data(), clock)
        await ledger_reconciler.cancel_order(db, tenant_id, order.id, clock)

        order = await ledger_reconciler.change_status(db, tenant_id, order.id, OrderStatus.IN_PROGRESS, clock)

        assert order.status == OrderStatus.IN_PROGRESS.value
        assert await ledger_reconciler.find_debit(db, tenant_id, order.id) is None

    @pytest.mark.asyncio
    async def test_zero_total_posts_no_debit(self, db, tenant_id, clock, order_data):
        """Test ordine a totale zero non genera addebito."""
        order = await service_order_service.create(db, tenant_id, order_data(lines=[]), clock)

        await ledger_reconciler.change_status(db, tenant_id, order.id, OrderStatus.COMPLETED, clock)

        assert await ledger_reconciler.find_debit(db, tenant_id, order.id) is None

    @pytest.mark.asyncio
    async def test_existing_debit_is_not_overwritten(self, db, tenant_id, clock, order_data):
        """Test addebito esistente conservato, ne cambia solo la data."""
        order = await service_order_service.create(
            db, tenant_id, order_data(status=OrderStatus.COMPLETED), clock
        )
        debit = await ledger_reconciler.find_debit(db, tenant_id, order.id)

        later = TODAY + datetime.timedelta(days=1)
        await ledger_reconciler.change_status(db, tenant_id, order.id, OrderStatus.COMPLETED, clock, later)

        debits = await debits_for(db, tenant_id, order.id)
        assert [d.id for d in debits] == [debit.id]
        assert debits[0].amount == Decimal("200.00")
        assert debits[0].date == later


# ============================================================
# Pagamenti e movimenti manuali
# ============================================================


class TestCredits:
    """Test per pagamenti e movimenti manuali."""

    @pytest.mark.asyncio
    async def test_balance_after_orders_and_payment(self, db, tenant_id, clock, client, order_data, catalog):
        """Test saldo dopo due ordini completati e un pagamento."""
        await service_order_service.create(
            db,
            tenant_id,
            order_data(
                status=OrderStatus.COMPLETED,
                lines=[OrderLineInput(service_id=catalog["A"].id, quantity=1),
                       OrderLineInput(service_id=catalog["B"].id, quantity=1),
                       OrderLineInput(service_id=catalog["C"].id, quantity=1)],
            ),
            clock,
        )
        await ledger_reconciler.post_credit(
            db, tenant_id, CreditCreate(client_id=client.id, amount=Decimal("150")), clock
        )
        await service_order_service.create(
            db,
            tenant_id,
            order_data(
                status=OrderStatus.COMPLETED,
                lines=[OrderLineInput(service_id=catalog["B"].id, quantity=1)],
            ),
            clock,
        )

        account = await ledger_reconciler.client_account(db, tenant_id, client.id)
        # Debiti 170 + 40, credito 150
        assert account.total_debits == Decimal("210.00")
        assert account.total_credits == Decimal("150.00")
        assert account.balance == Decimal("-60.00")

    @pytest.mark.asyncio
    async def test_credit_defaults(self, db, tenant_id, clock, client):
        """Test descrizione e data predefinite del pagamento."""
        credit = await ledger_reconciler.post_credit(
            db, tenant_id, CreditCreate(client_id=client.id, amount=Decimal("80"), description="  "), clock
        )

        assert credit.type == TransactionType.CREDIT.value
        assert credit.date == TODAY
        assert credit.description == "Pagamento"
        assert credit.order_id is None
        assert credit.client_name == client.name

    @pytest.mark.asyncio
    async def test_update_credit(self, db, tenant_id, clock, client):
        """Test modifica di un pagamento."""
        credit = await ledger_reconciler.post_credit(
            db, tenant_id, CreditCreate(client_id=client.id, amount=Decimal("80")), clock
        )

        credit = await ledger_reconciler.update_credit(
            db, tenant_id, credit.id, CreditUpdate(amount=Decimal("90"), description="Bonifico")
        )

        assert credit.amount == Decimal("90.00")
        assert credit.description == "Bonifico"

    @pytest.mark.asyncio
    async def test_delete_credit(self, db, tenant_id, clock, client):
        """Test eliminazione di un pagamento."""
        credit = await ledger_reconciler.post_credit(
            db, tenant_id, CreditCreate(client_id=client.id, amount=Decimal("80")), clock
        )

        await ledger_reconciler.delete_transaction(db, tenant_id, credit.id)

        assert await ledger_reconciler.list_transactions(db, tenant_id, client.id) == []

    @pytest.mark.asyncio
    async def test_debit_cannot_be_deleted_or_edited(self, db, tenant_id, clock, order_data):
        """Test addebito non eliminabile né modificabile direttamente."""
        order = await service_order_service.create(
            db, tenant_id, order_data(status=OrderStatus.COMPLETED), clock
        )
        debit = await ledger_reconciler.find_debit(db, tenant_id, order.id)

        with pytest.raises(ConsistencyViolationError) as exc_info:
            await ledger_reconciler.delete_transaction(db, tenant_id, debit.id)
        assert exc_info.value.extra == {"order_id": str(order.id)}

        with pytest.raises(ConsistencyViolationError):
            await ledger_reconciler.update_credit(
                db, tenant_id, debit.id, CreditUpdate(amount=Decimal("1"))
            )

        assert await ledger_reconciler.find_debit(db, tenant_id, order.id) is not None

    @pytest.mark.asyncio
    async def test_statement(self, db, tenant_id, clock, client, order_data):
        """Test estratto conto del cliente."""
        await service_order_service.create(db, tenant_id, order_data(status=OrderStatus.COMPLETED), clock)
        await ledger_reconciler.post_credit(
            db, tenant_id, CreditCreate(client_id=client.id, amount=Decimal("50")), clock
        )

        statement = await ledger_reconciler.client_statement(db, tenant_id, client.id)

        assert statement.account.balance == Decimal("-150.00")
        assert [e.running_balance for e in statement.entries][-1] == Decimal("-150.00")

    @pytest.mark.asyncio
    async def test_accounts_list(self, db, tenant_id, clock, client, vip_client):
        """Test riepilogo dei conti di tutti i clienti."""
        await ledger_reconciler.post_credit(
            db, tenant_id, CreditCreate(client_id=vip_client.id, amount=Decimal("25")), clock
        )

        accounts = {a.client_id: a for a in await ledger_reconciler.list_accounts(db, tenant_id)}

        assert accounts[client.id].balance == Decimal("0.00")
        assert accounts[vip_client.id].balance == Decimal("25.00")


# ============================================================
# Atomicità e vincoli
# ============================================================


class TestAtomicity:
    """Test per l'atomicità delle operazioni sul registro."""

    @pytest.mark.asyncio
    async def test_store_failure_leaves_everything_unchanged(
        self, db, tenant_id, clock, order_data, monkeypatch
    ):
        """Test errore di salvataggio lascia ordine e registro invariati."""
        order = await service_order_service.create(
            db, tenant_id, order_data(status=OrderStatus.COMPLETED), clock
        )
        order_id = order.id
        monkeypatch.setattr(
            db,
            "commit",
            AsyncMock(side_effect=OperationalError("COMMIT", {}, Exception("database non raggiungibile"))),
        )

        with pytest.raises(StoreFailureError):
            await ledger_reconciler.cancel_order(db, tenant_id, order_id, clock)

        monkeypatch.undo()
        order = await service_order_service.get_by_id(db, tenant_id, order_id)
        assert order.status == OrderStatus.COMPLETED.value
        assert order.completion_date == TODAY
        assert await ledger_reconciler.find_debit(db, tenant_id, order_id) is not None

    @pytest.mark.asyncio
    async def test_second_debit_for_same_order_is_rejected(self, db, tenant_id, clock, order_data):
        """Test secondo addebito per lo stesso ordine rifiutato dal database."""
        order = await service_order_service.create(
            db, tenant_id, order_data(status=OrderStatus.COMPLETED), clock
        )
        order_id = order.id

        with pytest.raises(ConsistencyViolationError):
            async with atomic_batch(db):
                db.add(
                    LedgerTransaction(
                        tenant_id=tenant_id,
                        client_id=order.client_id,
                        client_name=order.client_name,
                        type=TransactionType.DEBIT.value,
                        amount=Decimal("200.00"),
                        date=TODAY,
                        description="Duplicato",
                        order_id=order_id,
                    )
                )

        assert len(await debits_for(db, tenant_id, order_id)) == 1


# ============================================================
# Feed delle modifiche
# ============================================================


class TestChangeFeed:
    """Test per le notifiche di modifica."""

    @pytest.mark.asyncio
    async def test_subscriber_sees_committed_debit(self, db, tenant_id, clock, client, order_data, feed):
        """Test sottoscrittore riceve l'addebito dopo il commit."""
        received = []
        feed.subscribe(
            LedgerTransaction,
            received.append,
            predicate=lambda record: record.client_id == client.id,
        )

        order = await service_order_service.create(
            db, tenant_id, order_data(status=OrderStatus.COMPLETED), clock
        )

        assert [(e.collection, e.operation) for e in received] == [("ledger_transactions", "create")]
        assert received[0].record.order_id == order.id

    @pytest.mark.asyncio
    async def test_rolled_back_work_is_not_published(self, db, tenant_id, clock, client, feed):
        """Test modifiche annullate non vengono notificate."""
        received = []
        subscription = feed.subscribe("ledger_transactions", received.append)
        client_id, client_name = client.id, client.name

        with pytest.raises(RuntimeError):
            async with atomic_batch(db):
                db.add(
                    LedgerTransaction(
                        tenant_id=tenant_id,
                        client_id=client_id,
                        client_name=client_name,
                        type=TransactionType.CREDIT.value,
                        amount=Decimal("10.00"),
                        date=TODAY,
                    )
                )
                await db.flush()
                raise RuntimeError("interrotto")

        assert received == []

        await ledger_reconciler.post_credit(
            db, tenant_id, CreditCreate(client_id=client_id, amount=Decimal("10")), clock
        )
        assert len(received) == 1

        subscription.cancel()
        await ledger_reconciler.post_credit(
            db, tenant_id, CreditCreate(client_id=client_id, amount=Decimal("10")), clock
        )
        assert len(received) == 1
