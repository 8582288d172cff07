"""
Service Layer per gli Ordini di Servizio
Progetto: Dental Lab Manager (Gestionale Laboratorio Odontotecnico)

Definisce la logica di business per la gestione degli ordini di servizio:
numerazione progressiva, snapshot di cliente/prezzi/dipendenti, calcolo
dei totali tramite OrderComposer e cambi di stato tramite LedgerReconciler.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from dental_lab.core.clock import Clock
from dental_lab.core.database import atomic_batch
from dental_lab.core.exceptions import BusinessValidationError, NotFoundError
from dental_lab.models import (
    AssignedEmployee,
    Client,
    Employee,
    OrderSequence,
    ServiceOrder,
    ServiceOrderLine,
)
from dental_lab.schemas.service_order import (
    AssignedEmployeeInput,
    OrderStatus,
    ServiceOrderCreate,
    ServiceOrderUpdate,
)
from dental_lab.services.ledger_service import ledger_reconciler
from dental_lab.services.order_composer import OrderComposer
from dental_lab.services.pricing_service import catalog_service, index_price_list

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Campi che determinano gli importi dell'ordine
MONETARY_FIELDS = ("client_id", "lines", "employees")


class ServiceOrderService:
    """
    Service per la gestione delle operazioni CRUD sugli ordini di servizio.

    Fornisce metodi asincroni per interagire con il database
    in modo centralizzato, senza dipendenze da FastAPI.
    """

    # ------------------------------------------------------------
    # Lettura
    # ------------------------------------------------------------

    async def get_all(
        self,
        db: AsyncSession,
        tenant_id: str,
        status_filter: Optional[OrderStatus] = None,
        client_id: Optional[uuid.UUID] = None,
        page: int = 1,
        per_page: int = 20,
        search: Optional[str] = None,
    ) -> tuple[list[ServiceOrder], int]:
        """
        Recupera la lista paginata degli ordini di servizio.

        Args:
            db: Sessione database
            tenant_id: Tenant corrente
            status_filter: Filtro opzionale per stato
            client_id: Filtro opzionale per cliente
            page: Numero pagina (default 1)
            per_page: Elementi per pagina (default 20)
            search: Ricerca su nome cliente e paziente

        Returns:
            Tuple di (lista ordini, totale count)
        """
        conditions = [ServiceOrder.tenant_id == tenant_id]

        if status_filter:
            conditions.append(ServiceOrder.status == OrderStatus(status_filter).value)

        if client_id:
            conditions.append(ServiceOrder.client_id == client_id)

        if search:
            search_term = f"%{search}%"
            conditions.append(
                or_(
                    ServiceOrder.client_name.ilike(search_term),
                    ServiceOrder.patient_name.ilike(search_term),
                )
            )

        # Più recenti prima
        query = (
            select(ServiceOrder)
            .where(and_(*conditions))
            .order_by(ServiceOrder.number.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        result = await db.execute(query)
        orders = list(result.scalars().all())

        count_query = select(func.count()).select_from(ServiceOrder).where(and_(*conditions))
        total = (await db.execute(count_query)).scalar() or 0

        logger.debug("Recuperati %d ordini di servizio su %d totali", len(orders), total)
        return orders, total

    async def get_by_id(self, db: AsyncSession, tenant_id: str, order_id: uuid.UUID) -> ServiceOrder:
        """
        Recupera un ordine di servizio tramite ID, ricaricando lo stato dal database.

        Raises:
            NotFoundError: Se l'ordine non esiste
        """
        query = (
            select(ServiceOrder)
            .where(ServiceOrder.id == order_id, ServiceOrder.tenant_id == tenant_id)
            .execution_options(populate_existing=True)
        )
        result = await db.execute(query)
        order = result.scalar_one_or_none()

        if not order:
            logger.warning("Ordine di servizio non trovato: %s", order_id)
            raise NotFoundError(f"Ordine di servizio con ID {order_id} non trovato")
        return order

    # ------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------

    async def _get_client(self, db: AsyncSession, tenant_id: str, client_id: Optional[uuid.UUID]) -> Optional[Client]:
        if client_id is None:
            return None
        result = await db.execute(
            select(Client).where(Client.id == client_id, Client.tenant_id == tenant_id)
        )
        client = result.scalar_one_or_none()
        if not client:
            logger.warning("Cliente non trovato: %s", client_id)
            raise NotFoundError(f"Cliente con ID {client_id} non trovato")
        return client

    async def _composer_for(
        self,
        db: AsyncSession,
        tenant_id: str,
        client: Optional[Client],
        order: Optional[ServiceOrder] = None,
    ) -> OrderComposer:
        groups = await catalog_service.resolve_for_client(db, tenant_id, client)
        price_list = index_price_list(groups)
        if order is not None:
            return OrderComposer.from_order(order, price_list)
        return OrderComposer(price_list)

    async def _assign_employees(
        self,
        db: AsyncSession,
        tenant_id: str,
        composer: OrderComposer,
        assignments: list[AssignedEmployeeInput],
        order: Optional[ServiceOrder] = None,
    ) -> None:
        """
        Sostituisce i dipendenti assegnati copiandone il nome.

        Un dipendente eliminato può restare assegnato a un ordine esistente
        con il nome salvato in precedenza.
        """
        ids = [a.employee_id for a in assignments if a.employee_id is not None]
        employees: dict[uuid.UUID, Employee] = {}
        if ids:
            result = await db.execute(
                select(Employee).where(Employee.id.in_(ids), Employee.tenant_id == tenant_id)
            )
            employees = {e.id: e for e in result.scalars().all()}

        saved_names = {}
        if order is not None:
            saved_names = {a.employee_id: a.name for a in order.assigned_employees}

        composer.clear_employees()
        for assignment in assignments:
            employee = employees.get(assignment.employee_id)
            if employee is not None:
                name = employee.name
            elif assignment.employee_id in saved_names:
                name = saved_names[assignment.employee_id]
            elif assignment.employee_id is not None:
                raise NotFoundError(f"Dipendente con ID {assignment.employee_id} non trovato")
            else:
                name = ""
            composer.assign_employee(assignment.employee_id, name, assignment.commission_percentage)

    async def _next_number(self, db: AsyncSession, tenant_id: str) -> int:
        """
        Prossimo numero d'ordine del tenant.

        max(ultimo numero emesso, numero più alto esistente) + 1: un numero
        non viene mai riutilizzato, neanche dopo l'eliminazione di un ordine.
        """
        sequence = await db.get(OrderSequence, tenant_id)
        result = await db.execute(
            select(func.max(ServiceOrder.number)).where(ServiceOrder.tenant_id == tenant_id)
        )
        highest = result.scalar() or 0
        last = sequence.last_number if sequence is not None else 0

        number = max(last, highest) + 1
        if sequence is None:
            db.add(OrderSequence(tenant_id=tenant_id, last_number=number))
        else:
            sequence.last_number = number
        return number

    def _apply_composition(self, order: ServiceOrder, composer: OrderComposer) -> None:
        """
        Scrive righe, dipendenti e totali nell'ordine.

        Le righe e i dipendenti già presenti vengono aggiornati sul posto.
        """
        current_lines = {line.service_id: line for line in order.lines}
        lines = []
        for position, composed in enumerate(composer.lines):
            line = current_lines.get(composed.service_id) or ServiceOrderLine(service_id=composed.service_id)
            line.position = position
            line.name = composed.name
            line.price = composed.price
            line.quantity = composed.quantity
            line.tooth_number = composed.tooth_number
            line.color = composed.color
            lines.append(line)
        order.lines = lines

        current_employees = {a.employee_id: a for a in order.assigned_employees}
        assigned = []
        for position, composed in enumerate(composer.employees):
            row = current_employees.get(composed.employee_id) or AssignedEmployee(
                employee_id=composed.employee_id
            )
            row.position = position
            row.name = composed.name
            row.commission_percentage = composed.commission_percentage
            row.commission_value = composed.commission_value
            assigned.append(row)
        order.assigned_employees = assigned

        order.total_value = composer.total_value
        order.commission_value = composer.total_commission

    # ------------------------------------------------------------
    # Scrittura
    # ------------------------------------------------------------

    async def create(
        self,
        db: AsyncSession,
        tenant_id: str,
        data: ServiceOrderCreate,
        clock: Clock,
    ) -> ServiceOrder:
        """
        Crea un nuovo ordine di servizio.

        I prezzi delle lavorazioni sono risolti dal listino del cliente e
        congelati nell'ordine. Se lo stato iniziale è "completed" viene
        registrato anche l'addebito, nello stesso lotto atomico.

        Raises:
            BusinessValidationError: Cliente mancante, nessun dipendente, dati non validi
            NotFoundError: Se cliente, lavorazioni o dipendenti non esistono
        """
        client = await self._get_client(db, tenant_id, data.client_id)
        composer = await self._composer_for(db, tenant_id, client)
        composer.apply_lines(data.lines)
        await self._assign_employees(db, tenant_id, composer, data.employees)
        composer.validate(client)

        async with atomic_batch(db):
            number = await self._next_number(db, tenant_id)
            order = ServiceOrder(
                tenant_id=tenant_id,
                number=number,
                client_id=client.id,
                client_name=client.name,
                client_snapshot=client.snapshot(),
                patient_name=data.patient_name,
                open_date=data.open_date or clock.today(),
                delivery_date=data.delivery_date,
                status=OrderStatus.PENDING.value,
                is_paid=data.is_paid,
                observations=data.observations,
                lines=[],
                assigned_employees=[],
            )
            self._apply_composition(order, composer)
            db.add(order)
            await db.flush()

            if data.status != OrderStatus.PENDING:
                await ledger_reconciler.apply_transition(
                    db, tenant_id, order, data.status, clock, data.completion_date
                )

        logger.info("Creato ordine di servizio n. %s (%s)", number, order.id)
        return await self.get_by_id(db, tenant_id, order.id)

    async def update(
        self,
        db: AsyncSession,
        tenant_id: str,
        order_id: uuid.UUID,
        data: ServiceOrderUpdate,
        clock: Clock,
    ) -> ServiceOrder:
        """
        Aggiorna un ordine di servizio.

        Lavorazioni, dipendenti e cliente di un ordine completato non sono
        modificabili finché l'ordine resta completato: l'addebito già
        registrato deve corrispondere al totale dell'ordine.

        Raises:
            NotFoundError: Se l'ordine (o cliente/dipendenti) non esiste
            BusinessValidationError: Se la modifica non è consentita
        """
        order = await self.get_by_id(db, tenant_id, order_id)
        update_data = data.model_dump(exclude_unset=True)

        client_changed = data.client_id is not None and data.client_id != order.client_id
        monetary = [
            field for field in MONETARY_FIELDS
            if update_data.get(field) is not None
            and (field != "client_id" or client_changed)
        ]
        target_status = OrderStatus(data.status or order.status)
        if (
            monetary
            and order.status == OrderStatus.COMPLETED.value
            and target_status == OrderStatus.COMPLETED
        ):
            logger.warning("Modifica importi rifiutata per l'ordine completato n. %s", order.number)
            raise BusinessValidationError(
                "Non è possibile modificare lavorazioni, dipendenti o cliente di un ordine completato",
                extra={"fields": monetary},
            )

        client = None
        composer = None
        if monetary:
            client_id = data.client_id if client_changed else order.client_id
            client = await self._get_client(db, tenant_id, client_id)
            composer = await self._composer_for(db, tenant_id, client, order)
            if client_changed:
                # Le lavorazioni vanno riselezionate con il listino del nuovo cliente
                composer.clear_lines()
            if data.lines is not None:
                composer.apply_lines(data.lines)
            if data.employees is not None:
                await self._assign_employees(db, tenant_id, composer, data.employees, order)
            composer.validate(client)

        async with atomic_batch(db):
            for field in ("patient_name", "open_date", "delivery_date", "observations"):
                if field in update_data:
                    setattr(order, field, update_data[field])

            if client is not None and client.id != order.client_id:
                order.client_id = client.id
                order.client_name = client.name
                order.client_snapshot = client.snapshot()

            if composer is not None:
                self._apply_composition(order, composer)

            if data.status is not None:
                await ledger_reconciler.apply_transition(
                    db, tenant_id, order, data.status, clock, data.completion_date
                )
            elif data.completion_date is not None and order.status == OrderStatus.COMPLETED.value:
                await ledger_reconciler.apply_transition(
                    db, tenant_id, order, OrderStatus.COMPLETED, clock, data.completion_date
                )

        logger.info("Aggiornato ordine di servizio n. %s", order.number)
        return await self.get_by_id(db, tenant_id, order_id)

    async def delete(self, db: AsyncSession, tenant_id: str, order_id: uuid.UUID) -> None:
        """
        Elimina un ordine di servizio.

        L'eventuale addebito viene ritirato nello stesso lotto atomico;
        il numero dell'ordine non verrà riutilizzato.
        """
        order = await self.get_by_id(db, tenant_id, order_id)
        number = order.number

        async with atomic_batch(db):
            sequence = await db.get(OrderSequence, tenant_id)
            if sequence is None:
                db.add(OrderSequence(tenant_id=tenant_id, last_number=number))
            elif sequence.last_number < number:
                sequence.last_number = number
            await ledger_reconciler.retract_debit(db, tenant_id, order)
            await db.delete(order)

        logger.info("Eliminato ordine di servizio n. %s", number)

    async def set_paid(
        self,
        db: AsyncSession,
        tenant_id: str,
        order_id: uuid.UUID,
        is_paid: bool,
    ) -> ServiceOrder:
        """
        Segna l'ordine come pagato o non pagato.

        Il flag è solo informativo e non genera movimenti contabili.
        """
        order = await self.get_by_id(db, tenant_id, order_id)
        async with atomic_batch(db):
            order.is_paid = is_paid
        logger.info("Ordine n. %s segnato come %s", order.number, "pagato" if is_paid else "non pagato")
        return order


service_order_service = ServiceOrderService()
