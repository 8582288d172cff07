"""
Compositore dell'ordine di servizio
Progetto: Dental Lab Manager (Gestionale Laboratorio Odontotecnico)

Mantiene l'insieme di lavorazioni selezionate e di dipendenti assegnati
mentre l'ordine viene compilato e ricalcola i totali ad ogni modifica:

    total_value      = Σ price × quantity
    commission_value = total_value × percentuale / 100   (per dipendente)
    total_commission = Σ commission_value

Non accede al database: riceve il listino già risolto per il cliente.
"""

import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping, Optional

from dental_lab.core.exceptions import BusinessValidationError, NotFoundError
from dental_lab.core.money import ZERO, to_money
from dental_lab.models import ServiceOrder
from dental_lab.schemas.catalog import ResolvedService
from dental_lab.schemas.service_order import OrderLineInput, coerce_quantity

logger = logging.getLogger(__name__)


@dataclass
class ComposedLine:
    service_id: uuid.UUID
    name: str
    price: Decimal
    quantity: int = 1
    tooth_number: str = ""
    color: str = ""

    @property
    def subtotal(self) -> Decimal:
        return self.price * self.quantity


@dataclass
class ComposedEmployee:
    employee_id: uuid.UUID
    name: str
    commission_percentage: Decimal
    commission_value: Decimal = ZERO


def parse_percentage(value: Any) -> Decimal:
    """
    Converte la percentuale di commissione.

    Raises:
        BusinessValidationError: Se mancante, non numerica o fuori da 0-100
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise BusinessValidationError("Indicare la percentuale di commissione")
    try:
        percentage = Decimal(str(value).strip())
    except InvalidOperation:
        raise BusinessValidationError(f"Percentuale di commissione non valida: {value!r}")
    if not percentage.is_finite() or percentage < 0 or percentage > 100:
        raise BusinessValidationError("La percentuale di commissione deve essere compresa tra 0 e 100")
    return percentage


class OrderComposer:
    """
    Stato di lavoro di un ordine in compilazione.

    Le righe sono identificate dalla lavorazione: ogni lavorazione compare
    al più una volta. Il prezzo di una riga è congelato alla prima
    selezione e non viene più ricalcolato.

    Usage:
        composer = OrderComposer(index_price_list(groups))
        composer.toggle_service(service_id)
        composer.assign_employee(employee_id, "Mario", 20)
        composer.total_value
    """

    def __init__(self, price_list: Optional[Mapping[uuid.UUID, ResolvedService]] = None) -> None:
        self.price_list: Mapping[uuid.UUID, ResolvedService] = price_list or {}
        self._lines: list[ComposedLine] = []
        self._employees: list[ComposedEmployee] = []

    @classmethod
    def from_order(
        cls,
        order: ServiceOrder,
        price_list: Optional[Mapping[uuid.UUID, ResolvedService]] = None,
    ) -> "OrderComposer":
        """Inizializza il compositore con le righe e i dipendenti salvati."""
        composer = cls(price_list)
        composer._lines = [
            ComposedLine(
                service_id=line.service_id,
                name=line.name,
                price=to_money(line.price),
                quantity=line.quantity,
                tooth_number=line.tooth_number or "",
                color=line.color or "",
            )
            for line in order.lines
        ]
        composer._employees = [
            ComposedEmployee(
                employee_id=assigned.employee_id,
                name=assigned.name,
                commission_percentage=Decimal(assigned.commission_percentage),
            )
            for assigned in order.assigned_employees
        ]
        return composer

    # ------------------------------------------------------------
    # Righe
    # ------------------------------------------------------------

    @property
    def lines(self) -> list[ComposedLine]:
        return list(self._lines)

    def clear_lines(self) -> None:
        """Svuota le lavorazioni selezionate (cambio di cliente)."""
        self._lines = []

    def find_line(self, service_id: uuid.UUID) -> Optional[ComposedLine]:
        return next((line for line in self._lines if line.service_id == service_id), None)

    def toggle_service(self, service_id: uuid.UUID) -> bool:
        """
        Seleziona o deseleziona una lavorazione.

        Alla selezione la riga prende il display_price corrente del listino
        del cliente; alla deselezione la riga viene rimossa.

        Returns:
            True se la lavorazione risulta selezionata dopo la chiamata
        """
        existing = self.find_line(service_id)
        if existing is not None:
            self._lines.remove(existing)
            return False

        service = self.price_list.get(service_id)
        if service is None:
            raise NotFoundError(f"Lavorazione {service_id} non presente nel listino")

        self._lines.append(
            ComposedLine(
                service_id=service.id,
                name=service.name,
                price=to_money(service.display_price),
            )
        )
        return True

    def update_line(
        self,
        service_id: uuid.UUID,
        quantity: Any = None,
        tooth_number: Optional[str] = None,
        color: Optional[str] = None,
    ) -> ComposedLine:
        """Modifica quantità, elemento dentale o colore; il prezzo resta invariato."""
        line = self.find_line(service_id)
        if line is None:
            raise BusinessValidationError("Lavorazione non selezionata nell'ordine")
        if quantity is not None:
            line.quantity = coerce_quantity(quantity)
        if tooth_number is not None:
            line.tooth_number = tooth_number
        if color is not None:
            line.color = color
        return line

    def apply_lines(self, inputs: Iterable[OrderLineInput]) -> None:
        """
        Allinea le righe a quelle inviate dal form.

        Le righe già presenti conservano il prezzo congelato, le nuove
        lavorazioni prendono il prezzo corrente e quelle assenti vengono
        rimosse. L'ordine delle righe segue quello dell'input.
        """
        inputs = list(inputs)
        wanted = [item.service_id for item in inputs]
        if len(set(wanted)) != len(wanted):
            raise BusinessValidationError("La stessa lavorazione è presente più volte nell'ordine")

        for line in list(self._lines):
            if line.service_id not in wanted:
                self.toggle_service(line.service_id)

        for item in inputs:
            if self.find_line(item.service_id) is None:
                self.toggle_service(item.service_id)
            self.update_line(
                item.service_id,
                quantity=item.quantity,
                tooth_number=item.tooth_number,
                color=item.color,
            )

        position = {service_id: index for index, service_id in enumerate(wanted)}
        self._lines.sort(key=lambda line: position[line.service_id])

    # ------------------------------------------------------------
    # Dipendenti
    # ------------------------------------------------------------

    @property
    def employees(self) -> list[ComposedEmployee]:
        """Dipendenti assegnati con la commissione ricalcolata sul totale corrente."""
        total = self.total_value
        for assigned in self._employees:
            assigned.commission_value = to_money(total * assigned.commission_percentage / 100)
        return list(self._employees)

    def assign_employee(self, employee_id: Optional[uuid.UUID], name: str, percentage: Any) -> ComposedEmployee:
        """
        Assegna un dipendente all'ordine.

        Raises:
            BusinessValidationError: Dipendente o percentuale mancanti,
                percentuale non valida, dipendente già assegnato
        """
        if employee_id is None:
            raise BusinessValidationError("Selezionare un dipendente e la percentuale di commissione")
        pct = parse_percentage(percentage)
        if any(e.employee_id == employee_id for e in self._employees):
            raise BusinessValidationError(f"Dipendente {name} già assegnato all'ordine")

        assigned = ComposedEmployee(employee_id=employee_id, name=name, commission_percentage=pct)
        self._employees.append(assigned)
        return assigned

    def remove_employee(self, employee_id: uuid.UUID) -> None:
        self._employees = [e for e in self._employees if e.employee_id != employee_id]

    def clear_employees(self) -> None:
        self._employees = []

    # ------------------------------------------------------------
    # Totali e validazione
    # ------------------------------------------------------------

    @property
    def total_value(self) -> Decimal:
        return to_money(sum((line.subtotal for line in self._lines), ZERO))

    @property
    def total_commission(self) -> Decimal:
        return to_money(sum((e.commission_value for e in self.employees), ZERO))

    def validate(self, client: Any) -> None:
        """
        Verifica che l'ordine possa essere salvato.

        Raises:
            BusinessValidationError: Cliente mancante o nessun dipendente
        """
        if not client:
            raise BusinessValidationError("Selezionare un cliente")
        if not self._employees:
            raise BusinessValidationError("Assegnare almeno un dipendente all'ordine")
