"""
Arrotondamento degli importi monetari.

Tutti gli importi (totali, commissioni, movimenti contabili) sono
arrotondati al centesimo con ROUND_HALF_UP.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Any) -> Decimal:
    """
    Converte un valore in Decimal arrotondato al centesimo.

    Raises:
        ValueError: Se il valore non è numerico
    """
    if isinstance(value, float):
        value = str(value)
    try:
        return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, TypeError):
        raise ValueError(f"Importo non valido: {value!r}")
