from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from dental_lab.models import Base
from dental_lab.models.mixins import SoftDeleteMixin, TenantMixin, TimestampMixin, UUIDMixin


class Employee(Base, UUIDMixin, TimestampMixin, TenantMixin, SoftDeleteMixin):
    """
    Modello per l'anagrafica dei dipendenti/odontotecnici del laboratorio.

    La percentuale di commissione è solo un valore proposto nel form
    dell'ordine: ogni ordine salva la propria percentuale.
    """
    __tablename__ = "employees"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    role: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    default_commission_percentage: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=Decimal("0.00")
    )

    __table_args__ = (
        CheckConstraint(
            "default_commission_percentage >= 0 AND default_commission_percentage <= 100",
            name="ck_employees_default_commission",
        ),
    )

    def __repr__(self) -> str:
        return f"Employee(name={self.name!r})"
