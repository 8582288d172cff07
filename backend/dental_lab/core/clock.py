"""
Orologio del laboratorio
Progetto: Dental Lab Manager (Gestionale Laboratorio Odontotecnico)

Fornisce la data "di oggi" nel fuso orario del laboratorio, usata per
timbrare la data di completamento degli ordini e la data di default
dei pagamenti.
"""

import datetime
from typing import Optional, Protocol
from zoneinfo import ZoneInfo

from dental_lab.core.config import settings


class Clock(Protocol):
    """Interfaccia minima dell'orologio usato dai service."""

    def today(self) -> datetime.date:
        ...


class SystemClock:
    """
    Orologio di sistema nel fuso orario del laboratorio.

    Le date di calendario (completamento, pagamenti, report) sono sempre
    giorni locali del laboratorio, non istanti UTC.
    """

    def __init__(self, timezone: Optional[str] = None) -> None:
        self.tz = ZoneInfo(timezone or settings.lab_timezone)

    def today(self) -> datetime.date:
        return datetime.datetime.now(self.tz).date()


class FixedClock:
    """Orologio fermo su una data, per test e script di import."""

    def __init__(self, day: datetime.date) -> None:
        self.day = day

    def today(self) -> datetime.date:
        return self.day
