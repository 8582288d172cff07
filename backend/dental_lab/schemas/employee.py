import datetime
import uuid
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class EmployeeBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200, description="Nome del dipendente")
    phone: Optional[str] = Field(None, max_length=50, description="Telefono")
    email: Optional[str] = Field(None, max_length=255, description="Email")
    role: Optional[str] = Field(None, max_length=100, description="Ruolo (es. Ceramista)")
    default_commission_percentage: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        le=100,
        description="Percentuale di commissione proposta nel form dell'ordine",
    )


class EmployeeCreate(EmployeeBase):
    pass


class EmployeeUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[str] = Field(None, max_length=255)
    role: Optional[str] = Field(None, max_length=100)
    default_commission_percentage: Optional[Decimal] = Field(None, ge=0, le=100)


class EmployeeRead(EmployeeBase):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    is_active: bool
    created_at: datetime.datetime
    updated_at: datetime.datetime
