from decimal import Decimal
from typing import Optional

from pydantic import Field

from app.schemas.common import EsquemaApi, Monto


class InsumoCreate(EsquemaApi):
    nombre: str = Field(..., min_length=1, max_length=255, alias="name")
    descripcion: Optional[str] = Field(None, alias="description")
    precio_neto: Monto = Field(Decimal("0"), ge=0, alias="netPrice")
    stock: Optional[int] = Field(None, ge=0)


class InsumoRead(InsumoCreate):
    id: int
    activo: bool = Field(True, alias="active")
