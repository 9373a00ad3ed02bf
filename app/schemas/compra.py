# app/schemas/compra.py
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import ConfigDict, Field

from app.core.config import settings
from app.models.compra import EstadoCompra, TipoDocumento
from app.schemas.common import EsquemaApi, Monto
from app.schemas.contacto import ProveedorResumen
from app.schemas.insumo import InsumoRead


# =====================================================
# LÍNEAS
# =====================================================
class ItemCompraIn(EsquemaApi):
    """Línea enviada por el cliente. discount se omite cuando es 0."""
    insumo_id: int = Field(..., alias="item", description="ID del insumo")
    cantidad: Monto = Field(..., gt=0, alias="quantity")
    precio_unitario: Monto = Field(..., ge=0, alias="unitPrice")
    descuento: Monto = Field(Decimal("0"), ge=0, alias="discount")


class ItemPreviewOut(ItemCompraIn):
    subtotal: Monto


class CompraItemRead(ItemPreviewOut):
    id: int
    insumo: Optional[InsumoRead] = Field(None, alias="itemDetail")


# =====================================================
# PREVIEW DE TOTALES
# =====================================================
class PreviewRequest(EsquemaApi):
    tipo_documento: TipoDocumento = Field(TipoDocumento.factura, alias="documentType")
    items: List[ItemCompraIn] = Field(default_factory=list)
    tasa_iva: Monto = Field(default_factory=lambda: settings.tasa_iva_default, ge=0, le=1, alias="taxRate")


class PreviewResponse(EsquemaApi):
    neto: Monto = Field(..., alias="netAmount")
    iva: Monto = Field(..., alias="taxAmount")
    total: Monto = Field(..., alias="totalAmount")
    items: List[ItemPreviewOut] = Field(default_factory=list)

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "netAmount": 2400,
            "taxAmount": 456,
            "totalAmount": 2856,
            "items": [
                {"item": 1, "quantity": 2, "unitPrice": 1000, "discount": 0, "subtotal": 2000},
                {"item": 2, "quantity": 1, "unitPrice": 400, "discount": 0, "subtotal": 400},
            ],
        }
    })


# =====================================================
# COMPRAS
# =====================================================
class CompraCreate(EsquemaApi):
    tipo_documento: TipoDocumento = Field(TipoDocumento.factura, alias="documentType")
    fecha: date = Field(default_factory=date.today, alias="date")
    proveedor_id: int = Field(..., alias="counterpartyId")
    items: List[ItemCompraIn] = Field(..., min_length=1)
    tasa_iva: Monto = Field(default_factory=lambda: settings.tasa_iva_default, ge=0, le=1, alias="taxRate")
    observaciones: Optional[str] = Field(None, alias="observations")


class CompraUpdate(CompraCreate):
    """PUT reemplaza cabecera e items completos."""
    pass


class CambioEstadoRequest(EsquemaApi):
    estado: EstadoCompra = Field(..., alias="status")


class CompraRead(EsquemaApi):
    id: int
    tipo_documento: TipoDocumento = Field(..., alias="documentType")
    numero_documento: str = Field(..., alias="documentNumber")
    correlativo: int = Field(..., alias="correlative")
    fecha: date = Field(..., alias="date")
    proveedor_id: int = Field(..., alias="counterpartyId")
    proveedor: Optional[ProveedorResumen] = Field(None, alias="counterparty")
    items: List[CompraItemRead] = Field(default_factory=list)
    tasa_iva: Monto = Field(..., alias="taxRate")
    neto: Monto = Field(..., alias="netAmount")
    iva: Monto = Field(..., alias="taxAmount")
    total: Monto = Field(..., alias="totalAmount")
    estado: EstadoCompra = Field(..., alias="status")
    observaciones: Optional[str] = Field(None, alias="observations")
    eliminada: bool = Field(False, alias="isDeleted")
    creado_en: Optional[datetime] = Field(None, alias="createdAt")
    actualizado_en: Optional[datetime] = Field(None, alias="updatedAt")
