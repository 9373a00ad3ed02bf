# app/schemas/contacto.py
"""
Esquemas de contrapartes (proveedores y clientes).

El RUT se recibe en cualquier formato y se guarda/transmite CANÓNICO
(cuerpo + DV, sin separadores). Un RUT con DV incorrecto es un 422.
"""
from datetime import date, datetime
from typing import List, Optional

from pydantic import Field, field_validator

from app.schemas.common import EsquemaApi, Monto
from app.utils.rut_validator import RutValidator
from app.utils.telefono import limpiar_telefono

# Roles de una contraparte (valores del contrato JSON)
ROL_PROVEEDOR = "supplier"
ROL_CLIENTE = "customer"


class ContactoBase(EsquemaApi):
    rut: str = Field(..., description="RUT en cualquier formato (ej: 12.345.678-5)")
    nombre: str = Field(..., min_length=1, max_length=255, alias="name")
    email: Optional[str] = None
    telefono: Optional[str] = Field(None, alias="phone")
    direccion: Optional[str] = Field(None, alias="address")

    @field_validator("rut")
    @classmethod
    def validar_rut(cls, v: str) -> str:
        es_valido, resultado = RutValidator.validar_rut(v)
        if not es_valido:
            raise ValueError(resultado)
        return resultado

    @field_validator("telefono")
    @classmethod
    def normalizar_telefono(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return limpiar_telefono(v) or None


class ProveedorCreate(ContactoBase):
    pass


class ClienteCreate(ContactoBase):
    pass


class ContactoUpdate(EsquemaApi):
    """Actualización parcial. El RUT es la identidad y no se modifica."""
    nombre: Optional[str] = Field(None, min_length=1, max_length=255, alias="name")
    email: Optional[str] = None
    telefono: Optional[str] = Field(None, alias="phone")
    direccion: Optional[str] = Field(None, alias="address")

    @field_validator("telefono")
    @classmethod
    def normalizar_telefono(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return limpiar_telefono(v) or None


class ContactoRead(EsquemaApi):
    id: int
    rut: str
    nombre: str = Field(..., alias="name")
    email: Optional[str] = None
    telefono: Optional[str] = Field(None, alias="phone")
    direccion: Optional[str] = Field(None, alias="address")
    activo: bool = Field(True, alias="active")
    creado_en: Optional[datetime] = Field(None, alias="createdAt")
    actualizado_en: Optional[datetime] = Field(None, alias="updatedAt")


class ProveedorRead(ContactoRead):
    """Vista de proveedor con el enlace derivado al rol cliente del mismo RUT."""
    es_cliente: bool = Field(False, alias="isCustomer")
    cliente_id: Optional[int] = Field(None, alias="customerId")


class ClienteRead(ContactoRead):
    """Vista de cliente con el enlace derivado al rol proveedor del mismo RUT."""
    es_proveedor: bool = Field(False, alias="isSupplier")
    proveedor_id: Optional[int] = Field(None, alias="supplierId")


class ProveedorResumen(EsquemaApi):
    """Proveedor anidado en una compra."""
    id: int
    rut: str
    nombre: str = Field(..., alias="name")
    email: Optional[str] = None
    telefono: Optional[str] = Field(None, alias="phone")
    direccion: Optional[str] = Field(None, alias="address")


class MetricasProveedor(EsquemaApi):
    proveedor_id: int = Field(..., alias="supplierId")
    total_compras: int = Field(0, alias="totalPurchases")
    monto_total: Monto = Field(..., alias="totalAmount")
    monto_promedio: Monto = Field(..., alias="averageAmount")
    primera_compra: Optional[date] = Field(None, alias="firstPurchaseDate")
    ultima_compra: Optional[date] = Field(None, alias="lastPurchaseDate")


class ContactoRoles(EsquemaApi):
    """Contraparte unificada: un RUT, sus roles y los IDs de cada registro."""
    rut: str
    nombre: str = Field(..., alias="name")
    roles: List[str] = Field(default_factory=list)
    proveedor_id: Optional[int] = Field(None, alias="supplierId")
    cliente_id: Optional[int] = Field(None, alias="customerId")
