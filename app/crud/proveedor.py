# app/crud/proveedor.py
"""
CRUD de Proveedores

Módulo de acceso a datos para el rol proveedor. La lógica de identidad
por RUT (duplicados, reactivación, enlaces derivados) vive en
app.crud.contacto y se comparte con clientes.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.crud import contacto as crud_contacto
from app.models.compra import Compra, EstadoCompra
from app.models.proveedor import Proveedor
from app.schemas.contacto import ContactoUpdate, MetricasProveedor, ProveedorCreate, ProveedorRead

logger = logging.getLogger(__name__)


# ================================================================================
# OPERACIONES BÁSICAS DE LECTURA
# ================================================================================

def get_proveedor(db: Session, proveedor_id: int) -> Optional[Proveedor]:
    """
    Obtiene un proveedor por ID (activo o no).

    Args:
        db: Sesión de base de datos
        proveedor_id: ID del proveedor

    Returns:
        Proveedor o None
    """
    return crud_contacto.get_registro(db, Proveedor, proveedor_id)


def get_proveedor_by_rut(db: Session, rut: str) -> Optional[Proveedor]:
    """Obtiene un proveedor por RUT en cualquier formato (normaliza automáticamente)."""
    return crud_contacto.get_registro_by_rut(db, Proveedor, rut)


def list_proveedores(
    db: Session,
    skip: int = 0,
    limit: int = 100,
    termino: Optional[str] = None,
) -> List[ProveedorRead]:
    """
    Lista proveedores activos con su enlace al rol cliente.

    Args:
        db: Sesión de base de datos
        skip: Offset para paginación
        limit: Límite de resultados
        termino: Filtro por nombre o RUT

    Returns:
        Lista de ProveedorRead
    """
    proveedores = crud_contacto.list_registros(db, Proveedor, skip=skip, limit=limit, termino=termino)
    return [crud_contacto.vista_proveedor(db, p) for p in proveedores]


# ================================================================================
# CREACIÓN Y ACTUALIZACIÓN
# ================================================================================

def create_proveedor(db: Session, data: ProveedorCreate) -> ProveedorRead:
    """
    Crea un proveedor (o reactiva el registro inactivo del mismo RUT).

    Raises:
        ConflictoError: Si ya existe un proveedor activo con ese RUT
    """
    logger.info(f"Creando proveedor: RUT={data.rut}, Nombre={data.nombre}")
    datos = data.model_dump(exclude={"rut"})
    proveedor = crud_contacto.crear_o_reactivar(db, Proveedor, data.rut, datos)
    return crud_contacto.vista_proveedor(db, proveedor)


def update_proveedor(db: Session, proveedor_id: int, data: ContactoUpdate) -> ProveedorRead:
    """
    Actualiza datos de contacto de un proveedor.

    Raises:
        NoEncontradoError: Si el proveedor no existe
    """
    datos = data.model_dump(exclude_unset=True)
    if datos.get("nombre") is None:
        datos.pop("nombre", None)
    proveedor = crud_contacto.actualizar_registro(db, Proveedor, proveedor_id, datos)
    return crud_contacto.vista_proveedor(db, proveedor)


# ================================================================================
# MÉTRICAS
# ================================================================================

def metricas_proveedor(db: Session, proveedor_id: int) -> MetricasProveedor:
    """
    Resumen de compras del proveedor.

    Cuenta compras no eliminadas y no rechazadas.

    Raises:
        NoEncontradoError: Si el proveedor no existe
    """
    crud_contacto.get_registro_o_404(db, Proveedor, proveedor_id)

    cantidad, monto_total, primera, ultima = db.query(
        func.count(Compra.id),
        func.coalesce(func.sum(Compra.total), 0),
        func.min(Compra.fecha),
        func.max(Compra.fecha),
    ).filter(
        Compra.proveedor_id == proveedor_id,
        Compra.eliminada == False,
        Compra.estado != EstadoCompra.rejected,
    ).one()

    monto_total = Decimal(str(monto_total))
    promedio = (
        (monto_total / cantidad).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        if cantidad else Decimal("0")
    )

    return MetricasProveedor(
        proveedor_id=proveedor_id,
        total_compras=cantidad,
        monto_total=monto_total,
        monto_promedio=promedio,
        primera_compra=primera,
        ultima_compra=ultima,
    )
