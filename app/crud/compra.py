# app/crud/compra.py
"""
CRUD de Compras

- Correlativo creciente asignado por el servidor, número de documento
  derivado del tipo: F-000001 (factura), B-000001 (boleta).
- Montos calculados SIEMPRE con app.services.calculo_montos (la misma
  fórmula que usa el respaldo local del cliente).
- Estado y editabilidad gobernados por app.services.ciclo_vida_compra:
  solo se edita/elimina en pending; received/rejected son terminales.
- Eliminación = soft delete (eliminada=True).
"""

import logging
from typing import Dict, List, Optional, Sequence, Union

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.core.exceptions import NoEncontradoError, ValidacionError
from app.models.compra import Compra, EstadoCompra, PREFIJO_DOCUMENTO, TipoDocumento
from app.models.compra_item import CompraItem
from app.models.insumo import Insumo
from app.models.proveedor import Proveedor
from app.schemas.compra import (
    CompraCreate, CompraUpdate, ItemCompraIn, ItemPreviewOut, PreviewRequest, PreviewResponse
)
from app.services.calculo_montos import CalculadoraMontos
from app.services.ciclo_vida_compra import CicloVidaCompra, ESTADO_INICIAL
from app.utils.rut_validator import RutValidator

logger = logging.getLogger(__name__)


# ================================================================================
# NUMERACIÓN
# ================================================================================

def siguiente_correlativo(db: Session) -> int:
    """Máximo correlativo existente + 1 (incluye compras eliminadas)."""
    actual = db.query(func.max(Compra.correlativo)).scalar()
    return (actual or 0) + 1


def numero_documento(tipo: TipoDocumento, correlativo: int) -> str:
    """
    Example:
        >>> numero_documento(TipoDocumento.factura, 1)
        "F-000001"
    """
    return f"{PREFIJO_DOCUMENTO[tipo]}-{correlativo:06d}"


# ================================================================================
# MONTOS
# ================================================================================

def calcular_lineas(items: Sequence[ItemCompraIn]) -> List[ItemPreviewOut]:
    """Agrega el subtotal a cada línea."""
    return [
        ItemPreviewOut(
            insumo_id=item.insumo_id,
            cantidad=item.cantidad,
            precio_unitario=item.precio_unitario,
            descuento=item.descuento,
            subtotal=CalculadoraMontos.subtotal_linea(item.cantidad, item.precio_unitario, item.descuento),
        )
        for item in items
    ]


def preview_compra(data: PreviewRequest) -> PreviewResponse:
    """
    Totales autoritativos de un borrador (POST /purchases/preview).

    No toca la base de datos.
    """
    lineas = calcular_lineas(data.items)
    totales = CalculadoraMontos.totales_documento(lineas, data.tasa_iva)
    return PreviewResponse(neto=totales.neto, iva=totales.iva, total=totales.total, items=lineas)


# ================================================================================
# VALIDACIÓN DE REFERENCIAS
# ================================================================================

def _validar_referencias(db: Session, data: CompraCreate) -> None:
    """
    Verifica que proveedor e insumos existan.

    Raises:
        ValidacionError: Con claves counterparty / item_{i}_item
    """
    errores: Dict[str, str] = {}

    proveedor = db.query(Proveedor).filter(Proveedor.id == data.proveedor_id).first()
    if not proveedor:
        errores["counterparty"] = f"Proveedor {data.proveedor_id} no existe"
    elif not proveedor.activo:
        errores["counterparty"] = f"Proveedor {data.proveedor_id} no tiene el rol proveedor activo"

    ids = {item.insumo_id for item in data.items}
    existentes = {i for (i,) in db.query(Insumo.id).filter(Insumo.id.in_(ids)).all()} if ids else set()
    for indice, item in enumerate(data.items):
        if item.insumo_id not in existentes:
            errores[f"item_{indice}_item"] = f"Insumo {item.insumo_id} no existe"

    if errores:
        logger.warning(f"Compra rechazada por referencias inválidas: {errores}")
        raise ValidacionError(errores)


def _aplicar_datos(compra: Compra, data: CompraCreate) -> None:
    """Copia cabecera, reemplaza items y recalcula los tres montos juntos."""
    lineas = calcular_lineas(data.items)
    totales = CalculadoraMontos.totales_documento(lineas, data.tasa_iva)

    compra.fecha = data.fecha
    compra.proveedor_id = data.proveedor_id
    compra.tasa_iva = data.tasa_iva
    compra.observaciones = data.observaciones
    compra.items = [
        CompraItem(
            numero_linea=indice,
            insumo_id=linea.insumo_id,
            cantidad=linea.cantidad,
            precio_unitario=linea.precio_unitario,
            descuento=linea.descuento,
            subtotal=linea.subtotal,
        )
        for indice, linea in enumerate(lineas)
    ]
    compra.neto = totales.neto
    compra.iva = totales.iva
    compra.total = totales.total


# ================================================================================
# LECTURA
# ================================================================================

def get_compra(db: Session, compra_id: int, incluir_eliminadas: bool = False) -> Optional[Compra]:
    query = db.query(Compra).filter(Compra.id == compra_id)
    if not incluir_eliminadas:
        query = query.filter(Compra.eliminada == False)
    return query.first()


def get_compra_o_404(db: Session, compra_id: int) -> Compra:
    compra = get_compra(db, compra_id)
    if not compra:
        raise NoEncontradoError(f"Compra {compra_id} no encontrada")
    return compra


def list_compras(
    db: Session,
    termino: Optional[str] = None,
    estado: Optional[Union[EstadoCompra, str]] = None,
    proveedor_id: Optional[int] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[Compra]:
    """
    Lista compras no eliminadas, más recientes primero.

    Args:
        termino: Busca en número de documento, nombre o RUT del proveedor
        estado: Filtra por estado
        proveedor_id: Filtra por proveedor
    """
    query = db.query(Compra).join(Proveedor, Compra.proveedor_id == Proveedor.id).filter(
        Compra.eliminada == False
    )

    if estado:
        query = query.filter(Compra.estado == EstadoCompra(estado))
    if proveedor_id:
        query = query.filter(Compra.proveedor_id == proveedor_id)
    if termino and termino.strip():
        patron = f"%{termino.strip()}%"
        condiciones = [Compra.numero_documento.ilike(patron), Proveedor.nombre.ilike(patron)]
        rut_limpio = RutValidator.limpiar_rut(termino)
        if any(c.isdigit() for c in rut_limpio):
            condiciones.append(Proveedor.rut.like(f"%{rut_limpio}%"))
        query = query.filter(or_(*condiciones))

    return query.order_by(Compra.fecha.desc(), Compra.correlativo.desc()).offset(skip).limit(limit).all()


# ================================================================================
# ESCRITURA
# ================================================================================

def create_compra(db: Session, data: CompraCreate) -> Compra:
    """
    Registra una compra nueva en estado pending.

    Raises:
        ValidacionError: Si el proveedor o algún insumo no existe
    """
    _validar_referencias(db, data)

    correlativo = siguiente_correlativo(db)
    compra = Compra(
        tipo_documento=data.tipo_documento,
        correlativo=correlativo,
        numero_documento=numero_documento(data.tipo_documento, correlativo),
        estado=ESTADO_INICIAL,
        eliminada=False,
    )
    _aplicar_datos(compra, data)

    db.add(compra)
    db.commit()
    db.refresh(compra)

    logger.info(
        f"Compra creada: ID={compra.id}, Número={compra.numero_documento}, "
        f"Total={compra.total}"
    )
    return compra


def update_compra(db: Session, compra_id: int, data: CompraUpdate) -> Compra:
    """
    Reemplaza cabecera e items de una compra pending.

    El número de documento se mantiene; si cambia el tipo, se recalcula
    el prefijo con el mismo correlativo.

    Raises:
        NoEncontradoError: Si la compra no existe
        EstadoInvalidoError: Si la compra no está en pending
        ValidacionError: Si el proveedor o algún insumo no existe
    """
    compra = get_compra_o_404(db, compra_id)
    CicloVidaCompra.validar_editable(compra.estado, compra.eliminada)
    _validar_referencias(db, data)

    if compra.tipo_documento != data.tipo_documento:
        compra.tipo_documento = data.tipo_documento
        compra.numero_documento = numero_documento(data.tipo_documento, compra.correlativo)

    # Las líneas viejas se borran antes de insertar las nuevas (índice único por línea)
    compra.items.clear()
    db.flush()
    _aplicar_datos(compra, data)
    db.commit()
    db.refresh(compra)

    logger.info(f"Compra actualizada: ID={compra_id}, Total={compra.total}")
    return compra


def cambiar_estado(db: Session, compra_id: int, nuevo_estado: Union[EstadoCompra, str]) -> Compra:
    """
    Aplica una transición de estado.

    Raises:
        NoEncontradoError: Si la compra no existe
        EstadoInvalidoError: Si la transición no está permitida
    """
    compra = get_compra_o_404(db, compra_id)
    destino = CicloVidaCompra.validar_transicion(compra.estado, nuevo_estado)

    anterior = compra.estado
    compra.estado = destino
    db.commit()
    db.refresh(compra)

    logger.info(f"Compra {compra.numero_documento}: {anterior.value} -> {destino.value}")
    return compra


def eliminar_compra(db: Session, compra_id: int) -> Compra:
    """
    Soft delete de una compra pending.

    Raises:
        NoEncontradoError: Si la compra no existe o ya fue eliminada
        EstadoInvalidoError: Si la compra está recibida o rechazada
    """
    compra = get_compra_o_404(db, compra_id)
    CicloVidaCompra.validar_editable(compra.estado, compra.eliminada)

    compra.eliminada = True
    db.commit()
    db.refresh(compra)

    logger.warning(f"Compra eliminada (soft): ID={compra_id}, Número={compra.numero_documento}")
    return compra

