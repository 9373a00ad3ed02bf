from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.v1.errores import a_http_exception
from app.core.exceptions import ComprasError
from app.crud import compra as crud_compra
from app.db.session import get_db
from app.models.compra import EstadoCompra
from app.schemas.common import ErrorResponse
from app.schemas.compra import (
    CambioEstadoRequest, CompraCreate, CompraRead, CompraUpdate, PreviewRequest, PreviewResponse
)
from app.utils.logger import logger

router = APIRouter(tags=["Compras"])


@router.post(
    "/preview",
    response_model=PreviewResponse,
    summary="Calcular totales de un borrador",
    description="""
    Devuelve neto, IVA y total de un borrador de compra sin persistirlo.

    **Fórmula:** subtotal = max(0, cantidad × precio − descuento),
    neto = Σ subtotal, IVA = round(neto × tasa), total = neto + IVA.
    """
)
def preview(payload: PreviewRequest):
    return crud_compra.preview_compra(payload)


@router.get(
    "",
    response_model=List[CompraRead],
    summary="Listar compras",
    description="Compras no eliminadas, filtrables por término, estado y proveedor."
)
def list_all(
    term: Optional[str] = Query(None, description="Número de documento, nombre o RUT del proveedor"),
    estado: Optional[EstadoCompra] = Query(None, alias="status"),
    proveedor_id: Optional[int] = Query(None, alias="supplierId"),
    skip: int = 0,
    limit: int = Query(100, le=500),
    db: Session = Depends(get_db),
):
    return crud_compra.list_compras(
        db, termino=term, estado=estado, proveedor_id=proveedor_id, skip=skip, limit=limit
    )


@router.post(
    "",
    response_model=CompraRead,
    status_code=status.HTTP_201_CREATED,
    responses={422: {"model": ErrorResponse}},
    summary="Registrar compra",
    description="Crea la compra en estado pending. El servidor asigna correlativo y número."
)
def create(payload: CompraCreate, db: Session = Depends(get_db)):
    try:
        compra = crud_compra.create_compra(db, payload)
    except ComprasError as e:
        raise a_http_exception(e)
    logger.info("Compra creada", extra={"id": compra.id, "numero": compra.numero_documento})
    return compra


@router.get(
    "/{compra_id}",
    response_model=CompraRead,
    responses={404: {"model": ErrorResponse}},
    summary="Obtener compra"
)
def get_one(compra_id: int, db: Session = Depends(get_db)):
    try:
        return crud_compra.get_compra_o_404(db, compra_id)
    except ComprasError as e:
        raise a_http_exception(e)


@router.put(
    "/{compra_id}",
    response_model=CompraRead,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
    summary="Actualizar compra",
    description="Reemplaza cabecera e items. Solo compras en estado pending."
)
def update(compra_id: int, payload: CompraUpdate, db: Session = Depends(get_db)):
    try:
        return crud_compra.update_compra(db, compra_id, payload)
    except ComprasError as e:
        raise a_http_exception(e)


@router.patch(
    "/{compra_id}/status",
    response_model=CompraRead,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Cambiar estado",
    description="Transiciones permitidas: pending → received | rejected."
)
def change_status(compra_id: int, payload: CambioEstadoRequest, db: Session = Depends(get_db)):
    try:
        return crud_compra.cambiar_estado(db, compra_id, payload.estado)
    except ComprasError as e:
        raise a_http_exception(e)


@router.delete(
    "/{compra_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Eliminar compra",
    description="Soft delete. Solo compras en estado pending."
)
def delete(compra_id: int, db: Session = Depends(get_db)):
    try:
        crud_compra.eliminar_compra(db, compra_id)
    except ComprasError as e:
        raise a_http_exception(e)
    return None
