from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.v1.errores import a_http_exception
from app.core.exceptions import ComprasError, NoEncontradoError
from app.crud import proveedor as crud_proveedor
from app.crud.contacto import vista_proveedor
from app.db.session import get_db
from app.schemas.common import ErrorResponse
from app.schemas.contacto import ContactoUpdate, MetricasProveedor, ProveedorCreate, ProveedorRead
from app.utils.logger import logger

router = APIRouter(tags=["Proveedores"])


@router.get(
    "",
    response_model=List[ProveedorRead],
    summary="Listar proveedores",
    description="Proveedores con el rol activo. Incluye isCustomer/customerId derivados por RUT."
)
def list_all(
    term: Optional[str] = Query(None, description="Nombre o RUT"),
    skip: int = 0,
    limit: int = Query(100, le=500),
    db: Session = Depends(get_db),
):
    return crud_proveedor.list_proveedores(db, skip=skip, limit=limit, termino=term)


@router.post(
    "",
    response_model=ProveedorRead,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse}},
    summary="Crear proveedor",
    description="Registra un proveedor. Si el RUT tenía el rol inactivo, se reactiva el mismo registro."
)
def create(payload: ProveedorCreate, db: Session = Depends(get_db)):
    try:
        p = crud_proveedor.create_proveedor(db, payload)
    except ComprasError as e:
        raise a_http_exception(e)
    logger.info("Proveedor creado", extra={"id": p.id})
    return p


@router.get(
    "/{proveedor_id}",
    response_model=ProveedorRead,
    responses={404: {"model": ErrorResponse}},
    summary="Obtener proveedor"
)
def get_one(proveedor_id: int, db: Session = Depends(get_db)):
    p = crud_proveedor.get_proveedor(db, proveedor_id)
    if not p:
        raise a_http_exception(NoEncontradoError("Proveedor no encontrado"))
    return vista_proveedor(db, p)


@router.put(
    "/{proveedor_id}",
    response_model=ProveedorRead,
    responses={404: {"model": ErrorResponse}},
    summary="Actualizar proveedor",
    description="Actualiza datos de contacto. El RUT no se modifica."
)
def update(proveedor_id: int, payload: ContactoUpdate, db: Session = Depends(get_db)):
    try:
        p = crud_proveedor.update_proveedor(db, proveedor_id, payload)
    except ComprasError as e:
        raise a_http_exception(e)
    logger.info("Proveedor actualizado", extra={"id": p.id})
    return p


@router.get(
    "/{proveedor_id}/metrics",
    response_model=MetricasProveedor,
    responses={404: {"model": ErrorResponse}},
    summary="Métricas de compras del proveedor"
)
def metrics(proveedor_id: int, db: Session = Depends(get_db)):
    try:
        return crud_proveedor.metricas_proveedor(db, proveedor_id)
    except ComprasError as e:
        raise a_http_exception(e)
