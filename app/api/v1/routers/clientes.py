from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.v1.errores import a_http_exception
from app.core.exceptions import ComprasError, NoEncontradoError
from app.crud import cliente as crud_cliente
from app.crud.contacto import vista_cliente
from app.db.session import get_db
from app.schemas.common import ErrorResponse
from app.schemas.contacto import ClienteCreate, ClienteRead, ContactoUpdate

router = APIRouter(tags=["Clientes"])


@router.get("", response_model=List[ClienteRead], summary="Listar clientes")
def list_all(
    term: Optional[str] = Query(None, description="Nombre o RUT"),
    skip: int = 0,
    limit: int = Query(100, le=500),
    db: Session = Depends(get_db),
):
    return crud_cliente.list_clientes(db, skip=skip, limit=limit, termino=term)


@router.post(
    "",
    response_model=ClienteRead,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse}},
    summary="Crear cliente"
)
def create(payload: ClienteCreate, db: Session = Depends(get_db)):
    try:
        return crud_cliente.create_cliente(db, payload)
    except ComprasError as e:
        raise a_http_exception(e)


@router.get(
    "/{cliente_id}",
    response_model=ClienteRead,
    responses={404: {"model": ErrorResponse}},
    summary="Obtener cliente"
)
def get_one(cliente_id: int, db: Session = Depends(get_db)):
    c = crud_cliente.get_cliente(db, cliente_id)
    if not c:
        raise a_http_exception(NoEncontradoError("Cliente no encontrado"))
    return vista_cliente(db, c)


@router.put(
    "/{cliente_id}",
    response_model=ClienteRead,
    responses={404: {"model": ErrorResponse}},
    summary="Actualizar cliente"
)
def update(cliente_id: int, payload: ContactoUpdate, db: Session = Depends(get_db)):
    try:
        return crud_cliente.update_cliente(db, cliente_id, payload)
    except ComprasError as e:
        raise a_http_exception(e)
