"""
Transiciones de rol de una contraparte (identidad = RUT canónico).

- add-supplier-role:    id = registro cliente   -> crea/reactiva el proveedor
- add-customer-role:    id = registro proveedor -> crea/reactiva el cliente
- remove-supplier-role: id = registro proveedor -> activo=False
- remove-customer-role: id = registro cliente   -> activo=False

Nunca se duplica un rol para un RUT (409 conflict) ni se deja una
contraparte sin roles si tiene documentos vigentes (409 invalid_state).
"""
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.v1.errores import a_http_exception
from app.core.exceptions import ComprasError, NoEncontradoError
from app.crud import contacto as crud_contacto
from app.db.session import get_db
from app.schemas.common import ErrorResponse
from app.schemas.contacto import ClienteRead, ContactoRoles, ProveedorRead

router = APIRouter(tags=["Contactos"])

RESPUESTAS_ROL = {404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}}


@router.get("", response_model=List[ContactoRoles], summary="Contrapartes con sus roles")
def list_all(db: Session = Depends(get_db)):
    return crud_contacto.listar_contactos(db)


@router.get(
    "/by-rut/{rut}",
    response_model=ContactoRoles,
    responses={404: {"model": ErrorResponse}},
    summary="Contraparte por RUT (cualquier formato)"
)
def get_by_rut(rut: str, db: Session = Depends(get_db)):
    contacto = crud_contacto.contacto_por_rut(db, rut)
    if not contacto:
        raise a_http_exception(NoEncontradoError(f"No hay contraparte activa con RUT {rut}"))
    return contacto


@router.patch(
    "/{cliente_id}/add-supplier-role",
    response_model=ProveedorRead,
    responses=RESPUESTAS_ROL,
    summary="Promover cliente a proveedor"
)
def add_supplier_role(cliente_id: int, db: Session = Depends(get_db)):
    try:
        return crud_contacto.agregar_rol_proveedor(db, cliente_id)
    except ComprasError as e:
        raise a_http_exception(e)


@router.patch(
    "/{proveedor_id}/add-customer-role",
    response_model=ClienteRead,
    responses=RESPUESTAS_ROL,
    summary="Promover proveedor a cliente"
)
def add_customer_role(proveedor_id: int, db: Session = Depends(get_db)):
    try:
        return crud_contacto.agregar_rol_cliente(db, proveedor_id)
    except ComprasError as e:
        raise a_http_exception(e)


@router.patch(
    "/{proveedor_id}/remove-supplier-role",
    response_model=ProveedorRead,
    responses=RESPUESTAS_ROL,
    summary="Quitar rol proveedor"
)
def remove_supplier_role(proveedor_id: int, db: Session = Depends(get_db)):
    try:
        return crud_contacto.quitar_rol_proveedor(db, proveedor_id)
    except ComprasError as e:
        raise a_http_exception(e)


@router.patch(
    "/{cliente_id}/remove-customer-role",
    response_model=ClienteRead,
    responses=RESPUESTAS_ROL,
    summary="Quitar rol cliente"
)
def remove_customer_role(cliente_id: int, db: Session = Depends(get_db)):
    try:
        return crud_contacto.quitar_rol_cliente(db, cliente_id)
    except ComprasError as e:
        raise a_http_exception(e)
