# app/crud/cliente.py
"""CRUD de Clientes (rol cliente). Espejo de app.crud.proveedor."""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from app.crud import contacto as crud_contacto
from app.models.cliente import Cliente
from app.schemas.contacto import ClienteCreate, ClienteRead, ContactoUpdate

logger = logging.getLogger(__name__)


def get_cliente(db: Session, cliente_id: int) -> Optional[Cliente]:
    return crud_contacto.get_registro(db, Cliente, cliente_id)


def get_cliente_by_rut(db: Session, rut: str) -> Optional[Cliente]:
    return crud_contacto.get_registro_by_rut(db, Cliente, rut)


def list_clientes(
    db: Session,
    skip: int = 0,
    limit: int = 100,
    termino: Optional[str] = None,
) -> List[ClienteRead]:
    clientes = crud_contacto.list_registros(db, Cliente, skip=skip, limit=limit, termino=termino)
    return [crud_contacto.vista_cliente(db, c) for c in clientes]


def create_cliente(db: Session, data: ClienteCreate) -> ClienteRead:
    """
    Crea un cliente (o reactiva el registro inactivo del mismo RUT).

    Raises:
        ConflictoError: Si ya existe un cliente activo con ese RUT
    """
    logger.info(f"Creando cliente: RUT={data.rut}, Nombre={data.nombre}")
    datos = data.model_dump(exclude={"rut"})
    cliente = crud_contacto.crear_o_reactivar(db, Cliente, data.rut, datos)
    return crud_contacto.vista_cliente(db, cliente)


def update_cliente(db: Session, cliente_id: int, data: ContactoUpdate) -> ClienteRead:
    datos = data.model_dump(exclude_unset=True)
    if datos.get("nombre") is None:
        datos.pop("nombre", None)
    cliente = crud_contacto.actualizar_registro(db, Cliente, cliente_id, datos)
    return crud_contacto.vista_cliente(db, cliente)
