# app/crud/contacto.py
"""
CRUD de Contrapartes - Identidad por RUT con roles proveedor/cliente

Una contraparte es un RUT canónico. Cada rol vive en su propia tabla:
- proveedores (rol proveedor)
- clientes (rol cliente)

REGLAS:
- Igual RUT canónico = misma contraparte. Nunca hay dos registros
  activos del mismo rol para un RUT (unique en BD + verificación aquí).
- Los registros NUNCA se fusionan ni se eliminan. Quitar un rol es
  soft delete (activo=False); promover sobre un registro inactivo lo
  reactiva (mismo ID, historial intacto).
- Los enlaces isCustomer/customerId e isSupplier/supplierId se DERIVAN
  por RUT en cada lectura, no se guardan.
"""

import logging
from typing import Dict, List, Optional, Type, Union

from sqlalchemy import or_
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import (
    ConflictoError, EstadoInvalidoError, FormatoInvalidoError, NoEncontradoError
)
from app.models.cliente import Cliente
from app.models.compra import Compra
from app.models.proveedor import Proveedor
from app.schemas.contacto import ClienteRead, ContactoRoles, ProveedorRead, ROL_CLIENTE, ROL_PROVEEDOR
from app.utils.rut_validator import RutValidator

logger = logging.getLogger(__name__)

ModeloRol = Union[Type[Proveedor], Type[Cliente]]

NOMBRE_ROL = {Proveedor: ROL_PROVEEDOR, Cliente: ROL_CLIENTE}


# ================================================================================
# FUNCIONES DE NORMALIZACIÓN
# ================================================================================

def normalizar_email(email: Optional[str]) -> Optional[str]:
    """Normaliza email a lowercase sin espacios."""
    if not email:
        return None
    email = email.strip().lower()
    if '@' not in email or '.' not in email.split('@')[1]:
        return None
    return email


def normalizar_nombre(nombre: Optional[str]) -> Optional[str]:
    """Elimina espacios extras del nombre o razón social."""
    if not nombre:
        return None
    nombre = ' '.join(nombre.split())
    return nombre or None


def normalizar_datos_contacto(datos: Dict) -> Dict:
    """Aplica las normalizaciones a un dict de campos de contacto (in-place)."""
    if 'nombre' in datos and datos['nombre']:
        datos['nombre'] = normalizar_nombre(datos['nombre'])
    if 'email' in datos:
        datos['email'] = normalizar_email(datos['email'])
    return datos


def _datos_contacto(registro) -> Dict:
    """Campos que viajan con la identidad al promover un rol."""
    return {
        "nombre": registro.nombre,
        "email": registro.email,
        "telefono": registro.telefono,
        "direccion": registro.direccion,
    }


# ================================================================================
# LECTURA GENÉRICA POR ROL
# ================================================================================

def get_registro(db: Session, modelo: ModeloRol, registro_id: int):
    return db.query(modelo).filter(modelo.id == registro_id).first()


def get_registro_o_404(db: Session, modelo: ModeloRol, registro_id: int):
    registro = get_registro(db, modelo, registro_id)
    if not registro:
        raise NoEncontradoError(f"{modelo.__name__} {registro_id} no encontrado")
    return registro


def get_registro_by_rut(db: Session, modelo: ModeloRol, rut: str):
    """
    Busca el registro del rol por RUT (en cualquier formato).

    Returns:
        Registro (activo o no) o None si no existe o el RUT es ilegible
    """
    try:
        canonico = RutValidator.normalizar_rut(rut)
    except FormatoInvalidoError:
        logger.warning(f"RUT ilegible en búsqueda: {rut}")
        return None
    return db.query(modelo).filter(modelo.rut == canonico).first()


def list_registros(
    db: Session,
    modelo: ModeloRol,
    skip: int = 0,
    limit: int = 100,
    termino: Optional[str] = None,
    incluir_inactivos: bool = False,
) -> List:
    """Lista registros del rol, filtrando por nombre o RUT si hay término."""
    query = db.query(modelo)
    if not incluir_inactivos:
        query = query.filter(modelo.activo == True)
    if termino and termino.strip():
        patron = f"%{termino.strip()}%"
        rut_limpio = RutValidator.limpiar_rut(termino)
        condiciones = [modelo.nombre.ilike(patron)]
        if any(c.isdigit() for c in rut_limpio):
            condiciones.append(modelo.rut.like(f"%{rut_limpio}%"))
        query = query.filter(or_(*condiciones))
    return query.order_by(modelo.nombre).offset(skip).limit(limit).all()


# ================================================================================
# CREACIÓN CON REACTIVACIÓN
# ================================================================================

def crear_o_reactivar(db: Session, modelo: ModeloRol, rut: str, datos: Dict):
    """
    Crea el registro del rol para un RUT, o reactiva el existente inactivo.

    Args:
        db: Sesión de base de datos
        modelo: Proveedor o Cliente
        rut: RUT canónico (ya validado)
        datos: nombre, email, telefono, direccion

    Returns:
        Registro activo del rol

    Raises:
        ConflictoError: Si ya hay un registro ACTIVO de ese rol para el RUT
    """
    datos = normalizar_datos_contacto(dict(datos))
    existente = db.query(modelo).filter(modelo.rut == rut).first()

    if existente and existente.activo:
        logger.warning(f"Rol {NOMBRE_ROL[modelo]} duplicado para RUT {rut} (ID: {existente.id})")
        raise ConflictoError(
            f"Ya existe un {modelo.__name__.lower()} activo con RUT {rut} (ID: {existente.id})"
        )

    if existente:
        # REACTIVACIÓN: mismo registro, mismos IDs, historial intacto
        for campo, valor in datos.items():
            if valor is not None:
                setattr(existente, campo, valor)
        existente.activo = True
        registro = existente
        logger.info(f"{modelo.__name__} reactivado: ID={existente.id}, RUT={rut}")
    else:
        registro = modelo(rut=rut, activo=True, **datos)
        db.add(registro)

    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Error de integridad al crear {modelo.__name__}: {str(e)}")
        raise ConflictoError(f"Ya existe un {modelo.__name__.lower()} con RUT {rut}")

    db.refresh(registro)
    logger.info(f"{modelo.__name__} activo: ID={registro.id}, RUT={registro.rut}")
    return registro


def actualizar_registro(db: Session, modelo: ModeloRol, registro_id: int, datos: Dict):
    """Actualiza datos de contacto. El RUT no cambia."""
    registro = get_registro_o_404(db, modelo, registro_id)
    for campo, valor in normalizar_datos_contacto(dict(datos)).items():
        setattr(registro, campo, valor)
    db.commit()
    db.refresh(registro)
    logger.info(f"{modelo.__name__} actualizado: ID={registro_id}")
    return registro


# ================================================================================
# VISTAS CON ENLACE DERIVADO
# ================================================================================

def vista_proveedor(db: Session, proveedor: Proveedor) -> ProveedorRead:
    vista = ProveedorRead.model_validate(proveedor)
    cliente = db.query(Cliente).filter(Cliente.rut == proveedor.rut, Cliente.activo == True).first()
    if cliente:
        vista.es_cliente = True
        vista.cliente_id = cliente.id
    return vista


def vista_cliente(db: Session, cliente: Cliente) -> ClienteRead:
    vista = ClienteRead.model_validate(cliente)
    proveedor = db.query(Proveedor).filter(Proveedor.rut == cliente.rut, Proveedor.activo == True).first()
    if proveedor:
        vista.es_proveedor = True
        vista.proveedor_id = proveedor.id
    return vista


# ================================================================================
# HISTORIAL
# ================================================================================

def contar_historial(db: Session, modelo: ModeloRol, registro_id: int) -> int:
    """
    Documentos NO eliminados que referencian el registro del rol.

    - Proveedor: compras no eliminadas
    - Cliente: 0 (ventas/cotizaciones no se gestionan en este sistema)
    """
    if modelo is Proveedor:
        return db.query(Compra).filter(
            Compra.proveedor_id == registro_id,
            Compra.eliminada == False
        ).count()
    return 0


# ================================================================================
# TRANSICIONES DE ROL
# ================================================================================

def agregar_rol_proveedor(db: Session, cliente_id: int) -> ProveedorRead:
    """
    Promueve un cliente a proveedor (PATCH /contacts/{cliente_id}/add-supplier-role).

    Copia nombre, RUT, email, teléfono y dirección del cliente.

    Raises:
        NoEncontradoError: Si el cliente no existe
        ConflictoError: Si el RUT ya tiene un proveedor activo
    """
    cliente = get_registro_o_404(db, Cliente, cliente_id)
    logger.info(f"Agregando rol proveedor a cliente ID={cliente_id}, RUT={cliente.rut}")
    proveedor = crear_o_reactivar(db, Proveedor, cliente.rut, _datos_contacto(cliente))
    return vista_proveedor(db, proveedor)


def agregar_rol_cliente(db: Session, proveedor_id: int) -> ClienteRead:
    """Simétrico de agregar_rol_proveedor (PATCH /contacts/{proveedor_id}/add-customer-role)."""
    proveedor = get_registro_o_404(db, Proveedor, proveedor_id)
    logger.info(f"Agregando rol cliente a proveedor ID={proveedor_id}, RUT={proveedor.rut}")
    cliente = crear_o_reactivar(db, Cliente, proveedor.rut, _datos_contacto(proveedor))
    return vista_cliente(db, cliente)


def _quitar_rol(db: Session, modelo: ModeloRol, otro_modelo: ModeloRol, registro_id: int):
    registro = get_registro_o_404(db, modelo, registro_id)
    rol = NOMBRE_ROL[modelo]

    if not registro.activo:
        raise EstadoInvalidoError(f"El registro {registro_id} ya no tiene el rol {rol}")

    otro_activo = db.query(otro_modelo).filter(
        otro_modelo.rut == registro.rut,
        otro_modelo.activo == True
    ).first() is not None

    historial = contar_historial(db, modelo, registro_id)
    if not otro_activo and historial > 0:
        logger.warning(
            f"Rechazado quitar rol {rol} a RUT {registro.rut}: "
            f"quedaría sin roles con {historial} documentos asociados"
        )
        raise EstadoInvalidoError(
            f"No se puede quitar el rol {rol}: la contraparte quedaría sin roles "
            f"y tiene {historial} documentos asociados"
        )

    registro.activo = False
    db.commit()
    db.refresh(registro)
    logger.info(f"Rol {rol} quitado: ID={registro_id}, RUT={registro.rut}")
    return registro


def quitar_rol_proveedor(db: Session, proveedor_id: int) -> ProveedorRead:
    """
    Quita el rol proveedor (PATCH /contacts/{proveedor_id}/remove-supplier-role).

    Raises:
        NoEncontradoError: Si el proveedor no existe
        EstadoInvalidoError: Si el rol ya estaba quitado, o si la contraparte
            quedaría sin roles teniendo compras no eliminadas
    """
    proveedor = _quitar_rol(db, Proveedor, Cliente, proveedor_id)
    return vista_proveedor(db, proveedor)


def quitar_rol_cliente(db: Session, cliente_id: int) -> ClienteRead:
    cliente = _quitar_rol(db, Cliente, Proveedor, cliente_id)
    return vista_cliente(db, cliente)


# ================================================================================
# VISTA UNIFICADA POR RUT
# ================================================================================

def listar_contactos(db: Session) -> List[ContactoRoles]:
    """Todas las contrapartes con al menos un rol activo, agrupadas por RUT."""
    contactos: Dict[str, ContactoRoles] = {}

    for proveedor in db.query(Proveedor).filter(Proveedor.activo == True).all():
        contactos[proveedor.rut] = ContactoRoles(
            rut=proveedor.rut,
            nombre=proveedor.nombre,
            roles=[ROL_PROVEEDOR],
            proveedor_id=proveedor.id,
        )

    for cliente in db.query(Cliente).filter(Cliente.activo == True).all():
        contacto = contactos.get(cliente.rut)
        if contacto:
            contacto.roles.append(ROL_CLIENTE)
            contacto.cliente_id = cliente.id
        else:
            contactos[cliente.rut] = ContactoRoles(
                rut=cliente.rut,
                nombre=cliente.nombre,
                roles=[ROL_CLIENTE],
                cliente_id=cliente.id,
            )

    return sorted(contactos.values(), key=lambda c: c.nombre.lower())


def contacto_por_rut(db: Session, rut: str) -> Optional[ContactoRoles]:
    """Contraparte de un RUT (en cualquier formato), o None si no tiene roles activos."""
    proveedor = get_registro_by_rut(db, Proveedor, rut)
    cliente = get_registro_by_rut(db, Cliente, rut)
    proveedor = proveedor if proveedor and proveedor.activo else None
    cliente = cliente if cliente and cliente.activo else None

    if not proveedor and not cliente:
        return None

    base = proveedor or cliente
    roles = []
    if proveedor:
        roles.append(ROL_PROVEEDOR)
    if cliente:
        roles.append(ROL_CLIENTE)
    return ContactoRoles(
        rut=base.rut,
        nombre=base.nombre,
        roles=roles,
        proveedor_id=proveedor.id if proveedor else None,
        cliente_id=cliente.id if cliente else None,
    )
