# app/services/registro_contactos.py
"""
Registro de contrapartes del lado cliente.

Mantiene en memoria los registros de proveedores y clientes traídos de la
API y los presenta como contrapartes unificadas por RUT canónico.

REGLAS:
- Identidad = RUT canónico. Nunca se compara por nombre ni por ID.
- Promover un rol nunca crea un duplicado: si el RUT ya tiene el rol
  activo, ConflictoError sin llamar a la API.
- Quitar un rol solo apaga el flag. Si la contraparte quedaría sin roles
  y tiene documentos vigentes, EstadoInvalidoError sin llamar a la API.
- Cada transición se refleja de inmediato en el caché (optimista) y se
  revierte si la API falla. El servidor es la fuente de verdad.
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, FrozenSet, List, Optional, Sequence

from app.core.exceptions import ConflictoError, EstadoInvalidoError, NoEncontradoError
from app.schemas.contacto import ClienteRead, ProveedorRead, ROL_CLIENTE, ROL_PROVEEDOR
from app.services.cliente_api import ClienteApiCompras
from app.utils.rut_validator import RutValidator

logger = logging.getLogger(__name__)

# (rol, id del registro) -> documentos vigentes que lo referencian
ContadorHistorial = Callable[[str, int], int]


@dataclass(frozen=True)
class Contacto:
    """Contraparte unificada: un RUT con sus roles."""
    rut: str
    nombre: str
    email: Optional[str] = None
    telefono: Optional[str] = None
    direccion: Optional[str] = None
    roles: FrozenSet[str] = frozenset()
    proveedor_id: Optional[int] = None
    cliente_id: Optional[int] = None

    @property
    def es_proveedor(self) -> bool:
        return ROL_PROVEEDOR in self.roles

    @property
    def es_cliente(self) -> bool:
        return ROL_CLIENTE in self.roles


@dataclass
class CandidatosContraparte:
    """Resultado de búsqueda para el selector de proveedor de una compra."""
    proveedores: List[ProveedorRead] = field(default_factory=list)
    clientes_promovibles: List[ClienteRead] = field(default_factory=list)


def _coincide(termino: str, nombre: str, rut: str) -> bool:
    if not termino:
        return True
    if termino.casefold() in (nombre or "").casefold():
        return True
    rut_termino = RutValidator.limpiar_rut(termino)
    return any(c.isdigit() for c in rut_termino) and rut_termino in rut


class RegistroContactos:
    """
    Caché de contrapartes con transiciones de rol optimistas.

    Args:
        api: ClienteApiCompras
        contar_historial: Función (rol, registro_id) -> documentos vigentes.
            Por defecto cuenta las compras del proveedor vía API; el rol
            cliente no tiene documentos en este sistema.
    """

    def __init__(self, api: ClienteApiCompras, contar_historial: Optional[ContadorHistorial] = None):
        self.api = api
        self.contar_historial = contar_historial or self._contar_historial_remoto
        self._proveedores: Dict[int, ProveedorRead] = {}
        self._clientes: Dict[int, ClienteRead] = {}

    # ==================== CARGA ====================

    def cargar(self) -> None:
        """Reemplaza el caché con lo que tiene el servidor."""
        self._proveedores = {p.id: p for p in self.api.listar_proveedores()}
        self._clientes = {c.id: c for c in self.api.listar_clientes()}
        logger.info(
            f"Registro cargado: {len(self._proveedores)} proveedores, {len(self._clientes)} clientes"
        )

    def _contar_historial_remoto(self, rol: str, registro_id: int) -> int:
        if rol == ROL_PROVEEDOR:
            return len(self.api.listar_compras(proveedor_id=registro_id))
        return 0

    @property
    def proveedores(self) -> List[ProveedorRead]:
        return [p for p in self._proveedores.values() if p.activo]

    @property
    def clientes(self) -> List[ClienteRead]:
        return [c for c in self._clientes.values() if c.activo]

    # ==================== BÚSQUEDA ====================

    @staticmethod
    def buscar_candidatos(
        termino: str,
        proveedores: Sequence[ProveedorRead],
        clientes: Sequence[ClienteRead],
    ) -> CandidatosContraparte:
        """
        Candidatos a contraparte de una compra.

        - proveedores: los que coinciden por nombre o RUT
        - clientes_promovibles: clientes que coinciden y cuyo RUT NO es ya
          proveedor (promoverlos no crearía duplicados)
        """
        termino = (termino or "").strip()
        ruts_proveedores = {p.rut for p in proveedores if p.activo}
        return CandidatosContraparte(
            proveedores=[p for p in proveedores if p.activo and _coincide(termino, p.nombre, p.rut)],
            clientes_promovibles=[
                c for c in clientes
                if c.activo and c.rut not in ruts_proveedores and _coincide(termino, c.nombre, c.rut)
            ],
        )

    def buscar(self, termino: str) -> CandidatosContraparte:
        return self.buscar_candidatos(termino, self.proveedores, self.clientes)

    # ==================== VISTA UNIFICADA ====================

    def contactos(self) -> List[Contacto]:
        """Contrapartes con al menos un rol activo, una por RUT."""
        por_rut: Dict[str, Contacto] = {}
        for proveedor in self.proveedores:
            por_rut[proveedor.rut] = self._contacto(proveedor.rut)
        for cliente in self.clientes:
            if cliente.rut not in por_rut:
                por_rut[cliente.rut] = self._contacto(cliente.rut)
        return sorted(por_rut.values(), key=lambda c: c.nombre.casefold())

    def contacto_por_rut(self, rut: str) -> Optional[Contacto]:
        """
        Raises:
            FormatoInvalidoError: Si el RUT no se puede normalizar
        """
        canonico = RutValidator.normalizar_rut(rut)
        contacto = self._contacto(canonico)
        return contacto if contacto.roles else None

    def _proveedor_por_rut(self, rut: str) -> Optional[ProveedorRead]:
        return next((p for p in self.proveedores if p.rut == rut), None)

    def _cliente_por_rut(self, rut: str) -> Optional[ClienteRead]:
        return next((c for c in self.clientes if c.rut == rut), None)

    def _contacto(self, rut: str) -> Contacto:
        proveedor = self._proveedor_por_rut(rut)
        cliente = self._cliente_por_rut(rut)
        base = proveedor or cliente
        roles = set()
        if proveedor:
            roles.add(ROL_PROVEEDOR)
        if cliente:
            roles.add(ROL_CLIENTE)
        return Contacto(
            rut=rut,
            nombre=base.nombre if base else "",
            email=base.email if base else None,
            telefono=base.telefono if base else None,
            direccion=base.direccion if base else None,
            roles=frozenset(roles),
            proveedor_id=proveedor.id if proveedor else None,
            cliente_id=cliente.id if cliente else None,
        )

    # ==================== CACHÉ OPTIMISTA ====================

    def _snapshot(self):
        return (
            {k: v.model_copy() for k, v in self._proveedores.items()},
            {k: v.model_copy() for k, v in self._clientes.items()},
        )

    def _restaurar(self, snapshot) -> None:
        self._proveedores, self._clientes = snapshot

    def _enlazar(self) -> None:
        """Recalcula isCustomer/customerId e isSupplier/supplierId por RUT."""
        for proveedor in self._proveedores.values():
            cliente = self._cliente_por_rut(proveedor.rut)
            proveedor.es_cliente = cliente is not None
            proveedor.cliente_id = cliente.id if cliente else None
        for cliente in self._clientes.values():
            proveedor = self._proveedor_por_rut(cliente.rut)
            cliente.es_proveedor = proveedor is not None
            cliente.proveedor_id = proveedor.id if proveedor else None

    # ==================== CREACIÓN ====================

    def crear_proveedor(self, datos: Dict) -> ProveedorRead:
        """
        Raises:
            FormatoInvalidoError: RUT ilegible
            ConflictoError: El RUT ya es proveedor (sin llamar a la API)
        """
        rut = RutValidator.normalizar_rut(datos.get("rut", ""))
        if self._proveedor_por_rut(rut):
            raise ConflictoError(f"Ya existe un proveedor con RUT {RutValidator.formatear_rut(rut)}")
        proveedor = self.api.crear_proveedor({**datos, "rut": rut})
        self._proveedores[proveedor.id] = proveedor
        self._enlazar()
        return proveedor

    def crear_cliente(self, datos: Dict) -> ClienteRead:
        rut = RutValidator.normalizar_rut(datos.get("rut", ""))
        if self._cliente_por_rut(rut):
            raise ConflictoError(f"Ya existe un cliente con RUT {RutValidator.formatear_rut(rut)}")
        cliente = self.api.crear_cliente({**datos, "rut": rut})
        self._clientes[cliente.id] = cliente
        self._enlazar()
        return cliente

    # ==================== TRANSICIONES DE ROL ====================

    def promover_cliente_a_proveedor(self, cliente_id: int) -> Contacto:
        """
        Agrega el rol proveedor al RUT del cliente.

        Raises:
            NoEncontradoError: Si el cliente no está en el registro
            ConflictoError: Si el RUT ya es proveedor (sin llamar a la API)
        """
        cliente = self._clientes.get(cliente_id)
        if not cliente or not cliente.activo:
            raise NoEncontradoError(f"Cliente {cliente_id} no encontrado")
        if self._proveedor_por_rut(cliente.rut):
            logger.warning(f"Promoción rechazada: RUT {cliente.rut} ya es proveedor")
            raise ConflictoError(
                f"El RUT {RutValidator.formatear_rut(cliente.rut)} ya está registrado como proveedor"
            )

        snapshot = self._snapshot()
        cliente.es_proveedor = True
        try:
            proveedor = self.api.agregar_rol_proveedor(cliente_id)
        except Exception:
            self._restaurar(snapshot)
            logger.warning(f"Promoción a proveedor revertida para cliente {cliente_id}")
            raise

        self._proveedores[proveedor.id] = proveedor
        self._enlazar()
        logger.info(f"Cliente {cliente_id} promovido a proveedor {proveedor.id}")
        return self._contacto(cliente.rut)

    def promover_proveedor_a_cliente(self, proveedor_id: int) -> Contacto:
        """Simétrico de promover_cliente_a_proveedor."""
        proveedor = self._proveedores.get(proveedor_id)
        if not proveedor or not proveedor.activo:
            raise NoEncontradoError(f"Proveedor {proveedor_id} no encontrado")
        if self._cliente_por_rut(proveedor.rut):
            logger.warning(f"Promoción rechazada: RUT {proveedor.rut} ya es cliente")
            raise ConflictoError(
                f"El RUT {RutValidator.formatear_rut(proveedor.rut)} ya está registrado como cliente"
            )

        snapshot = self._snapshot()
        proveedor.es_cliente = True
        try:
            cliente = self.api.agregar_rol_cliente(proveedor_id)
        except Exception:
            self._restaurar(snapshot)
            logger.warning(f"Promoción a cliente revertida para proveedor {proveedor_id}")
            raise

        self._clientes[cliente.id] = cliente
        self._enlazar()
        logger.info(f"Proveedor {proveedor_id} promovido a cliente {cliente.id}")
        return self._contacto(proveedor.rut)

    def quitar_rol(self, rut: str, rol: str) -> Contacto:
        """
        Quita un rol de la contraparte del RUT. Los registros no se borran.

        Args:
            rut: RUT en cualquier formato
            rol: "supplier" o "customer"

        Raises:
            NoEncontradoError: Si no hay contraparte con ese RUT
            EstadoInvalidoError: Si no tiene ese rol, o si quedaría sin roles
                teniendo documentos vigentes (sin llamar a la API)
        """
        if rol not in (ROL_PROVEEDOR, ROL_CLIENTE):
            raise ValueError(f"Rol desconocido: {rol}")

        contacto = self.contacto_por_rut(rut)
        if contacto is None:
            raise NoEncontradoError(f"No hay contraparte con RUT {rut}")
        if rol not in contacto.roles:
            raise EstadoInvalidoError(f"La contraparte {contacto.rut} no tiene el rol {rol}")

        registro_id = contacto.proveedor_id if rol == ROL_PROVEEDOR else contacto.cliente_id
        if len(contacto.roles) == 1:
            historial = self.contar_historial(rol, registro_id)
            if historial > 0:
                logger.warning(
                    f"Rechazado quitar rol {rol} a RUT {contacto.rut}: {historial} documentos vigentes"
                )
                raise EstadoInvalidoError(
                    f"No se puede quitar el único rol de {contacto.nombre}: "
                    f"tiene {historial} documentos asociados"
                )

        snapshot = self._snapshot()
        registros = self._proveedores if rol == ROL_PROVEEDOR else self._clientes
        registros[registro_id].activo = False
        self._enlazar()
        try:
            if rol == ROL_PROVEEDOR:
                confirmado = self.api.quitar_rol_proveedor(registro_id)
            else:
                confirmado = self.api.quitar_rol_cliente(registro_id)
        except Exception:
            self._restaurar(snapshot)
            logger.warning(f"Quitar rol {rol} revertido para RUT {contacto.rut}")
            raise

        registros[registro_id] = confirmado
        self._enlazar()
        logger.info(f"Rol {rol} quitado a RUT {contacto.rut}")
        return self._contacto(contacto.rut)
