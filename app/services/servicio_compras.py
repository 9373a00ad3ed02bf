# app/services/servicio_compras.py
"""
Operaciones de compra del lado cliente.

Toda regla que se puede verificar localmente se verifica ANTES de tocar la
red: un borrador inválido lanza ValidacionError y una transición ilegal
lanza EstadoInvalidoError sin ninguna llamada HTTP. El servidor vuelve a
validar todo; si rechaza, ClienteApiCompras traduce el error.
"""
import logging
from typing import Iterable, List, Optional

from app.core.exceptions import ValidacionError
from app.models.compra import EstadoCompra
from app.schemas.compra import CompraRead
from app.schemas.insumo import InsumoRead
from app.services.borrador_compra import BorradorCompra
from app.services.ciclo_vida_compra import CicloVidaCompra, EstadoLike, como_estado
from app.services.cliente_api import ClienteApiCompras

logger = logging.getLogger(__name__)


class ServicioCompras:
    def __init__(self, api: ClienteApiCompras):
        self.api = api

    def enviar(self, borrador: BorradorCompra) -> CompraRead:
        """
        Crea (POST) o actualiza (PUT) la compra del borrador.

        El servidor asigna número, correlativo y estado pending; el borrador
        queda sincronizado con la respuesta.

        Raises:
            ValidacionError: Si el borrador no cumple las reglas (sin llamada remota)
            EstadoInvalidoError: Si el borrador es de una compra no editable
        """
        resultado = borrador.validar()
        if not resultado.es_valido:
            logger.warning(f"Envío cancelado, borrador inválido: {sorted(resultado.errores)}")
            raise ValidacionError(resultado.errores)

        CicloVidaCompra.validar_editable(borrador.estado, borrador.eliminada)
        payload = borrador.payload_envio()

        if borrador.es_nuevo:
            compra = self.api.crear_compra(payload)
            logger.info(f"Compra registrada: {compra.numero_documento} total={compra.total}")
        else:
            compra = self.api.actualizar_compra(borrador.compra_id, payload)
            logger.info(f"Compra actualizada: {compra.numero_documento} total={compra.total}")

        borrador.aplicar_compra(compra)
        return compra

    def cambiar_estado(
        self,
        compra_id: int,
        nuevo_estado: EstadoLike,
        estado_actual: Optional[EstadoLike] = None,
    ) -> CompraRead:
        """
        Cambia el estado de una compra.

        Args:
            compra_id: ID de la compra
            nuevo_estado: received o rejected
            estado_actual: Estado conocido por el cliente; si no se pasa, se
                consulta al servidor antes de validar

        Raises:
            EstadoInvalidoError: Transición ilegal (nunca llega al PATCH)
        """
        destino = como_estado(nuevo_estado)
        if estado_actual is None:
            estado_actual = self.api.obtener_compra(compra_id).estado
        CicloVidaCompra.validar_transicion(estado_actual, destino)

        compra = self.api.cambiar_estado_compra(compra_id, destino.value)
        logger.info(f"Compra {compra.numero_documento}: {como_estado(estado_actual).value} -> {destino.value}")
        return compra

    def recibir(self, compra_id: int, estado_actual: Optional[EstadoLike] = None) -> CompraRead:
        return self.cambiar_estado(compra_id, EstadoCompra.received, estado_actual)

    def rechazar(self, compra_id: int, estado_actual: Optional[EstadoLike] = None) -> CompraRead:
        return self.cambiar_estado(compra_id, EstadoCompra.rejected, estado_actual)

    def eliminar(self, compra_id: int, estado_actual: Optional[EstadoLike] = None) -> None:
        """
        Soft delete de una compra pending.

        Raises:
            EstadoInvalidoError: Si la compra no está en pending (sin llamada DELETE)
        """
        if estado_actual is None:
            estado_actual = self.api.obtener_compra(compra_id).estado
        CicloVidaCompra.validar_editable(estado_actual)
        self.api.eliminar_compra(compra_id)
        logger.warning(f"Compra {compra_id} eliminada")

    def listar(
        self,
        termino: Optional[str] = None,
        estado: Optional[EstadoLike] = None,
        proveedor_id: Optional[int] = None,
    ) -> List[CompraRead]:
        estado_valor = como_estado(estado).value if estado else None
        return self.api.listar_compras(termino=termino, estado=estado_valor, proveedor_id=proveedor_id)

    def obtener(self, compra_id: int) -> CompraRead:
        return self.api.obtener_compra(compra_id)

    def cargar_borrador(self, compra_id: int, insumos: Optional[Iterable[InsumoRead]] = None) -> BorradorCompra:
        """Trae una compra del servidor como borrador editable."""
        compra = self.api.obtener_compra(compra_id)
        if insumos is None:
            insumos = self.api.listar_insumos()
        return BorradorCompra.desde_compra(compra, insumos=insumos)
