"""
Ciclo de vida de una compra.

Máquina de estados:

    pending ──► received   (terminal)
       │
       └──────► rejected   (terminal)

Cualquier otra transición es inválida, incluidas las auto-transiciones
(pending -> pending) y cualquier salida desde un estado terminal.

Una compra solo se puede editar o eliminar (soft delete) mientras está
en pending. El único efecto de una transición es el campo estado.

Lo usan tanto el servidor (routers/crud) como el cliente (ServicioCompras,
BorradorCompra) para rechazar operaciones ANTES de tocar la red o la BD.
"""

import logging
from typing import Dict, FrozenSet, Union

from app.core.exceptions import EstadoInvalidoError, FormatoInvalidoError
from app.models.compra import EstadoCompra

logger = logging.getLogger(__name__)

EstadoLike = Union[EstadoCompra, str]

TRANSICIONES_PERMITIDAS: Dict[EstadoCompra, FrozenSet[EstadoCompra]] = {
    EstadoCompra.pending: frozenset({EstadoCompra.received, EstadoCompra.rejected}),
    EstadoCompra.received: frozenset(),
    EstadoCompra.rejected: frozenset(),
}

ESTADO_INICIAL = EstadoCompra.pending


def como_estado(estado: EstadoLike) -> EstadoCompra:
    """Convierte "pending"/EstadoCompra.pending a EstadoCompra."""
    if isinstance(estado, EstadoCompra):
        return estado
    try:
        return EstadoCompra(str(estado).strip().lower())
    except ValueError:
        raise FormatoInvalidoError(f"Estado de compra desconocido: '{estado}'")


class CicloVidaCompra:
    """Reglas de transición de estado. Sin estado propio, sin efectos."""

    @staticmethod
    def puede_transicionar(desde: EstadoLike, hacia: EstadoLike) -> bool:
        return como_estado(hacia) in TRANSICIONES_PERMITIDAS[como_estado(desde)]

    @staticmethod
    def es_terminal(estado: EstadoLike) -> bool:
        return not TRANSICIONES_PERMITIDAS[como_estado(estado)]

    @staticmethod
    def es_editable(estado: EstadoLike, eliminada: bool = False) -> bool:
        return not eliminada and como_estado(estado) == EstadoCompra.pending

    @staticmethod
    def validar_transicion(desde: EstadoLike, hacia: EstadoLike) -> EstadoCompra:
        """
        Verifica que la transición sea legal.

        Returns:
            El estado destino como EstadoCompra

        Raises:
            EstadoInvalidoError: Si la transición no está permitida
        """
        origen = como_estado(desde)
        destino = como_estado(hacia)
        if destino not in TRANSICIONES_PERMITIDAS[origen]:
            logger.warning(f"Transición rechazada: {origen.value} -> {destino.value}")
            raise EstadoInvalidoError(
                f"No se puede cambiar una compra de '{origen.value}' a '{destino.value}'"
            )
        return destino

    @staticmethod
    def validar_editable(estado: EstadoLike, eliminada: bool = False) -> None:
        """
        Verifica que la compra admita edición o eliminación.

        Raises:
            EstadoInvalidoError: Si la compra está eliminada o no está en pending
        """
        if eliminada:
            raise EstadoInvalidoError("La compra está eliminada")
        actual = como_estado(estado)
        if actual != EstadoCompra.pending:
            logger.warning(f"Modificación rechazada: compra en estado {actual.value}")
            raise EstadoInvalidoError(
                f"Solo se pueden modificar compras en estado 'pending' (actual: '{actual.value}')"
            )


ciclo_vida_compra = CicloVidaCompra()
