# app/services/sincronizador_preview.py
"""
Sincronizador de totales de un borrador de compra con el servidor.

Flujo:
1. Un cambio en items, documentType o taxRate programa un recálculo tras
   una ventana de silencio (settings.preview_debounce_segundos, ~500 ms).
   Cambios dentro de la ventana reinician el temporizador.
2. Cada cambio programado (o flush) toma un número de secuencia creciente;
   el recálculo que dispara el temporizador usa ese número.
3. Sin líneas válidas (insumo + cantidad > 0) -> totales en 0, sin red.
4. Con líneas válidas -> POST /purchases/preview. Mientras espera se
   mantienen los últimos totales conocidos.
5. Si el servidor falla, se usan los totales locales (misma fórmula) y
   solo se registra un WARNING: el usuario no ve error.
6. Una respuesta cuya secuencia no es la última se descarta.

Todo corre en el event loop de asyncio; la llamada HTTP bloqueante va a
un hilo vía ClienteApiCompras.preview_compra_async.
"""
import asyncio
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Optional, Set

from app.core.config import settings
from app.services.borrador_compra import CAMBIO_ITEMS, CAMBIO_TASA, CAMBIO_TIPO, BorradorCompra
from app.services.calculo_montos import CERO
from app.services.cliente_api import ClienteApiCompras

logger = logging.getLogger(__name__)

ORIGEN_REMOTO = "remote"
ORIGEN_LOCAL = "local"
ORIGEN_VACIO = "empty"

CAMBIOS_QUE_RECALCULAN = frozenset({CAMBIO_ITEMS, CAMBIO_TIPO, CAMBIO_TASA})


@dataclass(frozen=True)
class TotalesPreview:
    neto: Decimal
    iva: Decimal
    total: Decimal
    origen: str = ORIGEN_VACIO
    secuencia: int = 0

    @classmethod
    def vacios(cls, secuencia: int = 0) -> "TotalesPreview":
        return cls(neto=CERO, iva=CERO, total=CERO, origen=ORIGEN_VACIO, secuencia=secuencia)


class SincronizadorPreview:
    """
    Mantiene `totales` al día con el borrador.

    Args:
        borrador: BorradorCompra a observar
        api: Cliente con preview_compra_async
        debounce: Segundos de silencio antes de recalcular
        on_totales: Callback opcional con cada TotalesPreview publicado

    Example:
        >>> sync = SincronizadorPreview(borrador, api)
        >>> borrador.actualizar_item(0, "quantity", "3")   # programa recálculo
        >>> totales = await sync.flush()                   # o esperar el debounce
        >>> sync.cerrar()
    """

    def __init__(
        self,
        borrador: BorradorCompra,
        api: ClienteApiCompras,
        debounce: Optional[float] = None,
        on_totales: Optional[Callable[[TotalesPreview], None]] = None,
    ):
        self.borrador = borrador
        self.api = api
        self.debounce = settings.preview_debounce_segundos if debounce is None else debounce
        self.on_totales = on_totales
        self.totales = TotalesPreview.vacios()

        self._secuencia = 0
        self._timer: Optional[asyncio.TimerHandle] = None
        self._tareas: Set[asyncio.Task] = set()
        self._cerrado = False
        self._desuscribir = borrador.suscribir(self._on_cambio)

    @property
    def secuencia(self) -> int:
        return self._secuencia

    @property
    def pendiente(self) -> bool:
        return self._timer is not None or bool(self._tareas)

    # ==================== PROGRAMACIÓN ====================

    def _on_cambio(self, borrador: BorradorCompra, cambio: str) -> None:
        if cambio in CAMBIOS_QUE_RECALCULAN:
            self.programar()

    def programar(self) -> None:
        """
        (Re)inicia la ventana de silencio. Requiere un event loop corriendo.

        Cada cambio programado toma un número de secuencia nuevo, con lo
        que cualquier preview en vuelo queda obsoleto desde este momento.
        """
        if self._cerrado:
            return
        loop = asyncio.get_running_loop()
        if self._timer is not None:
            self._timer.cancel()
        self._secuencia += 1
        self._timer = loop.call_later(self.debounce, self._disparar, self._secuencia)

    def _disparar(self, secuencia: int) -> None:
        self._timer = None
        tarea = asyncio.ensure_future(self._recalcular(secuencia))
        self._tareas.add(tarea)
        tarea.add_done_callback(self._tareas.discard)

    # ==================== RECÁLCULO ====================

    async def _recalcular(self, secuencia: int) -> None:
        if not self.borrador.lineas_validas():
            self._publicar(TotalesPreview.vacios(secuencia))
            return

        payload = self.borrador.payload_preview()
        # Respaldo calculado sobre la misma foto del borrador que se envía
        locales = self.borrador.totales_locales()

        try:
            respuesta = await self.api.preview_compra_async(payload)
            totales = TotalesPreview(
                neto=respuesta.neto, iva=respuesta.iva, total=respuesta.total,
                origen=ORIGEN_REMOTO, secuencia=secuencia,
            )
        except Exception as e:
            # Cualquier fallo del preview remoto se resuelve con el cálculo local
            logger.warning(f"Preview remoto falló (secuencia {secuencia}), usando cálculo local: {e}")
            totales = TotalesPreview(
                neto=locales.neto, iva=locales.iva, total=locales.total,
                origen=ORIGEN_LOCAL, secuencia=secuencia,
            )

        self._publicar(totales)

    def _publicar(self, totales: TotalesPreview) -> None:
        if self._cerrado or totales.secuencia != self._secuencia:
            logger.debug(f"Preview descartado: secuencia {totales.secuencia}, vigente {self._secuencia}")
            return
        self.totales = totales
        if self.on_totales:
            self.on_totales(totales)

    async def flush(self) -> TotalesPreview:
        """Recalcula de inmediato, sin esperar la ventana de silencio."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._secuencia += 1
        await self._recalcular(self._secuencia)
        return self.totales

    async def esperar(self) -> TotalesPreview:
        """Espera los recálculos en curso (no la ventana de silencio)."""
        if self._tareas:
            await asyncio.gather(*list(self._tareas), return_exceptions=True)
        return self.totales

    def cerrar(self) -> None:
        """Cancela el temporizador, invalida respuestas en vuelo y deja de observar."""
        self._cerrado = True
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._secuencia += 1
        for tarea in list(self._tareas):
            tarea.cancel()
        self._desuscribir()
