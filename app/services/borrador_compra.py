# app/services/borrador_compra.py
"""
Borrador de compra del lado cliente.

Estado editable de una compra antes de enviarla: contraparte, líneas,
tipo de documento, tasa y observaciones. Las referencias (contraparte e
insumo de cada línea) son una unión etiquetada:

    Referencia = NoResuelta(id) | Resuelta(entidad)

NoResuelta es lo que llega de un documento guardado (solo el ID);
Resuelta es lo que el usuario elige en el selector (entidad completa).

Cada mutación recalcula el subtotal de la línea afectada y notifica a los
suscriptores (el SincronizadorPreview escucha items/documentType/taxRate).
Si el borrador corresponde a una compra que ya no está en pending, toda
mutación lanza EstadoInvalidoError.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from app.core.config import settings
from app.core.exceptions import FormatoInvalidoError
from app.models.compra import EstadoCompra, TipoDocumento
from app.schemas.common import numero_json
from app.schemas.compra import CompraRead
from app.schemas.contacto import ProveedorRead
from app.schemas.insumo import InsumoRead
from app.services.calculo_montos import CERO, CalculadoraMontos, TotalesDocumento, a_decimal
from app.services.ciclo_vida_compra import CicloVidaCompra, ESTADO_INICIAL, como_estado

logger = logging.getLogger(__name__)

# Campos editables de una línea (nombres del contrato JSON)
CAMPO_ITEM = "item"
CAMPO_CANTIDAD = "quantity"
CAMPO_PRECIO = "unitPrice"
CAMPO_DESCUENTO = "discount"
CAMPOS_LINEA = (CAMPO_ITEM, CAMPO_CANTIDAD, CAMPO_PRECIO, CAMPO_DESCUENTO)

# Cambios que afectan los totales
CAMBIO_ITEMS = "items"
CAMBIO_TIPO = "documentType"
CAMBIO_TASA = "taxRate"
CAMBIO_CONTRAPARTE = "counterparty"
CAMBIO_CABECERA = "header"


# ==================== REFERENCIAS ====================

@dataclass(frozen=True)
class NoResuelta:
    id: int


@dataclass(frozen=True)
class Resuelta:
    entidad: Any

    @property
    def id(self) -> int:
        return self.entidad.id


Referencia = Union[NoResuelta, Resuelta]


def id_referencia(referencia: Optional[Referencia]) -> Optional[int]:
    return referencia.id if referencia is not None else None


# ==================== LÍNEAS ====================

@dataclass
class LineaCompra:
    item: Optional[Referencia] = None
    cantidad: Decimal = Decimal("1")
    precio_unitario: Decimal = Decimal("0")
    descuento: Decimal = Decimal("0")
    subtotal: Decimal = Decimal("0")

    def recalcular(self) -> None:
        self.subtotal = CalculadoraMontos.subtotal_linea(self.cantidad, self.precio_unitario, self.descuento)

    @property
    def es_valida(self) -> bool:
        """Cuenta para los totales: tiene insumo y cantidad > 0."""
        return self.item is not None and self.cantidad > 0

    def a_payload(self) -> Dict[str, Any]:
        """Línea en formato JSON; discount se omite cuando es 0."""
        payload = {
            "item": self.item.id,
            "quantity": numero_json(self.cantidad),
            "unitPrice": numero_json(self.precio_unitario),
        }
        if self.descuento != 0:
            payload["discount"] = numero_json(self.descuento)
        return payload


@dataclass
class ResultadoValidacion:
    errores: Dict[str, str] = field(default_factory=dict)

    @property
    def es_valido(self) -> bool:
        return not self.errores


Suscriptor = Callable[["BorradorCompra", str], None]


class BorradorCompra:
    """
    Agregado de una compra en edición.

    Args:
        insumos: Catálogo para resolver insumos por ID (opcional)
        tasa_iva: Tasa de IVA (default settings.tasa_iva_default)
        tipo_documento: factura o boleta

    Example:
        >>> borrador = BorradorCompra(insumos=catalogo)
        >>> borrador.set_contraparte(proveedor)
        >>> i = borrador.agregar_item()
        >>> borrador.actualizar_item(i, "item", 7)
        >>> borrador.actualizar_item(i, "quantity", "2")
    """

    def __init__(
        self,
        insumos: Optional[Iterable[InsumoRead]] = None,
        tasa_iva: Optional[Decimal] = None,
        tipo_documento: TipoDocumento = TipoDocumento.factura,
    ):
        self.insumos: Dict[int, InsumoRead] = {i.id: i for i in (insumos or [])}
        self.tasa_iva: Decimal = a_decimal(tasa_iva if tasa_iva is not None else settings.tasa_iva_default)
        self.tipo_documento = TipoDocumento(tipo_documento)
        self.compra_id: Optional[int] = None
        self.numero_documento: Optional[str] = None
        self.estado: EstadoCompra = ESTADO_INICIAL
        self.eliminada = False
        self.contraparte: Optional[Referencia] = None
        self.fecha: date = date.today()
        self.observaciones: Optional[str] = None
        self.items: List[LineaCompra] = []
        self._suscriptores: List[Suscriptor] = []

    # ==================== OBSERVADORES ====================

    def suscribir(self, callback: Suscriptor) -> Callable[[], None]:
        """Registra un callback(borrador, cambio). Retorna la función para desuscribir."""
        self._suscriptores.append(callback)

        def desuscribir() -> None:
            if callback in self._suscriptores:
                self._suscriptores.remove(callback)

        return desuscribir

    def _notificar(self, cambio: str) -> None:
        for callback in list(self._suscriptores):
            callback(self, cambio)

    # ==================== ESTADO ====================

    @property
    def es_nuevo(self) -> bool:
        return self.compra_id is None

    @property
    def es_editable(self) -> bool:
        return CicloVidaCompra.es_editable(self.estado, self.eliminada)

    def _validar_editable(self) -> None:
        CicloVidaCompra.validar_editable(self.estado, self.eliminada)

    def _resolver_insumo(self, valor: Any) -> Optional[Referencia]:
        if valor is None or valor == "":
            return None
        if isinstance(valor, (NoResuelta, Resuelta)):
            return valor
        if isinstance(valor, InsumoRead):
            return Resuelta(valor)
        insumo_id = int(valor)
        if insumo_id in self.insumos:
            return Resuelta(self.insumos[insumo_id])
        return NoResuelta(insumo_id)

    # ==================== LÍNEAS ====================

    def agregar_item(self) -> int:
        """Agrega una línea vacía (sin insumo, cantidad 1, precio 0). Retorna su índice."""
        self._validar_editable()
        self.items.append(LineaCompra())
        self._notificar(CAMBIO_ITEMS)
        return len(self.items) - 1

    def quitar_item(self, indice: int) -> None:
        self._validar_editable()
        del self.items[indice]
        self._notificar(CAMBIO_ITEMS)

    def actualizar_item(self, indice: int, campo: str, valor: Any) -> LineaCompra:
        """
        Modifica un campo de una línea y recalcula su subtotal.

        Args:
            indice: Posición de la línea
            campo: "item", "quantity", "unitPrice" o "discount"
            valor: ID/insumo/Referencia para "item"; número o texto con coma
                decimal para el resto. Texto parcial ("12,") vale 0.

        Raises:
            EstadoInvalidoError: Si la compra no es editable
            FormatoInvalidoError: Si el texto no es un número
            ValueError: Si el campo no existe
        """
        self._validar_editable()
        if campo not in CAMPOS_LINEA:
            raise ValueError(f"Campo de línea desconocido: {campo}")
        linea = self.items[indice]

        if campo == CAMPO_ITEM:
            referencia = self._resolver_insumo(valor)
            if referencia is None:
                linea.item = None
                linea.cantidad = CERO
                linea.precio_unitario = CERO
                linea.descuento = CERO
            else:
                linea.item = referencia
                if isinstance(referencia, Resuelta):
                    linea.precio_unitario = a_decimal(referencia.entidad.precio_neto)
                if linea.cantidad == 0:
                    linea.cantidad = Decimal("1")
        elif campo == CAMPO_CANTIDAD:
            linea.cantidad = CalculadoraMontos.parse_monto(valor)
        elif campo == CAMPO_PRECIO:
            linea.precio_unitario = CalculadoraMontos.parse_monto(valor)
        else:
            linea.descuento = CalculadoraMontos.parse_monto(valor)

        linea.recalcular()
        self._notificar(CAMBIO_ITEMS)
        return linea

    # ==================== CABECERA ====================

    def set_tipo_documento(self, tipo: Union[TipoDocumento, str]) -> None:
        self._validar_editable()
        try:
            self.tipo_documento = TipoDocumento(tipo)
        except ValueError:
            raise FormatoInvalidoError(f"Tipo de documento desconocido: '{tipo}'")
        self._notificar(CAMBIO_TIPO)

    def set_tasa_iva(self, tasa: Any) -> None:
        self._validar_editable()
        self.tasa_iva = CalculadoraMontos.parse_monto(tasa)
        self._notificar(CAMBIO_TASA)

    def set_contraparte(self, contraparte: Union[Referencia, ProveedorRead, int, None]) -> None:
        self._validar_editable()
        if contraparte is None or isinstance(contraparte, (NoResuelta, Resuelta)):
            self.contraparte = contraparte
        elif isinstance(contraparte, ProveedorRead):
            self.contraparte = Resuelta(contraparte)
        else:
            self.contraparte = NoResuelta(int(contraparte))
        self._notificar(CAMBIO_CONTRAPARTE)

    def set_fecha(self, fecha: date) -> None:
        self._validar_editable()
        self.fecha = fecha
        self._notificar(CAMBIO_CABECERA)

    def set_observaciones(self, observaciones: Optional[str]) -> None:
        self._validar_editable()
        self.observaciones = observaciones or None
        self._notificar(CAMBIO_CABECERA)

    # ==================== VALIDACIÓN Y TOTALES ====================

    def validar(self) -> ResultadoValidacion:
        """
        Reglas de negocio del borrador.

        Claves de error: counterparty, items, item_{i}_item,
        item_{i}_quantity, item_{i}_unitPrice, item_{i}_discount.
        """
        errores: Dict[str, str] = {}
        if self.contraparte is None:
            errores["counterparty"] = "Debe seleccionar un proveedor"
        if not self.items:
            errores["items"] = "Debe agregar al menos un insumo"

        for i, linea in enumerate(self.items):
            if linea.item is None:
                errores[f"item_{i}_item"] = "Debe seleccionar un insumo"
            if linea.cantidad <= 0:
                errores[f"item_{i}_quantity"] = "La cantidad debe ser mayor a 0"
            if linea.precio_unitario < 0:
                errores[f"item_{i}_unitPrice"] = "El precio no puede ser negativo"
            if linea.descuento < 0:
                errores[f"item_{i}_discount"] = "El descuento no puede ser negativo"

        return ResultadoValidacion(errores)

    def lineas_validas(self) -> List[LineaCompra]:
        return [linea for linea in self.items if linea.es_valida]

    def totales_locales(self) -> TotalesDocumento:
        """Totales con la misma fórmula del servidor, solo sobre líneas válidas."""
        lineas = self.lineas_validas()
        if not lineas:
            return TotalesDocumento.vacios()
        return CalculadoraMontos.totales_documento(lineas, self.tasa_iva)

    # ==================== PAYLOADS ====================

    def payload_preview(self) -> Dict[str, Any]:
        return {
            "documentType": self.tipo_documento.value,
            "items": [linea.a_payload() for linea in self.lineas_validas()],
            "taxRate": numero_json(self.tasa_iva),
        }

    def payload_envio(self) -> Dict[str, Any]:
        """Cuerpo de POST/PUT /purchases. Llamar solo con el borrador validado."""
        payload = {
            "documentType": self.tipo_documento.value,
            "date": self.fecha.isoformat(),
            "counterpartyId": self.contraparte.id,
            "items": [linea.a_payload() for linea in self.items],
            "taxRate": numero_json(self.tasa_iva),
        }
        if self.observaciones:
            payload["observations"] = self.observaciones
        return payload

    # ==================== SINCRONIZACIÓN CON EL SERVIDOR ====================

    def aplicar_compra(self, compra: CompraRead) -> None:
        """Toma identidad, numeración, estado y líneas del documento del servidor."""
        self.compra_id = compra.id
        self.numero_documento = compra.numero_documento
        self.estado = como_estado(compra.estado)
        self.eliminada = compra.eliminada
        self.tipo_documento = compra.tipo_documento
        self.tasa_iva = a_decimal(compra.tasa_iva)
        self.fecha = compra.fecha
        self.observaciones = compra.observaciones
        if self.contraparte is None or self.contraparte.id != compra.proveedor_id:
            self.contraparte = NoResuelta(compra.proveedor_id)

        lineas = []
        for item in compra.items:
            linea = LineaCompra(
                item=self._resolver_insumo(item.insumo if item.insumo else item.insumo_id),
                cantidad=a_decimal(item.cantidad),
                precio_unitario=a_decimal(item.precio_unitario),
                descuento=a_decimal(item.descuento),
            )
            linea.recalcular()
            lineas.append(linea)
        self.items = lineas

    @classmethod
    def desde_compra(cls, compra: CompraRead, insumos: Optional[Iterable[InsumoRead]] = None) -> "BorradorCompra":
        """Carga un documento guardado para editarlo (o solo verlo si no está en pending)."""
        borrador = cls(insumos=insumos, tasa_iva=compra.tasa_iva, tipo_documento=compra.tipo_documento)
        borrador.aplicar_compra(compra)
        logger.debug(f"Borrador cargado desde compra {compra.numero_documento}")
        return borrador
