"""
Motor de montos de compras: subtotal por línea, neto, IVA y total.

REGLA CRÍTICA:
====================================
Este módulo es la ÚNICA fórmula de montos del sistema.
- El endpoint /purchases/preview y la persistencia de compras lo usan.
- El cálculo local de respaldo del cliente (cuando el preview remoto
  falla) usa exactamente las mismas funciones.
Por eso ambos resultados coinciden siempre.

Ecuaciones:
    subtotal = max(0, cantidad × precio_unitario − descuento)
    neto     = Σ subtotal
    iva      = round(neto × tasa)   -> pesos enteros, redondeo HALF_UP
    total    = neto + iva

Toda la aritmética es Decimal (sin deriva de float).
====================================
"""
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable, Union

from app.core.exceptions import FormatoInvalidoError

Numero = Union[Decimal, int, float, str]

CERO = Decimal("0")
PESO = Decimal("1")


def a_decimal(valor: Numero) -> Decimal:
    """
    Convierte a Decimal sin arrastrar la representación binaria del float.

    Raises:
        FormatoInvalidoError: Si el valor no es numérico
    """
    if valor is None:
        return CERO
    if isinstance(valor, Decimal):
        resultado = valor
    else:
        try:
            resultado = Decimal(str(valor))
        except InvalidOperation:
            raise FormatoInvalidoError(f"Valor numérico inválido: '{valor}'")
    if not resultado.is_finite():
        raise FormatoInvalidoError(f"Valor numérico inválido: '{valor}'")
    return resultado


@dataclass(frozen=True)
class TotalesDocumento:
    """Totales de un documento. Siempre se calculan juntos."""

    neto: Decimal
    iva: Decimal
    total: Decimal

    @classmethod
    def vacios(cls) -> "TotalesDocumento":
        return cls(neto=CERO, iva=CERO, total=CERO)


class CalculadoraMontos:
    """
    Calculadora de montos de compra (CLP).

    Métodos estáticos, sin estado: se comparte entre servidor y cliente.
    """

    @staticmethod
    def subtotal_linea(cantidad: Numero, precio_unitario: Numero, descuento: Numero = 0) -> Decimal:
        """
        Subtotal de una línea, nunca negativo.

        Args:
            cantidad: Unidades compradas
            precio_unitario: Precio neto por unidad
            descuento: Descuento en pesos sobre la línea (default 0)

        Returns:
            max(0, cantidad × precio_unitario − descuento)

        Example:
            >>> CalculadoraMontos.subtotal_linea(2, 1000, 0)
            Decimal('2000')
            >>> CalculadoraMontos.subtotal_linea(1, 100, 500)
            Decimal('0')
        """
        bruto = a_decimal(cantidad) * a_decimal(precio_unitario) - a_decimal(descuento)
        return max(CERO, bruto)

    @staticmethod
    def redondear_clp(monto: Numero) -> Decimal:
        """Redondea a pesos enteros (HALF_UP: 0,5 sube)."""
        return a_decimal(monto).quantize(PESO, rounding=ROUND_HALF_UP)

    @staticmethod
    def _subtotal_de(item: Any) -> Decimal:
        # Acepta dicts (payloads) u objetos con atributo subtotal (líneas, modelos)
        if isinstance(item, dict):
            if item.get("subtotal") is not None:
                return a_decimal(item["subtotal"])
            return CalculadoraMontos.subtotal_linea(
                item.get("quantity", item.get("cantidad", 0)),
                item.get("unitPrice", item.get("precio_unitario", 0)),
                item.get("discount", item.get("descuento", 0)) or 0,
            )
        return a_decimal(getattr(item, "subtotal", 0))

    @staticmethod
    def totales_documento(items: Iterable[Any], tasa_iva: Numero) -> TotalesDocumento:
        """
        Calcula neto, IVA y total de un documento.

        Args:
            items: Líneas con subtotal (dicts u objetos)
            tasa_iva: Tasa de impuesto, ej: 0.19

        Returns:
            TotalesDocumento(neto, iva, total)

        Example:
            >>> t = CalculadoraMontos.totales_documento(
            ...     [{"subtotal": 2000}, {"subtotal": 400}], Decimal("0.19"))
            >>> (t.neto, t.iva, t.total)
            (Decimal('2400'), Decimal('456'), Decimal('2856'))
        """
        neto = sum((CalculadoraMontos._subtotal_de(item) for item in items), CERO)
        iva = CalculadoraMontos.redondear_clp(neto * a_decimal(tasa_iva))
        return TotalesDocumento(neto=neto, iva=iva, total=neto + iva)

    @staticmethod
    def parse_monto(texto: Union[str, int, float, Decimal, None]) -> Decimal:
        """
        Interpreta un número escrito por el usuario (coma decimal).

        Las entradas parciales mientras se escribe valen 0:
        "", "-", ",", "12," -> 0

        Raises:
            FormatoInvalidoError: Si el texto completo no es un número

        Example:
            >>> CalculadoraMontos.parse_monto("12,5")
            Decimal('12.5')
        """
        if texto is None:
            return CERO
        if not isinstance(texto, str):
            return a_decimal(texto)

        limpio = texto.strip()
        if limpio in ("", "-", ",", ".") or limpio.endswith((",", ".")):
            return CERO

        return a_decimal(limpio.replace(",", "."))

    @staticmethod
    def format_clp(monto: Numero) -> str:
        """
        Formato de presentación en pesos chilenos: "$12.345".

        Example:
            >>> CalculadoraMontos.format_clp(12345)
            "$12.345"
        """
        entero = int(CalculadoraMontos.redondear_clp(monto))
        signo = "-" if entero < 0 else ""
        miles = f"{abs(entero):,}".replace(",", ".")
        return f"{signo}${miles}"


# Instancia compartida
calculadora_montos = CalculadoraMontos()
