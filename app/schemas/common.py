from decimal import Decimal
from typing import Annotated, Any, Union

from pydantic import BaseModel, ConfigDict, PlainSerializer


def numero_json(valor: Decimal) -> Union[int, float]:
    # Pesos enteros viajan como enteros JSON; el resto (tasas, cantidades) como float
    if not isinstance(valor, Decimal):
        valor = Decimal(str(valor))
    if valor == valor.to_integral_value():
        return int(valor)
    return float(valor)


# Decimal en Python, número (no string) en JSON.
# Montos en pesos: el IVA siempre es entero (HALF_UP). El neto es Σ subtotal
# sin redondear, así total == neto + iva se cumple exacto; con cantidades o
# precios enteros viaja como entero, con cantidades fraccionarias (2,5 kg)
# puede llevar decimales y viaja como número JSON con fracción.
Monto = Annotated[Decimal, PlainSerializer(numero_json, return_type=Union[int, float], when_used="json")]


class EsquemaApi(BaseModel):
    """
    Base de los esquemas de la API.

    Campos en español (snake_case) con alias camelCase en inglés, que es
    el contrato JSON. Se aceptan ambos nombres al construir.
    """
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class ErrorResponse(BaseModel):
    """Cuerpo de error: detail = {"code", "message", "errors"?}"""
    detail: Any
