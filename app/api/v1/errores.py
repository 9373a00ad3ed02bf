# app/api/v1/errores.py
"""
Traducción de errores de dominio a HTTPException.

detail siempre es un objeto {"code", "message"} (+ "errors" en validación),
para que el cliente pueda reconstruir la excepción de dominio original.
"""
from typing import Dict

from fastapi import HTTPException, status

from app.core.exceptions import (
    ComprasError, ConflictoError, EstadoInvalidoError, FormatoInvalidoError,
    NoEncontradoError, ValidacionError
)

STATUS_POR_ERROR = {
    FormatoInvalidoError: status.HTTP_400_BAD_REQUEST,
    ValidacionError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    NoEncontradoError: status.HTTP_404_NOT_FOUND,
    EstadoInvalidoError: status.HTTP_409_CONFLICT,
    ConflictoError: status.HTTP_409_CONFLICT,
}


def detalle_error(codigo: str, mensaje: str, errores: Dict[str, str] = None) -> Dict:
    detalle = {"code": codigo, "message": mensaje}
    if errores is not None:
        detalle["errors"] = errores
    return detalle


def a_http_exception(error: ComprasError) -> HTTPException:
    status_code = STATUS_POR_ERROR.get(type(error), status.HTTP_400_BAD_REQUEST)
    errores = error.errores if isinstance(error, ValidacionError) else None
    return HTTPException(
        status_code=status_code,
        detail=detalle_error(error.codigo, error.mensaje, errores),
    )
