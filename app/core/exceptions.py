"""
Excepciones de dominio del núcleo de compras.

Taxonomía:
- FormatoInvalidoError: RUT o número mal formado (se resuelve en el campo).
- ValidacionError: uno o más campos de un borrador de compra no cumplen
  las reglas de negocio. Siempre lleva un mapa campo -> mensaje.
- EstadoInvalidoError: operación sobre un documento o rol en un estado
  que no la permite. Se rechaza ANTES de cualquier llamada remota.
- ConflictoError: una promoción crearía una identidad duplicada para un RUT.
- NoEncontradoError: el registro referenciado no existe.
- RemotoNoDisponibleError: fallo de transporte o del servidor.
"""

from typing import Dict, Optional


class ComprasError(Exception):
    """Base de todos los errores del núcleo de compras."""

    codigo = "error"

    def __init__(self, mensaje: str = ""):
        super().__init__(mensaje)
        self.mensaje = mensaje


class FormatoInvalidoError(ComprasError, ValueError):
    codigo = "invalid_format"


class ValidacionError(ComprasError):
    codigo = "validation"

    def __init__(self, errores: Dict[str, str], mensaje: str = "Datos de compra inválidos"):
        super().__init__(mensaje)
        self.errores = dict(errores)

    def __str__(self) -> str:
        detalle = ", ".join(f"{campo}: {msg}" for campo, msg in self.errores.items())
        return f"{self.mensaje} ({detalle})" if detalle else self.mensaje


class EstadoInvalidoError(ComprasError):
    codigo = "invalid_state"


class ConflictoError(ComprasError):
    codigo = "conflict"


class NoEncontradoError(ComprasError):
    codigo = "not_found"


class RemotoNoDisponibleError(ComprasError):
    """Fallo de transporte o 5xx. Para persistencia es reintentable."""

    codigo = "remote_unavailable"

    def __init__(self, mensaje: str = "", status_code: Optional[int] = None):
        super().__init__(mensaje)
        self.status_code = status_code
