# app/services/cliente_api.py
"""
Cliente HTTP de la API de compras (/api/v1).

- requests.Session con reintentos automáticos (urllib3 Retry) ante
  500/502/503/504 y backoff exponencial, solo para métodos idempotentes
  (GET, PUT, DELETE). Un POST/PATCH fallido llega al usuario como
  RemotoNoDisponibleError.
- Cuerpos no JSON o que no calzan con el esquema esperado también se
  reportan como RemotoNoDisponibleError.
- Token bearer tomado de la SesionUsuario inyectada.
- Traduce las respuestas de error a excepciones de dominio usando el
  "code" que el servidor pone en detail:
    409 invalid_state -> EstadoInvalidoError
    409 conflict      -> ConflictoError
    404               -> NoEncontradoError
    422 validation    -> ValidacionError (con mapa de campos)
    5xx / transporte  -> RemotoNoDisponibleError
- Las llamadas son bloqueantes; preview_compra_async las corre en un
  hilo (asyncio.to_thread) para no bloquear el event loop.
"""
import asyncio
from typing import Any, Dict, List, Optional, Type, TypeVar

import requests
from pydantic import BaseModel, ValidationError
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from app.core.config import settings
from app.core.exceptions import (
    ComprasError, ConflictoError, EstadoInvalidoError, FormatoInvalidoError,
    NoEncontradoError, RemotoNoDisponibleError, ValidacionError
)
from app.core.sesion import SesionUsuario
from app.schemas.compra import CompraRead, PreviewResponse
from app.schemas.contacto import ClienteRead, MetricasProveedor, ProveedorRead
from app.schemas.insumo import InsumoRead
from app.utils.logger import logger

M = TypeVar("M", bound=BaseModel)

# POST y PATCH no se reintentan: el servidor pudo haber confirmado la
# primera petición (una compra duplicada tendría otro correlativo)
METODOS_REINTENTABLES = ["GET", "PUT", "DELETE"]

ERROR_POR_CODIGO = {
    "invalid_format": FormatoInvalidoError,
    "invalid_state": EstadoInvalidoError,
    "conflict": ConflictoError,
    "not_found": NoEncontradoError,
}


def _session_with_retries(total: int = 3, backoff: float = 0.5) -> requests.Session:
    """
    Retorna una sesión de requests con reintentos automáticos y backoff exponencial.
    """
    session = requests.Session()
    retry_strategy = Retry(
        total=total,
        backoff_factor=backoff,
        status_forcelist=[500, 502, 503, 504],
        allowed_methods=METODOS_REINTENTABLES,
        raise_on_status=False
    )
    adapter = HTTPAdapter(max_retries=retry_strategy)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def error_desde_respuesta(resp: requests.Response) -> ComprasError:
    """Construye la excepción de dominio correspondiente a una respuesta de error."""
    if resp.status_code >= 500:
        return RemotoNoDisponibleError(
            f"El servidor respondió {resp.status_code}", status_code=resp.status_code
        )

    try:
        detalle = resp.json().get("detail")
    except ValueError:
        detalle = None

    if isinstance(detalle, dict):
        codigo = detalle.get("code")
        mensaje = detalle.get("message", "")
        if codigo == "validation":
            return ValidacionError(detalle.get("errors") or {}, mensaje or "Datos inválidos")
        if codigo in ERROR_POR_CODIGO:
            return ERROR_POR_CODIGO[codigo](mensaje)
    else:
        mensaje = str(detalle) if detalle else resp.reason or ""

    if resp.status_code == 404:
        return NoEncontradoError(mensaje or "Recurso no encontrado")
    if resp.status_code == 409:
        return ConflictoError(mensaje or "Conflicto")
    if resp.status_code == 422:
        return ValidacionError({}, mensaje or "Datos inválidos")
    return ComprasError(mensaje or f"Error HTTP {resp.status_code}")


class ClienteApiCompras:
    """
    Cliente de la API de compras.

    Args:
        sesion: SesionUsuario con el token bearer
        base_url: URL base de /api/v1 (default settings.api_base_url)
        timeout: Timeout por petición en segundos
        session: requests.Session a usar (para tests); si no, una con reintentos
    """

    def __init__(
        self,
        sesion: SesionUsuario,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.sesion = sesion
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout = timeout or settings.http_timeout_segundos
        self.session = session or _session_with_retries(total=settings.http_max_reintentos)

    # ==================== TRANSPORTE ====================

    def _request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        try:
            resp = self.session.request(
                method, url, json=json, params=params,
                headers=self.sesion.headers(), timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            logger.error("Error de transporte en %s %s: %s", method, path, e)
            raise RemotoNoDisponibleError(f"No se pudo contactar la API: {e}")

        if resp.status_code >= 400:
            error = error_desde_respuesta(resp)
            logger.warning("%s %s -> %d (%s)", method, path, resp.status_code, error.codigo)
            raise error

        if resp.status_code == 204 or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            logger.error("Respuesta no JSON en %s %s: %s", method, path, e)
            raise RemotoNoDisponibleError(f"Respuesta ilegible de la API: {e}", status_code=resp.status_code)

    @staticmethod
    def _modelo(esquema: Type[M], data: Any) -> M:
        try:
            return esquema.model_validate(data)
        except ValidationError as e:
            logger.error("Respuesta inesperada para %s: %s", esquema.__name__, e)
            raise RemotoNoDisponibleError(f"Respuesta inesperada de la API ({esquema.__name__})")

    @classmethod
    def _lista(cls, esquema: Type[M], data: Any) -> List[M]:
        if not isinstance(data, list):
            logger.error("Se esperaba una lista de %s", esquema.__name__)
            raise RemotoNoDisponibleError(f"Respuesta inesperada de la API ({esquema.__name__})")
        return [cls._modelo(esquema, item) for item in data]

    # ==================== COMPRAS ====================

    def preview_compra(self, payload: Dict[str, Any]) -> PreviewResponse:
        return self._modelo(PreviewResponse, self._request("POST", "/purchases/preview", json=payload))

    async def preview_compra_async(self, payload: Dict[str, Any]) -> PreviewResponse:
        return await asyncio.to_thread(self.preview_compra, payload)

    def crear_compra(self, payload: Dict[str, Any]) -> CompraRead:
        return self._modelo(CompraRead, self._request("POST", "/purchases", json=payload))

    def actualizar_compra(self, compra_id: int, payload: Dict[str, Any]) -> CompraRead:
        return self._modelo(CompraRead, self._request("PUT", f"/purchases/{compra_id}", json=payload))

    def cambiar_estado_compra(self, compra_id: int, estado: str) -> CompraRead:
        data = self._request("PATCH", f"/purchases/{compra_id}/status", json={"status": estado})
        return self._modelo(CompraRead, data)

    def eliminar_compra(self, compra_id: int) -> None:
        self._request("DELETE", f"/purchases/{compra_id}")

    def obtener_compra(self, compra_id: int) -> CompraRead:
        return self._modelo(CompraRead, self._request("GET", f"/purchases/{compra_id}"))

    def listar_compras(
        self,
        termino: Optional[str] = None,
        estado: Optional[str] = None,
        proveedor_id: Optional[int] = None,
    ) -> List[CompraRead]:
        params = {"term": termino, "status": estado, "supplierId": proveedor_id}
        return self._lista(CompraRead, self._request("GET", "/purchases", params=params))

    # ==================== CONTRAPARTES ====================

    def listar_proveedores(self, termino: Optional[str] = None) -> List[ProveedorRead]:
        data = self._request("GET", "/suppliers", params={"term": termino})
        return self._lista(ProveedorRead, data)

    def obtener_proveedor(self, proveedor_id: int) -> ProveedorRead:
        return self._modelo(ProveedorRead, self._request("GET", f"/suppliers/{proveedor_id}"))

    def crear_proveedor(self, payload: Dict[str, Any]) -> ProveedorRead:
        return self._modelo(ProveedorRead, self._request("POST", "/suppliers", json=payload))

    def metricas_proveedor(self, proveedor_id: int) -> MetricasProveedor:
        return self._modelo(MetricasProveedor, self._request("GET", f"/suppliers/{proveedor_id}/metrics"))

    def listar_clientes(self, termino: Optional[str] = None) -> List[ClienteRead]:
        data = self._request("GET", "/clients", params={"term": termino})
        return self._lista(ClienteRead, data)

    def crear_cliente(self, payload: Dict[str, Any]) -> ClienteRead:
        return self._modelo(ClienteRead, self._request("POST", "/clients", json=payload))

    def agregar_rol_proveedor(self, cliente_id: int) -> ProveedorRead:
        data = self._request("PATCH", f"/contacts/{cliente_id}/add-supplier-role")
        return self._modelo(ProveedorRead, data)

    def agregar_rol_cliente(self, proveedor_id: int) -> ClienteRead:
        data = self._request("PATCH", f"/contacts/{proveedor_id}/add-customer-role")
        return self._modelo(ClienteRead, data)

    def quitar_rol_proveedor(self, proveedor_id: int) -> ProveedorRead:
        data = self._request("PATCH", f"/contacts/{proveedor_id}/remove-supplier-role")
        return self._modelo(ProveedorRead, data)

    def quitar_rol_cliente(self, cliente_id: int) -> ClienteRead:
        data = self._request("PATCH", f"/contacts/{cliente_id}/remove-customer-role")
        return self._modelo(ClienteRead, data)

    # ==================== CATÁLOGO ====================

    def listar_insumos(self, termino: Optional[str] = None) -> List[InsumoRead]:
        data = self._request("GET", "/consumables", params={"term": termino})
        return self._lista(InsumoRead, data)

    def close(self) -> None:
        self.session.close()
