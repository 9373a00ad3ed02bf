"""
Tests del cliente HTTP: traducción de respuestas a modelos y de errores
HTTP a excepciones de dominio. requests.Session se reemplaza por un Mock.
"""
import asyncio
from unittest.mock import Mock

import pytest
import requests

from app.core.exceptions import (
    ComprasError, ConflictoError, EstadoInvalidoError, NoEncontradoError,
    RemotoNoDisponibleError, ValidacionError
)
from app.core.sesion import SesionUsuario
from app.services.cliente_api import ClienteApiCompras, _session_with_retries

pytestmark = pytest.mark.unit


def respuesta(status_code=200, json_data=None):
    resp = Mock(spec=requests.Response)
    resp.status_code = status_code
    resp.content = b"" if json_data is None else b"{}"
    resp.reason = "Error"
    if json_data is None:
        resp.json.side_effect = ValueError("sin cuerpo")
    else:
        resp.json.return_value = json_data
    return resp


@pytest.fixture
def session():
    return Mock(spec=requests.Session)


@pytest.fixture
def api(session):
    return ClienteApiCompras(SesionUsuario(token="abc", usuario="compras"), base_url="http://api/v1/", session=session)


class TestTransporte:

    def test_envia_token_y_url(self, api, session):
        session.request.return_value = respuesta(200, {
            "netAmount": 2400, "taxAmount": 456, "totalAmount": 2856, "items": []
        })
        preview = api.preview_compra({"items": []})

        args, kwargs = session.request.call_args
        assert args == ("POST", "http://api/v1/purchases/preview")
        assert kwargs["headers"]["Authorization"] == "Bearer abc"
        assert kwargs["json"] == {"items": []}
        assert preview.total == 2856

    def test_sin_token_no_envia_authorization(self, session):
        api = ClienteApiCompras(SesionUsuario(), base_url="http://api/v1", session=session)
        session.request.return_value = respuesta(200, [])
        api.listar_insumos()
        assert "Authorization" not in session.request.call_args[1]["headers"]

    def test_filtros_vacios_no_se_envian(self, api, session):
        session.request.return_value = respuesta(200, [])
        api.listar_compras(estado="pending")
        assert session.request.call_args[1]["params"] == {"status": "pending"}

    def test_204_retorna_none(self, api, session):
        session.request.return_value = respuesta(204)
        assert api.eliminar_compra(3) is None

    def test_preview_async(self, api, session):
        session.request.return_value = respuesta(200, {
            "netAmount": 0, "taxAmount": 0, "totalAmount": 0, "items": []
        })
        preview = asyncio.run(api.preview_compra_async({"items": []}))
        assert preview.total == 0

    def test_sesion_con_reintentos(self):
        s = _session_with_retries(total=2)
        retry = s.get_adapter("http://x").max_retries
        assert retry.total == 2
        assert 503 in retry.status_forcelist

    def test_post_y_patch_no_se_reintentan(self):
        retry = _session_with_retries().get_adapter("http://x").max_retries
        assert "POST" not in retry.allowed_methods
        assert "PATCH" not in retry.allowed_methods
        assert {"GET", "PUT", "DELETE"} <= set(retry.allowed_methods)


class TestRespuestasIlegibles:

    def test_cuerpo_no_json_en_2xx(self, api, session):
        resp = respuesta(200)
        resp.content = b"<html>Bad Gateway</html>"
        resp.json.side_effect = ValueError("Expecting value: line 1 column 1 (char 0)")
        session.request.return_value = resp

        with pytest.raises(RemotoNoDisponibleError) as exc:
            api.preview_compra({"items": []})
        assert exc.value.status_code == 200

    def test_cuerpo_que_no_calza_con_el_esquema(self, api, session):
        session.request.return_value = respuesta(200, {"netAmount": "mucho"})
        with pytest.raises(RemotoNoDisponibleError):
            api.preview_compra({"items": []})

    def test_lista_esperada(self, api, session):
        session.request.return_value = respuesta(200, {"items": []})
        with pytest.raises(RemotoNoDisponibleError):
            api.listar_proveedores()


class TestErrores:

    def _error(self, api, session, status_code, detail):
        session.request.return_value = respuesta(status_code, {"detail": detail})
        return api.obtener_compra(1)

    def test_estado_invalido(self, api, session):
        with pytest.raises(EstadoInvalidoError):
            self._error(api, session, 409, {"code": "invalid_state", "message": "no"})

    def test_conflicto(self, api, session):
        with pytest.raises(ConflictoError) as exc:
            self._error(api, session, 409, {"code": "conflict", "message": "RUT duplicado"})
        assert exc.value.mensaje == "RUT duplicado"

    def test_validacion_con_campos(self, api, session):
        with pytest.raises(ValidacionError) as exc:
            self._error(api, session, 422, {
                "code": "validation", "message": "Datos inválidos", "errors": {"counterparty": "falta"}
            })
        assert exc.value.errores == {"counterparty": "falta"}

    def test_no_encontrado_sin_codigo(self, api, session):
        with pytest.raises(NoEncontradoError):
            self._error(api, session, 404, "Not Found")

    def test_otro_4xx(self, api, session):
        with pytest.raises(ComprasError):
            self._error(api, session, 401, "Not authenticated")

    def test_5xx_es_remoto_no_disponible(self, api, session):
        session.request.return_value = respuesta(503)
        with pytest.raises(RemotoNoDisponibleError) as exc:
            api.obtener_compra(1)
        assert exc.value.status_code == 503

    def test_error_de_transporte(self, api, session):
        session.request.side_effect = requests.exceptions.ConnectionError("refused")
        with pytest.raises(RemotoNoDisponibleError):
            api.listar_proveedores()
