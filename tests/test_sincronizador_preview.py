"""
Tests del sincronizador de totales.

Los escenarios asíncronos se ejecutan con asyncio.run dentro de tests
normales. La API falsa calcula el preview con la misma función que el
endpoint, y puede bloquear llamadas puntuales para simular respuestas
que llegan fuera de orden.
"""
import asyncio
import logging
from decimal import Decimal

import pytest

from app.core.exceptions import RemotoNoDisponibleError
from app.crud.compra import preview_compra
from app.schemas.compra import PreviewRequest
from app.schemas.insumo import InsumoRead
from app.services.borrador_compra import BorradorCompra
from app.services.sincronizador_preview import (
    ORIGEN_LOCAL, ORIGEN_REMOTO, ORIGEN_VACIO, SincronizadorPreview
)

pytestmark = pytest.mark.unit

HARINA = InsumoRead(id=1, nombre="Harina 25kg", precio_neto=Decimal("1000"))
AZUCAR = InsumoRead(id=2, nombre="Azúcar 1kg", precio_neto=Decimal("400"))


class ApiFalsa:
    def __init__(self, fallar=False, error=None):
        self.llamadas = []
        self.bloqueos = {}
        self.fallar = fallar
        self.error = error

    async def preview_compra_async(self, payload):
        numero = len(self.llamadas)
        self.llamadas.append(payload)
        if numero in self.bloqueos:
            await self.bloqueos[numero].wait()
        if self.error is not None:
            raise self.error
        if self.fallar:
            raise RemotoNoDisponibleError("servidor caído")
        return preview_compra(PreviewRequest.model_validate(payload))


def nuevo_borrador():
    borrador = BorradorCompra(insumos=[HARINA, AZUCAR], tasa_iva=Decimal("0.19"))
    borrador.set_contraparte(5)
    return borrador


def llenar_2000_400(borrador):
    i = borrador.agregar_item()
    borrador.actualizar_item(i, "item", 1)
    borrador.actualizar_item(i, "quantity", "2")
    j = borrador.agregar_item()
    borrador.actualizar_item(j, "item", 2)


class TestRecalculo:

    def test_totales_remotos(self):
        async def escenario():
            borrador = nuevo_borrador()
            api = ApiFalsa()
            sync = SincronizadorPreview(borrador, api, debounce=10)
            llenar_2000_400(borrador)
            totales = await sync.flush()
            sync.cerrar()
            return totales, api

        totales, api = asyncio.run(escenario())
        assert (totales.neto, totales.iva, totales.total) == (2400, 456, 2856)
        assert totales.origen == ORIGEN_REMOTO
        assert len(api.llamadas) == 1

    def test_sin_lineas_validas_no_llama_api(self):
        async def escenario():
            borrador = nuevo_borrador()
            api = ApiFalsa()
            sync = SincronizadorPreview(borrador, api, debounce=10)
            borrador.agregar_item()
            totales = await sync.flush()
            sync.cerrar()
            return totales, api

        totales, api = asyncio.run(escenario())
        assert totales.origen == ORIGEN_VACIO
        assert (totales.neto, totales.iva, totales.total) == (0, 0, 0)
        assert api.llamadas == []

    def test_fallo_remoto_usa_calculo_local(self, caplog):
        async def escenario():
            borrador = nuevo_borrador()
            sync = SincronizadorPreview(borrador, ApiFalsa(fallar=True), debounce=10)
            llenar_2000_400(borrador)
            totales = await sync.flush()
            sync.cerrar()
            return totales

        with caplog.at_level(logging.WARNING):
            totales = asyncio.run(escenario())

        assert totales.origen == ORIGEN_LOCAL
        assert (totales.neto, totales.iva, totales.total) == (2400, 456, 2856)
        assert any("Preview remoto falló" in r.getMessage() for r in caplog.records)

    def test_respuesta_ilegible_tambien_usa_calculo_local(self):
        """Test: un error que no es de dominio (cuerpo no JSON) no deja los totales vacíos"""
        async def escenario():
            borrador = nuevo_borrador()
            api = ApiFalsa(error=ValueError("Expecting value: line 1 column 1 (char 0)"))
            publicados = []
            sync = SincronizadorPreview(borrador, api, debounce=0.02, on_totales=publicados.append)
            llenar_2000_400(borrador)
            await asyncio.sleep(0.1)
            await sync.esperar()
            sync.cerrar()
            return sync, publicados

        sync, publicados = asyncio.run(escenario())
        assert sync.totales.origen == ORIGEN_LOCAL
        assert sync.totales.total == Decimal("2856")
        assert [t.origen for t in publicados] == [ORIGEN_LOCAL]


class TestDebounce:

    def test_cambios_seguidos_generan_una_llamada(self):
        async def escenario():
            borrador = nuevo_borrador()
            api = ApiFalsa()
            publicados = []
            sync = SincronizadorPreview(borrador, api, debounce=0.05, on_totales=publicados.append)
            llenar_2000_400(borrador)
            borrador.set_tipo_documento("boleta")
            await asyncio.sleep(0.2)
            await sync.esperar()
            sync.cerrar()
            return api, publicados, sync

        api, publicados, sync = asyncio.run(escenario())
        assert len(api.llamadas) == 1
        assert api.llamadas[0]["documentType"] == "boleta"
        assert [t.total for t in publicados] == [Decimal("2856")]

    def test_cambio_de_contraparte_no_recalcula(self):
        async def escenario():
            borrador = nuevo_borrador()
            api = ApiFalsa()
            sync = SincronizadorPreview(borrador, api, debounce=0.01)
            borrador.set_contraparte(6)
            await asyncio.sleep(0.05)
            pendiente = sync.pendiente
            sync.cerrar()
            return api, pendiente

        api, pendiente = asyncio.run(escenario())
        assert api.llamadas == []
        assert not pendiente

    def test_cerrar_cancela_temporizador(self):
        async def escenario():
            borrador = nuevo_borrador()
            api = ApiFalsa()
            sync = SincronizadorPreview(borrador, api, debounce=0.02)
            llenar_2000_400(borrador)
            sync.cerrar()
            await asyncio.sleep(0.08)
            # Tras cerrar ya no observa el borrador
            borrador.agregar_item()
            return api

        api = asyncio.run(escenario())
        assert api.llamadas == []


class TestCarrera:

    def test_respuesta_vieja_se_descarta(self):
        """Test: la primera respuesta llega después de la segunda y se ignora"""
        async def escenario():
            borrador = nuevo_borrador()
            api = ApiFalsa()
            api.bloqueos[0] = asyncio.Event()
            publicados = []
            sync = SincronizadorPreview(borrador, api, debounce=10, on_totales=publicados.append)

            i = borrador.agregar_item()
            borrador.actualizar_item(i, "item", 1)
            borrador.actualizar_item(i, "quantity", "2")
            primera = asyncio.ensure_future(sync.flush())
            await asyncio.sleep(0)

            borrador.actualizar_item(i, "quantity", "5")
            await sync.flush()

            api.bloqueos[0].set()
            await primera
            sync.cerrar()
            return sync, publicados, api

        sync, publicados, api = asyncio.run(escenario())
        assert len(api.llamadas) == 2
        assert sync.totales.neto == Decimal("5000")
        assert sync.totales.secuencia == sync.secuencia
        assert [t.neto for t in publicados] == [Decimal("5000")]

    def test_respuesta_en_vuelo_se_descarta_si_hay_cambio_programado(self):
        """Test: la respuesta llega dentro de la ventana de silencio del cambio siguiente"""
        async def escenario():
            borrador = nuevo_borrador()
            api = ApiFalsa()
            api.bloqueos[0] = asyncio.Event()
            publicados = []
            sync = SincronizadorPreview(borrador, api, debounce=0.05, on_totales=publicados.append)

            i = borrador.agregar_item()
            borrador.actualizar_item(i, "item", 1)
            borrador.actualizar_item(i, "quantity", "2")
            await asyncio.sleep(0.1)
            llamadas_en_vuelo = len(api.llamadas)

            # Nuevo cambio con la primera petición aún sin responder
            borrador.actualizar_item(i, "quantity", "5")
            api.bloqueos[0].set()
            await asyncio.sleep(0.01)
            antes_del_temporizador = list(publicados)

            await asyncio.sleep(0.1)
            await sync.esperar()
            sync.cerrar()
            return sync, publicados, antes_del_temporizador, llamadas_en_vuelo, api

        sync, publicados, antes, en_vuelo, api = asyncio.run(escenario())
        assert en_vuelo == 1
        assert antes == []
        assert len(api.llamadas) == 2
        assert [t.neto for t in publicados] == [Decimal("5000")]
        assert sync.totales.neto == Decimal("5000")

    def test_cerrar_descarta_respuesta_en_vuelo(self):
        async def escenario():
            borrador = nuevo_borrador()
            api = ApiFalsa()
            api.bloqueos[0] = asyncio.Event()
            sync = SincronizadorPreview(borrador, api, debounce=10)
            llenar_2000_400(borrador)
            en_vuelo = asyncio.ensure_future(sync.flush())
            await asyncio.sleep(0)
            sync.cerrar()
            api.bloqueos[0].set()
            await en_vuelo
            return sync

        sync = asyncio.run(escenario())
        assert sync.totales.origen == ORIGEN_VACIO


@pytest.mark.integration
def test_calculo_local_igual_al_endpoint(client):
    """Test: el respaldo local coincide con POST /purchases/preview"""
    borrador = nuevo_borrador()
    llenar_2000_400(borrador)
    borrador.actualizar_item(0, "discount", "333")
    borrador.actualizar_item(1, "quantity", "2,5")
    borrador.set_tasa_iva("0,19")

    response = client.post("/api/v1/purchases/preview", json=borrador.payload_preview())
    assert response.status_code == 200
    data = response.json()
    locales = borrador.totales_locales()

    assert data["netAmount"] == locales.neto
    assert data["taxAmount"] == locales.iva
    assert data["totalAmount"] == locales.total
