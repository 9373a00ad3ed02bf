"""
Tests del borrador de compra: edición de líneas, validación con claves
por campo, payloads y bloqueo de edición fuera de pending.
"""
from datetime import date
from decimal import Decimal

import pytest

from app.core.exceptions import EstadoInvalidoError, FormatoInvalidoError
from app.models.compra import EstadoCompra
from app.schemas.compra import CompraRead
from app.schemas.contacto import ProveedorRead
from app.schemas.insumo import InsumoRead
from app.services.borrador_compra import BorradorCompra, NoResuelta, Resuelta, id_referencia

pytestmark = pytest.mark.unit

HARINA = InsumoRead(id=1, nombre="Harina 25kg", precio_neto=Decimal("1000"))
AZUCAR = InsumoRead(id=2, nombre="Azúcar 1kg", precio_neto=Decimal("400"))
ANDES = ProveedorRead(id=5, rut="123456785", nombre="Distribuidora Andes")


@pytest.fixture
def borrador():
    return BorradorCompra(insumos=[HARINA, AZUCAR], tasa_iva=Decimal("0.19"))


def borrador_2000_400(borrador):
    borrador.set_contraparte(ANDES)
    i = borrador.agregar_item()
    borrador.actualizar_item(i, "item", 1)
    borrador.actualizar_item(i, "quantity", "2")
    j = borrador.agregar_item()
    borrador.actualizar_item(j, "item", AZUCAR)
    return borrador


class TestLineas:

    def test_linea_nueva(self, borrador):
        i = borrador.agregar_item()
        linea = borrador.items[i]
        assert linea.item is None
        assert (linea.cantidad, linea.precio_unitario, linea.descuento) == (1, 0, 0)

    def test_seleccionar_insumo_toma_precio(self, borrador):
        i = borrador.agregar_item()
        linea = borrador.actualizar_item(i, "item", 1)
        assert linea.item == Resuelta(HARINA)
        assert linea.precio_unitario == Decimal("1000")
        assert linea.subtotal == Decimal("1000")

    def test_seleccionar_insumo_con_cantidad_cero_pone_uno(self, borrador):
        i = borrador.agregar_item()
        borrador.actualizar_item(i, "quantity", "0")
        linea = borrador.actualizar_item(i, "item", 2)
        assert linea.cantidad == Decimal("1")

    def test_limpiar_insumo_deja_linea_en_cero(self, borrador):
        i = borrador.agregar_item()
        borrador.actualizar_item(i, "item", 1)
        borrador.actualizar_item(i, "discount", "100")
        linea = borrador.actualizar_item(i, "item", None)
        assert linea.item is None
        assert (linea.cantidad, linea.precio_unitario, linea.descuento, linea.subtotal) == (0, 0, 0, 0)

    def test_insumo_fuera_del_catalogo_queda_no_resuelto(self, borrador):
        i = borrador.agregar_item()
        linea = borrador.actualizar_item(i, "item", 77)
        assert linea.item == NoResuelta(77)
        assert id_referencia(linea.item) == 77

    def test_coma_decimal_y_texto_parcial(self, borrador):
        i = borrador.agregar_item()
        borrador.actualizar_item(i, "item", 1)
        assert borrador.actualizar_item(i, "quantity", "1,5").subtotal == Decimal("1500")
        assert borrador.actualizar_item(i, "quantity", "1,").subtotal == Decimal("0")

    def test_texto_invalido(self, borrador):
        i = borrador.agregar_item()
        with pytest.raises(FormatoInvalidoError):
            borrador.actualizar_item(i, "unitPrice", "abc")

    def test_campo_desconocido(self, borrador):
        i = borrador.agregar_item()
        with pytest.raises(ValueError):
            borrador.actualizar_item(i, "color", 1)

    def test_quitar_item(self, borrador):
        borrador_2000_400(borrador)
        borrador.quitar_item(0)
        assert len(borrador.items) == 1
        assert borrador.totales_locales().neto == Decimal("400")

    def test_notifica_cambios(self, borrador):
        cambios = []
        desuscribir = borrador.suscribir(lambda b, cambio: cambios.append(cambio))
        borrador.agregar_item()
        borrador.set_tasa_iva("0,19")
        borrador.set_tipo_documento("boleta")
        desuscribir()
        borrador.agregar_item()
        assert cambios == ["items", "taxRate", "documentType"]


class TestValidacion:

    def test_borrador_vacio(self, borrador):
        errores = borrador.validar().errores
        assert set(errores) == {"counterparty", "items"}

    def test_errores_por_linea(self, borrador):
        borrador.set_contraparte(5)
        i = borrador.agregar_item()
        borrador.actualizar_item(i, "quantity", "0")
        borrador.actualizar_item(i, "unitPrice", "-1")
        borrador.actualizar_item(i, "discount", "-5")
        errores = borrador.validar().errores
        assert set(errores) == {"item_0_item", "item_0_quantity", "item_0_unitPrice", "item_0_discount"}

    def test_borrador_valido(self, borrador):
        assert borrador_2000_400(borrador).validar().es_valido


class TestTotalesYPayloads:

    def test_totales_locales(self, borrador):
        totales = borrador_2000_400(borrador).totales_locales()
        assert (totales.neto, totales.iva, totales.total) == (2400, 456, 2856)

    def test_totales_ignoran_lineas_invalidas(self, borrador):
        borrador_2000_400(borrador)
        borrador.agregar_item()
        assert borrador.totales_locales().total == Decimal("2856")

    def test_payload_envio_omite_descuento_cero(self, borrador):
        borrador_2000_400(borrador)
        borrador.actualizar_item(1, "discount", "50")
        borrador.set_fecha(date(2024, 3, 15))
        payload = borrador.payload_envio()
        assert payload == {
            "documentType": "factura",
            "date": "2024-03-15",
            "counterpartyId": 5,
            "items": [
                {"item": 1, "quantity": 2, "unitPrice": 1000},
                {"item": 2, "quantity": 1, "unitPrice": 400, "discount": 50},
            ],
            "taxRate": 0.19,
        }

    def test_payload_preview_solo_lineas_validas(self, borrador):
        borrador_2000_400(borrador)
        borrador.agregar_item()
        assert len(borrador.payload_preview()["items"]) == 2


def compra_servidor(estado="pending"):
    return CompraRead.model_validate({
        "id": 9,
        "documentType": "factura",
        "documentNumber": "F-000009",
        "correlative": 9,
        "date": "2024-03-15",
        "counterpartyId": 5,
        "items": [{"id": 1, "item": 1, "quantity": 2, "unitPrice": 1000, "subtotal": 2000}],
        "taxRate": 0.19,
        "netAmount": 2000,
        "taxAmount": 380,
        "totalAmount": 2380,
        "status": estado,
    })


class TestDesdeCompra:

    def test_carga_documento_guardado(self):
        borrador = BorradorCompra.desde_compra(compra_servidor(), insumos=[HARINA])
        assert borrador.compra_id == 9
        assert not borrador.es_nuevo
        assert borrador.contraparte == NoResuelta(5)
        assert borrador.items[0].item == Resuelta(HARINA)
        assert borrador.totales_locales().total == Decimal("2380")

    @pytest.mark.parametrize("estado", ["received", "rejected"])
    def test_compra_terminal_no_se_edita(self, estado):
        borrador = BorradorCompra.desde_compra(compra_servidor(estado))
        assert borrador.estado == EstadoCompra(estado)
        assert not borrador.es_editable
        with pytest.raises(EstadoInvalidoError):
            borrador.agregar_item()
        with pytest.raises(EstadoInvalidoError):
            borrador.actualizar_item(0, "quantity", "5")
        with pytest.raises(EstadoInvalidoError):
            borrador.set_contraparte(ANDES)
