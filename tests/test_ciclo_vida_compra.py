"""Tests de la máquina de estados de compras."""
import pytest

from app.core.exceptions import EstadoInvalidoError, FormatoInvalidoError
from app.models.compra import EstadoCompra
from app.services.ciclo_vida_compra import CicloVidaCompra, TRANSICIONES_PERMITIDAS, como_estado

pytestmark = pytest.mark.unit

LEGALES = {
    (EstadoCompra.pending, EstadoCompra.received),
    (EstadoCompra.pending, EstadoCompra.rejected),
}


class TestTransiciones:

    def test_tabla_completa(self):
        """Test: solo pending -> received|rejected es legal (incluye auto-transiciones)"""
        for desde in EstadoCompra:
            for hacia in EstadoCompra:
                assert CicloVidaCompra.puede_transicionar(desde, hacia) is ((desde, hacia) in LEGALES)

    def test_acepta_strings(self):
        assert CicloVidaCompra.puede_transicionar("pending", "received")
        assert CicloVidaCompra.validar_transicion("PENDING", "rejected") == EstadoCompra.rejected

    @pytest.mark.parametrize("desde,hacia", [
        ("received", "rejected"),
        ("rejected", "pending"),
        ("pending", "pending"),
        ("received", "received"),
    ])
    def test_transicion_ilegal(self, desde, hacia):
        with pytest.raises(EstadoInvalidoError):
            CicloVidaCompra.validar_transicion(desde, hacia)

    def test_estados_terminales(self):
        assert not CicloVidaCompra.es_terminal(EstadoCompra.pending)
        assert CicloVidaCompra.es_terminal(EstadoCompra.received)
        assert CicloVidaCompra.es_terminal(EstadoCompra.rejected)
        assert set(TRANSICIONES_PERMITIDAS) == set(EstadoCompra)

    def test_estado_desconocido(self):
        with pytest.raises(FormatoInvalidoError):
            como_estado("cancelled")


class TestEditabilidad:

    def test_pending_es_editable(self):
        assert CicloVidaCompra.es_editable("pending")
        CicloVidaCompra.validar_editable(EstadoCompra.pending)

    @pytest.mark.parametrize("estado", ["received", "rejected"])
    def test_terminal_no_editable(self, estado):
        assert not CicloVidaCompra.es_editable(estado)
        with pytest.raises(EstadoInvalidoError):
            CicloVidaCompra.validar_editable(estado)

    def test_eliminada_no_editable(self):
        assert not CicloVidaCompra.es_editable("pending", eliminada=True)
        with pytest.raises(EstadoInvalidoError):
            CicloVidaCompra.validar_editable("pending", eliminada=True)
