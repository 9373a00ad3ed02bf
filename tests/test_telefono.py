"""Tests de limpieza y formato de teléfonos."""
import pytest

from app.utils.telefono import formatear_telefono, limpiar_telefono

pytestmark = pytest.mark.unit


def test_limpiar_deja_solo_digitos():
    assert limpiar_telefono("+56 9 1234-5678") == "56912345678"
    assert limpiar_telefono("") == ""
    assert limpiar_telefono(None) == ""


def test_formato_movil():
    assert formatear_telefono("912345678") == "9 1234 5678"


def test_formato_es_idempotente():
    assert formatear_telefono(formatear_telefono("912345678")) == "9 1234 5678"


@pytest.mark.parametrize("entrada", ["", "9", "91"])
def test_dos_digitos_o_menos_sin_formato(entrada):
    assert formatear_telefono(entrada) == entrada


def test_formato_parcial():
    assert formatear_telefono("9123") == "9 123"
    assert formatear_telefono("912345") == "9 1234 5"
