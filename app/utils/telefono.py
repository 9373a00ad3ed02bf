# app/utils/telefono.py
"""Limpieza y formato de teléfonos chilenos (móvil: 9 1234 5678)."""


def limpiar_telefono(telefono: str) -> str:
    """Deja solo los dígitos."""
    if not telefono:
        return ""
    return "".join(c for c in str(telefono) if c.isdigit())


def formatear_telefono(telefono: str) -> str:
    """
    Formatea con espacios: "912345678" -> "9 1234 5678".

    Con dos dígitos o menos no se aplica formato (facilita el borrado
    mientras se escribe).
    """
    digitos = limpiar_telefono(telefono)
    if len(digitos) <= 2:
        return digitos

    formateado = f"{digitos[:1]} {digitos[1:]}"
    if len(formateado) > 6:
        formateado = f"{formateado[:6]} {formateado[6:]}"
    return formateado
