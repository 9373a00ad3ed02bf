"""
Validador y formateador de RUT chileno (SII).

Implementa el algoritmo Módulo 11 para calcular y validar el dígito
verificador (DV) de un RUT.

Todos los RUT del sistema se almacenan y transmiten en forma CANÓNICA:
  "XXXXXXXXD" -> solo dígitos del cuerpo + DV en mayúscula (ej: "123456785")
El formato con puntos y guión ("12.345.678-5") es solo de presentación.
"""

from typing import Tuple

from app.core.exceptions import FormatoInvalidoError

CARACTERES_RUT = "0123456789K"


class RutValidator:
    """
    Validador y calculador del dígito verificador para RUT chilenos.

    Algoritmo: Módulo 11 con serie multiplicadora 2, 3, 4, 5, 6, 7
    aplicada de derecha a izquierda (se reinicia después de 7).
    """

    # Serie multiplicadora (se repite cíclicamente)
    MULTIPLICADOR_MIN = 2
    MULTIPLICADOR_MAX = 7

    @staticmethod
    def limpiar_rut(rut: str) -> str:
        """
        Elimina todo lo que no sea dígito o K, y pasa la K a mayúscula.

        No valida nada: se usa también para máscaras de escritura en vivo.

        Example:
            >>> RutValidator.limpiar_rut("12.345.678-k")
            "12345678K"
        """
        if not rut:
            return ""
        return "".join(c for c in str(rut).upper() if c in CARACTERES_RUT)

    @staticmethod
    def calcular_digito_verificador(cuerpo: str) -> str:
        """
        Calcula el dígito verificador (DV) de un RUT.

        Algoritmo:
        1. Recorre los dígitos de derecha a izquierda
        2. Multiplica por 2, 3, 4, 5, 6, 7, 2, 3, ... y suma
        3. resultado = 11 - (suma % 11)
        4. 11 -> "0", 10 -> "K", otro -> el dígito

        Args:
            cuerpo: Dígitos del RUT sin DV (se toleran puntos y espacios)

        Returns:
            "0"-"9" o "K"

        Raises:
            FormatoInvalidoError: Si el cuerpo está vacío o no es numérico

        Example:
            >>> RutValidator.calcular_digito_verificador("12345678")
            "5"
        """
        cuerpo_limpio = str(cuerpo).strip().replace(".", "").replace(" ", "")

        if not cuerpo_limpio:
            raise FormatoInvalidoError("El cuerpo del RUT no puede estar vacío")

        if not cuerpo_limpio.isdigit():
            raise FormatoInvalidoError(
                f"El cuerpo del RUT debe contener solo dígitos. Recibido: '{cuerpo}'"
            )

        suma = 0
        factor = RutValidator.MULTIPLICADOR_MIN
        for digito in reversed(cuerpo_limpio):
            suma += int(digito) * factor
            factor = (
                RutValidator.MULTIPLICADOR_MIN
                if factor == RutValidator.MULTIPLICADOR_MAX
                else factor + 1
            )

        resultado = 11 - (suma % 11)

        if resultado == 11:
            return "0"
        if resultado == 10:
            return "K"
        return str(resultado)

    @staticmethod
    def normalizar_rut(rut: str) -> str:
        """
        Normaliza un RUT a su forma canónica: cuerpo + DV, sin separadores.

        Acepta RUT en varios formatos:
        - "12.345.678-5" -> "123456785"
        - "12345678-5"   -> "123456785"
        - "7654321-k"    -> "7654321K"

        NO verifica el DV (para eso está es_valido); solo garantiza que
        la forma sea comparable.

        Raises:
            FormatoInvalidoError: Si el cuerpo queda vacío o no es numérico
        """
        rut_limpio = RutValidator.limpiar_rut(rut)

        cuerpo = rut_limpio[:-1]
        if not cuerpo:
            raise FormatoInvalidoError(f"RUT incompleto. Recibido: '{rut}'")

        if not cuerpo.isdigit():
            raise FormatoInvalidoError(
                f"El cuerpo del RUT debe contener solo dígitos. Recibido: '{rut}'"
            )

        return rut_limpio

    @staticmethod
    def es_valido(rut: str) -> bool:
        """True si el RUT se puede normalizar y su DV es correcto."""
        try:
            canonico = RutValidator.normalizar_rut(rut)
        except FormatoInvalidoError:
            return False
        return canonico[-1] == RutValidator.calcular_digito_verificador(canonico[:-1])

    @staticmethod
    def validar_rut(rut: str) -> Tuple[bool, str]:
        """
        Valida un RUT y retorna (es_válido, rut_canónico_o_error)

        Example:
            >>> es_valido, resultado = RutValidator.validar_rut("12.345.678-5")
            >>> if es_valido:
            ...     print(f"RUT válido: {resultado}")
        """
        try:
            canonico = RutValidator.normalizar_rut(rut)
        except FormatoInvalidoError as e:
            return False, str(e)

        dv_calculado = RutValidator.calcular_digito_verificador(canonico[:-1])
        if canonico[-1] != dv_calculado:
            return False, (
                f"Dígito verificador incorrecto para RUT {canonico[:-1]}. "
                f"Proporcionado: {canonico[-1]}, Correcto: {dv_calculado}"
            )
        return True, canonico

    @staticmethod
    def formatear_rut(rut: str) -> str:
        """
        Formatea un RUT con puntos de miles y guión: "12.345.678-5".

        Nunca falla: con entrada incompleta devuelve el mejor formato
        parcial posible, porque también alimenta la máscara del input
        mientras el usuario escribe.

        Example:
            >>> RutValidator.formatear_rut("123456785")
            "12.345.678-5"
            >>> RutValidator.formatear_rut("1")
            "1"
        """
        rut_limpio = RutValidator.limpiar_rut(rut)
        if not rut_limpio:
            return ""

        dv = rut_limpio[-1]
        cuerpo = rut_limpio[:-1]
        if not cuerpo:
            return rut_limpio

        grupos = []
        while len(cuerpo) > 3:
            grupos.insert(0, cuerpo[-3:])
            cuerpo = cuerpo[:-3]
        grupos.insert(0, cuerpo)

        return f"{'.'.join(grupos)}-{dv}"


# Instancia compartida para usar en toda la aplicación
rut_validator = RutValidator()
