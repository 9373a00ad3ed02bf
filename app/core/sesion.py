# app/core/sesion.py
"""
Sesión del usuario del lado cliente.

Se inyecta explícitamente en ClienteApiCompras (no hay estado global):
cada cliente HTTP sabe con qué token y en nombre de quién habla.
"""
from dataclasses import dataclass
from typing import Dict, Optional


@dataclass(frozen=True)
class SesionUsuario:
    token: Optional[str] = None
    usuario: Optional[str] = None

    def headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers
