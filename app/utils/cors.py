from fastapi.middleware.cors import CORSMiddleware
from fastapi import FastAPI
from app.core.config import settings


def origenes_permitidos() -> list:
    """Orígenes de BACKEND_CORS_ORIGINS (lista o string separado por comas)."""
    origenes = settings.backend_cors_origins
    if not origenes:
        return []
    if isinstance(origenes, str):
        return [o.strip() for o in origenes.split(",") if o.strip()]
    return list(origenes)


def setup_cors(app: FastAPI) -> None:
    """
    Configura CORS para la aplicación FastAPI de forma centralizada.

    En desarrollo o sin configuración se permite cualquier origen, pero
    entonces sin credenciales (el comodín "*" no admite cookies).
    """
    origins = origenes_permitidos()
    comodin = not origins or settings.environment == "development"

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if comodin else origins,
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=not comodin,
    )
