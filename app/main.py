from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.api.v1 import api_router
from app.api.v1.errores import detalle_error
from app.core.lifespan import lifespan
from app.utils.cors import setup_cors
from app.utils.logger import logger


def _clave_campo(loc) -> str:
    """("body", "items", 0, "quantity") -> "items.0.quantity" """
    partes = [str(p) for p in loc if p not in ("body", "query", "path")]
    return ".".join(partes) or "request"


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """422 con el mismo formato que los errores de dominio: {code, message, errors}."""
    errores = {_clave_campo(e.get("loc", ())): e.get("msg", "inválido") for e in exc.errors()}
    logger.warning(f"Solicitud inválida {request.method} {request.url.path}: {errores}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": detalle_error("validation", "Datos inválidos", errores)},
    )


def create_app() -> FastAPI:
    """
    Factory function que crea y configura la aplicación FastAPI.
    """
    app = FastAPI(
        title="Compras Backend",
        version="1.0.0",
        description="Núcleo transaccional de compras: proveedores, clientes, insumos y compras",
        lifespan=lifespan,
    )

    # --- Configuración CORS ---
    setup_cors(app)

    # --- Errores de validación con mapa campo -> mensaje ---
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # --- Rutas centralizadas ---
    app.include_router(api_router)

    return app


app = create_app()
