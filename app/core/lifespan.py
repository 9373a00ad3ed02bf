from contextlib import asynccontextmanager
from fastapi import FastAPI

from app.db.base import Base
from app.db.session import engine
from app.utils.logger import logger
from app.core.config import settings
from app import models  # noqa: F401  registra las tablas en Base.metadata


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Maneja startup/shutdown de la app.

    Fuera de producción crea las tablas que falten; en producción el
    esquema lo administra Alembic (alembic upgrade head).
    """
    logger.info(" Iniciando aplicación Compras Backend...")

    if settings.environment != "production":
        Base.metadata.create_all(bind=engine)
        logger.info(" Tablas verificadas (create_all)")

    logger.info(f" Tasa IVA por defecto: {settings.tasa_iva_default}")
    logger.info(" Startup completado correctamente")

    # La app se levanta aquí
    yield

    # --- Shutdown ---
    logger.info(" Aplicación apagándose...")
    engine.dispose()
    logger.info(" Aplicación cerrada correctamente")
