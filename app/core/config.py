# app/core/config.py
from decimal import Decimal
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # --- Core ---
    environment: str = Field("development", description="development | production | test")
    log_level: str = Field("INFO")

    # --- Base de datos ---
    database_url: str = Field("sqlite:///./compras.db")

    # --- CORS ---
    backend_cors_origins: List[str] | str = Field("")

    # --- Reglas de negocio ---
    # IVA Chile. Se usa cuando la compra no trae tasa explícita.
    tasa_iva_default: Decimal = Field(Decimal("0.19"), ge=0, le=1)

    # ============================================================================
    # CLIENTE DE LA API (usado por el núcleo del lado del navegador/escritorio)
    # ============================================================================
    api_base_url: str = Field("http://localhost:8000/api/v1")
    http_timeout_segundos: float = Field(15.0, gt=0)
    http_max_reintentos: int = Field(3, ge=0)

    # Ventana de silencio antes de pedir el preview de totales al servidor
    preview_debounce_segundos: float = Field(0.5, ge=0)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()
