# app/utils/logger.py
import logging

from app.core.config import settings

logger = logging.getLogger("compras_backend")
logger.setLevel(settings.log_level.upper())
if not logger.handlers:
    ch = logging.StreamHandler()
    fmt = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
    formatter = logging.Formatter(fmt)
    ch.setFormatter(formatter)
    logger.addHandler(ch)
