# app/crud/insumo.py
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from app.models.insumo import Insumo
from app.schemas.insumo import InsumoCreate

logger = logging.getLogger(__name__)


def get_insumo(db: Session, insumo_id: int) -> Optional[Insumo]:
    return db.query(Insumo).filter(Insumo.id == insumo_id).first()


def list_insumos(db: Session, skip: int = 0, limit: int = 100, termino: Optional[str] = None) -> List[Insumo]:
    """Lista insumos activos, filtrando por nombre si hay término."""
    query = db.query(Insumo).filter(Insumo.activo == True)
    if termino and termino.strip():
        query = query.filter(Insumo.nombre.ilike(f"%{termino.strip()}%"))
    return query.order_by(Insumo.nombre).offset(skip).limit(limit).all()


def create_insumo(db: Session, data: InsumoCreate) -> Insumo:
    insumo = Insumo(**data.model_dump())
    db.add(insumo)
    db.commit()
    db.refresh(insumo)
    logger.info(f"Insumo creado: ID={insumo.id}, Nombre={insumo.nombre}")
    return insumo
