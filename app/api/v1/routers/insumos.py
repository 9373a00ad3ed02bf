from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.crud import insumo as crud_insumo
from app.db.session import get_db
from app.schemas.insumo import InsumoCreate, InsumoRead

router = APIRouter(tags=["Insumos"])


@router.get("", response_model=List[InsumoRead], summary="Catálogo de insumos")
def list_all(
    term: Optional[str] = Query(None),
    skip: int = 0,
    limit: int = Query(100, le=500),
    db: Session = Depends(get_db),
):
    return crud_insumo.list_insumos(db, skip=skip, limit=limit, termino=term)


@router.post("", response_model=InsumoRead, status_code=status.HTTP_201_CREATED, summary="Crear insumo")
def create(payload: InsumoCreate, db: Session = Depends(get_db)):
    return crud_insumo.create_insumo(db, payload)
