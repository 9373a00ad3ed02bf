# app/models/insumo.py
"""
Modelo Insumo - Catálogo de productos/insumos comprables.

precio_neto es el precio unitario sugerido al seleccionar el insumo
en una línea de compra.
"""

from sqlalchemy import Column, String, Numeric, Integer, DateTime, Boolean, text
from sqlalchemy.sql import func
from app.db.base import Base, IdBigInt


class Insumo(Base):
    __tablename__ = "insumos"

    id = Column(IdBigInt, primary_key=True, autoincrement=True)
    nombre = Column(String(255), nullable=False, index=True, comment="Nombre del insumo")
    descripcion = Column(String(1000), nullable=True)

    precio_neto = Column(
        Numeric(15, 2, asdecimal=True),
        nullable=False,
        default=0,
        server_default="0",
        comment="Precio neto unitario por defecto (CLP)"
    )

    stock = Column(Integer, nullable=True, comment="Stock disponible (opcional)")

    activo = Column(Boolean, server_default=text("1"), nullable=False, default=True)
    creado_en = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self) -> str:
        return f"<Insumo(id={self.id}, nombre={self.nombre}, precio_neto={self.precio_neto})>"
