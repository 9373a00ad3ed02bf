# app/models/compra_item.py
"""
Líneas de una compra.

subtotal = max(0, cantidad × precio_unitario − descuento), calculado por
app.services.calculo_montos y guardado junto a la línea.
"""

from sqlalchemy import Column, BigInteger, Numeric, Integer, ForeignKey, Index
from sqlalchemy.orm import relationship
from app.db.base import Base, IdBigInt


class CompraItem(Base):
    __tablename__ = "compra_items"

    # ============================================================================
    # IDENTIFICACIÓN
    # ============================================================================
    id = Column(IdBigInt, primary_key=True, autoincrement=True)

    compra_id = Column(
        BigInteger,
        ForeignKey("compras.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="FK a la compra padre"
    )

    numero_linea = Column(Integer, nullable=False, comment="Orden de la línea (base 0)")

    insumo_id = Column(
        BigInteger,
        ForeignKey("insumos.id"),
        nullable=False,
        comment="Insumo comprado"
    )

    # ============================================================================
    # CANTIDADES Y PRECIOS
    # ============================================================================
    cantidad = Column(Numeric(15, 4), nullable=False, default=1)
    precio_unitario = Column(Numeric(15, 4), nullable=False, default=0)
    descuento = Column(Numeric(15, 4), nullable=False, default=0, server_default="0")
    subtotal = Column(Numeric(15, 4), nullable=False, default=0)

    # ============================================================================
    # RELATIONSHIPS
    # ============================================================================
    compra = relationship("Compra", back_populates="items")
    insumo = relationship("Insumo", lazy="joined")

    __table_args__ = (
        Index('idx_compra_item_linea', 'compra_id', 'numero_linea', unique=True),
    )
