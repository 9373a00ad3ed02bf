# app/models/compra.py
from sqlalchemy import (
    Column, BigInteger, String, Date, Numeric, Enum, Boolean, ForeignKey,
    DateTime, Integer, Text, Index
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.db.base import Base, IdBigInt
import enum
from decimal import Decimal


class EstadoCompra(enum.Enum):
    """
    Estados de una compra.

    - pending: Estado inicial. Única fase en que la compra se puede editar o eliminar.
    - received: Mercadería recibida (terminal).
    - rejected: Compra rechazada (terminal).

    Transiciones permitidas: pending -> received | rejected.
    Ver app.services.ciclo_vida_compra.
    """
    pending = "pending"
    received = "received"
    rejected = "rejected"


class TipoDocumento(enum.Enum):
    """Tipo de documento tributario de la compra."""
    boleta = "boleta"
    factura = "factura"


# Prefijo del número de documento según tipo: F-000001, B-000001
PREFIJO_DOCUMENTO = {
    TipoDocumento.factura: "F",
    TipoDocumento.boleta: "B",
}


class Compra(Base):
    """
    Compra a un proveedor.

    Invariante de montos (se recalculan siempre juntos):
        neto  = Σ items.subtotal
        iva   = round(neto × tasa_iva)
        total = neto + iva
    """
    __tablename__ = "compras"

    # ==================== IDENTIFICACIÓN ====================
    id = Column(IdBigInt, primary_key=True, autoincrement=True)

    tipo_documento = Column(
        Enum(TipoDocumento),
        nullable=False,
        default=TipoDocumento.factura,
        comment="boleta | factura"
    )

    correlativo = Column(
        Integer,
        nullable=False,
        unique=True,
        comment="Correlativo asignado por el servidor (creciente)"
    )

    numero_documento = Column(
        String(20),
        nullable=False,
        unique=True,
        comment="Número derivado de tipo y correlativo (ej: F-000001)"
    )

    fecha = Column(Date, nullable=False, comment="Fecha del documento")

    proveedor_id = Column(
        BigInteger,
        ForeignKey("proveedores.id"),
        nullable=False,
        index=True,
        comment="Contraparte: registro del rol proveedor"
    )

    # ==================== MONTOS ====================
    tasa_iva = Column(Numeric(5, 4, asdecimal=True), nullable=False, default=Decimal("0.19"))
    neto = Column(Numeric(15, 4, asdecimal=True), nullable=False, default=0)
    iva = Column(Numeric(15, 4, asdecimal=True), nullable=False, default=0)
    total = Column(Numeric(15, 4, asdecimal=True), nullable=False, default=0)

    # ==================== ESTADO ====================
    estado = Column(Enum(EstadoCompra), default=EstadoCompra.pending, nullable=False, index=True)

    observaciones = Column(Text, nullable=True)

    eliminada = Column(
        Boolean,
        nullable=False,
        default=False,
        server_default="0",
        comment="Soft delete: la compra queda en BD pero no se lista"
    )

    # ==================== AUDITORÍA ====================
    creado_en = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    actualizado_en = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    # ==================== RELACIONES ====================
    proveedor = relationship("Proveedor", back_populates="compras", lazy="joined")
    items = relationship(
        "CompraItem",
        back_populates="compra",
        order_by="CompraItem.numero_linea",
        cascade="all, delete-orphan",
        lazy="selectin"
    )

    __table_args__ = (
        Index('idx_compra_proveedor_fecha', 'proveedor_id', 'fecha'),
    )

    def __repr__(self) -> str:
        return f"<Compra(id={self.id}, numero={self.numero_documento}, estado={self.estado})>"
