# app/models/proveedor.py
"""
Modelo Proveedor - Rol "proveedor" de una contraparte

Una contraparte (persona o empresa) se identifica por su RUT canónico.
Cada rol que cumple tiene su propio registro:
- proveedores: rol proveedor (este modelo)
- clientes: rol cliente (ver app.models.cliente)

Los dos registros de un mismo RUT NUNCA se fusionan ni se eliminan:
- Quitar el rol -> activo=False (soft delete)
- Volver a asignar el rol -> se reactiva el mismo registro
"""

from sqlalchemy import Column, String, DateTime, Boolean, text
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.db.base import Base, IdBigInt


class Proveedor(Base):
    """
    Registro del rol proveedor.

    Campos principales:
    - id: Identificador único (supplierId en la API)
    - rut: RUT canónico, cuerpo + DV sin separadores (ej: 123456785)
    - nombre, email, telefono, direccion: datos de contacto
    - activo: Flag del rol (False = rol quitado)

    Relaciones:
    - compras: One-to-Many con Compra
    """

    __tablename__ = "proveedores"

    # ==================== PRIMARY KEY ====================
    id = Column(
        IdBigInt,
        primary_key=True,
        autoincrement=True,
        comment="Identificador único del proveedor"
    )

    # ==================== IDENTIFICACIÓN ====================
    rut = Column(
        String(12),
        nullable=False,
        unique=True,
        index=True,
        comment="RUT canónico sin puntos ni guión (ej: 123456785)"
    )

    nombre = Column(
        String(255),
        nullable=False,
        comment="Nombre o razón social"
    )

    # ==================== INFORMACIÓN DE CONTACTO ====================
    email = Column(String(255), nullable=True, comment="Email de contacto")
    telefono = Column(String(50), nullable=True, comment="Teléfono (solo dígitos)")
    direccion = Column(String(255), nullable=True, comment="Dirección física")

    # ==================== ESTADO ====================
    activo = Column(
        Boolean,
        server_default=text("1"),
        nullable=False,
        default=True,
        comment="Rol proveedor vigente (False = rol quitado)"
    )

    # ==================== AUDITORÍA ====================
    creado_en = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        comment="Timestamp de creación en BD"
    )

    actualizado_en = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
        comment="Timestamp de última modificación"
    )

    # ==================== RELACIONES ====================
    compras = relationship(
        "Compra",
        back_populates="proveedor",
        lazy="select"
    )

    def __repr__(self) -> str:
        estado = "ACTIVO" if self.activo else "INACTIVO"
        return f"<Proveedor(id={self.id}, rut={self.rut}, nombre={self.nombre}, estado={estado})>"
