# app/models/cliente.py
"""
Modelo Cliente - Rol "cliente" de una contraparte.

Espejo de Proveedor: mismo RUT canónico, registro independiente.
Si un RUT existe en ambas tablas con activo=True, la contraparte
tiene los dos roles.
"""

from sqlalchemy import Column, String, DateTime, Boolean, text
from sqlalchemy.sql import func
from app.db.base import Base, IdBigInt


class Cliente(Base):
    __tablename__ = "clientes"

    # ==================== PRIMARY KEY ====================
    id = Column(
        IdBigInt,
        primary_key=True,
        autoincrement=True,
        comment="Identificador único del cliente"
    )

    # ==================== IDENTIFICACIÓN ====================
    rut = Column(
        String(12),
        nullable=False,
        unique=True,
        index=True,
        comment="RUT canónico sin puntos ni guión"
    )

    nombre = Column(String(255), nullable=False, comment="Nombre o razón social")

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
        comment="Rol cliente vigente (False = rol quitado)"
    )

    # ==================== AUDITORÍA ====================
    creado_en = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    actualizado_en = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    def __repr__(self) -> str:
        estado = "ACTIVO" if self.activo else "INACTIVO"
        return f"<Cliente(id={self.id}, rut={self.rut}, nombre={self.nombre}, estado={estado})>"
