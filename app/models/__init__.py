from app.db.base import Base

# Importa modelos para que se registren en Base.metadata
from .proveedor import Proveedor
from .cliente import Cliente
from .insumo import Insumo
from .compra import Compra, EstadoCompra, TipoDocumento
from .compra_item import CompraItem

__all__ = [
    "Proveedor",
    "Cliente",
    "Insumo",
    "Compra",
    "EstadoCompra",
    "TipoDocumento",
    "CompraItem",
    "Base",
]
