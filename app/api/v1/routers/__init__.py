from fastapi import APIRouter

# Importa cada módulo de rutas
from app.api.v1.routers import (
    compras,
    proveedores,
    clientes,
    contactos,
    insumos,
    health,
)

# Router principal con prefijo global
# redirect_slashes=False: las rutas de colección se declaran sin "/" final
api_router = APIRouter(prefix="/api/v1", redirect_slashes=False)

# Endpoint raíz para verificar que la API funciona
@api_router.get("/", tags=["Root"])
def read_root():
    return {"message": "Bienvenido a la API v1 de Compras"}

# Registro de módulos de rutas
api_router.include_router(compras.router, prefix="/purchases", tags=["Compras"])
api_router.include_router(proveedores.router, prefix="/suppliers", tags=["Proveedores"])
api_router.include_router(clientes.router, prefix="/clients", tags=["Clientes"])
api_router.include_router(contactos.router, prefix="/contacts", tags=["Contactos"])
api_router.include_router(insumos.router, prefix="/consumables", tags=["Insumos"])
api_router.include_router(health.router, tags=["Health Check"])
