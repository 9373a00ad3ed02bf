"""
Configuración central de pytest y fixtures compartidas para todos los tests.

Proporciona:
- Motor SQLite en memoria (StaticPool: una sola conexión compartida)
- Sesión de base de datos de prueba
- Cliente HTTP de prueba con get_db apuntando a la BD en memoria
- Datos base: proveedor, cliente e insumos
"""
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app import models  # noqa: F401  (registra las tablas en Base.metadata)
from app.db.base import Base
from app.db.session import get_db
from app.main import app
from app.models.cliente import Cliente
from app.models.insumo import Insumo
from app.models.proveedor import Proveedor


# ==================== FIXTURES GLOBALES ====================

@pytest.fixture
def engine():
    """Motor SQLite en memoria, con las tablas creadas desde los modelos."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    """Sesión de base de datos para pruebas.

    Cada test recibe una BD vacía (el motor se crea por test).
    """
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    yield session

    session.rollback()
    session.close()


@pytest.fixture
def client(engine):
    """Cliente HTTP para pruebas de endpoints, con get_db sobre la BD en memoria."""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


# ==================== DATOS BASE ====================

@pytest.fixture
def proveedor(db: Session) -> Proveedor:
    """Proveedor activo con RUT 12.345.678-5."""
    proveedor = Proveedor(rut="123456785", nombre="Distribuidora Andes", email="ventas@andes.cl")
    db.add(proveedor)
    db.commit()
    db.refresh(proveedor)
    return proveedor


@pytest.fixture
def cliente(db: Session) -> Cliente:
    """Cliente activo con RUT 11.111.111-1."""
    cliente = Cliente(rut="111111111", nombre="Comercial Sur", telefono="912345678")
    db.add(cliente)
    db.commit()
    db.refresh(cliente)
    return cliente


@pytest.fixture
def insumos(db: Session):
    """Dos insumos: precio 1000 y 400."""
    harina = Insumo(nombre="Harina 25kg", precio_neto=Decimal("1000"), stock=10)
    azucar = Insumo(nombre="Azúcar 1kg", precio_neto=Decimal("400"), stock=50)
    db.add_all([harina, azucar])
    db.commit()
    db.refresh(harina)
    db.refresh(azucar)
    return harina, azucar


# ==================== CONFIGURACIÓN DE PYTEST ====================

def pytest_configure(config):
    """Configuración inicial de pytest.

    Define marcadores personalizados para categorizar tests.
    """
    config.addinivalue_line(
        "markers",
        "integration: pruebas de integración (API + BD en memoria)"
    )
    config.addinivalue_line(
        "markers",
        "unit: pruebas unitarias (pueden usar mocks)"
    )
    config.addinivalue_line(
        "markers",
        "slow: pruebas que tardan más tiempo"
    )
