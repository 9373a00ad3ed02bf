"""
Migración: Esquema inicial del núcleo de compras

Tablas:
- proveedores: registro del rol proveedor (RUT canónico único, flag activo)
- clientes: registro del rol cliente (RUT canónico único, flag activo)
- insumos: catálogo de insumos con precio neto por defecto
- compras: cabecera con correlativo, número de documento, montos y estado
- compra_items: líneas de la compra (único por compra + número de línea)

Los montos se guardan en Numeric (nunca float).
Reversión: Supported (DOWN elimina las tablas en orden inverso)
"""

from alembic import op
import sqlalchemy as sa

# Metadata
revision = "compras_0001"
down_revision = None
branch_labels = None
depends_on = None

ESTADOS_COMPRA = ("pending", "received", "rejected")
TIPOS_DOCUMENTO = ("boleta", "factura")

# Igual que app.db.base.IdBigInt
ID_BIGINT = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def _columnas_contacto():
    return [
        sa.Column("id", ID_BIGINT, primary_key=True, autoincrement=True),
        sa.Column("rut", sa.String(12), nullable=False),
        sa.Column("nombre", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("telefono", sa.String(50), nullable=True),
        sa.Column("direccion", sa.String(255), nullable=True),
        sa.Column("activo", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("creado_en", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("actualizado_en", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Paso 1: contrapartes (un registro por rol, identidad = RUT)
    op.create_table("proveedores", *_columnas_contacto())
    op.create_index("ix_proveedores_rut", "proveedores", ["rut"], unique=True)

    op.create_table("clientes", *_columnas_contacto())
    op.create_index("ix_clientes_rut", "clientes", ["rut"], unique=True)

    # Paso 2: catálogo
    op.create_table(
        "insumos",
        sa.Column("id", ID_BIGINT, primary_key=True, autoincrement=True),
        sa.Column("nombre", sa.String(255), nullable=False),
        sa.Column("descripcion", sa.String(1000), nullable=True),
        sa.Column("precio_neto", sa.Numeric(15, 2), nullable=False, server_default="0"),
        sa.Column("stock", sa.Integer(), nullable=True),
        sa.Column("activo", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("creado_en", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_insumos_nombre", "insumos", ["nombre"])

    # Paso 3: compras
    op.create_table(
        "compras",
        sa.Column("id", ID_BIGINT, primary_key=True, autoincrement=True),
        sa.Column("tipo_documento", sa.Enum(*TIPOS_DOCUMENTO, name="tipodocumento"), nullable=False),
        sa.Column("correlativo", sa.Integer(), nullable=False, unique=True),
        sa.Column("numero_documento", sa.String(20), nullable=False, unique=True),
        sa.Column("fecha", sa.Date(), nullable=False),
        sa.Column("proveedor_id", sa.BigInteger(), sa.ForeignKey("proveedores.id"), nullable=False),
        sa.Column("tasa_iva", sa.Numeric(5, 4), nullable=False),
        sa.Column("neto", sa.Numeric(15, 4), nullable=False),
        sa.Column("iva", sa.Numeric(15, 4), nullable=False),
        sa.Column("total", sa.Numeric(15, 4), nullable=False),
        sa.Column("estado", sa.Enum(*ESTADOS_COMPRA, name="estadocompra"), nullable=False),
        sa.Column("observaciones", sa.Text(), nullable=True),
        sa.Column("eliminada", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("creado_en", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("actualizado_en", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_compras_proveedor_id", "compras", ["proveedor_id"])
    op.create_index("ix_compras_estado", "compras", ["estado"])
    op.create_index("idx_compra_proveedor_fecha", "compras", ["proveedor_id", "fecha"])

    # Paso 4: líneas
    op.create_table(
        "compra_items",
        sa.Column("id", ID_BIGINT, primary_key=True, autoincrement=True),
        sa.Column(
            "compra_id", sa.BigInteger(),
            sa.ForeignKey("compras.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("numero_linea", sa.Integer(), nullable=False),
        sa.Column("insumo_id", sa.BigInteger(), sa.ForeignKey("insumos.id"), nullable=False),
        sa.Column("cantidad", sa.Numeric(15, 4), nullable=False),
        sa.Column("precio_unitario", sa.Numeric(15, 4), nullable=False),
        sa.Column("descuento", sa.Numeric(15, 4), nullable=False, server_default="0"),
        sa.Column("subtotal", sa.Numeric(15, 4), nullable=False),
    )
    op.create_index("ix_compra_items_compra_id", "compra_items", ["compra_id"])
    op.create_index("idx_compra_item_linea", "compra_items", ["compra_id", "numero_linea"], unique=True)

    print("[OK] Esquema de compras creado")


def downgrade() -> None:
    op.drop_table("compra_items")
    op.drop_table("compras")
    op.drop_table("insumos")
    op.drop_table("clientes")
    op.drop_table("proveedores")

    # Tipos ENUM (solo existen como tipo propio en PostgreSQL)
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        sa.Enum(name="estadocompra").drop(bind, checkfirst=True)
        sa.Enum(name="tipodocumento").drop(bind, checkfirst=True)
