"""Create ledger collections: usuarios, productos, clientes, transacciones, plus ledger_revisions

Revision ID: 20261019_ledger_collections
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_ledger_collections"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "ledger_revisions",
        sa.Column("collection", sa.String(32), nullable=False),
        sa.Column("revision", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.PrimaryKeyConstraint("collection"),
    )

    op.create_table(
        "usuarios",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("pin", sa.String(16), nullable=False),
        sa.Column("role", sa.String(32), nullable=False, server_default="staff"),
        sa.Column("avatar_url", sa.String(512), nullable=True),
        sa.Column("permissions_mask", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "productos",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("price", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("stock", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("productos", schema=None) as batch_op:
        batch_op.create_index("ix_productos_name", ["name"], unique=False)

    op.create_table(
        "clientes",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("debt", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("clientes", schema=None) as batch_op:
        batch_op.create_index("ix_clientes_name", ["name"], unique=False)

    op.create_table(
        "transacciones",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("type", sa.String(16), nullable=False),
        sa.Column("description", sa.String(255), nullable=False),
        sa.Column("amount", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("date", sa.DateTime(), nullable=False),
        # Back-references only: no foreign keys to productos / clientes
        sa.Column("product_id", sa.String(64), nullable=True),
        sa.Column("customer_id", sa.String(64), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("transacciones", schema=None) as batch_op:
        batch_op.create_index("ix_transacciones_date", ["date"], unique=False)


def downgrade():
    with op.batch_alter_table("transacciones", schema=None) as batch_op:
        batch_op.drop_index("ix_transacciones_date")
    op.drop_table("transacciones")

    with op.batch_alter_table("clientes", schema=None) as batch_op:
        batch_op.drop_index("ix_clientes_name")
    op.drop_table("clientes")

    with op.batch_alter_table("productos", schema=None) as batch_op:
        batch_op.drop_index("ix_productos_name")
    op.drop_table("productos")

    op.drop_table("usuarios")
    op.drop_table("ledger_revisions")
