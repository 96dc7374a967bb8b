"""Initial schema.

Revision ID: 001
Revises:
Create Date: 2026-10-19

Creates:
- users
- clients, products, drivers, carriers (owned by a user)
- profiles (technicians and supervisors)
- collections and their line items
"""

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None

COLLECTION_STATUS = ("pendente", "agendada", "concluida")
COLLECTION_KIND = ("coleta", "entrega")
TEAM_SHIFT = ("day", "night")


def _id_column() -> sa.Column:
    return sa.Column("id", sa.String(36), primary_key=True)


def _owner_column() -> sa.Column:
    return sa.Column(
        "user_id",
        sa.String(36),
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


def upgrade() -> None:
    """Create all tables."""
    op.create_table(
        "users",
        _id_column(),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "clients",
        _id_column(),
        _owner_column(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(50)),
        sa.Column("email", sa.String(255)),
        sa.Column("address", sa.String(500)),
        sa.Column("address_number", sa.String(20)),
        sa.Column("cep", sa.String(20)),
        sa.Column("cnpj", sa.String(30)),
        sa.Column("contact_person", sa.String(255)),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("name", "user_id", name="uq_clients_name_user"),
    )

    op.create_table(
        "products",
        _id_column(),
        _owner_column(),
        sa.Column("code", sa.String(100), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("model", sa.String(255)),
        sa.Column("serial_number", sa.String(100)),
        sa.Column("image_url", sa.String(500)),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("code", "user_id", name="uq_products_code_user"),
    )

    op.create_table(
        "drivers",
        _id_column(),
        _owner_column(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(50)),
        sa.Column("vehicle_plate", sa.String(20)),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "carriers",
        _id_column(),
        _owner_column(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("cnpj", sa.String(30)),
        sa.Column("phone", sa.String(50)),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "profiles",
        _id_column(),
        _owner_column(),
        sa.Column("first_name", sa.String(100)),
        sa.Column("last_name", sa.String(100)),
        sa.Column("phone_number", sa.String(50)),
        sa.Column("role", sa.String(50), nullable=False, server_default="standard"),
        sa.Column(
            "supervisor_id",
            sa.String(36),
            sa.ForeignKey("profiles.id", ondelete="SET NULL"),
        ),
        sa.Column(
            "team_shift",
            sa.Enum(*TEAM_SHIFT, name="team_shift"),
            nullable=False,
            server_default="day",
        ),
        sa.Column("address", sa.String(500)),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint(
            "user_id",
            "first_name",
            "last_name",
            "phone_number",
            name="uq_profiles_name_phone",
        ),
    )

    op.create_table(
        "collections",
        _id_column(),
        _owner_column(),
        sa.Column("unique_number", sa.String(50)),
        sa.Column("client_control", sa.String(100)),
        sa.Column("parceiro", sa.String(255)),
        sa.Column("contato", sa.String(255)),
        sa.Column("telefone", sa.String(50)),
        sa.Column("email", sa.String(255)),
        sa.Column("cnpj", sa.String(30)),
        sa.Column("endereco_origem", sa.String(500)),
        sa.Column("cep_origem", sa.String(20)),
        sa.Column("origin_address_number", sa.String(20)),
        sa.Column("origin_lat", sa.Float()),
        sa.Column("origin_lng", sa.Float()),
        sa.Column("endereco_destino", sa.String(500)),
        sa.Column("cep_destino", sa.String(20)),
        sa.Column("destination_address_number", sa.String(20)),
        sa.Column("destination_lat", sa.Float()),
        sa.Column("destination_lng", sa.Float()),
        sa.Column("previsao_coleta", sa.Date()),
        sa.Column("qtd_aparelhos_solicitado", sa.Integer()),
        sa.Column("modelo_aparelho", sa.String(255)),
        sa.Column("freight_value", sa.Numeric(12, 2)),
        sa.Column("observacao", sa.Text()),
        sa.Column(
            "status",
            sa.Enum(*COLLECTION_STATUS, name="collection_status"),
            nullable=False,
            server_default="pendente",
        ),
        sa.Column(
            "kind",
            sa.Enum(*COLLECTION_KIND, name="collection_kind"),
            nullable=False,
            server_default="coleta",
        ),
        sa.Column("contrato", sa.String(100)),
        sa.Column("nf_glbl", sa.String(100)),
        sa.Column("partner_code", sa.String(100)),
        sa.Column("client_id", sa.String(36), sa.ForeignKey("clients.id", ondelete="SET NULL")),
        sa.Column("driver_id", sa.String(36), sa.ForeignKey("drivers.id", ondelete="SET NULL")),
        sa.Column("carrier_id", sa.String(36), sa.ForeignKey("carriers.id", ondelete="SET NULL")),
        sa.Column(
            "responsible_user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
        ),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_collections_unique_number", "collections", ["unique_number"])
    op.create_index("ix_collections_previsao_coleta", "collections", ["previsao_coleta"])
    op.create_index("ix_collections_status", "collections", ["status"])
    op.create_index("ix_collections_kind", "collections", ["kind"])

    op.create_table(
        "items",
        _id_column(),
        _owner_column(),
        sa.Column(
            "collection_id",
            sa.String(36),
            sa.ForeignKey("collections.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("model", sa.String(255)),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column(
            "status",
            # collection_status is created with the collections table
            sa.Enum(*COLLECTION_STATUS, name="collection_status").with_variant(
                postgresql.ENUM(*COLLECTION_STATUS, name="collection_status", create_type=False),
                "postgresql",
            ),
            nullable=False,
            server_default="pendente",
        ),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("items")
    op.drop_index("ix_collections_kind", table_name="collections")
    op.drop_index("ix_collections_status", table_name="collections")
    op.drop_index("ix_collections_previsao_coleta", table_name="collections")
    op.drop_index("ix_collections_unique_number", table_name="collections")
    op.drop_table("collections")
    op.drop_table("profiles")
    op.drop_table("carriers")
    op.drop_table("drivers")
    op.drop_table("products")
    op.drop_table("clients")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
