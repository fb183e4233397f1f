"""create custom field tables

Revision ID: 20261019_000001
Revises: 
Create Date: 2026-10-19 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "20261019_000001"
down_revision = None
branch_labels = None
depends_on = None

ENTITY_TYPES = (
    "client",
    "contract",
    "proposal",
    "service",
    "service_scope",
    "user",
    "hardware_asset",
    "financial_transaction",
    "license_pool",
    "team_assignment",
)

FIELD_TYPES = (
    "text_single_line",
    "text_multi_line",
    "text_rich",
    "number_integer",
    "number_decimal",
    "date",
    "datetime",
    "time",
    "boolean",
    "select_single_dropdown",
    "select_multi_checkbox",
    "email",
    "phone",
    "url",
    "user_reference",
    "client_reference",
    "file_upload",
    "image_upload",
    "json_data",
    "currency",
    "percentage",
)

entity_type_enum = postgresql.ENUM(*ENTITY_TYPES, name="custom_field_entity_type_enum", create_type=False)
field_type_enum = postgresql.ENUM(*FIELD_TYPES, name="custom_field_type_enum", create_type=False)


def upgrade() -> None:
    bind = op.get_bind()
    entity_type_enum.create(bind, checkfirst=True)
    field_type_enum.create(bind, checkfirst=True)

    op.create_table(
        "custom_field_definitions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("entity_type", entity_type_enum, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("label", sa.String(length=200), nullable=False),
        sa.Column("field_type", field_type_enum, nullable=False),
        sa.Column("select_options", sa.JSON(), nullable=True),
        sa.Column("is_required", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("placeholder_text", sa.String(length=255), nullable=True),
        sa.Column("help_text", sa.Text(), nullable=True),
        sa.Column("validation_rules", sa.JSON(), nullable=True),
        sa.Column("default_value", sa.JSON(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_by", sa.String(length=255), nullable=True),
        sa.Column("updated_by", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("entity_type", "name", name="uq_custom_field_definition_entity_name"),
    )
    op.create_index(
        "ix_custom_field_definitions_entity_type",
        "custom_field_definitions",
        ["entity_type"],
    )
    op.create_index(
        "ix_custom_field_definitions_display_order",
        "custom_field_definitions",
        ["entity_type", "display_order"],
    )
    op.create_index(
        "ix_custom_field_definitions_active",
        "custom_field_definitions",
        ["entity_type", "is_active"],
    )

    op.create_table(
        "custom_field_values",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("field_definition_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("entity_type", entity_type_enum, nullable=False),
        sa.Column("entity_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("string_value", sa.Text(), nullable=True),
        sa.Column("integer_value", sa.BigInteger(), nullable=True),
        sa.Column("decimal_value", sa.Numeric(precision=15, scale=4), nullable=True),
        sa.Column("boolean_value", sa.Boolean(), nullable=True),
        sa.Column("date_value", sa.DateTime(timezone=False), nullable=True),
        sa.Column("json_value", sa.JSON(), nullable=True),
        sa.Column("created_by", sa.String(length=255), nullable=True),
        sa.Column("updated_by", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(
            ["field_definition_id"],
            ["custom_field_definitions.id"],
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint(
            "field_definition_id",
            "entity_id",
            name="uq_custom_field_value_definition_entity",
        ),
    )
    op.create_index(
        "ix_custom_field_values_field_definition_id",
        "custom_field_values",
        ["field_definition_id"],
    )
    op.create_index("ix_custom_field_values_entity_id", "custom_field_values", ["entity_id"])
    op.create_index(
        "ix_custom_field_values_entity",
        "custom_field_values",
        ["entity_type", "entity_id"],
    )


def downgrade() -> None:
    op.drop_index("ix_custom_field_values_entity", table_name="custom_field_values")
    op.drop_index("ix_custom_field_values_entity_id", table_name="custom_field_values")
    op.drop_index("ix_custom_field_values_field_definition_id", table_name="custom_field_values")
    op.drop_table("custom_field_values")

    op.drop_index("ix_custom_field_definitions_active", table_name="custom_field_definitions")
    op.drop_index("ix_custom_field_definitions_display_order", table_name="custom_field_definitions")
    op.drop_index("ix_custom_field_definitions_entity_type", table_name="custom_field_definitions")
    op.drop_table("custom_field_definitions")

    bind = op.get_bind()
    field_type_enum.drop(bind, checkfirst=True)
    entity_type_enum.drop(bind, checkfirst=True)
