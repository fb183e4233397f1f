import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

import sqlalchemy as sa
from sqlalchemy import BigInteger, Boolean, DateTime, ForeignKey, Integer, JSON, Numeric, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.constants.custom_fields import ENTITY_TYPE_VALUES, FIELD_TYPE_VALUES
from app.database import Base


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )


class AuditMixin:
    created_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    updated_by: Mapped[str | None] = mapped_column(String(255), nullable=True)


class CustomFieldDefinition(Base, TimestampMixin, AuditMixin):
    """Admin-authored schema for one dynamic attribute of an entity type."""

    __tablename__ = "custom_field_definitions"
    __table_args__ = (
        sa.UniqueConstraint("entity_type", "name", name="uq_custom_field_definition_entity_name"),
        sa.Index("ix_custom_field_definitions_display_order", "entity_type", "display_order"),
        sa.Index("ix_custom_field_definitions_active", "entity_type", "is_active"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    entity_type: Mapped[str] = mapped_column(
        sa.Enum(*ENTITY_TYPE_VALUES, name="custom_field_entity_type_enum"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    label: Mapped[str] = mapped_column(String(200), nullable=False)
    field_type: Mapped[str] = mapped_column(
        sa.Enum(*FIELD_TYPE_VALUES, name="custom_field_type_enum"),
        nullable=False,
    )
    select_options: Mapped[list[str] | None] = mapped_column(JSON(none_as_null=True), nullable=True)
    is_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    placeholder_text: Mapped[str | None] = mapped_column(String(255), nullable=True)
    help_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Constraint keys: minLength, maxLength, pattern, min, max, decimalPlaces,
    # minDate, maxDate, minSelections, maxSelections, allowedExtensions
    validation_rules: Mapped[dict[str, Any] | None] = mapped_column(JSON(none_as_null=True), nullable=True)
    default_value: Mapped[Any | None] = mapped_column(JSON(none_as_null=True), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    values: Mapped[list["CustomFieldValue"]] = relationship(
        "CustomFieldValue",
        back_populates="field_definition",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class CustomFieldValue(Base, TimestampMixin, AuditMixin):
    """One stored value of a definition for one entity instance.

    Exactly one of the six ``*_value`` slots is populated, chosen by the owning
    definition's field type.
    """

    __tablename__ = "custom_field_values"
    __table_args__ = (
        sa.UniqueConstraint(
            "field_definition_id",
            "entity_id",
            name="uq_custom_field_value_definition_entity",
        ),
        sa.Index("ix_custom_field_values_entity", "entity_type", "entity_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    field_definition_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("custom_field_definitions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    entity_type: Mapped[str] = mapped_column(
        sa.Enum(*ENTITY_TYPE_VALUES, name="custom_field_entity_type_enum"),
        nullable=False,
    )
    entity_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    string_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    integer_value: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    decimal_value: Mapped[Decimal | None] = mapped_column(Numeric(15, 4), nullable=True)
    boolean_value: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    date_value: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    json_value: Mapped[Any | None] = mapped_column(JSON(none_as_null=True), nullable=True)

    field_definition: Mapped[Optional[CustomFieldDefinition]] = relationship(
        "CustomFieldDefinition", back_populates="values"
    )
