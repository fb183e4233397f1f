from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Iterable, Mapping
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from app.constants.custom_fields import SELECT_FIELD_TYPES, CustomFieldEntityType, ValueSlot
from app.models import CustomFieldDefinition, CustomFieldValue
from app.services.custom_field_definitions import list_definitions
from app.services.custom_field_errors import CoercionError, CustomFieldValidationError
from app.services.custom_field_types import from_wire, get_handler

logger = logging.getLogger(__name__)

_SLOT_COLUMNS = tuple(slot.value for slot in ValueSlot)
_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _read_slot(
    definition: CustomFieldDefinition, row: CustomFieldValue | None, apply_defaults: bool = True
) -> Any:
    if row is None:
        return default_value_for(definition) if apply_defaults else None
    handler = get_handler(definition.field_type)
    stored = getattr(row, handler.slot.value)
    if stored is None:
        return None

    # A row written under a previous field type may sit in a slot the new type
    # shares without having its shape; such rows read as empty. Option
    # membership is not re-checked so that retired options stay visible.
    try:
        value = from_wire(definition.field_type, handler.from_storage(stored))
    except (CoercionError, TypeError, ValueError):
        value = None
    else:
        shape = None if handler.field_type in SELECT_FIELD_TYPES else definition
        if value is not None and handler.check(value, shape) is not None:
            value = None
    if value is None:
        logger.debug(
            "Stored value of custom field %s.%s does not fit type %s; reading it as empty",
            definition.entity_type,
            definition.name,
            definition.field_type,
        )
    return value


def default_value_for(definition: CustomFieldDefinition) -> Any:
    if definition.default_value is None:
        return None
    try:
        return from_wire(definition.field_type, definition.default_value)
    except CoercionError:
        logger.warning(
            "Ignoring default value of custom field %s.%s that no longer fits type %s",
            definition.entity_type,
            definition.name,
            definition.field_type,
        )
        return None


def _slot_payload(definition: CustomFieldDefinition, typed_value: Any) -> dict[str, Any]:
    handler = get_handler(definition.field_type)
    payload = {column: None for column in _SLOT_COLUMNS}
    payload[handler.slot.value] = handler.to_storage(typed_value)
    return payload


def get_values(
    db: Session,
    entity_type: CustomFieldEntityType | str,
    entity_id: UUID,
    include_inactive: bool = False,
    apply_defaults: bool = True,
) -> dict[str, Any]:
    """Return ``name -> typed value`` for one entity instance.

    Definitions without a stored row yield their default value (or ``None``
    when ``apply_defaults`` is off).
    """
    return get_values_for_entities(db, entity_type, [entity_id], include_inactive, apply_defaults)[entity_id]


def get_values_for_entities(
    db: Session,
    entity_type: CustomFieldEntityType | str,
    entity_ids: Iterable[UUID],
    include_inactive: bool = False,
    apply_defaults: bool = True,
) -> dict[UUID, dict[str, Any]]:
    entity_ids = list(dict.fromkeys(entity_ids))
    definitions = list_definitions(db, entity_type, include_inactive=include_inactive)
    if not entity_ids:
        return {}

    rows: dict[tuple[UUID, UUID], CustomFieldValue] = {}
    if definitions:
        stmt = (
            select(CustomFieldValue)
            .where(
                CustomFieldValue.entity_id.in_(entity_ids),
                CustomFieldValue.field_definition_id.in_([definition.id for definition in definitions]),
            )
            .execution_options(populate_existing=True)
        )
        for row in db.execute(stmt).scalars():
            rows[(row.entity_id, row.field_definition_id)] = row

    return {
        entity_id: {
            definition.name: _read_slot(definition, rows.get((entity_id, definition.id)), apply_defaults)
            for definition in definitions
        }
        for entity_id in entity_ids
    }


def _upsert(
    db: Session,
    definition: CustomFieldDefinition,
    entity_id: UUID,
    typed_value: Any,
    actor: str | None,
) -> None:
    slots = _slot_payload(definition, typed_value)
    now = datetime.utcnow()
    insert = _UPSERT_INSERTS.get(db.get_bind().dialect.name)

    if insert is not None:
        stmt = insert(CustomFieldValue).values(
            field_definition_id=definition.id,
            entity_type=definition.entity_type,
            entity_id=entity_id,
            created_by=actor,
            updated_by=actor,
            created_at=now,
            updated_at=now,
            **slots,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[CustomFieldValue.field_definition_id, CustomFieldValue.entity_id],
            set_={**slots, "updated_by": actor, "updated_at": now},
        )
        db.execute(stmt)
        return

    row = db.execute(
        select(CustomFieldValue).where(
            CustomFieldValue.field_definition_id == definition.id,
            CustomFieldValue.entity_id == entity_id,
        )
    ).scalar_one_or_none()
    if row is None:
        row = CustomFieldValue(
            field_definition_id=definition.id,
            entity_type=definition.entity_type,
            entity_id=entity_id,
            created_by=actor,
        )
        db.add(row)
    for column, value in slots.items():
        setattr(row, column, value)
    row.updated_by = actor
    db.flush()


def set_values(
    db: Session,
    entity_type: CustomFieldEntityType | str,
    entity_id: UUID,
    values_by_name: Mapping[str, Any],
    actor: str | None = None,
    commit: bool = True,
) -> None:
    """Upsert one row per named field; ``None`` removes the stored value.

    Names that are not active definitions of ``entity_type`` are skipped.
    Values are normally typed binder output; raw wire values are coerced first.
    """
    definitions = {
        definition.name: definition
        for definition in list_definitions(db, entity_type)
    }

    try:
        for name, value in values_by_name.items():
            definition = definitions.get(name)
            if definition is None:
                logger.debug("Ignoring unknown custom field %s for %s %s", name, entity_type, entity_id)
                continue
            if value is None:
                db.execute(
                    delete(CustomFieldValue).where(
                        CustomFieldValue.field_definition_id == definition.id,
                        CustomFieldValue.entity_id == entity_id,
                    )
                )
                continue
            try:
                typed_value = from_wire(definition.field_type, value)
            except CoercionError as exc:
                exc.field_name = name
                raise CustomFieldValidationError({name: exc}) from None
            _upsert(db, definition, entity_id, typed_value, actor)
        if commit:
            db.commit()
    except Exception:
        db.rollback()
        raise


def delete_values_for_entity(
    db: Session,
    entity_type: CustomFieldEntityType | str,
    entity_id: UUID,
    commit: bool = True,
) -> int:
    entity_type = CustomFieldEntityType(entity_type)
    result = db.execute(
        delete(CustomFieldValue).where(
            CustomFieldValue.entity_type == entity_type.value,
            CustomFieldValue.entity_id == entity_id,
        )
    )
    if commit:
        db.commit()
    logger.info("Deleted %d custom field values for %s %s", result.rowcount, entity_type.value, entity_id)
    return result.rowcount


__all__ = [
    "default_value_for",
    "delete_values_for_entity",
    "get_values",
    "get_values_for_entities",
    "set_values",
]
