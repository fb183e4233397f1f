from __future__ import annotations

import logging
from types import SimpleNamespace
from typing import Any, Iterable, Mapping
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.constants.custom_fields import SELECT_FIELD_TYPES, CustomFieldEntityType, CustomFieldType
from app.models import CustomFieldDefinition, CustomFieldValue
from app.schemas import CustomFieldDefinitionCreate, CustomFieldDefinitionUpdate
from app.services.custom_field_errors import (
    CoercionError,
    DuplicateNameError,
    InvalidSpecError,
    NotFoundError,
)
from app.services.custom_field_rules import apply_rules, validate_rules_spec
from app.services.custom_field_types import get_handler

logger = logging.getLogger(__name__)


def _ordering():
    return (
        CustomFieldDefinition.display_order.asc(),
        CustomFieldDefinition.created_at.asc(),
        CustomFieldDefinition.id.asc(),
    )


def list_definitions(
    db: Session,
    entity_type: CustomFieldEntityType | str,
    include_inactive: bool = False,
) -> list[CustomFieldDefinition]:
    stmt = select(CustomFieldDefinition).where(
        CustomFieldDefinition.entity_type == CustomFieldEntityType(entity_type).value
    )
    if not include_inactive:
        stmt = stmt.where(CustomFieldDefinition.is_active.is_(True))
    return list(db.execute(stmt.order_by(*_ordering())).scalars().all())


def list_all_definitions(
    db: Session,
    entity_type: CustomFieldEntityType | str | None = None,
    include_inactive: bool = True,
) -> list[CustomFieldDefinition]:
    stmt = select(CustomFieldDefinition)
    if entity_type is not None:
        stmt = stmt.where(
            CustomFieldDefinition.entity_type == CustomFieldEntityType(entity_type).value
        )
    if not include_inactive:
        stmt = stmt.where(CustomFieldDefinition.is_active.is_(True))
    stmt = stmt.order_by(CustomFieldDefinition.entity_type.asc(), *_ordering())
    return list(db.execute(stmt).scalars().all())


def definitions_by_name(
    db: Session,
    entity_type: CustomFieldEntityType | str,
    include_inactive: bool = False,
) -> dict[str, CustomFieldDefinition]:
    return {
        definition.name: definition
        for definition in list_definitions(db, entity_type, include_inactive=include_inactive)
    }


def get_definition(db: Session, definition_id: UUID) -> CustomFieldDefinition:
    definition = db.get(CustomFieldDefinition, definition_id)
    if definition is None:
        raise NotFoundError(f"Custom field definition with ID '{definition_id}' not found")
    return definition


def count_values(db: Session, definition_id: UUID) -> int:
    stmt = select(func.count(CustomFieldValue.id)).where(
        CustomFieldValue.field_definition_id == definition_id
    )
    return int(db.execute(stmt).scalar_one())


def validate_definition_spec(
    field_type: CustomFieldType | str,
    select_options: list[str] | None,
    validation_rules: Mapping[str, Any] | None = None,
    default_value: Any = None,
) -> Any:
    """Check a definition's shape and return its default value in wire form.

    Raises :class:`InvalidSpecError` when select options are missing for a
    select type, present for any other type, duplicated or blank, when the
    validation rules cannot be interpreted, or when the default value does not
    bind under the field type.
    """
    field_type = CustomFieldType(getattr(field_type, "value", field_type))
    options = list(select_options or [])

    if field_type in SELECT_FIELD_TYPES:
        if not options:
            raise InvalidSpecError(f"Field type '{field_type.value}' requires select options")
        if any(not isinstance(option, str) or not option.strip() for option in options):
            raise InvalidSpecError("Select options must be non-empty strings")
        if len(set(options)) != len(options):
            raise InvalidSpecError("Select options must be unique")
    elif options:
        raise InvalidSpecError(f"Field type '{field_type.value}' does not accept select options")

    validate_rules_spec(validation_rules)

    if default_value is None:
        return None

    handler = get_handler(field_type)
    shape = SimpleNamespace(select_options=options, validation_rules=validation_rules)
    try:
        typed = handler.coerce(default_value)
    except CoercionError as exc:
        raise InvalidSpecError(f"Default value is invalid: {exc.message}") from None
    problem = handler.check(typed, shape) or apply_rules(field_type, typed, validation_rules)
    if problem:
        raise InvalidSpecError(f"Default value is invalid: {problem}")
    return handler.to_wire(typed)


_NAME_CONSTRAINT = "uq_custom_field_definition_entity_name"
# SQLite names the columns of the violated constraint instead of the constraint.
_NAME_CONSTRAINT_COLUMNS = "custom_field_definitions.entity_type, custom_field_definitions.name"


def _is_name_conflict(exc: IntegrityError) -> bool:
    diag = getattr(exc.orig, "diag", None)
    constraint = getattr(diag, "constraint_name", None) if diag else None
    if constraint:
        return constraint == _NAME_CONSTRAINT
    message = str(exc.orig)
    return _NAME_CONSTRAINT in message or _NAME_CONSTRAINT_COLUMNS in message


def _commit_definition(db: Session, definition: CustomFieldDefinition) -> CustomFieldDefinition:
    entity_type, name = definition.entity_type, definition.name
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if not _is_name_conflict(exc):
            raise
        raise DuplicateNameError(entity_type, name) from exc
    db.refresh(definition)
    return definition


def create_definition(
    db: Session,
    payload: CustomFieldDefinitionCreate,
    actor: str | None = None,
) -> CustomFieldDefinition:
    data = payload.model_dump(mode="json")
    data["select_options"] = data.get("select_options") or None
    data["default_value"] = validate_definition_spec(
        data["field_type"],
        data["select_options"],
        data.get("validation_rules"),
        data.get("default_value"),
    )

    definition = CustomFieldDefinition(**data, created_by=actor, updated_by=actor)
    db.add(definition)
    # Uniqueness of (entity_type, name) is enforced by the table constraint so
    # that concurrent creates resolve to exactly one winner.
    _commit_definition(db, definition)
    logger.info(
        "Created custom field %s.%s (%s) by %s",
        definition.entity_type,
        definition.name,
        definition.field_type,
        actor or "system",
    )
    return definition


def update_definition(
    db: Session,
    definition_id: UUID,
    patch: CustomFieldDefinitionUpdate,
    actor: str | None = None,
) -> CustomFieldDefinition:
    definition = get_definition(db, definition_id)
    update_data = patch.model_dump(mode="json", exclude_unset=True)
    previous_type = definition.field_type

    field_type = update_data.get("field_type", definition.field_type)
    if "select_options" in update_data:
        select_options = update_data["select_options"] or None
    elif CustomFieldType(field_type) in SELECT_FIELD_TYPES:
        select_options = definition.select_options or None
    else:
        select_options = None
    validation_rules = update_data.get("validation_rules", definition.validation_rules)
    default_value = update_data.get("default_value", definition.default_value)
    update_data["select_options"] = select_options
    update_data["default_value"] = validate_definition_spec(
        field_type, select_options, validation_rules, default_value
    )

    for field, value in update_data.items():
        setattr(definition, field, value)
    definition.updated_by = actor

    if definition.field_type != previous_type:
        existing = count_values(db, definition.id)
        if existing:
            # Values stay in the slot of the previous type and read back as empty.
            logger.warning(
                "Custom field %s.%s retyped from %s to %s with %d stored values; values are not migrated",
                definition.entity_type,
                definition.name,
                previous_type,
                definition.field_type,
                existing,
            )

    _commit_definition(db, definition)
    logger.info("Updated custom field %s.%s by %s", definition.entity_type, definition.name, actor or "system")
    return definition


def _set_active(db: Session, definition_id: UUID, is_active: bool, actor: str | None) -> CustomFieldDefinition:
    definition = get_definition(db, definition_id)
    if definition.is_active == is_active:
        return definition
    definition.is_active = is_active
    definition.updated_by = actor
    db.commit()
    db.refresh(definition)
    logger.info(
        "%s custom field %s.%s",
        "Reactivated" if is_active else "Deactivated",
        definition.entity_type,
        definition.name,
    )
    return definition


def deactivate_definition(
    db: Session, definition_id: UUID, actor: str | None = None
) -> CustomFieldDefinition:
    return _set_active(db, definition_id, False, actor)


def reactivate_definition(
    db: Session, definition_id: UUID, actor: str | None = None
) -> CustomFieldDefinition:
    return _set_active(db, definition_id, True, actor)


def hard_delete_definition(db: Session, definition_id: UUID) -> None:
    definition = get_definition(db, definition_id)
    db.delete(definition)
    db.commit()
    logger.info("Deleted custom field %s.%s and its values", definition.entity_type, definition.name)


def reorder_definitions(
    db: Session,
    entity_type: CustomFieldEntityType | str,
    orders: Iterable[Any],
    actor: str | None = None,
) -> list[CustomFieldDefinition]:
    """Assign display orders in one transaction; ``orders`` items expose ``id`` and ``display_order``."""
    entity_type = CustomFieldEntityType(entity_type)
    requested = {item.id: item.display_order for item in orders}
    if not requested:
        return list_definitions(db, entity_type, include_inactive=True)

    stmt = select(CustomFieldDefinition).where(
        CustomFieldDefinition.id.in_(list(requested)),
        CustomFieldDefinition.entity_type == entity_type.value,
    )
    definitions = {definition.id: definition for definition in db.execute(stmt).scalars()}
    missing = [str(definition_id) for definition_id in requested if definition_id not in definitions]
    if missing:
        raise NotFoundError(
            f"Custom field definitions not found for entity type '{entity_type.value}': {', '.join(missing)}"
        )

    for definition_id, display_order in requested.items():
        definitions[definition_id].display_order = display_order
        definitions[definition_id].updated_by = actor
    db.commit()
    return list_definitions(db, entity_type, include_inactive=True)


__all__ = [
    "count_values",
    "create_definition",
    "deactivate_definition",
    "definitions_by_name",
    "get_definition",
    "hard_delete_definition",
    "list_all_definitions",
    "list_definitions",
    "reactivate_definition",
    "reorder_definitions",
    "update_definition",
    "validate_definition_spec",
]
