"""Lookups for the entity instances custom field values are attached to.

Values reference their owner through ``(entity_type, entity_id)`` rather than a
foreign key, so each business module registers a lookup for its entity type.
The engine uses it to confirm an instance exists before binding values and to
refresh the denormalised ``custom_field_data`` cache kept on the owning row.
Entity types without a registered lookup are trusted as-is.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol
from uuid import UUID

from sqlalchemy.orm import Session

from app.constants.custom_fields import CustomFieldEntityType

logger = logging.getLogger(__name__)


class EntityLookup(Protocol):
    def exists(self, db: Session, entity_id: UUID) -> bool:
        ...

    def refresh_cache(self, db: Session, entity_id: UUID, payload: dict[str, Any]) -> None:
        ...


@dataclass
class ModelEntityLookup:
    """Lookup backed by a mapped SQLAlchemy model keyed by a UUID primary key."""

    model: type
    cache_attribute: str | None = "custom_field_data"

    def exists(self, db: Session, entity_id: UUID) -> bool:
        return db.get(self.model, entity_id) is not None

    def refresh_cache(self, db: Session, entity_id: UUID, payload: dict[str, Any]) -> None:
        if not self.cache_attribute:
            return
        instance = db.get(self.model, entity_id)
        if instance is None or not hasattr(instance, self.cache_attribute):
            return
        setattr(instance, self.cache_attribute, payload)
        db.add(instance)


_LOOKUPS: dict[CustomFieldEntityType, EntityLookup] = {}


def register_entity_lookup(entity_type: CustomFieldEntityType | str, lookup: EntityLookup) -> None:
    _LOOKUPS[CustomFieldEntityType(entity_type)] = lookup
    logger.debug("Registered custom field entity lookup for %s", entity_type)


def unregister_entity_lookup(entity_type: CustomFieldEntityType | str) -> None:
    _LOOKUPS.pop(CustomFieldEntityType(entity_type), None)


def clear_entity_lookups() -> None:
    _LOOKUPS.clear()


def get_entity_lookup(entity_type: CustomFieldEntityType | str) -> EntityLookup | None:
    return _LOOKUPS.get(CustomFieldEntityType(entity_type))


def entity_exists(db: Session, entity_type: CustomFieldEntityType | str, entity_id: UUID) -> bool:
    lookup = get_entity_lookup(entity_type)
    if lookup is None:
        return True
    return lookup.exists(db, entity_id)


def refresh_entity_cache(
    db: Session,
    entity_type: CustomFieldEntityType | str,
    entity_id: UUID,
    payload: dict[str, Any],
) -> None:
    lookup = get_entity_lookup(entity_type)
    if lookup is None:
        return
    lookup.refresh_cache(db, entity_id, payload)
    logger.debug("Refreshed custom field cache for %s %s", entity_type, entity_id)


__all__ = [
    "EntityLookup",
    "ModelEntityLookup",
    "clear_entity_lookups",
    "entity_exists",
    "get_entity_lookup",
    "refresh_entity_cache",
    "register_entity_lookup",
    "unregister_entity_lookup",
]
