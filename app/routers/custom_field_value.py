from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.constants.custom_fields import CustomFieldEntityType
from app.database import get_db
from app.dependencies import get_actor
from app.routers.errors import to_http_exception
from app.schemas import (
    CustomFieldBindingRead,
    CustomFieldTogglePayload,
    CustomFieldValuesPayload,
    CustomFieldValuesRead,
)
from app.services.custom_field_binder import (
    apply_toggles,
    save_custom_field_values,
    to_raw_map,
    to_typed_map,
    typed_map_to_json,
)
from app.services.custom_field_definitions import definitions_by_name
from app.services.custom_field_errors import CustomFieldError
from app.services.custom_field_values import delete_values_for_entity

router = APIRouter(prefix="/custom-field-values", tags=["Custom Field Values"])


def _values_response(
    db: Session,
    entity_type: CustomFieldEntityType,
    entity_id: UUID,
    include_inactive: bool = False,
) -> CustomFieldValuesRead:
    entries = to_raw_map(db, entity_type, entity_id, include_inactive=include_inactive)
    return CustomFieldValuesRead(
        entity_type=entity_type,
        entity_id=entity_id,
        fields=entries,
        values={entry["name"]: entry["value"] for entry in entries},
    )


@router.post("/{entity_type}/validate", response_model=CustomFieldBindingRead)
def validate_custom_field_values(
    entity_type: CustomFieldEntityType,
    payload: CustomFieldValuesPayload,
    partial: bool = Query(default=False),
    db: Session = Depends(get_db),
) -> CustomFieldBindingRead:
    result = to_typed_map(db, entity_type, payload.values, partial=partial)
    return CustomFieldBindingRead(
        values=typed_map_to_json(result.values, definitions_by_name(db, entity_type)),
        errors={name: error.as_dict() for name, error in result.errors.items()},
    )


@router.get("/{entity_type}/{entity_id}", response_model=CustomFieldValuesRead)
def get_custom_field_values(
    entity_type: CustomFieldEntityType,
    entity_id: UUID,
    include_inactive: bool = Query(default=False),
    db: Session = Depends(get_db),
) -> CustomFieldValuesRead:
    return _values_response(db, entity_type, entity_id, include_inactive=include_inactive)


@router.put("/{entity_type}/{entity_id}", response_model=CustomFieldValuesRead)
def replace_custom_field_values(
    entity_type: CustomFieldEntityType,
    entity_id: UUID,
    payload: CustomFieldValuesPayload,
    db: Session = Depends(get_db),
    actor: Optional[str] = Depends(get_actor),
) -> CustomFieldValuesRead:
    try:
        save_custom_field_values(db, entity_type, entity_id, payload.values, actor=actor)
    except CustomFieldError as exc:
        raise to_http_exception(exc) from exc
    return _values_response(db, entity_type, entity_id)


@router.patch("/{entity_type}/{entity_id}", response_model=CustomFieldValuesRead)
def update_custom_field_values(
    entity_type: CustomFieldEntityType,
    entity_id: UUID,
    payload: CustomFieldValuesPayload,
    db: Session = Depends(get_db),
    actor: Optional[str] = Depends(get_actor),
) -> CustomFieldValuesRead:
    try:
        save_custom_field_values(db, entity_type, entity_id, payload.values, actor=actor, partial=True)
    except CustomFieldError as exc:
        raise to_http_exception(exc) from exc
    return _values_response(db, entity_type, entity_id)


@router.post("/{entity_type}/{entity_id}/toggle", response_model=CustomFieldValuesRead)
def toggle_custom_field_options(
    entity_type: CustomFieldEntityType,
    entity_id: UUID,
    payload: CustomFieldTogglePayload,
    db: Session = Depends(get_db),
    actor: Optional[str] = Depends(get_actor),
) -> CustomFieldValuesRead:
    try:
        apply_toggles(db, entity_type, entity_id, payload.toggles, actor=actor)
    except CustomFieldError as exc:
        raise to_http_exception(exc) from exc
    return _values_response(db, entity_type, entity_id)


@router.delete("/{entity_type}/{entity_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_custom_field_values(
    entity_type: CustomFieldEntityType,
    entity_id: UUID,
    db: Session = Depends(get_db),
) -> None:
    delete_values_for_entity(db, entity_type, entity_id)
