from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.constants.custom_fields import CustomFieldEntityType
from app.database import get_db
from app.dependencies import get_actor
from app.routers.errors import to_http_exception
from app.schemas import (
    CustomFieldDefinitionCreate,
    CustomFieldDefinitionRead,
    CustomFieldDefinitionUpdate,
    CustomFieldReorderItem,
)
from app.services import custom_field_definitions as definitions
from app.services.custom_field_errors import CustomFieldError

router = APIRouter(prefix="/custom-field-definitions", tags=["Custom Field Definitions"])


@router.post("", response_model=CustomFieldDefinitionRead, status_code=status.HTTP_201_CREATED)
def create_custom_field_definition(
    payload: CustomFieldDefinitionCreate,
    db: Session = Depends(get_db),
    actor: Optional[str] = Depends(get_actor),
) -> CustomFieldDefinitionRead:
    try:
        return definitions.create_definition(db, payload, actor=actor)
    except CustomFieldError as exc:
        raise to_http_exception(exc) from exc


@router.get("", response_model=list[CustomFieldDefinitionRead])
def list_custom_field_definitions(
    entity_type: CustomFieldEntityType | None = Query(default=None),
    include_inactive: bool = Query(default=False),
    db: Session = Depends(get_db),
) -> list[CustomFieldDefinitionRead]:
    if entity_type is not None:
        return definitions.list_definitions(db, entity_type, include_inactive=include_inactive)
    return definitions.list_all_definitions(db, include_inactive=include_inactive)


@router.put("/reorder/{entity_type}", status_code=status.HTTP_204_NO_CONTENT)
def reorder_custom_field_definitions(
    entity_type: CustomFieldEntityType,
    payload: list[CustomFieldReorderItem],
    db: Session = Depends(get_db),
    actor: Optional[str] = Depends(get_actor),
) -> None:
    try:
        definitions.reorder_definitions(db, entity_type, payload, actor=actor)
    except CustomFieldError as exc:
        raise to_http_exception(exc) from exc


@router.get("/{definition_id}", response_model=CustomFieldDefinitionRead)
def get_custom_field_definition(
    definition_id: UUID, db: Session = Depends(get_db)
) -> CustomFieldDefinitionRead:
    try:
        return definitions.get_definition(db, definition_id)
    except CustomFieldError as exc:
        raise to_http_exception(exc) from exc


@router.patch("/{definition_id}", response_model=CustomFieldDefinitionRead)
def update_custom_field_definition(
    definition_id: UUID,
    payload: CustomFieldDefinitionUpdate,
    db: Session = Depends(get_db),
    actor: Optional[str] = Depends(get_actor),
) -> CustomFieldDefinitionRead:
    try:
        return definitions.update_definition(db, definition_id, payload, actor=actor)
    except CustomFieldError as exc:
        raise to_http_exception(exc) from exc


@router.delete("/{definition_id}", status_code=status.HTTP_204_NO_CONTENT)
def deactivate_custom_field_definition(
    definition_id: UUID,
    db: Session = Depends(get_db),
    actor: Optional[str] = Depends(get_actor),
) -> None:
    try:
        definitions.deactivate_definition(db, definition_id, actor=actor)
    except CustomFieldError as exc:
        raise to_http_exception(exc) from exc


@router.delete("/{definition_id}/hard", status_code=status.HTTP_204_NO_CONTENT)
def delete_custom_field_definition(definition_id: UUID, db: Session = Depends(get_db)) -> None:
    try:
        definitions.hard_delete_definition(db, definition_id)
    except CustomFieldError as exc:
        raise to_http_exception(exc) from exc


@router.post("/{definition_id}/reactivate", response_model=CustomFieldDefinitionRead)
def reactivate_custom_field_definition(
    definition_id: UUID,
    db: Session = Depends(get_db),
    actor: Optional[str] = Depends(get_actor),
) -> CustomFieldDefinitionRead:
    try:
        return definitions.reactivate_definition(db, definition_id, actor=actor)
    except CustomFieldError as exc:
        raise to_http_exception(exc) from exc
