from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.constants.custom_fields import CustomFieldEntityType
from app.database import get_db
from app.schemas import CustomFieldFormEvaluateRead, CustomFieldFormEvaluateRequest
from app.services.custom_field_binder import typed_map_to_json
from app.services.custom_field_definitions import list_definitions
from app.services.custom_field_renderer import FormState, build_display, build_form

router = APIRouter(prefix="/custom-field-forms", tags=["Custom Field Forms"])


@router.get("/{entity_type}")
def get_custom_field_form(
    entity_type: CustomFieldEntityType,
    entity_id: UUID | None = Query(default=None),
    db: Session = Depends(get_db),
) -> list[dict[str, Any]]:
    return build_form(db, entity_type, entity_id)


@router.get("/{entity_type}/{entity_id}/display")
def get_custom_field_display(
    entity_type: CustomFieldEntityType,
    entity_id: UUID,
    include_inactive: bool = Query(default=False),
    db: Session = Depends(get_db),
) -> list[dict[str, Any]]:
    return build_display(db, entity_type, entity_id, include_inactive=include_inactive)


@router.post("/{entity_type}/evaluate", response_model=CustomFieldFormEvaluateRead)
def evaluate_custom_field_form(
    entity_type: CustomFieldEntityType,
    payload: CustomFieldFormEvaluateRequest,
    db: Session = Depends(get_db),
) -> CustomFieldFormEvaluateRead:
    definitions = list_definitions(db, entity_type)
    form = FormState(definitions)
    try:
        for name, raw in payload.values.items():
            if name in form.fields:
                form.set_value(name, raw)
        for toggle in payload.toggles:
            if toggle.name in form.fields:
                form.toggle(toggle.name, toggle.option)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    if payload.validate_all:
        form.validate_all()

    return CustomFieldFormEvaluateRead(
        is_valid=form.is_valid,
        states=form.states,
        errors=form.errors,
        values=typed_map_to_json(form.typed_values, {d.name: d for d in definitions}),
    )
