from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.constants.custom_fields import MAX_DISPLAY_ORDER, CustomFieldEntityType, CustomFieldType

FIELD_NAME_PATTERN = r"^[A-Za-z_][A-Za-z0-9_]*$"


class TimestampSchema(BaseModel):
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


def _clean_options(value: Optional[list[str]]) -> Optional[list[str]]:
    if value is None:
        return None
    return [option.strip() if isinstance(option, str) else option for option in value]


class CustomFieldDefinitionBase(BaseModel):
    entity_type: CustomFieldEntityType
    name: str = Field(..., min_length=1, max_length=100, pattern=FIELD_NAME_PATTERN)
    label: str = Field(..., min_length=1, max_length=200)
    field_type: CustomFieldType
    select_options: Optional[list[str]] = None
    is_required: bool = False
    display_order: int = Field(0, ge=0, le=MAX_DISPLAY_ORDER)
    placeholder_text: Optional[str] = Field(None, max_length=255)
    help_text: Optional[str] = None
    validation_rules: Optional[dict[str, Any]] = None
    default_value: Any = None

    @field_validator("select_options")
    @classmethod
    def normalize_select_options(cls, value: Optional[list[str]]) -> Optional[list[str]]:
        return _clean_options(value)


class CustomFieldDefinitionCreate(CustomFieldDefinitionBase):
    pass


class CustomFieldDefinitionUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100, pattern=FIELD_NAME_PATTERN)
    label: Optional[str] = Field(None, min_length=1, max_length=200)
    field_type: Optional[CustomFieldType] = None
    select_options: Optional[list[str]] = None
    is_required: Optional[bool] = None
    display_order: Optional[int] = Field(None, ge=0, le=MAX_DISPLAY_ORDER)
    placeholder_text: Optional[str] = Field(None, max_length=255)
    help_text: Optional[str] = None
    validation_rules: Optional[dict[str, Any]] = None
    default_value: Any = None
    is_active: Optional[bool] = None

    @field_validator("select_options")
    @classmethod
    def normalize_select_options(cls, value: Optional[list[str]]) -> Optional[list[str]]:
        return _clean_options(value)


class CustomFieldDefinitionRead(CustomFieldDefinitionBase, TimestampSchema):
    id: UUID
    is_active: bool
    created_by: Optional[str] = None
    updated_by: Optional[str] = None


class CustomFieldReorderItem(BaseModel):
    id: UUID
    display_order: int = Field(..., ge=0, le=MAX_DISPLAY_ORDER)


class CustomFieldValuesPayload(BaseModel):
    values: dict[str, Any] = Field(default_factory=dict)


class CustomFieldToggle(BaseModel):
    name: str
    option: str


class CustomFieldTogglePayload(BaseModel):
    toggles: list[CustomFieldToggle] = Field(default_factory=list)


class CustomFieldErrorRead(BaseModel):
    code: str
    message: str


class CustomFieldBindingRead(BaseModel):
    values: dict[str, Any]
    errors: dict[str, CustomFieldErrorRead]


class CustomFieldEntryRead(BaseModel):
    name: str
    label: str
    field_type: CustomFieldType
    help_text: Optional[str] = None
    placeholder_text: Optional[str] = None
    is_required: bool
    is_active: bool
    display_order: int
    is_set: bool = False
    value: Any = None
    display: str


class CustomFieldValuesRead(BaseModel):
    entity_type: CustomFieldEntityType
    entity_id: UUID
    fields: list[CustomFieldEntryRead]
    values: dict[str, Any]


class CustomFieldFormEvaluateRequest(BaseModel):
    values: dict[str, Any] = Field(default_factory=dict)
    toggles: list[CustomFieldToggle] = Field(default_factory=list)
    validate_all: bool = False


class CustomFieldFormEvaluateRead(BaseModel):
    is_valid: bool
    states: dict[str, str]
    errors: dict[str, str]
    values: dict[str, Any]
