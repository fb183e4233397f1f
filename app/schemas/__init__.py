from app.constants.custom_fields import CustomFieldEntityType, CustomFieldType
from app.schemas.custom_fields import (
    CustomFieldBindingRead,
    CustomFieldDefinitionCreate,
    CustomFieldDefinitionRead,
    CustomFieldDefinitionUpdate,
    CustomFieldEntryRead,
    CustomFieldErrorRead,
    CustomFieldFormEvaluateRead,
    CustomFieldFormEvaluateRequest,
    CustomFieldReorderItem,
    CustomFieldToggle,
    CustomFieldTogglePayload,
    CustomFieldValuesPayload,
    CustomFieldValuesRead,
)

__all__ = [
    "CustomFieldBindingRead",
    "CustomFieldDefinitionCreate",
    "CustomFieldDefinitionRead",
    "CustomFieldDefinitionUpdate",
    "CustomFieldEntityType",
    "CustomFieldEntryRead",
    "CustomFieldErrorRead",
    "CustomFieldFormEvaluateRead",
    "CustomFieldFormEvaluateRequest",
    "CustomFieldReorderItem",
    "CustomFieldToggle",
    "CustomFieldTogglePayload",
    "CustomFieldType",
    "CustomFieldValuesPayload",
    "CustomFieldValuesRead",
]
