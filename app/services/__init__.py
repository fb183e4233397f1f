from app.services.custom_field_binder import (
    BindingResult,
    apply_toggles,
    bind_values,
    raw_map_values,
    save_custom_field_values,
    to_raw_map,
    to_typed_map,
    toggle_option,
)
from app.services.custom_field_entities import ModelEntityLookup, register_entity_lookup
from app.services.custom_field_values import delete_values_for_entity, get_values, set_values

__all__ = [
    "BindingResult",
    "ModelEntityLookup",
    "apply_toggles",
    "bind_values",
    "delete_values_for_entity",
    "get_values",
    "raw_map_values",
    "register_entity_lookup",
    "save_custom_field_values",
    "set_values",
    "to_raw_map",
    "to_typed_map",
    "toggle_option",
]
