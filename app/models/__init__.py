from app.models.entities import (
    AuditMixin,
    CustomFieldDefinition,
    CustomFieldValue,
    TimestampMixin,
)

__all__ = [
    "AuditMixin",
    "CustomFieldDefinition",
    "CustomFieldValue",
    "TimestampMixin",
]
