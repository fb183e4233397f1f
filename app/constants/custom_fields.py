from enum import Enum


class CustomFieldEntityType(str, Enum):
    CLIENT = "client"
    CONTRACT = "contract"
    PROPOSAL = "proposal"
    SERVICE = "service"
    SERVICE_SCOPE = "service_scope"
    USER = "user"
    HARDWARE_ASSET = "hardware_asset"
    FINANCIAL_TRANSACTION = "financial_transaction"
    LICENSE_POOL = "license_pool"
    TEAM_ASSIGNMENT = "team_assignment"


class CustomFieldType(str, Enum):
    TEXT_SINGLE_LINE = "text_single_line"
    TEXT_MULTI_LINE = "text_multi_line"
    TEXT_RICH = "text_rich"
    NUMBER_INTEGER = "number_integer"
    NUMBER_DECIMAL = "number_decimal"
    DATE = "date"
    DATETIME = "datetime"
    TIME = "time"
    BOOLEAN = "boolean"
    SELECT_SINGLE_DROPDOWN = "select_single_dropdown"
    SELECT_MULTI_CHECKBOX = "select_multi_checkbox"
    EMAIL = "email"
    PHONE = "phone"
    URL = "url"
    USER_REFERENCE = "user_reference"
    CLIENT_REFERENCE = "client_reference"
    FILE_UPLOAD = "file_upload"
    IMAGE_UPLOAD = "image_upload"
    JSON_DATA = "json_data"
    CURRENCY = "currency"
    PERCENTAGE = "percentage"


class ValueSlot(str, Enum):
    STRING = "string_value"
    INTEGER = "integer_value"
    DECIMAL = "decimal_value"
    BOOLEAN = "boolean_value"
    DATE = "date_value"
    JSON = "json_value"


SELECT_FIELD_TYPES = frozenset(
    {CustomFieldType.SELECT_SINGLE_DROPDOWN, CustomFieldType.SELECT_MULTI_CHECKBOX}
)

ENTITY_TYPE_VALUES = tuple(item.value for item in CustomFieldEntityType)
FIELD_TYPE_VALUES = tuple(item.value for item in CustomFieldType)

MAX_DISPLAY_ORDER = 9999

# Reference field types resolve against the lookup registered for these entity types.
REFERENCE_TARGETS = {
    CustomFieldType.USER_REFERENCE: CustomFieldEntityType.USER,
    CustomFieldType.CLIENT_REFERENCE: CustomFieldEntityType.CLIENT,
}
