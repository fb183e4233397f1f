from logging import getLogger

from fastapi import HTTPException, status

from app.services.custom_field_errors import (
    CustomFieldError,
    CustomFieldValidationError,
    DuplicateNameError,
    InvalidSpecError,
    NotFoundError,
)

logger = getLogger(__name__)


def to_http_exception(exc: CustomFieldError) -> HTTPException:
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, DuplicateNameError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, InvalidSpecError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    if isinstance(exc, CustomFieldValidationError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": "Custom field validation failed", "errors": exc.messages()},
        )
    logger.exception("Unhandled custom field error")
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
