from fastapi import APIRouter

from app.routers.custom_field_definition import router as custom_field_definition_router
from app.routers.custom_field_form import router as custom_field_form_router
from app.routers.custom_field_value import router as custom_field_value_router

api_router = APIRouter()
api_router.include_router(custom_field_definition_router)
api_router.include_router(custom_field_value_router)
api_router.include_router(custom_field_form_router)

__all__ = ["api_router"]
