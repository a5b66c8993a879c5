"""API v1 package."""

from fastapi import APIRouter

from menu_app.api.v1.endpoints import dishes, ingredients, micronutrients

api_router = APIRouter()

api_router.include_router(dishes.types_router, prefix="/dish-types", tags=["Dish types"])
api_router.include_router(dishes.router, prefix="/dishes", tags=["Dishes"])
api_router.include_router(ingredients.router, prefix="/ingredients", tags=["Ingredients"])
api_router.include_router(
    micronutrients.router, prefix="/micronutrients", tags=["Micronutrients"]
)
