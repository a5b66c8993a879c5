"""Dish, composition and activation endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from menu_app.core.config import get_settings
from menu_app.core.exceptions import ConstraintViolation, NotFoundError
from menu_app.core.logging import logger
from menu_app.db.models import Dish as DishModel
from menu_app.db.session import get_db
from menu_app.schemas.dish import (
    ActiveUpdate, CompositionItem, CompositionSet, Dish, DishCreate, DishType, DishTypeCreate
)
from menu_app.schemas.nutrition import NormComparison, NutritionProfile
from menu_app.services.menu import MenuService

router = APIRouter()
types_router = APIRouter()

settings = get_settings()


def _to_schema(dish: DishModel) -> Dish:
    """Build the dish response including its composition rows."""
    composition = [
        CompositionItem(
            ingredient_id=row.ingredient_id,
            ingredient_name=row.ingredient.name,
            quantity=row.quantity,
            unit=row.unit,
            preparation_notes=row.preparation_notes,
        )
        for row in sorted(dish.compositions, key=lambda r: r.ingredient_id)
    ]
    return Dish(
        id=dish.id,
        name=dish.name,
        price=dish.price,
        type_id=dish.type_id,
        cooking_time=dish.cooking_time,
        is_active=dish.is_active,
        total_calories=dish.total_calories,
        created_at=dish.created_at,
        composition=composition,
    )


@types_router.post("", response_model=DishType, status_code=status.HTTP_201_CREATED)
def create_dish_type(payload: DishTypeCreate, db: Session = Depends(get_db)):
    """Create a menu section."""
    return MenuService(db).create_dish_type(payload.name, payload.description)


@router.post("", response_model=Dish, status_code=status.HTTP_201_CREATED)
def create_dish(payload: DishCreate, db: Session = Depends(get_db)):
    """
    Create a dish.

    New dishes start inactive with zero calories; add composition rows and
    then activate.
    """
    try:
        dish = MenuService(db).create_dish(
            payload.name, payload.price, payload.type_id, payload.cooking_time
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return _to_schema(dish)


@router.get("/{dish_id}", response_model=Dish)
def get_dish(dish_id: int, db: Session = Depends(get_db)):
    """Get a dish with its cached calorie total and composition."""
    try:
        return _to_schema(MenuService(db).get_dish(dish_id))
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.put("/{dish_id}/composition/{ingredient_id}", response_model=Dish)
def set_composition(
    dish_id: int,
    ingredient_id: int,
    payload: CompositionSet,
    db: Session = Depends(get_db)
):
    """Put an ingredient into a dish or change its quantity."""
    service = MenuService(db)
    try:
        service.set_composition(
            dish_id, ingredient_id, payload.quantity, payload.unit, payload.preparation_notes
        )
        return _to_schema(service.get_dish(dish_id))
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.delete("/{dish_id}/composition/{ingredient_id}", response_model=Dish)
def remove_composition(dish_id: int, ingredient_id: int, db: Session = Depends(get_db)):
    """Remove an ingredient from a dish."""
    service = MenuService(db)
    try:
        service.remove_composition(dish_id, ingredient_id)
        return _to_schema(service.get_dish(dish_id))
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.patch("/{dish_id}/active", response_model=Dish)
def set_active(dish_id: int, payload: ActiveUpdate, db: Session = Depends(get_db)):
    """
    Activate or deactivate a dish.

    Activation is refused with 409 while any ingredient is unavailable.
    Deactivation always succeeds.
    """
    try:
        dish = MenuService(db).set_dish_active(dish_id, payload.is_active)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ConstraintViolation as e:
        logger.info(f"Activation refused for dish {dish_id}: {e}")
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return _to_schema(dish)


@router.get("/{dish_id}/nutrition", response_model=NutritionProfile)
def get_nutrition(dish_id: int, db: Session = Depends(get_db)):
    """Calories and micronutrient profile of a dish, computed on read."""
    try:
        return MenuService(db).get_nutrition_profile(dish_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/{dish_id}/norms", response_model=NormComparison)
def compare_with_norms(
    dish_id: int,
    age_group: Optional[str] = Query(None, description="Age group of the daily norm"),
    gender: Optional[str] = Query(None, description="Gender of the daily norm"),
    db: Session = Depends(get_db)
):
    """Share of the daily norm each micronutrient of the dish covers."""
    try:
        return MenuService(db).compare_with_norms(
            dish_id,
            age_group or settings.default_age_group,
            gender or settings.default_gender,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
