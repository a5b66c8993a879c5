"""Ingredient endpoints."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from menu_app.core.exceptions import NotFoundError
from menu_app.db.session import get_db
from menu_app.schemas.ingredient import AvailabilityUpdate, Ingredient, IngredientCreate
from menu_app.schemas.nutrition import IngredientMicronutrient, IngredientMicronutrientSet
from menu_app.services.menu import MenuService

router = APIRouter()


@router.post("", response_model=Ingredient, status_code=status.HTTP_201_CREATED)
def create_ingredient(payload: IngredientCreate, db: Session = Depends(get_db)):
    """Create an ingredient."""
    return MenuService(db).create_ingredient(
        payload.name, payload.calories, payload.price, payload.weight, payload.is_available
    )


@router.get("/{ingredient_id}", response_model=Ingredient)
def get_ingredient(ingredient_id: int, db: Session = Depends(get_db)):
    """Get an ingredient."""
    try:
        return MenuService(db).get_ingredient(ingredient_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.patch("/{ingredient_id}/availability", response_model=Ingredient)
def set_availability(
    ingredient_id: int,
    payload: AvailabilityUpdate,
    db: Session = Depends(get_db)
):
    """
    Mark an ingredient available or unavailable.

    Dishes that are already active are not deactivated.
    """
    try:
        return MenuService(db).set_ingredient_availability(ingredient_id, payload.is_available)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.put(
    "/{ingredient_id}/micronutrients/{micronutrient_id}",
    response_model=IngredientMicronutrient,
)
def set_micronutrient(
    ingredient_id: int,
    micronutrient_id: int,
    payload: IngredientMicronutrientSet,
    db: Session = Depends(get_db)
):
    """Record how much of a micronutrient 100 g of the ingredient contains."""
    try:
        return MenuService(db).set_ingredient_micronutrient(
            ingredient_id, micronutrient_id, payload.amount_per_100g
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
