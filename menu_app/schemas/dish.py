"""Dish-related Pydantic schemas."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class DishTypeCreate(BaseModel):
    """Schema for creating a dish type."""

    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None


class DishType(DishTypeCreate):
    """Schema for dish type response."""

    id: int

    model_config = ConfigDict(from_attributes=True)


class DishCreate(BaseModel):
    """
    Schema for creating a dish.

    Calories are not accepted here: the total is derived from the
    composition.
    """

    name: str = Field(..., min_length=1, max_length=200)
    price: Decimal = Field(..., gt=0)
    type_id: int
    cooking_time: int = Field(30, gt=0)


class CompositionSet(BaseModel):
    """Schema for putting an ingredient into a dish."""

    quantity: Decimal = Field(..., gt=0)
    unit: str = Field("g", min_length=1, max_length=20)
    preparation_notes: Optional[str] = None


class CompositionItem(CompositionSet):
    """Schema for a composition row in a dish response."""

    ingredient_id: int
    ingredient_name: str


class ActiveUpdate(BaseModel):
    """Requested value of the dish active flag."""

    is_active: bool


class Dish(BaseModel):
    """Schema for dish response."""

    id: int
    name: str
    price: Decimal
    type_id: int
    cooking_time: int
    is_active: bool
    total_calories: Decimal
    created_at: datetime
    composition: List[CompositionItem] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)
