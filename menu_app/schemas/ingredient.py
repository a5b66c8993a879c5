"""Ingredient-related Pydantic schemas."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class IngredientBase(BaseModel):
    """Base ingredient schema."""

    name: str = Field(..., min_length=1, max_length=200)
    calories: Decimal = Field(..., ge=0, description="kcal per 100 g")
    price: Decimal = Field(..., ge=0)
    weight: Decimal = Field(..., gt=0)


class IngredientCreate(IngredientBase):
    """Schema for creating an ingredient."""

    is_available: bool = True


class AvailabilityUpdate(BaseModel):
    """Schema for changing ingredient availability."""

    is_available: bool


class Ingredient(IngredientBase):
    """Schema for ingredient response."""

    id: int
    is_available: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
