"""Nutrition projection schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class MicronutrientAmount(BaseModel):
    """Amount of one micronutrient contributed by a dish."""

    amount: Decimal
    unit: str


class NutritionProfile(BaseModel):
    """Calories and micronutrient profile of a dish."""

    dish_id: int
    dish_name: str
    total_calories: Decimal
    micronutrients: Dict[str, MicronutrientAmount] = Field(default_factory=dict)


class NormCoverage(BaseModel):
    """How much of a daily norm one dish covers."""

    micronutrient: str
    unit: str
    amount: Decimal
    daily_amount: Optional[Decimal] = None
    percent_of_norm: Optional[Decimal] = None


class NormComparison(BaseModel):
    """Dish micronutrients compared against daily norms."""

    dish_id: int
    age_group: str
    gender: str
    items: List[NormCoverage] = Field(default_factory=list)


class MicronutrientBase(BaseModel):
    """Base micronutrient schema."""

    name: str = Field(..., min_length=1, max_length=100)
    unit: str = Field("mg", min_length=1, max_length=20)
    description: Optional[str] = None


class MicronutrientCreate(MicronutrientBase):
    """Schema for creating a micronutrient."""
    pass


class Micronutrient(MicronutrientBase):
    """Schema for micronutrient response."""

    id: int

    model_config = ConfigDict(from_attributes=True)


class IngredientMicronutrientSet(BaseModel):
    """Micronutrient content of an ingredient per 100 g."""

    amount_per_100g: Decimal = Field(..., ge=0)


class IngredientMicronutrient(IngredientMicronutrientSet):
    """Schema for ingredient micronutrient response."""

    id: int
    ingredient_id: int
    micronutrient_id: int

    model_config = ConfigDict(from_attributes=True)


class DailyNormSet(BaseModel):
    """Schema for setting a daily norm."""

    daily_amount: Decimal = Field(..., gt=0)
    age_group: str = Field("adults", min_length=1, max_length=50)
    gender: str = Field("universal", min_length=1, max_length=20)


class DailyNorm(DailyNormSet):
    """Schema for daily norm response."""

    id: int
    micronutrient_id: int
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
