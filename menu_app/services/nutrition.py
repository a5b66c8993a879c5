"""Micronutrient projection for dishes."""

from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Tuple

from sqlalchemy import Numeric, func, select, type_coerce
from sqlalchemy.orm import Session

from menu_app.core.exceptions import NotFoundError
from menu_app.core.logging import get_logger
from menu_app.db.models import (
    DailyNorm, Dish, DishComposition, IngredientMicronutrient, Micronutrient
)
from menu_app.schemas.nutrition import (
    MicronutrientAmount, NormComparison, NormCoverage, NutritionProfile
)

logger = get_logger("nutrition")


class NutritionProjector:
    """
    Derive dish micronutrient profiles from the current composition.

    Nothing is cached or written; every call reads whatever snapshot the
    session's transaction sees, so it is safe in read-only transactions.
    """

    AMOUNT_PRECISION = Decimal("0.001")
    PERCENT_PRECISION = Decimal("0.1")

    def __init__(self, db: Session):
        """Initialize projector with database session."""
        self.db = db

    def project_nutrition(self, dish_id: int) -> Dict[str, Decimal]:
        """
        Micronutrient name -> total amount for a dish.

        Each (ingredient, quantity) row contributes
        ``amount_per_100g * quantity / 100`` to every micronutrient recorded
        for that ingredient. A dish with no composition, or whose ingredients
        carry no micronutrient data, yields an empty mapping.
        """
        return {name: amount for name, (amount, _unit) in self._aggregate(dish_id).items()}

    def project_profile(self, dish_id: int) -> NutritionProfile:
        """Cached calories plus the micronutrient profile with units."""
        dish = self.db.get(Dish, dish_id)
        if dish is None:
            raise NotFoundError("Dish", dish_id)

        micronutrients = {
            name: MicronutrientAmount(amount=amount, unit=unit)
            for name, (amount, unit) in self._aggregate(dish_id).items()
        }
        return NutritionProfile(
            dish_id=dish.id,
            dish_name=dish.name,
            total_calories=dish.total_calories,
            micronutrients=micronutrients,
        )

    def compare_with_norms(
        self,
        dish_id: int,
        age_group: str = "adults",
        gender: str = "universal"
    ) -> NormComparison:
        """
        Compare a dish's micronutrients with the daily norms of a population group.

        Micronutrients without a norm for the group are still listed, with
        no daily amount and no percentage.
        """
        if self.db.get(Dish, dish_id) is None:
            raise NotFoundError("Dish", dish_id)

        profile = self._aggregate(dish_id)
        norms = dict(
            self.db.execute(
                select(Micronutrient.name, DailyNorm.daily_amount)
                .join(DailyNorm, DailyNorm.micronutrient_id == Micronutrient.id)
                .where(DailyNorm.age_group == age_group, DailyNorm.gender == gender)
            ).all()
        )

        items = []
        for name, (amount, unit) in profile.items():
            daily_amount = norms.get(name)
            percent = None
            if daily_amount:
                percent = (amount / Decimal(daily_amount) * 100).quantize(
                    self.PERCENT_PRECISION, rounding=ROUND_HALF_UP
                )
            items.append(NormCoverage(
                micronutrient=name,
                unit=unit,
                amount=amount,
                daily_amount=daily_amount,
                percent_of_norm=percent,
            ))

        missing = [item.micronutrient for item in items if item.daily_amount is None]
        if missing:
            logger.info(
                f"No daily norm ({age_group}, {gender}) for: {', '.join(missing)}"
            )

        return NormComparison(dish_id=dish_id, age_group=age_group, gender=gender, items=items)

    def _aggregate(self, dish_id: int) -> Dict[str, Tuple[Decimal, str]]:
        """Run the grouped projection query. Returns {name: (amount, unit)}."""
        rows = self.db.execute(
            select(
                Micronutrient.name,
                Micronutrient.unit,
                type_coerce(
                    func.sum(IngredientMicronutrient.amount_per_100g * DishComposition.quantity / 100),
                    Numeric(18, 6),
                ),
            )
            .select_from(DishComposition)
            .join(
                IngredientMicronutrient,
                IngredientMicronutrient.ingredient_id == DishComposition.ingredient_id,
            )
            .join(Micronutrient, Micronutrient.id == IngredientMicronutrient.micronutrient_id)
            .where(DishComposition.dish_id == dish_id)
            .group_by(Micronutrient.id, Micronutrient.name, Micronutrient.unit)
            .order_by(Micronutrient.name)
        ).all()

        profile: Dict[str, Tuple[Decimal, str]] = {}
        for name, unit, amount in rows:
            profile[name] = (
                Decimal(str(amount or 0)).quantize(self.AMOUNT_PRECISION, rounding=ROUND_HALF_UP),
                unit,
            )
        return profile
