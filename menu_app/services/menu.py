"""Menu operations that wrap store mutations in transactions."""

from decimal import Decimal
from typing import Callable, Optional, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from menu_app.core.exceptions import MenuEngineError, NotFoundError
from menu_app.core.logging import get_logger
from menu_app.db.models import (
    DailyNorm, Dish, DishComposition, DishType, Ingredient,
    IngredientMicronutrient, Micronutrient
)
from menu_app.schemas.nutrition import NormComparison, NutritionProfile
from menu_app.services.nutrition import NutritionProjector

T = TypeVar("T")

logger = get_logger("menu")


class MenuService:
    """
    CRUD entry points for the menu.

    Every mutation commits on success and rolls back on failure. Calorie
    totals and activation checks are applied by the session hooks during
    the commit's flush, so callers never touch ``total_calories`` and a
    vetoed activation leaves ``is_active`` at its committed value.
    """

    def __init__(self, db: Session):
        """Initialize service with database session."""
        self.db = db
        self.projector = NutritionProjector(db)

    # Dish types and dishes

    def create_dish_type(self, name: str, description: Optional[str] = None) -> DishType:
        dish_type = DishType(name=name)
        if description is not None:
            dish_type.description = description
        return self._commit(lambda: self._add(dish_type), f"create dish type '{name}'")

    def create_dish(
        self,
        name: str,
        price: Decimal,
        type_id: int,
        cooking_time: int = 30,
    ) -> Dish:
        """Create an inactive dish with an empty composition."""
        self._require(DishType, type_id)
        dish = Dish(name=name, price=price, type_id=type_id, cooking_time=cooking_time)
        dish = self._commit(lambda: self._add(dish), f"create dish '{name}'")
        logger.info(f"Created dish {dish.id} '{dish.name}'")
        return dish

    def get_dish(self, dish_id: int) -> Dish:
        return self._require(Dish, dish_id)

    def set_dish_active(self, dish_id: int, is_active: bool) -> Dish:
        """
        Request a change of the dish's active flag.

        Raises:
            IngredientsUnavailableError: activation vetoed; the flag keeps
                its previous value
        """
        dish = self._require(Dish, dish_id)

        def apply() -> Dish:
            dish.is_active = is_active
            return dish

        dish = self._commit(apply, f"set dish {dish_id} active={is_active}")
        logger.info(f"Dish {dish_id} active set to {is_active}")
        return dish

    # Composition

    def set_composition(
        self,
        dish_id: int,
        ingredient_id: int,
        quantity: Decimal,
        unit: str = "g",
        preparation_notes: Optional[str] = None,
    ) -> DishComposition:
        """Insert or update the quantity of an ingredient in a dish."""
        self._require(Dish, dish_id)
        self._require(Ingredient, ingredient_id)

        def apply() -> DishComposition:
            row = self._find_composition(dish_id, ingredient_id)
            if row is None:
                row = DishComposition(dish_id=dish_id, ingredient_id=ingredient_id)
                self.db.add(row)
            row.quantity = quantity
            row.unit = unit
            row.preparation_notes = preparation_notes
            return row

        row = self._commit(apply, f"set ingredient {ingredient_id} in dish {dish_id}")
        logger.info(
            f"Dish {dish_id}: ingredient {ingredient_id} set to {quantity}{unit}"
        )
        return row

    def remove_composition(self, dish_id: int, ingredient_id: int) -> None:
        row = self._find_composition(dish_id, ingredient_id)
        if row is None:
            raise NotFoundError("Composition", (dish_id, ingredient_id))

        self._commit(lambda: self.db.delete(row), f"remove ingredient {ingredient_id} from dish {dish_id}")
        logger.info(f"Dish {dish_id}: ingredient {ingredient_id} removed")

    # Ingredients

    def create_ingredient(
        self,
        name: str,
        calories: Decimal,
        price: Decimal,
        weight: Decimal,
        is_available: bool = True,
    ) -> Ingredient:
        ingredient = Ingredient(
            name=name, calories=calories, price=price, weight=weight, is_available=is_available
        )
        return self._commit(lambda: self._add(ingredient), f"create ingredient '{name}'")

    def get_ingredient(self, ingredient_id: int) -> Ingredient:
        return self._require(Ingredient, ingredient_id)

    def set_ingredient_availability(self, ingredient_id: int, is_available: bool) -> Ingredient:
        """Change availability. Active dishes using the ingredient stay active."""
        ingredient = self._require(Ingredient, ingredient_id)

        def apply() -> Ingredient:
            ingredient.is_available = is_available
            return ingredient

        ingredient = self._commit(apply, f"set ingredient {ingredient_id} availability")
        logger.info(f"Ingredient {ingredient_id} availability set to {is_available}")
        return ingredient

    # Micronutrients and norms

    def create_micronutrient(
        self, name: str, unit: str = "mg", description: Optional[str] = None
    ) -> Micronutrient:
        micronutrient = Micronutrient(name=name, unit=unit, description=description)
        return self._commit(lambda: self._add(micronutrient), f"create micronutrient '{name}'")

    def set_ingredient_micronutrient(
        self, ingredient_id: int, micronutrient_id: int, amount_per_100g: Decimal
    ) -> IngredientMicronutrient:
        self._require(Ingredient, ingredient_id)
        self._require(Micronutrient, micronutrient_id)

        def apply() -> IngredientMicronutrient:
            link = self.db.scalars(
                select(IngredientMicronutrient).where(
                    IngredientMicronutrient.ingredient_id == ingredient_id,
                    IngredientMicronutrient.micronutrient_id == micronutrient_id,
                )
            ).first()
            if link is None:
                link = IngredientMicronutrient(
                    ingredient_id=ingredient_id, micronutrient_id=micronutrient_id
                )
                self.db.add(link)
            link.amount_per_100g = amount_per_100g
            return link

        return self._commit(
            apply, f"set micronutrient {micronutrient_id} of ingredient {ingredient_id}"
        )

    def set_daily_norm(
        self,
        micronutrient_id: int,
        daily_amount: Decimal,
        age_group: str = "adults",
        gender: str = "universal",
    ) -> DailyNorm:
        """Insert or update the norm of a micronutrient for an age group and gender."""
        self._require(Micronutrient, micronutrient_id)

        def apply() -> DailyNorm:
            norm = self.db.scalars(
                select(DailyNorm).where(
                    DailyNorm.micronutrient_id == micronutrient_id,
                    DailyNorm.age_group == age_group,
                    DailyNorm.gender == gender,
                )
            ).first()
            if norm is None:
                norm = DailyNorm(
                    micronutrient_id=micronutrient_id, age_group=age_group, gender=gender
                )
                self.db.add(norm)
            norm.daily_amount = daily_amount
            return norm

        return self._commit(apply, f"set daily norm of micronutrient {micronutrient_id}")

    # Reads

    def get_nutrition_profile(self, dish_id: int) -> NutritionProfile:
        return self.projector.project_profile(dish_id)

    def compare_with_norms(
        self, dish_id: int, age_group: str = "adults", gender: str = "universal"
    ) -> NormComparison:
        return self.projector.compare_with_norms(dish_id, age_group, gender)

    # Helpers

    def _require(self, model, key):
        obj = self.db.get(model, key)
        if obj is None:
            raise NotFoundError(model.__name__, key)
        return obj

    def _find_composition(self, dish_id: int, ingredient_id: int) -> Optional[DishComposition]:
        return self.db.scalars(
            select(DishComposition).where(
                DishComposition.dish_id == dish_id,
                DishComposition.ingredient_id == ingredient_id,
            )
        ).first()

    def _add(self, obj: T) -> T:
        self.db.add(obj)
        return obj

    def _commit(self, apply: Callable[[], T], action: str) -> T:
        """Run ``apply`` and commit; roll back and re-raise on any failure."""
        try:
            result = apply()
            self.db.commit()
        except MenuEngineError as e:
            self.db.rollback()
            logger.warning(f"Could not {action}: {e}")
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database error while trying to {action}: {e}", exc_info=True)
            raise

        if result is not None:
            self.db.refresh(result)
        return result
