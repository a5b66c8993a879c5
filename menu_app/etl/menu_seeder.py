"""Seed a demo menu: dish types, ingredients, micronutrients, norms and dishes."""

import argparse
from decimal import Decimal
from typing import Dict, List, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from menu_app.core.logging import get_logger
from menu_app.db.hooks import register_session_hooks
from menu_app.db.models import (
    DailyNorm, Dish, DishComposition, DishType, Ingredient,
    IngredientMicronutrient, Micronutrient
)
from menu_app.db.session import SessionLocal, init_db

logger = get_logger("seeder")


class MenuSeeder:
    """Load demo data idempotently (existing rows are updated, not duplicated)."""

    DISH_TYPES = {
        "Soups": "Hot and cold soups",
        "Salads": "Fresh salads",
        "Main courses": "Meat, fish and vegetarian mains",
    }

    # name: (kcal per 100 g, price, weight)
    INGREDIENTS: Dict[str, Tuple[str, str, str]] = {
        "Potato": ("77", "30", "1000"),
        "Carrot": ("41", "25", "1000"),
        "Onion": ("40", "20", "1000"),
        "Chicken breast": ("165", "350", "1000"),
        "Tomato": ("18", "120", "1000"),
        "Cucumber": ("15", "90", "1000"),
        "Olive oil": ("884", "900", "1000"),
    }

    # name: (unit, description)
    MICRONUTRIENTS: Dict[str, Tuple[str, str]] = {
        "Vitamin C": ("mg", "Ascorbic acid"),
        "Potassium": ("mg", "Electrolyte"),
        "Iron": ("mg", "Trace mineral"),
        "Vitamin A": ("mcg", "Retinol activity equivalents"),
    }

    # ingredient: [(micronutrient, amount per 100 g), ...]
    INGREDIENT_MICRONUTRIENTS: Dict[str, List[Tuple[str, str]]] = {
        "Potato": [("Vitamin C", "19.7"), ("Potassium", "425"), ("Iron", "0.8")],
        "Carrot": [("Vitamin C", "5.9"), ("Potassium", "320"), ("Vitamin A", "835")],
        "Onion": [("Vitamin C", "7.4"), ("Potassium", "146")],
        "Chicken breast": [("Potassium", "256"), ("Iron", "0.4")],
        "Tomato": [("Vitamin C", "13.7"), ("Potassium", "237"), ("Vitamin A", "42")],
        "Cucumber": [("Vitamin C", "2.8"), ("Potassium", "147")],
    }

    # micronutrient: [(age group, gender, daily amount), ...]
    DAILY_NORMS: Dict[str, List[Tuple[str, str, str]]] = {
        "Vitamin C": [("adults", "universal", "90"), ("children", "universal", "45")],
        "Potassium": [("adults", "universal", "3500")],
        "Iron": [("adults", "male", "8"), ("adults", "female", "18")],
        "Vitamin A": [("adults", "universal", "900")],
    }

    # name: (type, price, cooking time, [(ingredient, grams), ...])
    DISHES = {
        "Chicken soup": ("Soups", "320", 45, [
            ("Chicken breast", "150"), ("Potato", "200"), ("Carrot", "50"), ("Onion", "30"),
        ]),
        "Garden salad": ("Salads", "280", 10, [
            ("Tomato", "150"), ("Cucumber", "120"), ("Onion", "20"), ("Olive oil", "15"),
        ]),
    }

    def __init__(self, db: Session):
        """Initialize seeder with database session."""
        self.db = db

    def seed(self) -> None:
        """Seed all reference data and demo dishes in one transaction."""
        logger.info("Seeding demo menu...")
        try:
            dish_types = self._seed_dish_types()
            ingredients = self._seed_ingredients()
            micronutrients = self._seed_micronutrients()
            self._seed_ingredient_micronutrients(ingredients, micronutrients)
            self._seed_daily_norms(micronutrients)
            self._seed_dishes(dish_types, ingredients)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(f"Seeded {len(self.DISHES)} dishes and {len(self.INGREDIENTS)} ingredients")

    def _get_or_create(self, model, name: str, **values):
        obj = self.db.scalars(select(model).where(model.name == name)).first()
        if obj is None:
            obj = model(name=name)
            self.db.add(obj)
        for key, value in values.items():
            setattr(obj, key, value)
        return obj

    def _seed_dish_types(self) -> Dict[str, DishType]:
        return {
            name: self._get_or_create(DishType, name, description=description)
            for name, description in self.DISH_TYPES.items()
        }

    def _seed_ingredients(self) -> Dict[str, Ingredient]:
        return {
            name: self._get_or_create(
                Ingredient, name,
                calories=Decimal(calories), price=Decimal(price), weight=Decimal(weight),
            )
            for name, (calories, price, weight) in self.INGREDIENTS.items()
        }

    def _seed_micronutrients(self) -> Dict[str, Micronutrient]:
        return {
            name: self._get_or_create(Micronutrient, name, unit=unit, description=description)
            for name, (unit, description) in self.MICRONUTRIENTS.items()
        }

    def _seed_ingredient_micronutrients(
        self,
        ingredients: Dict[str, Ingredient],
        micronutrients: Dict[str, Micronutrient],
    ) -> None:
        self.db.flush()
        for ingredient_name, amounts in self.INGREDIENT_MICRONUTRIENTS.items():
            ingredient = ingredients[ingredient_name]
            for micronutrient_name, amount in amounts:
                micronutrient = micronutrients[micronutrient_name]
                link = self.db.scalars(
                    select(IngredientMicronutrient).where(
                        IngredientMicronutrient.ingredient_id == ingredient.id,
                        IngredientMicronutrient.micronutrient_id == micronutrient.id,
                    )
                ).first()
                if link is None:
                    link = IngredientMicronutrient(
                        ingredient_id=ingredient.id, micronutrient_id=micronutrient.id
                    )
                    self.db.add(link)
                link.amount_per_100g = Decimal(amount)

    def _seed_daily_norms(self, micronutrients: Dict[str, Micronutrient]) -> None:
        for micronutrient_name, norms in self.DAILY_NORMS.items():
            micronutrient = micronutrients[micronutrient_name]
            for age_group, gender, amount in norms:
                norm = self.db.scalars(
                    select(DailyNorm).where(
                        DailyNorm.micronutrient_id == micronutrient.id,
                        DailyNorm.age_group == age_group,
                        DailyNorm.gender == gender,
                    )
                ).first()
                if norm is None:
                    norm = DailyNorm(
                        micronutrient_id=micronutrient.id, age_group=age_group, gender=gender
                    )
                    self.db.add(norm)
                norm.daily_amount = Decimal(amount)

    def _seed_dishes(
        self,
        dish_types: Dict[str, DishType],
        ingredients: Dict[str, Ingredient],
    ) -> None:
        for name, (type_name, price, cooking_time, composition) in self.DISHES.items():
            dish = self._get_or_create(
                Dish, name,
                price=Decimal(price), cooking_time=cooking_time, dish_type=dish_types[type_name],
            )
            current = {row.ingredient_id: row for row in dish.compositions}
            for ingredient_name, grams in composition:
                ingredient = ingredients[ingredient_name]
                row = current.get(ingredient.id)
                if row is None:
                    row = DishComposition(ingredient=ingredient)
                    dish.compositions.append(row)
                row.quantity = Decimal(grams)


def main():
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(description="Seed the demo menu")
    parser.add_argument(
        "--create-tables", action="store_true", help="Create missing tables before seeding"
    )
    args = parser.parse_args()

    if args.create_tables:
        init_db()

    register_session_hooks(SessionLocal)
    db = SessionLocal()

    try:
        MenuSeeder(db).seed()
        logger.info("Demo menu seeded successfully")

    finally:
        db.close()


if __name__ == "__main__":
    main()
