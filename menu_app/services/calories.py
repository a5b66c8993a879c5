"""Cached calorie totals for dishes."""

from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable

from sqlalchemy import Numeric, func, inspect, select, type_coerce, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import set_committed_value

from menu_app.core.exceptions import RecomputationError
from menu_app.core.logging import get_logger
from menu_app.db.models import Dish, DishComposition, Ingredient

logger = get_logger("calories")


def dish_row_lock(dish_id: int):
    """
    SELECT ... FOR NO KEY UPDATE on one dish row.

    Composition inserts already hold FOR KEY SHARE on the dish through their
    foreign key; a plain FOR UPDATE would conflict with that and deadlock two
    writers on the same dish. NO KEY UPDATE does not, so concurrent writers
    queue on this lock instead. SQLite ignores the clause.
    """
    return select(Dish.id).where(Dish.id == dish_id).with_for_update(key_share=True)


class CalorieAggregator:
    """Keep ``Dish.total_calories`` equal to the sum over the dish composition."""

    PRECISION = Decimal("0.01")

    def __init__(self, db: Session):
        """Initialize aggregator with database session."""
        self.db = db

    def on_composition_changed(self, dish_id: int) -> Decimal:
        """
        Recompute the cached calorie total of a dish.

        Pending ORM changes are flushed first so the total reflects them.
        The write happens in the caller's transaction; nothing is committed.

        Raises:
            RecomputationError: the dish row is gone or the query failed.
        """
        self.db.flush()
        return self.recompute(dish_id)

    def recompute_many(self, dish_ids: Iterable[int]) -> Dict[int, Decimal]:
        """Recompute several dishes, locking rows in ascending id order."""
        return {dish_id: self.recompute(dish_id) for dish_id in sorted(set(dish_ids))}

    def recompute(self, dish_id: int) -> Decimal:
        """
        Lock the dish row, aggregate its composition and store the total.

        Safe to call from inside a flush: it only emits Core statements and
        never adds objects to the session.
        """
        try:
            locked = self.db.execute(dish_row_lock(dish_id)).scalar_one_or_none()
            if locked is None:
                raise RecomputationError(dish_id, "dish does not exist")

            total = self._calculate_total(dish_id)

            dishes = Dish.__table__
            result = self.db.execute(
                update(dishes)
                .where(dishes.c.id == dish_id)
                .values(total_calories=total)
            )
            if result.rowcount == 0:
                raise RecomputationError(dish_id, "dish row disappeared during update")
        except RecomputationError as e:
            logger.error(str(e))
            raise
        except SQLAlchemyError as e:
            logger.error(f"Calorie recomputation failed for dish {dish_id}: {e}", exc_info=True)
            raise RecomputationError(dish_id, str(e)) from e

        self._sync_loaded_dish(dish_id, total)
        logger.debug(f"Dish {dish_id} total calories recomputed: {total}")
        return total

    def _calculate_total(self, dish_id: int) -> Decimal:
        """SUM(calories * quantity / 100) over the stored composition, 0 when empty."""
        raw_total = self.db.execute(
            select(
                type_coerce(
                    func.coalesce(
                        func.sum(Ingredient.calories * DishComposition.quantity / 100), 0
                    ),
                    Numeric(18, 6),
                )
            )
            .select_from(DishComposition)
            .join(Ingredient, DishComposition.ingredient_id == Ingredient.id)
            .where(DishComposition.dish_id == dish_id)
        ).scalar_one()

        return Decimal(str(raw_total or 0)).quantize(self.PRECISION, rounding=ROUND_HALF_UP)

    def _sync_loaded_dish(self, dish_id: int, total: Decimal) -> None:
        """Refresh an already loaded Dish without marking it dirty."""
        key = inspect(Dish).identity_key_from_primary_key((dish_id,))
        dish = self.db.identity_map.get(key)
        if dish is not None:
            set_committed_value(dish, "total_calories", total)
