"""Activation gate for dishes."""

from typing import List, Optional

from sqlalchemy import inspect, select
from sqlalchemy.orm import Session

from menu_app.core.exceptions import IngredientsUnavailableError
from menu_app.core.logging import get_logger
from menu_app.db.models import Dish, DishComposition, Ingredient
from menu_app.services.calories import dish_row_lock

logger = get_logger("availability")


class AvailabilityGuard:
    """
    Veto inactive -> active transitions of dishes with unavailable ingredients.

    The guard only reads. It never changes the flag itself, and dishes that
    are already active are left alone when an ingredient runs out later.
    """

    def __init__(self, db: Session):
        """Initialize guard with database session."""
        self.db = db

    def on_activation_requested(
        self,
        dish_id: int,
        new_active: bool,
        current_active: Optional[bool] = None,
    ) -> None:
        """
        Check a requested change of ``Dish.is_active``.

        Args:
            dish_id: Dish being transitioned
            new_active: Requested value of the flag
            current_active: Value before the change, ``None`` if unknown

        Raises:
            IngredientsUnavailableError: activation requested while some
                ingredient of the dish is unavailable
        """
        if not new_active or current_active is True:
            return

        unavailable = self.find_unavailable_ingredients(dish_id)
        if unavailable:
            logger.warning(
                f"Activation of dish {dish_id} rejected, unavailable ingredients: "
                f"{', '.join(unavailable)}"
            )
            raise IngredientsUnavailableError(dish_id, unavailable)

    def find_unavailable_ingredients(self, dish_id: int) -> List[str]:
        """
        Names of unavailable ingredients in the dish's effective composition.

        Stored composition rows are combined with what is pending in the
        session: rows marked for deletion or moved to another dish are
        ignored, new rows and rows moved onto this dish are added, and
        ingredient availability is read from the session's in-memory state.
        """
        # Serialize with concurrent composition changes on this dish
        self.db.execute(dish_row_lock(dish_id))

        stored = self.db.scalars(
            select(DishComposition).where(DishComposition.dish_id == dish_id)
        ).all()
        # Dirty rows may have been moved onto this dish in the same flush
        pending = [
            obj for obj in list(self.db.new) + list(self.db.dirty)
            if isinstance(obj, DishComposition)
        ]

        compositions = [
            composition for composition in list(stored) + pending
            if composition not in self.db.deleted and self._belongs_to(composition, dish_id)
        ]
        return self._unavailable_names(compositions)

    def on_dish_created(self, dish: Dish) -> None:
        """
        Check a dish that is inserted already active.

        A new dish has no stored composition, so only the rows attached to
        it in the session are inspected.
        """
        if not dish.is_active:
            return

        unavailable = self._unavailable_names(dish.compositions)
        if unavailable:
            logger.warning(
                f"New dish '{dish.name}' cannot be active, unavailable ingredients: "
                f"{', '.join(unavailable)}"
            )
            raise IngredientsUnavailableError(dish.id, unavailable)

    def _unavailable_names(self, compositions) -> List[str]:
        unavailable = set()
        for composition in compositions:
            ingredient = self._ingredient_of(composition)
            if ingredient is not None and not ingredient.is_available:
                unavailable.add(ingredient.name)
        return sorted(unavailable)

    @staticmethod
    def _belongs_to(composition: DishComposition, dish_id: int) -> bool:
        # An assigned relationship wins over the not yet synced foreign key
        if inspect(composition).attrs.dish.history.has_changes():
            return composition.dish is not None and composition.dish.id == dish_id
        return composition.dish_id == dish_id

    def _ingredient_of(self, composition: DishComposition) -> Optional[Ingredient]:
        state = inspect(composition)
        if "ingredient" in state.dict and composition.ingredient is not None:
            return composition.ingredient
        if composition.ingredient_id is None:
            return None
        return self.db.get(Ingredient, composition.ingredient_id)
