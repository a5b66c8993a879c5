"""Engine error types."""

from typing import List, Sequence


class MenuEngineError(Exception):
    """Base class for errors raised by the menu engine."""


class ConstraintViolation(MenuEngineError):
    """A state transition was vetoed by a domain constraint."""


class IngredientsUnavailableError(ConstraintViolation):
    """Raised when activating a dish that uses unavailable ingredients."""

    def __init__(self, dish_id: int, ingredients: Sequence[str]):
        self.dish_id = dish_id
        self.ingredients: List[str] = list(ingredients)
        super().__init__(
            f"cannot activate: unavailable ingredients ({', '.join(self.ingredients)})"
        )


class RecomputationError(MenuEngineError):
    """The cached calorie total of a dish could not be recomputed."""

    def __init__(self, dish_id: int, reason: str):
        self.dish_id = dish_id
        super().__init__(f"Failed to recompute calories for dish {dish_id}: {reason}")


class ProtectedFieldError(MenuEngineError):
    """A field owned by the engine was assigned directly."""


class NotFoundError(MenuEngineError):
    """A referenced row does not exist."""

    def __init__(self, entity: str, key):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} {key} not found")
