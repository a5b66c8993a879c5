"""
Session hooks that run the engine inside every flush.

``before_flush`` vetoes illegal writes before any SQL is emitted: direct
assignments to ``Dish.total_calories`` and dish activations blocked by the
availability guard. ``after_flush`` recomputes cached calorie totals for
every dish whose composition rows were written, in the same transaction,
so a failed recomputation fails the whole flush.
"""

from typing import Set

from sqlalchemy import event, inspect
from sqlalchemy.orm import Session

from menu_app.core.exceptions import ProtectedFieldError
from menu_app.db.models import Dish, DishComposition
from menu_app.services.availability import AvailabilityGuard
from menu_app.services.calories import CalorieAggregator

_TOUCHED_DISHES_KEY = "menu_app.touched_dishes"


def register_session_hooks(target) -> None:
    """
    Attach the engine hooks to a ``sessionmaker``, ``Session`` subclass or session.

    Registering the same target twice is a no-op.
    """
    for identifier, listener in (
        ("before_flush", _before_flush),
        ("after_flush", _after_flush),
    ):
        if not event.contains(target, identifier, listener):
            event.listen(target, identifier, listener)


def _before_flush(session: Session, flush_context, instances) -> None:
    _reject_total_calories_writes(session)
    _guard_activations(session)
    # Old dish ids must be read now; orphaned and deleted rows lose them after the flush
    session.info[_TOUCHED_DISHES_KEY] = _dishes_losing_rows(session)


def _after_flush(session: Session, flush_context) -> None:
    touched: Set[int] = session.info.pop(_TOUCHED_DISHES_KEY, set())

    for obj in list(session.new) + list(session.dirty):
        if isinstance(obj, DishComposition) and obj not in session.deleted:
            touched.add(inspect(obj).dict.get("dish_id"))

    deleted_dishes = {
        inspect(obj).identity[0] for obj in session.deleted
        if isinstance(obj, Dish) and inspect(obj).identity
    }
    touched.discard(None)
    touched -= deleted_dishes

    if touched:
        CalorieAggregator(session).recompute_many(touched)


def _reject_total_calories_writes(session: Session) -> None:
    for obj in session.new:
        if isinstance(obj, Dish) and obj.total_calories not in (None, 0):
            raise ProtectedFieldError(
                f"Dish '{obj.name}' must be created with zero calories, "
                f"the total is derived from its composition"
            )
    for obj in session.dirty:
        if isinstance(obj, Dish) and inspect(obj).attrs.total_calories.history.has_changes():
            raise ProtectedFieldError(
                f"Dish {obj.id}: total_calories is maintained by the calorie aggregator"
            )


def _guard_activations(session: Session) -> None:
    guard = AvailabilityGuard(session)
    for obj in list(session.dirty):
        if not isinstance(obj, Dish) or obj in session.deleted:
            continue
        history = inspect(obj).attrs.is_active.history
        if history.added and history.added[0]:
            previous = history.deleted[0] if history.deleted else None
            guard.on_activation_requested(obj.id, True, previous)
    for obj in list(session.new):
        if isinstance(obj, Dish):
            guard.on_dish_created(obj)


def _dishes_losing_rows(session: Session) -> Set[int]:
    """Dish ids whose composition rows are deleted, orphaned or moved away."""
    dish_ids: Set[int] = set()
    for obj in list(session.dirty) + list(session.deleted):
        if not isinstance(obj, DishComposition):
            continue
        state = inspect(obj)
        if state.identity is None:
            continue
        dish_ids.add(obj.dish_id)
        dish_ids.update(state.attrs.dish_id.history.deleted or ())
    dish_ids.discard(None)
    return dish_ids
