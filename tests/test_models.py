"""Tests for store constraints and session hook registration."""

from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import event
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from menu_app.db.hooks import _after_flush, _before_flush, register_session_hooks
from menu_app.db.models import DailyNorm, DishComposition, Ingredient


def test_daily_norm_update_stamps_updated_at(db, service) -> None:
    iron = service.create_micronutrient("Iron")
    norm = service.set_daily_norm(iron.id, Decimal("8"))

    stale = datetime(2000, 1, 1)
    norm.daily_amount = Decimal("10")
    norm.updated_at = stale
    db.commit()

    norm = db.get(DailyNorm, norm.id)
    assert norm.updated_at > stale
    assert norm.daily_amount == Decimal("10")


def test_zero_quantity_is_rejected(service, soup_menu) -> None:
    with pytest.raises(IntegrityError):
        service.set_composition(soup_menu.soup.id, soup_menu.ingredient_a.id, Decimal("0"))

    assert service.get_dish(soup_menu.soup.id).total_calories == 0


def test_ingredient_appears_once_per_dish(db, service, soup_menu) -> None:
    soup_id = soup_menu.soup.id
    service.set_composition(soup_id, soup_menu.ingredient_a.id, Decimal("100"))

    db.add(DishComposition(
        dish_id=soup_id, ingredient_id=soup_menu.ingredient_a.id, quantity=Decimal("50")
    ))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()


def test_ingredient_in_use_cannot_be_deleted(db, service, soup_menu) -> None:
    service.set_composition(soup_menu.soup.id, soup_menu.ingredient_a.id, Decimal("100"))

    db.delete(db.get(Ingredient, soup_menu.ingredient_a.id))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()


def test_dishes_start_inactive(service, soup_menu) -> None:
    dish = service.get_dish(soup_menu.soup.id)

    assert dish.is_active is False
    assert dish.compositions == []


def test_register_session_hooks_is_idempotent(engine) -> None:
    factory = sessionmaker(bind=engine)

    register_session_hooks(factory)
    register_session_hooks(factory)

    assert event.contains(factory, "before_flush", _before_flush)
    assert event.contains(factory, "after_flush", _after_flush)
