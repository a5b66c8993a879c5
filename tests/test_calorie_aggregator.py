"""Tests for cached dish calorie totals."""

from decimal import Decimal

import pytest
from sqlalchemy import insert, select
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import OperationalError

from menu_app.core.exceptions import ProtectedFieldError, RecomputationError
from menu_app.db.models import Dish, DishComposition, Ingredient
from menu_app.services.calories import CalorieAggregator, dish_row_lock


def expected_total(db, dish_id: int) -> Decimal:
    rows = db.execute(
        select(Ingredient.calories, DishComposition.quantity)
        .join(DishComposition, DishComposition.ingredient_id == Ingredient.id)
        .where(DishComposition.dish_id == dish_id)
    ).all()
    return sum((calories * quantity / 100 for calories, quantity in rows), Decimal("0"))


def test_new_dish_starts_with_zero_calories(service, soup_menu) -> None:
    assert service.get_dish(soup_menu.soup.id).total_calories == 0


def test_soup_total_follows_composition(service, soup_menu) -> None:
    soup_id = soup_menu.soup.id
    service.set_composition(soup_id, soup_menu.ingredient_a.id, Decimal("200"))
    service.set_composition(soup_id, soup_menu.ingredient_b.id, Decimal("50"))

    assert service.get_dish(soup_id).total_calories == Decimal("85")

    service.remove_composition(soup_id, soup_menu.ingredient_b.id)

    assert service.get_dish(soup_id).total_calories == Decimal("80")


def test_quantity_update_recomputes_total(service, soup_menu) -> None:
    soup_id = soup_menu.soup.id
    service.set_composition(soup_id, soup_menu.ingredient_a.id, Decimal("200"))
    service.set_composition(soup_id, soup_menu.ingredient_a.id, Decimal("125"))

    assert service.get_dish(soup_id).total_calories == Decimal("50")


def test_removing_last_row_resets_total_to_zero(service, soup_menu) -> None:
    soup_id = soup_menu.soup.id
    service.set_composition(soup_id, soup_menu.ingredient_a.id, Decimal("200"))
    service.remove_composition(soup_id, soup_menu.ingredient_a.id)

    total = service.get_dish(soup_id).total_calories
    assert total == 0
    assert total == Decimal("0.00")


def test_recomputation_is_idempotent(db, service, soup_menu) -> None:
    soup_id = soup_menu.soup.id
    service.set_composition(soup_id, soup_menu.ingredient_a.id, Decimal("200"))
    service.set_composition(soup_id, soup_menu.ingredient_b.id, Decimal("50"))

    aggregator = CalorieAggregator(db)
    first = aggregator.on_composition_changed(soup_id)
    second = aggregator.on_composition_changed(soup_id)
    db.commit()

    assert first == second == Decimal("85.00")
    assert service.get_dish(soup_id).total_calories == first


def test_invariant_holds_after_every_commit(db, service, soup_menu) -> None:
    soup_id = soup_menu.soup.id
    extra = service.create_ingredient(
        "Butter", calories=Decimal("717"), price=Decimal("80"), weight=Decimal("200")
    )
    a, b = soup_menu.ingredient_a.id, soup_menu.ingredient_b.id
    steps = [
        ("set", a, "200"),
        ("set", extra.id, "12.5"),
        ("set", b, "50"),
        ("set", a, "33.3"),
        ("remove", extra.id, None),
        ("set", extra.id, "7"),
        ("remove", a, None),
        ("remove", b, None),
        ("set", b, "0.5"),
    ]

    for action, ingredient_id, quantity in steps:
        if action == "set":
            service.set_composition(soup_id, ingredient_id, Decimal(quantity))
        else:
            service.remove_composition(soup_id, ingredient_id)

        cached = service.get_dish(soup_id).total_calories
        assert abs(cached - expected_total(db, soup_id)) <= Decimal("0.005")


def test_orphaned_row_recomputes_total(db, service, soup_menu) -> None:
    soup_id = soup_menu.soup.id
    service.set_composition(soup_id, soup_menu.ingredient_a.id, Decimal("200"))
    service.set_composition(soup_id, soup_menu.ingredient_b.id, Decimal("50"))

    soup = db.get(Dish, soup_id)
    row_b = next(r for r in soup.compositions if r.ingredient_id == soup_menu.ingredient_b.id)
    soup.compositions.remove(row_b)
    db.commit()

    assert db.get(Dish, soup_id).total_calories == Decimal("80")


def test_moving_row_recomputes_both_dishes(db, service, soup_menu) -> None:
    soup_id = soup_menu.soup.id
    stew = service.create_dish("Stew", price=Decimal("300"), type_id=soup_menu.soup.type_id)
    service.set_composition(soup_id, soup_menu.ingredient_a.id, Decimal("200"))
    service.set_composition(soup_id, soup_menu.ingredient_b.id, Decimal("50"))

    row_b = db.scalars(
        select(DishComposition).where(
            DishComposition.dish_id == soup_id,
            DishComposition.ingredient_id == soup_menu.ingredient_b.id,
        )
    ).one()
    row_b.dish_id = stew.id
    db.commit()

    assert db.get(Dish, soup_id).total_calories == Decimal("80")
    assert db.get(Dish, stew.id).total_calories == Decimal("5")


def test_deleting_dish_with_composition_succeeds(db, service, soup_menu) -> None:
    soup_id = soup_menu.soup.id
    service.set_composition(soup_id, soup_menu.ingredient_a.id, Decimal("200"))

    db.delete(db.get(Dish, soup_id))
    db.commit()

    assert db.get(Dish, soup_id) is None
    assert db.scalars(select(DishComposition)).all() == []


def test_failed_recomputation_rolls_back_composition_change(
    db, service, soup_menu, monkeypatch
) -> None:
    soup_id = soup_menu.soup.id
    service.set_composition(soup_id, soup_menu.ingredient_a.id, Decimal("200"))

    def broken_total(self, dish_id):
        raise OperationalError("SELECT sum(...)", {}, Exception("connection lost"))

    monkeypatch.setattr(CalorieAggregator, "_calculate_total", broken_total)

    with pytest.raises(RecomputationError):
        service.set_composition(soup_id, soup_menu.ingredient_b.id, Decimal("50"))

    monkeypatch.undo()

    rows = db.scalars(select(DishComposition).where(DishComposition.dish_id == soup_id)).all()
    assert [row.ingredient_id for row in rows] == [soup_menu.ingredient_a.id]
    assert service.get_dish(soup_id).total_calories == Decimal("80")


def test_recompute_of_missing_dish_fails(db) -> None:
    with pytest.raises(RecomputationError):
        CalorieAggregator(db).on_composition_changed(9999)


def test_explicit_call_covers_writes_that_bypass_the_session(db, service, soup_menu) -> None:
    soup_id = soup_menu.soup.id
    db.execute(
        insert(DishComposition).values(
            dish_id=soup_id, ingredient_id=soup_menu.ingredient_a.id, quantity=Decimal("200")
        )
    )

    total = CalorieAggregator(db).on_composition_changed(soup_id)
    db.commit()

    assert total == Decimal("80")
    assert service.get_dish(soup_id).total_calories == Decimal("80")


def test_direct_write_of_total_is_rejected(db, service, soup_menu) -> None:
    soup = db.get(Dish, soup_menu.soup.id)
    soup.total_calories = Decimal("999")

    with pytest.raises(ProtectedFieldError):
        db.commit()
    db.rollback()

    assert service.get_dish(soup_menu.soup.id).total_calories == 0


def test_dish_cannot_be_created_with_calories(db, soup_menu) -> None:
    db.add(Dish(
        name="Cheat", price=Decimal("10"), type_id=soup_menu.soup.type_id,
        total_calories=Decimal("100"),
    ))

    with pytest.raises(ProtectedFieldError):
        db.commit()
    db.rollback()


def test_dish_lock_does_not_conflict_with_foreign_key_locks() -> None:
    locked = str(dish_row_lock(1).compile(dialect=postgresql.dialect()))

    assert locked.endswith("FOR NO KEY UPDATE")
