"""Tests for micronutrient projection and norm comparison."""

from decimal import Decimal

import pytest

from menu_app.core.exceptions import NotFoundError
from menu_app.schemas.nutrition import NormComparison
from menu_app.services.nutrition import NutritionProjector


@pytest.fixture
def vitamins(service, soup_menu):
    vitamin_c = service.create_micronutrient("Vitamin C", unit="mg")
    iron = service.create_micronutrient("Iron", unit="mg")
    service.set_ingredient_micronutrient(soup_menu.ingredient_a.id, vitamin_c.id, Decimal("20"))
    service.set_ingredient_micronutrient(soup_menu.ingredient_a.id, iron.id, Decimal("1.5"))
    service.set_ingredient_micronutrient(soup_menu.ingredient_b.id, vitamin_c.id, Decimal("4"))
    return vitamin_c, iron


def test_empty_composition_projects_nothing(db, soup_menu, vitamins) -> None:
    assert NutritionProjector(db).project_nutrition(soup_menu.soup.id) == {}


def test_ingredients_without_micronutrients_project_nothing(db, service, soup_menu) -> None:
    service.set_composition(soup_menu.soup.id, soup_menu.ingredient_a.id, Decimal("200"))

    assert NutritionProjector(db).project_nutrition(soup_menu.soup.id) == {}


def test_projection_sums_over_composition(db, service, soup_menu, vitamins) -> None:
    soup_id = soup_menu.soup.id
    service.set_composition(soup_id, soup_menu.ingredient_a.id, Decimal("200"))
    service.set_composition(soup_id, soup_menu.ingredient_b.id, Decimal("50"))

    projection = NutritionProjector(db).project_nutrition(soup_id)

    assert projection == {"Iron": Decimal("3"), "Vitamin C": Decimal("42")}


def test_projection_reflects_latest_composition(db, service, soup_menu, vitamins) -> None:
    soup_id = soup_menu.soup.id
    projector = NutritionProjector(db)
    service.set_composition(soup_id, soup_menu.ingredient_b.id, Decimal("50"))

    assert projector.project_nutrition(soup_id) == {"Vitamin C": Decimal("2")}

    service.set_composition(soup_id, soup_menu.ingredient_b.id, Decimal("150"))

    assert projector.project_nutrition(soup_id) == {"Vitamin C": Decimal("6")}


def test_projection_writes_nothing(db, service, soup_menu, vitamins) -> None:
    soup_id = soup_menu.soup.id
    service.set_composition(soup_id, soup_menu.ingredient_a.id, Decimal("200"))

    NutritionProjector(db).project_profile(soup_id)

    assert not db.new
    assert not db.dirty
    assert not db.deleted


def test_profile_includes_cached_calories_and_units(db, service, soup_menu, vitamins) -> None:
    soup_id = soup_menu.soup.id
    service.set_composition(soup_id, soup_menu.ingredient_a.id, Decimal("200"))

    profile = NutritionProjector(db).project_profile(soup_id)

    assert profile.dish_name == "Soup"
    assert profile.total_calories == Decimal("80")
    assert profile.micronutrients["Vitamin C"].amount == Decimal("40")
    assert profile.micronutrients["Vitamin C"].unit == "mg"


def test_compare_with_norms(db, service, soup_menu, vitamins) -> None:
    vitamin_c, _iron = vitamins
    soup_id = soup_menu.soup.id
    service.set_composition(soup_id, soup_menu.ingredient_a.id, Decimal("200"))
    service.set_daily_norm(vitamin_c.id, Decimal("90"))
    service.set_daily_norm(vitamin_c.id, Decimal("45"), age_group="children")

    comparison = NutritionProjector(db).compare_with_norms(soup_id)

    assert isinstance(comparison, NormComparison)
    assert (comparison.dish_id, comparison.age_group, comparison.gender) == (
        soup_id, "adults", "universal"
    )
    assert [item.micronutrient for item in comparison.items] == ["Iron", "Vitamin C"]
    items = {item.micronutrient: item for item in comparison.items}

    assert items["Vitamin C"].daily_amount == Decimal("90")
    assert items["Vitamin C"].percent_of_norm == Decimal("44.4")
    assert items["Iron"].daily_amount is None
    assert items["Iron"].percent_of_norm is None

    children = NutritionProjector(db).compare_with_norms(soup_id, age_group="children")
    assert children.items[1].micronutrient == "Vitamin C"
    assert children.items[1].percent_of_norm == Decimal("88.9")


def test_unknown_dish_raises_not_found(db) -> None:
    projector = NutritionProjector(db)

    with pytest.raises(NotFoundError):
        projector.project_profile(404)
    with pytest.raises(NotFoundError):
        projector.compare_with_norms(404)
    assert projector.project_nutrition(404) == {}
