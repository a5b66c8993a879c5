"""Shared test fixtures."""

import os

# Settings are read at import time by menu_app modules
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_FORMAT", "text")

from dataclasses import dataclass
from decimal import Decimal
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from menu_app.db import models  # noqa: F401
from menu_app.db.hooks import register_session_hooks
from menu_app.db.models import Dish, Ingredient
from menu_app.db.session import Base, create_db_engine, get_db
from menu_app.services.menu import MenuService


@pytest.fixture
def engine():
    engine = create_db_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker:
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    register_session_hooks(factory)
    return factory


@pytest.fixture
def db(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def service(db) -> MenuService:
    return MenuService(db)


@dataclass
class SoupMenu:
    """Soup dish with two ingredients not yet in its composition."""

    soup: Dish
    ingredient_a: Ingredient
    ingredient_b: Ingredient


@pytest.fixture
def soup_menu(service) -> SoupMenu:
    soups = service.create_dish_type("Soups")
    ingredient_a = service.create_ingredient(
        "Ingredient A", calories=Decimal("40"), price=Decimal("10"), weight=Decimal("1000")
    )
    ingredient_b = service.create_ingredient(
        "Ingredient B", calories=Decimal("10"), price=Decimal("5"), weight=Decimal("500")
    )
    soup = service.create_dish("Soup", price=Decimal("250"), type_id=soups.id)
    return SoupMenu(soup=soup, ingredient_a=ingredient_a, ingredient_b=ingredient_b)


@pytest.fixture
def client(session_factory) -> Generator[TestClient, None, None]:
    from menu_app.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
