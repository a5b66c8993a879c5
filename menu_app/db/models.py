"""SQLAlchemy database models."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import (
    Boolean, CheckConstraint, DateTime, ForeignKey, Index, Integer,
    Numeric, String, Text, UniqueConstraint, event
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from menu_app.db.session import Base


class DishType(Base):
    """Menu section a dish belongs to (soups, salads, ...)."""

    __tablename__ = "dish_types"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[str] = mapped_column(Text, default="No description")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    dishes: Mapped[List["Dish"]] = relationship("Dish", back_populates="dish_type")

    def __repr__(self) -> str:
        return f"<DishType(id={self.id}, name='{self.name}')>"


class Dish(Base):
    """
    A menu item.

    ``total_calories`` is a cached aggregate over the dish composition and
    is maintained by the calorie aggregator only.
    """

    __tablename__ = "dishes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    type_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("dish_types.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    cooking_time: Mapped[int] = mapped_column(Integer, default=30)
    # active_history loads the prior value on assignment so the
    # activation hook can tell a real inactive -> active transition
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=False, index=True, active_history=True
    )
    total_calories: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), default=Decimal("0"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    dish_type: Mapped["DishType"] = relationship("DishType", back_populates="dishes")
    compositions: Mapped[List["DishComposition"]] = relationship(
        "DishComposition", back_populates="dish", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("price > 0", name="ck_dish_price_positive"),
        CheckConstraint("cooking_time > 0", name="ck_dish_cooking_time_positive"),
        Index("idx_dishes_price", "price"),
    )

    def __repr__(self) -> str:
        return f"<Dish(id={self.id}, name='{self.name}', total_calories={self.total_calories})>"


class Ingredient(Base):
    """Ingredient with calorie density per 100 g."""

    __tablename__ = "ingredients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    calories: Mapped[Decimal] = mapped_column(Numeric(8, 2), nullable=False, index=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    weight: Mapped[Decimal] = mapped_column(Numeric(8, 2), nullable=False)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    compositions: Mapped[List["DishComposition"]] = relationship(
        "DishComposition", back_populates="ingredient"
    )
    micronutrients: Mapped[List["IngredientMicronutrient"]] = relationship(
        "IngredientMicronutrient", back_populates="ingredient", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("calories >= 0", name="ck_ingredient_calories_non_negative"),
        CheckConstraint("price >= 0", name="ck_ingredient_price_non_negative"),
        CheckConstraint("weight > 0", name="ck_ingredient_weight_positive"),
    )

    def __repr__(self) -> str:
        return f"<Ingredient(id={self.id}, name='{self.name}', available={self.is_available})>"


class DishComposition(Base):
    """Quantity of one ingredient in one dish."""

    __tablename__ = "dish_composition"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    dish_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("dishes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    ingredient_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("ingredients.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    quantity: Mapped[Decimal] = mapped_column(Numeric(8, 2), nullable=False)
    unit: Mapped[str] = mapped_column(String(20), default="g")
    preparation_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    dish: Mapped["Dish"] = relationship("Dish", back_populates="compositions")
    ingredient: Mapped["Ingredient"] = relationship("Ingredient", back_populates="compositions")

    __table_args__ = (
        UniqueConstraint("dish_id", "ingredient_id", name="uix_dish_ingredient"),
        CheckConstraint("quantity > 0", name="ck_composition_quantity_positive"),
    )

    def __repr__(self) -> str:
        return (
            f"<DishComposition(dish_id={self.dish_id}, ingredient_id={self.ingredient_id}, "
            f"quantity={self.quantity}{self.unit})>"
        )


class Micronutrient(Base):
    """Micronutrient definitions (vitamins, minerals)."""

    __tablename__ = "micronutrients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    unit: Mapped[str] = mapped_column(String(20), default="mg")
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    ingredient_links: Mapped[List["IngredientMicronutrient"]] = relationship(
        "IngredientMicronutrient", back_populates="micronutrient", cascade="all, delete-orphan"
    )
    daily_norms: Mapped[List["DailyNorm"]] = relationship(
        "DailyNorm", back_populates="micronutrient", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Micronutrient(id={self.id}, name='{self.name}', unit='{self.unit}')>"


class IngredientMicronutrient(Base):
    """Micronutrient content of an ingredient (per 100 g)."""

    __tablename__ = "ingredient_micronutrients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    ingredient_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("ingredients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    micronutrient_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("micronutrients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    amount_per_100g: Mapped[Decimal] = mapped_column(Numeric(10, 3), nullable=False)

    ingredient: Mapped["Ingredient"] = relationship("Ingredient", back_populates="micronutrients")
    micronutrient: Mapped["Micronutrient"] = relationship(
        "Micronutrient", back_populates="ingredient_links"
    )

    __table_args__ = (
        UniqueConstraint("ingredient_id", "micronutrient_id", name="uix_ingredient_micronutrient"),
        CheckConstraint("amount_per_100g >= 0", name="ck_micronutrient_amount_non_negative"),
    )

    def __repr__(self) -> str:
        return (
            f"<IngredientMicronutrient(ingredient_id={self.ingredient_id}, "
            f"micronutrient_id={self.micronutrient_id}, amount={self.amount_per_100g})>"
        )


class DailyNorm(Base):
    """Recommended daily amount of a micronutrient for an age group and gender."""

    __tablename__ = "daily_micronutrient_norms"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    micronutrient_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("micronutrients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    daily_amount: Mapped[Decimal] = mapped_column(Numeric(10, 3), nullable=False)
    age_group: Mapped[str] = mapped_column(String(50), default="adults")
    gender: Mapped[str] = mapped_column(String(20), default="universal")
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    micronutrient: Mapped["Micronutrient"] = relationship(
        "Micronutrient", back_populates="daily_norms"
    )

    __table_args__ = (
        UniqueConstraint("micronutrient_id", "age_group", "gender", name="uix_daily_norm"),
        CheckConstraint("daily_amount > 0", name="ck_daily_norm_amount_positive"),
    )

    def __repr__(self) -> str:
        return (
            f"<DailyNorm(micronutrient_id={self.micronutrient_id}, age_group='{self.age_group}', "
            f"gender='{self.gender}', daily_amount={self.daily_amount})>"
        )


@event.listens_for(DailyNorm, "before_update")
def _touch_daily_norm(mapper, connection, target: DailyNorm) -> None:
    """Stamp every norm update, overriding any value set by the caller."""
    target.updated_at = datetime.utcnow()
