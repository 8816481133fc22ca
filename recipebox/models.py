"""SQLAlchemy ORM models for recipebox.

Tables:
- recipes: Core recipe data, owned by an opaque author id
- ingredients / steps: Ordered child rows of a recipe
- main_images: At most one per recipe; tagged "url" or "presignedUrl"
- url_images / metadata_images: Sub-record matching the main image tag
- parsed_site_infos: Source url + author for recipes imported via the parser
- meal_types / nationalities / cooking_methods / utensils: Seeded taxonomy
- recipe_<taxonomy> join tables keyed by (taxonomy id, recipe id)
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    String,
    DateTime,
    Text,
    Integer,
    Boolean,
    ForeignKey,
    Index,
    Numeric,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func, false

from .db import Base


IMAGE_TYPE_URL = "url"
IMAGE_TYPE_PRESIGNED = "presignedUrl"


def generate_uuid() -> str:
    return str(uuid.uuid4())


class Recipe(Base):
    """Recipe aggregate root."""
    __tablename__ = "recipes"
    __table_args__ = (
        Index("ix_recipes_author_id", "author_id"),
        Index("ix_recipes_is_public", "is_public"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    author_id: Mapped[str] = mapped_column(String(64), nullable=False)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    prep_time: Mapped[Optional[Decimal]] = mapped_column(Numeric(8, 2), nullable=True)
    cook_time: Mapped[Optional[Decimal]] = mapped_column(Numeric(8, 2), nullable=True)
    is_public: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )

    # Bumped by the service on every edit; UPDATE/DELETE match on the loaded value
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version, "version_id_generator": False}

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    ingredients: Mapped[list["Ingredient"]] = relationship(
        "Ingredient", back_populates="recipe", cascade="all, delete-orphan",
        order_by="Ingredient.order"
    )
    steps: Mapped[list["Step"]] = relationship(
        "Step", back_populates="recipe", cascade="all, delete-orphan",
        order_by="Step.order"
    )
    main_image: Mapped[Optional["MainImage"]] = relationship(
        "MainImage", back_populates="recipe", cascade="all, delete-orphan",
        uselist=False
    )
    parsed_site_info: Mapped[Optional["ParsedSiteInfo"]] = relationship(
        "ParsedSiteInfo", back_populates="recipe", cascade="all, delete-orphan",
        uselist=False
    )

    meal_types: Mapped[list["RecipeMealType"]] = relationship(
        "RecipeMealType", back_populates="recipe", cascade="all, delete-orphan"
    )
    nationalities: Mapped[list["RecipeNationality"]] = relationship(
        "RecipeNationality", back_populates="recipe", cascade="all, delete-orphan"
    )
    cooking_methods: Mapped[list["RecipeCookingMethod"]] = relationship(
        "RecipeCookingMethod", back_populates="recipe", cascade="all, delete-orphan"
    )
    utensils: Mapped[list["RecipeUtensil"]] = relationship(
        "RecipeUtensil", back_populates="recipe", cascade="all, delete-orphan"
    )


class Ingredient(Base):
    """Ordered ingredient line (or group header) within a recipe."""
    __tablename__ = "ingredients"
    __table_args__ = (
        Index("ix_ingredients_recipe_id", "recipe_id"),
        UniqueConstraint("recipe_id", "order", name="uq_ingredients_recipe_order"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    recipe_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False
    )

    order: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    is_header: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    recipe: Mapped["Recipe"] = relationship("Recipe", back_populates="ingredients")


class Step(Base):
    """Ordered cooking step (or group header) within a recipe."""
    __tablename__ = "steps"
    __table_args__ = (
        Index("ix_steps_recipe_id", "recipe_id"),
        UniqueConstraint("recipe_id", "order", name="uq_steps_recipe_order"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    recipe_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False
    )

    order: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    is_header: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    recipe: Mapped["Recipe"] = relationship("Recipe", back_populates="steps")


class MainImage(Base):
    """Image attached to a recipe.

    type is "url" (url_image set) or "presignedUrl" (metadata_image set).
    A recipe without a row here has no image.
    """
    __tablename__ = "main_images"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    recipe_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("recipes.id", ondelete="CASCADE"),
        nullable=False, unique=True
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False)

    recipe: Mapped["Recipe"] = relationship("Recipe", back_populates="main_image")
    url_image: Mapped[Optional["UrlImage"]] = relationship(
        "UrlImage", back_populates="main_image", cascade="all, delete-orphan",
        uselist=False
    )
    metadata_image: Mapped[Optional["MetadataImage"]] = relationship(
        "MetadataImage", back_populates="main_image", cascade="all, delete-orphan",
        uselist=False
    )


class UrlImage(Base):
    """Externally hosted image, url kept verbatim."""
    __tablename__ = "url_images"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    main_image_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("main_images.id", ondelete="CASCADE"),
        nullable=False, unique=True
    )
    url: Mapped[str] = mapped_column(Text, nullable=False)

    main_image: Mapped["MainImage"] = relationship("MainImage", back_populates="url_image")


class MetadataImage(Base):
    """Object-store backed image. Never stores a browsable url."""
    __tablename__ = "metadata_images"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    main_image_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("main_images.id", ondelete="CASCADE"),
        nullable=False, unique=True
    )
    key: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    size: Mapped[int] = mapped_column(Integer, nullable=False)
    type: Mapped[str] = mapped_column(String(100), nullable=False)

    main_image: Mapped["MainImage"] = relationship("MainImage", back_populates="metadata_image")


class ParsedSiteInfo(Base):
    """Origin of a recipe imported through the recipe parser."""
    __tablename__ = "parsed_site_infos"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    recipe_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("recipes.id", ondelete="CASCADE"),
        nullable=False, unique=True
    )
    url: Mapped[str] = mapped_column(Text, nullable=False)
    author: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    recipe: Mapped["Recipe"] = relationship("Recipe", back_populates="parsed_site_info")


# --- Taxonomy ---

class MealType(Base):
    __tablename__ = "meal_types"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)


class Nationality(Base):
    __tablename__ = "nationalities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)


class CookingMethod(Base):
    __tablename__ = "cooking_methods"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)


class Utensil(Base):
    __tablename__ = "utensils"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)


class RecipeMealType(Base):
    __tablename__ = "recipe_meal_types"

    meal_type_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("meal_types.id", ondelete="CASCADE"), primary_key=True
    )
    recipe_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("recipes.id", ondelete="CASCADE"), primary_key=True
    )

    recipe: Mapped["Recipe"] = relationship("Recipe", back_populates="meal_types")
    meal_type: Mapped["MealType"] = relationship("MealType", lazy="joined")


class RecipeNationality(Base):
    __tablename__ = "recipe_nationalities"

    nationality_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("nationalities.id", ondelete="CASCADE"), primary_key=True
    )
    recipe_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("recipes.id", ondelete="CASCADE"), primary_key=True
    )

    recipe: Mapped["Recipe"] = relationship("Recipe", back_populates="nationalities")
    nationality: Mapped["Nationality"] = relationship("Nationality", lazy="joined")


class RecipeCookingMethod(Base):
    __tablename__ = "recipe_cooking_methods"

    cooking_method_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("cooking_methods.id", ondelete="CASCADE"), primary_key=True
    )
    recipe_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("recipes.id", ondelete="CASCADE"), primary_key=True
    )

    recipe: Mapped["Recipe"] = relationship("Recipe", back_populates="cooking_methods")
    cooking_method: Mapped["CookingMethod"] = relationship("CookingMethod", lazy="joined")


class RecipeUtensil(Base):
    __tablename__ = "recipe_utensils"

    utensil_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("utensils.id", ondelete="CASCADE"), primary_key=True
    )
    recipe_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("recipes.id", ondelete="CASCADE"), primary_key=True
    )

    recipe: Mapped["Recipe"] = relationship("Recipe", back_populates="utensils")
    utensil: Mapped["Utensil"] = relationship("Utensil", lazy="joined")
