"""Initial schema with recipes, children, main images and taxonomy

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-16

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TAXONOMY_TABLES = [
    # (taxonomy table, join table, join column)
    ("meal_types", "recipe_meal_types", "meal_type_id"),
    ("nationalities", "recipe_nationalities", "nationality_id"),
    ("cooking_methods", "recipe_cooking_methods", "cooking_method_id"),
    ("utensils", "recipe_utensils", "utensil_id"),
]


def upgrade() -> None:
    # Recipes table
    op.create_table(
        "recipes",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("author_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=False, server_default=""),
        sa.Column("prep_time", sa.Numeric(8, 2), nullable=True),
        sa.Column("cook_time", sa.Numeric(8, 2), nullable=True),
        sa.Column("is_public", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_recipes_author_id", "recipes", ["author_id"])
    op.create_index("ix_recipes_is_public", "recipes", ["is_public"])

    # Ordered children
    for table in ("ingredients", "steps"):
        op.create_table(
            table,
            sa.Column("id", sa.String(36), primary_key=True),
            sa.Column("recipe_id", sa.String(36), sa.ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False),
            sa.Column("order", sa.Integer, nullable=False),
            sa.Column("name", sa.String(500) if table == "ingredients" else sa.Text, nullable=False),
            sa.Column("is_header", sa.Boolean, nullable=False, server_default=sa.false()),
            sa.UniqueConstraint("recipe_id", "order", name=f"uq_{table}_recipe_order"),
        )
        op.create_index(f"ix_{table}_recipe_id", table, ["recipe_id"])

    # Main image + sub-records
    op.create_table(
        "main_images",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("recipe_id", sa.String(36), sa.ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("type", sa.String(20), nullable=False),
    )
    op.create_table(
        "url_images",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("main_image_id", sa.String(36), sa.ForeignKey("main_images.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("url", sa.Text, nullable=False),
    )
    op.create_table(
        "metadata_images",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("main_image_id", sa.String(36), sa.ForeignKey("main_images.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("key", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("size", sa.Integer, nullable=False),
        sa.Column("type", sa.String(100), nullable=False),
    )
    op.create_table(
        "parsed_site_infos",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("recipe_id", sa.String(36), sa.ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("url", sa.Text, nullable=False),
        sa.Column("author", sa.String(200), nullable=True),
    )

    # Taxonomy + join tables
    for table, join_table, column in TAXONOMY_TABLES:
        op.create_table(
            table,
            sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
            sa.Column("name", sa.String(100), nullable=False, unique=True),
        )
        op.create_table(
            join_table,
            sa.Column(column, sa.Integer, sa.ForeignKey(f"{table}.id", ondelete="CASCADE"), primary_key=True),
            sa.Column("recipe_id", sa.String(36), sa.ForeignKey("recipes.id", ondelete="CASCADE"), primary_key=True),
        )


def downgrade() -> None:
    for table, join_table, _ in reversed(TAXONOMY_TABLES):
        op.drop_table(join_table)
        op.drop_table(table)
    op.drop_table("parsed_site_infos")
    op.drop_table("metadata_images")
    op.drop_table("url_images")
    op.drop_table("main_images")
    for table in ("steps", "ingredients"):
        op.drop_index(f"ix_{table}_recipe_id", table_name=table)
        op.drop_table(table)
    op.drop_index("ix_recipes_is_public", table_name="recipes")
    op.drop_index("ix_recipes_author_id", table_name="recipes")
    op.drop_table("recipes")
