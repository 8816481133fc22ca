"""Taxonomy reference data.

Meal types, nationalities, utensils and cooking methods are seeded once and
read-only afterwards. Seeding is idempotent: existing names are skipped.
"""

import logging

from sqlalchemy.orm import Session

from .models import MealType, Nationality, CookingMethod, Utensil

logger = logging.getLogger("recipebox.seed")

DEFAULT_MEAL_TYPES = [
    "Breakfast", "Brunch", "Lunch", "Dinner", "Snack", "Appetizer", "Side",
    "Dessert", "Drink",
]

DEFAULT_NATIONALITIES = [
    "American", "Chinese", "French", "Greek", "Indian", "Italian", "Japanese",
    "Korean", "Mexican", "Middle Eastern", "Spanish", "Thai", "Vietnamese",
]

DEFAULT_UTENSILS = [
    "Baking Sheet", "Blender", "Cast Iron Skillet", "Dutch Oven", "Food Processor",
    "Grill Pan", "Mixing Bowl", "Pressure Cooker", "Saucepan", "Slow Cooker",
    "Stand Mixer", "Wok",
]

DEFAULT_COOKING_METHODS = [
    "Bake", "Boil", "Braise", "Broil", "Deep Fry", "Grill", "Poach", "Roast",
    "Saute", "Slow Cook", "Smoke", "Steam", "Stir Fry", "No Cook",
]

SEED_DATA = [
    (MealType, DEFAULT_MEAL_TYPES),
    (Nationality, DEFAULT_NATIONALITIES),
    (Utensil, DEFAULT_UTENSILS),
    (CookingMethod, DEFAULT_COOKING_METHODS),
]


def seed_taxonomy(db: Session) -> dict[str, int]:
    """Insert missing taxonomy rows. Returns rows created per table."""
    created = {}
    for model, names in SEED_DATA:
        existing = {name for (name,) in db.query(model.name)}
        missing = [name for name in names if name not in existing]
        for name in missing:
            db.add(model(name=name))
        created[model.__tablename__] = len(missing)
        logger.info(f"Seeding {model.__tablename__}: {len(missing)} new")
    db.commit()
    return created


if __name__ == "__main__":
    from .db import SessionLocal

    session = SessionLocal()()
    try:
        print(seed_taxonomy(session))
    finally:
        session.close()
