"""Recipe aggregate reads and writes.

A recipe is read and written together with its ordered ingredients/steps,
its main image rows and its taxonomy join rows.
"""

import logging
import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload, selectinload
from sqlalchemy.orm.exc import StaleDataError

from ..models import (
    Recipe, Ingredient, Step, MainImage, UrlImage, MetadataImage, ParsedSiteInfo,
    MealType, Nationality, CookingMethod, Utensil,
    RecipeMealType, RecipeNationality, RecipeCookingMethod, RecipeUtensil,
    IMAGE_TYPE_URL, IMAGE_TYPE_PRESIGNED,
)
from ..schemas import (
    RecipeFields, RecipeCreate, RecipeEdit, ParsedRecipeCreate, RecipeQuery,
    RecipeScope, ListItemIn, UploadDescriptorOut,
)
from .errors import RecipeError, RecipeNotFound, TaxonomyNotFound, StaleRecipeVersion
from .image_state import ImageState, NoImage, ExternalImage, StoredImage
from .image_transitions import new_image_key, replace_main_image, discard_object, issue_upload

logger = logging.getLogger("recipebox.recipes")

# relationship name -> (taxonomy model, join model, join column)
TAXONOMY_LINKS = {
    "meal_types": (MealType, RecipeMealType, "meal_type_id"),
    "nationalities": (Nationality, RecipeNationality, "nationality_id"),
    "cooking_methods": (CookingMethod, RecipeCookingMethod, "cooking_method_id"),
    "utensils": (Utensil, RecipeUtensil, "utensil_id"),
}


def _recipe_options(with_children: bool = True):
    options = [
        joinedload(Recipe.main_image).joinedload(MainImage.url_image),
        joinedload(Recipe.main_image).joinedload(MainImage.metadata_image),
        selectinload(Recipe.meal_types),
        selectinload(Recipe.nationalities),
        selectinload(Recipe.cooking_methods),
    ]
    if with_children:
        options += [
            selectinload(Recipe.ingredients),
            selectinload(Recipe.steps),
            selectinload(Recipe.utensils),
            joinedload(Recipe.parsed_site_info),
        ]
    return options


def _to_decimal(value: Optional[float]) -> Optional[Decimal]:
    if value is None:
        return None
    return Decimal(str(value))


def _terms(values: list[str]) -> list[str]:
    return [v.strip() for v in values if v and v.strip()]


# --- Reads ---

def get_recipes(db: Session, user_id: str, query: RecipeQuery) -> list[Recipe]:
    """List recipes for one scope.

    MINE: recipes authored by user_id. PUBLIC: public recipes by anyone else.
    Include filters are AND-ed (every term must match); exclude filters drop a
    recipe if any term matches.
    """
    q = db.query(Recipe).options(*_recipe_options(with_children=False))

    if query.scope == RecipeScope.PUBLIC:
        q = q.filter(Recipe.is_public.is_(True), Recipe.author_id != user_id)
    else:
        q = q.filter(Recipe.author_id == user_id)

    if query.search and query.search.strip():
        q = q.filter(Recipe.name.icontains(query.search.strip(), autoescape=True))

    filters = query.filters
    for term in _terms(filters.ingredients_include):
        q = q.filter(Recipe.ingredients.any(Ingredient.name.icontains(term, autoescape=True)))

    excluded = _terms(filters.ingredients_exclude)
    if excluded:
        q = q.filter(~Recipe.ingredients.any(
            or_(*[Ingredient.name.icontains(term, autoescape=True) for term in excluded])
        ))

    for nationality_id in filters.nationalities_include:
        q = q.filter(Recipe.nationalities.any(RecipeNationality.nationality_id == nationality_id))

    if filters.nationalities_exclude:
        q = q.filter(~Recipe.nationalities.any(
            RecipeNationality.nationality_id.in_(filters.nationalities_exclude)
        ))

    return (
        q.order_by(Recipe.created_at.desc(), Recipe.id)
        .offset(query.offset)
        .limit(query.limit)
        .all()
    )


def get_recipe(db: Session, user_id: str, recipe_id: str) -> Optional[Recipe]:
    """Recipe visible to user_id (own or public), or None."""
    return (
        db.query(Recipe)
        .options(*_recipe_options())
        .filter(
            Recipe.id == recipe_id,
            or_(Recipe.author_id == user_id, Recipe.is_public.is_(True)),
        )
        .first()
    )


def get_owned_recipe(db: Session, user_id: str, recipe_id: str) -> Optional[Recipe]:
    return (
        db.query(Recipe)
        .options(*_recipe_options())
        .filter(Recipe.id == recipe_id, Recipe.author_id == user_id)
        .first()
    )


def list_taxonomy(db: Session, model) -> list:
    return db.query(model).order_by(model.name).all()


# --- Writes ---

def _build_items(model, items: list[ListItemIn]) -> list:
    # Explicit orders win, otherwise list position; renumbered to 0..n-1
    ranked = sorted(
        enumerate(items),
        key=lambda pair: pair[1].order if pair[1].order is not None else pair[0],
    )
    return [
        model(order=position, name=item.name.strip(), is_header=item.is_header)
        for position, (_, item) in enumerate(ranked)
    ]


def build_main_image(image: ImageState) -> Optional[MainImage]:
    if isinstance(image, StoredImage):
        return MainImage(
            type=IMAGE_TYPE_PRESIGNED,
            metadata_image=MetadataImage(
                key=image.key, name=image.name, size=image.size, type=image.mime
            ),
        )
    if isinstance(image, ExternalImage):
        return MainImage(type=IMAGE_TYPE_URL, url_image=UrlImage(url=image.url))
    return None


def attach_taxonomy(db: Session, recipe: Recipe, data: RecipeFields) -> None:
    """Point the recipe's join rows at exactly the requested taxonomy ids."""
    for field, (model, link_model, column) in TAXONOMY_LINKS.items():
        ids = list(dict.fromkeys(ref.id for ref in getattr(data, field)))
        if ids:
            found = {row_id for (row_id,) in db.query(model.id).filter(model.id.in_(ids))}
            missing = [i for i in ids if i not in found]
            if missing:
                raise TaxonomyNotFound(field, missing)

        existing = {getattr(link, column): link for link in getattr(recipe, field)}
        setattr(
            recipe,
            field,
            [existing.get(i) or link_model(recipe_id=recipe.id, **{column: i}) for i in ids],
        )


def create_recipe(
    db: Session,
    user_id: str,
    data: RecipeFields,
    image: ImageState = NoImage(),
    site_info: Optional[ParsedSiteInfo] = None,
) -> Recipe:
    """Insert the recipe with its children, then link taxonomy.

    Both steps share the caller's transaction; nothing is committed here.
    """
    recipe = Recipe(
        id=str(uuid.uuid4()),
        author_id=user_id,
        name=data.name.strip(),
        description=data.description,
        prep_time=_to_decimal(data.prep_time),
        cook_time=_to_decimal(data.cook_time),
        is_public=data.is_public,
        version=1,
        ingredients=_build_items(Ingredient, data.ingredients),
        steps=_build_items(Step, data.steps),
        main_image=build_main_image(image),
        parsed_site_info=site_info,
    )
    db.add(recipe)
    db.flush()

    attach_taxonomy(db, recipe, data)
    db.flush()
    return recipe


def add_recipe(db: Session, store, user_id: str, data: RecipeCreate) -> UploadDescriptorOut:
    """Create a recipe whose image the client uploads to object storage."""
    meta = data.image_metadata
    key = new_image_key()
    try:
        recipe = create_recipe(
            db, user_id, data,
            image=StoredImage(key=key, name=meta.name, size=meta.size, mime=meta.type),
        )
        descriptor = issue_upload(store, user_id, recipe.id, meta, key)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info(f"Created recipe {recipe.id} for {user_id} with image key {key}")
    return descriptor


def add_parsed_recipe(db: Session, user_id: str, data: ParsedRecipeCreate) -> Recipe:
    """Create a recipe imported via the parser; its image stays external."""
    image = ExternalImage(url=data.url_source_image) if data.url_source_image else NoImage()
    site_info = ParsedSiteInfo(url=data.site_info.url, author=data.site_info.author)
    try:
        recipe = create_recipe(db, user_id, data, image=image, site_info=site_info)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(recipe)
    logger.info(f"Created parsed recipe {recipe.id} from {data.site_info.url}")
    return recipe


def update_recipe_fields(db: Session, recipe: Recipe, data: RecipeFields) -> None:
    recipe.version = recipe.version + 1
    recipe.name = data.name.strip()
    recipe.description = data.description
    recipe.prep_time = _to_decimal(data.prep_time)
    recipe.cook_time = _to_decimal(data.cook_time)
    recipe.is_public = data.is_public

    # Old rows must be gone before new ones reuse their (recipe_id, order)
    recipe.ingredients.clear()
    recipe.steps.clear()
    db.flush()
    recipe.ingredients.extend(_build_items(Ingredient, data.ingredients))
    recipe.steps.extend(_build_items(Step, data.steps))

    attach_taxonomy(db, recipe, data)


def _stale(db: Session, recipe_id: str, expected: int) -> RecipeError:
    db.rollback()
    actual = db.query(Recipe.version).filter(Recipe.id == recipe_id).scalar()
    if actual is None:
        return RecipeNotFound(recipe_id)
    logger.warning(f"Concurrent write on recipe {recipe_id}: loaded v{expected}, now v{actual}")
    return StaleRecipeVersion(recipe_id, expected, actual)


def edit_recipe(
    db: Session,
    store,
    user_id: str,
    recipe_id: str,
    data: RecipeEdit,
    background_tasks=None,
) -> Optional[UploadDescriptorOut]:
    """Apply an edit; returns an upload descriptor when a new image was picked.

    The recipe row is updated with a version match, so a concurrent edit that
    committed first makes this one fail with StaleRecipeVersion.
    """
    recipe = get_owned_recipe(db, user_id, recipe_id)
    if recipe is None:
        raise RecipeNotFound(recipe_id)
    loaded_version = recipe.version
    if data.expected_version is not None and data.expected_version != loaded_version:
        raise StaleRecipeVersion(recipe_id, data.expected_version, loaded_version)

    try:
        update_recipe_fields(db, recipe, data)
        db.flush()
    except StaleDataError:
        raise _stale(db, recipe_id, loaded_version)
    except Exception:
        db.rollback()
        raise

    if data.image_metadata is None:
        db.commit()
        return None

    return replace_main_image(
        db, store, recipe, user_id, data.image_metadata, background_tasks=background_tasks
    )


def delete_recipe(db: Session, store, user_id: str, recipe_id: str, background_tasks=None) -> None:
    recipe = get_owned_recipe(db, user_id, recipe_id)
    if recipe is None:
        raise RecipeNotFound(recipe_id)
    loaded_version = recipe.version

    # Collect the stored key before the rows go away
    old_key = None
    if recipe.main_image is not None and recipe.main_image.metadata_image is not None:
        old_key = recipe.main_image.metadata_image.key

    try:
        db.delete(recipe)
        db.commit()
    except StaleDataError:
        raise _stale(db, recipe_id, loaded_version)
    logger.info(f"Deleted recipe {recipe_id}")

    if old_key:
        if background_tasks is not None:
            background_tasks.add_task(discard_object, store, user_id, recipe_id, old_key)
        else:
            discard_object(store, user_id, recipe_id, old_key)
