"""Recipes API router.

Endpoints:
- GET /api/recipes - List own recipes or the public feed, with filters
- GET /api/recipes/parse - Parse a recipe page via the external parser
- POST /api/recipes - Create recipe, returns a signed image upload
- POST /api/recipes/parsed - Create recipe from parsed data (external image)
- GET /api/recipes/{id} - Get recipe with display image
- GET /api/recipes/{id}/form - Raw editable fields for the edit form
- PUT /api/recipes/{id} - Edit recipe, optionally replacing the image
- DELETE /api/recipes/{id} - Delete recipe and its stored image
"""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.orm import Session

from ..db import get_db
from ..deps import get_user_id, get_store
from ..infra.idempotency import idempotency_precheck, idempotency_store_result, idempotency_clear_key
from ..models import Recipe
from ..schemas import (
    RecipeCreate, RecipeEdit, ParsedRecipeCreate, RecipeCreatedOut,
    RecipeOut, RecipeListOut, RecipeFormOut, FormImageOut, ImageMetadataOut,
    DisplayImageOut, UploadDescriptorOut, ParsedRecipeOut, ListItemOut,
    TaxonomyOut, SiteInfo, RecipeQuery, RecipeFilters, RecipeScope,
)
from ..services import recipes_service
from ..services.cache_bucket import week_bucket
from ..services.errors import (
    RecipeNotFound, TaxonomyNotFound, StaleRecipeVersion, ImageStateError,
    RecipeParseError, StorageUnavailable,
)
from ..services.image_state import (
    NO_IMAGE, StoredImage, ExternalImage, image_state_from_row, resolve_display_image,
)
from ..services.recipe_parser import parse_recipe

router = APIRouter()
limiter = Limiter(key_func=get_remote_address)
logger = logging.getLogger("recipebox.recipes")


def _float(value) -> Optional[float]:
    return float(value) if value is not None else None


def _taxonomy_out(links, attr: str) -> list[TaxonomyOut]:
    items = [getattr(link, attr) for link in links]
    return [TaxonomyOut(id=t.id, name=t.name) for t in sorted(items, key=lambda t: t.name)]


def _image_state(recipe: Recipe):
    try:
        return image_state_from_row(recipe.main_image)
    except ImageStateError as e:
        logger.error(f"Recipe {recipe.id} has an inconsistent image: {e}")
        return None


def _display_image(recipe: Recipe, store, cache_bucket: str) -> DisplayImageOut:
    state = _image_state(recipe)
    if state is None:
        return NO_IMAGE
    return resolve_display_image(state, recipe.author_id, recipe.id, store, cache_bucket)


def _recipe_to_list_out(recipe: Recipe, image: DisplayImageOut) -> RecipeListOut:
    return RecipeListOut(
        id=recipe.id,
        author_id=recipe.author_id,
        name=recipe.name,
        description=recipe.description,
        prep_time=_float(recipe.prep_time),
        cook_time=_float(recipe.cook_time),
        is_public=recipe.is_public,
        main_image=image,
        meal_types=_taxonomy_out(recipe.meal_types, "meal_type"),
        nationalities=_taxonomy_out(recipe.nationalities, "nationality"),
        cooking_methods=_taxonomy_out(recipe.cooking_methods, "cooking_method"),
        created_at=recipe.created_at,
    )


def _recipe_to_out(recipe: Recipe, image: DisplayImageOut) -> RecipeOut:
    site = recipe.parsed_site_info
    return RecipeOut(
        **_recipe_to_list_out(recipe, image).model_dump(),
        version=recipe.version,
        parsed_site_info=SiteInfo(url=site.url, author=site.author) if site else None,
        ingredients=[ListItemOut.model_validate(i) for i in recipe.ingredients],
        steps=[ListItemOut.model_validate(s) for s in recipe.steps],
        utensils=_taxonomy_out(recipe.utensils, "utensil"),
    )


def _recipe_to_form_out(recipe: Recipe, store) -> RecipeFormOut:
    state = _image_state(recipe)
    display = NO_IMAGE if state is None else resolve_display_image(
        state, recipe.author_id, recipe.id, store, week_bucket()
    )

    metadata = ImageMetadataOut()
    url_source_image = ""
    if isinstance(state, StoredImage):
        metadata = ImageMetadataOut(key=state.key, name=state.name, size=state.size, type=state.mime)
    elif isinstance(state, ExternalImage):
        url_source_image = state.url

    return RecipeFormOut(
        id=recipe.id,
        version=recipe.version,
        name=recipe.name,
        description=recipe.description,
        prep_time=_float(recipe.prep_time),
        cook_time=_float(recipe.cook_time),
        is_public=recipe.is_public,
        image=FormImageOut(
            type=display.type,
            src=display.url,
            image_metadata=metadata,
            url_source_image=url_source_image,
        ),
        ingredients=[ListItemOut.model_validate(i) for i in recipe.ingredients],
        steps=[ListItemOut.model_validate(s) for s in recipe.steps],
        meal_types=_taxonomy_out(recipe.meal_types, "meal_type"),
        nationalities=_taxonomy_out(recipe.nationalities, "nationality"),
        cooking_methods=_taxonomy_out(recipe.cooking_methods, "cooking_method"),
        utensils=_taxonomy_out(recipe.utensils, "utensil"),
    )


@router.get("/recipes", response_model=list[RecipeListOut])
def list_recipes(
    scope: RecipeScope = Query(RecipeScope.MINE),
    search: str = Query(""),
    ingredients_include: list[str] = Query([]),
    ingredients_exclude: list[str] = Query([]),
    nationalities_include: list[int] = Query([]),
    nationalities_exclude: list[int] = Query([]),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
    store=Depends(get_store),
):
    """List the caller's recipes (MINE) or other users' public recipes (PUBLIC)."""
    query = RecipeQuery(
        scope=scope,
        search=search,
        filters=RecipeFilters(
            ingredients_include=ingredients_include,
            ingredients_exclude=ingredients_exclude,
            nationalities_include=nationalities_include,
            nationalities_exclude=nationalities_exclude,
        ),
        limit=limit,
        offset=offset,
    )
    recipes = recipes_service.get_recipes(db, user_id, query)

    bucket = week_bucket()
    return [_recipe_to_list_out(r, _display_image(r, store, bucket)) for r in recipes]


@router.get("/recipes/parse", response_model=ParsedRecipeOut)
@limiter.limit("15/minute")
def parse_recipe_url(
    request: Request,  # Required for rate limiter
    url: str = Query(..., min_length=1),
    user_id: str = Depends(get_user_id),
):
    """Fetch title/ingredients/steps for a recipe page through the parser service."""
    try:
        return parse_recipe(url)
    except RecipeParseError:
        raise HTTPException(status_code=502, detail="Unable to parse recipe")


@router.post("/recipes", response_model=UploadDescriptorOut, status_code=201)
async def add_recipe(
    request: Request,
    payload: RecipeCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
    store=Depends(get_store),
):
    """Create a recipe and return the signed upload for its image."""
    pre = await idempotency_precheck(request, user_id=user_id, route_key="recipe_add")
    if isinstance(pre, JSONResponse):
        return pre
    redis_key, req_hash = pre if pre else (None, None)

    try:
        descriptor = recipes_service.add_recipe(db, store, user_id, payload)
    except TaxonomyNotFound as e:
        await idempotency_clear_key(redis_key)
        raise HTTPException(status_code=404, detail=str(e))
    except StorageUnavailable:
        await idempotency_clear_key(redis_key)
        raise HTTPException(status_code=502, detail="Unable to create image upload")
    except Exception:
        await idempotency_clear_key(redis_key)
        raise

    if redis_key:
        await idempotency_store_result(
            redis_key, req_hash, status=201, body=descriptor.model_dump(mode="json")
        )
    return descriptor


@router.post("/recipes/parsed", response_model=RecipeCreatedOut, status_code=201)
async def add_parsed_recipe(
    request: Request,
    payload: ParsedRecipeCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
):
    """Create a recipe from parser output, keeping the source image url."""
    pre = await idempotency_precheck(request, user_id=user_id, route_key="recipe_add_parsed")
    if isinstance(pre, JSONResponse):
        return pre
    redis_key, req_hash = pre if pre else (None, None)

    try:
        recipe = recipes_service.add_parsed_recipe(db, user_id, payload)
    except TaxonomyNotFound as e:
        await idempotency_clear_key(redis_key)
        raise HTTPException(status_code=404, detail=str(e))
    except Exception:
        await idempotency_clear_key(redis_key)
        raise

    res = RecipeCreatedOut(recipe_id=recipe.id)
    if redis_key:
        await idempotency_store_result(redis_key, req_hash, status=201, body=res.model_dump())
    return res


@router.get("/recipes/{recipe_id}", response_model=Optional[RecipeOut])
def get_recipe(
    recipe_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
    store=Depends(get_store),
):
    """Get a recipe the caller owns or that is public; null otherwise."""
    recipe = recipes_service.get_recipe(db, user_id, recipe_id)
    if recipe is None:
        return None
    return _recipe_to_out(recipe, _display_image(recipe, store, week_bucket()))


@router.get("/recipes/{recipe_id}/form", response_model=Optional[RecipeFormOut])
def get_recipe_form_fields(
    recipe_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
    store=Depends(get_store),
):
    """Raw fields of an owned recipe for the edit form; null otherwise."""
    recipe = recipes_service.get_owned_recipe(db, user_id, recipe_id)
    if recipe is None:
        return None
    return _recipe_to_form_out(recipe, store)


@router.put("/recipes/{recipe_id}", response_model=Optional[UploadDescriptorOut])
def edit_recipe(
    recipe_id: str,
    payload: RecipeEdit,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
    store=Depends(get_store),
):
    """Edit a recipe. Returns a signed upload when image_metadata is given."""
    try:
        return recipes_service.edit_recipe(
            db, store, user_id, recipe_id, payload, background_tasks=background_tasks
        )
    except RecipeNotFound:
        raise HTTPException(status_code=404, detail="Recipe does not exist")
    except TaxonomyNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StaleRecipeVersion as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ImageStateError as e:
        logger.error(f"Refusing to edit recipe {recipe_id}: {e}")
        raise HTTPException(status_code=500, detail="Recipe image is inconsistent")
    except StorageUnavailable:
        raise HTTPException(status_code=502, detail="Unable to create image upload")


@router.delete("/recipes/{recipe_id}", status_code=204)
def delete_recipe(
    recipe_id: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
    store=Depends(get_store),
):
    """Delete a recipe with its children; the stored image is removed best-effort."""
    try:
        recipes_service.delete_recipe(
            db, store, user_id, recipe_id, background_tasks=background_tasks
        )
    except RecipeNotFound:
        raise HTTPException(status_code=404, detail="Recipe not found")
    except StaleRecipeVersion as e:
        raise HTTPException(status_code=409, detail=str(e))
    return None
