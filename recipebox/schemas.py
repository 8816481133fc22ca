"""Pydantic schemas for recipebox API.

Request/response models for:
- Recipes (with ordered ingredients/steps and taxonomy links)
- Main image display values, form metadata and signed upload descriptors
- Recipe parser results
"""

from datetime import datetime
from enum import Enum
from typing import Optional, Literal

from pydantic import BaseModel, Field, model_validator

from .settings import settings


# --- Taxonomy ---

class TaxonomyRef(BaseModel):
    id: int
    name: Optional[str] = None


class TaxonomyOut(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


# --- Ingredient / Step ---

class ListItemIn(BaseModel):
    name: str = Field(..., min_length=1)
    is_header: bool = False
    order: Optional[int] = Field(None, ge=0)


class IngredientIn(ListItemIn):
    name: str = Field(..., min_length=1, max_length=500)


class StepIn(ListItemIn):
    """Step text maps to an unbounded Text column."""


class ListItemOut(BaseModel):
    id: str
    order: int
    name: str
    is_header: bool

    class Config:
        from_attributes = True


# --- Images ---

class ImageMetadataIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    size: int = Field(..., ge=1, le=settings.max_upload_bytes)
    type: str = Field(..., pattern=r"^image/[\w.+-]+$")


class ImageMetadataOut(BaseModel):
    key: str = ""
    name: str = ""
    size: int = 0
    type: str = ""


class DisplayImageOut(BaseModel):
    type: Literal["url", "presignedUrl", "noImage"]
    url: str


class FormImageOut(BaseModel):
    type: Literal["url", "presignedUrl", "noImage"]
    src: str
    image_metadata: ImageMetadataOut
    url_source_image: str = ""


class UploadDescriptorOut(BaseModel):
    upload_url: str
    fields: dict[str, str]
    key: str


# --- Recipe ---

class SiteInfo(BaseModel):
    url: str = Field(..., min_length=1)
    author: Optional[str] = None


class RecipeFields(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    prep_time: Optional[float] = Field(None, ge=0)
    cook_time: Optional[float] = Field(None, ge=0)
    is_public: bool = False
    ingredients: list[IngredientIn] = []
    steps: list[StepIn] = []
    meal_types: list[TaxonomyRef] = []
    nationalities: list[TaxonomyRef] = []
    cooking_methods: list[TaxonomyRef] = []
    utensils: list[TaxonomyRef] = []

    @model_validator(mode="after")
    def _unique_orders(self):
        for field in ("ingredients", "steps"):
            orders = [item.order for item in getattr(self, field) if item.order is not None]
            if len(orders) != len(set(orders)):
                raise ValueError(f"{field} order values must be unique")
        return self


class RecipeCreate(RecipeFields):
    image_metadata: ImageMetadataIn


class RecipeEdit(RecipeFields):
    image_metadata: Optional[ImageMetadataIn] = None  # Only set when a new file was picked
    expected_version: Optional[int] = Field(None, ge=1)


class ParsedRecipeCreate(RecipeFields):
    url_source_image: Optional[str] = None
    site_info: SiteInfo


class RecipeCreatedOut(BaseModel):
    recipe_id: str


class RecipeListOut(BaseModel):
    """Lighter recipe model for list views (no ingredients/steps)."""
    id: str
    author_id: str
    name: str
    description: str
    prep_time: Optional[float]
    cook_time: Optional[float]
    is_public: bool
    main_image: DisplayImageOut
    meal_types: list[TaxonomyOut] = []
    nationalities: list[TaxonomyOut] = []
    cooking_methods: list[TaxonomyOut] = []
    created_at: Optional[datetime] = None


class RecipeOut(RecipeListOut):
    version: int
    parsed_site_info: Optional[SiteInfo] = None
    ingredients: list[ListItemOut] = []
    steps: list[ListItemOut] = []
    utensils: list[TaxonomyOut] = []


class RecipeFormOut(BaseModel):
    """Raw editable fields for the edit form."""
    id: str
    version: int
    name: str
    description: str
    prep_time: Optional[float]
    cook_time: Optional[float]
    is_public: bool
    image: FormImageOut
    ingredients: list[ListItemOut] = []
    steps: list[ListItemOut] = []
    meal_types: list[TaxonomyOut] = []
    nationalities: list[TaxonomyOut] = []
    cooking_methods: list[TaxonomyOut] = []
    utensils: list[TaxonomyOut] = []


# --- Listing ---

class RecipeScope(str, Enum):
    MINE = "MINE"
    PUBLIC = "PUBLIC"


class RecipeFilters(BaseModel):
    ingredients_include: list[str] = []
    ingredients_exclude: list[str] = []
    nationalities_include: list[int] = []
    nationalities_exclude: list[int] = []


class RecipeQuery(BaseModel):
    scope: RecipeScope = RecipeScope.MINE
    search: str = ""
    filters: RecipeFilters = RecipeFilters()
    limit: int = Field(50, ge=1, le=100)
    offset: int = Field(0, ge=0)


# --- Parser ---

class ParsedImage(BaseModel):
    url_source_image: Optional[str] = None
    image_metadata: Optional[ImageMetadataIn] = None


class ParsedListItem(BaseModel):
    id: str
    name: str
    is_header: bool = False


class ParsedInitialData(BaseModel):
    name: str
    description: str = ""
    image: ParsedImage
    ingredients: list[ParsedListItem] = []
    steps: list[ParsedListItem] = []
    prep_time: Optional[float] = None
    cook_time: Optional[float] = None
    is_public: bool = False
    cooking_methods: list[TaxonomyRef] = []
    meal_types: list[TaxonomyRef] = []
    nationalities: list[TaxonomyRef] = []


class ParsedRecipeOut(BaseModel):
    site_info: SiteInfo
    initial_data: ParsedInitialData
