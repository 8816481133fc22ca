"""Recipe main image as a tagged value.

The relational schema stores the image as a MainImage row tagged "url" or
"presignedUrl" plus exactly one sub-record. Everything above the ORM works
with one of NoImage / ExternalImage / StoredImage instead.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Union

from ..models import MainImage, IMAGE_TYPE_URL, IMAGE_TYPE_PRESIGNED
from ..schemas import DisplayImageOut
from .cache_bucket import week_bucket
from .errors import ImageStateError

logger = logging.getLogger("recipebox.images")


@dataclass(frozen=True)
class NoImage:
    pass


@dataclass(frozen=True)
class ExternalImage:
    url: str


@dataclass(frozen=True)
class StoredImage:
    key: str
    name: str
    size: int
    mime: str


ImageState = Union[NoImage, ExternalImage, StoredImage]

NO_IMAGE = DisplayImageOut(type="noImage", url="")


def check_image_row(row: Optional[MainImage]) -> None:
    """Raise ImageStateError unless the tag matches the populated sub-record."""
    if row is None:
        return
    if row.type == IMAGE_TYPE_URL:
        if row.url_image is None or row.metadata_image is not None:
            raise ImageStateError(f"main image {row.id} tagged url without a lone url image")
    elif row.type == IMAGE_TYPE_PRESIGNED:
        if row.metadata_image is None or row.url_image is not None:
            raise ImageStateError(
                f"main image {row.id} tagged presignedUrl without lone image metadata"
            )
    else:
        raise ImageStateError(f"main image {row.id} has unknown type {row.type!r}")


def image_state_from_row(row: Optional[MainImage]) -> ImageState:
    check_image_row(row)
    if row is None:
        return NoImage()
    if row.type == IMAGE_TYPE_URL:
        return ExternalImage(url=row.url_image.url)
    meta = row.metadata_image
    return StoredImage(key=meta.key, name=meta.name, size=meta.size, mime=meta.type)


def resolve_display_image(
    state: ImageState,
    owner_id: str,
    recipe_id: str,
    store,
    cache_bucket: Optional[str] = None,
) -> DisplayImageOut:
    """Turn an image state into something the client can render.

    Storage failures never propagate; the item falls back to noImage.
    """
    if isinstance(state, ExternalImage) and state.url:
        return DisplayImageOut(type="url", url=state.url)

    if isinstance(state, StoredImage) and state.key:
        try:
            url = store.download_url(
                owner_id, recipe_id, state.key, cache_bucket or week_bucket()
            )
        except Exception as e:
            logger.warning(
                f"Unable to sign image {state.key} for recipe {recipe_id}: {e}"
            )
            return NO_IMAGE
        return DisplayImageOut(type="presignedUrl", url=url)

    return NO_IMAGE
