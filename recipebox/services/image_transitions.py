"""Main image transitions on edit.

An edit that picks a new file always ends in the presignedUrl state. What
has to happen on the way depends on the current state:

    presignedUrl -> presignedUrl   rewrite metadata, drop the old object
    url          -> presignedUrl   replace the url record with metadata
    none         -> presignedUrl   create the image with metadata

One key is generated per call and used for every step of the transition.
The old object delete is cleanup only; its failure never fails the edit.
"""

import logging
import uuid

from sqlalchemy.orm import Session

from ..models import Recipe, MainImage, MetadataImage, IMAGE_TYPE_PRESIGNED
from ..schemas import ImageMetadataIn, UploadDescriptorOut
from .errors import StorageUnavailable
from .image_state import (
    ExternalImage, StoredImage, check_image_row, image_state_from_row,
)

logger = logging.getLogger("recipebox.images")


def new_image_key() -> str:
    return uuid.uuid4().hex


def issue_upload(store, owner_id: str, recipe_id: str, metadata: ImageMetadataIn, key: str) -> UploadDescriptorOut:
    try:
        return store.upload_url(owner_id, recipe_id, metadata, key)
    except Exception as e:
        logger.error(f"Unable to issue upload url for recipe {recipe_id} key {key}: {e}")
        raise StorageUnavailable(f"Unable to issue upload url for recipe {recipe_id}") from e


def discard_object(store, owner_id: str, recipe_id: str, key: str) -> None:
    """Best-effort object delete; errors are logged and dropped."""
    try:
        store.delete(owner_id, recipe_id, key)
    except Exception as e:
        logger.warning(f"Unable to remove old image {key} for recipe {recipe_id}: {e}")


def _metadata_row(key: str, metadata: ImageMetadataIn) -> MetadataImage:
    return MetadataImage(key=key, name=metadata.name, size=metadata.size, type=metadata.type)


def replace_main_image(
    db: Session,
    store,
    recipe: Recipe,
    owner_id: str,
    metadata: ImageMetadataIn,
    background_tasks=None,
) -> UploadDescriptorOut:
    """Move the recipe to a fresh stored image and return its signed upload.

    Pending changes on the session (e.g. edited fields) are committed with
    the image swap. If the swap fails the session is rolled back and nothing
    is returned.
    """
    recipe_id = recipe.id
    current = image_state_from_row(recipe.main_image)
    key = new_image_key()

    try:
        if isinstance(current, StoredImage):
            meta = recipe.main_image.metadata_image
            meta.key = key
            meta.name = metadata.name
            meta.size = metadata.size
            meta.type = metadata.type
        elif isinstance(current, ExternalImage):
            main_image = recipe.main_image
            main_image.url_image = None
            main_image.type = IMAGE_TYPE_PRESIGNED
            main_image.metadata_image = _metadata_row(key, metadata)
        else:
            recipe.main_image = MainImage(
                type=IMAGE_TYPE_PRESIGNED, metadata_image=_metadata_row(key, metadata)
            )
        db.flush()
        check_image_row(recipe.main_image)
        db.commit()
    except Exception:
        db.rollback()
        logger.error(f"Image swap failed for recipe {recipe_id}", exc_info=True)
        raise

    logger.info(
        f"Recipe {recipe_id} image {type(current).__name__} -> StoredImage key={key}"
    )

    old_key = current.key if isinstance(current, StoredImage) else None
    try:
        descriptor = issue_upload(store, owner_id, recipe_id, metadata, key)
    except StorageUnavailable:
        # Background tasks do not run once the request errors out
        if old_key:
            discard_object(store, owner_id, recipe_id, old_key)
        raise

    if old_key:
        if background_tasks is not None:
            background_tasks.add_task(discard_object, store, owner_id, recipe_id, old_key)
        else:
            discard_object(store, owner_id, recipe_id, old_key)
    return descriptor
