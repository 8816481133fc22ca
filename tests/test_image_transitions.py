"""Tests for main image transitions on edit."""

import pytest
from fastapi import BackgroundTasks

from recipebox.models import Recipe, MainImage, UrlImage, MetadataImage
from recipebox.schemas import ImageMetadataIn
from recipebox.services.errors import StorageUnavailable
from recipebox.services.image_state import StoredImage, image_state_from_row
from recipebox.services.image_transitions import replace_main_image

NEW_FILE = ImageMetadataIn(name="new.jpg", size=2048, type="image/jpeg")


def _recipe(db_session, main_image=None) -> Recipe:
    recipe = Recipe(author_id="user-1", name="Shakshuka", description="", main_image=main_image)
    db_session.add(recipe)
    db_session.commit()
    db_session.refresh(recipe)
    return recipe


def _reload(db_session, recipe_id) -> Recipe:
    db_session.expire_all()
    return db_session.get(Recipe, recipe_id)


def test_none_to_stored(db_session, store):
    recipe = _recipe(db_session)

    descriptor = replace_main_image(db_session, store, recipe, "user-1", NEW_FILE)

    recipe = _reload(db_session, recipe.id)
    state = image_state_from_row(recipe.main_image)
    assert isinstance(state, StoredImage)
    assert state.key == descriptor.key
    assert state.name == "new.jpg" and state.size == 2048 and state.mime == "image/jpeg"
    assert recipe.main_image.url_image is None
    assert store.uploads == [("user-1", recipe.id, descriptor.key)]
    assert store.delete_attempts == []


def test_url_to_stored(db_session, store):
    recipe = _recipe(
        db_session,
        MainImage(type="url", url_image=UrlImage(url="https://example.com/pie.jpg")),
    )

    descriptor = replace_main_image(db_session, store, recipe, "user-1", NEW_FILE)

    recipe = _reload(db_session, recipe.id)
    assert recipe.main_image.type == "presignedUrl"
    assert recipe.main_image.url_image is None
    assert recipe.main_image.metadata_image.key == descriptor.key
    assert db_session.query(UrlImage).count() == 0
    # Nothing owned in storage before, so nothing to delete
    assert store.delete_attempts == []


def test_stored_to_stored_deletes_old_key(db_session, store):
    recipe = _recipe(
        db_session,
        MainImage(
            type="presignedUrl",
            metadata_image=MetadataImage(key="oldkey", name="old.png", size=10, type="image/png"),
        ),
    )

    descriptor = replace_main_image(db_session, store, recipe, "user-1", NEW_FILE)

    assert descriptor.key != "oldkey"
    assert store.delete_attempts == [("user-1", recipe.id, "oldkey")]
    recipe = _reload(db_session, recipe.id)
    assert recipe.main_image.metadata_image.key == descriptor.key
    assert db_session.query(MetadataImage).count() == 1


def test_stored_to_stored_survives_delete_failure(db_session, store):
    store.fail_delete = True
    recipe = _recipe(
        db_session,
        MainImage(
            type="presignedUrl",
            metadata_image=MetadataImage(key="oldkey", name="old.png", size=10, type="image/png"),
        ),
    )

    descriptor = replace_main_image(db_session, store, recipe, "user-1", NEW_FILE)

    assert descriptor.upload_url
    assert store.delete_attempts == [("user-1", recipe.id, "oldkey")]


def test_each_call_uses_a_fresh_key(db_session, store):
    recipe = _recipe(db_session)
    first = replace_main_image(db_session, store, recipe, "user-1", NEW_FILE)
    recipe = _reload(db_session, recipe.id)
    second = replace_main_image(db_session, store, recipe, "user-1", NEW_FILE)

    assert first.key != second.key
    assert store.delete_attempts == [("user-1", recipe.id, first.key)]


def test_swap_failure_returns_no_upload(db_session, store, monkeypatch):
    recipe = _recipe(db_session)

    def broken_commit():
        raise RuntimeError("database went away")

    monkeypatch.setattr(db_session, "commit", broken_commit)

    with pytest.raises(RuntimeError):
        replace_main_image(db_session, store, recipe, "user-1", NEW_FILE)

    assert store.uploads == []
    monkeypatch.undo()
    recipe = _reload(db_session, recipe.id)
    assert recipe.main_image is None


def test_upload_signing_failure_is_surfaced(db_session, store):
    store.fail_upload = True
    recipe = _recipe(db_session)

    with pytest.raises(StorageUnavailable):
        replace_main_image(db_session, store, recipe, "user-1", NEW_FILE)


def test_old_object_is_removed_when_upload_signing_fails(db_session, store):
    store.fail_upload = True
    background_tasks = BackgroundTasks()
    recipe = _recipe(
        db_session,
        MainImage(
            type="presignedUrl",
            metadata_image=MetadataImage(key="oldkey", name="old.png", size=10, type="image/png"),
        ),
    )

    with pytest.raises(StorageUnavailable):
        replace_main_image(
            db_session, store, recipe, "user-1", NEW_FILE, background_tasks=background_tasks
        )

    # Deleted inline; a queued task would never run after the request fails
    assert store.delete_attempts == [("user-1", recipe.id, "oldkey")]
    assert background_tasks.tasks == []


def test_old_object_delete_is_queued_after_upload_is_issued(db_session, store):
    background_tasks = BackgroundTasks()
    recipe = _recipe(
        db_session,
        MainImage(
            type="presignedUrl",
            metadata_image=MetadataImage(key="oldkey", name="old.png", size=10, type="image/png"),
        ),
    )

    replace_main_image(db_session, store, recipe, "user-1", NEW_FILE, background_tasks=background_tasks)

    assert store.delete_attempts == []
    assert len(background_tasks.tasks) == 1
