from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

from recipebox.schemas import ImageMetadataIn
from recipebox.services.cache_bucket import bucket_datetime
from recipebox.settings import settings
from recipebox.storage.s3_compat import S3CompatStore, object_path


def _store():
    client = MagicMock()
    store = S3CompatStore(
        endpoint_url="http://minio:9000",
        region_name="us-east-1",
        access_key_id="key",
        secret_access_key="secret",
        bucket="images",
        upload_expires_sec=600,
        download_expires_sec=604800,
        client=client,
    )
    return store, client


def test_object_path():
    assert object_path("user-1", "recipe-1", "abc") == "user-1/recipe-1/abc"


def test_upload_url_is_scoped_to_declared_file():
    store, client = _store()
    client.generate_presigned_post.return_value = {
        "url": "http://minio:9000/images",
        "fields": {"key": "user-1/recipe-1/abc", "policy": "p"},
    }

    descriptor = store.upload_url(
        "user-1", "recipe-1", ImageMetadataIn(name="a.png", size=500, type="image/png"), "abc"
    )

    assert descriptor.upload_url == "http://minio:9000/images"
    assert descriptor.fields["policy"] == "p"
    assert descriptor.key == "abc"
    kwargs = client.generate_presigned_post.call_args.kwargs
    assert kwargs["Key"] == "user-1/recipe-1/abc"
    assert {"Content-Type": "image/png"} in kwargs["Conditions"]
    assert ["content-length-range", 1, 500] in kwargs["Conditions"]
    assert kwargs["ExpiresIn"] == 600


def test_oversized_upload_is_rejected_before_signing():
    with pytest.raises(ValidationError):
        ImageMetadataIn(name="a.png", size=settings.max_upload_bytes + 1, type="image/png")


def test_download_url_carries_cache_bucket():
    store, client = _store()
    client.generate_presigned_url.return_value = "http://minio:9000/images/u/r/k?sig"

    url = store.download_url("u", "r", "k", "2026-10-18T00:00:00.000Z")

    assert url == "http://minio:9000/images/u/r/k?sig"
    args, kwargs = client.generate_presigned_url.call_args
    assert args == ("get_object",)
    assert kwargs["Params"]["Key"] == "u/r/k"
    assert kwargs["Params"]["ResponseExpires"] == bucket_datetime("2026-10-18T00:00:00.000Z")


def test_download_url_is_stable_within_bucket():
    store, client = _store()
    store.download_url("u", "r", "k", "2026-10-18T00:00:00.000Z")
    store.download_url("u", "r", "k", "2026-10-18T00:00:00.000Z")

    first, second = client.generate_presigned_url.call_args_list
    assert first == second


def test_delete_removes_object():
    store, client = _store()
    store.delete("u", "r", "k")
    client.delete_object.assert_called_once_with(Bucket="images", Key="u/r/k")
