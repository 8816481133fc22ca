import logging
from typing import Optional

import boto3

from ..schemas import UploadDescriptorOut
from ..services.cache_bucket import bucket_datetime
from ..settings import settings

logger = logging.getLogger("recipebox.storage")


def object_path(owner_id: str, recipe_id: str, key: str) -> str:
    return f"{owner_id}/{recipe_id}/{key}"


class S3CompatStore:
    def __init__(
        self,
        endpoint_url: str,
        region_name: str,
        access_key_id: str,
        secret_access_key: str,
        bucket: str,
        upload_expires_sec: int = 600,
        download_expires_sec: int = 604800,
        client=None,
    ):
        self.bucket = bucket
        self.upload_expires_sec = upload_expires_sec
        self.download_expires_sec = download_expires_sec
        self.s3 = client or boto3.client(
            service_name="s3",
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            region_name=region_name,
        )

    def upload_url(self, owner_id: str, recipe_id: str, metadata, key: str) -> UploadDescriptorOut:
        """Signed POST the browser uses to upload the image directly."""
        path = object_path(owner_id, recipe_id, key)
        post = self.s3.generate_presigned_post(
            Bucket=self.bucket,
            Key=path,
            Fields={"Content-Type": metadata.type},
            Conditions=[
                {"Content-Type": metadata.type},
                ["content-length-range", 1, metadata.size],
            ],
            ExpiresIn=self.upload_expires_sec,
        )
        return UploadDescriptorOut(upload_url=post["url"], fields=post["fields"], key=key)

    def download_url(self, owner_id: str, recipe_id: str, key: str, cache_bucket: str) -> str:
        # The bucket date is signed in as the response Expires header so the
        # image is cacheable until the bucket rolls over.
        return self.s3.generate_presigned_url(
            "get_object",
            Params={
                "Bucket": self.bucket,
                "Key": object_path(owner_id, recipe_id, key),
                "ResponseExpires": bucket_datetime(cache_bucket),
                "ResponseCacheControl": f"private, max-age={self.download_expires_sec}",
            },
            ExpiresIn=self.download_expires_sec,
        )

    def delete(self, owner_id: str, recipe_id: str, key: str) -> None:
        path = object_path(owner_id, recipe_id, key)
        self.s3.delete_object(Bucket=self.bucket, Key=path)
        logger.info(f"Deleted object {path}")

    def healthcheck(self) -> bool:
        # lightweight call; will raise if creds/endpoint wrong
        self.s3.list_objects_v2(Bucket=self.bucket, MaxKeys=1)
        return True


_store: Optional[S3CompatStore] = None


def get_store() -> S3CompatStore:
    global _store
    if _store is None:
        _store = S3CompatStore(
            endpoint_url=settings.object_store_endpoint,
            region_name=settings.object_store_region,
            access_key_id=settings.object_store_access_key_id,
            secret_access_key=settings.object_store_secret_access_key,
            bucket=settings.object_store_bucket,
            upload_expires_sec=settings.upload_url_expires_sec,
            download_expires_sec=settings.download_url_expires_sec,
        )
    return _store
