from __future__ import annotations
import io
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from urllib.parse import quote, unquote
from minio import Minio
from minio.commonconfig import CopySource
from minio.error import S3Error
from p100.config import settings

# Conventional buckets; the admin storage browser only knows these
BUCKETS = ("killerimages", "backgrounds", "survivorbackgrounds", "survivors", "screenshots", "artworks")
SCREENSHOTS_BUCKET = "screenshots"
ARTWORKS_BUCKET = "artworks"
PORTRAIT_BUCKET = {"killer": "killerimages", "survivor": "survivors"}
BACKGROUND_BUCKET = {"killer": "backgrounds", "survivor": "survivorbackgrounds"}
HEADER_BUCKET = "backgrounds"

PUBLIC_URL_RE = re.compile(r"storage/v1/object/public/([^/]+)/(.*)")
# Left unescaped in public URLs; must match what is already stored in the database
_URI_SAFE = "/;,?:@&=+$-_.!~*'()#"
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class StorageError(Exception):
    pass


class ObjectExists(StorageError):
    pass


@dataclass
class StoredObject:
    name: str
    path: str
    bucket: str
    public_url: str
    size: int
    last_modified: datetime | None


def public_url(bucket: str, path: str, base: str | None = None) -> str:
    base = (base or settings.storage_public_url).rstrip("/")
    return f"{base}/storage/v1/object/public/{bucket}/{quote(path, safe=_URI_SAFE)}"


def parse_public_url(url: str) -> tuple[str, str] | None:
    """Return (bucket, decoded path) for a public storage URL, or None if it is not one."""
    m = PUBLIC_URL_RE.search(url or "")
    if not m:
        return None
    return m.group(1), unquote(m.group(2))


def _parse_endpoint(ep: str) -> tuple[str, bool]:
    # Return (host:port, secure)
    secure = ep.startswith("https://")
    host = ep.replace("http://", "").replace("https://", "").rstrip("/")
    return host, secure


class ObjectStorage:
    """Thin wrapper over the S3 client. Every write is an upsert; nothing here touches the database."""

    def __init__(self, client: Minio | None, public_base: str | None = None):
        self._client = client
        self.public_base = (public_base or settings.storage_public_url).rstrip("/")

    def public_url(self, bucket: str, path: str) -> str:
        return public_url(bucket, path, self.public_base)

    def put_bytes(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        try:
            self._client.put_object(
                bucket_name=bucket,
                object_name=path,
                data=io.BytesIO(data),
                length=len(data),
                content_type=content_type,
            )
        except S3Error as e:
            raise StorageError(f"Failed to upload to {bucket}: {e.message}") from e
        return self.public_url(bucket, path)

    def list_objects(self, bucket: str) -> list[StoredObject]:
        """All files in a bucket, folders expanded, newest first."""
        items: list[StoredObject] = []
        try:
            for obj in self._client.list_objects(bucket_name=bucket, recursive=True):
                if obj.is_dir:
                    continue
                items.append(StoredObject(
                    name=obj.object_name.rsplit("/", 1)[-1],
                    path=obj.object_name,
                    bucket=bucket,
                    public_url=self.public_url(bucket, obj.object_name),
                    size=obj.size or 0,
                    last_modified=obj.last_modified,
                ))
        except S3Error as e:
            raise StorageError(f"Failed to fetch items from {bucket}: {e.message}") from e
        items.sort(key=lambda i: i.last_modified or _EPOCH, reverse=True)
        return items

    def exists(self, bucket: str, path: str) -> bool:
        try:
            self._client.stat_object(bucket_name=bucket, object_name=path)
        except S3Error as e:
            if e.code in ("NoSuchKey", "NoSuchObject"):
                return False
            raise StorageError(f"Storage error: {e.message}") from e
        return True

    def move(self, bucket: str, src: str, dst: str) -> None:
        """Copy src to dst and remove src. Refuses to overwrite an existing dst."""
        if self.exists(bucket, dst):
            raise ObjectExists(f"A file named {dst} already exists in {bucket}.")
        try:
            self._client.copy_object(bucket_name=bucket, object_name=dst, source=CopySource(bucket_name=bucket, object_name=src))
            self._client.remove_object(bucket_name=bucket, object_name=src)
        except S3Error as e:
            if e.code == "NoSuchKey":
                raise FileNotFoundError(f"Object not found: {bucket}/{src}")
            raise StorageError(f"Storage error: {e.message}") from e

    def remove(self, bucket: str, paths: list[str]) -> None:
        try:
            for path in paths:
                self._client.remove_object(bucket_name=bucket, object_name=path)
        except S3Error as e:
            raise StorageError(f"Failed to delete from {bucket}: {e.message}") from e


@lru_cache
def get_storage() -> ObjectStorage:
    host, secure = _parse_endpoint(settings.s3_endpoint)
    client = Minio(
        endpoint=host,
        access_key=settings.s3_access_key,
        secret_key=settings.s3_secret_key,
        secure=secure,
        region=settings.s3_region,
    )
    return ObjectStorage(client, settings.storage_public_url)
