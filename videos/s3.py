import logging
import math
import time
from dataclasses import dataclass
from pathlib import Path

import boto3
from boto3.exceptions import S3UploadFailedError
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError
from django.conf import settings

from .errors import UploadFailure

logger = logging.getLogger(__name__)

THUMBNAILS_PREFIX = "thumbnails"

CONTENT_TYPES = {
    ".m3u8": "application/vnd.apple.mpegurl",
    ".ts": "video/MP2T",
    ".m2ts": "video/MP2T",
}
DEFAULT_CONTENT_TYPE = "application/octet-stream"

RETRYABLE_ERRORS = (BotoCoreError, ClientError, S3UploadFailedError)


def get_s3_client():
    """
    SDK client for server-side upload/list/delete.
    """
    session = boto3.session.Session(
        aws_access_key_id=settings.S3_ACCESS_KEY,
        aws_secret_access_key=settings.S3_SECRET_KEY,
        region_name=settings.S3_REGION,
    )
    return session.client(
        "s3",
        endpoint_url=settings.S3_ENDPOINT_URL,  # e.g. http://127.0.0.1:9000
        config=BotoConfig(
            s3={"addressing_style": "path"},
            signature_version="s3v4",
            connect_timeout=settings.S3_CONNECT_TIMEOUT,
            read_timeout=settings.S3_READ_TIMEOUT,
        ),
    )


def ensure_bucket(client, bucket: str) -> bool:
    """Create `bucket` if it does not exist. Returns True when it was created."""
    try:
        client.head_bucket(Bucket=bucket)
        logger.info("Bucket exists: %s", bucket)
        return False
    except ClientError as e:
        code = str(e.response.get("Error", {}).get("Code", ""))
        if code not in ("404", "NoSuchBucket", "NotFound"):
            raise
    client.create_bucket(Bucket=bucket)
    logger.info("Bucket created: %s", bucket)
    return True


def content_type_for(path) -> str:
    return CONTENT_TYPES.get(Path(path).suffix.lower(), DEFAULT_CONTENT_TYPE)


def hls_prefix(base_name: str) -> str:
    return base_name


def thumbnails_prefix(base_name: str) -> str:
    return f"{THUMBNAILS_PREFIX}/{base_name}"


def public_urls(origin: str, base_name: str) -> tuple[str, str]:
    """(videoUrl, thumbnailsBase) as served by the /hls reverse proxy."""
    origin = origin.rstrip("/")
    return (
        f"{origin}/hls/{hls_prefix(base_name)}/master.m3u8",
        f"{origin}/hls/{thumbnails_prefix(base_name)}",
    )


class RetryConfig:
    """Configuration for retry behavior with exponential backoff."""

    def __init__(
        self,
        max_attempts: int = 3,
        initial_delay: float = 1.0,
        max_delay: float = 30.0,
        backoff_multiplier: float = 2.0,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.max_attempts = max_attempts
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.backoff_multiplier = backoff_multiplier

    def calculate_delay(self, attempt: int) -> float:
        """Delay before the retry that follows failed `attempt` (1-indexed), capped at max_delay."""
        if attempt < 1:
            return self.initial_delay
        delay = self.initial_delay * math.pow(self.backoff_multiplier, attempt - 1)
        return min(delay, self.max_delay)


@dataclass(frozen=True)
class StoredObject:
    bucket: str
    key: str
    local_path: Path
    content_type: str


class ObjectStoreUploader:
    def __init__(self, client, bucket: str, retry: RetryConfig | None = None, sleep=time.sleep):
        self.client = client
        self.bucket = bucket
        self.retry = retry or RetryConfig()
        self._sleep = sleep

    def upload_file(self, local_path, key: str, content_type: str | None = None) -> StoredObject:
        """
        Upload a single file, retrying transient storage errors with backoff.
        A PUT replaces the whole object, so a retried key never ends up partial.
        """
        content_type = content_type or content_type_for(local_path)
        attempts = self.retry.max_attempts
        for attempt in range(1, attempts + 1):
            try:
                self.client.upload_file(
                    str(local_path), self.bucket, key, ExtraArgs={"ContentType": content_type}
                )
                logger.debug("uploaded: %s", key)
                return StoredObject(self.bucket, key, Path(local_path), content_type)
            except RETRYABLE_ERRORS as e:
                logger.warning("upload fail %s (%d/%d): %s", key, attempt, attempts, e)
                if attempt == attempts:
                    raise UploadFailure(key, attempts) from e
                self._sleep(self.retry.calculate_delay(attempt))

    def upload_tree(self, local_dir, key_prefix: str, exclude=()) -> list[StoredObject]:
        """
        Recursively upload all files under local_dir to bucket with prefix key_prefix.
        Paths in `exclude` (relative to local_dir) are skipped.
        Playlists go after every other file, so a stored playlist never lists
        a segment that is not in the bucket yet.
        """
        base = Path(local_dir)
        skip = {Path(e).as_posix() for e in exclude}
        stored = []
        for p in sorted(base.rglob("*"), key=lambda p: (p.suffix.lower() == ".m3u8", p)):
            if not p.is_file():
                continue
            rel = p.relative_to(base)
            if rel.as_posix() in skip:
                continue
            key = f"{key_prefix}/{rel.as_posix()}"
            stored.append(self.upload_file(p, key))
        logger.info("Uploaded %d object(s) under %s/", len(stored), key_prefix)
        return stored

    def list_keys(self, key_prefix: str) -> list[str]:
        keys = []
        kwargs = {"Bucket": self.bucket, "Prefix": f"{key_prefix}/"}
        while True:
            page = self.client.list_objects_v2(**kwargs)
            keys.extend(obj["Key"] for obj in page.get("Contents", []))
            if not page.get("IsTruncated"):
                return keys
            kwargs["ContinuationToken"] = page["NextContinuationToken"]

    def prune(self, key_prefix: str, keep_keys) -> list[str]:
        """Delete objects under key_prefix/ that are not in keep_keys (left over from an older run)."""
        keep = set(keep_keys)
        stale = [k for k in self.list_keys(key_prefix) if k not in keep]
        for i in range(0, len(stale), 1000):
            batch = stale[i:i + 1000]
            self.client.delete_objects(
                Bucket=self.bucket,
                Delete={"Objects": [{"Key": k} for k in batch], "Quiet": True},
            )
        if stale:
            logger.info("Pruned %d stale object(s) under %s/", len(stale), key_prefix)
        return stale

    def discard(self, key_prefix: str) -> list[str]:
        """Delete everything under key_prefix/."""
        return self.prune(key_prefix, ())
