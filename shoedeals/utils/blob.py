"""Object storage for published artifacts."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)

DEFAULT_LOCAL_DIR = "artifacts/blobs"


class BlobStoreError(RuntimeError):
    pass


class BlobStore:
    """Stable-key JSON store. Every put fully replaces the object at ``key``."""

    def put_text(self, key: str, body: str) -> str:
        """Write an already serialized JSON document."""
        raise NotImplementedError

    def put_json(self, key: str, payload: Any) -> str:
        return self.put_text(key, dumps_json(payload))

    def get_json(self, key: str) -> Any:
        raise NotImplementedError


class LocalBlobStore(BlobStore):
    def __init__(self, root: Path | str | None = None) -> None:
        self.root = Path(root or os.environ.get("BLOB_LOCAL_DIR", DEFAULT_LOCAL_DIR))

    def put_text(self, key: str, body: str) -> str:
        path = self.root / key
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(body)
            os.replace(tmp_path, path)
        except OSError as exc:
            raise BlobStoreError(f"Failed to write {key}: {exc}") from exc
        return str(path)

    def get_json(self, key: str) -> Any:
        path = self.root / key
        try:
            return json.loads(path.read_text())
        except (OSError, ValueError) as exc:
            raise BlobStoreError(f"Failed to read {key}: {exc}") from exc


class S3BlobStore(BlobStore):
    def __init__(self, bucket: str, *, prefix: str = "", client: Any | None = None) -> None:
        self.bucket = bucket
        self.prefix = prefix.strip("/")
        if client is None:
            session = boto3.session.Session()
            client = session.client(
                "s3",
                endpoint_url=os.environ.get("AWS_S3_ENDPOINT"),
                aws_access_key_id=os.environ.get("AWS_ACCESS_KEY_ID"),
                aws_secret_access_key=os.environ.get("AWS_SECRET_ACCESS_KEY"),
            )
        self.client = client

    def _key(self, key: str) -> str:
        return f"{self.prefix}/{key}" if self.prefix else key

    def put_text(self, key: str, body: str) -> str:
        object_key = self._key(key)
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=object_key,
                Body=body.encode("utf-8"),
                ContentType="application/json",
                CacheControl="no-store, max-age=0",
            )
        except (BotoCoreError, ClientError) as exc:
            raise BlobStoreError(f"Failed to write {object_key}: {exc}") from exc
        return f"s3://{self.bucket}/{object_key}"

    def get_json(self, key: str) -> Any:
        object_key = self._key(key)
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=object_key)
            return json.loads(response["Body"].read())
        except (BotoCoreError, ClientError, ValueError) as exc:
            raise BlobStoreError(f"Failed to read {object_key}: {exc}") from exc


def create_blob_store() -> BlobStore:
    provider = os.environ.get("BLOB_PROVIDER", "local")
    if provider == "s3":
        bucket = os.environ.get("AWS_S3_BUCKET")
        if not bucket:
            raise BlobStoreError("AWS_S3_BUCKET must be set when BLOB_PROVIDER=s3")
        return S3BlobStore(bucket, prefix=os.environ.get("BLOB_PREFIX", ""))
    if provider != "local":
        logger.warning("Unknown BLOB_PROVIDER %r; using local storage", provider)
    return LocalBlobStore()


def dumps_json(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False)
