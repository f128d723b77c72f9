import threading

import boto3
import structlog
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .config import (
    AWS_ACCESS_KEY_ID,
    AWS_SECRET_ACCESS_KEY,
    AWS_REGION,
    S3_BUCKET_NAME,
    S3_ENDPOINT_URL,
    S3_CONNECT_TIMEOUT,
    S3_READ_TIMEOUT,
)

logger = structlog.get_logger()

_client = None
_client_lock = threading.Lock()


def get_s3_client():
    global _client
    # boto3 clients are thread-safe once built; building one on the default session is not
    with _client_lock:
        if _client is None:
            _client = boto3.client(
                "s3",
                aws_access_key_id=AWS_ACCESS_KEY_ID,
                aws_secret_access_key=AWS_SECRET_ACCESS_KEY,
                region_name=AWS_REGION,
                endpoint_url=S3_ENDPOINT_URL,
                config=Config(connect_timeout=S3_CONNECT_TIMEOUT, read_timeout=S3_READ_TIMEOUT),
            )
    return _client


def put_object(key: str, data: bytes, content_type: str, cache_control: str | None = None, metadata: dict | None = None) -> bool:
    """Store ``data`` under ``key``. Returns False when the provider rejects or is unreachable."""
    params = {"Bucket": S3_BUCKET_NAME, "Key": key, "Body": data, "ContentType": content_type}
    if cache_control:
        params["CacheControl"] = cache_control
    if metadata:
        params["Metadata"] = metadata
    try:
        get_s3_client().put_object(**params)
    except (ClientError, BotoCoreError) as e:
        logger.error("s3_put_failed", key=key, error=str(e))
        return False
    return True


def delete_object(key: str) -> bool:
    try:
        get_s3_client().delete_object(Bucket=S3_BUCKET_NAME, Key=key)
    except (ClientError, BotoCoreError) as e:
        logger.warning("s3_delete_failed", key=key, error=str(e))
        return False
    return True


def list_objects(prefix: str) -> list[dict]:
    """List every object under ``prefix`` as ``{"key", "last_modified"}`` dicts.

    Raises botocore errors: callers decide whether a listing failure matters.
    """
    paginator = get_s3_client().get_paginator("list_objects_v2")
    objects = []
    for page in paginator.paginate(Bucket=S3_BUCKET_NAME, Prefix=prefix):
        for item in page.get("Contents", []):
            objects.append({"key": item["Key"], "last_modified": item["LastModified"]})
    return objects
