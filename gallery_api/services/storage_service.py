from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from functools import lru_cache
from typing import Any, Protocol
from urllib.parse import quote

import boto3
from botocore.config import Config

from gallery_api.core.config import get_settings

log = logging.getLogger(__name__)

META_PREFIX = "x-amz-meta-"
# Printable ASCII passes through; "%" and anything else is percent-encoded.
METADATA_SAFE_CHARS = "".join(chr(code) for code in range(0x20, 0x7F) if chr(code) != "%")
PROFILE_IMAGE_PREFIX = "profile-images/"


class SignedMethod(str, Enum):
    GET = "GET"
    PUT = "PUT"


@dataclass(frozen=True)
class ImageTypePolicy:
    """Which uploads count as images, how large they may be and which
    extension a generated key gets."""

    extensions: Mapping[str, str] = field(
        default_factory=lambda: {
            "image/jpeg": ".jpg",
            "image/jpg": ".jpg",
            "image/png": ".png",
            "image/gif": ".gif",
            "image/webp": ".webp",
            "image/svg+xml": ".svg",
            "image/bmp": ".bmp",
            "image/tiff": ".tiff",
        }
    )
    default_extension: str = ".jpg"
    allowed_prefix: str = "image/"
    max_size_bytes: int = 10 * 1024 * 1024

    def allows(self, content_type: str) -> bool:
        return content_type.startswith(self.allowed_prefix)

    def extension_for(self, content_type: str) -> str:
        return self.extensions.get(content_type, self.default_extension)

    def exceeds_size_limit(self, size_bytes: int) -> bool:
        return size_bytes > self.max_size_bytes


@lru_cache
def get_image_policy() -> ImageTypePolicy:
    return ImageTypePolicy(max_size_bytes=get_settings().upload_max_bytes)


def build_upload_key(content_type: str, policy: ImageTypePolicy) -> str:
    return f"{uuid.uuid4()}{policy.extension_for(content_type)}"


def build_profile_image_key() -> str:
    return f"{PROFILE_IMAGE_PREFIX}{uuid.uuid4()}"


def isoformat_z(value: datetime) -> str:
    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def metadata_headers(**metadata: str) -> dict[str, str]:
    return {f"{META_PREFIX}{name.replace('_', '-')}": value for name, value in metadata.items()}


class ObjectSigner(Protocol):
    def presign(
        self,
        key: str,
        method: SignedMethod,
        headers: Mapping[str, str],
        expires_in: int,
    ) -> str: ...


class S3PresignedUrlSigner:
    """Issues SigV4 query-signed URLs for one bucket of an S3-compatible store."""

    def __init__(self, client: Any, bucket: str) -> None:
        self._client = client
        self._bucket = bucket

    def presign(
        self,
        key: str,
        method: SignedMethod,
        headers: Mapping[str, str],
        expires_in: int,
    ) -> str:
        params = self._params_for(key, headers)
        client_method = "put_object" if method == SignedMethod.PUT else "get_object"
        return self._client.generate_presigned_url(
            ClientMethod=client_method,
            Params=params,
            ExpiresIn=expires_in,
            HttpMethod=method.value,
        )

    def _params_for(self, key: str, headers: Mapping[str, str]) -> dict[str, Any]:
        params: dict[str, Any] = {"Bucket": self._bucket, "Key": key}
        metadata: dict[str, str] = {}
        for name, value in headers.items():
            lowered = name.lower()
            if lowered == "content-type":
                params["ContentType"] = value
            elif lowered == "content-length":
                params["ContentLength"] = int(value)
            elif lowered.startswith(META_PREFIX):
                metadata[lowered[len(META_PREFIX):]] = quote(value, safe=METADATA_SAFE_CHARS)
        if metadata:
            params["Metadata"] = metadata
        return params


@lru_cache
def get_object_signer() -> ObjectSigner:
    settings = get_settings()
    client = boto3.client(
        "s3",
        endpoint_url=settings.r2_endpoint_url,
        aws_access_key_id=settings.r2_access_key_id or None,
        aws_secret_access_key=settings.r2_secret_access_key or None,
        region_name="auto",
        config=Config(signature_version="s3v4", s3={"addressing_style": "path"}),
    )
    log.info("Object signer configured for bucket %s at %s", settings.r2_bucket, settings.r2_endpoint_url)
    return S3PresignedUrlSigner(client, settings.r2_bucket)
