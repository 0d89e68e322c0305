from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from gallery_api.core.auth import CurrentUser
from gallery_api.core.errors import AUTH_REQUIRED, HandlerError, invalid, parse_body
from gallery_api.schemas.uploads import PresignUploadRequest, PresignUploadResponse
from gallery_api.services.storage_service import (
    ImageTypePolicy,
    ObjectSigner,
    SignedMethod,
    build_upload_key,
    isoformat_z,
    metadata_headers,
)

log = logging.getLogger(__name__)

MISSING_UPLOAD_FIELDS = "Missing required fields: filename, contentType, fileSize"


def validate_upload_request(
    payload: PresignUploadRequest | None,
    policy: ImageTypePolicy,
) -> HandlerError | None:
    if payload is None or not payload.filename or not payload.content_type or not payload.file_size:
        return invalid(MISSING_UPLOAD_FIELDS)
    if policy.exceeds_size_limit(payload.file_size):
        return invalid(f"File size exceeds {policy.max_size_bytes // (1024 * 1024)}MB limit")
    if not policy.allows(payload.content_type):
        return invalid("Only image files are allowed")
    return None


def issue_upload_url(
    user: CurrentUser | None,
    body: Any,
    signer: ObjectSigner,
    policy: ImageTypePolicy,
    expires_in: int,
    now: datetime | None = None,
) -> PresignUploadResponse | HandlerError:
    if user is None:
        return AUTH_REQUIRED

    payload = parse_body(PresignUploadRequest, body)
    if isinstance(payload, HandlerError):
        return payload
    error = validate_upload_request(payload, policy)
    if error:
        return error

    key = build_upload_key(payload.content_type, policy)
    uploaded_at = isoformat_z(now or datetime.now(UTC))
    headers = {
        "Content-Type": payload.content_type,
        "Content-Length": str(payload.file_size),
        **metadata_headers(
            original_filename=payload.filename,
            uploaded_by=user.id,
            uploaded_at=uploaded_at,
        ),
    }
    url = signer.presign(key, SignedMethod.PUT, headers, expires_in)
    log.info("Issued upload URL for %s (user %s)", key, user.id)

    return PresignUploadResponse(
        presigned_url=url,
        filename=key,
        original_filename=payload.filename,
        content_type=payload.content_type,
        file_size=payload.file_size,
        expires_in=expires_in,
    )
