from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Protocol

from fastapi import Depends
from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session

from gallery_api.core.auth import CurrentUser
from gallery_api.core.errors import AUTH_REQUIRED, USER_NOT_FOUND, HandlerError, invalid, parse_body
from gallery_api.db.session import get_db
from gallery_api.models import User
from gallery_api.schemas.profile import (
    ProfileImageResponse,
    ProfileImageUploadRequest,
    ProfileImageUploadResponse,
    ProfileResponse,
    ProfileUpdateRequest,
    ProfileUpdateResponse,
)
from gallery_api.services.storage_service import (
    ObjectSigner,
    SignedMethod,
    build_profile_image_key,
    isoformat_z,
    metadata_headers,
)

log = logging.getLogger(__name__)

NAME_MIN_LENGTH = 1
NAME_MAX_LENGTH = 100
MISSING_IMAGE_FIELDS = "Missing required fields: contentType, fileSize"


@dataclass(frozen=True)
class ProfileRecord:
    id: str
    name: str
    email: str
    image: str | None
    email_verified: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_user(cls, user: User) -> ProfileRecord:
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            image=user.image,
            email_verified=user.email_verified,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class ProfileStore(Protocol):
    def get(self, user_id: str) -> ProfileRecord | None: ...

    def update(self, user_id: str, changes: Mapping[str, Any]) -> ProfileRecord | None: ...

    def assign_image_key(self, user_id: str, key: str) -> str | None:
        """Store ``key`` as the user's image only if none (or an empty one) is set yet.

        Returns the key the row holds afterwards, or ``None`` when the row
        does not exist.
        """
        ...


class SqlProfileStore:
    def __init__(self, db: Session) -> None:
        self._db = db

    def get(self, user_id: str) -> ProfileRecord | None:
        user = self._db.get(User, user_id)
        return ProfileRecord.from_user(user) if user else None

    def update(self, user_id: str, changes: Mapping[str, Any]) -> ProfileRecord | None:
        user = self._db.get(User, user_id)
        if not user:
            return None
        for field_name, value in changes.items():
            setattr(user, field_name, value)
        user.updated_at = datetime.now(UTC)
        self._db.commit()
        self._db.refresh(user)
        return ProfileRecord.from_user(user)

    def assign_image_key(self, user_id: str, key: str) -> str | None:
        self._db.execute(
            update(User)
            .where(User.id == user_id, or_(User.image.is_(None), User.image == ""))
            .values(image=key, updated_at=datetime.now(UTC))
            .execution_options(synchronize_session=False)
        )
        self._db.commit()
        row = self._db.execute(select(User.image).where(User.id == user_id)).first()
        return row.image if row else None


def get_profile(user: CurrentUser | None, store: ProfileStore) -> ProfileResponse | HandlerError:
    if user is None:
        return AUTH_REQUIRED
    record = store.get(user.id)
    if not record:
        return USER_NOT_FOUND
    return ProfileResponse.model_validate(record)


def validate_name(name: str | None) -> HandlerError | None:
    if not name:
        return invalid("Name is required")
    if len(name) < NAME_MIN_LENGTH or len(name) > NAME_MAX_LENGTH:
        return invalid(f"Name must be between {NAME_MIN_LENGTH} and {NAME_MAX_LENGTH} characters")
    return None


def update_profile(
    user: CurrentUser | None,
    body: Any,
    store: ProfileStore,
) -> ProfileUpdateResponse | HandlerError:
    if user is None:
        return AUTH_REQUIRED
    payload = parse_body(ProfileUpdateRequest, body)
    if isinstance(payload, HandlerError):
        return payload

    error = validate_name(payload.name)
    if error:
        return error

    changes: dict[str, Any] = {"name": payload.name}
    if payload.has_image:
        changes["image"] = payload.image or None

    record = store.update(user.id, changes)
    if not record:
        return USER_NOT_FOUND
    return ProfileUpdateResponse(success=True, user=ProfileResponse.model_validate(record))


def issue_profile_image_upload(
    user: CurrentUser | None,
    body: Any,
    store: ProfileStore,
    signer: ObjectSigner,
    expires_in: int,
    now: datetime | None = None,
) -> ProfileImageUploadResponse | HandlerError:
    if user is None:
        return AUTH_REQUIRED
    payload = parse_body(ProfileImageUploadRequest, body)
    if isinstance(payload, HandlerError):
        return payload
    if not payload.content_type or not payload.file_size:
        return invalid(MISSING_IMAGE_FIELDS)

    record = store.get(user.id)
    if not record:
        return USER_NOT_FOUND

    key = record.image
    if not key:
        key = store.assign_image_key(user.id, build_profile_image_key())
        if key is None:
            return USER_NOT_FOUND
        log.info("Assigned profile image key %s to user %s", key, user.id)

    original_filename = payload.original_filename or key
    uploaded_at = isoformat_z(now or datetime.now(UTC))
    headers = {
        "Content-Type": payload.content_type,
        **metadata_headers(
            original_filename=original_filename,
            uploaded_by=user.id,
            uploaded_at=uploaded_at,
        ),
    }
    url = signer.presign(key, SignedMethod.PUT, headers, expires_in)
    log.info("Issued profile image upload URL for %s (user %s)", key, user.id)

    return ProfileImageUploadResponse(
        presigned_url=url,
        key=key,
        content_type=payload.content_type,
        file_size=payload.file_size,
        expires_in=expires_in,
        uploaded_by=user.id,
        uploaded_at=uploaded_at,
        original_filename=original_filename,
    )


def issue_profile_image_download(
    user: CurrentUser | None,
    store: ProfileStore,
    signer: ObjectSigner,
    expires_in: int,
) -> ProfileImageResponse | HandlerError:
    if user is None:
        return AUTH_REQUIRED
    record = store.get(user.id)
    if not record:
        return USER_NOT_FOUND
    if not record.image:
        return ProfileImageResponse(has_image=False, message="No profile image set")

    url = signer.presign(record.image, SignedMethod.GET, {}, expires_in)
    return ProfileImageResponse(
        has_image=True,
        download_url=url,
        filename=record.image,
        expires_in=expires_in,
    )


def get_profile_store(db: Session = Depends(get_db)) -> ProfileStore:
    return SqlProfileStore(db)
