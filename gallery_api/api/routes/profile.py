from typing import Any

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from gallery_api.core.auth import CurrentUser, get_current_user
from gallery_api.core.config import get_settings
from gallery_api.core.errors import run_handler
from gallery_api.services.profile_service import (
    ProfileStore,
    get_profile,
    get_profile_store,
    issue_profile_image_download,
    issue_profile_image_upload,
    update_profile,
)
from gallery_api.services.storage_service import ObjectSigner, get_object_signer

router = APIRouter(prefix="/user")
settings = get_settings()


@router.get("/profile")
def read_profile(
    user: CurrentUser | None = Depends(get_current_user),
    store: ProfileStore = Depends(get_profile_store),
) -> JSONResponse:
    return run_handler("Fetching user profile", get_profile, user, store)


@router.post("/profile")
def write_profile(
    body: Any = Body(default=None),
    user: CurrentUser | None = Depends(get_current_user),
    store: ProfileStore = Depends(get_profile_store),
) -> JSONResponse:
    return run_handler("Updating user profile", update_profile, user, body, store)


@router.get("/profile/image")
def read_profile_image(
    user: CurrentUser | None = Depends(get_current_user),
    store: ProfileStore = Depends(get_profile_store),
    signer: ObjectSigner = Depends(get_object_signer),
) -> JSONResponse:
    return run_handler(
        "Generating profile image download URL",
        issue_profile_image_download,
        user,
        store,
        signer,
        settings.download_url_expires_seconds,
    )


@router.post("/profile/image")
def upload_profile_image(
    body: Any = Body(default=None),
    user: CurrentUser | None = Depends(get_current_user),
    store: ProfileStore = Depends(get_profile_store),
    signer: ObjectSigner = Depends(get_object_signer),
) -> JSONResponse:
    return run_handler(
        "Generating profile image upload URL",
        issue_profile_image_upload,
        user,
        body,
        store,
        signer,
        settings.profile_image_upload_expires_seconds,
    )
