from typing import Any

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from gallery_api.core.auth import CurrentUser, get_current_user
from gallery_api.core.config import get_settings
from gallery_api.core.errors import run_handler
from gallery_api.services.storage_service import (
    ImageTypePolicy,
    ObjectSigner,
    get_image_policy,
    get_object_signer,
)
from gallery_api.services.upload_service import issue_upload_url

router = APIRouter(prefix="/uploads")
settings = get_settings()


@router.post("/pre-signed-url")
def presign_upload(
    body: Any = Body(default=None),
    user: CurrentUser | None = Depends(get_current_user),
    signer: ObjectSigner = Depends(get_object_signer),
    policy: ImageTypePolicy = Depends(get_image_policy),
) -> JSONResponse:
    return run_handler(
        "Generating pre-signed URL",
        issue_upload_url,
        user,
        body,
        signer,
        policy,
        settings.upload_url_expires_seconds,
    )
