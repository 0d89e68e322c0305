from fastapi import APIRouter

from gallery_api.api.routes import auth, profile, uploads

api_router = APIRouter()
api_router.include_router(auth.router, tags=["auth"])
api_router.include_router(uploads.router, tags=["uploads"])
api_router.include_router(profile.router, tags=["profile"])
