from gallery_api.models import Session, User  # noqa: F401
from gallery_api.models.base import Base

__all__ = ["Base"]
