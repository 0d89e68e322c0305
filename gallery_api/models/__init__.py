from gallery_api.models.entities import Session, User

__all__ = ["Session", "User"]
