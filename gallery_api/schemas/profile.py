from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    name: str
    email: str
    image: str | None = None
    email_verified: bool = Field(alias="emailVerified")
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")

    @field_validator("created_at", "updated_at")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


class ProfileUpdateRequest(BaseModel):
    """``image`` is applied only when the client sent the key; compare
    ``model_fields_set`` rather than the value to tell null from absent."""

    name: str | None = None
    image: str | None = None

    @property
    def has_image(self) -> bool:
        return "image" in self.model_fields_set


class ProfileUpdateResponse(BaseModel):
    success: bool
    user: ProfileResponse


class ProfileImageUploadRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    content_type: str | None = Field(default=None, alias="contentType")
    file_size: int | None = Field(default=None, alias="fileSize")
    original_filename: str | None = Field(default=None, alias="originalFilename")


class ProfileImageUploadResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    presigned_url: str = Field(alias="presignedUrl")
    key: str
    content_type: str = Field(alias="contentType")
    file_size: int = Field(alias="fileSize")
    expires_in: int = Field(alias="expiresIn")
    uploaded_by: str = Field(alias="uploadedBy")
    uploaded_at: str = Field(alias="uploadedAt")
    original_filename: str = Field(alias="originalFilename")


class ProfileImageResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    has_image: bool = Field(alias="hasImage")
    message: str | None = None
    download_url: str | None = Field(default=None, alias="downloadUrl")
    filename: str | None = None
    expires_in: int | None = Field(default=None, alias="expiresIn")
