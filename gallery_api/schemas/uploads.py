from pydantic import BaseModel, ConfigDict, Field


class PresignUploadRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    filename: str | None = None
    content_type: str | None = Field(default=None, alias="contentType")
    file_size: int | None = Field(default=None, alias="fileSize")


class PresignUploadResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    presigned_url: str = Field(alias="presignedUrl")
    filename: str
    original_filename: str = Field(alias="originalFilename")
    content_type: str = Field(alias="contentType")
    file_size: int = Field(alias="fileSize")
    expires_in: int = Field(alias="expiresIn")
