import base64
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class MediaKind(StrEnum):
    URL = "url"
    INLINE_BASE64 = "inlineBase64"


class MediaReference(BaseModel):
    """A URL or an inline base64 payload; exactly one per request."""

    kind: MediaKind
    value: str

    @classmethod
    def from_fields(cls, url: str | None, data: str | None) -> "MediaReference | None":
        # URL wins when a caller sends both
        if url and url.strip():
            return cls(kind=MediaKind.URL, value=url.strip())
        if data and data.strip():
            return cls(kind=MediaKind.INLINE_BASE64, value=data.strip())
        return None

    @property
    def is_url(self) -> bool:
        return self.kind == MediaKind.URL


class NormalizedImage(BaseModel):
    mime_type: str = "image/jpeg"
    data: bytes
    width: int
    height: int

    @property
    def size(self) -> int:
        return len(self.data)

    def b64(self) -> str:
        return base64.b64encode(self.data).decode("utf-8")

    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.b64()}"


# --- Request bodies ---


class ImageInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    image_url: str | None = Field(default=None, alias="imageUrl")
    image_base64: str | None = Field(default=None, alias="imageBase64")
    prompt: str | None = None

    def reference(self) -> MediaReference | None:
        return MediaReference.from_fields(self.image_url, self.image_base64)


class TranscribeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    audio_url: str | None = Field(default=None, alias="audioUrl")
    audio_base64: str | None = Field(default=None, alias="audioBase64")
    filename: str | None = None

    def reference(self) -> MediaReference | None:
        return MediaReference.from_fields(self.audio_url, self.audio_base64)


class TranscribeResponse(BaseModel):
    text: str
