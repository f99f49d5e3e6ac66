from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class ChatRole(StrEnum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class ChatMessage(BaseModel):
    role: ChatRole
    content: str


class ChatRequest(BaseModel):
    message: str | None = None
    messages: list[ChatMessage] = []
    system: str | None = None
    temperature: float | None = Field(default=None, ge=0.0, le=1.0)
    model: str | None = None


class Intent(StrEnum):
    SEARCH_PRODUCT = "buscar_producto"
    GENERAL = "mensaje_general"


class IntentResult(BaseModel):
    intent: Intent
    product_id: str | None = None


class ChatResponse(BaseModel):
    reply: str
    intent: Intent
    product_id: str | None = None


class WebhookEvent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str | None = None
    image_url: str | None = Field(default=None, alias="imageUrl")
    audio_url: str | None = Field(default=None, alias="audioUrl")
    channel: str | None = None
