from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings

DEFAULT_SYSTEM_PROMPT = (
    "Eres el asistente virtual de una tienda en línea que atiende por WhatsApp, "
    "Instagram y Messenger. Responde en español, de forma breve y amable. "
    "Si el cliente busca un producto, pregunta por talla, color o modelo cuando falte información."
)


class Settings(BaseSettings):
    app_name: str = "Chat Commerce Gateway"
    version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 10000

    # model provider
    anthropic_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("GATEWAY_ANTHROPIC_API_KEY", "ANTHROPIC_API_KEY"),
    )
    text_model: str = "claude-sonnet-4-5-20250929"
    vision_model: str = "claude-sonnet-4-5-20250929"
    structuring_model: str = "claude-haiku-4-5-20251001"
    chat_max_tokens: int = 1024
    vision_max_tokens: int = 1024
    default_temperature: float = 0.7
    default_system_prompt: str = DEFAULT_SYSTEM_PROMPT

    # speech-to-text
    whisper_model: str = "small"
    whisper_device: str = "auto"
    whisper_compute_type: str = "int8"
    whisper_language: str | None = None
    ffmpeg_binary: str = "ffmpeg"
    transcode_timeout: float = 120.0
    audio_sample_rate: int = 16000

    # media limits
    max_image_bytes: int = 3_500_000
    image_max_width: int = 1280
    max_download_bytes: int = 20 * 1024 * 1024
    allow_insecure_image_urls: bool = False
    http_timeout: float = 30.0

    # storefront
    shopify_store_domain: str = ""
    shopify_storefront_token: str = ""
    shopify_api_version: str = "2024-10"

    model_config = {
        "env_prefix": "GATEWAY_",
        "env_file": ".env",
        "extra": "ignore",
        "frozen": True,
        "populate_by_name": True,
    }

    @property
    def catalog_configured(self) -> bool:
        return bool(self.shopify_store_domain and self.shopify_storefront_token)


@lru_cache
def get_settings() -> Settings:
    return Settings()
