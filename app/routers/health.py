import logging

from fastapi import APIRouter, Depends

from app.dependencies import Services, get_services
from app.schemas.chat import WebhookEvent

logger = logging.getLogger(__name__)

router = APIRouter()

ENDPOINTS = {
    "POST /webhook": "Acknowledge a chat platform event",
    "POST /chat/complete": "Text reply from the language model",
    "POST /voice/transcribe": "Speech-to-text for a voice note",
    "POST /vision/analyze": "Product attributes from a photo",
    "POST /catalog/search": "Storefront product search",
    "POST /by-image/search": "Photo to catalog results",
}


@router.get("/")
async def root(services: Services = Depends(get_services)):
    return {
        "message": "Backend activo: webhook, chat, voz, visión y catálogo conectados.",
        "service": services.settings.app_name,
        "version": services.settings.version,
        "endpoints": ENDPOINTS,
    }


@router.get("/health")
async def health(services: Services = Depends(get_services)):
    return {"status": "healthy", "service": services.settings.app_name, "version": services.settings.version}


@router.get("/webhook")
async def webhook_info():
    return {"status": "ok", "endpoint": "/webhook", "method": "POST"}


@router.post("/webhook")
async def receive_webhook(event: WebhookEvent):
    logger.info(
        "Webhook received: channel=%s message=%r image=%s audio=%s",
        event.channel, event.message, bool(event.image_url), bool(event.audio_url),
    )
    reply = f'Hola 👋, recibí tu mensaje: "{event.message or "media"}" desde {event.channel or "desconocido"}'
    return {"reply": reply}
