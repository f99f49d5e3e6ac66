import logging

from fastapi import APIRouter, Depends

from app.dependencies import Services, get_services
from app.errors import MissingInput
from app.schemas.media import TranscribeRequest, TranscribeResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/voice")


@router.post("/transcribe", response_model=TranscribeResponse)
async def transcribe(body: TranscribeRequest, services: Services = Depends(get_services)):
    ref = body.reference()
    if ref is None:
        raise MissingInput("audioUrl or audioBase64 is required")

    with await services.audio.normalize(ref, body.filename) as audio:
        text = await services.transcription.transcribe(audio)
    return TranscribeResponse(text=text)
