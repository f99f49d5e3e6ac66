from dataclasses import dataclass

from fastapi import Request

from app.config import Settings
from app.services.audio_service import AudioService
from app.services.chat import ChatService
from app.services.image_service import ImageService
from app.services.llm import ModelClient
from app.services.pipeline import ImageSearchPipeline
from app.services.product_search import ProductSearchService
from app.services.transcription import TranscriptionService
from app.services.vision import AttributeExtractor


@dataclass
class Services:
    settings: Settings
    chat: ChatService
    images: ImageService
    audio: AudioService
    transcription: TranscriptionService
    extractor: AttributeExtractor
    catalog: ProductSearchService
    pipeline: ImageSearchPipeline


def build_services(settings: Settings) -> Services:
    llm = ModelClient(settings)
    images = ImageService(settings)
    extractor = AttributeExtractor(settings, llm)
    catalog = ProductSearchService(settings)
    return Services(
        settings=settings,
        chat=ChatService(settings, llm),
        images=images,
        audio=AudioService(settings),
        transcription=TranscriptionService(settings),
        extractor=extractor,
        catalog=catalog,
        pipeline=ImageSearchPipeline(images, extractor, catalog),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services
