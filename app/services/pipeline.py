import logging
from dataclasses import dataclass

from app.schemas.attributes import ExtractionResult
from app.schemas.catalog import CatalogSearchResult
from app.schemas.media import MediaReference
from app.services.image_service import ImageService
from app.services.product_search import ProductSearchService
from app.services.query_builder import build_query
from app.services.vision import AttributeExtractor

logger = logging.getLogger(__name__)


@dataclass
class ImageSearchOutcome:
    extraction: ExtractionResult
    query: str
    catalog: CatalogSearchResult


class ImageSearchPipeline:
    """Photo -> attributes -> query -> catalog, run strictly in sequence in-process."""

    def __init__(self, images: ImageService, extractor: AttributeExtractor, catalog: ProductSearchService):
        self.images = images
        self.extractor = extractor
        self.catalog = catalog

    async def analyze(self, ref: MediaReference, hint: str | None = None) -> ExtractionResult:
        image = await self.images.normalize(ref)
        return await self.extractor.extract(image, hint)

    async def run(self, ref: MediaReference, hint: str | None = None) -> ImageSearchOutcome:
        extraction = await self.analyze(ref, hint)
        query = build_query(extraction.attributes)
        if not query:
            logger.info("No searchable attributes extracted, skipping catalog search")
            return ImageSearchOutcome(extraction, query, CatalogSearchResult(note="No searchable attributes found"))

        catalog = await self.catalog.search(query)
        return ImageSearchOutcome(extraction, query, catalog)
