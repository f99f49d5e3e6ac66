import json
import logging

from pydantic import ValidationError

from app.config import Settings
from app.errors import UpstreamError
from app.schemas.attributes import AttributeRecord, Degraded, ExtractionResult, Parsed
from app.schemas.media import NormalizedImage
from app.services.llm import ModelClient

logger = logging.getLogger(__name__)

SCHEMA_PROMPT = """You identify products in photos sent by shoppers of an online store.

Return ONLY a JSON object, no markdown and no prose, with this shape:
{
  "domain": one of ["apparel", "shapewear", "electronics", "phones", "phone_parts", "auto_parts", "cameras", "computers", "furniture", "home", "books", "beauty", "toys", "sports", "other"],
  "category": "main product category, e.g. faja, vestido, audífonos",
  "type": "specific product type",
  "brand": "brand if visible, else omit",
  "model": "model name or number if visible",
  "colors": ["main colors"],
  "materials": ["visible materials"],
  "details": ["distinctive details: closures, prints, straps, ports"],
  "features": ["functional features"],
  "compatibility": ["devices or vehicles the item fits"],
  "part_number": "part number if printed",
  "size": "size if visible on a tag",
  "length": "garment length, e.g. midi, short",
  "fit": "fit, e.g. slim, oversized, high compression",
  "style": "style, e.g. casual, deportivo",
  "title": "book title",
  "author": "book author",
  "language": "book language",
  "topic": "book topic",
  "keywords": ["extra search keywords"]
}

Rules:
- "domain" is mandatory. Use "other" when nothing else fits.
- Omit fields you cannot see instead of guessing.
- Write values in the shopper's language (Spanish unless the hint says otherwise)."""

RESTRUCTURE_PROMPT = """Convert the product description below into the strict JSON object described here.
Return ONLY the JSON object.

Required key: "domain", one of ["apparel", "shapewear", "electronics", "phones", "phone_parts", "auto_parts", "cameras", "computers", "furniture", "home", "books", "beauty", "toys", "sports", "other"].
Optional keys (strings or arrays of strings): category, type, brand, model, colors, materials, details, features, compatibility, part_number, size, length, fit, style, title, author, language, topic, keywords."""

DEFAULT_HINT = "Identifica el producto de la foto para buscarlo en el catálogo."


def parse_attributes(text: str) -> AttributeRecord | None:
    """Parse model output into an AttributeRecord; None when it is not usable."""
    text = (text or "").strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[-1].rsplit("```", 1)[0].strip()

    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        start = text.find("{")
        end = text.rfind("}")
        if start == -1 or end <= start:
            return None
        try:
            data = json.loads(text[start:end + 1])
        except json.JSONDecodeError:
            return None

    if not isinstance(data, dict) or not data.get("domain"):
        return None
    try:
        return AttributeRecord.model_validate(data)
    except ValidationError as exc:
        logger.debug("Attribute payload failed validation: %s", exc)
        return None


class AttributeExtractor:
    """Vision call followed, when needed, by a text-only restructuring call."""

    def __init__(self, settings: Settings, llm: ModelClient):
        self.settings = settings
        self.llm = llm

    async def extract(self, image: NormalizedImage, hint: str | None = None) -> ExtractionResult:
        raw = await self.llm.complete(
            model=self.settings.vision_model,
            system=SCHEMA_PROMPT,
            max_tokens=self.settings.vision_max_tokens,
            temperature=0,
            operation="vision analysis",
            messages=[
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "image",
                            "source": {"type": "base64", "media_type": image.mime_type, "data": image.b64()},
                        },
                        {"type": "text", "text": hint or DEFAULT_HINT},
                    ],
                }
            ],
        )

        record = parse_attributes(raw)
        if record is not None:
            return Parsed(record=record, raw_text=raw)

        logger.info("Vision output did not match the attribute schema, restructuring")
        return await self._restructure(raw)

    async def _restructure(self, raw: str) -> ExtractionResult:
        # the first call succeeded, so a failing second call degrades instead of erroring
        try:
            text = await self.llm.complete(
                model=self.settings.structuring_model,
                system=RESTRUCTURE_PROMPT,
                max_tokens=self.settings.vision_max_tokens,
                temperature=0,
                operation="attribute restructuring",
                messages=[{"role": "user", "content": raw or "(empty description)"}],
            )
        except UpstreamError:
            logger.warning("Restructuring call failed, returning degraded attributes", exc_info=True)
            return Degraded(raw_text=raw)

        record = parse_attributes(text)
        if record is None:
            logger.warning("Restructured output still unparseable: %s", text[:300])
            return Degraded(raw_text=raw)
        return Parsed(record=record, raw_text=raw)
