from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict, field_validator

StrOrList = str | list[str] | None


class Domain(StrEnum):
    APPAREL = "apparel"
    SHAPEWEAR = "shapewear"
    ELECTRONICS = "electronics"
    PHONES = "phones"
    PHONE_PARTS = "phone_parts"
    AUTO_PARTS = "auto_parts"
    CAMERAS = "cameras"
    COMPUTERS = "computers"
    FURNITURE = "furniture"
    HOME = "home"
    BOOKS = "books"
    BEAUTY = "beauty"
    TOYS = "toys"
    SPORTS = "sports"
    OTHER = "other"


class AttributeRecord(BaseModel):
    """Flat product description extracted from a photo. Only `domain` is required."""

    model_config = ConfigDict(extra="ignore")

    domain: Domain
    category: StrOrList = None
    type: StrOrList = None
    brand: StrOrList = None
    model: StrOrList = None
    colors: StrOrList = None
    materials: StrOrList = None
    details: StrOrList = None
    features: StrOrList = None
    compatibility: StrOrList = None
    part_number: StrOrList = None
    size: StrOrList = None
    length: StrOrList = None
    fit: StrOrList = None
    style: StrOrList = None
    title: StrOrList = None
    author: StrOrList = None
    language: StrOrList = None
    topic: StrOrList = None
    keywords: StrOrList = None
    raw: str | None = None

    @field_validator("domain", mode="before")
    @classmethod
    def _normalize_domain(cls, value):
        if isinstance(value, str):
            return value.strip().lower().replace("-", "_").replace(" ", "_")
        return value

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_scalars(cls, value):
        # models sometimes answer numbers where strings are expected ("size": 38)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        if isinstance(value, list):
            return [str(v) for v in value if v is not None]
        return value

    def as_dict(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)


class Parsed(BaseModel):
    status: Literal["parsed"] = "parsed"
    record: AttributeRecord
    raw_text: str = ""

    @property
    def degraded(self) -> bool:
        return False

    @property
    def attributes(self) -> AttributeRecord:
        return self.record


class Degraded(BaseModel):
    status: Literal["degraded"] = "degraded"
    raw_text: str

    @property
    def degraded(self) -> bool:
        return True

    @property
    def attributes(self) -> AttributeRecord:
        return AttributeRecord(domain=Domain.OTHER, raw=self.raw_text)


ExtractionResult = Parsed | Degraded
