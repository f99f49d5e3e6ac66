"""Deterministic search-query construction from extracted attributes."""

from collections.abc import Mapping

from app.schemas.attributes import AttributeRecord, Domain

_APPAREL = ("category", "type", "style", "length", "fit", "colors", "materials", "details", "keywords", "size")
_DEVICES = ("brand", "model", "type", "category", "colors", "features", "keywords")
_HOME = ("category", "type", "style", "materials", "colors", "details", "keywords")
_LEISURE = ("brand", "category", "type", "colors", "features", "keywords")

DOMAIN_FIELDS: dict[str, tuple[str, ...]] = {
    Domain.APPAREL: _APPAREL,
    Domain.SHAPEWEAR: _APPAREL,
    Domain.ELECTRONICS: _DEVICES,
    Domain.PHONES: _DEVICES,
    Domain.CAMERAS: _DEVICES,
    Domain.COMPUTERS: _DEVICES,
    Domain.PHONE_PARTS: ("brand", "model", "type", "part_number", "compatibility", "colors", "keywords"),
    Domain.AUTO_PARTS: ("part_number", "brand", "type", "category", "compatibility", "keywords"),
    Domain.FURNITURE: _HOME,
    Domain.HOME: _HOME,
    Domain.BOOKS: ("title", "author", "language", "topic", "keywords"),
    Domain.BEAUTY: ("brand", "category", "type", "size", "features", "keywords"),
    Domain.TOYS: _LEISURE,
    Domain.SPORTS: _LEISURE,
}

GENERIC_FIELDS = ("category", "type", "features", "keywords")


def _flatten(value) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return " ".join(part for part in (_flatten(v) for v in value) if part)
    return " ".join(str(value).split())


def build_query(attrs: AttributeRecord | Mapping) -> str:
    """Join the domain's fields in fixed order, skipping empty ones. Never raises."""
    if isinstance(attrs, AttributeRecord):
        attrs = attrs.as_dict()

    domain = str(attrs.get("domain") or "").strip().lower()
    fields = DOMAIN_FIELDS.get(domain, GENERIC_FIELDS)

    parts = [_flatten(attrs.get(name)) for name in fields]
    return " ".join(part for part in parts if part)
