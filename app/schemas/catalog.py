from pydantic import BaseModel


class CatalogVariant(BaseModel):
    title: str
    available: bool = False
    price: str | None = None  # decimal string as returned by the storefront
    currency: str | None = None


class CatalogItem(BaseModel):
    title: str
    url: str | None = None
    image: str | None = None
    variants: list[CatalogVariant] = []


class CatalogSearchResult(BaseModel):
    results: list[CatalogItem] = []
    note: str | None = None


class CatalogSearchRequest(BaseModel):
    query: str | None = None
