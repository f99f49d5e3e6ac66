import logging

import httpx

from app.config import Settings
from app.errors import UpstreamError, body_sample
from app.schemas.catalog import CatalogItem, CatalogSearchResult, CatalogVariant
from app.services.fetch import http_client

logger = logging.getLogger(__name__)

SEARCH_QUERY = """
query SearchProducts($query: String!, $first: Int!) {
  products(first: $first, query: $query) {
    edges {
      node {
        title
        handle
        onlineStoreUrl
        images(first: 1) {
          edges { node { url } }
        }
        variants(first: 10) {
          edges {
            node {
              title
              availableForSale
              price { amount currencyCode }
            }
          }
        }
      }
    }
  }
}
"""

MAX_PRODUCTS = 5
NOT_CONFIGURED_NOTE = (
    "Catalog search is not configured: set GATEWAY_SHOPIFY_STORE_DOMAIN and GATEWAY_SHOPIFY_STOREFRONT_TOKEN."
)


def _edges(conn: dict | None) -> list[dict]:
    return [edge.get("node") or {} for edge in (conn or {}).get("edges", [])]


class ProductSearchService:
    """Search products through the Shopify Storefront GraphQL API."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings
        self._transport = transport

    @property
    def _store_host(self) -> str:
        return self.settings.shopify_store_domain.removeprefix("https://").removeprefix("http://").rstrip("/")

    @property
    def endpoint(self) -> str:
        return f"https://{self._store_host}/api/{self.settings.shopify_api_version}/graphql.json"

    async def search(self, query: str) -> CatalogSearchResult:
        if not self.settings.catalog_configured:
            logger.info("Catalog search skipped, storefront not configured")
            return CatalogSearchResult(results=[], note=NOT_CONFIGURED_NOTE)

        payload = {"query": SEARCH_QUERY, "variables": {"query": query, "first": MAX_PRODUCTS}}
        headers = {
            "Content-Type": "application/json",
            "X-Shopify-Storefront-Access-Token": self.settings.shopify_storefront_token,
        }

        try:
            async with http_client(self.settings, self._transport) as client:
                resp = await client.post(self.endpoint, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            logger.error("Storefront request failed for %r: %s", query, exc)
            raise UpstreamError("Catalog search failed", details=str(exc)) from exc

        if resp.status_code >= 400:
            logger.error("Storefront returned %s for %r: %s", resp.status_code, query, body_sample(resp.text))
            raise UpstreamError(f"Catalog search failed ({resp.status_code})", details=body_sample(resp.text))

        try:
            data = resp.json()
        except ValueError as exc:
            raise UpstreamError("Catalog returned invalid JSON", details=body_sample(resp.text)) from exc

        if data.get("errors"):
            logger.error("Storefront GraphQL errors for %r: %s", query, data["errors"])
            raise UpstreamError("Catalog search failed", details=data["errors"])

        products = (data.get("data") or {}).get("products")
        results = [self._to_item(node) for node in _edges(products)[:MAX_PRODUCTS]]
        logger.info("Storefront returned %d products for: %s", len(results), query)
        return CatalogSearchResult(results=results)

    def _to_item(self, node: dict) -> CatalogItem:
        url = node.get("onlineStoreUrl")
        if not url and node.get("handle"):
            url = f"https://{self._store_host}/products/{node['handle']}"

        images = _edges(node.get("images"))
        variants = []
        for variant in _edges(node.get("variants")):
            price = variant.get("price") or {}
            variants.append(CatalogVariant(
                title=variant.get("title") or "",
                available=bool(variant.get("availableForSale")),
                price=price.get("amount"),
                currency=price.get("currencyCode"),
            ))

        return CatalogItem(
            title=node.get("title") or "",
            url=url,
            image=images[0].get("url") if images else None,
            variants=variants,
        )
