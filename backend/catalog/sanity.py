"""
Sanity content API client for the product catalog.

Read-only: products are authored in the Sanity studio and fetched here with
GROQ over the HTTP query endpoint.

API Base URL: https://<project>.api.sanity.io/v<version>/data/query/<dataset>
Auth: optional Bearer token (needed only for private datasets)
"""

import json
import logging
from typing import Any, Optional

import httpx
from pydantic import BaseModel, Field

from config import settings

logger = logging.getLogger(__name__)

_PRODUCT_PROJECTION = """{
  _id,
  name,
  "slug": slug.current,
  category,
  description,
  details,
  basePrice,
  stripeProductId,
  stripePriceId,
  localizedPrices[]{currency, amount},
  addOns[]{"id": _key, name, price, stripeProductId, stripePriceId}
}"""

PRODUCTS_QUERY = (
    '*[_type == "product" && defined(slug.current) && (!defined($search) '
    "|| name match $search || description match $search || category match $search)]"
    f" | order(name asc){_PRODUCT_PROJECTION}"
)
PRODUCT_BY_SLUG_QUERY = f'*[_type == "product" && slug.current == $slug][0]{_PRODUCT_PROJECTION}'


class SanityAPIError(Exception):
    """Raised when the Sanity query API fails or is unreachable."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"Sanity API error {status_code}: {message}")


# Stripe zero-decimal currencies among the supported ones
ZERO_DECIMAL_CURRENCIES = {"JPY"}


def _to_minor(amount: Any, currency: str = "USD") -> int:
    """Sanity stores prices in major units (e.g. 199 or 49.5)."""
    if amount in (None, ""):
        return 0
    scale = 1 if currency.upper() in ZERO_DECIMAL_CURRENCIES else 100
    try:
        return int(round(float(amount) * scale))
    except (TypeError, ValueError, OverflowError):
        raise SanityAPIError(502, f"Invalid price value: {amount!r}")


class AddOn(BaseModel):
    id: str
    name: str
    price: int = 0
    stripe_product_id: Optional[str] = None
    stripe_price_id: Optional[str] = None


class Product(BaseModel):
    id: str
    name: str
    slug: str
    category: Optional[str] = None
    description: Any = None
    details: Any = None
    base_price: int = 0  # minor units, USD
    stripe_product_id: Optional[str] = None
    stripe_price_id: Optional[str] = None
    localized_prices: dict[str, int] = Field(default_factory=dict)
    add_ons: list[AddOn] = Field(default_factory=list)

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "Product":
        return cls(
            id=doc["_id"],
            name=doc.get("name") or "",
            slug=doc.get("slug") or "",
            category=doc.get("category"),
            description=doc.get("description"),
            details=doc.get("details"),
            base_price=_to_minor(doc.get("basePrice")),
            stripe_product_id=doc.get("stripeProductId"),
            stripe_price_id=doc.get("stripePriceId"),
            localized_prices={
                p["currency"].upper(): _to_minor(p.get("amount"), p["currency"])
                for p in doc.get("localizedPrices") or []
                if p.get("currency")
            },
            add_ons=[
                AddOn(
                    id=a.get("id") or a.get("name") or "",
                    name=a.get("name") or "",
                    price=_to_minor(a.get("price")),
                    stripe_product_id=a.get("stripeProductId"),
                    stripe_price_id=a.get("stripePriceId"),
                )
                for a in doc.get("addOns") or []
            ],
        )


class SanityClient:
    """Async client for the Sanity HTTP query API."""

    def __init__(
        self,
        project_id: str,
        dataset: str = "production",
        api_version: str = "2023-05-03",
        token: str | None = None,
        timeout: float = 10.0,
    ):
        self.base_url = f"https://{project_id}.api.sanity.io/v{api_version}/data/query/{dataset}"
        self.token = token
        self.timeout = timeout

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def query(self, groq: str, params: dict[str, Any] | None = None) -> Any:
        """Run a GROQ query and return its ``result``."""
        query_params = {"query": groq}
        for name, value in (params or {}).items():
            query_params[f"${name}"] = json.dumps(value)

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(self.base_url, params=query_params, headers=self._headers())
        except httpx.HTTPError as e:
            logger.error("Sanity request failed: %s", e)
            raise SanityAPIError(502, f"Content API unreachable: {e}")

        if response.status_code >= 400:
            logger.error("Sanity API error %s: %s", response.status_code, response.text[:2000])
            try:
                body = response.json()
            except ValueError:
                body = {}
            error = body.get("error")
            if isinstance(error, dict):
                message = error.get("description") or error.get("message") or response.text
            else:
                message = error or body.get("message") or response.text
            raise SanityAPIError(response.status_code, message)

        return response.json().get("result")

    async def list_products(self, search: str | None = None) -> list[Product]:
        term = f"{search.strip()}*" if search and search.strip() else None
        docs = await self.query(PRODUCTS_QUERY, {"search": term})
        return [Product.from_document(d) for d in docs or []]

    async def get_product(self, slug: str) -> Product | None:
        doc = await self.query(PRODUCT_BY_SLUG_QUERY, {"slug": slug})
        return Product.from_document(doc) if doc else None


def get_sanity_client() -> SanityClient:
    """FastAPI dependency; overridden in tests."""
    return SanityClient(
        project_id=settings.sanity_project_id,
        dataset=settings.sanity_dataset,
        api_version=settings.sanity_api_version,
        token=settings.sanity_api_token,
    )
