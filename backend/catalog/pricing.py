"""Visitor location and localized product prices.

The location is resolved once per request (query parameter, then the
``user_location`` cookie, then the default) and passed into the price helpers.
"""

import json
import logging
from dataclasses import asdict, dataclass
from typing import Optional

from fastapi import Request

from catalog.sanity import ZERO_DECIMAL_CURRENCIES, Product

logger = logging.getLogger(__name__)

LOCATION_COOKIE = "user_location"
LOCATION_COOKIE_MAX_AGE = 30 * 24 * 3600

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "CNY": "¥",
    "AUD": "A$",
}


@dataclass(frozen=True)
class UserLocation:
    country: str = "US"
    currency: str = "USD"
    timezone: str = "America/New_York"

    def to_cookie(self) -> str:
        return json.dumps(asdict(self))


DEFAULT_LOCATION = UserLocation()


@dataclass(frozen=True)
class LocalizedPrice:
    amount: int  # minor units
    currency: str
    formatted: str
    converted: bool  # False when falling back to the USD base price


def parse_location_cookie(raw: Optional[str]) -> UserLocation:
    if not raw:
        return DEFAULT_LOCATION
    try:
        data = json.loads(raw)
    except ValueError:
        logger.warning("Ignoring malformed %s cookie", LOCATION_COOKIE)
        return DEFAULT_LOCATION
    if not isinstance(data, dict):
        return DEFAULT_LOCATION
    return UserLocation(
        country=str(data.get("country") or DEFAULT_LOCATION.country),
        currency=str(data.get("currency") or DEFAULT_LOCATION.currency).upper(),
        timezone=str(data.get("timezone") or DEFAULT_LOCATION.timezone),
    )


def resolve_location(request: Request, currency: Optional[str] = None) -> UserLocation:
    """FastAPI dependency: explicit ``?currency=`` wins over the cookie."""
    location = parse_location_cookie(request.cookies.get(LOCATION_COOKIE))
    if currency:
        location = UserLocation(location.country, currency.upper(), location.timezone)
    return location


def format_price(amount: int, currency: str) -> str:
    """Render minor units as a display string, e.g. 19900 USD -> "$199.00"."""
    code = currency.upper()
    symbol = CURRENCY_SYMBOLS.get(code, f"{code} ")
    if code in ZERO_DECIMAL_CURRENCIES:
        return f"{symbol}{amount:,}"
    return f"{symbol}{amount / 100:,.2f}"


def localize_price(product: Product, location: UserLocation) -> LocalizedPrice:
    """Pick the product's price in the visitor's currency, falling back to USD."""
    amount = product.localized_prices.get(location.currency)
    if amount is not None:
        return LocalizedPrice(amount, location.currency, format_price(amount, location.currency), True)
    return LocalizedPrice(product.base_price, "USD", format_price(product.base_price, "USD"), False)
