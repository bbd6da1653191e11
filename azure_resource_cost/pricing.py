import logging
from collections import OrderedDict
from typing import Dict, Iterable, List, Optional

import requests

from .config import (
    RETAIL_PRICES_API_ENDPOINT,
    RETAIL_PRICES_API_VERSION,
    HTTP_TIMEOUT_SECONDS,
    UNKNOWN_LOCATION,
)
from .decoding import ResponseFormatError
from .models import Meter, PriceRecord


def _odata_literal(value: str) -> str:
    # Single quotes are escaped by doubling them in OData string literals
    return (value or '').replace("'", "''")


def build_price_filter(location: str, service_name: str, meter_name: str) -> str:
    """OData filter for the retail prices of a meter; 'Unknown' locations match every region."""
    filter_string = (f"contains(serviceName, '{_odata_literal(service_name)}')"
                     f" and contains(meterName, '{_odata_literal(meter_name)}')")
    if location != UNKNOWN_LOCATION:
        filter_string += f" and armRegionName eq '{_odata_literal(location)}'"
    return filter_string


def distinct_meters(meters: Iterable[Meter]) -> List[Meter]:
    """Meters deduplicated on (location, service, tier, meter name); the first occurrence is kept."""
    unique: Dict[tuple, Meter] = OrderedDict()
    for meter in meters:
        unique.setdefault(meter.price_key, meter)
    return list(unique.values())


def is_priceable(meter: Meter) -> bool:
    """Only meters carrying service and meter names can be looked up."""
    return bool(meter.service_name) and bool(meter.meter_name)


def parse_price_items(content: Dict) -> List[PriceRecord]:
    """Decodes the Items of a price page; a missing list or item field raises ResponseFormatError."""
    items = content.get('Items') if isinstance(content, dict) else None
    if not isinstance(items, list):
        raise ResponseFormatError(f"Price response has no Items list: {content}")
    try:
        return [PriceRecord.from_api_item(item) for item in items]
    except (KeyError, TypeError, ValueError) as e:
        raise ResponseFormatError(f"Invalid price item in response: {e!r}") from e


def find_price_item(prices: Iterable[PriceRecord], meter: Meter) -> Optional[PriceRecord]:
    """
    Returns the first price matching the meter, or None.

    Region must match unless the meter location is 'Unknown'; service name
    and meter name must match exactly. Items are taken in API order.
    """
    for price in prices:
        region_matches = meter.arm_location == UNKNOWN_LOCATION or price.arm_region_name == meter.arm_location
        if region_matches and price.service_name == meter.service_name and price.meter_name == meter.meter_name:
            return price
    return None


class PriceRetriever:
    """Client for the public Azure Retail Prices API."""

    def __init__(
        self,
        session: requests.Session,
        endpoint: str = RETAIL_PRICES_API_ENDPOINT,
        api_version: str = RETAIL_PRICES_API_VERSION,
        timeout: float = HTTP_TIMEOUT_SECONDS,
        logger: Optional[logging.Logger] = None,
    ):
        self.session = session
        self.endpoint = endpoint
        self.api_version = api_version
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)
        self._cache: Dict[str, List[PriceRecord]] = {}

    def fetch_retail_prices(self, filter_string: str) -> List[PriceRecord]:
        """
        Fetches every price item matching an OData filter.

        Follows NextPageLink until the last page. Non-2xx responses raise
        requests.HTTPError and malformed pages raise ResponseFormatError.
        Results are cached per filter for the process.
        """
        if filter_string in self._cache:
            return self._cache[filter_string]

        self.logger.debug(f"Fetching prices with filter: {filter_string}")
        url = self.endpoint
        params = {'api-version': self.api_version, '$filter': filter_string}
        items: List[PriceRecord] = []

        while url:
            response = self.session.get(url, params=params, timeout=self.timeout)
            if not response.ok:
                self.logger.debug(f"Price API request failed with status {response.status_code}: {response.text}")
            response.raise_for_status()

            content = response.json()
            items.extend(parse_price_items(content))
            url = content.get('NextPageLink')
            params = None # NextPageLink already carries the query string

        self.logger.debug(f"Retrieved {len(items)} price item(s) for filter: {filter_string}")
        self._cache[filter_string] = items
        return items

    def get_price_items(self, location: str, service_name: str, meter_name: str) -> List[PriceRecord]:
        return self.fetch_retail_prices(build_price_filter(location, service_name, meter_name))
