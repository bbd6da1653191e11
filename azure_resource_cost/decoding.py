import logging
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from .models import CostResourceRecord, ForecastRecord

# Column layouts of cost query rows. They follow the grouping order of the
# query, so the meter columns shift Tags and Currency to the right.
DETAILED_ROW_WIDTH = 13
AGGREGATED_ROW_WIDTH = 10
FORECAST_ROW_WIDTH = 4


class ResponseFormatError(ValueError):
    """Raised when a Cost Management or Retail Prices response does not have the expected shape."""


def get_rows(content: Dict[str, Any]) -> List[List[Any]]:
    """Returns properties.rows of a query/forecast response."""
    try:
        rows = content["properties"]["rows"]
    except (KeyError, TypeError) as e:
        raise ResponseFormatError(f"Response is missing properties.rows: {e}") from e
    if rows is None:
        raise ResponseFormatError("Response properties.rows is null")
    return rows


def _split_tag(tag: Any) -> List[str]:
    if not isinstance(tag, str):
        return []
    return tag.split(':')


def parse_tags(raw_tags: Optional[Iterable[Any]]) -> Dict[str, str]:
    """Parses '"key":"value"' tag strings; entries without exactly one ':' are dropped."""
    pairs = [_split_tag(tag) for tag in (raw_tags or [])]
    return {key.strip('"'): value.strip('"') for key, value in (p for p in pairs if len(p) == 2)}


def _check_width(row: List[Any], width: int) -> None:
    if row is None or len(row) < width:
        raise ResponseFormatError(f"Expected a row with {width} columns, got: {row}")


def _as_float(value: Any) -> float:
    if value is None:
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ResponseFormatError(f"Expected a numeric cost, got: {value!r}") from e


def _as_str(value: Any) -> str:
    return value if value is not None else ''


def decode_detailed_row(row: List[Any]) -> CostResourceRecord:
    """
    Decodes a row of a query grouped with meter details.

    Columns: Cost, CostUSD, ResourceId, ResourceType, ResourceLocation,
    ChargeType, ResourceGroupName, PublisherType, ServiceName, ServiceTier,
    Meter, Tags, Currency.
    """
    _check_width(row, DETAILED_ROW_WIDTH)
    return CostResourceRecord(
        cost=_as_float(row[0]),
        cost_usd=_as_float(row[1]),
        resource_id=_as_str(row[2]),
        resource_type=_as_str(row[3]),
        resource_location=_as_str(row[4]),
        charge_type=_as_str(row[5]),
        resource_group_name=_as_str(row[6]),
        publisher_type=_as_str(row[7]),
        service_name=_as_str(row[8]),
        service_tier=_as_str(row[9]),
        meter=_as_str(row[10]),
        tags=parse_tags(row[11]),
        currency=_as_str(row[12]),
    )


def decode_aggregated_row(row: List[Any]) -> CostResourceRecord:
    """
    Decodes a row of a query grouped per resource only.

    Columns: Cost, CostUSD, ResourceId, ResourceType, ResourceLocation,
    ChargeType, ResourceGroupName, PublisherType, Tags, Currency.
    """
    _check_width(row, AGGREGATED_ROW_WIDTH)
    return CostResourceRecord(
        cost=_as_float(row[0]),
        cost_usd=_as_float(row[1]),
        resource_id=_as_str(row[2]),
        resource_type=_as_str(row[3]),
        resource_location=_as_str(row[4]),
        charge_type=_as_str(row[5]),
        resource_group_name=_as_str(row[6]),
        publisher_type=_as_str(row[7]),
        service_name=None,
        service_tier=None,
        meter=None,
        tags=parse_tags(row[8]),
        currency=_as_str(row[9]),
    )


def row_decoder(exclude_meter_details: bool) -> Callable[[List[Any]], CostResourceRecord]:
    return decode_aggregated_row if exclude_meter_details else decode_detailed_row


def decode_cost_rows(content: Dict[str, Any], exclude_meter_details: bool, logger: Optional[logging.Logger] = None) -> List[CostResourceRecord]:
    """Decodes every row of a cost query response, preserving row order."""
    if not logger: logger = logging.getLogger(__name__)
    rows = get_rows(content)
    decode = row_decoder(exclude_meter_details)
    records = [decode(row) for row in rows]
    logger.debug(f"Decoded {len(records)} cost row(s) (meter details {'excluded' if exclude_meter_details else 'included'})")
    return records


def decode_forecast_row(row: List[Any]) -> ForecastRecord:
    """Decodes a forecast row: Cost, UsageDate (yyyyMMdd), CostUSD, Currency."""
    _check_width(row, FORECAST_ROW_WIDTH)
    try:
        usage_date = datetime.strptime(str(row[1]), '%Y%m%d').date()
    except ValueError as e:
        raise ResponseFormatError(f"Invalid usage date in forecast row {row}: {e}") from e
    value = _as_float(row[0])
    # cost_usd mirrors cost for forecasts
    return ForecastRecord(date=usage_date, cost=value, cost_usd=value, currency=_as_str(row[3]))


def decode_forecast_rows(content: Dict[str, Any]) -> List[ForecastRecord]:
    return [decode_forecast_row(row) for row in get_rows(content)]
