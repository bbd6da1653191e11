import logging
from datetime import date
from enum import Enum
from typing import Any, Dict, Optional, Sequence

from .config import METER_GROUPING_DIMENSIONS, RESOURCE_GROUPING_DIMENSIONS
from .filters import generate_filters


class MetricType(str, Enum):
    ACTUAL_COST = "ActualCost"
    AMORTIZED_COST = "AmortizedCost"


class TimeframeType(str, Enum):
    BILLING_MONTH_TO_DATE = "BillingMonthToDate"
    CUSTOM = "Custom"
    MONTH_TO_DATE = "MonthToDate"
    THE_LAST_BILLING_MONTH = "TheLastBillingMonth"
    THE_LAST_MONTH = "TheLastMonth"
    WEEK_TO_DATE = "WeekToDate"


class TimePeriodError(ValueError):
    """Raised for an incomplete or inverted Custom time period."""


def validate_time_period(timeframe: TimeframeType, from_date: Optional[date], to_date: Optional[date]) -> None:
    """Checks the explicit bounds; they only matter for the Custom timeframe."""
    if TimeframeType(timeframe) is not TimeframeType.CUSTOM:
        return
    if from_date is None or to_date is None:
        raise TimePeriodError("Both from and to dates are required for the Custom timeframe.")
    if from_date > to_date:
        raise TimePeriodError(f"From date {from_date.isoformat()} is after to date {to_date.isoformat()}.")


def _base_payload(metric: MetricType, timeframe: TimeframeType, from_date: Optional[date], to_date: Optional[date]) -> Dict[str, Any]:
    timeframe = TimeframeType(timeframe)
    validate_time_period(timeframe, from_date, to_date)

    payload: Dict[str, Any] = {
        "type": MetricType(metric).value,
        "timeframe": timeframe.value,
    }
    if timeframe is TimeframeType.CUSTOM:
        payload["timePeriod"] = {
            "from": from_date.strftime('%Y-%m-%d'),
            "to": to_date.strftime('%Y-%m-%d'),
        }
    return payload


def build_grouping(exclude_meter_details: bool):
    names = list(RESOURCE_GROUPING_DIMENSIONS)
    if not exclude_meter_details:
        names.extend(METER_GROUPING_DIMENSIONS)
    return [{"type": "Dimension", "name": name} for name in names]


def build_cost_query(
    metric: MetricType,
    timeframe: TimeframeType,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    exclude_meter_details: bool = False,
    filter_args: Optional[Sequence[str]] = None,
    logger: Optional[logging.Logger] = None,
) -> Dict[str, Any]:
    """Builds the body of a Cost Management query grouped per resource (and meter)."""
    if not logger: logger = logging.getLogger(__name__)
    payload = _base_payload(metric, timeframe, from_date, to_date)

    dataset: Dict[str, Any] = {
        "granularity": "None",
        "aggregation": {
            "totalCost": {"name": "Cost", "function": "Sum"},
            "totalCostUSD": {"name": "CostUSD", "function": "Sum"},
        },
        "include": ["Tags"],
        "grouping": build_grouping(exclude_meter_details),
    }
    query_filter = generate_filters(filter_args, logger=logger)
    if query_filter is not None:
        dataset["filter"] = query_filter

    payload["dataSet"] = dataset
    return payload


def build_forecast_query(
    metric: MetricType,
    timeframe: TimeframeType,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    filter_args: Optional[Sequence[str]] = None,
    logger: Optional[logging.Logger] = None,
) -> Dict[str, Any]:
    """Builds the body of a daily Cost Management forecast query."""
    if not logger: logger = logging.getLogger(__name__)
    payload = _base_payload(metric, timeframe, from_date, to_date)

    dataset: Dict[str, Any] = {
        "granularity": "Daily",
        "aggregation": {
            "totalCost": {"name": "Cost", "function": "Sum"},
        },
        "sorting": [{"direction": "ascending", "name": "UsageDate"}],
    }
    query_filter = generate_filters(filter_args, logger=logger)
    if query_filter is not None:
        dataset["filter"] = query_filter

    payload["dataSet"] = dataset
    return payload
