from datetime import date

import pytest

from azure_resource_cost.queries import (
    MetricType,
    TimeframeType,
    TimePeriodError,
    build_cost_query,
    build_forecast_query,
    validate_time_period,
)


def _grouping_names(payload):
    return [group["name"] for group in payload["dataSet"]["grouping"]]


def test_cost_query_with_meter_details():
    payload = build_cost_query(MetricType.ACTUAL_COST, TimeframeType.BILLING_MONTH_TO_DATE,
                               filter_args=["ResourceId=/sub/rg/vm1"])

    assert payload["type"] == "ActualCost"
    assert payload["timeframe"] == "BillingMonthToDate"
    assert "timePeriod" not in payload
    dataset = payload["dataSet"]
    assert dataset["granularity"] == "None"
    assert dataset["aggregation"] == {
        "totalCost": {"name": "Cost", "function": "Sum"},
        "totalCostUSD": {"name": "CostUSD", "function": "Sum"},
    }
    assert dataset["include"] == ["Tags"]
    assert _grouping_names(payload) == [
        "ResourceId", "ResourceType", "ResourceLocation", "ChargeType", "ResourceGroupName",
        "PublisherType", "MeterCategory", "MeterSubcategory", "Meter",
    ]
    assert all(group["type"] == "Dimension" for group in dataset["grouping"])
    assert dataset["filter"] == {"Dimensions": {"Name": "ResourceId", "Operator": "In", "Values": ["/sub/rg/vm1"]}}


def test_cost_query_without_meter_details_drops_meter_grouping():
    payload = build_cost_query(MetricType.AMORTIZED_COST, TimeframeType.MONTH_TO_DATE, exclude_meter_details=True)

    assert payload["type"] == "AmortizedCost"
    assert _grouping_names(payload) == [
        "ResourceId", "ResourceType", "ResourceLocation", "ChargeType", "ResourceGroupName", "PublisherType",
    ]
    assert "filter" not in payload["dataSet"]


def test_custom_timeframe_adds_time_period():
    payload = build_cost_query(MetricType.ACTUAL_COST, TimeframeType.CUSTOM,
                               from_date=date(2024, 1, 5), to_date=date(2024, 2, 29))
    assert payload["timeframe"] == "Custom"
    assert payload["timePeriod"] == {"from": "2024-01-05", "to": "2024-02-29"}


def test_dates_are_ignored_for_non_custom_timeframe():
    payload = build_forecast_query(MetricType.ACTUAL_COST, TimeframeType.THE_LAST_MONTH,
                                   from_date=date(2024, 3, 1), to_date=date(2024, 1, 1))
    assert "timePeriod" not in payload


def test_forecast_query_shape():
    payload = build_forecast_query(MetricType.ACTUAL_COST, TimeframeType.BILLING_MONTH_TO_DATE,
                                   filter_args=["ResourceId=/sub/rg/vm1"])
    dataset = payload["dataSet"]
    assert dataset["granularity"] == "Daily"
    assert dataset["aggregation"] == {"totalCost": {"name": "Cost", "function": "Sum"}}
    assert dataset["sorting"] == [{"direction": "ascending", "name": "UsageDate"}]
    assert dataset["filter"]["Dimensions"]["Name"] == "ResourceId"
    assert "grouping" not in dataset


def test_enum_values_are_accepted_as_strings():
    payload = build_cost_query("AmortizedCost", "WeekToDate")
    assert payload["type"] == "AmortizedCost"
    assert payload["timeframe"] == "WeekToDate"


@pytest.mark.parametrize("from_date,to_date", [
    (None, date(2024, 1, 31)),
    (date(2024, 1, 1), None),
    (None, None),
])
def test_custom_timeframe_requires_both_dates(from_date, to_date):
    with pytest.raises(TimePeriodError):
        validate_time_period(TimeframeType.CUSTOM, from_date, to_date)


def test_custom_timeframe_rejects_inverted_period():
    with pytest.raises(TimePeriodError):
        build_cost_query(MetricType.ACTUAL_COST, TimeframeType.CUSTOM,
                         from_date=date(2024, 2, 1), to_date=date(2024, 1, 1))


def test_custom_timeframe_allows_single_day():
    validate_time_period(TimeframeType.CUSTOM, date(2024, 2, 1), date(2024, 2, 1))


def test_other_timeframes_need_no_dates():
    validate_time_period(TimeframeType.THE_LAST_BILLING_MONTH, None, None)
