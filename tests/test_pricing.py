import pytest
import requests
from unittest.mock import MagicMock

from azure_resource_cost.decoding import ResponseFormatError
from azure_resource_cost.models import Meter, PriceRecord
from azure_resource_cost.pricing import (
    PriceRetriever,
    build_price_filter,
    distinct_meters,
    find_price_item,
    is_priceable,
)
from conftest import make_response


def price_item(region="westeurope", service="Virtual Machines", meter="D2 v3", retail=0.1, unit="1 Hour"):
    return {
        "armRegionName": region,
        "serviceName": service,
        "meterName": meter,
        "unitOfMeasure": unit,
        "retailPrice": retail,
        "unitPrice": retail,
        "currencyCode": "USD",
        "productName": "Virtual Machines Dv3 Series",
        "skuName": "D2 v3",
        "location": "EU West",
        "type": "Consumption",
    }


def meter(location="westeurope", service="Virtual Machines", tier="Dv3 Series", name="D2 v3", cost=1.0):
    return Meter(arm_location=location, service_name=service, service_tier=tier, meter_name=name, cost=cost)


def test_price_filter_includes_region_for_known_location():
    assert build_price_filter("westeurope", "Virtual Machines", "D2 v3") == (
        "contains(serviceName, 'Virtual Machines') and contains(meterName, 'D2 v3')"
        " and armRegionName eq 'westeurope'"
    )


def test_price_filter_omits_region_for_unknown_location():
    assert build_price_filter("Unknown", "Bandwidth", "Standard Data Transfer Out") == (
        "contains(serviceName, 'Bandwidth') and contains(meterName, 'Standard Data Transfer Out')"
    )


def test_price_filter_escapes_quotes():
    assert "contains(meterName, 'O''Brien')" in build_price_filter("Unknown", "Svc", "O'Brien")


def test_distinct_meters_keeps_first_occurrence():
    first = meter(cost=1.0)
    duplicate = meter(cost=99.0)
    other_tier = meter(tier="Premium", cost=2.0)

    assert distinct_meters([first, duplicate, other_tier]) == [first, other_tier]


def test_only_named_meters_are_priceable():
    assert is_priceable(meter())
    assert not is_priceable(meter(service=None, tier=None, name=None))
    assert not is_priceable(meter(service="", tier="", name=""))


def test_find_price_item_requires_region_and_exact_names():
    prices = [
        PriceRecord.from_api_item(price_item(region="eastus", retail=0.2)),
        PriceRecord.from_api_item(price_item(meter="D2 v3 Low Priority", retail=0.02)),
        PriceRecord.from_api_item(price_item(retail=0.1)),
    ]

    match = find_price_item(prices, meter())

    assert match is prices[2]
    assert match.retail_price == 0.1


def test_unknown_location_matches_any_region():
    prices = [PriceRecord.from_api_item(price_item(region="eastus", retail=0.2))]
    match = find_price_item(prices, meter(location="Unknown"))
    assert match is prices[0]


def test_first_of_several_matches_wins():
    prices = [
        PriceRecord.from_api_item(price_item(retail=0.3)),
        PriceRecord.from_api_item(price_item(retail=0.1)),
    ]
    assert find_price_item(prices, meter()).retail_price == 0.3


def test_no_match_returns_none():
    prices = [PriceRecord.from_api_item(price_item(service="Storage"))]
    assert find_price_item(prices, meter()) is None
    assert find_price_item([], meter()) is None


def test_fetch_retail_prices_follows_next_page_and_caches():
    session = MagicMock(spec=requests.Session)
    session.get.side_effect = [
        make_response(200, {"Items": [price_item(retail=0.1)], "NextPageLink": "https://prices.example/next"}),
        make_response(200, {"Items": [price_item(retail=0.2)], "NextPageLink": None}),
    ]
    retriever = PriceRetriever(session, endpoint="https://prices.example/api/retail/prices")

    items = retriever.get_price_items("westeurope", "Virtual Machines", "D2 v3")
    cached = retriever.get_price_items("westeurope", "Virtual Machines", "D2 v3")

    assert [item.retail_price for item in items] == [0.1, 0.2]
    assert cached == items
    assert session.get.call_count == 2
    first_call, second_call = session.get.call_args_list
    assert first_call[0][0] == "https://prices.example/api/retail/prices"
    assert first_call[1]["params"] == {
        "api-version": "2023-01-01-preview",
        "$filter": "contains(serviceName, 'Virtual Machines') and contains(meterName, 'D2 v3')"
                   " and armRegionName eq 'westeurope'",
    }
    assert second_call[0][0] == "https://prices.example/next"
    assert second_call[1]["params"] is None


def test_price_api_error_propagates():
    session = MagicMock(spec=requests.Session)
    session.get.return_value = make_response(500, {"error": "boom"})
    retriever = PriceRetriever(session)

    with pytest.raises(requests.HTTPError):
        retriever.get_price_items("westeurope", "Virtual Machines", "D2 v3")


@pytest.mark.parametrize("content", [
    {"error": "unexpected"},
    {"Items": None},
    {"Items": [{"serviceName": "Storage", "meterName": "LRS"}]},
    {"Items": [{"armRegionName": "westeurope", "serviceName": "Storage", "meterName": "LRS", "retailPrice": None}]},
])
def test_malformed_price_response_raises(content):
    session = MagicMock(spec=requests.Session)
    session.get.return_value = make_response(200, content)
    retriever = PriceRetriever(session)

    with pytest.raises(ResponseFormatError):
        retriever.get_price_items("westeurope", "Storage", "LRS")


def test_price_record_optional_fields_default():
    record = PriceRecord.from_api_item({"armRegionName": "westeurope", "serviceName": "Storage",
                                        "meterName": "LRS", "retailPrice": 0.02})
    assert record.retail_price == 0.02
    assert record.unit_of_measure == ''
    assert record.currency_code == 'USD'
