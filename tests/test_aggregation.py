import pytest

from azure_resource_cost.aggregation import aggregate_by_resource
from azure_resource_cost.decoding import decode_aggregated_row
from conftest import aggregated_row


def _records(*rows):
    return [decode_aggregated_row(row) for row in rows]


def test_rows_of_one_resource_are_combined():
    records = _records(
        aggregated_row(10.0, location="westeurope", tags=['"env":"prod"']),
        aggregated_row(2.5, location="Intercontinental", tags=['"env":"test"']),
        aggregated_row(0.5, location="Unassigned"),
    )

    aggregated = aggregate_by_resource(records)

    assert len(aggregated) == 1
    record = aggregated[0]
    assert record.cost == pytest.approx(13.0)
    assert record.cost_usd == pytest.approx(sum(r.cost_usd for r in records))
    assert record.resource_location == "westeurope, Intercontinental, Unassigned"
    assert record.tags == {"env": "prod"}
    assert record.service_name is None and record.service_tier is None and record.meter is None


def test_duplicate_locations_are_kept():
    records = _records(aggregated_row(1.0, location="westeurope"), aggregated_row(1.0, location="westeurope"))
    assert aggregate_by_resource(records)[0].resource_location == "westeurope, westeurope"


def test_one_record_per_resource_in_first_seen_order():
    records = _records(
        aggregated_row(1.0, resource_id="/x/b"),
        aggregated_row(2.0, resource_id="/x/a"),
        aggregated_row(3.0, resource_id="/x/b"),
    )

    aggregated = aggregate_by_resource(records)

    assert [r.resource_id for r in aggregated] == ["/x/b", "/x/a"]
    assert [r.cost for r in aggregated] == [4.0, 2.0]


@pytest.mark.parametrize("costs", [[0.0], [1.1, 2.2, 3.3], [0.01] * 50, [1e6, -12.5]])
def test_aggregation_conserves_total_cost(costs):
    records = _records(*[aggregated_row(c, location=f"loc{i}") for i, c in enumerate(costs)])
    aggregated = aggregate_by_resource(records)
    assert sum(r.cost for r in aggregated) == pytest.approx(sum(r.cost for r in records))


def test_aggregating_nothing_returns_nothing():
    assert aggregate_by_resource([]) == []
