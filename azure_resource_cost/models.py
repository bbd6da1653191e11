"""Typed records passed between the cost, forecast, pricing and reporting steps."""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from .utils import get_resource_name


@dataclass(frozen=True)
class CostResourceRecord:
    """One cost row for a resource, per meter (detail mode) or per resource (aggregated)."""
    cost: float
    cost_usd: float
    resource_id: str
    resource_type: str
    resource_location: str
    charge_type: str
    resource_group_name: str
    publisher_type: str
    service_name: Optional[str]
    service_tier: Optional[str]
    meter: Optional[str]
    tags: Dict[str, str] = field(default_factory=dict)
    currency: str = ''

    @property
    def resource_name(self) -> str:
        return get_resource_name(self.resource_id)

    @property
    def has_meter_details(self) -> bool:
        return self.meter is not None


@dataclass(frozen=True)
class ForecastRecord:
    date: date
    cost: float
    cost_usd: float
    currency: str


@dataclass(frozen=True)
class PriceRecord:
    """A retail price item as returned by the Azure Retail Prices API."""
    arm_region_name: str
    service_name: str
    meter_name: str
    unit_of_measure: str
    retail_price: float
    unit_price: float
    currency_code: str = 'USD'
    product_name: str = ''
    sku_name: str = ''
    location: str = ''
    price_type: str = ''

    @classmethod
    def from_api_item(cls, item: Dict[str, Any]) -> 'PriceRecord':
        """Region, service, meter and retail price are required; other fields default."""
        return cls(
            arm_region_name=item['armRegionName'],
            service_name=item['serviceName'],
            meter_name=item['meterName'],
            unit_of_measure=item.get('unitOfMeasure') or '',
            retail_price=float(item['retailPrice']),
            unit_price=float(item.get('unitPrice') or 0.0),
            currency_code=item.get('currencyCode') or 'USD',
            product_name=item.get('productName') or '',
            sku_name=item.get('skuName') or '',
            location=item.get('location') or '',
            price_type=item.get('type') or '',
        )


@dataclass(frozen=True)
class Meter:
    """A billable meter of a resource, the unit retail prices are looked up for."""
    arm_location: str
    service_name: Optional[str]
    service_tier: Optional[str]
    meter_name: Optional[str]
    cost: float

    @property
    def price_key(self):
        return (self.arm_location, self.service_name, self.service_tier, self.meter_name)

    @classmethod
    def from_record(cls, record: CostResourceRecord) -> 'Meter':
        return cls(
            arm_location=record.resource_location,
            service_name=record.service_name,
            service_tier=record.service_tier,
            meter_name=record.meter,
            cost=record.cost,
        )


@dataclass
class ResourceCosts:
    """Cost records plus current and forecast totals for a single resource."""
    resource_id: str
    records: List[CostResourceRecord]
    forecast_cost: float = 0.0

    @property
    def name(self) -> str:
        return get_resource_name(self.resource_id)

    @property
    def resource_type(self) -> str:
        return self.records[0].resource_type if self.records else ''

    @property
    def current_cost(self) -> float:
        return sum(record.cost for record in self.records)

    @property
    def currency(self) -> str:
        return next((record.currency for record in self.records if record.currency), '')

    @property
    def meters(self) -> List[Meter]:
        return [Meter.from_record(record) for record in self.records]


@dataclass(frozen=True)
class ReportRow:
    resource_name: str
    resource_type: str
    location: str
    service_name: str
    service_tier: str
    meter_name: str
    retail_price: float
    unit_of_measure: str
    unit_price: float
    current_cost: float
    forecast_cost: float


@dataclass(frozen=True)
class ResourceSection:
    """Report lines of one resource. Forecasts are per resource, so they live here."""
    resource_name: str
    resource_type: str
    current_cost: float
    forecast_cost: float
    rows: List[ReportRow]

    @property
    def total_with_forecast(self) -> float:
        return self.current_cost + self.forecast_cost


@dataclass(frozen=True)
class CostReport:
    sections: List[ResourceSection]
    currency: str
    total_current_cost: float
    total_forecast_cost: float

    @property
    def total_with_forecast(self) -> float:
        return self.total_current_cost + self.total_forecast_cost

    @property
    def rows(self) -> List[ReportRow]:
        return [row for section in self.sections for row in section.rows]
