import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Sequence

from azure.mgmt.resource import ResourceManagementClient
from rich.console import Console
from rich.progress import track

from .costs import CostRetriever
from .models import CostReport, Meter, PriceRecord, ResourceCosts
from .pricing import PriceRetriever, distinct_meters, is_priceable
from .queries import MetricType, TimeframeType, validate_time_period
from .reporting import build_report

_console = Console()


@dataclass(frozen=True)
class ReportOptions:
    metric: MetricType = MetricType.ACTUAL_COST
    timeframe: TimeframeType = TimeframeType.BILLING_MONTH_TO_DATE
    from_date: Optional[date] = None
    to_date: Optional[date] = None
    exclude_meter_details: bool = False


# --- Resource Listing ---

def list_resource_ids(credential, subscription_id: str, resource_group: str, console: Console = _console) -> List[str]:
    """Lists the ids of all resources in a resource group."""
    logger = logging.getLogger(__name__)
    resource_client = ResourceManagementClient(credential, subscription_id)
    with console.status(f"[cyan]Listing resources in {resource_group}...[/]"):
        resource_ids = [resource.id for resource in resource_client.resources.list_by_resource_group(resource_group)]
    logger.info(f"Found {len(resource_ids)} resource(s) in resource group {resource_group}")
    console.print(f":white_check_mark: Total resources found: {len(resource_ids)}")
    return resource_ids


# --- Cost, Forecast and Price Sweeps ---

def get_resource_costs(
    cost_retriever: CostRetriever,
    subscription_id: str,
    resource_ids: Sequence[str],
    options: ReportOptions,
    console: Console = _console,
) -> Dict[str, ResourceCosts]:
    """Fetches the cost records of every resource, one resource at a time. Repeated ids are fetched once."""
    logger = logging.getLogger(__name__)
    unique_ids = list(dict.fromkeys(resource_ids))
    if len(unique_ids) < len(resource_ids):
        logger.warning(f"Ignoring {len(resource_ids) - len(unique_ids)} duplicate resource id(s)")
    resource_costs: Dict[str, ResourceCosts] = {}
    for resource_id in track(unique_ids, description="[green]Getting current cost data[/]", console=console, transient=True):
        logger.debug(f"Getting cost data for {resource_id}")
        records = cost_retriever.retrieve_cost_for_resource(
            subscription_id,
            resource_id,
            options.metric,
            options.exclude_meter_details,
            options.timeframe,
            from_date=options.from_date,
            to_date=options.to_date,
        )
        resource_costs[resource_id] = ResourceCosts(resource_id=resource_id, records=records)
        logger.debug(f"Cost for {resource_id}: {resource_costs[resource_id].current_cost:.2f} across {len(records)} record(s)")
    return resource_costs


def apply_forecasts(
    cost_retriever: CostRetriever,
    subscription_id: str,
    resource_costs: Dict[str, ResourceCosts],
    options: ReportOptions,
    console: Console = _console,
) -> None:
    """Sets the forecast of every resource; failed forecasts count as 0.0."""
    for resource_id in track(list(resource_costs), description="[green]Getting forecasted cost data[/]", console=console, transient=True):
        resource_costs[resource_id].forecast_cost = cost_retriever.retrieve_forecast_for_resource(
            subscription_id,
            resource_id,
            options.metric,
            options.timeframe,
            from_date=options.from_date,
            to_date=options.to_date,
        )


def get_retail_prices(price_retriever: PriceRetriever, meters: Sequence[Meter], console: Console = _console) -> List[PriceRecord]:
    """Looks up retail prices once per distinct meter and returns all price items, in lookup order."""
    logger = logging.getLogger(__name__)
    unique_meters = [meter for meter in distinct_meters(meters) if is_priceable(meter)]
    logger.debug(f"Looking up retail prices for {len(unique_meters)} distinct meter(s)")

    prices: List[PriceRecord] = []
    for meter in track(unique_meters, description="[green]Getting retail prices[/]", console=console, transient=True):
        prices.extend(price_retriever.get_price_items(meter.arm_location, meter.service_name, meter.meter_name))
    return prices


def run_cost_report(
    cost_retriever: CostRetriever,
    price_retriever: PriceRetriever,
    subscription_id: str,
    resource_ids: Sequence[str],
    options: ReportOptions,
    console: Console = _console,
) -> CostReport:
    """
    Builds the cost report for a set of resources.

    Runs the cost sweep, then the forecast sweep, then the price sweep, and
    assembles the report once all three are done. Cost and price API
    failures abort the run; forecast failures do not.
    """
    validate_time_period(options.timeframe, options.from_date, options.to_date)

    resource_costs = get_resource_costs(cost_retriever, subscription_id, resource_ids, options, console=console)
    apply_forecasts(cost_retriever, subscription_id, resource_costs, options, console=console)

    all_meters = [meter for resource in resource_costs.values() for meter in resource.meters]
    prices = get_retail_prices(price_retriever, all_meters, console=console)

    return build_report(resource_costs.values(), prices)
