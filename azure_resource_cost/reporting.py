import logging
import os
from typing import Iterable, List, Optional

import pandas as pd
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from .models import CostReport, PriceRecord, ReportRow, ResourceCosts, ResourceSection
from .pricing import find_price_item, is_priceable
from .utils import format_amount

_console = Console()

REPORT_COLUMNS = [
    'Name', 'Type', 'Location', 'Service', 'Tier', 'Meter',
    'Retail Price', 'Unit', 'Unit Price', 'Current Cost', 'Forecast Cost',
]


def build_report(
    resource_costs: Iterable[ResourceCosts],
    prices: List[PriceRecord],
    logger: Optional[logging.Logger] = None,
) -> CostReport:
    """Joins cost, forecast and retail price data into report sections with grand totals."""
    if not logger: logger = logging.getLogger(__name__)
    sections: List[ResourceSection] = []
    total_current = 0.0
    total_forecast = 0.0
    currency = ''

    for resource in resource_costs:
        rows: List[ReportRow] = []
        for index, (meter, record) in enumerate(zip(resource.meters, resource.records)):
            price = find_price_item(prices, meter) if is_priceable(meter) else None
            if price is None and is_priceable(meter):
                logger.debug(f"No retail price matched meter '{meter.meter_name}' ({meter.service_name}, {meter.arm_location})")
            rows.append(ReportRow(
                resource_name=resource.name,
                resource_type=resource.resource_type,
                location=record.resource_location,
                service_name=meter.service_name or '',
                service_tier=meter.service_tier or '',
                meter_name=meter.meter_name or '',
                retail_price=price.retail_price if price else 0.0,
                unit_of_measure=price.unit_of_measure if price else '',
                unit_price=price.unit_price if price else 0.0,
                current_cost=record.cost,
                # The resource forecast sits on its first row so rows add up to the totals
                forecast_cost=resource.forecast_cost if index == 0 else 0.0,
            ))

        sections.append(ResourceSection(
            resource_name=resource.name,
            resource_type=resource.resource_type,
            current_cost=resource.current_cost,
            forecast_cost=resource.forecast_cost,
            rows=rows,
        ))
        total_current += resource.current_cost
        total_forecast += resource.forecast_cost
        currency = currency or resource.currency

    logger.info(f"Report built for {len(sections)} resource(s). Current: {total_current:.2f}, with forecast: {total_current + total_forecast:.2f} {currency}")
    return CostReport(
        sections=sections,
        currency=currency,
        total_current_cost=total_current,
        total_forecast_cost=total_forecast,
    )


def _meter_tree(row: ReportRow) -> Tree:
    tree = Tree(escape(row.meter_name))
    if row.unit_of_measure:
        tree.add(f"[dim]Unit[/]: [italic dim]{escape(row.unit_of_measure)}[/]")
        tree.add(f"[dim]Price[/]: [italic dim]{format_amount(row.unit_price)}[/]")
    return tree


def render_report(report: CostReport, subscription_id: str, scope_label: str, console: Console = _console):
    """Prints the report as a table: a line per resource, its meters below, then the total."""
    table = Table(expand=True)
    for column in ["Name", "Type", "Location", "Service", "Tier", "Meter", "Retail"]:
        table.add_column(column)
    table.add_column("Current", justify="right")
    table.add_column("Forecast", justify="right")

    for section in report.sections:
        meter_rows = [row for row in section.rows if row.meter_name]
        location = ", ".join(row.location for row in section.rows if row.location) if not meter_rows else "---"
        table.add_row(
            f"[bold]{escape(section.resource_name)}[/]",
            f"[bold]{escape(section.resource_type)}[/]",
            escape(location),
            "---", "---", "---", "---",
            f"[bold blue]{format_amount(section.current_cost)}[/]",
            f"[bold blue]{format_amount(section.total_with_forecast)}[/]",
        )
        for row in meter_rows:
            table.add_row(
                "",
                "",
                escape(row.location),
                escape(row.service_name),
                escape(row.service_tier),
                _meter_tree(row),
                f"[italic dim]{format_amount(row.retail_price)}[/]",
                f"[italic dim]{format_amount(row.current_cost)}[/]",
                "",
            )

    table.add_section()
    table.add_row(
        "Total", "", "", "", "", "", "",
        f"[bold blue]{format_amount(report.total_current_cost)}[/]",
        f"[bold blue]{format_amount(report.total_with_forecast)}[/]",
    )

    console.print()
    console.print("Current Billing Period Cost and Forecast by Resource")
    console.print(f"Subscription: {subscription_id}")
    console.print(f"Scope: {escape(scope_label)}")
    if report.currency:
        console.print(f"Currency: {report.currency}")
    console.print(table)


def report_to_dataframe(report: CostReport) -> pd.DataFrame:
    """Flat table of every report row."""
    records = [
        {
            'Name': row.resource_name,
            'Type': row.resource_type,
            'Location': row.location,
            'Service': row.service_name,
            'Tier': row.service_tier,
            'Meter': row.meter_name,
            'Retail Price': row.retail_price,
            'Unit': row.unit_of_measure,
            'Unit Price': row.unit_price,
            'Current Cost': row.current_cost,
            'Forecast Cost': row.forecast_cost,
        }
        for row in report.rows
    ]
    return pd.DataFrame(records, columns=REPORT_COLUMNS)


def export_report_csv(report: CostReport, filename: str, console: Console = _console):
    """Writes the report rows to a CSV file."""
    logger = logging.getLogger(__name__)
    df = report_to_dataframe(report)
    directory = os.path.dirname(filename)
    if directory:
        os.makedirs(directory, exist_ok=True)
    df.to_csv(filename, index=False, float_format='%.2f')
    logger.info(f"Exported {len(df)} report row(s) to {filename}")
    console.print(f":page_facing_up: Report exported to [cyan]{filename}[/]")
