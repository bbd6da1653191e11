import argparse
import logging
import sys
from datetime import date, datetime, timezone

import requests
from azure.core.exceptions import AzureError
from rich.console import Console

from azure_resource_cost import (
    analysis,
    clients,
    config,
    reporting,
    utils,
)
from azure_resource_cost.costs import CostRetriever
from azure_resource_cost.filters import FilterFormatError
from azure_resource_cost.decoding import ResponseFormatError
from azure_resource_cost.pricing import PriceRetriever
from azure_resource_cost.queries import MetricType, TimeframeType, TimePeriodError, validate_time_period

console = Console()


def _parse_date(value: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date '{value}', expected YYYY-MM-DD")


def _default_from_date() -> date:
    """First day of the previous month."""
    today = datetime.now(timezone.utc).date()
    first_of_month = today.replace(day=1)
    if first_of_month.month == 1:
        return first_of_month.replace(year=first_of_month.year - 1, month=12)
    return first_of_month.replace(month=first_of_month.month - 1)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Show current cost, forecast and retail prices by resource.")
    parser.add_argument("-s", "--subscription", help="The subscription id to use. Falls back to AZURE_SUBSCRIPTION_ID or the accessible subscription.")
    parser.add_argument("-r", "--resource-group", help="Resource group whose resources are reported.")
    parser.add_argument("-i", "--resource-id", help="Report a single resource instead of a resource group.")
    parser.add_argument("-m", "--metric", choices=[m.value for m in MetricType], default=MetricType.ACTUAL_COST.value,
                        help="The metric to use for the costs. Defaults to ActualCost.")
    parser.add_argument("-t", "--timeframe", choices=[t.value for t in TimeframeType], default=TimeframeType.BILLING_MONTH_TO_DATE.value,
                        help="The timeframe to use for the costs. Defaults to BillingMonthToDate. With Custom, set --from and --to.")
    parser.add_argument("--from", dest="from_date", type=_parse_date, default=None,
                        help="Start date (YYYY-MM-DD) for the Custom timeframe. Defaults to the first day of the previous month.")
    parser.add_argument("--to", dest="to_date", type=_parse_date, default=None,
                        help="End date (YYYY-MM-DD) for the Custom timeframe. Defaults to today.")
    parser.add_argument("--exclude-meter-details", action="store_true", help="Report one line per resource instead of one per meter.")
    parser.add_argument("--csv-report", default=None, help="Also write the report rows to this CSV file.")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging (request payloads, ignored forecast errors).")
    return parser


def build_options(args) -> analysis.ReportOptions:
    timeframe = TimeframeType(args.timeframe)
    from_date, to_date = args.from_date, args.to_date
    if timeframe is TimeframeType.CUSTOM:
        from_date = from_date or _default_from_date()
        to_date = to_date or datetime.now(timezone.utc).date()
    return analysis.ReportOptions(
        metric=MetricType(args.metric),
        timeframe=timeframe,
        from_date=from_date,
        to_date=to_date,
        exclude_meter_details=args.exclude_meter_details,
    )


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.resource_group and not args.resource_id:
        parser.error("Resource group option must be supplied (or a single --resource-id).")

    # --- Setup Logging ---
    log_level = logging.DEBUG if args.debug else logging.WARNING
    logger = utils.setup_logger(level=log_level, filename=config.LOG_FILENAME)
    logger.info("--- Script Execution Started ---")
    logger.info(f"Arguments: {args}")

    # --- Validate options before any network call ---
    try:
        options = build_options(args)
        validate_time_period(options.timeframe, options.from_date, options.to_date)
    except TimePeriodError as e:
        console.print(f"[bold red]Invalid time period:[/] {e}")
        return 2

    # --- Authentication ---
    credential, subscription_id = clients.get_azure_credentials(console=console, subscription_id=args.subscription)
    if not credential or not subscription_id:
        console.print("[bold red]Failed to authenticate or determine subscription. Exiting.[/]")
        return 1

    session = clients.create_session()
    cost_retriever = CostRetriever(session, clients.BearerTokenProvider(credential))
    price_retriever = PriceRetriever(session)

    try:
        if args.resource_id:
            resource_ids = [args.resource_id]
            scope_label = args.resource_id
        else:
            resource_ids = analysis.list_resource_ids(credential, subscription_id, args.resource_group, console=console)
            scope_label = f"resource group {args.resource_group}"

        report = analysis.run_cost_report(
            cost_retriever,
            price_retriever,
            subscription_id,
            resource_ids,
            options,
            console=console,
        )
    except (requests.RequestException, AzureError, FilterFormatError, ResponseFormatError) as e:
        logger.error(f"Cost report failed: {e}", exc_info=args.debug)
        console.print(f"[bold red]Cost report failed:[/] {e}")
        return 1

    reporting.render_report(report, subscription_id, scope_label, console=console)
    if args.csv_report:
        reporting.export_report_csv(report, args.csv_report, console=console)

    logger.info("--- Script Execution Finished ---")
    return 0


if __name__ == "__main__":
    sys.exit(main())
