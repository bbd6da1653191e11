import json
import logging
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

import requests

from .aggregation import aggregate_by_resource
from .clients import BearerTokenProvider
from .config import (
    MANAGEMENT_ENDPOINT,
    COST_MANAGEMENT_API_VERSION,
    COST_QUERY_TOP,
    HTTP_TIMEOUT_SECONDS,
)
from .decoding import decode_cost_rows, decode_forecast_rows
from .models import CostResourceRecord
from .queries import MetricType, TimeframeType, build_cost_query, build_forecast_query


def empty_cost_record(resource_id: str, exclude_meter_details: bool) -> CostResourceRecord:
    """Placeholder for a resource the cost API returned no rows for."""
    meter_field = None if exclude_meter_details else ''
    return CostResourceRecord(
        cost=0.0,
        cost_usd=0.0,
        resource_id=resource_id,
        resource_type='',
        resource_location='',
        charge_type='',
        resource_group_name='',
        publisher_type='',
        service_name=meter_field,
        service_tier=meter_field,
        meter=meter_field,
        tags={},
        currency='',
    )


class CostRetriever:
    """Runs cost and forecast queries against the Cost Management REST API."""

    def __init__(
        self,
        session: requests.Session,
        token_provider: BearerTokenProvider,
        base_url: str = MANAGEMENT_ENDPOINT,
        timeout: float = HTTP_TIMEOUT_SECONDS,
        logger: Optional[logging.Logger] = None,
    ):
        self.session = session
        self.token_provider = token_provider
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)

    def _url(self, subscription_id: str, operation: str) -> str:
        return (f"{self.base_url}/subscriptions/{subscription_id}/providers/Microsoft.CostManagement/"
                f"{operation}?api-version={COST_MANAGEMENT_API_VERSION}&$top={COST_QUERY_TOP}")

    def execute(self, url: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """POSTs a query payload and returns the decoded JSON body. Non-2xx responses raise."""
        headers = self.token_provider.auth_headers()
        self.logger.debug(f"Retrieving data from {url} using the following payload:\n{json.dumps(payload, indent=2)}")

        response = self.session.post(url, json=payload, headers=headers, timeout=self.timeout)

        self.logger.debug(f"Response status code is {response.status_code} and got payload size of {len(response.content or b'')}")
        if not response.ok:
            self.logger.debug(f"Response content: {response.text}")
        response.raise_for_status()
        return response.json()

    def retrieve_cost_for_resources(
        self,
        subscription_id: str,
        filter_args: Optional[Sequence[str]],
        metric: MetricType,
        exclude_meter_details: bool,
        timeframe: TimeframeType,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> List[CostResourceRecord]:
        """Cost records matching the filters, aggregated per resource when meter details are excluded."""
        payload = build_cost_query(
            metric,
            timeframe,
            from_date=from_date,
            to_date=to_date,
            exclude_meter_details=exclude_meter_details,
            filter_args=filter_args,
            logger=self.logger,
        )
        content = self.execute(self._url(subscription_id, "query"), payload)
        records = decode_cost_rows(content, exclude_meter_details, logger=self.logger)

        if exclude_meter_details:
            return aggregate_by_resource(records, logger=self.logger)
        return records

    def retrieve_cost_for_resource(
        self,
        subscription_id: str,
        resource_id: str,
        metric: MetricType,
        exclude_meter_details: bool,
        timeframe: TimeframeType,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> List[CostResourceRecord]:
        """Cost records of a single resource; never empty."""
        records = self.retrieve_cost_for_resources(
            subscription_id,
            [f"ResourceId={resource_id}"],
            metric,
            exclude_meter_details,
            timeframe,
            from_date=from_date,
            to_date=to_date,
        )
        if not records:
            self.logger.debug(f"No cost rows for {resource_id}, reporting zero cost.")
            return [empty_cost_record(resource_id, exclude_meter_details)]
        return records

    def retrieve_forecast_for_resource(
        self,
        subscription_id: str,
        resource_id: str,
        metric: MetricType,
        timeframe: TimeframeType,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> float:
        """
        Forecasted cost of a single resource.

        Forecasts are not available for every subscription type, so any
        failure here is logged and reported as a 0.0 forecast.
        """
        try:
            payload = build_forecast_query(
                metric,
                timeframe,
                from_date=from_date,
                to_date=to_date,
                filter_args=[f"ResourceId={resource_id}"],
                logger=self.logger,
            )
            content = self.execute(self._url(subscription_id, "forecast"), payload)
            forecasts = decode_forecast_rows(content)
        except Exception as e:
            self.logger.warning(f"Forecast unavailable for {resource_id}, using 0.0: {e}")
            self.logger.debug("Forecast failure details", exc_info=True)
            return 0.0

        return sum(forecast.cost for forecast in forecasts)
