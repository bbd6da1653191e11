import logging
from collections import OrderedDict
from typing import Dict, List, Optional

from .models import CostResourceRecord


def aggregate_resource_records(records: List[CostResourceRecord]) -> CostResourceRecord:
    """
    Collapses the rows of one resource into a single record.

    A resource can report cost under several locations (e.g. 'West Europe',
    'Intercontinental', 'Unassigned'); costs are summed and every location is
    kept, in row order, in the combined location string.
    """
    first = records[0]
    return CostResourceRecord(
        cost=sum(record.cost for record in records),
        cost_usd=sum(record.cost_usd for record in records),
        resource_id=first.resource_id,
        resource_type=first.resource_type,
        resource_location=", ".join(record.resource_location for record in records),
        charge_type=first.charge_type,
        resource_group_name=first.resource_group_name,
        publisher_type=first.publisher_type,
        service_name=None,
        service_tier=None,
        meter=None,
        tags=first.tags,
        currency=first.currency,
    )


def aggregate_by_resource(records: List[CostResourceRecord], logger: Optional[logging.Logger] = None) -> List[CostResourceRecord]:
    """Returns one record per distinct resource id, in first-seen order."""
    if not logger: logger = logging.getLogger(__name__)
    grouped: Dict[str, List[CostResourceRecord]] = OrderedDict()
    for record in records:
        grouped.setdefault(record.resource_id, []).append(record)

    aggregated = [aggregate_resource_records(group) for group in grouped.values()]
    if len(aggregated) != len(records):
        logger.debug(f"Aggregated {len(records)} cost row(s) into {len(aggregated)} resource record(s)")
    return aggregated
