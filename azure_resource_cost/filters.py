import logging
from typing import Any, Dict, List, Optional, Sequence

from .config import DIMENSION_NAMES


class FilterFormatError(ValueError):
    """Raised when a filter argument is not of the form Name=Value1;Value2."""

    def __init__(self, argument: str):
        super().__init__(f"Invalid filter '{argument}'. Expected the format Name=Value1;Value2")
        self.argument = argument


def parse_filter_argument(argument: str) -> Dict[str, Any]:
    """Turns 'Name=Value1;Value2' into a Dimensions or Tags filter node."""
    name, separator, raw_values = argument.partition('=')
    if not separator or not name:
        raise FilterFormatError(argument)

    node = {
        "Name": name,
        "Operator": "In",
        "Values": raw_values.split(';'),
    }
    if name in DIMENSION_NAMES:
        return {"Dimensions": node}
    return {"Tags": node}


def generate_filters(filter_args: Optional[Sequence[str]], logger: Optional[logging.Logger] = None) -> Optional[Dict[str, Any]]:
    """
    Builds the filter expression of a cost or forecast query.

    Returns None for no filters, the single node for one filter, and an
    'And' node over all filters (in input order) otherwise.
    """
    if not logger: logger = logging.getLogger(__name__)
    if not filter_args:
        return None

    filters: List[Dict[str, Any]] = [parse_filter_argument(arg) for arg in filter_args]
    logger.debug(f"Generated {len(filters)} filter node(s) from {list(filter_args)}")

    if len(filters) > 1:
        return {"And": filters}
    return filters[0]
