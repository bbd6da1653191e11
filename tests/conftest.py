import io
import time

import pytest
import requests
from unittest.mock import MagicMock
from azure.core.credentials import AccessToken
from rich.console import Console


def make_response(status_code=200, json_body=None):
    """Builds a requests.Response stand-in for a mocked session."""
    response = MagicMock(spec=requests.Response)
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.json.return_value = json_body if json_body is not None else {}
    response.content = b'{}'
    response.text = str(json_body)
    if response.ok:
        response.raise_for_status.return_value = None
    else:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status_code} Error")
    return response


@pytest.fixture
def quiet_console():
    """Real console writing to a buffer, so progress bars can run in tests."""
    return Console(file=io.StringIO(), force_terminal=False)


@pytest.fixture
def mock_credential():
    credential = MagicMock()
    credential.get_token.return_value = AccessToken("test-token", int(time.time()) + 3600)
    return credential


def detailed_row(cost, resource_id="/sub/rg/vm1", location="westeurope", service="Virtual Machines",
                 tier="Dv3 Series", meter="D2 v3", tags=None, currency="EUR"):
    return [cost, cost * 1.1, resource_id, "microsoft.compute/virtualmachines", location, "Usage",
            "rg", "Azure", service, tier, meter, tags if tags is not None else [], currency]


def aggregated_row(cost, resource_id="/sub/rg/vm1", location="westeurope", tags=None, currency="EUR"):
    return [cost, cost * 1.1, resource_id, "microsoft.compute/virtualmachines", location, "Usage",
            "rg", "Azure", tags if tags is not None else [], currency]


def query_response(rows):
    return {"properties": {"columns": [], "rows": rows}}
