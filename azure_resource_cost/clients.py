import os
import logging
from datetime import datetime, timezone
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry
from azure.identity import AzureCliCredential, ChainedTokenCredential, DefaultAzureCredential
from azure.mgmt.resource import SubscriptionClient
from rich.console import Console

from .config import (
    MANAGEMENT_TOKEN_SCOPE,
    HTTP_RETRY_TOTAL,
    HTTP_RETRY_BACKOFF_FACTOR,
    HTTP_RETRY_STATUS_CODES,
)

_console = Console()

def build_credential():
    """Azure CLI login first, then the usual DefaultAzureCredential chain."""
    return ChainedTokenCredential(AzureCliCredential(), DefaultAzureCredential())

def get_azure_credentials(console: Console = _console, subscription_id: Optional[str] = None):
    """Authenticates and determines the Azure Subscription ID."""
    logger = logging.getLogger()
    try:
        subscription_id = subscription_id or os.environ.get("AZURE_SUBSCRIPTION_ID")
        with console.status("[cyan]Authenticating with Azure...[/]"):
            credential = build_credential()

        if not subscription_id:
            console.print("[yellow]No subscription given and AZURE_SUBSCRIPTION_ID not set. Attempting to detect subscription...[/]")
            subscription_client = SubscriptionClient(credential)
            with console.status("[cyan]Listing accessible subscriptions...[/]"):
                subs = list(subscription_client.subscriptions.list())

            if not subs:
                logger.error("No Azure subscriptions found for the current credential.")
                raise ValueError("No Azure subscriptions found for the current credential.")
            elif len(subs) == 1:
                subscription_id = subs[0].subscription_id
                console.print(f"Automatically detected and using subscription: [bold cyan]{subs[0].display_name}[/] ({subscription_id})")
            else:
                console.print("[bold yellow]Multiple Azure subscriptions found. Please select one:[/]")
                for i, sub in enumerate(subs):
                    console.print(f"  [bold]{i+1}[/]. [cyan]{sub.display_name}[/] ({sub.subscription_id})")

                while True:
                    try:
                        choice = console.input("Enter the number of the subscription to use: ")
                        selected_index = int(choice) - 1
                        if 0 <= selected_index < len(subs):
                            subscription_id = subs[selected_index].subscription_id
                            break
                        console.print("[red]Invalid selection. Please enter a number from the list.[/]")
                    except ValueError:
                        console.print("[red]Invalid input. Please enter a number.[/]")
                    except EOFError:
                        console.print("\n[red]Selection cancelled.[/]")
                        logger.warning("Subscription selection cancelled by user.")
                        raise ValueError("Subscription selection cancelled.")

        console.print(f"Using Subscription ID: [bold cyan]{subscription_id}[/]")
        logger.info(f"Using subscription ID: {subscription_id}")
        return credential, subscription_id

    except Exception as e:
        logger.error(f"Authentication or subscription detection failed: {e}", exc_info=True)
        console.print(f"[bold red]Authentication or subscription detection failed:[/] {e}")
        return None, None


class BearerTokenProvider:
    """
    Fetches a management token on first use and reuses it afterwards.

    The token is not refreshed. A report run is expected to finish well
    within the token lifetime; if it does not, the expired token is still
    sent and a warning is logged once.
    """

    def __init__(self, credential, scope: str = MANAGEMENT_TOKEN_SCOPE, logger: Optional[logging.Logger] = None):
        self._credential = credential
        self._scope = scope
        self._token = None
        self._expiry_warned = False
        self.logger = logger or logging.getLogger(__name__)

    @property
    def token_retrieved(self) -> bool:
        return self._token is not None

    def get_token(self) -> str:
        if self._token is None:
            self.logger.debug(f"Using token credential {type(self._credential).__name__} to fetch a token.")
            self._token = self._credential.get_token(self._scope)
            expires = datetime.fromtimestamp(self._token.expires_on, tz=timezone.utc)
            self.logger.debug(f"Token retrieved and expires at: {expires.isoformat()}")
        elif not self._expiry_warned and self._token.expires_on <= datetime.now(timezone.utc).timestamp():
            self.logger.warning("Cached Azure access token has expired; requests may start failing with 401.")
            self._expiry_warned = True
        return self._token.token

    def auth_headers(self):
        return {"Authorization": f"Bearer {self.get_token()}"}


def create_session(
    total_retries: int = HTTP_RETRY_TOTAL,
    backoff_factor: float = HTTP_RETRY_BACKOFF_FACTOR,
    status_forcelist=HTTP_RETRY_STATUS_CODES,
) -> requests.Session:
    """requests session that retries throttled calls, waiting for Retry-After when the API sends it."""
    retry = Retry(
        total=total_retries,
        backoff_factor=backoff_factor,
        status_forcelist=status_forcelist,
        allowed_methods=frozenset(["GET", "POST"]),
        respect_retry_after_header=True,
        raise_on_status=False,
    )
    session = requests.Session()
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers.update({"Accept": "application/json"})
    return session
