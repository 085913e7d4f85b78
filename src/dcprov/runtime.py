import functools
import os
from logging import getLogger

import rich_click as click
from rich.console import Console
from rich.prompt import Prompt

from dcprov.api import DEFAULT_TIMEOUT, ProvisioningApiClient
from dcprov.auth import CredentialResolver
from dcprov.exceptions import CredentialNotFound
from dcprov.keychain import SecretStore, get_secret_store
from dcprov.paginator import DEFAULT_PAGE_SIZE
from dcprov.utils import normalize_url

DCPROV_SERVICE_NAME = os.environ.get("DCPROV_SERVICE_NAME", "dcprov")
DCPROV_PAGE_SIZE = int(os.environ.get("DCPROV_PAGE_SIZE", DEFAULT_PAGE_SIZE))
DCPROV_TIMEOUT = float(os.environ.get("DCPROV_TIMEOUT", DEFAULT_TIMEOUT))
DCPROV_SHOW_STACKTRACES = os.environ.get("DCPROV_SHOW_STACKTRACES", "").lower() in (
    "1",
    "true",
    "yes",
)

logger = getLogger(__name__)


class CliRuntime:
    """State shared by every command of one dcprov invocation."""

    def __init__(
        self,
        secret_store: SecretStore = None,
        token: str = None,
        service_name: str = DCPROV_SERVICE_NAME,
        page_size: int = DCPROV_PAGE_SIZE,
        timeout: float = DCPROV_TIMEOUT,
        show_stacktraces: bool = DCPROV_SHOW_STACKTRACES,
    ):
        self._keychain = secret_store
        self.token = token
        self.service_name = service_name
        self.page_size = page_size
        self.timeout = timeout
        self.show_stacktraces = show_stacktraces
        self.console = Console()
        self.error_console = Console(stderr=True)

    @property
    def keychain(self) -> SecretStore:
        if self._keychain is None:
            self._load_keychain()
        return self._keychain

    def _load_keychain(self):
        if self._keychain is None:
            self._keychain = get_secret_store(self.service_name)

    @property
    def credentials(self) -> CredentialResolver:
        return CredentialResolver(self.keychain)

    def prompt_token(self, url: str) -> str:
        while True:
            try:
                token = Prompt.ask(
                    f"Please enter X-SDS-Service-Token for {url}",
                    password=True,
                    console=self.error_console,
                )
            except (EOFError, KeyboardInterrupt):
                raise click.Abort()
            if token.strip():
                return token.strip()

    def get_api_client(self, url: str) -> ProvisioningApiClient:
        """Return a client for ``url``, asking for and storing a token on first use."""
        url = normalize_url(url)
        resolver = self.credentials
        try:
            token = resolver.resolve(url, self.token)
        except CredentialNotFound:
            token = self.prompt_token(url)
            resolver.store(url, token)
            self.error_console.print(f"Stored credentials for {url}")
        return ProvisioningApiClient(url, token, timeout=self.timeout)


def pass_runtime(func=None, require_keychain=False):
    """Decorator which passes the dcprov CLI runtime object as the first arg to a click command."""

    def decorate(func):
        @click.pass_context
        def new_func(ctx, *args, **kw):
            runtime = ctx.ensure_object(CliRuntime)
            if require_keychain and not runtime.token:
                runtime._load_keychain()
            return func(runtime, *args, **kw)

        return functools.update_wrapper(new_func, func)

    if func is None:
        return decorate
    return decorate(func)
