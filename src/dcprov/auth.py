from logging import getLogger

from dcprov.exceptions import CredentialNotFound
from dcprov.keychain import SecretStore

X_SDS_SERVICE_TOKEN_HEADER = "X-Sds-Service-Token"

logger = getLogger(__name__)


class CredentialResolver:
    """Decides which service token to use for a DRACOON domain.

    Domains are matched exactly, so callers pass the normalized URL
    (see ``dcprov.utils.normalize_url``). The resolver never prompts.
    """

    def __init__(self, store: SecretStore):
        self.store_backend = store

    def resolve(self, domain: str, explicit_token: str = None) -> str:
        if explicit_token:
            logger.debug(f"Using token passed on the command line for {domain}")
            return explicit_token
        return self.get(domain)

    def get(self, domain: str) -> str:
        token = self.store_backend.get(domain)
        if not token:
            raise CredentialNotFound(domain)
        return token

    def store(self, domain: str, token: str) -> None:
        self.store_backend.set(domain, token)

    def remove(self, domain: str) -> None:
        self.store_backend.delete(domain)
