"""OS-native storage for provisioning tokens.

Tokens are kept in the platform's credential vault through ``keyring``: the
macOS Keychain, the Windows Credential Locker, or a Secret Service provider
(GNOME Keyring, KWallet) everywhere else. One entry exists per normalized
DRACOON URL, under a single service name.
"""
import abc
import platform
from logging import getLogger
from typing import Optional

from keyring.backend import KeyringBackend
from keyring.errors import KeyringError, PasswordDeleteError

from dcprov.exceptions import StorageUnavailable

logger = getLogger(__name__)

INSTALL_HINTS = {
    "Darwin": "Make sure the login keychain is unlocked.",
    "Windows": "Make sure the Windows Credential Manager service is running.",
    "Linux": (
        "Install and start a Secret Service provider "
        "(for example gnome-keyring or kwallet) and unlock it."
    ),
}


class SecretStore(abc.ABC):
    """Minimal get/set/delete capability over a credential vault."""

    @abc.abstractmethod
    def get(self, domain: str) -> Optional[str]:
        """Return the stored token or None when no entry exists."""

    @abc.abstractmethod
    def set(self, domain: str, token: str) -> None:
        pass

    @abc.abstractmethod
    def delete(self, domain: str) -> None:
        """Delete the entry; deleting an absent entry is not an error."""


class KeyringSecretStore(SecretStore):
    def __init__(self, service_name: str, backend: KeyringBackend, system: str = None):
        self.service_name = service_name
        self.backend = backend
        self.system = system or platform.system()

    def _unavailable(self, error: Exception) -> StorageUnavailable:
        hint = INSTALL_HINTS.get(self.system, INSTALL_HINTS["Linux"])
        return StorageUnavailable(
            f"Secure credential storage is not available "
            f"({type(self.backend).__name__}: {error}). {hint}"
        )

    def get(self, domain):
        try:
            return self.backend.get_password(self.service_name, domain)
        except KeyringError as e:
            raise self._unavailable(e) from e

    def set(self, domain, token):
        try:
            self.backend.set_password(self.service_name, domain, token)
        except KeyringError as e:
            raise self._unavailable(e) from e
        logger.debug(f"Stored token for {domain}")

    def delete(self, domain):
        try:
            self.backend.delete_password(self.service_name, domain)
        except PasswordDeleteError:
            logger.debug(f"No stored token for {domain}, nothing to delete")
        except KeyringError as e:
            raise self._unavailable(e) from e


def get_platform_backend(system: str) -> KeyringBackend:
    if system == "Darwin":
        from keyring.backends.macOS import Keyring
    elif system == "Windows":
        from keyring.backends.Windows import WinVaultKeyring as Keyring
    else:
        from keyring.backends.SecretService import Keyring
    return Keyring()


def get_secret_store(service_name: str, system: str = None) -> SecretStore:
    """Return a store backed by the native vault of the current platform."""
    system = system or platform.system()
    try:
        backend = get_platform_backend(system)
    except (ImportError, KeyringError, RuntimeError) as e:
        hint = INSTALL_HINTS.get(system, INSTALL_HINTS["Linux"])
        raise StorageUnavailable(
            f"No secure credential storage backend for {system}: {e}. {hint}"
        ) from e
    logger.debug(f"Using {type(backend).__name__} for credential storage")
    return KeyringSecretStore(service_name, backend, system=system)
