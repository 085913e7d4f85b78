import requests
from logging import getLogger
from typing import Dict, List

from pydantic import ValidationError

from dcprov.__about__ import __version__
from dcprov.auth import X_SDS_SERVICE_TOKEN_HEADER
from dcprov.exceptions import (
    BadRequestError,
    ConflictError,
    MalformedServerResponse,
    NotAcceptableError,
    NotFoundError,
    PaymentRequiredError,
    ServerError,
    TransportError,
    UnauthorizedError,
)
from dcprov.models import CustomerAttributes, NewCustomerRequest, UpdateCustomerRequest
from dcprov.paginator import Page
from dcprov.query import QuerySpec

PROVISIONING_API_PATH = "api/v4/provisioning"
CUSTOMERS = "customers"
ATTRIBUTES = "customerAttributes"
USERS = "users"
DEFAULT_TIMEOUT = 30
USER_AGENT = f"dcprov/{__version__}"

STATUS_ERRORS = {
    400: BadRequestError,
    401: UnauthorizedError,
    402: PaymentRequiredError,
    403: UnauthorizedError,
    404: NotFoundError,
    406: NotAcceptableError,
    409: ConflictError,
}

logger = getLogger(__name__)


def customer_path(customer_id: int, *extra: str) -> str:
    return "/".join([CUSTOMERS, str(customer_id), *extra])


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason or ""
    if not isinstance(body, dict):
        return str(body)
    message = body.get("message") or str(body)
    if body.get("debugInfo"):
        message = f"{message} ({body['debugInfo']})"
    return message


class ProvisioningApiClient:
    """Thin requests wrapper around the DRACOON provisioning API."""

    def __init__(self, base_url: str, token: str, timeout: float = DEFAULT_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout

    def _get_headers(self):
        return {
            X_SDS_SERVICE_TOKEN_HEADER: self.token,
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
        }

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{PROVISIONING_API_PATH}/{path}"

    def _check_status_code(self, response: requests.Response):
        if response.status_code < 400:
            return
        message = f"{response.status_code} {_error_message(response)}"
        if response.status_code == 403:
            message = (
                f"{message}. Token expired or invalid, "
                "use dcprov <url> config set <token> to store a new one."
            )
        error_class = STATUS_ERRORS.get(response.status_code, ServerError)
        raise error_class(message)

    def _request(self, method: str, path: str, **kwargs):
        url = self._url(path)
        logger.debug(f"{method} {url} {kwargs.get('params') or ''}")
        try:
            resp = requests.request(
                method,
                url,
                headers=self._get_headers(),
                timeout=self.timeout,
                **kwargs,
            )
        except requests.exceptions.RequestException as e:
            raise TransportError(f"{method} {url} failed: {e}") from e
        self._check_status_code(resp)
        if resp.status_code == 204 or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise MalformedServerResponse(f"Invalid JSON from {url}: {e}") from e

    def list(self, path: str, params: Dict = None) -> Page:
        data = self._request("GET", path, params=params)
        try:
            return Page(
                items=data["items"],
                total=data["range"]["total"],
                offset=data["range"].get("offset"),
                limit=data["range"].get("limit"),
            )
        except (KeyError, TypeError, AttributeError, ValidationError) as e:
            raise MalformedServerResponse(
                f"Unexpected list response from {path}: {e}"
            ) from e

    def page_fetcher(self, path: str, query: QuerySpec, extra_params: Dict = None):
        """Return a ``fetch_page(offset, limit)`` callable for the paginator."""

        def fetch_page(offset: int, limit: int) -> Page:
            params = query.to_params(offset=offset, limit=limit)
            params.update(extra_params or {})
            return self.list(path, params=params)

        return fetch_page

    def read(self, path: str, params: Dict = None):
        return self._request("GET", path, params=params)

    def create(self, path: str, data):
        return self._request("POST", path, json=data)

    def update(self, path: str, data):
        return self._request("PUT", path, json=data)

    def delete(self, path: str):
        return self._request("DELETE", path)

    def get_customer(self, customer_id: int, include_attributes: bool = False):
        return self.read(
            customer_path(customer_id),
            params={"include_attributes": str(include_attributes).lower()},
        )

    def create_customer(self, customer: NewCustomerRequest):
        return self.create(CUSTOMERS, customer.to_payload())

    def update_customer(self, customer_id: int, update: UpdateCustomerRequest):
        return self.update(customer_path(customer_id), update.to_payload())

    def delete_customer(self, customer_id: int):
        return self.delete(customer_path(customer_id))

    def update_customer_attributes(self, customer_id: int, attributes: CustomerAttributes):
        return self.update(customer_path(customer_id, ATTRIBUTES), attributes.to_payload())


def attributes_from_pairs(pairs: List) -> CustomerAttributes:
    return CustomerAttributes(items=[{"key": k, "value": v} for k, v in pairs])
