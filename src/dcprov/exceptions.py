class DcProvException(Exception):
    pass


class DcProvUsageError(DcProvException):
    """Raised for invalid user input, before any network call is made."""


class InvalidFilterSyntax(DcProvUsageError):
    def __init__(self, token: str, reason: str = "expected field:operator:value"):
        self.token = token
        super().__init__(f"Invalid filter {token!r}: {reason}")


class InvalidSortSyntax(DcProvUsageError):
    def __init__(self, token: str):
        self.token = token
        super().__init__(f"Invalid sort {token!r}: expected field:asc or field:desc")


class InvalidRange(DcProvUsageError):
    pass


class CredentialNotFound(DcProvException):
    def __init__(self, domain: str):
        self.domain = domain
        super().__init__(f"No stored token for {domain}")


class StorageUnavailable(DcProvException):
    pass


class TransportError(DcProvException):
    pass


class BadRequestError(TransportError):
    pass


class UnauthorizedError(TransportError):
    pass


class PaymentRequiredError(TransportError):
    pass


class NotFoundError(TransportError):
    pass


class NotAcceptableError(TransportError):
    pass


class ConflictError(TransportError):
    pass


class ServerError(TransportError):
    pass


class PageFetchError(TransportError):
    """A page request failed while assembling a multi-page result."""

    def __init__(self, page_index: int, accumulated: int, error: Exception):
        self.page_index = page_index
        self.accumulated = accumulated
        self.error = error
        super().__init__(
            f"Failed to fetch page {page_index} "
            f"({accumulated} records already received): {error}"
        )


class MalformedServerResponse(DcProvException):
    def __init__(self, message: str, page_index: int = None, accumulated: int = None):
        self.page_index = page_index
        self.accumulated = accumulated
        if page_index is not None:
            message = f"{message} (page {page_index}, {accumulated} records received)"
        super().__init__(message)
