"""
Domain exceptions.

Every exception carries the HTTP status it maps to; the API renders them as
``{"error": {"message": ...}}``.
"""
from fastapi import status


class DiscoveryError(Exception):
    """Base class for errors raised by discovery services."""
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class HostNotFoundError(DiscoveryError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, identifier):
        super().__init__(f"Resource host not found by id '{identifier}'")


class RecordNotFoundError(DiscoveryError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource: str, identifier):
        super().__init__(f"Resource {resource} not found by id '{identifier}'")


class RuleNotFoundError(DiscoveryError):
    """No discovery rule applies to the host."""
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, host_name: str):
        super().__init__(f"No rule found for host {host_name}")


class FactImportError(DiscoveryError):
    pass


class ProvisioningError(DiscoveryError):
    pass


class InvalidSearchError(DiscoveryError):
    pass


class NodeAPIError(DiscoveryError):
    """The proxy running on the discovered node failed or could not be reached."""
    status_code = status.HTTP_502_BAD_GATEWAY
