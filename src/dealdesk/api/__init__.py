"""REST backend access: async httpx client and its error taxonomy."""

from src.dealdesk.api.client import (
    ApiError,
    ApiResponseError,
    ApiStatusError,
    ApiTransportError,
    DossierApiClient,
)

__all__ = [
    "ApiError",
    "ApiResponseError",
    "ApiStatusError",
    "ApiTransportError",
    "DossierApiClient",
]
