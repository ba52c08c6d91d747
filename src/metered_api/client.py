"""Async client for the metered items API."""

import logging
from typing import Any

import httpx

from metered_api.models.item import ItemCreatedResponse, ItemResponse
from metered_api.models.responses import (
    AccountResponse,
    PaginatedResponse,
    RechargeResponse,
    UsageStatsResponse,
)

logger = logging.getLogger(__name__)

CREDITS_EXHAUSTED_MESSAGE = "Request limit exceeded. Please recharge credits."


class MeteredClientError(Exception):
    """Error response returned by the API."""

    def __init__(self, status_code: int, code: str, message: str):
        self.status_code = status_code
        self.code = code
        self.message = message
        super().__init__(message)


class CreditsExhaustedError(MeteredClientError):
    """The caller has no credits left (429)."""


class AccessDeniedError(MeteredClientError):
    """Key rejected or recharge already used (403)."""


class NotFoundError(MeteredClientError):
    """Item missing or not owned by the caller (404)."""


STATUS_ERRORS: dict[int, type[MeteredClientError]] = {
    403: AccessDeniedError,
    404: NotFoundError,
    429: CreditsExhaustedError,
}


class MeteredClient:
    """
    Client bound to a single API key.

    Every item call costs one credit on the server. Use as an async context
    manager, or call ``aclose()`` when done.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        *,
        prefix: str = "/v1",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not api_key or not base_url:
            raise ValueError("API key and URL are required.")

        self._prefix = prefix.rstrip("/")
        self._http = httpx.AsyncClient(
            base_url=base_url,
            headers={"X-API-Key": api_key},
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "MeteredClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        response = await self._http.request(method, f"{self._prefix}{path}", **kwargs)
        if response.is_success:
            return response.json()

        code, message = _parse_error(response)
        logger.warning("%s %s failed with %s %s", method, path, response.status_code, code)

        error_cls = STATUS_ERRORS.get(response.status_code, MeteredClientError)
        if error_cls is CreditsExhaustedError:
            message = CREDITS_EXHAUSTED_MESSAGE
        raise error_cls(response.status_code, code, message)

    # Items

    async def create(self, value: float, tx_hash: str | None = None) -> str:
        """Create an item and return its id."""
        payload: dict[str, Any] = {"value": value}
        if tx_hash is not None:
            payload["txHash"] = tx_hash
        data = await self._request("POST", "/items", json=payload)
        return ItemCreatedResponse.model_validate(data).id

    async def get(self, item_id: str) -> ItemResponse:
        data = await self._request("GET", f"/items/{item_id}")
        return ItemResponse.model_validate(data)

    async def get_by_tx_hash(self, tx_hash: str) -> ItemResponse:
        data = await self._request("GET", f"/items/tx/{tx_hash}")
        return ItemResponse.model_validate(data)

    async def list_items(
        self, page: int = 1, per_page: int = 20
    ) -> PaginatedResponse[ItemResponse]:
        data = await self._request("GET", "/items", params={"page": page, "per_page": per_page})
        return PaginatedResponse[ItemResponse].model_validate(data)

    async def update(
        self,
        item_id: str,
        value: float | None = None,
        tx_hash: str | None = None,
    ) -> ItemResponse:
        """Update an item. At least one field must be given."""
        payload: dict[str, Any] = {}
        if value is not None:
            payload["value"] = value
        if tx_hash is not None:
            payload["txHash"] = tx_hash
        if not payload:
            raise ValueError("Update data is required")

        data = await self._request("PUT", f"/items/{item_id}", json=payload)
        return ItemResponse.model_validate(data)

    async def delete(self, item_id: str) -> None:
        await self._request("DELETE", f"/items/{item_id}")

    # Account and credits

    async def get_credit_info(self) -> AccountResponse:
        """Balance and recharge availability. Not metered."""
        data = await self._request("GET", "/account")
        return AccountResponse.model_validate(data)

    async def get_usage(self) -> UsageStatsResponse:
        data = await self._request("GET", "/account/usage")
        return UsageStatsResponse.model_validate(data)

    async def recharge(self) -> RechargeResponse:
        """Use the one-time recharge."""
        data = await self._request("POST", "/credits/recharge")
        return RechargeResponse.model_validate(data)


def _parse_error(response: httpx.Response) -> tuple[str, str]:
    """Read code and message from an ``{"error": {...}}`` body."""
    try:
        body = response.json()
    except ValueError:
        body = None
    error = body.get("error") if isinstance(body, dict) else None
    if not isinstance(error, dict):
        error = {}
    return (
        error.get("code", "UNKNOWN_ERROR"),
        error.get("message") or response.reason_phrase or "Request failed",
    )
