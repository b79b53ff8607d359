import logging
from decimal import Decimal

import httpx

from splitbill.core.config import settings
from splitbill.terminal.errors import (
    NotAuthenticatedError, NotFoundError, RequestRejectedError, TransportError,
)

logger = logging.getLogger(__name__)


def _jsonable(payload: dict) -> dict:
    return {k: str(v) if isinstance(v, Decimal) else v for k, v in payload.items()}


def _error_detail(resp: httpx.Response) -> str:
    """Pull a readable message out of a FastAPI error body."""
    try:
        detail = resp.json().get("detail")
    except ValueError:
        detail = None
    if isinstance(detail, list) and detail:
        # request validation errors: [{"loc": [...], "msg": "..."}]
        first = detail[0]
        return first.get("msg", str(first)) if isinstance(first, dict) else str(first)
    if detail:
        return str(detail)
    return f"Request failed with status {resp.status_code}"


class HttpBillApi:
    """
    Terminal backend that talks to the splitbill HTTP API.
    The session cookie set by sign_in() lives in the client's cookie jar.
    """

    def __init__(
        self,
        base_url: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url or settings.api_base_url, timeout=timeout)

    async def __aenter__(self) -> "HttpBillApi":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs):
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise TransportError(str(e)) from e

        if resp.status_code == 401:
            raise NotAuthenticatedError(_error_detail(resp))
        if resp.status_code == 404:
            raise NotFoundError(_error_detail(resp))
        if resp.status_code >= 400:
            raise RequestRejectedError(_error_detail(resp))
        if resp.status_code == 204 or not resp.content:
            return None
        return resp.json()

    async def sign_in(self, email: str, password: str) -> dict:
        return await self._request("POST", "/api/auth/signin", json={"email": email, "password": password})

    async def list_bills(self) -> list[dict]:
        return await self._request("GET", "/api/bills")

    async def create_bill(self, name: str, reference: str | None, currency: str, visibility: str) -> dict:
        body = {"name": name, "currency": currency, "visibility": visibility}
        if reference:
            body["reference"] = reference
        return await self._request("POST", "/api/bills", json=body)

    async def create_item(self, bill_id: str, name: str, amount: Decimal, quantity: int) -> dict:
        body = _jsonable({"name": name, "amount": amount, "quantity": quantity})
        return await self._request("POST", f"/api/bills/{bill_id}/items", json=body)

    async def delete_item(self, bill_id: str, item_id: str) -> None:
        await self._request("DELETE", f"/api/bills/{bill_id}/items/{item_id}")

    async def update_bill(self, bill_id: str, fields: dict) -> dict:
        return await self._request("PATCH", f"/api/bills/{bill_id}", json=_jsonable(fields))
