"""CLOBRestClient — httpx client for the exchange's open API.

Implements the three external collaborators used by the engine:

- ``fetch(market_id)`` → ``{"yesTokenId": ..., "noTokenId": ...}``
- ``submit_order(payload)`` → ``{"orderId": ...}``
- ``query_orders(params)`` → raw ``{"result": {"list": [...], "total": n}}``

Responses use the envelope ``{"errno": 0, "errmsg": "", "result": {...}}``.
Network errors, non-2xx statuses and non-zero ``errno`` all surface as
:class:`TransportFailureError`; the body is otherwise not interpreted.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

import httpx
import structlog

from order_engine.core.errors import TransportFailureError

logger = structlog.get_logger("data.rest_client")

_DEFAULT_BASE_URL = "https://proxy.opinion.trade:8443/openapi"


class CLOBRestClient:
    """Async REST client.

    Parameters
    ----------
    base_url:
        API base URL.
    api_key:
        Sent as the ``apikey`` header when non-empty.
    timeout_seconds:
        Per-request timeout.
    transport:
        Optional httpx transport (``httpx.MockTransport`` in tests).
    """

    def __init__(
        self,
        base_url: str = _DEFAULT_BASE_URL,
        api_key: str = "",
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout_seconds
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    # ── Lifecycle ────────────────────────────────────────────────

    async def connect(self) -> None:
        """Open the HTTP client.  Idempotent."""
        if self._client is not None:
            return
        headers = {"Accept": "application/json"}
        if self._api_key:
            headers["apikey"] = self._api_key
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers=headers,
            timeout=httpx.Timeout(self._timeout),
            transport=self._transport,
        )
        logger.info("rest_client.connected", base_url=self._base_url)

    async def disconnect(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("rest_client.disconnected")

    async def __aenter__(self) -> CLOBRestClient:
        await self.connect()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.disconnect()

    # ── Collaborators ────────────────────────────────────────────

    async def fetch(self, market_id: str) -> dict[str, str]:
        """Resolve a market id to its YES / NO token ids."""
        body = await self._request("GET", f"/topic/{market_id}")
        data = _result(body)
        data = data.get("data", data)
        try:
            yes_token, no_token = data["yesTokenId"], data["noTokenId"]
        except (KeyError, TypeError) as exc:
            raise TransportFailureError(
                f"market {market_id}: response has no token ids"
            ) from exc
        if yes_token in (None, "") or no_token in (None, ""):
            raise TransportFailureError(f"market {market_id}: response has no token ids")
        return {"yesTokenId": str(yes_token), "noTokenId": str(no_token)}

    async def submit_order(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        """POST a signed order payload."""
        body = await self._request("POST", "/order", json=dict(payload))
        data = _result(body)
        data = data.get("data", data) or {}
        order_id = data.get("orderId")
        logger.info("rest_client.order_submitted", order_id=order_id)
        return {"orderId": order_id}

    async def query_orders(self, params: Mapping[str, Any]) -> dict[str, Any]:
        """GET order history; returns the response body unchanged."""
        return await self._request("GET", "/order", params=dict(params))

    # ── Internals ────────────────────────────────────────────────

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        if self._client is None:
            raise RuntimeError("Call connect() before using the client")
        try:
            resp = await self._client.request(method, path, **kwargs)
            resp.raise_for_status()
            body = resp.json()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "rest_client.http_error",
                method=method,
                path=path,
                status=exc.response.status_code,
            )
            raise TransportFailureError(
                f"{method} {path} returned {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("rest_client.request_failed", method=method, path=path, error=str(exc))
            raise TransportFailureError(f"{method} {path} failed: {exc}") from exc

        if not isinstance(body, dict):
            raise TransportFailureError(f"{method} {path}: unexpected body type {type(body).__name__}")
        errno = body.get("errno", 0)
        if errno not in (0, None):
            raise TransportFailureError(
                f"{method} {path}: errno={errno} {body.get('errmsg', '')}".rstrip(),
                status_code=resp.status_code,
                errno=errno,
            )
        return body


def _result(body: Mapping[str, Any]) -> dict[str, Any]:
    result = body.get("result")
    return result if isinstance(result, dict) else {}
