"""OrderService — intent → canonical order → signature → submission.

Two entry flows share one path:

- direct: the intent names a ``token_id``;
- by market: the intent names ``market_id`` + ``outcome`` and the token
  is resolved through :class:`MetadataCache`.

Everything that can be validated locally (side, price, quantity,
outcome, identifier shape) is checked before the cache, the signer or
the network is touched.  Transport errors propagate unchanged.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol, Union

import structlog

from order_engine.config.settings import Settings
from order_engine.core.errors import InvalidIntentError
from order_engine.core.logger import setup_logging
from order_engine.data.rest_client import CLOBRestClient
from order_engine.execution.order_builder import OrderAssembler, ProtocolConfig
from order_engine.models.order import OrderIntent, Outcome, SignedOrder, parse_token_id
from order_engine.models.order_record import OrderPage, OrderQuery, QueryType
from order_engine.storage.metadata_cache import MetadataCache, SQLiteMetadataStore
from order_engine.web3_infra.eip712_signer import Credential, EIP712Signer, load_account

logger = structlog.get_logger("execution.order_service")


class OrderGateway(Protocol):
    """External submission / query collaborator."""

    async def submit_order(self, payload: Mapping[str, Any]) -> Mapping[str, Any]: ...

    async def query_orders(self, params: Mapping[str, Any]) -> Mapping[str, Any]: ...


class OrderService:
    """Facade over assembler, signer, metadata cache and gateway.

    Parameters
    ----------
    assembler:
        Builds canonical orders; its config carries the custody (maker)
        and delegated signer addresses.
    signer:
        Typed-data signer.
    cache:
        Market metadata cache used by the by-market flow.
    gateway:
        Submission / query collaborator.
    credential:
        Delegated signer's private key.  Never logged.
    """

    def __init__(
        self,
        assembler: OrderAssembler,
        signer: EIP712Signer,
        cache: MetadataCache,
        gateway: OrderGateway,
        credential: Credential,
    ) -> None:
        self._assembler = assembler
        self._signer = signer
        self._cache = cache
        self._gateway = gateway
        self._credential = credential
        self._store: Optional[SQLiteMetadataStore] = None
        self._client: Optional[CLOBRestClient] = None

    @classmethod
    def from_settings(cls, cfg: Settings) -> OrderService:
        """Wire a service (REST client + SQLite cache) from *cfg*.

        Call :meth:`start` (or use ``async with``) before placing orders.
        """
        setup_logging(cfg)
        account = load_account(cfg.SIGNER_PRIVATE_KEY)
        config = ProtocolConfig.from_settings(cfg, signer_address=account.address)
        client = CLOBRestClient(
            base_url=cfg.API_BASE_URL,
            api_key=cfg.API_KEY.get_secret_value(),
            timeout_seconds=cfg.HTTP_TIMEOUT_SECONDS,
        )
        store = SQLiteMetadataStore(cfg.METADATA_CACHE_PATH)
        service = cls(
            assembler=OrderAssembler(
                config,
                default_expiration_seconds=cfg.ORDER_EXPIRATION_SECONDS,
            ),
            signer=EIP712Signer(config.domain_name, config.domain_version),
            cache=MetadataCache(store, client, ttl_seconds=cfg.METADATA_CACHE_TTL_SECONDS),
            gateway=client,
            credential=account,
        )
        service._store = store
        service._client = client
        return service

    # ── Lifecycle ────────────────────────────────────────────────

    async def start(self) -> None:
        """Open owned resources (store, HTTP client).  Idempotent."""
        if self._store is not None:
            await self._store.open()
        if self._client is not None:
            await self._client.connect()

    async def close(self) -> None:
        if self._client is not None:
            await self._client.disconnect()
        if self._store is not None:
            await self._store.close()

    async def __aenter__(self) -> OrderService:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    @property
    def cache(self) -> MetadataCache:
        return self._cache

    @property
    def wallet_address(self) -> str:
        """The custody account that owns orders."""
        return self._assembler.config.maker_address

    # ── Order flows ──────────────────────────────────────────────

    async def prepare_order(self, intent: OrderIntent) -> SignedOrder:
        """Validate, resolve, assemble and sign *intent* without submitting."""
        signed, _ = await self._prepare(intent)
        return signed

    async def place_order(self, intent: OrderIntent) -> Mapping[str, Any]:
        """Prepare *intent* and hand the payload to the gateway.

        Returns the gateway's response, ``{"orderId": ...}``.
        """
        signed, topic_id = await self._prepare(intent)
        payload = signed.to_payload(topicId=topic_id)
        response = await self._gateway.submit_order(payload)
        logger.info(
            "order_service.submitted",
            order_id=response.get("orderId"),
            salt=signed.order.salt,
            side=signed.order.side.value,
            price=signed.order.price,
            token_id=signed.order.token_id,
        )
        return response

    async def _prepare(self, intent: OrderIntent) -> tuple[SignedOrder, Optional[str]]:
        # Validate everything local before any I/O.
        terms = self._assembler.terms(intent)
        if intent.token_id is not None and intent.market_id is not None:
            raise InvalidIntentError("give either token_id or market_id, not both")

        topic_id: Optional[str] = None
        if intent.token_id is not None:
            parse_token_id(intent.token_id)
            token_id = str(intent.token_id)
        elif intent.market_id is not None:
            if str(intent.market_id).strip() == "":
                raise InvalidIntentError("market_id is empty")
            outcome = Outcome.parse(intent.outcome)
            topic_id = str(intent.market_id)
            info = await self._cache.resolve(topic_id)
            token_id = info.token_for(outcome)
        else:
            raise InvalidIntentError("either token_id or market_id is required")

        order = self._assembler.assemble(terms, token_id)
        return self._signer.sign(order, self._credential), topic_id

    # ── Query flows ──────────────────────────────────────────────

    async def query_orders(
        self,
        query_type: Union[QueryType, int],
        page: int = 1,
        limit: int = 10,
        topic_id: Optional[int] = None,
    ) -> OrderPage:
        """Fetch one page of the custody account's orders."""
        try:
            query = OrderQuery(
                page=page,
                limit=limit,
                wallet_address=self.wallet_address,
                query_type=QueryType(query_type),
                topic_id=topic_id,
            )
        except ValueError as exc:
            raise InvalidIntentError(f"invalid order query: {exc}") from exc
        body = await self._gateway.query_orders(query.to_params())
        return OrderPage.from_response(dict(body))

    async def get_open_orders(
        self, page: int = 1, limit: int = 10, topic_id: Optional[int] = None
    ) -> OrderPage:
        return await self.query_orders(QueryType.OPEN, page=page, limit=limit, topic_id=topic_id)

    async def get_closed_orders(
        self, page: int = 1, limit: int = 10, topic_id: Optional[int] = None
    ) -> OrderPage:
        return await self.query_orders(QueryType.CLOSED, page=page, limit=limit, topic_id=topic_id)
