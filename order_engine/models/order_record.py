"""OrderRecord — order history rows returned by the query endpoint.

Field names and enum values are a compatibility contract with the
exchange; models dump back to the exact camelCase shape with
``model_dump(by_alias=True)``.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class QueryType(IntEnum):
    OPEN = 1
    CLOSED = 2


class OrderStatus(IntEnum):
    OPEN = 1
    FILLED = 2
    CANCELLED = 3


class TradeSide(IntEnum):
    BUY = 1
    SELL = 2


class OutcomeSide(IntEnum):
    YES = 1
    NO = 2


class OrderRecord(BaseModel):
    """One order as reported by the exchange."""

    model_config = ConfigDict(
        populate_by_name=True,
        frozen=True,
        coerce_numbers_to_str=True,
    )

    order_id: str = Field(..., alias="orderId")
    topic_id: int = Field(..., alias="topicId")
    topic_title: str = Field(default="", alias="topicTitle")
    outcome: str
    outcome_side: OutcomeSide = Field(..., alias="outcomeSide")
    price: str
    amount: str
    filled: str = Field(..., description='"filled/total"')
    status: OrderStatus
    side: TradeSide
    total_price: str = Field(..., alias="totalPrice")
    created_at: int = Field(..., alias="createdAt", description="Unix seconds")
    chain_id: str = Field(..., alias="chainId")
    currency_address: str = Field(..., alias="currencyAddress")
    trans_no: str = Field(default="", alias="transNo")

    @property
    def filled_parts(self) -> tuple[str, str]:
        """Split ``filled`` into ``(filled, total)``."""
        done, _, total = self.filled.partition("/")
        return done, total


class OrderPage(BaseModel):
    """One page of query results."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    orders: list[OrderRecord] = Field(default_factory=list, alias="list")
    total: int = 0

    @classmethod
    def from_response(cls, body: dict) -> OrderPage:
        """Parse ``{"result": {"list": [...], "total": n}}``."""
        return cls.model_validate(body.get("result") or {})


class OrderQuery(BaseModel):
    """Parameters for the query collaborator."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1)
    wallet_address: str = Field(..., alias="walletAddress", min_length=1)
    query_type: QueryType = Field(..., alias="queryType")
    topic_id: Optional[int] = Field(default=None, alias="topicId")

    def to_params(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")
