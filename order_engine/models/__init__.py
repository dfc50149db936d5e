"""Order engine — models package."""

from .market import ResolvedMarketInfo
from .order import (
    CanonicalOrder,
    OrderIntent,
    Outcome,
    Side,
    SignedOrder,
    parse_token_id,
)
from .order_record import (
    OrderPage,
    OrderQuery,
    OrderRecord,
    OrderStatus,
    OutcomeSide,
    QueryType,
    TradeSide,
)

__all__ = [
    "CanonicalOrder",
    "OrderIntent",
    "OrderPage",
    "OrderQuery",
    "OrderRecord",
    "OrderStatus",
    "Outcome",
    "OutcomeSide",
    "QueryType",
    "ResolvedMarketInfo",
    "Side",
    "SignedOrder",
    "TradeSide",
    "parse_token_id",
]
