"""Order engine — execution package."""

from .fixed_point import (
    FIXED_POINT_SCALE,
    denormalize_price,
    derive_amounts,
    from_fixed_point,
    normalize_price,
    parse_price,
    to_fixed_point,
)
from .order_builder import OrderAssembler, OrderTerms, ProtocolConfig, SaltGenerator
from .order_service import OrderGateway, OrderService

__all__ = [
    "FIXED_POINT_SCALE",
    "OrderAssembler",
    "OrderGateway",
    "OrderService",
    "OrderTerms",
    "ProtocolConfig",
    "SaltGenerator",
    "denormalize_price",
    "derive_amounts",
    "from_fixed_point",
    "normalize_price",
    "parse_price",
    "to_fixed_point",
]
