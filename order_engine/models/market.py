"""ResolvedMarketInfo — token ids for both outcomes of a market."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from order_engine.models.order import Outcome, parse_token_id


class ResolvedMarketInfo(BaseModel):
    """Cached resolution of a market identifier."""

    model_config = ConfigDict(frozen=True)

    market_id: str = Field(..., min_length=1)
    yes_token_id: str = Field(..., min_length=1)
    no_token_id: str = Field(..., min_length=1)
    resolved_at: float = Field(..., ge=0, description="Unix seconds")

    @field_validator("yes_token_id", "no_token_id")
    @classmethod
    def _uint256_token(cls, v: str) -> str:
        parse_token_id(v)
        return v

    def is_fresh(self, now: float, ttl_seconds: float) -> bool:
        """True while ``resolved_at + ttl >= now``."""
        return self.resolved_at + ttl_seconds >= now

    def token_for(self, outcome: Outcome) -> str:
        return self.yes_token_id if outcome is Outcome.YES else self.no_token_id
