from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from flowpilot.ledger.costs import Rarity
from flowpilot.ledger.models import Agent, AgentStrategy

OWN_SELLER = "You"
FLEET_LISTING_TYPE = "Agent Fleet"


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ListedAgent(BaseModel):
    """Read-only snapshot of an agent inside a listing."""

    model_config = ConfigDict(frozen=True)

    id: int
    type: str
    strategy: AgentStrategy
    cost: Decimal

    @classmethod
    def from_agent(cls, agent: Agent) -> ListedAgent:
        return cls(
            id=agent.id,
            type=agent.strategy_type,
            strategy=agent.strategy,
            cost=agent.cost,
        )


class FleetListing(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    type: str = FLEET_LISTING_TYPE
    description: str = ""
    price: Decimal = Field(ge=0)
    seller: str
    agents: list[ListedAgent] = Field(default_factory=list)
    total_agents: int = Field(default=0, ge=0, alias="totalAgents")
    rarity: Rarity = "Common"
    tags: list[str] = Field(default_factory=list)
    listed_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), alias="listedAt"
    )

    @field_validator("listed_at", mode="after")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Treat naive timestamps from stored records as UTC."""
        return _as_utc(v)

    @property
    def is_own(self) -> bool:
        return self.seller == OWN_SELLER

    @property
    def has_fleet_snapshot(self) -> bool:
        return self.type == FLEET_LISTING_TYPE and len(self.agents) > 0

    def to_record(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class PurchasedFleet(FleetListing):
    """A listing copied into the buyer's collection."""

    purchase_date: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), alias="purchaseDate"
    )
    purchase_price: Decimal = Field(ge=0, alias="purchasePrice")

    @field_validator("purchase_date", mode="after")
    @classmethod
    def purchase_date_utc(cls, v: datetime) -> datetime:
        return _as_utc(v)

    @classmethod
    def from_listing(cls, listing: FleetListing) -> PurchasedFleet:
        return cls(**listing.model_dump(), purchase_price=listing.price)
