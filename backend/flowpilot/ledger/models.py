"""Pydantic models for minted agents and their derived views."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class StrategyType(str, Enum):
    """Coarse strategy tag used for pricing and display."""

    HIGHEST_APY = "HighestAPY"
    RISK_ADJUSTED_YIELD = "RiskAdjustedYield"
    AUTO_COMPOUND_5P = "AutoCompoundOnly5P"
    AUTO_COMPOUND_5P_FARM1 = "AutoCompoundOnly5P-Farm1"
    AUTO_COMPOUND_5P_FARM2 = "AutoCompoundOnly5P-Farm2"
    AUTO_COMPOUND_15P = "AutoCompoundOnly15P"


RiskTolerance = Literal["Low", "Medium", "High"]
AgentStatus = Literal["Active", "Paused"]


def _tag(value: str | StrategyType) -> str:
    return value.value if isinstance(value, StrategyType) else value


class AgentStrategy(BaseModel):
    """User-editable strategy configuration stored on an agent."""

    model_config = ConfigDict(populate_by_name=True)

    strategy_type: str = Field(alias="strategyType")
    risk_tolerance: RiskTolerance = Field(default="Medium", alias="riskTolerance")
    allocation_percent: Decimal = Field(
        default=Decimal("50"), ge=0, le=100, alias="allocationPercent"
    )
    time_lock_days: int = Field(default=30, ge=0, alias="timeLockDays")

    @classmethod
    def default_for(cls, strategy_type: str | StrategyType) -> AgentStrategy:
        return cls(strategy_type=_tag(strategy_type))


class Agent(BaseModel):
    """A minted agent record.

    ``strategy_type`` is the pricing tag fixed at mint time. ``strategy`` is the
    editable configuration and may name a different strategy later on.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: int = Field(ge=1)
    strategy_type: str = Field(
        validation_alias=AliasChoices("strategyType", "type", "strategy_type"),
        serialization_alias="strategyType",
    )
    cost: Decimal = Field(ge=0)
    strategy: AgentStrategy
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def to_record(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class AgentDisplay(BaseModel):
    """Display fields derived from a strategy tag."""

    type_label: str
    description: str
    emoji: str


class AgentView(BaseModel):
    """Agent joined with its display fields and paused status."""

    agent: Agent
    display: AgentDisplay
    status: AgentStatus

    @property
    def id(self) -> int:
        return self.agent.id

    @property
    def is_paused(self) -> bool:
        return self.status == "Paused"
