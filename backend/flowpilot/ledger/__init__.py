"""Agent ledger: minted agents, their costs and the derived balance."""

from .models import (
    Agent,
    AgentDisplay,
    AgentStatus,
    AgentStrategy,
    AgentView,
    RiskTolerance,
    StrategyType,
)
from .costs import (
    AGENT_COSTS,
    AGENT_DISPLAYS,
    DEFAULT_AGENT_COST,
    DEFAULT_DISPLAY,
    Rarity,
    agent_cost,
    derive_balance,
    derive_display,
    fleet_rarity,
    portfolio_value,
    recommended_sale_price,
    total_cost,
)
from .exceptions import AgentNotFoundError, LedgerBusyError, LedgerError
from .agents import AgentLedger

__all__ = [
    "Agent",
    "AgentDisplay",
    "AgentStatus",
    "AgentStrategy",
    "AgentView",
    "RiskTolerance",
    "StrategyType",
    "AGENT_COSTS",
    "AGENT_DISPLAYS",
    "DEFAULT_AGENT_COST",
    "DEFAULT_DISPLAY",
    "Rarity",
    "agent_cost",
    "derive_balance",
    "derive_display",
    "fleet_rarity",
    "portfolio_value",
    "recommended_sale_price",
    "total_cost",
    "AgentNotFoundError",
    "LedgerBusyError",
    "LedgerError",
    "AgentLedger",
]
