"""Cost and display tables keyed by strategy tag.

Every balance or valuation figure in the package is computed from these
functions; no other module carries its own copy of the tables.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Literal

from .models import Agent, AgentDisplay, StrategyType

Rarity = Literal["Common", "Rare", "Epic", "Legendary"]

DEFAULT_AGENT_COST = Decimal("50.0")

AGENT_COSTS: dict[str, Decimal] = {
    StrategyType.HIGHEST_APY.value: Decimal("200.0"),
    StrategyType.RISK_ADJUSTED_YIELD.value: Decimal("200.0"),
    StrategyType.AUTO_COMPOUND_5P_FARM2.value: Decimal("150.0"),
    StrategyType.AUTO_COMPOUND_5P_FARM1.value: Decimal("100.0"),
    StrategyType.AUTO_COMPOUND_5P.value: Decimal("50.0"),
    StrategyType.AUTO_COMPOUND_15P.value: Decimal("8.0"),
}

DEFAULT_DISPLAY = AgentDisplay(
    type_label="Simple Agent",
    description="Automatically compounds rewards in the current farm",
    emoji="🔄",
)

AGENT_DISPLAYS: dict[str, AgentDisplay] = {
    StrategyType.HIGHEST_APY.value: AgentDisplay(
        type_label="Smart Agent",
        description="Automatically finds and moves to the farm with the highest APY",
        emoji="🧠",
    ),
    StrategyType.RISK_ADJUSTED_YIELD.value: AgentDisplay(
        type_label="Smart Agent",
        description="Balances risk and reward for optimal returns",
        emoji="⚖️",
    ),
    StrategyType.AUTO_COMPOUND_5P.value: AgentDisplay(
        type_label="Simple Agent (5% APY)",
        description="Auto-Compound only",
        emoji="🛡️",
    ),
    StrategyType.AUTO_COMPOUND_5P_FARM1.value: AgentDisplay(
        type_label="Simple Agent (10% APY)",
        description="Auto-Compound only",
        emoji="🌱",
    ),
    StrategyType.AUTO_COMPOUND_5P_FARM2.value: AgentDisplay(
        type_label="Premium Simple Agent (15% APY)",
        description="Auto-Compound and Split",
        emoji="💎",
    ),
    StrategyType.AUTO_COMPOUND_15P.value: AgentDisplay(
        type_label="Simple Agent (5% APY)",
        description="Automatically compounds rewards in the current farm",
        emoji="🛡️",
    ),
}


def _tag(strategy_type: str | StrategyType) -> str:
    if isinstance(strategy_type, StrategyType):
        return strategy_type.value
    return strategy_type


def agent_cost(strategy_type: str | StrategyType) -> Decimal:
    """USDC mint cost for a strategy tag. Unknown tags cost the default."""
    return AGENT_COSTS.get(_tag(strategy_type), DEFAULT_AGENT_COST)


def derive_display(strategy_type: str | StrategyType) -> AgentDisplay:
    """Display label, description and emoji for a strategy tag."""
    return AGENT_DISPLAYS.get(_tag(strategy_type), DEFAULT_DISPLAY)


def total_cost(agents: Iterable[Agent]) -> Decimal:
    """Sum of the costs stored on ``agents``."""
    return sum((agent.cost for agent in agents), Decimal("0"))


def apply_balance_floor(balance: Decimal, allow_negative: bool) -> Decimal:
    if allow_negative:
        return balance
    return max(Decimal("0"), balance)


def derive_balance(
    initial: Decimal,
    agents: Iterable[Agent],
    allow_negative: bool = False,
) -> Decimal:
    """Spendable balance: ``initial`` minus the cost of every agent."""
    return apply_balance_floor(initial - total_cost(agents), allow_negative)


def portfolio_value(
    agents: Iterable[Agent],
    markup: Decimal = Decimal("1.3"),
) -> Decimal:
    """Marked-up value of an agent collection."""
    return sum((agent.cost * markup for agent in agents), Decimal("0"))


def recommended_sale_price(
    agents: Iterable[Agent],
    markup: Decimal = Decimal("1.3"),
    premium: Decimal = Decimal("1.15"),
) -> Decimal:
    """Suggested listing price, rounded to whole USDC."""
    price = portfolio_value(agents, markup) * premium
    return price.quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def fleet_rarity(agent_count: int) -> Rarity:
    """Rarity tier of a fleet made of ``agent_count`` agents."""
    if agent_count >= 5:
        return "Epic"
    if agent_count >= 3:
        return "Rare"
    return "Common"
