"""Fleet performance leaderboard.

Figures are synthetic and only meant for display; a seed makes them
reproducible.
"""

import random
from datetime import datetime, timedelta, timezone
from typing import Literal

from pydantic import BaseModel

Badge = Literal["Gold", "Silver", "Bronze", "Elite", "Rising"]
LeaderboardCategory = Literal["overall", "successRate", "efficiency", "missions", "profit"]

BADGES: list[Badge] = ["Gold", "Silver", "Bronze", "Elite", "Rising"]

# Rank of the fleet presented as the user's own
USER_FLEET_RANK = 15


class FleetPerformance(BaseModel):
    id: str
    name: str
    owner: str
    total_agents: int
    success_rate: float
    total_missions: int
    efficiency_score: float
    total_profit: float
    rank: int
    badge: Badge
    last_activity: datetime
    is_private: bool = False


def overall_score(fleet: FleetPerformance) -> float:
    """Weighted score used for the overall ranking."""
    return (
        fleet.success_rate * 0.3
        + fleet.efficiency_score * 0.3
        + fleet.total_missions / 100 * 0.2
        + fleet.total_profit / 10000 * 0.2
    )


_CATEGORY_KEYS = {
    "overall": overall_score,
    "successRate": lambda f: f.success_rate,
    "efficiency": lambda f: f.efficiency_score,
    "missions": lambda f: f.total_missions,
    "profit": lambda f: f.total_profit,
}


def rank_fleets(
    fleets: list[FleetPerformance],
    category: LeaderboardCategory = "overall",
) -> list[FleetPerformance]:
    """Sort best-first by ``category`` and re-assign ranks 1..n."""
    if category not in _CATEGORY_KEYS:
        raise ValueError(f"Unknown leaderboard category: {category}")

    ordered = sorted(fleets, key=_CATEGORY_KEYS[category], reverse=True)
    return [fleet.model_copy(update={"rank": i + 1}) for i, fleet in enumerate(ordered)]


def generate_fleets(
    count: int = 50,
    seed: int | None = None,
    now: datetime | None = None,
) -> list[FleetPerformance]:
    """Generate ``count`` fleets ranked by overall score.

    The fleet at ``USER_FLEET_RANK`` is renamed to the user's fleet.
    """
    rng = random.Random(seed)
    now = now or datetime.now(timezone.utc)

    fleets = [
        FleetPerformance(
            id=f"fleet-{i + 1}",
            name=f"DeFi Fleet {i + 1}",
            owner=f"0x{rng.getrandbits(32):08x}",
            total_agents=rng.randint(5, 24),
            success_rate=rng.random() * 30 + 70,
            total_missions=rng.randint(100, 5099),
            efficiency_score=rng.random() * 20 + 80,
            total_profit=rng.random() * 100000 + 10000,
            rank=i + 1,
            badge=rng.choice(BADGES),
            last_activity=now - timedelta(seconds=rng.randint(0, 7 * 24 * 3600)),
            is_private=rng.random() > 0.7,
        )
        for i in range(count)
    ]

    ranked = rank_fleets(fleets, "overall")
    if len(ranked) >= USER_FLEET_RANK:
        index = USER_FLEET_RANK - 1
        ranked[index] = ranked[index].model_copy(
            update={"name": "My DeFi Fleet", "is_private": False}
        )
    return ranked


def user_fleet(fleets: list[FleetPerformance]) -> FleetPerformance | None:
    return next((f for f in fleets if f.name == "My DeFi Fleet"), None)
