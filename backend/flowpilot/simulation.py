"""Decorative per-agent profit simulation for dashboards."""

import logging
import random

from pydantic import BaseModel, Field

from flowpilot.ledger.models import AgentView

logger = logging.getLogger(__name__)

NOTIFICATION_TEMPLATES = [
    ("Agent #{id}: Auto-compound executed (+${amount:.2f})", 5, 20),
    ("Smart Agent #{id}: APY analysis completed (+${amount:.2f})", 10, 30),
    ("Agent #{id}: Rewards claimed from farm (+${amount:.2f})", 3, 15),
    ("Agent #{id}: Best APY farm selected (+${amount:.2f})", 8, 25),
    ("Agent #{id}: Rewards deposited to optimal farm (+${amount:.2f})", 6, 18),
]


def profit_rate(type_label: str) -> float:
    """Base profit increment per tick for a display label."""
    if type_label == "Smart Agent":
        return 1.2
    if "15%" in type_label:
        return 0.8
    if "10%" in type_label:
        return 0.6
    return 0.5


class TickResult(BaseModel):
    profits: dict[str, float]
    notification: str | None = None
    updated: list[str] = Field(default_factory=list)


class PerformanceSimulator:
    """Advances simulated agent profits one tick at a time.

    Paused agents keep their profit. A seed makes the sequence reproducible.
    """

    def __init__(self, seed: int | None = None, notification_probability: float = 0.4):
        self.rng = random.Random(seed)
        self.notification_probability = notification_probability

    def tick(
        self,
        views: list[AgentView],
        profits: dict[str, float] | None = None,
    ) -> TickResult:
        new_profits = dict(profits or {})
        updated = []

        for view in views:
            key = str(view.id)
            current = new_profits.get(key, 0.0)
            if view.is_paused:
                new_profits[key] = current
                continue

            variation = (self.rng.random() - 0.5) * 0.4
            new_profits[key] = max(0.0, current + profit_rate(view.display.type_label) + variation)
            updated.append(key)

        notification = None
        if views and self.rng.random() < self.notification_probability:
            view = self.rng.choice(views)
            template, low, high = self.rng.choice(NOTIFICATION_TEMPLATES)
            amount = self.rng.random() * (high - low) + low
            notification = template.format(id=view.id, amount=amount)
            logger.debug(notification)

        return TickResult(profits=new_profits, notification=notification, updated=updated)
