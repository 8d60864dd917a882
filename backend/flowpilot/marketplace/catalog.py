"""Synthetic third-party fleet listings shown next to the user's own."""

import random
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from flowpilot.ledger.costs import Rarity

from .models import FleetListing

RARITIES: list[Rarity] = ["Common", "Rare", "Epic", "Legendary"]

BASE_PRICES: dict[str, Decimal] = {
    "Common": Decimal("1000"),
    "Rare": Decimal("5000"),
    "Epic": Decimal("15000"),
    "Legendary": Decimal("50000"),
}

CATALOG_TAGS = [
    "DeFi",
    "Yield Farming",
    "Auto-Compound",
    "High APY",
    "Low Risk",
    "Smart Strategy",
    "Multi-Chain",
    "Staking",
    "Liquidity",
    "Arbitrage",
]


def generate_catalog(
    count: int = 16,
    seed: int | None = None,
    now: datetime | None = None,
) -> list[FleetListing]:
    """Generate ``count`` Genesis Fleet listings.

    The same ``seed`` (and ``now``) always yields the same catalog.
    """
    rng = random.Random(seed)
    now = now or datetime.now(timezone.utc)

    listings = []
    for i in range(count):
        rarity = rng.choice(RARITIES)
        base = BASE_PRICES[rarity]
        premium = Decimal(str(rng.random())) * base * Decimal("0.5")
        price = (base + premium).quantize(Decimal("0.01"))

        listings.append(
            FleetListing(
                id=f"fleet-nft-{i + 1}",
                name=f"Genesis Fleet {i + 1}",
                type="Genesis Fleet",
                description=f"{rarity} fleet of automated yield agents",
                price=price,
                seller=f"0x{rng.getrandbits(32):08x}",
                total_agents=rng.randint(10, 109),
                rarity=rarity,
                tags=CATALOG_TAGS[: rng.randint(2, 4)],
                listed_at=now - timedelta(seconds=rng.randint(0, 30 * 24 * 3600)),
            )
        )

    return listings
