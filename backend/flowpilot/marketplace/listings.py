"""Fleet listing and purchase flow.

Listings are snapshots: listing a fleet copies the current agents and buying
a fleet copies the listing. Neither touches the agent ledger.
"""

from __future__ import annotations

import logging
import time
from decimal import Decimal
from typing import TYPE_CHECKING, Literal

from pydantic import ValidationError

from flowpilot.events import MARKETPLACE_UPDATED, EventBus
from flowpilot.ledger.agents import AgentLedger
from flowpilot.ledger.costs import fleet_rarity
from flowpilot.storage.records import (
    BOUGHT_FLEETS_KEY,
    MARKETPLACE_LISTINGS_KEY,
    RecordStore,
    read_json,
    write_json,
)

from .catalog import RARITIES, generate_catalog
from .exceptions import EmptyFleetError, ListingNotFoundError, PurchaseRejectedError
from .models import FLEET_LISTING_TYPE, OWN_SELLER, FleetListing, ListedAgent, PurchasedFleet

if TYPE_CHECKING:
    from flowpilot.config import Settings

logger = logging.getLogger(__name__)

SortOption = Literal["price", "rarity", "newest"]
FilterOption = Literal["all", "rare", "epic", "legendary"]

OWN_FLEET_TAGS = ["AI Agents", "DeFi", "Automation", "Fleet"]


class Marketplace:
    def __init__(
        self,
        persistent_store: RecordStore,
        bus: EventBus,
        ledger: AgentLedger,
        settings: Settings,
    ):
        self.persistent_store = persistent_store
        self.bus = bus
        self.ledger = ledger
        self.settings = settings
        self._catalog: list[FleetListing] | None = None

    # ========================================================================
    # Stored collections
    # ========================================================================

    def _load(self, key: str, model: type[FleetListing]) -> list:
        records = read_json(self.persistent_store, key, default=[])
        if not isinstance(records, list):
            logger.warning(f"Ignoring non-list '{key}' record")
            return []

        items = []
        for record in records:
            try:
                items.append(model.model_validate(record))
            except ValidationError as e:
                logger.warning(f"Skipping invalid '{key}' entry: {e}")
        return items

    def listings(self) -> list[FleetListing]:
        """Listings stored in the shared marketplace collection."""
        return self._load(MARKETPLACE_LISTINGS_KEY, FleetListing)

    def bought_fleets(self) -> list[PurchasedFleet]:
        return self._load(BOUGHT_FLEETS_KEY, PurchasedFleet)

    def is_fleet_listed(self) -> bool:
        return any(
            listing.is_own and listing.has_fleet_snapshot for listing in self.listings()
        )

    # ========================================================================
    # Listing
    # ========================================================================

    def list_for_sale(self, price: Decimal | None = None) -> FleetListing:
        """List a snapshot of the current agents, seller ``"You"``.

        Raises:
            EmptyFleetError: The ledger has no agents.
        """
        agents = self.ledger.list_agents()
        if not agents:
            raise EmptyFleetError("Mint at least one agent before listing a fleet")

        if price is None:
            price = self.ledger.recommended_sale_price()

        listing_id = f"agent-fleet-{int(time.time() * 1000)}"
        records = read_json(self.persistent_store, MARKETPLACE_LISTINGS_KEY, default=[])
        if not isinstance(records, list):
            records = []
        existing_ids = {r.get("id") for r in records if isinstance(r, dict)}
        while listing_id in existing_ids:
            listing_id = f"{listing_id}-1"

        listing = FleetListing(
            id=listing_id,
            name="AI Agent Fleet",
            type=FLEET_LISTING_TYPE,
            description="Complete AI agent fleet with automated DeFi strategies",
            price=Decimal(price),
            seller=OWN_SELLER,
            agents=[ListedAgent.from_agent(a) for a in agents],
            total_agents=len(agents),
            rarity=fleet_rarity(len(agents)),
            tags=list(OWN_FLEET_TAGS),
        )

        records.append(listing.to_record())
        write_json(self.persistent_store, MARKETPLACE_LISTINGS_KEY, records)

        logger.info(
            f"Listed fleet {listing.id}: {listing.total_agents} agents at {listing.price} USDC"
        )
        self.bus.publish(MARKETPLACE_UPDATED, {"listing": listing.to_record()})
        return listing

    def unlist(self, listing_id: str) -> bool:
        """Remove one of the user's own listings. Returns False if none matched."""
        records = read_json(self.persistent_store, MARKETPLACE_LISTINGS_KEY, default=[])
        if not isinstance(records, list):
            return False

        kept = [
            r
            for r in records
            if not (
                isinstance(r, dict)
                and r.get("id") == listing_id
                and r.get("seller") == OWN_SELLER
            )
        ]
        if len(kept) == len(records):
            logger.info(f"No own listing with id {listing_id}")
            return False

        write_json(self.persistent_store, MARKETPLACE_LISTINGS_KEY, kept)
        logger.info(f"Unlisted fleet {listing_id}")
        self.bus.publish(MARKETPLACE_UPDATED, {"removed": listing_id})
        return True

    def clear_malformed_listings(self) -> int:
        """Drop own listings without an agent snapshot. Returns the number removed."""
        records = read_json(self.persistent_store, MARKETPLACE_LISTINGS_KEY, default=[])
        if not isinstance(records, list):
            return 0

        def is_proper(record: object) -> bool:
            if not isinstance(record, dict):
                return False
            if record.get("seller") != OWN_SELLER:
                return True
            agents = record.get("agents")
            return (
                record.get("type") == FLEET_LISTING_TYPE
                and isinstance(agents, list)
                and len(agents) > 0
            )

        kept = [r for r in records if is_proper(r)]
        removed = len(records) - len(kept)
        if removed:
            write_json(self.persistent_store, MARKETPLACE_LISTINGS_KEY, kept)
            logger.info(f"Cleared {removed} malformed listing(s)")
        return removed

    # ========================================================================
    # Catalog & browsing
    # ========================================================================

    def seed_catalog(self, count: int | None = None, seed: int | None = None) -> list[FleetListing]:
        count = self.settings.marketplace.catalog_size if count is None else count
        seed = self.settings.marketplace.catalog_seed if seed is None else seed
        self._catalog = generate_catalog(count, seed)
        logger.debug(f"Seeded marketplace catalog with {count} fleets (seed={seed})")
        return list(self._catalog)

    def catalog(self) -> list[FleetListing]:
        if self._catalog is None:
            self.seed_catalog()
        return list(self._catalog or [])

    def browse(
        self,
        sort_by: SortOption = "newest",
        filter_by: FilterOption = "all",
    ) -> list[FleetListing]:
        fleets = self.catalog() + self.listings()

        if filter_by != "all":
            fleets = [f for f in fleets if f.rarity.lower() == filter_by]

        if sort_by == "price":
            fleets.sort(key=lambda f: f.price, reverse=True)
        elif sort_by == "rarity":
            fleets.sort(key=lambda f: RARITIES.index(f.rarity), reverse=True)
        elif sort_by == "newest":
            fleets.sort(key=lambda f: f.listed_at, reverse=True)
        else:
            raise ValueError(f"Unknown sort option: {sort_by}")

        return fleets

    def get_listing(self, listing_id: str) -> FleetListing:
        for listing in self.catalog() + self.listings():
            if listing.id == listing_id:
                return listing
        raise ListingNotFoundError(listing_id)

    # ========================================================================
    # Purchase
    # ========================================================================

    def purchase(self, listing_id: str) -> PurchasedFleet:
        """Copy a listing into the bought fleets collection.

        Raises:
            ListingNotFoundError: No listing has this id.
            PurchaseRejectedError: Own listing, or already bought.
        """
        listing = self.get_listing(listing_id)
        if listing.is_own:
            raise PurchaseRejectedError("Cannot buy your own listing")

        bought = self.bought_fleets()
        if any(f.id == listing_id for f in bought):
            raise PurchaseRejectedError(f"Fleet {listing_id} was already purchased")

        fleet = PurchasedFleet.from_listing(listing)
        bought.append(fleet)
        write_json(
            self.persistent_store, BOUGHT_FLEETS_KEY, [f.to_record() for f in bought]
        )

        logger.info(f"Purchased {fleet.name} for {fleet.purchase_price} USDC")
        self.bus.publish(MARKETPLACE_UPDATED, {"purchased": fleet.id})
        return fleet
