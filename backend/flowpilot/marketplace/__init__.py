from .catalog import generate_catalog
from .exceptions import (
    EmptyFleetError,
    ListingNotFoundError,
    MarketplaceError,
    PurchaseRejectedError,
)
from .listings import Marketplace
from .models import FleetListing, ListedAgent, PurchasedFleet

__all__ = [
    "generate_catalog",
    "EmptyFleetError",
    "ListingNotFoundError",
    "MarketplaceError",
    "PurchaseRejectedError",
    "Marketplace",
    "FleetListing",
    "ListedAgent",
    "PurchasedFleet",
]
