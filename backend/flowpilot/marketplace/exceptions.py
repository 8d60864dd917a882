"""Marketplace exceptions."""


class MarketplaceError(Exception):
    """Base exception for marketplace operations."""

    pass


class ListingNotFoundError(MarketplaceError):
    def __init__(self, listing_id: str):
        super().__init__(f"Listing not found: {listing_id}")
        self.listing_id = listing_id


class PurchaseRejectedError(MarketplaceError):
    """The listing cannot be bought (own listing or already purchased)."""

    pass


class EmptyFleetError(MarketplaceError):
    """There are no agents to list."""

    pass
