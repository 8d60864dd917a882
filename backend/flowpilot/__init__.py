"""Flow Pilot: local ledger for DeFi yield-farming agents."""

__version__ = "0.1.0"
__author__ = "Flow Pilot Team"

__all__ = ["__version__", "__author__"]
