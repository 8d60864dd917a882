"""Logfire cloud observability initialization and instrumentation."""

import logging

import logfire

from flowpilot import __version__
from flowpilot.config import Settings

logger = logging.getLogger(__name__)


def initialize_logfire(settings: Settings) -> None:
    """
    Initialize Logfire when a token is configured.

    Call once at startup, before any wallet client is created, so that the
    HTTPX instrumentation covers Flow Access API calls.

    Args:
        settings: Application settings containing the Logfire token
    """
    if not settings.logfire_token:
        logger.warning("Logfire token not set - observability disabled")
        return

    try:
        logfire.configure(
            token=settings.logfire_token,
            service_name="flowpilot",
            service_version=__version__,
            environment="wallet" if settings.wallet.has_account else "demo",
        )

        # Flow Access API calls
        logfire.instrument_httpx()

        root_logger = logging.getLogger()
        root_logger.addHandler(logfire.LogfireLoggingHandler())

        logger.info("✓ Logfire cloud tracking initialized")

    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")
