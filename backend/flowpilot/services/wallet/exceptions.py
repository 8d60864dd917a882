"""Wallet collaborator exceptions."""


class WalletError(Exception):
    """Base exception for wallet calls that were rejected or failed."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class WalletTimeoutError(WalletError):
    """Wallet call exceeded its deadline."""

    pass


class WalletAuthError(WalletError):
    """No usable account, session or signer."""

    pass


class WalletNotFoundError(WalletError):
    """Account or resource not found (404)."""

    pass


class WalletRateLimitError(WalletError):
    """Rate limit exceeded (429)."""

    pass
