"""
Wishlist Exceptions
===================

Error taxonomy for the wishlist toggle and scoring pipeline.

Two families:
- Surfaced errors (InvalidRequest, StoreNotFound, StorageError) propagate to
  the router and become `{"success": false, "error": ...}` responses.
- Absorbed errors (FetchUnavailable, ScoringUnavailable) never reach the
  shopper. The state manager and scorer catch them, log them and fall back
  (no score / default score).

RELATED FILES
-------------
- wishlist_ai/services/wishlist_service.py: Raises surfaced errors
- wishlist_ai/services/order_history.py: Raises/absorbs FetchUnavailable
- wishlist_ai/services/conversion_scoring.py: Raises/absorbs ScoringUnavailable
- wishlist_ai/routers/wishlist.py: Maps surfaced errors to HTTP responses
"""

from typing import Optional


class WishlistError(Exception):
    """
    Base exception for all wishlist errors.

    Allows catching every wishlist failure with a single except clause
    while still being able to handle specific error types.
    """

    status_code: int = 500

    def __init__(self, message: str, shop: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.shop = shop

    def to_user_message(self) -> str:
        """
        Convert to the error string returned to the storefront.
        """
        return self.message


class InvalidRequest(WishlistError):
    """Missing or malformed customer/product parameters."""

    status_code = 400

    def __init__(self, message: str = "Missing required parameters", shop: Optional[str] = None):
        super().__init__(message, shop=shop)


class StoreNotFound(WishlistError):
    """
    The shop has no stored access token (never installed or uninstalled).

    Not retried: every wishlist operation needs the credential.
    """

    status_code = 404

    def __init__(self, shop: Optional[str] = None):
        super().__init__("Store not found", shop=shop)


class StorageError(WishlistError):
    """Persistence failure while reading or writing wishlist state."""

    status_code = 500

    def __init__(self, message: str, shop: Optional[str] = None):
        super().__init__(message, shop=shop)

    def to_user_message(self) -> str:
        # Never leak driver messages to the storefront
        return "Internal server error"


class FetchUnavailable(WishlistError):
    """Order history could not be fetched; scoring is skipped for this add."""


class ScoringUnavailable(WishlistError):
    """The scoring model failed or returned nothing usable; default score applies."""
