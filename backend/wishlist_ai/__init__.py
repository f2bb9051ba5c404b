"""Wishlist AI: storefront wishlist backend with AI conversion scoring."""
