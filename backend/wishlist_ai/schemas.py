"""Pydantic schemas for request/response payloads.

The storefront widget reads camelCase keys (`inWishlist`, `conversionScore`),
so response models use field aliases and are serialized by alias.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class WishlistCheckResponse(BaseModel):
    """Response for `GET /apps/wishlist?action=check`."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = Field(default=True)
    in_wishlist: bool = Field(alias="inWishlist", description="Whether the product is on the customer's wishlist")
    conversion_score: Optional[int] = Field(
        default=None,
        alias="conversionScore",
        ge=0,
        le=100,
        description="Stored purchase-likelihood score (0-100), null when not scored",
    )


class WishlistAddResponse(BaseModel):
    """Response for `POST /apps/wishlist?action=add`."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = Field(default=True)
    action: Literal["added"] = "added"
    conversion_score: Optional[int] = Field(default=None, alias="conversionScore", ge=0, le=100)
    message: str


class WishlistRemoveResponse(BaseModel):
    """Response for `POST /apps/wishlist?action=remove`."""

    success: bool = Field(default=True)
    action: Literal["removed"] = "removed"
    message: str


class WishlistErrorResponse(BaseModel):
    """Structured failure returned to the storefront."""

    success: bool = Field(default=False)
    error: str = Field(description="Human-readable error message")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="Service status", example="ok")
