"""Storefront wishlist endpoints.

WHAT:
    Thin HTTP wrapper for the wishlist state manager, routed through the
    Shopify App Proxy at /apps/wishlist.

WHY:
    - Routers handle request parsing and response shaping only
    - Toggle/scoring logic lives in wishlist_ai/services/wishlist_service.py

CONTRACT:
    GET  /apps/wishlist?action=check&customer_id=&product_id=&shop=
         -> {success, inWishlist, conversionScore}
    POST /apps/wishlist?action=add&...     -> {success, action: "added", conversionScore, message}
    POST /apps/wishlist?action=remove&...  -> {success, action: "removed", message}
    Failures -> {success: false, error}

REFERENCES:
    - wishlist_ai/services/wishlist_service.py
    - wishlist_ai/schemas.py
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from wishlist_ai.deps import get_wishlist_service
from wishlist_ai.exceptions import WishlistError
from wishlist_ai.schemas import (
    WishlistAddResponse,
    WishlistCheckResponse,
    WishlistErrorResponse,
    WishlistRemoveResponse,
)
from wishlist_ai.services.wishlist_service import WishlistAction, WishlistService

logger = logging.getLogger(__name__)

INVALID_ACTION = "Invalid action"
MISSING_PARAMETERS = "Missing required parameters"


router = APIRouter(
    prefix="/apps/wishlist",
    tags=["Wishlist"],
)


# =============================================================================
# Helpers
# =============================================================================

def _json(model: BaseModel, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=model.model_dump(by_alias=True))


def _error(message: str, status_code: int) -> JSONResponse:
    return _json(WishlistErrorResponse(error=message), status_code=status_code)


def _error_from(exc: WishlistError) -> JSONResponse:
    return _error(exc.to_user_message(), exc.status_code)


def _parse_action(raw: Optional[str], allowed: set) -> Optional[WishlistAction]:
    try:
        action = WishlistAction((raw or "").strip().lower())
    except ValueError:
        return None
    return action if action in allowed else None


def _resolve_params(
    customer_id: Optional[str],
    logged_in_customer_id: Optional[str],
    shop: Optional[str],
    x_shop_domain: Optional[str],
):
    # The App Proxy signs requests with logged_in_customer_id and shop;
    # the widget sends customer_id and may send the domain as a header.
    return (customer_id or logged_in_customer_id), (shop or x_shop_domain)


# =============================================================================
# Endpoints
# =============================================================================

@router.get(
    "",
    response_model=WishlistCheckResponse,
    responses={400: {"model": WishlistErrorResponse}, 404: {"model": WishlistErrorResponse}},
    summary="Check wishlist membership",
)
async def check_wishlist(
    action: Optional[str] = Query(None, description="Must be 'check'"),
    customer_id: Optional[str] = Query(None, description="Shopify customer id"),
    product_id: Optional[str] = Query(None, description="Shopify product id"),
    shop: Optional[str] = Query(None, description="Shop domain, e.g. mystore.myshopify.com"),
    logged_in_customer_id: Optional[str] = Query(None, include_in_schema=False),
    x_shop_domain: Optional[str] = Header(None),
    service: WishlistService = Depends(get_wishlist_service),
):
    """Return whether the product is on the customer's wishlist and its stored score."""
    customer_id, shop = _resolve_params(customer_id, logged_in_customer_id, shop, x_shop_domain)
    if not customer_id or not product_id:
        return _error(MISSING_PARAMETERS, 400)
    if _parse_action(action, {WishlistAction.check}) is None:
        return _error(INVALID_ACTION, 400)

    try:
        result = service.check(shop, customer_id, product_id)
    except WishlistError as e:
        return _error_from(e)

    return _json(WishlistCheckResponse(in_wishlist=result.in_wishlist, conversion_score=result.score))


@router.post(
    "",
    responses={400: {"model": WishlistErrorResponse}, 404: {"model": WishlistErrorResponse}},
    summary="Add or remove a wishlist product",
)
async def toggle_wishlist(
    action: Optional[str] = Query(None, description="'add' or 'remove'"),
    customer_id: Optional[str] = Query(None, description="Shopify customer id"),
    product_id: Optional[str] = Query(None, description="Shopify product id"),
    shop: Optional[str] = Query(None, description="Shop domain, e.g. mystore.myshopify.com"),
    logged_in_customer_id: Optional[str] = Query(None, include_in_schema=False),
    x_shop_domain: Optional[str] = Header(None),
    service: WishlistService = Depends(get_wishlist_service),
):
    """Toggle wishlist membership. The first add also computes the conversion score."""
    customer_id, shop = _resolve_params(customer_id, logged_in_customer_id, shop, x_shop_domain)
    if not customer_id or not product_id:
        return _error(MISSING_PARAMETERS, 400)
    intent = _parse_action(action, {WishlistAction.add, WishlistAction.remove})
    if intent is None:
        return _error(INVALID_ACTION, 400)

    try:
        result = await service.toggle(shop, customer_id, product_id, intent)
    except WishlistError as e:
        logger.warning(f"[WISHLIST] {intent.value} failed for shop={shop}: {e}")
        return _error_from(e)

    if intent == WishlistAction.add:
        return _json(WishlistAddResponse(conversion_score=result.score, message=result.message))
    return _json(WishlistRemoveResponse(message=result.message))
