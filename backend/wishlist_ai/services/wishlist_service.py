"""Wishlist state manager.

WHAT:
    Owns the add/remove toggle state machine and the read-only status check.
    On the first add of a product, runs the scoring pipeline:
    OrderHistoryFetcher -> extract_features -> ConversionScorer, and stores
    exactly one ConversionRecord for the wishlist entry.

WHY:
    - Add is all-or-nothing for the WishlistEntry; scoring is best-effort on top
    - The score is sticky: computed once per entry lifetime, returned on every later add/check

INVARIANTS:
    - At most one WishlistEntry per (store, customer, product) - uq_wishlist_entry
    - At most one ConversionRecord per WishlistEntry - uq_conversion_wishlist
    - Concurrent adds that lose an insert race re-read the winner's row instead of failing

REFERENCES:
    - wishlist_ai/routers/wishlist.py (HTTP surface)
    - wishlist_ai/services/order_history.py
    - wishlist_ai/services/features.py
    - wishlist_ai/services/conversion_scoring.py
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from wishlist_ai.exceptions import InvalidRequest, StorageError, StoreNotFound
from wishlist_ai.models import ConversionRecord, Store, StoreStatusEnum, WishlistEntry
from wishlist_ai.services.conversion_scoring import (
    ConversionScorer,
    ScoreOutcome,
    Scored,
    Unscored,
    outcome_value,
)
from wishlist_ai.services.features import extract_features, summarize_order
from wishlist_ai.services.order_history import OrderHistoryFetcher
from wishlist_ai.telemetry import capture_exception

logger = logging.getLogger(__name__)

MESSAGE_ADDED = "Product added to wishlist"
MESSAGE_ADDED_UNSCORED = "Product added to wishlist, but the conversion score is unavailable right now"
MESSAGE_ALREADY_ADDED = "Product already in wishlist"
MESSAGE_REMOVED = "Product removed from wishlist"


class WishlistAction(str, enum.Enum):
    check = "check"
    add = "add"
    remove = "remove"


class WishlistState(str, enum.Enum):
    added = "added"
    removed = "removed"


@dataclass(frozen=True)
class ToggleResult:
    state: WishlistState
    message: str
    outcome: Optional[ScoreOutcome] = None

    @property
    def score(self) -> Optional[int]:
        return outcome_value(self.outcome)


@dataclass(frozen=True)
class CheckResult:
    in_wishlist: bool
    score: Optional[int] = None


def normalize_shop_domain(shop: Optional[str]) -> str:
    """Lowercase the shop domain and strip any scheme or trailing slash."""
    if not shop:
        return ""
    shop = shop.strip().lower()
    for prefix in ("https://", "http://"):
        if shop.startswith(prefix):
            shop = shop[len(prefix):]
    return shop.rstrip("/")


class WishlistService:
    """
    Per-request wishlist state manager.

    Usage:
        service = WishlistService(db, fetcher=OrderHistoryFetcher(), scorer=ConversionScorer(client))
        result = await service.toggle("mystore.myshopify.com", "123", "456", WishlistAction.add)
        result.state, result.score, result.message
    """

    def __init__(self, db: Session, fetcher: OrderHistoryFetcher, scorer: ConversionScorer):
        self.db = db
        self.fetcher = fetcher
        self.scorer = scorer

    # =========================================================================
    # Lookups
    # =========================================================================

    @staticmethod
    def _validate(shop: Optional[str], customer_id: Optional[str], product_id: Optional[str]) -> Tuple[str, str, str]:
        customer_id = (customer_id or "").strip()
        product_id = (product_id or "").strip()
        shop = normalize_shop_domain(shop)
        if not customer_id or not product_id or not shop:
            raise InvalidRequest(shop=shop or None)
        return shop, customer_id, product_id

    def _get_store(self, shop: str) -> Store:
        try:
            store = (
                self.db.query(Store)
                .filter(Store.shop == shop, Store.status == StoreStatusEnum.installed)
                .first()
            )
        except SQLAlchemyError as e:
            self._storage_failure(e, shop, "store lookup")
        if store is None:
            logger.warning(f"[WISHLIST] No installed store for shop={shop}")
            raise StoreNotFound(shop=shop)
        return store

    def _find_entry(self, store_id: UUID, customer_id: str, product_id: str) -> Optional[WishlistEntry]:
        return (
            self.db.query(WishlistEntry)
            .filter(
                WishlistEntry.store_id == store_id,
                WishlistEntry.customer_id == customer_id,
                WishlistEntry.product_id == product_id,
            )
            .first()
        )

    def _stored_score(self, wishlist_id: UUID) -> Optional[int]:
        record = (
            self.db.query(ConversionRecord)
            .filter(ConversionRecord.wishlist_id == wishlist_id)
            .order_by(ConversionRecord.created_at)
            .first()
        )
        return record.score if record is not None else None

    def _storage_failure(self, error: SQLAlchemyError, shop: str, operation: str):
        self.db.rollback()
        logger.error(f"[WISHLIST] Storage error during {operation} for shop={shop}: {error}")
        capture_exception(error, extra={"shop": shop, "operation": operation})
        raise StorageError(f"Storage error during {operation}", shop=shop) from error

    # =========================================================================
    # Add
    # =========================================================================

    def _get_or_create_entry(self, store_id: UUID, shop: str, customer_id: str, product_id: str) -> Tuple[UUID, bool]:
        """Insert the entry unless it exists. Returns (entry_id, created).

        The commit is the add's commit point. A concurrent add that committed
        first trips uq_wishlist_entry; we roll back and use its row.
        """
        try:
            entry = self._find_entry(store_id, customer_id, product_id)
            if entry is not None:
                return entry.id, False

            entry = WishlistEntry(store_id=store_id, customer_id=customer_id, product_id=product_id)
            self.db.add(entry)
            try:
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                logger.info(
                    f"[WISHLIST] Concurrent add won the insert for shop={shop} "
                    f"customer={customer_id} product={product_id}"
                )
                entry = self._find_entry(store_id, customer_id, product_id)
                if entry is None:
                    raise StorageError("Wishlist entry vanished after insert conflict", shop=shop)
                return entry.id, False
            return entry.id, True
        except SQLAlchemyError as e:
            self._storage_failure(e, shop, "wishlist insert")

    async def _score_entry(
        self,
        entry_id: UUID,
        shop: str,
        access_token: str,
        customer_id: str,
        product_id: str,
    ) -> ScoreOutcome:
        """Run fetch -> features -> score and store the ConversionRecord."""
        history = await self.fetcher.fetch(customer_id, product_id, shop, access_token)
        if history is None:
            logger.warning(
                f"[WISHLIST] Order history unavailable for shop={shop} customer={customer_id}; "
                "skipping scoring"
            )
            return Unscored("order history unavailable")

        try:
            features = extract_features(history.orders, history.product)
            order_history = [summarize_order(order) for order in history.orders]
        except Exception as e:
            logger.exception(f"[FEATURES] Feature extraction failed for shop={shop} customer={customer_id}: {e}")
            capture_exception(e, extra={"shop": shop, "operation": "feature extraction"})
            return Unscored("feature extraction failed")

        logger.info(
            f"[FEATURES] customer={customer_id} orders={features.total_orders} "
            f"spent={features.total_spent} {features.currency_code} "
            f"similar={features.has_bought_similar}"
        )
        scored = await self.scorer.request_score(features)

        record = ConversionRecord(
            wishlist_id=entry_id,
            order_ids=history.order_ids,
            order_history=order_history,
            score=scored.value,
        )
        self.db.add(record)
        try:
            self.db.commit()
        except IntegrityError:
            # Another add stored its record first, or the entry was removed meanwhile
            self.db.rollback()
            stored = self._stored_score(entry_id)
            if stored is None:
                logger.info(f"[WISHLIST] Entry {entry_id} removed while scoring; record discarded")
                return Unscored("wishlist entry removed while scoring")
            logger.info(f"[WISHLIST] Conversion record for {entry_id} already stored; using it")
            return Scored(stored, source="stored")
        except SQLAlchemyError as e:
            # The entry is already committed; a lost score must not fail the add
            self.db.rollback()
            logger.error(f"[WISHLIST] Could not store conversion record for {entry_id}: {e}")
            capture_exception(e, extra={"shop": shop, "operation": "conversion insert"})
            return Unscored("conversion record could not be stored")

        logger.info(f"[WISHLIST] Stored conversion score {scored.value} ({scored.source}) for entry {entry_id}")
        return scored

    async def add(self, shop: str, customer_id: str, product_id: str) -> ToggleResult:
        shop, customer_id, product_id = self._validate(shop, customer_id, product_id)
        store = self._get_store(shop)
        store_id, access_token = store.id, store.access_token

        entry_id, created = self._get_or_create_entry(store_id, shop, customer_id, product_id)

        try:
            stored = self._stored_score(entry_id)
        except SQLAlchemyError as e:
            self._storage_failure(e, shop, "conversion lookup")

        if stored is not None:
            logger.info(f"[WISHLIST] Already in wishlist: customer={customer_id} product={product_id}")
            return ToggleResult(
                state=WishlistState.added,
                message=MESSAGE_ALREADY_ADDED,
                outcome=Scored(stored, source="stored"),
            )

        logger.info(
            f"[WISHLIST] {'Added' if created else 'Re-scoring'} customer={customer_id} "
            f"product={product_id} shop={shop}"
        )
        outcome = await self._score_entry(entry_id, shop, access_token, customer_id, product_id)
        message = MESSAGE_ADDED if isinstance(outcome, Scored) else MESSAGE_ADDED_UNSCORED
        return ToggleResult(state=WishlistState.added, message=message, outcome=outcome)

    # =========================================================================
    # Remove
    # =========================================================================

    async def remove(self, shop: str, customer_id: str, product_id: str) -> ToggleResult:
        shop, customer_id, product_id = self._validate(shop, customer_id, product_id)
        store = self._get_store(shop)
        store_id = store.id

        try:
            entry_ids: List[UUID] = [
                row.id
                for row in self.db.query(WishlistEntry.id).filter(
                    WishlistEntry.store_id == store_id,
                    WishlistEntry.customer_id == customer_id,
                    WishlistEntry.product_id == product_id,
                )
            ]
            if entry_ids:
                # Conversions first so no scoring state is ever orphaned
                deleted_records = (
                    self.db.query(ConversionRecord)
                    .filter(ConversionRecord.wishlist_id.in_(entry_ids))
                    .delete(synchronize_session=False)
                )
                self.db.flush()
                self.db.query(WishlistEntry).filter(WishlistEntry.id.in_(entry_ids)).delete(
                    synchronize_session=False
                )
                self.db.commit()
                logger.info(
                    f"[WISHLIST] Removed {len(entry_ids)} wishlist row(s) and {deleted_records} conversion "
                    f"record(s) for customer={customer_id} product={product_id}"
                )
            else:
                logger.info(f"[WISHLIST] Remove no-op: customer={customer_id} product={product_id} not in wishlist")
        except SQLAlchemyError as e:
            self._storage_failure(e, shop, "wishlist delete")

        return ToggleResult(state=WishlistState.removed, message=MESSAGE_REMOVED)

    # =========================================================================
    # Toggle + check
    # =========================================================================

    async def toggle(
        self,
        shop: str,
        customer_id: str,
        product_id: str,
        intent: WishlistAction,
    ) -> ToggleResult:
        if intent == WishlistAction.add:
            return await self.add(shop, customer_id, product_id)
        if intent == WishlistAction.remove:
            return await self.remove(shop, customer_id, product_id)
        raise InvalidRequest("Invalid action", shop=shop)

    def check(self, shop: str, customer_id: str, product_id: str) -> CheckResult:
        shop, customer_id, product_id = self._validate(shop, customer_id, product_id)
        store = self._get_store(shop)

        try:
            entry = self._find_entry(store.id, customer_id, product_id)
            if entry is None:
                return CheckResult(in_wishlist=False)
            return CheckResult(in_wishlist=True, score=self._stored_score(entry.id))
        except SQLAlchemyError as e:
            self._storage_failure(e, shop, "wishlist check")
