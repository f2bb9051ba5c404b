"""
Conversion Scoring Service
==========================

WHAT: Asks the scoring model how likely a shopper is to buy a wishlisted product.
WHY: The storefront shows the 0-100 likelihood next to the wishlist button and
     merchants use it to prioritise follow-ups.
REFERENCES:
    - wishlist_ai/services/features.py (FeatureSummary input)
    - wishlist_ai/services/wishlist_service.py (consumer)

HOW IT WORKS:
    1. Render a deterministic prompt from the FeatureSummary
    2. Ask the model for a single number (temperature 0, tiny max_tokens)
    3. Take the first run of digits in the reply (0 if none), clamp to [0, 100]
    4. On ANY model failure return DEFAULT_SCORE (50); never raise
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Literal, Optional, Union

from openai import AsyncOpenAI

from wishlist_ai.exceptions import ScoringUnavailable
from wishlist_ai.services.features import FeatureSummary

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"

DEFAULT_SCORE = 50

MIN_SCORE = 0
MAX_SCORE = 100

SYSTEM_PROMPT = (
    "You are an e-commerce analyst. You estimate how likely a shopper is to "
    "purchase a product they saved to their wishlist. Answer with a single "
    "integer between 0 and 100 and nothing else."
)

SCORING_PROMPT = """Customer purchase history (most recent {total_orders} orders sampled):
- Total orders: {total_orders}
- Total spent: {total_spent} {currency_code}
- Average order value: {avg_order_value} {currency_code}
- Previously purchased categories: {categories}
- Has bought from the same category before: {has_bought_similar}

Wishlisted product:
- Title: {product_title}
- Category: {product_category}
- Price: {product_max_price} {product_currency}

On a scale of 0 to 100, how likely is this customer to purchase this product?
Respond with only the number."""

_DIGITS = re.compile(r"[0-9]+")


# =============================================================================
# Outcome types
# =============================================================================

@dataclass(frozen=True)
class Scored:
    """A score exists.

    source:
        model   - parsed from the model reply
        default - the model failed, DEFAULT_SCORE substituted
        stored  - read back from an existing conversion record
    """
    value: int
    source: Literal["model", "default", "stored"] = "model"


@dataclass(frozen=True)
class Unscored:
    """No score exists (e.g. order history could not be fetched)."""
    reason: str


ScoreOutcome = Union[Scored, Unscored]


def outcome_value(outcome: Optional[ScoreOutcome]) -> Optional[int]:
    """Collapse an outcome into the nullable number the storefront expects."""
    if isinstance(outcome, Scored):
        return outcome.value
    return None


# =============================================================================
# Prompt + parsing
# =============================================================================

def build_scoring_prompt(features: FeatureSummary) -> str:
    categories = ", ".join(sorted(features.purchased_categories)) or "none"
    return SCORING_PROMPT.format(
        total_orders=features.total_orders,
        total_spent=features.total_spent,
        currency_code=features.currency_code,
        avg_order_value=features.avg_order_value,
        categories=categories,
        has_bought_similar="yes" if features.has_bought_similar else "no",
        product_title=features.product_title or "unknown",
        product_category=features.product_category or "uncategorized",
        product_max_price=features.product_max_price,
        product_currency=features.product_currency,
    )


def clamp_score(value: int) -> int:
    return max(MIN_SCORE, min(MAX_SCORE, value))


def parse_score(text: Optional[str]) -> int:
    """First run of ASCII digits anywhere in the text, clamped to [0, 100].

    >>> parse_score("Score: 35%")
    35
    >>> parse_score("no idea")
    0
    >>> parse_score("250")
    100
    """
    if not text:
        return MIN_SCORE
    match = _DIGITS.search(text)
    if not match:
        return MIN_SCORE
    # Clamp on the digit string; int() rejects very long runs
    digits = match.group().lstrip("0") or "0"
    if len(digits) > len(str(MAX_SCORE)):
        return MAX_SCORE
    return clamp_score(int(digits))


# =============================================================================
# Client
# =============================================================================

def build_scoring_client(api_key: Optional[str], timeout: float = 15.0) -> AsyncOpenAI:
    """Create the process-wide scoring client.

    Called once from create_app(). A missing key is fatal: the app must not
    start without a scoring credential.
    """
    if not api_key:
        raise RuntimeError(
            "OPENAI_API_KEY not configured. "
            "Set it in your .env file or environment."
        )
    return AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=0)


class ConversionScorer:
    """
    Scores a FeatureSummary with the generative model.

    Usage:
        scorer = ConversionScorer(client=build_scoring_client(key))
        value = await scorer.score(features)  # always an int in [0, 100]

    The client is injected so tests can pass a fake with the same
    `chat.completions.create` coroutine.
    """

    def __init__(self, client, model: str = DEFAULT_MODEL, timeout: float = 15.0):
        self.client = client
        self.model = model
        self.timeout = timeout

    async def _complete(self, prompt: str) -> str:
        response = await asyncio.wait_for(
            self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=10,
                temperature=0,
            ),
            timeout=self.timeout,
        )
        if not response.choices:
            raise ScoringUnavailable("Model returned no choices")
        content = response.choices[0].message.content
        if content is None:
            raise ScoringUnavailable("Model returned an empty message")
        return content

    async def request_score(self, features: FeatureSummary) -> Scored:
        prompt = build_scoring_prompt(features)
        try:
            text = await self._complete(prompt)
            value = parse_score(text)
        except asyncio.TimeoutError:
            logger.warning(f"[SCORING] Model call timed out after {self.timeout}s, using default {DEFAULT_SCORE}")
            return Scored(DEFAULT_SCORE, source="default")
        except Exception as e:
            logger.error(f"[SCORING] Model call failed ({type(e).__name__}: {e}), using default {DEFAULT_SCORE}")
            return Scored(DEFAULT_SCORE, source="default")

        logger.info(f"[SCORING] Model replied {text.strip()[:40]!r} -> score {value}")
        return Scored(value, source="model")

    async def score(self, features: FeatureSummary) -> int:
        return (await self.request_score(features)).value
