"""
Catalog identifier (SKU) generation.

Format: PREFIX + SEQUENCE + COST + FINAL_PRICE, upper-cased.

    Category "Naaman", sequence 7, cost 25, final 38.35  ->  NAAM0072538
    No category, sequence 120, cost 150, final 230.10    ->  ITEM120150230

Identifiers are human-meaningful, not guaranteed unique. Collisions are
expected under concurrent load and are resolved by the reconciliation
service, which retries with generate_with_disambiguator().
"""

import random
import re
import time
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Optional
import structlog

from config import settings
from config.catalog_rules import (
    CATEGORY_PREFIXES,
    DEFAULT_PREFIX,
    PREFIX_LENGTH,
    PREFIX_PAD_CHAR,
    SEQUENCE_DIGITS,
    SEQUENCE_MODULUS,
    THREE_DIGIT_PRICE_THRESHOLD,
)

logger = structlog.get_logger(__name__)

_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")


def _round_half_up(value, places: int = 0) -> Decimal:
    """Round like a cashier: 0.5 always goes up."""
    quantum = Decimal(1).scaleb(-places)
    return Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)


def _current_millis() -> int:
    return int(time.time() * 1000)


class IdentifierGenerator:
    """
    Builds catalog identifiers.

    The random source and the clock are injectable so tests can force
    collisions and pin the time-based sequence.
    """

    def __init__(
        self,
        vat_multiplier: Optional[float] = None,
        margin_multiplier: Optional[float] = None,
        rng: Optional[random.Random] = None,
        clock_ms: Optional[Callable[[], int]] = None,
    ):
        self.vat_multiplier = Decimal(str(vat_multiplier or settings.vat_multiplier))
        self.margin_multiplier = Decimal(str(margin_multiplier or settings.margin_multiplier))
        self.rng = rng or random.Random()
        self.clock_ms = clock_ms or _current_millis

    # ===================
    # SEGMENTS
    # ===================

    def resolve_prefix(self, category: Optional[str]) -> str:
        """
        Resolve the 4-character prefix for a category.

        Known categories come from CATEGORY_PREFIXES (exact key, then the
        longest key contained in the category). Anything else uses the first
        four letters/digits of the category, padded with X.
        """
        if not category or not category.strip():
            return DEFAULT_PREFIX

        key = category.strip().lower()
        if key in CATEGORY_PREFIXES:
            return CATEGORY_PREFIXES[key]

        for known in sorted(CATEGORY_PREFIXES, key=len, reverse=True):
            if known in key:
                return CATEGORY_PREFIXES[known]

        letters = _NON_ALNUM.sub("", category)[:PREFIX_LENGTH].upper()
        if not letters:
            return DEFAULT_PREFIX
        return letters.ljust(PREFIX_LENGTH, PREFIX_PAD_CHAR)

    def recommended_final_price(self, cost_price: Optional[float]) -> float:
        """Cost plus VAT plus margin, rounded to cents."""
        cost = Decimal(str(cost_price or 0))
        final = cost * self.vat_multiplier * self.margin_multiplier
        return float(_round_half_up(final, 2))

    @staticmethod
    def price_segment(value: Optional[float]) -> str:
        """Whole-unit price, 2 digits below 100, otherwise 3."""
        whole = int(_round_half_up(value or 0))
        if whole >= THREE_DIGIT_PRICE_THRESHOLD:
            return f"{whole:03d}"
        return f"{whole:02d}"

    def sequence_segment(self, sequence_number: Optional[int]) -> str:
        """Sequence number, or the low-order digits of the clock."""
        if sequence_number is None:
            sequence_number = self.clock_ms()
        return f"{sequence_number % SEQUENCE_MODULUS:0{SEQUENCE_DIGITS}d}"

    # ===================
    # GENERATION
    # ===================

    def generate(
        self,
        category: Optional[str],
        cost_price: Optional[float],
        sequence_number: Optional[int] = None,
        final_price_override: Optional[float] = None,
    ) -> str:
        """
        Build an identifier.

        Args:
            category: Item category (explicit or classified)
            cost_price: Cost price
            sequence_number: Ordering number; None uses the clock
            final_price_override: Actual selling price, when known

        Returns:
            Upper-cased identifier
        """
        final_price = (
            final_price_override
            if final_price_override is not None
            else self.recommended_final_price(cost_price)
        )

        identifier = (
            self.resolve_prefix(category)
            + self.sequence_segment(sequence_number)
            + self.price_segment(cost_price)
            + self.price_segment(final_price)
        ).upper()

        logger.debug(
            "identifier_generated",
            sku=identifier,
            category=category,
            sequence_number=sequence_number
        )

        return identifier

    def generate_with_disambiguator(
        self,
        category: Optional[str],
        cost_price: Optional[float],
        final_price_override: Optional[float] = None,
    ) -> str:
        """Same as generate() with a random sequence segment."""
        return self.generate(
            category,
            cost_price,
            sequence_number=self.rng.randrange(SEQUENCE_MODULUS),
            final_price_override=final_price_override,
        )

    def disambiguate(self, sku: str) -> str:
        """
        Make a hand-entered identifier unique without losing it.

        "MUG-01" -> "MUG-01_1760000000123_482"
        """
        return f"{sku}_{self.clock_ms()}_{self.rng.randrange(SEQUENCE_MODULUS)}"

    @staticmethod
    def parse_sequence(sku: Optional[str], prefix: str) -> Optional[int]:
        """
        Extract the sequence number from an identifier with the given prefix.

        Returns None if the identifier does not follow the format.
        """
        if not sku or not sku.upper().startswith(prefix):
            return None
        digits = sku[len(prefix):len(prefix) + SEQUENCE_DIGITS]
        if len(digits) != SEQUENCE_DIGITS or not digits.isdigit():
            return None
        return int(digits)


# Singleton instance for convenience
_identifier_generator: Optional[IdentifierGenerator] = None

def get_identifier_generator() -> IdentifierGenerator:
    """Get or create IdentifierGenerator instance."""
    global _identifier_generator
    if _identifier_generator is None:
        _identifier_generator = IdentifierGenerator()
    return _identifier_generator
