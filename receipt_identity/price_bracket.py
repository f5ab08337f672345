#!/usr/bin/env python3
"""
Price-Bracket Matcher - Infer an item variant from its receipt price

When a receipt line has no size/unit ("MILK £1.15"), the observed price is
compared with the known variants' reference prices:

- exact:     a candidate within 1% of the receipt price (first in input order)
- bracket:   exactly one variant within tolerance
- ambiguous: two or more variants within tolerance - never auto-picked
- no_match:  nothing within tolerance

Deviation is measured relative to the catalog price, not the receipt price,
so over- and under-priced receipts with the same absolute gap can classify
differently.
"""

import math
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple

from .config import PRICE_MATCHING

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = PRICE_MATCHING['default_tolerance']
EXACT_MATCH_BAND = PRICE_MATCHING['exact_band']


class MatchType(str, Enum):
    EXACT = 'exact'
    BRACKET = 'bracket'
    AMBIGUOUS = 'ambiguous'
    NO_MATCH = 'no_match'


@dataclass(frozen=True)
class ItemVariant:
    """A size/unit SKU of a base item with its reference price"""
    variant_name: str
    size: str
    unit: str
    estimated_price: Optional[float]
    base_item: str

    def __post_init__(self):
        if self.estimated_price is None:
            return
        # NaN slips past "< 0" and never compares smaller, so reject it explicitly
        if not math.isfinite(self.estimated_price) or self.estimated_price < 0:
            raise ValueError(f"Variant {self.variant_name!r}: estimated_price must be a finite non-negative number, "
                             f"got {self.estimated_price}")

    @property
    def has_price(self) -> bool:
        return self.estimated_price is not None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'ItemVariant':
        """Create an ItemVariant from a snake_case or camelCase mapping"""
        price = data.get('estimated_price', data.get('estimatedPrice'))
        return cls(
            variant_name=str(data.get('variant_name', data.get('variantName', ''))),
            size=str(data.get('size', '')),
            unit=str(data.get('unit', '')),
            estimated_price=None if price is None else float(price),
            base_item=str(data.get('base_item', data.get('baseItem', ''))),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'variant_name': self.variant_name,
            'size': self.size,
            'unit': self.unit,
            'estimated_price': self.estimated_price,
            'base_item': self.base_item,
        }


@dataclass(frozen=True)
class MatchResult:
    """Outcome of one price-bracket match"""
    matched: bool
    match_type: MatchType
    candidates: Tuple[ItemVariant, ...]
    tolerance: float
    variant: Optional[ItemVariant] = None

    def __post_init__(self):
        object.__setattr__(self, 'match_type', MatchType(self.match_type))
        object.__setattr__(self, 'candidates', tuple(self.candidates))
        if self.matched != (self.variant is not None):
            raise ValueError("variant must be set exactly when matched")
        if self.matched and self.match_type not in (MatchType.EXACT, MatchType.BRACKET):
            raise ValueError(f"matched result cannot be {self.match_type.value}")
        if self.match_type is MatchType.AMBIGUOUS and (self.matched or len(self.candidates) < 2):
            raise ValueError("ambiguous result needs at least two candidates and no variant")
        if self.match_type is MatchType.NO_MATCH and self.candidates:
            raise ValueError("no_match result cannot carry candidates")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'matched': self.matched,
            'variant': self.variant.to_dict() if self.variant else None,
            'match_type': self.match_type.value,
            'candidates': [candidate.to_dict() for candidate in self.candidates],
            'tolerance': self.tolerance,
        }


def calculate_price_diff(receipt_price: float, variant_price: float) -> float:
    """
    Relative price difference |a - b| / |b|, measured against the catalog price b.

    Equal prices give 0.0 (also when both are zero); a zero catalog price with a
    non-zero receipt price gives infinity.

    Example:
        >>> calculate_price_diff(1.20, 1.00)
        0.19999999999999996
    """
    if receipt_price == variant_price:
        return 0.0
    if variant_price == 0:
        return math.inf
    return abs(receipt_price - variant_price) / abs(variant_price)


def _within(receipt_price: float, variant: ItemVariant, band: float) -> bool:
    # Zero-priced variants never match: a relative band around 0 is empty
    if variant.estimated_price is None or variant.estimated_price <= 0:
        return False
    return calculate_price_diff(receipt_price, variant.estimated_price) <= band


# Match ladder: each rule returns a MatchResult or None to defer to the next rule.
MatchRule = Callable[[float, Tuple[ItemVariant, ...], float], Optional[MatchResult]]


def _exact_rule(receipt_price: float, candidates: Tuple[ItemVariant, ...], tolerance: float) -> Optional[MatchResult]:
    for candidate in candidates:
        if _within(receipt_price, candidate, EXACT_MATCH_BAND):
            return MatchResult(True, MatchType.EXACT, candidates, tolerance, variant=candidate)
    return None


def _bracket_rule(receipt_price: float, candidates: Tuple[ItemVariant, ...], tolerance: float) -> Optional[MatchResult]:
    if len(candidates) == 1:
        return MatchResult(True, MatchType.BRACKET, candidates, tolerance, variant=candidates[0])
    return None


def _ambiguous_rule(receipt_price: float, candidates: Tuple[ItemVariant, ...], tolerance: float) -> Optional[MatchResult]:
    if len(candidates) > 1:
        return MatchResult(False, MatchType.AMBIGUOUS, candidates, tolerance)
    return None


MATCH_RULES: Tuple[MatchRule, ...] = (_exact_rule, _bracket_rule, _ambiguous_rule)


def match_price_bracket(receipt_price: float, variants: Sequence[ItemVariant],
                        tolerance: float = DEFAULT_TOLERANCE) -> MatchResult:
    """
    Match a receipt price against known variants.

    Args:
        receipt_price: Price printed on the receipt
        variants: Known variants of one base item (not modified)
        tolerance: Max deviation relative to the catalog price (default 0.20)

    Returns:
        MatchResult; matched only for exact or bracket matches
    """
    candidates = tuple(v for v in variants if _within(receipt_price, v, tolerance))

    for rule in MATCH_RULES:
        result = rule(receipt_price, candidates, tolerance)
        if result is not None:
            logger.debug(f"Price {receipt_price} -> {result.match_type.value} "
                         f"({len(candidates)} of {len(variants)} variants within {tolerance:.0%})")
            return result

    logger.debug(f"Price {receipt_price} -> no_match ({len(variants)} variants)")
    return MatchResult(False, MatchType.NO_MATCH, (), tolerance)


def find_closest_variant(receipt_price: float, variants: Sequence[ItemVariant]) -> Optional[ItemVariant]:
    """
    Nearest-price variant, for suggestions only (ignores tolerance).

    Returns:
        Variant with the smallest absolute price gap (first wins ties),
        or None when no variant has a price
    """
    closest = None
    closest_gap = math.inf
    for variant in variants:
        if variant.estimated_price is None:
            continue
        gap = abs(receipt_price - variant.estimated_price)
        if closest is None or gap < closest_gap:
            closest, closest_gap = variant, gap
    return closest
