#!/usr/bin/env python3
"""
Receipt Line Resolver - Tie store normalization and variant matching together

For every receipt:
1. Normalize the store name to a canonical store id
2. For every item line, derive the base item and look up its variants
3. If the item name already states a size that one variant carries, use it;
   a stated size that no variant carries is never overridden by the price
4. Otherwise classify the price with the price-bracket matcher and, when
   nothing is matched, attach the closest-price variant as a suggestion

The resolver never mutates its inputs; it returns new dictionaries.
"""

import math
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .base_item import canonical_unit, extract_base_item, extract_size
from .config import RECEIPT_FIELDS
from .price_bracket import (
    DEFAULT_TOLERANCE,
    ItemVariant,
    MatchType,
    find_closest_variant,
    match_price_bracket,
)
from .store_catalog import StoreCatalog
from .store_normalizer import StoreNormalizer

logger = logging.getLogger(__name__)


def _first_field(data: Mapping[str, Any], names: Sequence[str]) -> Any:
    for name in names:
        value = data.get(name)
        if value is not None and value != '':
            return value
    return None


def _parse_price(value: Any) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, (int, float)):
        price = float(value)
    else:
        text = str(value).strip().lstrip('£$€').replace(',', '')
        try:
            price = float(text)
        except ValueError:
            return None
    # Blank spreadsheet cells arrive as NaN
    return None if math.isnan(price) else price


def _same_size(variant: ItemVariant, value: float, unit: str) -> bool:
    try:
        variant_value = float(variant.size)
    except (TypeError, ValueError):
        return False
    return variant_value == value and canonical_unit(variant.unit) == unit


class ReceiptLineResolver:
    """Resolve store ids and item variants for parsed receipt data"""

    def __init__(self, store_catalog: StoreCatalog, variant_catalog: Mapping[str, Sequence[ItemVariant]],
                 tolerance: float = DEFAULT_TOLERANCE):
        """
        Args:
            store_catalog: Catalog used for store normalization
            variant_catalog: base_item -> known variants (read only)
            tolerance: Price-bracket tolerance
        """
        self.normalizer = StoreNormalizer(store_catalog)
        self.variant_catalog = variant_catalog
        self.tolerance = tolerance

    def resolve_store(self, raw_store: Any) -> Optional[str]:
        return self.normalizer.normalize(raw_store)

    def resolve_item(self, item_name: Any, price: Any) -> Dict[str, Any]:
        """
        Resolve one item line

        Returns:
            Dictionary with base_item, match_type, match_source, matched_variant,
            candidates and suggested_variant
        """
        base_item = extract_base_item(item_name)
        variants = list(self.variant_catalog.get(base_item, ()))
        receipt_price = _parse_price(price)

        resolved: Dict[str, Any] = {
            'base_item': base_item,
            'receipt_price': receipt_price,
            'match_type': MatchType.NO_MATCH.value,
            'match_source': None,
            'matched_variant': None,
            'candidates': [],
            'suggested_variant': None,
        }

        if not variants:
            logger.debug(f"No variants known for base item '{base_item}'")
            return resolved

        size = extract_size(item_name)
        if size is not None:
            sized = [v for v in variants if _same_size(v, *size)]
            if len(sized) == 1:
                resolved.update({
                    'match_type': MatchType.EXACT.value,
                    'match_source': 'name',
                    'matched_variant': sized[0].to_dict(),
                    'candidates': [sized[0].to_dict()],
                })
                return resolved
            if not sized:
                # The stated size rules out every known variant; suggest only
                logger.debug(f"Size {size[0]:g} {size[1]} in '{item_name}' matches no variant of '{base_item}'")
                resolved['match_source'] = 'name'
                if receipt_price is not None:
                    closest = find_closest_variant(receipt_price, variants)
                    resolved['suggested_variant'] = closest.to_dict() if closest else None
                return resolved
            # Several variants share the stated size: let the price decide among them
            variants = sized

        if receipt_price is None:
            logger.debug(f"No usable price for '{item_name}', skipping price-bracket match")
            return resolved

        result = match_price_bracket(receipt_price, variants, self.tolerance)
        resolved.update({
            'match_type': result.match_type.value,
            'match_source': 'price',
            'matched_variant': result.variant.to_dict() if result.variant else None,
            'candidates': [candidate.to_dict() for candidate in result.candidates],
        })
        if not result.matched:
            closest = find_closest_variant(receipt_price, variants)
            resolved['suggested_variant'] = closest.to_dict() if closest else None
        return resolved

    def resolve_receipt(self, receipt: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Resolve a parsed receipt: {'store_name': ..., 'items': [{'product_name', 'unit_price'}, ...]}

        Returns:
            Copy of the receipt with store_id and per-item resolution fields added
        """
        resolved = dict(receipt)
        resolved['store_id'] = self.resolve_store(_first_field(receipt, RECEIPT_FIELDS['store']))

        items: List[Dict[str, Any]] = []
        for item in receipt.get('items') or []:
            new_item = dict(item)
            new_item.update(self.resolve_item(
                _first_field(item, RECEIPT_FIELDS['item_name']),
                _first_field(item, RECEIPT_FIELDS['price']),
            ))
            items.append(new_item)
        resolved['items'] = items

        matched = sum(1 for item in items if item['matched_variant'])
        logger.info(f"Resolved receipt for store {resolved['store_id']}: {matched}/{len(items)} items matched to a variant")
        return resolved
