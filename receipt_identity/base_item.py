#!/usr/bin/env python3
"""
Base Item Extractor - Strip size/unit tokens from item names

"Whole Milk 2 Pints" and "Whole Milk 4 Pints" share the base item "whole milk",
so the variant catalog is looked up once per product rather than per SKU text.
"""

import re
import logging
from typing import Any, Optional, Tuple

logger = logging.getLogger(__name__)

# Unit spelling -> canonical unit
UNIT_ALIASES = {
    'ml': 'ml', 'millilitre': 'ml', 'millilitres': 'ml', 'milliliter': 'ml', 'milliliters': 'ml',
    'cl': 'cl', 'centilitre': 'cl', 'centilitres': 'cl',
    'l': 'l', 'ltr': 'l', 'litre': 'l', 'litres': 'l', 'liter': 'l', 'liters': 'l',
    'g': 'g', 'gm': 'g', 'gram': 'g', 'grams': 'g',
    'kg': 'kg', 'kilo': 'kg', 'kilos': 'kg', 'kilogram': 'kg', 'kilograms': 'kg',
    'pt': 'pt', 'pts': 'pt', 'pint': 'pt', 'pints': 'pt',
    'pk': 'pack', 'pack': 'pack', 'packs': 'pack',
    'oz': 'oz', 'ounce': 'oz', 'ounces': 'oz',
    'lb': 'lb', 'lbs': 'lb', 'pound': 'lb', 'pounds': 'lb',
}

# Longest spellings first so "litres" wins over "l" and "kg" over "g"
_UNIT_ALTERNATION = '|'.join(sorted((re.escape(u) for u in UNIT_ALIASES), key=len, reverse=True))

# Optional multipack prefix ("6 x 330ml"), number (decimal point or comma), optional space, unit
SIZE_PATTERN = re.compile(
    r'(?:\d+\s*[x×]\s*)?(\d+(?:[.,]\d+)?)\s*(' + _UNIT_ALTERNATION + r')\b',
    re.IGNORECASE,
)


def canonical_unit(unit: str) -> str:
    """
    Map a unit spelling to its canonical form.

    Example:
        >>> canonical_unit("Pints")
        'pt'
        >>> canonical_unit("tub")
        'tub'
    """
    unit_lower = (unit or '').strip().lower()
    return UNIT_ALIASES.get(unit_lower, unit_lower)


def extract_base_item(name: Any) -> str:
    """
    Derive the base-item key from a free-text item name.

    Args:
        name: Item name, e.g. "WHOLE MILK 2 PINTS"

    Returns:
        Lowercase name with size/unit tokens removed and whitespace collapsed
        ("" for non-string input)

    Example:
        >>> extract_base_item("WHOLE MILK 2 PINTS")
        'whole milk'
        >>> extract_base_item("Coca Cola 6 x 330ml")
        'coca cola'
    """
    if not isinstance(name, str):
        return ''
    base = SIZE_PATTERN.sub(' ', name.lower())
    return re.sub(r'\s+', ' ', base).strip()


def extract_size(name: Any) -> Optional[Tuple[float, str]]:
    """
    Extract the first size token from an item name.

    Returns:
        (value, canonical_unit), or None when the name carries no size

    Example:
        >>> extract_size("Milk 1.5L")
        (1.5, 'l')
    """
    if not isinstance(name, str):
        return None
    match = SIZE_PATTERN.search(name)
    if not match:
        return None
    value = float(match.group(1).replace(',', '.'))
    unit = canonical_unit(match.group(2))
    logger.debug(f"Extracted size from '{name}': {value} {unit}")
    return value, unit
