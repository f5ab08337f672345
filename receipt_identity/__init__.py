"""
Receipt Identity
Normalizes receipt store names to canonical store ids and infers item
variants (size/unit) from observed prices.
"""

from .base_item import extract_base_item, extract_size, canonical_unit
from .price_bracket import (
    ItemVariant,
    MatchResult,
    MatchType,
    calculate_price_diff,
    find_closest_variant,
    match_price_bracket,
)
from .receipt_resolver import ReceiptLineResolver
from .rule_loader import RuleLoader
from .store_catalog import CatalogError, StoreCatalog, StoreRecord, StoreType, UnknownStoreId
from .store_normalizer import (
    StoreNormalizer,
    get_all_store_ids,
    get_all_stores,
    get_default_catalog,
    get_mainstream_stores,
    get_specialty_stores,
    get_store_info,
    get_store_info_safe,
    get_stores_by_type,
    get_stores_for_cuisines,
    is_valid_store_id,
    normalize_store_name,
)
from .variant_catalog import load_variant_catalog, group_variants

__all__ = [
    'extract_base_item',
    'extract_size',
    'canonical_unit',
    'ItemVariant',
    'MatchResult',
    'MatchType',
    'calculate_price_diff',
    'find_closest_variant',
    'match_price_bracket',
    'ReceiptLineResolver',
    'RuleLoader',
    'CatalogError',
    'StoreCatalog',
    'StoreRecord',
    'StoreType',
    'UnknownStoreId',
    'StoreNormalizer',
    'get_all_store_ids',
    'get_all_stores',
    'get_default_catalog',
    'get_mainstream_stores',
    'get_specialty_stores',
    'get_store_info',
    'get_store_info_safe',
    'get_stores_by_type',
    'get_stores_for_cuisines',
    'is_valid_store_id',
    'normalize_store_name',
    'load_variant_catalog',
    'group_variants',
]
