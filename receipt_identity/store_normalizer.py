#!/usr/bin/env python3
"""
Store Normalizer - Map raw receipt store names to canonical store ids

Algorithm (order is significant):
1. Reject non-string / blank input
2. Normalize text (lowercase, drop punctuation, collapse whitespace)
3. Exact alias lookup on the full normalized string
4. Strip trailing format/corporate suffixes one at a time, retrying the lookup
5. Give up (None) - never guess the closest store

Full-string lookup must run before any stripping: aliases such as
"nisa extra" or "tesco stores ltd" contain strippable tokens themselves.

Example:
    >>> normalize_store_name("TESCO STORES LTD")
    'tesco'
    >>> normalize_store_name("Carrefour") is None
    True
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .config import DEFAULT_LOCALE
from .rule_loader import RuleLoader
from .store_catalog import StoreCatalog, StoreRecord, normalize_store_text

logger = logging.getLogger(__name__)

# One loader per (rules dir, hot-reload) pair, as resolved from the environment
_loader_cache: Dict[Tuple[str, bool], RuleLoader] = {}
# (rules dir, hot-reload, locale) -> (parsed rules the catalog was built from, catalog)
_catalog_cache: Dict[Tuple[str, bool, str], Tuple[Dict[str, Any], StoreCatalog]] = {}


def _default_rule_loader() -> RuleLoader:
    loader = RuleLoader()
    return _loader_cache.setdefault((str(loader.rules_dir), loader.hot_reload_enabled), loader)


def get_default_catalog(locale: str = DEFAULT_LOCALE) -> StoreCatalog:
    """
    Store catalog for a locale from the default rules directory.

    RECEIPT_IDENTITY_RULES_DIR and RECEIPT_IDENTITY_HOT_RELOAD are read on every
    call. The catalog is rebuilt only when the loader hands back different rules,
    which happens after a hot-reload picks up an edited file.
    """
    loader = _default_rule_loader()
    key = (str(loader.rules_dir), loader.hot_reload_enabled, locale)
    rules = loader.get_store_catalog_rules(locale)

    cached = _catalog_cache.get(key)
    if cached is not None and cached[0] is rules:
        return cached[1]

    catalog = StoreCatalog.from_rules(loader, locale=locale)
    _catalog_cache[key] = (rules, catalog)
    return catalog


class StoreNormalizer:
    """Normalize store names against an injected StoreCatalog"""

    def __init__(self, catalog: StoreCatalog):
        self.catalog = catalog

    def normalize(self, raw: Any) -> Optional[str]:
        """
        Normalize a raw store name to a canonical store id.

        Args:
            raw: Store name from a receipt or user input (any type)

        Returns:
            Store id, or None when the input is not a string, is blank or is unknown
        """
        if not isinstance(raw, str):
            return None

        cleaned = normalize_store_text(raw)
        if not cleaned:
            return None

        store_id = self.catalog.lookup_alias(cleaned)
        if store_id:
            logger.debug(f"Store alias match: '{raw}' -> {store_id}")
            return store_id

        stripped = cleaned
        while True:
            shorter = self._strip_one_suffix(stripped)
            if shorter is None:
                break
            stripped = shorter
            store_id = self.catalog.lookup_alias(stripped)
            if store_id:
                logger.debug(f"Store alias match after suffix strip: '{raw}' -> '{stripped}' -> {store_id}")
                return store_id

        logger.debug(f"No store match for '{raw}'")
        return None

    def _strip_one_suffix(self, text: str) -> Optional[str]:
        """Remove one trailing suffix token; None if nothing strippable (a lone token is kept)"""
        head, sep, last = text.rpartition(' ')
        if sep and head and last in self.catalog.strip_suffixes:
            return head
        return None


def _resolve(catalog: Optional[StoreCatalog]) -> StoreCatalog:
    # An explicitly passed catalog wins even when empty
    return get_default_catalog() if catalog is None else catalog


def _normalizer(catalog: Optional[StoreCatalog]) -> StoreNormalizer:
    return StoreNormalizer(_resolve(catalog))


def normalize_store_name(raw: Any, catalog: Optional[StoreCatalog] = None) -> Optional[str]:
    """Normalize a raw store name; see StoreNormalizer.normalize"""
    return _normalizer(catalog).normalize(raw)


def get_store_info(store_id: str, catalog: Optional[StoreCatalog] = None) -> StoreRecord:
    """
    Full StoreRecord for an id from normalization or the catalog.

    Raises:
        UnknownStoreId: id is not in the catalog
    """
    return _resolve(catalog).get(store_id)


def get_store_info_safe(store_id: Any, catalog: Optional[StoreCatalog] = None) -> Optional[StoreRecord]:
    """StoreRecord for an untrusted id, or None"""
    return _resolve(catalog).get_safe(store_id)


def get_all_stores(catalog: Optional[StoreCatalog] = None) -> List[StoreRecord]:
    """All stores sorted by market share, descending"""
    return _resolve(catalog).all_stores()


def get_stores_by_type(store_type: Any, catalog: Optional[StoreCatalog] = None) -> List[StoreRecord]:
    return _resolve(catalog).stores_by_type(store_type)


def is_valid_store_id(store_id: Any, catalog: Optional[StoreCatalog] = None) -> bool:
    return store_id in _resolve(catalog)


def get_all_store_ids(catalog: Optional[StoreCatalog] = None) -> List[str]:
    return _resolve(catalog).all_ids()


def get_stores_for_cuisines(cuisines: Iterable[str], catalog: Optional[StoreCatalog] = None) -> List[StoreRecord]:
    """Specialty stores relevant to any of the given cuisines"""
    return _resolve(catalog).stores_for_cuisines(cuisines)


def get_mainstream_stores(catalog: Optional[StoreCatalog] = None) -> List[StoreRecord]:
    return _resolve(catalog).mainstream_stores()


def get_specialty_stores(catalog: Optional[StoreCatalog] = None) -> List[StoreRecord]:
    return _resolve(catalog).specialty_stores()
