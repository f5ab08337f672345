#!/usr/bin/env python3
"""
Store Catalog - Immutable catalog of canonical stores and their aliases

A StoreCatalog is built once (from a YAML rule file or from StoreRecords) and
then only read. It owns the flattened alias -> store id table used by the
store normalizer, and the locale's list of strippable name suffixes.
"""

import re
import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple

from .config import DEFAULT_LOCALE
from .rule_loader import RuleLoader

logger = logging.getLogger(__name__)

COLOR_PATTERN = re.compile(r'^#[0-9A-Fa-f]{6}$')
ID_PATTERN = re.compile(r'^[a-z0-9_]+$')

# Accepted containers for list-valued fields (aliases, cuisines)
LIST_TYPES = (list, tuple, set, frozenset)


class CatalogError(ValueError):
    """Store catalog data breaks a catalog invariant"""


class UnknownStoreId(LookupError):
    """Strict lookup of a store id that is not in the catalog"""

    def __init__(self, store_id: Any):
        self.store_id = store_id
        super().__init__(f"Unknown store ID: {store_id!r}")


class StoreType(str, Enum):
    SUPERMARKET = 'supermarket'
    DISCOUNTER = 'discounter'
    CONVENIENCE = 'convenience'
    PREMIUM = 'premium'
    FROZEN = 'frozen'
    WHOLESALE = 'wholesale'
    SPECIALTY = 'specialty'


def normalize_store_text(text: str) -> str:
    """
    Normalize store text for alias lookup.

    Lowercases, drops everything that is not a letter, digit or whitespace
    (apostrophes, hyphens, ampersands, stray OCR semicolons/quotes), then
    collapses whitespace.

    Example:
        >>> normalize_store_text("  SAINSBURY'S;  Local ")
        'sainsburys local'
    """
    text = text.lower()
    text = ''.join(ch for ch in text if ch.isalnum() or ch.isspace())
    return re.sub(r'\s+', ' ', text).strip()


@dataclass(frozen=True)
class StoreRecord:
    """
    Canonical store with display metadata.

    aliases holds normalized strings (see normalize_store_text);
    cuisines is only set for specialty stores.
    """
    id: str
    display_name: str
    color: str
    type: StoreType
    market_share: float
    aliases: FrozenSet[str] = field(default_factory=frozenset)
    cuisines: Tuple[str, ...] = ()

    def __post_init__(self):
        if not isinstance(self.id, str) or not ID_PATTERN.match(self.id):
            raise CatalogError(f"Store id must be a lowercase slug: {self.id!r}")
        if not isinstance(self.color, str) or not COLOR_PATTERN.match(self.color):
            raise CatalogError(f"Store {self.id}: color must be #RRGGBB, got {self.color!r}")
        if not 0 <= self.market_share <= 100:
            raise CatalogError(f"Store {self.id}: market_share must be within 0-100, got {self.market_share}")
        try:
            store_type = StoreType(self.type)
        except ValueError:
            raise CatalogError(f"Store {self.id}: unknown store type {self.type!r}") from None
        # A bare string would be split into single-letter aliases
        for name in ('aliases', 'cuisines'):
            if not isinstance(getattr(self, name), LIST_TYPES):
                raise CatalogError(f"Store {self.id}: {name} must be a list, got {getattr(self, name)!r}")
        # Coerce loose inputs (lists, sets) into the immutable field types
        object.__setattr__(self, 'type', store_type)
        aliases = frozenset(normalize_store_text(str(alias)) for alias in self.aliases)
        object.__setattr__(self, 'aliases', aliases - {''})
        object.__setattr__(self, 'cuisines', tuple(self.cuisines))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'StoreRecord':
        """Create a StoreRecord from a catalog rule entry"""
        try:
            return cls(
                id=data['id'],
                display_name=data['display_name'],
                color=data['color'],
                type=data['type'],
                market_share=float(data.get('market_share', 0)),
                aliases=data.get('aliases') or (),
                cuisines=data.get('cuisines') or (),
            )
        except KeyError as e:
            raise CatalogError(f"Store entry {data.get('id', '?')!r} is missing field {e.args[0]!r}") from None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'display_name': self.display_name,
            'color': self.color,
            'type': self.type.value,
            'market_share': self.market_share,
            'aliases': sorted(self.aliases),
            'cuisines': list(self.cuisines),
        }


class StoreCatalog:
    """Read-only set of StoreRecords with alias and id lookup tables"""

    def __init__(self, stores: Iterable[StoreRecord], strip_suffixes: Sequence[str] = (), locale: str = DEFAULT_LOCALE):
        """
        Build the catalog and its lookup tables.

        Args:
            stores: StoreRecords in catalog order
            strip_suffixes: Trailing name tokens the normalizer may remove
            locale: Locale tag, informational

        Raises:
            CatalogError: duplicate ids or an alias claimed by two stores
        """
        self.locale = locale
        self._stores: Tuple[StoreRecord, ...] = tuple(stores)

        by_id: Dict[str, StoreRecord] = {}
        alias_to_id: Dict[str, str] = {}
        for store in self._stores:
            if store.id in by_id:
                raise CatalogError(f"Duplicate store id: {store.id}")
            by_id[store.id] = store
            for alias in store.aliases:
                owner = alias_to_id.get(alias)
                if owner is not None and owner != store.id:
                    raise CatalogError(f"Alias {alias!r} is claimed by both {owner} and {store.id}")
                alias_to_id[alias] = store.id

        self._by_id = MappingProxyType(by_id)
        self._alias_to_id = MappingProxyType(alias_to_id)
        self._strip_suffixes = tuple(normalize_store_text(s) for s in strip_suffixes if s)

        logger.debug(f"Built {locale} store catalog: {len(self._stores)} stores, {len(alias_to_id)} aliases")

    @classmethod
    def from_rules(cls, rule_loader: Optional[RuleLoader] = None, locale: str = DEFAULT_LOCALE) -> 'StoreCatalog':
        """
        Build a catalog from 10_store_catalog_<locale>.yaml

        Raises:
            CatalogError: the rule file is missing, empty or invalid
        """
        rule_loader = rule_loader or RuleLoader()
        rules = rule_loader.get_store_catalog_rules(locale)
        if not rules.get('stores'):
            raise CatalogError(f"No stores defined for locale {locale!r} in {rule_loader.rules_dir}")

        catalog = cls.from_dict(rules, locale=locale)
        logger.info(f"Loaded {len(catalog)} stores for locale {locale!r}")
        return catalog

    @classmethod
    def from_dict(cls, rules: Mapping[str, Any], locale: Optional[str] = None) -> 'StoreCatalog':
        """Build a catalog from an already-parsed rule mapping"""
        meta = rules.get('meta') or {}
        return cls(
            stores=[StoreRecord.from_dict(entry) for entry in rules.get('stores') or []],
            strip_suffixes=rules.get('strip_suffixes') or (),
            locale=locale or meta.get('locale', DEFAULT_LOCALE),
        )

    def __len__(self) -> int:
        return len(self._stores)

    def __iter__(self):
        return iter(self._stores)

    def __contains__(self, store_id: object) -> bool:
        return isinstance(store_id, str) and store_id in self._by_id

    @property
    def alias_table(self) -> Mapping[str, str]:
        """Normalized alias -> store id (read-only view)"""
        return self._alias_to_id

    @property
    def strip_suffixes(self) -> Tuple[str, ...]:
        return self._strip_suffixes

    def lookup_alias(self, normalized: str) -> Optional[str]:
        return self._alias_to_id.get(normalized)

    def get(self, store_id: str) -> StoreRecord:
        """
        Strict lookup for ids that came from normalization or the catalog itself.

        Raises:
            UnknownStoreId: store_id is not in the catalog
        """
        if store_id not in self:
            raise UnknownStoreId(store_id)
        return self._by_id[store_id]

    def get_safe(self, store_id: Any) -> Optional[StoreRecord]:
        """Lookup for untrusted ids; None when unknown or not a string"""
        if store_id not in self:
            return None
        return self._by_id[store_id]

    def all_stores(self) -> List[StoreRecord]:
        """All stores, largest market share first (ties keep catalog order). Fresh list per call."""
        return sorted(self._stores, key=lambda store: -store.market_share)

    def stores_by_type(self, store_type: Any) -> List[StoreRecord]:
        try:
            store_type = StoreType(store_type)
        except ValueError:
            return []
        return [store for store in self._stores if store.type is store_type]

    def all_ids(self) -> List[str]:
        return [store.id for store in self._stores]

    def stores_for_cuisines(self, cuisines: Iterable[str]) -> List[StoreRecord]:
        """Stores tagged with any of the given cuisines, catalog order, no duplicates"""
        wanted = set(cuisines)
        return [store for store in self._stores if store.cuisines and wanted.intersection(store.cuisines)]

    def mainstream_stores(self) -> List[StoreRecord]:
        return [store for store in self._stores if store.type is not StoreType.SPECIALTY]

    def specialty_stores(self) -> List[StoreRecord]:
        return self.stores_by_type(StoreType.SPECIALTY)
