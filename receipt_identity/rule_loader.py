#!/usr/bin/env python3
"""
Rule Loader - Load YAML rules from the receipt_identity rules directory
Store catalogs are kept one file per locale (10_store_catalog_<locale>.yaml)
"""

import os
import yaml
import logging
import hashlib
from pathlib import Path
from typing import Dict, Any, List, Optional, Union

from .config import (
    RULES_DIR,
    RULES_DIR_ENV_VAR,
    HOT_RELOAD_ENV_VAR,
    TRUTHY_VALUES,
    STORE_CATALOG_FILE_PATTERN,
)

logger = logging.getLogger(__name__)


def _hot_reload_from_env() -> bool:
    return os.environ.get(HOT_RELOAD_ENV_VAR, '').strip().lower() in TRUTHY_VALUES


class RuleLoader:
    """Load and cache YAML rule files"""

    def __init__(self, rules_dir: Optional[Union[str, Path]] = None, enable_hot_reload: Optional[bool] = None):
        """
        Initialize rule loader with rules directory

        Args:
            rules_dir: Path to the rules directory. Defaults to RECEIPT_IDENTITY_RULES_DIR,
                       then to the rules shipped with the package
            enable_hot_reload: Enable checksum-based hot-reload. None reads
                               RECEIPT_IDENTITY_HOT_RELOAD (default: off)
        """
        self.rules_dir = Path(rules_dir or os.environ.get(RULES_DIR_ENV_VAR) or RULES_DIR)
        if enable_hot_reload is None:
            enable_hot_reload = _hot_reload_from_env()
        self._rules_cache: Dict[str, Dict[str, Any]] = {}
        self._file_checksums = {} if enable_hot_reload else None  # Only track when enabled
        self._enable_hot_reload = enable_hot_reload
        self._file_read_count = 0

    @property
    def hot_reload_enabled(self) -> bool:
        return self._enable_hot_reload

    def _calculate_file_checksum(self, file_path: Path) -> str:
        """Calculate MD5 checksum for a file"""
        try:
            with open(file_path, 'rb') as f:
                return hashlib.md5(f.read()).hexdigest()
        except OSError as e:
            logger.warning(f"Error calculating checksum for {file_path}: {e}")
            return ''

    def _should_reload_file(self, filename: str, rule_file: Path) -> bool:
        """Check if a rule file should be reloaded based on checksum"""
        # Fast path: when hot-reload is disabled, only check cache
        if not self._enable_hot_reload:
            return filename not in self._rules_cache

        if not rule_file.exists():
            return False

        current_checksum = self._calculate_file_checksum(rule_file)
        cached_checksum = self._file_checksums.get(filename)

        if current_checksum != cached_checksum:
            if cached_checksum:
                logger.debug(f"Rule file {filename} modified, reloading...")
            return True

        return False

    def _load_yaml_file(self, file_path: Path) -> Dict[str, Any]:
        """Load a YAML file directly"""
        self._file_read_count += 1
        with open(file_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Rule file {file_path} must contain a mapping at the top level")
        return data

    def load_rule_file_by_name(self, filename: str) -> Dict[str, Any]:
        """
        Load a specific rule file by filename (e.g., '10_store_catalog_uk.yaml')

        Args:
            filename: Rule file name

        Returns:
            Rule dictionary or empty dict if not found
        """
        rule_file = self.rules_dir / filename

        if not rule_file.exists():
            logger.warning(f"Rule file not found: {rule_file}")
            return {}

        if self._should_reload_file(filename, rule_file):
            self._rules_cache[filename] = self._load_yaml_file(rule_file)
            if self._enable_hot_reload:
                self._file_checksums[filename] = self._calculate_file_checksum(rule_file)
            logger.debug(f"Loaded rule file: {filename}")

        return self._rules_cache.get(filename, {})

    def get_store_catalog_rules(self, locale: str) -> Dict[str, Any]:
        """
        Get store catalog rules for a locale from 10_store_catalog_<locale>.yaml

        Returns:
            Dictionary with 'meta', 'strip_suffixes' and 'stores' keys (empty if missing)
        """
        return self.load_rule_file_by_name(STORE_CATALOG_FILE_PATTERN.format(locale=locale.lower()))

    def available_locales(self) -> List[str]:
        """List locales that have a store catalog file in the rules directory"""
        if not self.rules_dir.is_dir():
            return []
        prefix, suffix = STORE_CATALOG_FILE_PATTERN.split('{locale}')
        locales = []
        for path in sorted(self.rules_dir.iterdir()):
            name = path.name
            if name.startswith(prefix) and name.endswith(suffix) and len(name) > len(prefix) + len(suffix):
                locales.append(name[len(prefix):-len(suffix)])
        return locales

    def clear_cache(self):
        """Clear the rules cache"""
        logger.debug("Clearing rules cache")
        self._rules_cache.clear()
        if self._file_checksums is not None:
            self._file_checksums.clear()

    def get_file_read_count(self) -> int:
        """Number of rule files read from disk since the last reset"""
        return self._file_read_count

    def reset_file_read_count(self):
        self._file_read_count = 0
