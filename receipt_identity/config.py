#!/usr/bin/env python3
"""
Configuration for Receipt Identity
Edit these values to change rule locations, match thresholds and logging
"""

from pathlib import Path

# Rule Files
# Store catalogs are YAML files in the rules directory, one per locale:
# - 10_store_catalog_uk.yaml: UK retailers, aliases and strip suffixes
# Override the directory with RECEIPT_IDENTITY_RULES_DIR (e.g. for fixture catalogs)
RULES_DIR_ENV_VAR = 'RECEIPT_IDENTITY_RULES_DIR'
RULES_DIR = Path(__file__).parent / 'rules'
STORE_CATALOG_FILE_PATTERN = '10_store_catalog_{locale}.yaml'
DEFAULT_LOCALE = 'uk'

# Rule loader hot-reload (checksum based, OFF by default)
# Set RECEIPT_IDENTITY_HOT_RELOAD=1 while editing rule files
HOT_RELOAD_ENV_VAR = 'RECEIPT_IDENTITY_HOT_RELOAD'
TRUTHY_VALUES = ('1', 'true', 'yes', 'on', 'y', 't')

# Price-Bracket Matching Settings
# Tolerances are relative to the catalog price, not the receipt price
PRICE_MATCHING = {
    'default_tolerance': 0.20,         # Bracket band: £1.15 matches receipts £0.92 - £1.38
    'exact_band': 0.01,                # Fixed 1% band for exact matches, independent of tolerance
}

# Variant Catalog Files (CLI and batch resolution)
VARIANT_CATALOG = {
    'supported_formats': ['.csv', '.xlsx'],
    'excel_engine': 'openpyxl',
    'required_columns': ['variant_name', 'size', 'unit', 'estimated_price'],
}

# Receipt line fields read by the resolver, in priority order
RECEIPT_FIELDS = {
    'store': ['store_name', 'vendor', 'store'],
    'item_name': ['product_name', 'item_name', 'name'],
    'price': ['unit_price', 'total_price', 'price'],
}

# File Paths
PATHS = {
    'log_folder': 'logs/',             # Folder for log files
}

# Logging Settings
LOGGING = {
    'level': 'INFO',                   # DEBUG, INFO, WARNING, ERROR
    'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    'filename': 'receipt_identity.log',
}
