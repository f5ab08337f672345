#!/usr/bin/env python3
"""
Variant Catalog - Load item variants from CSV/Excel files

Columns: variant_name, size, unit, estimated_price [, base_item]
Blank base_item values are derived from variant_name with extract_base_item.
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Union

import pandas as pd

from .base_item import extract_base_item
from .config import VARIANT_CATALOG
from .price_bracket import ItemVariant

logger = logging.getLogger(__name__)


def read_table(path: Union[str, Path]) -> pd.DataFrame:
    """
    Read a CSV or Excel file into a DataFrame of strings (blank cells are NaN)

    Raises:
        FileNotFoundError: file does not exist
        ValueError: unsupported file extension
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    suffix = path.suffix.lower()
    if suffix not in VARIANT_CATALOG['supported_formats']:
        raise ValueError(f"Unsupported file format {suffix!r}; expected one of {VARIANT_CATALOG['supported_formats']}")

    if suffix == '.csv':
        df = pd.read_csv(path, dtype=str)
    else:
        df = pd.read_excel(path, engine=VARIANT_CATALOG['excel_engine'], dtype=str)

    df.columns = [str(col).strip().lower() for col in df.columns]
    return df


def _clean(value) -> str:
    if value is None or pd.isna(value):
        return ''
    return str(value).strip()


def variants_from_dataframe(df: pd.DataFrame, source: str = 'Variant catalog') -> List[ItemVariant]:
    """
    Convert catalog rows into ItemVariants (row order kept)

    Raises:
        ValueError: a required column is missing, or a row has a bad price.
                    Row numbers count the header as row 1, as spreadsheets do.
    """
    missing = [col for col in VARIANT_CATALOG['required_columns'] if col not in df.columns]
    if missing:
        raise ValueError(f"{source} is missing required columns: {missing}")

    has_base_item = 'base_item' in df.columns
    variants = []
    for row_number, row in enumerate(df.to_dict('records'), start=2):
        raw_price = _clean(row.get('estimated_price'))
        price = raw_price.lstrip('£$€')
        try:
            estimated_price = float(price) if price else None
        except ValueError:
            raise ValueError(f"{source}: row {row_number}: estimated_price {raw_price!r} is not a number") from None

        variant_name = _clean(row.get('variant_name'))
        base_item = _clean(row.get('base_item')) if has_base_item else ''
        try:
            variants.append(ItemVariant(
                variant_name=variant_name,
                size=_clean(row.get('size')),
                unit=_clean(row.get('unit')),
                estimated_price=estimated_price,
                base_item=(base_item or extract_base_item(variant_name)).lower(),
            ))
        except ValueError as e:
            raise ValueError(f"{source}: row {row_number}: {e}") from e
    return variants


def group_variants(variants: Iterable[ItemVariant]) -> Dict[str, List[ItemVariant]]:
    """Group variants by base item, keeping input order within each group"""
    catalog: Dict[str, List[ItemVariant]] = {}
    for variant in variants:
        catalog.setdefault(variant.base_item, []).append(variant)
    return catalog


def load_variant_catalog(path: Union[str, Path]) -> Dict[str, List[ItemVariant]]:
    """
    Load a variant catalog file

    Args:
        path: CSV/XLSX file with one variant per row

    Returns:
        base_item -> variants, in file order
    """
    variants = variants_from_dataframe(read_table(path), source=Path(path).name)
    catalog = group_variants(variants)
    logger.info(f"Loaded {len(variants)} variants for {len(catalog)} base items from {Path(path).name}")
    return catalog
