#!/usr/bin/env python3
"""
Receipt Identity - Command line entry point

Commands:
    store NAME...               Normalize raw store names to store ids
    stores [--type TYPE]        List catalog stores, largest market share first
    match --variants FILE ...   Price-bracket match one receipt line
    resolve INPUT OUTPUT ...    Resolve a CSV/XLSX of receipt lines into a CSV
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import pandas as pd

from .config import DEFAULT_LOCALE, LOGGING, PATHS, RECEIPT_FIELDS
from .logger import setup_logger
from .price_bracket import DEFAULT_TOLERANCE
from .receipt_resolver import ReceiptLineResolver
from .rule_loader import RuleLoader
from .store_catalog import StoreCatalog, StoreType
from .store_normalizer import StoreNormalizer
from .variant_catalog import load_variant_catalog, read_table

logger = logging.getLogger(__name__)


def _load_catalog(args: argparse.Namespace) -> StoreCatalog:
    return StoreCatalog.from_rules(RuleLoader(args.rules_dir), locale=args.locale)


def cmd_store(args: argparse.Namespace) -> int:
    catalog = _load_catalog(args)
    normalizer = StoreNormalizer(catalog)
    unmatched = 0
    for raw in args.names:
        store_id = normalizer.normalize(raw)
        if store_id is None:
            unmatched += 1
        if args.info:
            record = catalog.get_safe(store_id)
            print(json.dumps({'input': raw, 'store': record.to_dict() if record else None}))
        else:
            print(f"{raw}\t{store_id or '-'}")
    return 1 if unmatched and args.strict else 0


def cmd_stores(args: argparse.Namespace) -> int:
    catalog = _load_catalog(args)
    stores = catalog.all_stores()
    if args.type:
        stores = [store for store in stores if store.type.value == args.type]
    for store in stores:
        print(f"{store.id}\t{store.display_name}\t{store.type.value}\t{store.market_share:g}\t{store.color}")
    return 0


def cmd_match(args: argparse.Namespace) -> int:
    resolver = ReceiptLineResolver(_load_catalog(args), load_variant_catalog(args.variants), args.tolerance)
    resolved = resolver.resolve_item(args.item, args.price)
    print(json.dumps(resolved, indent=2))
    return 0


def cmd_resolve(args: argparse.Namespace) -> int:
    resolver = ReceiptLineResolver(_load_catalog(args), load_variant_catalog(args.variants), args.tolerance)
    df = read_table(args.input)

    store_column = next((col for col in RECEIPT_FIELDS['store'] if col in df.columns), None)
    name_column = next((col for col in RECEIPT_FIELDS['item_name'] if col in df.columns), None)
    price_column = next((col for col in RECEIPT_FIELDS['price'] if col in df.columns), None)
    if name_column is None or price_column is None:
        logger.error(f"Input needs an item name column {RECEIPT_FIELDS['item_name']} "
                     f"and a price column {RECEIPT_FIELDS['price']}")
        return 2

    rows = []
    for row in df.to_dict('records'):
        resolved = resolver.resolve_item(row.get(name_column), row.get(price_column))
        matched = resolved['matched_variant'] or {}
        suggested = resolved['suggested_variant'] or {}
        rows.append({
            **row,
            'store_id': resolver.resolve_store(row.get(store_column)) if store_column else None,
            'base_item': resolved['base_item'],
            'match_type': resolved['match_type'],
            'match_source': resolved['match_source'],
            'matched_variant': matched.get('variant_name'),
            'candidate_count': len(resolved['candidates']),
            'suggested_variant': suggested.get('variant_name'),
        })

    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    pd.DataFrame(rows).to_csv(output, index=False)

    counts = pd.Series([row['match_type'] for row in rows], dtype=object).value_counts().to_dict()
    logger.info(f"Resolved {len(rows)} lines from {Path(args.input).name} -> {output}: {counts}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Normalize receipt store names and infer item variants from prices',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument(
        '--rules-dir',
        type=str,
        default=None,
        help='Rules directory with 10_store_catalog_<locale>.yaml (default: packaged rules)'
    )
    parser.add_argument(
        '--locale',
        type=str,
        default=DEFAULT_LOCALE,
        help=f'Store catalog locale (default: {DEFAULT_LOCALE})'
    )
    parser.add_argument(
        '--log-level',
        type=str,
        default=LOGGING['level'],
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level'
    )
    parser.add_argument(
        '--log-dir',
        type=str,
        default=PATHS['log_folder'],
        help='Directory for log files'
    )

    subparsers = parser.add_subparsers(dest='command', required=True)

    store = subparsers.add_parser('store', help='Normalize raw store names')
    store.add_argument('names', nargs='+', help='Raw store names from receipts')
    store.add_argument('--info', action='store_true', help='Print the full store record as JSON')
    store.add_argument('--strict', action='store_true', help='Exit with status 1 if any name is unknown')
    store.set_defaults(func=cmd_store)

    stores = subparsers.add_parser('stores', help='List catalog stores')
    stores.add_argument('--type', choices=[t.value for t in StoreType], help='Only stores of this type')
    stores.set_defaults(func=cmd_stores)

    for name, func, help_text in (
        ('match', cmd_match, 'Match one receipt line against a variant catalog'),
        ('resolve', cmd_resolve, 'Resolve a file of receipt lines'),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        if name == 'match':
            sub.add_argument('--item', required=True, help='Item name as printed on the receipt')
            sub.add_argument('--price', required=True, type=float, help='Receipt price')
        else:
            sub.add_argument('input', type=str, help='CSV/XLSX of receipt lines')
            sub.add_argument('output', type=str, help='Output CSV path')
        sub.add_argument('--variants', required=True, type=str, help='Variant catalog CSV/XLSX')
        sub.add_argument('--tolerance', type=float, default=DEFAULT_TOLERANCE,
                         help=f'Relative price tolerance (default: {DEFAULT_TOLERANCE})')
        sub.set_defaults(func=func)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for receipt-identity"""
    args = build_parser().parse_args(argv)
    setup_logger(log_level=args.log_level, log_dir=Path(args.log_dir))
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
