#!/usr/bin/env python3
"""
Price-Bracket Matcher Tests
Match ladder (exact > bracket > ambiguous > no_match), the inclusive tolerance
boundary, catalog-relative deviation and the closest-variant fallback.
"""

import math
import unittest

from receipt_identity.price_bracket import (
    DEFAULT_TOLERANCE,
    ItemVariant,
    MatchResult,
    MatchType,
    calculate_price_diff,
    find_closest_variant,
    match_price_bracket,
)


def variant(name, price, size='1', unit='each', base_item='item'):
    return ItemVariant(variant_name=name, size=size, unit=unit, estimated_price=price, base_item=base_item)


MILK_1L = variant('Milk 1L', 1.10, size='1', unit='l', base_item='milk')
MILK_2PT = variant('Milk 2 Pints', 1.15, size='2', unit='pt', base_item='milk')


class TestCalculatePriceDiff(unittest.TestCase):
    """Relative deviation measured against the catalog price"""

    def test_equal_prices(self):
        for price in (0.0, 0.5, 1.15, 100.0):
            with self.subTest(price=price):
                self.assertEqual(calculate_price_diff(price, price), 0.0)

    def test_relative_to_catalog_price(self):
        self.assertAlmostEqual(calculate_price_diff(1.20, 1.00), 0.20)
        self.assertAlmostEqual(calculate_price_diff(1.00, 1.20), 0.2 / 1.2)

    def test_asymmetric(self):
        self.assertNotAlmostEqual(calculate_price_diff(1.20, 1.00), calculate_price_diff(1.00, 1.20))

    def test_never_negative(self):
        for a, b in ((1.0, 2.0), (2.0, 1.0), (-1.0, 2.0), (0.0, 3.0), (5.0, -2.5)):
            with self.subTest(a=a, b=b):
                self.assertGreaterEqual(calculate_price_diff(a, b), 0.0)

    def test_zero_catalog_price(self):
        self.assertTrue(math.isinf(calculate_price_diff(1.0, 0.0)))


class TestMatchPriceBracket(unittest.TestCase):
    """match_price_bracket classification"""

    def test_empty_variants(self):
        result = match_price_bracket(1.15, [])
        self.assertFalse(result.matched)
        self.assertIs(result.match_type, MatchType.NO_MATCH)
        self.assertEqual(result.candidates, ())
        self.assertIsNone(result.variant)

    def test_milk_ambiguous(self):
        result = match_price_bracket(1.12, [MILK_1L, MILK_2PT], tolerance=0.20)
        self.assertFalse(result.matched)
        self.assertIs(result.match_type, MatchType.AMBIGUOUS)
        self.assertEqual(result.candidates, (MILK_1L, MILK_2PT))
        self.assertIsNone(result.variant)

    def test_milk_exact(self):
        result = match_price_bracket(1.15, [MILK_1L, MILK_2PT], tolerance=0.20)
        self.assertTrue(result.matched)
        self.assertIs(result.match_type, MatchType.EXACT)
        self.assertIs(result.variant, MILK_2PT)

    def test_exact_wins_over_other_candidates(self):
        low, target, high = variant('low', 1.90), variant('target', 2.00), variant('high', 2.10)
        result = match_price_bracket(2.00, [low, target, high])
        self.assertIs(result.match_type, MatchType.EXACT)
        self.assertIs(result.variant, target)
        self.assertEqual(len(result.candidates), 3)

    def test_exact_band_is_one_percent(self):
        base = variant('base', 10.00)
        self.assertIs(match_price_bracket(10.10, [base]).match_type, MatchType.EXACT)
        self.assertIs(match_price_bracket(10.11, [base]).match_type, MatchType.BRACKET)

    def test_exact_needs_candidate_within_tolerance(self):
        base = variant('base', 10.00)
        result = match_price_bracket(10.05, [base], tolerance=0.001)
        self.assertIs(result.match_type, MatchType.NO_MATCH)

    def test_exact_tie_first_wins(self):
        first, second = variant('first', 2.00), variant('second', 2.00)
        result = match_price_bracket(2.00, [first, second])
        self.assertIs(result.match_type, MatchType.EXACT)
        self.assertIs(result.variant, first)
        self.assertEqual(result.candidates, (first, second))

    def test_single_candidate_bracket(self):
        small, large = variant('small', 1.00), variant('large', 3.00)
        result = match_price_bracket(1.10, [small, large])
        self.assertTrue(result.matched)
        self.assertIs(result.match_type, MatchType.BRACKET)
        self.assertIs(result.variant, small)
        self.assertEqual(result.candidates, (small,))

    def test_ambiguous_counts_all_candidates(self):
        variants = [variant('a', 1.00), variant('b', 1.05), variant('c', 0.95), variant('d', 5.00)]
        result = match_price_bracket(1.03, variants)
        self.assertIs(result.match_type, MatchType.AMBIGUOUS)
        self.assertEqual([v.variant_name for v in result.candidates], ['a', 'b', 'c'])

    def test_tolerance_boundary_inclusive(self):
        base = variant('base', 1.25)
        self.assertIs(match_price_bracket(1.50, [base], tolerance=0.20).match_type, MatchType.BRACKET)
        self.assertIs(match_price_bracket(1.51, [base], tolerance=0.20).match_type, MatchType.NO_MATCH)

    def test_same_gap_classifies_by_catalog_price(self):
        cheap, dear = variant('cheap', 1.00), variant('dear', 1.20)
        self.assertIs(match_price_bracket(1.00, [dear], tolerance=0.18).match_type, MatchType.BRACKET)
        self.assertIs(match_price_bracket(1.20, [cheap], tolerance=0.18).match_type, MatchType.NO_MATCH)

    def test_null_prices_skipped(self):
        unknown, known = variant('unknown', None), variant('known', 2.00)
        result = match_price_bracket(2.10, [unknown, known])
        self.assertIs(result.match_type, MatchType.BRACKET)
        self.assertIs(result.variant, known)
        self.assertIs(match_price_bracket(2.10, [unknown]).match_type, MatchType.NO_MATCH)

    def test_zero_priced_variant_never_matches(self):
        free = variant('free', 0.0)
        self.assertIs(match_price_bracket(0.0, [free]).match_type, MatchType.NO_MATCH)
        self.assertIs(match_price_bracket(0.05, [free], tolerance=100).match_type, MatchType.NO_MATCH)

    def test_zero_and_negative_receipt_prices(self):
        base = variant('base', 1.00)
        self.assertIs(match_price_bracket(0.0, [base]).match_type, MatchType.NO_MATCH)
        self.assertIs(match_price_bracket(-0.5, [base]).match_type, MatchType.NO_MATCH)
        self.assertIs(match_price_bracket(0.0, [base], tolerance=1.0).match_type, MatchType.BRACKET)
        self.assertIs(match_price_bracket(-0.5, [base], tolerance=2.0).match_type, MatchType.BRACKET)

    def test_tolerance_recorded(self):
        self.assertEqual(match_price_bracket(1.0, []).tolerance, DEFAULT_TOLERANCE)
        self.assertEqual(match_price_bracket(1.0, [MILK_1L], tolerance=0.5).tolerance, 0.5)

    def test_variants_not_modified(self):
        variants = [MILK_2PT, MILK_1L]
        match_price_bracket(1.12, variants)
        self.assertEqual(variants, [MILK_2PT, MILK_1L])
        self.assertEqual(MILK_1L.estimated_price, 1.10)

    def test_to_dict(self):
        data = match_price_bracket(1.15, [MILK_1L, MILK_2PT]).to_dict()
        self.assertEqual(data['match_type'], 'exact')
        self.assertEqual(data['variant']['variant_name'], 'Milk 2 Pints')
        self.assertEqual(len(data['candidates']), 2)


class TestMatchResultInvariants(unittest.TestCase):
    """MatchResult refuses inconsistent states"""

    def test_matched_needs_variant(self):
        with self.assertRaises(ValueError):
            MatchResult(True, MatchType.EXACT, (MILK_1L,), 0.2)

    def test_matched_only_for_exact_or_bracket(self):
        with self.assertRaises(ValueError):
            MatchResult(True, MatchType.AMBIGUOUS, (MILK_1L, MILK_2PT), 0.2, variant=MILK_1L)

    def test_ambiguous_needs_two_candidates(self):
        with self.assertRaises(ValueError):
            MatchResult(False, MatchType.AMBIGUOUS, (MILK_1L,), 0.2)

    def test_no_match_has_no_candidates(self):
        with self.assertRaises(ValueError):
            MatchResult(False, MatchType.NO_MATCH, (MILK_1L,), 0.2)

    def test_match_type_from_string(self):
        result = MatchResult(False, 'no_match', [], 0.2)
        self.assertIs(result.match_type, MatchType.NO_MATCH)
        self.assertEqual(result.candidates, ())


class TestItemVariant(unittest.TestCase):

    def test_negative_price_rejected(self):
        with self.assertRaises(ValueError):
            variant('bad', -1.0)

    def test_non_finite_price_rejected(self):
        for price in (float('nan'), float('inf'), float('-inf')):
            with self.subTest(price=price):
                with self.assertRaises(ValueError):
                    variant('bad', price)
        with self.assertRaises(ValueError):
            ItemVariant.from_dict({'variant_name': 'bad', 'estimated_price': 'nan'})

    def test_from_dict_camel_case(self):
        item = ItemVariant.from_dict({'variantName': 'Milk 1L', 'size': 1, 'unit': 'l',
                                      'estimatedPrice': '1.10', 'baseItem': 'milk'})
        self.assertEqual(item, MILK_1L)

    def test_from_dict_without_price(self):
        item = ItemVariant.from_dict({'variant_name': 'Milk 4 Pints', 'size': '4', 'unit': 'pt'})
        self.assertFalse(item.has_price)


class TestFindClosestVariant(unittest.TestCase):
    """Nearest-price suggestion, tolerance ignored"""

    def test_nearest_price(self):
        variants = [variant('a', 1.00), variant('b', 2.60), variant('c', 1.50)]
        self.assertEqual(find_closest_variant(2.00, variants).variant_name, 'c')

    def test_outside_any_tolerance(self):
        self.assertIs(find_closest_variant(50.0, [MILK_1L, MILK_2PT]), MILK_2PT)

    def test_tie_first_wins(self):
        variants = [variant('under', 1.50), variant('over', 2.50)]
        self.assertEqual(find_closest_variant(2.00, variants).variant_name, 'under')

    def test_no_prices(self):
        self.assertIsNone(find_closest_variant(1.0, []))
        self.assertIsNone(find_closest_variant(1.0, [variant('a', None), variant('b', None)]))

    def test_skips_null_prices(self):
        variants = [variant('unknown', None), variant('known', 9.0)]
        self.assertEqual(find_closest_variant(1.0, variants).variant_name, 'known')


if __name__ == '__main__':
    unittest.main()
