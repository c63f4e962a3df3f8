#!/usr/bin/env python3
"""
Technique Range Resolver Test Suite

Validates file name -> technique ID resolution:
- Range files (T1027-T1047.csv) expand inclusively
- Single technique files (T1000_macos.csv) yield one ID
- Malformed and inverted ranges are explicit failure results with no IDs
- Names without any technique ID are reported, never guessed

Outputs standardized test results: TEST_RESULTS: PASSED=X TOTAL=Y SUITE="Name"

Usage:
    python test_suites/core/test_range_resolver.py
"""

import sys
import re
import unittest
from pathlib import Path

# Force UTF-8 output encoding for Windows compatibility
if sys.platform == 'win32':
    import codecs
    sys.stdout = codecs.getwriter('utf-8')(sys.stdout.buffer, 'replace')
    sys.stderr = codecs.getwriter('utf-8')(sys.stderr.buffer, 'replace')

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.freshness_tool.core.range_resolver import (
    resolve_technique_ids,
    is_technique_id,
    TechniqueSpan,
    MalformedRange,
    InvertedRange,
    NoTechniqueIDFound,
    SingleTechnique,
)


class TestRangeFiles(unittest.TestCase):
    """Files covering a contiguous block of techniques"""

    def test_windows_block_expands_inclusive(self):
        result = resolve_technique_ids("T1027-T1047.csv")
        self.assertIsInstance(result, TechniqueSpan)
        ids = list(result)
        self.assertEqual(len(ids), 21)
        self.assertEqual(ids[0], "T1027")
        self.assertEqual(ids[-1], "T1047")
        self.assertEqual(ids, [f"T{n}" for n in range(1027, 1048)])

    def test_count_is_upper_minus_lower_plus_one(self):
        for lower, upper in [(1, 1), (1, 5), (1000, 1099), (1546, 1548)]:
            with self.subTest(lower=lower, upper=upper):
                ids = list(resolve_technique_ids(f"T{lower}-T{upper}.csv"))
                self.assertEqual(len(ids), upper - lower + 1)
                self.assertTrue(all(is_technique_id(i) for i in ids))
                numbers = [int(i[1:]) for i in ids]
                self.assertEqual(numbers, sorted(set(numbers)))

    def test_upper_bound_qualifiers_discarded(self):
        ids = list(resolve_technique_ids("T1105-T1110_windows.csv"))
        self.assertEqual(ids, ["T1105", "T1106", "T1107", "T1108", "T1109", "T1110"])

    def test_upper_bound_subtechnique_suffix_ignored(self):
        ids = list(resolve_technique_ids("T1003-T1004.001.csv"))
        self.assertEqual(ids, ["T1003", "T1004"])

    def test_degenerate_range_single_technique(self):
        ids = list(resolve_technique_ids("T1059-T1059.csv"))
        self.assertEqual(ids, ["T1059"])

    def test_span_is_restartable(self):
        result = resolve_technique_ids("T10-T12.csv")
        self.assertEqual(list(result), list(result))
        self.assertEqual(len(result), 3)

    def test_span_is_lazy_for_wide_ranges(self):
        result = resolve_technique_ids("T1-T100000000.csv")
        self.assertEqual(len(result), 100000000)
        first = next(iter(result))
        self.assertEqual(first, "T1")


class TestRangeFailures(unittest.TestCase):
    """Ranges that must skip the whole file"""

    def test_inverted_range(self):
        result = resolve_technique_ids("T1050-T1040.csv")
        self.assertIsInstance(result, InvertedRange)
        self.assertFalse(result.ok)
        self.assertEqual(list(result), [])
        self.assertEqual((result.lower, result.upper), (1050, 1040))
        self.assertIn("T1050 > T1040", result.describe())

    def test_upper_token_without_technique(self):
        result = resolve_technique_ids("T1027-final.csv")
        self.assertIsInstance(result, MalformedRange)
        self.assertFalse(result.ok)
        self.assertEqual(list(result), [])

    def test_lower_token_not_numeric(self):
        result = resolve_technique_ids("Tabc-T1047.csv")
        self.assertIsInstance(result, MalformedRange)
        self.assertEqual(list(result), [])

    def test_lower_token_with_qualifier(self):
        result = resolve_technique_ids("T1027_win-T1047.csv")
        self.assertIsInstance(result, MalformedRange)

    def test_lower_token_empty(self):
        result = resolve_technique_ids("-T1047.csv")
        self.assertIsInstance(result, MalformedRange)

    def test_signed_lower_bound_rejected(self):
        result = resolve_technique_ids("T+12-T20.csv")
        self.assertIsInstance(result, MalformedRange)

    def test_hyphenated_non_technique_name(self):
        result = resolve_technique_ids("read-me.md")
        self.assertIsInstance(result, MalformedRange)

    def test_upper_bound_taken_from_second_segment_only(self):
        result = resolve_technique_ids("T1027-draft-T1047.csv")
        self.assertIsInstance(result, MalformedRange)
        self.assertEqual(list(result), [])

    def test_trailing_segments_after_upper_bound_ignored(self):
        self.assertEqual(list(resolve_technique_ids("T10-T12-old.csv")), ["T10", "T11", "T12"])


class TestSingleTechniqueFiles(unittest.TestCase):
    """Files covering exactly one technique"""

    def test_platform_suffixed_file(self):
        result = resolve_technique_ids("T1000_macos.csv")
        self.assertTrue(result.ok)
        self.assertEqual(list(result), ["T1000"])

    def test_leading_zeros_kept_verbatim(self):
        result = resolve_technique_ids("T0042_macos.csv")
        self.assertIsInstance(result, SingleTechnique)
        self.assertEqual(list(result), ["T0042"])
        self.assertEqual(len(result), 1)

    def test_plain_file(self):
        self.assertEqual(list(resolve_technique_ids("T1547.csv")), ["T1547"])

    def test_technique_not_at_start(self):
        self.assertEqual(list(resolve_technique_ids("criteria_T1218.csv")), ["T1218"])

    def test_subtechnique_reduced_to_parent(self):
        self.assertEqual(list(resolve_technique_ids("T1027.002.csv")), ["T1027"])

    def test_first_pattern_wins(self):
        self.assertEqual(list(resolve_technique_ids("T1070_T1071.csv")), ["T1070"])

    def test_no_technique_id(self):
        for name in ["README.md", "template.csv", "t1000.csv", "T.csv"]:
            with self.subTest(name=name):
                result = resolve_technique_ids(name)
                self.assertIsInstance(result, NoTechniqueIDFound)
                self.assertFalse(result.ok)
                self.assertEqual(list(result), [])
                self.assertIn(name, result.describe())


class TestTechniqueIdPattern(unittest.TestCase):

    def test_valid_ids(self):
        for value in ["T1", "T1000", "T1547"]:
            self.assertTrue(is_technique_id(value), value)

    def test_invalid_ids(self):
        for value in ["1000", "T", "T1000.001", "t1000", " T1000", "T10a"]:
            self.assertFalse(is_technique_id(value), value)

    def test_all_resolved_ids_match_pattern(self):
        pattern = re.compile(r'T\d+')
        for name in ["T1027-T1047.csv", "T1000_macos.csv", "T5-T9_linux.csv"]:
            for technique_id in resolve_technique_ids(name):
                self.assertTrue(pattern.fullmatch(technique_id))


if __name__ == '__main__':
    print("=" * 80)
    print("TECHNIQUE RANGE RESOLVER TESTS")
    print("=" * 80)

    suite = unittest.defaultTestLoader.loadTestsFromModule(sys.modules[__name__])
    result = unittest.TextTestRunner(verbosity=2).run(suite)

    passed = result.testsRun - len(result.failures) - len(result.errors)
    print(f"\nTEST_RESULTS: PASSED={passed} TOTAL={result.testsRun} SUITE=\"Technique Range Resolver\"")
    sys.exit(0 if result.wasSuccessful() else 1)
