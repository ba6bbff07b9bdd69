#!/usr/bin/env python3
"""
Integration tests: boundary file + ECT feeds -> bundle -> report.

Run with: python tests/test_integration.py
"""

import json
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

import requests

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from config import Config
from dashboard_data import build_dashboard_bundle, bundle_to_dict, write_bundle
from ect_api import SourceCache
from election_reporting import generate_forensics_report, save_report
from election_types import GroupStats
from sample_feeds import make_fake_fetch, write_boundaries
from stats_aggregation import group_stats, region_stats


class PipelineTestCase(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.tmp_path = Path(self.tmp.name)
        self.config = Config()
        self.config.snapshot_dir = None
        self.config.allow_degraded = False
        self.config.boundary_path = str(write_boundaries(self.tmp_path))

    def tearDown(self):
        self.tmp.cleanup()

    def build(self, fake=None):
        with patch("ect_api.fetch_json", side_effect=fake or make_fake_fetch()):
            return build_dashboard_bundle(self.config, SourceCache())


class TestFullPipeline(PipelineTestCase):
    """Happy path through every stage."""

    def test_matching(self):
        bundle = self.build()
        self.assertEqual(bundle.match.matched, 4)
        self.assertEqual(bundle.match.unmatched, 1)
        self.assertEqual([u.unit_id for u in bundle.units], ["BKK_1", "BKK_2", "CMI_1", "CMI_2"])

    def test_totals(self):
        bundle = self.build()
        self.assertEqual(bundle.totals.provinces, 2)
        self.assertEqual(bundle.totals.constituencies, 4)
        self.assertEqual(bundle.totals.registered_voters, 4100)

    def test_lookups(self):
        bundle = self.build()
        self.assertTrue(bundle.lookups.status.ok)
        self.assertEqual(set(bundle.lookups.diff), {"BKK_1", "BKK_2", "CMI_1", "CMI_2"})
        self.assertEqual(bundle.lookups.forensics["CMI_1"].registered_voters, 1200)

    def test_nationwide_stats(self):
        bundle = self.build()
        stats = group_stats(bundle.units, bundle.lookups.diff)
        self.assertEqual(stats.count, 4)
        self.assertEqual(stats.mismatch_count, 2)
        self.assertEqual(stats.sum_abs_count, 20)
        self.assertEqual(stats.max_unit_id, "BKK_1")

    def test_region_stats(self):
        bundle = self.build()
        regions = region_stats(bundle.units, bundle.lookups.diff)
        self.assertEqual(regions["central"].count, 2)
        self.assertEqual(regions["north"].count, 2)
        self.assertEqual(regions["south"], GroupStats())

    def test_bundle_json(self):
        bundle = self.build()
        data = json.loads(json.dumps(bundle_to_dict(bundle), ensure_ascii=False))
        self.assertEqual(len(data["features"]), 5)
        self.assertIsNone(data["features"][4]["properties"]["_cons_data"])
        self.assertEqual(data["stats"]["nationwide"]["count"], 4)
        self.assertEqual(data["lookups"]["winners"]["BKK_1"]["party_name"], "พรรคหนึ่ง")

    def test_write_bundle(self):
        bundle = self.build()
        path = write_bundle(bundle, self.tmp_path / "out" / "bundle.json")
        data = json.loads(path.read_text(encoding="utf-8"))
        self.assertEqual(data["matched"], 4)

    def test_report(self):
        bundle = self.build()
        report = generate_forensics_report(bundle)
        self.assertIn("# Election 69 Ballot Forensics Report", report)
        self.assertIn("All ECT result feeds loaded", report)
        self.assertIn("## MP vs Party-List Turnout", report)
        self.assertIn("## Composite Forensics Score", report)
        self.assertIn("กรุงเทพมหานคร เขต 1", report)

        path = save_report(report, self.tmp_path / "reports" / "forensics.md")
        self.assertTrue(path.exists())


class TestFailurePaths(PipelineTestCase):
    """Feed failures degrade instead of raising."""

    def test_result_feed_failure(self):
        fake = make_fake_fetch(fail={"stats_cons.json": requests.ConnectionError("down")})
        bundle = self.build(fake)
        self.assertTrue(bundle.lookups.is_empty)
        self.assertEqual(bundle.match.matched, 4)
        self.assertEqual(group_stats(bundle.units, bundle.lookups.diff), GroupStats())

        report = generate_forensics_report(bundle)
        self.assertIn("ECT result feeds unavailable", report)
        self.assertIn("No forensics data available.", report)

    def test_registry_failure(self):
        fake = make_fake_fetch(fail={"info_constituency.json": requests.HTTPError("500")})
        bundle = self.build(fake)
        self.assertEqual(bundle.match.matched, 0)
        self.assertEqual(bundle.match.unmatched, 5)
        self.assertEqual(bundle.totals.constituencies, 0)
        self.assertFalse(bundle.lookups.is_empty)

    def test_degraded_mode(self):
        self.config.allow_degraded = True
        fake = make_fake_fetch(fail={"stats_referendum.json": requests.Timeout("slow")})
        bundle = self.build(fake)
        self.assertTrue(bundle.lookups.status.degraded)
        self.assertEqual(bundle.lookups.referendum, {})
        self.assertEqual(len(bundle.lookups.diff), 4)

        report = generate_forensics_report(bundle)
        self.assertIn("Degraded", report)

    def test_missing_boundary_file(self):
        self.config.boundary_path = str(self.tmp_path / "missing.json")
        with self.assertRaises(FileNotFoundError):
            self.build()


if __name__ == "__main__":
    unittest.main()
