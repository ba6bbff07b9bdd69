#!/usr/bin/env python3
"""
Unit tests for anomaly_scoring.py.

Run with: python tests/test_anomaly_scoring.py
"""

import sys
import unittest
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from anomaly_scoring import (
    ANOMALY_WEIGHTS,
    box_summary,
    build_forensics_items,
    composite_scores,
    global_zscore,
    party_zscore,
    score_band,
    top_anomalies,
)
from election_types import (
    NO_WINNER,
    AnomalyRecord,
    DiffRecord,
    ElectionLookups,
    ForensicsRecord,
    ReferendumSummary,
    ScoreBand,
    UnitRow,
)
from sample_feeds import make_unit


def forensics(invalid_diff: float = 0.0, blank_diff: float = 0.0, percent_count: float = 100.0) -> ForensicsRecord:
    return ForensicsRecord(
        mp_invalid_votes=0, mp_invalid_pct=0.0, pl_invalid_votes=0, pl_invalid_pct=0.0,
        invalid_diff=invalid_diff,
        mp_blank_votes=0, mp_blank_pct=0.0, pl_blank_votes=0, pl_blank_pct=0.0,
        blank_diff=blank_diff,
        mp_valid_votes=0, mp_valid_pct=0.0, pl_valid_votes=0, pl_valid_pct=0.0, valid_diff=0.0,
        counted_vote_stations=0, total_vote_stations=0,
        percent_count=percent_count, pause_report=False,
        registered_voters=0, mp_turnout_of_registered=0.0,
    )


def item(
    unit_id: str,
    invalid_diff: float = 0.0,
    blank_diff: float = 0.0,
    turnout_diff_pct: float = 0.0,
    election_turnout_pct: float = 70.0,
    referendum_turnout_pct: float = 70.0,
    percent_count: float = 100.0,
) -> AnomalyRecord:
    return AnomalyRecord(
        unit_id=unit_id,
        label=unit_id,
        province_code="BKK",
        region="central",
        winner_party="P",
        party_color="#000",
        forensics=forensics(invalid_diff, blank_diff, percent_count),
        turnout_diff_pct=turnout_diff_pct,
        election_turnout_pct=election_turnout_pct,
        referendum_turnout_pct=referendum_turnout_pct,
    )


def row(unit_id: str, party: str, diff_count: int) -> UnitRow:
    return UnitRow(
        unit_id=unit_id,
        label=unit_id,
        province_code="BKK",
        region="central",
        winner_party=party,
        party_color="#000",
        diff_count=diff_count,
        diff_percent=0.0,
        mp_turn_out=1000,
        party_list_turn_out=1000 - diff_count,
    )


class TestCompositeScores(unittest.TestCase):
    """Tests for the weighted composite score."""

    def test_weights_sum(self):
        self.assertAlmostEqual(sum(ANOMALY_WEIGHTS.values()), 0.90)

    def test_all_signals_at_maximum(self):
        scored = composite_scores([
            item("A", invalid_diff=-2.0, blank_diff=1.0, turnout_diff_pct=3.0, referendum_turnout_pct=60.0),
            item("B"),
        ])
        self.assertAlmostEqual(scored[0].score, 90.0)
        self.assertAlmostEqual(scored[1].score, 0.0)

    def test_signals_normalized_by_maximum(self):
        scored = composite_scores([
            item("A", invalid_diff=4.0),
            item("B", invalid_diff=1.0),
        ])
        self.assertAlmostEqual(scored[0].score, 30.0)
        self.assertAlmostEqual(scored[1].score, 7.5)

    def test_completeness_only(self):
        scored = composite_scores([item("A", percent_count=99.9), item("B")])
        self.assertAlmostEqual(scored[0].score, 10.0)
        self.assertAlmostEqual(scored[1].score, 0.0)

    def test_scores_never_negative(self):
        scored = composite_scores([
            item("A", invalid_diff=-5.0, blank_diff=-1.0, turnout_diff_pct=-2.0),
            item("B", invalid_diff=2.0),
            item("C", percent_count=0.0),
        ])
        self.assertTrue(all(i.score >= 0 for i in scored))
        self.assertTrue(all(i.score <= 100 for i in scored))

    def test_missing_referendum_counts_as_zero_turnout(self):
        scored = composite_scores([
            item("A", election_turnout_pct=70.0, referendum_turnout_pct=0.0),
            item("B", election_turnout_pct=70.0, referendum_turnout_pct=35.0),
        ])
        self.assertAlmostEqual(scored[0].score, 15.0)
        self.assertAlmostEqual(scored[1].score, 7.5)

    def test_inputs_unchanged(self):
        items = [item("A", invalid_diff=1.0)]
        composite_scores(items)
        self.assertEqual(items[0].score, 0.0)

    def test_empty(self):
        self.assertEqual(composite_scores([]), [])

    def test_top_anomalies(self):
        scored = composite_scores([item("A", invalid_diff=1.0), item("B", invalid_diff=3.0), item("C")])
        self.assertEqual([i.unit_id for i in top_anomalies(scored, 2)], ["B", "A"])


class TestScoreBand(unittest.TestCase):

    def test_bands(self):
        self.assertEqual(score_band(75), ScoreBand.HIGH)
        self.assertEqual(score_band(60), ScoreBand.MEDIUM)
        self.assertEqual(score_band(41), ScoreBand.MEDIUM)
        self.assertEqual(score_band(25), ScoreBand.LOW)
        self.assertEqual(score_band(20), ScoreBand.NORMAL)
        self.assertEqual(score_band(0), ScoreBand.NORMAL)


class TestForensicsItems(unittest.TestCase):

    def test_join(self):
        units = [make_unit("BKK_1"), make_unit("BKK_2", district_no=2)]
        lookups = ElectionLookups(
            diff={"BKK_1": DiffRecord(1000, 72.0, 990, 71.0, 10, 1.0)},
            forensics={"BKK_1": forensics(1.0), "BKK_2": forensics(2.0)},
            referendum={"BKK_1": ReferendumSummary(percent_yes=50.0, percent_no=30.0, percent_abstained=20.0)},
        )
        items = build_forensics_items(units, lookups)
        self.assertEqual(len(items), 2)
        self.assertAlmostEqual(items[0].turnout_diff_pct, 1.0)
        self.assertAlmostEqual(items[0].election_turnout_pct, 72.0)
        self.assertAlmostEqual(items[0].referendum_turnout_pct, 80.0)
        self.assertEqual(items[1].winner_party, NO_WINNER)
        self.assertEqual(items[1].referendum_turnout_pct, 0.0)

    def test_units_without_forensics_skipped(self):
        items = build_forensics_items([make_unit("BKK_9")], ElectionLookups())
        self.assertEqual(items, [])


class TestZScore(unittest.TestCase):
    """Tests for the z-score test."""

    def test_symmetric(self):
        results = global_zscore([row("A", "P", 10), row("B", "P", -10)])
        self.assertAlmostEqual(results[0].z, 1.0)
        self.assertAlmostEqual(results[1].z, -1.0)
        self.assertFalse(any(r.is_anomaly for r in results))

    def test_constant_diffs(self):
        results = global_zscore([row("A", "P", 5), row("B", "P", 5), row("C", "P", 5)])
        self.assertTrue(all(r.z == 0.0 for r in results))
        self.assertFalse(any(r.is_anomaly for r in results))

    def test_outlier_flagged(self):
        rows = [row(f"U{i}", "P", 0) for i in range(20)] + [row("X", "P", 100)]
        results = {r.unit_id: r for r in global_zscore(rows)}
        self.assertTrue(results["X"].is_anomaly)
        self.assertFalse(results["U0"].is_anomaly)

    def test_party_uses_nationwide_baseline(self):
        # Party B's own units are identical (own std 0) but far from the nation
        rows = [row(f"A{i}", "A", 0) for i in range(30)] + [row("B1", "B", 50), row("B2", "B", 50)]
        flagged = party_zscore(rows)
        self.assertEqual(set(flagged), {"A", "B"})
        self.assertEqual([z.unit_id for z in flagged["B"]], ["B1", "B2"])
        self.assertEqual(flagged["A"], [])

    def test_party_baseline_override(self):
        rows = [row("A1", "A", 10), row("A2", "A", -10)]
        flagged = party_zscore(rows, baseline=(0.0, 1.0))
        self.assertEqual(len(flagged["A"]), 2)

    def test_baseline_ignores_rows_without_winner(self):
        won = [row(f"A_{i}", "P", 0) for i in range(9)] + [row("A_9", "P", 30)]
        no_winner = [row(f"N_{i}", NO_WINNER, d) for i, d in enumerate([100, -100, 100, -100])]
        expected = [z.unit_id for z in party_zscore(won)["P"]]
        self.assertEqual(expected, ["A_9"])
        self.assertEqual([z.unit_id for z in party_zscore(won + no_winner)["P"]], expected)

    def test_global_zscore_keeps_rows_without_winner(self):
        rows = [row("A1", "P", 0), row("N1", NO_WINNER, 10)]
        self.assertEqual(len(global_zscore(rows)), 2)

    def test_rows_without_winner_excluded_from_parties(self):
        flagged = party_zscore([row("A1", "A", 1), row("N1", NO_WINNER, 1)])
        self.assertEqual(list(flagged), ["A"])


class TestBoxSummary(unittest.TestCase):
    """Tests for box_summary."""

    def test_no_outliers(self):
        box = box_summary([1, 2, 3, 4, 5])
        self.assertEqual(box.q1, 2.0)
        self.assertEqual(box.median, 3.0)
        self.assertEqual(box.q3, 4.0)
        self.assertEqual(box.whisker_low, 1)
        self.assertEqual(box.whisker_high, 5)
        self.assertEqual(box.outliers, ())

    def test_outlier(self):
        box = box_summary([1, 2, 3, 4, 100])
        self.assertEqual(box.iqr, 2.0)
        self.assertEqual(box.whisker_high, 7.0)
        self.assertEqual(box.outliers, (100,))

    def test_whiskers_inside_data_range(self):
        values = [-40, -3, 0, 2, 5, 8, 60]
        box = box_summary(values)
        self.assertGreaterEqual(box.whisker_low, min(values))
        self.assertLessEqual(box.whisker_high, max(values))
        self.assertLessEqual(box.whisker_low, box.q1)
        self.assertGreaterEqual(box.whisker_high, box.q3)

    def test_empty(self):
        box = box_summary([])
        self.assertEqual(box.outliers, ())
        self.assertEqual(box.iqr, 0.0)


if __name__ == "__main__":
    unittest.main()
