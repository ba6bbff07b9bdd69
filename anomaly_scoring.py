#!/usr/bin/env python3
"""
Anomaly scoring over resolved constituencies.

Two independent tests run over the same units:

1. Composite forensics score. Four magnitude signals are normalized by
   their maximum over the scored units and weighted:

       invalid    |invalid_diff|                          0.30
       blank      |blank_diff|                            0.20
       turnout    |diff_percent|                          0.25
       referendum |election turnout - referendum turnout| 0.15

   Units still counting (percent_count < 100) get a flat +0.10, and the
   sum is scaled by 100.

2. Z-score of signed diff_count against the nationwide mean and
   population standard deviation; |z| > 2 is anomalous. The per-party
   table reuses the nationwide baseline.

box_summary() gives the quartiles, whiskers and outliers for box plots.
"""

from dataclasses import replace
from typing import Iterable, Optional, Sequence

from election_types import (
    NO_WINNER,
    UNKNOWN_PARTY_COLOR,
    AnomalyRecord,
    BoxSummary,
    ElectionLookups,
    ResolvedUnit,
    ScoreBand,
    UnitRow,
    ZScoreResult,
)
from provinces import DEFAULT_TABLES, ProvinceTables
from stats_aggregation import group_by_party, mean, population_std, quantile

ANOMALY_WEIGHTS = {
    "invalid": 0.30,
    "blank": 0.20,
    "turnout": 0.25,
    "referendum": 0.15,
}
COMPLETENESS_PENALTY = 0.10

ZSCORE_THRESHOLD = 2.0
IQR_FACTOR = 1.5


# ---------------------------------------------------------------------------
# Composite forensics score
# ---------------------------------------------------------------------------

def build_forensics_items(
    units: Iterable[ResolvedUnit],
    lookups: ElectionLookups,
    tables: ProvinceTables = DEFAULT_TABLES,
) -> list[AnomalyRecord]:
    """
    Join forensics with diff, winner and referendum data per unit.

    Only units with a forensics record are included. Scores are left at 0;
    see composite_scores().
    """
    items = []
    for unit in units:
        forensics = lookups.forensics.get(unit.unit_id)
        if forensics is None:
            continue

        winner = lookups.winners.get(unit.unit_id)
        diff = lookups.diff.get(unit.unit_id)
        referendum = lookups.referendum.get(unit.unit_id)

        items.append(AnomalyRecord(
            unit_id=unit.unit_id,
            label=f"{unit.province_name_th} เขต {unit.district_no}",
            province_code=unit.province_code,
            region=tables.region_of(unit.province_code),
            winner_party=winner.party_name if winner else NO_WINNER,
            party_color=winner.party_color if winner else UNKNOWN_PARTY_COLOR,
            forensics=forensics,
            turnout_diff_pct=diff.diff_percent if diff else 0.0,
            election_turnout_pct=diff.mp_percent_turn_out if diff else 0.0,
            referendum_turnout_pct=referendum.turnout_percent if referendum else 0.0,
        ))
    return items


def _referendum_gap(item: AnomalyRecord) -> float:
    return abs(item.election_turnout_pct - item.referendum_turnout_pct)


def _max_or_one(values: Iterable[float]) -> float:
    return max(values, default=0) or 1


def composite_scores(items: Sequence[AnomalyRecord]) -> list[AnomalyRecord]:
    """
    Score items relative to each other.

    Returns:
        New records with score set, in input order
    """
    max_invalid = _max_or_one(abs(i.forensics.invalid_diff) for i in items)
    max_blank = _max_or_one(abs(i.forensics.blank_diff) for i in items)
    max_turnout = _max_or_one(abs(i.turnout_diff_pct) for i in items)
    max_ref_gap = _max_or_one(_referendum_gap(i) for i in items)

    scored = []
    for item in items:
        score = (
            abs(item.forensics.invalid_diff) / max_invalid * ANOMALY_WEIGHTS["invalid"]
            + abs(item.forensics.blank_diff) / max_blank * ANOMALY_WEIGHTS["blank"]
            + abs(item.turnout_diff_pct) / max_turnout * ANOMALY_WEIGHTS["turnout"]
            + _referendum_gap(item) / max_ref_gap * ANOMALY_WEIGHTS["referendum"]
        )
        if item.forensics.percent_count < 100:
            score += COMPLETENESS_PENALTY
        scored.append(replace(item, score=score * 100))
    return scored


def score_band(score: float) -> ScoreBand:
    if score > 60:
        return ScoreBand.HIGH
    if score > 40:
        return ScoreBand.MEDIUM
    if score > 20:
        return ScoreBand.LOW
    return ScoreBand.NORMAL


def top_anomalies(scored: Iterable[AnomalyRecord], n: int = 50) -> list[AnomalyRecord]:
    """Highest composite scores first."""
    return sorted(scored, key=lambda i: i.score, reverse=True)[:n]


# ---------------------------------------------------------------------------
# Z-score test
# ---------------------------------------------------------------------------

def zscore_baseline(diffs: Sequence[float]) -> tuple[float, float]:
    """Mean and population standard deviation of signed diffs."""
    return mean(diffs), population_std(diffs)


def _zscore(row: UnitRow, baseline: tuple[float, float]) -> ZScoreResult:
    mu, std = baseline
    z = (row.diff_count - mu) / std if std > 0 else 0.0
    return ZScoreResult(
        unit_id=row.unit_id,
        label=row.label,
        winner_party=row.winner_party,
        diff_count=row.diff_count,
        z=z,
        is_anomaly=abs(z) > ZSCORE_THRESHOLD,
    )


def global_zscore(rows: Sequence[UnitRow]) -> list[ZScoreResult]:
    """Score every row against the mean and std of all rows."""
    baseline = zscore_baseline([r.diff_count for r in rows])
    return [_zscore(r, baseline) for r in rows]


def party_zscore(
    rows: Sequence[UnitRow],
    baseline: Optional[tuple[float, float]] = None,
) -> dict[str, list[ZScoreResult]]:
    """
    Anomalous units per winning party.

    Each party's units are scored against the nationwide baseline (computed
    from the rows that have a winner unless given), not against the party's
    own distribution.

    Returns:
        party name -> anomalous units; every winning party is present
    """
    if baseline is None:
        baseline = zscore_baseline([r.diff_count for r in rows if r.has_winner])
    return {
        party: [z for z in (_zscore(r, baseline) for r in members) if z.is_anomaly]
        for party, members in group_by_party(rows).items()
    }


# ---------------------------------------------------------------------------
# Box plot
# ---------------------------------------------------------------------------

def box_summary(values: Sequence[float]) -> BoxSummary:
    """Quartiles, 1.5 IQR whiskers clamped to the data range, and outliers."""
    if not values:
        return BoxSummary()

    s = sorted(values)
    q1 = quantile(s, 0.25)
    q2 = quantile(s, 0.5)
    q3 = quantile(s, 0.75)
    iqr = q3 - q1
    whisker_low = max(s[0], q1 - IQR_FACTOR * iqr)
    whisker_high = min(s[-1], q3 + IQR_FACTOR * iqr)

    return BoxSummary(
        q1=q1,
        median=q2,
        q3=q3,
        iqr=iqr,
        whisker_low=whisker_low,
        whisker_high=whisker_high,
        outliers=tuple(v for v in s if v < whisker_low or v > whisker_high),
    )
