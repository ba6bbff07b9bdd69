#!/usr/bin/env python3
"""
Turnout-diff aggregation: nationwide, per region and per winning party.

Contains: descriptive helpers (mean, median, population_std, quantile,
pearson_skewness), group_stats and merge_group_stats, region grouping,
per-unit rows, party_stats, diff_insights and the smaller chart feeds.

All functions are pure and can be called on any subset of units. Empty or
degenerate input yields zeros, never NaN or an exception.
"""

import math
from collections import defaultdict
from typing import Iterable, Mapping, Optional, Sequence

from election_types import (
    NO_WINNER,
    UNKNOWN_PARTY_COLOR,
    DiffInsights,
    DiffRecord,
    ElectionLookups,
    GroupStats,
    PartyShare,
    PartyStats,
    RegionRatio,
    ResolvedUnit,
    UnitRow,
    WinRatioPoint,
)
from provinces import DEFAULT_TABLES, ProvinceTables

BOX_PLOT_MIN_UNITS = 3
DEFAULT_DIFF_THRESHOLD = 2.5  # percent points


# ---------------------------------------------------------------------------
# Descriptive statistics
# ---------------------------------------------------------------------------

def mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


def median(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    s = sorted(values)
    mid = len(s) // 2
    if len(s) % 2:
        return float(s[mid])
    return (s[mid - 1] + s[mid]) / 2


def population_std(values: Sequence[float]) -> float:
    """Standard deviation with denominator n."""
    if not values:
        return 0.0
    m = mean(values)
    return math.sqrt(sum((v - m) ** 2 for v in values) / len(values))


def quantile(sorted_values: Sequence[float], q: float) -> float:
    """
    Quantile by linear interpolation between closest ranks.

    Args:
        sorted_values: Ascending data
        q: Fraction in [0, 1]
    """
    n = len(sorted_values)
    if n == 0:
        return 0.0
    if n == 1:
        return float(sorted_values[0])
    pos = (n - 1) * q
    lo = math.floor(pos)
    hi = min(lo + 1, n - 1)
    frac = pos - lo
    return sorted_values[lo] + (sorted_values[hi] - sorted_values[lo]) * frac


def pearson_skewness(values: Sequence[float]) -> float:
    """Pearson's second skewness coefficient, 3 * (mean - median) / std."""
    std = population_std(values)
    if std == 0:
        return 0.0
    return 3 * (mean(values) - median(values)) / std


# ---------------------------------------------------------------------------
# Group statistics
# ---------------------------------------------------------------------------

def group_stats(units: Iterable[ResolvedUnit], diff_lookup: Mapping[str, DiffRecord]) -> GroupStats:
    """
    Aggregate turnout diffs over a group of units in one pass.

    Units without a diff record are ignored. Extremes keep the first unit
    seen on ties.
    """
    count = 0
    mismatch_count = 0
    sum_abs_percent = 0.0
    sum_abs_count = 0
    total_mp = 0
    total_pl = 0
    max_percent = -math.inf
    min_percent = math.inf
    max_abs_count = -math.inf
    min_abs_count = math.inf
    max_unit_id = ""
    min_unit_id = ""

    for unit in units:
        diff = diff_lookup.get(unit.unit_id)
        if diff is None:
            continue

        count += 1
        if diff.diff_count != 0:
            mismatch_count += 1

        sum_abs_percent += abs(diff.diff_percent)
        sum_abs_count += abs(diff.diff_count)
        total_mp += diff.mp_turn_out
        total_pl += diff.party_list_turn_out

        if diff.diff_percent > max_percent:
            max_percent = diff.diff_percent
        if diff.diff_percent < min_percent:
            min_percent = diff.diff_percent

        abs_count = abs(diff.diff_count)
        if abs_count > max_abs_count:
            max_abs_count = abs_count
            max_unit_id = unit.unit_id
        if abs_count < min_abs_count:
            min_abs_count = abs_count
            min_unit_id = unit.unit_id

    if count == 0:
        return GroupStats()

    return GroupStats(
        count=count,
        mismatch_count=mismatch_count,
        avg_percent=sum_abs_percent / count,
        max_percent=max_percent,
        min_percent=min_percent,
        max_count=max_abs_count,
        min_count=min_abs_count,
        max_unit_id=max_unit_id,
        min_unit_id=min_unit_id,
        sum_abs_count=sum_abs_count,
        sum_abs_percent=sum_abs_percent,
        total_mp_turnout=total_mp,
        total_pl_turnout=total_pl,
    )


def merge_group_stats(a: GroupStats, b: GroupStats) -> GroupStats:
    """
    Combine stats of two disjoint groups.

    Equals group_stats over the concatenated units (a's units first).
    """
    if b.count == 0:
        return a
    if a.count == 0:
        return b

    count = a.count + b.count
    sum_abs_percent = a.sum_abs_percent + b.sum_abs_percent

    if b.max_count > a.max_count:
        max_count, max_unit_id = b.max_count, b.max_unit_id
    else:
        max_count, max_unit_id = a.max_count, a.max_unit_id
    if b.min_count < a.min_count:
        min_count, min_unit_id = b.min_count, b.min_unit_id
    else:
        min_count, min_unit_id = a.min_count, a.min_unit_id

    return GroupStats(
        count=count,
        mismatch_count=a.mismatch_count + b.mismatch_count,
        avg_percent=sum_abs_percent / count,
        max_percent=max(a.max_percent, b.max_percent),
        min_percent=min(a.min_percent, b.min_percent),
        max_count=max_count,
        min_count=min_count,
        max_unit_id=max_unit_id,
        min_unit_id=min_unit_id,
        sum_abs_count=a.sum_abs_count + b.sum_abs_count,
        sum_abs_percent=sum_abs_percent,
        total_mp_turnout=a.total_mp_turnout + b.total_mp_turnout,
        total_pl_turnout=a.total_pl_turnout + b.total_pl_turnout,
    )


def group_by_region(
    units: Iterable[ResolvedUnit],
    tables: ProvinceTables = DEFAULT_TABLES,
) -> dict[str, list[ResolvedUnit]]:
    """
    Split units by region, in region display order.

    Every region is present (possibly empty). Units whose province has no
    region are left out.
    """
    groups: dict[str, list[ResolvedUnit]] = {region: [] for region in tables.region_order}
    for unit in units:
        region = tables.region_of(unit.province_code)
        if region in groups:
            groups[region].append(unit)
    return groups


def region_stats(
    units: Iterable[ResolvedUnit],
    diff_lookup: Mapping[str, DiffRecord],
    tables: ProvinceTables = DEFAULT_TABLES,
) -> dict[str, GroupStats]:
    """GroupStats per region, in region display order."""
    return {
        region: group_stats(members, diff_lookup)
        for region, members in group_by_region(units, tables).items()
    }


# ---------------------------------------------------------------------------
# Per-unit rows and party views
# ---------------------------------------------------------------------------

def build_unit_rows(
    units: Iterable[ResolvedUnit],
    lookups: ElectionLookups,
    tables: ProvinceTables = DEFAULT_TABLES,
) -> list[UnitRow]:
    """
    Join each unit with its diff and winner.

    Units without a diff record are skipped; units without a winner keep a
    "-" placeholder party.
    """
    rows = []
    for unit in units:
        diff = lookups.diff.get(unit.unit_id)
        if diff is None:
            continue
        winner = lookups.winners.get(unit.unit_id)
        rows.append(UnitRow(
            unit_id=unit.unit_id,
            label=f"{unit.province_name_th} เขต {unit.district_no}",
            province_code=unit.province_code,
            region=tables.region_of(unit.province_code),
            winner_party=winner.party_name if winner else NO_WINNER,
            party_color=winner.party_color if winner else UNKNOWN_PARTY_COLOR,
            diff_count=diff.diff_count,
            diff_percent=diff.diff_percent,
            mp_turn_out=diff.mp_turn_out,
            party_list_turn_out=diff.party_list_turn_out,
            registered_voters=unit.registered_voters,
            winner_vote_count=winner.vote_count if winner else 0,
            winner_turn_out=winner.turn_out if winner else 0,
        ))
    return rows


def group_by_party(rows: Iterable[UnitRow]) -> dict[str, list[UnitRow]]:
    """Rows with a winner, grouped by winning party in first-seen order."""
    groups: dict[str, list[UnitRow]] = defaultdict(list)
    for row in rows:
        if row.has_winner:
            groups[row.winner_party].append(row)
    return dict(groups)


def party_stats(rows: Iterable[UnitRow]) -> list[PartyStats]:
    """
    Diff distribution per winning party.

    Returns:
        PartyStats list sorted by total absolute diff, largest first
    """
    stats = []
    for party_name, members in group_by_party(rows).items():
        diffs = [r.diff_count for r in members]
        sorted_diffs = sorted(diffs)
        stats.append(PartyStats(
            party_name=party_name,
            party_color=members[0].party_color,
            units_won=len(members),
            total_abs_diff=sum(abs(d) for d in diffs),
            avg_diff=mean(diffs),
            avg_abs_diff=mean([abs(d) for d in diffs]),
            avg_diff_percent=mean([r.diff_percent for r in members]),
            median_diff=median(sorted_diffs),
            std_dev=population_std(diffs),
            q1=quantile(sorted_diffs, 0.25),
            q3=quantile(sorted_diffs, 0.75),
            min_diff=sorted_diffs[0],
            max_diff=sorted_diffs[-1],
            diffs=tuple(diffs),
        ))

    stats.sort(key=lambda s: s.total_abs_diff, reverse=True)
    return stats


def box_plot_parties(stats: Iterable[PartyStats], min_units: int = BOX_PLOT_MIN_UNITS) -> list[PartyStats]:
    """Parties with enough won units for a distribution summary."""
    return [s for s in stats if s.units_won >= min_units]


# ---------------------------------------------------------------------------
# Nationwide insights and chart feeds
# ---------------------------------------------------------------------------

def region_abs_sums(
    rows: Iterable[UnitRow],
    tables: ProvinceTables = DEFAULT_TABLES,
) -> dict[str, int]:
    """Sum of |diff_count| per region, every region present."""
    sums = {region: 0 for region in tables.region_order}
    for row in rows:
        if row.region in sums:
            sums[row.region] += abs(row.diff_count)
    return sums


def diff_insights(rows: Sequence[UnitRow], region_sums: Optional[Mapping[str, int]] = None) -> DiffInsights:
    """
    Headline statistics over signed diff_count.

    Args:
        rows: Unit rows to summarise
        region_sums: Region -> sum of |diff_count|, in display order
            (computed from rows when omitted)
    """
    diffs = [r.diff_count for r in rows]
    if not diffs:
        return DiffInsights()

    if region_sums is None:
        region_sums = region_abs_sums(rows)

    highest_region = lowest_region = ""
    highest = lowest = 0
    if region_sums:
        # max()/min() keep the first region on ties
        lowest_region = min(region_sums, key=lambda k: region_sums[k])
        lowest = region_sums[lowest_region]
        candidate = max(region_sums, key=lambda k: region_sums[k])
        if region_sums[candidate] > 0:
            highest_region = candidate
            highest = region_sums[candidate]

    return DiffInsights(
        total_areas=len(diffs),
        total_abs_diff=sum(abs(d) for d in diffs),
        positive_count=sum(1 for d in diffs if d > 0),
        negative_count=sum(1 for d in diffs if d < 0),
        zero_count=sum(1 for d in diffs if d == 0),
        mean_diff=mean(diffs),
        median_diff=median(diffs),
        std_dev=population_std(diffs),
        skewness=pearson_skewness(diffs),
        max_diff=max(diffs),
        min_diff=min(diffs),
        highest_region=highest_region,
        highest_region_diff=highest,
        lowest_region=lowest_region,
        lowest_region_diff=lowest,
    )


def region_normalized(
    units: Iterable[ResolvedUnit],
    diff_lookup: Mapping[str, DiffRecord],
    tables: ProvinceTables = DEFAULT_TABLES,
) -> list[RegionRatio]:
    """Per region: sum of |diff_count| over registered voters."""
    sums = {region: [0, 0] for region in tables.region_order}
    for unit in units:
        region = tables.region_of(unit.province_code)
        diff = diff_lookup.get(unit.unit_id)
        if region not in sums or diff is None:
            continue
        sums[region][0] += abs(diff.diff_count)
        sums[region][1] += unit.registered_voters or 0

    return [
        RegionRatio(
            region=region,
            region_name=tables.region_names.get(region, region),
            sum_abs_diff=abs_diff,
            registered_voters=registered,
        )
        for region, (abs_diff, registered) in sums.items()
    ]


def top_units_by_abs_diff(rows: Iterable[UnitRow], n: int = 10) -> list[UnitRow]:
    """The n units with the largest |diff_count|."""
    return sorted(rows, key=lambda r: abs(r.diff_count), reverse=True)[:n]


def winners_above_threshold(
    rows: Iterable[UnitRow],
    threshold: float = DEFAULT_DIFF_THRESHOLD,
) -> list[PartyShare]:
    """
    Winning-party breakdown of units with |diff_percent| above threshold.

    Returns:
        PartyShare list, most units first; unit ids ordered by |diff_percent|
    """
    above = [r for r in rows if r.has_winner and abs(r.diff_percent) > threshold]
    shares = []
    for party_name, members in group_by_party(above).items():
        members = sorted(members, key=lambda r: abs(r.diff_percent), reverse=True)
        shares.append(PartyShare(
            party_name=party_name,
            party_color=members[0].party_color,
            count=len(members),
            unit_ids=tuple(r.unit_id for r in members),
        ))
    shares.sort(key=lambda s: s.count, reverse=True)
    return shares


def win_ratio_points(rows: Iterable[UnitRow]) -> list[WinRatioPoint]:
    """Winner vote share of turnout vs absolute turnout diff, one point per unit."""
    points = []
    for row in rows:
        if not row.has_winner or row.winner_turn_out <= 0:
            continue
        points.append(WinRatioPoint(
            unit_id=row.unit_id,
            label=row.label,
            party_name=row.winner_party,
            party_color=row.party_color,
            abs_diff_count=abs(row.diff_count),
            vote_count=row.winner_vote_count,
            vote_percent_of_turnout=row.winner_vote_count / row.winner_turn_out * 100,
        ))
    return points
