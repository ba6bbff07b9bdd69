#!/usr/bin/env python3
"""
Forensics report generation (markdown).

Contains: generate_forensics_report, save_report.
"""

from datetime import datetime
from pathlib import Path
from typing import Union

from anomaly_scoring import (
    box_summary,
    build_forensics_items,
    composite_scores,
    party_zscore,
    score_band,
    top_anomalies,
)
from dashboard_data import DashboardBundle
from election_types import GroupStats, ScoreBand
from logging_config import get_logger
from stats_aggregation import (
    box_plot_parties,
    build_unit_rows,
    diff_insights,
    group_stats,
    party_stats,
    region_abs_sums,
    region_stats,
)

logger = get_logger(__name__)

BAND_MARKERS = {
    ScoreBand.HIGH: "🔴",
    ScoreBand.MEDIUM: "🟠",
    ScoreBand.LOW: "🟡",
    ScoreBand.NORMAL: "",
}


def _stats_row(name: str, stats: GroupStats) -> str:
    return (
        f"| {name} | {stats.count} | {stats.mismatch_count} | {stats.sum_abs_count:,} | "
        f"{stats.avg_percent:.2f}% | {stats.max_percent:+.2f}% | {stats.min_percent:+.2f}% | "
        f"{stats.max_count:,} ({stats.max_unit_id or '-'}) |"
    )


def generate_forensics_report(bundle: DashboardBundle, top_n: int = 20) -> str:
    """
    Generate a markdown forensics report for one pipeline run.

    Args:
        bundle: Output of build_dashboard_bundle()
        top_n: Rows in the composite anomaly table

    Returns:
        Formatted markdown report string
    """
    lookups = bundle.lookups
    tables = bundle.tables
    units = bundle.units

    lines = []
    lines.append("# Election 69 Ballot Forensics Report")
    lines.append("")
    lines.append(f"**Generated:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    lines.append("")

    # Sources
    lines.append("## Data Sources")
    lines.append("")
    status = lookups.status
    if status.ok:
        lines.append("✓ All ECT result feeds loaded.")
    elif status.degraded:
        lines.append(f"⚠ **Degraded:** missing {', '.join(status.failed_sources)}. Affected lookups are empty.")
    else:
        lines.append("✗ **ECT result feeds unavailable.** All lookups are empty.")
    if status.error:
        lines.append("")
        lines.append(f"`{status.error}`")
    lines.append("")
    lines.append("| Metric | Value |")
    lines.append("|--------|-------|")
    lines.append(f"| Provinces | {bundle.totals.provinces} |")
    lines.append(f"| Constituencies | {bundle.totals.constituencies} |")
    lines.append(f"| Registered Voters | {bundle.totals.registered_voters:,} |")
    lines.append(f"| Vote Stations | {bundle.totals.vote_stations:,} |")
    lines.append(f"| Boundaries Matched | {bundle.match.matched} |")
    lines.append(f"| Boundaries Unmatched | {bundle.match.unmatched} |")
    lines.append("")

    # Turnout diff
    lines.append("## MP vs Party-List Turnout")
    lines.append("")
    lines.append("| Group | Units | Mismatch | Σ abs diff | Avg abs % | Max % | Min % | Max abs diff |")
    lines.append("|-------|-------|----------|------------|-----------|-------|-------|--------------|")
    lines.append(_stats_row("**Nationwide**", group_stats(units, lookups.diff)))
    for region, stats in region_stats(units, lookups.diff, tables).items():
        lines.append(_stats_row(tables.region_names.get(region, region), stats))
    lines.append("")

    rows = build_unit_rows(units, lookups, tables)
    insights = diff_insights(rows, region_abs_sums(rows, tables))
    if insights.total_areas:
        lines.append(f"- MP ballots exceed party-list ballots in **{insights.positive_count}** of {insights.total_areas} units, "
                     f"fall short in **{insights.negative_count}**, match in **{insights.zero_count}**")
        lines.append(f"- Mean diff {insights.mean_diff:,.1f}, median {insights.median_diff:,.1f}, "
                     f"std {insights.std_dev:,.1f}, skewness {insights.skewness:.2f}")
        if insights.highest_region:
            lines.append(f"- Highest region: {tables.region_names.get(insights.highest_region, insights.highest_region)} "
                         f"({insights.highest_region_diff:,})")
        lines.append("")

    # Parties
    parties = party_stats(rows)
    if parties:
        lines.append("## Winning Parties")
        lines.append("")
        lines.append("| Party | Won | Σ abs diff | Avg diff | Median | Std | Q1 | Q3 |")
        lines.append("|-------|-----|------------|----------|--------|-----|----|----|")
        for p in parties:
            lines.append(
                f"| {p.party_name} | {p.units_won} | {p.total_abs_diff:,} | {p.avg_diff:,.1f} | "
                f"{p.median_diff:,.1f} | {p.std_dev:,.1f} | {p.q1:,.1f} | {p.q3:,.1f} |"
            )
        lines.append("")

        boxed = box_plot_parties(parties)
        if boxed:
            lines.append("### Outliers (1.5 IQR)")
            lines.append("")
            for p in boxed:
                box = box_summary(p.diffs)
                outliers = ", ".join(f"{v:,.0f}" for v in box.outliers) or "none"
                lines.append(f"- **{p.party_name}**: whiskers {box.whisker_low:,.0f} to {box.whisker_high:,.0f}; outliers: {outliers}")
            lines.append("")

    # Z-score
    flagged = {party: found for party, found in party_zscore(rows).items() if found}
    lines.append("## Z-Score Anomalies (|z| > 2, nationwide baseline)")
    lines.append("")
    if not flagged:
        lines.append("✓ No unit deviates more than two standard deviations from the nationwide mean.")
    else:
        lines.append("| Party | Unit | Diff | z |")
        lines.append("|-------|------|------|---|")
        for party, found in flagged.items():
            for z in sorted(found, key=lambda r: abs(r.z), reverse=True):
                lines.append(f"| {party} | {z.label} | {z.diff_count:+,} | {z.z:+.2f} |")
    lines.append("")

    # Composite
    scored = composite_scores(build_forensics_items(units, lookups, tables))
    lines.append("## Composite Forensics Score")
    lines.append("")
    if not scored:
        lines.append("No forensics data available.")
        lines.append("")
        return "\n".join(lines)

    incomplete = sum(1 for item in scored if item.forensics.percent_count < 100)
    lines.append(f"**Units scored:** {len(scored)} ({incomplete} still counting)")
    lines.append("")
    lines.append("| Score | Unit | Winner | Invalid diff | Blank diff | Turnout diff | Counted |")
    lines.append("|-------|------|--------|--------------|------------|--------------|---------|")
    for item in top_anomalies(scored, top_n):
        marker = BAND_MARKERS[score_band(item.score)]
        f = item.forensics
        lines.append(
            f"| {marker} {item.score:.1f} | {item.label} | {item.winner_party} | {f.invalid_diff:+.2f} | "
            f"{f.blank_diff:+.2f} | {item.turnout_diff_pct:+.2f} | {f.percent_count:.1f}%{' ⏸' if f.pause_report else ''} |"
        )
    lines.append("")

    return "\n".join(lines)


def save_report(report_content: str, output_path: Union[str, Path]) -> Path:
    """
    Save report content to a markdown file.

    Args:
        report_content: Markdown report string
        output_path: Path to save the report

    Returns:
        Path written
    """
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(report_content, encoding="utf-8")
    logger.info(f"Report saved to {path}")
    return path
