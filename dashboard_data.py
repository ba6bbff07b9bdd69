#!/usr/bin/env python3
"""
Assemble the dashboard data bundle.

Pipeline:
    boundary file ──> load_boundary_features ─┐
    info_constituency ──> fetch_registry ─────┼─> match_features ─> units
    four result feeds ──> load_election_lookups ──> lookups
                                              └─> calculate_totals

The bundle is what the rendering layer consumes, either in memory or as
JSON via write_bundle().
"""

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from config import Config, get_config
from ect_api import SourceCache, SourceFetchError, fetch_registry
from election_lookups import load_election_lookups, load_election_lookups_degraded
from election_types import ElectionLookups, RegistryRecord, ResolvedUnit, TotalStats
from geo_matching import MatchResult, calculate_totals, load_boundary_features, match_features, matched_units
from logging_config import LogContext, get_logger
from provinces import DEFAULT_TABLES, ProvinceTables
from stats_aggregation import group_stats, region_stats

logger = get_logger(__name__)


@dataclass(frozen=True)
class DashboardBundle:
    """Everything one pipeline run produces."""
    match: MatchResult
    lookups: ElectionLookups
    totals: TotalStats
    registry: tuple[RegistryRecord, ...] = ()
    generated_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    tables: ProvinceTables = field(default=DEFAULT_TABLES, compare=False, repr=False)

    @property
    def units(self) -> list[ResolvedUnit]:
        return matched_units(self.match.features)


def build_dashboard_bundle(
    config: Optional[Config] = None,
    cache: Optional[SourceCache] = None,
    tables: ProvinceTables = DEFAULT_TABLES,
) -> DashboardBundle:
    """
    Run the full pipeline once.

    A failed registry fetch leaves every feature unmatched; failed result
    feeds leave the lookups empty (or partial with config.allow_degraded).

    Raises:
        FileNotFoundError: If the boundary file does not exist
    """
    config = config or get_config()

    features = load_boundary_features(config.boundary_path)

    try:
        registry = fetch_registry(config, cache)
    except SourceFetchError as e:
        logger.error(f"Registry fetch failed: {e}")
        logger.warning("Continuing with an empty registry; all boundaries will be unmatched")
        registry = []

    with LogContext(logger, "Matching boundaries to registry"):
        match = match_features(features, registry, tables)

    if config.allow_degraded:
        lookups = load_election_lookups_degraded(config, registry, cache)
    else:
        lookups = load_election_lookups(config, registry, cache)

    return DashboardBundle(
        match=match,
        lookups=lookups,
        totals=calculate_totals(registry),
        registry=tuple(registry),
        tables=tables,
    )


def bundle_to_dict(bundle: DashboardBundle) -> dict:
    """JSON-ready view of a bundle."""
    units = bundle.units
    diff = bundle.lookups.diff
    return {
        "generated_at": bundle.generated_at,
        "totals": asdict(bundle.totals),
        "matched": bundle.match.matched,
        "unmatched": bundle.match.unmatched,
        "features": [f.to_geojson() for f in bundle.match.features],
        "lookups": bundle.lookups.to_dict(),
        "stats": {
            "nationwide": group_stats(units, diff).to_dict(),
            "regions": {
                region: stats.to_dict()
                for region, stats in region_stats(units, diff, bundle.tables).items()
            },
        },
    }


def write_bundle(bundle: DashboardBundle, path: Union[str, Path]) -> Path:
    """Write the bundle as JSON."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(bundle_to_dict(bundle), f, ensure_ascii=False)
    logger.info(f"Bundle written to {path}")
    return path
