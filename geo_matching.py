#!/usr/bin/env python3
"""
Match constituency boundary polygons to the ECT constituency registry.

The boundary file only knows the Thai province name (P_name) and the
constituency number (CONS_no); the registry knows the ECT province code.
Features are joined on "{province_code}:{district_no}".
"""

import json
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Iterable, Optional, Union

from election_types import BoundaryFeature, RegistryRecord, ResolvedUnit, TotalStats
from logging_config import get_logger
from provinces import DEFAULT_TABLES, ProvinceTables

logger = get_logger(__name__)


def _to_int(value) -> int:
    if value is None or value == "":
        return 0
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


def registry_key(province_code: str, district_no: int) -> str:
    return f"{province_code}:{district_no}"


@dataclass(frozen=True)
class MatchResult:
    """Outcome of matching boundary features against the registry."""
    features: tuple[BoundaryFeature, ...]
    matched: int
    unmatched: int

    @property
    def unmatched_features(self) -> list[BoundaryFeature]:
        return [f for f in self.features if not f.matched]


def load_boundary_features(path: Union[str, Path]) -> list[BoundaryFeature]:
    """
    Load constituency polygons from a GeoJSON FeatureCollection.

    Args:
        path: Path to the boundary file (features carry P_name and CONS_no)

    Returns:
        Unmatched BoundaryFeature list, in file order

    Raises:
        FileNotFoundError: If the file does not exist
    """
    path = Path(path)
    logger.info(f"Loading constituency boundaries from {path}")
    with open(path, encoding="utf-8") as f:
        geojson = json.load(f)

    features = []
    for feat in geojson.get("features", []):
        props = dict(feat.get("properties") or {})
        province_name = str(props.pop("P_name", "") or "").strip()
        district_no = _to_int(props.pop("CONS_no", 0))
        features.append(BoundaryFeature(
            province_name=province_name,
            district_no=district_no,
            geometry=feat.get("geometry") or {},
            properties=props,
            label=f"{province_name} เขต {district_no}",
        ))

    logger.info(f"Loaded {len(features)} constituency features")
    return features


def build_registry_index(
    records: Iterable[RegistryRecord],
    tables: ProvinceTables = DEFAULT_TABLES,
) -> dict[str, ResolvedUnit]:
    """
    Index registry records by "{province_code}:{district_no}".

    Province summary rows (district 0) are skipped. A repeated key keeps the
    last record seen.
    """
    index: dict[str, ResolvedUnit] = {}
    for rec in records:
        if rec.district_no == 0:
            continue
        index[registry_key(rec.province_code, rec.district_no)] = ResolvedUnit(
            unit_id=rec.unit_id,
            district_no=rec.district_no,
            province_code=rec.province_code,
            province_name_th=tables.name_th.get(rec.province_code, ""),
            province_name_en=tables.name_en.get(rec.province_code, rec.province_code),
            zones=tuple(rec.zones),
            station_count=rec.station_count or 0,
            registered_voters=rec.registered_voters or 0,
        )
    logger.debug(f"Built registry index with {len(index)} entries")
    return index


def match_feature(
    feature: BoundaryFeature,
    index: dict[str, ResolvedUnit],
    tables: ProvinceTables = DEFAULT_TABLES,
) -> BoundaryFeature:
    """Match one feature; returns a new feature with unit and label set."""
    code = tables.resolve_province_code(feature.province_name)

    unit: Optional[ResolvedUnit] = None
    if code and feature.district_no > 0:
        unit = index.get(registry_key(code, feature.district_no))

    if unit:
        label = f"{unit.province_name_th} เขต {feature.district_no}"
    else:
        label = f"{feature.province_name} เขต {feature.district_no}"
        if code:
            logger.warning(f"No registry match: {feature.province_name} เขต {feature.district_no} ({code})")
        else:
            logger.warning(f"Unknown province: {feature.province_name!r}")

    return replace(feature, unit=unit, label=label)


def match_features(
    features: Iterable[BoundaryFeature],
    records: Iterable[RegistryRecord],
    tables: ProvinceTables = DEFAULT_TABLES,
) -> MatchResult:
    """
    Attach registry units to boundary features.

    Every feature is kept. Unmatched features have unit=None and a label built
    from the raw boundary names. Input features are not modified.
    """
    index = build_registry_index(records, tables)
    matched_features = tuple(match_feature(f, index, tables) for f in features)
    matched = sum(1 for f in matched_features if f.matched)
    unmatched = len(matched_features) - matched
    logger.info(f"Matched boundaries: {matched} matched, {unmatched} unmatched")
    return MatchResult(features=matched_features, matched=matched, unmatched=unmatched)


def matched_units(features: Iterable[BoundaryFeature]) -> list[ResolvedUnit]:
    """Resolved units of the matched features, in feature order."""
    return [f.unit for f in features if f.unit is not None]


def calculate_totals(records: Iterable[RegistryRecord]) -> TotalStats:
    """
    Summary totals over the registry.

    Provinces are counted from every row; constituency, voter and station
    totals only from real constituencies (district > 0).
    """
    provinces = set()
    constituencies = 0
    registered_voters = 0
    vote_stations = 0

    for rec in records:
        provinces.add(rec.province_code)
        if rec.district_no > 0:
            constituencies += 1
            registered_voters += rec.registered_voters or 0
            vote_stations += rec.station_count or 0

    return TotalStats(
        provinces=len(provinces),
        constituencies=constituencies,
        registered_voters=registered_voters,
        vote_stations=vote_stations,
    )
