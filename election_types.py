#!/usr/bin/env python3
"""
Record types for constituency reconciliation and ballot forensics.

Contains: registry and boundary records, the resolved per-constituency
lookups (winner, party list, referendum, diff, forensics), group statistics
and anomaly records.

Every derived record is frozen: lookups are built once per run and never
mutated afterwards.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Optional


# Fail-open placeholders for missing cross-references
UNKNOWN_CANDIDATE = "ไม่ทราบชื่อ"
UNKNOWN_PARTY = "ไม่ทราบพรรค"
UNKNOWN_PARTY_COLOR = "#666"
NO_WINNER = "-"

# ECT marks province-level aggregate rows with this unit id suffix (e.g. BKK_0)
SUMMARY_SUFFIX = "_0"


def is_summary_unit(unit_id: str) -> bool:
    """Check if a unit id is a province-level summary row."""
    return unit_id.endswith(SUMMARY_SUFFIX)


class ScoreBand(Enum):
    """Composite anomaly score bands."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NORMAL = "normal"


@dataclass(frozen=True)
class RegistryRecord:
    """One row of the ECT constituency registry (info_constituency.json)."""
    unit_id: str  # cons_id, e.g. "BKK_1"
    district_no: int  # cons_no, 0 = province summary
    province_code: str  # prov_id
    zones: tuple[str, ...] = ()
    station_count: int = 0
    registered_voters: Optional[int] = None


@dataclass(frozen=True)
class ResolvedUnit:
    """Canonical identity of a matched constituency."""
    unit_id: str
    district_no: int
    province_code: str
    province_name_th: str
    province_name_en: str
    zones: tuple[str, ...] = ()
    station_count: int = 0
    registered_voters: int = 0

    def to_dict(self) -> dict:
        return {
            "cons_id": self.unit_id,
            "cons_no": self.district_no,
            "prov_id": self.province_code,
            "prov_name_th": self.province_name_th,
            "prov_name_en": self.province_name_en,
            "zone": list(self.zones),
            "vote_stations": self.station_count,
            "registered_voters": self.registered_voters,
        }


@dataclass(frozen=True)
class BoundaryFeature:
    """A constituency polygon from the boundary file."""
    province_name: str  # P_name (Thai)
    district_no: int  # CONS_no
    geometry: dict = field(default_factory=dict, compare=False)
    properties: dict = field(default_factory=dict, compare=False)
    unit: Optional[ResolvedUnit] = None
    label: str = ""

    @property
    def matched(self) -> bool:
        return self.unit is not None

    def to_geojson(self) -> dict:
        """Render as a GeoJSON feature with the attachment in its properties."""
        props = dict(self.properties)
        props.update({
            "P_name": self.province_name,
            "CONS_no": self.district_no,
            "_cons_data": self.unit.to_dict() if self.unit else None,
            "_label": self.label,
        })
        return {"type": "Feature", "geometry": self.geometry, "properties": props}


@dataclass(frozen=True)
class WinnerRecord:
    """Rank-1 constituency candidate."""
    candidate_name: str
    party_name: str
    party_color: str
    vote_count: int
    vote_percent: float
    turn_out: int  # MP ballot turnout in the unit
    party_list_vote_percent: float  # winner's party on the party-list ballot, same unit


@dataclass(frozen=True)
class PartyListEntry:
    party_name: str
    party_color: str
    votes: int
    vote_percent: float


@dataclass(frozen=True)
class PartyListSummary:
    """Party-list turnout plus the top parties by votes (at most three)."""
    turn_out: int
    top_parties: tuple[PartyListEntry, ...] = ()


@dataclass(frozen=True)
class ReferendumSummary:
    percent_yes: float
    percent_no: float
    percent_abstained: float
    yes: int = 0
    no: int = 0
    abstained: int = 0
    question_key: str = ""

    @property
    def turnout_percent(self) -> float:
        """Share of referendum ballots that were not abstentions."""
        return 100 - self.percent_abstained


@dataclass(frozen=True)
class DiffRecord:
    """MP ballot vs party-list ballot turnout for one unit."""
    mp_turn_out: int
    mp_percent_turn_out: float
    party_list_turn_out: int
    party_list_percent_turn_out: float
    diff_count: int  # mp_turn_out - party_list_turn_out
    diff_percent: float  # mp_percent_turn_out - party_list_percent_turn_out


@dataclass(frozen=True)
class ForensicsRecord:
    """Invalid/blank/valid ballot analysis for one unit."""
    mp_invalid_votes: int
    mp_invalid_pct: float
    pl_invalid_votes: int
    pl_invalid_pct: float
    invalid_diff: float
    mp_blank_votes: int
    mp_blank_pct: float
    pl_blank_votes: int
    pl_blank_pct: float
    blank_diff: float
    mp_valid_votes: int
    mp_valid_pct: float
    pl_valid_votes: int
    pl_valid_pct: float
    valid_diff: float
    counted_vote_stations: int
    total_vote_stations: int
    percent_count: float
    pause_report: bool
    registered_voters: int
    mp_turnout_of_registered: float

    @property
    def fully_counted(self) -> bool:
        return self.percent_count >= 100


@dataclass(frozen=True)
class LookupStatus:
    """Which sources fed a set of lookups."""
    ok: bool = True
    degraded: bool = False
    failed_sources: tuple[str, ...] = ()
    error: str = ""


@dataclass(frozen=True)
class ElectionLookups:
    """The five per-unit lookups, keyed by unit id."""
    winners: dict[str, WinnerRecord] = field(default_factory=dict)
    party_list: dict[str, PartyListSummary] = field(default_factory=dict)
    referendum: dict[str, ReferendumSummary] = field(default_factory=dict)
    diff: dict[str, DiffRecord] = field(default_factory=dict)
    forensics: dict[str, ForensicsRecord] = field(default_factory=dict)
    # unit id -> question key -> summary, every referendum question
    referendum_questions: dict[str, dict[str, ReferendumSummary]] = field(default_factory=dict)
    status: LookupStatus = LookupStatus()

    @property
    def is_empty(self) -> bool:
        return not (self.winners or self.party_list or self.referendum or self.diff or self.forensics)

    def to_dict(self) -> dict:
        return {
            "winners": {k: asdict(v) for k, v in self.winners.items()},
            "party_list": {k: asdict(v) for k, v in self.party_list.items()},
            "referendum": {k: asdict(v) for k, v in self.referendum.items()},
            "diff": {k: asdict(v) for k, v in self.diff.items()},
            "forensics": {k: asdict(v) for k, v in self.forensics.items()},
            "referendum_questions": {
                k: {q: asdict(s) for q, s in questions.items()}
                for k, questions in self.referendum_questions.items()
            },
            "status": asdict(self.status),
        }


@dataclass(frozen=True)
class GroupStats:
    """Turnout-diff statistics over a group of units."""
    count: int = 0
    mismatch_count: int = 0  # units with diff_count != 0
    avg_percent: float = 0.0  # mean |diff_percent|
    max_percent: float = 0.0
    min_percent: float = 0.0
    max_count: int = 0  # largest |diff_count|
    min_count: int = 0  # smallest |diff_count|
    max_unit_id: str = ""
    min_unit_id: str = ""
    sum_abs_count: int = 0
    sum_abs_percent: float = 0.0
    total_mp_turnout: int = 0
    total_pl_turnout: int = 0

    @property
    def turnout_gap_percent(self) -> float:
        """Summed MP turnout over summed party-list turnout, as percent excess."""
        if self.total_pl_turnout <= 0:
            return 0.0
        return (self.total_mp_turnout - self.total_pl_turnout) / self.total_pl_turnout * 100

    def to_dict(self) -> dict:
        d = asdict(self)
        d["turnout_gap_percent"] = self.turnout_gap_percent
        return d


@dataclass(frozen=True)
class UnitRow:
    """One unit joined with its diff and winner, for party/z-score views."""
    unit_id: str
    label: str
    province_code: str
    region: Optional[str]
    winner_party: str
    party_color: str
    diff_count: int
    diff_percent: float
    mp_turn_out: int
    party_list_turn_out: int
    registered_voters: int = 0
    winner_vote_count: int = 0
    winner_turn_out: int = 0

    @property
    def has_winner(self) -> bool:
        return self.winner_party != NO_WINNER


@dataclass(frozen=True)
class PartyStats:
    """Diff distribution over the units a party won."""
    party_name: str
    party_color: str
    units_won: int
    total_abs_diff: int
    avg_diff: float
    avg_abs_diff: float
    avg_diff_percent: float
    median_diff: float
    std_dev: float
    q1: float
    q3: float
    min_diff: int
    max_diff: int
    diffs: tuple[int, ...] = ()


@dataclass(frozen=True)
class BoxSummary:
    """Box-plot summary of a numeric sample."""
    q1: float = 0.0
    median: float = 0.0
    q3: float = 0.0
    iqr: float = 0.0
    whisker_low: float = 0.0
    whisker_high: float = 0.0
    outliers: tuple[float, ...] = ()


@dataclass(frozen=True)
class ZScoreResult:
    """One unit scored against a turnout-diff baseline."""
    unit_id: str
    label: str
    winner_party: str
    diff_count: int
    z: float
    is_anomaly: bool


@dataclass(frozen=True)
class AnomalyRecord:
    """Composite forensics score inputs and result for one unit."""
    unit_id: str
    label: str
    province_code: str
    region: Optional[str]
    winner_party: str
    party_color: str
    forensics: ForensicsRecord
    turnout_diff_pct: float
    election_turnout_pct: float
    referendum_turnout_pct: float
    score: float = 0.0


@dataclass(frozen=True)
class TotalStats:
    """Registry totals."""
    provinces: int = 0
    constituencies: int = 0
    registered_voters: int = 0
    vote_stations: int = 0


@dataclass(frozen=True)
class DiffInsights:
    """Headline statistics of signed diff_count over a set of units."""
    total_areas: int = 0
    total_abs_diff: int = 0
    positive_count: int = 0  # more MP ballots than party-list ballots
    negative_count: int = 0
    zero_count: int = 0
    mean_diff: float = 0.0
    median_diff: float = 0.0
    std_dev: float = 0.0
    skewness: float = 0.0
    max_diff: int = 0
    min_diff: int = 0
    highest_region: str = ""
    highest_region_diff: int = 0
    lowest_region: str = ""
    lowest_region_diff: int = 0


@dataclass(frozen=True)
class RegionRatio:
    """Absolute turnout diff of a region relative to its electorate."""
    region: str
    region_name: str
    sum_abs_diff: int
    registered_voters: int

    @property
    def ratio(self) -> float:
        if self.registered_voters <= 0:
            return 0.0
        return self.sum_abs_diff / self.registered_voters


@dataclass(frozen=True)
class PartyShare:
    """Units won by one party among a filtered set of units."""
    party_name: str
    party_color: str
    count: int
    unit_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class WinRatioPoint:
    """Winner's share of turnout against the unit's absolute turnout diff."""
    unit_id: str
    label: str
    party_name: str
    party_color: str
    abs_diff_count: int
    vote_count: int
    vote_percent_of_turnout: float
