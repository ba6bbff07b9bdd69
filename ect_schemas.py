#!/usr/bin/env python3
"""
Pydantic schemas for the raw ECT JSON feeds.

Each feed is validated once, right after download. Unknown keys are ignored,
identity fields (cons_id, prov_id, mp_app_id, party id) are required, and
counts or percentages that are absent or null read as 0. Anything else that
does not fit raises FeedSchemaError naming the feed.

Feeds:
    stats_cons.json           per-constituency turnout, ballots, candidates, parties
    stats_referendum.json     per-constituency referendum results
    info_mp_candidate.json    candidate directory
    info_party_overview.json  party directory
    info_constituency.json    constituency registry
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError, field_validator

from election_types import UNKNOWN_PARTY_COLOR, RegistryRecord


class FeedSchemaError(ValueError):
    """A feed payload does not match its expected shape."""

    def __init__(self, feed: str, detail: str):
        self.feed = feed
        self.detail = detail
        super().__init__(f"{feed}: {detail}")


class ECTModel(BaseModel):
    """Base for all feed models."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    @field_validator("*", mode="before")
    @classmethod
    def _null_to_default(cls, value: Any, info) -> Any:
        # ECT publishes null for counts that have not been reported yet
        if value is None:
            field = cls.model_fields[info.field_name]
            if not field.is_required():
                return field.get_default(call_default_factory=True)
        return value


# ---------------------------------------------------------------------------
# stats_cons.json
# ---------------------------------------------------------------------------

class CandidateResult(ECTModel):
    mp_app_id: str
    mp_app_vote: int = 0
    mp_app_vote_percent: float = 0.0
    mp_app_rank: int = 0
    party_id: int = 0


class PartyResult(ECTModel):
    party_id: int
    party_list_vote: int = 0
    party_cons_votes: int = 0
    first_mp_app_count: int = 0
    party_list_vote_percent: float = 0.0
    party_cons_votes_percent: float = 0.0


class StatsConstituency(ECTModel):
    cons_id: str
    turn_out: int = 0
    percent_turn_out: float = 0.0
    valid_votes: int = 0
    invalid_votes: int = 0
    blank_votes: int = 0
    party_list_turn_out: int = 0
    party_list_percent_turn_out: float = 0.0
    party_list_valid_votes: int = 0
    party_list_invalid_votes: int = 0
    party_list_blank_votes: int = 0
    counted_vote_stations: int = 0
    percent_count: float = 0.0
    pause_report: bool = False
    candidates: list[CandidateResult] = []
    result_party: list[PartyResult] = []


class StatsProvince(ECTModel):
    prov_id: str
    turn_out: int = 0
    percent_turn_out: float = 0.0
    constituencies: list[StatsConstituency] = []
    result_party: list[PartyResult] = []


class StatsCons(ECTModel):
    turn_out: int = 0
    percent_turn_out: float = 0.0
    counted_vote_stations: int = 0
    percent_count: float = 0.0
    pause_report: bool = False
    result_province: list[StatsProvince] = []

    def iter_constituencies(self):
        """Yield every constituency row, province summaries included."""
        for prov in self.result_province:
            yield from prov.constituencies


# ---------------------------------------------------------------------------
# stats_referendum.json
# ---------------------------------------------------------------------------

class ReferendumResult(ECTModel):
    yes: int = 0
    no: int = 0
    abstained: int = 0
    percent_yes: float = 0.0
    percent_no: float = 0.0
    percent_abstained: float = 0.0


class ReferendumConstituency(ECTModel):
    cons_id: str
    referendum_turn_out: int = 0
    referendum_percent_turn_out: float = 0.0
    referendum_results: dict[str, ReferendumResult] = {}  # question key -> result, document order


class ReferendumProvince(ECTModel):
    prov_id: str
    constituencies: list[ReferendumConstituency] = []


class StatsReferendum(ECTModel):
    referendum_turn_out: int = 0
    referendum_percent_turn_out: float = 0.0
    pause_report: bool = False
    referendum_results: dict[str, ReferendumResult] = {}
    result_province: list[ReferendumProvince] = []

    def iter_constituencies(self):
        for prov in self.result_province:
            yield from prov.constituencies


# ---------------------------------------------------------------------------
# Reference directories
# ---------------------------------------------------------------------------

class MpCandidate(ECTModel):
    mp_app_id: str  # Format: {prov_abbr}_{cons_no}_{position}
    mp_app_no: int = 0
    mp_app_party_id: int = 0
    mp_app_name: str = ""
    image_url: str = ""


class PartyOverview(ECTModel):
    id: int
    party_no: str = ""
    name: str = ""
    abbr: Optional[str] = None
    color: str = UNKNOWN_PARTY_COLOR
    logo_url: str = ""


class ConstituencyInfo(ECTModel):
    cons_id: str
    cons_no: int
    prov_id: str
    zone: list[str] = []
    total_vote_stations: int = 0
    registered_vote: Optional[int] = None

    def to_record(self) -> RegistryRecord:
        return RegistryRecord(
            unit_id=self.cons_id,
            district_no=self.cons_no,
            province_code=self.prov_id,
            zones=tuple(self.zone),
            station_count=self.total_vote_stations,
            registered_voters=self.registered_vote,
        )


_CANDIDATES = TypeAdapter(list[MpCandidate])
_PARTIES = TypeAdapter(list[PartyOverview])
_REGISTRY = TypeAdapter(list[ConstituencyInfo])


def _describe(exc: ValidationError, limit: int = 3) -> str:
    parts = []
    for err in exc.errors()[:limit]:
        loc = ".".join(str(p) for p in err["loc"]) or "<root>"
        parts.append(f"{loc}: {err['msg']}")
    more = exc.error_count() - limit
    if more > 0:
        parts.append(f"... and {more} more")
    return "; ".join(parts)


def _validate(feed: str, validator, payload: Any):
    try:
        return validator(payload)
    except ValidationError as e:
        raise FeedSchemaError(feed, _describe(e)) from e


def parse_stats_cons(payload: Any) -> StatsCons:
    """Validate a stats_cons.json payload."""
    return _validate("stats_cons", StatsCons.model_validate, payload)


def parse_stats_referendum(payload: Any) -> StatsReferendum:
    """Validate a stats_referendum.json payload."""
    return _validate("stats_referendum", StatsReferendum.model_validate, payload)


def parse_mp_candidates(payload: Any) -> list[MpCandidate]:
    """Validate an info_mp_candidate.json payload."""
    return _validate("mp_candidates", _CANDIDATES.validate_python, payload)


def parse_party_overview(payload: Any) -> list[PartyOverview]:
    """Validate an info_party_overview.json payload."""
    return _validate("party_overview", _PARTIES.validate_python, payload)


def parse_registry(payload: Any) -> list[RegistryRecord]:
    """Validate an info_constituency.json payload into registry records."""
    rows = _validate("constituencies", _REGISTRY.validate_python, payload)
    return [row.to_record() for row in rows]


PARSERS = {
    "stats_cons": parse_stats_cons,
    "stats_referendum": parse_stats_referendum,
    "mp_candidates": parse_mp_candidates,
    "party_overview": parse_party_overview,
    "constituencies": parse_registry,
}
