#!/usr/bin/env python3
"""
Build the per-constituency election lookups from the ECT result feeds.

Five lookups, all keyed by cons_id:
    winners     rank-1 candidate with party and split-ticket context
    party_list  party-list turnout and the top three parties
    referendum  yes/no/abstain split of the first referendum question
    diff        MP ballot vs party-list ballot turnout difference
    forensics   invalid/blank/valid ballots, reporting completeness

Province summary rows (cons_id ending in "_0") are skipped everywhere.
Unknown candidate or party ids resolve to placeholder names instead of
raising.
"""

from typing import Iterable, Optional

from config import Config, get_config
from ect_api import ECTSources, SourceCache, SourceFetchError, fetch_sources, fetch_sources_with_status
from ect_schemas import MpCandidate, PartyOverview, StatsCons, StatsReferendum
from election_types import (
    UNKNOWN_CANDIDATE,
    UNKNOWN_PARTY,
    UNKNOWN_PARTY_COLOR,
    DiffRecord,
    ElectionLookups,
    ForensicsRecord,
    LookupStatus,
    PartyListEntry,
    PartyListSummary,
    ReferendumSummary,
    RegistryRecord,
    WinnerRecord,
    is_summary_unit,
)
from logging_config import LogContext, get_logger

logger = get_logger(__name__)

TOP_PARTY_COUNT = 3


def safe_percent(value: float, total: float) -> float:
    """value / total * 100, or 0 when total is not positive."""
    return value / total * 100 if total > 0 else 0.0


def _party_map(parties: Iterable[PartyOverview]) -> dict[int, tuple[str, str]]:
    return {p.id: (p.name, p.color) for p in parties}


def _resolve_party(party_map: dict[int, tuple[str, str]], party_id: int) -> tuple[str, str]:
    return party_map.get(party_id, (UNKNOWN_PARTY, UNKNOWN_PARTY_COLOR))


def _unit_rows(stats: StatsCons):
    for cons in stats.iter_constituencies():
        if is_summary_unit(cons.cons_id):
            continue
        yield cons


def build_winner_lookup(
    stats: StatsCons,
    candidates: Iterable[MpCandidate],
    parties: Iterable[PartyOverview],
) -> dict[str, WinnerRecord]:
    """
    Resolve the rank-1 candidate of each constituency.

    Units without a rank-1 candidate are left out.
    """
    candidate_names = {c.mp_app_id: c.mp_app_name for c in candidates}
    party_map = _party_map(parties)

    result: dict[str, WinnerRecord] = {}
    for cons in _unit_rows(stats):
        winner = next((c for c in cons.candidates if c.mp_app_rank == 1), None)
        if winner is None:
            continue

        party_name, party_color = _resolve_party(party_map, winner.party_id)

        # Winner's own party on the party-list ballot, for split-ticket views
        party_result = next((rp for rp in cons.result_party if rp.party_id == winner.party_id), None)
        pl_vote_pct = party_result.party_list_vote_percent if party_result else 0.0

        result[cons.cons_id] = WinnerRecord(
            candidate_name=candidate_names.get(winner.mp_app_id) or UNKNOWN_CANDIDATE,
            party_name=party_name,
            party_color=party_color,
            vote_count=winner.mp_app_vote,
            vote_percent=winner.mp_app_vote_percent,
            turn_out=cons.turn_out,
            party_list_vote_percent=pl_vote_pct,
        )

    logger.info(f"Built winner lookup: {len(result)} winners")
    return result


def build_party_list_lookup(
    stats: StatsCons,
    parties: Iterable[PartyOverview],
) -> dict[str, PartyListSummary]:
    """Top three parties by party-list votes per constituency."""
    party_map = _party_map(parties)

    result: dict[str, PartyListSummary] = {}
    for cons in _unit_rows(stats):
        if not cons.result_party:
            continue

        ranked = sorted(
            (rp for rp in cons.result_party if rp.party_list_vote > 0),
            key=lambda rp: rp.party_list_vote,
            reverse=True,
        )[:TOP_PARTY_COUNT]

        top_parties = []
        for rp in ranked:
            name, color = _resolve_party(party_map, rp.party_id)
            top_parties.append(PartyListEntry(
                party_name=name,
                party_color=color,
                votes=rp.party_list_vote,
                vote_percent=rp.party_list_vote_percent,
            ))

        result[cons.cons_id] = PartyListSummary(
            turn_out=cons.party_list_turn_out,
            top_parties=tuple(top_parties),
        )

    logger.info(f"Built party-list lookup: {len(result)} constituencies")
    return result


def build_referendum_question_lookup(referendum: StatsReferendum) -> dict[str, dict[str, ReferendumSummary]]:
    """Every referendum question per constituency, in document order."""
    result: dict[str, dict[str, ReferendumSummary]] = {}
    for cons in referendum.iter_constituencies():
        if is_summary_unit(cons.cons_id) or not cons.referendum_results:
            continue
        result[cons.cons_id] = {
            key: ReferendumSummary(
                percent_yes=r.percent_yes,
                percent_no=r.percent_no,
                percent_abstained=r.percent_abstained,
                yes=r.yes,
                no=r.no,
                abstained=r.abstained,
                question_key=key,
            )
            for key, r in cons.referendum_results.items()
        }
    return result


def build_referendum_lookup(referendum: StatsReferendum) -> dict[str, ReferendumSummary]:
    """First referendum question per constituency."""
    result = {
        cons_id: next(iter(questions.values()))
        for cons_id, questions in build_referendum_question_lookup(referendum).items()
    }
    logger.info(f"Built referendum lookup: {len(result)} constituencies")
    return result


def build_diff_lookup(stats: StatsCons) -> dict[str, DiffRecord]:
    """MP vs party-list turnout difference for every constituency, zero diffs included."""
    result: dict[str, DiffRecord] = {}
    for cons in _unit_rows(stats):
        result[cons.cons_id] = DiffRecord(
            mp_turn_out=cons.turn_out,
            mp_percent_turn_out=cons.percent_turn_out,
            party_list_turn_out=cons.party_list_turn_out,
            party_list_percent_turn_out=cons.party_list_percent_turn_out,
            diff_count=cons.turn_out - cons.party_list_turn_out,
            diff_percent=cons.percent_turn_out - cons.party_list_percent_turn_out,
        )

    logger.info(f"Built diff lookup: {len(result)} constituencies")
    return result


def build_forensics_lookup(
    stats: StatsCons,
    registry: Iterable[RegistryRecord] = (),
) -> dict[str, ForensicsRecord]:
    """
    Invalid/blank/valid ballot shares for both ballots per constituency.

    Percentages are relative to the turnout of the same ballot. Registered
    voters and station totals come from the registry (0 when the unit is
    missing there).
    """
    registry_ref: dict[str, tuple[int, int]] = {}
    for rec in registry:
        if rec.district_no == 0:
            continue
        registry_ref[rec.unit_id] = (rec.registered_voters or 0, rec.station_count or 0)

    result: dict[str, ForensicsRecord] = {}
    for cons in _unit_rows(stats):
        mp_turnout = cons.turn_out
        pl_turnout = cons.party_list_turn_out

        mp_invalid_pct = safe_percent(cons.invalid_votes, mp_turnout)
        pl_invalid_pct = safe_percent(cons.party_list_invalid_votes, pl_turnout)
        mp_blank_pct = safe_percent(cons.blank_votes, mp_turnout)
        pl_blank_pct = safe_percent(cons.party_list_blank_votes, pl_turnout)
        mp_valid_pct = safe_percent(cons.valid_votes, mp_turnout)
        pl_valid_pct = safe_percent(cons.party_list_valid_votes, pl_turnout)

        registered, total_stations = registry_ref.get(cons.cons_id, (0, 0))

        result[cons.cons_id] = ForensicsRecord(
            mp_invalid_votes=cons.invalid_votes,
            mp_invalid_pct=mp_invalid_pct,
            pl_invalid_votes=cons.party_list_invalid_votes,
            pl_invalid_pct=pl_invalid_pct,
            invalid_diff=mp_invalid_pct - pl_invalid_pct,
            mp_blank_votes=cons.blank_votes,
            mp_blank_pct=mp_blank_pct,
            pl_blank_votes=cons.party_list_blank_votes,
            pl_blank_pct=pl_blank_pct,
            blank_diff=mp_blank_pct - pl_blank_pct,
            mp_valid_votes=cons.valid_votes,
            mp_valid_pct=mp_valid_pct,
            pl_valid_votes=cons.party_list_valid_votes,
            pl_valid_pct=pl_valid_pct,
            valid_diff=mp_valid_pct - pl_valid_pct,
            counted_vote_stations=cons.counted_vote_stations,
            total_vote_stations=total_stations,
            percent_count=cons.percent_count,
            pause_report=cons.pause_report,
            registered_voters=registered,
            mp_turnout_of_registered=safe_percent(mp_turnout, registered),
        )

    logger.info(f"Built forensics lookup: {len(result)} constituencies")
    return result


def empty_lookups(error: str = "", failed_sources: tuple[str, ...] = ()) -> ElectionLookups:
    """Lookups with all five maps empty and a failed status."""
    return ElectionLookups(status=LookupStatus(ok=False, failed_sources=failed_sources, error=error))


def build_election_lookups(
    sources: Optional[ECTSources],
    registry: Iterable[RegistryRecord] = (),
) -> ElectionLookups:
    """
    Build all five lookups from fetched feeds.

    Args:
        sources: Validated feeds, or None when the fetch failed
        registry: Constituency registry for the forensics join

    Returns:
        ElectionLookups; all maps empty when sources is None
    """
    if sources is None:
        return empty_lookups()

    registry = list(registry)
    return ElectionLookups(
        winners=build_winner_lookup(sources.stats_cons, sources.mp_candidates, sources.party_overview),
        party_list=build_party_list_lookup(sources.stats_cons, sources.party_overview),
        referendum=build_referendum_lookup(sources.stats_referendum),
        diff=build_diff_lookup(sources.stats_cons),
        forensics=build_forensics_lookup(sources.stats_cons, registry),
        referendum_questions=build_referendum_question_lookup(sources.stats_referendum),
    )


def load_election_lookups(
    config: Optional[Config] = None,
    registry: Iterable[RegistryRecord] = (),
    cache: Optional[SourceCache] = None,
) -> ElectionLookups:
    """
    Fetch the result feeds and build the lookups, all or nothing.

    A failed fetch is logged and yields empty lookups; it never raises.
    """
    config = config or get_config()
    try:
        with LogContext(logger, "Fetching ECT result feeds"):
            sources = fetch_sources(config, cache)
    except SourceFetchError as e:
        logger.error(f"Election data fetch failed: {e}")
        logger.warning("Falling back to empty election lookups")
        failed = (e.source,) if e.source else ()
        return empty_lookups(error=str(e), failed_sources=failed)

    return build_election_lookups(sources, registry)


def load_election_lookups_degraded(
    config: Optional[Config] = None,
    registry: Iterable[RegistryRecord] = (),
    cache: Optional[SourceCache] = None,
) -> ElectionLookups:
    """
    Fetch the result feeds and build whichever lookups their inputs allow.

    stats_cons feeds winners, party list, diff and forensics; stats_referendum
    feeds the referendum lookups. A missing candidate or party directory only
    degrades names to placeholders. The status lists the feeds that failed.
    """
    config = config or get_config()
    with LogContext(logger, "Fetching ECT result feeds (per source)"):
        results = fetch_sources_with_status(config, cache)

    failed = tuple(name for name, r in results.items() if not r.ok)
    if failed:
        logger.warning(f"Building degraded lookups without: {', '.join(failed)}")

    def payload(name, default=None):
        r = results[name]
        return r.payload if r.ok else default

    stats = payload("stats_cons")
    referendum = payload("stats_referendum")
    candidates = payload("mp_candidates", [])
    parties = payload("party_overview", [])
    registry = list(registry)

    lookups = ElectionLookups(
        winners=build_winner_lookup(stats, candidates, parties) if stats is not None else {},
        party_list=build_party_list_lookup(stats, parties) if stats is not None else {},
        referendum=build_referendum_lookup(referendum) if referendum is not None else {},
        diff=build_diff_lookup(stats) if stats is not None else {},
        forensics=build_forensics_lookup(stats, registry) if stats is not None else {},
        referendum_questions=build_referendum_question_lookup(referendum) if referendum is not None else {},
        status=LookupStatus(
            ok=not failed,
            degraded=bool(failed) and len(failed) < len(results),
            failed_sources=failed,
            error="; ".join(f"{name}: {results[name].error}" for name in failed),
        ),
    )
    return lookups
