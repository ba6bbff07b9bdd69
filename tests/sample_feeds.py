#!/usr/bin/env python3
"""
Small ECT-shaped payloads shared by the tests.

Two provinces in two regions:
    BKK (central)  BKK_1  +10 diff   BKK_2  -10 diff
    CMI (north)    CMI_1  0 diff     CMI_2  no candidates, turnout 0
plus a BKK_0 province summary row that every join must skip.
"""

import json
from pathlib import Path
from typing import Optional

from election_types import ResolvedUnit

PARTIES = [
    {"id": "1", "party_no": "1", "name": "พรรคหนึ่ง", "abbr": "น.", "color": "#ff0000", "logo_url": ""},
    {"id": "2", "party_no": "2", "name": "พรรคสอง", "abbr": None, "color": "#0000ff", "logo_url": ""},
    {"id": "3", "party_no": "3", "name": "พรรคสาม", "abbr": "ส.", "color": "#00ff00", "logo_url": ""},
]

CANDIDATES = [
    {"mp_app_id": "BKK_1_1", "mp_app_no": 1, "mp_app_party_id": 1, "mp_app_name": "นายหนึ่ง ใจดี", "image_url": ""},
    {"mp_app_id": "BKK_1_2", "mp_app_no": 2, "mp_app_party_id": 2, "mp_app_name": "นางสอง รักชาติ", "image_url": ""},
    {"mp_app_id": "BKK_2_1", "mp_app_no": 1, "mp_app_party_id": 2, "mp_app_name": "นายสาม มั่นคง", "image_url": ""},
    # CMI_1_3 is missing from the directory on purpose
]

REGISTRY = [
    {"cons_id": "BKK_0", "cons_no": 0, "prov_id": "BKK", "zone": [], "total_vote_stations": 0, "registered_vote": None},
    {"cons_id": "BKK_1", "cons_no": 1, "prov_id": "BKK", "zone": ["เขตพระนคร"], "total_vote_stations": 10, "registered_vote": 1500},
    {"cons_id": "BKK_2", "cons_no": 2, "prov_id": "BKK", "zone": ["เขตดุสิต"], "total_vote_stations": 12, "registered_vote": 1400},
    {"cons_id": "CMI_1", "cons_no": 1, "prov_id": "CMI", "zone": ["อำเภอเมือง"], "total_vote_stations": 8, "registered_vote": 1200},
    {"cons_id": "CMI_2", "cons_no": 2, "prov_id": "CMI", "zone": [], "total_vote_stations": 5, "registered_vote": None},
]


def cons_row(
    cons_id: str,
    turn_out: int = 1000,
    percent_turn_out: float = 70.0,
    pl_turn_out: int = 1000,
    pl_percent_turn_out: float = 70.0,
    invalid: int = 20,
    blank: int = 10,
    pl_invalid: int = 10,
    pl_blank: int = 10,
    percent_count: float = 100.0,
    pause_report: bool = False,
    candidates: Optional[list] = None,
    result_party: Optional[list] = None,
) -> dict:
    """One stats_cons constituency entry."""
    return {
        "cons_id": cons_id,
        "turn_out": turn_out,
        "percent_turn_out": percent_turn_out,
        "valid_votes": turn_out - invalid - blank,
        "invalid_votes": invalid,
        "blank_votes": blank,
        "party_list_turn_out": pl_turn_out,
        "party_list_percent_turn_out": pl_percent_turn_out,
        "party_list_valid_votes": pl_turn_out - pl_invalid - pl_blank,
        "party_list_invalid_votes": pl_invalid,
        "party_list_blank_votes": pl_blank,
        "counted_vote_stations": 10,
        "percent_count": percent_count,
        "pause_report": pause_report,
        "candidates": candidates or [],
        "result_party": result_party or [],
    }


def candidate(mp_app_id: str, party_id: int, votes: int, rank: int, percent: float = 0.0) -> dict:
    return {
        "mp_app_id": mp_app_id,
        "mp_app_vote": votes,
        "mp_app_vote_percent": percent,
        "mp_app_rank": rank,
        "party_id": party_id,
    }


def party_result(party_id: int, votes: int, percent: float) -> dict:
    return {
        "party_id": party_id,
        "party_list_vote": votes,
        "party_cons_votes": 0,
        "first_mp_app_count": 0,
        "party_list_vote_percent": percent,
        "party_cons_votes_percent": 0.0,
    }


def stats_cons_payload() -> dict:
    return {
        "turn_out": 2990,
        "percent_turn_out": 70.0,
        "counted_vote_stations": 35,
        "percent_count": 97.5,
        "pause_report": False,
        "result_province": [
            {
                "prov_id": "BKK",
                "turn_out": 1990,
                "percent_turn_out": 70.0,
                "constituencies": [
                    cons_row("BKK_0", turn_out=1990, pl_turn_out=1990),
                    cons_row(
                        "BKK_1",
                        turn_out=1000, percent_turn_out=70.0,
                        pl_turn_out=990, pl_percent_turn_out=69.0,
                        candidates=[
                            candidate("BKK_1_2", 2, 400, 2, 40.0),
                            candidate("BKK_1_1", 1, 500, 1, 50.0),
                        ],
                        result_party=[
                            party_result(1, 300, 30.3),
                            party_result(2, 450, 45.5),
                            party_result(3, 0, 0.0),
                        ],
                    ),
                    cons_row(
                        "BKK_2",
                        turn_out=990, percent_turn_out=66.0,
                        pl_turn_out=1000, pl_percent_turn_out=67.0,
                        candidates=[candidate("BKK_2_1", 2, 600, 1, 60.6)],
                        result_party=[
                            party_result(1, 100, 10.0),
                            party_result(2, 500, 50.0),
                            party_result(3, 200, 20.0),
                            party_result(99, 50, 5.0),
                        ],
                    ),
                ],
                "result_party": [],
            },
            {
                "prov_id": "CMI",
                "turn_out": 800,
                "percent_turn_out": 66.7,
                "constituencies": [
                    cons_row(
                        "CMI_1",
                        turn_out=800, percent_turn_out=66.7,
                        pl_turn_out=800, pl_percent_turn_out=66.7,
                        percent_count=90.0, pause_report=True,
                        candidates=[candidate("CMI_1_3", 7, 420, 1, 52.5)],
                        result_party=[party_result(1, 400, 50.0)],
                    ),
                    cons_row(
                        "CMI_2",
                        turn_out=0, percent_turn_out=0.0,
                        pl_turn_out=0, pl_percent_turn_out=0.0,
                        invalid=0, blank=0, pl_invalid=0, pl_blank=0,
                        percent_count=0.0,
                    ),
                ],
                "result_party": [],
            },
        ],
    }


def referendum_result(yes: int, no: int, abstained: int) -> dict:
    total = yes + no + abstained
    return {
        "yes": yes,
        "no": no,
        "abstained": abstained,
        "percent_yes": yes / total * 100,
        "percent_no": no / total * 100,
        "percent_abstained": abstained / total * 100,
    }


def stats_referendum_payload() -> dict:
    return {
        "referendum_turn_out": 2000,
        "referendum_percent_turn_out": 60.0,
        "pause_report": False,
        "referendum_results": {},
        "result_province": [
            {
                "prov_id": "BKK",
                "constituencies": [
                    {"cons_id": "BKK_0", "referendum_results": {"q-main": referendum_result(1, 1, 2)}},
                    {
                        "cons_id": "BKK_1",
                        "referendum_turn_out": 1000,
                        "referendum_percent_turn_out": 66.0,
                        "referendum_results": {
                            "q-main": referendum_result(600, 300, 100),
                            "q-second": referendum_result(200, 700, 100),
                        },
                    },
                    {
                        "cons_id": "BKK_2",
                        "referendum_results": {"q-main": referendum_result(500, 250, 250)},
                    },
                ],
            },
            {
                "prov_id": "CMI",
                "constituencies": [
                    {"cons_id": "CMI_1", "referendum_results": {}},
                ],
            },
        ],
    }


FEED_PAYLOADS = {
    "stats_cons.json": stats_cons_payload,
    "stats_referendum.json": stats_referendum_payload,
    "info_mp_candidate.json": lambda: CANDIDATES,
    "info_party_overview.json": lambda: PARTIES,
    "info_constituency.json": lambda: REGISTRY,
}


def make_fake_fetch(fail: Optional[dict] = None, calls: Optional[list] = None):
    """
    Build a stand-in for ect_api.fetch_json.

    Args:
        fail: file name -> exception to raise for that feed
        calls: list that receives every requested file name
    """
    fail = fail or {}

    def fake_fetch(url, timeout=None):
        name = url.rsplit("/", 1)[-1]
        if calls is not None:
            calls.append(name)
        if name in fail:
            raise fail[name]
        if name not in FEED_PAYLOADS:
            raise AssertionError(f"Unexpected URL: {url}")
        return FEED_PAYLOADS[name]()

    return fake_fetch


def boundary_geojson() -> dict:
    """Boundaries for the four registry constituencies plus one unknown province."""
    def feature(p_name, cons_no):
        return {
            "type": "Feature",
            "properties": {"P_name": p_name, "CONS_no": cons_no, "AREA": 1.0},
            "geometry": {"type": "Polygon", "coordinates": [[[100.0, 13.0], [100.1, 13.0], [100.1, 13.1], [100.0, 13.0]]]},
        }

    return {
        "type": "FeatureCollection",
        "features": [
            feature("กรุงเทพมหานคร", 1),
            feature("กรุงเทพมหานคร", 2),
            feature("เชียงใหม่", 1),
            feature("เชียงใหม่", 2),
            feature("เมืองลับแล", 1),
        ],
    }


def write_boundaries(directory: Path) -> Path:
    path = Path(directory) / "constituencies.json"
    path.write_text(json.dumps(boundary_geojson(), ensure_ascii=False), encoding="utf-8")
    return path


def write_snapshot(directory: Path) -> Path:
    """Write every feed as <name>.json, the layout load_source reads offline."""
    names = {
        "stats_cons": "stats_cons.json",
        "stats_referendum": "stats_referendum.json",
        "mp_candidates": "info_mp_candidate.json",
        "party_overview": "info_party_overview.json",
        "constituencies": "info_constituency.json",
    }
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    for name, filename in names.items():
        (directory / f"{name}.json").write_text(
            json.dumps(FEED_PAYLOADS[filename](), ensure_ascii=False), encoding="utf-8"
        )
    return directory


def make_unit(unit_id: str, province_code: str = "BKK", district_no: int = 1, registered_voters: int = 1000) -> ResolvedUnit:
    return ResolvedUnit(
        unit_id=unit_id,
        district_no=district_no,
        province_code=province_code,
        province_name_th=province_code,
        province_name_en=province_code,
        registered_voters=registered_voters,
    )
