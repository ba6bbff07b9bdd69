#!/usr/bin/env python3
"""
Province and region reference tables for the 2026 (B.E. 2569) election.

ECT province codes are the join key between the boundary shapefile (which
carries Thai province names) and the ECT constituency registry. Regions follow
the six-region grouping of the National Statistical Office.

The tables are immutable and handed to the matcher and aggregator explicitly;
tests build their own with build_province_tables().
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional


# Format: ECT province code, Thai name, English name
PROVINCES = {
    # Northern Region (ภาคเหนือ)
    "north": [
        ("CMI", "เชียงใหม่", "Chiang Mai"),
        ("CRI", "เชียงราย", "Chiang Rai"),
        ("LPN", "ลำพูน", "Lamphun"),
        ("LPG", "ลำปาง", "Lampang"),
        ("MSN", "แม่ฮ่องสอน", "Mae Hong Son"),
        ("NAN", "น่าน", "Nan"),
        ("PYO", "พะเยา", "Phayao"),
        ("PRE", "แพร่", "Phrae"),
        ("UTT", "อุตรดิตถ์", "Uttaradit"),
    ],

    # Northeastern Region (ภาคตะวันออกเฉียงเหนือ)
    "northeast": [
        ("KSN", "กาฬสินธุ์", "Kalasin"),
        ("KKN", "ขอนแก่น", "Khon Kaen"),
        ("CPM", "ชัยภูมิ", "Chaiyaphum"),
        ("NPM", "นครพนม", "Nakhon Phanom"),
        ("NMA", "นครราชสีมา", "Nakhon Ratchasima"),
        ("BRM", "บุรีรัมย์", "Buri Ram"),
        ("MKM", "มหาสารคาม", "Maha Sarakham"),
        ("MDH", "มุกดาหาร", "Mukdahan"),
        ("YST", "ยโสธร", "Yasothon"),
        ("RET", "ร้อยเอ็ด", "Roi Et"),
        ("LEI", "เลย", "Loei"),
        ("SSK", "ศรีสะเกษ", "Si Sa Ket"),
        ("SNK", "สกลนคร", "Sakon Nakhon"),
        ("SRN", "สุรินทร์", "Surin"),
        ("NKI", "หนองคาย", "Nong Khai"),
        ("NBP", "หนองบัวลำภู", "Nong Bua Lamphu"),
        ("ACR", "อำนาจเจริญ", "Amnat Charoen"),
        ("UDN", "อุดรธานี", "Udon Thani"),
        ("UBN", "อุบลราชธานี", "Ubon Ratchathani"),
        ("BKN", "บึงกาฬ", "Bueng Kan"),
    ],

    # Central Region (ภาคกลาง)
    "central": [
        ("BKK", "กรุงเทพมหานคร", "Bangkok Metropolis"),
        ("KPT", "กำแพงเพชร", "Kamphaeng Phet"),
        ("CNT", "ชัยนาท", "Chai Nat"),
        ("NYK", "นครนายก", "Nakhon Nayok"),
        ("NPT", "นครปฐม", "Nakhon Pathom"),
        ("NSN", "นครสวรรค์", "Nakhon Sawan"),
        ("NBI", "นนทบุรี", "Nonthaburi"),
        ("PTE", "ปทุมธานี", "Pathum Thani"),
        ("AYA", "พระนครศรีอยุธยา", "Phra Nakhon Si Ayutthaya"),
        ("PCT", "พิจิตร", "Phichit"),
        ("PLK", "พิษณุโลก", "Phitsanulok"),
        ("PNB", "เพชรบูรณ์", "Phetchabun"),
        ("LRI", "ลพบุรี", "Lop Buri"),
        ("SPK", "สมุทรปราการ", "Samut Prakan"),
        ("SKM", "สมุทรสงคราม", "Samut Songkhram"),
        ("SKN", "สมุทรสาคร", "Samut Sakhon"),
        ("SRI", "สระบุรี", "Saraburi"),
        ("SBR", "สิงห์บุรี", "Sing Buri"),
        ("STI", "สุโขทัย", "Sukhothai"),
        ("SPB", "สุพรรณบุรี", "Suphan Buri"),
        ("ATG", "อ่างทอง", "Ang Thong"),
        ("UTI", "อุทัยธานี", "Uthai Thani"),
    ],

    # Eastern Region (ภาคตะวันออก)
    "east": [
        ("CTI", "จันทบุรี", "Chanthaburi"),
        ("CCO", "ฉะเชิงเทรา", "Chachoengsao"),
        ("CBI", "ชลบุรี", "Chon Buri"),
        ("TRT", "ตราด", "Trat"),
        ("PRI", "ปราจีนบุรี", "Prachin Buri"),
        ("RYG", "ระยอง", "Rayong"),
        ("SKW", "สระแก้ว", "Sa Kaeo"),
    ],

    # Western Region (ภาคตะวันตก)
    "west": [
        ("KRI", "กาญจนบุรี", "Kanchanaburi"),
        ("TAK", "ตาก", "Tak"),
        ("PKN", "ประจวบคีรีขันธ์", "Prachuap Khiri Khan"),
        ("PBI", "เพชรบุรี", "Phetchaburi"),
        ("RBR", "ราชบุรี", "Ratchaburi"),
    ],

    # Southern Region (ภาคใต้)
    "south": [
        ("KBI", "กระบี่", "Krabi"),
        ("CPN", "ชุมพร", "Chumphon"),
        ("TRG", "ตรัง", "Trang"),
        ("NST", "นครศรีธรรมราช", "Nakhon Si Thammarat"),
        ("NWT", "นราธิวาส", "Narathiwat"),
        ("PTN", "ปัตตานี", "Pattani"),
        ("PNA", "พังงา", "Phang Nga"),
        ("PLG", "พัทลุง", "Phatthalung"),
        ("PKT", "ภูเก็ต", "Phuket"),
        ("YLA", "ยะลา", "Yala"),
        ("RNG", "ระนอง", "Ranong"),
        ("SKA", "สงขลา", "Songkhla"),
        ("STN", "สตูล", "Satun"),
        ("SNI", "สุราษฎร์ธานี", "Surat Thani"),
    ],
}

REGION_NAMES = {
    "north": "ภาคเหนือ",
    "northeast": "ภาคตะวันออกเฉียงเหนือ",
    "central": "ภาคกลาง",
    "east": "ภาคตะวันออก",
    "west": "ภาคตะวันตก",
    "south": "ภาคใต้",
}

# Variant spellings seen in boundary files and third-party datasets
NAME_ALIASES = {
    "bangkok": "BKK",
    "phisanulok": "PLK",
    "udorn thani": "UDN",
    "sisaket": "SSK",
    "si sa ket": "SSK",
    "suphanburi": "SPB",
    "nong bua lam phu": "NBP",
    "phangnga": "PNA",
    "sa kaeo": "SKW",
}

PROVINCE_PREFIX = "จังหวัด"


def _normalize_key(name: str) -> str:
    return " ".join(str(name or "").split()).lower()


@dataclass(frozen=True)
class ProvinceTables:
    """Read-only province/region lookup tables."""
    name_th: Mapping[str, str]  # code -> Thai name
    name_en: Mapping[str, str]  # code -> English name
    region: Mapping[str, str]  # code -> region key
    region_order: tuple[str, ...]
    region_names: Mapping[str, str]  # region key -> Thai region name
    name_index: Mapping[str, str]  # normalized name/alias -> code

    def resolve_province_code(self, name: str) -> Optional[str]:
        """
        Resolve a province name to its ECT code.

        Accepts Thai names (with or without the จังหวัด prefix), English
        names and known alias spellings; matching ignores case and repeated
        whitespace.

        Returns:
            Province code, or None if the name is unknown
        """
        key = _normalize_key(name)
        if key.startswith(PROVINCE_PREFIX):
            key = key[len(PROVINCE_PREFIX):].strip()
        return self.name_index.get(key)

    def region_of(self, code: str) -> Optional[str]:
        """Get the region key for a province code."""
        return self.region.get(code)

    def list_codes(self) -> list[str]:
        """List all province codes, sorted."""
        return sorted(self.name_th)


def build_province_tables(
    provinces: Mapping[str, list[tuple[str, str, str]]],
    aliases: Optional[Mapping[str, str]] = None,
    region_names: Optional[Mapping[str, str]] = None,
) -> ProvinceTables:
    """
    Build immutable tables from (code, thai, english) rows grouped by region.

    Args:
        provinces: region key -> list of (code, Thai name, English name)
        aliases: extra name spellings -> code
        region_names: region key -> display name (defaults to the key)

    Returns:
        ProvinceTables instance
    """
    name_th: dict[str, str] = {}
    name_en: dict[str, str] = {}
    region: dict[str, str] = {}
    name_index: dict[str, str] = {}

    for region_key, rows in provinces.items():
        for code, thai, english in rows:
            name_th[code] = thai
            name_en[code] = english
            region[code] = region_key
            name_index[_normalize_key(thai)] = code
            name_index[_normalize_key(english)] = code

    for alias, code in (aliases or {}).items():
        name_index[_normalize_key(alias)] = code

    names = dict(region_names or {})
    for region_key in provinces:
        names.setdefault(region_key, region_key)

    return ProvinceTables(
        name_th=MappingProxyType(name_th),
        name_en=MappingProxyType(name_en),
        region=MappingProxyType(region),
        region_order=tuple(provinces),
        region_names=MappingProxyType(names),
        name_index=MappingProxyType(name_index),
    )


DEFAULT_TABLES = build_province_tables(PROVINCES, NAME_ALIASES, REGION_NAMES)


def get_all_provinces(tables: ProvinceTables = DEFAULT_TABLES) -> list[dict]:
    """Get all provinces as a flat list."""
    return [
        {
            "code": code,
            "name_th": tables.name_th[code],
            "name_en": tables.name_en[code],
            "region": tables.region[code],
        }
        for code in tables.list_codes()
    ]
