"""地址标准化：结构化地址 -> 地理编码查询串。"""

from __future__ import annotations

import re

from goget_rates.core.error_handler import safe_execute
from goget_rates.modules.rates.models import PostalAddress

COUNTRY_NAMES = {
    "MY": "Malaysia",
    "SG": "Singapore",
    "BN": "Brunei",
    "ID": "Indonesia",
    "TH": "Thailand",
    "PH": "Philippines",
    "VN": "Vietnam",
}

# Shopify 州/属地代码
PROVINCE_NAMES = {
    "MY": {
        "JHR": "Johor",
        "KDH": "Kedah",
        "KTN": "Kelantan",
        "KUL": "Kuala Lumpur",
        "LBN": "Labuan",
        "MLK": "Melaka",
        "NSN": "Negeri Sembilan",
        "PHG": "Pahang",
        "PNG": "Pulau Pinang",
        "PRK": "Perak",
        "PLS": "Perlis",
        "PJY": "Putrajaya",
        "SBH": "Sabah",
        "SWK": "Sarawak",
        "SGR": "Selangor",
        "TRG": "Terengganu",
    },
    "ID": {
        "JK": "DKI Jakarta",
        "JB": "Jawa Barat",
        "JT": "Jawa Tengah",
        "JI": "Jawa Timur",
        "BA": "Bali",
    },
    "TH": {
        "TH-10": "Bangkok",
    },
}

# ISO 3166-1 alpha-2 已分配代码，Nominatim countrycodes 只接受这些
ISO_COUNTRY_CODES = frozenset(
    """
    AD AE AF AG AI AL AM AO AQ AR AS AT AU AW AX AZ BA BB BD BE BF BG BH BI BJ BL
    BM BN BO BQ BR BS BT BV BW BY BZ CA CC CD CF CG CH CI CK CL CM CN CO CR CU CV
    CW CX CY CZ DE DJ DK DM DO DZ EC EE EG EH ER ES ET FI FJ FK FM FO FR GA GB GD
    GE GF GG GH GI GL GM GN GP GQ GR GS GT GU GW GY HK HM HN HR HT HU ID IE IL IM
    IN IO IQ IR IS IT JE JM JO JP KE KG KH KI KM KN KP KR KW KY KZ LA LB LC LI LK
    LR LS LT LU LV LY MA MC MD ME MF MG MH MK ML MM MN MO MP MQ MR MS MT MU MV MW
    MX MY MZ NA NC NE NF NG NI NL NO NP NR NU NZ OM PA PE PF PG PH PK PL PM PN PR
    PS PT PW PY QA RE RO RS RU RW SA SB SC SD SE SG SH SI SJ SK SL SM SN SO SR SS
    ST SV SX SY SZ TC TD TF TG TH TJ TK TL TM TN TO TR TT TV TW TZ UA UG UM US UY
    UZ VA VC VE VG VI VN VU WF WS YE YT ZA ZM ZW
    """.split()
)

_COUNTRY_BY_NAME = {name.lower(): code for code, name in COUNTRY_NAMES.items()}
_SPACES_RE = re.compile(r"\s+")


def _clean(value: str | None) -> str:
    return _SPACES_RE.sub(" ", (value or "").strip())


def country_code_for(value: str | None) -> str | None:
    """已分配的 ISO 两位代码或已知国家名 -> 小写 ISO 代码；无法识别返回 None。"""
    text = _clean(value)
    if not text:
        return None
    upper = text.upper()
    if upper in ISO_COUNTRY_CODES:
        return upper.lower()
    code = _COUNTRY_BY_NAME.get(text.lower())
    return code.lower() if code else None


def expand_country(value: str | None) -> str:
    text = _clean(value)
    return COUNTRY_NAMES.get(text.upper(), text)


def expand_province(value: str | None, country: str | None = None, default_country: str = "MY") -> str:
    text = _clean(value)
    if not text:
        return ""
    code = (country_code_for(country) or default_country).upper()
    return PROVINCE_NAMES.get(code, {}).get(text.upper(), text)


@safe_execute(default_return="")
def format_address(address: PostalAddress | None, *, include_name: bool = False, default_country: str = "MY") -> str:
    """
    按固定顺序拼接地址各段，空段丢弃，逗号分隔。

    include_name 为 True 时把收件人/公司放在最前；
    返回空串表示地址不可用，调用方不应再去地理编码。
    """
    if address is None:
        return ""

    parts: list[str] = []
    if include_name:
        parts.extend([_clean(address.name), _clean(address.company)])
    parts.extend(
        [
            _clean(address.address1),
            _clean(address.address2),
            _clean(address.address3),
            _clean(address.city),
            expand_province(address.province, address.country, default_country),
            _clean(address.postal_code),
            expand_country(address.country),
        ]
    )
    return ", ".join(part for part in parts if part)
