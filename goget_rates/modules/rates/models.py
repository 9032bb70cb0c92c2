"""运费报价领域模型。"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def to_finite_float(value: Any) -> float | None:
    """数字或数字字符串转 float；bool、空串、NaN、inf 一律视为无效。"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            number = float(text)
        except (TypeError, ValueError):
            return None
    return number if math.isfinite(number) else None


@dataclass(slots=True, frozen=True)
class PostalAddress:
    """结构化邮寄地址（Shopify rate.origin / rate.destination）。"""

    name: str = ""
    company: str = ""
    address1: str = ""
    address2: str = ""
    address3: str = ""
    city: str = ""
    province: str = ""
    postal_code: str = ""
    country: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> PostalAddress:
        raw = data if isinstance(data, dict) else {}
        return cls(
            name=_text(raw.get("name")),
            company=_text(raw.get("company") or raw.get("company_name")),
            address1=_text(raw.get("address1")),
            address2=_text(raw.get("address2")),
            address3=_text(raw.get("address3")),
            city=_text(raw.get("city")),
            province=_text(raw.get("province")),
            postal_code=_text(raw.get("postal_code") or raw.get("zip")),
            country=_text(raw.get("country")),
        )


@dataclass(slots=True, frozen=True)
class GeoPoint:
    lat: float
    lng: float

    @classmethod
    def parse(cls, lat: Any, lng: Any) -> GeoPoint | None:
        """两个分量都有效才返回坐标，否则 None。"""
        lat_num = to_finite_float(lat)
        lng_num = to_finite_float(lng)
        if lat_num is None or lng_num is None:
            return None
        return cls(lat=lat_num, lng=lng_num)


@dataclass(slots=True, frozen=True)
class Stop:
    """取件或收件点：已格式化地址 + 已解析坐标。"""

    location: str
    point: GeoPoint
    name: str = ""


@dataclass(slots=True)
class QuoteRequest:
    """GoGet 报价请求，取件/收件坐标都已解析。"""

    pickup: Stop
    dropoff: Stop
    start_at: str
    parking: bool = True
    ride_id: int = 2
    bulky: bool = False
    guarantee: bool = True
    num_of_items: str = "1-2"
    flexi: bool = False
    route: bool = False

    def to_payload(self) -> dict[str, Any]:
        return {
            "pickup": {
                "name": self.pickup.name,
                "location": self.pickup.location,
                "location_lat": self.pickup.point.lat,
                "location_long": self.pickup.point.lng,
                "parking": self.parking,
                "start_at": self.start_at,
            },
            "dropoff": [
                {
                    "location": self.dropoff.location,
                    "location_lat": self.dropoff.point.lat,
                    "location_long": self.dropoff.point.lng,
                }
            ],
            "ride_id": self.ride_id,
            "bulky": self.bulky,
            "guarantee": self.guarantee,
            "num_of_items": self.num_of_items,
            "flexi": self.flexi,
            "route": self.route,
        }


@dataclass(slots=True)
class Quote:
    """GoGet 返回的运费（主币种单位，如令吉）。"""

    fee: float
    source: str = ""
    raw: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not math.isfinite(self.fee) or self.fee < 0:
            raise ValueError(f"quote fee must be finite and non-negative, got {self.fee!r}")


@dataclass(slots=True, frozen=True)
class NormalizedRate:
    service_name: str
    service_code: str
    total_price: str
    currency: str
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "service_name": self.service_name,
            "service_code": self.service_code,
        }
        if self.description:
            data["description"] = self.description
        data["total_price"] = self.total_price
        data["currency"] = self.currency
        return data


@dataclass(slots=True)
class RateResponse:
    """HTTP 层要返回的状态码与响应体。"""

    status_code: int = 200
    rates: list[NormalizedRate] = field(default_factory=list)
    debug: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"rates": [rate.to_dict() for rate in self.rates]}
        if self.debug is not None:
            body["debug"] = self.debug
        return body
